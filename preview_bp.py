"""
Flask Blueprint for the document preview workflow: extract and edit details, refine the draft,
verify, and download as DOCX/PDF.
Mount at /preview (e.g. /preview/api/sessions to open a session, then /preview/api/sessions/<token>/...).
Sessions live in memory keyed by a short-lived token.
"""
import secrets
import time

from flask import Blueprint, Response, current_app, jsonify, request
from werkzeug.utils import secure_filename

from docpreview.errors import (
    ExportError,
    ExtractionServiceError,
    ImmutableDetailError,
    RefinementServiceError,
    VerificationRequiredError,
)
from docpreview.exporter import DocumentExporter
from docpreview.llm_client import build_generation_client
from docpreview.notifications import CollectingNotifier
from docpreview.session import Document, DocumentPreviewSession

preview_bp = Blueprint("preview", __name__, url_prefix="/preview")

# token -> {"session", "notifier", "created"}
_SESSION_STORE = {}
DEFAULT_SESSION_TTL_SEC = 3600


def _ttl() -> int:
    return current_app.config.get("PREVIEW_SESSION_TTL", DEFAULT_SESSION_TTL_SEC)


def _expire_old():
    now = time.time()
    ttl = _ttl()
    for token in list(_SESSION_STORE):
        if now - _SESSION_STORE[token]["created"] > ttl:
            del _SESSION_STORE[token]


def _json_body() -> dict:
    data = request.get_json(force=True, silent=True)
    return data if isinstance(data, dict) else {}


def _generation_service():
    service = current_app.config.get("GENERATION_SERVICE")
    if service is None:
        service = build_generation_client()
        current_app.config["GENERATION_SERVICE"] = service
    return service


def _exporter():
    exporter = current_app.config.get("DOCUMENT_EXPORTER")
    if exporter is None:
        exporter = DocumentExporter()
        current_app.config["DOCUMENT_EXPORTER"] = exporter
    return exporter


def _lookup(token: str):
    _expire_old()
    return _SESSION_STORE.get(token)


def _state_response(entry, status: int = 200):
    body = entry["session"].state()
    body["notices"] = entry["notifier"].drain()
    return jsonify(body), status


def _error_response(entry, message: str, status: int):
    notices = entry["notifier"].drain() if entry else []
    return jsonify({"error": message, "notices": notices}), status


@preview_bp.route("/api/sessions", methods=["POST"])
def create_session():
    """Open a preview session for {content, formatted_content?, document_type?, details?}. Returns a token."""
    data = _json_body()
    content = data.get("content")
    if content is not None and not isinstance(content, str):
        return jsonify({"error": "Invalid 'content' field"}), 400
    _expire_old()
    notifier = CollectingNotifier()
    session = DocumentPreviewSession(
        Document.from_dict(data),
        _generation_service(),
        on_download=_exporter(),
        notifier=notifier,
    )
    token = secrets.token_urlsafe(12)
    _SESSION_STORE[token] = {"session": session, "notifier": notifier, "created": time.time()}
    body = session.state()
    body["token"] = token
    return jsonify(body), 201


@preview_bp.route("/api/sessions/<token>", methods=["GET"])
def get_session(token):
    entry = _lookup(token)
    if not entry:
        return jsonify({"error": "Session not found or expired"}), 404
    return _state_response(entry)


@preview_bp.route("/api/sessions/<token>", methods=["DELETE"])
def close_session(token):
    _SESSION_STORE.pop(token, None)
    return "", 204


@preview_bp.route("/api/sessions/<token>/details", methods=["POST"])
def update_detail(token):
    """Manual edit of one detail: {key, value}."""
    entry = _lookup(token)
    if not entry:
        return jsonify({"error": "Session not found or expired"}), 404
    data = _json_body()
    key, value = data.get("key"), data.get("value")
    if not isinstance(key, str) or not key.strip() or not isinstance(value, str):
        return _error_response(entry, "Missing or invalid 'key'/'value' fields", 400)
    try:
        entry["session"].set_detail(key, value)
    except ImmutableDetailError as e:
        return _error_response(entry, str(e), 400)
    return _state_response(entry)


@preview_bp.route("/api/sessions/<token>/extract", methods=["POST"])
async def extract_details(token):
    entry = _lookup(token)
    if not entry:
        return jsonify({"error": "Session not found or expired"}), 404
    session = entry["session"]
    if session.is_extracting:
        return _error_response(entry, "Extraction already in progress", 409)
    try:
        outcome = await session.extract_details()
    except ExtractionServiceError as e:
        return _error_response(entry, e.message, 502)
    body = session.state()
    body["extraction_stage"] = outcome.stage.value if outcome else None
    body["notices"] = entry["notifier"].drain()
    return jsonify(body)


@preview_bp.route("/api/sessions/<token>/refine", methods=["POST"])
async def refine_document(token):
    """Refine the draft with {instruction}. Blank instructions are ignored."""
    entry = _lookup(token)
    if not entry:
        return jsonify({"error": "Session not found or expired"}), 404
    session = entry["session"]
    if session.is_refining:
        return _error_response(entry, "Refinement already in progress", 409)
    instruction = _json_body().get("instruction")
    if instruction is not None and not isinstance(instruction, str):
        return _error_response(entry, "Invalid 'instruction' field", 400)
    try:
        await session.refine(instruction)
    except RefinementServiceError as e:
        return _error_response(entry, e.message, 502)
    return _state_response(entry)


@preview_bp.route("/api/sessions/<token>/content", methods=["POST"])
def save_content(token):
    """Save a manual edit of the draft: {content}."""
    entry = _lookup(token)
    if not entry:
        return jsonify({"error": "Session not found or expired"}), 404
    content = _json_body().get("content")
    if not isinstance(content, str):
        return _error_response(entry, "Missing or invalid 'content' field", 400)
    entry["session"].save_edit(content)
    return _state_response(entry)


@preview_bp.route("/api/sessions/<token>/verify", methods=["POST"])
def verify(token):
    entry = _lookup(token)
    if not entry:
        return jsonify({"error": "Session not found or expired"}), 404
    verified = _json_body().get("verified")
    if not isinstance(verified, bool):
        return _error_response(entry, "Missing or invalid 'verified' field (expected true or false)", 400)
    entry["session"].set_verified(verified)
    return _state_response(entry)


@preview_bp.route("/api/sessions/<token>/download", methods=["POST"])
def download(token):
    """Return the document as {file_format} named {file_name}.{file_format}. Requires verification."""
    entry = _lookup(token)
    if not entry:
        return jsonify({"error": "Session not found or expired"}), 404
    session = entry["session"]
    data = _json_body()
    if data.get("file_name"):
        session.file_name = secure_filename(str(data["file_name"])) or session.file_name
    if data.get("file_format"):
        try:
            session.file_format = str(data["file_format"])
        except ValueError as e:
            return _error_response(entry, str(e), 400)
    try:
        exported = session.download()
    except VerificationRequiredError as e:
        return _error_response(entry, str(e), 403)
    except ExportError as e:
        return _error_response(entry, "Export failed: " + str(e), 422)
    return Response(
        exported.data,
        mimetype=exported.mimetype,
        headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'},
    )
