"""
Web host for the document preview workflow (JSON API under /preview).
Run: python app.py  then POST a draft to http://127.0.0.1:5000/preview/api/sessions
"""
import logging

from flask import Flask, jsonify

from docpreview.config import Config
from preview_bp import preview_bp


def create_app(config: Config | None = None, generation_service=None, exporter=None) -> Flask:
    """
    Build the Flask app. generation_service / exporter override the defaults
    (HTTP or OpenAI client from config, DOCX/PDF exporter) e.g. in tests.
    """
    cfg = config or Config()
    logging.basicConfig(
        level=getattr(logging, cfg.LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = 16 * 1024 * 1024  # 16 MB max body
    app.config["PREVIEW_SESSION_TTL"] = cfg.PREVIEW_SESSION_TTL
    if generation_service is not None:
        app.config["GENERATION_SERVICE"] = generation_service
    if exporter is not None:
        app.config["DOCUMENT_EXPORTER"] = exporter
    app.register_blueprint(preview_bp)

    @app.route("/health")
    def health():
        return jsonify({"status": "healthy"})

    return app


if __name__ == "__main__":
    create_app().run(debug=True, port=5000, use_reloader=False)
