"""
JSON parsing and single-flight helpers. Encapsulated in classes (OOP).
"""
import json
import re
import threading

# Greedy: first "{" to the last "}" in the response, across newlines.
_JSON_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")
_TRAILING_COMMA_OBJ = re.compile(r",\s*}")
_TRAILING_COMMA_ARR = re.compile(r",\s*]")


class JsonParser:
    """
    Pulls a JSON object out of an LLM response that may wrap it in prose or markdown fences.
    """

    @staticmethod
    def find_object_candidate(response: str) -> str | None:
        """Return the first-brace-to-last-brace substring, or None when there is no brace pair."""
        match = _JSON_OBJECT_PATTERN.search(response)
        return match.group(0) if match else None

    @staticmethod
    def try_parse(s: str):
        """json.loads; on failure retry once with trailing commas removed. Returns None if both fail."""
        try:
            return json.loads(s)
        except json.JSONDecodeError:
            pass
        fixed = _TRAILING_COMMA_OBJ.sub("}", _TRAILING_COMMA_ARR.sub("]", s))
        if fixed == s:
            return None
        try:
            return json.loads(fixed)
        except json.JSONDecodeError:
            return None

    @classmethod
    def extract_object(cls, response: str) -> dict | None:
        """Parsed JSON object from the response, or None when there is no parseable object."""
        candidate = cls.find_object_candidate(response)
        if candidate is None:
            return None
        parsed = cls.try_parse(candidate)
        return parsed if isinstance(parsed, dict) else None


class BusyToken:
    """
    Single-flight guard: acquire() never waits, it just reports whether the caller got the token.
    Use as `if token.acquire(): try: ... finally: token.release()`.
    """

    def __init__(self, name: str):
        self.name = name
        self._lock = threading.Lock()

    def acquire(self) -> bool:
        return self._lock.acquire(blocking=False)

    def release(self) -> None:
        self._lock.release()

    @property
    def busy(self) -> bool:
        return self._lock.locked()
