from typing import Any, Dict, Optional

from flask import jsonify

from .errors import APIError, BadRequest, DataSourceError


def _build_error_payload(error: Any, message: Optional[str]) -> Dict[str, Any]:
    if isinstance(error, DataSourceError):
        return error.to_dict()

    if isinstance(error, APIError):
        payload = {"error": message or error.message}
        payload.update({k: v for k, v in error.to_dict().items() if k != "message"})
        return payload

    if isinstance(error, BadRequest):
        return {"error": message or error.message}

    return {"error": message or str(error)}


def make_ok(data: Optional[Any] = None, status_code: int = 200):
    """Return the raw JSON body handlers have always returned."""
    response = jsonify(data if data is not None else {})
    return response, status_code


def make_error(error: Any, message: Optional[str] = None, status_code: Optional[int] = None):
    """Return a JSON error object; status defaults to the error's own status_code."""
    payload = _build_error_payload(error, message)
    if status_code is None:
        status_code = getattr(error, "status_code", 400)
    response = jsonify(payload)
    return response, status_code
