import uuid
from datetime import datetime, timezone
from time import monotonic
from typing import Optional

from flask import Flask, g, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from . import settings
from .app_utils import make_error, make_ok
from .config import setup_logger
from .errors import APIError, BadRequest, DataSourceError
from .routes.events import bp as events_bp
from .routes.mlb import bp as mlb_bp
from .routes.nba import bp as nba_bp
from .routes.nhl import bp as nhl_bp

app = Flask(__name__)

logger = setup_logger(__name__)

CORS(
    app,
    origins=settings.CORS_ORIGINS,
    methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Origin", "Content-Type", "Accept", "Authorization"],
)

for _bp in (nhl_bp, events_bp, nba_bp, mlb_bp):
    app.register_blueprint(_bp)


@app.before_request
def _start_timer() -> None:
    g.request_id = uuid.uuid4().hex[:8]
    g.started = monotonic()


@app.after_request
def _log_request(response):
    started = g.get("started")
    elapsed_ms = (monotonic() - started) * 1000 if started is not None else 0.0
    logger.info(
        "%s %s -> %s (%.1f ms) rid=%s",
        request.method,
        request.path,
        response.status_code,
        elapsed_ms,
        g.get("request_id"),
    )
    return response


@app.teardown_request
def _clear_request_state(_exc: Optional[BaseException]) -> None:
    g.pop("started", None)
    g.pop("request_id", None)


@app.errorhandler(APIError)
def _handle_api_error(error: APIError):
    logger.error("%s %s failed: [%s] %s %s", error.source, request.path, error.code, error.message, error.details or "")
    return make_error(error)


@app.errorhandler(DataSourceError)
def _handle_data_source_error(error: DataSourceError):
    logger.warning("data source error on %s: %s", request.path, error.message)
    return make_error(error)


@app.errorhandler(BadRequest)
def _handle_bad_request(error: BadRequest):
    return make_error(error)


@app.errorhandler(HTTPException)
def _handle_http_exception(error: HTTPException):
    return make_error(error, error.description or error.name, status_code=error.code)


@app.errorhandler(Exception)
def _handle_unexpected(error: Exception):
    logger.exception("unhandled error on %s", request.path)
    return make_error(error, "Internal server error", status_code=500)


@app.route("/health", methods=["GET"])
def health():
    return make_ok({"status": "ok", "ts": datetime.now(timezone.utc).isoformat()})


if __name__ == "__main__":
    app.run(debug=settings.DEBUG, host=settings.HOST, port=settings.PORT)
