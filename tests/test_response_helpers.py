from flask import Flask

from statpad.app_utils import make_error, make_ok
from statpad.errors import APIError, BadRequest, DataSourceError

app = Flask(__name__)


def test_make_ok_returns_raw_body():
    with app.app_context():
        response, status = make_ok([{"team": "TOR"}])
    assert status == 200
    assert response.get_json() == [{"team": "TOR"}]


def test_api_error_payload_keeps_source_and_code():
    error = APIError("OddsAPI", "HTTP_ERROR", "upstream failed", details="HTTP 502")
    with app.app_context():
        response, status = make_error(error)
    assert status == 500
    assert response.get_json() == {
        "error": "upstream failed",
        "source": "OddsAPI",
        "code": "HTTP_ERROR",
        "details": "HTTP 502",
    }


def test_data_source_error_lists_missing_columns():
    error = DataSourceError("CSV does not contain required columns", 400, missing=["season"])
    with app.app_context():
        response, status = make_error(error)
    assert status == 400
    assert response.get_json() == {"error": "CSV does not contain required columns", "missing": ["season"]}


def test_bad_request_and_override():
    with app.app_context():
        response, status = make_error(BadRequest("Invalid filePath"))
        assert status == 400
        assert response.get_json() == {"error": "Invalid filePath"}

        response, status = make_error(RuntimeError("boom"), "Internal server error", status_code=500)
    assert status == 500
    assert response.get_json() == {"error": "Internal server error"}
