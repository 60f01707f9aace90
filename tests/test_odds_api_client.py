import pytest

from statpad import net_retry, odds_api_client, settings
from statpad.errors import APIError


class DummyResp:
    def __init__(self, status_code, payload=None, headers=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.headers = headers or {}
        self.text = text

    def json(self):
        if self._payload is None:
            raise ValueError("Expecting value")
        return self._payload


@pytest.fixture(autouse=True)
def _fresh_key_pool(monkeypatch):
    monkeypatch.setattr(odds_api_client, "invalid_keys", set())
    monkeypatch.setattr(odds_api_client, "current_key_index", 0)
    monkeypatch.setattr(net_retry.time, "sleep", lambda _delay: None)


def test_sanitize_error_message_masks_keys():
    message = "GET /odds?apiKey=abc123&regions=us failed; X-Auth-Token: tok.en-9"
    cleaned = odds_api_client.sanitize_error_message(message)
    assert "abc123" not in cleaned
    assert "tok.en-9" not in cleaned
    assert "apiKey=***" in cleaned


def test_no_keys_is_config_error(monkeypatch):
    monkeypatch.setattr(settings, "ODDS_API_KEYS", [])
    with pytest.raises(APIError) as exc:
        odds_api_client.get_next_api_key()
    assert exc.value.code == "CONFIG_ERROR"


def test_keys_rotate(monkeypatch):
    monkeypatch.setattr(settings, "ODDS_API_KEYS", ["k1", "k2"])
    assert [odds_api_client.get_next_api_key() for _ in range(3)] == ["k1", "k2", "k1"]


def test_rejected_key_falls_through_to_next(monkeypatch):
    monkeypatch.setattr(settings, "ODDS_API_KEYS", ["bad", "good"])
    seen = []

    def fake_get(url, headers=None, params=None, auth=None, timeout=None):
        seen.append(params["apiKey"])
        if params["apiKey"] == "bad":
            return DummyResp(401)
        return DummyResp(200, [{"id": "evt"}], headers={"x-requests-remaining": "450"})

    monkeypatch.setattr(net_retry.requests, "get", fake_get)

    assert odds_api_client.get_nhl_events() == [{"id": "evt"}]
    assert seen == ["bad", "good"]
    assert "bad" in odds_api_client.invalid_keys


def test_upcoming_odds_query(monkeypatch):
    monkeypatch.setattr(settings, "ODDS_API_KEYS", ["k1"])
    seen = {}

    def fake_get(url, headers=None, params=None, auth=None, timeout=None):
        seen.update(url=url, params=params)
        return DummyResp(200, [])

    monkeypatch.setattr(net_retry.requests, "get", fake_get)
    odds_api_client.get_upcoming_odds()
    assert seen["url"].endswith("/v4/sports/upcoming/odds")
    assert seen["params"]["markets"] == "h2h,spreads"
    assert seen["params"]["oddsFormat"] == "american"
    assert seen["params"]["regions"] == "us"


def test_http_error_is_sanitized(monkeypatch):
    monkeypatch.setattr(settings, "ODDS_API_KEYS", ["k1"])
    monkeypatch.setattr(
        net_retry.requests,
        "get",
        lambda url, headers=None, params=None, auth=None, timeout=None: DummyResp(422, text="bad apiKey=k1"),
    )
    with pytest.raises(APIError) as exc:
        odds_api_client.get_nba_odds()
    assert exc.value.code == "HTTP_ERROR"
    assert "k1" not in (exc.value.details or "")


def test_parse_error(monkeypatch):
    monkeypatch.setattr(settings, "ODDS_API_KEYS", ["k1"])
    monkeypatch.setattr(
        net_retry.requests, "get", lambda url, headers=None, params=None, auth=None, timeout=None: DummyResp(200)
    )
    with pytest.raises(APIError) as exc:
        odds_api_client.get_upcoming_odds()
    assert exc.value.code == "PARSE_ERROR"


def test_group_by_sport_keeps_order():
    events = [
        {"id": 1, "sport_title": "NHL"},
        {"id": 2, "sport_title": "NBA"},
        {"id": 3, "sport_title": "NHL"},
        {"id": 4},
    ]
    grouped = odds_api_client.group_by_sport(events)
    assert list(grouped) == ["NHL", "NBA", "Unknown"]
    assert [e["id"] for e in grouped["NHL"]] == [1, 3]


def test_filter_bookmakers_drops_empty_events():
    events = [
        {"id": 1, "bookmakers": [{"key": "draftkings"}, {"key": "bovada"}]},
        {"id": 2, "bookmakers": [{"key": "bovada"}]},
    ]
    filtered = odds_api_client.filter_bookmakers(events, wanted=["draftkings", "fanduel"])
    assert filtered == [{"id": 1, "bookmakers": [{"key": "draftkings"}]}]
