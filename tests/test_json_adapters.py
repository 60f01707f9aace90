import json

import pytest
import requests

from statpad import settings
from statpad.adapters.algolia import AlgoliaSink
from statpad.adapters.pbpstats import PbpStatsAdapter
from statpad.errors import APIError


class FakeSession:
    def __init__(self, responses):
        self._responses = list(responses)
        self.calls = []

    def request(self, method, url, timeout=None, **kwargs):
        self.calls.append((method, url, kwargs))
        if not self._responses:
            raise AssertionError("No more responses configured")
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def make_response(status_code, payload=None, raw=None):
    response = requests.Response()
    response.status_code = status_code
    response.reason = "OK" if status_code == 200 else "Error"
    body = raw if raw is not None else json.dumps(payload if payload is not None else {})
    response._content = body.encode("utf-8")
    response.encoding = "utf-8"
    response.url = "https://example.test"
    return response


@pytest.fixture(autouse=True)
def _no_sleep(monkeypatch):
    monkeypatch.setattr("statpad.utils.time.sleep", lambda _duration: None)


def test_algolia_batch_payload_and_task_id():
    session = FakeSession([make_response(200, {"taskID": 42, "objectIDs": ["a"]})])
    sink = AlgoliaSink("APPID", "key", "players", session=session)

    task_id = sink.save_objects([{"objectID": "a", "points": 1}])

    assert task_id == 42
    method, url, kwargs = session.calls[0]
    assert method == "POST"
    assert url == "https://APPID.algolia.net/1/indexes/players/batch"
    assert kwargs["headers"]["X-Algolia-Application-Id"] == "APPID"
    assert kwargs["headers"]["X-Algolia-API-Key"] == "key"
    assert kwargs["json"] == {"requests": [{"action": "updateObject", "body": {"objectID": "a", "points": 1}}]}


def test_algolia_empty_batch_makes_no_call():
    session = FakeSession([])
    assert AlgoliaSink("APPID", "key", "players", session=session).save_objects([]) is None
    assert session.calls == []


def test_algolia_server_error_is_not_retried():
    session = FakeSession([make_response(503), make_response(200, {"taskID": 1})])
    sink = AlgoliaSink("APPID", "key", "players", session=session)
    with pytest.raises(APIError) as exc:
        sink.save_objects([{"objectID": "a"}])
    assert exc.value.code == "HTTP_ERROR"
    assert len(session.calls) == 1


def test_algolia_rejected_key():
    session = FakeSession([make_response(403)])
    with pytest.raises(APIError) as exc:
        AlgoliaSink("APPID", "key", "players", session=session).save_objects([{"objectID": "a"}])
    assert exc.value.code == "AUTH_ERROR"


def test_algolia_from_settings_requires_credentials(monkeypatch):
    monkeypatch.setattr(settings, "ALGOLIA_APP_ID", None)
    monkeypatch.setattr(settings, "ALGOLIA_API_KEY", "key")
    with pytest.raises(APIError) as exc:
        AlgoliaSink.from_settings("players")
    assert exc.value.code == "CONFIG_ERROR"
    assert exc.value.message == "Missing Algolia credentials"


def test_pbpstats_relative_efficiency_filters_season(monkeypatch):
    monkeypatch.setattr(settings, "PBPSTATS_SEASON", "2024-25")
    session = FakeSession(
        [
            make_response(200, {"team": "Lakers", "season": "2024-25", "relative_off_efficiency": 2.1}),
            make_response(200, {"team": "Lakers", "season": "2023-24", "relative_off_efficiency": 1.0}),
        ]
    )
    adapter = PbpStatsAdapter(session=session)
    assert adapter.relative_efficiency("Lakers")["relative_off_efficiency"] == 2.1
    assert adapter.relative_efficiency("Lakers") is None
    assert session.calls[0][2]["params"] == {"team": "Lakers"}


def test_pbpstats_scatter_defaults(monkeypatch):
    monkeypatch.setattr(settings, "PBPSTATS_SCATTER_SEASON", "2023-24")
    session = FakeSession([make_response(200, {"results": []})])
    PbpStatsAdapter(session=session).scatter_plot(y="DefRtg")
    params = session.calls[0][2]["params"]
    assert params == {
        "Season": "2023-24",
        "SeasonType": "Regular Season",
        "X": "PtsPer100Poss",
        "Y": "DefRtg",
        "XType": "Team",
        "YType": "Team",
    }


def test_pbpstats_live_games_and_errors():
    session = FakeSession(
        [
            make_response(200, {"game_data": [{"home": "Lakers", "away": "Celtics"}]}),
            make_response(200, raw="<html>"),
            requests.ConnectionError("down"),
        ]
    )
    adapter = PbpStatsAdapter(session=session)
    assert adapter.live_games() == [{"home": "Lakers", "away": "Celtics"}]

    with pytest.raises(APIError) as exc:
        adapter.shot_query("Lakers")
    assert exc.value.code == "PARSE_ERROR"

    with pytest.raises(APIError) as exc:
        adapter.subunit_stats("nba", "1,2")
    assert exc.value.code == "NETWORK_ERROR"
    assert len(session.calls) == 3


def test_pbpstats_unavailable_makes_single_call():
    session = FakeSession([make_response(503), make_response(200, {"game_data": []})])
    adapter = PbpStatsAdapter(session=session)
    with pytest.raises(APIError) as exc:
        adapter.live_games()
    assert exc.value.code == "HTTP_ERROR"
    assert exc.value.details == "HTTP 503"
    assert len(session.calls) == 1


def test_pbpstats_shot_query_rejects_non_object():
    session = FakeSession([make_response(200, [{"shot_quality": 0.5}])])
    with pytest.raises(APIError) as exc:
        PbpStatsAdapter(session=session).shot_query("Heat")
    assert exc.value.code == "PARSE_ERROR"
