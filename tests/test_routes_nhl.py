from statpad import settings
from statpad.routes import nhl as nhl_routes


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    payload = response.get_json()
    assert payload["status"] == "ok"
    assert "ts" in payload


def test_unknown_route_is_json_404(client):
    response = client.get("/nope")
    assert response.status_code == 404
    assert "error" in response.get_json()


def test_process_goals_default_file(client, write_csv):
    write_csv(
        settings.NHL_GOALS_FILE,
        ["playerPositionThatDidEvent", "teamCode", "event", "game_id"],
        [["C", "TOR", "GOAL", "1"], ["D", "TOR", "SHOT", "2"]],
    )
    response = client.get("/process-goals")
    assert response.status_code == 200
    body = response.get_json()
    assert body["TOR"]["total_games"] == 2
    assert body["TOR"]["goals_per_game"]["C"] == 0.5


def test_process_shots_to_goals_with_file_path(client, write_csv):
    write_csv("custom.csv", ["event", "teamCode"], [["GOAL", "MTL"], ["SHOT", "MTL"]])
    response = client.get("/process-shotstogoals?filePath=custom.csv")
    assert response.status_code == 200
    assert response.get_json()["MTL"]["conversion_rate"] == 0.5


def test_missing_columns_is_400(client, write_csv):
    write_csv(settings.NHL_GOALS_AGAINST_FILE, ["teamCode", "event"], [["TOR", "GOAL"]])
    response = client.get("/process-goals-against")
    assert response.status_code == 400
    body = response.get_json()
    assert body["error"] == "CSV does not contain required columns"
    assert "season" in body["missing"]


def test_missing_file_is_500(client, data_dir):
    response = client.get("/process-dangerzone?filePath=absent.csv")
    assert response.status_code == 500
    assert response.get_json() == {"error": "Failed to open CSV file"}


def test_path_escape_is_400(client, data_dir):
    response = client.get("/process-goal-diff?filePath=../../etc/passwd")
    assert response.status_code == 400
    assert response.get_json() == {"error": "Invalid filePath"}


def test_empty_csv_is_400(client, write_csv):
    write_csv(settings.NHL_SCORE_TIME_FILE, ["event", "time", "teamCode", "season", "game_id"], [])
    response = client.get("/process-avgscoretime")
    assert response.status_code == 400
    assert response.get_json()["error"] == "CSV file is empty or invalid"


def test_trendlens_saves_records(client, write_csv, monkeypatch):
    header = ["event", "time", "teamCode", "season", "game_id", "shooterPlayerId", "shooterName", "homeTeamCode"]
    rows = [["SHOT", "", "EDM", "2024", str(g), "97", "Connor McDavid", "EDM"] for g in range(6)]
    write_csv(settings.NHL_TRENDLENS_FILE, header, rows)

    monkeypatch.setattr(settings, "ALGOLIA_APP_ID", "app")
    monkeypatch.setattr(settings, "ALGOLIA_API_KEY", "key")
    monkeypatch.setattr(settings, "ALGOLIA_NHL_INDEX_NAME", "nhl_players")
    saved = {}

    def fake_save(self, records):
        saved["index"] = self.index_name
        saved["records"] = list(records)
        return 77

    monkeypatch.setattr(nhl_routes.AlgoliaSink, "save_objects", fake_save)

    response = client.get("/nhl/trendlens")
    assert response.status_code == 200
    body = response.get_json()
    assert body["status"] == "success"
    assert body["playerCount"] == 1
    assert body["gameCount"] == 6
    assert body["recordsSaved"] == 1
    assert body["taskID"] == 77
    assert saved["index"] == "nhl_players"
    assert saved["records"][0]["objectID"] == "nhl_player_97"


def test_trendlens_without_credentials_is_500(client, write_csv, monkeypatch):
    header = ["event", "time", "teamCode", "season", "game_id", "shooterPlayerId", "shooterName"]
    write_csv(settings.NHL_TRENDLENS_FILE, header, [["SHOT", "", "EDM", "2024", "1", "97", "A"]])
    monkeypatch.setattr(settings, "ALGOLIA_APP_ID", None)

    response = client.get("/nhl/trendlens")
    assert response.status_code == 500
    assert response.get_json()["error"] == "Missing Algolia credentials"
