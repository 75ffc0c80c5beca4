import pytest

from football_stats.adapters.memory import InMemoryMatchRepository
from football_stats.app import app
from football_stats.errors import APIError
from football_stats.prediction_service import PredictionService


def _row(home, away, ft, when, league="spain", id=None):
    return {
        "id": id,
        "home_team": home,
        "away_team": away,
        "half_time_home_goals": 0,
        "half_time_away_goals": 0,
        "full_time_home_goals": ft[0],
        "full_time_away_goals": ft[1],
        "match_time": when,
        "league": league,
    }


ROWS = [
    _row("Getafe", "Girona", (1, 0), "2024-01-05T20:00:00Z", id=1),
    _row("Girona", "Getafe", (2, 2), "2024-02-05T20:00:00Z", id=2),
    _row("Getafe", "Mallorca", (0, 1), "2024-03-05T20:00:00Z", id=3),
    _row("Ath Madrid", "Getafe", (3, 0), "2024-04-05T20:00:00Z", id=4),
    _row("Brest", "Lens", (1, 1), "2024-04-06T20:00:00Z", league="france", id=5),
]


class FailingRepository(InMemoryMatchRepository):
    def fetch_recent_matches(self, *args, **kwargs):
        raise APIError("supabase", "503", "Service Unavailable")

    def search_matches(self, *args, **kwargs):
        raise APIError("supabase", "unavailable", "connection refused")

    def list_teams(self, league=None):
        raise RuntimeError("unexpected")

    def get_match(self, match_id):
        raise APIError("supabase", "503", "Service Unavailable")


def _client(monkeypatch, repo):
    service = PredictionService(repo, cache_enabled=False)
    monkeypatch.setattr("football_stats.app.match_repository", lambda: repo)
    monkeypatch.setattr("football_stats.app.prediction_service", lambda: service)
    app.testing = True
    return app.test_client()


@pytest.fixture
def client(monkeypatch):
    with _client(monkeypatch, InMemoryMatchRepository.from_rows(ROWS)) as client:
        yield client


@pytest.fixture
def failing_client(monkeypatch):
    with _client(monkeypatch, FailingRepository()) as client:
        yield client


def test_matches_search(client):
    resp = client.get("/api/matches?home_team=Getafe&league=spain")
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert [m["id"] for m in data["matches"]] == [3, 1]
    assert data["count"] == 2
    assert data["limit"] == 10
    assert data["offset"] == 0
    assert data["league"] == "spain"


def test_matches_default_league(client):
    data = client.get("/api/matches").get_json()["data"]
    assert data["league"] == "spain"
    assert 5 not in [m["id"] for m in data["matches"]]


def test_matches_accepts_league_alias_and_paging(client):
    data = client.get("/api/matches?league=SP1&limit=1&offset=1").get_json()["data"]
    assert [m["id"] for m in data["matches"]] == [3]


def test_match_by_id(client):
    resp = client.get("/api/matches/4")
    assert resp.status_code == 200
    payload = resp.get_json()
    assert payload["status"] == "ok"
    assert payload["data"]["home_team"] == "Ath Madrid"
    assert payload["data"]["full_time_home_goals"] == 3


def test_match_by_id_not_found(client):
    resp = client.get("/api/matches/404")
    assert resp.status_code == 404
    payload = resp.get_json()
    assert payload["status"] == "error"
    assert payload["error"] == "MATCH_NOT_FOUND"


def test_match_by_id_store_failure_is_503(failing_client):
    resp = failing_client.get("/api/matches/1")
    assert resp.status_code == 503
    assert resp.get_json()["error"]["code"] == "503"


def test_teams(client):
    data = client.get("/api/teams?league=france").get_json()["data"]
    assert data == {"teams": ["Brest", "Lens"], "count": 2, "league": "france"}


def test_team_record(client):
    resp = client.get("/api/teams/Getafe/record?league=spain")
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert (data["wins"], data["draws"], data["losses"]) == (1, 1, 2)
    assert data["goals_scored"] == 3
    assert data["goals_conceded"] == 6
    assert data["home_matches"] == 2
    assert data["recent_form"][0]["id"] == 4
    assert data["recent_form"][0]["result"] == "L"


def test_statistics_for_fixture(client):
    resp = client.get("/api/statistics?home_team=Getafe&away_team=Girona&league=spain")
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["total_matches"] == 4
    assert data["team_analysis"]["matches_count"] == 2
    assert data["prediction"]["predicted_winner"] == "home"
    assert data["prediction"]["confidence"] == 1.0


def test_statistics_without_teams(client):
    data = client.get("/api/statistics?league=spain").get_json()["data"]
    assert data["total_matches"] == 4
    assert data["team_analysis"] is None
    assert data["prediction"] is None
    assert data["general_stats"]["average_goals"]["average_total_goals"] == 2.25


def test_prediction(client):
    resp = client.get("/api/prediction?home_team=Getafe&away_team=Girona&league=spain&match_date=2024-05-01")
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["home_team"] == "Getafe"
    assert data["match_date"] == "2024-05-01"
    assert data["features"]["h2h"]["total_matches"] == 2
    assert data["meta"]["model_version"] == "statistical_v1"


@pytest.mark.parametrize("endpoint", ["/api/prediction", "/api/enhanced-prediction"])
def test_prediction_requires_both_teams(client, endpoint):
    resp = client.get(endpoint + "?away_team=Girona")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "MISSING_PARAMETERS"


def test_prediction_same_team_rejected(client):
    resp = client.get("/api/prediction?home_team=Getafe&away_team=getafe")
    assert resp.status_code == 400
    assert resp.get_json()["error"]["code"] == "same_team"


def test_enhanced_prediction_form_weight(client):
    resp = client.get(
        "/api/enhanced-prediction?home_team=Getafe&away_team=Girona&league=spain&form_weight=1"
    )
    assert resp.status_code == 200
    data = resp.get_json()
    assert data["weights"]["form"] == 1.0
    assert data["weights"]["h2h"] == 0.0
    assert data["predictions"]["ensemble"]["home"] == pytest.approx(
        data["predictions"]["form"]["home"], abs=1e-3
    )


def test_enhanced_prediction_bad_weight_uses_default(client):
    resp = client.get("/api/enhanced-prediction?home_team=Getafe&away_team=Girona&form_weight=lots")
    assert resp.status_code == 200
    assert resp.get_json()["weights"]["form"] == 0.5


def test_store_failure_is_503(failing_client):
    resp = failing_client.get("/api/prediction?home_team=Getafe&away_team=Girona")
    assert resp.status_code == 503
    data = resp.get_json()
    assert data["message"] == "Match data temporarily unavailable"
    assert data["error"]["source"] == "supabase"


def test_store_failure_on_wrapped_route(failing_client):
    resp = failing_client.get("/api/matches")
    assert resp.status_code == 503
    payload = resp.get_json()
    assert payload["status"] == "error"
    assert payload["error"]["code"] == "unavailable"


def test_unexpected_failure_is_500(failing_client):
    resp = failing_client.get("/api/teams")
    assert resp.status_code == 500
    assert resp.get_json()["status"] == "error"
