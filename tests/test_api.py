import pytest
from fastapi.testclient import TestClient

from db.state import AppState
from guidance.errors import GuidanceErrorKind, GuidanceFailure, GuidanceSuccess
from server import main as server_main


class FakeService:
    """Guidance service double returning a canned outcome."""

    def __init__(self, outcome):
        self.outcome = outcome
        self.intakes = []

    async def arequest_guidance(self, intake):
        self.intakes.append(intake)
        return self.outcome


@pytest.fixture
def state(store_path):
    return AppState.load()


def make_client(state, outcome):
    service = FakeService(outcome)
    server_main.app.dependency_overrides[server_main.get_guidance_service] = lambda: service
    server_main.app.dependency_overrides[server_main.get_app_state] = lambda: state
    return TestClient(server_main.app), service


@pytest.fixture(autouse=True)
def _clear_overrides():
    yield
    server_main.app.dependency_overrides.clear()


KNEE = {
    "description": "sharp pain in left knee for 2 days",
    "age": 30,
    "gender": "Male",
    "duration": "2 days",
    "severity": 6,
}


def test_health(state):
    client, _ = make_client(state, None)
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"ok": True}


def test_prescreen(state):
    client, _ = make_client(state, None)
    r = client.post("/api/prescreen", json={"text": "Numbness in my left arm"})
    assert r.json() == {"emergency": True, "keywords": ["numbness"]}
    r = client.post("/api/prescreen", json={"text": "I have a headache"})
    assert r.json()["emergency"] is False


def test_guidance_success_appends_history(state, guidance_result):
    client, service = make_client(state, GuidanceSuccess(result=guidance_result))

    r = client.post("/api/guidance", json=KNEE)

    assert r.status_code == 200
    body = r.json()
    assert body["result"]["medicines"][0]["name"] == "Ibuprofen"
    assert body["showEmergencyBanner"] is False
    assert body["record"]["intake"]["description"] == KNEE["description"]
    assert service.intakes[0].severity == 6
    assert [rec.id for rec in state.history] == [body["record"]["id"]]


def test_guidance_banner_uses_keyword_screen(state, guidance_result):
    client, _ = make_client(state, GuidanceSuccess(result=guidance_result))
    r = client.post("/api/guidance", json={**KNEE, "description": "crushing chest pain"})
    assert r.json()["showEmergencyBanner"] is True


@pytest.mark.parametrize(
    "kind, status_code",
    [
        (GuidanceErrorKind.missing_credential, 503),
        (GuidanceErrorKind.unauthorized, 502),
        (GuidanceErrorKind.service_unavailable, 503),
        (GuidanceErrorKind.region_restricted, 451),
        (GuidanceErrorKind.malformed_response, 502),
        (GuidanceErrorKind.unknown_failure, 502),
    ],
)
def test_guidance_failures_do_not_touch_history(state, kind, status_code):
    client, _ = make_client(state, GuidanceFailure.of(kind))

    r = client.post("/api/guidance", json=KNEE)

    assert r.status_code == status_code
    body = r.json()
    assert body["kind"] == kind.value
    assert body["message"]
    assert body["retryable"] is (kind is GuidanceErrorKind.service_unavailable)
    assert ("retry-after" in r.headers) is body["retryable"]
    assert state.history == []


def test_guidance_rejects_blank_description(state, guidance_result):
    client, service = make_client(state, GuidanceSuccess(result=guidance_result))
    r = client.post("/api/guidance", json={**KNEE, "description": "   "})
    assert r.status_code == 422
    assert service.intakes == []


def test_history_list_and_clear(state, guidance_result):
    client, _ = make_client(state, GuidanceSuccess(result=guidance_result))
    for _ in range(12):
        client.post("/api/guidance", json=KNEE)

    r = client.get("/api/history")
    assert r.status_code == 200
    assert len(r.json()) == 10

    r = client.delete("/api/history")
    assert r.status_code == 204
    assert client.get("/api/history").json() == []


def test_history_bad_since_returns_400(state):
    client, _ = make_client(state, None)
    r = client.get("/api/history", params={"since": "xyzzy plugh"})
    assert r.status_code == 400


def test_history_report(state, guidance_result):
    client, _ = make_client(state, GuidanceSuccess(result=guidance_result))
    assert client.get("/api/history/report.pdf").status_code == 404

    client.post("/api/guidance", json=KNEE)
    r = client.get("/api/history/report.pdf")
    assert r.status_code == 200
    assert r.headers["content-type"] == "application/pdf"
    assert r.content.startswith(b"%PDF")


def test_settings_round_trip(state):
    client, _ = make_client(state, None)
    assert client.get("/api/settings").json() == {"theme": "light", "consented": False}

    r = client.put("/api/settings", json={"theme": "dark"})
    assert r.json() == {"theme": "dark", "consented": False}
    r = client.put("/api/settings", json={"consented": True})
    assert r.json() == {"theme": "dark", "consented": True}

    r = client.put("/api/settings", json={"theme": "sepia"})
    assert r.status_code == 422


def test_first_aid(state):
    client, _ = make_client(state, None)
    body = client.get("/api/first-aid").json()
    assert body["disclaimer"]
    assert any(topic["title"] == "Burns" for topic in body["topics"])
