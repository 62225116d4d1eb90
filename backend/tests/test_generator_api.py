from timetable_engine.api.routes.generator import _runtime_tuned_settings
from timetable_engine.core.config import get_settings
from timetable_engine.schemas.generator import GenerationSettings


def test_generate_endpoint_returns_timetable(client, make_payload):
    payload = make_payload(settings={"population_size": 8, "max_generations": 10, "random_seed": 7})
    response = client.post("/api/timetable/generate", json=payload)
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["fitness"] == 0
    assert body["perClassTimetable"][0]["classId"] == "cse3a"
    assert {row["facultyId"] for row in body["facultyWorkload"]} == {"f1", "f2"}
    assert body["settingsUsed"]["time_limit_seconds"] == get_settings().request_time_limit_seconds


def test_generate_endpoint_reports_infeasible_input(client, make_payload):
    payload = make_payload(faculty=[{"id": "f1", "name": "Asha Rao", "allottedSubjects": ["ds"]}])
    response = client.post("/api/timetable/generate", json=payload)
    assert response.status_code == 400
    body = response.json()
    assert body["message"].startswith("Timetable input is infeasible")
    assert any("Discrete Math" in reason for reason in body["details"]["reasons"])


def test_generate_endpoint_rejects_empty_classes(client, make_payload):
    response = client.post("/api/timetable/generate", json=make_payload(classes=[]))
    assert response.status_code == 400
    assert "class" in response.json()["message"]


def test_generate_endpoint_validates_request_shape(client, make_payload):
    payload = make_payload(days=["Monday", "Monday"])
    response = client.post("/api/timetable/generate", json=payload)
    assert response.status_code == 422


def test_runtime_tuning_caps_time_and_workers(monkeypatch):
    monkeypatch.setenv("REQUEST_TIME_LIMIT_SECONDS", "5")
    monkeypatch.setenv("MAX_EVALUATION_WORKERS", "2")
    monkeypatch.setenv("DEFAULT_PLACEMENT_POLICY", "greedy")
    get_settings.cache_clear()
    try:
        defaults = _runtime_tuned_settings(None)
        assert defaults.placement_policy == "greedy"
        assert defaults.time_limit_seconds == 5

        tuned = _runtime_tuned_settings(GenerationSettings(time_limit_seconds=60, evaluation_workers=8))
        assert tuned.time_limit_seconds == 5
        assert tuned.evaluation_workers == 2

        quick = _runtime_tuned_settings(GenerationSettings(time_limit_seconds=1))
        assert quick.time_limit_seconds == 1
    finally:
        get_settings.cache_clear()
