import pytest
from fastapi.testclient import TestClient

from timetable_engine.core.config import get_settings
from timetable_engine.main import app
from timetable_engine.schemas.generator import GenerateTimetableRequest

WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]


@pytest.fixture()
def client():
    with TestClient(app) as test_client:
        yield test_client
    get_settings.cache_clear()


def build_payload(
    *,
    days=None,
    time_slots=None,
    classes=None,
    subjects=None,
    faculty=None,
    classrooms=None,
    existing=None,
    settings=None,
) -> dict:
    payload = {
        "days": days or list(WEEKDAYS),
        "timeSlots": time_slots or ["09:00", "10:00", "11:00", "12:00"],
        "classes": classes if classes is not None else [
            {"id": "cse3a", "name": "CSE 3A", "department": "CSE", "semester": 3},
        ],
        "subjects": subjects if subjects is not None else [
            {"id": "ds", "name": "Data Structures", "type": "theory", "priority": "Medium", "department": "CSE", "semester": 3},
            {"id": "dm", "name": "Discrete Math", "type": "theory", "priority": "Medium", "department": "CSE", "semester": 3},
        ],
        "faculty": faculty if faculty is not None else [
            {"id": "f1", "name": "Asha Rao", "allottedSubjects": ["ds"], "experienceYears": 12},
            {"id": "f2", "name": "Vikram Iyer", "allottedSubjects": ["dm"], "experienceYears": 3},
        ],
        "classrooms": classrooms if classrooms is not None else [
            {"id": "r101", "name": "Room 101", "type": "classroom"},
            {"id": "r102", "name": "Room 102", "type": "classroom"},
        ],
        "existingSchedule": existing or [],
    }
    if settings is not None:
        payload["settings"] = settings
    return payload


@pytest.fixture()
def make_payload():
    return build_payload


@pytest.fixture()
def make_request():
    """Factory for validated requests; keyword arguments override the two-subject example."""

    def _make(**overrides) -> GenerateTimetableRequest:
        return GenerateTimetableRequest.model_validate(build_payload(**overrides))

    return _make


@pytest.fixture()
def single_lab_request(make_request):
    def _make(*, days=None, time_slots=None, faculty_count=1, settings=None) -> GenerateTimetableRequest:
        faculty = [
            {"id": f"lab{index}", "name": f"Lab Faculty {index}", "allottedSubjects": ["os-lab"]}
            for index in range(1, faculty_count + 1)
        ]
        return make_request(
            days=days or ["Monday", "Tuesday", "Wednesday"],
            time_slots=time_slots,
            subjects=[
                {"id": "os-lab", "name": "OS Lab", "type": "lab", "department": "CSE", "semester": 3},
            ],
            faculty=faculty,
            classrooms=[
                {"id": "lab1", "name": "Lab 1", "type": "lab"},
                {"id": "lab2", "name": "Lab 2", "type": "lab"},
            ],
            settings=settings,
        )

    return _make


@pytest.fixture()
def two_lab_request(make_request):
    def _make(*, days=None, settings=None) -> GenerateTimetableRequest:
        return make_request(
            days=days or ["Monday", "Tuesday", "Wednesday"],
            subjects=[
                {"id": "os-lab", "name": "OS Lab", "type": "lab", "department": "CSE", "semester": 3},
                {"id": "cn-lab", "name": "Networks Lab", "type": "lab", "department": "CSE", "semester": 3},
            ],
            faculty=[
                {"id": "lab1", "name": "Lab Faculty 1", "allottedSubjects": ["os-lab", "cn-lab"]},
                {"id": "lab2", "name": "Lab Faculty 2", "allottedSubjects": ["os-lab", "cn-lab"]},
            ],
            classrooms=[
                {"id": "lab1", "name": "Lab 1", "type": "lab"},
                {"id": "lab2", "name": "Lab 2", "type": "lab"},
            ],
            settings=settings,
        )

    return _make
