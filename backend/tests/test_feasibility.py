import pytest

from timetable_engine.core.exceptions import InfeasibleScheduleError
from timetable_engine.schemas.generator import GenerationSettings
from timetable_engine.services.catalog import build_catalog
from timetable_engine.services.feasibility import (
    check_feasibility,
    committed_faculty_hours,
    ensure_feasible,
)


def _catalog(request):
    return build_catalog(request, GenerationSettings())


def test_example_input_is_feasible(make_request):
    report = check_feasibility(_catalog(make_request()))
    assert report.ok
    assert report.reasons == ()


def test_subject_without_faculty_is_named(make_request):
    request = make_request(faculty=[{"id": "f1", "name": "Asha Rao", "allottedSubjects": ["ds"]}])
    report = check_feasibility(_catalog(request))
    assert not report.ok
    assert any("Discrete Math" in reason and "do not have any faculty" in reason for reason in report.reasons)


def test_sole_qualified_faculty_over_cap_is_rejected(make_request):
    request = make_request(
        faculty=[
            {"id": "f1", "name": "Asha Rao", "allottedSubjects": ["ds"], "maxWeeklyHours": 1},
            {"id": "f2", "name": "Vikram Iyer", "allottedSubjects": ["dm"]},
        ]
    )
    report = check_feasibility(_catalog(request))
    assert any("Faculty Asha Rao is over-allocated. Required: 2 hours, Max: 1 hours" in reason for reason in report.reasons)


def test_shared_subject_hours_are_not_committed_to_one_teacher(make_request):
    request = make_request(
        faculty=[
            {"id": "f1", "name": "Asha Rao", "allottedSubjects": ["ds", "dm"], "maxWeeklyHours": 3},
            {"id": "f2", "name": "Vikram Iyer", "allottedSubjects": ["ds", "dm"], "maxWeeklyHours": 3},
        ]
    )
    catalog = _catalog(request)
    assert committed_faculty_hours(catalog) == {}
    assert check_feasibility(catalog).ok


def test_pool_capacity_shortfall(make_request):
    request = make_request(
        faculty=[
            {"id": "f1", "name": "Asha Rao", "allottedSubjects": ["ds", "dm"], "maxWeeklyHours": 1},
            {"id": "f2", "name": "Vikram Iyer", "allottedSubjects": ["ds", "dm"], "maxWeeklyHours": 2},
        ]
    )
    report = check_feasibility(_catalog(request))
    assert any("Required weekly load is 4h but total faculty capacity is 3h" in reason for reason in report.reasons)


def test_grid_capacity_reserves_one_day(make_request):
    request = make_request(days=["Monday", "Tuesday"], time_slots=["09:00", "10:00", "11:00"])
    report = check_feasibility(_catalog(request))
    assert any("Required slots (4) exceed available slots (3)" in reason for reason in report.reasons)


def test_missing_room_types_are_reported(make_request):
    request = make_request(
        subjects=[
            {"id": "ds", "name": "Data Structures", "priority": "Low", "department": "CSE", "semester": 3},
            {"id": "os-lab", "name": "OS Lab", "type": "lab", "department": "CSE", "semester": 3},
        ],
        faculty=[{"id": "f1", "name": "Asha Rao", "allottedSubjects": ["ds", "os-lab"]}],
        classrooms=[{"id": "r101", "name": "Room 101", "type": "classroom"}],
    )
    report = check_feasibility(_catalog(request))
    assert "Cannot schedule labs. No lab classrooms are available." in report.reasons


def test_ensure_feasible_raises_with_every_reason(make_request):
    request = make_request(faculty=[], classrooms=[])
    with pytest.raises(InfeasibleScheduleError) as exc_info:
        ensure_feasible(_catalog(request))
    error = exc_info.value
    assert error.status_code == 400
    assert len(error.reasons) == 2
    assert error.details == {"reasons": error.reasons}
