from timetable_engine.schemas.entities import ClassPayload, SubjectPayload
from timetable_engine.services.requirements import (
    build_class_lectures,
    build_lecture_units,
    class_hour_floor,
    priority_weight,
    required_hours_by_key,
)


def _class(class_id="cse3a", semester=3):
    return ClassPayload(id=class_id, department="CSE", semester=semester)


def _subject(subject_id, **extra):
    fields = {"id": subject_id, "name": subject_id.upper(), "department": "CSE", "semester": 3}
    fields.update(extra)
    return SubjectPayload(**fields)


def test_priority_maps_to_weekly_hours():
    assert priority_weight("Non Negotiable") == 4
    assert priority_weight("High") == 3
    assert priority_weight("Medium") == 2
    assert priority_weight("Low") == 1
    assert priority_weight(None) == 3
    assert priority_weight(None, default=5) == 5


def test_theory_subject_produces_one_unit_per_hour():
    lectures = build_class_lectures(_class(), [_subject("ds", priority="High")])
    assert len(lectures) == 3
    assert all(not item.is_lab and item.batch is None for item in lectures)


def test_lab_subject_produces_two_hours_per_batch():
    lectures = build_class_lectures(_class(), [_subject("os-lab", type="Lab")])
    assert len(lectures) == 4
    assert sorted(item.batch for item in lectures) == ["A", "A", "B", "B"]
    assert all(item.is_lab for item in lectures)


def test_special_library_and_foreign_subjects_are_skipped():
    subjects = [
        _subject("codechef", isSpecial=True),
        _subject("LIBRARY", name="Library"),
        _subject("reading", name="library"),
        _subject("other-sem", semester=5),
        _subject("ds", priority="Low"),
    ]
    lectures = build_class_lectures(_class(), subjects)
    assert {item.subject_id for item in lectures} == {"ds"}


def test_units_put_labs_first_then_higher_priority():
    units = build_lecture_units(
        [_class("a"), _class("b")],
        [_subject("low", priority="Low"), _subject("lab", type="lab"), _subject("top", priority="Non Negotiable")],
    )
    lab_positions = [index for index, item in enumerate(units) if item.is_lab]
    assert lab_positions == list(range(len(lab_positions)))
    theory_weights = [item.priority_weight for item in units if not item.is_lab]
    assert theory_weights == sorted(theory_weights, reverse=True)


def test_required_hours_and_class_floor():
    units = build_lecture_units([_class()], [_subject("ds", priority="Medium"), _subject("lab", type="lab")])
    required = required_hours_by_key(units)
    assert required[("cse3a", "ds", None)] == 2
    assert required[("cse3a", "lab", "A")] == 2
    assert required[("cse3a", "lab", "B")] == 2
    # Batches A and B can run side by side, so the lab only needs two grid slots.
    assert class_hour_floor(units)["cse3a"] == 4
