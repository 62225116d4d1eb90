from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Iterable

from timetable_engine.schemas.entities import ClassPayload, SubjectPayload

PRIORITY_WEIGHTS = {
    "Non Negotiable": 4,
    "High": 3,
    "Medium": 2,
    "Low": 1,
}

LAB_BATCHES = ("A", "B")
LAB_BLOCK_HOURS = 2

RequirementKey = tuple[str, str, str | None]


@dataclass(frozen=True)
class Lecture:
    """One required hour for a class: a theory hour, or one hour of a batch's lab block."""

    class_id: str
    subject_id: str
    is_lab: bool
    priority_weight: int
    batch: str | None = None

    @property
    def key(self) -> RequirementKey:
        return (self.class_id, self.subject_id, self.batch)


def priority_weight(priority: str | None, default: int = 3) -> int:
    return PRIORITY_WEIGHTS.get(priority or "", default)


def lecture_sort_key(unit: Lecture) -> tuple[bool, int]:
    # Labs need two synchronized rooms and faculty, so they go first.
    return (not unit.is_lab, -unit.priority_weight)


def is_filler_subject(subject: SubjectPayload, filler_subject_id: str) -> bool:
    return subject.id == filler_subject_id or subject.name.strip().lower() == "library"


def subjects_for_class(class_: ClassPayload, subjects: Iterable[SubjectPayload]) -> list[SubjectPayload]:
    return [
        subject
        for subject in subjects
        if subject.department == class_.department and subject.semester == class_.semester
    ]


def build_class_lectures(
    class_: ClassPayload,
    subjects: Iterable[SubjectPayload],
    *,
    default_theory_hours: int = 3,
    filler_subject_id: str = "LIBRARY",
) -> list[Lecture]:
    lectures: list[Lecture] = []
    for subject in subjects_for_class(class_, subjects):
        if subject.isSpecial or is_filler_subject(subject, filler_subject_id):
            continue
        weight = priority_weight(subject.priority, default_theory_hours)
        if subject.type == "lab":
            for batch in LAB_BATCHES:
                for _ in range(LAB_BLOCK_HOURS):
                    lectures.append(
                        Lecture(
                            class_id=class_.id,
                            subject_id=subject.id,
                            is_lab=True,
                            priority_weight=weight,
                            batch=batch,
                        )
                    )
            continue
        for _ in range(weight):
            lectures.append(
                Lecture(class_id=class_.id, subject_id=subject.id, is_lab=False, priority_weight=weight)
            )
    lectures.sort(key=lecture_sort_key)
    return lectures


def build_lecture_units(
    classes: Iterable[ClassPayload],
    subjects: Iterable[SubjectPayload],
    *,
    default_theory_hours: int = 3,
    filler_subject_id: str = "LIBRARY",
) -> list[Lecture]:
    subject_list = list(subjects)
    units: list[Lecture] = []
    for class_ in classes:
        units.extend(
            build_class_lectures(
                class_,
                subject_list,
                default_theory_hours=default_theory_hours,
                filler_subject_id=filler_subject_id,
            )
        )
    units.sort(key=lecture_sort_key)
    return units


def required_hours_by_key(units: Iterable[Lecture]) -> Counter[RequirementKey]:
    return Counter(unit.key for unit in units)


def class_hour_floor(units: Iterable[Lecture]) -> Counter[str]:
    """Minimum number of grid slots each class needs; batches A and B of a lab may run side by side."""
    floor: Counter[str] = Counter()
    lab_hours: Counter[tuple[str, str, str | None]] = Counter()
    for unit in units:
        if unit.is_lab:
            lab_hours[unit.key] += 1
        else:
            floor[unit.class_id] += 1
    per_subject: dict[tuple[str, str], int] = {}
    for (class_id, subject_id, _batch), hours in lab_hours.items():
        per_subject[(class_id, subject_id)] = max(per_subject.get((class_id, subject_id), 0), hours)
    for (class_id, _subject_id), hours in per_subject.items():
        floor[class_id] += hours
    return floor
