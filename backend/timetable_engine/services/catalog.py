from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from functools import cached_property
from typing import Iterable

from timetable_engine.core.exceptions import InvariantViolationError, SchedulerError
from timetable_engine.schemas.entities import ClassPayload, ClassroomPayload, FacultyPayload, SubjectPayload
from timetable_engine.schemas.generator import GenerateTimetableRequest, GenerationSettings
from timetable_engine.services.chromosome import Gene
from timetable_engine.services.requirements import (
    Lecture,
    RequirementKey,
    build_lecture_units,
    required_hours_by_key,
)


@dataclass(frozen=True)
class SchedulingCatalog:
    """Static inputs of one generation run, indexed for fast lookups."""

    days: tuple[str, ...]
    time_slots: tuple[str, ...]
    classes: dict[str, ClassPayload]
    subjects: dict[str, SubjectPayload]
    faculty: dict[str, FacultyPayload]
    classrooms: dict[str, ClassroomPayload]
    lab_room_ids: tuple[str, ...]
    theory_room_ids: tuple[str, ...]
    lab_pairs: tuple[tuple[int, int], ...]
    qualified_faculty: dict[str, tuple[str, ...]]
    existing_genes: tuple[Gene, ...]
    units: tuple[Lecture, ...]
    required_hours: Counter[RequirementKey]
    special_day_label: str
    filler_subject_id: str

    @cached_property
    def day_index(self) -> dict[str, int]:
        return {day: index for index, day in enumerate(self.days)}

    @cached_property
    def slot_index(self) -> dict[str, int]:
        return {slot: index for index, slot in enumerate(self.time_slots)}

    def faculty_cap(self, faculty_id: str) -> int | None:
        return self.faculty[faculty_id].maxWeeklyHours

    def subject_label(self, subject_id: str) -> str:
        subject = self.subjects.get(subject_id)
        return subject.name if subject else subject_id

    def class_label(self, class_id: str) -> str:
        class_ = self.classes.get(class_id)
        return class_.name if class_ else class_id


def default_lab_pairs(slot_count: int) -> tuple[tuple[int, int], ...]:
    return tuple((start, start + 1) for start in range(0, slot_count - 1, 2))


def _index_unique(items: Iterable, kind: str) -> dict:
    indexed: dict = {}
    for item in items:
        if item.id in indexed:
            raise SchedulerError(message=f"Duplicate {kind} id '{item.id}' in request")
        indexed[item.id] = item
    return indexed


def _existing_genes(
    request: GenerateTimetableRequest,
    *,
    regenerated_class_ids: set[str],
    faculty: dict[str, FacultyPayload],
    classrooms: dict[str, ClassroomPayload],
) -> tuple[Gene, ...]:
    genes: list[Gene] = []
    for slot in request.existingSchedule:
        if slot.classId in regenerated_class_ids:
            # These classes are being regenerated; their old slots are replaced.
            continue
        if slot.facultyId and slot.facultyId not in faculty:
            raise InvariantViolationError(
                message=f"Existing schedule references unknown faculty '{slot.facultyId}'",
                details={"slot": slot.model_dump()},
            )
        if slot.classroomId and slot.classroomId not in classrooms:
            raise InvariantViolationError(
                message=f"Existing schedule references unknown classroom '{slot.classroomId}'",
                details={"slot": slot.model_dump()},
            )
        genes.append(Gene.from_payload(slot))
    return tuple(genes)


def build_catalog(request: GenerateTimetableRequest, settings: GenerationSettings) -> SchedulingCatalog:
    classes = _index_unique(request.classes, "class")
    subjects = _index_unique(request.subjects, "subject")
    faculty = _index_unique(request.faculty, "faculty")
    classrooms = _index_unique(request.classrooms, "classroom")

    slot_positions = {label: index for index, label in enumerate(request.timeSlots)}
    if request.labSlotPairs is not None:
        lab_pairs = tuple((slot_positions[first], slot_positions[second]) for first, second in request.labSlotPairs)
    else:
        lab_pairs = default_lab_pairs(len(request.timeSlots))

    qualified: dict[str, list[str]] = {subject_id: [] for subject_id in subjects}
    for member in faculty.values():
        for subject_id in member.allottedSubjects:
            qualified.setdefault(subject_id, []).append(member.id)

    units = build_lecture_units(
        classes.values(),
        subjects.values(),
        default_theory_hours=settings.default_theory_hours,
        filler_subject_id=settings.filler_subject_id,
    )

    return SchedulingCatalog(
        days=tuple(request.days),
        time_slots=tuple(request.timeSlots),
        classes=classes,
        subjects=subjects,
        faculty=faculty,
        classrooms=classrooms,
        lab_room_ids=tuple(room.id for room in classrooms.values() if room.type == "lab"),
        theory_room_ids=tuple(room.id for room in classrooms.values() if room.type == "classroom"),
        lab_pairs=lab_pairs,
        qualified_faculty={subject_id: tuple(ids) for subject_id, ids in qualified.items()},
        existing_genes=_existing_genes(
            request,
            regenerated_class_ids=set(classes),
            faculty=faculty,
            classrooms=classrooms,
        ),
        units=tuple(units),
        required_hours=required_hours_by_key(units),
        special_day_label=settings.special_day_label,
        filler_subject_id=settings.filler_subject_id,
    )
