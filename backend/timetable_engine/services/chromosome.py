from __future__ import annotations

from dataclasses import dataclass, field

from timetable_engine.schemas.entities import ScheduledSlotPayload

THEORY_LABEL = "*"


@dataclass(frozen=True)
class Gene:
    """One (day, time, class, subject, faculty, classroom) assignment."""

    day: str
    time: str
    class_id: str
    subject_id: str
    faculty_id: str = ""
    classroom_id: str = ""
    is_lab: bool = False
    batch: str | None = None
    is_special_day: bool = False
    is_filler: bool = False

    @property
    def is_placeholder(self) -> bool:
        return self.is_special_day or self.is_filler

    @property
    def slot_label(self) -> str:
        """Lab batches A and B of a class may share a slot; anything else takes the whole class."""
        return self.batch if self.is_lab and self.batch else THEORY_LABEL

    @property
    def is_ordinary(self) -> bool:
        return not (self.is_special_day or self.is_filler or self.is_lab)

    @classmethod
    def from_payload(cls, payload: ScheduledSlotPayload) -> "Gene":
        return cls(
            day=payload.day,
            time=payload.time,
            class_id=payload.classId,
            subject_id=payload.subjectId,
            faculty_id=payload.facultyId,
            classroom_id=payload.classroomId,
            is_lab=payload.isLab,
            batch=payload.batch,
            is_special_day=payload.isSpecialDay,
            is_filler=payload.isFiller,
        )

    def to_payload(self) -> ScheduledSlotPayload:
        return ScheduledSlotPayload(
            day=self.day,
            time=self.time,
            classId=self.class_id,
            subjectId=self.subject_id,
            facultyId=self.faculty_id,
            classroomId=self.classroom_id,
            isLab=self.is_lab,
            batch=self.batch,
            isSpecialDay=self.is_special_day,
            isFiller=self.is_filler,
        )


Chromosome = list[Gene]


@dataclass
class Individual:
    genes: Chromosome
    special_day: str | None = None
    warnings: list[str] = field(default_factory=list)
    unplaced_units: int = 0


def special_day_of(genes: Chromosome) -> str | None:
    for gene in genes:
        if gene.is_special_day:
            return gene.day
    return None
