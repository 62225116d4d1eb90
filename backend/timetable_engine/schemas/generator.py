from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from timetable_engine.schemas.entities import (
    ClassPayload,
    ClassroomPayload,
    FacultyPayload,
    ScheduledSlotPayload,
    SubjectPayload,
)

PlacementPolicyName = Literal["greedy", "genetic"]
GenerationStatus = Literal["completed", "converged", "budget_exhausted", "cancelled"]


class PenaltyWeights(BaseModel):
    hard_constraint: int = Field(default=1000, ge=1, le=100_000)
    unplaced_unit: int = Field(default=1000, ge=1, le=100_000)
    classroom_change: int = Field(default=50, ge=0, le=10_000)
    subject_imbalance: int = Field(default=10, ge=0, le=10_000)
    consecutive_theory: int = Field(default=10, ge=0, le=10_000)
    lab_day_overload: int = Field(default=50, ge=0, le=10_000)


class GenerationSettings(BaseModel):
    placement_policy: PlacementPolicyName = "greedy"
    population_size: int = Field(default=100, ge=2, le=2000)
    max_generations: int = Field(default=500, ge=1, le=10_000)
    elitism_rate: float = Field(default=0.1, ge=0.0, lt=1.0)
    mutation_rate: float = Field(default=0.2, ge=0.0, le=1.0)
    random_seed: int | None = Field(default=None, ge=0, le=2_000_000_000)
    lab_placement_attempts: int = Field(default=60, ge=1, le=10_000)
    theory_placement_attempts: int = Field(default=200, ge=1, le=10_000)
    max_daily_subject_hours: int = Field(default=2, ge=1, le=12)
    max_consecutive_theory: int = Field(default=2, ge=1, le=12)
    default_theory_hours: int = Field(default=3, ge=1, le=12)
    time_limit_seconds: float | None = Field(default=None, gt=0)
    evaluation_workers: int = Field(default=1, ge=1, le=64)
    special_day_label: str = Field(default="CODECHEF", min_length=1, max_length=36)
    filler_subject_id: str = Field(default="LIBRARY", min_length=1, max_length=36)
    penalty_weights: PenaltyWeights = Field(default_factory=PenaltyWeights)

    @model_validator(mode="after")
    def validate_labels(self) -> "GenerationSettings":
        if self.special_day_label == self.filler_subject_id:
            raise ValueError("special_day_label and filler_subject_id must differ")
        return self


class GenerateTimetableRequest(BaseModel):
    days: list[str] = Field(min_length=1, max_length=7)
    timeSlots: list[str] = Field(min_length=1, max_length=24)
    classes: list[ClassPayload] = Field(default_factory=list)
    subjects: list[SubjectPayload] = Field(default_factory=list)
    faculty: list[FacultyPayload] = Field(default_factory=list)
    classrooms: list[ClassroomPayload] = Field(default_factory=list)
    existingSchedule: list[ScheduledSlotPayload] = Field(default_factory=list)
    labSlotPairs: list[tuple[str, str]] | None = None
    settings: GenerationSettings | None = None

    @field_validator("days", "timeSlots")
    @classmethod
    def require_unique_labels(cls, value: list[str]) -> list[str]:
        cleaned = [item.strip() for item in value]
        if any(not item for item in cleaned):
            raise ValueError("Day and time slot labels cannot be blank")
        if len(set(cleaned)) != len(cleaned):
            raise ValueError("Day and time slot labels must be unique")
        return cleaned

    @model_validator(mode="after")
    def validate_lab_pairs(self) -> "GenerateTimetableRequest":
        if self.labSlotPairs is None:
            return self
        slot_positions = {label: index for index, label in enumerate(self.timeSlots)}
        for first, second in self.labSlotPairs:
            if first not in slot_positions or second not in slot_positions:
                raise ValueError(f"Lab slot pair ({first}, {second}) references an unknown time slot")
            if slot_positions[second] - slot_positions[first] != 1:
                raise ValueError(f"Lab slot pair ({first}, {second}) must be two consecutive time slots")
        return self


class ClassTimetable(BaseModel):
    classId: str
    className: str
    genes: list[ScheduledSlotPayload] = Field(default_factory=list)


class FacultyWorkloadEntry(BaseModel):
    facultyId: str
    facultyName: str
    assignedHours: int = Field(ge=0)
    maxHours: int | None = None
    seniorityBand: str


class GenerateTimetableResponse(BaseModel):
    success: bool
    status: GenerationStatus
    summary: str
    warnings: list[str] = Field(default_factory=list)
    violations: list[str] = Field(default_factory=list)
    codeChefDay: str | None = None
    perClassTimetable: list[ClassTimetable] = Field(default_factory=list)
    facultyWorkload: list[FacultyWorkloadEntry] = Field(default_factory=list)
    fitness: int = Field(ge=0)
    hardConflicts: int = Field(default=0, ge=0)
    softPenalty: int = Field(default=0, ge=0)
    generations: int = Field(default=0, ge=0)
    runtimeMs: int = Field(default=0, ge=0)
    settingsUsed: GenerationSettings
