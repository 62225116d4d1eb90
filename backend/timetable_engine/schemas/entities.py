from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

SubjectPriority = Literal["Non Negotiable", "High", "Medium", "Low"]
LabBatch = Literal["A", "B"]


class ClassPayload(BaseModel):
    id: str = Field(min_length=1, max_length=36)
    name: str = Field(default="", max_length=200)
    department: str = Field(min_length=1, max_length=200)
    semester: int = Field(ge=1, le=20)

    @model_validator(mode="after")
    def default_name(self) -> "ClassPayload":
        if not self.name.strip():
            self.name = self.id
        return self


class SubjectPayload(BaseModel):
    id: str = Field(min_length=1, max_length=36)
    name: str = Field(min_length=1, max_length=200)
    code: str | None = Field(default=None, max_length=50)
    type: Literal["theory", "lab"] = "theory"
    priority: SubjectPriority | None = None
    department: str = Field(min_length=1, max_length=200)
    semester: int = Field(ge=1, le=20)
    isSpecial: bool = False

    @field_validator("type", mode="before")
    @classmethod
    def normalize_type(cls, value: str) -> str:
        if isinstance(value, str):
            return value.strip().lower()
        return value


class FacultyPayload(BaseModel):
    id: str = Field(min_length=1, max_length=36)
    name: str = Field(min_length=1, max_length=200)
    department: str | None = Field(default=None, max_length=200)
    allottedSubjects: list[str] = Field(default_factory=list)
    maxWeeklyHours: int | None = Field(default=None, ge=0, le=200)
    experienceYears: int | None = Field(default=None, ge=0, le=80)

    @field_validator("allottedSubjects")
    @classmethod
    def dedupe_subjects(cls, value: list[str]) -> list[str]:
        seen: set[str] = set()
        unique: list[str] = []
        for item in value:
            subject_id = item.strip()
            if not subject_id or subject_id in seen:
                continue
            seen.add(subject_id)
            unique.append(subject_id)
        return unique


class ClassroomPayload(BaseModel):
    id: str = Field(min_length=1, max_length=36)
    name: str = Field(default="", max_length=100)
    type: Literal["classroom", "lab"] = "classroom"


class ScheduledSlotPayload(BaseModel):
    day: str = Field(min_length=1, max_length=20)
    time: str = Field(min_length=1, max_length=50)
    classId: str = Field(min_length=1, max_length=36)
    subjectId: str = Field(min_length=1, max_length=36)
    facultyId: str = Field(default="", max_length=36)
    classroomId: str = Field(default="", max_length=36)
    isLab: bool = False
    batch: LabBatch | None = None
    isSpecialDay: bool = False
    isFiller: bool = False

    @model_validator(mode="after")
    def validate_batch(self) -> "ScheduledSlotPayload":
        if self.batch is not None and not self.isLab:
            raise ValueError("batch is only allowed on lab slots")
        return self
