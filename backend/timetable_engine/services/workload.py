from __future__ import annotations

from collections import Counter
from typing import Iterable

from timetable_engine.schemas.generator import FacultyWorkloadEntry
from timetable_engine.services.catalog import SchedulingCatalog
from timetable_engine.services.chromosome import Gene


def seniority_band(experience_years: int | None) -> str:
    if experience_years is None:
        return "Unspecified"
    if experience_years >= 15:
        return "Senior"
    if experience_years >= 5:
        return "Mid-Level"
    return "Junior"


def assigned_hours(genes: Iterable[Gene]) -> Counter[str]:
    hours: Counter[str] = Counter()
    for gene in genes:
        if gene.faculty_id and not gene.is_placeholder:
            hours[gene.faculty_id] += 1
    return hours


def faculty_workload(catalog: SchedulingCatalog, genes: Iterable[Gene]) -> list[FacultyWorkloadEntry]:
    """Weekly load per faculty member in roster order, existing-schedule hours included."""
    hours = assigned_hours(catalog.existing_genes)
    hours.update(assigned_hours(genes))
    return [
        FacultyWorkloadEntry(
            facultyId=member.id,
            facultyName=member.name,
            assignedHours=hours.get(member.id, 0),
            maxHours=member.maxWeeklyHours,
            seniorityBand=seniority_band(member.experienceYears),
        )
        for member in catalog.faculty.values()
    ]
