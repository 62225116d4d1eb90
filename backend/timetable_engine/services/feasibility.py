from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
import logging

from timetable_engine.core.exceptions import InfeasibleScheduleError
from timetable_engine.services.catalog import SchedulingCatalog
from timetable_engine.services.requirements import class_hour_floor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeasibilityReport:
    reasons: tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return not self.reasons


def _subjects_without_faculty(catalog: SchedulingCatalog) -> list[str]:
    missing: list[str] = []
    seen: set[str] = set()
    for unit in catalog.units:
        if unit.subject_id in seen:
            continue
        seen.add(unit.subject_id)
        if not catalog.qualified_faculty.get(unit.subject_id):
            missing.append(catalog.subject_label(unit.subject_id))
    return missing


def committed_faculty_hours(catalog: SchedulingCatalog) -> Counter[str]:
    """Hours a faculty member must teach no matter how placement goes.

    Hours of a subject are only committed to a teacher when nobody else is
    qualified for it; hours already fixed in the existing schedule always count.
    """
    committed: Counter[str] = Counter()
    for gene in catalog.existing_genes:
        if gene.faculty_id and not gene.is_placeholder:
            committed[gene.faculty_id] += 1
    for unit in catalog.units:
        qualified = catalog.qualified_faculty.get(unit.subject_id, ())
        if len(qualified) == 1:
            committed[qualified[0]] += 1
    return committed


def _overallocated_faculty(catalog: SchedulingCatalog) -> list[str]:
    reasons: list[str] = []
    for faculty_id, required in committed_faculty_hours(catalog).items():
        cap = catalog.faculty_cap(faculty_id)
        if cap is not None and required > cap:
            member = catalog.faculty[faculty_id]
            reasons.append(
                f"Faculty {member.name} is over-allocated. Required: {required} hours, "
                f"Max: {cap} hours. Please increase their max weekly hours."
            )
    return reasons


def _pool_capacity_shortfall(catalog: SchedulingCatalog) -> str | None:
    caps = [member.maxWeeklyHours for member in catalog.faculty.values()]
    if not caps or any(cap is None for cap in caps):
        return None
    required = len(catalog.units)
    capacity = sum(caps)
    if required > capacity:
        return (
            "Configured faculty maximum workload is insufficient. "
            f"Required weekly load is {required}h but total faculty capacity is {capacity}h."
        )
    return None


def _grid_capacity_shortfall(catalog: SchedulingCatalog) -> list[str]:
    available = max(0, len(catalog.days) - 1) * len(catalog.time_slots)
    reasons: list[str] = []
    for class_id, required in class_hour_floor(catalog.units).items():
        if required > available:
            reasons.append(
                f"Cannot generate schedule for class {catalog.class_label(class_id)}. "
                f"Required slots ({required}) exceed available slots ({available}). "
                "Please reduce subject hours."
            )
    return reasons


def _room_type_shortfall(catalog: SchedulingCatalog) -> list[str]:
    reasons: list[str] = []
    has_labs = any(unit.is_lab for unit in catalog.units)
    has_theory = any(not unit.is_lab for unit in catalog.units)
    if has_labs and not catalog.lab_room_ids:
        reasons.append("Cannot schedule labs. No lab classrooms are available.")
    if has_labs and not catalog.lab_pairs:
        reasons.append("Cannot schedule labs. The time grid has no pair of consecutive lecture slots.")
    if has_theory and not catalog.theory_room_ids:
        reasons.append("Cannot schedule theory lectures. No classrooms are available.")
    return reasons


def check_feasibility(catalog: SchedulingCatalog) -> FeasibilityReport:
    reasons: list[str] = []

    missing = _subjects_without_faculty(catalog)
    if missing:
        reasons.append(
            "The following subjects do not have any faculty assigned to them: "
            f"{', '.join(missing)}. Please assign faculty to these subjects."
        )

    reasons.extend(_overallocated_faculty(catalog))
    pool_shortfall = _pool_capacity_shortfall(catalog)
    if pool_shortfall:
        reasons.append(pool_shortfall)
    reasons.extend(_grid_capacity_shortfall(catalog))
    reasons.extend(_room_type_shortfall(catalog))
    return FeasibilityReport(reasons=tuple(reasons))


def ensure_feasible(catalog: SchedulingCatalog) -> FeasibilityReport:
    report = check_feasibility(catalog)
    if not report.ok:
        logger.warning("Feasibility check rejected input: %s", " | ".join(report.reasons))
        raise InfeasibleScheduleError(list(report.reasons))
    return report
