from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Iterable

from timetable_engine.schemas.generator import PenaltyWeights
from timetable_engine.services.catalog import SchedulingCatalog
from timetable_engine.services.chromosome import THEORY_LABEL, Gene


@dataclass
class EvaluationResult:
    fitness: int
    hard_conflicts: int
    soft_penalty: int
    unplaced_hours: int = 0
    soft_issues: int = 0
    violations: list[str] = field(default_factory=list)
    shortfalls: list[str] = field(default_factory=list)


class FitnessEvaluator:
    """Scores a chromosome; lower is better and zero means every rule holds.

    Hard conflicts: a faculty member, classroom or class used twice in one
    (day, time), a lecture on the reserved day, a lab batch that is not one
    lab-pair block, more hours of a subject than required, and hours beyond a
    faculty member's weekly cap. Missing hours are charged separately with the
    ``unplaced_unit`` weight. Soft penalties: classroom changes between
    adjacent theory lectures, subject hours beyond the daily limit, theory runs
    longer than the consecutive limit, and a batch with two labs on one day.

    Existing-schedule genes pre-occupy their slots. Conflicts among existing
    genes themselves are not charged since the run cannot fix them.
    """

    def __init__(
        self,
        catalog: SchedulingCatalog,
        weights: PenaltyWeights | None = None,
        *,
        max_daily_subject_hours: int = 2,
        max_consecutive_theory: int = 2,
    ) -> None:
        self.catalog = catalog
        self.weights = weights or PenaltyWeights()
        self.max_daily_subject_hours = max_daily_subject_hours
        self.max_consecutive_theory = max_consecutive_theory
        self._existing_by_slot: dict[tuple[str, str], list[Gene]] = defaultdict(list)
        self._existing_faculty_hours: Counter[str] = Counter()
        for gene in catalog.existing_genes:
            if gene.is_placeholder:
                continue
            self._existing_by_slot[(gene.day, gene.time)].append(gene)
            if gene.faculty_id:
                self._existing_faculty_hours[gene.faculty_id] += 1

    def score(self, genes: Iterable[Gene]) -> int:
        return self._assess(genes, collect=False).fitness

    def evaluate(self, genes: Iterable[Gene]) -> EvaluationResult:
        return self._assess(genes, collect=True)

    def violations(self, genes: Iterable[Gene]) -> list[str]:
        return self._assess(genes, collect=True).violations

    def _faculty_name(self, faculty_id: str) -> str:
        member = self.catalog.faculty.get(faculty_id)
        return member.name if member else faculty_id

    def _room_name(self, room_id: str) -> str:
        room = self.catalog.classrooms.get(room_id)
        return room.name if room else room_id

    def _is_lab_block(self, block: list[Gene]) -> bool:
        """A batch's lab hours must be one lab pair on one day, with one teacher in one room."""
        if len({(gene.day, gene.faculty_id, gene.classroom_id) for gene in block}) != 1:
            return False
        positions = tuple(sorted(self.catalog.slot_index[gene.time] for gene in block))
        return positions in self.catalog.lab_pairs

    def _consecutive_runs(self, ordered: list[Gene]) -> list[int]:
        positions = sorted({self.catalog.slot_index[gene.time] for gene in ordered})
        runs: list[int] = []
        previous = -2
        for position in positions:
            if position - previous == 1:
                runs[-1] += 1
            else:
                runs.append(1)
            previous = position
        return runs

    def _assess(self, genes: Iterable[Gene], *, collect: bool) -> EvaluationResult:
        violations: list[str] = []
        shortfalls: list[str] = []
        hard = 0
        soft = 0
        soft_issues = 0
        unplaced = 0

        by_slot: dict[tuple[str, str], list[Gene]] = defaultdict(list)
        placed: Counter = Counter()
        faculty_hours = Counter(self._existing_faculty_hours)
        theory_by_class_day: dict[tuple[str, str], list[Gene]] = defaultdict(list)
        lab_blocks: dict[tuple[str, str, str | None], list[Gene]] = defaultdict(list)
        genes = list(genes)
        reserved_days = {gene.day for gene in genes if gene.is_special_day}
        for gene in genes:
            if gene.is_placeholder:
                continue
            if gene.day in reserved_days:
                hard += 1
                if collect:
                    violations.append(
                        f"{gene.day} {gene.time}: class {self.catalog.class_label(gene.class_id)} has a lecture "
                        "on the reserved day."
                    )
            by_slot[(gene.day, gene.time)].append(gene)
            placed[(gene.class_id, gene.subject_id, gene.batch)] += 1
            if gene.faculty_id:
                faculty_hours[gene.faculty_id] += 1
            if gene.is_lab:
                lab_blocks[(gene.class_id, gene.subject_id, gene.batch)].append(gene)
            else:
                theory_by_class_day[(gene.class_id, gene.day)].append(gene)

        for (day, time), slot_genes in by_slot.items():
            faculty_seen: set[str] = set()
            rooms_seen: set[str] = set()
            class_labels: dict[str, set[str]] = {}
            for existing in self._existing_by_slot.get((day, time), ()):
                if existing.faculty_id:
                    faculty_seen.add(existing.faculty_id)
                if existing.classroom_id:
                    rooms_seen.add(existing.classroom_id)
                class_labels.setdefault(existing.class_id, set()).add(existing.slot_label)

            for gene in slot_genes:
                if gene.faculty_id:
                    if gene.faculty_id in faculty_seen:
                        hard += 1
                        if collect:
                            violations.append(
                                f"{day} {time}: faculty {self._faculty_name(gene.faculty_id)} is double-booked."
                            )
                    faculty_seen.add(gene.faculty_id)
                if gene.classroom_id:
                    if gene.classroom_id in rooms_seen:
                        hard += 1
                        if collect:
                            violations.append(
                                f"{day} {time}: classroom {self._room_name(gene.classroom_id)} is double-booked."
                            )
                    rooms_seen.add(gene.classroom_id)

                label = gene.slot_label
                labels = class_labels.setdefault(gene.class_id, set())
                if labels and (label == THEORY_LABEL or THEORY_LABEL in labels or label in labels):
                    hard += 1
                    if collect:
                        violations.append(
                            f"{day} {time}: class {self.catalog.class_label(gene.class_id)} has overlapping lectures."
                        )
                labels.add(label)

        for key, required in self.catalog.required_hours.items():
            missing = required - placed.get(key, 0)
            if missing <= 0:
                continue
            unplaced += missing
            if collect:
                class_id, subject_id, batch = key
                batch_note = f" (batch {batch})" if batch else ""
                shortfalls.append(
                    f"Could not place {missing} hour(s) of {self.catalog.subject_label(subject_id)}{batch_note} "
                    f"for class {self.catalog.class_label(class_id)}."
                )

        for key, count in placed.items():
            surplus = count - self.catalog.required_hours.get(key, 0)
            if surplus <= 0:
                continue
            hard += surplus
            if collect:
                class_id, subject_id, batch = key
                batch_note = f" (batch {batch})" if batch else ""
                violations.append(
                    f"Class {self.catalog.class_label(class_id)} has {surplus} extra hour(s) of "
                    f"{self.catalog.subject_label(subject_id)}{batch_note}."
                )

        for faculty_id, hours in faculty_hours.items():
            member = self.catalog.faculty.get(faculty_id)
            cap = member.maxWeeklyHours if member else None
            if cap is not None and hours > cap:
                hard += hours - cap
                if collect:
                    violations.append(
                        f"Faculty {member.name} is assigned {hours} hours, above the maximum of {cap}."
                    )

        labs_per_batch_day: dict[tuple[str, str | None, str], set[str]] = defaultdict(set)
        for (class_id, subject_id, batch), block in lab_blocks.items():
            for gene in block:
                labs_per_batch_day[(class_id, batch, gene.day)].add(subject_id)
            if self._is_lab_block(block):
                continue
            hard += 1
            if collect:
                batch_note = f" (batch {batch})" if batch else ""
                violations.append(
                    f"Lab {self.catalog.subject_label(subject_id)}{batch_note} of class "
                    f"{self.catalog.class_label(class_id)} is not one contiguous block."
                )

        for (class_id, batch, day), subject_ids in labs_per_batch_day.items():
            extra = len(subject_ids) - 1
            if extra <= 0:
                continue
            soft += extra * self.weights.lab_day_overload
            soft_issues += 1
            if collect:
                violations.append(
                    f"Class {self.catalog.class_label(class_id)} batch {batch} has {len(subject_ids)} labs on {day}."
                )

        slot_index = self.catalog.slot_index
        for (class_id, day), lectures in theory_by_class_day.items():
            ordered = sorted(lectures, key=lambda item: slot_index[item.time])
            for current, following in zip(ordered, ordered[1:]):
                if slot_index[following.time] - slot_index[current.time] != 1:
                    continue
                if current.classroom_id != following.classroom_id:
                    soft += self.weights.classroom_change
                    soft_issues += 1
                    if collect:
                        violations.append(
                            f"Class {self.catalog.class_label(class_id)} changes classroom between "
                            f"{current.time} and {following.time} on {day}."
                        )
            for run in self._consecutive_runs(ordered):
                excess = run - self.max_consecutive_theory
                if excess <= 0:
                    continue
                soft += excess * self.weights.consecutive_theory
                soft_issues += 1
                if collect:
                    violations.append(
                        f"Class {self.catalog.class_label(class_id)} has {run} theory lectures in a row on {day}."
                    )
            for subject_id, count in Counter(item.subject_id for item in lectures).items():
                excess = count - self.max_daily_subject_hours
                if excess <= 0:
                    continue
                soft += excess * self.weights.subject_imbalance
                soft_issues += 1
                if collect:
                    violations.append(
                        f"Class {self.catalog.class_label(class_id)} has {count} hours of "
                        f"{self.catalog.subject_label(subject_id)} on {day}."
                    )

        fitness = hard * self.weights.hard_constraint + unplaced * self.weights.unplaced_unit + soft
        return EvaluationResult(
            fitness=fitness,
            hard_conflicts=hard,
            soft_penalty=soft,
            unplaced_hours=unplaced,
            soft_issues=soft_issues,
            violations=violations,
            shortfalls=shortfalls,
        )
