from __future__ import annotations

from collections import Counter
from enum import Enum
import logging
import random

from timetable_engine.schemas.generator import GenerationSettings
from timetable_engine.services.catalog import SchedulingCatalog
from timetable_engine.services.chromosome import THEORY_LABEL, Gene, Individual
from timetable_engine.services.requirements import LAB_BATCHES, LAB_BLOCK_HOURS, Lecture

logger = logging.getLogger(__name__)


class PlacementPolicy(str, Enum):
    GREEDY = "greedy"
    GENETIC = "genetic"


class SlotLedger:
    """Bookings made while one individual is being built; never shared between individuals."""

    def __init__(self) -> None:
        self.faculty: set[tuple[str, str, str]] = set()
        self.rooms: set[tuple[str, str, str]] = set()
        self.class_slots: dict[tuple[str, str, str], set[str]] = {}
        self.faculty_hours: Counter[str] = Counter()
        self.subject_day_hours: Counter[tuple[str, str, str]] = Counter()
        self.lab_days: set[tuple[str, str, str]] = set()

    def book(self, gene: Gene) -> None:
        if gene.faculty_id:
            self.faculty.add((gene.day, gene.time, gene.faculty_id))
            self.faculty_hours[gene.faculty_id] += 1
        if gene.classroom_id:
            self.rooms.add((gene.day, gene.time, gene.classroom_id))
        self.class_slots.setdefault((gene.day, gene.time, gene.class_id), set()).add(gene.slot_label)
        if gene.is_lab:
            self.lab_days.add((gene.class_id, gene.slot_label, gene.day))
        else:
            self.subject_day_hours[(gene.class_id, gene.subject_id, gene.day)] += 1

    def class_free(self, day: str, time: str, class_id: str, batch: str | None = None) -> bool:
        labels = self.class_slots.get((day, time, class_id))
        if not labels:
            return True
        if batch is None:
            return False
        return THEORY_LABEL not in labels and batch not in labels

    def has_theory(self, day: str, time: str, class_id: str) -> bool:
        return THEORY_LABEL in self.class_slots.get((day, time, class_id), ())

    def batch_has_lab(self, day: str, class_id: str, batch: str) -> bool:
        return (class_id, batch, day) in self.lab_days

    def faculty_free(self, day: str, time: str, faculty_id: str) -> bool:
        return (day, time, faculty_id) not in self.faculty

    def room_free(self, day: str, time: str, room_id: str) -> bool:
        return (day, time, room_id) not in self.rooms


class IndividualBuilder:
    """Builds one candidate weekly schedule.

    The greedy policy picks the least-loaded teacher and fills empty slots with
    library periods, so its output can be used as a finished timetable. The
    genetic policy picks teachers at random and leaves gaps open; it is meant to
    seed a population.
    """

    def __init__(
        self,
        catalog: SchedulingCatalog,
        settings: GenerationSettings,
        *,
        policy: PlacementPolicy,
        rng: random.Random,
    ) -> None:
        self.catalog = catalog
        self.settings = settings
        self.policy = policy
        self.random = rng
        self._roster_position = {faculty_id: index for index, faculty_id in enumerate(catalog.faculty)}

    def build(self) -> Individual:
        ledger = SlotLedger()
        for gene in self.catalog.existing_genes:
            if not gene.is_placeholder:
                ledger.book(gene)

        special_day = self.random.choice(self.catalog.days)
        working_days = [day for day in self.catalog.days if day != special_day]
        genes = self._special_day_genes(special_day)
        warnings: list[str] = []
        unplaced = 0

        for class_id, subject_id in self._lab_subjects():
            lab_genes, lab_warnings = self._place_lab(class_id, subject_id, working_days, ledger)
            genes.extend(lab_genes)
            warnings.extend(lab_warnings)
            unplaced += LAB_BLOCK_HOURS * len(lab_warnings)

        home_rooms = self._home_rooms()
        for unit in self.catalog.units:
            if unit.is_lab:
                continue
            gene = self._place_theory(unit, working_days, home_rooms.get(unit.class_id), ledger)
            if gene is None:
                unplaced += 1
                warnings.append(
                    f"Could not schedule theory lecture for {self.catalog.subject_label(unit.subject_id)} "
                    f"(class {self.catalog.class_label(unit.class_id)}). The schedule is too constrained."
                )
                continue
            ledger.book(gene)
            genes.append(gene)

        if self.policy is PlacementPolicy.GREEDY:
            genes.extend(self._filler_genes(working_days, ledger))

        for message in warnings:
            logger.debug("Placement shortfall policy=%s: %s", self.policy.value, message)
        return Individual(genes=genes, special_day=special_day, warnings=warnings, unplaced_units=unplaced)

    def _special_day_genes(self, special_day: str) -> list[Gene]:
        return [
            Gene(
                day=special_day,
                time=time,
                class_id=class_id,
                subject_id=self.catalog.special_day_label,
                is_special_day=True,
            )
            for class_id in self.catalog.classes
            for time in self.catalog.time_slots
        ]

    def _lab_subjects(self) -> list[tuple[str, str]]:
        ordered: dict[tuple[str, str], None] = {}
        for unit in self.catalog.units:
            if unit.is_lab:
                ordered.setdefault((unit.class_id, unit.subject_id), None)
        return list(ordered)

    def _home_rooms(self) -> dict[str, str]:
        rooms = self.catalog.theory_room_ids
        if not rooms:
            return {}
        if self.policy is PlacementPolicy.GREEDY:
            return {class_id: rooms[index % len(rooms)] for index, class_id in enumerate(self.catalog.classes)}
        return {class_id: self.random.choice(rooms) for class_id in self.catalog.classes}

    def _ordered(self, items: tuple[str, ...] | list[str]) -> list[str]:
        ordered = list(items)
        if self.policy is PlacementPolicy.GENETIC:
            self.random.shuffle(ordered)
        return ordered

    def _faculty_candidates(self, subject_id: str, ledger: SlotLedger, hours: int) -> list[str]:
        candidates = []
        for faculty_id in self.catalog.qualified_faculty.get(subject_id, ()):
            cap = self.catalog.faculty_cap(faculty_id)
            if cap is None or ledger.faculty_hours[faculty_id] + hours <= cap:
                candidates.append(faculty_id)
        if self.policy is PlacementPolicy.GREEDY:
            return sorted(
                candidates,
                key=lambda faculty_id: (ledger.faculty_hours[faculty_id], self._roster_position[faculty_id]),
            )
        self.random.shuffle(candidates)
        return candidates

    def _lab_windows(self, working_days: list[str]) -> list[tuple[str, tuple[str, str]]]:
        slots = self.catalog.time_slots
        windows = [
            (day, (slots[first], slots[second]))
            for day in working_days
            for first, second in self.catalog.lab_pairs
        ]
        self.random.shuffle(windows)
        return windows[: self.settings.lab_placement_attempts]

    def _place_lab(
        self,
        class_id: str,
        subject_id: str,
        working_days: list[str],
        ledger: SlotLedger,
    ) -> tuple[list[Gene], list[str]]:
        for day, times in self._lab_windows(working_days):
            if any(ledger.batch_has_lab(day, class_id, batch) for batch in LAB_BATCHES):
                continue
            if not all(ledger.class_free(day, time, class_id) for time in times):
                continue
            rooms = [
                room_id
                for room_id in self._ordered(self.catalog.lab_room_ids)
                if all(ledger.room_free(day, time, room_id) for time in times)
            ]
            if len(rooms) < len(LAB_BATCHES):
                continue
            teachers = [
                faculty_id
                for faculty_id in self._faculty_candidates(subject_id, ledger, LAB_BLOCK_HOURS)
                if all(ledger.faculty_free(day, time, faculty_id) for time in times)
            ]
            if len(teachers) < len(LAB_BATCHES):
                continue
            genes: list[Gene] = []
            for batch, room_id, faculty_id in zip(LAB_BATCHES, rooms, teachers):
                genes.extend(self._book_lab_block(class_id, subject_id, batch, day, times, room_id, faculty_id, ledger))
            return genes, []

        # No window fits both batches side by side; give each batch its own block.
        genes = []
        warnings: list[str] = []
        for batch in LAB_BATCHES:
            block = self._place_lab_batch(class_id, subject_id, batch, working_days, ledger)
            if block is None:
                warnings.append(
                    f"Could not schedule lab for {self.catalog.subject_label(subject_id)} (batch {batch}) "
                    f"in class {self.catalog.class_label(class_id)}. Not enough free lab slots or faculty is overbooked."
                )
                continue
            genes.extend(block)
        return genes, warnings

    def _place_lab_batch(
        self,
        class_id: str,
        subject_id: str,
        batch: str,
        working_days: list[str],
        ledger: SlotLedger,
    ) -> list[Gene] | None:
        for day, times in self._lab_windows(working_days):
            if ledger.batch_has_lab(day, class_id, batch):
                continue
            if not all(ledger.class_free(day, time, class_id, batch) for time in times):
                continue
            room_id = next(
                (
                    room_id
                    for room_id in self._ordered(self.catalog.lab_room_ids)
                    if all(ledger.room_free(day, time, room_id) for time in times)
                ),
                None,
            )
            if room_id is None:
                continue
            faculty_id = next(
                (
                    faculty_id
                    for faculty_id in self._faculty_candidates(subject_id, ledger, LAB_BLOCK_HOURS)
                    if all(ledger.faculty_free(day, time, faculty_id) for time in times)
                ),
                None,
            )
            if faculty_id is None:
                continue
            return self._book_lab_block(class_id, subject_id, batch, day, times, room_id, faculty_id, ledger)
        return None

    @staticmethod
    def _book_lab_block(
        class_id: str,
        subject_id: str,
        batch: str,
        day: str,
        times: tuple[str, str],
        room_id: str,
        faculty_id: str,
        ledger: SlotLedger,
    ) -> list[Gene]:
        genes = []
        for time in times:
            gene = Gene(
                day=day,
                time=time,
                class_id=class_id,
                subject_id=subject_id,
                faculty_id=faculty_id,
                classroom_id=room_id,
                is_lab=True,
                batch=batch,
            )
            ledger.book(gene)
            genes.append(gene)
        return genes

    def _theory_run_with(self, class_id: str, day: str, time: str, ledger: SlotLedger) -> int:
        """Length of the class's theory run on ``day`` if a lecture went into ``time``."""
        slots = self.catalog.time_slots
        position = self.catalog.slot_index[time]
        run = 1
        index = position - 1
        while index >= 0 and ledger.has_theory(day, slots[index], class_id):
            run += 1
            index -= 1
        index = position + 1
        while index < len(slots) and ledger.has_theory(day, slots[index], class_id):
            run += 1
            index += 1
        return run

    def _theory_slot_open(self, unit: Lecture, day: str, time: str, ledger: SlotLedger) -> bool:
        if not ledger.class_free(day, time, unit.class_id):
            return False
        daily = ledger.subject_day_hours[(unit.class_id, unit.subject_id, day)]
        if daily >= self.settings.max_daily_subject_hours:
            return False
        run = self._theory_run_with(unit.class_id, day, time, ledger)
        return run <= self.settings.max_consecutive_theory

    def _place_theory(
        self,
        unit: Lecture,
        working_days: list[str],
        home_room: str | None,
        ledger: SlotLedger,
    ) -> Gene | None:
        candidates = self._faculty_candidates(unit.subject_id, ledger, 1)
        if not candidates:
            return None
        teacher = candidates[0]

        slots = [(day, time) for day in working_days for time in self.catalog.time_slots]
        self.random.shuffle(slots)
        slots = slots[: self.settings.theory_placement_attempts]

        if home_room is not None:
            for day, time in slots:
                if (
                    self._theory_slot_open(unit, day, time, ledger)
                    and ledger.faculty_free(day, time, teacher)
                    and ledger.room_free(day, time, home_room)
                ):
                    return self._theory_gene(unit, day, time, teacher, home_room)

        # Home room or first-choice teacher never freed up; take any free pairing.
        for day, time in slots:
            if not self._theory_slot_open(unit, day, time, ledger):
                continue
            faculty_id = next((item for item in candidates if ledger.faculty_free(day, time, item)), None)
            room_id = next(
                (item for item in self._ordered(self.catalog.theory_room_ids) if ledger.room_free(day, time, item)),
                None,
            )
            if faculty_id is not None and room_id is not None:
                return self._theory_gene(unit, day, time, faculty_id, room_id)
        return None

    @staticmethod
    def _theory_gene(unit: Lecture, day: str, time: str, faculty_id: str, room_id: str) -> Gene:
        return Gene(
            day=day,
            time=time,
            class_id=unit.class_id,
            subject_id=unit.subject_id,
            faculty_id=faculty_id,
            classroom_id=room_id,
        )

    def _filler_genes(self, working_days: list[str], ledger: SlotLedger) -> list[Gene]:
        return [
            Gene(
                day=day,
                time=time,
                class_id=class_id,
                subject_id=self.catalog.filler_subject_id,
                is_filler=True,
            )
            for class_id in self.catalog.classes
            for day in working_days
            for time in self.catalog.time_slots
            if ledger.class_free(day, time, class_id)
        ]
