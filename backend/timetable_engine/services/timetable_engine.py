from __future__ import annotations

from concurrent.futures import Executor, ProcessPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
import logging
import math
import random
import threading
from time import perf_counter
from typing import Iterator

from timetable_engine.core.exceptions import InfeasibleScheduleError, InvariantViolationError, SchedulerError
from timetable_engine.schemas.generator import (
    ClassTimetable,
    GenerateTimetableRequest,
    GenerateTimetableResponse,
    GenerationSettings,
    GenerationStatus,
)
from timetable_engine.services.catalog import SchedulingCatalog, build_catalog
from timetable_engine.services.chromosome import Chromosome, special_day_of
from timetable_engine.services.feasibility import ensure_feasible
from timetable_engine.services.fitness import EvaluationResult, FitnessEvaluator
from timetable_engine.services.genetic_operators import (
    RankedPopulation,
    elite_count,
    mutate,
    rank_population,
    select_parent,
    single_point_crossover,
)
from timetable_engine.services.individual import IndividualBuilder, PlacementPolicy
from timetable_engine.services.workload import faculty_workload

logger = logging.getLogger(__name__)


class EngineState(str, Enum):
    INIT = "init"
    FEASIBILITY = "feasibility"
    SEEDING = "seeding"
    EVALUATING = "evaluating"
    CONVERGED = "converged"
    BUDGET_EXHAUSTED = "budget_exhausted"
    CANCELLED = "cancelled"
    REPORTING = "reporting"
    DONE = "done"
    ABORTED = "aborted"


@dataclass
class SearchOutcome:
    genes: Chromosome
    status: GenerationStatus
    generations: int
    warnings: list[str] | None = None


class TimetableEngine:
    """Runs one timetable generation from validated input to a report.

    The engine owns its random generator and all per-run state, so separate
    instances can run side by side. ``cancel_event`` and ``time_limit_seconds``
    are checked once per generation; either stops the search and the best
    schedule found so far is still reported.
    """

    def __init__(
        self,
        request: GenerateTimetableRequest,
        settings: GenerationSettings | None = None,
        *,
        cancel_event: threading.Event | None = None,
    ) -> None:
        self.request = request
        self.settings = settings or request.settings or GenerationSettings()
        self.cancel_event = cancel_event
        self.random = random.Random(self.settings.random_seed)
        self.state = EngineState.INIT
        self.catalog: SchedulingCatalog | None = None
        self.evaluator: FitnessEvaluator | None = None

    def _transition(self, state: EngineState) -> None:
        logger.debug("Engine state %s -> %s", self.state.value, state.value)
        self.state = state

    def run(self) -> GenerateTimetableResponse:
        start = perf_counter()
        if not self.request.classes:
            raise SchedulerError("At least one class is required to generate a timetable")
        if not self.request.subjects:
            raise SchedulerError("At least one subject is required to generate a timetable")

        self.catalog = build_catalog(self.request, self.settings)
        logger.info(
            "Timetable generation started policy=%s classes=%s subjects=%s faculty=%s units=%s",
            self.settings.placement_policy,
            len(self.catalog.classes),
            len(self.catalog.subjects),
            len(self.catalog.faculty),
            len(self.catalog.units),
        )

        self._transition(EngineState.FEASIBILITY)
        try:
            ensure_feasible(self.catalog)
        except InfeasibleScheduleError:
            self._transition(EngineState.ABORTED)
            raise

        self.evaluator = FitnessEvaluator(
            self.catalog,
            self.settings.penalty_weights,
            max_daily_subject_hours=self.settings.max_daily_subject_hours,
            max_consecutive_theory=self.settings.max_consecutive_theory,
        )
        if self.settings.placement_policy == PlacementPolicy.GREEDY.value:
            outcome = self._run_greedy()
        else:
            outcome = self._run_genetic()

        self._transition(EngineState.REPORTING)
        response = self._build_response(outcome, runtime_ms=int((perf_counter() - start) * 1000))
        self._transition(EngineState.DONE)
        logger.info(
            "Timetable generation finished policy=%s status=%s fitness=%s generations=%s runtime_ms=%s",
            self.settings.placement_policy,
            response.status,
            response.fitness,
            response.generations,
            response.runtimeMs,
        )
        return response

    def _builder(self, policy: PlacementPolicy) -> IndividualBuilder:
        return IndividualBuilder(self.catalog, self.settings, policy=policy, rng=self.random)

    def _run_greedy(self) -> SearchOutcome:
        self._transition(EngineState.SEEDING)
        individual = self._builder(PlacementPolicy.GREEDY).build()
        self._transition(EngineState.EVALUATING)
        unplaced = self.evaluator.evaluate(individual.genes).unplaced_hours
        if unplaced != individual.unplaced_units:
            raise InvariantViolationError(
                message="Greedy placement lost track of unplaced hours",
                details={"builder": individual.unplaced_units, "evaluator": unplaced},
            )
        return SearchOutcome(
            genes=individual.genes,
            status="completed",
            generations=0,
            warnings=individual.warnings,
        )

    def _cancelled(self, deadline: float | None) -> bool:
        if self.cancel_event is not None and self.cancel_event.is_set():
            return True
        return deadline is not None and perf_counter() >= deadline

    @contextmanager
    def _evaluation_pool(self) -> Iterator[Executor | None]:
        workers = self.settings.evaluation_workers
        if workers <= 1:
            yield None
            return
        with ProcessPoolExecutor(max_workers=workers) as pool:
            yield pool

    def _score_population(self, population: list[Chromosome], pool: Executor | None) -> list[int]:
        if pool is None:
            return [self.evaluator.score(genes) for genes in population]
        chunksize = max(1, len(population) // (self.settings.evaluation_workers * 4))
        return list(pool.map(self.evaluator.score, population, chunksize=chunksize))

    def _breed(self, ranked: RankedPopulation) -> list[Chromosome]:
        size = self.settings.population_size
        next_population = [genes for _, genes in ranked[: elite_count(size, self.settings.elitism_rate)]]
        while len(next_population) < size:
            parent_a = select_parent(ranked, self.random)
            parent_b = select_parent(ranked, self.random)
            for child in single_point_crossover(parent_a, parent_b, self.random):
                if len(next_population) < size:
                    next_population.append(mutate(child, self.random, self.settings.mutation_rate))
        return next_population

    def _run_genetic(self) -> SearchOutcome:
        deadline = None
        if self.settings.time_limit_seconds is not None:
            deadline = perf_counter() + self.settings.time_limit_seconds

        self._transition(EngineState.SEEDING)
        builder = self._builder(PlacementPolicy.GENETIC)
        population = [builder.build().genes for _ in range(self.settings.population_size)]

        self._transition(EngineState.EVALUATING)
        best_genes: Chromosome = population[0]
        best_fitness = math.inf
        status: GenerationStatus = "budget_exhausted"
        generations = 0
        with self._evaluation_pool() as pool:
            for generation in range(self.settings.max_generations):
                scores = self._score_population(population, pool)
                generations = generation + 1
                ranked = rank_population(population, scores)
                if ranked[0][0] < best_fitness:
                    best_fitness, best_genes = ranked[0]
                logger.debug(
                    "Generation %s best_fitness=%s generation_best=%s",
                    generation,
                    best_fitness,
                    ranked[0][0],
                )
                if best_fitness == 0:
                    status = "converged"
                    break
                if self._cancelled(deadline):
                    status = "cancelled"
                    break
                if generations < self.settings.max_generations:
                    population = self._breed(ranked)

        self._transition(
            {
                "converged": EngineState.CONVERGED,
                "cancelled": EngineState.CANCELLED,
            }.get(status, EngineState.BUDGET_EXHAUSTED)
        )
        return SearchOutcome(genes=best_genes, status=status, generations=generations)

    def _validate_references(self, genes: Chromosome) -> None:
        catalog = self.catalog
        for gene in genes:
            problem = None
            if gene.day not in catalog.day_index or gene.time not in catalog.slot_index:
                problem = f"unknown slot {gene.day} {gene.time}"
            elif gene.class_id not in catalog.classes:
                problem = f"unknown class '{gene.class_id}'"
            elif gene.is_placeholder:
                continue
            elif gene.subject_id not in catalog.subjects:
                problem = f"unknown subject '{gene.subject_id}'"
            elif gene.faculty_id not in catalog.faculty:
                problem = f"unknown faculty '{gene.faculty_id}'"
            elif gene.classroom_id not in catalog.classrooms:
                problem = f"unknown classroom '{gene.classroom_id}'"
            if problem:
                raise InvariantViolationError(
                    message=f"Generated schedule references {problem}",
                    details={"gene": gene.to_payload().model_dump()},
                )

    def _per_class_timetable(self, genes: Chromosome) -> list[ClassTimetable]:
        day_index = self.catalog.day_index
        slot_index = self.catalog.slot_index
        ordered = sorted(genes, key=lambda gene: (day_index[gene.day], slot_index[gene.time], gene.batch or ""))
        return [
            ClassTimetable(
                classId=class_id,
                className=class_.name,
                genes=[gene.to_payload() for gene in ordered if gene.class_id == class_id],
            )
            for class_id, class_ in self.catalog.classes.items()
        ]

    def _summary(self, outcome: SearchOutcome, evaluation: EvaluationResult, success: bool) -> str:
        placed = sum(1 for gene in outcome.genes if not gene.is_placeholder)
        if success and evaluation.fitness == 0:
            summary = (
                f"Optimal timetable found: {placed} academic slot(s) scheduled for "
                f"{len(self.catalog.classes)} class(es) with no conflicts."
            )
        elif success:
            summary = (
                f"Conflict-free timetable found with {evaluation.soft_issues} soft issue(s) "
                f"(penalty {evaluation.soft_penalty})."
            )
        else:
            issues = evaluation.hard_conflicts + evaluation.unplaced_hours + evaluation.soft_issues
            summary = (
                f"Best-effort timetable: {issues} issue(s) remain ({evaluation.hard_conflicts} hard conflict(s), "
                f"{evaluation.unplaced_hours} unplaced hour(s), {evaluation.soft_issues} soft issue(s))."
            )
        if outcome.status == "cancelled":
            summary = f"Search stopped after {outcome.generations} generation(s). {summary}"
        return summary

    def _build_response(self, outcome: SearchOutcome, *, runtime_ms: int) -> GenerateTimetableResponse:
        self._validate_references(outcome.genes)
        evaluation = self.evaluator.evaluate(outcome.genes)
        success = evaluation.hard_conflicts == 0 and evaluation.unplaced_hours == 0
        warnings = evaluation.shortfalls if outcome.warnings is None else outcome.warnings
        for message in warnings:
            logger.warning("Placement shortfall: %s", message)
        return GenerateTimetableResponse(
            success=success,
            status=outcome.status,
            summary=self._summary(outcome, evaluation, success),
            warnings=warnings,
            violations=evaluation.violations,
            codeChefDay=special_day_of(outcome.genes),
            perClassTimetable=self._per_class_timetable(outcome.genes),
            facultyWorkload=faculty_workload(self.catalog, outcome.genes),
            fitness=evaluation.fitness,
            hardConflicts=evaluation.hard_conflicts,
            softPenalty=evaluation.soft_penalty,
            generations=outcome.generations,
            runtimeMs=runtime_ms,
            settingsUsed=self.settings,
        )


def generate_timetable(
    request: GenerateTimetableRequest,
    settings: GenerationSettings | None = None,
    *,
    cancel_event: threading.Event | None = None,
) -> GenerateTimetableResponse:
    return TimetableEngine(request, settings, cancel_event=cancel_event).run()
