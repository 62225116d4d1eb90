import random

from timetable_engine.schemas.generator import GenerationSettings
from timetable_engine.services.catalog import build_catalog
from timetable_engine.services.chromosome import Gene
from timetable_engine.services.fitness import FitnessEvaluator
from timetable_engine.services.genetic_operators import (
    elite_count,
    mutate,
    rank_population,
    select_parent,
    single_point_crossover,
)


def _chromosome(tag):
    return [
        Gene("Friday", "09:00", "c1", "CODECHEF", is_special_day=True),
        Gene("Monday", "09:00", "c1", "lab", f"{tag}-lab", "l1", is_lab=True, batch="A"),
        Gene("Monday", "10:00", "c1", "ds", f"{tag}-f1", "r1"),
        Gene("Tuesday", "11:00", "c1", "dm", f"{tag}-f2", "r1"),
        Gene("Wednesday", "12:00", "c1", "LIBRARY", is_filler=True),
    ]


def test_rank_population_orders_by_fitness():
    population = [["worst"], ["best"], ["middle"]]
    ranked = rank_population(population, [30, 0, 10])
    assert [score for score, _ in ranked] == [0, 10, 30]
    assert ranked[0][1] == ["best"]


def test_elite_count():
    assert elite_count(100, 0.1) == 10
    assert elite_count(5, 0.1) == 1
    assert elite_count(5, 0.0) == 0


def test_select_parent_draws_from_better_half():
    ranked = [(index, [str(index)]) for index in range(10)]
    rng = random.Random(3)
    picks = {select_parent(ranked, rng)[0] for _ in range(200)}
    assert picks <= {"0", "1", "2", "3", "4"}
    assert len(picks) > 1


def test_single_point_crossover_swaps_tails():
    parent_a, parent_b = _chromosome("a"), _chromosome("b")
    child_a, child_b = single_point_crossover(parent_a, parent_b, random.Random(5))
    assert len(child_a) == len(child_b) == len(parent_a)
    cut = next(index for index, gene in enumerate(child_a) if gene is not parent_a[index])
    assert child_a[:cut] == parent_a[:cut]
    assert child_a[cut:] == parent_b[cut:]
    assert child_b[:cut] == parent_b[:cut]
    assert child_b[cut:] == parent_a[cut:]


def test_mutate_swaps_only_ordinary_genes():
    genes = _chromosome("a")
    mutated = mutate(genes, random.Random(1), rate=1.0)
    assert mutated is not genes
    assert genes == _chromosome("a")
    for before, after in zip(genes, mutated):
        if not before.is_ordinary:
            assert after == before
    assert (mutated[2].day, mutated[2].time) == (genes[3].day, genes[3].time)
    assert (mutated[3].day, mutated[3].time) == (genes[2].day, genes[2].time)
    assert mutated[2].faculty_id == genes[2].faculty_id


def test_mutate_with_zero_rate_returns_equal_copy():
    genes = _chromosome("a")
    assert mutate(genes, random.Random(1), rate=0.0) == genes


class _FixedCut(random.Random):
    def __init__(self, point):
        super().__init__(0)
        self.point = point

    def randrange(self, *args, **kwargs):
        return self.point


def test_crossover_child_with_split_lab_is_penalised(single_lab_request):
    catalog = build_catalog(single_lab_request(faculty_count=2), GenerationSettings())
    evaluator = FitnessEvaluator(catalog)

    def parent(day, first, second):
        return [
            Gene(day, first, "cse3a", "os-lab", "lab1", "lab1", is_lab=True, batch="A"),
            Gene(day, second, "cse3a", "os-lab", "lab1", "lab1", is_lab=True, batch="A"),
            Gene(day, first, "cse3a", "os-lab", "lab2", "lab2", is_lab=True, batch="B"),
            Gene(day, second, "cse3a", "os-lab", "lab2", "lab2", is_lab=True, batch="B"),
        ] + [Gene("Wednesday", t, "cse3a", "CODECHEF", is_special_day=True) for t in catalog.time_slots]

    parent_a = parent("Monday", "09:00", "10:00")
    parent_b = parent("Tuesday", "11:00", "12:00")
    assert evaluator.score(parent_a) == 0
    assert evaluator.score(parent_b) == 0

    child, sibling = single_point_crossover(parent_a, parent_b, _FixedCut(1))
    assert child[0].day == "Monday" and child[1].day == "Tuesday"
    for genes in (child, sibling):
        result = evaluator.evaluate(genes)
        assert result.fitness > 0
        assert "Lab OS Lab (batch A) of class CSE 3A is not one contiguous block." in result.violations
