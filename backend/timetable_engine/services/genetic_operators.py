from __future__ import annotations

from dataclasses import replace
import random
from typing import Sequence

from timetable_engine.services.chromosome import Chromosome

RankedPopulation = list[tuple[int, Chromosome]]


def rank_population(population: Sequence[Chromosome], scores: Sequence[int]) -> RankedPopulation:
    """Pairs each chromosome with its fitness, best (lowest) first. Ties keep population order."""
    return sorted(zip(scores, population), key=lambda item: item[0])


def elite_count(population_size: int, elitism_rate: float) -> int:
    if elitism_rate <= 0:
        return 0
    return min(population_size, max(1, int(population_size * elitism_rate)))


def select_parent(ranked: RankedPopulation, rng: random.Random) -> Chromosome:
    better_half = max(1, len(ranked) // 2)
    return ranked[rng.randrange(better_half)][1]


def single_point_crossover(
    parent_a: Chromosome,
    parent_b: Chromosome,
    rng: random.Random,
) -> tuple[Chromosome, Chromosome]:
    # Children are not repaired; the fitness function penalises whatever breaks.
    length = min(len(parent_a), len(parent_b))
    if length < 2:
        return list(parent_a), list(parent_b)
    point = rng.randrange(1, length)
    return parent_a[:point] + parent_b[point:], parent_b[:point] + parent_a[point:]


def mutate(genes: Chromosome, rng: random.Random, rate: float) -> Chromosome:
    """Swaps the (day, time) of two ordinary lectures with probability ``rate``.

    Special-day placeholders, fillers and lab genes are never moved. Genes are
    immutable, so the input chromosome is left untouched.
    """
    mutated = list(genes)
    if rng.random() >= rate:
        return mutated
    ordinary = [index for index, gene in enumerate(mutated) if gene.is_ordinary]
    if len(ordinary) < 2:
        return mutated
    first, second = rng.sample(ordinary, 2)
    gene_a, gene_b = mutated[first], mutated[second]
    mutated[first] = replace(gene_a, day=gene_b.day, time=gene_b.time)
    mutated[second] = replace(gene_b, day=gene_a.day, time=gene_a.time)
    return mutated
