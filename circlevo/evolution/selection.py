from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
import math

from loguru import logger

from circlevo.genome.chromosome import Chromosome

__all__ = ["Selection", "fitness_summary", "select", "split_index"]


@dataclass(frozen=True)
class Selection:
    """Population partition produced by one selection pass.

    ``best`` are the surviving parents, ``worst`` the slots crossover will
    overwrite. ``sum_fitness`` is the total fitness of ``best``.
    """

    best: tuple[Chromosome, ...]
    worst: tuple[Chromosome, ...]
    sum_fitness: float

    @property
    def best_fitness(self) -> float:
        return self.best[0].fitness if self.best else 0.0

    def __len__(self) -> int:
        return len(self.best) + len(self.worst)


def split_index(selection_rate: float, population_size: int) -> int:
    """Number of survivors, rounded half up and kept within ``[1, size]``."""
    idx = int(math.floor(selection_rate * population_size + 0.5))
    return min(population_size, max(1, idx))


def select(population: list[Chromosome], selection_rate: float) -> Selection:
    """Sort *population* in place by descending fitness and split it.

    The sort is stable, so equal fitness keeps the previous slot order.
    """
    population.sort(key=lambda c: c.fitness, reverse=True)
    idx = split_index(selection_rate, len(population))
    best = tuple(population[:idx])
    worst = tuple(population[idx:])
    sum_fitness = math.fsum(c.fitness for c in best)

    logger.debug(
        "[Selection] best={} worst={} top={:.5f} sum={:.5f}",
        len(best),
        len(worst),
        best[0].fitness if best else 0.0,
        sum_fitness,
    )
    return Selection(best=best, worst=worst, sum_fitness=sum_fitness)


def fitness_summary(population: Sequence[Chromosome]) -> tuple[float, float, float]:
    """``(best, mean, worst)`` fitness of *population*."""
    if not population:
        return 0.0, 0.0, 0.0
    values = [c.fitness for c in population]
    return max(values), math.fsum(values) / len(values), min(values)
