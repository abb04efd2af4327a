from abc import ABC, abstractmethod
from collections.abc import Sequence

from loguru import logger
import numpy as np

from circlevo.genome.chromosome import Chromosome

__all__ = [
    "ParentSelector",
    "RouletteParentSelector",
    "UniformParentSelector",
    "build_parent_selector",
]


class ParentSelector(ABC):
    """Picks two parents for one crossover among the surviving chromosomes."""

    def pick_pair(
        self,
        parents: Sequence[Chromosome],
        rng: np.random.Generator,
        sum_fitness: float | None = None,
    ) -> tuple[Chromosome, Chromosome]:
        """Return ``(a, b)``; ``a is not b`` whenever two or more parents exist."""
        if not parents:
            raise ValueError("Cannot pick parents from an empty pool")
        if len(parents) == 1:
            return parents[0], parents[0]

        a_idx = self._pick(parents, rng, sum_fitness)
        remaining = [p for i, p in enumerate(parents) if i != a_idx]
        remaining_sum = None
        if sum_fitness is not None:
            remaining_sum = sum_fitness - parents[a_idx].fitness
        b_idx = self._pick(remaining, rng, remaining_sum)
        return parents[a_idx], remaining[b_idx]

    @abstractmethod
    def _pick(
        self,
        pool: Sequence[Chromosome],
        rng: np.random.Generator,
        sum_fitness: float | None,
    ) -> int:
        """Return the index of one chromosome in *pool*."""


class UniformParentSelector(ParentSelector):
    def _pick(
        self,
        pool: Sequence[Chromosome],
        rng: np.random.Generator,
        sum_fitness: float | None,
    ) -> int:
        return int(rng.integers(len(pool)))


class RouletteParentSelector(ParentSelector):
    """Fitness-proportionate sampling.

    Draws ``r`` in ``[0, sum_fitness)`` and walks the cumulative fitness until
    it exceeds ``r``. Negative fitness values are shifted into positive space
    first; a non-positive total falls back to uniform choice.
    """

    def _pick(
        self,
        pool: Sequence[Chromosome],
        rng: np.random.Generator,
        sum_fitness: float | None,
    ) -> int:
        weights = [c.fitness for c in pool]
        min_weight = min(weights)
        if min_weight < 0:
            weights = [w - min_weight + 1e-6 for w in weights]
            total = sum(weights)
        else:
            total = sum(weights) if sum_fitness is None else sum_fitness

        if total <= 0:
            logger.debug("[RouletteParentSelector] Non-positive total fitness, uniform fallback")
            return int(rng.integers(len(pool)))

        r = rng.random() * total
        cumulative = 0.0
        for idx, w in enumerate(weights):
            cumulative += w
            if r < cumulative:
                return idx
        # float round-off can leave r just above the final cumulative sum
        return len(pool) - 1


PARENT_SELECTORS: dict[str, type[ParentSelector]] = {
    "roulette": RouletteParentSelector,
    "uniform": UniformParentSelector,
}


def build_parent_selector(name: str) -> ParentSelector:
    try:
        return PARENT_SELECTORS[name]()
    except KeyError:
        raise ValueError(
            f"Unknown parent selection '{name}', expected one of {sorted(PARENT_SELECTORS)}"
        ) from None
