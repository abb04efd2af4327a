from abc import ABC, abstractmethod

import numpy as np

__all__ = [
    "CrossoverOperator",
    "SinglePointCrossover",
    "TwoPointCrossover",
    "build_crossover",
]


class CrossoverOperator(ABC):
    """Splices two parent gene arrays into one offspring of the same shape."""

    @abstractmethod
    def splice(
        self, parent_a: np.ndarray, parent_b: np.ndarray, rng: np.random.Generator
    ) -> np.ndarray:
        ...

    @staticmethod
    def _check(parent_a: np.ndarray, parent_b: np.ndarray) -> None:
        if parent_a.shape != parent_b.shape:
            raise ValueError(
                f"Parents differ in shape: {parent_a.shape} vs {parent_b.shape}"
            )


class SinglePointCrossover(CrossoverOperator):
    """``a[:k] ++ b[k:]`` for one cut ``k`` drawn from ``[0, length)``."""

    def splice(
        self, parent_a: np.ndarray, parent_b: np.ndarray, rng: np.random.Generator
    ) -> np.ndarray:
        self._check(parent_a, parent_b)
        k = int(rng.integers(len(parent_a)))
        return np.concatenate([parent_a[:k], parent_b[k:]])


class TwoPointCrossover(CrossoverOperator):
    """``a[:k1] ++ b[k1:k2] ++ a[k2:]`` for two distinct interior cuts.

    Genomes shorter than three genes have no two distinct interior cuts and
    fall back to a single-point splice.
    """

    def __init__(self) -> None:
        self._fallback = SinglePointCrossover()

    def splice(
        self, parent_a: np.ndarray, parent_b: np.ndarray, rng: np.random.Generator
    ) -> np.ndarray:
        self._check(parent_a, parent_b)
        length = len(parent_a)
        if length < 3:
            return self._fallback.splice(parent_a, parent_b, rng)
        k1, k2 = sorted(int(k) for k in rng.choice(np.arange(1, length), size=2, replace=False))
        return np.concatenate([parent_a[:k1], parent_b[k1:k2], parent_a[k2:]])


CROSSOVERS: dict[str, type[CrossoverOperator]] = {
    "single_point": SinglePointCrossover,
    "two_point": TwoPointCrossover,
}


def build_crossover(name: str) -> CrossoverOperator:
    try:
        return CROSSOVERS[name]()
    except KeyError:
        raise ValueError(
            f"Unknown crossover '{name}', expected one of {sorted(CROSSOVERS)}"
        ) from None
