from __future__ import annotations

from collections.abc import Sequence
from typing import NamedTuple

from loguru import logger

from circlevo.evolution.engine.state import PopulationSnapshot
from circlevo.fitness.metrics import FitnessMetric
from circlevo.genome.chromosome import Chromosome
from circlevo.rendering.rasterizer import Rasterizer
from circlevo.rendering.reference import ReferenceImage

__all__ = ["ComplianceCheck", "ComplianceGuard"]


class ComplianceCheck(NamedTuple):
    compliance: float
    best_compliance: float
    rolled_back: bool


class ComplianceGuard:
    """Elitist regression guard across generations.

    After each generation the leading chromosome is scored with the compliance
    metric, which is configured independently from the selection metric. A
    score below the best recorded one restores the saved population; anything
    else becomes the new best-so-far snapshot.
    """

    def __init__(
        self,
        metric: FitnessMetric,
        rasterizer: Rasterizer,
        *,
        enabled: bool = True,
    ) -> None:
        self.metric = metric
        self.rasterizer = rasterizer
        self.enabled = enabled
        self._best: PopulationSnapshot | None = None
        self._best_compliance = float("-inf")

    @property
    def best_snapshot(self) -> PopulationSnapshot | None:
        return self._best

    @property
    def best_compliance(self) -> float:
        return self._best_compliance if self._best_compliance > float("-inf") else 0.0

    def reset(self) -> None:
        self._best = None
        self._best_compliance = float("-inf")

    def measure(
        self, chromosome: Chromosome, reference: ReferenceImage, ratio: float = 1.0
    ) -> float:
        rendered = self.rasterizer.rasterize(
            chromosome, reference.width, reference.height, ratio
        )
        return self.metric.score(rendered, reference.pixels)

    def check(
        self,
        population: Sequence[Chromosome],
        reference: ReferenceImage,
        generation: int,
        ratio: float = 1.0,
    ) -> ComplianceCheck:
        compliance = self.measure(population[0], reference, ratio)

        if not self.enabled:
            self._best_compliance = max(self._best_compliance, compliance)
            return ComplianceCheck(compliance, self._best_compliance, False)

        if self._best is not None and compliance < self._best_compliance:
            self._best.restore_into(population)
            logger.info(
                "[ComplianceGuard] Gen {}: compliance {:.5f} < best {:.5f} (gen {}), rolled back",
                generation,
                compliance,
                self._best_compliance,
                self._best.generation,
            )
            return ComplianceCheck(compliance, self._best_compliance, True)

        self._best_compliance = compliance
        self._best = PopulationSnapshot.capture(population, generation, compliance)
        return ComplianceCheck(compliance, compliance, False)
