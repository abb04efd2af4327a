from __future__ import annotations

from collections.abc import Iterator, Sequence
import math
from typing import TYPE_CHECKING

from loguru import logger
import numpy as np

from circlevo.exceptions import GeneLengthMismatchError, GenomeError
from circlevo.genome.gene import CircleGene, Gene, ScalarGene

if TYPE_CHECKING:
    from circlevo.fitness.metrics import FitnessMetric
    from circlevo.rendering.rasterizer import Rasterizer

__all__ = ["Chromosome"]


class Chromosome:
    """Ordered, fixed-length sequence of genes with a cached fitness.

    The length never changes after construction. Population slots are reused
    across generations: crossover writes offspring genes into an existing
    chromosome through :py:meth:`set_genes` instead of allocating a new one.
    """

    def __init__(
        self,
        length: int,
        rng: np.random.Generator | None = None,
        *,
        gene_type: type[CircleGene] | type[ScalarGene] = CircleGene,
        genes: Sequence[Gene] | np.ndarray | None = None,
    ) -> None:
        if length <= 0:
            raise GenomeError(f"Chromosome length must be positive, got {length}")
        self.gene_type = gene_type
        self._length = length
        self._fitness = 0.0
        self._fitness_valid = False

        if genes is None:
            if rng is None:
                raise GenomeError("A random generator is required to create random genes")
            self._genes: list[Gene] = [gene_type.random(rng) for _ in range(length)]
        else:
            self._genes = self._coerce(genes)

    # ------------------------------------------------------------------
    # Genes
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return self._length

    @property
    def genes(self) -> tuple[Gene, ...]:
        return tuple(self._genes)

    def get_gene(self, idx: int) -> Gene:
        return self._genes[idx]

    def genes_array(self) -> np.ndarray:
        """Snapshot of gene values, shape ``(length, gene_type.WIDTH)``."""
        return np.array([g.values() for g in self._genes], dtype=np.float64)

    def set_genes(self, values: Sequence[Gene] | np.ndarray) -> None:
        """Overwrite every gene in place; the genome shape must match exactly."""
        self._genes = self._coerce(values)
        self.invalidate()

    def _coerce(self, values: Sequence[Gene] | np.ndarray) -> list[Gene]:
        if isinstance(values, np.ndarray):
            arr = values.reshape(len(values), -1) if values.ndim == 1 else values
            if arr.ndim != 2 or arr.shape != (self._length, self.gene_type.WIDTH):
                raise GeneLengthMismatchError(
                    f"Expected genes of shape ({self._length}, {self.gene_type.WIDTH}), "
                    f"got {values.shape}"
                )
            return [self.gene_type.from_values(row) for row in arr]

        genes = list(values)
        if len(genes) != self._length:
            raise GeneLengthMismatchError(
                f"Expected {self._length} genes, got {len(genes)}"
            )
        for gene in genes:
            if not isinstance(gene, self.gene_type):
                raise GeneLengthMismatchError(
                    f"Expected {self.gene_type.__name__}, got {type(gene).__name__}"
                )
        return genes

    def circles(self) -> Iterator[CircleGene]:
        """Yield circle descriptors in painting order.

        Scalar genomes are read as a flat parameter vector, seven scalars per
        circle.
        """
        if self.gene_type is CircleGene:
            yield from self._genes  # type: ignore[misc]
            return

        width = CircleGene.WIDTH
        if self._length % width:
            raise GenomeError(
                f"Flat genome of length {self._length} is not a multiple of {width}"
            )
        flat = [g.value() for g in self._genes]
        for start in range(0, self._length, width):
            yield CircleGene(*flat[start : start + width])

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def mutate(self, mutation_rate: float, rng: np.random.Generator) -> bool:
        """With probability *mutation_rate*, re-randomize exactly one gene."""
        if rng.random() >= mutation_rate:
            return False
        idx = int(rng.integers(self._length))
        self._genes[idx] = self.gene_type.random(rng)
        self.invalidate()
        return True

    # ------------------------------------------------------------------
    # Fitness
    # ------------------------------------------------------------------

    @property
    def fitness(self) -> float:
        return self._fitness

    @property
    def fitness_valid(self) -> bool:
        return self._fitness_valid

    def get_fitness(self) -> float:
        return self._fitness

    def invalidate(self) -> None:
        self._fitness_valid = False

    def assign_fitness(self, value: float) -> float:
        value = float(value)
        if not math.isfinite(value):
            logger.debug("[Chromosome] Non-finite fitness {} coerced to 0", value)
            value = 0.0
        self._fitness = value
        self._fitness_valid = True
        return value

    def compute_fitness(
        self,
        reference: np.ndarray,
        width: int,
        height: int,
        *,
        rasterizer: Rasterizer,
        metric: FitnessMetric,
        ratio: float = 1.0,
    ) -> float:
        rendered = rasterizer.rasterize(self, width, height, ratio)
        return self.assign_fitness(metric.score(rendered, reference))

    def compute_fitness_by_difference(
        self,
        reference: np.ndarray,
        width: int,
        height: int,
        *,
        rasterizer: Rasterizer,
        ratio: float = 1.0,
    ) -> float:
        from circlevo.fitness.metrics import AbsoluteDifferenceMetric

        return self.compute_fitness(
            reference,
            width,
            height,
            rasterizer=rasterizer,
            metric=AbsoluteDifferenceMetric(),
            ratio=ratio,
        )

    def __repr__(self) -> str:
        return (
            f"Chromosome(length={self._length}, gene_type={self.gene_type.__name__}, "
            f"fitness={self._fitness:.4f}, valid={self._fitness_valid})"
        )
