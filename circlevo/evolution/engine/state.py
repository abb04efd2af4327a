from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

import numpy as np
from pydantic import BaseModel, Field

from circlevo.genome.chromosome import Chromosome


class EngineStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    DONE = "done"


VALID_TRANSITIONS: dict[EngineStatus, set[EngineStatus]] = {
    EngineStatus.IDLE: {EngineStatus.RUNNING},
    EngineStatus.RUNNING: {EngineStatus.IDLE, EngineStatus.DONE},
    EngineStatus.DONE: {EngineStatus.RUNNING, EngineStatus.IDLE},
}


def validate_transition(current: EngineStatus, new: EngineStatus) -> None:
    if current == new:
        return
    if new not in VALID_TRANSITIONS.get(current, set()):
        valid_next = VALID_TRANSITIONS.get(current, set())
        raise ValueError(
            f"Invalid engine transition: {current.value} -> {new.value}. "
            f"Valid transitions from {current.value}: {sorted(s.value for s in valid_next)}"
        )


class GenomeState(BaseModel):
    """Run state read by progress observers after each generation."""

    status: EngineStatus = EngineStatus.IDLE
    generation: int = Field(default=0, ge=0)
    max_generation: int = Field(default=0, ge=0)
    best_fitness: float = 0.0
    compliance: float = Field(
        default=0.0, description="Best compliance observed so far"
    )
    best_generation: int = Field(
        default=0, ge=0, description="Generation that produced the best-so-far snapshot"
    )
    rollbacks: int = Field(default=0, ge=0)

    @property
    def remaining(self) -> int:
        return max(0, self.max_generation - self.generation)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


class GenerationResult(BaseModel):
    """Outcome of a single generation step."""

    generation: int
    max_generation: int
    best_fitness: float
    mean_fitness: float
    worst_fitness: float
    compliance: float
    best_compliance: float
    rolled_back: bool = False
    mutated: int = 0
    offspring: int = 0
    elapsed_time: float = 0.0

    @property
    def is_final(self) -> bool:
        return self.generation >= self.max_generation

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump()


@dataclass(frozen=True)
class PopulationSnapshot:
    """Deep copy of a population, in slot order, taken after a generation."""

    generation: int
    compliance: float
    genes: tuple[np.ndarray, ...]
    fitness: tuple[float, ...]
    fitness_valid: tuple[bool, ...]

    @classmethod
    def capture(
        cls, population: Sequence[Chromosome], generation: int, compliance: float
    ) -> PopulationSnapshot:
        genes = []
        for chromosome in population:
            arr = chromosome.genes_array()
            arr.flags.writeable = False
            genes.append(arr)
        return cls(
            generation=generation,
            compliance=compliance,
            genes=tuple(genes),
            fitness=tuple(c.fitness for c in population),
            fitness_valid=tuple(c.fitness_valid for c in population),
        )

    def restore_into(self, population: Sequence[Chromosome]) -> None:
        """Write the snapshot back into existing slots."""
        if len(population) != len(self.genes):
            raise ValueError(
                f"Snapshot holds {len(self.genes)} chromosomes, population has {len(population)}"
            )
        for chromosome, genes, fitness, valid in zip(
            population, self.genes, self.fitness, self.fitness_valid
        ):
            chromosome.set_genes(genes)
            if valid:
                chromosome.assign_fitness(fitness)

    def matches(self, population: Sequence[Chromosome]) -> bool:
        return len(population) == len(self.genes) and all(
            np.array_equal(c.genes_array(), g) for c, g in zip(population, self.genes)
        )

    def __len__(self) -> int:
        return len(self.genes)
