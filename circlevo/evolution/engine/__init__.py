from circlevo.evolution.engine.breeding import breed_offspring, mutate_population
from circlevo.evolution.engine.config import RunConfig
from circlevo.evolution.engine.core import EvolutionEngine
from circlevo.evolution.engine.rollback import ComplianceCheck, ComplianceGuard
from circlevo.evolution.engine.state import (
    EngineStatus,
    GenerationResult,
    GenomeState,
    PopulationSnapshot,
)

__all__ = [
    "ComplianceCheck",
    "ComplianceGuard",
    "EngineStatus",
    "EvolutionEngine",
    "GenerationResult",
    "GenomeState",
    "PopulationSnapshot",
    "RunConfig",
    "breed_offspring",
    "mutate_population",
]
