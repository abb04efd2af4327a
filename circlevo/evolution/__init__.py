from circlevo.evolution.crossover import (
    CrossoverOperator,
    SinglePointCrossover,
    TwoPointCrossover,
    build_crossover,
)
from circlevo.evolution.parent_selector import (
    ParentSelector,
    RouletteParentSelector,
    UniformParentSelector,
    build_parent_selector,
)
from circlevo.evolution.selection import Selection, fitness_summary, select, split_index

__all__ = [
    "CrossoverOperator",
    "ParentSelector",
    "RouletteParentSelector",
    "Selection",
    "SinglePointCrossover",
    "TwoPointCrossover",
    "UniformParentSelector",
    "build_crossover",
    "build_parent_selector",
    "fitness_summary",
    "select",
    "split_index",
]
