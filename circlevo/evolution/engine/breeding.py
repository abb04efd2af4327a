from __future__ import annotations

from collections.abc import Iterable

from loguru import logger
import numpy as np

from circlevo.evolution.crossover import CrossoverOperator
from circlevo.evolution.parent_selector import ParentSelector
from circlevo.evolution.selection import Selection
from circlevo.genome.chromosome import Chromosome

__all__ = ["breed_offspring", "mutate_population"]


def breed_offspring(
    selection: Selection,
    *,
    crossover: CrossoverOperator,
    parent_selector: ParentSelector,
    rng: np.random.Generator,
) -> int:
    """Overwrite every slot in ``selection.worst`` with a crossover offspring.

    Parents are drawn from ``selection.best`` only, which is left untouched, so
    elites carry over verbatim. Returns the number of slots rewritten.
    """
    if not selection.worst:
        return 0

    # best and worst never share a slot, so parent genes can be read up front
    parent_genes = {id(p): p.genes_array() for p in selection.best}

    for slot in selection.worst:
        parent_a, parent_b = parent_selector.pick_pair(
            selection.best, rng, selection.sum_fitness
        )
        offspring = crossover.splice(
            parent_genes[id(parent_a)], parent_genes[id(parent_b)], rng
        )
        slot.set_genes(offspring)

    logger.debug(
        "[Breeding] {} offspring from {} parent(s) via {}",
        len(selection.worst),
        len(selection.best),
        type(crossover).__name__,
    )
    return len(selection.worst)


def mutate_population(
    population: Iterable[Chromosome],
    mutation_rate: float,
    rng: np.random.Generator,
    *,
    skip: Iterable[Chromosome] = (),
) -> int:
    """Give every chromosome not in *skip* one chance to mutate a single gene."""
    skipped = {id(c) for c in skip}
    mutated = 0
    for chromosome in population:
        if id(chromosome) in skipped:
            continue
        if chromosome.mutate(mutation_rate, rng):
            mutated += 1
    return mutated
