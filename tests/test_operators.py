import numpy as np
import pytest

from circlevo.evolution import (
    RouletteParentSelector,
    SinglePointCrossover,
    TwoPointCrossover,
    UniformParentSelector,
    build_crossover,
    build_parent_selector,
    fitness_summary,
    select,
    split_index,
)
from circlevo.evolution.engine import breed_offspring, mutate_population
from circlevo.genome import Chromosome, CircleGene


def _population(rng, fitness, length=6):
    population = []
    for value in fitness:
        chromosome = Chromosome(length, rng)
        chromosome.assign_fitness(value)
        population.append(chromosome)
    return population


@pytest.mark.parametrize(
    "rate,size,expected",
    [(0.5, 4, 2), (0.4, 100, 40), (0.25, 10, 3), (0.01, 10, 1), (1.0, 7, 7)],
)
def test_split_index(rate, size, expected):
    assert split_index(rate, size) == expected


def test_select_sorts_and_partitions_population(rng):
    population = _population(rng, [0.1, 0.9, 0.5, 0.3])
    selection = select(population, 0.5)

    assert [c.fitness for c in population] == [0.9, 0.5, 0.3, 0.1]
    assert [c.fitness for c in selection.best] == [0.9, 0.5]
    assert [c.fitness for c in selection.worst] == [0.3, 0.1]
    assert selection.sum_fitness == pytest.approx(1.4)
    assert selection.best_fitness == 0.9
    assert len(selection) == 4


def test_select_is_stable_for_equal_fitness(rng):
    population = _population(rng, [0.5, 0.5, 0.5])
    original = list(population)
    select(population, 0.5)
    assert all(a is b for a, b in zip(population, original))


def test_fitness_summary(rng):
    population = _population(rng, [0.2, 0.4, 0.9])
    best, mean, worst = fitness_summary(population)
    assert best == 0.9
    assert mean == pytest.approx(0.5)
    assert worst == 0.2


@pytest.mark.parametrize("selector", [RouletteParentSelector(), UniformParentSelector()])
def test_parents_are_distinct_when_pool_allows(rng, selector):
    parents = _population(rng, [0.9, 0.6, 0.3, 0.1])
    for _ in range(200):
        a, b = selector.pick_pair(parents, rng, sum(p.fitness for p in parents))
        assert a is not b


def test_single_parent_pool_pairs_with_itself(rng):
    parents = _population(rng, [0.4])
    a, b = RouletteParentSelector().pick_pair(parents, rng)
    assert a is b is parents[0]


def test_empty_parent_pool_is_rejected(rng):
    with pytest.raises(ValueError):
        UniformParentSelector().pick_pair([], rng)


def test_roulette_prefers_fitter_parents(rng):
    parents = _population(rng, [100.0, 1.0, 1.0])
    counts = {id(p): 0 for p in parents}
    for _ in range(300):
        a, _ = RouletteParentSelector().pick_pair(parents, rng, 102.0)
        counts[id(a)] += 1
    assert counts[id(parents[0])] > 250


def test_roulette_handles_negative_and_zero_fitness(rng):
    negative = _population(rng, [-2.0, -1.0, -0.5])
    zero = _population(rng, [0.0, 0.0])
    selector = RouletteParentSelector()
    for _ in range(50):
        a, b = selector.pick_pair(negative, rng)
        assert a is not b
        a, b = selector.pick_pair(zero, rng, 0.0)
        assert a is not b


@pytest.mark.parametrize("operator", [SinglePointCrossover(), TwoPointCrossover()])
@pytest.mark.parametrize("length", [1, 2, 3, 10])
def test_crossover_preserves_length_and_positions(rng, operator, length):
    a = np.zeros((length, CircleGene.WIDTH))
    b = np.ones((length, CircleGene.WIDTH))
    for _ in range(30):
        child = operator.splice(a, b, rng)
        assert child.shape == a.shape
        # every gene keeps its position and comes whole from one parent
        rows = child[:, 0]
        assert np.all(child == rows[:, None])
        assert set(np.unique(rows)) <= {0.0, 1.0}


def test_two_point_crossover_takes_a_middle_segment(rng):
    a = np.zeros((10, 1))
    b = np.ones((10, 1))
    for _ in range(30):
        child = TwoPointCrossover().splice(a, b, rng)[:, 0]
        assert child[0] == 0.0
        assert child[-1] == 0.0
        assert 1 <= child.sum() <= 8


def test_crossover_rejects_mismatched_parents(rng):
    with pytest.raises(ValueError):
        SinglePointCrossover().splice(np.zeros((3, 7)), np.zeros((4, 7)), rng)


def test_builders_reject_unknown_names():
    assert isinstance(build_crossover("two_point"), TwoPointCrossover)
    assert isinstance(build_parent_selector("uniform"), UniformParentSelector)
    with pytest.raises(ValueError):
        build_crossover("uniform")
    with pytest.raises(ValueError):
        build_parent_selector("tournament")


def test_offspring_genes_come_from_parents(rng):
    population = _population(rng, [0.8, 0.6, 0.2, 0.1], length=8)
    selection = select(population, 0.5)
    parent_genes = [p.genes_array() for p in selection.best]

    written = breed_offspring(
        selection,
        crossover=SinglePointCrossover(),
        parent_selector=RouletteParentSelector(),
        rng=rng,
    )

    assert written == 2
    for parent, genes in zip(selection.best, parent_genes):
        np.testing.assert_array_equal(parent.genes_array(), genes)
        assert parent.fitness_valid
    for child in selection.worst:
        assert not child.fitness_valid
        child_genes = child.genes_array()
        for i, row in enumerate(child_genes):
            assert any(np.array_equal(row, genes[i]) for genes in parent_genes)


def test_mutate_population_respects_skip(rng):
    population = _population(rng, [0.5, 0.4, 0.3])
    elite = population[0]
    before = elite.genes_array()
    mutated = mutate_population(population, 1.0, rng, skip=(elite,))
    assert mutated == 2
    np.testing.assert_array_equal(elite.genes_array(), before)
    assert mutate_population(population, 0.0, rng) == 0
