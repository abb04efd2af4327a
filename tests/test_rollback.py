import numpy as np

from circlevo.evolution.engine import ComplianceGuard, EvolutionEngine, PopulationSnapshot
from circlevo.genome import Chromosome
from circlevo.rendering import NumpyRasterizer

from .conftest import ScriptedMetric


def test_regression_restores_best_snapshot(small_config, gradient_reference):
    metric = ScriptedMetric([0.5, 0.7, 0.6, 0.8])
    engine = EvolutionEngine(small_config, gradient_reference, compliance_metric=metric)

    engine.step()
    engine.step()
    snapshot = engine.best_snapshot
    assert snapshot.generation == 2
    assert snapshot.matches(engine.population)

    result = engine.step()
    assert result.rolled_back
    assert result.compliance == 0.6
    assert result.best_compliance == 0.7
    assert engine.best_snapshot is snapshot
    assert snapshot.matches(engine.population)
    assert engine.state.rollbacks == 1
    assert engine.state.best_generation == 2
    assert engine.state.compliance == 0.7

    result = engine.step()
    assert not result.rolled_back
    assert engine.best_snapshot.generation == 4
    assert engine.state.compliance == 0.8


def test_equal_compliance_is_adopted(small_config, gradient_reference):
    metric = ScriptedMetric([0.5, 0.5])
    engine = EvolutionEngine(small_config, gradient_reference, compliance_metric=metric)
    engine.step()
    result = engine.step()
    assert not result.rolled_back
    assert engine.best_snapshot.generation == 2


def test_disabled_guard_never_rolls_back(small_config, gradient_reference):
    config = small_config.model_copy(update={"elitist_rollback": False})
    metric = ScriptedMetric([0.9, 0.1, 0.1, 0.1])
    engine = EvolutionEngine(config, gradient_reference, compliance_metric=metric)
    engine.run()
    assert engine.state.rollbacks == 0
    assert engine.best_snapshot is None
    assert engine.state.compliance == 0.9


def test_snapshot_is_a_deep_copy(rng):
    population = [Chromosome(3, rng) for _ in range(2)]
    population[0].assign_fitness(0.4)
    snapshot = PopulationSnapshot.capture(population, generation=5, compliance=0.3)

    original = [c.genes_array() for c in population]
    for chromosome in population:
        chromosome.mutate(1.0, rng)
    assert not snapshot.matches(population)

    snapshot.restore_into(population)
    for chromosome, genes in zip(population, original):
        np.testing.assert_array_equal(chromosome.genes_array(), genes)
    assert population[0].fitness_valid and population[0].fitness == 0.4
    assert not population[1].fitness_valid
    assert len(snapshot) == 2


def test_guard_measures_with_its_own_metric(rng, gradient_reference):
    metric = ScriptedMetric([0.25])
    guard = ComplianceGuard(metric, NumpyRasterizer(2, 5))
    population = [Chromosome(2, rng)]
    check = guard.check(population, gradient_reference, generation=1)
    assert check.compliance == 0.25
    assert metric.calls == 1
    assert guard.best_compliance == 0.25
    guard.reset()
    assert guard.best_snapshot is None
    assert guard.best_compliance == 0.0
