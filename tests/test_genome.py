import numpy as np
import pytest

from circlevo.exceptions import GeneLengthMismatchError, GenomeError
from circlevo.genome import Chromosome, CircleGene, ScalarGene
from circlevo.genome.gene import clip_unit


def test_circle_gene_random_values_in_unit_range(rng):
    for _ in range(50):
        gene = CircleGene.random(rng)
        assert len(gene.values()) == CircleGene.WIDTH
        assert all(0.0 <= v <= 1.0 for v in gene.values())


def test_gene_from_values_clips_and_checks_arity():
    gene = CircleGene.from_values([-0.5, 0.2, 1.5, 0.3, float("nan"), 0.4, 1.0])
    assert gene.values() == (0.0, 0.2, 1.0, 0.3, 0.0, 0.4, 1.0)
    assert ScalarGene.from_values(2.0).value() == 1.0
    with pytest.raises(GeneLengthMismatchError):
        CircleGene.from_values([0.1, 0.2])
    with pytest.raises(GeneLengthMismatchError):
        ScalarGene.from_values([0.1, 0.2])


def test_clip_unit_handles_non_finite():
    assert clip_unit(float("inf")) == 0.0
    assert clip_unit(0.25) == 0.25


def test_chromosome_length_is_fixed(rng):
    chromosome = Chromosome(8, rng)
    assert len(chromosome) == 8
    assert chromosome.genes_array().shape == (8, CircleGene.WIDTH)
    chromosome.mutate(1.0, rng)
    assert len(chromosome) == 8


def test_chromosome_rejects_non_positive_length(rng):
    with pytest.raises(GenomeError):
        Chromosome(0, rng)


def test_chromosome_requires_rng_or_genes():
    with pytest.raises(GenomeError):
        Chromosome(3)


def test_set_genes_length_mismatch_is_rejected(rng):
    chromosome = Chromosome(4, rng)
    before = chromosome.genes_array()
    with pytest.raises(GeneLengthMismatchError):
        chromosome.set_genes(np.zeros((5, CircleGene.WIDTH)))
    with pytest.raises(GeneLengthMismatchError):
        chromosome.set_genes([CircleGene.random(rng)] * 3)
    with pytest.raises(GeneLengthMismatchError):
        chromosome.set_genes([ScalarGene(0.5)] * 4)
    np.testing.assert_array_equal(chromosome.genes_array(), before)


def test_set_genes_invalidates_fitness(rng):
    chromosome = Chromosome(3, rng)
    chromosome.assign_fitness(0.75)
    assert chromosome.fitness_valid
    chromosome.set_genes(np.full((3, CircleGene.WIDTH), 0.5))
    assert not chromosome.fitness_valid
    assert chromosome.get_gene(0) == CircleGene(*([0.5] * 7))


def test_mutation_rate_zero_never_changes_genes(rng):
    chromosome = Chromosome(6, rng)
    before = chromosome.genes_array()
    for _ in range(100):
        assert chromosome.mutate(0.0, rng) is False
    np.testing.assert_array_equal(chromosome.genes_array(), before)


def test_mutation_rate_one_replaces_exactly_one_gene(rng):
    chromosome = Chromosome(6, rng)
    before = chromosome.genes_array()
    assert chromosome.mutate(1.0, rng) is True
    changed = np.any(chromosome.genes_array() != before, axis=1)
    assert changed.sum() == 1


def test_assign_fitness_coerces_non_finite(rng):
    chromosome = Chromosome(2, rng)
    assert chromosome.assign_fitness(float("nan")) == 0.0
    assert chromosome.fitness == 0.0
    assert chromosome.fitness_valid


def test_scalar_chromosome_reads_as_circles(rng):
    chromosome = Chromosome(14, rng, gene_type=ScalarGene)
    circles = list(chromosome.circles())
    assert len(circles) == 2
    flat = chromosome.genes_array().ravel()
    assert circles[1].values() == tuple(flat[7:14])


def test_scalar_chromosome_with_partial_circle_fails(rng):
    chromosome = Chromosome(9, rng, gene_type=ScalarGene)
    with pytest.raises(GenomeError):
        list(chromosome.circles())
