from circlevo.genome.chromosome import Chromosome
from circlevo.genome.gene import CircleGene, Gene, ScalarGene

__all__ = ["Chromosome", "CircleGene", "Gene", "ScalarGene"]
