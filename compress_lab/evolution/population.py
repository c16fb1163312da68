"""
Population management for the Kronecker search.

Handles:
- Initial population creation
- Sortedness checks
"""

from typing import List

import numpy as np

from .genome import Genome, create_random_genome


def create_initial_population(
    population_size: int,
    n_factors: int,
    rng: np.random.Generator,
) -> List[Genome]:
    """
    Create the initial population of random genomes.

    Args:
        population_size: Number of genomes
        n_factors: Factors per genome (log2 of the image side)
        rng: Seeded random generator

    Returns:
        List of unscored genomes
    """
    return [
        create_random_genome(n_factors, rng, generation=0)
        for _ in range(population_size)
    ]


def is_sorted(population: List[Genome]) -> bool:
    """True if fitness is non-decreasing along the population."""
    return all(
        population[i].fitness <= population[i + 1].fitness
        for i in range(len(population) - 1)
    )
