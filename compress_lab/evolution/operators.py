"""
Evolutionary operators: selection, crossover, and mutation.

These operators drive the evolutionary search by:
- Ranking the population and keeping the best survivors
- Exchanging genes between copies of two parents
- Perturbing single genes with Gaussian noise

Every operator copies its inputs; parents are never modified.
"""

from typing import List, Tuple

import numpy as np

from .genome import Genome, generate_genome_id


# =============================================================================
# Selection Operators
# =============================================================================

def rank_population(population: List[Genome]) -> List[Genome]:
    """
    Sort the population ascending by fitness, in place.

    The sort is stable, so genomes with equal fitness keep their order.

    Returns:
        The same list, sorted
    """
    population.sort(key=lambda g: g.fitness)
    return population


def truncation_selection(population: List[Genome], n_survivors: int) -> List[Genome]:
    """
    Keep the n_survivors best genomes.

    Args:
        population: Population sorted ascending by fitness
        n_survivors: Number of genomes to keep

    Returns:
        The first n_survivors genomes (the same objects, not copies)
    """
    return population[:n_survivors]


# =============================================================================
# Crossover Operators
# =============================================================================

def swap_crossover(
    parent1: Genome,
    parent2: Genome,
    rng: np.random.Generator,
    generation: int = 0,
) -> Tuple[Genome, Genome]:
    """
    Single-gene exchange between copies of two parents.

    Draws an index a into the second child and an index b into the first,
    then swaps child2[a] with child1[b].

    Example:
        Parent 1: [1, 2, 3, 4]
        Parent 2: [5, 6, 7, 8]
        a = 0, b = 3:
        Child 1: [1, 2, 3, 5]
        Child 2: [4, 6, 7, 8]

    Args:
        parent1: First parent genome
        parent2: Second parent genome
        rng: Seeded random generator
        generation: Generation number for children

    Returns:
        Tuple of two child genomes
    """
    genes1 = parent1.genes.copy()
    genes2 = parent2.genes.copy()

    a = int(rng.integers(genes2.size))
    b = int(rng.integers(genes1.size))
    genes2[a], genes1[b] = genes1[b], genes2[a]

    parents = (parent1.genome_id, parent2.genome_id)
    child1 = Genome(
        genes=genes1,
        genome_id=generate_genome_id(generation, 'cross'),
        generation=generation,
        parents=parents,
    )
    child2 = Genome(
        genes=genes2,
        genome_id=generate_genome_id(generation, 'cross'),
        generation=generation,
        parents=parents,
    )
    return child1, child2


# =============================================================================
# Mutation Operators
# =============================================================================

def point_mutation(
    genome: Genome,
    rng: np.random.Generator,
    generation: int = 0,
    scale: float = 1.0,
) -> Genome:
    """
    Copy a genome and add Gaussian noise to one random gene.

    Args:
        genome: Genome to mutate (not modified)
        rng: Seeded random generator
        generation: Generation number for the child
        scale: Standard deviation of the noise

    Returns:
        New mutated genome
    """
    genes = genome.genes.copy()
    index = int(rng.integers(genes.size))
    genes[index] += scale * rng.standard_normal()

    return Genome(
        genes=genes,
        genome_id=generate_genome_id(generation, 'mut'),
        generation=generation,
        parents=(genome.genome_id, 'mutation'),
    )


def reproduce(
    survivors: List[Genome],
    rng: np.random.Generator,
    generation: int = 0,
    n_parents: int = 10,
    mutation_scale: float = 1.0,
) -> List[Genome]:
    """
    Produce three offspring per survivor.

    For survivor i: two crossover children of parents drawn uniformly from
    the n_parents best survivors, then one point mutation of survivor i.

    Args:
        survivors: Survivors sorted ascending by fitness
        rng: Seeded random generator
        generation: Generation number for children
        n_parents: Crossover parents are drawn from survivors[:n_parents]
        mutation_scale: Standard deviation of mutation noise

    Returns:
        Offspring list of length 3 * len(survivors)
    """
    pool = min(n_parents, len(survivors))
    offspring: List[Genome] = []
    for survivor in survivors:
        x, y = int(rng.integers(pool)), int(rng.integers(pool))
        child1, child2 = swap_crossover(survivors[x], survivors[y], rng, generation)
        offspring.extend([child1, child2])
        offspring.append(point_mutation(survivor, rng, generation, mutation_scale))
    return offspring
