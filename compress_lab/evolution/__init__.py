"""
Evolutionary search for Kronecker image factorizations.

An image of side 2**n is approximated by the Kronecker chain of n 2x2
factor matrices. A genetic algorithm searches the factor entries.

Key components:
- Genome: Flat vector of factor entries plus its fitness
- kronecker: Reconstruction of an image from a genome
- fitness: L1 distance to a grayscale target
- Operators: Truncation selection, gene-swap crossover, point mutation
- EvolutionEngine: Main evolutionary optimization loop

Example usage:
    from compress_lab.evolution import EvolutionEngine, EvolutionConfig, grayscale_target

    target = grayscale_target(pixels, size=1024)
    config = EvolutionConfig(n_generations=256, n_workers=8)

    engine = EvolutionEngine(config, target)
    engine.initialize_population()
    result = engine.evolve()

    print(f"Best fitness: {result.best_fitness:.3f}")
"""

from .genome import Genome, create_random_genome, constant_genome
from .kronecker import kronecker_product, chain, reconstruct
from .fitness import compute_fitness, grayscale_target, normalized_fitness
from .operators import (
    rank_population,
    truncation_selection,
    swap_crossover,
    point_mutation,
    reproduce,
)
from .population import (
    create_initial_population,
    is_sorted,
)
from .engine import EvolutionEngine, EvolutionConfig, EvolutionResult
from .checkpoint import EvolutionCheckpoint, EvolutionHistory, save_genome, load_genome

__all__ = [
    # Core classes
    'Genome',
    'EvolutionEngine',
    'EvolutionConfig',
    'EvolutionResult',
    'EvolutionCheckpoint',
    'EvolutionHistory',
    # Genome helpers
    'create_random_genome',
    'constant_genome',
    'save_genome',
    'load_genome',
    # Kronecker model
    'kronecker_product',
    'chain',
    'reconstruct',
    # Fitness
    'compute_fitness',
    'grayscale_target',
    'normalized_fitness',
    # Operators
    'rank_population',
    'truncation_selection',
    'swap_crossover',
    'point_mutation',
    'reproduce',
    # Population
    'create_initial_population',
    'is_sorted',
]
