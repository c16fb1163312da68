"""
Main evolutionary optimization engine.

Orchestrates the evolution loop:
1. Initialize population
2. Evaluate fitness (parallel, joined before anything else happens)
3. Sort, report and truncate to the survivors
4. Stop when the generation budget is reached
5. Refill the population via crossover and mutation
6. Checkpoint progress
7. Repeat
"""

from dataclasses import dataclass
from typing import List, Dict, Any, Optional, Callable
from pathlib import Path
from datetime import datetime
from multiprocessing import Pool, cpu_count
import time

import numpy as np

from .genome import Genome
from .fitness import compute_fitness, normalized_fitness
from .operators import rank_population, truncation_selection, reproduce
from .population import create_initial_population
from .checkpoint import (
    EvolutionCheckpoint,
    EvolutionHistory,
    generate_run_id,
)


@dataclass
class EvolutionResult:
    """Results from an evolution run."""
    run_id: str
    generations_completed: int
    total_evaluations: int
    best_genome: Genome
    best_fitness: float
    history: EvolutionHistory
    final_population: List[Genome]
    runtime_seconds: float

    @property
    def best_normalized_fitness(self) -> float:
        """Best fitness as mean absolute error per pixel."""
        return self.best_fitness / (self.best_genome.side ** 2)

    def summary(self) -> str:
        """Generate summary string."""
        lines = [
            f"Evolution Run: {self.run_id}",
            f"Generations: {self.generations_completed}",
            f"Total evaluations: {self.total_evaluations}",
            f"Best fitness: {self.best_fitness:.4f}",
            f"Best fitness per pixel: {self.best_normalized_fitness:.6f}",
            f"Runtime: {self.runtime_seconds:.1f}s",
        ]
        return '\n'.join(lines)


@dataclass
class EvolutionConfig:
    """Configuration for evolution run."""
    # Population parameters
    population_size: int = 128
    n_survivors: int = 32
    n_parents: int = 10
    n_report: int = 10

    # Budget
    n_generations: int = 256

    # Target window side (power of two)
    target_size: int = 1024

    # Mutation
    mutation_scale: float = 1.0

    # Reproducibility
    seed: Optional[int] = 7

    # Checkpointing (0 disables periodic checkpoints)
    checkpoint_every: int = 0
    checkpoint_dir: Optional[str] = None

    # Parallelization
    n_workers: Optional[int] = None

    def __post_init__(self):
        # Each survivor yields three offspring, so the population refills to 4x
        if self.population_size != 4 * self.n_survivors:
            raise ValueError(
                f"population_size ({self.population_size}) must be 4 * n_survivors "
                f"({4 * self.n_survivors})"
            )
        if self.target_size < 2 or self.target_size & (self.target_size - 1):
            raise ValueError(f"target_size {self.target_size} must be a power of two >= 2")

    @property
    def n_factors(self) -> int:
        """Factors per genome: log2 of the target side."""
        return int(self.target_size).bit_length() - 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            'population_size': self.population_size,
            'n_survivors': self.n_survivors,
            'n_parents': self.n_parents,
            'n_report': self.n_report,
            'n_generations': self.n_generations,
            'target_size': self.target_size,
            'mutation_scale': self.mutation_scale,
            'seed': self.seed,
            'checkpoint_every': self.checkpoint_every,
            'n_workers': self.n_workers,
        }


class EvolutionEngine:
    """
    Main evolutionary optimization engine.

    Evolves Kronecker factor genomes toward a fixed grayscale target.
    """

    def __init__(
        self,
        config: EvolutionConfig,
        target: np.ndarray,
        run_id: Optional[str] = None,
    ):
        """
        Initialize evolution engine.

        Args:
            config: Evolution configuration
            target: (target_size, target_size) grayscale target in [0, 1]
            run_id: Optional run identifier (auto-generated if not provided)
        """
        target = np.array(target, dtype=float)
        if target.shape != (config.target_size, config.target_size):
            raise ValueError(
                f"Target shape {target.shape} does not match "
                f"target_size {config.target_size}"
            )

        self.config = config
        self.target = target
        self.target.setflags(write=False)
        self.run_id = run_id or generate_run_id()
        self.rng = np.random.default_rng(config.seed)

        self.population: List[Genome] = []
        self.history = EvolutionHistory()
        self.generation = 0
        self.total_evaluations = 0

        self.n_workers = config.n_workers or max(1, cpu_count() - 1)

        self.checkpoint_dir = Path(config.checkpoint_dir) if config.checkpoint_dir else None

    def initialize_population(self, seed: Optional[int] = None) -> None:
        """
        Create initial population.

        Args:
            seed: Reseed the engine's generator before drawing genomes
        """
        if seed is not None:
            self.rng = np.random.default_rng(seed)

        self.population = create_initial_population(
            population_size=self.config.population_size,
            n_factors=self.config.n_factors,
            rng=self.rng,
        )

        self.generation = 0
        self.total_evaluations = 0
        self.history = EvolutionHistory()

    def evaluate_population(self, pool: Optional[Pool] = None) -> int:
        """
        Score every genome in the population.

        With a pool, one task per genome is dispatched and this call blocks
        until all of them are done. pool.map returns results in submission
        order, so each fitness lands on its own genome.

        Returns:
            Number of evaluations performed
        """
        genes = [g.genes for g in self.population]
        if pool is None:
            fitnesses = [compute_fitness(g, self.target) for g in genes]
        else:
            fitnesses = pool.map(_evaluate_worker, genes)

        for genome, fitness in zip(self.population, fitnesses):
            genome.fitness = fitness

        self.total_evaluations += len(genes)
        return len(genes)

    def select_survivors(self) -> List[Genome]:
        """Sort the population and truncate it to the best n_survivors."""
        rank_population(self.population)
        self.population = truncation_selection(self.population, self.config.n_survivors)
        return self.population

    def reproduce(self) -> List[Genome]:
        """Append three offspring per survivor to the population."""
        offspring = reproduce(
            self.population,
            self.rng,
            generation=self.generation + 1,
            n_parents=self.config.n_parents,
            mutation_scale=self.config.mutation_scale,
        )
        self.population.extend(offspring)
        return offspring

    def top(self, n: Optional[int] = None) -> List[Genome]:
        """The n best genomes of the (sorted) population."""
        return self.population[:n or self.config.n_report]

    def run_generation(self, pool: Optional[Pool] = None, verbose: bool = False) -> bool:
        """
        Execute one generation of evolution.

        Returns:
            True if the generation budget has been reached and the run is over
        """
        # 1. Evaluate fitness
        self.evaluate_population(pool)

        # 2. Rank and record statistics
        rank_population(self.population)
        self.history.record_generation(self.generation, self.population)

        if verbose:
            print(self.generation)
            for i, genome in enumerate(self.top()):
                print(i, normalized_fitness(genome.fitness, self.target))

        # 3. Truncate to survivors
        self.select_survivors()

        # 4. Termination
        if self.generation >= self.config.n_generations:
            return True

        # 5. Reproduction
        self.reproduce()
        self.generation += 1
        return False

    def evolve(
        self,
        n_generations: Optional[int] = None,
        progress_callback: Optional[Callable[[int, int, Dict], None]] = None,
        verbose: bool = False,
    ) -> EvolutionResult:
        """
        Run full evolutionary optimization.

        Args:
            n_generations: Generation budget (defaults to config.n_generations)
            progress_callback: Optional callback(gen, total_gens, stats)
            verbose: Print the generation index and the best fitnesses

        Returns:
            EvolutionResult with the best genome and statistics
        """
        if n_generations is not None:
            self.config.n_generations = n_generations
        if not self.population:
            self.initialize_population()

        finished = False
        if self.history.generations and self.history.generations[-1].generation == self.generation:
            # Resumed from a checkpoint taken after selection: this generation is scored and truncated
            if self.generation >= self.config.n_generations:
                finished = True
            else:
                self.reproduce()
                self.generation += 1

        start_time = time.time()

        if not finished and self.n_workers > 1:
            with Pool(self.n_workers, initializer=_init_worker, initargs=(self.target,)) as pool:
                self._run(pool, progress_callback, verbose)
        elif not finished:
            self._run(None, progress_callback, verbose)

        runtime = time.time() - start_time

        if self.checkpoint_dir is not None and not finished:
            self.save_checkpoint()

        best = self.population[0]
        return EvolutionResult(
            run_id=self.run_id,
            generations_completed=self.generation,
            total_evaluations=self.total_evaluations,
            best_genome=best.copy(),
            best_fitness=best.fitness,
            history=self.history,
            final_population=self.population,
            runtime_seconds=runtime,
        )

    def _run(
        self,
        pool: Optional[Pool],
        progress_callback: Optional[Callable[[int, int, Dict], None]],
        verbose: bool,
    ) -> None:
        total = self.config.n_generations
        while True:
            done = self.run_generation(pool, verbose=verbose)

            if progress_callback:
                stats = {
                    'generation': self.history.generations[-1].generation,
                    'best_fitness': self.history.fitness_trajectory[-1],
                    'mean_fitness': self.history.generations[-1].mean_fitness,
                    'evaluations': self.total_evaluations,
                }
                progress_callback(stats['generation'], total, stats)

            if done:
                break

            if (
                self.checkpoint_dir is not None
                and self.config.checkpoint_every
                and self.generation % self.config.checkpoint_every == 0
            ):
                self.save_checkpoint()

    def save_checkpoint(self) -> Path:
        """Save current evolution state to checkpoint file."""
        checkpoint = EvolutionCheckpoint(
            run_id=self.run_id,
            generation=self.generation,
            population=[g.to_dict() for g in self.population],
            history=self.history.to_dict(),
            config=self.config.to_dict(),
            rng_state=self.rng.bit_generator.state,
            timestamp=datetime.now().isoformat(),
            total_evaluations=self.total_evaluations,
        )

        checkpoint_dir = self.checkpoint_dir or Path('data/evolution')
        checkpoint_path = checkpoint_dir / f"{self.run_id}_gen{self.generation:03d}.json"
        checkpoint.save(checkpoint_path)
        return checkpoint_path

    def load_checkpoint(self, checkpoint_path: Path) -> None:
        """Resume evolution from a checkpoint."""
        checkpoint = EvolutionCheckpoint.load(checkpoint_path)

        saved_size = checkpoint.config.get('target_size')
        if saved_size != self.config.target_size:
            raise ValueError(
                f"Checkpoint target_size {saved_size} does not match "
                f"config target_size {self.config.target_size}"
            )

        self.run_id = checkpoint.run_id
        self.generation = checkpoint.generation
        self.population = checkpoint.get_population()
        self.history = EvolutionHistory.from_dict(checkpoint.history)
        self.total_evaluations = checkpoint.total_evaluations
        self.rng.bit_generator.state = checkpoint.rng_state


# Per-process fitness target, installed by the pool initializer
_worker_target: Optional[np.ndarray] = None


def _init_worker(target: np.ndarray) -> None:
    global _worker_target
    _worker_target = target


def _evaluate_worker(genes: np.ndarray) -> float:
    """
    Worker function for parallel fitness evaluation.

    This is a module-level function to enable pickling for multiprocessing.
    """
    return compute_fitness(genes, _worker_target)
