"""
Checkpointing for evolutionary runs.

Enables:
- Recording generation history
- Saving evolution state (including the random generator) for resumption
- Keeping the winning genome as the run's artifact
"""

from dataclasses import dataclass, asdict
from typing import List, Dict, Any, Optional
from pathlib import Path
from datetime import datetime
import json
import uuid

import numpy as np

from .genome import Genome


@dataclass
class EvolutionCheckpoint:
    """
    Checkpoint for resuming evolutionary runs.

    Contains all state needed to continue evolution from a saved point.
    """
    run_id: str
    generation: int
    population: List[Dict[str, Any]]  # Serialized genomes
    history: Dict[str, List[Any]]     # Generation-by-generation stats
    config: Dict[str, Any]            # Evolution configuration
    rng_state: Dict[str, Any]         # numpy bit generator state
    timestamp: str
    total_evaluations: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EvolutionCheckpoint':
        """Create from dictionary."""
        return cls(**data)

    def save(self, path: Path) -> None:
        """Save checkpoint to JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: Path) -> 'EvolutionCheckpoint':
        """Load checkpoint from JSON file."""
        with open(path, 'r') as f:
            data = json.load(f)
        return cls.from_dict(data)

    def get_population(self) -> List[Genome]:
        """Deserialize population to Genome objects."""
        return [Genome.from_dict(g) for g in self.population]


@dataclass
class GenerationStats:
    """Statistics for a single generation."""
    generation: int
    best_fitness: float
    mean_fitness: float
    worst_fitness: float
    std_fitness: float
    population_size: int
    timestamp: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class EvolutionHistory:
    """
    Tracks evolution progress over generations.

    Records per-generation statistics for analysis and reproducibility checks.
    """

    def __init__(self):
        self.generations: List[GenerationStats] = []
        self.fitness_trajectory: List[float] = []

    def record_generation(
        self,
        generation: int,
        population: List[Genome],
    ) -> GenerationStats:
        """
        Record statistics for a scored and sorted generation.

        Args:
            generation: Generation number
            population: Current population, sorted ascending by fitness

        Returns:
            GenerationStats for this generation
        """
        fitnesses = [g.fitness for g in population] or [0.0]

        stats = GenerationStats(
            generation=generation,
            best_fitness=float(min(fitnesses)),
            mean_fitness=float(np.mean(fitnesses)),
            worst_fitness=float(max(fitnesses)),
            std_fitness=float(np.std(fitnesses)),
            population_size=len(population),
            timestamp=datetime.now().isoformat(),
        )

        self.generations.append(stats)
        self.fitness_trajectory.append(stats.best_fitness)
        return stats

    def to_dict(self) -> Dict[str, Any]:
        """Convert history to dictionary for serialization."""
        return {
            'generations': [g.to_dict() for g in self.generations],
            'fitness_trajectory': self.fitness_trajectory,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'EvolutionHistory':
        """Restore history from dictionary."""
        history = cls()
        history.generations = [
            GenerationStats(**g) for g in data.get('generations', [])
        ]
        history.fitness_trajectory = data.get('fitness_trajectory', [])
        return history


def save_genome(genome: Genome, path: Path, metadata: Optional[Dict[str, Any]] = None) -> Path:
    """Write a single genome (e.g. the winner of a run) to JSON."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = genome.to_dict()
    if metadata:
        data['metadata'] = metadata
    with open(path, 'w') as f:
        json.dump(data, f, indent=2)
    return path


def load_genome(path: Path) -> Genome:
    """Read a genome written by save_genome."""
    with open(path, 'r') as f:
        data = json.load(f)
    return Genome.from_dict(data)


def generate_run_id() -> str:
    """Generate unique run identifier."""
    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    short_uuid = uuid.uuid4().hex[:6]
    return f"kron_{timestamp}_{short_uuid}"
