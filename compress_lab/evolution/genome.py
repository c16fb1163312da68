"""
Genome representation for the Kronecker image search.

A Genome is a flat vector of 4 * n_factors real genes. Every consecutive run
of four genes is a 2x2 factor matrix in row-major order; the Kronecker chain
of the factors reconstructs a (2**n_factors) x (2**n_factors) image.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple, Any
import uuid

import numpy as np

# Genes per factor: one flattened 2x2 matrix
FACTOR_GENES = 4


def generate_genome_id(generation: int = 0, prefix: str = '') -> str:
    """Generate a unique genome identifier."""
    short_uuid = uuid.uuid4().hex[:8]
    if prefix:
        return f"{prefix}_gen{generation}_{short_uuid}"
    return f"gen{generation}_{short_uuid}"


@dataclass
class Genome:
    """
    Candidate Kronecker factorization.

    Attributes:
        genes: Flat float array of length 4 * n_factors
        fitness: L1 reconstruction error (lower is better, 0.0 until scored)
        genome_id: Unique identifier for this genome
        generation: Generation number when this genome was created
        parents: Tuple of parent genome IDs (for lineage tracking)
    """
    genes: np.ndarray
    fitness: float = 0.0
    genome_id: str = ''
    generation: int = 0
    parents: Tuple[str, str] = ('random', 'random')

    def __post_init__(self):
        """Validate genome consistency."""
        self.genes = np.array(self.genes, dtype=float).reshape(-1)
        if self.genes.size == 0 or self.genes.size % FACTOR_GENES:
            raise ValueError(
                f"Genome length {self.genes.size} must be a positive multiple of {FACTOR_GENES}"
            )
        if not self.genome_id:
            self.genome_id = generate_genome_id(self.generation)

    def __len__(self) -> int:
        return self.genes.size

    @property
    def n_factors(self) -> int:
        """Number of 2x2 factor matrices."""
        return self.genes.size // FACTOR_GENES

    @property
    def side(self) -> int:
        """Side length of the reconstructed image."""
        return 2 ** self.n_factors

    def factors(self) -> np.ndarray:
        """Factor matrices, shape (n_factors, 2, 2)."""
        return self.genes.reshape(self.n_factors, 2, 2)

    def copy(self) -> 'Genome':
        """Create a deep copy of this genome."""
        return Genome(
            genes=self.genes.copy(),
            fitness=self.fitness,
            genome_id=self.genome_id,
            generation=self.generation,
            parents=self.parents,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {
            'genes': self.genes.tolist(),
            'fitness': float(self.fitness),
            'genome_id': self.genome_id,
            'generation': self.generation,
            'parents': list(self.parents),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Genome':
        """Create Genome from dictionary (e.g., loaded from JSON)."""
        return cls(
            genes=np.array(data['genes'], dtype=float),
            fitness=data.get('fitness', 0.0),
            genome_id=data['genome_id'],
            generation=data.get('generation', 0),
            parents=tuple(data.get('parents', ('random', 'random'))),
        )

    def __repr__(self) -> str:
        return (
            f"Genome(id={self.genome_id}, factors={self.n_factors}, "
            f"gen={self.generation}, fitness={self.fitness:.4f})"
        )


def create_random_genome(
    n_factors: int,
    rng: np.random.Generator,
    generation: int = 0,
    prefix: str = 'rand',
) -> Genome:
    """
    Create a genome with standard normal genes.

    Args:
        n_factors: Number of 2x2 factors (log2 of the image side)
        rng: Seeded random generator
        generation: Generation number for this genome
        prefix: Prefix for genome ID

    Returns:
        A randomly initialized Genome
    """
    return Genome(
        genes=rng.standard_normal(FACTOR_GENES * n_factors),
        genome_id=generate_genome_id(generation, prefix),
        generation=generation,
        parents=('random', 'random'),
    )


def constant_genome(n_factors: int, value: float, generation: int = 0) -> Genome:
    """
    Genome whose reconstruction is the constant image `value`.

    Every gene is set to value ** (1 / n_factors), so each pixel (a product of
    one entry per factor) equals value. value must be non-negative.
    """
    if value < 0:
        raise ValueError(f"Constant {value} must be non-negative")
    gene = float(value) ** (1.0 / n_factors)
    return Genome(
        genes=np.full(FACTOR_GENES * n_factors, gene),
        genome_id=generate_genome_id(generation, 'const'),
        generation=generation,
        parents=('seed', 'seed'),
    )
