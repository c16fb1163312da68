"""
Fitness evaluation for the Kronecker image search.

Fitness is the L1 distance between a genome's reconstruction and a grayscale
target, summed over every pixel of the target window. Lower is better.
"""

import numpy as np
from typing import Union, TYPE_CHECKING

from ..core.sampler import normalize_pixels
from .kronecker import chain

if TYPE_CHECKING:
    from .genome import Genome


def grayscale_target(pixels: np.ndarray, size: int = 1024) -> np.ndarray:
    """
    Build the fitness target from an RGB image.

    Each pixel is the mean of its three normalized channels. The result is
    the top-left size x size window.

    Args:
        pixels: (H, W, 3) image; integer dtypes are scaled by their max value
        size: Side of the square window (a power of two)

    Returns:
        Float array of shape (size, size) with values in [0, 1]
    """
    if size < 2 or size & (size - 1):
        raise ValueError(f"Target size {size} must be a power of two >= 2")
    pixels = normalize_pixels(pixels)
    if pixels.ndim == 3 and pixels.shape[2] == 3:
        gray = pixels.mean(axis=2)
    elif pixels.ndim == 2:
        gray = pixels
    else:
        raise ValueError(f"Expected an (H, W) or (H, W, 3) image, got shape {pixels.shape}")
    if gray.shape[0] < size or gray.shape[1] < size:
        raise ValueError(f"Image {gray.shape[1]}x{gray.shape[0]} is smaller than the {size}x{size} window")
    return np.ascontiguousarray(gray[:size, :size])


def compute_fitness(genome: Union['Genome', np.ndarray], target: np.ndarray) -> float:
    """
    L1 distance between a genome's reconstruction and the target.

    Args:
        genome: Genome (or raw gene array) whose side matches the target
        target: (N, N) grayscale target in normalized units

    Returns:
        Sum of absolute pixel differences
    """
    genes = genome.genes if hasattr(genome, 'genes') else genome
    image = chain(genes)
    if image.shape != target.shape:
        raise ValueError(
            f"Reconstruction shape {image.shape} does not match target shape {target.shape}"
        )
    return float(np.sum(np.abs(image - target)))


def normalized_fitness(fitness: float, target: np.ndarray) -> float:
    """Fitness as mean absolute error per pixel."""
    return fitness / target.size
