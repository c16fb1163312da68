"""
Block sampling: cut an RGB image into fixed-size square blocks.

Blocks are flattened in (y, x, channel) order, so a block of size 8 becomes a
vector of 3 * 8 * 8 = 192 normalized values.
"""

import numpy as np
from typing import Optional


def normalize_pixels(pixels: np.ndarray) -> np.ndarray:
    """
    Scale channel samples to [0, 1].

    Integer arrays are divided by the largest value their dtype can hold
    (255 for uint8, 65535 for uint16). Float arrays are assumed normalized.
    """
    pixels = np.asarray(pixels)
    if np.issubdtype(pixels.dtype, np.integer):
        return pixels.astype(float) / np.iinfo(pixels.dtype).max
    return pixels.astype(float)


class BlockSampler:
    """
    Slices a block-aligned (H, W, 3) image into square blocks.

    Args:
        pixels: Image array of shape (H, W, 3); H and W multiples of block_size
        block_size: Side length of a block
        rng: Seeded generator used for random block placement
    """

    def __init__(
        self,
        pixels: np.ndarray,
        block_size: int = 8,
        rng: Optional[np.random.Generator] = None,
    ):
        pixels = normalize_pixels(pixels)
        if pixels.ndim != 3 or pixels.shape[2] != 3:
            raise ValueError(f"Expected an (H, W, 3) image, got shape {pixels.shape}")
        height, width = pixels.shape[:2]
        if height % block_size or width % block_size:
            raise ValueError(
                f"Image {width}x{height} is not aligned to block size {block_size}"
            )

        self.pixels = pixels
        self.block_size = block_size
        self.height = height
        self.width = width
        self.rng = rng if rng is not None else np.random.default_rng()

    @property
    def blocks_x(self) -> int:
        return self.width // self.block_size

    @property
    def blocks_y(self) -> int:
        return self.height // self.block_size

    @property
    def n_blocks(self) -> int:
        return self.blocks_x * self.blocks_y

    @property
    def block_width(self) -> int:
        """Values per flattened block."""
        return 3 * self.block_size * self.block_size

    def block_at(self, bx: int, by: int) -> np.ndarray:
        """Flattened block at block coordinates (bx, by)."""
        bs = self.block_size
        y, x = by * bs, bx * bs
        return self.pixels[y:y + bs, x:x + bs, :].reshape(-1)

    def full_blocks(self) -> np.ndarray:
        """Every block in raster order, shape (n_blocks, block_width)."""
        bs = self.block_size
        grid = self.pixels.reshape(self.blocks_y, bs, self.blocks_x, bs, 3)
        return grid.transpose(0, 2, 1, 3, 4).reshape(self.n_blocks, self.block_width)

    def sample_blocks(self, count: int, out: Optional[np.ndarray] = None) -> np.ndarray:
        """
        Draw count blocks at random block-aligned offsets.

        Args:
            count: Number of blocks to draw
            out: Optional (count, block_width) buffer filled in place

        Returns:
            Array of shape (count, block_width)
        """
        if out is None:
            out = np.empty((count, self.block_width))
        for n in range(count):
            bx = int(self.rng.integers(self.blocks_x))
            by = int(self.rng.integers(self.blocks_y))
            out[n] = self.block_at(bx, by)
        return out

    def blocks_to_image(self, blocks: np.ndarray) -> np.ndarray:
        """Lay raster-ordered blocks back out as an (H, W, 3) array."""
        blocks = np.asarray(blocks)
        if blocks.shape != (self.n_blocks, self.block_width):
            raise ValueError(
                f"Expected blocks of shape {(self.n_blocks, self.block_width)}, "
                f"got {blocks.shape}"
            )
        bs = self.block_size
        grid = blocks.reshape(self.blocks_y, self.blocks_x, bs, bs, 3)
        return grid.transpose(0, 2, 1, 3, 4).reshape(self.height, self.width, 3)
