"""
Complex-valued block autoencoder.

Two affine layers over stacked pixel blocks (one block per row):

    encoded = act(full @ layer1 + bias1)      act = sigmoid (training) or tanh (inference)
    decoded = |encoded @ layer2 + bias2|

The training objective is the mean squared magnitude of decoded - full.
"""

import numpy as np
from dataclasses import dataclass
from typing import Optional

from . import autodiff
from .autodiff import Node
from .parameters import ParameterSet
from .sampler import BlockSampler

# Size of one complex128 entry, used for the compressed size estimate
COMPLEX_BYTES = 16


@dataclass
class AutoencoderConfig:
    """Architecture of the block autoencoder."""
    block_size: int = 8
    hiddens: int = 5

    @property
    def net_width(self) -> int:
        """Values per block: 3 channels per pixel."""
        return 3 * self.block_size * self.block_size


class BlockAutoencoder:
    """
    Autoencoder over a fixed grid of image blocks.

    Owns the ParameterSet with the six named tensors:
    layer1, bias1, layer2, bias2 (trainable) and image, full (block batches).
    """

    def __init__(
        self,
        sampler: BlockSampler,
        config: Optional[AutoencoderConfig] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        self.config = config or AutoencoderConfig(block_size=sampler.block_size)
        if self.config.block_size != sampler.block_size:
            raise ValueError(
                f"Sampler block size {sampler.block_size} does not match "
                f"autoencoder block size {self.config.block_size}"
            )
        self.sampler = sampler
        self.rng = rng if rng is not None else sampler.rng

        width, hiddens = self.config.net_width, self.config.hiddens
        n_blocks = sampler.n_blocks

        self.params = ParameterSet()
        self.params.add('layer1', width, hiddens)
        self.params.add('bias1', hiddens)
        self.params.add('layer2', hiddens, width)
        self.params.add('bias2', width)
        self.params.add('image', n_blocks // 8, width, trainable=False)
        self.params.add('full', n_blocks, width, trainable=False)

        self.params.init_random(self.rng)
        self.resample_image()
        self.params['full'].value[...] = sampler.full_blocks()

    @property
    def n_blocks(self) -> int:
        return self.sampler.n_blocks

    def resample_image(self) -> None:
        """Refill the 'image' batch with randomly placed blocks."""
        image = self.params['image'].value
        self.sampler.sample_blocks(image.shape[0], out=image)

    def forward(self, activation: str = 'sigmoid') -> Node:
        """Build the graph for the reconstruction of the full batch."""
        full = Node.from_tensor(self.params['full'])
        layer1 = Node.from_tensor(self.params['layer1'])
        bias1 = Node.from_tensor(self.params['bias1'])
        layer2 = Node.from_tensor(self.params['layer2'])
        bias2 = Node.from_tensor(self.params['bias2'])

        encoded = autodiff.activate(autodiff.add(autodiff.matmul(full, layer1), bias1), activation)
        decoded = autodiff.absolute(autodiff.add(autodiff.matmul(encoded, layer2), bias2))
        return decoded

    def loss(self, decoded: Optional[Node] = None) -> Node:
        """Quadratic loss of the reconstruction against the full batch."""
        if decoded is None:
            decoded = self.forward()
        full = Node.from_tensor(self.params['full'])
        return autodiff.mean(autodiff.quadratic(decoded, full))

    def reconstruct(self) -> np.ndarray:
        """
        Inference pass with tanh in the encoder.

        Returns:
            Real array of shape (n_blocks, net_width); values are not clamped
        """
        return self.forward(activation='tanh').value.real.copy()

    def reconstruct_image(self) -> np.ndarray:
        """Inference reconstruction laid out as an (H, W, 3) array."""
        return self.sampler.blocks_to_image(self.reconstruct())

    def compressed_size_bytes(self) -> int:
        """Bytes for the decoder weights, its bias and the latent codes."""
        width, hiddens = self.config.net_width, self.config.hiddens
        return (hiddens * width + width + self.n_blocks * hiddens) * COMPLEX_BYTES
