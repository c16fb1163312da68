"""
Gradient training for the complex block autoencoder.

Each iteration refreshes the 'image' batch, rebuilds the graph, runs reverse
differentiation, clips the global gradient norm and takes a fixed complex
step on the weights and biases. Training always runs the configured number
of iterations; there is no early stopping.
"""

import time
import numpy as np
from typing import Dict, List, Optional, Callable, Tuple
from dataclasses import dataclass

from .autodiff import backward
from .autoencoder import BlockAutoencoder, AutoencoderConfig
from .parameters import NamedTensor, global_norm
from .sampler import BlockSampler


@dataclass
class TrainingConfig:
    """Configuration for training."""
    iterations: int = 2048
    eta: complex = 0.0001 + 0.0001j
    max_grad_norm: float = 1.0
    block_size: int = 8
    hiddens: int = 5
    seed: int = 7
    record_every: int = 1


def clip_gradients(tensors: List[NamedTensor], max_norm: float = 1.0) -> Tuple[float, float]:
    """
    Global gradient-norm clipping.

    If the Euclidean norm over all gradient entries exceeds max_norm, every
    gradient is scaled by max_norm / norm in place. Otherwise the gradients
    are left untouched.

    Returns:
        (norm before clipping, scaling applied)
    """
    norm = global_norm(tensors)

    scaling = 1.0
    if norm > max_norm:
        scaling = max_norm / norm
        for tensor in tensors:
            tensor.grad *= scaling
    return norm, scaling


class Trainer:
    """
    Fixed-step trainer for a BlockAutoencoder.

    The update is param -= eta * grad for every trainable tensor; the block
    batches are never updated, only resampled.
    """

    def __init__(self, model: BlockAutoencoder, config: Optional[TrainingConfig] = None):
        self.model = model
        self.config = config or TrainingConfig()
        self.history: Dict[str, List] = {}
        self.iteration = 0

    def step(self) -> Tuple[complex, float]:
        """
        Run one training iteration.

        Returns:
            (loss value, gradient norm before clipping)
        """
        params = self.model.params

        self.model.resample_image()
        params.zero_grad()

        cost = self.model.loss()
        total = backward(cost)

        norm, _ = clip_gradients(params.trainable, self.config.max_grad_norm)

        eta = self.config.eta
        for tensor in params.trainable:
            tensor.value -= eta * tensor.grad

        self.iteration += 1
        return total, norm

    def train(
        self,
        callbacks: Optional[List[Callable]] = None,
        verbose: bool = False,
    ) -> Dict[str, List]:
        """
        Train for config.iterations steps.

        Args:
            callbacks: Functions called as callback(iteration, history) each step
            verbose: Print "iteration loss elapsed" every step

        Returns:
            Training history with 'iteration', 'loss', 'grad_norm' and 'elapsed'
        """
        callbacks = callbacks or []

        self.history = {
            'iteration': [],
            'loss': [],
            'grad_norm': [],
            'elapsed': [],
        }

        for i in range(self.config.iterations):
            start = time.time()
            total, norm = self.step()
            elapsed = time.time() - start
            loss = abs(total)

            if i % self.config.record_every == 0 or i == self.config.iterations - 1:
                self.history['iteration'].append(i)
                self.history['loss'].append(float(loss))
                self.history['grad_norm'].append(norm)
                self.history['elapsed'].append(elapsed)

            if verbose:
                print(i, loss, f"{elapsed * 1000:.3f}ms")

            for callback in callbacks:
                callback(i, self.history)

        return self.history


def train_autoencoder(
    pixels: np.ndarray,
    config: Optional[TrainingConfig] = None,
    verbose: bool = False,
) -> Tuple[BlockAutoencoder, Dict[str, List]]:
    """Convenience function: build an autoencoder for an image and train it."""
    config = config or TrainingConfig()
    rng = np.random.default_rng(config.seed)
    sampler = BlockSampler(pixels, block_size=config.block_size, rng=rng)
    model = BlockAutoencoder(
        sampler,
        AutoencoderConfig(block_size=config.block_size, hiddens=config.hiddens),
        rng=rng,
    )
    trainer = Trainer(model, config)
    history = trainer.train(verbose=verbose)
    return model, history
