"""Complex block autoencoder and its gradient trainer."""

from .sampler import BlockSampler, normalize_pixels
from .parameters import NamedTensor, ParameterSet
from .activations import ACTIVATIONS, get_activation
from .autoencoder import BlockAutoencoder, AutoencoderConfig
from .training import Trainer, TrainingConfig, clip_gradients, train_autoencoder

__all__ = [
    'BlockSampler',
    'normalize_pixels',
    'NamedTensor',
    'ParameterSet',
    'ACTIVATIONS',
    'get_activation',
    'BlockAutoencoder',
    'AutoencoderConfig',
    'Trainer',
    'TrainingConfig',
    'clip_gradients',
    'train_autoencoder',
]
