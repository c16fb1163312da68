"""
Complex activation functions for the autoencoder.

Every activation here is holomorphic, so each one is described by its value
and its complex derivative. The computation graph uses the derivative to
propagate adjoints (see autodiff.py).

- sigmoid: used by the training objective
- tanh: used by the inference reconstruction pass
"""

import numpy as np
from typing import Callable, Dict


def sigmoid(z: np.ndarray) -> np.ndarray:
    """Complex logistic sigmoid 1 / (1 + exp(-z))."""
    z = np.asarray(z, dtype=complex)
    # Clip the real part to avoid overflow in exp
    z = np.clip(z.real, -500, 500) + 1j * z.imag
    return 1 / (1 + np.exp(-z))


def sigmoid_derivative(z: np.ndarray) -> np.ndarray:
    s = sigmoid(z)
    return s * (1 - s)


def tanh(z: np.ndarray) -> np.ndarray:
    """Complex hyperbolic tangent."""
    return np.tanh(np.asarray(z, dtype=complex))


def tanh_derivative(z: np.ndarray) -> np.ndarray:
    return 1 - tanh(z) ** 2


class Activation:
    """Wrapper for an activation function with its derivative."""

    def __init__(self, name: str, func: Callable, derivative: Callable, description: str):
        self.name = name
        self.func = func
        self.derivative = derivative
        self.description = description

    def __call__(self, z: np.ndarray) -> np.ndarray:
        return self.func(z)

    def grad(self, z: np.ndarray) -> np.ndarray:
        return self.derivative(z)

    def __repr__(self):
        return f"Activation({self.name})"


ACTIVATIONS: Dict[str, Activation] = {
    'sigmoid': Activation(
        name='sigmoid',
        func=sigmoid,
        derivative=sigmoid_derivative,
        description='Complex sigmoid - training objective encoder',
    ),
    'tanh': Activation(
        name='tanh',
        func=tanh,
        derivative=tanh_derivative,
        description='Complex tanh - inference reconstruction encoder',
    ),
}


def get_activation(name: str) -> Activation:
    """Get an activation function by name."""
    if name not in ACTIVATIONS:
        available = ', '.join(ACTIVATIONS.keys())
        raise ValueError(f"Unknown activation '{name}'. Available: {available}")
    return ACTIVATIONS[name]
