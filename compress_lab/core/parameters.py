"""
Parameter store for the complex autoencoder.

A ParameterSet owns named complex tensors. Each tensor carries a value array
and a gradient accumulator of the same shape. The store is created once per
training run; gradients are zeroed in place every iteration so the arrays
(and any graph leaves sharing them) stay valid.
"""

import numpy as np
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple


@dataclass
class NamedTensor:
    """A named complex tensor with its gradient accumulator."""
    name: str
    value: np.ndarray
    grad: np.ndarray
    trainable: bool = True

    @property
    def shape(self) -> Tuple[int, ...]:
        return self.value.shape

    @property
    def size(self) -> int:
        return self.value.size

    def zero_grad(self) -> None:
        self.grad[...] = 0


def global_norm(tensors: List[NamedTensor]) -> float:
    """Euclidean norm over every gradient entry of the given tensors."""
    total = 0.0
    for tensor in tensors:
        total += float(np.sum(np.abs(tensor.grad) ** 2))
    return float(np.sqrt(total))


class ParameterSet:
    """
    Ordered collection of named complex tensors.

    Trainable tensors (weights and biases) are updated by the trainer; data
    tensors (batches of blocks) are only ever refilled.
    """

    def __init__(self):
        self._tensors: Dict[str, NamedTensor] = {}

    def add(self, name: str, *shape: int, trainable: bool = True) -> NamedTensor:
        """Register a zero-initialized tensor of the given shape."""
        if name in self._tensors:
            raise ValueError(f"Tensor '{name}' already exists")
        tensor = NamedTensor(
            name=name,
            value=np.zeros(shape, dtype=complex),
            grad=np.zeros(shape, dtype=complex),
            trainable=trainable,
        )
        self._tensors[name] = tensor
        return tensor

    def get(self, name: str) -> NamedTensor:
        if name not in self._tensors:
            available = ', '.join(self._tensors.keys())
            raise KeyError(f"Unknown tensor '{name}'. Available: {available}")
        return self._tensors[name]

    def __getitem__(self, name: str) -> NamedTensor:
        return self.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._tensors

    def __iter__(self):
        return iter(self._tensors.values())

    def __len__(self) -> int:
        return len(self._tensors)

    @property
    def names(self) -> List[str]:
        return list(self._tensors.keys())

    @property
    def trainable(self) -> List[NamedTensor]:
        """Weights and biases, in registration order."""
        return [t for t in self._tensors.values() if t.trainable]

    def zero_grad(self) -> None:
        for tensor in self._tensors.values():
            tensor.zero_grad()

    def init_random(self, rng: np.random.Generator, names: Optional[List[str]] = None) -> None:
        """
        Initialize trainable tensors.

        Matrices get complex entries with real and imaginary parts uniform in
        [-1, 1), scaled by 1/sqrt(rows). Vectors (biases) are zeroed.
        """
        targets = [self.get(n) for n in names] if names else self.trainable
        for tensor in targets:
            if tensor.value.ndim == 1:
                tensor.value[...] = 0
                continue
            rows = tensor.shape[0]
            real = rng.uniform(-1, 1, size=tensor.shape)
            imag = rng.uniform(-1, 1, size=tensor.shape)
            tensor.value[...] = (real + 1j * imag) / np.sqrt(rows)
