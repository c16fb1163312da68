"""
Reverse-mode differentiation over complex-valued tensors.

A graph is built by calling the operator functions below on Node objects.
Each operator computes its forward value eagerly and records how to push an
adjoint back to its inputs. backward() walks the graph in reverse
topological order.

Adjoint convention: for a real loss L and a complex value z, the adjoint
stored on z is the conjugate cogradient 2 * dL/d(conj z). For real z this is
the ordinary derivative dL/dz, and for complex z the real and imaginary parts
are dL/dRe(z) and dL/dIm(z). Stepping z -= eta * adjoint therefore lowers L
for any small eta with a positive real part.

Rules used below:
- holomorphic y = f(z):     adj_z += adj_y * conj(f'(z))
- matrix product Y = A @ B: adj_A += adj_Y @ conj(B).T,  adj_B += conj(A).T @ adj_Y
- magnitude d = |z|:        adj_z += Re(adj_d) * z / |z|   (0 where z == 0)
"""

import numpy as np
from typing import Callable, List, Optional, Sequence

from .activations import get_activation
from .parameters import NamedTensor


class Node:
    """
    A value in the computation graph.

    Leaf nodes built from a NamedTensor share its value and gradient arrays,
    so backward() accumulates straight into the tensor's gradient.
    """

    def __init__(
        self,
        value: np.ndarray,
        parents: Sequence['Node'] = (),
        backward: Optional[Callable[[], None]] = None,
        grad: Optional[np.ndarray] = None,
        op: str = 'leaf',
    ):
        self.value = value
        self.grad = grad if grad is not None else np.zeros_like(value, dtype=complex)
        self.parents = tuple(parents)
        self._backward = backward
        self.op = op

    @classmethod
    def from_tensor(cls, tensor: NamedTensor) -> 'Node':
        return cls(tensor.value, grad=tensor.grad, op=tensor.name)

    @property
    def shape(self):
        return self.value.shape

    def __repr__(self) -> str:
        return f"Node(op={self.op}, shape={self.shape})"


def matmul(a: Node, b: Node) -> Node:
    """Matrix product a @ b."""
    out = Node(a.value @ b.value, parents=(a, b), op='matmul')

    def backward():
        a.grad += out.grad @ np.conj(b.value).T
        b.grad += np.conj(a.value).T @ out.grad

    out._backward = backward
    return out


def add(a: Node, b: Node) -> Node:
    """Sum a + b, broadcasting a bias vector across the rows of a."""
    out = Node(a.value + b.value, parents=(a, b), op='add')

    def backward():
        a.grad += _unbroadcast(out.grad, a.shape)
        b.grad += _unbroadcast(out.grad, b.shape)

    out._backward = backward
    return out


def activate(z: Node, name: str) -> Node:
    """Apply a holomorphic activation elementwise."""
    fn = get_activation(name)
    out = Node(fn(z.value), parents=(z,), op=name)

    def backward():
        z.grad += out.grad * np.conj(fn.grad(z.value))

    out._backward = backward
    return out


def sigmoid(z: Node) -> Node:
    return activate(z, 'sigmoid')


def tanh(z: Node) -> Node:
    return activate(z, 'tanh')


def absolute(z: Node) -> Node:
    """Elementwise complex magnitude, returned as a complex array with zero imaginary part."""
    magnitude = np.abs(z.value)
    out = Node(magnitude.astype(complex), parents=(z,), op='abs')

    def backward():
        phase = np.zeros_like(z.value, dtype=complex)
        nonzero = magnitude > 0
        phase[nonzero] = z.value[nonzero] / magnitude[nonzero]
        z.grad += out.grad.real * phase

    out._backward = backward
    return out


def quadratic(a: Node, b: Node) -> Node:
    """Elementwise squared magnitude |a - b|**2."""
    diff = a.value - b.value
    out = Node((np.abs(diff) ** 2).astype(complex), parents=(a, b), op='quadratic')

    def backward():
        g = 2 * out.grad.real * diff
        a.grad += g
        b.grad -= g

    out._backward = backward
    return out


def mean(z: Node) -> Node:
    """Mean over every element, as a scalar node."""
    n = z.value.size
    out = Node(np.array(np.mean(z.value), dtype=complex), parents=(z,), op='mean')

    def backward():
        z.grad += out.grad / n

    out._backward = backward
    return out


def backward(root: Node) -> complex:
    """
    Run reverse-mode differentiation from a scalar root.

    Seeds the root adjoint with 1 and propagates to every reachable node.
    Leaf gradients accumulate, so callers zero them between passes.

    Returns:
        The root's value
    """
    order = _topological_order(root)
    for node in order:
        if node.parents:
            node.grad[...] = 0
    root.grad[...] = 1
    for node in reversed(order):
        if node._backward is not None:
            node._backward()
    return complex(root.value)


def _topological_order(root: Node) -> List[Node]:
    order: List[Node] = []
    visited = set()
    stack = [(root, False)]
    while stack:
        node, expanded = stack.pop()
        if expanded:
            order.append(node)
            continue
        if id(node) in visited:
            continue
        visited.add(id(node))
        stack.append((node, True))
        for parent in node.parents:
            if id(parent) not in visited:
                stack.append((parent, False))
    return order


def _unbroadcast(grad: np.ndarray, shape) -> np.ndarray:
    """Sum a broadcast gradient back down to the given shape."""
    while grad.ndim > len(shape):
        grad = grad.sum(axis=0)
    for axis, size in enumerate(shape):
        if size == 1 and grad.shape[axis] != 1:
            grad = grad.sum(axis=axis, keepdims=True)
    return grad
