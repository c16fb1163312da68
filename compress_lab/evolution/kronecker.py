"""
Kronecker factorization model.

An image of side 2**n is approximated as

    factor[n-1] (x) ... (x) factor[2] (x) (factor[0] (x) factor[1])

where (x) is the Kronecker product and every factor is a 2x2 matrix taken
from a genome. The reconstruction is not clamped.
"""

import numpy as np
from typing import Union

from .genome import Genome, FACTOR_GENES


def kronecker_product(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """
    Kronecker product of two square matrices.

    Block (i, j) of the (pq)x(pq) result is a[i, j] * b, for a of shape (p, p)
    and b of shape (q, q). Flat inputs are reshaped to their square form.
    """
    a, b = _as_square(a), _as_square(b)
    p, q = a.shape[0], b.shape[0]
    return (a[:, None, :, None] * b[None, :, None, :]).reshape(p * q, p * q)


def chain(genes: Union[np.ndarray, Genome]) -> np.ndarray:
    """
    Reconstruct the (2**n, 2**n) image encoded by a genome's genes.

    Factors combine as f0 (x) f1, then f_k (x) result for k = 2 .. n-1.
    A single-factor genome reconstructs to that factor.
    """
    if isinstance(genes, Genome):
        genes = genes.genes
    genes = np.asarray(genes, dtype=float)
    if genes.size == 0 or genes.size % FACTOR_GENES:
        raise ValueError(f"Gene count {genes.size} is not a positive multiple of {FACTOR_GENES}")

    factors = genes.reshape(-1, 2, 2)
    if len(factors) == 1:
        return factors[0].copy()

    result = kronecker_product(factors[0], factors[1])
    for factor in factors[2:]:
        result = kronecker_product(factor, result)
    return result


def reconstruct(genes: Union[np.ndarray, Genome]) -> np.ndarray:
    """Flattened reconstruction buffer of length (2**n) ** 2."""
    return chain(genes).reshape(-1)


def _as_square(m: np.ndarray) -> np.ndarray:
    m = np.asarray(m, dtype=float)
    if m.ndim == 2 and m.shape[0] == m.shape[1]:
        return m
    side = int(round(np.sqrt(m.size)))
    if side * side != m.size:
        raise ValueError(f"Cannot reshape {m.size} values into a square matrix")
    return m.reshape(side, side)
