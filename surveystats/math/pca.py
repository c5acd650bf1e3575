"""
Eigen-decomposition and rotation for principal component analysis.

This module provides a power-iteration eigensolver with deflation and
Kaiser's varimax rotation.

The power iteration only approximates the dominant eigenpairs of the
remaining (deflated) matrix. It is accurate for well separated eigenvalues
but can be inaccurate for ill-conditioned or near-degenerate correlation
matrices, where two eigenvalues are close and 100 iterations are not enough
to separate their eigenvectors.
"""

import logging
import math
import numpy as np
from typing import List, NamedTuple, Optional, Tuple

from surveystats.errors import ShapeError
from surveystats.math.linalg import Matrix

logger = logging.getLogger(__name__)

POWER_ITERATIONS = 100
VARIMAX_MAX_ITER = 100
VARIMAX_TOLERANCE = 1e-6


class EigenDecomposition(NamedTuple):
    """Eigenvalues in descending order and the matching unit eigenvectors (as columns)."""
    values: np.ndarray
    vectors: Matrix


class VarimaxRotation(NamedTuple):
    """Rotated loadings, the orthogonal rotation matrix and the sweeps used."""
    loadings: Matrix
    rotation: Matrix
    iterations: int


def normalize_vector(v: np.ndarray) -> np.ndarray:
    """
    Normalize a vector to unit length.

    Args:
        v: Vector to normalize

    Returns:
        Normalized vector (the zero vector is returned unchanged)
    """
    norm = np.linalg.norm(v)
    if norm == 0:
        return v
    return v / norm


def basis_vector(n: int, k: int) -> np.ndarray:
    """The k-th standard basis vector e_k of length n."""
    v = np.zeros(n)
    v[k % n] = 1.0
    return v


def power_iteration(data: np.ndarray,
                    iters: int = POWER_ITERATIONS,
                    start_vector: Optional[np.ndarray] = None) -> Tuple[np.ndarray, float]:
    """
    Find the dominant eigenpair of a square matrix by power iteration.

    Runs a fixed number of iterations so the result is fully deterministic
    for a given start vector.

    Args:
        data: Square matrix
        iters: Number of iterations
        start_vector: Initial vector (defaults to e_0)

    Returns:
        Tuple of (unit eigenvector, eigenvalue as the Rayleigh quotient)
    """
    n = data.shape[0]
    vector = normalize_vector(basis_vector(n, 0) if start_vector is None
                              else np.asarray(start_vector, dtype=float))

    for _ in range(iters):
        product = data @ vector
        if np.linalg.norm(product) == 0:
            # vector lies in the null space: eigenvalue 0
            break
        vector = normalize_vector(product)

    eigval = float(vector @ (data @ vector))
    return vector, eigval


def eigen_decompose(matrix: Matrix,
                    n_comps: Optional[int] = None,
                    iters: int = POWER_ITERATIONS) -> EigenDecomposition:
    """
    Extract the n_comps dominant eigenpairs of a square matrix.

    The k-th eigenpair is found by power iteration seeded with e_k on the
    matrix deflated by all previous pairs (A - lambda * v v^T).

    Args:
        matrix: Square (symmetric) matrix
        n_comps: Number of eigenpairs to extract (defaults to all)
        iters: Power iterations per eigenpair

    Returns:
        EigenDecomposition with eigenvalues sorted in descending order

    Raises:
        ShapeError: if the matrix is not square
    """
    if not matrix.is_square or matrix.rows == 0:
        raise ShapeError(
            f"Eigen-decomposition requires a non-empty square matrix, got {matrix.rows}x{matrix.cols}"
        )

    n = matrix.rows
    n_comps = n if n_comps is None else min(n_comps, n)

    remaining = matrix.to_numpy()
    values: List[float] = []
    vectors: List[np.ndarray] = []

    for k in range(n_comps):
        vector, eigval = power_iteration(remaining, iters, basis_vector(n, k))

        # Sign convention: the components of each eigenvector sum to >= 0
        if np.sum(vector) < 0:
            vector = -vector

        values.append(eigval)
        vectors.append(vector)
        remaining = remaining - eigval * np.outer(vector, vector)

    order = sorted(range(len(values)), key=lambda i: -values[i])
    logger.debug(f"Extracted {n_comps} eigenpairs by power iteration ({iters} iterations each)")

    return EigenDecomposition(
        values=np.array([values[i] for i in order]),
        vectors=Matrix(np.column_stack([vectors[i] for i in order]))
    )


def _rotation_angle(x: np.ndarray, y: np.ndarray) -> float:
    """Kaiser's varimax angle for the plane of two loading columns."""
    p = len(x)
    u = x ** 2 - y ** 2
    v = 2.0 * x * y
    a = np.sum(u)
    b = np.sum(v)
    c = np.sum(u ** 2 - v ** 2)
    d = 2.0 * np.sum(u * v)
    numerator = d - 2.0 * a * b / p
    denominator = c - (a ** 2 - b ** 2) / p
    return 0.25 * math.atan2(numerator, denominator)


def varimax(loadings: Matrix,
            max_iter: int = VARIMAX_MAX_ITER,
            tol: float = VARIMAX_TOLERANCE,
            normalize: bool = True) -> VarimaxRotation:
    """
    Varimax rotation of a variables x components loading matrix.

    Each sweep rotates every pair of components in their plane by Kaiser's
    angle. Iteration stops after max_iter sweeps or when the Frobenius norm
    of the change in the accumulated rotation matrix drops below tol.

    Args:
        loadings: Loading matrix (variables x components)
        max_iter: Maximum number of sweeps
        tol: Convergence threshold on the rotation matrix change
        normalize: Apply Kaiser normalization (rows scaled by their communality)

    Returns:
        VarimaxRotation with the rotated loadings and the rotation matrix
    """
    n_vars, n_comps = loadings.shape
    if n_comps < 2:
        return VarimaxRotation(loadings=Matrix(loadings.to_numpy()),
                               rotation=Matrix.identity(n_comps), iterations=0)

    current = loadings.to_numpy()
    if normalize:
        h = np.sqrt(np.sum(current ** 2, axis=1))
        h[h == 0] = 1.0
        current = current / h[:, None]

    rotation = np.eye(n_comps)
    iterations = 0

    for iterations in range(1, max_iter + 1):
        previous = Matrix(rotation)
        for j in range(n_comps - 1):
            for k in range(j + 1, n_comps):
                phi = _rotation_angle(current[:, j], current[:, k])
                if phi == 0:
                    continue
                cos_phi, sin_phi = math.cos(phi), math.sin(phi)

                x, y = current[:, j].copy(), current[:, k].copy()
                current[:, j] = cos_phi * x + sin_phi * y
                current[:, k] = -sin_phi * x + cos_phi * y

                rx, ry = rotation[:, j].copy(), rotation[:, k].copy()
                rotation[:, j] = cos_phi * rx + sin_phi * ry
                rotation[:, k] = -sin_phi * rx + cos_phi * ry

        if Matrix(rotation).subtract(previous).frobenius_norm() < tol:
            break

    logger.debug(f"Varimax finished after {iterations} sweep(s)")

    rotated = loadings.multiply(Matrix(rotation))
    return VarimaxRotation(loadings=rotated, rotation=Matrix(rotation), iterations=iterations)
