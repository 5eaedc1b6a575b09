"""Array validation and small dense linear-algebra helpers.

All helpers work on float64 numpy arrays.  Shape problems are reported as
:class:`~lkf.exceptions.DimensionMismatch` (a ``ValueError``).
"""

from __future__ import annotations

from typing import Optional, Tuple

import numpy as np

from .exceptions import DimensionMismatch, InvalidCovariance, SingularInnovationCovariance

#: Default threshold below which a Cholesky pivot is treated as zero.
SINGULAR_EPS = 1e-12

# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def validate_square(arr: np.ndarray, name: str = "matrix") -> np.ndarray:
    """Ensure *arr* is a square 2-D float64 array.

    Parameters
    ----------
    arr : array_like
        Input to validate.
    name : str
        Human-readable name for error messages.

    Returns
    -------
    numpy.ndarray
        Validated array (may be a new object if dtype conversion occurred).

    Raises
    ------
    DimensionMismatch
        If the array is not 2-D, not square, or empty.

    Examples
    --------
    >>> validate_square(np.eye(2), "transition").shape
    (2, 2)
    """
    arr = np.asarray(arr, dtype=np.float64)
    if arr.ndim != 2 or arr.shape[0] != arr.shape[1] or arr.shape[0] == 0:
        raise DimensionMismatch(
            f"{name} must be a non-empty square 2-D array, got shape {arr.shape}"
        )
    return arr


def validate_matrix(
    arr: np.ndarray,
    shape: Tuple[Optional[int], Optional[int]],
    name: str = "matrix",
) -> np.ndarray:
    """Ensure *arr* is a 2-D float64 array with the expected shape.

    A ``None`` entry in *shape* accepts any non-zero size along that axis.
    """
    arr = np.asarray(arr, dtype=np.float64)
    if arr.ndim != 2 or 0 in arr.shape:
        raise DimensionMismatch(
            f"{name} must be a non-empty 2-D array, got shape {arr.shape}"
        )
    for axis, expected in enumerate(shape):
        if expected is not None and arr.shape[axis] != expected:
            want = tuple("*" if s is None else s for s in shape)
            raise DimensionMismatch(
                f"{name} must have shape {want}, got {arr.shape}"
            )
    return arr


def validate_vector(arr: np.ndarray, length: int, name: str = "vector") -> np.ndarray:
    """Ensure *arr* is a 1-D float64 array of the given length.

    Column vectors (``(length, 1)``) and scalars (for ``length == 1``) are
    flattened.

    Parameters
    ----------
    arr : array_like
        Input to validate.
    length : int
        Expected number of elements.
    name : str
        Human-readable name for error messages.

    Returns
    -------
    numpy.ndarray
        Validated 1-D array.

    Raises
    ------
    DimensionMismatch
        If the number of elements does not match.
    """
    arr = np.asarray(arr, dtype=np.float64).ravel()
    if arr.shape[0] != length:
        raise DimensionMismatch(
            f"{name} must have {length} elements, got {arr.shape[0]}"
        )
    return arr


def validate_covariance(
    arr: np.ndarray, size: int, name: str = "covariance", atol: float = 1e-9
) -> np.ndarray:
    """Ensure *arr* is a finite, symmetric positive semi-definite
    ``size x size`` matrix.

    Raises
    ------
    DimensionMismatch
        If the shape is wrong.
    InvalidCovariance
        If the matrix is not finite, has a negative diagonal entry, is not
        symmetric, or is not positive semi-definite.
    """
    arr = validate_square(arr, name)
    if arr.shape[0] != size:
        raise DimensionMismatch(
            f"{name} shape {arr.shape} does not match dimension {size}"
        )
    if not np.all(np.isfinite(arr)):
        raise InvalidCovariance(f"{name} contains non-finite values")
    if np.any(np.diag(arr) < 0.0):
        raise InvalidCovariance(
            f"{name} has negative variances on its diagonal: {np.diag(arr)}"
        )
    if not np.allclose(arr, arr.T, atol=atol, rtol=0.0):
        raise InvalidCovariance(f"{name} must be symmetric")
    eigenvalues = np.linalg.eigvalsh(arr)
    if eigenvalues.min() < -atol:
        raise InvalidCovariance(
            f"{name} must be positive semi-definite, got eigenvalues {eigenvalues}"
        )
    return arr


def readonly(arr: np.ndarray) -> np.ndarray:
    """Return a read-only copy of *arr*."""
    out = np.array(arr, dtype=np.float64, copy=True)
    out.setflags(write=False)
    return out


# ---------------------------------------------------------------------------
# Linear algebra
# ---------------------------------------------------------------------------


def symmetrize(P: np.ndarray) -> np.ndarray:
    """Return ``(P + P.T) / 2``."""
    return 0.5 * (P + P.T)


def cholesky_solve(S: np.ndarray, B: np.ndarray, eps: float = SINGULAR_EPS) -> np.ndarray:
    """Solve ``S @ X = B`` for a symmetric positive-definite *S*.

    *S* is factorised as ``L @ L.T``.  For a 1x1 *S* this is a guarded
    division.

    Parameters
    ----------
    S : numpy.ndarray
        Symmetric positive-definite ``m x m`` matrix.
    B : numpy.ndarray
        Right-hand side, ``m x k``.
    eps : float
        Pivots with ``L[i, i] ** 2 <= eps`` are treated as zero.

    Returns
    -------
    numpy.ndarray
        Solution ``X`` of shape ``m x k``.

    Raises
    ------
    SingularInnovationCovariance
        If *S* is not positive definite or is numerically singular.

    Examples
    --------
    >>> cholesky_solve(np.array([[4.0]]), np.array([[2.0, 8.0]]))
    array([[0.5, 2. ]])
    """
    try:
        L = np.linalg.cholesky(S)
    except np.linalg.LinAlgError as exc:
        raise SingularInnovationCovariance(
            f"Innovation covariance is not positive definite: {exc}"
        ) from exc

    pivots = np.diag(L)
    if not np.all(np.isfinite(pivots)) or np.any(pivots * pivots <= eps):
        raise SingularInnovationCovariance(
            f"Innovation covariance is singular (pivots {pivots ** 2}, eps={eps})"
        )

    # Forward then back substitution: L Y = B, L.T X = Y
    Y = np.linalg.solve(L, B)
    return np.linalg.solve(L.T, Y)
