"""Linear-Gaussian system model.

The model bundles the fixed matrices of a discrete linear system::

    x[k+1] = F x[k] + B u[k] + w[k],    w ~ N(0, Q)
    z[k]   = H x[k] + v[k],             v ~ N(0, R)

Example
-------
>>> model = constant_velocity_model(process_noise=1e-5, measurement_noise=1e-1)
>>> model.state_dim, model.meas_dim
(2, 1)
"""

from __future__ import annotations

from typing import Optional

import numpy as np

from .exceptions import DimensionMismatch
from .utils import readonly, validate_covariance, validate_matrix, validate_square


class LinearGaussianModel:
    """Immutable description of a linear system with Gaussian noise.

    Parameters
    ----------
    transition : array_like
        State transition matrix *F* (*N* x *N*).
    process_noise_cov : array_like
        Process noise covariance *Q* (*N* x *N*, symmetric PSD).
    measurement_map : array_like
        Measurement matrix *H* (*M* x *N*).
    measurement_noise_cov : array_like
        Measurement noise covariance *R* (*M* x *M*, symmetric PSD).
    control_map : array_like, optional
        Control input matrix *B* (*N* x *K*).  Without it the model takes
        no control input.

    Raises
    ------
    DimensionMismatch
        If any matrix has a shape inconsistent with *N*, *M* (or *K*).
    InvalidCovariance
        If a noise covariance is not symmetric, not finite, or has a
        negative variance.

    Examples
    --------
    >>> model = LinearGaussianModel(
    ...     transition=[[1.0, 1.0], [0.0, 1.0]],
    ...     process_noise_cov=1e-5 * np.eye(2),
    ...     measurement_map=[[1.0, 0.0]],
    ...     measurement_noise_cov=[[1e-1]],
    ... )
    """

    def __init__(
        self,
        transition: np.ndarray,
        process_noise_cov: np.ndarray,
        measurement_map: np.ndarray,
        measurement_noise_cov: np.ndarray,
        control_map: Optional[np.ndarray] = None,
    ) -> None:
        F = validate_square(transition, "transition")
        n = F.shape[0]

        H = validate_matrix(measurement_map, (None, n), "measurement_map")
        m = H.shape[0]

        Q = validate_covariance(process_noise_cov, n, "process_noise_cov")
        R = validate_covariance(measurement_noise_cov, m, "measurement_noise_cov")

        B = None
        if control_map is not None:
            B = validate_matrix(control_map, (n, None), "control_map")

        self._F = readonly(F)
        self._Q = readonly(Q)
        self._H = readonly(H)
        self._R = readonly(R)
        self._B = readonly(B) if B is not None else None

    # -- Properties ---------------------------------------------------------

    @property
    def transition(self) -> np.ndarray:
        """State transition matrix *F* (read-only)."""
        return self._F

    @property
    def process_noise_cov(self) -> np.ndarray:
        """Process noise covariance *Q* (read-only)."""
        return self._Q

    @property
    def measurement_map(self) -> np.ndarray:
        """Measurement matrix *H* (read-only)."""
        return self._H

    @property
    def measurement_noise_cov(self) -> np.ndarray:
        """Measurement noise covariance *R* (read-only)."""
        return self._R

    @property
    def control_map(self) -> Optional[np.ndarray]:
        """Control input matrix *B*, or ``None``."""
        return self._B

    @property
    def state_dim(self) -> int:
        """State vector dimension *N*."""
        return self._F.shape[0]

    @property
    def meas_dim(self) -> int:
        """Measurement vector dimension *M*."""
        return self._H.shape[0]

    @property
    def control_dim(self) -> int:
        """Control vector dimension *K* (0 without a control map)."""
        return 0 if self._B is None else self._B.shape[1]

    # -- Methods ------------------------------------------------------------

    def control_effect(self, control: Optional[np.ndarray]) -> Optional[np.ndarray]:
        """Return ``B @ u`` for a control vector, or ``None`` when *control* is
        ``None``.

        Raises
        ------
        DimensionMismatch
            If a control is given to a model without a control map, or the
            control has the wrong length.
        """
        if control is None:
            return None
        if self._B is None:
            raise DimensionMismatch("Model has no control_map; control must be None")
        u = np.asarray(control, dtype=np.float64).ravel()
        if u.shape[0] != self.control_dim:
            raise DimensionMismatch(
                f"control must have {self.control_dim} elements, got {u.shape[0]}"
            )
        return self._B @ u

    def __repr__(self) -> str:
        return (
            f"LinearGaussianModel(state_dim={self.state_dim}, "
            f"meas_dim={self.meas_dim}, control_dim={self.control_dim})"
        )


def constant_velocity_model(
    process_noise: float = 1e-5,
    measurement_noise: float = 1e-1,
    dt: float = 1.0,
) -> LinearGaussianModel:
    """Build the 1-D constant-velocity model ``[position, velocity]``.

    Only the position is observed.

    Parameters
    ----------
    process_noise : float
        Variance added to each state component per step.
    measurement_noise : float
        Variance of the position measurement.
    dt : float
        Time step between cycles.
    """
    return LinearGaussianModel(
        transition=np.array([[1.0, dt], [0.0, 1.0]]),
        process_noise_cov=process_noise * np.eye(2),
        measurement_map=np.array([[1.0, 0.0]]),
        measurement_noise_cov=np.array([[measurement_noise]]),
    )
