"""Linear Kalman filter built on a :class:`~lkf.model.LinearGaussianModel`.

Example
-------
>>> import numpy as np
>>> from lkf import KalmanFilter, constant_velocity_model
>>> kf = KalmanFilter(constant_velocity_model())
>>> kf.initialize([0.0, 1.0], np.eye(2))
KalmanFilter(state_dim=2, meas_dim=1, initialized=True)
>>> kf.predict()
array([1., 1.])
>>> kf.correct(np.array([1.5])).round(3)
array([1.476, 1.238])
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

import numpy as np

from .exceptions import (
    DimensionMismatch,
    InvalidCovariance,
    LkfError,
    NotInitialized,
    SessionAborted,
    SingularInnovationCovariance,
)
from .model import LinearGaussianModel
from .utils import SINGULAR_EPS, cholesky_solve, symmetrize, validate_square, validate_vector

__all__ = [
    "KalmanFilter",
    "LkfError",
    "DimensionMismatch",
    "InvalidCovariance",
    "NotInitialized",
    "SingularInnovationCovariance",
    "SessionAborted",
]

_LOG = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Main class
# ---------------------------------------------------------------------------


class KalmanFilter:
    """Linear Kalman filter.

    The filter owns the state estimate *x* and its covariance *P*; the model
    matrices are read from *model* and never modified.

    Parameters
    ----------
    model : LinearGaussianModel
        System and measurement model.
    singular_eps : float, optional
        Threshold used to declare the innovation covariance singular
        (default ``1e-12``).

    Raises
    ------
    TypeError
        If *model* is not a :class:`LinearGaussianModel`.

    Examples
    --------
    >>> kf = KalmanFilter(constant_velocity_model())
    >>> kf.initialize([0.0, 1.0], np.eye(2))
    KalmanFilter(state_dim=2, meas_dim=1, initialized=True)
    """

    def __init__(
        self,
        model: LinearGaussianModel,
        singular_eps: float = SINGULAR_EPS,
    ) -> None:
        if not isinstance(model, LinearGaussianModel):
            raise TypeError(
                f"model must be a LinearGaussianModel, got {type(model).__name__}"
            )
        self._model = model
        self._singular_eps = singular_eps

        self._x: Optional[np.ndarray] = None
        self._P: Optional[np.ndarray] = None

        # Diagnostics from the last correct step
        self._innovation: Optional[np.ndarray] = None
        self._innovation_cov: Optional[np.ndarray] = None
        self._gain: Optional[np.ndarray] = None

    # -- Properties ---------------------------------------------------------

    @property
    def model(self) -> LinearGaussianModel:
        """The (immutable) system model."""
        return self._model

    @property
    def state_dim(self) -> int:
        """State vector dimension *N*."""
        return self._model.state_dim

    @property
    def meas_dim(self) -> int:
        """Measurement vector dimension *M*."""
        return self._model.meas_dim

    @property
    def initialized(self) -> bool:
        """``True`` once :meth:`initialize` has been called."""
        return self._x is not None

    @property
    def x(self) -> np.ndarray:
        """Current state estimate as a 1-D numpy array of length *N*.

        Examples
        --------
        >>> kf = KalmanFilter(constant_velocity_model()).initialize([0.0, 1.0], np.eye(2))
        >>> kf.x
        array([0., 1.])
        """
        self._require_initialized("x")
        return self._x.copy()

    @property
    def P(self) -> np.ndarray:
        """Current estimate covariance (*N* x *N*)."""
        self._require_initialized("P")
        return self._P.copy()

    @property
    def innovation(self) -> Optional[np.ndarray]:
        """Innovation ``z - H x`` of the last correct step."""
        return None if self._innovation is None else self._innovation.copy()

    @property
    def innovation_covariance(self) -> Optional[np.ndarray]:
        """Innovation covariance ``H P H.T + R`` of the last correct step."""
        return None if self._innovation_cov is None else self._innovation_cov.copy()

    @property
    def gain(self) -> Optional[np.ndarray]:
        """Kalman gain (*N* x *M*) of the last correct step."""
        return None if self._gain is None else self._gain.copy()

    # -- Lifecycle ----------------------------------------------------------

    def initialize(
        self,
        prior_mean: np.ndarray,
        prior_covariance: np.ndarray,
    ) -> "KalmanFilter":
        """Set the prior state estimate and covariance.

        May be called again at any time to reset the filter.

        Parameters
        ----------
        prior_mean : array_like
            Prior state, length *N*.
        prior_covariance : array_like
            Prior covariance, *N* x *N*.

        Returns
        -------
        KalmanFilter
            *self*, for method chaining.

        Raises
        ------
        DimensionMismatch
            If the shapes do not match the model's state dimension.
        """
        n = self.state_dim
        x = validate_vector(prior_mean, n, "prior_mean")
        P = validate_square(prior_covariance, "prior_covariance")
        if P.shape[0] != n:
            raise DimensionMismatch(
                f"prior_covariance shape {P.shape} does not match state_dim={n}"
            )

        self._x = x.copy()
        self._P = symmetrize(P)
        self._innovation = None
        self._innovation_cov = None
        self._gain = None
        return self

    def reset(self, init_std: float = 1.0) -> "KalmanFilter":
        """Reset state to zero and covariance to ``init_std**2 * I``.

        Parameters
        ----------
        init_std : float
            Initial standard deviation (must be > 0).

        Returns
        -------
        KalmanFilter
            *self*, for method chaining.

        Examples
        --------
        >>> kf = KalmanFilter(constant_velocity_model())
        >>> kf.reset(0.5).P
        array([[0.25, 0.  ],
               [0.  , 0.25]])
        """
        if not init_std > 0.0:
            raise ValueError(f"init_std must be positive, got {init_std}")
        n = self.state_dim
        return self.initialize(np.zeros(n), init_std**2 * np.eye(n))

    # -- Transactional steps -------------------------------------------------

    def predict_to(
        self, control: Optional[np.ndarray] = None
    ) -> Tuple[np.ndarray, np.ndarray]:
        """Compute the prediction step without modifying the filter.

        Returns
        -------
        tuple of numpy.ndarray
            ``(x_prior, P_prior)``.

        Raises
        ------
        NotInitialized
            If :meth:`initialize` has not been called.
        DimensionMismatch
            If *control* does not fit the model's control map.
        """
        self._require_initialized("predict")
        F = self._model.transition
        Q = self._model.process_noise_cov

        x = F @ self._x
        Bu = self._model.control_effect(control)
        if Bu is not None:
            x = x + Bu
        P = symmetrize(F @ self._P @ F.T + Q)
        return x, P

    def correct_to(
        self, measurement: np.ndarray
    ) -> Tuple[np.ndarray, np.ndarray]:
        """Compute the correction step without modifying the filter.

        Returns
        -------
        tuple of numpy.ndarray
            ``(x_post, P_post)``.

        Raises
        ------
        NotInitialized
            If :meth:`initialize` has not been called.
        DimensionMismatch
            If *measurement* has the wrong length.
        SingularInnovationCovariance
            If ``H P H.T + R`` cannot be inverted.
        """
        x, P, _, _, _ = self._correction(measurement)
        return x, P

    # -- Methods ------------------------------------------------------------

    def predict(self, control: Optional[np.ndarray] = None) -> np.ndarray:
        """Run the prediction step.

        Propagates the state estimate and covariance through the process
        model::

            x <- F x + B u
            P <- F P F.T + Q

        Calling it repeatedly without :meth:`correct` coasts the estimate
        forward.

        Parameters
        ----------
        control : array_like, optional
            Control vector *u* (only for models with a control map).

        Returns
        -------
        numpy.ndarray
            Copy of the a-priori state estimate.

        Raises
        ------
        NotInitialized
            If :meth:`initialize` has not been called.

        Examples
        --------
        >>> kf = KalmanFilter(constant_velocity_model()).initialize([0.0, 1.0], np.eye(2))
        >>> kf.predict()
        array([1., 1.])
        """
        self._x, self._P = self.predict_to(control)
        _LOG.debug("predict: x=%s trace(P)=%.6g", self._x, np.trace(self._P))
        return self._x.copy()

    def correct(self, measurement: np.ndarray) -> np.ndarray:
        """Run the correction step.

        Fuses a measurement into the estimate::

            y = z - H x
            S = H P H.T + R
            K = P H.T S^-1
            x <- x + K y
            P <- (I - K H) P

        The filter is left untouched if the step fails.

        Parameters
        ----------
        measurement : array_like
            Measurement vector of length *M*.

        Returns
        -------
        numpy.ndarray
            Copy of the a-posteriori state estimate.

        Raises
        ------
        NotInitialized
            If :meth:`initialize` has not been called.
        DimensionMismatch
            If *measurement* has the wrong length.
        SingularInnovationCovariance
            If the innovation covariance is numerically singular.

        Examples
        --------
        >>> kf = KalmanFilter(constant_velocity_model()).initialize([0.0, 1.0], np.eye(2))
        >>> kf.predict()
        array([1., 1.])
        >>> kf.correct(np.array([1.5])).round(3)
        array([1.476, 1.238])
        """
        x, P, y, S, K = self._correction(measurement)
        self._x, self._P = x, P
        self._innovation, self._innovation_cov, self._gain = y, S, K
        _LOG.debug(
            "correct: innovation=%s gain=%s trace(P)=%.6g",
            y, K.ravel(), np.trace(P),
        )
        return self._x.copy()

    # -- Internals ----------------------------------------------------------

    def _correction(self, measurement: np.ndarray):
        self._require_initialized("correct")
        z = validate_vector(measurement, self.meas_dim, "measurement")
        H = self._model.measurement_map
        R = self._model.measurement_noise_cov

        y = z - H @ self._x
        PHt = self._P @ H.T
        S = symmetrize(H @ PHt + R)
        # K = P H^T S^-1  <=>  K^T = S^-1 H P  (S, P symmetric)
        K = cholesky_solve(S, PHt.T, eps=self._singular_eps).T

        x = self._x + K @ y
        P = symmetrize((np.eye(self.state_dim) - K @ H) @ self._P)
        return x, P, y, S, K

    def _require_initialized(self, what: str) -> None:
        if self._x is None:
            raise NotInitialized(
                f"{what}: filter is not initialized; call initialize() first"
            )

    # -- Representation -----------------------------------------------------

    def __repr__(self) -> str:
        return (
            f"KalmanFilter(state_dim={self.state_dim}, "
            f"meas_dim={self.meas_dim}, initialized={self.initialized})"
        )
