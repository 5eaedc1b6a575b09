"""Synthetic ground truth and measurement generator.

The simulator advances a true state with the model's dynamics plus sampled
process noise, and derives noisy measurements from it.  Noise is drawn
per component from independent zero-mean Gaussians whose variances are the
diagonals of the model's noise covariances.
"""

from __future__ import annotations

from typing import Optional, Tuple

import numpy as np

from .model import LinearGaussianModel
from .utils import validate_vector


class ProcessSimulator:
    """Seedable process and measurement noise source.

    Parameters
    ----------
    seed : int, optional
        Seed for :func:`numpy.random.default_rng`.
    rng : numpy.random.Generator, optional
        Existing generator to draw from (takes precedence over *seed*).

    Examples
    --------
    >>> sim = ProcessSimulator(seed=42)
    >>> model = constant_velocity_model()
    >>> x, w = sim.advance(np.array([0.0, 1.0]), model)
    >>> z = sim.measure(x, model)
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        self._rng = rng if rng is not None else np.random.default_rng(seed)

    @property
    def rng(self) -> np.random.Generator:
        """The underlying random generator."""
        return self._rng

    def _diagonal_noise(self, cov: np.ndarray) -> np.ndarray:
        return self._rng.normal(0.0, np.sqrt(np.diag(cov)))

    def advance(
        self,
        current_state: np.ndarray,
        model: LinearGaussianModel,
        control: Optional[np.ndarray] = None,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """Propagate *current_state* one step: ``F x + B u + w``.

        Returns
        -------
        tuple of numpy.ndarray
            ``(next_state, noise_sample)``.
        """
        x = validate_vector(current_state, model.state_dim, "state")
        noise = self._diagonal_noise(model.process_noise_cov)
        next_state = model.transition @ x + noise
        Bu = model.control_effect(control)
        if Bu is not None:
            next_state = next_state + Bu
        return next_state, noise

    def measure(self, state: np.ndarray, model: LinearGaussianModel) -> np.ndarray:
        """Return a noisy measurement ``H x + v`` of *state*."""
        x = validate_vector(state, model.state_dim, "state")
        return model.measurement_map @ x + self._diagonal_noise(
            model.measurement_noise_cov
        )

    def sample_prior_mean(self, mean: np.ndarray, std: float) -> np.ndarray:
        """Draw a prior state ``mean + N(0, std**2)`` per component."""
        mean = np.asarray(mean, dtype=np.float64).ravel()
        return mean + self._rng.normal(0.0, std, size=mean.shape[0])
