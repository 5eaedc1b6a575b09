"""Tracking session configuration."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple, Union

import numpy as np

from .model import LinearGaussianModel, constant_velocity_model

Key = Union[int, str]

#: ESC (as a key code or a key name), ``q`` and ``Q``.
DEFAULT_STOP_KEYS: Tuple[Key, ...] = (27, "Escape", "q", "Q")


@dataclass(frozen=True)
class SessionConfig:
    """Parameters of a rotating-point tracking session.

    The state is ``[angle, angular_velocity]`` (radians, radians per cycle)
    and only the angle is measured.  Noise parameters are variances.
    """

    initial_angle: float = 0.0
    initial_velocity: float = 2.0 * math.pi / 6
    process_noise: float = 1e-5
    measurement_noise: float = 1e-1
    prior_covariance_scale: float = 1.0
    prior_mean: Optional[Tuple[float, float]] = None
    prior_mean_std: float = 0.1
    dt: float = 1.0
    seed: Optional[int] = None
    image_size: int = 800
    cycle_period: float = 1.0
    stop_keys: Tuple[Key, ...] = DEFAULT_STOP_KEYS

    state_dim = 2
    meas_dim = 1

    def __post_init__(self) -> None:
        for name in ("process_noise", "measurement_noise", "prior_covariance_scale",
                     "dt", "image_size"):
            value = getattr(self, name)
            if not value > 0:
                raise ValueError(f"{name} must be positive, got {value}")
        if self.prior_mean_std < 0:
            raise ValueError(
                f"prior_mean_std must be non-negative, got {self.prior_mean_std}"
            )
        if self.cycle_period < 0:
            raise ValueError(
                f"cycle_period must be non-negative, got {self.cycle_period}"
            )
        if self.prior_mean is not None and len(self.prior_mean) != self.state_dim:
            raise ValueError(
                f"prior_mean must have {self.state_dim} elements, "
                f"got {len(self.prior_mean)}"
            )

    def build_model(self) -> LinearGaussianModel:
        """Return the constant angular velocity model for this configuration."""
        return constant_velocity_model(
            process_noise=self.process_noise,
            measurement_noise=self.measurement_noise,
            dt=self.dt,
        )

    def initial_state(self) -> np.ndarray:
        """Ground-truth state at the start of a run."""
        return np.array([self.initial_angle, self.initial_velocity])

    def prior_covariance(self) -> np.ndarray:
        return self.prior_covariance_scale * np.eye(self.state_dim)

    @property
    def center(self) -> Tuple[float, float]:
        """Circle center in image coordinates."""
        return self.image_size * 0.5, self.image_size * 0.5

    @property
    def radius(self) -> float:
        return self.image_size / 3.0
