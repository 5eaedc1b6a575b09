"""Linear Kalman filter with a rotating-point tracking session.

Quick start::

    import numpy as np
    from lkf import KalmanFilter, constant_velocity_model

    kf = KalmanFilter(constant_velocity_model(process_noise=1e-5,
                                              measurement_noise=1e-1))
    kf.initialize(np.zeros(2), np.eye(2))
    kf.predict()
    kf.correct(np.array([0.12]))
"""

from .config import SessionConfig
from .core import KalmanFilter
from .exceptions import (
    DimensionMismatch,
    InvalidCovariance,
    LkfError,
    NotInitialized,
    SessionAborted,
    SingularInnovationCovariance,
)
from .model import LinearGaussianModel, constant_velocity_model
from .session import (
    InputEvent,
    ScriptedInput,
    SessionState,
    TrackedPoint,
    TrackingFrame,
    TrackingSession,
    circle_point,
    classify_key,
    is_reset_key,
    is_stop_key,
)
from .simulator import ProcessSimulator
from .version import __version__, __version_info__

__all__ = [
    "KalmanFilter",
    "LinearGaussianModel",
    "constant_velocity_model",
    "ProcessSimulator",
    "SessionConfig",
    "TrackingSession",
    "SessionState",
    "InputEvent",
    "TrackedPoint",
    "TrackingFrame",
    "ScriptedInput",
    "circle_point",
    "classify_key",
    "is_reset_key",
    "is_stop_key",
    "LkfError",
    "DimensionMismatch",
    "InvalidCovariance",
    "NotInitialized",
    "SingularInnovationCovariance",
    "SessionAborted",
    "__version__",
    "__version_info__",
]
