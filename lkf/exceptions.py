"""Exception hierarchy shared by the model, filter and session layers."""


class LkfError(RuntimeError):
    """Base exception for linear Kalman filter errors."""


class DimensionMismatch(LkfError, ValueError):
    """Raised when array shapes are inconsistent with the declared dimensions."""


class InvalidCovariance(DimensionMismatch):
    """Raised when a noise covariance is not a valid (symmetric, PSD) matrix."""


class NotInitialized(LkfError):
    """Raised when the filter is used before ``initialize()``."""


class SingularInnovationCovariance(LkfError, ArithmeticError):
    """Raised when the innovation covariance cannot be inverted."""


class SessionAborted(LkfError):
    """Raised when a tracking session stops because of a filter error.

    Attributes
    ----------
    cycle : int
        Cycle number (1-based, counted over the whole session) that failed.
    error : LkfError
        The underlying error.
    """

    def __init__(self, cycle: int, error: Exception) -> None:
        self.cycle = cycle
        self.error = error
        super().__init__(
            f"Tracking aborted at cycle {cycle}: {type(error).__name__}: {error}"
        )
