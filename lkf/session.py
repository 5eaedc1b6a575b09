"""Rotating-point tracking session.

A session drives a :class:`~lkf.simulator.ProcessSimulator` and a
:class:`~lkf.core.KalmanFilter` cycle by cycle.  Each cycle it hands a
:class:`TrackingFrame` to a *renderer* callable and asks an *input source*
callable for a key.  Any key except a stop key restarts the run; a stop key
ends the session.

Example
-------
>>> from lkf import SessionConfig, ScriptedInput, TrackingSession
>>> frames = []
>>> session = TrackingSession(
...     SessionConfig(seed=1),
...     renderer=frames.append,
...     input_source=ScriptedInput([None, None, "q"]),
... )
>>> session.run()
3
"""

from __future__ import annotations

import enum
import logging
import math
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, Optional, Sequence, Tuple, Union

import numpy as np

from .config import DEFAULT_STOP_KEYS, Key, SessionConfig
from .core import KalmanFilter
from .exceptions import LkfError, SessionAborted
from .model import LinearGaussianModel
from .simulator import ProcessSimulator

_LOG = logging.getLogger(__name__)

Renderer = Callable[["TrackingFrame"], None]
InputSource = Callable[[float], Optional[Key]]

# ---------------------------------------------------------------------------
# Frames
# ---------------------------------------------------------------------------


def circle_point(
    center: Tuple[float, float], radius: float, angle: float
) -> Tuple[float, float]:
    """Project *angle* onto a circle in image coordinates (y grows downward)."""
    return (
        center[0] + math.cos(angle) * radius,
        center[1] - math.sin(angle) * radius,
    )


@dataclass(frozen=True)
class TrackedPoint:
    """One point handed to the renderer."""

    role: str  # "true", "predicted", "corrected" or "measured"
    angle: float
    x: float
    y: float


@dataclass(frozen=True)
class TrackingFrame:
    """Everything the renderer receives for one cycle."""

    cycle: int
    true: TrackedPoint
    predicted: TrackedPoint
    corrected: TrackedPoint
    measured: TrackedPoint

    def points(self) -> Iterator[TrackedPoint]:
        yield self.true
        yield self.predicted
        yield self.corrected
        yield self.measured


# ---------------------------------------------------------------------------
# Input
# ---------------------------------------------------------------------------


class InputEvent(enum.Enum):
    NONE = "none"
    RESET = "reset"
    STOP = "stop"


class SessionState(enum.Enum):
    RUNNING = "running"
    RESET_PENDING = "reset_pending"
    STOPPED = "stopped"


def _key_code(key: Key) -> Union[int, str]:
    # Single characters compare by code point, key names ("Escape") by name.
    if isinstance(key, str):
        return ord(key) if len(key) == 1 else key.lower()
    return int(key)


def _is_no_key(key: Optional[Key]) -> bool:
    # Polling APIs report "no key" as None or a negative code.
    if isinstance(key, str):
        return key == ""
    return key is None or int(key) < 0


def is_stop_key(key: Optional[Key], stop_keys: Sequence[Key] = DEFAULT_STOP_KEYS) -> bool:
    """``True`` if *key* ends the session."""
    if _is_no_key(key):
        return False
    return _key_code(key) in {_key_code(k) for k in stop_keys}


def is_reset_key(key: Optional[Key], stop_keys: Sequence[Key] = DEFAULT_STOP_KEYS) -> bool:
    """``True`` if *key* restarts the tracking (any key but a stop key)."""
    return not _is_no_key(key) and not is_stop_key(key, stop_keys)


def classify_key(
    key: Optional[Key], stop_keys: Sequence[Key] = DEFAULT_STOP_KEYS
) -> InputEvent:
    """Map a raw key to the :class:`InputEvent` it triggers."""
    if is_stop_key(key, stop_keys):
        return InputEvent.STOP
    if is_reset_key(key, stop_keys):
        return InputEvent.RESET
    return InputEvent.NONE


class ScriptedInput:
    """Input source replaying a fixed key sequence, then ``None`` forever.

    Examples
    --------
    >>> keys = ScriptedInput([None, "r", 27])
    >>> [keys(1.0) for _ in range(4)]
    [None, 'r', 27, None]
    """

    def __init__(self, keys: Iterable[Optional[Key]] = ()) -> None:
        self._keys = iter(keys)
        self.polls = 0

    def __call__(self, timeout: float) -> Optional[Key]:
        self.polls += 1
        return next(self._keys, None)


def _no_render(frame: TrackingFrame) -> None:
    pass


def _no_input(timeout: float) -> Optional[Key]:
    return None


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class TrackingSession:
    """Predict/measure/correct loop with reset and stop handling.

    Parameters
    ----------
    config : SessionConfig, optional
        Session parameters (defaults to the reference scenario).
    renderer : callable, optional
        ``renderer(frame)`` called once per cycle with a :class:`TrackingFrame`.
    input_source : callable, optional
        ``input_source(timeout) -> key or None`` polled once per cycle with
        ``config.cycle_period`` as timeout.

    Raises
    ------
    SessionAborted
        From :meth:`step` / :meth:`run` when model construction or the filter
        fails.  The session is stopped first.
    """

    def __init__(
        self,
        config: Optional[SessionConfig] = None,
        renderer: Optional[Renderer] = None,
        input_source: Optional[InputSource] = None,
    ) -> None:
        self._config = config if config is not None else SessionConfig()
        self._renderer = renderer if renderer is not None else _no_render
        self._input = input_source if input_source is not None else _no_input

        self._state: Optional[SessionState] = None
        self._cycle = 0
        self._run_cycle = 0
        self._resets = 0

        self._model: Optional[LinearGaussianModel] = None
        self._simulator: Optional[ProcessSimulator] = None
        self._filter: Optional[KalmanFilter] = None
        self._true_state: Optional[np.ndarray] = None

    # -- Properties ---------------------------------------------------------

    @property
    def config(self) -> SessionConfig:
        return self._config

    @property
    def state(self) -> Optional[SessionState]:
        """Current :class:`SessionState` (``None`` before :meth:`start`)."""
        return self._state

    @property
    def cycle(self) -> int:
        """Cycles executed since the session was created."""
        return self._cycle

    @property
    def run_cycle(self) -> int:
        """Cycles executed since the last (re)start."""
        return self._run_cycle

    @property
    def resets(self) -> int:
        return self._resets

    @property
    def model(self) -> Optional[LinearGaussianModel]:
        return self._model

    @property
    def filter(self) -> Optional[KalmanFilter]:
        return self._filter

    @property
    def true_state(self) -> Optional[np.ndarray]:
        """Copy of the current ground-truth state."""
        return None if self._true_state is None else self._true_state.copy()

    # -- Lifecycle ----------------------------------------------------------

    def start(self) -> "TrackingSession":
        """Build a fresh model, simulator and filter and enter ``RUNNING``.

        The simulator is seeded from ``config.seed`` every time, so a seeded
        session replays the same run after each reset.
        """
        if self._state is SessionState.STOPPED:
            raise RuntimeError("Session is stopped; create a new one")
        try:
            self._initialize_run()
        except LkfError as exc:
            raise self._abort(exc) from exc
        self._state = SessionState.RUNNING
        _LOG.info(
            "Tracking started (seed=%s, resets=%d)", self._config.seed, self._resets
        )
        return self

    def stop(self) -> None:
        """End the session."""
        if self._state is not SessionState.STOPPED:
            self._state = SessionState.STOPPED
            _LOG.info("Tracking stopped after %d cycles", self._cycle)

    def _initialize_run(self) -> None:
        cfg = self._config
        model = cfg.build_model()
        simulator = ProcessSimulator(seed=cfg.seed)
        true_state = cfg.initial_state()

        if cfg.prior_mean is not None:
            prior_mean = np.asarray(cfg.prior_mean, dtype=np.float64)
        else:
            prior_mean = simulator.sample_prior_mean(
                np.zeros(model.state_dim), cfg.prior_mean_std
            )

        kf = KalmanFilter(model)
        kf.initialize(prior_mean, cfg.prior_covariance())

        self._model = model
        self._simulator = simulator
        self._filter = kf
        self._true_state = true_state
        self._run_cycle = 0

    # -- Cycle --------------------------------------------------------------

    def step(self) -> TrackingFrame:
        """Run one cycle and apply the polled input.

        Returns
        -------
        TrackingFrame
            The frame handed to the renderer.

        Raises
        ------
        RuntimeError
            If the session is stopped.
        SessionAborted
            If the filter fails during the cycle.
        """
        if self._state is None:
            self.start()
        if self._state is SessionState.STOPPED:
            raise RuntimeError("Session is stopped")

        self._cycle += 1
        self._run_cycle += 1
        try:
            frame = self._track()
        except LkfError as exc:
            raise self._abort(exc) from exc

        self._renderer(frame)
        key = self._input(self._config.cycle_period)
        self._handle(classify_key(key, self._config.stop_keys))
        return frame

    def run(self, max_cycles: Optional[int] = None) -> int:
        """Loop :meth:`step` until stopped or *max_cycles* cycles ran.

        Returns
        -------
        int
            Number of cycles executed by this call.
        """
        executed = 0
        if self._state is None:
            self.start()
        while self._state is not SessionState.STOPPED:
            if max_cycles is not None and executed >= max_cycles:
                break
            self.step()
            executed += 1
        return executed

    def _track(self) -> TrackingFrame:
        model, sim, kf = self._model, self._simulator, self._filter

        true_angle = float(self._true_state[0])
        predicted_angle = float(kf.predict()[0])

        measurement = sim.measure(self._true_state, model)
        corrected_angle = float(kf.correct(measurement)[0])

        self._true_state, _ = sim.advance(self._true_state, model)

        return TrackingFrame(
            cycle=self._cycle,
            true=self._point("true", true_angle),
            predicted=self._point("predicted", predicted_angle),
            corrected=self._point("corrected", corrected_angle),
            measured=self._point("measured", float(measurement[0])),
        )

    def _point(self, role: str, angle: float) -> TrackedPoint:
        x, y = circle_point(self._config.center, self._config.radius, angle)
        return TrackedPoint(role, angle, x, y)

    def _handle(self, event: InputEvent) -> None:
        if event is InputEvent.STOP:
            self.stop()
        elif event is InputEvent.RESET:
            self._state = SessionState.RESET_PENDING
            self._resets += 1
            _LOG.info("Reset requested at cycle %d", self._cycle)
            self.start()

    def _abort(self, exc: LkfError) -> SessionAborted:
        self._state = SessionState.STOPPED
        _LOG.error(
            "Tracking aborted at cycle %d: %s: %s", self._cycle, type(exc).__name__, exc
        )
        return SessionAborted(self._cycle, exc)

    # -- Representation -----------------------------------------------------

    def __repr__(self) -> str:
        state = None if self._state is None else self._state.value
        return f"TrackingSession(state={state}, cycle={self._cycle})"
