"""Tests for the tracking session state machine."""

import math

import numpy as np
import pytest

from lkf import (
    InputEvent,
    LinearGaussianModel,
    ScriptedInput,
    SessionAborted,
    SessionConfig,
    SessionState,
    SingularInnovationCovariance,
    TrackingSession,
    circle_point,
    classify_key,
    is_reset_key,
    is_stop_key,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def run_session(config, keys=(), max_cycles=None):
    frames = []
    session = TrackingSession(config, renderer=frames.append, input_source=ScriptedInput(keys))
    session.run(max_cycles=max_cycles)
    return session, frames


class DegenerateConfig(SessionConfig):
    """Noise-free model with a zero prior covariance."""

    def build_model(self):
        return LinearGaussianModel(
            transition=[[1.0, 1.0], [0.0, 1.0]],
            process_noise_cov=np.zeros((2, 2)),
            measurement_map=[[1.0, 0.0]],
            measurement_noise_cov=[[0.0]],
        )

    def prior_covariance(self):
        return np.zeros((2, 2))


# ---------------------------------------------------------------------------
# Key classification
# ---------------------------------------------------------------------------


class TestKeys:
    @pytest.mark.parametrize("key", [27, "q", "Q", ord("q"), "Escape", "escape"])
    def test_stop_keys(self, key):
        assert is_stop_key(key)
        assert not is_reset_key(key)
        assert classify_key(key) is InputEvent.STOP

    @pytest.mark.parametrize("key", ["r", " ", 13, ord("a"), "Return", "F1"])
    def test_reset_keys(self, key):
        assert is_reset_key(key)
        assert classify_key(key) is InputEvent.RESET

    @pytest.mark.parametrize("key", [None, -1, ""])
    def test_no_key(self, key):
        assert not is_stop_key(key)
        assert not is_reset_key(key)
        assert classify_key(key) is InputEvent.NONE

    def test_custom_stop_keys(self):
        assert classify_key("x", stop_keys=("x",)) is InputEvent.STOP
        assert classify_key("q", stop_keys=("x",)) is InputEvent.RESET

    def test_scripted_input(self):
        keys = ScriptedInput([None, "r", 27])
        assert [keys(1.0) for _ in range(4)] == [None, "r", 27, None]
        assert keys.polls == 4


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------


class TestCirclePoint:
    def test_zero_angle(self):
        assert circle_point((400.0, 400.0), 100.0, 0.0) == pytest.approx((500.0, 400.0))

    def test_quarter_turn_points_up(self):
        x, y = circle_point((400.0, 400.0), 100.0, math.pi / 2)
        assert x == pytest.approx(400.0)
        assert y == pytest.approx(300.0)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class TestConfig:
    def test_reference_defaults(self):
        cfg = SessionConfig()
        assert cfg.initial_angle == 0.0
        assert cfg.initial_velocity == pytest.approx(math.pi / 3)
        assert cfg.process_noise == 1e-5
        assert cfg.measurement_noise == 1e-1
        np.testing.assert_array_equal(cfg.prior_covariance(), np.eye(2))
        assert cfg.center == (400.0, 400.0)
        assert cfg.radius == pytest.approx(800 / 3)

    @pytest.mark.parametrize(
        "field", ["process_noise", "measurement_noise", "prior_covariance_scale", "dt"]
    )
    def test_rejects_non_positive(self, field):
        with pytest.raises(ValueError, match=field):
            SessionConfig(**{field: 0.0})

    def test_rejects_bad_prior_mean(self):
        with pytest.raises(ValueError, match="prior_mean"):
            SessionConfig(prior_mean=(1.0, 2.0, 3.0))

    def test_build_model(self):
        model = SessionConfig(measurement_noise=0.5).build_model()
        np.testing.assert_allclose(model.measurement_noise_cov, [[0.5]])


# ---------------------------------------------------------------------------
# Running
# ---------------------------------------------------------------------------


class TestRun:
    def test_not_started(self):
        session = TrackingSession(SessionConfig(seed=1))
        assert session.state is None
        assert session.cycle == 0

    def test_start(self):
        session = TrackingSession(SessionConfig(seed=1)).start()
        assert session.state is SessionState.RUNNING
        assert session.filter.initialized
        np.testing.assert_array_equal(session.true_state, [0.0, math.pi / 3])

    def test_stop_key_ends_session(self):
        session, frames = run_session(SessionConfig(seed=1), keys=[None, None, "q"])
        assert session.state is SessionState.STOPPED
        assert session.cycle == 3
        assert len(frames) == 3

    def test_escape_ends_session(self):
        session, frames = run_session(SessionConfig(seed=1), keys=[27])
        assert session.state is SessionState.STOPPED
        assert len(frames) == 1

    def test_named_escape_key_ends_session(self):
        session, frames = run_session(SessionConfig(seed=1), keys=[None, "escape"])
        assert session.state is SessionState.STOPPED
        assert len(frames) == 2

    def test_named_key_resets(self):
        session, frames = run_session(SessionConfig(seed=1), keys=["Return"], max_cycles=2)
        assert session.resets == 1
        assert session.state is SessionState.RUNNING
        assert frames[1].predicted == frames[0].predicted

    def test_max_cycles(self):
        session, frames = run_session(SessionConfig(seed=1), max_cycles=5)
        assert session.state is SessionState.RUNNING
        assert [f.cycle for f in frames] == [1, 2, 3, 4, 5]

    def test_frame_roles(self):
        _, frames = run_session(SessionConfig(seed=1), max_cycles=1)
        frame = frames[0]
        assert [p.role for p in frame.points()] == [
            "true", "predicted", "corrected", "measured",
        ]
        assert frame.true.angle == 0.0
        assert (frame.true.x, frame.true.y) == pytest.approx((400.0 + 800 / 3, 400.0))

    def test_first_prediction_uses_prior(self):
        _, frames = run_session(SessionConfig(seed=1, prior_mean=(0.5, 0.25)), max_cycles=1)
        assert frames[0].predicted.angle == pytest.approx(0.75)

    def test_true_state_follows_dynamics(self):
        session, frames = run_session(SessionConfig(seed=1), max_cycles=3)
        for earlier, later in zip(frames, frames[1:]):
            assert later.true.angle - earlier.true.angle == pytest.approx(math.pi / 3, abs=0.05)

    def test_poll_uses_cycle_period(self):
        timeouts = []

        def poll(timeout):
            timeouts.append(timeout)
            return None

        session = TrackingSession(SessionConfig(seed=1, cycle_period=0.25), input_source=poll)
        session.run(max_cycles=2)
        assert timeouts == [0.25, 0.25]

    def test_step_after_stop(self):
        session, _ = run_session(SessionConfig(seed=1), keys=["q"])
        with pytest.raises(RuntimeError):
            session.step()

    def test_stop(self):
        session = TrackingSession(SessionConfig(seed=1)).start()
        session.stop()
        assert session.state is SessionState.STOPPED
        assert session.run() == 0

    def test_renderer_errors_propagate(self):
        def renderer(frame):
            raise KeyError("display closed")

        session = TrackingSession(SessionConfig(seed=1), renderer=renderer)
        with pytest.raises(KeyError):
            session.step()


# ---------------------------------------------------------------------------
# Determinism / reset
# ---------------------------------------------------------------------------


class TestReset:
    def test_same_seed_identical_frames(self):
        _, a = run_session(SessionConfig(seed=7), max_cycles=50)
        _, b = run_session(SessionConfig(seed=7), max_cycles=50)
        assert a == b

    def test_different_seed_differs(self):
        _, a = run_session(SessionConfig(seed=7), max_cycles=5)
        _, b = run_session(SessionConfig(seed=8), max_cycles=5)
        assert a != b

    def test_reset_restores_prior(self):
        session = TrackingSession(
            SessionConfig(seed=3), input_source=ScriptedInput([None, None, "r"])
        )
        session.run(max_cycles=3)
        assert session.resets == 1
        assert session.state is SessionState.RUNNING
        assert session.run_cycle == 0
        np.testing.assert_array_equal(session.true_state, [0.0, math.pi / 3])

    def test_first_prediction_after_reset(self):
        session, frames = run_session(
            SessionConfig(seed=3), keys=[None, None, "r"], max_cycles=4
        )
        assert session.cycle == 4
        assert frames[3].predicted == frames[0].predicted
        assert frames[3].true == frames[0].true
        assert frames[3].cycle == 4

    def test_reset_builds_fresh_filter(self):
        session = TrackingSession(
            SessionConfig(seed=3), input_source=ScriptedInput(["r"])
        ).start()
        first = session.filter
        session.step()
        assert session.filter is not first
        np.testing.assert_array_equal(session.filter.P, np.eye(2))


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class TestAbort:
    def test_singular_filter_aborts(self):
        frames = []
        session = TrackingSession(DegenerateConfig(seed=1), renderer=frames.append)
        with pytest.raises(SessionAborted) as info:
            session.step()
        assert info.value.cycle == 1
        assert isinstance(info.value.error, SingularInnovationCovariance)
        assert isinstance(info.value.__cause__, SingularInnovationCovariance)
        assert "cycle 1" in str(info.value)
        assert "SingularInnovationCovariance" in str(info.value)
        assert session.state is SessionState.STOPPED
        assert frames == []
