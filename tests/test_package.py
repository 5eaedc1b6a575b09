"""Tests for package metadata and the examples embedded in docstrings."""

import doctest
import importlib.util
import os
import re

import numpy as np
import pytest

import lkf
from lkf import constant_velocity_model, core, model, session, simulator, utils

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


# ---------------------------------------------------------------------------
# Version
# ---------------------------------------------------------------------------


class TestVersion:
    def test_version_info_matches(self):
        assert ".".join(map(str, lkf.__version_info__)) == lkf.__version__

    def test_version_file_parses_without_import(self):
        # setup.py reads the version with a regex instead of executing the file
        with open(os.path.join(ROOT, "lkf", "version.py")) as f:
            match = re.search(r'^__version__ = "([^"]+)"', f.read(), re.MULTILINE)
        assert match is not None
        assert match.group(1) == lkf.__version__


# ---------------------------------------------------------------------------
# Docstring examples
# ---------------------------------------------------------------------------


class TestDocstringExamples:
    @pytest.mark.parametrize("module", [core, model, simulator, session, utils])
    def test_examples_run(self, module):
        result = doctest.testmod(
            module,
            extraglobs={"np": np, "constant_velocity_model": constant_velocity_model},
            optionflags=doctest.NORMALIZE_WHITESPACE,
        )
        assert result.attempted > 0
        assert result.failed == 0

    def test_core_example_values(self):
        kf = lkf.KalmanFilter(constant_velocity_model()).initialize([0.0, 1.0], np.eye(2))
        np.testing.assert_array_equal(kf.predict(), [1.0, 1.0])
        np.testing.assert_allclose(kf.correct(np.array([1.5])), [1.476, 1.238], atol=5e-4)
        np.testing.assert_array_equal(
            lkf.KalmanFilter(constant_velocity_model()).reset(0.5).P, 0.25 * np.eye(2)
        )


# ---------------------------------------------------------------------------
# Example scripts
# ---------------------------------------------------------------------------


def load_example(name):
    path = os.path.join(ROOT, "examples", f"{name}.py")
    spec = importlib.util.spec_from_file_location(f"example_{name}", path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestCoastingExample:
    @pytest.fixture(scope="class")
    def coasting(self):
        return load_example("coasting")

    def test_dropout_coasts(self, coasting, capsys):
        coasting.run(steps=30, dropout=(10, 20))
        lines = capsys.readouterr().out.splitlines()[1:]
        assert len(lines) == 30
        coasting_rows = [line for line in lines if line.endswith("coast")]
        assert len(coasting_rows) == 10
        stds = [float(row.split()[4]) for row in coasting_rows]
        assert stds == sorted(stds)
        assert stds[-1] > stds[0]

    def test_outliers_are_gated(self, coasting, capsys):
        kf = coasting.run(steps=40, dropout=(0, 0), outlier_every=10, gate=4.0)
        out = capsys.readouterr().out
        assert out.count("gated") >= 3
        assert abs(kf.x[1] - 1.0) < 0.5
