"""Per-joint exponential moving average."""

import math

import pytest
from lib_retarget import SmoothingFilter


class TestSmoothingFilter:
    def test_first_sample_seeds(self):
        f = SmoothingFilter(alpha=0.2)
        assert f.smooth("abs_x", 0.8) == 0.8
        assert "abs_x" in f

    def test_blends_with_previous(self):
        f = SmoothingFilter(alpha=0.2)
        f.smooth("abs_x", 0.0)
        assert f.smooth("abs_x", 1.0) == pytest.approx(0.2)
        assert f.smooth("abs_x", 1.0) == pytest.approx(0.36)

    def test_per_call_alpha(self):
        f = SmoothingFilter(alpha=0.2)
        f.smooth("abs_x", 0.0)
        assert f.smooth("abs_x", 1.0, alpha=0.5) == pytest.approx(0.5)

    def test_converges_monotonically(self):
        f = SmoothingFilter(alpha=0.2)
        f.reseed({"head_z": 0.0})
        values = [f.smooth("head_z", 1.0) for _ in range(21)]
        assert all(b > a for a, b in zip(values, values[1:]))
        assert values[-1] >= 0.99
        assert values[-1] < 1.0

    def test_nan_keeps_previous(self):
        f = SmoothingFilter()
        f.smooth("abs_y", 0.3)
        assert f.smooth("abs_y", math.nan) == 0.3
        assert f.value("abs_y") == 0.3

    def test_nan_without_history_uses_default(self):
        f = SmoothingFilter(default=lambda name: 0.5 if name == "l_elbow_y" else 0.0)
        assert f.smooth("l_elbow_y", math.nan) == 0.5
        assert "l_elbow_y" not in f

    def test_joints_are_independent(self):
        f = SmoothingFilter(alpha=0.5)
        f.smooth("a", 0.0)
        f.smooth("b", 10.0)
        f.smooth("a", 1.0)
        assert f.snapshot() == {"a": 0.5, "b": 10.0}

    def test_reseed_and_clear(self):
        f = SmoothingFilter()
        f.smooth("a", 3.0)
        f.reseed({"a": 0.0})
        assert f.value("a") == 0.0
        f.clear()
        assert f.value("a") is None

    @pytest.mark.parametrize("alpha", [0.0, -0.1, 1.5])
    def test_rejects_bad_alpha(self, alpha):
        with pytest.raises(ValueError):
            SmoothingFilter(alpha=alpha)
