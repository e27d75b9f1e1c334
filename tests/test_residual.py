import numpy as np
import pytest

from scoring.residual import ResidualField
from utils.errors import ConfigurationError


def test_rejects_bad_input():
    with pytest.raises(ConfigurationError):
        ResidualField(np.zeros(5))
    with pytest.raises(ConfigurationError):
        ResidualField(np.zeros((4, 5)), shape_hw=(5, 5))
    bad = np.ones((3, 3))
    bad[1, 1] = np.nan
    with pytest.raises(ConfigurationError):
        ResidualField(bad)


def test_source_is_copied():
    src = np.ones((3, 3), np.float32)
    field = ResidualField(src)
    field.subtract(np.array([0, 4]), 0.5)
    assert src.min() == 1.0
    assert field.values[0, 0] == 0.5
    assert field.values[1, 1] == 0.5


def test_line_sum_and_mean():
    field = ResidualField(np.arange(9, dtype=float).reshape(3, 3))
    idx = np.array([0, 4, 8])
    assert field.line_sum(idx) == 12.0
    assert field.line_mean(idx) == 4.0


def test_subtract_clamps_at_zero():
    field = ResidualField(np.full((2, 2), 0.3))
    field.subtract(np.array([1, 2]), 0.5)
    assert field.values.tolist() == [[0.3, 0.0], [0.0, 0.3]]


def test_values_never_go_negative():
    rng = np.random.default_rng(7)
    field = ResidualField(rng.random((16, 16)))
    for _ in range(200):
        idx = rng.choice(256, size=rng.integers(1, 20), replace=False)
        field.subtract(idx, float(rng.random()))
        assert field.values.min() >= 0.0


def test_negative_input_is_clamped():
    field = ResidualField(np.array([[-1.0, 2.0]]))
    assert field.values.tolist() == [[0.0, 2.0]]
    assert field.total() == 2.0


def test_values_view_is_read_only():
    field = ResidualField(np.ones((2, 2)))
    with pytest.raises(ValueError):
        field.values[0, 0] = 3.0
