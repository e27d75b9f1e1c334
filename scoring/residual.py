# scoring/residual.py
import numpy as np

from utils.errors import ConfigurationError


class ResidualField:
    """
    Per-pixel darkness still left to explain, seeded from the target.

    The planner is the only writer. Reads (`line_sum`) may run concurrently
    with each other but never alongside `subtract`.
    """

    def __init__(self, intensity: np.ndarray, shape_hw=None):
        grid = np.asarray(intensity)
        if grid.ndim != 2:
            raise ConfigurationError(f"intensity grid must be 2-D, got shape {grid.shape}")
        if shape_hw is not None and tuple(grid.shape) != tuple(shape_hw):
            raise ConfigurationError(
                f"intensity grid is {grid.shape[0]}x{grid.shape[1]}, "
                f"expected {shape_hw[0]}x{shape_hw[1]} for this radius"
            )
        grid = grid.astype(np.float64, copy=True)
        if not np.isfinite(grid).all():
            raise ConfigurationError("intensity grid contains NaN or infinite values")
        np.maximum(grid, 0.0, out=grid)
        self._grid = grid
        self._flat = grid.reshape(-1)

    @property
    def shape(self):
        return self._grid.shape

    @property
    def values(self) -> np.ndarray:
        v = self._grid.view()
        v.setflags(write=False)
        return v

    def line_sum(self, flat_idx) -> float:
        return float(self._flat.take(flat_idx).sum())

    def line_mean(self, flat_idx) -> float:
        n = len(flat_idx)
        return self.line_sum(flat_idx) / n if n else 0.0

    def subtract(self, flat_idx, amount: float):
        """Lower every pixel on the path by `amount`, clamping at zero."""
        v = self._flat.take(flat_idx)
        v -= amount
        np.maximum(v, 0.0, out=v)
        self._flat.put(flat_idx, v)

    def total(self) -> float:
        return float(self._grid.sum())
