# utils/pin_layout.py
import numpy as np

from utils.errors import ConfigurationError


def generate_pin_positions(num_pins, radius):
    """
    Place pins evenly on a circle centred in a (2R+1) x (2R+1) canvas.

    Args:
        num_pins (int): P, at least 2.
        radius (int): R in pixels, strictly positive.

    Returns:
        np.ndarray: float64 [P, 2] array of (x, y) positions. Pin i sits at
        angle 2*pi*i/P, measured from the +x axis towards +y (image rows).
    """
    if isinstance(num_pins, bool) or int(num_pins) != num_pins or num_pins < 2:
        raise ConfigurationError(f"pin count must be an integer >= 2, got {num_pins!r}")
    if isinstance(radius, bool) or int(radius) != radius or radius <= 0:
        raise ConfigurationError(f"radius must be an integer > 0, got {radius!r}")

    num_pins, radius = int(num_pins), int(radius)
    center = float(radius)
    angles = 2 * np.pi * np.arange(num_pins) / num_pins
    xs = center + radius * np.cos(angles)
    ys = center + radius * np.sin(angles)
    return np.stack([xs, ys], axis=1)


class PinLayout:
    """Immutable pin geometry for one run."""

    def __init__(self, num_pins: int, radius: int):
        self.positions = generate_pin_positions(num_pins, radius)
        self.num_pins = int(num_pins)
        self.radius = int(radius)
        self.size = 2 * self.radius + 1
        self.center = (float(self.radius), float(self.radius))
        self.angles = 2 * np.pi * np.arange(self.num_pins) / self.num_pins

        # integer pixel each pin is anchored to; chords are rasterized between these
        self.pixels = np.rint(self.positions).astype(np.int32)
        np.clip(self.pixels, 0, self.size - 1, out=self.pixels)

        # two pins on one pixel would give a zero-length chord
        _, first, counts = np.unique(self.pixels, axis=0, return_index=True, return_counts=True)
        if (counts > 1).any():
            dup = int(np.sort(first[counts > 1])[0])
            same = np.where((self.pixels == self.pixels[dup]).all(axis=1))[0]
            raise ConfigurationError(
                f"radius {self.radius} is too small for {self.num_pins} pins: "
                f"pins {same.tolist()} round to the same pixel {tuple(self.pixels[dup].tolist())}"
            )

        for arr in (self.positions, self.pixels, self.angles):
            arr.setflags(write=False)

    @property
    def shape_hw(self):
        return (self.size, self.size)

    def __len__(self):
        return self.num_pins

    def pixel(self, pin: int):
        x, y = self.pixels[pin]
        return int(x), int(y)

    def __repr__(self):
        return f"PinLayout(num_pins={self.num_pins}, radius={self.radius})"
