# utils/errors.py


class ConfigurationError(ValueError):
    """Invalid run configuration (pin count, radius, input shape, params).

    Raised before any planning starts.
    """


class DegenerateChordError(RuntimeError):
    """A chord was requested between identical, coincident or unknown pins.

    Configuration validation rules these out, so seeing one means the path
    cache was built wrong.
    """
