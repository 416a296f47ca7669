"""License console: per-administrator access-control editor."""

__version__ = "0.1.0"
