"""Voice-driven workout logging CLI."""

__version__ = "0.1.0"
