# src/__init__.py — v1
"""ridecoach: progressive multi-step generation of AI coaching artifacts."""

from ridecoach.version import __version__

__all__ = ["__version__"]
