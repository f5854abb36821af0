"""Nitpicker: build every new revision of your projects exactly once."""

__version__ = "0.1.0"

__all__ = ["__version__"]
