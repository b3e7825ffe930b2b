"""Client-side task state synchronized with a remote task API."""

__version__ = "0.1.0"
