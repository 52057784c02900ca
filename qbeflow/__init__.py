"""Data-flow analyses and dead code elimination for QBE IL functions, and a prime sieve."""

__version__ = "0.1.0"
__all__ = ["__version__"]