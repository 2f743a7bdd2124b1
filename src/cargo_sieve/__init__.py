"""cargo-sieve package root."""

from cargo_sieve.exceptions import SieveError

__all__ = ["__version__", "SieveError"]

__version__ = "0.1.0"
