"""null-e - find and clean development artifacts and caches."""

__version__ = "0.1.0"
