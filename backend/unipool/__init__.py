"""UniPool: university carpooling API."""

__version__ = "1.0.0"
