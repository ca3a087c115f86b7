"""taskpad - a local-first task manager."""

__version__ = "0.1.0"
