"""Grant Portal: scholarship and grant management backend."""

__version__ = "0.1.0"
