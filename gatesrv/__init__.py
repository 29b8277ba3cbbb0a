"""HTTP gate server for a chat service: registration and login over MySQL and Redis."""

__version__ = "0.1.0"

__all__ = ["__version__"]