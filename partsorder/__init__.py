"""Multi-threaded UDP factory server and procurement client for simulated parts orders."""

__version__ = "0.1.0"
__all__ = ["message", "factory", "procurement"]