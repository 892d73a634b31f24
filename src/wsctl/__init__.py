"""wsctl — workspace dependency constraint enforcer."""

__version__ = "0.1.0"
