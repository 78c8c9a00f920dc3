"""Cash custody engine: shift-to-bank handover chains for fuel stations."""

__version__ = "0.1.0"
