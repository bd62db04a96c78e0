"""Video upload orchestration: compression with fallback, two-phase delivery, reporting."""

__version__ = "0.3.0"
