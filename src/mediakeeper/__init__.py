"""mediakeeper - recurring task orchestration and quality-based media acquisition."""

__version__ = "0.1.0"
