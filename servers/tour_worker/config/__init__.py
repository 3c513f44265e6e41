"""Worker configuration: environment settings and extraction heuristics."""

from .heuristics import ExtractionHeuristics, load_heuristics
from .settings import Settings, get_default_settings, validate_settings

__all__ = [
    "ExtractionHeuristics",
    "Settings",
    "get_default_settings",
    "load_heuristics",
    "validate_settings",
]
