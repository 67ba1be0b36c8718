"""Locating and refining the peak of a correlation surface."""

from .find_peak import SearchBounds, find_maximum
from .subpixel import SubPixelMethod, refine_peak, refine_peak_cubic

__all__ = [
    "SearchBounds",
    "SubPixelMethod",
    "find_maximum",
    "refine_peak",
    "refine_peak_cubic",
]
