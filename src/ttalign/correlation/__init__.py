"""Correlation between torch Tensors."""

from .correlate_dft import (
    conjugate_multiply,
    correlate_dft_2d,
    forward_transform,
    inverse_transform,
    swap_quadrants,
)
from .normalise import normalise_correlation
from .rolling_sums import RollingSums

__all__ = [
    "RollingSums",
    "conjugate_multiply",
    "correlate_dft_2d",
    "forward_transform",
    "inverse_transform",
    "normalise_correlation",
    "swap_quadrants",
]
