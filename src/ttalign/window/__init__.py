"""Window functions to reduce edge artifacts in frequency space."""

from .window_functions import (
    WindowMethod,
    apply_window,
    apply_window_separable,
    cosine,
    create_window,
    hanning,
    radial_window,
    separable_window,
    tukey,
    tukey_alpha,
    tukey_edge,
)

__all__ = [
    "WindowMethod",
    "apply_window",
    "apply_window_separable",
    "cosine",
    "create_window",
    "hanning",
    "radial_window",
    "separable_window",
    "tukey",
    "tukey_alpha",
    "tukey_edge",
]
