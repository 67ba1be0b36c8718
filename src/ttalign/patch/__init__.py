"""Padding, windowing and normalisation of images for correlation."""

from .prepare_patch import (
    InsertionRectangle,
    insert_offset,
    normalise_image,
    pad_and_zero,
    padded_size,
)

__all__ = [
    "InsertionRectangle",
    "insert_offset",
    "normalise_image",
    "pad_and_zero",
    "padded_size",
]
