"""2D affine transforms and image translation."""

from .affine_transform import (
    InterpolationMethod,
    affine_transform_2d,
    translate_image,
    translate_image_,
)

__all__ = [
    "InterpolationMethod",
    "affine_transform_2d",
    "translate_image",
    "translate_image_",
]
