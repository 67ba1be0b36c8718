"""Prepare square power-of-two patches for DFT based correlation."""

from dataclasses import dataclass
from typing import Tuple

import torch

from ttalign.utils import as_image
from ttalign.window import WindowMethod, apply_window_separable


@dataclass(frozen=True)
class InsertionRectangle:
    """Location of the original image content inside a padded patch."""

    x: int
    y: int
    width: int
    height: int

    def union(self, other: "InsertionRectangle") -> "InsertionRectangle":
        """Smallest rectangle containing both rectangles."""
        x = min(self.x, other.x)
        y = min(self.y, other.y)
        x2 = max(self.x + self.width, other.x + other.width)
        y2 = max(self.y + self.height, other.y + other.height)
        return InsertionRectangle(x, y, x2 - x, y2 - y)


def padded_size(max_dimension: int) -> int:
    """Smallest power of 2 (at least 2) that covers `max_dimension`."""
    size = 2
    while size < max_dimension:
        size *= 2
    return size


def insert_offset(size: int, dimension: int) -> int:
    """Offset that puts the centre of `dimension` samples at `size / 2`.

    The zero frequency of an fftshifted DFT of an even sized image is at `size / 2`
    so an odd difference is rounded up.
    """
    diff = size - dimension
    return (diff + (diff & 1)) // 2


def pad_and_zero(
    image: torch.Tensor,
    max_dimension: int,
    window_method: WindowMethod | str = WindowMethod.NONE,
) -> Tuple[torch.Tensor, InsertionRectangle]:
    """Centre an image on zero, padding it to a square power-of-two patch.

    The image is optionally windowed so that it blends smoothly into the zero
    background. The inserted content has its mean subtracted, so the patch sums to
    zero.

    Parameters
    ----------
    image: torch.Tensor
        `(h, w)` image.
    max_dimension: int
        Largest dimension the patch must cover; the patch side is the next power of 2.
    window_method: WindowMethod | str
        Window applied before insertion.

    Returns
    -------
    patch: torch.Tensor
        `(n, n)` float32 patch.
    bounds: InsertionRectangle
        Where the image was inserted into the patch.
    """
    image = as_image(image)
    window_method = WindowMethod.from_name(window_method)
    h, w = image.shape
    size = padded_size(max(max_dimension, h, w))

    if window_method is WindowMethod.NONE:
        windowed = image
    else:
        windowed = apply_window_separable(image, window_method)
    average = windowed.double().mean()

    bounds = InsertionRectangle(insert_offset(size, w), insert_offset(size, h), w, h)
    patch = torch.zeros((size, size), dtype=torch.float32, device=image.device)
    patch[bounds.y : bounds.y + h, bounds.x : bounds.x + w] = (
        windowed.double() - average
    ).float()
    return patch, bounds


def normalise_image(image: torch.Tensor) -> torch.Tensor:
    """Scale an image to unit length (sum of squares is 1).

    An image without signal is returned as zeros.
    """
    image = as_image(image)
    sum_sq = torch.sum(image.double() ** 2)
    if sum_sq > 0:
        return (image.double() / torch.sqrt(sum_sq)).float()
    return torch.zeros_like(image)
