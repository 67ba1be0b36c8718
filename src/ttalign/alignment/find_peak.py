"""Bounded search for the maximum of a correlation surface."""

from dataclasses import dataclass
from typing import Tuple

import torch

from ttalign.utils import dft_center


@dataclass(frozen=True)
class SearchBounds:
    """Allowed translations `x <= dx < x + width` and `y <= dy < y + height`."""

    x: int
    y: int
    width: int
    height: int

    @classmethod
    def from_shifts(
        cls, min_x_shift: int, max_x_shift: int, min_y_shift: int, max_y_shift: int
    ) -> "SearchBounds":
        return cls(
            min_x_shift,
            min_y_shift,
            max_x_shift - min_x_shift,
            max_y_shift - min_y_shift,
        )

    @classmethod
    def half_max(
        cls, width1: int, height1: int, width2: int, height2: int
    ) -> "SearchBounds":
        """Bounds keeping at least half of the smaller image within the larger one."""
        max_x = max(width1, width2) // 2
        max_y = max(height1, height2) // 2
        return cls(-max_x, -max_y, 2 * max_x, 2 * max_y)


def find_maximum(
    correlation: torch.Tensor,
    bounds: SearchBounds,
) -> Tuple[int, int] | None:
    """Find the maximum of a correlation surface within the search bounds.

    The bounds are relative to the centre of the surface. Ties resolve to the first
    maximum in row-major order and NaN values are ignored.

    Parameters
    ----------
    correlation: torch.Tensor
        `(h, w)` fftshifted correlation surface.
    bounds: SearchBounds
        Allowed translations.

    Returns
    -------
    peak: Tuple[int, int] | None
        `(x, y)` index of the maximum, None if the bounds do not overlap the surface.
    """
    h, w = correlation.shape[-2:]
    origin_y, origin_x = (int(i) for i in dft_center((h, w)))
    x0 = max(origin_x + bounds.x, 0)
    y0 = max(origin_y + bounds.y, 0)
    x1 = min(origin_x + bounds.x + bounds.width, w)
    y1 = min(origin_y + bounds.y + bounds.height, h)
    if x1 <= x0 or y1 <= y0:
        return None
    region = correlation[y0:y1, x0:x1]
    region = torch.nan_to_num(region, nan=-torch.inf)
    y, x = torch.unravel_index(torch.argmax(region).cpu(), shape=region.shape)
    return x0 + int(x), y0 + int(y)
