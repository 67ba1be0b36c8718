"""Sub-pixel refinement of a correlation peak."""

import enum
from typing import Tuple

import einops
import torch

from ttalign.utils import bicubic_sample

CUBIC_FIT_ITERATIONS = 10
CUBIC_FIT_START_RANGE = 0.5


class SubPixelMethod(str, enum.Enum):
    """Method to refine an integer peak position."""

    NONE = "None"
    CUBIC = "Cubic"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_name(cls, name: "str | SubPixelMethod") -> "SubPixelMethod":
        """Look up a method by display name or member name, ignoring case."""
        if isinstance(name, cls):
            return name
        for method in cls:
            if name.lower() in (method.name.lower(), method.value.lower()):
                return method
        raise ValueError(f"Unknown sub-pixel method: {name!r}")


def refine_peak_cubic(
    correlation: torch.Tensor,
    x: float,
    y: float,
) -> Tuple[float, float]:
    """Iteratively search the cubic spline surface around a peak for the maximum.

    A 3x3 grid of bicubic samples spaced by a range around the current position is
    evaluated and the position moves to the largest value. The range starts at 0.5
    and is halved every iteration, giving a final precision of 0.5 / 2^9 = 0.000976.

    Parameters
    ----------
    correlation: torch.Tensor
        `(h, w)` surface containing a peak.
    x: float
        Peak x position.
    y: float
        Peak y position.

    Returns
    -------
    peak: Tuple[float, float]
        `(x, y)` position of the peak with sub-pixel precision.
    """
    correlation = correlation.to(torch.float64)
    centre = torch.tensor([float(y), float(x)], dtype=torch.float64)
    steps = torch.tensor([-1.0, 0.0, 1.0], dtype=torch.float64)
    # x-major order of the offsets so ties keep the first position found
    dx, dy = torch.meshgrid(steps, steps, indexing="ij")
    offsets = einops.rearrange([dy, dx], "yx i j -> (i j) yx")
    search_range = CUBIC_FIT_START_RANGE
    for _ in range(CUBIC_FIT_ITERATIONS):
        positions = centre + offsets * search_range
        values = bicubic_sample(correlation, positions).cpu()
        centre = positions[torch.argmax(values)]
        search_range /= 2
    return float(centre[1]), float(centre[0])


def refine_peak(
    correlation: torch.Tensor,
    x: int,
    y: int,
    method: SubPixelMethod | str = SubPixelMethod.CUBIC,
) -> Tuple[float, float, float]:
    """Refine an integer peak position.

    Returns
    -------
    peak: Tuple[float, float, float]
        `(x, y, score)`. With the cubic method the score is interpolated at the
        refined position.
    """
    method = SubPixelMethod.from_name(method)
    if method is SubPixelMethod.CUBIC:
        surface = correlation.to(torch.float64)
        x_fit, y_fit = refine_peak_cubic(surface, x, y)
        score = bicubic_sample(surface, torch.tensor([y_fit, x_fit]))
        return x_fit, y_fit, float(score)
    return float(x), float(y), float(correlation[y, x])
