"""Window functions to reduce edge artifacts before a Fourier transform."""

import enum
import math
from functools import lru_cache
from typing import Callable

import einops
import torch

from ttalign.utils import as_image

TUKEY_DEFAULT_ALPHA = 0.5


class WindowMethod(str, enum.Enum):
    """The method used for the window function."""

    NONE = "None"
    HANNING = "Hanning"
    COSINE = "Cosine"
    TUKEY = "Tukey"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_name(cls, name: "str | WindowMethod") -> "WindowMethod":
        """Look up a method by display name or member name, ignoring case."""
        if isinstance(name, cls):
            return name
        for method in cls:
            if name.lower() in (method.name.lower(), method.value.lower()):
                return method
        raise ValueError(f"Unknown window method: {name!r}")


# Weights for the fractional distance `t` (range 0-1) from the edge of the window.
def hanning_weight(t: torch.Tensor) -> torch.Tensor:
    return 0.5 * (1 - torch.cos(2 * math.pi * t))


def cosine_weight(t: torch.Tensor) -> torch.Tensor:
    return torch.sin(math.pi * t)


def tukey_weight(t: torch.Tensor, alpha: float = TUKEY_DEFAULT_ALPHA) -> torch.Tensor:
    """Tapered cosine. Alpha 1 is a Hanning window, alpha 0 is rectangular."""
    weights = torch.ones_like(t)
    if alpha <= 0:
        return weights
    lower = t < alpha / 2
    upper = t > 1 - alpha / 2
    weights[lower] = 0.5 * (1 + torch.cos(math.pi * (2 * t[lower] / alpha - 1)))
    weights[upper] = 0.5 * (
        1 + torch.cos(math.pi * (2 * t[upper] / alpha - 2 / alpha + 1))
    )
    return weights


def _no_weight(t: torch.Tensor) -> torch.Tensor:
    return torch.ones_like(t)


def _weight_function(
    method: WindowMethod,
) -> Callable[[torch.Tensor], torch.Tensor]:
    return {
        WindowMethod.NONE: _no_weight,
        WindowMethod.HANNING: hanning_weight,
        WindowMethod.COSINE: cosine_weight,
        WindowMethod.TUKEY: tukey_weight,
    }[method]


def tukey_alpha(size: int, edge: int) -> float:
    """Alpha for a Tukey window with an edge of the given size (range 0-1)."""
    if edge <= 0 or size < 1:
        return 0.0
    return min((2.0 * edge) / (size - 1), 1.0)


@lru_cache(maxsize=64)
def _cached_window(
    method: WindowMethod, size: int, alpha: float = TUKEY_DEFAULT_ALPHA
) -> torch.Tensor:
    # windows of 1 or 2 samples would have a zero sum
    if method is WindowMethod.NONE or size <= 2:
        return torch.ones(size, dtype=torch.float64)
    # the profile is symmetric so the left half is mirrored onto the right
    t = torch.arange(size, dtype=torch.float64) / (size - 1)
    t = torch.minimum(t, torch.flip(t, dims=(0,)))
    if method is WindowMethod.TUKEY:
        return tukey_weight(t, alpha)
    return _weight_function(method)(t)


def create_window(method: WindowMethod | str, size: int) -> torch.Tensor:
    """Create a 1D window of `size` weights.

    The weights always have a positive sum.

    Parameters
    ----------
    method: WindowMethod | str
        Window function.
    size: int
        Number of samples.

    Returns
    -------
    window: torch.Tensor
        `(size, )` float64 weights.
    """
    return _cached_window(WindowMethod.from_name(method), int(size)).clone()


def hanning(size: int) -> torch.Tensor:
    """Create a Hanning window."""
    return create_window(WindowMethod.HANNING, size)


def cosine(size: int) -> torch.Tensor:
    """Create a cosine window."""
    return create_window(WindowMethod.COSINE, size)


def tukey(size: int, alpha: float = TUKEY_DEFAULT_ALPHA) -> torch.Tensor:
    """Create a Tukey (tapered cosine) window.

    Alpha controls the distance from the edge of the window to the centre over
    which the weight is applied.
    """
    if alpha < 0 or alpha > 1:
        raise ValueError("Alpha must be in the range 0-1")
    return _cached_window(WindowMethod.TUKEY, int(size), float(alpha)).clone()


def tukey_edge(size: int, edge: int) -> torch.Tensor:
    """Create a Tukey window which tapers over `edge` samples at each end."""
    return tukey(size, tukey_alpha(size, edge))


def separable_window(
    method: WindowMethod | str, image_shape: tuple[int, int]
) -> torch.Tensor:
    """2D window as the outer product of two 1D windows."""
    h, w = image_shape
    wy = create_window(method, h)
    wx = create_window(method, w)
    return einops.rearrange(wy, "h -> h 1") * einops.rearrange(wx, "w -> 1 w")


def radial_window(
    method: WindowMethod | str, image_shape: tuple[int, int]
) -> torch.Tensor:
    """2D window weighted on the distance from the image centre.

    Slower to compute than the separable form but has direction independent
    corners.
    """
    method = WindowMethod.from_name(method)
    h, w = image_shape
    if h <= 2 and w <= 2:  # cannot window small images
        method = WindowMethod.NONE
    y = torch.arange(h, dtype=torch.float64) - h * 0.5
    x = torch.arange(w, dtype=torch.float64) - w * 0.5
    distance = torch.sqrt(
        einops.rearrange(y**2, "h -> h 1") + einops.rearrange(x**2, "w -> 1 w")
    )
    max_distance = math.sqrt(float(w * w + h * h))
    return _weight_function(method)(0.5 - distance / max_distance)


def _apply(image: torch.Tensor, window: torch.Tensor) -> torch.Tensor:
    image = as_image(image, dtype=torch.float64)
    window = window.to(image.device)
    # shift by the window weighted mean so that the windowed image averages to zero
    shift = torch.sum(image * window) / torch.sum(window)
    return ((image - shift) * window).float()


def apply_window_separable(
    image: torch.Tensor, method: WindowMethod | str
) -> torch.Tensor:
    """Apply a window as two 1D window functions.

    Faster than the non-separable form but has direction dependent corners.
    The result has a mean of zero.
    """
    image = torch.as_tensor(image)
    return _apply(image, separable_window(method, image.shape[-2:]))


def apply_window(image: torch.Tensor, method: WindowMethod | str) -> torch.Tensor:
    """Apply a non-separable radial window. The result has a mean of zero."""
    image = torch.as_tensor(image)
    return _apply(image, radial_window(method, image.shape[-2:]))
