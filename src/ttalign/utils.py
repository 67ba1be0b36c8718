"""Utility functions for ttalign."""

from typing import Sequence, Tuple

import einops
import torch
import torch.nn.functional as F


def as_image(image: torch.Tensor, dtype: torch.dtype = torch.float32) -> torch.Tensor:
    """Return a `(h, w)` tensor of `dtype` without touching the caller's data."""
    image = torch.as_tensor(image)
    if image.dim() != 2:
        raise ValueError(f"Expected a (h, w) image, got shape {tuple(image.shape)}.")
    return image.to(dtype)


def is_empty(image: torch.Tensor) -> bool:
    """Check whether an image has no non-zero pixels.

    No correlation is possible against an empty image.
    """
    return not bool(torch.any(torch.as_tensor(image) != 0))


def dft_center(
    image_shape: Tuple[int, ...],
    device: torch.device | None = None,
) -> torch.LongTensor:
    """Return the position of the zero frequency of an fftshifted DFT."""
    image_shape = torch.as_tensor(image_shape, device=device)
    return torch.div(image_shape, 2, rounding_mode="floor").long()


def homogenise_coordinates(coords: torch.Tensor) -> torch.Tensor:
    """2D coordinates to 3D homogeneous coordinates with ones in the last column.

    Parameters
    ----------
    coords: torch.Tensor
        `(..., 2)` array of 2D coordinates

    Returns
    -------
    output: torch.Tensor
        `(..., 3)` array of homogeneous coordinates
    """
    return F.pad(torch.as_tensor(coords), pad=(0, 1), mode="constant", value=1)


def array_to_grid_sample(
    array_coordinates: torch.Tensor, array_shape: Sequence[int]
) -> torch.Tensor:
    """Generate grids for `torch.nn.functional.grid_sample` from array coordinates.

    These coordinates should be used with `align_corners=True` in
    `torch.nn.functional.grid_sample`.


    Parameters
    ----------
    array_coordinates: torch.Tensor
        `(..., d)` array of d-dimensional coordinates.
        Coordinates are in the range `[0, N-1]` for the `N` elements in each dimension.
    array_shape: Sequence[int]
        shape of the array being sampled at `array_coordinates`.
    """
    dtype, device = array_coordinates.dtype, array_coordinates.device
    array_shape_tensor = torch.as_tensor(array_shape, dtype=dtype, device=device)
    # a dimension of length 1 has a single sample at -1
    half_extent = torch.clamp(0.5 * array_shape_tensor - 0.5, min=0.5)
    grid_sample_coordinates = (array_coordinates / half_extent) - 1
    grid_sample_coordinates = torch.flip(grid_sample_coordinates, dims=(-1,))
    return grid_sample_coordinates


def _cubic_weights(t: torch.Tensor, a: float = -0.5) -> torch.Tensor:
    """Cubic convolution weights of the 4 samples around a fractional position.

    `(..., )` fractions in `[0, 1)` give `(..., 4)` weights for the samples at
    offsets -1, 0, 1 and 2.
    """
    d = torch.stack([1 + t, t, 1 - t, 2 - t], dim=-1)
    near = (a + 2) * d**3 - (a + 3) * d**2 + 1
    far = a * d**3 - 5 * a * d**2 + 8 * a * d - 4 * a
    return torch.where(d <= 1, near, far)


def bicubic_sample(
    image: torch.Tensor,
    coordinates: torch.Tensor,
) -> torch.Tensor:
    """Sample a 2D image with bicubic interpolation.

    Uses the cubic convolution kernel with `a = -0.5` (Catmull-Rom), which
    reproduces quadratics so the maximum of a smooth peak is not biased towards
    the sample grid. Samples are computed in double precision; a float64 image is
    used without a copy. Coordinates beyond the image edge sample the edge value.

    Parameters
    ----------
    image: torch.Tensor
        `(h, w)` image.
    coordinates: torch.Tensor
        `(..., 2)` array of `yx` coordinates.

    Returns
    -------
    samples: torch.Tensor
        `(..., )` array of interpolated values.
    """
    image = image.to(torch.float64)
    h, w = image.shape[-2:]
    coordinates = torch.as_tensor(coordinates, dtype=torch.float64, device=image.device)
    coordinates, ps = einops.pack([coordinates], pattern="* yx")
    origin = torch.floor(coordinates)
    fraction = coordinates - origin
    offsets = torch.arange(-1, 3, device=image.device)
    iy = torch.clamp(origin[:, 0:1].long() + offsets, 0, h - 1)
    ix = torch.clamp(origin[:, 1:2].long() + offsets, 0, w - 1)
    neighbours = image[
        einops.rearrange(iy, "b i -> b i 1"), einops.rearrange(ix, "b j -> b 1 j")
    ]
    samples = einops.einsum(
        neighbours,
        _cubic_weights(fraction[:, 0]),
        _cubic_weights(fraction[:, 1]),
        "b i j, b i, b j -> b",
    )
    [samples] = einops.unpack(samples, packed_shapes=ps, pattern="*")
    return samples
