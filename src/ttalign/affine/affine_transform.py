"""2D affine transforms and translation of images."""

import enum
from typing import Sequence

import einops
import torch
import torch.nn.functional as F
from torch_grid_utils import coordinate_grid

from ttalign.transformations import T_2d
from ttalign.utils import array_to_grid_sample, homogenise_coordinates


class InterpolationMethod(str, enum.Enum):
    """Interpolation used when resampling an image."""

    NONE = "None"
    BILINEAR = "Bilinear"
    BICUBIC = "Bicubic"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def from_name(cls, name: "str | InterpolationMethod") -> "InterpolationMethod":
        """Look up a method by display name or member name, ignoring case."""
        if isinstance(name, cls):
            return name
        for method in cls:
            if name.lower() in (method.name.lower(), method.value.lower()):
                return method
        raise ValueError(f"Unknown interpolation method: {name!r}")

    @property
    def grid_sample_mode(self) -> str:
        return {
            InterpolationMethod.NONE: "nearest",
            InterpolationMethod.BILINEAR: "bilinear",
            InterpolationMethod.BICUBIC: "bicubic",
        }[self]


def affine_transform_2d(
    images: torch.Tensor,  # shape: '... h w'
    affine_matrix: torch.Tensor,  # shape: '3 3'
    out_shape: Sequence[int] | None = None,
    interpolation: str = "bicubic",
) -> torch.Tensor:
    """Affine transform 1 or a batch of images with a single matrix.

    The matrix maps `yx` input coordinates to output coordinates. Output pixels
    which map outside the input are zero.
    """
    if out_shape is None:
        out_shape = images.shape[-2:]
    device, dtype = images.device, images.dtype
    grid = homogenise_coordinates(coordinate_grid(out_shape, device=device))
    grid = einops.rearrange(grid, "h w coords -> h w coords 1").to(torch.float64)
    M = torch.linalg.inv(  # invert so that each grid cell points
        torch.as_tensor(affine_matrix, dtype=torch.float64)  # to where it needs to
    ).to(device)  # get data from
    grid = M @ grid
    grid = einops.rearrange(grid, "h w coords 1 -> h w coords")[..., :2].contiguous()
    grid_sample_coordinates = array_to_grid_sample(grid, images.shape[-2:]).to(dtype)
    samples, ps = einops.pack([images], pattern="* h w")
    transformed = F.grid_sample(
        einops.rearrange(samples, "c h w -> 1 c h w"),
        einops.rearrange(grid_sample_coordinates, "h w yx -> 1 h w yx"),
        align_corners=True,
        mode=interpolation,
    )
    transformed = einops.rearrange(transformed, "1 c h w -> c h w")
    [transformed] = einops.unpack(transformed, packed_shapes=ps, pattern="* h w")
    return transformed


def _shift_integer(image: torch.Tensor, dx: int, dy: int) -> torch.Tensor:
    h, w = image.shape[-2:]
    shifted = torch.zeros_like(image)
    if abs(dx) >= w or abs(dy) >= h:
        return shifted
    shifted[..., max(dy, 0) : h + min(dy, 0), max(dx, 0) : w + min(dx, 0)] = image[
        ..., max(-dy, 0) : h - max(dy, 0), max(-dx, 0) : w - max(dx, 0)
    ]
    return shifted


def _restore_dtype(image: torch.Tensor, dtype: torch.dtype) -> torch.Tensor:
    if dtype.is_floating_point:
        return image.to(dtype)
    info = torch.iinfo(dtype)
    return torch.clamp(torch.round(image), info.min, info.max).to(dtype)


def translate_image(
    image: torch.Tensor,
    x_offset: float,
    y_offset: float,
    interpolation: InterpolationMethod | str = InterpolationMethod.BICUBIC,
    clip_output: bool = False,
) -> torch.Tensor:
    """Translate a copy of an image.

    Image content moves by `(x_offset, y_offset)`, uncovered pixels are zero. Integer
    offsets need no interpolation and are applied exactly.

    Parameters
    ----------
    image: torch.Tensor
        `(h, w)` image or `(c, h, w)` colour image.
    x_offset: float
        Translation along x.
    y_offset: float
        Translation along y.
    interpolation: InterpolationMethod | str
        Interpolation for non-integer offsets.
    clip_output: bool
        Bicubic interpolation can generate values above the input range. If True
        these are clipped to the input maximum. Not applied to colour images.

    Returns
    -------
    translated: torch.Tensor
        Translated image with the shape and dtype of the input.
    """
    image = torch.as_tensor(image)
    if image.dim() not in (2, 3):
        raise ValueError(
            f"Expected a (h, w) or (c, h, w) image, got shape {tuple(image.shape)}."
        )
    if float(x_offset).is_integer() and float(y_offset).is_integer():
        return _shift_integer(image, int(x_offset), int(y_offset))

    interpolation = InterpolationMethod.from_name(interpolation)
    data = image if image.dtype == torch.float64 else image.float()
    translated = affine_transform_2d(
        data,
        T_2d(torch.tensor([float(y_offset), float(x_offset)])),
        interpolation=interpolation.grid_sample_mode,
    )
    if (
        clip_output
        and interpolation is InterpolationMethod.BICUBIC
        and image.dim() == 2
    ):
        translated = torch.clamp(translated, max=data.max())
    return _restore_dtype(translated, image.dtype)


def translate_image_(
    image: torch.Tensor,
    x_offset: float,
    y_offset: float,
    interpolation: InterpolationMethod | str = InterpolationMethod.BICUBIC,
    clip_output: bool = False,
) -> torch.Tensor:
    """Translate an image in place, see `translate_image`."""
    translated = translate_image(image, x_offset, y_offset, interpolation, clip_output)
    return image.copy_(translated)
