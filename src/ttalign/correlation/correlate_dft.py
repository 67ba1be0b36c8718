"""DFT based cross-correlation of prepared patches."""

from typing import Sequence

import torch


def forward_transform(patch: torch.Tensor) -> torch.Tensor:
    """Real-to-complex DFT over the last two dimensions."""
    return torch.fft.rfftn(patch, dim=(-2, -1))


def conjugate_multiply(a: torch.Tensor, b: torch.Tensor) -> torch.Tensor:
    """Multiply `a` with the complex conjugate of `b`.

    In real space this is the correlation of `a` with `b`.
    """
    return a * torch.conj(b)


def inverse_transform(dft: torch.Tensor, shape: Sequence[int]) -> torch.Tensor:
    """Complex-to-real inverse DFT of an rfft with real space `shape`."""
    return torch.fft.irfftn(dft, s=tuple(shape[-2:]), dim=(-2, -1))


def swap_quadrants(image: torch.Tensor) -> torch.Tensor:
    """Move the zero shift from the origin to the image centre."""
    return torch.fft.fftshift(image, dim=(-2, -1))


def correlate_dft_2d(
    a: torch.Tensor,
    b: torch.Tensor,
    shape: Sequence[int],
) -> torch.Tensor:
    """Correlate discrete Fourier transforms of equally sized patches.

    The position of the maximum relative to the centre of the result, `shape // 2`,
    gives the shift that when applied to the image of `b` best aligns it to the
    image of `a`.
    """
    if a.shape != b.shape:
        raise ValueError(
            f"Cannot correlate transforms of shape {tuple(a.shape)} and "
            f"{tuple(b.shape)}."
        )
    result = conjugate_multiply(a, b)
    result = inverse_transform(result, shape)
    return swap_quadrants(torch.real(result))
