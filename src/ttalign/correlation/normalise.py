"""Normalisation of a correlation surface by the local reference energy."""

import torch

from ttalign.correlation.rolling_sums import RollingSums
from ttalign.patch import InsertionRectangle


def normalise_correlation(
    correlation: torch.Tensor,
    rolling_sums: RollingSums,
    reference_bounds: InsertionRectangle,
    target_bounds: InsertionRectangle,
) -> torch.Tensor:
    """Normalise a correlation surface with the reference region under the target.

    Pearson correlation:

        ( sum xy - n mean(x) mean(y) ) / ( (sum x^2 - n mean(x)^2)
                                           (sum y^2 - n mean(y)^2) ) ^ 0.5

    The conjugate multiplication computes `sum xy`. The target is assumed to have a
    zero mean and a sum of squares of 1 which leaves

        ( sum xy ) / ( sum x^2 - n mean(x)^2 ) ^ 0.5

    where the reference (x) statistics over the target footprint are read from the
    rolling sums.

    Only offsets within the union of the reference and target insertion bounds are
    scored, all other values are zero. Offsets where the footprint has no pixels or
    no variance keep their raw value.

    The assumptions on the target do not hold when it is larger than half the
    reference, so normalised values can fall outside `[-1, 1]`. They are not clipped:
    clipping creates plateaus of equal scores which lead to poor alignments.

    The denominator changes with the offset, so the normalised surface is not
    symmetric about its peak. The integer maximum is unaffected but a sub-pixel
    refinement of an exact integer shift can be off by a few hundredths of a pixel.

    Parameters
    ----------
    correlation: torch.Tensor
        `(n, n)` fftshifted correlation surface.
    rolling_sums: RollingSums
        Rolling sums of the padded reference patch.
    reference_bounds: InsertionRectangle
        Where the reference was inserted into its patch.
    target_bounds: InsertionRectangle
        Where the target was inserted into its patch.

    Returns
    -------
    normalised: torch.Tensor
        `(n, n)` normalised correlation surface.
    """
    max_y, max_x = correlation.shape[-2:]
    device = correlation.device
    size_u, size_v = target_bounds.width, target_bounds.height

    # Half the patch minus the insert origin is the distance from the insert origin to
    # the centre. The patch is even sized but the target may not be, so this avoids
    # rounding the target size.
    half_u = max_x // 2 - target_bounds.x
    half_v = max_y // 2 - target_bounds.y

    union = reference_bounds.union(target_bounds)
    yy, xx = torch.meshgrid(
        torch.arange(union.y, union.y + union.height, device=device),
        torch.arange(union.x, union.x + union.width, device=device),
        indexing="ij",
    )

    min_u = xx - half_u - 1
    max_u = torch.clamp(min_u + size_u, max=max_x - 1)
    min_v = yy - half_v - 1
    max_v = torch.clamp(min_v + size_v, max=max_y - 1)
    region_sum, region_sum_sq = rolling_sums.region_sums(min_u, max_u, min_v, max_v)

    # number of reference pixels under the target footprint
    u0 = xx - half_u
    v0 = yy - half_v
    overlap_u = torch.clamp(
        torch.clamp(u0 + size_u, max=max_x) - torch.clamp(u0, min=0), min=0
    )
    overlap_v = torch.clamp(
        torch.clamp(v0 + size_v, max=max_y) - torch.clamp(v0, min=0), min=0
    )
    n = (overlap_u * overlap_v).to(torch.float64)

    residuals = region_sum_sq - region_sum**2 / torch.clamp(n, min=1)
    values = correlation[yy, xx].to(torch.float64)
    scored = (n >= 1) & (residuals > 0)
    values = torch.where(
        scored, values / torch.sqrt(torch.where(scored, residuals, 1.0)), values
    )

    normalised = torch.zeros_like(correlation)
    normalised[yy, xx] = values.to(correlation.dtype)
    return normalised
