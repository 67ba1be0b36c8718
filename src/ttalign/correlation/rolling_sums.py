"""Rolling (prefix) sum tables for constant time windowed statistics."""

from dataclasses import dataclass
from typing import Tuple

import torch

from ttalign.utils import as_image


@dataclass(frozen=True)
class RollingSums:
    """Prefix sums of an image and its square.

    `sum[y, x]` holds the sum of all pixels in `[0, x] x [0, y]`, i.e.

        s(x, y) = f(x, y) + s(x-1, y) + s(x, y-1) - s(x-1, y-1)

    with `s = 0` for negative indices. `sum_sq` is the same for `f ** 2`. Sums are
    accumulated in double precision.
    """

    sum: torch.Tensor
    sum_sq: torch.Tensor

    @classmethod
    def from_image(cls, image: torch.Tensor) -> "RollingSums":
        data = as_image(image, dtype=torch.float64)
        # rolling sum of each row added to the sum of the row above
        rolling_sum = torch.cumsum(torch.cumsum(data, dim=-1), dim=-2)
        rolling_sum_sq = torch.cumsum(torch.cumsum(data**2, dim=-1), dim=-2)
        return cls(rolling_sum, rolling_sum_sq)

    @property
    def shape(self) -> Tuple[int, int]:
        return tuple(self.sum.shape)

    def region_sums(
        self,
        min_u: torch.Tensor | int,
        max_u: torch.Tensor | int,
        min_v: torch.Tensor | int,
        max_v: torch.Tensor | int,
    ) -> Tuple[torch.Tensor, torch.Tensor]:
        """Sum and sum of squares over `(min_u, max_u] x (min_v, max_v]`.

        Computed from the corners of the table as

            s(max_u, max_v) - s(min_u, max_v) - s(max_u, min_v) + s(min_u, min_v)

        where a corner with a negative index is zero and an index beyond the table
        edge reads the edge value. Accepts scalars or broadcastable index tensors.
        """
        device = self.sum.device
        h, w = self.shape
        min_u, max_u, min_v, max_v = (
            torch.as_tensor(i, dtype=torch.long, device=device)
            for i in (min_u, max_u, min_v, max_v)
        )
        max_u = torch.clamp(max_u, max=w - 1)
        max_v = torch.clamp(max_v, max=h - 1)
        # negative upper corners describe an empty region
        valid = (max_u >= 0) & (max_v >= 0)
        use_u = valid & (min_u >= 0)
        use_v = valid & (min_v >= 0)
        min_u = torch.clamp(min_u, 0, w - 1)
        min_v = torch.clamp(min_v, 0, h - 1)
        max_u = torch.clamp(max_u, min=0)
        max_v = torch.clamp(max_v, min=0)

        results = []
        for table in (self.sum, self.sum_sq):
            total = torch.where(valid, table[max_v, max_u], 0.0)
            total = total - torch.where(use_u, table[max_v, min_u], 0.0)
            total = total - torch.where(use_v, table[min_v, max_u], 0.0)
            total = total + torch.where(use_u & use_v, table[min_v, min_u], 0.0)
            results.append(total)
        return results[0], results[1]

    def rectangle_sums(
        self, x: int, y: int, width: int, height: int
    ) -> Tuple[torch.Tensor, torch.Tensor]:
        """Sum and sum of squares over a rectangle clipped to the table."""
        return self.region_sums(x - 1, x + width - 1, y - 1, y + height - 1)
