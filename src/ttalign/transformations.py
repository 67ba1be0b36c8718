"""3x3 matrices for 2D translations.

Functions in this module generate matrices which left-multiply column vectors containing
`yxw` homogeneous coordinates.
"""

import einops
import torch


def T_2d(shifts: torch.Tensor) -> torch.Tensor:
    """3x3 matrices for translations.

    Parameters
    ----------
    shifts: torch.Tensor
        `(..., 2)` array of `yx` shifts.

    Returns
    -------
    matrices: torch.Tensor
        `(..., 3, 3)` array of 3x3 shift matrices.
    """
    shifts = torch.atleast_1d(torch.as_tensor(shifts, dtype=torch.float64))
    shifts, ps = einops.pack([shifts], pattern="* coords")  # to 2d
    n = shifts.shape[0]
    matrices = einops.repeat(
        torch.eye(3, dtype=torch.float64), "i j -> n i j", n=n
    ).clone()
    matrices[:, :2, 2] = shifts
    [matrices] = einops.unpack(matrices, packed_shapes=ps, pattern="* i j")
    return matrices
