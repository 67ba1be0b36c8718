import pytest
import torch

from ttalign.correlation import (
    RollingSums,
    correlate_dft_2d,
    forward_transform,
    normalise_correlation,
)
from ttalign.patch import normalise_image, pad_and_zero


def _normalised_correlation(reference, target):
    size = max(*reference.shape, *target.shape)
    reference_patch, reference_bounds = pad_and_zero(reference, size)
    target_patch, target_bounds = pad_and_zero(target, size)
    target_patch = normalise_image(target_patch)
    correlation = correlate_dft_2d(
        forward_transform(reference_patch),
        forward_transform(target_patch),
        shape=reference_patch.shape,
    )
    return normalise_correlation(
        correlation,
        RollingSums.from_image(reference_patch),
        reference_bounds,
        target_bounds,
    )


def test_normalise_correlation_identical():
    image = torch.rand((16, 16), generator=torch.Generator().manual_seed(3))
    normalised = _normalised_correlation(image, image)
    assert torch.argmax(normalised) == 8 * 16 + 8
    assert normalised[8, 8].item() == pytest.approx(1, abs=1e-4)


def test_normalise_correlation_sub_region():
    # a target cut from the reference has a Pearson score of 1 at its position
    reference = torch.rand((32, 32), generator=torch.Generator().manual_seed(5))
    target = reference[8:24, 8:24]
    normalised = _normalised_correlation(reference, target)
    assert torch.argmax(normalised) == 16 * 32 + 16
    assert normalised[16, 16].item() == pytest.approx(1, abs=1e-4)


def test_normalise_correlation_outside_union_is_zero():
    image = torch.rand((16, 16), generator=torch.Generator().manual_seed(9))
    reference_patch, bounds = pad_and_zero(image, 32)
    target_patch = normalise_image(reference_patch)
    correlation = correlate_dft_2d(
        forward_transform(reference_patch),
        forward_transform(target_patch),
        shape=reference_patch.shape,
    )
    normalised = normalise_correlation(
        correlation, RollingSums.from_image(reference_patch), bounds, bounds
    )
    assert normalised.shape == correlation.shape
    assert torch.all(normalised[:8] == 0)
    assert torch.all(normalised[24:] == 0)
    assert torch.all(normalised[:, :8] == 0)
    assert torch.all(normalised[:, 24:] == 0)
    assert normalised[16, 16].item() == pytest.approx(1, abs=1e-4)


def test_normalise_correlation_skips_cells_without_variance():
    # a constant reference region has no residuals so values are not divided
    reference_patch = torch.zeros((8, 8))
    correlation = torch.rand((8, 8))
    _, bounds = pad_and_zero(torch.ones((8, 8)), 8)
    normalised = normalise_correlation(
        correlation, RollingSums.from_image(reference_patch), bounds, bounds
    )
    assert torch.equal(normalised, correlation)
