import pytest
import torch

from ttalign.patch import (
    InsertionRectangle,
    insert_offset,
    normalise_image,
    pad_and_zero,
    padded_size,
)
from ttalign.window import WindowMethod


def test_padded_size():
    assert padded_size(0) == 2
    assert padded_size(1) == 2
    assert padded_size(2) == 2
    assert padded_size(3) == 4
    assert padded_size(64) == 64
    assert padded_size(65) == 128


def test_insert_offset():
    assert insert_offset(8, 8) == 0
    assert insert_offset(8, 4) == 2
    # odd differences round up
    assert insert_offset(8, 5) == 2
    assert insert_offset(8, 3) == 3
    assert insert_offset(8, 7) == 1


def test_insertion_rectangle_union():
    a = InsertionRectangle(2, 3, 4, 5)
    b = InsertionRectangle(0, 4, 3, 10)
    assert a.union(b) == InsertionRectangle(0, 3, 6, 11)
    assert b.union(a) == a.union(b)
    # a rectangle inside another leaves it unchanged
    assert a.union(InsertionRectangle(3, 4, 1, 1)) == a


def test_pad_and_zero():
    image = torch.arange(15, dtype=torch.float32).reshape(3, 5)
    patch, bounds = pad_and_zero(image, 0)
    assert patch.shape == (8, 8)
    assert patch.dtype == torch.float32
    assert bounds == InsertionRectangle(2, 3, 5, 3)
    inserted = patch[bounds.y : bounds.y + 3, bounds.x : bounds.x + 5]
    assert torch.allclose(inserted, image - image.mean())
    assert torch.sum(patch.abs()) == pytest.approx(torch.sum(inserted.abs()).item())
    assert torch.sum(patch).item() == pytest.approx(0, abs=1e-5)


def test_pad_and_zero_max_dimension():
    image = torch.rand((3, 5))
    patch, bounds = pad_and_zero(image, 20)
    assert patch.shape == (32, 32)
    assert bounds == InsertionRectangle(14, 15, 5, 3)
    # an image which is already a power of 2 is not moved
    patch, bounds = pad_and_zero(torch.rand((16, 16)), 16)
    assert patch.shape == (16, 16)
    assert bounds == InsertionRectangle(0, 0, 16, 16)


@pytest.mark.parametrize(
    "method", [WindowMethod.HANNING, WindowMethod.COSINE, WindowMethod.TUKEY]
)
def test_pad_and_zero_window(method):
    image = torch.rand((12, 10), generator=torch.Generator().manual_seed(1)) + 1
    patch, bounds = pad_and_zero(image, 0, method)
    assert patch.shape == (16, 16)
    assert torch.sum(patch.double()).item() == pytest.approx(0, abs=1e-4)
    # padding is untouched
    assert torch.all(patch[: bounds.y] == 0)
    assert torch.all(patch[:, : bounds.x] == 0)


def test_pad_and_zero_does_not_modify_input():
    image = torch.rand((5, 6))
    expected = image.clone()
    pad_and_zero(image, 8, WindowMethod.TUKEY)
    assert torch.equal(image, expected)


def test_normalise_image():
    image = torch.rand((6, 6)) - 0.5
    normalised = normalise_image(image)
    assert torch.sum(normalised.double() ** 2).item() == pytest.approx(1, abs=1e-5)
    empty = normalise_image(torch.zeros((6, 6)))
    assert torch.all(empty == 0)
