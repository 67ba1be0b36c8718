import pytest
import torch

from ttalign.window import (
    WindowMethod,
    apply_window,
    apply_window_separable,
    cosine,
    create_window,
    hanning,
    radial_window,
    separable_window,
    tukey,
    tukey_alpha,
    tukey_edge,
)


def test_window_method_from_name():
    assert WindowMethod.from_name("hanning") is WindowMethod.HANNING
    assert WindowMethod.from_name("Tukey") is WindowMethod.TUKEY
    assert WindowMethod.from_name("NONE") is WindowMethod.NONE
    assert WindowMethod.from_name(WindowMethod.COSINE) is WindowMethod.COSINE
    assert str(WindowMethod.COSINE) == "Cosine"
    with pytest.raises(ValueError):
        WindowMethod.from_name("gaussian")


def test_hanning():
    w = hanning(5)
    assert w.dtype == torch.float64
    assert torch.allclose(w, torch.tensor([0, 0.5, 1, 0.5, 0], dtype=torch.float64))


def test_cosine():
    w = cosine(5)
    s = 0.5**0.5
    assert torch.allclose(w, torch.tensor([0, s, 1, s, 0], dtype=torch.float64))


def test_tukey():
    w = tukey(5)
    assert torch.allclose(w, torch.tensor([0, 1, 1, 1, 0], dtype=torch.float64))
    # limits are a rectangular and a Hanning window
    assert torch.all(tukey(9, 0.0) == 1)
    assert torch.allclose(tukey(9, 1.0), hanning(9))
    with pytest.raises(ValueError):
        tukey(9, 1.5)
    with pytest.raises(ValueError):
        tukey(9, -0.1)


def test_tukey_alpha():
    assert tukey_alpha(11, 2) == pytest.approx(0.4)
    assert tukey_alpha(11, 0) == 0
    assert tukey_alpha(0, 3) == 0
    assert tukey_alpha(5, 10) == 1
    w = tukey_edge(11, 2)
    assert w[0] == 0
    assert torch.all(w[3:8] == 1)


@pytest.mark.parametrize("method", list(WindowMethod))
def test_create_window_positive_sum(method):
    for size in range(1, 12):
        w = create_window(method, size)
        assert w.shape == (size,)
        assert torch.sum(w) > 0
        # symmetric
        assert torch.allclose(w, torch.flip(w, dims=(0,)))


def test_create_window_small_sizes():
    for method in WindowMethod:
        assert torch.all(create_window(method, 1) == 1)
        assert torch.all(create_window(method, 2) == 1)


def test_create_window_returns_copy():
    w = hanning(7)
    w[:] = 42
    assert hanning(7)[0] == 0


def test_separable_window():
    w = separable_window(WindowMethod.HANNING, (5, 7))
    assert w.shape == (5, 7)
    assert torch.allclose(w[2], hanning(7))
    assert torch.allclose(w[:, 3], hanning(5))


def test_radial_window():
    w = radial_window(WindowMethod.HANNING, (16, 12))
    assert w.shape == (16, 12)
    # largest weight at the centre
    assert torch.argmax(w) == 8 * 12 + 6
    assert torch.all(radial_window(WindowMethod.TUKEY, (2, 2)) == 1)


@pytest.mark.parametrize("method", list(WindowMethod))
def test_apply_window_zero_mean(method):
    image = torch.rand((13, 17), generator=torch.Generator().manual_seed(42)) + 3
    for windowed in (
        apply_window_separable(image, method),
        apply_window(image, method),
    ):
        assert windowed.shape == image.shape
        assert windowed.dtype == torch.float32
        assert torch.sum(windowed.double()).item() == pytest.approx(0, abs=1e-4)


def test_apply_window_does_not_modify_input():
    image = torch.rand((8, 8))
    expected = image.clone()
    apply_window_separable(image, WindowMethod.HANNING)
    assert torch.equal(image, expected)
