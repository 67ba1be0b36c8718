import pytest
import torch

from ttalign.correlation import RollingSums


def test_rolling_sums_from_image():
    image = torch.arange(12, dtype=torch.float32).reshape(3, 4)
    rolling_sums = RollingSums.from_image(image)
    assert rolling_sums.shape == (3, 4)
    assert rolling_sums.sum.dtype == torch.float64
    assert rolling_sums.sum[-1, -1] == image.sum()
    assert rolling_sums.sum[1, 2] == image[:2, :3].sum()
    assert rolling_sums.sum_sq[2, 1] == (image[:3, :2] ** 2).sum()


def test_rectangle_sums_brute_force():
    image = torch.rand((7, 9), generator=torch.Generator().manual_seed(7))
    image = image.to(torch.float64)
    rolling_sums = RollingSums.from_image(image)
    for x, y, w, h in [(0, 0, 9, 7), (1, 1, 2, 2), (3, 0, 6, 4), (8, 6, 1, 1)]:
        region = image[y : y + h, x : x + w]
        s, ss = rolling_sums.rectangle_sums(x, y, w, h)
        assert s.item() == pytest.approx(region.sum().item())
        assert ss.item() == pytest.approx((region**2).sum().item())


def test_region_sums_clamped():
    image = torch.arange(12, dtype=torch.float64).reshape(3, 4)
    rolling_sums = RollingSums.from_image(image)
    # beyond the table edge reads the edge value
    s, _ = rolling_sums.rectangle_sums(2, 0, 10, 10)
    assert s.item() == image[:, 2:].sum().item()
    # negative upper corner is an empty region
    s, ss = rolling_sums.region_sums(-5, -1, 0, 2)
    assert s.item() == 0
    assert ss.item() == 0


def test_region_sums_vectorised():
    image = torch.rand((6, 6), dtype=torch.float64)
    rolling_sums = RollingSums.from_image(image)
    min_u = torch.tensor([[-1, 0], [2, 3]])
    max_u = torch.tensor([[3, 5], [8, 4]])
    min_v = torch.tensor([[-2, 1], [0, -1]])
    max_v = torch.tensor([[2, 4], [5, 7]])
    s, ss = rolling_sums.region_sums(min_u, max_u, min_v, max_v)
    assert s.shape == (2, 2)
    for i in range(2):
        for j in range(2):
            expected_s, expected_ss = rolling_sums.region_sums(
                int(min_u[i, j]), int(max_u[i, j]), int(min_v[i, j]), int(max_v[i, j])
            )
            assert s[i, j].item() == pytest.approx(expected_s.item())
            assert ss[i, j].item() == pytest.approx(expected_ss.item())
