"""Example of ttalign.FftAligner usage on a drifting stack of frames."""

import logging

import einops
import torch
from rich.logging import RichHandler

from ttalign import (
    ConsoleTrackProgress,
    FftAligner,
    InterpolationMethod,
    SubPixelMethod,
    WindowMethod,
    translate_image,
)

logging.basicConfig(level=logging.INFO, handlers=[RichHandler()])

N_FRAMES = 10
FRAME_SIZE = (200, 240)
# drift in pixels per frame, (y, x)
DRIFT = torch.tensor([0.35, -0.6])
WINDOW = WindowMethod.TUKEY

# Set the device for running
DEVICE = "cpu"

# Simulate a field of spots and drift it across the frames
generator = torch.Generator().manual_seed(0)
field = torch.zeros(FRAME_SIZE)
spots = torch.randint(10, min(FRAME_SIZE) - 10, (60, 2), generator=generator)
field[spots[:, 0], spots[:, 1]] = torch.rand(60, generator=generator) + 0.5
field = translate_image(field, 0.5, 0.5)  # smear the spots over a few pixels
drift = einops.repeat(DRIFT, "yx -> n yx", n=N_FRAMES) * torch.arange(N_FRAMES)[:, None]
frames = torch.stack(
    [translate_image(field, float(dx), float(dy)) for dy, dx in drift]
)
frames += 0.05 * torch.rand(frames.shape, generator=generator)

aligner = FftAligner(progress=ConsoleTrackProgress())
aligner.initialise_reference(frames[0].to(DEVICE), WINDOW, normalised=True)
alignment = aligner.align_stack(
    frames.to(DEVICE),
    window_method=WINDOW,
    sub_pixel_method=SubPixelMethod.CUBIC,
    interpolation=InterpolationMethod.BICUBIC,
    clip_output=True,
    show_progress=True,
)

# the offsets undo the drift
error = alignment.offsets + torch.flip(drift, dims=(-1,)).to(torch.float64)
logging.getLogger(__name__).info(
    "Mean absolute drift error: %.3f px", error.abs().mean().item()
)
