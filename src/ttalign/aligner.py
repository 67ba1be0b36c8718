"""Align images to a reference by maximising their DFT based cross-correlation.

The correlation is computed in the frequency domain (conjugate multiplication in
frequency space is correlation in real space). Images are padded to a square
power-of-two patch, optionally windowed, and shifted to a zero mean. The target is
also scaled to unit length.

By default translations are restricted so that at least half of the smaller image
width/height is within the larger image (half-max translation). Normalised
correlation divides each offset by the energy of the reference region under the
target, computed from rolling sums (Fast Normalized Cross-Correlation, J. P. Lewis).
This assumes the target fits within the reference for all translations of interest,
otherwise normalised scores can fall outside `[-1, 1]`.
"""

import logging
from dataclasses import dataclass
from typing import List, Tuple

import einops
import torch
from rich.progress import track

from .affine import InterpolationMethod, translate_image
from .alignment import SearchBounds, SubPixelMethod, find_maximum, refine_peak
from .correlation import (
    RollingSums,
    correlate_dft_2d,
    forward_transform,
    normalise_correlation,
)
from .patch import InsertionRectangle, normalise_image, pad_and_zero
from .progress import TrackProgress, progress_or_null
from .utils import as_image, dft_center, is_empty
from .window import WindowMethod

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class AlignmentResult:
    """Translation that aligns a target to the reference, and its score."""

    x_offset: float
    y_offset: float
    score: float

    @property
    def offset(self) -> Tuple[float, float]:
        return self.x_offset, self.y_offset


NO_ALIGNMENT = AlignmentResult(0.0, 0.0, 0.0)


@dataclass(frozen=True)
class PreparedReference:
    """Reference state shared by all alignments. Read only once created."""

    size: int
    bounds: InsertionRectangle
    patch: torch.Tensor
    dft: torch.Tensor
    rolling_sums: RollingSums | None = None

    @property
    def width(self) -> int:
        return self.bounds.width

    @property
    def height(self) -> int:
        return self.bounds.height

    def fits(self, image: torch.Tensor) -> bool:
        """Whether an image fits in the reference patch."""
        h, w = image.shape[-2:]
        return h <= self.size and w <= self.size


@dataclass(frozen=True)
class TransformedTarget:
    """A target transformed for alignment with a prepared reference."""

    size: int
    bounds: InsertionRectangle
    patch: torch.Tensor
    dft: torch.Tensor


@dataclass
class StackAlignment:
    """Aligned stack with the result for each slice.

    The correlation and normalised target stacks are `(n, size, size)` and only
    present when requested.
    """

    aligned: torch.Tensor
    results: List[AlignmentResult]
    correlation: torch.Tensor | None = None
    normalised_target: torch.Tensor | None = None
    normalised_reference: torch.Tensor | None = None

    @property
    def offsets(self) -> torch.Tensor:
        """`(n, 2)` array of `xy` offsets."""
        return torch.tensor(
            [[r.x_offset, r.y_offset] for r in self.results], dtype=torch.float64
        ).reshape(-1, 2)

    @property
    def scores(self) -> torch.Tensor:
        return torch.tensor([r.score for r in self.results], dtype=torch.float64)


def prepare_reference(
    reference: torch.Tensor | None,
    window_method: WindowMethod | str = WindowMethod.NONE,
    normalised: bool = True,
    max_dimension: int = 0,
) -> PreparedReference | None:
    """Pad, window and transform a reference image.

    Returns None for a missing reference or one without signal.
    """
    if reference is None:
        return None
    reference = as_image(reference)
    if is_empty(reference):
        return None
    max_dimension = max(max_dimension, *reference.shape)
    patch, bounds = pad_and_zero(reference, max_dimension, window_method)
    # The mean subtraction normalises the numerator of the correlation; the
    # denominator is computed per offset from the rolling sums.
    rolling_sums = RollingSums.from_image(patch) if normalised else None
    return PreparedReference(
        size=patch.shape[-1],
        bounds=bounds,
        patch=patch,
        dft=forward_transform(patch),
        rolling_sums=rolling_sums,
    )


def prepare_target(
    reference: PreparedReference,
    target: torch.Tensor,
    window_method: WindowMethod | str = WindowMethod.NONE,
) -> TransformedTarget:
    """Pad and window a target to the reference size, with zero mean and unit length."""
    patch, bounds = pad_and_zero(target, reference.size, window_method)
    patch = normalise_image(patch)
    return TransformedTarget(
        size=patch.shape[-1], bounds=bounds, patch=patch, dft=forward_transform(patch)
    )


def correlate_target(
    reference: PreparedReference, target: TransformedTarget
) -> torch.Tensor:
    """Correlation surface of a transformed target against the reference.

    The surface is normalised if the reference has rolling sums.
    """
    if target.size != reference.size:
        raise ValueError(
            f"Invalid transformed target: size {target.size} does not match the "
            f"reference size {reference.size}."
        )
    correlation = correlate_dft_2d(
        reference.dft, target.dft, shape=(reference.size, reference.size)
    )
    if reference.rolling_sums is not None:
        correlation = normalise_correlation(
            correlation, reference.rolling_sums, reference.bounds, target.bounds
        )
    return correlation


def locate_peak(
    correlation: torch.Tensor,
    bounds: SearchBounds,
    sub_pixel_method: SubPixelMethod | str = SubPixelMethod.CUBIC,
) -> Tuple[AlignmentResult, float]:
    """Offset of the correlation maximum from the centre of the surface.

    Returns
    -------
    result: AlignmentResult
        Offset and (interpolated) score.
    peak_score: float
        Score at the integer maximum.
    """
    peak = find_maximum(correlation, bounds)
    if peak is None:
        log.warning("Search bounds %s do not overlap the correlation surface", bounds)
        return NO_ALIGNMENT, 0.0
    x, y, score = refine_peak(correlation, *peak, method=sub_pixel_method)
    origin_y, origin_x = (int(i) for i in dft_center(correlation.shape[-2:]))
    result = AlignmentResult(x - origin_x, y - origin_y, score)
    return result, float(correlation[peak[1], peak[0]])


def _can_correlate(
    reference: PreparedReference, target: TransformedTarget | None
) -> bool:
    # zero correlation with an image which is empty, or uniform before mean removal
    return (
        target is not None
        and not is_empty(target.patch)
        and not is_empty(reference.patch)
    )


def _stack_or(tensors: List[torch.Tensor], empty: torch.Tensor) -> torch.Tensor:
    return torch.stack(tensors) if tensors else empty


class FftAligner:
    """Aligns images to a pre-initialised reference using XY translation.

    The reference is padded, windowed and transformed once by
    `initialise_reference` and then shared by all alignments. Alignments do not
    modify the reference state so they can run concurrently; re-initialising the
    reference while alignments are running is not supported.

    Parameters
    ----------
    progress: TrackProgress | None
        Sink for per-slice log messages and the cancellation check of stack
        alignments.
    do_translation: bool
        If False stack alignments do not translate the slices. The offsets are
        still computed.
    reference: PreparedReference | None
        Reference from `prepare_reference`, instead of `initialise_reference`.
    """

    def __init__(
        self,
        progress: TrackProgress | None = None,
        do_translation: bool = True,
        reference: PreparedReference | None = None,
    ):
        self.progress = progress_or_null(progress)
        self.do_translation = do_translation
        self._reference = reference
        self.last_result: AlignmentResult | None = None

    @property
    def reference(self) -> PreparedReference | None:
        return self._reference

    @property
    def is_initialised(self) -> bool:
        return self._reference is not None

    @property
    def last_x_offset(self) -> float:
        return 0.0 if self.last_result is None else self.last_result.x_offset

    @property
    def last_y_offset(self) -> float:
        return 0.0 if self.last_result is None else self.last_result.y_offset

    def set_progress(self, progress: TrackProgress | None) -> None:
        self.progress = progress_or_null(progress)

    def initialise_reference(
        self,
        reference: torch.Tensor | None,
        window_method: WindowMethod | str = WindowMethod.NONE,
        normalised: bool = True,
    ) -> None:
        """Initialise the reference for alignment.

        All targets must be equal or smaller than the reference patch. A missing
        reference, or one without signal, clears the reference.

        Parameters
        ----------
        reference: torch.Tensor | None
            `(h, w)` reference image.
        window_method: WindowMethod | str
            Window applied to the reference.
        normalised: bool
            True if the correlation should be normalised (scores of -1 to 1).
        """
        self._reference = prepare_reference(reference, window_method, normalised)

    def transform_target(
        self,
        target: torch.Tensor | None,
        window_method: WindowMethod | str = WindowMethod.NONE,
    ) -> TransformedTarget | None:
        """Transform a target for repeated alignment with the reference.

        Returns None if the reference is not initialised, or the target is missing
        or larger than the reference patch.
        """
        reference = self._reference
        if reference is None or target is None:
            return None
        target = as_image(target)
        if not reference.fits(target):
            return None
        return prepare_target(reference, target, window_method)

    def align(
        self,
        target: torch.Tensor | TransformedTarget | None,
        window_method: WindowMethod | str = WindowMethod.NONE,
        bounds: SearchBounds | None = None,
        sub_pixel_method: SubPixelMethod | str = SubPixelMethod.CUBIC,
    ) -> AlignmentResult | None:
        """Find the translation that aligns a target to the reference.

        Parameters
        ----------
        target: torch.Tensor | TransformedTarget | None
            `(h, w)` image, or a target from `transform_target`.
        window_method: WindowMethod | str
            Window applied to a target image.
        bounds: SearchBounds | None
            Allowed translations, default is the half-max bounds.
        sub_pixel_method: SubPixelMethod | str
            Refinement of the correlation peak.

        Returns
        -------
        result: AlignmentResult | None
            None if the reference is not initialised, or the target is missing or
            larger than the reference patch. A target without signal has a zero
            result.

        Raises
        ------
        ValueError
            If a transformed target does not match the reference size.
        """
        self.last_result = None
        reference = self._reference
        if reference is None or target is None:
            return None

        if isinstance(target, TransformedTarget):
            if target.size != reference.size:
                raise ValueError(
                    f"Invalid transformed target: size {target.size} does not match "
                    f"the reference size {reference.size}."
                )
            transformed = target
        else:
            target = as_image(target)
            if not reference.fits(target):
                return None
            transformed = None
            if not is_empty(target):
                transformed = prepare_target(reference, target, window_method)

        if not _can_correlate(reference, transformed):
            self.last_result = NO_ALIGNMENT
            return NO_ALIGNMENT

        if bounds is None:
            bounds = SearchBounds.half_max(
                reference.width,
                reference.height,
                transformed.bounds.width,
                transformed.bounds.height,
            )
        correlation = correlate_target(reference, transformed)
        result, _ = locate_peak(correlation, bounds, sub_pixel_method)
        self.last_result = result
        return result

    def align_stack(
        self,
        stack: torch.Tensor | None,
        window_method: WindowMethod | str = WindowMethod.NONE,
        bounds: SearchBounds | None = None,
        sub_pixel_method: SubPixelMethod | str = SubPixelMethod.CUBIC,
        interpolation: InterpolationMethod | str = InterpolationMethod.BICUBIC,
        clip_output: bool = False,
        return_correlation: bool = False,
        return_normalised_target: bool = False,
        show_progress: bool = False,
    ) -> StackAlignment | None:
        """Align all slices of a stack to the reference.

        The progress sink is checked for cancellation after each slice.

        Parameters
        ----------
        stack: torch.Tensor | None
            `(n, h, w)` stack or `(h, w)` image.
        window_method: WindowMethod | str
            Window applied to each slice.
        bounds: SearchBounds | None
            Allowed translations, default is the half-max bounds.
        sub_pixel_method: SubPixelMethod | str
            Refinement of the correlation peak.
        interpolation: InterpolationMethod | str
            Interpolation used to translate slices by non-integer offsets.
        clip_output: bool
            Clip bicubic interpolation to the maximum of each input slice.
        return_correlation: bool
            Keep the correlation surface of each slice.
        return_normalised_target: bool
            Keep the normalised target patch of each slice.
        show_progress: bool
            Show a progress bar on the console.

        Returns
        -------
        alignment: StackAlignment | None
            None if the reference is not initialised, the stack is missing or larger
            than the reference patch, or the alignment was cancelled. An empty stack
            has no results.
        """
        self.last_result = None
        reference = self._reference
        if reference is None or stack is None:
            return None
        stack = torch.as_tensor(stack)
        if stack.dim() == 2:
            stack = einops.rearrange(stack, "h w -> 1 h w")
        if stack.dim() != 3:
            raise ValueError(
                f"Expected a (n, h, w) stack, got shape {tuple(stack.shape)}."
            )
        if not reference.fits(stack):
            return None

        if bounds is None:
            bounds = SearchBounds.half_max(
                reference.width, reference.height, stack.shape[-1], stack.shape[-2]
            )

        aligned, results, correlations, normalised_targets = [], [], [], []
        slices = range(len(stack))
        if show_progress:
            slices = track(slices, description="Aligning slices...")
        for i in slices:
            slice_aligned, result, correlation, normalised_target = self._align_slice(
                reference,
                stack[i],
                i + 1,
                window_method,
                bounds,
                sub_pixel_method,
                interpolation,
                clip_output,
            )
            aligned.append(slice_aligned)
            results.append(result)
            if return_correlation:
                correlations.append(correlation)
            if return_normalised_target:
                normalised_targets.append(normalised_target)
            if self.progress.is_cancelled():
                log.info("Stack alignment cancelled after slice %d", i + 1)
                return None

        # an empty stack keeps its shape and gives (0, N, N) diagnostics
        empty = reference.patch.new_zeros((0, reference.size, reference.size))
        return StackAlignment(
            aligned=torch.stack(aligned) if aligned else stack.clone(),
            results=results,
            correlation=(
                _stack_or(correlations, empty) if return_correlation else None
            ),
            normalised_target=(
                _stack_or(normalised_targets, empty)
                if return_normalised_target
                else None
            ),
        )

    def _align_slice(
        self,
        reference: PreparedReference,
        target: torch.Tensor,
        slice_number: int,
        window_method: WindowMethod | str,
        bounds: SearchBounds,
        sub_pixel_method: SubPixelMethod | str,
        interpolation: InterpolationMethod | str,
        clip_output: bool,
    ) -> Tuple[torch.Tensor, AlignmentResult, torch.Tensor, torch.Tensor]:
        transformed = None
        if not is_empty(target):
            transformed = prepare_target(reference, target, window_method)
        if not _can_correlate(reference, transformed):
            self.progress.log("Best Slice %d  x 0  y 0 = 0", slice_number)
            self.last_result = NO_ALIGNMENT
            empty = torch.zeros_like(reference.patch)
            return target.clone(), NO_ALIGNMENT, empty, empty.clone()

        correlation = correlate_target(reference, transformed)
        result, peak_score = locate_peak(correlation, bounds, sub_pixel_method)
        self.last_result = result

        interpolated = ""
        if SubPixelMethod.from_name(sub_pixel_method) is SubPixelMethod.CUBIC:
            interpolated = f" (interpolated score {result.score:g})"
        self.progress.log(
            "Best Slice %d  x %g  y %g = %g%s",
            slice_number,
            result.x_offset,
            result.y_offset,
            peak_score,
            interpolated,
        )

        if self.do_translation:
            aligned = translate_image(
                target, result.x_offset, result.y_offset, interpolation, clip_output
            )
        else:
            aligned = target.clone()
        return aligned, result, correlation, transformed.patch


def align_images(
    reference: torch.Tensor | None,
    stack: torch.Tensor | None = None,
    window_method: WindowMethod | str = WindowMethod.NONE,
    bounds: SearchBounds | None = None,
    sub_pixel_method: SubPixelMethod | str = SubPixelMethod.CUBIC,
    interpolation: InterpolationMethod | str = InterpolationMethod.BICUBIC,
    normalised: bool = True,
    clip_output: bool = False,
    return_correlation: bool = False,
    return_normalised_target: bool = False,
    return_normalised_reference: bool = False,
    progress: TrackProgress | None = None,
    show_progress: bool = False,
) -> StackAlignment | None:
    """Align all slices of a stack to a reference image in a single call.

    The padded patch covers both the reference and the stack, so slices may be
    larger than the reference. If no stack is given the reference is aligned to
    itself.

    Returns None if the reference is missing or has no signal, or if cancelled.
    See `FftAligner.align_stack` for the parameters.
    """
    if reference is None:
        return None
    reference = as_image(reference)
    stack = reference if stack is None else torch.as_tensor(stack)
    prepared = prepare_reference(
        reference,
        window_method,
        normalised,
        max_dimension=max(stack.shape[-2:]),
    )
    if prepared is None:
        return None

    aligner = FftAligner(progress=progress, reference=prepared)
    if bounds is None:
        bounds = SearchBounds.half_max(
            reference.shape[-1], reference.shape[-2], stack.shape[-1], stack.shape[-2]
        )
    alignment = aligner.align_stack(
        stack,
        window_method=window_method,
        bounds=bounds,
        sub_pixel_method=sub_pixel_method,
        interpolation=interpolation,
        clip_output=clip_output,
        return_correlation=return_correlation,
        return_normalised_target=return_normalised_target,
        show_progress=show_progress,
    )
    if alignment is not None and return_normalised_reference:
        alignment.normalised_reference = prepared.patch.clone()
    return alignment
