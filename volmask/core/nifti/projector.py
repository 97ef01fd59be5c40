"""Grayscale slice rendering for decoded NIfTI volumes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import numpy as np

from volmask.utils.logger import logger

from .codec import BytesLike, NiftiHeader, read_intensities, voxel_array
from .layout import AxisLike, SliceAxis, volume_layout

# Sample budget for the coarse scan used when a caller supplies no window.
DISPLAY_SAMPLES = 10_000
# Sample budget for the window-level range computed once per phase.
WINDOW_SAMPLES = 50_000


@dataclass(frozen=True)
class SliceRange:
    min: int
    max: int


@dataclass(frozen=True)
class IntensityRange:
    min: float
    max: float


@dataclass(frozen=True)
class RasterSlice:
    """An RGBA slice; ``data`` has shape ``(height, width, 4)``."""

    width: int
    height: int
    data: np.ndarray
    slice_index: int
    axis: SliceAxis
    phase_index: int = 0

    def gray(self) -> np.ndarray:
        return self.data[..., 0]


def _round_half_up(values: np.ndarray) -> np.ndarray:
    return np.floor(values + 0.5)


def get_slice_range(header: NiftiHeader, axis: AxisLike) -> SliceRange:
    layout = volume_layout(header)
    return SliceRange(0, max(0, layout.slice_count(axis) - 1))


def sample_min_max(values: np.ndarray, samples: int) -> Optional[IntensityRange]:
    """Min/max over every ``len(values) // samples``-th value, ignoring non-finite ones."""
    step = max(1, len(values) // max(1, int(samples)))
    sampled = values[::step]
    sampled = sampled[np.isfinite(sampled)]
    if sampled.size == 0:
        return None
    return IntensityRange(float(sampled.min()), float(sampled.max()))


def _phase_samples(header: NiftiHeader, voxels: BytesLike, phase_index: int, samples: int):
    layout = volume_layout(header)
    phase_index = layout.clamp_phase(phase_index)
    start = layout.voxel_index(0, 0, 0, phase_index)
    n = layout.voxels_per_phase
    step = max(1, n // max(1, int(samples)))
    raw = voxel_array(header, voxels)[start:start + n:step]
    return header.scale(header.datatype.to_intensity(raw))


def auto_min_max(
    header: NiftiHeader,
    voxels: BytesLike,
    phase_index: int = 0,
    *,
    samples: int = DISPLAY_SAMPLES,
) -> IntensityRange:
    """Coarse intensity range of one phase from a strided sample."""
    values = _phase_samples(header, voxels, phase_index, samples)
    found = sample_min_max(values, len(values))
    if found is None:
        return IntensityRange(0.0, 255.0)
    logger.debug("Auto window for phase %d: [%g, %g]", phase_index, found.min, found.max)
    return found


def get_volume_min_max(
    header: NiftiHeader,
    voxels: BytesLike,
    phase_index: int = 0,
    *,
    samples: int = WINDOW_SAMPLES,
) -> IntensityRange:
    """Display window for a phase.

    The header calibration range wins when ``cal_max > cal_min``; otherwise the
    phase is sampled.
    """
    cal_min, cal_max = header.cal_min, header.cal_max
    if cal_min is not None and cal_max is not None:
        if cal_max > cal_min:
            return IntensityRange(
                float(header.scale(cal_min)), float(header.scale(cal_max))
            )
        if cal_max != 0 or cal_min != 0:
            logger.warning(
                "Ignoring degenerate calibration range [%g, %g]", cal_min, cal_max
            )
    return auto_min_max(header, voxels, phase_index, samples=samples)


def normalize(values: np.ndarray, vmin: float, vmax: float) -> np.ndarray:
    """Map intensities linearly onto ``0..255``.

    A flat window (``vmax <= vmin``) renders everything at or above ``vmin`` as
    255 and the rest as 0.
    """
    span = float(vmax) - float(vmin)
    with np.errstate(invalid="ignore"):
        if not np.isfinite(span) or span <= 0:
            out = np.where(values >= vmin, 255.0, 0.0)
        else:
            out = np.clip(_round_half_up((values - vmin) / span * 255.0), 0, 255)
    return np.nan_to_num(out, nan=0.0).astype(np.uint8)


def adjust_brightness_contrast(pixels: np.ndarray, brightness: float = 0, contrast: float = 0) -> np.ndarray:
    """Brightness/contrast in percent (-100..100) around mid-gray 128."""
    if not brightness and not contrast:
        return np.asarray(pixels, dtype=np.uint8)
    br = 1 + brightness / 100.0
    co = 1 + contrast / 100.0
    out = 128 + (np.asarray(pixels, dtype=np.float64) - 128) * co * br + brightness
    return np.clip(_round_half_up(out), 0, 255).astype(np.uint8)


def gray_to_rgba(gray: np.ndarray) -> np.ndarray:
    rgba = np.empty(gray.shape + (4,), dtype=np.uint8)
    rgba[..., :3] = gray[..., None]
    rgba[..., 3] = 255
    return rgba


def extract_slice(
    header: NiftiHeader,
    voxels: BytesLike,
    axis: AxisLike,
    slice_index: int,
    *,
    vmin: Optional[float] = None,
    vmax: Optional[float] = None,
    phase_index: int = 0,
    brightness: float = 0,
    contrast: float = 0,
) -> RasterSlice:
    """Render one slice as RGBA.

    Out-of-range slice and phase indices are clamped. When either window bound
    is missing it is taken from a coarse scan of the phase.
    """
    axis = SliceAxis.parse(axis)
    layout = volume_layout(header)
    clamped = layout.clamp_slice(axis, slice_index)
    if clamped != slice_index:
        logger.debug("Clamped %s slice %s to %d", axis.value, slice_index, clamped)
    phase_index = layout.clamp_phase(phase_index)

    if vmin is None or vmax is None:
        auto = auto_min_max(header, voxels, phase_index)
        vmin = auto.min if vmin is None else vmin
        vmax = auto.max if vmax is None else vmax

    indices = layout.slice_indices(axis, clamped, phase_index)
    gray = normalize(read_intensities(header, voxels, indices), vmin, vmax)
    gray = adjust_brightness_contrast(gray, brightness, contrast)
    height, width = gray.shape
    return RasterSlice(
        width=width,
        height=height,
        data=gray_to_rgba(gray),
        slice_index=clamped,
        axis=axis,
        phase_index=phase_index,
    )
