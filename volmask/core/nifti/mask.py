"""Binary mask volume and brush/eraser painting.

The mask covers the anatomical ``nx * ny * nz`` grid only and is shared by all
phases of a 4D volume. Values are 0 (unmasked) or 255 (masked); strokes write
straight into the 3D volume through :meth:`VolumeLayout.voxel_index`.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np

from volmask.utils.logger import logger

from .codec import NiftiHeader
from .errors import OutOfRangeError
from .layout import AxisLike, SliceAxis, VolumeLayout, volume_layout

MASK_ON = 255
MASK_OFF = 0

Point = Tuple[int, int]


class Tool(str, Enum):
    BRUSH = "brush"
    ERASER = "eraser"

    @property
    def mask_value(self) -> int:
        return MASK_ON if self is Tool.BRUSH else MASK_OFF


@dataclass(frozen=True)
class Stroke:
    """A single circular stamp in slice coordinates."""

    tool: Tool
    center: Point
    radius: int

    def __post_init__(self) -> None:
        if int(self.radius) < 0:
            raise OutOfRangeError(f"Stroke radius must be >= 0, got {self.radius}")
        object.__setattr__(self, "tool", Tool(self.tool))


@dataclass(frozen=True)
class Slice2D:
    """A 2D mask slice; ``data`` has shape ``(height, width)``."""

    width: int
    height: int
    data: np.ndarray
    axis: SliceAxis
    slice_index: int


class MaskVolume:
    """Dense one-byte-per-voxel mask, allocated on first write."""

    def __init__(self, shape: Sequence[int], data: Optional[np.ndarray] = None):
        self.shape = tuple(int(s) for s in shape)
        self._data: Optional[np.ndarray] = None
        if data is not None:
            data = np.asarray(data, dtype=np.uint8).reshape(-1)
            if data.size != self.size:
                raise ValueError(
                    f"Mask has {data.size} voxels, volume needs {self.size}"
                )
            self._data = np.where(data > 0, MASK_ON, MASK_OFF).astype(np.uint8)

    @classmethod
    def for_header(cls, header: NiftiHeader, data: Optional[np.ndarray] = None) -> "MaskVolume":
        return cls(volume_layout(header).shape, data)

    @property
    def size(self) -> int:
        nx, ny, nz = self.shape
        return nx * ny * nz

    @property
    def allocated(self) -> bool:
        return self._data is not None

    def ensure(self) -> np.ndarray:
        if self._data is None:
            self._data = np.zeros(self.size, dtype=np.uint8)
            logger.debug("Allocated mask volume of %d voxels", self.size)
        return self._data

    def snapshot(self) -> np.ndarray:
        """Read-only view of the mask; all zeros while unallocated."""
        view = (self._data if self._data is not None else np.zeros(self.size, dtype=np.uint8)).view()
        view.flags.writeable = False
        return view

    def copy(self) -> "MaskVolume":
        return MaskVolume(self.shape, None if self._data is None else self._data.copy())

    def clear(self) -> None:
        if self._data is not None:
            self._data.fill(MASK_OFF)

    def count(self) -> int:
        if self._data is None:
            return 0
        return int(np.count_nonzero(self._data))

    def __len__(self) -> int:
        return self.size

    def __repr__(self) -> str:
        return f"MaskVolume(shape={self.shape}, masked={self.count()})"


MaskLike = Union[MaskVolume, np.ndarray, None]


def mask_values(mask: MaskLike, layout: VolumeLayout) -> np.ndarray:
    """Flat mask values for ``layout``; ``None`` or an unallocated mask reads as zeros."""
    if mask is None:
        return np.zeros(layout.voxels_per_phase, dtype=np.uint8)
    if isinstance(mask, MaskVolume):
        values = mask.snapshot()
    else:
        values = np.asarray(mask, dtype=np.uint8).reshape(-1)
    if values.size != layout.voxels_per_phase:
        raise ValueError(
            f"Mask has {values.size} voxels, volume needs {layout.voxels_per_phase}"
        )
    return values


def _check_mask_shape(mask: MaskVolume, layout: VolumeLayout) -> None:
    if mask.shape != layout.shape:
        raise ValueError(f"Mask shape {mask.shape} does not match volume {layout.shape}")


def project_mask_slice(mask: MaskLike, header: NiftiHeader, axis: AxisLike, slice_index: int) -> Slice2D:
    axis = SliceAxis.parse(axis)
    layout = volume_layout(header)
    slice_index = layout.clamp_slice(axis, slice_index)
    indices = layout.slice_indices(axis, slice_index)
    data = mask_values(mask, layout)[indices]
    height, width = data.shape
    return Slice2D(width=width, height=height, data=data, axis=axis, slice_index=slice_index)


def mask_overlay(
    mask_slice: Union[Slice2D, np.ndarray],
    *,
    color: Sequence[int] = (255, 0, 0),
    alpha: float = 0.5,
) -> np.ndarray:
    """RGBA overlay whose alpha is ``value * alpha``."""
    values = mask_slice.data if isinstance(mask_slice, Slice2D) else np.asarray(mask_slice)
    rgba = np.zeros(values.shape + (4,), dtype=np.uint8)
    rgba[..., 0], rgba[..., 1], rgba[..., 2] = (int(c) for c in color[:3])
    rgba[..., 3] = np.clip(np.floor(values.astype(np.float64) * alpha + 0.5), 0, 255)
    return rgba


def composite(base: np.ndarray, overlay: np.ndarray) -> np.ndarray:
    """Alpha-blend an RGBA overlay onto an opaque RGBA base."""
    alpha = overlay[..., 3:4].astype(np.float64) / 255.0
    out = base.astype(np.float64).copy()
    out[..., :3] = base[..., :3] * (1 - alpha) + overlay[..., :3] * alpha
    out[..., 3] = 255
    return np.clip(np.floor(out + 0.5), 0, 255).astype(np.uint8)


def disk_offsets(radius: int) -> Tuple[np.ndarray, np.ndarray]:
    """Integer ``(dx, dy)`` offsets with ``dx**2 + dy**2 <= radius**2``."""
    r = int(radius)
    dy, dx = np.mgrid[-r:r + 1, -r:r + 1]
    inside = dx * dx + dy * dy <= r * r
    return dx[inside], dy[inside]


def brush_radius(brush_size: int) -> int:
    """Stamp radius for a toolbar brush size in pixels."""
    return max(1, int(brush_size) // 2)


def apply_stroke(
    mask: MaskVolume,
    header: NiftiHeader,
    axis: AxisLike,
    slice_index: int,
    stroke: Stroke,
) -> int:
    """Stamp ``stroke`` into the mask volume; returns the number of voxels touched.

    Only in-bounds slice positions are written. The mask is allocated on the
    first stroke.
    """
    axis = SliceAxis.parse(axis)
    layout = volume_layout(header)
    _check_mask_shape(mask, layout)
    slice_index = layout.clamp_slice(axis, slice_index)
    width, height = layout.slice_shape(axis)

    dx, dy = disk_offsets(stroke.radius)
    cx, cy = (int(v) for v in stroke.center)
    i = cx + dx
    j = cy + dy
    inside = (i >= 0) & (i < width) & (j >= 0) & (j < height)
    if not inside.any():
        return 0

    x, y, z = layout.to_volume_coords(axis, slice_index, i[inside], j[inside])
    data = mask.ensure()
    data[layout.voxel_index(x, y, z)] = stroke.tool.mask_value
    return int(inside.sum())


def set_slice_mask(
    mask: MaskVolume,
    header: NiftiHeader,
    axis: AxisLike,
    slice_index: int,
    slice_mask: np.ndarray,
) -> None:
    """Write a whole ``(height, width)`` slice mask back into the volume."""
    axis = SliceAxis.parse(axis)
    layout = volume_layout(header)
    _check_mask_shape(mask, layout)
    slice_index = layout.clamp_slice(axis, slice_index)
    width, height = layout.slice_shape(axis)
    values = np.asarray(slice_mask, dtype=np.uint8).reshape(height, width)
    data = mask.ensure()
    data[layout.slice_indices(axis, slice_index)] = np.where(values > 0, MASK_ON, MASK_OFF)


def interpolate_stamps(start: Point, end: Point) -> List[Point]:
    """Stamp centres from ``start`` to ``end`` inclusive with no gaps."""
    x0, y0 = (int(v) for v in start)
    x1, y1 = (int(v) for v in end)
    steps = max(abs(x1 - x0), abs(y1 - y0), 1)
    points: List[Point] = []
    for t in range(steps + 1):
        point = (
            int(np.floor(x0 + (x1 - x0) * (t / steps) + 0.5)),
            int(np.floor(y0 + (y1 - y0) * (t / steps) + 0.5)),
        )
        if not points or points[-1] != point:
            points.append(point)
    return points


def iter_strokes(
    points: Sequence[Point], tool: Tool, radius: int
) -> Iterator[Stroke]:
    """Strokes along a polyline of pointer positions."""
    if not points:
        return
    previous = points[0]
    yield Stroke(tool, tuple(previous), radius)
    for point in points[1:]:
        for center in interpolate_stamps(previous, point)[1:]:
            yield Stroke(tool, center, radius)
        previous = point
