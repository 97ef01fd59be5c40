from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

import numpy as np

from volmask.configs import MaskingConfig
from volmask.utils.logger import logger
from volmask.utils.mask_cache import MaskCache

from .codec import BytesLike, DecodedNifti, NiftiHeader, decode
from .interaction import SliceInteractor
from .layout import AxisLike, SliceAxis, VolumeLayout
from .mask import (
    MaskVolume,
    Point,
    Stroke,
    Tool,
    apply_stroke,
    brush_radius,
    composite,
    mask_overlay,
    project_mask_slice,
)
from .projector import (
    IntensityRange,
    SliceRange,
    extract_slice,
    get_slice_range,
    get_volume_min_max,
)
from .serializer import build_output, masked_filename


@dataclass(frozen=True)
class AxisLabels:
    top: str
    bottom: str
    left: str
    right: str


AXIS_LABELS: Dict[SliceAxis, AxisLabels] = {
    SliceAxis.AXIAL: AxisLabels(top="S", bottom="I", left="R", right="L"),
    SliceAxis.SAGITTAL: AxisLabels(top="S", bottom="I", left="A", right="P"),
    SliceAxis.CORONAL: AxisLabels(top="A", bottom="P", left="R", right="L"),
}


class MaskingSession:
    """Editing state for one open NIfTI file.

    Owns the decoded volume and its mask, plus the navigation and display
    settings the host panels share (slice per axis, phase, window,
    brightness/contrast, tool and brush size). All mutation goes through
    this object; hosts get rendered RGBA buffers back.
    """

    def __init__(
        self,
        volume: DecodedNifti,
        *,
        name: Optional[str] = None,
        file_id: Optional[str] = None,
        mask: Optional[MaskVolume] = None,
        config: Optional[MaskingConfig] = None,
        cache: Optional[MaskCache] = None,
    ):
        self.volume = volume
        self.name = name
        self.file_id = file_id
        self.config = config or MaskingConfig()
        self.cache = cache
        self.mask = mask if mask is not None else MaskVolume(self.layout.shape)
        if self.mask.shape != self.layout.shape:
            raise ValueError(
                f"Mask shape {self.mask.shape} does not match volume {self.layout.shape}"
            )

        self.active_axis = SliceAxis.AXIAL
        self._slice_index: Dict[SliceAxis, int] = {axis: 0 for axis in SliceAxis}
        self.phase_index = 0
        self.brightness = 0
        self.contrast = 0
        self.tool = Tool.BRUSH
        self.brush_size = self._clamp_brush(self.config.brush_size)
        self.zoom = 1.0
        self.completed = False
        self.download_as_gzip = volume.was_gzipped
        self.window = self._compute_window()

    @classmethod
    def from_bytes(
        cls,
        data: BytesLike,
        *,
        name: Optional[str] = None,
        file_id: Optional[str] = None,
        config: Optional[MaskingConfig] = None,
        cache: Optional[MaskCache] = None,
    ) -> "MaskingSession":
        volume = decode(data)
        mask = MaskVolume(volume.layout.shape)
        if cache is not None and file_id is not None:
            restored = cache.get(file_id, expected_size=mask.size)
            if restored is not None:
                mask = MaskVolume(volume.layout.shape, restored)
                logger.info("Restored mask for %s (%d voxels set)", file_id, mask.count())
        return cls(volume, name=name, file_id=file_id, mask=mask, config=config, cache=cache)

    @property
    def header(self) -> NiftiHeader:
        return self.volume.header

    @property
    def layout(self) -> VolumeLayout:
        return self.volume.layout

    @property
    def was_gzipped(self) -> bool:
        return self.volume.was_gzipped

    def _compute_window(self) -> IntensityRange:
        return get_volume_min_max(
            self.header,
            self.volume.voxels,
            self.phase_index,
            samples=self.config.window_samples,
        )

    def _remember_mask(self) -> None:
        if self.cache is not None and self.file_id is not None:
            self.cache.put(self.file_id, self.mask.snapshot())

    def _clamp_brush(self, size: int) -> int:
        return int(min(self.config.brush_size_max, max(self.config.brush_size_min, int(size))))

    # navigation

    def slice_range(self, axis: AxisLike) -> SliceRange:
        return get_slice_range(self.header, axis)

    def slice_shape(self, axis: AxisLike) -> Tuple[int, int]:
        return self.layout.slice_shape(axis)

    def slice_index(self, axis: AxisLike) -> int:
        return self._slice_index[SliceAxis.parse(axis)]

    def set_slice_index(self, axis: AxisLike, index: int) -> int:
        axis = SliceAxis.parse(axis)
        self._slice_index[axis] = self.layout.clamp_slice(axis, index)
        return self._slice_index[axis]

    def step_slice(self, axis: AxisLike, delta: int) -> int:
        return self.set_slice_index(axis, self.slice_index(axis) + int(delta))

    def set_active_axis(self, axis: AxisLike) -> None:
        self.active_axis = SliceAxis.parse(axis)

    def set_phase(self, phase_index: int) -> int:
        phase_index = self.layout.clamp_phase(phase_index)
        if phase_index != self.phase_index:
            self.phase_index = phase_index
            self.window = self._compute_window()
        return self.phase_index

    # display settings

    def set_brightness(self, value: float) -> None:
        self.brightness = min(self.config.brightness_max, max(self.config.brightness_min, value))

    def set_contrast(self, value: float) -> None:
        self.contrast = min(self.config.contrast_max, max(self.config.contrast_min, value))

    def set_tool(self, tool) -> None:
        self.tool = Tool(tool)

    def set_brush_size(self, size: int) -> None:
        self.brush_size = self._clamp_brush(size)

    def zoom_in(self) -> float:
        self.zoom = min(self.config.zoom_max, self.zoom + self.config.zoom_step)
        return self.zoom

    def zoom_out(self) -> float:
        self.zoom = max(self.config.zoom_min, self.zoom - self.config.zoom_step)
        return self.zoom

    def crosshair(self, axis: AxisLike) -> Point:
        """Cursor position in slice coordinates, taken from the other two axes."""
        axis = SliceAxis.parse(axis)
        x = self._slice_index[SliceAxis.SAGITTAL]
        y = self._slice_index[SliceAxis.CORONAL]
        z = self._slice_index[SliceAxis.AXIAL]
        if axis is SliceAxis.AXIAL:
            return x, y
        if axis is SliceAxis.CORONAL:
            return x, z
        return y, z

    def axis_labels(self, axis: AxisLike) -> AxisLabels:
        return AXIS_LABELS[SliceAxis.parse(axis)]

    # editing

    def paint(self, axis: AxisLike, center: Point) -> int:
        stroke = Stroke(self.tool, tuple(center), brush_radius(self.brush_size))
        written = apply_stroke(self.mask, self.header, axis, self.slice_index(axis), stroke)
        if written:
            self._remember_mask()
        return written

    def interactor(self, axis: AxisLike) -> SliceInteractor:
        axis = SliceAxis.parse(axis)
        width, height = self.slice_shape(axis)
        return SliceInteractor(
            width,
            height,
            on_stamp=lambda center: self.paint(axis, center),
            on_slice_delta=lambda delta: self.step_slice(axis, delta),
            on_focus=lambda: self.set_active_axis(axis),
            zoom_multiplier=lambda: self.zoom,
            config=self.config,
        )

    def render(self, axis: AxisLike, out: Optional[np.ndarray] = None) -> np.ndarray:
        """Fill an RGBA ``(height, width, 4)`` buffer with slice plus mask overlay."""
        axis = SliceAxis.parse(axis)
        index = self.slice_index(axis)
        raster = extract_slice(
            self.header,
            self.volume.voxels,
            axis,
            index,
            vmin=self.window.min,
            vmax=self.window.max,
            phase_index=self.phase_index,
            brightness=self.brightness,
            contrast=self.contrast,
        )
        image = raster.data
        if self.mask.allocated:
            overlay = mask_overlay(
                project_mask_slice(self.mask, self.header, axis, index),
                color=self.config.overlay_color,
                alpha=self.config.overlay_alpha,
            )
            image = composite(image, overlay)
        if out is None:
            return image
        np.copyto(out, image)
        return out

    def complete(self) -> None:
        self.completed = True
        self._remember_mask()

    def export(self, compress: Optional[bool] = None) -> Tuple[str, bytes]:
        """Return ``(file name, bytes)`` of the volume with the mask burned in."""
        compress = self.download_as_gzip if compress is None else bool(compress)
        payload = build_output(
            self.volume.data,
            self.header,
            self.volume.voxels,
            self.mask,
            compress=compress,
            phase_index=self.phase_index,
        )
        self._remember_mask()
        return masked_filename(self.name, compress), payload
