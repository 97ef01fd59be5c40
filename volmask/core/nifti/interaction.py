"""Pointer interaction for a single slice panel.

``SliceInteractor`` is a small state machine (idle, drawing, panning) driven
by host pointer events. It never touches pixels or voxels itself: stamp
centres and slice steps are handed to callbacks.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Callable, List, Optional

from volmask.configs import MaskingConfig

from .mask import Point, interpolate_stamps


class InteractionState(Enum):
    IDLE = "idle"
    DRAWING = "drawing"
    PANNING = "panning"


class PointerButton(IntEnum):
    PRIMARY = 0
    AUXILIARY = 1
    SECONDARY = 2


@dataclass
class PanAnchor:
    x: float
    y: float
    pan_x: float
    pan_y: float


class SliceInteractor:
    def __init__(
        self,
        width: int,
        height: int,
        *,
        on_stamp: Callable[[Point], None],
        on_slice_delta: Optional[Callable[[int], None]] = None,
        on_focus: Optional[Callable[[], None]] = None,
        zoom_multiplier: Callable[[], float] = lambda: 1.0,
        config: Optional[MaskingConfig] = None,
    ):
        self.width = int(width)
        self.height = int(height)
        self.config = config or MaskingConfig()
        self.state = InteractionState.IDLE
        self.scale = 1.0
        self.pan_x = 0.0
        self.pan_y = 0.0
        self.last_point: Optional[Point] = None
        self._anchor: Optional[PanAnchor] = None
        self._on_stamp = on_stamp
        self._on_slice_delta = on_slice_delta
        self._on_focus = on_focus
        self._zoom_multiplier = zoom_multiplier

    @property
    def effective_scale(self) -> float:
        return self.scale * float(self._zoom_multiplier())

    def resize(self, width: int, height: int) -> None:
        self.width = int(width)
        self.height = int(height)
        self.reset()

    def reset(self) -> None:
        self.state = InteractionState.IDLE
        self.last_point = None
        self._anchor = None

    def to_slice_coords(self, x: float, y: float) -> Optional[Point]:
        """Panel-local pointer position to slice pixel, or None outside the slice."""
        scale = self.effective_scale
        if scale <= 0:
            return None
        i = math.floor((x - self.pan_x) / scale)
        j = math.floor((y - self.pan_y) / scale)
        if i < 0 or i >= self.width or j < 0 or j >= self.height:
            return None
        return i, j

    def pointer_down(self, x: float, y: float, button: int = PointerButton.PRIMARY) -> InteractionState:
        if button in (PointerButton.SECONDARY, PointerButton.AUXILIARY):
            self.state = InteractionState.PANNING
            self._anchor = PanAnchor(x, y, self.pan_x, self.pan_y)
            return self.state
        if button != PointerButton.PRIMARY:
            return self.state
        if self._on_focus is not None:
            self._on_focus()
        point = self.to_slice_coords(x, y)
        if point is not None:
            self.state = InteractionState.DRAWING
            self.last_point = point
            self._on_stamp(point)
        return self.state

    def pointer_move(self, x: float, y: float) -> List[Point]:
        """Returns the stamp centres emitted by this move."""
        if self.state is InteractionState.PANNING and self._anchor is not None:
            self.pan_x = self._anchor.pan_x + x - self._anchor.x
            self.pan_y = self._anchor.pan_y + y - self._anchor.y
            return []
        if self.state is not InteractionState.DRAWING:
            return []
        point = self.to_slice_coords(x, y)
        if point is None or self.last_point is None:
            return []
        # the previous centre was already stamped
        centres = interpolate_stamps(self.last_point, point)[1:]
        for centre in centres:
            self._on_stamp(centre)
        self.last_point = point
        return centres

    def pointer_up(self) -> InteractionState:
        self.reset()
        return self.state

    pointer_leave = pointer_up

    def wheel(self, delta_y: float, zoom_modifier: bool = False) -> None:
        if zoom_modifier:
            step = -self.config.wheel_zoom_step if delta_y > 0 else self.config.wheel_zoom_step
            self.scale = min(
                self.config.zoom_max, max(self.config.zoom_min, self.scale + step)
            )
        elif self._on_slice_delta is not None:
            self._on_slice_delta(1 if delta_y > 0 else -1)
