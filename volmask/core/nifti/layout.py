from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple, Union

import numpy as np

from .datatypes import Datatype
from .errors import OutOfRangeError


class SliceAxis(str, Enum):
    """Anatomical viewing planes.

    - axial: constant z, width nx, height ny
    - coronal: constant y, width nx, height nz
    - sagittal: constant x, width ny, height nz
    """

    AXIAL = "axial"
    CORONAL = "coronal"
    SAGITTAL = "sagittal"

    @classmethod
    def parse(cls, value: Union[str, "SliceAxis"]) -> "SliceAxis":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise OutOfRangeError(f"Unknown slice axis: {value!r}") from exc


AxisLike = Union[str, SliceAxis]


@dataclass(frozen=True)
class VolumeLayout:
    """Geometry of a decoded volume.

    ``voxel_index`` is the only place that turns coordinates into linear
    positions; the projector, mask engine and serializer all go through it.
    """

    nx: int
    ny: int
    nz: int
    n_phase: int
    datatype: Datatype
    bytes_per_voxel: int
    little_endian: bool = True

    @property
    def voxels_per_phase(self) -> int:
        return self.nx * self.ny * self.nz

    @property
    def total_voxels(self) -> int:
        return self.voxels_per_phase * self.n_phase

    @property
    def bytes_per_phase(self) -> int:
        return self.voxels_per_phase * self.bytes_per_voxel

    @property
    def total_bytes(self) -> int:
        return self.total_voxels * self.bytes_per_voxel

    @property
    def shape(self) -> Tuple[int, int, int]:
        return (self.nx, self.ny, self.nz)

    def voxel_index(self, x, y, z, phase=0):
        """Linear voxel position of ``(x, y, z, phase)``; accepts scalars or arrays."""
        return phase * self.voxels_per_phase + (x + y * self.nx + z * self.nx * self.ny)

    def voxel_coords(self, index):
        """Inverse of :meth:`voxel_index` within one phase."""
        rest, x = np.divmod(index, self.nx)
        z, y = np.divmod(rest, self.ny)
        return x, y, z

    def byte_offset(self, x, y, z, phase=0):
        return self.voxel_index(x, y, z, phase) * self.bytes_per_voxel

    def slice_shape(self, axis: AxisLike) -> Tuple[int, int]:
        """Return ``(width, height)`` of a slice along ``axis``."""
        axis = SliceAxis.parse(axis)
        if axis is SliceAxis.AXIAL:
            return self.nx, self.ny
        if axis is SliceAxis.CORONAL:
            return self.nx, self.nz
        return self.ny, self.nz

    def slice_count(self, axis: AxisLike) -> int:
        axis = SliceAxis.parse(axis)
        if axis is SliceAxis.AXIAL:
            return self.nz
        if axis is SliceAxis.CORONAL:
            return self.ny
        return self.nx

    def clamp_slice(self, axis: AxisLike, slice_index: int) -> int:
        return int(min(max(int(slice_index), 0), self.slice_count(axis) - 1))

    def clamp_phase(self, phase_index: int) -> int:
        return int(min(max(int(phase_index), 0), self.n_phase - 1))

    def to_volume_coords(self, axis: AxisLike, slice_index: int, i, j):
        """Map slice coordinates ``(i, j)`` to volume coordinates ``(x, y, z)``."""
        axis = SliceAxis.parse(axis)
        if axis is SliceAxis.AXIAL:
            return i, j, slice_index
        if axis is SliceAxis.CORONAL:
            return i, slice_index, j
        return slice_index, i, j

    def slice_indices(self, axis: AxisLike, slice_index: int, phase: int = 0) -> np.ndarray:
        """Linear voxel positions of a whole slice as a ``(height, width)`` array."""
        width, height = self.slice_shape(axis)
        j, i = np.mgrid[0:height, 0:width]
        x, y, z = self.to_volume_coords(axis, slice_index, i, j)
        return self.voxel_index(x, y, z, phase)


def volume_layout(header) -> VolumeLayout:
    """Derive the layout of ``header`` (a :class:`NiftiHeader`)."""
    dims = tuple(int(d) for d in header.dims)

    ndim = dims[0] if dims else 3

    def _extent(axis: int) -> int:
        if axis <= ndim and axis < len(dims) and dims[axis] > 0:
            return dims[axis]
        return 1

    n_phase = _extent(4)
    return VolumeLayout(
        nx=_extent(1),
        ny=_extent(2),
        nz=_extent(3),
        n_phase=n_phase,
        datatype=Datatype.from_code(header.datatype_code),
        bytes_per_voxel=int(header.bits_per_voxel) // 8,
        little_endian=bool(header.little_endian),
    )
