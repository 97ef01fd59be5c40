from __future__ import annotations

import gzip
import math
import struct
import zlib
from dataclasses import dataclass
from typing import Dict, Optional, Tuple, Union

import nibabel as nib
import numpy as np
from nibabel.spatialimages import HeaderDataError

from volmask.utils.logger import logger

from .datatypes import Datatype
from .errors import (
    CorruptCompressionError,
    MalformedHeaderError,
    NotNiftiError,
    TruncatedInputError,
    UnsupportedDatatypeError,
)
from .layout import VolumeLayout, volume_layout

GZIP_MAGIC = b"\x1f\x8b"

# (sizeof_hdr, magic offset, magic) for single-file NIfTI-1 and NIfTI-2.
_SIGNATURES: Tuple[Tuple[int, int, int, bytes], ...] = (
    (1, 348, 344, b"n+1"),
    (2, 540, 4, b"n+2"),
)

BytesLike = Union[bytes, bytearray, memoryview]


@dataclass(frozen=True)
class NiftiHeader:
    """Header fields needed to address and display the voxel payload."""

    dims: Tuple[int, ...]
    datatype_code: int
    bits_per_voxel: int
    vox_offset: int
    little_endian: bool = True
    scl_slope: Optional[float] = None
    scl_inter: Optional[float] = None
    cal_min: Optional[float] = None
    cal_max: Optional[float] = None
    version: int = 1

    @property
    def datatype(self) -> Datatype:
        return Datatype.from_code(self.datatype_code)

    @property
    def has_scaling(self) -> bool:
        return self.scl_slope is not None and self.scl_slope != 0

    def scale(self, values):
        """Apply ``value * slope + intercept`` when a non-zero slope is present."""
        if not self.has_scaling:
            return values
        return values * self.scl_slope + (self.scl_inter or 0.0)

    def to_dict(self) -> Dict[str, object]:
        payload: Dict[str, object] = {
            "dims": [int(d) for d in self.dims],
            "datatype_code": int(self.datatype_code),
            "bits_per_voxel": int(self.bits_per_voxel),
            "vox_offset": int(self.vox_offset),
            "little_endian": bool(self.little_endian),
            "version": int(self.version),
        }
        for key in ("scl_slope", "scl_inter", "cal_min", "cal_max"):
            value = getattr(self, key)
            if value is not None:
                payload[key] = float(value)
        return payload


@dataclass(frozen=True)
class DecodedNifti:
    """Result of :func:`decode`.

    ``data`` is the whole (decompressed) file, ``voxels`` the payload from
    ``header.vox_offset`` to the end of ``data``.
    """

    header: NiftiHeader
    voxels: bytes
    data: bytes
    was_gzipped: bool = False

    @property
    def layout(self) -> VolumeLayout:
        return volume_layout(self.header)


def is_gzip(data: BytesLike) -> bool:
    return len(data) >= 2 and bytes(data[:2]) == GZIP_MAGIC


def gunzip(data: BytesLike) -> bytes:
    try:
        return gzip.decompress(bytes(data))
    except (OSError, EOFError, zlib.error) as exc:
        raise CorruptCompressionError() from exc


def _optional_float(value) -> Optional[float]:
    value = float(value)
    return value if math.isfinite(value) else None


def _detect_signature(buf: bytes) -> Tuple[int, int, bool]:
    """Return ``(version, header_size, little_endian)`` or raise."""
    if len(buf) < 4:
        raise NotNiftiError()
    for version, size, magic_offset, magic in _SIGNATURES:
        for little_endian in (True, False):
            (sizeof_hdr,) = struct.unpack_from("<i" if little_endian else ">i", buf, 0)
            if sizeof_hdr != size:
                continue
            if len(buf) < size:
                raise TruncatedInputError()
            if buf[magic_offset:magic_offset + len(magic)] != magic:
                raise NotNiftiError()
            return version, size, little_endian
    raise NotNiftiError()


def parse_header(buf: BytesLike) -> NiftiHeader:
    """Validate the signature of ``buf`` and parse its fixed-size header."""
    buf = bytes(buf)
    version, size, _ = _detect_signature(buf)
    header_cls = nib.Nifti1Header if version == 1 else nib.Nifti2Header
    try:
        raw = header_cls(binaryblock=buf[:size], check=False)
    except (HeaderDataError, ValueError) as exc:
        raise MalformedHeaderError() from exc

    dims = tuple(int(d) for d in raw["dim"])
    ndim = dims[0]
    if not 1 <= ndim <= 7:
        raise MalformedHeaderError(f"invalid number of dimensions: {ndim}")
    for axis in range(1, min(ndim, 3) + 1):
        if dims[axis] < 1:
            raise MalformedHeaderError(f"dimension {axis} has extent {dims[axis]}")

    datatype = Datatype.from_code(int(raw["datatype"]))
    bits_per_voxel = int(raw["bitpix"])
    if bits_per_voxel <= 0 or bits_per_voxel % 8:
        raise UnsupportedDatatypeError(
            f"bits per voxel must be a positive multiple of 8, got {bits_per_voxel}",
            code=datatype.code,
        )
    if bits_per_voxel != datatype.nbytes * 8:
        raise UnsupportedDatatypeError(
            f"datatype {datatype.name} expects {datatype.nbytes * 8} bits per voxel, "
            f"header declares {bits_per_voxel}",
            code=datatype.code,
        )

    vox_offset = int(float(raw["vox_offset"]))
    if vox_offset < size + 4:
        vox_offset = size + 4

    return NiftiHeader(
        dims=dims,
        datatype_code=datatype.code,
        bits_per_voxel=bits_per_voxel,
        vox_offset=vox_offset,
        little_endian=raw.endianness == "<",
        scl_slope=_optional_float(raw["scl_slope"]),
        scl_inter=_optional_float(raw["scl_inter"]),
        cal_min=_optional_float(raw["cal_min"]),
        cal_max=_optional_float(raw["cal_max"]),
        version=version,
    )


def decode(data: BytesLike) -> DecodedNifti:
    """Decode a ``.nii`` or ``.nii.gz`` byte stream.

    Raises a :class:`~volmask.core.nifti.errors.DecodeError` subclass for
    anything that is not a complete, supported NIfTI volume.
    """
    was_gzipped = is_gzip(data)
    buf = gunzip(data) if was_gzipped else bytes(data)

    header = parse_header(buf)
    layout = volume_layout(header)
    expected = header.vox_offset + layout.total_bytes
    if len(buf) < expected:
        raise TruncatedInputError(
            f"the NIfTI file is truncated: expected {expected} bytes, got {len(buf)}"
        )

    voxels = buf[header.vox_offset:]
    logger.info(
        "Decoded NIfTI-%d volume %dx%dx%d (phases=%d, datatype=%s, gzip=%s)",
        header.version,
        layout.nx,
        layout.ny,
        layout.nz,
        layout.n_phase,
        layout.datatype.name,
        was_gzipped,
    )
    return DecodedNifti(header=header, voxels=voxels, data=buf, was_gzipped=was_gzipped)


def voxel_array(header: NiftiHeader, voxels: BytesLike) -> np.ndarray:
    """Zero-copy, read-only view of every stored voxel, indexed by linear position."""
    layout = volume_layout(header)
    return layout.datatype.view(
        voxels, little_endian=layout.little_endian, count=layout.total_voxels
    )


def read_intensities(header: NiftiHeader, voxels: BytesLike, indices) -> np.ndarray:
    """Scaled float64 intensities at the given linear voxel positions."""
    raw = voxel_array(header, voxels)[indices]
    return header.scale(header.datatype.to_intensity(raw))
