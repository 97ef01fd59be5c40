from __future__ import annotations

from enum import Enum

import numpy as np

from .errors import UnsupportedDatatypeError


class Datatype(Enum):
    """Supported NIfTI datatype codes.

    Each member carries ``(code, numpy kind, byte width)``. The numpy kind is
    combined with the header byte order to read and write voxels, so a new
    datatype only needs a member here.
    """

    U8 = (2, "u1", 1)
    I16 = (4, "i2", 2)
    I32 = (8, "i4", 4)
    F32 = (16, "f4", 4)
    COMPLEX_F32 = (32, "c8", 8)
    F64 = (64, "f8", 8)
    U16 = (512, "u2", 2)
    U32 = (768, "u4", 4)

    def __init__(self, code: int, kind: str, nbytes: int) -> None:
        self.code = code
        self.kind = kind
        self.nbytes = nbytes

    @classmethod
    def from_code(cls, code: int) -> "Datatype":
        for member in cls:
            if member.code == int(code):
                return member
        raise UnsupportedDatatypeError(
            f"NIfTI datatype code {code} is not supported", code=int(code)
        )

    @property
    def is_complex(self) -> bool:
        return self is Datatype.COMPLEX_F32

    def dtype(self, little_endian: bool = True) -> np.dtype:
        if self.nbytes == 1:
            return np.dtype(self.kind)
        return np.dtype(("<" if little_endian else ">") + self.kind)

    def view(self, buffer, *, little_endian: bool = True, count: int = -1, offset: int = 0) -> np.ndarray:
        """Raw voxel values backed by ``buffer`` (read-only when ``buffer`` is ``bytes``)."""
        return np.frombuffer(
            buffer, dtype=self.dtype(little_endian), count=count, offset=offset
        )

    def to_intensity(self, raw: np.ndarray) -> np.ndarray:
        """Convert raw stored values to float64 intensities.

        Complex voxels are reduced to their magnitude.
        """
        if self.is_complex:
            return np.abs(raw).astype(np.float64)
        return raw.astype(np.float64)

