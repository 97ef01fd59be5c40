import gzip

import nibabel as nib
import numpy as np
import pytest


def build_nifti(
    data,
    *,
    endianness="<",
    slope=None,
    inter=None,
    cal=None,
    version=1,
    compress=False,
):
    """Single-file NIfTI bytes for ``data`` (shape ``(nx, ny, nz[, phases])``)."""
    arr = np.asarray(data)
    header_cls = nib.Nifti1Header if version == 1 else nib.Nifti2Header
    hdr = header_cls(endianness=endianness)
    hdr.set_data_shape(arr.shape)
    hdr.set_data_dtype(arr.dtype)
    # NaN slope means "no scaling"; the nibabel default differs between releases
    hdr["scl_slope"] = np.nan if slope is None else slope
    hdr["scl_inter"] = np.nan if slope is None else (0 if inter is None else inter)
    if cal is not None:
        hdr["cal_min"], hdr["cal_max"] = cal
    vox_offset = header_cls.sizeof_hdr + 4
    hdr["vox_offset"] = vox_offset
    payload = arr.astype(arr.dtype.newbyteorder(endianness)).tobytes(order="F")
    raw = hdr.binaryblock + b"\x00" * 4 + payload
    assert len(raw) == vox_offset + arr.size * arr.dtype.itemsize
    return gzip.compress(raw) if compress else raw


@pytest.fixture
def make_nifti():
    return build_nifti
