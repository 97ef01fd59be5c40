from __future__ import annotations

import gzip
import re
from typing import Optional

import numpy as np

from volmask.utils.logger import logger

from .codec import BytesLike, NiftiHeader
from .layout import volume_layout
from .mask import MASK_ON, MaskLike, mask_values

_NIFTI_SUFFIX = re.compile(r"\.nii(\.gz)?$", re.IGNORECASE)


def build_output(
    original: BytesLike,
    header: NiftiHeader,
    voxels: BytesLike,
    mask: MaskLike,
    *,
    compress: Optional[bool] = None,
    was_gzipped: bool = False,
    phase_index: int = 0,
    compresslevel: int = 6,
) -> bytes:
    """Rebuild a NIfTI byte stream with the mask burned into one phase.

    ``original`` is the decompressed file; its first ``vox_offset`` bytes are
    copied verbatim. Masked voxels of ``phase_index`` become 255 in the
    volume's own datatype, every other byte is copied unchanged. Inputs are
    never modified.

    ``compress`` defaults to ``was_gzipped`` so the output keeps the format of
    the source file.
    """
    if compress is None:
        compress = was_gzipped
    layout = volume_layout(header)
    phase_index = layout.clamp_phase(phase_index)
    offset = header.vox_offset

    out = bytearray(offset + len(voxels))
    out[:offset] = bytes(original[:offset])
    out[offset:] = bytes(voxels)

    selected = np.flatnonzero(mask_values(mask, layout))
    if selected.size:
        payload = np.frombuffer(
            out,
            dtype=layout.datatype.dtype(layout.little_endian),
            count=layout.total_voxels,
            offset=offset,
        )
        x, y, z = layout.voxel_coords(selected)
        payload[layout.voxel_index(x, y, z, phase_index)] = MASK_ON

    logger.info(
        "Built NIfTI output: %d bytes, %d masked voxels in phase %d, gzip=%s",
        len(out),
        int(selected.size),
        phase_index,
        compress,
    )
    if compress:
        return gzip.compress(bytes(out), compresslevel=compresslevel)
    return bytes(out)


def masked_filename(name: Optional[str], compress: bool) -> str:
    """``brain.nii.gz`` -> ``brain_masked.nii`` / ``brain_masked.nii.gz``."""
    base = name or "volume.nii"
    if _NIFTI_SUFFIX.search(base):
        base = _NIFTI_SUFFIX.sub("_masked", base)
    return base + (".nii.gz" if compress else ".nii")
