import numpy as np
import pytest

from volmask.core.nifti import Datatype, NiftiHeader, OutOfRangeError, SliceAxis, volume_layout


def _header(dims, datatype_code=2, bits=8):
    padded = tuple(dims) + (1,) * (8 - len(dims))
    return NiftiHeader(
        dims=padded, datatype_code=datatype_code, bits_per_voxel=bits, vox_offset=352
    )


def test_layout_from_three_dimensional_header():
    layout = volume_layout(_header((3, 4, 5, 6)))

    assert layout.shape == (4, 5, 6)
    assert layout.n_phase == 1
    assert layout.bytes_per_voxel == 1
    assert layout.voxels_per_phase == 120
    assert layout.datatype is Datatype.U8


def test_layout_ignores_trailing_dims_beyond_ndim():
    layout = volume_layout(_header((2, 4, 5, 9, 7)))
    assert layout.shape == (4, 5, 1)
    assert layout.n_phase == 1


def test_layout_phases_and_bytes():
    layout = volume_layout(_header((4, 2, 3, 4, 5), datatype_code=4, bits=16))

    assert layout.n_phase == 5
    assert layout.bytes_per_voxel == 2
    assert layout.total_voxels == 2 * 3 * 4 * 5
    assert layout.total_bytes == layout.total_voxels * 2
    assert layout.bytes_per_phase == 2 * 3 * 4 * 2


def test_voxel_index_is_x_fastest():
    layout = volume_layout(_header((4, 2, 3, 4, 2)))

    assert layout.voxel_index(0, 0, 0) == 0
    assert layout.voxel_index(1, 0, 0) == 1
    assert layout.voxel_index(0, 1, 0) == 2
    assert layout.voxel_index(0, 0, 1) == 6
    assert layout.voxel_index(1, 2, 3, phase=1) == 24 + 1 + 4 + 18
    assert layout.byte_offset(1, 0, 0) == 1


def test_voxel_coords_inverts_voxel_index():
    layout = volume_layout(_header((3, 3, 4, 5)))
    index = np.arange(layout.voxels_per_phase)
    x, y, z = layout.voxel_coords(index)
    np.testing.assert_array_equal(layout.voxel_index(x, y, z), index)


@pytest.mark.parametrize(
    "axis, shape, count",
    [("axial", (3, 4), 5), ("coronal", (3, 5), 4), ("sagittal", (4, 5), 3)],
)
def test_slice_shapes(axis, shape, count):
    layout = volume_layout(_header((3, 3, 4, 5)))
    assert layout.slice_shape(axis) == shape
    assert layout.slice_count(axis) == count


def test_slice_indices_match_voxel_index():
    layout = volume_layout(_header((3, 3, 4, 5)))

    coronal = layout.slice_indices("coronal", 2)
    assert coronal.shape == (5, 3)
    assert coronal[4, 1] == layout.voxel_index(1, 2, 4)

    sagittal = layout.slice_indices(SliceAxis.SAGITTAL, 1)
    assert sagittal.shape == (5, 4)
    assert sagittal[3, 2] == layout.voxel_index(1, 2, 3)


def test_clamping():
    layout = volume_layout(_header((4, 3, 4, 5, 2)))
    assert layout.clamp_slice("axial", -3) == 0
    assert layout.clamp_slice("axial", 99) == 4
    assert layout.clamp_phase(7) == 1


def test_unknown_axis_is_rejected():
    assert SliceAxis.parse(" Axial ") is SliceAxis.AXIAL
    with pytest.raises(OutOfRangeError):
        SliceAxis.parse("oblique")
