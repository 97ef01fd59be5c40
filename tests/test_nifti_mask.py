import numpy as np
import pytest

from volmask.core.nifti import (
    MaskVolume,
    NiftiHeader,
    OutOfRangeError,
    Stroke,
    Tool,
    apply_stroke,
    brush_radius,
    interpolate_stamps,
    mask_overlay,
    project_mask_slice,
    set_slice_mask,
)
from volmask.core.nifti.mask import composite, iter_strokes


def _header(nx, ny, nz, phases=None):
    if phases is None:
        dims = (3, nx, ny, nz, 1, 1, 1, 1)
    else:
        dims = (4, nx, ny, nz, phases, 1, 1, 1)
    return NiftiHeader(dims=dims, datatype_code=2, bits_per_voxel=8, vox_offset=352)


def test_brush_stamp_sets_exactly_the_disk():
    header = _header(5, 5, 1)
    mask = MaskVolume.for_header(header)

    written = apply_stroke(mask, header, "axial", 0, Stroke(Tool.BRUSH, (2, 2), 2))

    grid = project_mask_slice(mask, header, "axial", 0).data
    expected = np.zeros((5, 5), dtype=np.uint8)
    for y in range(5):
        for x in range(5):
            if (x - 2) ** 2 + (y - 2) ** 2 <= 4:
                expected[y, x] = 255
    assert written == 13
    assert mask.count() == 13
    np.testing.assert_array_equal(grid, expected)


def test_stroke_is_idempotent():
    header = _header(6, 6, 2)
    once = MaskVolume.for_header(header)
    twice = MaskVolume.for_header(header)
    stroke = Stroke(Tool.BRUSH, (3, 1), 2)

    apply_stroke(once, header, "axial", 1, stroke)
    apply_stroke(twice, header, "axial", 1, stroke)
    apply_stroke(twice, header, "axial", 1, stroke)

    np.testing.assert_array_equal(once.snapshot(), twice.snapshot())


def test_stroke_at_edge_stays_in_bounds():
    header = _header(5, 5, 1)
    mask = MaskVolume.for_header(header)

    written = apply_stroke(mask, header, "axial", 0, Stroke("brush", (0, 0), 3))

    assert written == 11
    assert mask.count() == 11
    assert mask.snapshot().size == 25


def test_stroke_fully_outside_writes_nothing():
    header = _header(4, 4, 1)
    mask = MaskVolume.for_header(header)

    assert apply_stroke(mask, header, "axial", 0, Stroke(Tool.BRUSH, (20, 20), 2)) == 0
    assert not mask.allocated


def test_eraser_clears_voxels():
    header = _header(5, 5, 1)
    mask = MaskVolume.for_header(header)
    apply_stroke(mask, header, "axial", 0, Stroke(Tool.BRUSH, (2, 2), 2))

    apply_stroke(mask, header, "axial", 0, Stroke(Tool.ERASER, (2, 2), 1))

    assert mask.count() == 13 - 5
    assert project_mask_slice(mask, header, "axial", 0).data[2, 2] == 0


def test_coronal_stroke_lands_in_the_3d_volume():
    header = _header(4, 3, 5)
    mask = MaskVolume.for_header(header)

    apply_stroke(mask, header, "coronal", 1, Stroke(Tool.BRUSH, (2, 3), 0))

    assert mask.count() == 1
    assert project_mask_slice(mask, header, "axial", 3).data[1, 2] == 255
    assert project_mask_slice(mask, header, "sagittal", 2).data[3, 1] == 255
    assert project_mask_slice(mask, header, "coronal", 1).data[3, 2] == 255


def test_mask_is_shared_across_phases():
    header = _header(3, 3, 3, phases=4)
    mask = MaskVolume.for_header(header)

    apply_stroke(mask, header, "sagittal", 0, Stroke(Tool.BRUSH, (1, 1), 1))

    assert len(mask) == 27
    assert mask.count() == 5


def test_mask_is_allocated_lazily():
    header = _header(3, 3, 3)
    mask = MaskVolume.for_header(header)

    assert not mask.allocated
    assert project_mask_slice(mask, header, "axial", 0).data.sum() == 0
    assert project_mask_slice(None, header, "axial", 0).data.shape == (3, 3)

    apply_stroke(mask, header, "axial", 0, Stroke(Tool.BRUSH, (0, 0), 0))
    assert mask.allocated


def test_snapshot_is_read_only():
    header = _header(2, 2, 2)
    mask = MaskVolume.for_header(header)
    apply_stroke(mask, header, "axial", 0, Stroke(Tool.BRUSH, (0, 0), 0))

    snapshot = mask.snapshot()
    with pytest.raises(ValueError):
        snapshot[0] = 0


def test_set_slice_mask_writes_back_whole_slice():
    header = _header(3, 2, 4)
    mask = MaskVolume.for_header(header)
    slice_mask = np.array([[0, 1, 0, 0], [0, 0, 0, 9]], dtype=np.uint8)

    set_slice_mask(mask, header, "sagittal", 1, slice_mask.T)

    projected = project_mask_slice(mask, header, "sagittal", 1).data
    assert projected.tolist() == [[0, 0], [255, 0], [0, 0], [0, 255]]


def test_negative_radius_is_rejected():
    with pytest.raises(OutOfRangeError):
        Stroke(Tool.BRUSH, (0, 0), -1)


def test_writes_reject_mask_of_another_volume():
    header = _header(4, 4, 2)
    mask = MaskVolume((2, 8, 2))

    with pytest.raises(ValueError):
        apply_stroke(mask, header, "axial", 0, Stroke(Tool.BRUSH, (3, 3), 1))
    with pytest.raises(ValueError):
        set_slice_mask(mask, header, "axial", 0, np.ones((4, 4)))
    assert not mask.allocated


def test_mask_volume_rejects_wrong_size():
    with pytest.raises(ValueError):
        MaskVolume((2, 2, 2), np.zeros(7))


def test_brush_radius_from_toolbar_size():
    assert brush_radius(1) == 1
    assert brush_radius(8) == 4
    assert brush_radius(9) == 4
    assert brush_radius(40) == 20


def test_interpolate_stamps_has_no_gaps():
    assert interpolate_stamps((0, 0), (3, 1)) == [(0, 0), (1, 0), (2, 1), (3, 1)]
    assert interpolate_stamps((4, 4), (4, 4)) == [(4, 4)]

    points = interpolate_stamps((10, 2), (0, 7))
    assert points[0] == (10, 2)
    assert points[-1] == (0, 7)
    for (x0, y0), (x1, y1) in zip(points, points[1:]):
        assert max(abs(x1 - x0), abs(y1 - y0)) == 1


def test_iter_strokes_follows_polyline():
    strokes = list(iter_strokes([(0, 0), (2, 0), (2, 2)], Tool.ERASER, 1))
    centers = [s.center for s in strokes]

    assert centers == [(0, 0), (1, 0), (2, 0), (2, 1), (2, 2)]
    assert all(s.tool is Tool.ERASER for s in strokes)


def test_overlay_alpha_follows_mask_value():
    overlay = mask_overlay(np.array([[0, 255]], dtype=np.uint8))

    assert overlay.shape == (1, 2, 4)
    assert overlay[0, 0].tolist() == [255, 0, 0, 0]
    assert overlay[0, 1].tolist() == [255, 0, 0, 128]


def test_composite_blends_overlay():
    base = np.full((1, 2, 4), 100, dtype=np.uint8)
    base[..., 3] = 255
    overlay = mask_overlay(np.array([[0, 255]], dtype=np.uint8), alpha=1.0)

    out = composite(base, overlay)

    assert out[0, 0].tolist() == [100, 100, 100, 255]
    assert out[0, 1].tolist() == [255, 0, 0, 255]
