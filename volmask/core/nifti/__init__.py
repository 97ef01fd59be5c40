"""NIfTI decoding, slice projection, mask painting and export."""

from .codec import DecodedNifti, NiftiHeader, decode, is_gzip, parse_header
from .datatypes import Datatype
from .errors import (
    CorruptCompressionError,
    DecodeError,
    MalformedHeaderError,
    NiftiError,
    NotNiftiError,
    OutOfRangeError,
    TruncatedInputError,
    UnsupportedDatatypeError,
)
from .interaction import InteractionState, PointerButton, SliceInteractor
from .layout import SliceAxis, VolumeLayout, volume_layout
from .mask import (
    MaskVolume,
    Slice2D,
    Stroke,
    Tool,
    apply_stroke,
    brush_radius,
    interpolate_stamps,
    mask_overlay,
    project_mask_slice,
    set_slice_mask,
)
from .projector import (
    IntensityRange,
    RasterSlice,
    SliceRange,
    adjust_brightness_contrast,
    extract_slice,
    get_slice_range,
    get_volume_min_max,
)
from .serializer import build_output, masked_filename
from .session import AxisLabels, MaskingSession

__all__ = [
    "AxisLabels",
    "CorruptCompressionError",
    "Datatype",
    "DecodeError",
    "DecodedNifti",
    "IntensityRange",
    "InteractionState",
    "MalformedHeaderError",
    "MaskVolume",
    "MaskingSession",
    "NiftiError",
    "NiftiHeader",
    "NotNiftiError",
    "OutOfRangeError",
    "PointerButton",
    "RasterSlice",
    "Slice2D",
    "SliceAxis",
    "SliceInteractor",
    "SliceRange",
    "Stroke",
    "Tool",
    "TruncatedInputError",
    "UnsupportedDatatypeError",
    "VolumeLayout",
    "adjust_brightness_contrast",
    "apply_stroke",
    "brush_radius",
    "build_output",
    "decode",
    "extract_slice",
    "get_slice_range",
    "get_volume_min_max",
    "interpolate_stamps",
    "is_gzip",
    "mask_overlay",
    "masked_filename",
    "parse_header",
    "project_mask_slice",
    "set_slice_mask",
    "volume_layout",
]
