"""
Media handling: image fetching, decoding and target sizing.
"""

from .image_resolver import (
    ImageBox,
    ImageResolver,
    ResolvedImage,
    compute_target_size,
    decode_bitmap,
    decode_data_uri,
    sniff_format,
)

__all__ = [
    "ImageBox",
    "ImageResolver",
    "ResolvedImage",
    "compute_target_size",
    "decode_bitmap",
    "decode_data_uri",
    "sniff_format",
]
