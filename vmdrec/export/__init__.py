"""Motion export module"""

from .vmd_writer import (
    VMDWriter,
    ExportResult,
    ExportStatus,
    bone_export_name,
    encode_name,
    encode_model_name,
    mark_significant,
    reduction_mask,
    trim_morph_number,
)
from .vmd_reader import VMDMotion, BoneFrame, MorphFrame, IKFrame, read_vmd

__all__ = [
    "VMDWriter", "ExportResult", "ExportStatus",
    "bone_export_name", "encode_name", "encode_model_name",
    "mark_significant", "reduction_mask", "trim_morph_number",
    "VMDMotion", "BoneFrame", "MorphFrame", "IKFrame", "read_vmd",
]
