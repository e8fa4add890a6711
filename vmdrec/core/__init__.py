"""Core systems - config, logging, timing, bone catalog, rig model"""

from .config import Config
from .logging import setup_logging, get_logger, set_subsystem_levels
from .timing import FrameData, FrameTimer, FrameClock
from .errors import (
    VMDRecorderError,
    MissingBone,
    InvalidRigTopology,
    NameTooLong,
    RecordingActiveError,
    ExportIOError,
    ExportCancelled,
)
from .bone_schema import (
    BoneId,
    BONE_COUNT,
    VMD_BONE_NAMES,
    BONE_PARENTS,
    BONE_SCHEMA,
    BoneSchemaEntry,
    IK_BONES,
    UNGHOSTED_BONES,
    validate_schema,
)
from .skeleton import Skeleton
from .humanoid import HumanoidRig, RestPose, SkeletonPose
from .bone_mapping import guess_bone_id, build_bone_map
from .morphs import BlendShapeSet, MorphSampler

__all__ = [
    "Config", "setup_logging", "get_logger", "set_subsystem_levels",
    "FrameData", "FrameTimer", "FrameClock",
    "VMDRecorderError", "MissingBone", "InvalidRigTopology", "NameTooLong",
    "RecordingActiveError", "ExportIOError", "ExportCancelled",
    "BoneId", "BONE_COUNT", "VMD_BONE_NAMES", "BONE_PARENTS", "BONE_SCHEMA",
    "BoneSchemaEntry", "IK_BONES", "UNGHOSTED_BONES", "validate_schema",
    "Skeleton", "HumanoidRig", "RestPose", "SkeletonPose",
    "guess_bone_id", "build_bone_map",
    "BlendShapeSet", "MorphSampler",
]
