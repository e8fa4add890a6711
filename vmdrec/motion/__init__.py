"""Motion capture - ghost skeleton, sampling, retargeting, recording"""

from .ghost import VirtualSkeleton, GhostBone
from .pose_sampler import PoseSampler
from .tracks import MotionTrack, MorphTrack, MotionDocument
from .grounding import GroundingCorrector, GroundingState
from .retargeter import DeltaRetargeter, BoneLink, reference_height
from .recorder import MotionRecorder, RecorderState
from .clip import MotionClip, clip_from_dict, load_clip, load_skeleton, record_clip

__all__ = [
    "VirtualSkeleton", "GhostBone",
    "PoseSampler",
    "MotionTrack", "MorphTrack", "MotionDocument",
    "GroundingCorrector", "GroundingState",
    "DeltaRetargeter", "BoneLink", "reference_height",
    "MotionRecorder", "RecorderState",
    "MotionClip", "clip_from_dict", "load_clip", "load_skeleton", "record_clip",
]
