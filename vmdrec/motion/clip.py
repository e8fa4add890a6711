"""
Offline clip playback: drive a rig from a JSON clip and record it.

Clip format:
    {
      "name": "walk", "fps": 30,
      "skeleton": {"name": ..., "joints": [{"name", "parent", "position", "rotation"}, ...]},
      "bone_map": {"CENTER": "Hips", ...},           optional, guessed from names otherwise
      "toe_joints": {"LEFT_TOE_IK": "LeftToe_End"},  optional
      "blend_shapes": [{"mesh": "Face", "shapes": ["smile", ...]}],
      "frames": [
        {"joints": {"Hips": {"rotation": [w, x, y, z], "position": [x, y, z]}},
         "morphs": {"Face": {"smile": 50.0}}},
        ...
      ]
    }

Joint values are local transforms; joints missing from a frame keep their
previous value.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

from vmdrec.core import Config, FrameClock, FrameTimer, get_logger
from vmdrec.core.bone_schema import BoneId
from vmdrec.core.humanoid import HumanoidRig
from vmdrec.core.morphs import BlendShapeSet
from vmdrec.core.skeleton import Skeleton
from vmdrec.export.vmd_writer import ExportResult
from .recorder import MotionRecorder
from .retargeter import DeltaRetargeter


logger = get_logger("motion.clip")


@dataclass
class MotionClip:
    """A skeleton plus per-frame local joint transforms."""
    name: str
    skeleton: Skeleton
    frames: List[dict]
    fps: float = 30.0
    bone_map: Optional[Dict[BoneId, int]] = None
    toe_joints: Dict[BoneId, str] = field(default_factory=dict)
    blend_shapes: List[BlendShapeSet] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.frames)

    def build_rig(self) -> HumanoidRig:
        return HumanoidRig(self.skeleton, self.bone_map, name=self.name, toe_joints=self.toe_joints)

    def apply_frame(self, index: int) -> None:
        """Pose the clip's skeleton and blend shapes at a frame."""
        frame = self.frames[index]

        for joint_name, values in frame.get("joints", {}).items():
            joint = self.skeleton.index(joint_name)
            if joint is None:
                continue
            if "rotation" in values:
                self.skeleton.set_local_rotation(joint, values["rotation"])
            if "position" in values:
                self.skeleton.set_local_position(joint, values["position"])

        meshes = {s.mesh_name: s for s in self.blend_shapes}
        for mesh_name, weights in frame.get("morphs", {}).items():
            shape_set = meshes.get(mesh_name)
            if shape_set is None:
                continue
            for shape, weight in weights.items():
                if shape_set.index(shape) is not None:
                    shape_set.set_weight(shape, weight)


def _parse_bone_map(skeleton: Skeleton, data: Optional[dict]) -> Optional[Dict[BoneId, int]]:
    if not data:
        return None
    bone_map = {}
    for bone_name, joint_name in data.items():
        joint = skeleton.index(joint_name)
        if joint is None:
            logger.warning(f"bone_map: joint {joint_name!r} for {bone_name} not in skeleton")
            continue
        bone_map[BoneId[bone_name]] = joint
    return bone_map


def clip_from_dict(data: dict) -> MotionClip:
    skeleton = Skeleton.from_dict(data["skeleton"])
    return MotionClip(
        name=data.get("name", skeleton.name),
        skeleton=skeleton,
        frames=list(data.get("frames", [])),
        fps=float(data.get("fps", 30.0)),
        bone_map=_parse_bone_map(skeleton, data.get("bone_map")),
        toe_joints={BoneId[k]: v for k, v in data.get("toe_joints", {}).items()},
        blend_shapes=[
            BlendShapeSet(entry["mesh"], entry["shapes"], entry.get("weights"))
            for entry in data.get("blend_shapes", [])
        ],
    )


def load_clip(path: Union[str, Path]) -> MotionClip:
    """Load a clip from a JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    clip = clip_from_dict(data)
    logger.info(f"Loaded clip {clip.name}: {len(clip)} frames, {len(clip.skeleton)} joints")
    return clip


def load_skeleton(path: Union[str, Path]) -> Skeleton:
    """Load a bare skeleton (same schema as a clip's "skeleton" entry)."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return Skeleton.from_dict(data.get("skeleton", data))


def record_clip(
    clip: MotionClip,
    output_path: Union[str, Path],
    config: Optional[Config] = None,
    retarget_to: Optional[Skeleton] = None,
    model_name: Optional[str] = None,
    realtime: bool = False,
) -> ExportResult:
    """
    Play a clip through the recorder and export it.

    Args:
        clip: Clip to play
        output_path: Destination .vmd path
        config: Configuration (shared instance when None)
        retarget_to: Optional skeleton to retarget onto; the retargeted
            rig is recorded instead of the clip's own
        model_name: Model name written to the file
        realtime: Pace playback at the clip's fps

    Returns:
        ExportResult of the written file
    """
    config = config or Config()
    a_pose = bool(config.get("recorder.enforce_a_pose", True))
    a_pose_degrees = float(config.get("recorder.a_pose_degrees", 30.0))

    source = clip.build_rig()
    source.enforce_initial_pose(a_pose=a_pose, degrees=a_pose_degrees)

    retargeter = None
    recorded = source
    if retarget_to is not None:
        recorded = HumanoidRig(retarget_to)
        recorded.enforce_initial_pose(a_pose=a_pose, degrees=a_pose_degrees)
        retargeter = DeltaRetargeter(source, recorded, config)

    recorder = MotionRecorder(recorded, clip.blend_shapes, config)
    clock = FrameClock(target_fps=clip.fps, realtime=realtime)
    timer = FrameTimer()

    recorder.start()
    clock.start()
    for i in range(len(clip)):
        timer.start()
        clip.apply_frame(i)
        if retargeter is not None:
            retargeter.retarget()
        recorder.tick()
        frame = clock.tick()
        elapsed = timer.stop()
        logger.debug(f"Frame {frame.frame_number} @ {frame.timestamp:.3f}s ({elapsed * 1000:.2f} ms)")
        clock.wait_for_next_frame()
    recorder.stop()

    logger.info(
        f"Played {clock.frame_count} frames "
        f"(avg {timer.average_frame_time * 1000:.2f} ms, max {timer.max_frame_time * 1000:.2f} ms)"
    )

    return recorder.export(output_path, model_name=model_name)
