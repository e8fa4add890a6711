"""
Pose sampling into VMD export space.

Ghosted bones are read from the VirtualSkeleton; ROOT and the IK targets
are computed from the live rig. Every value is mirrored across X/Z
(right-handed source to the left-handed VMD convention) and positions
are scaled by the bone amplifier.

The amplifier and the anatomical IK offsets are empirical values tuned
against a reference model; override them per rig through the config.
"""

from typing import Optional

import numpy as np

from vmdrec.core import Config, get_logger
from vmdrec.core.bone_schema import BoneId, FOOT_IK_ANKLE, TOE_IK_FOOT
from vmdrec.core.humanoid import HumanoidRig, SkeletonPose
from vmdrec.core.transforms import (
    flip_xz, quat_identity, quat_inverse, quat_multiply, quat_rotate_vector,
    to_left_handed, vec3,
)
from .ghost import VirtualSkeleton


DEFAULT_BONE_AMPLIFIER = 12.5

# Ankle offsets from the IK origin of the reference model, per side
DEFAULT_FOOT_IK_OFFSETS = {
    BoneId.RIGHT_FOOT_IK: (0.05238038, 0.115296, -0.02825557),
    BoneId.LEFT_FOOT_IK: (-0.05238038, 0.115296, -0.02825557),
}

# Toe tip offsets from the ankle of the reference model, per side
DEFAULT_TOE_IK_OFFSETS = {
    BoneId.LEFT_TOE_IK: (-0.001641536, -0.07096878, 0.1238693),
    BoneId.RIGHT_TOE_IK: (0.001641536, -0.07096878, 0.1238693),
}

_DEFAULT_OFFSETS = {**DEFAULT_FOOT_IK_OFFSETS, **DEFAULT_TOE_IK_OFFSETS}

_OFFSET_KEYS = {
    BoneId.RIGHT_FOOT_IK: "sampler.right_foot_ik_offset",
    BoneId.LEFT_FOOT_IK: "sampler.left_foot_ik_offset",
    BoneId.LEFT_TOE_IK: "sampler.left_toe_ik_offset",
    BoneId.RIGHT_TOE_IK: "sampler.right_toe_ik_offset",
}


class PoseSampler:
    """
    Converts the ghost's current state into one export-space pose.

    Call capture_origin() at session start; ghost_all() must run before
    each sample().
    """

    def __init__(
        self,
        rig: HumanoidRig,
        ghost: VirtualSkeleton,
        config: Optional[Config] = None,
    ):
        self.config = config or Config()
        self.logger = get_logger("motion.sampler")
        self.rig = rig
        self.ghost = ghost

        self.use_center_as_parent_of_all = bool(self.config.get("recorder.use_center_as_parent_of_all", True))
        self.use_absolute_coordinate_system = bool(self.config.get("recorder.use_absolute_coordinate_system", True))
        self.ignore_initial_position = bool(self.config.get("recorder.ignore_initial_position", False))
        self.ignore_initial_rotation = bool(self.config.get("recorder.ignore_initial_rotation", False))
        self.parent_of_all_offset = vec3(self.config.get("recorder.parent_of_all_offset", [0.0, 0.0, 0.0]))

        self.bone_amplifier = float(self.config.get("sampler.bone_amplifier", DEFAULT_BONE_AMPLIFIER))
        self.offsets = {
            bone: vec3(self.config.get(key, _DEFAULT_OFFSETS[bone]))
            for bone, key in _OFFSET_KEYS.items()
        }

        self.origin_position = np.zeros(3)
        self.origin_rotation = quat_identity()

    # Session origin

    def capture_origin(self) -> None:
        """Remember where the model root is; world or local per coordinate mode."""
        if not self.rig.has(BoneId.ROOT):
            self.origin_position = np.zeros(3)
            self.origin_rotation = quat_identity()
            return

        if self.use_absolute_coordinate_system:
            self.origin_position = self.rig.world_position(BoneId.ROOT)
            self.origin_rotation = self.rig.world_rotation(BoneId.ROOT)
        else:
            self.origin_position = self.rig.local_position(BoneId.ROOT)
            self.origin_rotation = self.rig.local_rotation(BoneId.ROOT)

        self.logger.debug(f"Origin captured at {np.round(self.origin_position, 4)}")

    # Sampling

    def sample(self) -> SkeletonPose:
        """Export-space rotation/position for every bone present on the rig."""
        pose = SkeletonPose.empty()

        for bone in BoneId:
            if not self.rig.has(bone):
                continue

            if bone == BoneId.ROOT:
                rotation, position = self._sample_root()
            elif bone in FOOT_IK_ANKLE:
                rotation, position = quat_identity(), self._sample_foot_ik(bone)
            elif bone in TOE_IK_FOOT:
                if not self.rig.has(TOE_IK_FOOT[bone]):
                    continue
                rotation, position = quat_identity(), self._sample_toe_ik(bone)
            else:
                rotation, position = self._sample_ghost(bone)

            pose.set(bone, rotation, position)

        return pose

    def _sample_ghost(self, bone: BoneId):
        if not self.ghost.is_enabled(bone):
            return quat_identity(), np.zeros(3)
        rotation = to_left_handed(self.ghost.local_rotation(bone))
        offset = self.ghost.local_position(bone) - self.ghost.rest_local_position(bone)
        return rotation, flip_xz(offset) * self.bone_amplifier

    def _sample_root(self):
        if self.use_absolute_coordinate_system:
            rotation = self.rig.world_rotation(BoneId.ROOT)
            position = self.rig.world_position(BoneId.ROOT)
        else:
            rotation = self.rig.local_rotation(BoneId.ROOT)
            position = self.rig.local_position(BoneId.ROOT)

        if self.ignore_initial_rotation:
            rotation = quat_multiply(rotation, quat_inverse(self.origin_rotation))
        if self.ignore_initial_position:
            position = position - self.origin_position

        position = flip_xz(position) * self.bone_amplifier + self.parent_of_all_offset
        return to_left_handed(rotation), position

    def _sample_foot_ik(self, bone: BoneId) -> np.ndarray:
        ankle = self.rig.world_position(bone)
        skeleton = self.rig.skeleton

        if not self.use_center_as_parent_of_all:
            target = quat_rotate_vector(
                quat_inverse(self.rig.root_world_rotation()),
                ankle - self.rig.root_world_position(),
            )
        elif not self.use_absolute_coordinate_system and skeleton.has_parent:
            target = quat_rotate_vector(
                quat_inverse(skeleton.parent_rotation), ankle - skeleton.parent_position
            )
            if self.ignore_initial_position:
                target = target - self.origin_position
        elif self.ignore_initial_position:
            target = ankle - self.origin_position
        elif skeleton.has_parent:
            target = ankle
        else:
            target = ankle - self.offsets[bone]

        return flip_xz(target) * self.bone_amplifier

    def _sample_toe_ik(self, bone: BoneId) -> np.ndarray:
        toe = self.rig.world_position(bone)
        foot = self.rig.world_position(TOE_IK_FOOT[bone])
        target = toe - foot - self.offsets[bone]
        return flip_xz(target) * self.bone_amplifier
