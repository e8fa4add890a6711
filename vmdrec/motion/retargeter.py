"""
Rest-pose delta retargeting between two humanoid rigs.

Every tick each linked bone copies the source's change since rest onto
the target's rest pose:

    world_delta = source_world * inverse(source_rest)
    target_world = world_delta * target_rest

T-pose vs A-pose differences between the rigs cancel out, and since
nothing is accumulated frame to frame there is no drift. Hips translation
is carried separately, scaled by the ratio of the two rigs' torso heights.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

import numpy as np

from vmdrec.core import Config, get_logger
from vmdrec.core.bone_schema import BoneId, UNGHOSTED_BONES
from vmdrec.core.humanoid import HumanoidRig
from vmdrec.core.transforms import (
    UP, quat_delta, quat_from_axis_angle, quat_identity, quat_multiply,
    quat_rotate_vector,
)
from .grounding import GroundingCorrector


MIN_REFERENCE_HEIGHT = 0.01


@dataclass
class BoneLink:
    """Rest transforms of one source/target bone pair."""
    bone: BoneId
    source_joint: int
    target_joint: int
    source_rest_rotation: np.ndarray
    target_rest_rotation: np.ndarray
    carries_position: bool = False
    source_rest_position: Optional[np.ndarray] = None
    target_rest_position: Optional[np.ndarray] = None


def reference_height(rig: HumanoidRig) -> Optional[float]:
    """
    Torso height used for scaling translation: head minus hips, falling
    back to neck minus hips. Measured in the bind pose when one exists.
    """
    skeleton = rig.skeleton
    if skeleton.has_bind_pose:
        skeleton = skeleton.copy()
        skeleton.reset_to_bind_pose()

    if not rig.has(BoneId.CENTER):
        return None
    hips_y = skeleton.world_position(rig.joint(BoneId.CENTER))[1]

    for bone in (BoneId.HEAD, BoneId.NECK):
        if rig.has(bone):
            height = skeleton.world_position(rig.joint(bone))[1] - hips_y
            if height > MIN_REFERENCE_HEIGHT:
                return float(height)
    return None


class DeltaRetargeter:
    """
    Drives a target rig from a source rig.

    Links are built once from the poses both rigs are in at construction
    (their rest poses). Bones missing on either side are skipped.
    """

    def __init__(
        self,
        source: HumanoidRig,
        target: HumanoidRig,
        config: Optional[Config] = None,
        position_bones: Iterable[BoneId] = (BoneId.CENTER,),
    ):
        self.config = config or Config()
        self.logger = get_logger("motion.retarget")
        self.source = source
        self.target = target

        retarget_config = self.config.retarget
        self.face_camera = bool(retarget_config.get("face_camera", False))
        self.apply_root_motion = bool(retarget_config.get("apply_root_motion", True))
        self.grounding = GroundingCorrector(self.config)

        self._position_bones = set(position_bones)
        self.links: List[BoneLink] = []
        self.skipped: List[BoneId] = []

        self.scale_ratio = 1.0
        self.ground_offset = 0.0
        self._proportions_seen: Tuple[int, int] = (-1, -1)

        self._target_root_rest = target.root_world_position()
        self._bind()
        self._update_scale_ratio()

    def _bind(self) -> None:
        source_rest = self.source.capture_rest_pose()
        target_rest = self.target.capture_rest_pose()

        for bone in BoneId:
            if bone in UNGHOSTED_BONES:
                continue
            if not (source_rest.has(bone) and target_rest.has(bone)):
                if source_rest.has(bone) or target_rest.has(bone):
                    self.skipped.append(bone)
                continue

            carries_position = bone in self._position_bones
            self.links.append(BoneLink(
                bone=bone,
                source_joint=self.source.joint(bone),
                target_joint=self.target.joint(bone),
                source_rest_rotation=source_rest.world_rotation(bone).copy(),
                target_rest_rotation=target_rest.world_rotation(bone).copy(),
                carries_position=carries_position,
                source_rest_position=source_rest.world_position(bone).copy() if carries_position else None,
                target_rest_position=target_rest.world_position(bone).copy() if carries_position else None,
            ))

        # Parents before children so world writes compose correctly
        self.links.sort(key=lambda link: link.target_joint)

        if self.skipped:
            self.logger.debug(f"Unpaired bones skipped: {', '.join(b.name for b in self.skipped)}")
        self.logger.info(f"Linked {len(self.links)} bones {self.source.name} -> {self.target.name}")

    def _update_scale_ratio(self) -> None:
        versions = (self.source.proportions_version, self.target.proportions_version)
        if versions == self._proportions_seen:
            return
        self._proportions_seen = versions

        source_height = reference_height(self.source)
        target_height = reference_height(self.target)
        if source_height is None or target_height is None:
            self.scale_ratio = 1.0
        else:
            self.scale_ratio = target_height / source_height

        self.logger.debug(f"Scale ratio {self.scale_ratio:.4f}")

    @property
    def facing_rotation(self) -> np.ndarray:
        if self.face_camera:
            return quat_from_axis_angle(UP, np.pi)
        return quat_identity()

    def retarget(self) -> None:
        """Transfer the source's current pose onto the target."""
        self._update_scale_ratio()

        source = self.source.skeleton
        target = self.target.skeleton
        facing = self.facing_rotation
        pivot = self.target.root_world_position()
        if not self.target.has(BoneId.ROOT):
            pivot = pivot + np.array([0.0, self.ground_offset, 0.0])

        for link in self.links:
            delta = quat_delta(source.world_rotation(link.source_joint), link.source_rest_rotation)
            delta = quat_multiply(facing, delta)
            target.set_world_rotation(link.target_joint, quat_multiply(delta, link.target_rest_rotation))

            if link.carries_position:
                move = source.world_position(link.source_joint) - link.source_rest_position
                if not self.apply_root_motion:
                    move = np.array([0.0, move[1], 0.0])
                offset = link.target_rest_position - self._target_root_rest + move * self.scale_ratio
                target.set_world_position(link.target_joint, pivot + quat_rotate_vector(facing, offset))

        self._ground()

    def _ground(self) -> None:
        if not self.grounding.enabled:
            return

        heights = [
            self.target.world_position(bone)[1]
            for bone in (BoneId.LEFT_ANKLE, BoneId.RIGHT_ANKLE)
            if self.target.has(bone)
        ]
        correction = self.grounding.compute(heights)
        if correction == 0.0:
            return

        # The model root keeps the accumulated offset; without one the
        # offset is carried in the hips pivot instead
        root = self.target.joint(BoneId.ROOT)
        if root is None:
            self.ground_offset += correction
            root = self.target.joint(BoneId.CENTER)
            if root is None:
                return
        skeleton = self.target.skeleton
        skeleton.set_world_position(root, skeleton.world_position(root) + np.array([0.0, correction, 0.0]))

    def link(self, bone: BoneId) -> Optional[BoneLink]:
        for link in self.links:
            if link.bone == bone:
                return link
        return None
