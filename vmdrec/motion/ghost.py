"""
Ghost (virtual) skeleton.

The ghost mirrors a live rig's change-from-rest on a clean topology whose
rest rotations are all equal to the model root's orientation. Recording
reads local transforms from the ghost instead of the live rig, so an
inconsistent authoring rest pose never leaks into the motion file.

Ghost nodes live in their own Skeleton arena:
- node 0 mirrors the model root transform
- CENTER hangs under node 0
- every other bone attaches to the first of its candidate parents that
  already has an enabled ghost; without one the bone is disabled
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

import numpy as np

from vmdrec.core import get_logger
from vmdrec.core.bone_schema import BoneId, UNGHOSTED_BONES, schema_entry
from vmdrec.core.errors import InvalidRigTopology
from vmdrec.core.humanoid import HumanoidRig, SkeletonPose
from vmdrec.core.skeleton import Skeleton
from vmdrec.core.transforms import (
    UP, quat_delta, quat_identity, quat_multiply, quat_rotate_vector,
)


ROOT_NODE = 0


@dataclass
class GhostBone:
    """One ghost node and the rest values it is measured against."""
    bone: BoneId
    source_index: int              # Joint index on the source skeleton
    ghost_index: Optional[int]     # Node index in the ghost arena
    parent: Optional[int]          # Parent node index in the ghost arena
    source_rest_rotation: np.ndarray
    ghost_rest_rotation: np.ndarray
    rest_local_position: np.ndarray
    enabled: bool = True


class VirtualSkeleton:
    """
    Normalized shadow of a humanoid rig, rebuilt for each capture session.

    Construction snapshots the rig's current pose as the rest pose, so the
    rig should be in its initial pose (see HumanoidRig.enforce_initial_pose)
    when a session starts.
    """

    def __init__(self, rig: HumanoidRig, use_bottom_center: bool = False):
        self.logger = get_logger("motion.ghost")
        self.rig = rig
        self.use_bottom_center = use_bottom_center

        self.nodes = Skeleton(f"{rig.name}_ghost")
        self.nodes.add_joint("root")
        self._sync_root()

        self._bones: Dict[BoneId, GhostBone] = {}
        self._build()

        self.center_offset_length = 0.0
        if rig.has(BoneId.ROOT) and rig.has(BoneId.CENTER):
            self.center_offset_length = float(np.linalg.norm(
                rig.world_position(BoneId.ROOT) - rig.world_position(BoneId.CENTER)
            ))

        self.logger.info(
            f"Ghost built for {rig.name}: {len(self.enabled_bones)} enabled, "
            f"{len(self.disabled_bones)} disabled"
        )

    def _sync_root(self) -> None:
        self.nodes.set_world_rotation(ROOT_NODE, self.rig.root_world_rotation())
        self.nodes.set_world_position(ROOT_NODE, self.rig.root_world_position())

    def _resolve_parent(self, bone: BoneId) -> Optional[int]:
        if bone == BoneId.CENTER:
            return ROOT_NODE
        for candidate in schema_entry(bone).ghost_parents:
            ghost = self._bones.get(candidate)
            if ghost is not None and ghost.enabled:
                return ghost.ghost_index
        return None

    def _build(self) -> None:
        root_rotation = self.rig.root_world_rotation()
        root_position = self.rig.root_world_position()

        # BoneId order puts every candidate parent before its children
        for bone in BoneId:
            if bone in UNGHOSTED_BONES or not self.rig.has(bone):
                continue

            source_index = self.rig.require(bone)
            source_rotation = self.rig.world_rotation(bone)
            parent = self._resolve_parent(bone)

            if parent is None:
                error = InvalidRigTopology(bone, schema_entry(bone).ghost_parents)
                self.logger.warning(f"{error}; ghost disabled")
                self._bones[bone] = GhostBone(
                    bone=bone,
                    source_index=source_index,
                    ghost_index=None,
                    parent=None,
                    source_rest_rotation=quat_identity(),
                    ghost_rest_rotation=quat_identity(),
                    rest_local_position=np.zeros(3),
                    enabled=False,
                )
                continue

            if bone == BoneId.CENTER and self.use_bottom_center:
                position = root_position
            else:
                position = self.rig.world_position(bone)

            index = self.nodes.add_joint(f"{bone.name.lower()}_ghost", parent=parent)
            self.nodes.set_world_rotation(index, root_rotation)
            self.nodes.set_world_position(index, position)

            rest_local = self.nodes.local_position(index)
            if bone == BoneId.CENTER and self.use_bottom_center:
                rest_local = np.zeros(3)

            self._bones[bone] = GhostBone(
                bone=bone,
                source_index=source_index,
                ghost_index=index,
                parent=parent,
                source_rest_rotation=source_rotation,
                ghost_rest_rotation=self.nodes.world_rotation(index),
                rest_local_position=rest_local,
            )

    # Queries

    @property
    def bones(self) -> List[GhostBone]:
        return list(self._bones.values())

    @property
    def enabled_bones(self) -> List[BoneId]:
        return [b for b, g in self._bones.items() if g.enabled]

    @property
    def disabled_bones(self) -> List[BoneId]:
        return [b for b, g in self._bones.items() if not g.enabled]

    def ghost(self, bone: BoneId) -> Optional[GhostBone]:
        return self._bones.get(bone)

    def is_enabled(self, bone: BoneId) -> bool:
        ghost = self._bones.get(bone)
        return ghost is not None and ghost.enabled

    def local_rotation(self, bone: BoneId) -> np.ndarray:
        """Ghost local rotation, identity for disabled or missing bones."""
        if not self.is_enabled(bone):
            return quat_identity()
        return self.nodes.local_rotation(self._bones[bone].ghost_index)

    def local_position(self, bone: BoneId) -> np.ndarray:
        if not self.is_enabled(bone):
            return np.zeros(3)
        return self.nodes.local_position(self._bones[bone].ghost_index)

    def rest_local_position(self, bone: BoneId) -> np.ndarray:
        if not self.is_enabled(bone):
            return np.zeros(3)
        return self._bones[bone].rest_local_position.copy()

    def world_rotation(self, bone: BoneId) -> np.ndarray:
        if not self.is_enabled(bone):
            return quat_identity()
        return self.nodes.world_rotation(self._bones[bone].ghost_index)

    def world_position(self, bone: BoneId) -> np.ndarray:
        if not self.is_enabled(bone):
            return np.zeros(3)
        return self.nodes.world_position(self._bones[bone].ghost_index)

    # Per tick

    def ghost_all(self) -> None:
        """
        Copy the rig's change-from-rest onto every enabled ghost.

        rotation: (source * inverse(source_rest)) * ghost_rest
        position: source world position (CENTER sits one center offset
        below the source hips when use_bottom_center is set)
        """
        self._sync_root()

        for bone, ghost in self._bones.items():
            if not ghost.enabled:
                continue

            source = self.rig.skeleton
            delta = quat_delta(source.world_rotation(ghost.source_index), ghost.source_rest_rotation)
            rotation = quat_multiply(delta, ghost.ghost_rest_rotation)
            self.nodes.set_world_rotation(ghost.ghost_index, rotation)

            position = source.world_position(ghost.source_index)
            if bone == BoneId.CENTER and self.use_bottom_center:
                up = quat_rotate_vector(rotation, UP)
                position = position - self.center_offset_length * up
            self.nodes.set_world_position(ghost.ghost_index, position)

    def local_pose(self) -> SkeletonPose:
        """Local transforms of every ghosted bone (identity/zero when disabled)."""
        pose = SkeletonPose.empty()
        for bone in self._bones:
            pose.set(bone, self.local_rotation(bone), self.local_position(bone))
        return pose
