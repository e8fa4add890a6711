"""Humanoid view over a Skeleton.

HumanoidRig binds canonical BoneIds to joints of an arbitrary skeleton.
RestPose and SkeletonPose are dense, BoneId-indexed arrays with a presence
mask, so iteration order always matches the export order of BoneId.
"""

from dataclasses import dataclass
from typing import Dict, Iterator, Mapping, Optional, Tuple, Union

import numpy as np

from .bone_mapping import build_bone_map
from .bone_schema import BONE_COUNT, FOOT_IK_ANKLE, BoneId
from .errors import MissingBone
from .logging import get_logger
from .skeleton import Skeleton
from .transforms import (
    FORWARD, quat_from_axis_angle, quat_identity, quat_multiply, quat_rotate_vector,
)


def _freeze(array: np.ndarray) -> np.ndarray:
    array = np.array(array, dtype=np.float64)
    array.flags.writeable = False
    return array


@dataclass(frozen=True, eq=False)
class RestPose:
    """Reference transforms per BoneId, captured once and read-only."""
    world_rotations: np.ndarray  # (N, 4) [w, x, y, z]
    world_positions: np.ndarray  # (N, 3)
    local_positions: np.ndarray  # (N, 3)
    present: np.ndarray          # (N,) bool

    def __post_init__(self):
        for name in ("world_rotations", "world_positions", "local_positions"):
            object.__setattr__(self, name, _freeze(getattr(self, name)))
        present = np.array(self.present, dtype=bool)
        present.flags.writeable = False
        object.__setattr__(self, "present", present)

    def has(self, bone: BoneId) -> bool:
        return bool(self.present[int(bone)])

    def world_rotation(self, bone: BoneId) -> np.ndarray:
        return self.world_rotations[int(bone)]

    def world_position(self, bone: BoneId) -> np.ndarray:
        return self.world_positions[int(bone)]

    def local_position(self, bone: BoneId) -> np.ndarray:
        return self.local_positions[int(bone)]


@dataclass(eq=False)
class SkeletonPose:
    """One instant of rotation+position per BoneId."""
    rotations: np.ndarray  # (N, 4) [w, x, y, z]
    positions: np.ndarray  # (N, 3)
    present: np.ndarray    # (N,) bool

    @classmethod
    def empty(cls) -> "SkeletonPose":
        rotations = np.zeros((BONE_COUNT, 4))
        rotations[:, 0] = 1.0
        return cls(rotations, np.zeros((BONE_COUNT, 3)), np.zeros(BONE_COUNT, dtype=bool))

    def set(self, bone: BoneId, rotation: np.ndarray, position: np.ndarray) -> None:
        i = int(bone)
        self.rotations[i] = rotation
        self.positions[i] = position
        self.present[i] = True

    def get(self, bone: BoneId) -> Tuple[np.ndarray, np.ndarray]:
        i = int(bone)
        return self.rotations[i], self.positions[i]

    def __iter__(self) -> Iterator[Tuple[BoneId, np.ndarray, np.ndarray]]:
        for i in np.flatnonzero(self.present):
            yield BoneId(int(i)), self.rotations[i], self.positions[i]


class HumanoidRig:
    """
    A skeleton whose joints are bound to canonical humanoid bones.

    ROOT is the model root joint. The foot IK slots follow the ankle
    joints and the toe IK slots follow toe joints, unless toe joints are
    forced explicitly (useful for rigs whose toe joint sits at the ball
    of the foot while the toe tip is a separate end joint).
    """

    def __init__(
        self,
        skeleton: Skeleton,
        bone_map: Optional[Mapping[BoneId, int]] = None,
        name: Optional[str] = None,
        toe_joints: Optional[Mapping[BoneId, Union[int, str]]] = None,
    ):
        self.skeleton = skeleton
        self.name = name or skeleton.name
        self.logger = get_logger("core.humanoid")

        if bone_map is None:
            bone_map = build_bone_map(skeleton.joint_names)
        bone_map: Dict[BoneId, int] = {BoneId(b): int(j) for b, j in bone_map.items()}

        for ik_bone, ankle in FOOT_IK_ANKLE.items():
            if ik_bone not in bone_map and ankle in bone_map:
                bone_map[ik_bone] = bone_map[ankle]

        for bone, joint in (toe_joints or {}).items():
            index = skeleton.index(joint) if isinstance(joint, str) else joint
            if index is None:
                self.logger.warning(f"Forced toe joint {joint!r} not found on {self.name}")
                continue
            bone_map[BoneId(bone)] = index

        self._joints = np.full(BONE_COUNT, -1, dtype=np.int64)
        for bone, joint in bone_map.items():
            if not 0 <= joint < len(skeleton):
                raise ValueError(f"Joint index {joint} for {bone.name} out of range")
            self._joints[int(bone)] = joint

        self.logger.debug(f"Rig {self.name}: {int(self.present_mask().sum())} bones mapped")

    # Lookup

    def has(self, bone: BoneId) -> bool:
        return self._joints[int(bone)] >= 0

    def joint(self, bone: BoneId) -> Optional[int]:
        index = int(self._joints[int(bone)])
        return index if index >= 0 else None

    def require(self, bone: BoneId) -> int:
        """Joint index of a bone, raising MissingBone when unmapped."""
        index = self.joint(bone)
        if index is None:
            raise MissingBone(bone, self.name)
        return index

    def present_mask(self) -> np.ndarray:
        return self._joints >= 0

    @property
    def bone_map(self) -> Dict[BoneId, int]:
        return {BoneId(i): int(j) for i, j in enumerate(self._joints) if j >= 0}

    @property
    def proportions_version(self) -> int:
        return self.skeleton.proportions_version

    @property
    def has_parent(self) -> bool:
        return self.skeleton.has_parent

    # Transforms (strict: absent bones raise MissingBone)

    def world_rotation(self, bone: BoneId) -> np.ndarray:
        return self.skeleton.world_rotation(self.require(bone))

    def world_position(self, bone: BoneId) -> np.ndarray:
        return self.skeleton.world_position(self.require(bone))

    def local_rotation(self, bone: BoneId) -> np.ndarray:
        return self.skeleton.local_rotation(self.require(bone))

    def local_position(self, bone: BoneId) -> np.ndarray:
        return self.skeleton.local_position(self.require(bone))

    def set_world_rotation(self, bone: BoneId, rotation) -> None:
        self.skeleton.set_world_rotation(self.require(bone), rotation)

    def set_world_position(self, bone: BoneId, position) -> None:
        self.skeleton.set_world_position(self.require(bone), position)

    def root_world_rotation(self) -> np.ndarray:
        """World rotation of the model root (scene parent when ROOT is unmapped)."""
        if self.has(BoneId.ROOT):
            return self.world_rotation(BoneId.ROOT)
        if self.skeleton.has_parent:
            return self.skeleton.parent_rotation.copy()
        return quat_identity()

    def root_world_position(self) -> np.ndarray:
        if self.has(BoneId.ROOT):
            return self.world_position(BoneId.ROOT)
        if self.skeleton.has_parent:
            return self.skeleton.parent_position.copy()
        return np.zeros(3)

    # Rest pose

    def capture_rest_pose(self) -> RestPose:
        """Snapshot world/local transforms of every mapped bone."""
        rotations, positions = self.skeleton.world_transforms()
        world_rot = np.zeros((BONE_COUNT, 4))
        world_rot[:, 0] = 1.0
        world_pos = np.zeros((BONE_COUNT, 3))
        local_pos = np.zeros((BONE_COUNT, 3))

        for bone, joint in self.bone_map.items():
            world_rot[int(bone)] = rotations[joint]
            world_pos[int(bone)] = positions[joint]
            local_pos[int(bone)] = self.skeleton.local_position(joint)

        return RestPose(world_rot, world_pos, local_pos, self.present_mask())

    def enforce_initial_pose(self, a_pose: bool = True, degrees: float = 30.0) -> None:
        """
        Reset the rig to its bind pose, optionally swinging the upper arms
        down into an A-pose around the model's forward axis.
        """
        self.skeleton.reset_to_bind_pose()
        if not a_pose:
            return

        forward = quat_rotate_vector(self.root_world_rotation(), FORWARD)
        angle = np.radians(degrees)
        # Left arm lies along +X (right-handed, facing +Z); negative swing lowers it
        for bone, sign in ((BoneId.LEFT_ARM, -1.0), (BoneId.RIGHT_ARM, 1.0)):
            if not self.has(bone):
                continue
            swing = quat_from_axis_angle(forward, sign * angle)
            self.set_world_rotation(bone, quat_multiply(swing, self.world_rotation(bone)))

    def __repr__(self) -> str:
        return f"HumanoidRig({self.name!r}, bones={int(self.present_mask().sum())})"
