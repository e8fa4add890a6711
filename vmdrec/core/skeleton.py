"""Joint hierarchy with local transforms and world-space accessors.

A Skeleton is a flat arena of joints. Parents always precede their
children, so world transforms can be resolved by walking the parent
chain (or, for all joints at once, in a single forward pass).
"""

import copy
from typing import Dict, List, Optional, Tuple, Union

import numpy as np

from .transforms import (
    quat, quat_identity, quat_inverse, quat_multiply, quat_normalize,
    quat_rotate_vector, vec3,
)


class Skeleton:
    """
    Arena of joints with local rotation/position.

    The first joint (or any joint without parent) is placed under an
    optional model parent transform, which models an animated object that
    is itself attached to something else in the scene.
    """

    def __init__(self, name: str = "skeleton"):
        self.name = name
        self._names: List[str] = []
        self._parents: List[int] = []
        self._local_rotations: List[np.ndarray] = []
        self._local_positions: List[np.ndarray] = []
        self._index: Dict[str, int] = {}

        self._bind_rotations: Optional[List[np.ndarray]] = None
        self._bind_positions: Optional[List[np.ndarray]] = None

        self.parent_rotation: Optional[np.ndarray] = None
        self.parent_position: Optional[np.ndarray] = None

        self.proportions_version = 0

    # Construction

    def add_joint(
        self,
        name: str,
        parent: Union[int, str, None] = None,
        position=None,
        rotation=None,
    ) -> int:
        """
        Append a joint.

        Args:
            name: Unique joint name
            parent: Parent index or name (must already exist), None for a root
            position: Local position (3,)
            rotation: Local rotation [w, x, y, z]

        Returns:
            Index of the new joint
        """
        if name in self._index:
            raise ValueError(f"Duplicate joint name: {name}")

        if isinstance(parent, str):
            parent = self._index[parent]
        if parent is not None and not 0 <= parent < len(self._names):
            raise ValueError(f"Parent index {parent} for {name} does not exist yet")

        index = len(self._names)
        self._names.append(name)
        self._parents.append(-1 if parent is None else int(parent))
        self._local_positions.append(vec3(position))
        self._local_rotations.append(
            quat_identity() if rotation is None else quat_normalize(quat(rotation))
        )
        self._index[name] = index
        return index

    def set_parent_transform(self, rotation=None, position=None) -> None:
        """Attach the model to a scene parent (None detaches)."""
        if rotation is None and position is None:
            self.parent_rotation = None
            self.parent_position = None
            return
        self.parent_rotation = quat_identity() if rotation is None else quat_normalize(quat(rotation))
        self.parent_position = vec3(position)

    @property
    def has_parent(self) -> bool:
        return self.parent_rotation is not None

    # Lookup

    def __len__(self) -> int:
        return len(self._names)

    @property
    def joint_names(self) -> List[str]:
        return list(self._names)

    def index(self, name: str) -> Optional[int]:
        return self._index.get(name)

    def name(self, index: int) -> str:
        return self._names[index]

    def parent(self, index: int) -> int:
        """Parent index, -1 for joints placed directly under the model parent."""
        return self._parents[index]

    # Local transforms

    def local_rotation(self, index: int) -> np.ndarray:
        return self._local_rotations[index].copy()

    def local_position(self, index: int) -> np.ndarray:
        return self._local_positions[index].copy()

    def set_local_rotation(self, index: int, rotation) -> None:
        self._local_rotations[index] = quat_normalize(quat(rotation))

    def set_local_position(self, index: int, position) -> None:
        self._local_positions[index] = vec3(position)

    # World transforms

    def _base_transform(self) -> Tuple[np.ndarray, np.ndarray]:
        if self.parent_rotation is None:
            return quat_identity(), np.zeros(3)
        return self.parent_rotation, self.parent_position

    def _parent_world(self, index: int) -> Tuple[np.ndarray, np.ndarray]:
        parent = self._parents[index]
        if parent < 0:
            return self._base_transform()
        return self.world_rotation(parent), self.world_position(parent)

    def world_rotation(self, index: int) -> np.ndarray:
        rotation = self._local_rotations[index]
        parent = self._parents[index]
        while parent >= 0:
            rotation = quat_multiply(self._local_rotations[parent], rotation)
            parent = self._parents[parent]
        base_rot, _ = self._base_transform()
        return quat_multiply(base_rot, rotation)

    def world_position(self, index: int) -> np.ndarray:
        parent_rot, parent_pos = self._parent_world(index)
        return parent_pos + quat_rotate_vector(parent_rot, self._local_positions[index])

    def world_transforms(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        Resolve all world transforms in one pass.

        Returns:
            (rotations (N,4), positions (N,3))
        """
        n = len(self._names)
        rotations = np.zeros((n, 4))
        positions = np.zeros((n, 3))
        base_rot, base_pos = self._base_transform()

        for i in range(n):
            p = self._parents[i]
            parent_rot, parent_pos = (base_rot, base_pos) if p < 0 else (rotations[p], positions[p])
            rotations[i] = quat_multiply(parent_rot, self._local_rotations[i])
            positions[i] = parent_pos + quat_rotate_vector(parent_rot, self._local_positions[i])

        return rotations, positions

    def set_world_rotation(self, index: int, rotation) -> None:
        """Set a joint's world rotation; descendants follow."""
        parent_rot, _ = self._parent_world(index)
        local = quat_multiply(quat_inverse(parent_rot), quat_normalize(quat(rotation)))
        self._local_rotations[index] = quat_normalize(local)

    def set_world_position(self, index: int, position) -> None:
        """Set a joint's world position; descendants follow."""
        parent_rot, parent_pos = self._parent_world(index)
        local = quat_rotate_vector(quat_inverse(parent_rot), vec3(position) - parent_pos)
        self._local_positions[index] = local

    # Bind pose

    def snapshot_bind_pose(self) -> None:
        """Remember the current local transforms as the authored rest pose."""
        self._bind_rotations = [r.copy() for r in self._local_rotations]
        self._bind_positions = [p.copy() for p in self._local_positions]

    @property
    def has_bind_pose(self) -> bool:
        return self._bind_rotations is not None

    def reset_to_bind_pose(self) -> None:
        if self._bind_rotations is None:
            return
        self._local_rotations = [r.copy() for r in self._bind_rotations]
        self._local_positions = [p.copy() for p in self._bind_positions]

    # Proportions

    def set_bone_offset(self, index: int, offset) -> None:
        """Change a joint's rest offset from its parent (bone length edit)."""
        self._local_positions[index] = vec3(offset)
        if self._bind_positions is not None:
            self._bind_positions[index] = vec3(offset)
        self.proportions_version += 1

    def scale_bone_lengths(self, factor: float) -> None:
        """Uniformly scale every bone offset below the top-level joints."""
        for i, parent in enumerate(self._parents):
            if parent < 0:
                continue
            self._local_positions[i] = self._local_positions[i] * factor
            if self._bind_positions is not None:
                self._bind_positions[i] = self._bind_positions[i] * factor
        self.proportions_version += 1

    def copy(self) -> "Skeleton":
        return copy.deepcopy(self)

    # Serialization

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        data = {
            "name": self.name,
            "joints": [
                {
                    "name": self._names[i],
                    "parent": None if self._parents[i] < 0 else self._names[self._parents[i]],
                    "position": self._local_positions[i].tolist(),
                    "rotation": self._local_rotations[i].tolist(),
                }
                for i in range(len(self._names))
            ],
        }
        if self.has_parent:
            data["parent_transform"] = {
                "rotation": self.parent_rotation.tolist(),
                "position": self.parent_position.tolist(),
            }
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Skeleton":
        skeleton = cls(data.get("name", "skeleton"))
        for joint in data["joints"]:
            skeleton.add_joint(
                joint["name"],
                parent=joint.get("parent"),
                position=joint.get("position"),
                rotation=joint.get("rotation"),
            )

        parent_transform = data.get("parent_transform")
        if parent_transform:
            skeleton.set_parent_transform(
                parent_transform.get("rotation"), parent_transform.get("position")
            )

        skeleton.snapshot_bind_pose()
        return skeleton

    def __repr__(self) -> str:
        return f"Skeleton({self.name!r}, joints={len(self._names)})"
