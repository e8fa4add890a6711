"""VMD humanoid bone catalog.

This module defines the fixed set of joints written to a VMD file, their
canonical parent relationships, and the fallback parent lists used when
building the normalized ghost skeleton.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, FrozenSet, List, Optional, Tuple


class BoneId(IntEnum):
    """Canonical VMD joints.

    Values are dense and their order is the order in which bone keys are
    written within each frame.
    """
    # Root and IK placeholders
    ROOT = 0
    CENTER = 1
    LEFT_FOOT_IK = 2
    RIGHT_FOOT_IK = 3
    LEFT_TOE_IK = 4
    RIGHT_TOE_IK = 5

    # Torso and head
    UPPER_BODY = 6
    UPPER_BODY2 = 7
    NECK = 8
    HEAD = 9

    # Left arm
    LEFT_SHOULDER = 10
    LEFT_ARM = 11
    LEFT_ELBOW = 12
    LEFT_WRIST = 13

    # Right arm
    RIGHT_SHOULDER = 14
    RIGHT_ARM = 15
    RIGHT_ELBOW = 16
    RIGHT_WRIST = 17

    # Left fingers
    LEFT_THUMB1 = 18
    LEFT_THUMB2 = 19
    LEFT_INDEX1 = 20
    LEFT_INDEX2 = 21
    LEFT_INDEX3 = 22
    LEFT_MIDDLE1 = 23
    LEFT_MIDDLE2 = 24
    LEFT_MIDDLE3 = 25
    LEFT_RING1 = 26
    LEFT_RING2 = 27
    LEFT_RING3 = 28
    LEFT_LITTLE1 = 29
    LEFT_LITTLE2 = 30
    LEFT_LITTLE3 = 31

    # Right fingers
    RIGHT_THUMB1 = 32
    RIGHT_THUMB2 = 33
    RIGHT_INDEX1 = 34
    RIGHT_INDEX2 = 35
    RIGHT_INDEX3 = 36
    RIGHT_MIDDLE1 = 37
    RIGHT_MIDDLE2 = 38
    RIGHT_MIDDLE3 = 39
    RIGHT_RING1 = 40
    RIGHT_RING2 = 41
    RIGHT_RING3 = 42
    RIGHT_LITTLE1 = 43
    RIGHT_LITTLE2 = 44
    RIGHT_LITTLE3 = 45

    # Legs
    LEFT_LEG = 46
    RIGHT_LEG = 47
    LEFT_KNEE = 48
    RIGHT_KNEE = 49
    LEFT_ANKLE = 50
    RIGHT_ANKLE = 51


BONE_COUNT = len(BoneId)

# Names as they appear in VMD files (cp932 encoded on export)
VMD_BONE_NAMES: Dict[BoneId, str] = {
    BoneId.ROOT: "全ての親",
    BoneId.CENTER: "センター",
    BoneId.LEFT_FOOT_IK: "左足ＩＫ",
    BoneId.RIGHT_FOOT_IK: "右足ＩＫ",
    BoneId.LEFT_TOE_IK: "左つま先ＩＫ",
    BoneId.RIGHT_TOE_IK: "右つま先ＩＫ",
    BoneId.UPPER_BODY: "上半身",
    BoneId.UPPER_BODY2: "上半身2",
    BoneId.NECK: "首",
    BoneId.HEAD: "頭",
    BoneId.LEFT_SHOULDER: "左肩",
    BoneId.LEFT_ARM: "左腕",
    BoneId.LEFT_ELBOW: "左ひじ",
    BoneId.LEFT_WRIST: "左手首",
    BoneId.RIGHT_SHOULDER: "右肩",
    BoneId.RIGHT_ARM: "右腕",
    BoneId.RIGHT_ELBOW: "右ひじ",
    BoneId.RIGHT_WRIST: "右手首",
    BoneId.LEFT_THUMB1: "左親指１",
    BoneId.LEFT_THUMB2: "左親指２",
    BoneId.LEFT_INDEX1: "左人指１",
    BoneId.LEFT_INDEX2: "左人指２",
    BoneId.LEFT_INDEX3: "左人指３",
    BoneId.LEFT_MIDDLE1: "左中指１",
    BoneId.LEFT_MIDDLE2: "左中指２",
    BoneId.LEFT_MIDDLE3: "左中指３",
    BoneId.LEFT_RING1: "左薬指１",
    BoneId.LEFT_RING2: "左薬指２",
    BoneId.LEFT_RING3: "左薬指３",
    BoneId.LEFT_LITTLE1: "左小指１",
    BoneId.LEFT_LITTLE2: "左小指２",
    BoneId.LEFT_LITTLE3: "左小指３",
    BoneId.RIGHT_THUMB1: "右親指１",
    BoneId.RIGHT_THUMB2: "右親指２",
    BoneId.RIGHT_INDEX1: "右人指１",
    BoneId.RIGHT_INDEX2: "右人指２",
    BoneId.RIGHT_INDEX3: "右人指３",
    BoneId.RIGHT_MIDDLE1: "右中指１",
    BoneId.RIGHT_MIDDLE2: "右中指２",
    BoneId.RIGHT_MIDDLE3: "右中指３",
    BoneId.RIGHT_RING1: "右薬指１",
    BoneId.RIGHT_RING2: "右薬指２",
    BoneId.RIGHT_RING3: "右薬指３",
    BoneId.RIGHT_LITTLE1: "右小指１",
    BoneId.RIGHT_LITTLE2: "右小指２",
    BoneId.RIGHT_LITTLE3: "右小指３",
    BoneId.LEFT_LEG: "左足",
    BoneId.RIGHT_LEG: "右足",
    BoneId.LEFT_KNEE: "左ひざ",
    BoneId.RIGHT_KNEE: "右ひざ",
    BoneId.LEFT_ANKLE: "左足首",
    BoneId.RIGHT_ANKLE: "右足首",
}

# Names substituted when the center bone plays the role of the root
CENTER_NAME = "センター"
GROOVE_NAME = "グルーブ"

FOOT_IK_BONES: FrozenSet[BoneId] = frozenset({BoneId.LEFT_FOOT_IK, BoneId.RIGHT_FOOT_IK})
TOE_IK_BONES: FrozenSet[BoneId] = frozenset({BoneId.LEFT_TOE_IK, BoneId.RIGHT_TOE_IK})
IK_BONES: FrozenSet[BoneId] = FOOT_IK_BONES | TOE_IK_BONES

# Joints that never get a ghost: the model root and the IK placeholders
UNGHOSTED_BONES: FrozenSet[BoneId] = IK_BONES | {BoneId.ROOT}

# Same-side foot IK for each toe IK, and the ankle each foot IK follows
TOE_IK_FOOT: Dict[BoneId, BoneId] = {
    BoneId.LEFT_TOE_IK: BoneId.LEFT_FOOT_IK,
    BoneId.RIGHT_TOE_IK: BoneId.RIGHT_FOOT_IK,
}
FOOT_IK_ANKLE: Dict[BoneId, BoneId] = {
    BoneId.LEFT_FOOT_IK: BoneId.LEFT_ANKLE,
    BoneId.RIGHT_FOOT_IK: BoneId.RIGHT_ANKLE,
}

# IK toggles written in the IK block, in file order
IK_TOGGLE_ORDER: Tuple[BoneId, ...] = (
    BoneId.LEFT_FOOT_IK,
    BoneId.LEFT_TOE_IK,
    BoneId.RIGHT_FOOT_IK,
    BoneId.RIGHT_TOE_IK,
)


def _finger_chain(side: str) -> Dict[BoneId, BoneId]:
    wrist = BoneId[f"{side}_WRIST"]
    parents = {
        BoneId[f"{side}_THUMB1"]: wrist,
        BoneId[f"{side}_THUMB2"]: BoneId[f"{side}_THUMB1"],
    }
    for finger in ("INDEX", "MIDDLE", "RING", "LITTLE"):
        parents[BoneId[f"{side}_{finger}1"]] = wrist
        parents[BoneId[f"{side}_{finger}2"]] = BoneId[f"{side}_{finger}1"]
        parents[BoneId[f"{side}_{finger}3"]] = BoneId[f"{side}_{finger}2"]
    return parents


# Canonical bone parent relationships (child -> parent)
BONE_PARENTS: Dict[BoneId, Optional[BoneId]] = {
    BoneId.ROOT: None,
    BoneId.CENTER: BoneId.ROOT,
    BoneId.LEFT_FOOT_IK: BoneId.ROOT,
    BoneId.RIGHT_FOOT_IK: BoneId.ROOT,
    BoneId.LEFT_TOE_IK: BoneId.LEFT_FOOT_IK,
    BoneId.RIGHT_TOE_IK: BoneId.RIGHT_FOOT_IK,
    BoneId.UPPER_BODY: BoneId.CENTER,
    BoneId.UPPER_BODY2: BoneId.UPPER_BODY,
    BoneId.NECK: BoneId.UPPER_BODY2,
    BoneId.HEAD: BoneId.NECK,
    BoneId.LEFT_SHOULDER: BoneId.UPPER_BODY2,
    BoneId.LEFT_ARM: BoneId.LEFT_SHOULDER,
    BoneId.LEFT_ELBOW: BoneId.LEFT_ARM,
    BoneId.LEFT_WRIST: BoneId.LEFT_ELBOW,
    BoneId.RIGHT_SHOULDER: BoneId.UPPER_BODY2,
    BoneId.RIGHT_ARM: BoneId.RIGHT_SHOULDER,
    BoneId.RIGHT_ELBOW: BoneId.RIGHT_ARM,
    BoneId.RIGHT_WRIST: BoneId.RIGHT_ELBOW,
    **_finger_chain("LEFT"),
    **_finger_chain("RIGHT"),
    BoneId.LEFT_LEG: BoneId.CENTER,
    BoneId.RIGHT_LEG: BoneId.CENTER,
    BoneId.LEFT_KNEE: BoneId.LEFT_LEG,
    BoneId.RIGHT_KNEE: BoneId.RIGHT_LEG,
    BoneId.LEFT_ANKLE: BoneId.LEFT_KNEE,
    BoneId.RIGHT_ANKLE: BoneId.RIGHT_KNEE,
}

# Ghost parent candidates, tried in order: optional, optional, mandatory.
# Joints whose intermediate parents are often missing on real rigs
# (neck, chest, shoulders) fall through to the next candidate.
GHOST_PARENT_CANDIDATES: Dict[BoneId, Tuple[BoneId, ...]] = {
    BoneId.NECK: (BoneId.UPPER_BODY2, BoneId.UPPER_BODY),
    BoneId.HEAD: (BoneId.NECK, BoneId.UPPER_BODY2, BoneId.UPPER_BODY),
    BoneId.LEFT_SHOULDER: (BoneId.UPPER_BODY2, BoneId.UPPER_BODY),
    BoneId.LEFT_ARM: (BoneId.LEFT_SHOULDER, BoneId.UPPER_BODY2, BoneId.UPPER_BODY),
    BoneId.RIGHT_SHOULDER: (BoneId.UPPER_BODY2, BoneId.UPPER_BODY),
    BoneId.RIGHT_ARM: (BoneId.RIGHT_SHOULDER, BoneId.UPPER_BODY2, BoneId.UPPER_BODY),
}


@dataclass(frozen=True)
class BoneSchemaEntry:
    """One catalog entry."""
    id: BoneId
    parent: Optional[BoneId]
    ghost_parents: Tuple[BoneId, ...]
    vmd_name: str

    @property
    def is_ik(self) -> bool:
        return self.id in IK_BONES


def _ghost_parents(bone: BoneId) -> Tuple[BoneId, ...]:
    if bone in UNGHOSTED_BONES or bone == BoneId.CENTER:
        return ()
    return GHOST_PARENT_CANDIDATES.get(bone, (BONE_PARENTS[bone],))


BONE_SCHEMA: Tuple[BoneSchemaEntry, ...] = tuple(
    BoneSchemaEntry(
        id=bone,
        parent=BONE_PARENTS[bone],
        ghost_parents=_ghost_parents(bone),
        vmd_name=VMD_BONE_NAMES[bone],
    )
    for bone in BoneId
)


def schema_entry(bone: BoneId) -> BoneSchemaEntry:
    return BONE_SCHEMA[int(bone)]


def path_to_root(bone: BoneId) -> List[BoneId]:
    """Canonical ancestors of a bone, nearest first, ending at ROOT."""
    path = []
    current = BONE_PARENTS[bone]
    while current is not None:
        if current in path or len(path) > BONE_COUNT:
            raise ValueError(f"Cycle in bone schema at {bone.name}")
        path.append(current)
        current = BONE_PARENTS[current]
    return path


def validate_schema() -> None:
    """
    Check that the parent graph is acyclic and rooted at exactly one joint.

    Raises:
        ValueError: if the catalog is malformed
    """
    roots = [bone for bone, parent in BONE_PARENTS.items() if parent is None]
    if roots != [BoneId.ROOT]:
        raise ValueError(f"Schema must have exactly one root, found {roots}")

    for bone in BoneId:
        if bone not in VMD_BONE_NAMES:
            raise ValueError(f"No VMD name for {bone.name}")
        path = path_to_root(bone)
        if bone != BoneId.ROOT and path[-1] != BoneId.ROOT:
            raise ValueError(f"{bone.name} does not reach the root")
        for candidate in schema_entry(bone).ghost_parents:
            if candidate == bone or bone in path_to_root(candidate):
                raise ValueError(f"Ghost parent {candidate.name} of {bone.name} creates a cycle")
