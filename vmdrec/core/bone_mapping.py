"""Heuristic joint-name to BoneId mapping for arbitrary rigs.

Works for Mixamo ("mixamorig:LeftUpLeg"), generic Left/Right naming
("Left_Thigh", "RightLowerArm") and short side markers ("upperarm_l",
"L_Hand").
"""

import re
from typing import Dict, Iterable, List, Optional

from .bone_schema import BoneId
from .logging import get_logger


logger = get_logger("core.bone_mapping")

_SEPARATORS = re.compile(r"[\s_\-:.]")
_SHORT_LEFT = re.compile(r"(^|[\s_\-:.])l($|[\s_\-:.])")
_SHORT_RIGHT = re.compile(r"(^|[\s_\-:.])r($|[\s_\-:.])")
_DIGITS = re.compile(r"(\d+)(?!.*\d)")

_FINGERS = {
    "thumb": "THUMB",
    "index": "INDEX",
    "middle": "MIDDLE",
    "ring": "RING",
    "pinky": "LITTLE",
    "little": "LITTLE",
}


def _side(raw: str, compact: str) -> Optional[str]:
    if "left" in compact or _SHORT_LEFT.search(raw):
        return "LEFT"
    if "right" in compact or _SHORT_RIGHT.search(raw):
        return "RIGHT"
    return None


def _finger(side: str, compact: str) -> Optional[BoneId]:
    for token, finger in _FINGERS.items():
        if token not in compact:
            continue
        match = _DIGITS.search(compact)
        segment = int(match.group(1)) if match else 1
        limit = 2 if finger == "THUMB" else 3
        if not 1 <= segment <= limit:
            return None
        return BoneId[f"{side}_{finger}{segment}"]
    return None


def guess_bone_id(name: str) -> Optional[BoneId]:
    """
    Guess the canonical joint for a rig joint name.

    Toe joints map to the toe IK slots (the toe position drives them).

    Returns:
        BoneId, or None when the name matches nothing
    """
    raw = name.lower()
    if ":" in raw:
        raw = raw.split(":")[-1]
    compact = _SEPARATORS.sub("", raw)

    if "hips" in compact or "pelvis" in compact or compact == "hip":
        return BoneId.CENTER

    if "spine2" in compact or "chest" in compact:
        return BoneId.UPPER_BODY2
    if "spine" in compact:
        return BoneId.UPPER_BODY

    if "neck" in compact:
        return BoneId.NECK
    if "head" in compact and "end" not in compact:
        return BoneId.HEAD

    side = _side(raw, compact)
    if side is None:
        return None

    # Legs
    if "foot" in compact or "ankle" in compact:
        return BoneId[f"{side}_ANKLE"]
    if "toe" in compact:
        return BoneId[f"{side}_TOE_IK"]
    if "upleg" in compact or "thigh" in compact or "upperleg" in compact:
        return BoneId[f"{side}_LEG"]
    if "leg" in compact or "calf" in compact or "shin" in compact or "knee" in compact:
        return BoneId[f"{side}_KNEE"]

    # Fingers before hand: "LeftHandIndex1" contains both
    finger = _finger(side, compact)
    if finger is not None:
        return finger
    if any(token in compact for token in _FINGERS):
        return None

    # Arms
    if "hand" in compact or "wrist" in compact:
        return BoneId[f"{side}_WRIST"]
    if "shoulder" in compact or "clavicle" in compact:
        return BoneId[f"{side}_SHOULDER"]
    if "forearm" in compact or "lowerarm" in compact or "elbow" in compact:
        return BoneId[f"{side}_ELBOW"]
    if "arm" in compact:
        return BoneId[f"{side}_ARM"]

    return None


def build_bone_map(names: Iterable[str], root_index: Optional[int] = 0) -> Dict[BoneId, int]:
    """
    Map joint indices to canonical bones by name.

    Args:
        names: Joint names in arena order
        root_index: Joint used as the model root (ROOT) when it is not
            claimed by another bone; None to leave ROOT unmapped

    Returns:
        Dict BoneId -> joint index. The first joint matching a bone wins.
    """
    names = list(names)
    bone_map: Dict[BoneId, int] = {}
    unmapped: List[str] = []

    for index, name in enumerate(names):
        bone = guess_bone_id(name)
        if bone is None:
            if index != root_index:
                unmapped.append(name)
            continue
        if bone not in bone_map:
            bone_map[bone] = index

    if root_index is not None and 0 <= root_index < len(names):
        if root_index not in bone_map.values():
            bone_map[BoneId.ROOT] = root_index

    if unmapped:
        logger.debug(f"Unmapped joints ({len(unmapped)}): {', '.join(unmapped)}")

    logger.debug(f"Mapped {len(bone_map)} of {len(names)} joints")
    return bone_map
