"""Recorded animation tracks and the frozen document handed to the codec"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np

from vmdrec.core.bone_schema import BoneId


def _readonly(values, dtype, shape) -> np.ndarray:
    array = np.asarray(values, dtype=dtype).reshape(shape)
    array.flags.writeable = False
    return array


class MotionTrack:
    """
    Per-bone keyframes.

    Append-only while recording; freeze() converts the buffers into
    read-only arrays and rejects any further appends.
    """

    def __init__(self, bone: BoneId):
        self.bone = bone
        self._frames: List[int] = []
        self._positions: List[np.ndarray] = []
        self._rotations: List[np.ndarray] = []
        self._frozen: Optional[Tuple[np.ndarray, np.ndarray, np.ndarray]] = None

    def append(self, frame: int, position: np.ndarray, rotation: np.ndarray) -> None:
        if self._frozen is not None:
            raise RuntimeError(f"Track {self.bone.name} is frozen")
        if self._frames and frame <= self._frames[-1]:
            raise ValueError(f"Frame {frame} is not after {self._frames[-1]}")
        self._frames.append(int(frame))
        self._positions.append(np.array(position, dtype=np.float64))
        self._rotations.append(np.array(rotation, dtype=np.float64))

    def freeze(self) -> "MotionTrack":
        if self._frozen is None:
            n = len(self._frames)
            self._frozen = (
                _readonly(self._frames, np.int64, (n,)),
                _readonly(self._positions, np.float64, (n, 3)),
                _readonly(self._rotations, np.float64, (n, 4)),
            )
            self._frames, self._positions, self._rotations = [], [], []
        return self

    @property
    def is_frozen(self) -> bool:
        return self._frozen is not None

    @property
    def frames(self) -> np.ndarray:
        if self._frozen is not None:
            return self._frozen[0]
        return np.asarray(self._frames, dtype=np.int64)

    @property
    def positions(self) -> np.ndarray:
        if self._frozen is not None:
            return self._frozen[1]
        return np.asarray(self._positions, dtype=np.float64).reshape(-1, 3)

    @property
    def rotations(self) -> np.ndarray:
        """Rotations [w, x, y, z] per frame."""
        if self._frozen is not None:
            return self._frozen[2]
        return np.asarray(self._rotations, dtype=np.float64).reshape(-1, 4)

    def __len__(self) -> int:
        return len(self._frozen[0]) if self._frozen is not None else len(self._frames)


class MorphTrack:
    """Per-morph values; significant=False marks values the codec may skip."""

    def __init__(self, name: str):
        self.name = name
        self._frames: List[int] = []
        self._values: List[float] = []
        self._significant: List[bool] = []

    def append(self, frame: int, value: float, significant: bool = True) -> None:
        self._frames.append(int(frame))
        self._values.append(float(value))
        self._significant.append(bool(significant))

    @property
    def frames(self) -> np.ndarray:
        return np.asarray(self._frames, dtype=np.int64)

    @property
    def values(self) -> np.ndarray:
        return np.asarray(self._values, dtype=np.float64)

    @property
    def significant(self) -> np.ndarray:
        return np.asarray(self._significant, dtype=bool)

    def __len__(self) -> int:
        return len(self._frames)


@dataclass(frozen=True)
class MotionDocument:
    """Immutable result of one recording session."""
    model_name: str
    bone_tracks: Tuple[Tuple[BoneId, MotionTrack], ...]
    morph_tracks: Tuple[Tuple[str, MorphTrack], ...]
    frame_count: int
    key_reduction_level: int = 1
    use_parent_of_all: bool = True
    use_center_as_parent_of_all: bool = True
    fps: float = field(default=30.0)

    @property
    def is_empty(self) -> bool:
        return self.frame_count == 0

    def track(self, bone: BoneId) -> Optional[MotionTrack]:
        for track_bone, track in self.bone_tracks:
            if track_bone == bone:
                return track
        return None

    def morph(self, name: str) -> Optional[MorphTrack]:
        for morph_name, track in self.morph_tracks:
            if morph_name == name:
                return track
        return None
