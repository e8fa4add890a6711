"""Minimal VMD reader, used to inspect and verify exported files"""

import io
import struct
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Dict, List, Union

import numpy as np

from .vmd_writer import (
    BONE_KEY, ENCODING, IK_ENTRY, MODEL_NAME_WIDTH, MORPH_KEY,
    SIGNATURE, SIGNATURE_WIDTH, U32,
)


@dataclass
class BoneFrame:
    name: str
    frame: int
    position: np.ndarray  # (3,)
    rotation: np.ndarray  # (4,) as stored: x, y, z, w
    interpolation: bytes = b""


@dataclass
class MorphFrame:
    name: str
    frame: int
    value: float


@dataclass
class IKFrame:
    frame: int
    display: bool
    states: Dict[str, bool] = field(default_factory=dict)


@dataclass
class VMDMotion:
    signature: bytes
    model_name: str
    bones: List[BoneFrame] = field(default_factory=list)
    morphs: List[MorphFrame] = field(default_factory=list)
    camera_count: int = 0
    light_count: int = 0
    shadow_count: int = 0
    ik: List[IKFrame] = field(default_factory=list)

    def bone_frames(self, name: str) -> List[BoneFrame]:
        return [b for b in self.bones if b.name == name]

    def morph_frames(self, name: str) -> List[MorphFrame]:
        return [m for m in self.morphs if m.name == name]


def decode_name(raw: bytes) -> str:
    if b"\x00" in raw:
        raw = raw.split(b"\x00", 1)[0]
    return raw.decode(ENCODING, errors="ignore")


def _read_exact(f: BinaryIO, size: int) -> bytes:
    data = f.read(size)
    if len(data) != size:
        raise ValueError(f"Unexpected end of VMD data (wanted {size} bytes, got {len(data)})")
    return data


def _read_u32(f: BinaryIO) -> int:
    return U32.unpack(_read_exact(f, U32.size))[0]


def read_vmd_stream(f: BinaryIO) -> VMDMotion:
    """
    Parse VMD data from a binary stream.

    Camera, light and self-shadow sections are expected to be empty (as
    written by VMDWriter); their counts are still reported.

    Raises:
        ValueError: on a bad signature or truncated data
    """
    signature = _read_exact(f, SIGNATURE_WIDTH)
    if not signature.startswith(SIGNATURE):
        raise ValueError(f"Not a VMD 0002 file (signature {signature[:25]!r})")

    motion = VMDMotion(signature=signature, model_name=decode_name(_read_exact(f, MODEL_NAME_WIDTH)))

    for _ in range(_read_u32(f)):
        name, frame, px, py, pz, rx, ry, rz, rw, interp = BONE_KEY.unpack(_read_exact(f, BONE_KEY.size))
        motion.bones.append(BoneFrame(
            name=decode_name(name),
            frame=frame,
            position=np.array([px, py, pz], dtype=np.float64),
            rotation=np.array([rx, ry, rz, rw], dtype=np.float64),
            interpolation=interp,
        ))

    for _ in range(_read_u32(f)):
        name, frame, value = MORPH_KEY.unpack(_read_exact(f, MORPH_KEY.size))
        motion.morphs.append(MorphFrame(decode_name(name), frame, value))

    motion.camera_count = _read_u32(f)
    motion.light_count = _read_u32(f)
    motion.shadow_count = _read_u32(f)
    if motion.camera_count or motion.light_count or motion.shadow_count:
        # Reading those sections is not supported; stop before the IK block
        return motion

    # IK section is optional in older files
    header = f.read(U32.size)
    if len(header) < U32.size:
        return motion
    for _ in range(U32.unpack(header)[0]):
        frame = _read_u32(f)
        display = struct.unpack("<B", _read_exact(f, 1))[0]
        ik = IKFrame(frame=frame, display=bool(display))
        for _ in range(_read_u32(f)):
            name, on = IK_ENTRY.unpack(_read_exact(f, IK_ENTRY.size))
            ik.states[decode_name(name)] = bool(on)
        motion.ik.append(ik)

    return motion


def read_vmd(source: Union[str, Path, bytes]) -> VMDMotion:
    """Parse a VMD file from a path or from raw bytes."""
    if isinstance(source, (bytes, bytearray)):
        return read_vmd_stream(io.BytesIO(source))
    with open(source, "rb") as f:
        return read_vmd_stream(f)
