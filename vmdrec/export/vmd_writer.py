"""VMD (Vocaloid Motion Data 0002) motion exporter.

Layout (little-endian, Shift-JIS (code page 932) text in zero-padded
fixed-width fields):
    signature (30) | model name (20)
    bone key count (u32) | bone keys: name 15, frame u32, pos 3f, rot 4f (x,y,z,w), interp 64
    morph key count (u32) | morph keys: name 15, frame u32, value f
    camera / light / self-shadow counts (u32, always 0)
    IK key count (u32 = 1) | frame u32, display u8, ik count u32, (name 20, on u8) x 4
"""

import io
import os
import stat
import struct
import tempfile
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO, Iterator, List, Optional, Tuple, Union

import numpy as np

from vmdrec.core import Config, get_logger
from vmdrec.core.bone_schema import (
    BoneId, CENTER_NAME, GROOVE_NAME, IK_TOGGLE_ORDER, VMD_BONE_NAMES,
)
from vmdrec.core.errors import ExportCancelled, ExportIOError, NameTooLong

if TYPE_CHECKING:
    from vmdrec.motion.tracks import MotionDocument


# MMD reads names as code page 932, a superset of strict Shift-JIS
ENCODING = "cp932"

SIGNATURE = b"Vocaloid Motion Data 0002"
SIGNATURE_WIDTH = 30
MODEL_NAME_WIDTH = 20
BONE_NAME_WIDTH = 15
MORPH_NAME_WIDTH = 15
IK_NAME_WIDTH = 20

BONE_KEY = struct.Struct("<15sI3f4f64s")
MORPH_KEY = struct.Struct("<15sIf")
U32 = struct.Struct("<I")
IK_ENTRY = struct.Struct("<20sB")

INTERPOLATION = bytes(64)

# Records written between two cancellation checks
CANCEL_CHECK_INTERVAL = 256


class ExportStatus(Enum):
    OK = "ok"
    EMPTY = "empty"


@dataclass
class ExportResult:
    """Outcome of one export."""
    status: ExportStatus
    path: Optional[Path] = None
    bone_key_count: int = 0
    morph_key_count: int = 0
    skipped_names: List[str] = field(default_factory=list)
    skipped_key_count: int = 0
    dropped_names: List[str] = field(default_factory=list)
    bytes_written: int = 0

    @property
    def ok(self) -> bool:
        return self.status == ExportStatus.OK


# Name helpers

def encode_name(name: str, width: int) -> bytes:
    """
    Encode a name into a fixed-width zero-padded field.

    Raises:
        NameTooLong: if the encoded name does not fit
    """
    data = name.encode(ENCODING)
    if len(data) > width:
        raise NameTooLong(name, len(data), width)
    return data.ljust(width, b"\x00")


def encode_model_name(name: str) -> bytes:
    """Model names are truncated to the field width rather than rejected."""
    data = name.encode(ENCODING, errors="ignore")[:MODEL_NAME_WIDTH]
    # Drop a lead byte left dangling by the cut
    data = data.decode(ENCODING, errors="ignore").encode(ENCODING)
    return data.ljust(MODEL_NAME_WIDTH, b"\x00")


def _output_mode(path: Path) -> int:
    """Permission bits for a new export: the existing file's, else the umask default."""
    try:
        return stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        pass
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def trim_morph_number(name: str) -> str:
    """Strip a leading "<integer>." prefix ("12.smile" -> "smile")."""
    prefix, dot, rest = name.partition(".")
    if not dot:
        return name
    try:
        int(prefix)
    except ValueError:
        return name
    return rest


def bone_export_name(
    bone: BoneId,
    use_parent_of_all: bool = True,
    use_center_as_parent_of_all: bool = True,
) -> Optional[str]:
    """Name written for a bone, or None when the bone is not exported."""
    if bone == BoneId.ROOT and not use_parent_of_all:
        return None
    if use_center_as_parent_of_all:
        if bone == BoneId.ROOT:
            return CENTER_NAME
        if bone == BoneId.CENTER:
            return GROOVE_NAME
    return VMD_BONE_NAMES[bone]


# Compression passes

def reduction_mask(frame_count: int, level: int) -> np.ndarray:
    """Frames kept by key reduction: indices that are multiples of level."""
    level = max(1, int(level))
    return np.arange(frame_count) % level == 0


def mark_significant(values) -> np.ndarray:
    """
    Flag values worth writing.

    Interior values equal to both neighbours are redundant; the first and
    last values and every transition point are kept.
    """
    values = np.asarray(values, dtype=np.float64)
    significant = np.ones(len(values), dtype=bool)
    if len(values) > 2:
        interior = (values[1:-1] == values[:-2]) & (values[1:-1] == values[2:])
        significant[1:-1] = ~interior
    return significant


class VMDWriter:
    """
    Serializes a MotionDocument into a .vmd file.

    Counts precede their records in the format, so bone and morph keys are
    walked twice: once to count, once to emit.
    """

    def __init__(self, config: Optional[Config] = None):
        self.logger = get_logger("export.vmd")
        self.config = config or Config()
        self.trim_morph_numbers = bool(self.config.get("recorder.trim_morph_number", True))

    # Key planning

    def _bone_keys(self, document: "MotionDocument", level: int) -> Iterator[Tuple[bytes, int, np.ndarray, np.ndarray]]:
        mask = reduction_mask(document.frame_count, level)
        tracks = []
        for bone, track in document.bone_tracks:
            name = bone_export_name(
                bone, document.use_parent_of_all, document.use_center_as_parent_of_all
            )
            if name is None:
                continue
            tracks.append((encode_name(name, BONE_NAME_WIDTH), track))

        for i in np.flatnonzero(mask):
            for name_bytes, track in tracks:
                if i >= len(track):
                    continue
                yield name_bytes, int(track.frames[i]), track.positions[i], track.rotations[i]

    def _morph_plan(self, document: "MotionDocument", result: ExportResult) -> List[Tuple[bytes, np.ndarray, np.ndarray]]:
        """Resolve export names and significant entries for every morph."""
        plan = []
        seen = set()
        for name, track in document.morph_tracks:
            if len(track) == 0:
                continue

            export_name = trim_morph_number(name) if self.trim_morph_numbers else name
            if export_name in seen:
                self.logger.debug(f"Morph {name!r} collides with {export_name!r}; dropped")
                result.dropped_names.append(name)
                continue
            seen.add(export_name)

            significant = track.significant & mark_significant(track.values)
            try:
                name_bytes = encode_name(export_name, MORPH_NAME_WIDTH)
            except (NameTooLong, UnicodeEncodeError) as e:
                self.logger.debug(f"Skipping morph {export_name!r}: {e}")
                result.skipped_names.append(export_name)
                result.skipped_key_count += int(significant.sum())
                continue

            plan.append((name_bytes, track.frames[significant], track.values[significant]))
        return plan

    @staticmethod
    def _morph_keys(plan) -> Iterator[Tuple[bytes, int, float]]:
        # Frame-major, morph declaration order within a frame
        entries = []
        for order, (name_bytes, frames, values) in enumerate(plan):
            for frame, value in zip(frames, values):
                entries.append((int(frame), order, name_bytes, float(value)))
        entries.sort(key=lambda e: (e[0], e[1]))
        for frame, _, name_bytes, value in entries:
            yield name_bytes, frame, value

    # Serialization

    def _emit(
        self,
        stream: BinaryIO,
        document: "MotionDocument",
        model_name: str,
        level: int,
        result: ExportResult,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        written = 0

        def check_cancel():
            if cancel_event is not None and cancel_event.is_set():
                raise ExportCancelled("Export cancelled")

        check_cancel()
        stream.write(SIGNATURE.ljust(SIGNATURE_WIDTH, b"\x00"))
        stream.write(encode_model_name(model_name))

        result.bone_key_count = sum(1 for _ in self._bone_keys(document, level))
        stream.write(U32.pack(result.bone_key_count))
        for name_bytes, frame, position, rotation in self._bone_keys(document, level):
            stream.write(BONE_KEY.pack(
                name_bytes, frame,
                position[0], position[1], position[2],
                rotation[1], rotation[2], rotation[3], rotation[0],
                INTERPOLATION,
            ))
            written += 1
            if written % CANCEL_CHECK_INTERVAL == 0:
                check_cancel()

        plan = self._morph_plan(document, result)
        result.morph_key_count = sum(1 for _ in self._morph_keys(plan))
        stream.write(U32.pack(result.morph_key_count))
        for name_bytes, frame, value in self._morph_keys(plan):
            stream.write(MORPH_KEY.pack(name_bytes, frame, value))
            written += 1
            if written % CANCEL_CHECK_INTERVAL == 0:
                check_cancel()

        # Camera, light, self shadow
        for _ in range(3):
            stream.write(U32.pack(0))

        # One IK key at frame 0 enabling both legs and toes
        stream.write(U32.pack(1))
        stream.write(U32.pack(0))
        stream.write(struct.pack("<B", 1))
        stream.write(U32.pack(len(IK_TOGGLE_ORDER)))
        for bone in IK_TOGGLE_ORDER:
            stream.write(IK_ENTRY.pack(encode_name(VMD_BONE_NAMES[bone], IK_NAME_WIDTH), 1))

        check_cancel()

    def encode(
        self,
        document: "MotionDocument",
        model_name: Optional[str] = None,
        key_reduction_level: Optional[int] = None,
    ) -> Tuple[bytes, ExportResult]:
        """Serialize into memory. Returns (data, result)."""
        result = ExportResult(status=ExportStatus.OK)
        buffer = io.BytesIO()
        self._emit(
            buffer,
            document,
            document.model_name if model_name is None else model_name,
            document.key_reduction_level if key_reduction_level is None else key_reduction_level,
            result,
        )
        data = buffer.getvalue()
        result.bytes_written = len(data)
        return data, result

    def write(
        self,
        document: "MotionDocument",
        path: Union[str, Path],
        model_name: Optional[str] = None,
        key_reduction_level: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ExportResult:
        """
        Write a document to disk.

        The file is written next to the target under a temporary name and
        renamed into place once complete, so readers never observe a
        partial file.

        Returns:
            ExportResult (status EMPTY and no file when nothing was recorded)

        Raises:
            ExportIOError: if the file cannot be created or written
            ExportCancelled: if cancel_event was set before completion
        """
        path = Path(path)
        model_name = document.model_name if model_name is None else model_name
        level = document.key_reduction_level if key_reduction_level is None else key_reduction_level
        level = max(1, int(level))

        if document.is_empty:
            self.logger.warning(f"Nothing recorded; {path.name} not written")
            return ExportResult(status=ExportStatus.EMPTY)

        self.logger.info(
            f"Writing {path.name}: {document.frame_count} frames, "
            f"{len(document.bone_tracks)} bones, {len(document.morph_tracks)} morphs, level={level}"
        )

        result = ExportResult(status=ExportStatus.OK, path=path)
        tmp_path = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False
            ) as f:
                tmp_path = Path(f.name)
                self._emit(f, document, model_name, level, result, cancel_event)
                result.bytes_written = f.tell()
            os.chmod(tmp_path, _output_mode(path))
            os.replace(tmp_path, path)
            tmp_path = None
        except OSError as e:
            raise ExportIOError(path, e) from e
        finally:
            if tmp_path is not None:
                try:
                    tmp_path.unlink()
                except FileNotFoundError:
                    pass

        if result.skipped_names:
            self.logger.warning(
                f"Skipped {len(result.skipped_names)} morph names that do not fit "
                f"{MORPH_NAME_WIDTH} bytes: {', '.join(result.skipped_names)}"
            )
        self.logger.info(
            f"Wrote {path} ({result.bone_key_count} bone keys, "
            f"{result.morph_key_count} morph keys, {result.bytes_written} bytes)"
        )
        return result
