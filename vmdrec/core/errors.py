"""Error kinds raised (or recovered from) by the recorder pipeline.

Per-joint and per-key problems are recovered where they happen; only
I/O failures, cancellation and recorder misuse reach the caller.
"""

from typing import Optional


class VMDRecorderError(Exception):
    """Base class for all recorder errors."""


class MissingBone(VMDRecorderError):
    """A referenced joint is absent on a rig."""

    def __init__(self, bone, rig_name: str = ""):
        self.bone = bone
        self.rig_name = rig_name
        where = f" on rig '{rig_name}'" if rig_name else ""
        super().__init__(f"Bone {getattr(bone, 'name', bone)} is missing{where}")


class InvalidRigTopology(VMDRecorderError):
    """A joint has no root-reachable parent among the joints present."""

    def __init__(self, bone, candidates=()):
        self.bone = bone
        self.candidates = tuple(candidates)
        names = ", ".join(getattr(c, "name", str(c)) for c in self.candidates) or "none"
        super().__init__(
            f"No parent present for {getattr(bone, 'name', bone)} (candidates: {names})"
        )


class NameTooLong(VMDRecorderError):
    """An export name does not fit its fixed-width field."""

    def __init__(self, name: str, encoded_length: int, width: int):
        self.name = name
        self.encoded_length = encoded_length
        self.width = width
        super().__init__(f"'{name}' encodes to {encoded_length} bytes (limit {width})")


class RecordingActiveError(VMDRecorderError):
    """Export requested while the recorder is still recording or paused."""


class ExportIOError(VMDRecorderError):
    """Creating or writing the output file failed."""

    def __init__(self, path, cause: Optional[BaseException] = None):
        self.path = path
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Failed to write {path}{detail}")


class ExportCancelled(VMDRecorderError):
    """Export aborted by the caller before completion."""
