"""
Motion recorder.

State machine: IDLE -> RECORDING <-> PAUSED -> STOPPED -> RECORDING ...

Only RECORDING appends samples. stop() freezes the session's tracks into
a MotionDocument and arms an empty session; exports read that document
only, so they may run on a worker thread while a new session records.
"""

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, Optional, Union

from vmdrec.core import Config, get_logger
from vmdrec.core.bone_schema import BoneId
from vmdrec.core.errors import RecordingActiveError
from vmdrec.core.humanoid import HumanoidRig
from vmdrec.core.logging import EXPORT_THREAD_PREFIX
from vmdrec.core.morphs import BlendShapeSet, MorphSampler, DEFAULT_MORPH_AMPLIFIER
from vmdrec.export.vmd_writer import ExportResult, ExportStatus, VMDWriter
from .ghost import VirtualSkeleton
from .pose_sampler import PoseSampler
from .tracks import MorphTrack, MotionDocument, MotionTrack


class RecorderState(Enum):
    IDLE = "idle"
    RECORDING = "recording"
    PAUSED = "paused"
    STOPPED = "stopped"


class MotionRecorder:
    """
    Records a humanoid rig (and optional blend shapes) into VMD tracks.

    Drive it from a fixed-step loop: call tick() once per frame. Frame
    numbers are assigned by the recorder and are always contiguous.
    """

    def __init__(
        self,
        rig: HumanoidRig,
        morph_sets: Iterable[BlendShapeSet] = (),
        config: Optional[Config] = None,
        writer: Optional[VMDWriter] = None,
    ):
        self.config = config or Config()
        self.logger = get_logger("motion.recorder")
        self.rig = rig
        self.morph_sets = list(morph_sets)
        self.writer = writer or VMDWriter(self.config)

        recorder_config = self.config.recorder
        self.fps = float(recorder_config.get("fps", 30))
        self.use_bottom_center = bool(recorder_config.get("use_bottom_center", False))
        self.use_parent_of_all = bool(recorder_config.get("use_parent_of_all", True))
        self.use_center_as_parent_of_all = bool(recorder_config.get("use_center_as_parent_of_all", True))

        level = int(recorder_config.get("key_reduction_level", 1))
        if level < 1:
            self.logger.warning(f"key_reduction_level {level} coerced to 1")
            level = 1
        self.key_reduction_level = level

        self._state = RecorderState.IDLE
        self._last_document: Optional[MotionDocument] = None
        self._executor: Optional[ThreadPoolExecutor] = None
        self._arm()

    def _arm(self) -> None:
        """Empty per-session state."""
        self._frame = 0
        self._ghost: Optional[VirtualSkeleton] = None
        self._sampler: Optional[PoseSampler] = None
        self._morphs: Optional[MorphSampler] = None
        self._tracks: Dict[BoneId, MotionTrack] = {}
        self._morph_tracks: Dict[str, MorphTrack] = {}

    # State

    @property
    def state(self) -> RecorderState:
        return self._state

    @property
    def is_recording(self) -> bool:
        return self._state == RecorderState.RECORDING

    @property
    def frame_count(self) -> int:
        return self._frame

    @property
    def last_document(self) -> Optional[MotionDocument]:
        return self._last_document

    @property
    def ghost(self) -> Optional[VirtualSkeleton]:
        return self._ghost

    def start(self) -> None:
        """Start a fresh session, or resume a paused one."""
        if self._state == RecorderState.RECORDING:
            self.logger.debug("Already recording")
            return

        if self._state == RecorderState.PAUSED:
            self._sampler.capture_origin()
            self._state = RecorderState.RECORDING
            self.logger.info(f"Recording resumed at frame {self._frame}")
            return

        self._arm()
        self._ghost = VirtualSkeleton(self.rig, use_bottom_center=self.use_bottom_center)
        self._sampler = PoseSampler(self.rig, self._ghost, self.config)
        self._sampler.capture_origin()
        self._morphs = MorphSampler(
            self.morph_sets,
            amplifier=float(self.config.get("sampler.morph_amplifier", DEFAULT_MORPH_AMPLIFIER)),
        )
        self._morph_tracks = {name: MorphTrack(name) for name in self._morphs.names}

        self._state = RecorderState.RECORDING
        self.logger.info(
            f"Recording {self.rig.name} ({len(self._ghost.enabled_bones)} ghost bones, "
            f"{len(self._morphs)} morphs)"
        )

    def pause(self) -> None:
        if self._state != RecorderState.RECORDING:
            return
        self._state = RecorderState.PAUSED
        self.logger.info(f"Recording paused at frame {self._frame}")

    def tick(self) -> bool:
        """
        Sample one frame.

        Returns:
            True if a frame was recorded (only while RECORDING)
        """
        if self._state != RecorderState.RECORDING:
            return False

        self._ghost.ghost_all()
        morph_values = self._morphs.sample()
        pose = self._sampler.sample()

        for bone, rotation, position in pose:
            track = self._tracks.get(bone)
            if track is None:
                track = self._tracks[bone] = MotionTrack(bone)
            track.append(self._frame, position, rotation)

        for name, value in zip(self._morphs.names, morph_values):
            self._morph_tracks[name].append(self._frame, value)

        self._frame += 1
        return True

    def stop(self) -> Optional[MotionDocument]:
        """
        Finish the session.

        Returns:
            The frozen document, or None when no session was active
        """
        if self._state not in (RecorderState.RECORDING, RecorderState.PAUSED):
            return None

        document = MotionDocument(
            model_name=self.config.get("export.model_name") or self.rig.name,
            bone_tracks=tuple((bone, track.freeze()) for bone, track in self._tracks.items()),
            morph_tracks=tuple(self._morph_tracks.items()),
            frame_count=self._frame,
            key_reduction_level=self.key_reduction_level,
            use_parent_of_all=self.use_parent_of_all,
            use_center_as_parent_of_all=self.use_center_as_parent_of_all,
            fps=self.fps,
        )

        self._last_document = document
        self._arm()
        self._state = RecorderState.STOPPED
        self.logger.info(f"Recording stopped: {document.frame_count} frames")
        return document

    # Export

    def _check_exportable(self) -> None:
        if self._state in (RecorderState.RECORDING, RecorderState.PAUSED):
            raise RecordingActiveError("Stop recording before exporting")

    def export(
        self,
        path: Union[str, Path],
        model_name: Optional[str] = None,
        key_reduction_level: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> ExportResult:
        """
        Write the last stopped session to a VMD file.

        Raises:
            RecordingActiveError: while recording or paused
            ExportIOError: if the file cannot be written
            ExportCancelled: if cancel_event is set before completion
        """
        self._check_exportable()
        document = self._last_document
        if document is None:
            self.logger.warning("No recorded session to export")
            return ExportResult(status=ExportStatus.EMPTY)
        return self.writer.write(document, path, model_name, key_reduction_level, cancel_event)

    def export_async(
        self,
        path: Union[str, Path],
        model_name: Optional[str] = None,
        key_reduction_level: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> "Future[ExportResult]":
        """Run export() on a worker thread; the sampling loop keeps going."""
        self._check_exportable()
        document = self._last_document
        if document is None:
            future: Future = Future()
            future.set_result(ExportResult(status=ExportStatus.EMPTY))
            return future

        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=EXPORT_THREAD_PREFIX)
        return self._executor.submit(
            self.writer.write, document, path, model_name, key_reduction_level, cancel_event
        )

    def shutdown(self, wait: bool = True) -> None:
        """Release the export worker."""
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None
