import threading

import numpy as np
import pytest

from vmdrec.core import BlendShapeSet, Config, ExportCancelled, RecordingActiveError
from vmdrec.core.bone_schema import BoneId
from vmdrec.core.transforms import quat_from_axis_angle, quat_multiply
from vmdrec.export import ExportStatus, read_vmd
from vmdrec.motion.recorder import MotionRecorder, RecorderState


@pytest.fixture
def face():
    return BlendShapeSet("Face", ["smile", "blink"])


@pytest.fixture
def recorder(rig, face, config):
    return MotionRecorder(rig, [face], config)


def _record(recorder, frames, step=None):
    recorder.start()
    for i in range(frames):
        if step is not None:
            step(i)
        recorder.tick()
    return recorder.stop()


def test_tick_while_idle_records_nothing(recorder):
    assert recorder.state == RecorderState.IDLE
    assert recorder.tick() is False
    assert recorder.frame_count == 0


def test_start_tick_stop(recorder):
    document = _record(recorder, 5)

    assert recorder.state == RecorderState.STOPPED
    assert document.frame_count == 5
    assert document is recorder.last_document
    track = document.track(BoneId.LEFT_ARM)
    assert list(track.frames) == [0, 1, 2, 3, 4]
    assert track.is_frozen
    assert document.morph("smile") is not None
    assert recorder.frame_count == 0, "stop arms an empty session"


def test_second_stop_is_a_no_op(recorder):
    document = _record(recorder, 3)
    assert recorder.stop() is None
    assert recorder.last_document is document
    assert recorder.last_document.frame_count == 3


def test_start_while_recording_is_a_no_op(recorder):
    recorder.start()
    recorder.tick()
    recorder.start()
    assert recorder.frame_count == 1


def test_pause_resume_keeps_frames_contiguous(recorder):
    recorder.start()
    recorder.tick()
    recorder.tick()
    recorder.pause()
    assert recorder.state == RecorderState.PAUSED
    assert recorder.tick() is False
    recorder.start()
    recorder.tick()
    document = recorder.stop()

    assert document.frame_count == 3
    assert list(document.track(BoneId.CENTER).frames) == [0, 1, 2]


def test_pause_only_from_recording(recorder):
    recorder.pause()
    assert recorder.state == RecorderState.IDLE


def test_new_session_after_stop(recorder):
    _record(recorder, 4)
    document = _record(recorder, 2)
    assert document.frame_count == 2
    assert list(document.track(BoneId.HEAD).frames) == [0, 1]


def test_export_while_recording_raises(recorder, tmp_path):
    recorder.start()
    with pytest.raises(RecordingActiveError):
        recorder.export(tmp_path / "motion.vmd")
    recorder.pause()
    with pytest.raises(RecordingActiveError):
        recorder.export_async(tmp_path / "motion.vmd")


def test_export_without_session_is_empty(recorder, tmp_path):
    result = recorder.export(tmp_path / "motion.vmd")
    assert result.status == ExportStatus.EMPTY
    assert not (tmp_path / "motion.vmd").exists()


def test_export_of_zero_frame_session_is_empty(recorder, tmp_path):
    _record(recorder, 0)
    result = recorder.export(tmp_path / "motion.vmd")
    assert result.status == ExportStatus.EMPTY
    assert not (tmp_path / "motion.vmd").exists()


def test_recorded_rotation_survives_export(recorder, rig, tmp_path):
    spin = quat_from_axis_angle([0.0, 0.0, 1.0], 0.5)

    def step(i):
        if i == 1:
            rig.set_world_rotation(BoneId.LEFT_ARM, quat_multiply(spin, rig.world_rotation(BoneId.LEFT_ARM)))

    _record(recorder, 2, step)
    result = recorder.export(tmp_path / "motion.vmd")
    assert result.ok

    motion = read_vmd(tmp_path / "motion.vmd")
    arm = motion.bone_frames("左腕")
    assert [key.frame for key in arm] == [0, 1]
    # Stored x, y, z, w after the left-handed mirror
    expected = [-spin[1], spin[2], -spin[3], spin[0]]
    assert np.allclose(arm[1].rotation, expected, atol=1e-6)


def test_center_is_written_as_groove(recorder, tmp_path):
    _record(recorder, 1)
    recorder.export(tmp_path / "motion.vmd")

    names = {key.name for key in read_vmd(tmp_path / "motion.vmd").bones}
    assert "グルーブ" in names
    assert "センター" in names
    assert "全ての親" not in names


def test_key_reduction_level_three(rig, config, tmp_path):
    config.set("recorder.key_reduction_level", 3)
    recorder = MotionRecorder(rig, config=config)
    _record(recorder, 10)
    recorder.export(tmp_path / "motion.vmd")

    frames = {key.frame for key in read_vmd(tmp_path / "motion.vmd").bone_frames("首")}
    assert frames == {0, 3, 6, 9}


def test_key_reduction_level_coerced(rig):
    config = Config.from_dict({"recorder": {"key_reduction_level": 0}})
    assert MotionRecorder(rig, config=config).key_reduction_level == 1


def test_morph_values_are_deduplicated(recorder, face, tmp_path):
    weights = [0.0, 0.0, 0.0, 100.0, 100.0, 0.0, 0.0]

    def step(i):
        face.set_weight("smile", weights[i])

    _record(recorder, len(weights), step)
    result = recorder.export(tmp_path / "motion.vmd")

    smile = read_vmd(tmp_path / "motion.vmd").morph_frames("smile")
    assert [key.frame for key in smile] == [0, 2, 3, 4, 5, 6]
    assert [key.value for key in smile] == pytest.approx([0.0, 0.0, 1.0, 1.0, 0.0, 0.0])
    # blink never changes: first and last frame only
    assert [key.frame for key in read_vmd(tmp_path / "motion.vmd").morph_frames("blink")] == [0, 6]
    assert result.morph_key_count == 8


def test_model_name_truncated(recorder, tmp_path):
    _record(recorder, 1)
    recorder.export(tmp_path / "motion.vmd", model_name="ABCDEFGHIJKLMNOPQRSTUVWXY")
    assert read_vmd(tmp_path / "motion.vmd").model_name == "ABCDEFGHIJKLMNOPQRST"


def test_model_name_defaults_to_rig_name(recorder, tmp_path):
    _record(recorder, 1)
    recorder.export(tmp_path / "motion.vmd")
    assert read_vmd(tmp_path / "motion.vmd").model_name == "mannequin"


def test_cancelled_export_leaves_no_file(recorder, tmp_path):
    _record(recorder, 3)
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(ExportCancelled):
        recorder.export(tmp_path / "motion.vmd", cancel_event=cancel)
    assert list(tmp_path.iterdir()) == []


def test_export_async_while_next_session_records(recorder, tmp_path):
    _record(recorder, 5)
    future = recorder.export_async(tmp_path / "motion.vmd")
    recorder.start()
    recorder.tick()

    result = future.result(timeout=10)
    recorder.shutdown()
    assert result.ok
    assert result.path.exists()
    assert recorder.frame_count == 1
