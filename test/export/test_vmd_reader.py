import pytest

from vmdrec.core import Config
from vmdrec.core.bone_schema import BoneId
from vmdrec.export import VMDWriter, read_vmd
from vmdrec.motion.tracks import MotionDocument, MotionTrack


def _encoded():
    track = MotionTrack(BoneId.HEAD)
    track.append(0, [0.0, 1.0, 0.0], [1.0, 0.0, 0.0, 0.0])
    document = MotionDocument(
        model_name="reader",
        bone_tracks=((BoneId.HEAD, track.freeze()),),
        morph_tracks=(),
        frame_count=1,
    )
    return VMDWriter(Config.from_dict({})).encode(document)[0]


def test_read_from_bytes_and_path(tmp_path):
    data = _encoded()
    path = tmp_path / "head.vmd"
    path.write_bytes(data)

    for motion in (read_vmd(data), read_vmd(path), read_vmd(str(path))):
        assert motion.model_name == "reader"
        assert [key.name for key in motion.bones] == ["頭"]
        assert motion.bone_frames("頭")[0].position[1] == pytest.approx(1.0)


def test_bad_signature():
    with pytest.raises(ValueError):
        read_vmd(b"Vocaloid Motion Data file" + bytes(100))


def test_truncated_data():
    with pytest.raises(ValueError):
        read_vmd(_encoded()[:70])


def test_missing_ik_section_is_tolerated():
    data = _encoded()
    ik_block = 4 + 4 + 1 + 4 + 4 * 21
    motion = read_vmd(data[:-ik_block])
    assert motion.ik == []
    assert len(motion.bones) == 1
