import numpy as np
import pytest

from vmdrec.core import HumanoidRig, MissingBone
from vmdrec.core.bone_schema import BoneId
from vmdrec.core.transforms import FORWARD, quat_rotate_vector


def test_rig_maps_mannequin(rig, skeleton):
    assert rig.joint(BoneId.ROOT) == skeleton.index("Root")
    assert rig.joint(BoneId.CENTER) == skeleton.index("Hips")
    assert rig.joint(BoneId.LEFT_TOE_IK) == skeleton.index("LeftToeBase")
    assert not rig.has(BoneId.RIGHT_INDEX1)


def test_foot_ik_follows_ankles(rig):
    assert rig.joint(BoneId.LEFT_FOOT_IK) == rig.joint(BoneId.LEFT_ANKLE)
    assert rig.joint(BoneId.RIGHT_FOOT_IK) == rig.joint(BoneId.RIGHT_ANKLE)


def test_forced_toe_joints(skeleton):
    rig = HumanoidRig(skeleton, toe_joints={BoneId.LEFT_TOE_IK: "LeftFoot"})
    assert rig.joint(BoneId.LEFT_TOE_IK) == skeleton.index("LeftFoot")


def test_require_missing_bone(rig):
    with pytest.raises(MissingBone):
        rig.require(BoneId.RIGHT_INDEX1)
    with pytest.raises(MissingBone):
        rig.world_rotation(BoneId.RIGHT_INDEX1)


def test_rest_pose_is_read_only(rig):
    rest = rig.capture_rest_pose()
    assert rest.has(BoneId.HEAD)
    assert not rest.has(BoneId.RIGHT_INDEX1)
    assert np.allclose(rest.world_position(BoneId.CENTER), [0.0, 1.0, 0.0])
    with pytest.raises(ValueError):
        rest.world_positions[0, 0] = 1.0


def test_root_fallback_to_scene_parent(make_skeleton):
    skeleton = make_skeleton(skip=("Root",))
    skeleton.set_parent_transform(position=(2.0, 0.0, 0.0))
    rig = HumanoidRig(skeleton)

    assert not rig.has(BoneId.ROOT)
    assert np.allclose(rig.root_world_position(), [2.0, 0.0, 0.0])


def test_enforce_a_pose_lowers_both_arms(rig):
    rig.enforce_initial_pose(a_pose=True, degrees=30.0)

    for arm, hand in ((BoneId.LEFT_ARM, BoneId.LEFT_WRIST), (BoneId.RIGHT_ARM, BoneId.RIGHT_WRIST)):
        direction = rig.world_position(hand) - rig.world_position(arm)
        direction = direction / np.linalg.norm(direction)
        assert np.isclose(direction[1], -0.5), f"{arm.name} not lowered 30 degrees"


def test_enforce_initial_pose_resets_to_bind(rig):
    rig.set_world_position(BoneId.CENTER, (3.0, 3.0, 3.0))
    rig.enforce_initial_pose(a_pose=False)
    assert np.allclose(rig.world_position(BoneId.CENTER), [0.0, 1.0, 0.0])
    assert np.allclose(quat_rotate_vector(rig.root_world_rotation(), FORWARD), FORWARD)
