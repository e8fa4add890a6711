import numpy as np
import pytest

from vmdrec.core.skeleton import Skeleton
from vmdrec.core.transforms import UP, quat_from_axis_angle, quat_multiply


def test_add_joint_rejects_duplicates_and_forward_parents():
    skeleton = Skeleton()
    skeleton.add_joint("a")
    with pytest.raises(ValueError):
        skeleton.add_joint("a")
    with pytest.raises(ValueError):
        skeleton.add_joint("b", parent=5)


def test_world_positions_follow_parent_rotation():
    skeleton = Skeleton()
    skeleton.add_joint("root", rotation=quat_from_axis_angle(UP, np.pi / 2))
    skeleton.add_joint("child", parent="root", position=(1.0, 0.0, 0.0))

    # +X rotated 90 degrees about +Y points to -Z
    assert np.allclose(skeleton.world_position(1), [0.0, 0.0, -1.0])


def test_world_local_round_trip(skeleton):
    """Writing a joint's own world transform back leaves locals unchanged."""
    rotations, positions = skeleton.world_transforms()
    arm = skeleton.index("LeftForeArm")
    before_rot = skeleton.local_rotation(arm)
    before_pos = skeleton.local_position(arm)

    skeleton.set_world_rotation(arm, rotations[arm])
    skeleton.set_world_position(arm, positions[arm])

    assert np.allclose(skeleton.local_rotation(arm), before_rot)
    assert np.allclose(skeleton.local_position(arm), before_pos)


def test_set_world_rotation_moves_descendants(skeleton):
    arm = skeleton.index("LeftArm")
    hand = skeleton.index("LeftHand")
    spin = quat_from_axis_angle(np.array([0.0, 0.0, 1.0]), np.pi / 2)

    skeleton.set_world_rotation(arm, quat_multiply(spin, skeleton.world_rotation(arm)))

    # The arm now points up: the hand sits straight above the shoulder joint
    offset = skeleton.world_position(hand) - skeleton.world_position(arm)
    assert np.allclose(offset, [0.0, 0.5, 0.0])


def test_world_transforms_match_single_joint_queries(skeleton):
    skeleton.set_local_rotation(1, quat_from_axis_angle(UP, 0.3))
    rotations, positions = skeleton.world_transforms()
    for i in range(len(skeleton)):
        assert np.allclose(rotations[i], skeleton.world_rotation(i))
        assert np.allclose(positions[i], skeleton.world_position(i))


def test_parent_transform_applies_to_roots():
    skeleton = Skeleton()
    skeleton.add_joint("root", position=(0.0, 1.0, 0.0))
    skeleton.set_parent_transform(position=(5.0, 0.0, 0.0))
    assert skeleton.has_parent
    assert np.allclose(skeleton.world_position(0), [5.0, 1.0, 0.0])


def test_bind_pose_reset(skeleton):
    hips = skeleton.index("Hips")
    skeleton.set_local_position(hips, (1.0, 2.0, 3.0))
    skeleton.reset_to_bind_pose()
    assert np.allclose(skeleton.local_position(hips), [0.0, 1.0, 0.0])


def test_scale_bone_lengths_bumps_version(skeleton):
    version = skeleton.proportions_version
    skeleton.scale_bone_lengths(2.0)

    assert skeleton.proportions_version == version + 1
    assert np.allclose(skeleton.local_position(skeleton.index("Hips")), [0.0, 2.0, 0.0])
    assert np.allclose(skeleton.local_position(0), [0.0, 0.0, 0.0])

    skeleton.reset_to_bind_pose()
    assert np.allclose(skeleton.local_position(skeleton.index("Hips")), [0.0, 2.0, 0.0])


def test_dict_round_trip(skeleton):
    skeleton.set_parent_transform(position=(0.0, 0.5, 0.0))
    restored = Skeleton.from_dict(skeleton.to_dict())

    assert restored.joint_names == skeleton.joint_names
    assert restored.parent(restored.index("LeftHand")) == restored.index("LeftForeArm")
    assert np.allclose(restored.world_transforms()[1], skeleton.world_transforms()[1])
    assert restored.has_bind_pose
