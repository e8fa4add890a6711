import numpy as np

from vmdrec.core import HumanoidRig
from vmdrec.core.bone_schema import BoneId
from vmdrec.core.transforms import quat_from_axis_angle, quat_identity, quat_multiply
from vmdrec.motion.ghost import ROOT_NODE, VirtualSkeleton


Z_AXIS = np.array([0.0, 0.0, 1.0])


def test_rest_pose_ghosts_are_identity(rig):
    ghost = VirtualSkeleton(rig)
    ghost.ghost_all()

    assert BoneId.ROOT not in ghost.enabled_bones
    assert BoneId.LEFT_FOOT_IK not in ghost.enabled_bones
    for bone in ghost.enabled_bones:
        assert np.allclose(ghost.local_rotation(bone), quat_identity()), bone.name
        assert np.allclose(ghost.local_position(bone), ghost.rest_local_position(bone)), bone.name


def test_center_hangs_under_root_node(rig):
    ghost = VirtualSkeleton(rig)
    assert ghost.ghost(BoneId.CENTER).parent == ROOT_NODE
    assert ghost.ghost(BoneId.LEFT_LEG).parent == ghost.ghost(BoneId.CENTER).ghost_index


def test_rotation_stays_on_the_rotated_bone(rig):
    """Children that did not move relative to rest keep identity locals."""
    ghost = VirtualSkeleton(rig)
    spin = quat_from_axis_angle(Z_AXIS, np.pi / 2)
    rig.set_world_rotation(BoneId.LEFT_ARM, quat_multiply(spin, rig.world_rotation(BoneId.LEFT_ARM)))

    ghost.ghost_all()

    assert np.allclose(ghost.local_rotation(BoneId.LEFT_ARM), spin)
    assert np.allclose(ghost.local_rotation(BoneId.LEFT_ELBOW), quat_identity())
    assert np.allclose(ghost.local_rotation(BoneId.LEFT_SHOULDER), quat_identity())


def test_rest_rotation_of_rig_does_not_leak(make_skeleton):
    """A bent authoring rest pose still ghosts to identity."""
    skeleton = make_skeleton()
    skeleton.set_local_rotation(skeleton.index("LeftForeArm"), quat_from_axis_angle(Z_AXIS, 0.6))
    rig = HumanoidRig(skeleton)

    ghost = VirtualSkeleton(rig)
    ghost.ghost_all()
    assert np.allclose(ghost.local_rotation(BoneId.LEFT_ELBOW), quat_identity())


def test_parent_falls_back_when_shoulder_missing(make_skeleton):
    rig = HumanoidRig(make_skeleton(skip=("LeftShoulder",)))
    ghost = VirtualSkeleton(rig)

    assert ghost.ghost(BoneId.LEFT_SHOULDER) is None
    assert ghost.ghost(BoneId.LEFT_ARM).parent == ghost.ghost(BoneId.UPPER_BODY2).ghost_index
    assert ghost.is_enabled(BoneId.LEFT_ARM)


def test_bones_without_reachable_parent_are_disabled(make_skeleton):
    rig = HumanoidRig(make_skeleton(skip=("Spine", "Spine2")))
    ghost = VirtualSkeleton(rig)

    for bone in (BoneId.NECK, BoneId.HEAD, BoneId.LEFT_ARM, BoneId.LEFT_ELBOW, BoneId.RIGHT_WRIST):
        assert bone in ghost.disabled_bones, bone.name
    assert ghost.is_enabled(BoneId.LEFT_KNEE)

    rig.set_world_rotation(BoneId.NECK, quat_from_axis_angle(Z_AXIS, 0.5))
    ghost.ghost_all()
    assert np.allclose(ghost.local_rotation(BoneId.NECK), quat_identity())
    assert np.allclose(ghost.local_position(BoneId.NECK), np.zeros(3))


def test_bottom_center(rig):
    ghost = VirtualSkeleton(rig, use_bottom_center=True)
    assert np.isclose(ghost.center_offset_length, 1.0)
    assert np.allclose(ghost.rest_local_position(BoneId.CENTER), np.zeros(3))

    ghost.ghost_all()
    assert np.allclose(ghost.local_position(BoneId.CENTER), np.zeros(3))


def test_local_pose_covers_ghosted_bones(rig):
    ghost = VirtualSkeleton(rig)
    ghost.ghost_all()
    pose = ghost.local_pose()
    assert [bone for bone, _, _ in pose] == sorted(ghost.enabled_bones)
