import pytest

from vmdrec.core import Config, HumanoidRig, Skeleton


# Mixamo-style T-pose, Y up, character facing +Z. Ankles sit one foot
# radius above the ground so grounding is at rest in the bind pose.
_JOINTS = [
    ("Root", None, (0.0, 0.0, 0.0)),
    ("Hips", "Root", (0.0, 1.0, 0.0)),
    ("Spine", "Hips", (0.0, 0.1, 0.0)),
    ("Spine2", "Spine", (0.0, 0.2, 0.0)),
    ("Neck", "Spine2", (0.0, 0.2, 0.0)),
    ("Head", "Neck", (0.0, 0.1, 0.0)),
    ("LeftShoulder", "Spine2", (0.05, 0.15, 0.0)),
    ("LeftArm", "LeftShoulder", (0.1, 0.0, 0.0)),
    ("LeftForeArm", "LeftArm", (0.25, 0.0, 0.0)),
    ("LeftHand", "LeftForeArm", (0.25, 0.0, 0.0)),
    ("LeftHandIndex1", "LeftHand", (0.08, 0.0, 0.0)),
    ("RightShoulder", "Spine2", (-0.05, 0.15, 0.0)),
    ("RightArm", "RightShoulder", (-0.1, 0.0, 0.0)),
    ("RightForeArm", "RightArm", (-0.25, 0.0, 0.0)),
    ("RightHand", "RightForeArm", (-0.25, 0.0, 0.0)),
    ("LeftUpLeg", "Hips", (0.1, -0.05, 0.0)),
    ("LeftLeg", "LeftUpLeg", (0.0, -0.4, 0.0)),
    ("LeftFoot", "LeftLeg", (0.0, -0.47, 0.0)),
    ("LeftToeBase", "LeftFoot", (0.0, -0.05, 0.12)),
    ("RightUpLeg", "Hips", (-0.1, -0.05, 0.0)),
    ("RightLeg", "RightUpLeg", (0.0, -0.4, 0.0)),
    ("RightFoot", "RightLeg", (0.0, -0.47, 0.0)),
    ("RightToeBase", "RightFoot", (0.0, -0.05, 0.12)),
]


def _build(name, skip=()):
    skeleton = Skeleton(name)
    remap = {}
    for joint, parent, position in _JOINTS:
        # Children of skipped joints hang off the nearest kept ancestor
        while parent in skip:
            parent = remap[parent]
        if joint in skip:
            remap[joint] = parent
            continue
        skeleton.add_joint(joint, parent=parent, position=position)
    skeleton.snapshot_bind_pose()
    return skeleton


@pytest.fixture
def make_skeleton():
    """Factory for the test humanoid, optionally without some joints."""
    def factory(name="mannequin", skip=()):
        return _build(name, skip)
    return factory


@pytest.fixture
def skeleton(make_skeleton):
    return make_skeleton()


@pytest.fixture
def rig(skeleton):
    return HumanoidRig(skeleton)


@pytest.fixture
def config():
    """Standalone config: every frame kept, grounding off."""
    return Config.from_dict({
        "recorder": {"key_reduction_level": 1},
        "retarget": {"grounding": {"enabled": False}},
    })
