import numpy as np

from vmdrec.core.transforms import (
    UP, flip_xz, quat_angle_between, quat_delta, quat_from_axis_angle,
    quat_identity, quat_inverse, quat_multiply, quat_rotate_vector, to_left_handed,
)


def test_rotate_vector_about_up():
    q = quat_from_axis_angle(UP, np.pi / 2)
    assert np.allclose(quat_rotate_vector(q, [0.0, 0.0, 1.0]), [1.0, 0.0, 0.0])


def test_composition_applies_right_first():
    yaw = quat_from_axis_angle(UP, np.pi / 2)
    roll = quat_from_axis_angle([0.0, 0.0, 1.0], np.pi / 2)
    v = quat_rotate_vector(quat_multiply(yaw, roll), [1.0, 0.0, 0.0])
    # roll takes +X to +Y, yaw leaves +Y alone
    assert np.allclose(v, [0.0, 1.0, 0.0])


def test_delta_recovers_change_since_rest():
    rest = quat_from_axis_angle([1.0, 0.0, 0.0], 0.4)
    change = quat_from_axis_angle(UP, 0.7)
    current = quat_multiply(change, rest)
    assert np.allclose(quat_delta(current, rest), change)
    assert np.allclose(quat_delta(rest, rest), quat_identity())


def test_inverse_and_angle():
    q = quat_from_axis_angle([1.0, 1.0, 0.0], 1.2)
    assert np.allclose(quat_multiply(q, quat_inverse(q)), quat_identity())
    assert np.isclose(quat_angle_between(quat_identity(), q), 1.2)


def test_left_handed_mirror():
    assert np.allclose(to_left_handed([0.1, 0.2, 0.3, 0.4]), [0.1, -0.2, 0.3, -0.4])
    assert np.allclose(flip_xz([1.0, 2.0, 3.0]), [-1.0, 2.0, -3.0])
