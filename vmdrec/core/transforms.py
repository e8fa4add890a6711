"""Quaternion and vector helpers.

Quaternions are numpy arrays in [w, x, y, z] order. Rotation composition
follows the usual convention: (q1 * q2) applies q2 first, then q1.
"""

import numpy as np


UP = np.array([0.0, 1.0, 0.0])
FORWARD = np.array([0.0, 0.0, 1.0])


def vec3(values=None) -> np.ndarray:
    """Return a float64 (3,) vector (zero when values is None)."""
    if values is None:
        return np.zeros(3)
    return np.asarray(values, dtype=np.float64).reshape(3).copy()


def normalize(v: np.ndarray) -> np.ndarray:
    """Normalize a vector, return zero if length is too small."""
    n = np.linalg.norm(v)
    if n < 1e-12:
        return np.zeros_like(v, dtype=np.float64)
    return v / n


def quat_identity() -> np.ndarray:
    """Return identity quaternion [w, x, y, z]."""
    return np.array([1.0, 0.0, 0.0, 0.0])


def quat(values) -> np.ndarray:
    """Return a float64 copy of a [w, x, y, z] quaternion."""
    return np.asarray(values, dtype=np.float64).reshape(4).copy()


def quat_normalize(q: np.ndarray) -> np.ndarray:
    n = np.linalg.norm(q)
    if n < 1e-12:
        return quat_identity()
    return q / n


def quat_multiply(q1: np.ndarray, q2: np.ndarray) -> np.ndarray:
    """Multiply two quaternions: q1 * q2."""
    w1, x1, y1, z1 = q1
    w2, x2, y2, z2 = q2
    return np.array([
        w1*w2 - x1*x2 - y1*y2 - z1*z2,
        w1*x2 + x1*w2 + y1*z2 - z1*y2,
        w1*y2 - x1*z2 + y1*w2 + z1*x2,
        w1*z2 + x1*y2 - y1*x2 + z1*w2
    ])


def quat_conjugate(q: np.ndarray) -> np.ndarray:
    """Return conjugate (inverse for unit quaternion)."""
    return np.array([q[0], -q[1], -q[2], -q[3]], dtype=np.float64)


def quat_inverse(q: np.ndarray) -> np.ndarray:
    """Inverse of a quaternion (works for non-unit input too)."""
    norm_sq = float(np.dot(q, q))
    if norm_sq < 1e-24:
        return quat_identity()
    return quat_conjugate(q) / norm_sq


def quat_rotate_vector(q: np.ndarray, v: np.ndarray) -> np.ndarray:
    """Rotate vector v by unit quaternion q."""
    w = q[0]
    u = np.asarray(q[1:4], dtype=np.float64)
    v = np.asarray(v, dtype=np.float64)
    t = 2.0 * np.cross(u, v)
    return v + w * t + np.cross(u, t)


def quat_from_axis_angle(axis: np.ndarray, angle: float) -> np.ndarray:
    """Create quaternion from axis and angle (radians)."""
    axis = normalize(np.asarray(axis, dtype=np.float64))
    half = angle * 0.5
    s = np.sin(half)
    return np.array([np.cos(half), axis[0]*s, axis[1]*s, axis[2]*s])


def quat_delta(current: np.ndarray, rest: np.ndarray) -> np.ndarray:
    """Change since rest: current * inverse(rest)."""
    return quat_multiply(current, quat_inverse(rest))


def quat_angle_between(q1: np.ndarray, q2: np.ndarray) -> float:
    """Angle (radians) of the rotation taking q1 to q2."""
    dot = abs(float(np.dot(quat_normalize(q1), quat_normalize(q2))))
    return 2.0 * float(np.arccos(min(1.0, dot)))


def to_left_handed(q: np.ndarray) -> np.ndarray:
    """Mirror a rotation across the X/Z axes: negate x and z, keep w and y."""
    return np.array([q[0], -q[1], q[2], -q[3]], dtype=np.float64)


def flip_xz(v: np.ndarray) -> np.ndarray:
    """Mirror a position across the X/Z axes."""
    return np.array([-v[0], v[1], -v[2]], dtype=np.float64)
