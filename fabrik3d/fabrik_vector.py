#!/usr/bin/env python3
"""
FABRIK Vector Module

3-D vector and quaternion helpers on numpy arrays.

Vectors are float64 arrays of shape (3,). Every function returns a new array;
vec3() additionally returns a read-only copy so stored locations cannot be
mutated through an alias. Quaternions are arrays [x, y, z, w].
"""

import numpy as np
from typing import Optional, Sequence, Union

from skeleton_config import motion as motion_config

ArrayLike = Union[np.ndarray, Sequence[float]]


def vec3(*components) -> np.ndarray:
    """
    Create a read-only 3-D vector.

    Accepts either three scalars or a single sequence/array of length 3.

    Raises:
        ValueError: If the input does not describe exactly three components
    """
    if len(components) == 1:
        values = np.array(components[0], dtype=np.float64)
    else:
        values = np.array(components, dtype=np.float64)

    if values.shape != (3,):
        raise ValueError(f"Expected 3 components, got shape {values.shape}")
    if not np.all(np.isfinite(values)):
        raise ValueError(f"Vector components must be finite, got {values}")

    values.flags.writeable = False
    return values


ZERO = vec3(0.0, 0.0, 0.0)
X_AXIS = vec3(1.0, 0.0, 0.0)
Y_AXIS = vec3(0.0, 1.0, 0.0)
Z_AXIS = vec3(0.0, 0.0, 1.0)
X_NEG = vec3(-1.0, 0.0, 0.0)
Y_NEG = vec3(0.0, -1.0, 0.0)
Z_NEG = vec3(0.0, 0.0, -1.0)


def is_degenerate(vector: ArrayLike) -> bool:
    """True when the vector is too short to have a direction."""
    return float(np.linalg.norm(vector)) < motion_config.DEGENERATE_LENGTH


def normalised(vector: ArrayLike) -> np.ndarray:
    """
    Return the unit vector pointing along vector.

    Raises:
        ValueError: If vector has (near) zero length
    """
    vector = np.asarray(vector, dtype=np.float64)
    magnitude = np.linalg.norm(vector)
    if magnitude < motion_config.DEGENERATE_LENGTH:
        raise ValueError("Cannot normalise a zero-length vector")
    return vector / magnitude


def safe_direction(delta: ArrayLike, fallback: ArrayLike) -> np.ndarray:
    """
    Unit vector along delta, or the fallback direction when delta is (near) zero.

    Args:
        delta: Vector between two points
        fallback: Unit direction used when the two points coincide

    Returns:
        Unit direction vector
    """
    delta = np.asarray(delta, dtype=np.float64)
    magnitude = np.linalg.norm(delta)
    if magnitude < motion_config.DEGENERATE_LENGTH:
        return np.array(fallback, dtype=np.float64)
    return delta / magnitude


def distance_between(a: ArrayLike, b: ArrayLike) -> float:
    """Euclidean distance between two points."""
    return float(np.linalg.norm(np.asarray(b, dtype=np.float64) - np.asarray(a, dtype=np.float64)))


def approximately_equal(a, b, tolerance: float = motion_config.APPROXIMATELY_EQUALS_TOLERANCE) -> bool:
    """True when every component of a and b differs by at most tolerance."""
    return bool(np.allclose(a, b, rtol=0.0, atol=tolerance))


def is_perpendicular(a: ArrayLike, b: ArrayLike,
                     tolerance: float = motion_config.PERPENDICULAR_TOLERANCE) -> bool:
    """True when the unit vectors of a and b are perpendicular within tolerance."""
    return abs(float(np.dot(normalised(a), normalised(b)))) <= tolerance


def angle_between_degs(a: ArrayLike, b: ArrayLike) -> float:
    """Unsigned angle between two non-zero vectors in degrees, in [0, 180]."""
    dot_product = np.clip(np.dot(normalised(a), normalised(b)), -1.0, 1.0)
    return float(np.degrees(np.arccos(dot_product)))


def signed_angle_between_degs(reference: ArrayLike, other: ArrayLike, normal: ArrayLike) -> float:
    """
    Signed angle from reference to other about normal, in degrees.

    Positive when rotating reference toward other is anticlockwise looking down
    the normal. A zero cross product counts as positive.
    """
    angle = angle_between_degs(reference, other)
    sign = np.dot(np.cross(reference, other), normal)
    return angle if sign >= 0.0 else -angle


def rotate_about_axis_degs(vector: ArrayLike, angle_degs: float, axis: ArrayLike) -> np.ndarray:
    """Rotate vector by angle_degs about axis (right-handed, Rodrigues formula)."""
    vector = np.asarray(vector, dtype=np.float64)
    k = normalised(axis)
    theta = np.radians(angle_degs)
    cos_theta = np.cos(theta)
    sin_theta = np.sin(theta)
    return (vector * cos_theta
            + np.cross(k, vector) * sin_theta
            + k * np.dot(k, vector) * (1.0 - cos_theta))


def perpendicular_vector(vector: ArrayLike) -> np.ndarray:
    """
    Quick unit vector perpendicular to vector.

    Uses (-z, 0, x) unless the vector is close to the Y axis, then (0, z, -y).
    """
    u = normalised(vector)
    if abs(u[1]) < 0.99:
        return normalised(np.array([-u[2], 0.0, u[0]]))
    return normalised(np.array([0.0, u[2], -u[1]]))


def project_onto_plane(vector: ArrayLike, plane_normal: ArrayLike,
                       fallback: Optional[ArrayLike] = None) -> np.ndarray:
    """
    Project vector onto the plane with the given normal and normalise it.

    Args:
        vector: Vector to project
        plane_normal: Plane normal (any length)
        fallback: Unit vector returned when the projection is degenerate
            (vector parallel to the normal). Defaults to a perpendicular of
            the normal.

    Returns:
        Unit vector lying in the plane
    """
    normal = normalised(plane_normal)
    vector = np.asarray(vector, dtype=np.float64)
    projected = vector - normal * np.dot(vector, normal)

    if np.linalg.norm(projected) < motion_config.DEGENERATE_LENGTH:
        if fallback is None:
            return perpendicular_vector(normal)
        return normalised(fallback)
    return normalised(projected)


def rotation_matrix_from_direction(direction: ArrayLike) -> np.ndarray:
    """
    Frame whose Z basis is direction.

    X basis is direction x (+Y), or +X when direction is (nearly) vertical.
    Y basis is X x Z. Multiplying a local vector by the returned matrix
    expresses it in world space.

    Returns:
        3x3 matrix with the X, Y, Z basis vectors as columns
    """
    z_basis = normalised(direction)
    if abs(z_basis[1]) > motion_config.PARALLEL_Y_THRESHOLD:
        x_basis = np.array(X_AXIS)
    else:
        x_basis = normalised(np.cross(z_basis, Y_AXIS))
    y_basis = normalised(np.cross(x_basis, z_basis))
    return np.column_stack([x_basis, y_basis, z_basis])


# =============================================================================
# QUATERNIONS
# =============================================================================

def quaternion_from_axis_angle(axis: ArrayLike, angle_degs: float) -> np.ndarray:
    """Unit quaternion [x, y, z, w] rotating angle_degs about axis."""
    k = normalised(axis)
    half_angle = np.radians(angle_degs) / 2.0
    return np.concatenate([k * np.sin(half_angle), [np.cos(half_angle)]])


def quaternion_between(a: ArrayLike, b: ArrayLike) -> np.ndarray:
    """
    Shortest-arc unit quaternion rotating direction a onto direction b.

    Antiparallel inputs rotate 180 degrees about a perpendicular of a.
    """
    ua = normalised(a)
    ub = normalised(b)
    dot_product = float(np.dot(ua, ub))

    if dot_product < -1.0 + 1e-9:
        return quaternion_from_axis_angle(perpendicular_vector(ua), 180.0)

    q = np.concatenate([np.cross(ua, ub), [1.0 + dot_product]])
    return q / np.linalg.norm(q)


def quaternion_rotate(q: ArrayLike, vector: ArrayLike) -> np.ndarray:
    """Rotate vector by unit quaternion q = [x, y, z, w]."""
    q = np.asarray(q, dtype=np.float64)
    vector = np.asarray(vector, dtype=np.float64)
    u = q[:3]
    w = q[3]
    t = 2.0 * np.cross(u, vector)
    return vector + w * t + np.cross(u, t)
