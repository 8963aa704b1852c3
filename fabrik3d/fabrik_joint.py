#!/usr/bin/env python3
"""
FABRIK Joint Module

Joint descriptors attached to bones. A joint is a ball joint (no restriction
of its own) or a hinge whose rotation axis is fixed in world space (global)
or relative to the previous bone's direction (local).
"""

from enum import Enum
from typing import Optional, Tuple

import numpy as np

from skeleton_config import motion as motion_config
from .fabrik_constraints import FabrikHingeConstraint
from .fabrik_errors import FabrikConfigurationError
from .fabrik_vector import (
    Y_AXIS,
    is_degenerate,
    is_perpendicular,
    normalised,
    rotation_matrix_from_direction,
    safe_direction,
    vec3,
)


class JointType(Enum):
    BALL = 'ball'
    GLOBAL_HINGE = 'global_hinge'
    LOCAL_HINGE = 'local_hinge'


def validate_constraint_angle(angle_degs: float, label: str = 'Constraint angle') -> float:
    """Check that an angle lies in [0, 180] degrees and return it as float."""
    angle_degs = float(angle_degs)
    if not (motion_config.MIN_CONSTRAINT_ANGLE_DEGS <= angle_degs <= motion_config.MAX_CONSTRAINT_ANGLE_DEGS):
        raise FabrikConfigurationError(
            f"{label} must be within [{motion_config.MIN_CONSTRAINT_ANGLE_DEGS}, "
            f"{motion_config.MAX_CONSTRAINT_ANGLE_DEGS}] degrees, got {angle_degs}"
        )
    return angle_degs


def validate_axis(axis, label: str = 'Axis') -> np.ndarray:
    """Return axis as a read-only unit vector; reject zero-length axes."""
    try:
        axis = vec3(axis)
    except ValueError as exc:
        raise FabrikConfigurationError(f"{label} is not a 3-D vector: {exc}") from exc
    if is_degenerate(axis):
        raise FabrikConfigurationError(f"{label} cannot be a zero vector")
    return vec3(normalised(axis))


class FabrikJoint:
    """
    Constraint descriptor owned by a bone.

    Ball joints leave the direction untouched; the cone limit relative to the
    previous bone is the bone's rotor constraint, applied by the chain.
    Hinge joints confine the bone to the plane normal to rotation_axis and
    limit the signed angle from reference_axis.
    """

    def __init__(self, joint_type: JointType = JointType.BALL,
                 rotation_axis=None,
                 clockwise_degs: float = motion_config.MAX_CONSTRAINT_ANGLE_DEGS,
                 anticlockwise_degs: float = motion_config.MAX_CONSTRAINT_ANGLE_DEGS,
                 reference_axis=None):
        if not isinstance(joint_type, JointType):
            raise FabrikConfigurationError(f"Unknown joint type: {joint_type!r}")

        self.joint_type = joint_type
        self.clockwise_degs = validate_constraint_angle(clockwise_degs, 'Clockwise limit')
        self.anticlockwise_degs = validate_constraint_angle(anticlockwise_degs, 'Anticlockwise limit')

        if joint_type is JointType.BALL:
            self.rotation_axis = None
            self.reference_axis = None
            return

        if rotation_axis is None or reference_axis is None:
            raise FabrikConfigurationError(
                f"{joint_type.value} joint needs both a rotation axis and a reference axis"
            )
        self.rotation_axis = validate_axis(rotation_axis, 'Hinge rotation axis')
        self.reference_axis = validate_axis(reference_axis, 'Hinge reference axis')
        if not is_perpendicular(self.rotation_axis, self.reference_axis):
            raise FabrikConfigurationError(
                "Hinge reference axis must be perpendicular to the rotation axis "
                f"(axis {self.rotation_axis}, reference {self.reference_axis})"
            )

    @classmethod
    def ball(cls) -> 'FabrikJoint':
        return cls(JointType.BALL)

    @classmethod
    def global_hinge(cls, rotation_axis, clockwise_degs: float, anticlockwise_degs: float,
                     reference_axis) -> 'FabrikJoint':
        return cls(JointType.GLOBAL_HINGE, rotation_axis, clockwise_degs, anticlockwise_degs, reference_axis)

    @classmethod
    def local_hinge(cls, rotation_axis, clockwise_degs: float, anticlockwise_degs: float,
                    reference_axis) -> 'FabrikJoint':
        return cls(JointType.LOCAL_HINGE, rotation_axis, clockwise_degs, anticlockwise_degs, reference_axis)

    @property
    def is_hinge(self) -> bool:
        return self.joint_type is not JointType.BALL

    @property
    def is_free_hinge(self) -> bool:
        return self.is_hinge and FabrikHingeConstraint.is_free(self.clockwise_degs, self.anticlockwise_degs)

    def set_hinge_limits(self, clockwise_degs: float, anticlockwise_degs: float) -> None:
        """Update both hinge limits (degrees)."""
        if not self.is_hinge:
            raise FabrikConfigurationError("Hinge limits can only be set on hinge joints")
        self.clockwise_degs = validate_constraint_angle(clockwise_degs, 'Clockwise limit')
        self.anticlockwise_degs = validate_constraint_angle(anticlockwise_degs, 'Anticlockwise limit')

    def hinge_axes(self, previous_direction: Optional[np.ndarray] = None) -> Tuple[np.ndarray, np.ndarray]:
        """
        World-space rotation axis and reference axis of this hinge.

        Local hinge axes are expressed in the frame built from
        previous_direction; without one they are used as given.

        Args:
            previous_direction: Direction of the bone before this one

        Returns:
            Tuple of (rotation_axis, reference_axis), unit vectors
        """
        if not self.is_hinge:
            raise FabrikConfigurationError("Ball joints have no hinge axes")

        if self.joint_type is JointType.GLOBAL_HINGE or previous_direction is None:
            return self.rotation_axis, self.reference_axis

        frame = rotation_matrix_from_direction(previous_direction)
        return normalised(frame @ self.rotation_axis), normalised(frame @ self.reference_axis)

    def plane_direction(self, direction: np.ndarray,
                        previous_direction: Optional[np.ndarray] = None) -> np.ndarray:
        """Project direction onto the hinge plane without applying the limits."""
        if not self.is_hinge:
            return safe_direction(direction, Y_AXIS)
        rotation_axis, reference_axis = self.hinge_axes(previous_direction)
        return FabrikHingeConstraint.project_onto_hinge_plane(direction, rotation_axis, reference_axis)

    def constrain_direction(self, direction: np.ndarray,
                            previous_direction: Optional[np.ndarray] = None) -> np.ndarray:
        """
        Nearest direction that satisfies this joint.

        Args:
            direction: Candidate bone direction
            previous_direction: Direction of the previous bone (used by local hinges)

        Returns:
            Unit direction vector
        """
        if not self.is_hinge:
            return safe_direction(direction, Y_AXIS)

        rotation_axis, reference_axis = self.hinge_axes(previous_direction)
        return FabrikHingeConstraint.constrain_to_hinge(
            direction, rotation_axis, reference_axis,
            self.clockwise_degs, self.anticlockwise_degs
        )

    def copy(self) -> 'FabrikJoint':
        if not self.is_hinge:
            return FabrikJoint.ball()
        return FabrikJoint(self.joint_type, self.rotation_axis, self.clockwise_degs,
                           self.anticlockwise_degs, self.reference_axis)

    def __repr__(self) -> str:
        if not self.is_hinge:
            return 'FabrikJoint(ball)'
        return (f"FabrikJoint({self.joint_type.value}, axis={self.rotation_axis.tolist()}, "
                f"cw={self.clockwise_degs}, acw={self.anticlockwise_degs}, "
                f"reference={self.reference_axis.tolist()})")
