#!/usr/bin/env python3
"""
FABRIK Constraint Module

Implements the rotor (cone) and hinge constraints applied during FABRIK passes.
All functions take and return unit direction vectors.
"""

import numpy as np

from skeleton_config import motion as motion_config
from .fabrik_vector import (
    normalised,
    perpendicular_vector,
    project_onto_plane,
    rotate_about_axis_degs,
    signed_angle_between_degs,
)


class FabrikConeConstraint:
    """Rotor constraint: keeps a direction within a cone around an axis."""

    @staticmethod
    def project_onto_cone(direction: np.ndarray,
                          cone_axis: np.ndarray,
                          cone_half_angle_degs: float) -> np.ndarray:
        """
        Project direction onto the cone surface if it violates the constraint.

        The cone constraint ensures the angle between direction and cone_axis
        is at most cone_half_angle_degs.

        Args:
            direction: Desired direction vector (any non-zero length)
            cone_axis: Cone central axis (will be normalized)
            cone_half_angle_degs: Half-angle of cone in degrees

        Returns:
            Unit direction inside or on the cone
        """
        direction_norm = normalised(direction)
        if cone_half_angle_degs >= motion_config.MAX_CONSTRAINT_ANGLE_DEGS:
            return direction_norm

        cone_axis_norm = normalised(cone_axis)

        dot_product = np.clip(np.dot(direction_norm, cone_axis_norm), -1.0, 1.0)
        angle = np.degrees(np.arccos(dot_product))

        if angle <= cone_half_angle_degs:
            return direction_norm

        # Decompose direction into parallel and perpendicular components
        parallel_component = dot_product * cone_axis_norm
        perpendicular_component = direction_norm - parallel_component

        perp_magnitude = np.linalg.norm(perpendicular_component)
        if perp_magnitude < motion_config.DEGENERATE_LENGTH:
            # Antiparallel to the axis: any side of the cone is equally near
            perp_norm = perpendicular_vector(cone_axis_norm)
        else:
            perp_norm = perpendicular_component / perp_magnitude

        # Reconstruct direction on cone surface at exactly cone_half_angle
        half_angle_rad = np.radians(cone_half_angle_degs)
        corrected = np.cos(half_angle_rad) * cone_axis_norm + np.sin(half_angle_rad) * perp_norm
        return normalised(corrected)


class FabrikHingeConstraint:
    """Hinge constraint: keeps a direction in a plane, within signed angle limits."""

    @staticmethod
    def is_free(clockwise_degs: float, anticlockwise_degs: float) -> bool:
        """True when both limits are 180 degrees, i.e. the hinge rotates freely."""
        limit = motion_config.MAX_CONSTRAINT_ANGLE_DEGS - motion_config.HINGE_FREE_TOLERANCE
        return clockwise_degs >= limit and anticlockwise_degs >= limit

    @staticmethod
    def project_onto_hinge_plane(direction: np.ndarray,
                                 rotation_axis: np.ndarray,
                                 reference_axis: np.ndarray) -> np.ndarray:
        """
        Project direction onto the plane whose normal is rotation_axis.

        A direction parallel to the rotation axis has no projection; the
        reference axis is returned instead.
        """
        return project_onto_plane(direction, rotation_axis, fallback=reference_axis)

    @staticmethod
    def constrain_to_hinge(direction: np.ndarray,
                           rotation_axis: np.ndarray,
                           reference_axis: np.ndarray,
                           clockwise_degs: float,
                           anticlockwise_degs: float) -> np.ndarray:
        """
        Project direction onto the hinge plane and clamp it to the hinge limits.

        The signed angle from reference_axis about rotation_axis is clamped to
        [-clockwise_degs, +anticlockwise_degs].

        Args:
            direction: Desired direction vector
            rotation_axis: Hinge rotation axis (plane normal)
            reference_axis: Zero-angle direction inside the hinge plane
            clockwise_degs: Clockwise limit in degrees
            anticlockwise_degs: Anticlockwise limit in degrees

        Returns:
            Unit direction satisfying the hinge
        """
        projected = FabrikHingeConstraint.project_onto_hinge_plane(
            direction, rotation_axis, reference_axis
        )
        if FabrikHingeConstraint.is_free(clockwise_degs, anticlockwise_degs):
            return projected

        signed_angle = signed_angle_between_degs(reference_axis, projected, rotation_axis)

        if signed_angle > anticlockwise_degs:
            return normalised(rotate_about_axis_degs(reference_axis, anticlockwise_degs, rotation_axis))
        if signed_angle < -clockwise_degs:
            return normalised(rotate_about_axis_degs(reference_axis, -clockwise_degs, rotation_axis))
        return projected
