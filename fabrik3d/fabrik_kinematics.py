#!/usr/bin/env python3
"""
FABRIK Kinematics Module

Converts solved bone locations into quantities a renderer consumes:
orientation quaternions, global pitch and yaw, and per-chain pose tables.

The bone direction is authoritative; the roll about the bone axis is the
shortest-arc choice from the rest axis.
"""

import numpy as np
from typing import Dict, List

from .fabrik_bone import FabrikBone
from .fabrik_vector import (
    X_AXIS,
    Y_AXIS,
    Z_NEG,
    angle_between_degs,
    project_onto_plane,
    quaternion_between,
)


def calculate_bone_orientation(direction: np.ndarray, rest_axis: np.ndarray = Y_AXIS) -> np.ndarray:
    """
    Orientation that turns the rest axis onto the bone direction.

    Args:
        direction: Bone direction
        rest_axis: Axis a bone mesh points along before rotation (default +Y)

    Returns:
        Unit quaternion [x, y, z, w]
    """
    return quaternion_between(rest_axis, direction)


def calculate_pitch_degs(direction: np.ndarray) -> float:
    """
    Global pitch about the X axis, in (-180, 180] degrees.

    Measured from -Z in the YZ plane; positive when the direction points up.
    """
    x_projected = project_onto_plane(direction, X_AXIS, fallback=Z_NEG)
    pitch = angle_between_degs(Z_NEG, x_projected)
    return -pitch if x_projected[1] < 0.0 else pitch


def calculate_yaw_degs(direction: np.ndarray) -> float:
    """
    Global yaw about the Y axis, in (-180, 180] degrees.

    Measured from -Z in the XZ plane; positive toward +X.
    """
    y_projected = project_onto_plane(direction, Y_AXIS, fallback=Z_NEG)
    yaw = angle_between_degs(Z_NEG, y_projected)
    return -yaw if y_projected[0] < 0.0 else yaw


def calculate_bone_pose(bone: FabrikBone, rest_axis: np.ndarray = Y_AXIS) -> Dict:
    """
    Pose of a single bone.

    Returns:
        Dictionary containing:
            - 'name': str - Bone name
            - 'start', 'end': np.ndarray - Bone locations
            - 'direction': np.ndarray - Unit direction start -> end
            - 'length': float - Configured length
            - 'orientation': np.ndarray - Quaternion [x, y, z, w]
            - 'pitch_degs', 'yaw_degs': float - Global pitch and yaw
    """
    direction = bone.direction
    return {
        'name': bone.name,
        'start': bone.start.copy(),
        'end': bone.end.copy(),
        'direction': direction.copy(),
        'length': bone.length,
        'orientation': calculate_bone_orientation(direction, rest_axis),
        'pitch_degs': calculate_pitch_degs(direction),
        'yaw_degs': calculate_yaw_degs(direction),
    }


def calculate_chain_pose(chain, rest_axis: np.ndarray = Y_AXIS) -> List[Dict]:
    """Poses of every bone of a chain, base bone first."""
    return [calculate_bone_pose(bone, rest_axis) for bone in chain.bones]


def calculate_structure_pose(structure, rest_axis: np.ndarray = Y_AXIS) -> Dict[str, Dict]:
    """
    Pose table of a structure keyed by chain name.

    Returns:
        Dictionary of chain name -> {'bones': [...], 'residual': float,
        'effector': np.ndarray}
    """
    poses = {}
    for chain in structure.chains:
        poses[chain.name] = {
            'bones': calculate_chain_pose(chain, rest_axis),
            'residual': chain.current_solve_distance,
            'effector': chain.effector_location.copy(),
        }
    return poses
