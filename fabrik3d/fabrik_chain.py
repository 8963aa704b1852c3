#!/usr/bin/env python3
"""
FABRIK Chain - Single Chain Solver
==================================
An ordered sequence of bones solved as one open kinematic chain.

The chain owns its bones, the constraint on its base bone and the solver
tuning (tolerance, iteration budget, minimum per-iteration change), and
exposes solve(anchor, target).
"""

import logging
from enum import Enum
from typing import Dict, List, Optional

import numpy as np

from skeleton_config import motion as motion_config
from skeleton_config import system as sys_config
from .fabrik_bone import BoneConnectionPoint, FabrikBone
from .fabrik_constraints import FabrikConeConstraint, FabrikHingeConstraint
from .fabrik_errors import FabrikConfigurationError
from .fabrik_iteration import FabrikIteration
from .fabrik_joint import FabrikJoint, JointType, validate_axis, validate_constraint_angle
from .fabrik_vector import (
    distance_between,
    normalised,
    perpendicular_vector,
    rotation_matrix_from_direction,
    vec3,
)

logger = logging.getLogger(__name__)


class BaseboneConstraintType(Enum):
    NONE = 'none'
    GLOBAL_ROTOR = 'global_rotor'
    LOCAL_ROTOR = 'local_rotor'
    GLOBAL_HINGE = 'global_hinge'
    LOCAL_HINGE = 'local_hinge'


ROTOR_BASEBONE_TYPES = (BaseboneConstraintType.GLOBAL_ROTOR, BaseboneConstraintType.LOCAL_ROTOR)
HINGE_BASEBONE_TYPES = (BaseboneConstraintType.GLOBAL_HINGE, BaseboneConstraintType.LOCAL_HINGE)


class FabrikChain:
    """
    Single FABRIK chain.

    Bone 0 is the base bone, the last bone carries the end effector. Local
    base bone constraints are expressed relative to the direction of the host
    bone this chain is connected to; the structure refreshes them before each
    solve. For an unconnected chain local and global constraints coincide.
    """

    def __init__(self, name: str = '',
                 tolerance: float = motion_config.FABRIK_TOLERANCE,
                 max_iterations: int = motion_config.FABRIK_MAX_ITERATIONS,
                 min_iteration_change: float = motion_config.FABRIK_MIN_ITERATION_CHANGE):
        """
        Initialize an empty chain.

        Args:
            name: Chain name, the key for targets and connections
            tolerance: Solve distance threshold (default 0.01)
            max_iterations: Maximum iterations per solve (default 200)
            min_iteration_change: Stop once an iteration fails to improve
                and the residual moved less than this
        """
        self.name = str(name)[:sys_config.MAX_NAME_LENGTH]
        self._bones: List[FabrikBone] = []

        self.tolerance = tolerance
        self.max_iterations = max_iterations
        self.min_iteration_change = min_iteration_change

        self.fixed_base_mode = True
        self._fixed_base_location = vec3(0.0, 0.0, 0.0)

        self.basebone_constraint_type = BaseboneConstraintType.NONE
        self.basebone_constraint_uv: Optional[np.ndarray] = None
        self.basebone_relative_constraint_uv: Optional[np.ndarray] = None
        self.basebone_relative_reference_uv: Optional[np.ndarray] = None
        self.basebone_rotor_degs = motion_config.MAX_CONSTRAINT_ANGLE_DEGS
        self.host_direction: Optional[np.ndarray] = None

        # Connection bookkeeping, filled in by FabrikStructure.connect_chain
        self.connected_chain_name: Optional[str] = None
        self.connected_bone_index: Optional[int] = None
        self.connection_point: Optional[BoneConnectionPoint] = None

        self.embedded_target_mode = False
        self.embedded_target = vec3(0.0, 0.0, 0.0)

        # Diagnostics of the most recent solve
        self.current_solve_distance = float('inf')
        self.last_iteration_count = 0
        self.last_target_location: Optional[np.ndarray] = None
        self.last_base_location: Optional[np.ndarray] = None

    # ================================================================== tuning

    @property
    def tolerance(self) -> float:
        """Solve distance threshold."""
        return self._tolerance

    @tolerance.setter
    def tolerance(self, value: float) -> None:
        if value < 0.0:
            raise FabrikConfigurationError(f"Tolerance must be non-negative, got {value}")
        self._tolerance = float(value)

    @property
    def max_iterations(self) -> int:
        return self._max_iterations

    @max_iterations.setter
    def max_iterations(self, value: int) -> None:
        if int(value) < 1:
            raise FabrikConfigurationError(f"Max iterations must be at least 1, got {value}")
        self._max_iterations = int(value)

    @property
    def min_iteration_change(self) -> float:
        return self._min_iteration_change

    @min_iteration_change.setter
    def min_iteration_change(self, value: float) -> None:
        if value < 0.0:
            raise FabrikConfigurationError(f"Min iteration change must be non-negative, got {value}")
        self._min_iteration_change = float(value)

    # ================================================================== bones

    @property
    def bones(self) -> List[FabrikBone]:
        """Bones in base-to-effector order (the chain's own list)."""
        return self._bones

    @property
    def num_bones(self) -> int:
        return len(self._bones)

    def get_bone(self, index: int) -> FabrikBone:
        return self._bones[index]

    def add_bone(self, bone: FabrikBone) -> FabrikBone:
        """
        Append a bone. The first bone becomes the base bone and fixes the base location.

        Later bones must start where the previous bone ends.
        """
        if not self._bones:
            self._fixed_base_location = bone.start
            if self.basebone_constraint_uv is None:
                self.basebone_constraint_uv = bone.direction
                self.basebone_relative_constraint_uv = bone.direction
        elif not np.allclose(bone.start, self._bones[-1].end,
                             atol=motion_config.APPROXIMATELY_EQUALS_TOLERANCE):
            raise FabrikConfigurationError(
                f"Bone {len(self._bones)} of chain '{self.name}' does not start at the previous bone's end"
            )
        self._bones.append(bone)
        return bone

    def _require_base_bone(self) -> FabrikBone:
        if not self._bones:
            raise FabrikConfigurationError(f"Chain '{self.name}' has no base bone")
        return self._bones[0]

    def add_consecutive_bone(self, direction, length: float, joint: Optional[FabrikJoint] = None,
                             rotor_constraint_degs: float = motion_config.MAX_CONSTRAINT_ANGLE_DEGS,
                             name: str = '', color=None) -> FabrikBone:
        """Append a bone starting at the current end effector."""
        self._require_base_bone()
        bone = FabrikBone.from_direction(
            self._bones[-1].end, direction, length,
            joint=joint, rotor_constraint_degs=rotor_constraint_degs, name=name, color=color
        )
        return self.add_bone(bone)

    def add_consecutive_rotor_constrained_bone(self, direction, length: float,
                                               rotor_constraint_degs: float,
                                               name: str = '', color=None) -> FabrikBone:
        return self.add_consecutive_bone(direction, length, FabrikJoint.ball(),
                                         rotor_constraint_degs, name=name, color=color)

    def add_consecutive_hinged_bone(self, direction, length: float, joint_type: JointType,
                                    rotation_axis, clockwise_degs: float, anticlockwise_degs: float,
                                    reference_axis, name: str = '', color=None) -> FabrikBone:
        """Append a bone whose joint is a global or local hinge."""
        if joint_type not in (JointType.GLOBAL_HINGE, JointType.LOCAL_HINGE):
            raise FabrikConfigurationError(f"Hinged bones need a hinge joint type, got {joint_type!r}")
        joint = FabrikJoint(joint_type, rotation_axis, clockwise_degs, anticlockwise_degs, reference_axis)
        return self.add_consecutive_bone(direction, length, joint, name=name, color=color)

    def add_consecutive_freely_rotating_hinged_bone(self, direction, length: float,
                                                    joint_type: JointType, rotation_axis,
                                                    name: str = '', color=None) -> FabrikBone:
        """Append a hinged bone with no angle limits."""
        reference_axis = perpendicular_vector(validate_axis(rotation_axis, 'Hinge rotation axis'))
        return self.add_consecutive_hinged_bone(
            direction, length, joint_type, rotation_axis,
            motion_config.MAX_CONSTRAINT_ANGLE_DEGS, motion_config.MAX_CONSTRAINT_ANGLE_DEGS,
            reference_axis, name=name, color=color
        )

    # ================================================================== geometry

    @property
    def chain_length(self) -> float:
        """Sum of the configured bone lengths."""
        return float(sum(bone.length for bone in self._bones))

    def live_chain_length(self) -> float:
        return float(sum(bone.live_length() for bone in self._bones))

    @property
    def effector_location(self) -> np.ndarray:
        return self._bones[-1].end

    @property
    def base_location(self) -> np.ndarray:
        return self._bones[0].start

    @property
    def fixed_base_location(self) -> np.ndarray:
        return self._fixed_base_location

    def set_fixed_base_mode(self, value: bool) -> None:
        """Pin (True) or free (False) the base bone's start location."""
        self.check_fixed_base_mode(value)
        self.fixed_base_mode = bool(value)

    def check_fixed_base_mode(self, value: bool) -> None:
        """Raise if the base cannot be switched to the given mode."""
        if not value and self.connected_chain_name is not None:
            raise FabrikConfigurationError(
                f"Chain '{self.name}' is connected to '{self.connected_chain_name}' and must keep a fixed base"
            )
        if not value and self.basebone_constraint_type is BaseboneConstraintType.GLOBAL_ROTOR:
            raise FabrikConfigurationError(
                f"Chain '{self.name}' has a global rotor base constraint and must keep a fixed base"
            )

    def translate_to(self, anchor) -> None:
        """Move the whole chain rigidly so the base bone starts exactly at anchor."""
        anchor = vec3(anchor)
        offset = anchor - self._bones[0].start
        for bone in self._bones:
            bone.translate(offset)
        self._bones[0].set_start_location(anchor)
        self._fixed_base_location = anchor

    def hold(self, anchor) -> None:
        """Keep the current shape, following a moved anchor when the base is fixed."""
        self._require_base_bone()
        if self.fixed_base_mode:
            self.translate_to(anchor)

    # ================================================================== base bone constraint

    def set_rotor_basebone_constraint(self, constraint_type: BaseboneConstraintType,
                                      constraint_axis, angle_degs: float) -> None:
        """
        Limit the base bone to a cone around constraint_axis.

        Args:
            constraint_type: GLOBAL_ROTOR (world axis) or LOCAL_ROTOR (host bone frame)
            constraint_axis: Cone axis
            angle_degs: Cone half-angle in degrees
        """
        self._require_base_bone()
        if constraint_type not in ROTOR_BASEBONE_TYPES:
            raise FabrikConfigurationError(f"Expected a rotor base bone constraint, got {constraint_type!r}")
        if constraint_type is BaseboneConstraintType.GLOBAL_ROTOR and not self.fixed_base_mode:
            raise FabrikConfigurationError("A global rotor base constraint needs fixed base mode")

        axis = validate_axis(constraint_axis, 'Base bone constraint axis')
        self.basebone_rotor_degs = validate_constraint_angle(angle_degs, 'Base bone rotor angle')
        self.basebone_constraint_type = constraint_type
        self.basebone_constraint_uv = axis
        self.basebone_relative_constraint_uv = axis
        self._update_relative_basebone_axes()

    def set_hinge_basebone_constraint(self, constraint_type: BaseboneConstraintType,
                                      rotation_axis, clockwise_degs: float,
                                      anticlockwise_degs: float, reference_axis) -> None:
        """
        Confine the base bone to a hinge.

        The hinge becomes the base bone's joint. For LOCAL_HINGE its axes are
        re-expressed in the host bone's frame before every solve.
        """
        base_bone = self._require_base_bone()
        if constraint_type not in HINGE_BASEBONE_TYPES:
            raise FabrikConfigurationError(f"Expected a hinge base bone constraint, got {constraint_type!r}")

        joint_type = (JointType.GLOBAL_HINGE if constraint_type is BaseboneConstraintType.GLOBAL_HINGE
                      else JointType.LOCAL_HINGE)
        base_bone.joint = FabrikJoint(joint_type, rotation_axis, clockwise_degs,
                                      anticlockwise_degs, reference_axis)
        self.basebone_constraint_type = constraint_type
        self.basebone_constraint_uv = base_bone.joint.rotation_axis
        self.basebone_relative_constraint_uv = base_bone.joint.rotation_axis
        self.basebone_relative_reference_uv = base_bone.joint.reference_axis
        self._update_relative_basebone_axes()

    def set_freely_rotating_global_hinged_basebone(self, rotation_axis) -> None:
        axis = validate_axis(rotation_axis, 'Hinge rotation axis')
        self.set_hinge_basebone_constraint(
            BaseboneConstraintType.GLOBAL_HINGE, axis,
            motion_config.MAX_CONSTRAINT_ANGLE_DEGS, motion_config.MAX_CONSTRAINT_ANGLE_DEGS,
            perpendicular_vector(axis)
        )

    def set_freely_rotating_local_hinged_basebone(self, rotation_axis) -> None:
        axis = validate_axis(rotation_axis, 'Hinge rotation axis')
        self.set_hinge_basebone_constraint(
            BaseboneConstraintType.LOCAL_HINGE, axis,
            motion_config.MAX_CONSTRAINT_ANGLE_DEGS, motion_config.MAX_CONSTRAINT_ANGLE_DEGS,
            perpendicular_vector(axis)
        )

    def update_host_direction(self, host_direction) -> None:
        """Record the direction of the host bone and refresh local base bone axes."""
        self.host_direction = vec3(host_direction)
        self._update_relative_basebone_axes()

    def _update_relative_basebone_axes(self) -> None:
        if self.host_direction is None:
            return
        frame = rotation_matrix_from_direction(self.host_direction)
        if self.basebone_constraint_type is BaseboneConstraintType.LOCAL_ROTOR:
            self.basebone_relative_constraint_uv = vec3(normalised(frame @ self.basebone_constraint_uv))
        elif self.basebone_constraint_type is BaseboneConstraintType.LOCAL_HINGE:
            joint = self._bones[0].joint
            self.basebone_relative_constraint_uv = vec3(normalised(frame @ joint.rotation_axis))
            self.basebone_relative_reference_uv = vec3(normalised(frame @ joint.reference_axis))

    def constrain_basebone_direction(self, direction: np.ndarray) -> np.ndarray:
        """Nearest base bone direction allowed by the base bone constraint."""
        constraint_type = self.basebone_constraint_type
        base_joint = self._bones[0].joint

        if constraint_type is BaseboneConstraintType.NONE:
            return base_joint.constrain_direction(direction, self.host_direction)
        if constraint_type is BaseboneConstraintType.GLOBAL_ROTOR:
            return FabrikConeConstraint.project_onto_cone(
                direction, self.basebone_constraint_uv, self.basebone_rotor_degs)
        if constraint_type is BaseboneConstraintType.LOCAL_ROTOR:
            return FabrikConeConstraint.project_onto_cone(
                direction, self.basebone_relative_constraint_uv, self.basebone_rotor_degs)
        if constraint_type is BaseboneConstraintType.GLOBAL_HINGE:
            return base_joint.constrain_direction(direction)
        return FabrikHingeConstraint.constrain_to_hinge(
            direction, self.basebone_relative_constraint_uv, self.basebone_relative_reference_uv,
            base_joint.clockwise_degs, base_joint.anticlockwise_degs
        )

    def basebone_plane_direction(self, direction: np.ndarray) -> np.ndarray:
        """Base bone direction projected onto its hinge plane, if it has one."""
        constraint_type = self.basebone_constraint_type
        base_joint = self._bones[0].joint

        if constraint_type is BaseboneConstraintType.NONE:
            return base_joint.plane_direction(direction, self.host_direction)
        if constraint_type is BaseboneConstraintType.GLOBAL_HINGE:
            return base_joint.plane_direction(direction)
        if constraint_type is BaseboneConstraintType.LOCAL_HINGE:
            return FabrikHingeConstraint.project_onto_hinge_plane(
                direction, self.basebone_relative_constraint_uv, self.basebone_relative_reference_uv)
        return direction

    def is_unconstrained(self) -> bool:
        """True when no bone has a hinge or a rotor tighter than 180 degrees and the base is free to turn."""
        if self.basebone_constraint_type is not BaseboneConstraintType.NONE:
            return False
        for i, bone in enumerate(self._bones):
            if bone.joint.is_hinge:
                return False
            if i > 0 and bone.rotor_constraint_degs < motion_config.MAX_CONSTRAINT_ANGLE_DEGS:
                return False
        return True

    # ================================================================== embedded target

    def set_embedded_target_mode(self, value: bool) -> None:
        self.embedded_target_mode = bool(value)

    def update_embedded_target(self, target) -> None:
        self.embedded_target = vec3(target)

    # ================================================================== solving

    def _snapshot(self) -> list:
        return [bone.snapshot() for bone in self._bones]

    def _restore(self, state: list) -> None:
        for bone, bone_state in zip(self._bones, state):
            bone.restore(bone_state)

    def solve(self, anchor, target) -> float:
        """
        Solve the chain toward target with its base at anchor.

        Iterates backward and forward passes until the end effector is within
        tolerance, the residual stalls without improving, or the iteration
        budget runs out. The best pose any iteration produced is kept.

        Args:
            anchor: Base location [x, y, z] (ignored when the base is free)
            target: Target end effector location [x, y, z]

        Returns:
            Distance from the end effector to target
        """
        self._require_base_bone()
        anchor = vec3(anchor)
        target = vec3(target)
        self.last_target_location = target
        self.last_base_location = anchor

        if self.fixed_base_mode:
            self.translate_to(anchor)
        else:
            anchor = self._bones[0].start

        best_distance = distance_between(self.effector_location, target)
        if best_distance <= self._tolerance:
            return self._finish(best_distance, 0)

        if distance_between(anchor, target) > self.chain_length:
            distance = FabrikIteration.extend_toward(self, anchor, target)
            if self.is_unconstrained():
                return self._finish(distance, 0)
        elif FabrikIteration.is_straight_toward(self, anchor, target, self._tolerance):
            FabrikIteration.unfold_straight_chain(self, anchor)

        # Only poses that went through a forward pass respect the joint limits
        best_distance = float('inf')
        best_state = None
        previous_distance = float('inf')
        iterations = 0

        for iteration in range(self._max_iterations):
            iterations = iteration + 1
            distance = FabrikIteration.iterate_once(self, anchor, target)

            if distance < best_distance:
                best_distance = distance
                best_state = self._snapshot()
                if distance <= self._tolerance:
                    break

            # Stuck: no progress since the last iteration and barely moving
            if previous_distance <= distance < previous_distance + self._min_iteration_change:
                break
            previous_distance = distance

        self._restore(best_state)
        return self._finish(best_distance, iterations)

    def _finish(self, distance: float, iterations: int) -> float:
        self.current_solve_distance = distance
        self.last_iteration_count = iterations
        if distance <= self._tolerance:
            logger.debug(f"Chain '{self.name}': solved in {iterations} iterations, distance {distance:.6f}")
        else:
            logger.debug(
                f"Chain '{self.name}': stopped after {iterations} iterations, distance {distance:.6f}"
            )
        return distance

    def solve_for_target(self, target) -> float:
        """Solve from the chain's own base location."""
        self._require_base_bone()
        anchor = self._fixed_base_location if self.fixed_base_mode else self._bones[0].start
        return self.solve(anchor, target)

    def solve_for_embedded_target(self) -> float:
        if not self.embedded_target_mode:
            raise FabrikConfigurationError(f"Chain '{self.name}' is not in embedded target mode")
        return self.solve_for_target(self.embedded_target)

    def last_solve_result(self) -> Dict:
        """
        Summary of the most recent solve.

        Returns:
            Dictionary containing:
                - 'converged': bool - Whether the end effector is within tolerance
                - 'iterations': int - Number of iterations used
                - 'final_error': float - End effector to target distance
        """
        return {
            'converged': self.current_solve_distance <= self._tolerance,
            'iterations': self.last_iteration_count,
            'final_error': self.current_solve_distance,
        }

    def __len__(self) -> int:
        return len(self._bones)

    def __repr__(self) -> str:
        return (f"FabrikChain(name={self.name!r}, bones={len(self._bones)}, "
                f"base={self.basebone_constraint_type.value})")
