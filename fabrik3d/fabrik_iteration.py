#!/usr/bin/env python3
"""
FABRIK Iteration Module

Implements backward and forward passes for the FABRIK chain solver, plus the
two pose resets used before iterating (full extension toward an unreachable
target, and unfolding a straight chain whose target lies on its own line).
"""

import logging

import numpy as np

from skeleton_config import motion as motion_config
from .fabrik_constraints import FabrikConeConstraint
from .fabrik_joint import JointType
from .fabrik_vector import (
    distance_between,
    perpendicular_vector,
    rotate_about_axis_degs,
    safe_direction,
)

logger = logging.getLogger(__name__)


class FabrikIteration:
    """FABRIK iteration with backward and forward passes over a FabrikChain."""

    @staticmethod
    def backward_pass(chain, target: np.ndarray) -> None:
        """
        Perform backward pass: pull bones toward target from end effector to base.

        The last bone ends at target. Walking toward the base, each bone is
        pointed from its new end back toward its old start, clamped by the
        rotor of the bone outside it and projected onto its own hinge plane.
        The base bone's start is left free.

        Args:
            chain: FabrikChain to update in place
            target: Target end effector location
        """
        bones = chain.bones
        num_bones = len(bones)

        for i in range(num_bones - 1, -1, -1):
            bone = bones[i]
            end = target if i == num_bones - 1 else bones[i + 1].start

            # Outer-to-inner sweep: direction from the old start to the new end
            candidate = safe_direction(end - bone.start, bone.direction)

            if i < num_bones - 1:
                outer = bones[i + 1]
                if outer.joint_type is JointType.BALL:
                    candidate = FabrikConeConstraint.project_onto_cone(
                        candidate, outer.direction, outer.rotor_constraint_degs
                    )

            if i == 0:
                candidate = chain.basebone_plane_direction(candidate)
            elif bone.joint.is_hinge:
                candidate = bone.joint.plane_direction(candidate, bones[i - 1].direction)

            bone.place_from_end(end, candidate)

    @staticmethod
    def forward_pass(chain, anchor: np.ndarray) -> None:
        """
        Perform forward pass: push bones from the anchor toward the end effector.

        Bone 0 starts at anchor (fixed base mode) and obeys the base bone
        constraint. Every other bone starts where the previous one ends and
        obeys its rotor (ball joints) or its hinge.

        Args:
            chain: FabrikChain to update in place
            anchor: Base location of the chain
        """
        bones = chain.bones

        for i, bone in enumerate(bones):
            if i == 0:
                start = anchor if chain.fixed_base_mode else bone.start
                candidate = safe_direction(bone.end - start, bone.direction)
                candidate = chain.constrain_basebone_direction(candidate)
                if chain.fixed_base_mode:
                    bone.place_from_start(start, candidate)
                else:
                    bone.place_from_end(bone.end, candidate)
                continue

            previous = bones[i - 1]
            start = previous.end
            candidate = safe_direction(bone.end - start, bone.direction)

            if bone.joint_type is JointType.BALL:
                candidate = FabrikConeConstraint.project_onto_cone(
                    candidate, previous.direction, bone.rotor_constraint_degs
                )
            else:
                candidate = bone.joint.constrain_direction(candidate, previous.direction)

            bone.place_from_start(start, candidate)

    @staticmethod
    def iterate_once(chain, anchor: np.ndarray, target: np.ndarray) -> float:
        """
        Perform one complete FABRIK iteration (backward + forward).

        Returns:
            Distance from the end effector to target after the iteration
        """
        FabrikIteration.backward_pass(chain, target)
        FabrikIteration.forward_pass(chain, anchor)
        return distance_between(chain.effector_location, target)

    @staticmethod
    def extend_toward(chain, anchor: np.ndarray, target: np.ndarray) -> float:
        """
        Lay every bone straight from anchor toward target, then enforce constraints.

        Used when the target is out of reach. The resulting pose depends only
        on anchor and target, so solving again for the same target is stable.

        Returns:
            Distance from the end effector to target
        """
        bones = chain.bones
        direction = safe_direction(target - anchor, bones[-1].direction)

        start = anchor
        for bone in bones:
            bone.place_from_start(start, direction)
            start = bone.end

        FabrikIteration.forward_pass(chain, anchor)
        return distance_between(chain.effector_location, target)

    @staticmethod
    def is_straight_toward(chain, anchor: np.ndarray, target: np.ndarray,
                           tolerance: float) -> bool:
        """
        True when all bones are parallel and target lies on the chain's line.

        Backward and forward passes cannot fold such a chain: every candidate
        direction stays on the line.
        """
        bones = chain.bones
        if len(bones) < 2:
            return False

        direction = bones[0].direction
        for bone in bones[1:]:
            if np.dot(bone.direction, direction) < 1.0 - 1e-9:
                return False

        offset = target - anchor
        return float(np.linalg.norm(np.cross(offset, direction))) <= tolerance

    @staticmethod
    def unfold_straight_chain(chain, anchor: np.ndarray,
                              bend_degs: float = motion_config.STRAIGHT_CHAIN_BEND_DEGS) -> None:
        """
        Bend a straight chain into a shallow arc so the passes can fold it.

        Bone i is rotated by i * bend_degs about a perpendicular of the chain
        direction; the base bone keeps its direction.
        """
        bones = chain.bones
        direction = bones[0].direction
        bend_axis = perpendicular_vector(direction)

        start = anchor
        for i, bone in enumerate(bones):
            bent = rotate_about_axis_degs(direction, i * bend_degs, bend_axis)
            bone.place_from_start(start, bent / np.linalg.norm(bent))
            start = bone.end

        logger.debug(f"Chain '{chain.name}': unfolded straight chain by {bend_degs} deg per joint")
