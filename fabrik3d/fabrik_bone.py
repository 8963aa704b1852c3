#!/usr/bin/env python3
"""
FABRIK Bone Module

A bone is a rigid segment from a start location to an end location. Its
configured length never changes; the solver only moves and rotates it.
"""

from enum import Enum
from typing import Optional, Sequence, Tuple

import numpy as np

from skeleton_config import motion as motion_config
from skeleton_config import system as sys_config
from .fabrik_errors import FabrikConfigurationError
from .fabrik_joint import FabrikJoint, JointType, validate_constraint_angle
from .fabrik_vector import distance_between, is_degenerate, normalised, vec3

BoneState = Tuple[np.ndarray, np.ndarray, np.ndarray]


class BoneConnectionPoint(Enum):
    """Point on a host bone that a connected chain is anchored to."""
    START = 'start'
    END = 'end'


class FabrikBone:
    """Rigid bone with a joint and a rotor limit relative to the previous bone."""

    def __init__(self, start, end, joint: Optional[FabrikJoint] = None,
                 rotor_constraint_degs: float = motion_config.MAX_CONSTRAINT_ANGLE_DEGS,
                 name: str = '', color: Optional[Sequence[float]] = None):
        """
        Create a bone between two points.

        Args:
            start: Start location [x, y, z]
            end: End location [x, y, z], must differ from start
            joint: Joint constraint (default ball joint)
            rotor_constraint_degs: Cone half-angle relative to the previous bone
            name: Optional label (presentation only)
            color: Optional RGB color (presentation only)
        """
        self._start = vec3(start)
        self._end = vec3(end)

        length = distance_between(self._start, self._end)
        if length < motion_config.DEGENERATE_LENGTH:
            raise FabrikConfigurationError("Bone length must be greater than zero")

        self._length = length
        self._direction = vec3(normalised(self._end - self._start))
        self.joint = joint if joint is not None else FabrikJoint.ball()
        self.rotor_constraint_degs = rotor_constraint_degs
        self.name = name
        self.color = None if color is None else list(color)

    @classmethod
    def from_direction(cls, start, direction, length: float, **kwargs) -> 'FabrikBone':
        """Create a bone from a start location, a direction and a length."""
        direction = np.asarray(direction, dtype=np.float64)
        if is_degenerate(direction):
            raise FabrikConfigurationError("Bone direction cannot be a zero vector")
        if length <= 0.0:
            raise FabrikConfigurationError(f"Bone length must be greater than zero, got {length}")
        start = vec3(start)
        return cls(start, start + normalised(direction) * length, **kwargs)

    # ------------------------------------------------------------------ geometry

    @property
    def start(self) -> np.ndarray:
        return self._start

    @property
    def end(self) -> np.ndarray:
        return self._end

    @property
    def length(self) -> float:
        """Configured length."""
        return self._length

    @property
    def direction(self) -> np.ndarray:
        """Unit direction start -> end; keeps the last valid value while start == end."""
        return self._direction

    def live_length(self) -> float:
        """Current distance between start and end."""
        return distance_between(self._start, self._end)

    def set_start_location(self, location) -> None:
        self._start = vec3(location)
        self._update_direction()

    def set_end_location(self, location) -> None:
        self._end = vec3(location)
        self._update_direction()

    def place_from_start(self, start, direction: np.ndarray) -> None:
        """Put the bone at start, pointing along the unit direction, at its configured length."""
        self._start = vec3(start)
        self._end = vec3(self._start + direction * self._length)
        self._direction = vec3(direction)

    def place_from_end(self, end, direction: np.ndarray) -> None:
        """Put the bone so it ends at end, pointing along the unit direction."""
        self._end = vec3(end)
        self._start = vec3(self._end - direction * self._length)
        self._direction = vec3(direction)

    def translate(self, offset: np.ndarray) -> None:
        self._start = vec3(self._start + offset)
        self._end = vec3(self._end + offset)

    def _update_direction(self) -> None:
        delta = self._end - self._start
        if not is_degenerate(delta):
            self._direction = vec3(normalised(delta))

    def snapshot(self) -> BoneState:
        return self._start, self._end, self._direction

    def restore(self, state: BoneState) -> None:
        self._start, self._end, self._direction = state

    # ------------------------------------------------------------------ constraint

    @property
    def joint_type(self) -> JointType:
        return self.joint.joint_type

    @property
    def rotor_constraint_degs(self) -> float:
        return self._rotor_constraint_degs

    @rotor_constraint_degs.setter
    def rotor_constraint_degs(self, angle_degs: float) -> None:
        self._rotor_constraint_degs = validate_constraint_angle(angle_degs, 'Rotor constraint')

    def get_joint(self) -> FabrikJoint:
        return self.joint

    def get_direction(self) -> np.ndarray:
        return self._direction

    # ------------------------------------------------------------------ presentation

    @property
    def name(self) -> str:
        return self._name

    @name.setter
    def name(self, value: str) -> None:
        self._name = str(value)[:sys_config.MAX_NAME_LENGTH]

    def __repr__(self) -> str:
        return (f"FabrikBone(name={self._name!r}, start={self._start.tolist()}, "
                f"end={self._end.tolist()}, length={self._length:.4f}, joint={self.joint!r})")
