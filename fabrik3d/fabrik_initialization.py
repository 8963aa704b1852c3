#!/usr/bin/env python3
"""
FABRIK Initialization Module

Builds chains and structures from plain descriptors and provides the preset
rigs (spine, connected chains, hinge demos, robot leg, humanoid).

Chain descriptor:
    {
        'name': 'right_arm',
        'base': [0.0, 0.0, 0.0],                  # start of bone 0 (optional)
        'bones': [                                # bone 0 first
            {'direction': [1, 0, 0], 'length': 0.6},
            {'direction': [1, 0, 0], 'length': 0.9, 'joint': 'ball', 'rotor_degs': 90},
            {'direction': [1, 0, 0], 'length': 0.8, 'joint': 'local_hinge',
             'rotation_axis': [0, 0, 1], 'clockwise_degs': 150,
             'anticlockwise_degs': 170, 'reference_axis': [1, 0, 0]},
        ],
        'basebone_constraint': {'type': 'local_rotor', 'axis': [1, 0, 0], 'angle_degs': 10},
        'connection': {'host': 'spine', 'bone_index': 4, 'point': 'end'},
        'tolerance': 0.01, 'max_iterations': 20, 'min_iteration_change': 1e-4,
    }
"""

from graphlib import CycleError, TopologicalSorter
from typing import Dict, List, Mapping, Sequence

import numpy as np

from skeleton_config import motion as motion_config
from skeleton_config import physical as phys_config
from skeleton_config import visualization as viz_config
from .fabrik_bone import BoneConnectionPoint, FabrikBone
from .fabrik_chain import BaseboneConstraintType, FabrikChain
from .fabrik_errors import FabrikConfigurationError
from .fabrik_joint import FabrikJoint, JointType
from .fabrik_structure import FabrikStructure
from .fabrik_vector import X_AXIS, X_NEG, Y_AXIS, Y_NEG, Z_AXIS, Z_NEG, vec3

SPINE = 'spine'
HEAD = 'head'
LEFT_ARM = 'left_arm'
RIGHT_ARM = 'right_arm'
LEFT_LEG = 'left_leg'
RIGHT_LEG = 'right_leg'


def _parse_enum(enum_type, value, label: str):
    if isinstance(value, enum_type):
        return value
    try:
        return enum_type(str(value).lower())
    except ValueError as exc:
        raise FabrikConfigurationError(f"Unknown {label} '{value}'") from exc


class FabrikInitialization:
    """Assembly of chains and structures for the FABRIK solver."""

    @staticmethod
    def create_root_bone(start=(0.0, 0.0, 0.0), direction=Y_AXIS,
                         length: float = phys_config.ROOT_BONE_LENGTH, **kwargs) -> FabrikBone:
        """
        Create a (near) zero length base bone.

        A root bone anchors a chain at start without adding reach.
        """
        return FabrikBone.from_direction(start, direction, length, **kwargs)

    # ================================================================== descriptors

    @staticmethod
    def build_joint(description: Mapping) -> FabrikJoint:
        """Joint from a bone descriptor ('joint' defaults to 'ball')."""
        joint_type = _parse_enum(JointType, description.get('joint', JointType.BALL.value), 'joint type')
        if joint_type is JointType.BALL:
            return FabrikJoint.ball()
        return FabrikJoint(
            joint_type,
            description.get('rotation_axis'),
            description.get('clockwise_degs', motion_config.MAX_CONSTRAINT_ANGLE_DEGS),
            description.get('anticlockwise_degs', motion_config.MAX_CONSTRAINT_ANGLE_DEGS),
            description.get('reference_axis'),
        )

    @staticmethod
    def build_chain(description: Mapping) -> FabrikChain:
        """
        Build a chain from a descriptor.

        Args:
            description: Chain descriptor (see module docstring)

        Returns:
            FabrikChain with all bones and its base bone constraint

        Raises:
            FabrikConfigurationError: Missing name, no bones, invalid joints
        """
        name = description.get('name')
        if not name:
            raise FabrikConfigurationError("Chain descriptor needs a name")

        bone_descriptions = description.get('bones') or []
        if not bone_descriptions:
            raise FabrikConfigurationError(f"Chain '{name}' has no bones")

        chain = FabrikChain(
            name,
            tolerance=description.get('tolerance', motion_config.FABRIK_TOLERANCE),
            max_iterations=description.get('max_iterations', motion_config.FABRIK_MAX_ITERATIONS),
            min_iteration_change=description.get('min_iteration_change',
                                                 motion_config.FABRIK_MIN_ITERATION_CHANGE),
        )

        for i, bone_description in enumerate(bone_descriptions):
            if 'direction' not in bone_description or 'length' not in bone_description:
                raise FabrikConfigurationError(f"Bone {i} of chain '{name}' needs a direction and a length")
            joint = FabrikInitialization.build_joint(bone_description)
            kwargs = dict(
                joint=joint,
                rotor_constraint_degs=bone_description.get('rotor_degs', motion_config.MAX_CONSTRAINT_ANGLE_DEGS),
                name=bone_description.get('name', ''),
                color=bone_description.get('color'),
            )
            if i == 0:
                chain.add_bone(FabrikBone.from_direction(
                    description.get('base', (0.0, 0.0, 0.0)),
                    bone_description['direction'], bone_description['length'], **kwargs
                ))
            else:
                chain.add_consecutive_bone(bone_description['direction'], bone_description['length'], **kwargs)

        constraint = description.get('basebone_constraint')
        if constraint:
            FabrikInitialization.apply_basebone_constraint(chain, constraint)
        return chain

    @staticmethod
    def apply_basebone_constraint(chain: FabrikChain, constraint: Mapping) -> None:
        constraint_type = _parse_enum(BaseboneConstraintType, constraint.get('type'), 'base bone constraint')
        if constraint_type is BaseboneConstraintType.NONE:
            return
        if constraint_type in (BaseboneConstraintType.GLOBAL_ROTOR, BaseboneConstraintType.LOCAL_ROTOR):
            chain.set_rotor_basebone_constraint(
                constraint_type, constraint.get('axis'),
                constraint.get('angle_degs', motion_config.MAX_CONSTRAINT_ANGLE_DEGS)
            )
        else:
            chain.set_hinge_basebone_constraint(
                constraint_type, constraint.get('axis'),
                constraint.get('clockwise_degs', motion_config.MAX_CONSTRAINT_ANGLE_DEGS),
                constraint.get('anticlockwise_degs', motion_config.MAX_CONSTRAINT_ANGLE_DEGS),
                constraint.get('reference_axis'),
            )

    @staticmethod
    def build_structure(name: str, descriptions: Sequence[Mapping]) -> FabrikStructure:
        """
        Build a structure from chain descriptors given in any order.

        Chains are created host-first. Unknown hosts, duplicate names and
        connection cycles are rejected before any chain is built.
        """
        by_name: Dict[str, Mapping] = {}
        for description in descriptions:
            chain_name = description.get('name')
            if not chain_name:
                raise FabrikConfigurationError("Chain descriptor needs a name")
            if chain_name in by_name:
                raise FabrikConfigurationError(f"Duplicate chain name '{chain_name}'")
            by_name[chain_name] = description

        graph = {}
        for chain_name, description in by_name.items():
            connection = description.get('connection')
            if connection is None:
                graph[chain_name] = set()
                continue
            host = connection.get('host')
            if host not in by_name:
                raise FabrikConfigurationError(f"Chain '{chain_name}' connects to unknown host chain '{host}'")
            graph[chain_name] = {host}

        try:
            order = list(TopologicalSorter(graph).static_order())
        except CycleError as exc:
            raise FabrikConfigurationError(f"Chain connections form a cycle: {exc.args[1]}") from exc

        # Independent chains keep their listed order
        position = {chain_name: i for i, chain_name in enumerate(by_name)}
        depth: Dict[str, int] = {}
        for chain_name in order:
            host = (by_name[chain_name].get('connection') or {}).get('host')
            depth[chain_name] = 0 if host is None else depth[host] + 1
        order.sort(key=lambda n: (depth[n], position[n]))

        structure = FabrikStructure(name)
        for chain_name in order:
            description = by_name[chain_name]
            chain = FabrikInitialization.build_chain(description)
            connection = description.get('connection')
            if connection is None:
                structure.add_chain(chain)
            else:
                structure.connect_chain(
                    chain, connection['host'], int(connection.get('bone_index', 0)),
                    _parse_enum(BoneConnectionPoint, connection.get('point', 'end'), 'connection point')
                )
        return structure

    # ================================================================== preset rigs

    @staticmethod
    def create_spine_example(bone_length: float = phys_config.DEMO_BONE_LENGTH,
                             num_bones: int = 4) -> FabrikStructure:
        """Near-zero root bone plus num_bones ball-jointed bones along +Y."""
        chain = FabrikChain(SPINE)
        chain.add_bone(FabrikInitialization.create_root_bone())
        for _ in range(num_bones):
            chain.add_consecutive_bone(Y_AXIS, bone_length)

        structure = FabrikStructure('spine_example')
        structure.add_chain(chain)
        return structure

    @staticmethod
    def create_connected_chain_demo() -> FabrikStructure:
        """Two chains; the second is anchored to the end of bone 1 of the first."""
        colors = viz_config.CHAIN_COLORS

        chain1 = FabrikChain('chain1')
        chain1.add_bone(FabrikInitialization.create_root_bone(
            length=phys_config.DEMO_BASE_BONE_LENGTH, color=colors[0]))
        for _ in range(3):
            chain1.add_consecutive_rotor_constrained_bone(Y_AXIS, phys_config.DEMO_BONE_LENGTH, 90,
                                                          color=colors[0])

        chain2 = FabrikChain('chain2')
        chain2.add_bone(FabrikInitialization.create_root_bone(
            direction=X_AXIS, length=phys_config.DEMO_BASE_BONE_LENGTH, color=colors[1]))
        for _ in range(2):
            chain2.add_consecutive_rotor_constrained_bone(X_AXIS, phys_config.DEMO_BONE_LENGTH, 90,
                                                          color=colors[1])
        chain2.set_rotor_basebone_constraint(BaseboneConstraintType.LOCAL_ROTOR, X_AXIS, 45)

        structure = FabrikStructure('connected_chain')
        structure.add_chain(chain1)
        structure.connect_chain(chain2, 'chain1', 1, BoneConnectionPoint.END)
        return structure

    @staticmethod
    def create_global_hinge_demo(anticlockwise_degs: float = 0.0) -> FabrikStructure:
        """Three single-bone chains with a global hinge base about Y, X and Z."""
        structure = FabrikStructure('global_hinge')
        setups = [
            ('hinge_rotate_y', (0.0, 0.0, 0.0), Y_AXIS, X_AXIS, 0.0, anticlockwise_degs),
            ('hinge_rotate_x', (1.0, 0.0, 0.0), X_AXIS, Z_NEG, anticlockwise_degs, 0.0),
            ('hinge_rotate_z', (-1.0, 0.0, 0.0), Z_AXIS, X_AXIS, 0.0, anticlockwise_degs),
        ]
        for name, start, axis, reference, clockwise, anticlockwise in setups:
            chain = FabrikChain(name)
            chain.add_bone(FabrikInitialization.create_root_bone(start, Y_AXIS, phys_config.DEMO_BONE_LENGTH))
            chain.set_hinge_basebone_constraint(
                BaseboneConstraintType.GLOBAL_HINGE, axis, clockwise, anticlockwise, reference)
            structure.add_chain(chain)
        return structure

    @staticmethod
    def create_local_hinge_demo(anticlockwise_degs: float = 0.0) -> FabrikStructure:
        """Three two-bone chains whose second bone is a local hinge about Y, X and Z."""
        structure = FabrikStructure('local_hinge')
        setups = [
            ('hinge_rotate_y', (0.0, 0.0, 0.0), Y_AXIS, X_AXIS),
            ('hinge_rotate_x', (2.0, 0.0, 0.0), X_AXIS, Z_NEG),
            ('hinge_rotate_z', (-2.0, 0.0, 0.0), Z_AXIS, X_AXIS),
        ]
        for name, start, axis, reference in setups:
            chain = FabrikChain(name)
            chain.add_bone(FabrikInitialization.create_root_bone(start, Y_AXIS, phys_config.DEMO_BASE_BONE_LENGTH))
            chain.add_consecutive_hinged_bone(
                Y_AXIS, phys_config.DEMO_BONE_LENGTH, JointType.LOCAL_HINGE,
                axis, 0.0, anticlockwise_degs, reference)
            chain.set_rotor_basebone_constraint(BaseboneConstraintType.GLOBAL_ROTOR, Y_AXIS, 1.0)
            structure.add_chain(chain)
        return structure

    @staticmethod
    def create_robot_leg_demo() -> FabrikStructure:
        """Root bone plus two local hinge bones hanging along -Y."""
        scale = phys_config.BONE_SCALE
        color = viz_config.CHAIN_COLORS[3]

        chain = FabrikChain(RIGHT_LEG)
        chain.add_bone(FabrikInitialization.create_root_bone(color=color))
        chain.add_consecutive_hinged_bone(
            Y_NEG, phys_config.UPPER_LEG_LENGTH * scale, JointType.LOCAL_HINGE,
            Z_AXIS, 135, 135, Y_NEG, color=color)
        chain.add_consecutive_hinged_bone(
            Y_NEG, phys_config.LOWER_LEG_LENGTH * scale, JointType.LOCAL_HINGE,
            X_AXIS, 0, 90, Z_AXIS, color=color)
        chain.set_rotor_basebone_constraint(BaseboneConstraintType.LOCAL_ROTOR, X_AXIS, 0)

        structure = FabrikStructure('robot_leg')
        structure.add_chain(chain)
        return structure

    @staticmethod
    def robot_leg_targets(distance: float = motion_config.ROBOT_LEG_TARGET_DISTANCE) -> List[np.ndarray]:
        """The eight targets the robot leg demo cycles through, in the YZ plane."""
        d = distance
        offsets = [(0, 0, d), (0, d, d), (0, d, 0), (0, d, -d),
                   (0, 0, -d), (0, -d, -d), (0, -d, 0), (0, -d, d)]
        return [vec3(offset) for offset in offsets]

    @staticmethod
    def humanoid_descriptors(scale: float = phys_config.BONE_SCALE) -> List[Dict]:
        """
        Chain descriptors of the humanoid rig.

        Every chain starts with a root bone. Arms and head hang off the chest
        (end of spine bone 4), legs off the pelvis (start of spine bone 0).
        """
        p = phys_config
        root = {'direction': Y_AXIS, 'length': p.ROOT_BONE_LENGTH}
        colors = viz_config.CHAIN_COLORS

        spine_bones = [dict(root, name='hips')]
        for name, length, rotor in (('spine_01', p.SPINE_01_LENGTH, 10), ('spine_02', p.SPINE_02_LENGTH, 10),
                                    ('spine_03', p.SPINE_03_LENGTH, 10), ('chest', p.SPINE_04_LENGTH, 30)):
            spine_bones.append({'direction': Y_AXIS, 'length': length * scale, 'rotor_degs': rotor,
                                'name': name, 'color': colors[0]})

        def arm(name: str, side: np.ndarray, base_degs: float, color) -> Dict:
            half_upper_arm = p.UPPER_ARM_LENGTH * scale / 2.0
            return {
                'name': name,
                'bones': [
                    dict(root, name=f'{name}_root'),
                    {'direction': side, 'length': p.SHOULDER_LENGTH * scale, 'rotor_degs': 10,
                     'name': f'{name}_shoulder', 'color': color},
                    {'direction': side, 'length': half_upper_arm, 'joint': 'local_hinge',
                     'rotation_axis': Z_AXIS, 'clockwise_degs': 90, 'anticlockwise_degs': 180,
                     'reference_axis': -side, 'name': f'{name}_upper_arm', 'color': color},
                    {'direction': side, 'length': half_upper_arm, 'joint': 'local_hinge',
                     'rotation_axis': Z_AXIS, 'clockwise_degs': 150, 'anticlockwise_degs': 170,
                     'reference_axis': side, 'name': f'{name}_upper_arm_twist', 'color': color},
                    {'direction': side, 'length': p.LOWER_ARM_LENGTH * scale, 'rotor_degs': 0,
                     'name': f'{name}_lower_arm', 'color': color},
                ],
                'basebone_constraint': {'type': 'local_rotor', 'axis': side, 'angle_degs': base_degs},
                'connection': {'host': SPINE, 'bone_index': 4, 'point': 'end'},
                'min_iteration_change': p.MIN_BONE_LENGTH * 0.1,
            }

        def leg(name: str, side: np.ndarray, clockwise_degs: float, color) -> Dict:
            return {
                'name': name,
                'bones': [
                    dict(root, name=f'{name}_root'),
                    {'direction': side + np.array([0.0, -0.2, 0.0]), 'length': p.HIP_LENGTH * scale,
                     'rotor_degs': 0.1, 'name': f'{name}_hip', 'color': color},
                    {'direction': Y_NEG, 'length': p.UPPER_LEG_LENGTH * scale, 'rotor_degs': 90,
                     'name': f'{name}_upper_leg', 'color': color},
                    {'direction': Y_NEG, 'length': p.LOWER_LEG_LENGTH * scale, 'joint': 'global_hinge',
                     'rotation_axis': X_NEG, 'clockwise_degs': clockwise_degs, 'anticlockwise_degs': 90,
                     'reference_axis': Z_AXIS, 'name': f'{name}_lower_leg', 'color': color},
                    {'direction': Z_NEG, 'length': p.FOOT_LENGTH * scale, 'rotor_degs': 10,
                     'name': f'{name}_foot', 'color': color},
                ],
                'basebone_constraint': {'type': 'local_rotor', 'axis': side, 'angle_degs': 0},
                'connection': {'host': SPINE, 'bone_index': 0, 'point': 'start'},
            }

        return [
            {
                'name': SPINE,
                'bones': spine_bones,
                'basebone_constraint': {'type': 'global_hinge', 'axis': X_AXIS, 'clockwise_degs': 90,
                                        'anticlockwise_degs': 0, 'reference_axis': Y_AXIS},
            },
            {
                'name': HEAD,
                'bones': [
                    dict(root, name='head_root'),
                    {'direction': (0.0, 1.0, -0.1), 'length': p.NECK_LENGTH * scale,
                     'rotor_degs': 0.1, 'name': 'neck', 'color': colors[4]},
                ],
                'basebone_constraint': {'type': 'local_rotor', 'axis': Z_AXIS, 'angle_degs': 20},
                'connection': {'host': SPINE, 'bone_index': 4, 'point': 'end'},
            },
            arm(RIGHT_ARM, X_AXIS, 10, colors[3]),
            arm(LEFT_ARM, X_NEG, 0, colors[5]),
            leg(RIGHT_LEG, X_AXIS, 90, colors[3]),
            leg(LEFT_LEG, X_NEG, 0, colors[5]),
        ]

    @staticmethod
    def create_humanoid(scale: float = phys_config.BONE_SCALE) -> FabrikStructure:
        """Humanoid rig with local hinge elbows and global hinge knees."""
        return FabrikInitialization.build_structure('humanoid', FabrikInitialization.humanoid_descriptors(scale))


PRESETS = {
    'spine': FabrikInitialization.create_spine_example,
    'connected_chain': FabrikInitialization.create_connected_chain_demo,
    'global_hinge': FabrikInitialization.create_global_hinge_demo,
    'local_hinge': FabrikInitialization.create_local_hinge_demo,
    'robot_leg': FabrikInitialization.create_robot_leg_demo,
    'humanoid': FabrikInitialization.create_humanoid,
}
"""Preset rig factories by name"""
