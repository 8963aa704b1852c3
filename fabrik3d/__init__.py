"""
FABRIK Inverse Kinematics Package

Forward And Backward Reaching Inverse Kinematics for skeletons made of
connected bone chains.

Modules:
    - fabrik_structure: Multi-chain orchestrator (use this for IK solving)
    - fabrik_chain: Single chain solver and base bone constraints
    - fabrik_iteration: Single FABRIK iteration (backward + forward pass)
    - fabrik_bone: Rigid bones
    - fabrik_joint: Ball, global hinge and local hinge joints
    - fabrik_constraints: Rotor (cone) and hinge projections
    - fabrik_vector: Vector and quaternion helpers
    - fabrik_initialization: Descriptor-based assembly and preset rigs
    - fabrik_kinematics: Bone orientation, pitch/yaw and pose tables
    - fabrik_demo_runner: Command line demo
"""

import logging

from .fabrik_errors import FabrikConfigurationError
from .fabrik_joint import FabrikJoint, JointType
from .fabrik_bone import BoneConnectionPoint, FabrikBone
from .fabrik_chain import BaseboneConstraintType, FabrikChain
from .fabrik_structure import ChainConnection, FabrikStructure
from .fabrik_iteration import FabrikIteration
from .fabrik_constraints import FabrikConeConstraint, FabrikHingeConstraint
from .fabrik_initialization import FabrikInitialization
from .fabrik_kinematics import calculate_bone_pose, calculate_structure_pose
from .fabrik_vector import vec3

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = '1.0.0'
__all__ = [
    'FabrikConfigurationError',
    'FabrikJoint',
    'JointType',
    'FabrikBone',
    'BoneConnectionPoint',
    'FabrikChain',
    'BaseboneConstraintType',
    'FabrikStructure',
    'ChainConnection',
    'FabrikIteration',
    'FabrikConeConstraint',
    'FabrikHingeConstraint',
    'FabrikInitialization',
    'calculate_bone_pose',
    'calculate_structure_pose',
    'vec3',
]
