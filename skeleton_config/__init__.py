"""
Skeleton Configuration Package
==============================

Centralized configuration for the FABRIK skeleton solver.
All parameters are organized into logical modules:

- physical: Bone lengths, rig scale, root bone length
- motion: FABRIK solver defaults, tolerances, demo target ranges
- visualization: Plot colors, line widths, axis limits
- system: Log format, environment switches, name limits

Usage:
    from skeleton_config import physical, motion, visualization, system

    # Or import specific values
    from skeleton_config.physical import BONE_SCALE, UPPER_LEG_LENGTH
    from skeleton_config.motion import FABRIK_TOLERANCE
    from skeleton_config.visualization import CHAIN_COLORS
    from skeleton_config.system import DEBUG_ENV_VAR
"""

# Import all submodules for convenient access
from . import physical
from . import motion
from . import visualization
from . import system

__version__ = '1.0.0'
__all__ = ['physical', 'motion', 'visualization', 'system']
