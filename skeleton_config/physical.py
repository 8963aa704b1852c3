"""
Skeleton Physical Parameters
============================
Bone lengths and scale of the preset rigs.

Humanoid lengths are expressed in rig units and multiplied by BONE_SCALE
when the humanoid structure is assembled.
"""

# =============================================================================
# RIG SCALE
# =============================================================================

BONE_SCALE = 0.1
"""Scale applied to every humanoid bone length"""

ROOT_BONE_LENGTH = 0.0001
"""Length of the near-zero base bone that anchors a chain"""

# =============================================================================
# HUMANOID BONE LENGTHS (rig units)
# =============================================================================

MIN_BONE_LENGTH = 0.01
"""Smallest bone length accepted by the humanoid rig"""

SPINE_01_LENGTH = 2.0
"""Pelvis to lower spine"""

SPINE_02_LENGTH = 4.0
"""Lower spine to middle spine"""

SPINE_03_LENGTH = 4.0
"""Middle spine to upper spine"""

SPINE_04_LENGTH = 4.0
"""Upper spine to chest"""

NECK_LENGTH = 3.0
"""Chest to head"""

SHOULDER_LENGTH = 6.0
"""Chest to shoulder joint"""

UPPER_ARM_LENGTH = 9.0
"""Shoulder to elbow"""

LOWER_ARM_LENGTH = 8.0
"""Elbow to wrist"""

HIP_LENGTH = 3.0
"""Pelvis to hip joint"""

UPPER_LEG_LENGTH = 22.0
"""Hip to knee"""

LOWER_LEG_LENGTH = 20.0
"""Knee to ankle"""

FOOT_LENGTH = 2.0
"""Ankle to toe"""

# =============================================================================
# DEMO RIG DIMENSIONS
# =============================================================================

DEMO_BONE_LENGTH = 0.5
"""Length of each bone in the demo chains"""

DEMO_BASE_BONE_LENGTH = 1.0
"""Length of the base bone in the connected-chain demo"""
