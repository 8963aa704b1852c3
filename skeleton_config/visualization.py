"""
Visualization Parameters
========================
Colors and sizes for the matplotlib skeleton plot.
"""

# =============================================================================
# COLORS
# =============================================================================

CHAIN_COLORS = [
    [1.0, 0.2, 0.2],
    [0.2, 0.8, 0.2],
    [0.2, 0.4, 1.0],
    [1.0, 0.8, 0.0],
    [0.8, 0.2, 0.8],
    [0.0, 0.8, 0.8],
]
"""Per-chain colors RGB, cycled in solve order"""

TARGET_COLOR = [1.0, 1.0, 0.0]
"""Target marker color RGB (yellow)"""

# =============================================================================
# SIZES
# =============================================================================

BONE_LINE_WIDTH = 3.0
"""Bone line width in points"""

JOINT_MARKER_SIZE = 20.0
"""Joint marker size in points squared"""

TARGET_MARKER_SIZE = 60.0
"""Target marker size in points squared"""

PLOT_AXIS_LIMIT = 2.5
"""Half extent of each plot axis"""
