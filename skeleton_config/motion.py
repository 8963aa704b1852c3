"""
Motion Parameters
=================
FABRIK solver defaults, geometric tolerances and demo target motion.
"""

# =============================================================================
# FABRIK IK SOLVER
# =============================================================================

FABRIK_TOLERANCE = 0.01
"""Solve distance threshold: end effector within this distance counts as solved"""

FABRIK_MAX_ITERATIONS = 200
"""Maximum backward/forward iterations per chain solve; targets close to full reach or
to the base converge slowly and need well over twenty"""

FABRIK_MIN_ITERATION_CHANGE = 1e-4
"""Stop iterating once an iteration fails to improve and the residual moved less than this"""

STRAIGHT_CHAIN_BEND_DEGS = 5.0
"""Bend per joint applied to a straight chain whose target lies on its own line"""

# =============================================================================
# GEOMETRIC TOLERANCES
# =============================================================================

APPROXIMATELY_EQUALS_TOLERANCE = 0.001
"""Tolerance for approximate equality of scalars and vectors"""

PERPENDICULAR_TOLERANCE = 0.01
"""Maximum |dot| between a hinge rotation axis and its reference axis"""

HINGE_FREE_TOLERANCE = 0.01
"""Hinge limits within this many degrees of 180 are treated as free"""

DEGENERATE_LENGTH = 1e-9
"""Vectors shorter than this have no usable direction"""

PARALLEL_Y_THRESHOLD = 0.9999
"""|y| above which a direction counts as vertical when building a frame"""

# =============================================================================
# CONSTRAINT RANGES (degrees)
# =============================================================================

MIN_CONSTRAINT_ANGLE_DEGS = 0.0
"""Smallest rotor or hinge limit angle"""

MAX_CONSTRAINT_ANGLE_DEGS = 180.0
"""Largest rotor or hinge limit angle (unconstrained)"""

# =============================================================================
# DEMO TARGET MOTION
# =============================================================================

DEMO_TARGET_RANGE = 2.0
"""Demo targets stay within [-range, range] on each axis"""

DEMO_TARGET_STEP = 0.1
"""Largest per-axis target move per demo tick"""

DEMO_TICKS = 100
"""Default number of solver ticks run by the demo"""

ROBOT_LEG_TARGET_DISTANCE = 3.0
"""Distance from the origin of the robot leg demo targets"""
