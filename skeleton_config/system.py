"""
System Parameters
=================
Logging configuration and environment switches.
"""

# =============================================================================
# LOGGING
# =============================================================================

LOG_FORMAT = '[%(levelname)s] [%(name)s]: %(message)s'
"""Log line format used by the demo runner"""

DEBUG_ENV_VAR = 'DEBUG_FABRIK'
"""Setting this environment variable to '1' enables solver debug logging"""

# =============================================================================
# NAMING
# =============================================================================

MAX_NAME_LENGTH = 100
"""Bone, chain and structure names are truncated to this length"""

DEFAULT_STRUCTURE_NAME = 'structure'
"""Name given to structures built without one"""
