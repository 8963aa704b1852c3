#!/usr/bin/env python3
"""
FABRIK Error Types

Configuration errors raised while a skeleton is assembled. Solving never
raises for geometric reasons; degenerate geometry is handled where it occurs.
"""


class FabrikConfigurationError(ValueError):
    """Raised when a joint, bone, chain or structure is set up with invalid parameters."""
