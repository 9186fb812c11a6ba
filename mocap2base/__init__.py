"""Motion-capture world frame to robot base frame re-expression."""

__version__ = "0.1.0"
