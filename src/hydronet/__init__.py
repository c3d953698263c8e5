"""
hydronet: coupled expansion-trajectory and reaction-network integration.
"""

__version__ = "0.1.0"
