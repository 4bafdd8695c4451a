"""
phasekit - project phase, recurring milestone and budget allocation rules.
"""

__version__ = "0.1.0"
