"""
Command groups for the phasekit CLI.
"""
