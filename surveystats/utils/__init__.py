"""
Utility functions for surveystats.
"""
