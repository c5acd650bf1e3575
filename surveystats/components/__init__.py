"""
System components for surveystats.
"""

from surveystats.components.config import Config, ConfigManager
