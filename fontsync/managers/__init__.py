"""
FontSync - Managers Package

Contains the configuration manager and the user font folder lookup.

Author: FontSync Project
"""

from .config_manager import ConfigManager, DEFAULT_CONFIG
from .font_folder import get_user_font_folder

__all__ = [
    'ConfigManager',
    'DEFAULT_CONFIG',
    'get_user_font_folder'
]
