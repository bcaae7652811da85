"""
FontSync - User Font Folder

Locates the per-user font directory the operating system loads fonts from,
used as the client's local directory when none is configured.

Author: FontSync Project
"""

import os
import platform
from pathlib import Path


def get_user_font_folder() -> Path:
    """
    Get the current user's font folder.

    Windows 10 (1809) and later load per-user fonts from
    %LOCALAPPDATA%\\Microsoft\\Windows\\Fonts; macOS from ~/Library/Fonts;
    Linux and other Unix-like systems from $XDG_DATA_HOME/fonts, which
    defaults to ~/.local/share/fonts.

    Returns:
        Path to the user's font folder (it may not exist yet)
    """
    system = platform.system()

    if system == "Windows":
        local_app_data = os.environ.get("LOCALAPPDATA")
        base = Path(local_app_data) if local_app_data else Path.home() / "AppData" / "Local"
        return base / "Microsoft" / "Windows" / "Fonts"

    elif system == "Darwin":  # macOS
        return Path.home() / "Library" / "Fonts"

    else:  # Linux and other Unix-like systems
        xdg_data_home = os.environ.get("XDG_DATA_HOME")
        base = Path(xdg_data_home) if xdg_data_home else Path.home() / ".local" / "share"
        return base / "fonts"
