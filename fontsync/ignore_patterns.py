"""
FontSync - Ignore Rules

gitignore-style rules read from a .fontsyncignore file at the root of a
scanned font directory. Ignored paths never enter a manifest.

Supported syntax: wildcards (*, ?, [abc]), trailing / for directories,
! to re-include, # comments and blank lines.
"""

import fnmatch
import logging
from pathlib import Path
from typing import Iterable, List, Tuple

logger = logging.getLogger(__name__)

IGNORE_FILE_NAME = ".fontsyncignore"


class IgnoreRules:
    """
    Ordered list of (pattern, negated, directory_only) rules; the last matching rule wins
    """

    def __init__(self, lines: Iterable[str] = ()):
        self.rules: List[Tuple[str, bool, bool]] = []
        for line in lines:
            line = line.strip()
            if not line or line.startswith('#'):
                continue
            negated = line.startswith('!')
            if negated:
                line = line[1:].strip()
            line = line.replace('\\', '/')
            directory_only = line.endswith('/')
            line = line.rstrip('/')
            if line:
                self.rules.append((line, negated, directory_only))

    def __bool__(self) -> bool:
        return bool(self.rules)

    def ShouldIgnore(self, relative_path: str, is_dir: bool = False) -> bool:
        """
        Check a forward-slash relative path against every rule

        Args:
            relative_path: Path relative to the scanned root
            is_dir: The path itself names a directory; patterns ending in /
                    only match directories
        """
        relative_path = relative_path.replace('\\', '/')
        ignored = False
        for pattern, negated, directory_only in self.rules:
            if self.Matches(relative_path, pattern, directory_only, is_dir):
                ignored = not negated
        return ignored

    @staticmethod
    def Matches(relative_path: str, pattern: str, directory_only: bool = False,
                is_dir: bool = False) -> bool:
        parts = relative_path.split('/')
        # Every component but the last is a directory
        directory_parts = parts if is_dir else parts[:-1]

        if '/' in pattern:
            # Anchored pattern: match the whole path or anything below it
            if fnmatch.fnmatch(relative_path, f"{pattern}/*"):
                return True
            return (is_dir or not directory_only) and fnmatch.fnmatch(relative_path, pattern)

        # Bare name: match any path component
        candidates = directory_parts if directory_only else parts
        return any(fnmatch.fnmatch(part, pattern) for part in candidates)


def LoadIgnoreRules(directory: Path) -> IgnoreRules:
    """
    Load rules from <directory>/.fontsyncignore

    A missing file yields empty rules. An unreadable file is logged and
    treated as empty so a bad ignore file never blocks a scan.
    """
    ignore_file = Path(directory) / IGNORE_FILE_NAME
    if not ignore_file.is_file():
        return IgnoreRules()

    try:
        lines = ignore_file.read_text(encoding='utf-8').splitlines()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Error reading ignore file {ignore_file}: {e}")
        return IgnoreRules()

    rules = IgnoreRules(lines)
    logger.debug(f"Loaded {len(rules.rules)} ignore rules from {ignore_file}")
    return rules
