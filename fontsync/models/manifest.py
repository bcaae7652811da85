"""
FontSync - Manifest Model

A manifest is the versioned snapshot of a font directory. Files are kept
sorted by path and each path appears at most once.
"""

import bisect
import hashlib
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, model_validator

from fontsync.models.font_file import FontFile


class Manifest(BaseModel):
    """
    Versioned, path-ordered list of font files

    Version 0 is the empty manifest a server starts from; the server assigns
    a new version each time a scan detects a content change.
    """
    version: int = 0
    files: List[FontFile] = Field(default_factory=list)

    @model_validator(mode="after")
    def _SortAndCheckPaths(self) -> "Manifest":
        self.files.sort(key=lambda font: font.path)
        for previous, current in zip(self.files, self.files[1:]):
            if previous.path == current.path:
                raise ValueError(f"Duplicate path in manifest: {current.path}")
        return self

    def AsMapping(self) -> Dict[str, FontFile]:
        """Map relative path to FontFile"""
        return {font.path: font for font in self.files}

    def Get(self, path: str) -> Optional[FontFile]:
        """Binary search on the path-sorted file list"""
        index = bisect.bisect_left(self.files, path, key=lambda font: font.path)
        if index < len(self.files) and self.files[index].path == path:
            return self.files[index]
        return None

    def Paths(self) -> List[str]:
        return [font.path for font in self.files]

    def Digest(self) -> str:
        """
        Content fingerprint of the manifest

        Hashes the sorted (path, size, hash) triples only, so two scans of an
        unchanged directory produce the same digest even if files were touched.
        """
        digest = hashlib.sha256()
        for font in self.files:
            digest.update(f"{font.path}\0{font.size}\0{font.hash}\n".encode("utf-8"))
        return digest.hexdigest()

    def TotalSize(self) -> int:
        return sum(font.size for font in self.files)
