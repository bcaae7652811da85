"""
FontSync - Font File Model

Pydantic model for a single entry of a font manifest.
"""

from pydantic import BaseModel


class FontFile(BaseModel):
    """One font file: relative path, byte size, SHA-256 hash and modification time"""
    path: str
    size: int
    hash: str
    mtime: float

    def SameContent(self, other: "FontFile") -> bool:
        """Content identity ignores the modification time"""
        return self.size == other.size and self.hash == other.hash
