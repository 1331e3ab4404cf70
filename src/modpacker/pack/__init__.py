"""
Pack storage for modpacker.

Key Components:
    - Pack: Pydantic model for a pack manifest
    - PackEntry: One installed mod
    - PackStore: Create, load and save packs on disk
    - sanitize_name: Turn a pack name into a directory-safe name
"""

from modpacker.pack.manifest import MANIFEST_FILENAME, Pack, PackEntry
from modpacker.pack.store import PackStore, pack_dirname, sanitize_name

__all__ = [
    "MANIFEST_FILENAME",
    "Pack",
    "PackEntry",
    "PackStore",
    "pack_dirname",
    "sanitize_name",
]
