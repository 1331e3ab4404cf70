"""
modpacker - Build and migrate Minecraft mod packs from the Modrinth registry.

modpacker resolves each mod in a pack against a Minecraft version and loader,
downloads the newest compatible build, and records the result in a
modpack.json manifest next to the downloaded jars.
It provides:
- Pack creation with search-and-add of mods
- Dry-run compatibility checks against another Minecraft version
- Pack migration that writes a new pack snapshot, never touching the old one

Example usage:
    $ modpacker create "My Pack" --loader fabric --version 1.20.1
    $ modpacker check packs/My-Pack-1.20.1-fabric --version 1.21
    $ modpacker update packs/My-Pack-1.20.1-fabric --version 1.21
"""

__version__ = "0.1.0"
__author__ = "modpacker Contributors"

__all__ = [
    "__version__",
    "__author__",
]
