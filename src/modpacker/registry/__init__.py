"""
Registry access for modpacker.

Components:
    - RegistryClient: Search, list builds, and download files from Modrinth
    - build_facets: Encode the search facet expression
"""

from modpacker.registry.client import RegistryClient, build_facets

__all__ = [
    "RegistryClient",
    "build_facets",
]
