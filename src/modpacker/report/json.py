"""
JSON output for modpacker.

Builds plain dicts that json.dumps() can serialize directly.
Keys are snake_case; timestamps are ISO 8601.
"""

from pathlib import Path
from typing import Any

from modpacker.pack import Pack
from modpacker.reconcile import CompatibilityReport


def pack_dict(pack: Pack, location: Path | None = None) -> dict[str, Any]:
    """Describe a pack."""
    data: dict[str, Any] = {
        "pack_name": pack.pack_name,
        "minecraft_version": pack.minecraft_version,
        "loader": pack.loader.value,
        "created_at": pack.created_at.isoformat(),
        "source": pack.source,
        "mods": [
            {
                "project_id": entry.project_id,
                "slug": entry.slug,
                "title": entry.title,
                "version_id": entry.version_id,
                "version_number": entry.version_number,
                "file_name": entry.file_name,
                "download_url": entry.download_url,
            }
            for entry in pack.mods
        ],
        "incompatible": dict(pack.incompatible or {}),
    }
    if location is not None:
        data["location"] = str(location)
    return data


def compatibility_report_dict(report: CompatibilityReport) -> dict[str, Any]:
    """Describe a compatibility report, mods in pack order."""
    return {
        "pack_name": report.pack_name,
        "source_version": report.source_version,
        "target_version": report.target_version,
        "loader": report.loader.value,
        "summary": {
            "compatible": len(report.compatible),
            "incompatible": len(report.incompatible),
            "total": report.total,
        },
        "mods": [
            {
                "project_id": result.entry.project_id,
                "slug": result.entry.slug,
                "title": result.entry.title,
                "current_version": result.entry.version_number,
                "compatible": result.compatible,
                "new_version": result.new_version,
            }
            for result in report.results
        ],
    }
