"""
Reporting module for modpacker.

Output formats:
    - Console: Rich tables for packs, search hits and compatibility reports
    - JSON: Plain dicts for programmatic consumption (--json)

Example:
    from modpacker.report import print_compatibility_report, compatibility_report_dict

    print_compatibility_report(report)
    print(json.dumps(compatibility_report_dict(report), indent=2))
"""

from modpacker.report.console import (
    print_compatibility_report,
    print_pack,
    print_search_hits,
)
from modpacker.report.json import compatibility_report_dict, pack_dict

__all__ = [
    "compatibility_report_dict",
    "pack_dict",
    "print_compatibility_report",
    "print_pack",
    "print_search_hits",
]
