# scripts/repair_version_groups.py
"""
Merge split version groups and renumber versions to 1..N.

Usage:
    python scripts/repair_version_groups.py [--dry-run] [--json]
"""
import argparse
import json
import os
import sys

_SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
_PROJECT_ROOT = os.path.dirname(_SCRIPT_DIR)
if _PROJECT_ROOT not in sys.path:
    sys.path.insert(0, _PROJECT_ROOT)

from app import create_app
from services.version_repair import repair_version_groups


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Repair asset version groups")
    parser.add_argument("--dry-run", action="store_true", help="report the changes without committing them")
    parser.add_argument("--json", action="store_true", help="print the report as JSON")
    return parser.parse_args(argv)


def print_report(report):
    mode = "DRY RUN" if report.dry_run else "APPLIED"
    print(f"=== Version group repair ({mode}) ===")

    if not report.changed and not report.failed:
        print("✅ Nothing to repair")
        return

    for merge in report.merged:
        print(
            f"🔗 folder {merge['folderId']} '{merge['title']}': merged {merge['mergedGroupIds']} "
            f"into {merge['masterGroupId']} ({merge['rowsRewritten']} rows, "
            f"{merge['pinsMoved']} pins moved, {merge['pinsDropped']} pins dropped)"
        )
    for group in report.renumbered:
        changes = ", ".join(f"#{c['fileId']} v{c['from']}->v{c['to']}" for c in group['changes'])
        print(f"🔢 group {group['versionGroupId']}: {changes}")
    for failure in report.failed:
        print(f"❌ {failure}")


def main(argv=None):
    args = parse_args(argv)
    app = create_app()
    with app.app_context():
        report = repair_version_groups(dry_run=args.dry_run)

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    else:
        print_report(report)
    return 1 if report.failed else 0


if __name__ == "__main__":
    sys.exit(main())
