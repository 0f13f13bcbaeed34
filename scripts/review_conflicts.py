"""
Operator CLI for the conflict review queue.

    python scripts/review_conflicts.py list
    python scripts/review_conflicts.py resolve EDIT_ID keep_locator --resolved-by USER_ID
"""

import argparse
import json
import sys
from pathlib import Path

# Add project root to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from fieldedits.core.dao import unresolved_conflicts
from fieldedits.core.db import init_db
from fieldedits.core.errors import FieldEditError
from fieldedits.core.resolution import resolve_conflict
from fieldedits.core.schema import Resolution


def list_command(args):
    """Print every unresolved conflict."""
    conflicts = unresolved_conflicts()

    if args.json:
        print(json.dumps([record.to_dict() for record in conflicts], indent=2))
        return 0

    if not conflicts:
        print("No unresolved conflicts.")
        return 0

    print(f"{len(conflicts)} unresolved conflict(s):")
    for record in conflicts:
        print(f"  {record.id}  {record.target_type.value}:{record.target_id}  {record.field_name.value}  "
              f"edit={record.new_value!r}  scraped={record.conflict_value!r}  "
              f"by={record.edited_by or '-'}  at={record.created_at.isoformat()}")
    return 0


def resolve_command(args):
    """Apply a resolution to one conflict."""
    try:
        new_record = resolve_conflict(args.edit_id, args.resolution, args.resolved_by)
    except FieldEditError as e:
        print(f"ERROR ({type(e).__name__}): {e}")
        return 1

    print(f"Resolved {args.edit_id} with {args.resolution}")
    if new_record:
        print(f"  New baseline record: {new_record.id} = {new_record.new_value!r}")
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(description="Review field edit conflicts")
    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list", help="List unresolved conflicts")
    list_parser.add_argument("--json", action="store_true", help="Output as JSON")
    list_parser.set_defaults(func=list_command)

    resolve_parser = subparsers.add_parser("resolve", help="Resolve a conflict")
    resolve_parser.add_argument("edit_id", help="Conflicted edit record id")
    resolve_parser.add_argument("resolution", choices=[r.value for r in Resolution])
    resolve_parser.add_argument("--resolved-by", required=True, help="Member id applying the decision")
    resolve_parser.set_defaults(func=resolve_command)

    args = parser.parse_args(argv)
    init_db()
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
