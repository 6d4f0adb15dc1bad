"""
Lead Suite — Backfill: set Company.roleMode.

Run: cd backend && python3 scripts/backfill_company_mode.py --list
     python3 scripts/backfill_company_mode.py --mode=uploader --codes=A,B
     python3 scripts/backfill_company_mode.py --mode=receiver --all --dry-run
"""

import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from config import close_client, get_db  # noqa: E402
from models import VALID_ROLE_MODES  # noqa: E402


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Backfill Company.roleMode")
    parser.add_argument("--list", action="store_true", help="list companies and exit")
    parser.add_argument("--mode", help="uploader | receiver | hybrid")
    parser.add_argument("--codes", help="comma separated company codes")
    parser.add_argument("--all", action="store_true", help="every company")
    parser.add_argument("--dry-run", action="store_true", help="print the plan, write nothing")
    return parser.parse_args(argv)


def print_table(rows, columns):
    widths = {c: max([len(c)] + [len(str(r.get(c, ""))) for r in rows]) for c in columns}
    print("  ".join(c.ljust(widths[c]) for c in columns))
    print("  ".join("─" * widths[c] for c in columns))
    for r in rows:
        print("  ".join(str(r.get(c, "")).ljust(widths[c]) for c in columns))


async def run(db, args) -> int:
    """Returns the process exit code."""
    if args.list:
        companies = await db.companies.find(
            {}, {"_id": 0, "id": 1, "name": 1, "code": 1, "roleMode": 1, "active": 1}
        ).sort("code", 1).to_list(None)
        print_table([
            {
                "id": c.get("id"),
                "code": c.get("code"),
                "name": c.get("name"),
                "roleMode": c.get("roleMode") or "hybrid",
                "active": bool(c.get("active")),
            }
            for c in companies
        ], ["id", "code", "name", "roleMode", "active"])
        return 0

    if not args.mode:
        print("❌ Missing --mode. Example: --mode=uploader")
        return 1
    if args.mode not in VALID_ROLE_MODES:
        print(f"❌ Invalid --mode: {args.mode}. Must be uploader|receiver|hybrid")
        return 1

    codes = [c.strip() for c in (args.codes or "").split(",") if c.strip()]
    if not args.all and not codes:
        print("❌ Need --all or --codes=A,B")
        return 1

    query = {} if args.all else {"code": {"$in": codes}}
    to_update = await db.companies.find(
        query, {"_id": 0, "name": 1, "code": 1, "roleMode": 1}
    ).sort("code", 1).to_list(None)

    if not to_update:
        print("No companies matched.")
        return 0

    print("➡️ Will update:")
    print_table([
        {"code": c.get("code"), "name": c.get("name"), "from": c.get("roleMode") or "hybrid", "to": args.mode}
        for c in to_update
    ], ["code", "name", "from", "to"])

    if args.dry_run:
        print("Dry-run enabled. No DB writes performed.")
        return 0

    res = await db.companies.update_many(query, {"$set": {"roleMode": args.mode}})
    print(f"✅ Updated. Matched: {res.matched_count}, Modified: {res.modified_count}")
    return 0


async def main(argv=None) -> int:
    args = parse_args(argv)
    try:
        return await run(get_db(), args)
    finally:
        close_client()


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
