#!/usr/bin/env python3
"""
Resolve images in a JSON dump of content records and write the augmented
records back out.

Example:
  pip install -e .
  python3 scripts/sync_media.py entities.json --out entities.synced.json --sweep

The input is a JSON array of records (or a single record). Settings come from
data/config.json under --base-dir (defaults apply when it does not exist).
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from src.backend.pipeline.media_sync import run_media_sync
from src.backend.settings.store import SettingsStore


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Download and cache images referenced by content records.")
    parser.add_argument("input", type=Path, help="JSON file with one record or an array of records")
    parser.add_argument("--out", type=Path, default=None, help="Where to write augmented records (default: stdout)")
    parser.add_argument("--base-dir", type=Path, default=Path.cwd(), help="Directory holding data/config.json")
    parser.add_argument("--sweep", action="store_true", help="Drop file nodes not referenced by this run")
    parser.add_argument("--delete-files", action="store_true", help="With --sweep, also delete their files")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    raw = json.loads(args.input.read_text(encoding="utf-8"))
    entities = raw if isinstance(raw, list) else [raw]

    base_dir = args.base_dir.resolve()
    store = SettingsStore(path=base_dir / "data" / "config.json")
    report = asyncio.run(
        run_media_sync(
            entities,
            store=store,
            base_dir=base_dir,
            sweep=args.sweep,
            delete_files=args.delete_files,
        )
    )

    output = json.dumps(raw if isinstance(raw, list) else entities[0], ensure_ascii=False, indent=2)
    if args.out is None:
        print(output)
    else:
        args.out.write_text(output + "\n", encoding="utf-8")

    print(json.dumps(report.to_dict()), file=sys.stderr)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
