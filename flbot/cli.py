"""Run the ACT record pipeline on a local file.

    python -m flbot.cli summary.csv --team Maelstrom --points 2500 1000 500 \
        --kills 5 --assists 3 --you "Jane Doe" [--strategist "Taro Yamada"] [--store store.json]

Prints the same summary the bot would post (as plain text).
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .constants import TEAMS
from .formatter import render_record_text
from .logging_setup import setup_logging
from .match_store import MatchStore
from .recorder import ActRecorder, RecordInputError, decode_log_bytes

logger = logging.getLogger("flbot.cli")

CLI_USER_ID = "cli"


def build_arg_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="flbot.cli", description="Record an ACT frontline export offline.")
    ap.add_argument("log", type=Path, help="ACT CSV/TXT export")
    ap.add_argument("--team", required=True, help="Maelstrom / TwinAdders / ImmortalFlames")
    ap.add_argument("--points", required=True, type=int, nargs=3, metavar=("MAELSTROM", "TWIN_ADDERS", "IMMORTAL_FLAMES"))
    ap.add_argument("--kills", type=int, default=0)
    ap.add_argument("--assists", type=int, default=0)
    ap.add_argument("--you", default=None, help="character name that replaces the YOU row")
    ap.add_argument("--strategist", default=None, help='strategist full name, e.g. "Taro Yamada"')
    ap.add_argument("--store", default=None, help="JSON store path (default: in-memory)")
    return ap


async def run(args: argparse.Namespace) -> int:
    store = MatchStore(args.store)
    if args.you:
        store.set_link(CLI_USER_ID, args.you)

    first: Optional[str] = None
    last: Optional[str] = None
    if args.strategist:
        parts = args.strategist.split(None, 1)
        first = parts[0]
        last = parts[1] if len(parts) > 1 else None

    text = decode_log_bytes(args.log.read_bytes())
    recorder = ActRecorder(store)
    try:
        outcome = await recorder.record(
            user_id=CLI_USER_ID,
            my_team=args.team,
            points=dict(zip(TEAMS, args.points)),
            my_kills=args.kills,
            my_assists=args.assists,
            log_text=text,
            strategist_first=first,
            strategist_last=last,
        )
    except RecordInputError as e:
        print(f"エラー: {e}", file=sys.stderr)
        return 2

    print(render_record_text(outcome))
    return 0 if outcome.report.fail_count == 0 else 1


def main(argv: Optional[List[str]] = None) -> int:
    setup_logging()
    args = build_arg_parser().parse_args(argv)
    if not args.log.is_file():
        print(f"ファイルがありません: {args.log}", file=sys.stderr)
        return 2
    return asyncio.run(run(args))


if __name__ == "__main__":
    raise SystemExit(main())
