"""ACT record flow: look up caller -> parse -> store summary -> store records.

The Discord bot and the offline CLI both go through ActRecorder.record().
"""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Mapping, Optional

from . import act_parser
from .aggregator import DEFAULT_LEADERBOARD_SIZE, MatchAggregator
from .constants import TEAM_ALIASES, TEAMS
from .match_store import MatchStore
from .names import build_full_name
from .schemas import FinalizedRecord, MatchContext, PersistReport, RecordOutcome

logger = logging.getLogger("flbot.recorder")


class RecordInputError(ValueError):
    """Caller input the pipeline refuses to record (shown to the user)."""


def resolve_team(raw: Optional[str]) -> str:
    key = " ".join((raw or "").split()).casefold()
    team = TEAM_ALIASES.get(key)
    if team is None:
        raise RecordInputError(f"不明なチームです: {raw!r} (Maelstrom / TwinAdders / ImmortalFlames)")
    return team


def decode_log_bytes(data: bytes) -> str:
    'ACT exports are usually UTF-8 (maybe with BOM); Japanese Windows setups write cp932.'
    for enc in ("utf-8-sig", "cp932"):
        try:
            return data.decode(enc)
        except UnicodeDecodeError:
            continue
    return data.decode("latin-1")


class ActRecorder:
    def __init__(
        self,
        store: MatchStore,
        aggregator: Optional[MatchAggregator] = None,
        store_lock: Optional[asyncio.Lock] = None,
        leaderboard_size: int = DEFAULT_LEADERBOARD_SIZE,
    ):
        self.store = store
        self.aggregator = aggregator or MatchAggregator(leaderboard_size)
        self._store_lock = store_lock or asyncio.Lock()

    async def _lookup_linked_name(self, user_id: str) -> Optional[str]:
        try:
            async with self._store_lock:
                return await asyncio.to_thread(self.store.get_linked_name, user_id)
        except Exception:
            logger.exception("Linked character lookup failed for user %s", user_id)
            return None

    async def _persist_records(self, records: Iterable[FinalizedRecord]) -> PersistReport:
        report = PersistReport()
        for rec in records:
            try:
                async with self._store_lock:
                    await asyncio.to_thread(self.store.add_result, rec)
                report.success_count += 1
            except Exception:
                logger.exception("Failed to store result: name=%s job=%s rank=%s", rec.name, rec.job, rec.rank)
                report.fail_count += 1
        return report

    async def record(
        self,
        user_id: str,
        my_team: str,
        points: Mapping[str, int],
        my_kills: int,
        my_assists: int,
        log_text: str,
        strategist_first: Optional[str] = None,
        strategist_last: Optional[str] = None,
    ) -> RecordOutcome:
        team = resolve_team(my_team)
        scores = {resolve_team(t): int(p) for t, p in (points or {}).items()}
        missing = [t for t in TEAMS if t not in scores]
        if missing:
            raise RecordInputError("ポイントが不足しています: " + ", ".join(missing))

        outcome = act_parser.parse_outcome(log_text)
        if outcome.failed:
            raise RecordInputError(outcome.reason or "ACTデータを読み取れませんでした。")

        linked_name = await self._lookup_linked_name(str(user_id))
        if not linked_name:
            logger.warning("User %s has no linked character; YOU row stays unnamed", user_id)

        ctx = MatchContext(
            user_id=str(user_id),
            my_team=team,
            team_scores=scores,
            my_kills=int(my_kills),
            my_assists=int(my_assists),
            linked_name=linked_name,
            strategist_name=build_full_name(strategist_first, strategist_last),
            raw_durations=outcome.durations,
        )

        summary = self.aggregator.build_summary(ctx)
        async with self._store_lock:
            match_id = await asyncio.to_thread(self.store.add_match_summary, summary)

        result = self.aggregator.aggregate(outcome.records, ctx, match_id=match_id, summary=summary)
        report = await self._persist_records(result.records)
        logger.info(
            "ACT record %s: actors=%d stored=%d failed=%d",
            match_id, len(result.records), report.success_count, report.fail_count,
        )
        return RecordOutcome(
            match_id=match_id,
            user_id=str(user_id),
            linked_name=linked_name,
            result=result,
            report=report,
        )
