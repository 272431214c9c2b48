"""Turn parsed ACT records plus the caller's match report into stored records.

Pure, in-memory. Persistence happens in recorder.py.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional, Tuple

from .constants import (
    NONE_SENTINEL,
    TEAM_LABELS,
    TEAM_POINT_KEYS,
    TEAMS,
    VENUE_THRESHOLDS,
    VENUE_UNKNOWN,
)
from .names import is_self_placeholder
from .schemas import (
    Allegiance,
    AggregateResult,
    FinalizedRecord,
    MatchContext,
    MatchSummary,
    NormalizedActorRecord,
    TeamRanking,
)

logger = logging.getLogger("flbot.aggregator")

DEFAULT_LEADERBOARD_SIZE = 8


def rank_teams(team_scores: Mapping[str, int]) -> List[TeamRanking]:
    """Sort teams by score (desc) with competition ranking.

    Equal scores share a rank and the next rank skips: 1000/1000/500 -> 1, 1, 3.
    Ties keep the fixed Maelstrom / Twin Adders / Immortal Flames order.
    """
    order = {t: i for i, t in enumerate(TEAMS)}
    teams = sorted(team_scores.keys(), key=lambda t: (-int(team_scores[t]), order.get(t, len(order))))
    out: List[TeamRanking] = []
    for team in teams:
        pts = int(team_scores[team])
        rank = 1 + sum(1 for other in teams if int(team_scores[other]) > pts)
        out.append(TeamRanking(team=team, name=TEAM_LABELS.get(team, team), rank=rank, points=pts))
    return out


def determine_venue(winning_score: int) -> str:
    for threshold, venue in VENUE_THRESHOLDS:
        if winning_score >= threshold:
            return venue
    return VENUE_UNKNOWN


def estimate_duration(durations: List[int]) -> Optional[int]:
    positive = [int(d) for d in durations if int(d) > 0]
    return max(positive) if positive else None


def substitute_self(
    parsed: Mapping[str, NormalizedActorRecord],
    linked_name: Optional[str],
) -> Dict[str, NormalizedActorRecord]:
    """Rename the friendly "YOU" row to the caller's linked character name.

    Only the first matching row is renamed. Without a linked name the mapping
    is returned as is (copied).
    """
    out: Dict[str, NormalizedActorRecord] = {}
    done = False
    for name, rec in parsed.items():
        if linked_name and not done and is_self_placeholder(name) and rec.allegiance is Allegiance.friendly:
            out[linked_name] = rec.model_copy(update={"name": linked_name})
            done = True
            logger.info("Replaced ACT row %r (Ally T) with linked character %r", name, linked_name)
            continue
        out[name] = rec
    if linked_name and not done:
        logger.info("No friendly YOU row found for linked character %r", linked_name)
    return out


class MatchAggregator:
    def __init__(self, leaderboard_size: int = DEFAULT_LEADERBOARD_SIZE):
        self.leaderboard_size = max(1, int(leaderboard_size))

    def build_summary(self, ctx: MatchContext) -> MatchSummary:
        ranking = rank_teams(ctx.team_scores)
        winning = ranking[0].points if ranking else 0
        venue = determine_venue(winning)
        logger.info("Winning score %s -> venue %s", winning, venue)
        points = {TEAM_POINT_KEYS.get(t, t): int(p) for t, p in ctx.team_scores.items()}
        return MatchSummary(
            field=venue,
            my_team=TEAM_LABELS.get(ctx.my_team, ctx.my_team),
            points=points,
            ranking=ranking,
            estimated_duration=estimate_duration(ctx.raw_durations),
            recorded_by=ctx.user_id,
        )

    def finalize(
        self,
        parsed: Mapping[str, NormalizedActorRecord],
        ctx: MatchContext,
        summary: MatchSummary,
        match_id: str,
    ) -> Tuple[List[FinalizedRecord], Optional[FinalizedRecord], Optional[FinalizedRecord]]:
        """Attach team/rank/match data to every record.

        Returns (records, caller's own record, strategist record).
        """
        processed = substitute_self(parsed, ctx.linked_name)
        team_label = TEAM_LABELS.get(ctx.my_team, ctx.my_team)
        my_rank = summary.rank_of(ctx.my_team)
        if my_rank is None:
            logger.warning("Team %r has no submitted score; friendly rank left as %s", ctx.my_team, NONE_SENTINEL)
            my_rank = NONE_SENTINEL

        records: List[FinalizedRecord] = []
        self_record: Optional[FinalizedRecord] = None
        strategist_record: Optional[FinalizedRecord] = None

        for name, rec in processed.items():
            data = rec.model_dump()
            data.update(match_id=match_id, user_id=ctx.user_id, is_strategist=False)

            if ctx.linked_name and name == ctx.linked_name:
                # kills/assists in the log are unreliable for the player's own row
                data.update(kills=ctx.my_kills, assists=ctx.my_assists, team=team_label, rank=my_rank)
            elif rec.allegiance is Allegiance.friendly:
                data.update(team=team_label, rank=my_rank)
            else:
                data.update(team=NONE_SENTINEL, rank=NONE_SENTINEL)

            if ctx.strategist_name and strategist_record is None and name == ctx.strategist_name:
                data["is_strategist"] = True

            final = FinalizedRecord(**data)
            if ctx.linked_name and name == ctx.linked_name:
                self_record = final
                logger.info("Own record %s: K%s/A%s", name, ctx.my_kills, ctx.my_assists)
            if final.is_strategist:
                strategist_record = final
                logger.info("Strategist %s found in log", name)
            records.append(final)

        if ctx.strategist_name and strategist_record is None:
            logger.info("Strategist %r not present in log", ctx.strategist_name)
        return records, self_record, strategist_record

    def build_leaderboard(self, records: List[FinalizedRecord], linked_name: Optional[str]) -> List[FinalizedRecord]:
        'Top damage dealers, caller excluded.'
        eligible = [r for r in records if r.damage > 0 and r.name and r.job]
        eligible.sort(key=lambda r: r.damage, reverse=True)
        if linked_name:
            eligible = [r for r in eligible if r.name != linked_name]
        return eligible[: self.leaderboard_size]

    def aggregate(
        self,
        parsed: Mapping[str, NormalizedActorRecord],
        ctx: MatchContext,
        match_id: str = "",
        summary: Optional[MatchSummary] = None,
    ) -> AggregateResult:
        if summary is None:
            summary = self.build_summary(ctx)
        records, self_record, strategist_record = self.finalize(parsed, ctx, summary, match_id)
        return AggregateResult(
            records=records,
            summary=summary,
            leaderboard=self.build_leaderboard(records, ctx.linked_name),
            self_record=self_record,
            strategist_record=strategist_record,
        )
