"""Win/loss statistics for a strategist (軍師) across stored ACT results."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Optional

from .schemas import StrategistStats

logger = logging.getLogger("flbot.strategist")

UNKNOWN_JOB = '不明'


def _rank_value(raw: Any) -> Optional[int]:
    try:
        rank = int(str(raw).strip())
    except (TypeError, ValueError):
        return None
    return rank if rank in (1, 2, 3) else None


def _dps_value(raw: Any) -> float:
    try:
        return float(raw)
    except (TypeError, ValueError):
        return 0.0


def summarize_strategist(name: str, records: Iterable[Dict[str, Any]]) -> Optional[StrategistStats]:
    """Aggregate rank counts, win rate, average DPS and favourite job.

    Returns None when there is nothing recorded for *name*.
    """
    docs = list(records)
    if not docs:
        return None

    rank_counts: Dict[int, int] = {1: 0, 2: 0, 3: 0}
    job_counts: Dict[str, int] = {}
    total_dps = 0.0

    for doc in docs:
        rank = _rank_value(doc.get("rank"))
        if rank is not None:
            rank_counts[rank] += 1
        total_dps += _dps_value(doc.get("dps"))
        job = doc.get("job") or UNKNOWN_JOB
        job_counts[job] = job_counts.get(job, 0) + 1

    total = len(docs)
    wins = rank_counts[1]

    most_used, most_count = UNKNOWN_JOB, 0
    for job, cnt in job_counts.items():
        if cnt > most_count:
            most_used, most_count = job, cnt

    stats = StrategistStats(
        name=name,
        total_reports=total,
        wins=wins,
        win_rate=wins / total * 100,
        rank_counts=rank_counts,
        avg_dps=total_dps / total,
        most_used_job=most_used,
        most_used_job_count=most_count,
    )
    logger.debug("Strategist %s: %s", name, stats.model_dump())
    return stats
