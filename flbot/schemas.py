from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from .constants import ALLY_ENEMY, ALLY_FRIENDLY, PLACEHOLDER


class Allegiance(str, Enum):
    friendly = "friendly"
    enemy = "enemy"
    unknown = "unknown"


class NormalizedActorRecord(BaseModel):
    """One actor row of an ACT export after type coercion.

    Every column listed in constants.INTEGER_FIELDS / FLOAT_FIELDS has its own
    typed attribute; any other column lands in ``extra`` under its lower-cased
    name as a trimmed string.
    """

    name: str
    job: str
    ally: str = ""
    encid: str = ""

    # integer columns
    duration: int = 0
    damage: int = 0
    kills: int = 0
    healed: int = 0
    heals: int = 0
    powerdrain: int = 0
    powerreplenish: int = 0
    hits: int = 0
    crithits: int = 0
    blocked: int = 0
    misses: int = 0
    swings: int = 0
    healstaken: int = 0
    damagetaken: int = 0
    deaths: int = 0
    threatdelta: int = 0
    directhitcount: int = 0
    critdirecthitcount: int = 0

    # float columns
    dps: float = 0.0
    encdps: float = 0.0
    enchps: float = 0.0
    damageperc: float = 0.0
    healedperc: float = 0.0
    tohit: float = 0.0
    critdamperc: float = 0.0
    crithealperc: float = 0.0
    parrypct: float = 0.0
    blockpct: float = 0.0
    inctohit: float = 0.0
    overhealpct: float = 0.0
    directhitpct: float = 0.0
    critdirecthitpct: float = 0.0

    extra: Dict[str, str] = Field(default_factory=dict)

    # filled in by the aggregator
    rank: Union[int, str] = PLACEHOLDER
    team: str = PLACEHOLDER

    @property
    def allegiance(self) -> Allegiance:
        if self.ally == ALLY_FRIENDLY:
            return Allegiance.friendly
        if self.ally == ALLY_ENEMY:
            return Allegiance.enemy
        return Allegiance.unknown

    def to_document(self) -> Dict[str, Any]:
        doc = self.model_dump(exclude={"extra"})
        for k, v in self.extra.items():
            # a typed field left unset (None) falls back to the log column
            if doc.get(k) is None:
                doc[k] = v
        return doc


class FinalizedRecord(NormalizedActorRecord):
    match_id: str
    user_id: str
    # caller-submitted, only set on the caller's own record
    assists: Optional[int] = None
    is_strategist: bool = False

    def to_document(self) -> Dict[str, Any]:
        doc = super().to_document()
        doc["matchId"] = doc.pop("match_id")
        doc["userId"] = doc.pop("user_id")
        doc["isStrategist"] = doc.pop("is_strategist")
        if doc.get("assists") is None:
            # neither submitted by the caller nor present in the log
            doc.pop("assists", None)
        return doc


class TeamRanking(BaseModel):
    team: str
    name: str
    rank: int = Field(ge=1)
    points: int


class MatchSummary(BaseModel):
    field: str
    my_team: str
    points: Dict[str, int]
    ranking: List[TeamRanking]
    estimated_duration: Optional[int] = None
    recorded_by: str

    def rank_of(self, team: str) -> Optional[int]:
        for r in self.ranking:
            if r.team == team:
                return r.rank
        return None

    def to_document(self) -> Dict[str, Any]:
        return {
            "field": self.field,
            "myTeam": self.my_team,
            "points": dict(self.points),
            "ranking": [r.model_dump() for r in self.ranking],
            "estimatedDuration": self.estimated_duration,
            "recordedBy": self.recorded_by,
        }


class MatchContext(BaseModel):
    """Caller-supplied side inputs for one ACT record."""

    user_id: str
    my_team: str
    # team value ('Maelstrom', 'Twin Adders', 'Immortal Flames') -> points
    team_scores: Dict[str, int]
    my_kills: int = 0
    my_assists: int = 0
    linked_name: Optional[str] = None
    strategist_name: Optional[str] = None
    raw_durations: List[int] = Field(default_factory=list)


class AggregateResult(BaseModel):
    records: List[FinalizedRecord]
    summary: MatchSummary
    leaderboard: List[FinalizedRecord]
    self_record: Optional[FinalizedRecord] = None
    strategist_record: Optional[FinalizedRecord] = None


class ParseOutcome(BaseModel):
    status: Literal["ok", "empty", "failed"]
    reason: Optional[str] = None
    records: Dict[str, NormalizedActorRecord] = Field(default_factory=dict)
    durations: List[int] = Field(default_factory=list)

    @property
    def failed(self) -> bool:
        return self.status == "failed"


class PersistReport(BaseModel):
    success_count: int = 0
    fail_count: int = 0


class RecordOutcome(BaseModel):
    match_id: str
    user_id: str
    linked_name: Optional[str] = None
    result: AggregateResult
    report: PersistReport


class StrategistStats(BaseModel):
    name: str
    total_reports: int
    wins: int
    win_rate: float
    rank_counts: Dict[int, int]
    avg_dps: float
    most_used_job: str
    most_used_job_count: int
