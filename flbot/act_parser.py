"""ACT (Advanced Combat Tracker) CSV export parser.

The export is a comma separated table whose header row names the columns.
Columns are not fixed, so every header is mapped once through FIELD_TABLE and
the resulting plan is applied to each data row.
"""

from __future__ import annotations

import csv
import io
import logging
import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from .constants import (
    EMPTY_TOKEN,
    FLOAT_FIELDS,
    INTEGER_FIELDS,
    LIMIT_BREAK,
    REQUIRED_HEADERS,
    STRING_FIELDS,
)
from .schemas import NormalizedActorRecord, ParseOutcome

logger = logging.getLogger("flbot.act_parser")

_INT_RE = re.compile(r"^\s*([+-]?\d+)")
_FLOAT_RE = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def coerce_int(value: Optional[str]) -> int:
    'Leading integer of *value* ("12.7" -> 12, "1,234" -> 1); 0 when there is none.'
    if value is None:
        return 0
    m = _INT_RE.match(str(value))
    return int(m.group(1)) if m else 0


def coerce_float(value: Optional[str]) -> float:
    'Float after dropping every "%" and "-" ("45%-" -> 45.0); 0.0 when unparsable.'
    if value is None:
        return 0.0
    s = str(value).replace("%", "").replace("-", "")
    m = _FLOAT_RE.match(s)
    return float(m.group(1)) if m else 0.0


def keep_as_written(value: Optional[str]) -> str:
    'Name cells keep their surrounding spaces; blank or "--" still means missing.'
    if value is None or clean_string(value) == "":
        return ""
    return str(value)


def clean_string(value: Optional[str]) -> str:
    if value is None:
        return ""
    s = str(value).strip()
    return "" if s == EMPTY_TOKEN else s


@dataclass(frozen=True)
class FieldSpec:
    field: str
    kind: str  # "int" | "float" | "str"
    coerce: Callable[[Optional[str]], object]


FIELD_TABLE: Dict[str, FieldSpec] = {}
for _f in INTEGER_FIELDS:
    FIELD_TABLE[_f] = FieldSpec(_f, "int", coerce_int)
for _f in FLOAT_FIELDS:
    FIELD_TABLE[_f] = FieldSpec(_f, "float", coerce_float)
for _f in STRING_FIELDS:
    FIELD_TABLE[_f] = FieldSpec(_f, "str", clean_string)
FIELD_TABLE["name"] = FieldSpec("name", "str", keep_as_written)


def _column_plan(header: List[str]) -> List[Tuple[int, str, Optional[FieldSpec]]]:
    """(column index, lower-cased key, spec or None for an untyped column).

    Duplicate headers: the rightmost column wins, like a dict built from the row.
    """
    plan: Dict[str, Tuple[int, str, Optional[FieldSpec]]] = {}
    for idx, col in enumerate(header):
        key = col.lower()
        if not key:
            continue
        plan[key] = (idx, key, FIELD_TABLE.get(key))
    return list(plan.values())


def _build_record(row: List[str], plan: List[Tuple[int, str, Optional[FieldSpec]]]) -> NormalizedActorRecord:
    values: Dict[str, object] = {}
    extra: Dict[str, str] = {}
    for idx, key, spec in plan:
        raw = row[idx] if idx < len(row) else None
        if spec is None:
            extra[key] = clean_string(raw)
        else:
            values[spec.field] = spec.coerce(raw)
    return NormalizedActorRecord(extra=extra, **values)


def parse_outcome(text: Optional[str]) -> ParseOutcome:
    """Parse an ACT export into actor-name -> record.

    status:
      ok     - at least one actor record
      empty  - well-formed but nothing to report
      failed - unreadable CSV, missing Name/Job/Damage, or ragged rows

    Rows without Name/Job and the "Limit Break" row are dropped. A name that
    appears twice keeps the later row.
    """
    if not text or not text.strip():
        return ParseOutcome(status="empty")

    text = text.lstrip("\ufeff")
    try:
        rows = [r for r in csv.reader(io.StringIO(text), strict=True) if r]
    except csv.Error as e:
        logger.warning("ACT log is not valid CSV: %s", e)
        return ParseOutcome(status="failed", reason=f"CSVを読み取れませんでした: {e}")

    if not rows:
        return ParseOutcome(status="empty")

    header = [h.strip() for h in rows[0]]
    missing = [h for h in REQUIRED_HEADERS if h not in header]
    if missing:
        logger.warning("ACT log header lacks required columns %s (header=%s)", missing, header)
        return ParseOutcome(status="failed", reason="必須の列がありません: " + ", ".join(missing))

    plan = _column_plan(header)
    name_idx = header.index("Name")
    job_idx = header.index("Job")
    duration_idx = header.index("Duration") if "Duration" in header else None

    records: Dict[str, NormalizedActorRecord] = {}
    durations: List[int] = []
    skipped = 0

    for line_no, row in enumerate(rows[1:], start=2):
        if len(row) != len(header):
            logger.warning("ACT log row %d has %d fields, header has %d", line_no, len(row), len(header))
            return ParseOutcome(
                status="failed",
                reason=f"{line_no}行目の列数がヘッダーと一致しません ({len(row)} != {len(header)})",
            )

        # every row counts toward the match duration, even ones dropped below
        if duration_idx is not None:
            d = coerce_int(row[duration_idx])
            if d > 0:
                durations.append(d)

        name = keep_as_written(row[name_idx])
        job = clean_string(row[job_idx])
        if not name or not job or name.strip() == LIMIT_BREAK:
            skipped += 1
            logger.debug("Skip ACT row %d: name=%r job=%r", line_no, name, job)
            continue

        rec = _build_record(row, plan)
        if name in records:
            logger.debug("Duplicate actor %r at row %d replaces earlier row", name, line_no)
        records[name] = rec

    logger.info(
        "Parsed ACT log: rows=%d actors=%d skipped=%d durations=%d",
        len(rows) - 1, len(records), skipped, len(durations),
    )
    return ParseOutcome(status="ok" if records else "empty", records=records, durations=durations)


def parse(text: Optional[str]) -> Dict[str, NormalizedActorRecord]:
    'Actor-name -> record; empty for both "nothing to report" and unreadable input.'
    return parse_outcome(text).records


def raw_durations(text: Optional[str]) -> List[int]:
    return parse_outcome(text).durations
