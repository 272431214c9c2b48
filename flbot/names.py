import logging
import re
import unicodedata
from typing import Iterable, List, Optional

from rapidfuzz import fuzz, process

logger = logging.getLogger("flbot.names")

_NON_ALNUM_RE = re.compile(r"[^a-zA-Z0-9]")

# ACT writes the player's own row as "YOU"
SELF_PLACEHOLDER = "YOU"


def self_token(name: str) -> str:
    'Strip everything but ASCII letters/digits and upper-case.'
    return _NON_ALNUM_RE.sub("", name or "").upper()


def is_self_placeholder(name: str) -> bool:
    return self_token(name) == SELF_PLACEHOLDER


def capitalize_name(part: Optional[str]) -> str:
    'First character upper, rest lower (FFXIV character name casing).'
    s = (part or "").strip()
    if not s:
        return ""
    return s[0].upper() + s[1:].lower()


def build_full_name(first: Optional[str], last: Optional[str]) -> Optional[str]:
    """Join first/last into 'First Last'.

    Only one half given is treated as no name at all.
    """
    f = (first or "").strip()
    l = (last or "").strip()
    if f and l:
        return f"{f} {l}"
    if f or l:
        logger.warning("Only one half of a character name given (first=%r last=%r); ignoring", f, l)
    return None


def _match_key(name: str) -> str:
    s = unicodedata.normalize("NFKC", name or "")
    return " ".join(s.split()).casefold()


def suggest_names(name: str, candidates: Iterable[str], min_score: int = 80, limit: int = 3) -> List[str]:
    """Return up to *limit* candidate names that look like *name*.

    Used when a lookup by exact name finds nothing.
    """
    uniq: List[str] = []
    seen: set[str] = set()
    for c in candidates:
        c = (c or "").strip()
        if not c or c in seen:
            continue
        seen.add(c)
        uniq.append(c)
    if not uniq:
        return []

    target = _match_key(name)
    keys = [_match_key(c) for c in uniq]
    matches = process.extract(target, keys, scorer=fuzz.ratio, score_cutoff=min_score, limit=limit)
    return [uniq[idx] for _key, _score, idx in matches]
