import json
import logging
import os
import threading
import time
import uuid
from typing import Any, Dict, List, Optional

logger = logging.getLogger("flbot.match_store")

SUMMARIES = "match_summaries"
RESULTS = "frontline_results"
LINKS = "lodestone_links"
COLLECTIONS = (SUMMARIES, RESULTS, LINKS)


def _now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime())


def _safe_stat_mtime(path: Optional[str]) -> float:
    if not path:
        return -1.0
    try:
        return float(os.stat(path).st_mtime)
    except OSError:
        return -1.0


def _empty_store() -> Dict[str, Any]:
    store: Dict[str, Any] = {"version": 1}
    for c in COLLECTIONS:
        store[c] = {}
    return store


def _new_doc_id() -> str:
    return uuid.uuid4().hex[:20]


def _as_document(obj: Any) -> Dict[str, Any]:
    if hasattr(obj, "to_document"):
        return obj.to_document()
    return dict(obj)


class MatchStore:
    """Tiny JSON document store (match summaries, ACT results, character links).

    Writes are atomic (tmp file + os.replace) and reads are cached by mtime.
    ``path=None`` keeps everything in memory. Safe to call from worker threads.
    """

    def __init__(self, path: Optional[str]):
        self.path = path
        self._cache: Optional[Dict[str, Any]] = _empty_store() if path is None else None
        self._cache_mtime: float = -2.0
        self._lock = threading.RLock()

    def load(self) -> Dict[str, Any]:
        with self._lock:
            if self.path is None:
                return self._cache  # type: ignore[return-value]

            mtime = _safe_stat_mtime(self.path)
            if self._cache is not None and mtime == self._cache_mtime:
                return self._cache

            if not os.path.exists(self.path):
                store = _empty_store()
                self._cache = store
                self._cache_mtime = mtime
                return store

            try:
                with open(self.path, "r", encoding="utf-8") as f:
                    store = json.load(f)
                if not isinstance(store, dict):
                    store = _empty_store()
            except (OSError, json.JSONDecodeError, UnicodeDecodeError):
                logger.exception("Store file unreadable, starting empty: %s", self.path)
                store = _empty_store()

            store.setdefault("version", 1)
            for c in COLLECTIONS:
                if not isinstance(store.get(c), dict):
                    store[c] = {}

            self._cache = store
            self._cache_mtime = mtime
            return store

    def save(self, store: Dict[str, Any]) -> None:
        with self._lock:
            if self.path is not None:
                try:
                    os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
                    tmp_path = self.path + ".tmp"
                    with open(tmp_path, "w", encoding="utf-8") as f:
                        json.dump(store, f, ensure_ascii=False, indent=2)
                    os.replace(tmp_path, self.path)
                except Exception:
                    # cached copy was mutated in place; force a re-read from disk
                    self._cache = None
                    raise
                self._cache_mtime = _safe_stat_mtime(self.path)
            self._cache = store

    def _insert(self, collection: str, doc: Dict[str, Any], doc_id: Optional[str] = None) -> str:
        with self._lock:
            store = self.load()
            doc_id = doc_id or _new_doc_id()
            doc = dict(doc)
            doc["timestamp"] = _now_iso()
            store[collection][doc_id] = doc
            self.save(store)
            return doc_id

    def add_match_summary(self, summary: Any) -> str:
        """Store a match summary and return its match id."""
        match_id = self._insert(SUMMARIES, _as_document(summary))
        logger.info("Stored match summary %s", match_id)
        return match_id

    def add_result(self, record: Any) -> str:
        return self._insert(RESULTS, _as_document(record))

    def get_match(self, match_id: str) -> Optional[Dict[str, Any]]:
        doc = self.load()[SUMMARIES].get(str(match_id))
        if not isinstance(doc, dict):
            return None
        return {"matchId": str(match_id), **doc}

    def list_matches(self, newest_first: bool = True, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        items = [{"matchId": k, **v} for k, v in self.load()[SUMMARIES].items() if isinstance(v, dict)]
        if newest_first:
            items.reverse()
        if limit is not None:
            items = items[: max(0, int(limit))]
        return items

    def find_results(self, **equals: Any) -> List[Dict[str, Any]]:
        """Result documents whose fields equal every given keyword."""
        out: List[Dict[str, Any]] = []
        for doc in self.load()[RESULTS].values():
            if not isinstance(doc, dict):
                continue
            if all(doc.get(k) == v for k, v in equals.items()):
                out.append(doc)
        return out

    def find_strategist_records(self, full_name: str) -> List[Dict[str, Any]]:
        return self.find_results(isStrategist=True, name=full_name)

    def strategist_names(self) -> List[str]:
        names = [str(d.get("name") or "") for d in self.find_results(isStrategist=True)]
        return [n for n in dict.fromkeys(names) if n]

    def get_linked_name(self, user_id: str) -> Optional[str]:
        doc = self.load()[LINKS].get(str(user_id))
        if not isinstance(doc, dict):
            return None
        return doc.get("charName") or doc.get("characterName") or None

    def set_link(self, user_id: str, char_name: str, lodestone_id: Optional[str] = None) -> None:
        with self._lock:
            store = self.load()
            store[LINKS][str(user_id)] = {
                "charName": char_name,
                "lodestoneId": lodestone_id,
                "linkedAt": _now_iso(),
            }
            self.save(store)

    def count(self, collection: str = RESULTS) -> int:
        return len(self.load().get(collection, {}))
