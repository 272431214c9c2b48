import json
from pathlib import Path

import pytest

from flbot.aggregator import MatchAggregator
from flbot.match_store import LINKS, RESULTS, SUMMARIES, MatchStore
from flbot.schemas import MatchContext


def _summary():
    ctx = MatchContext(
        user_id="42",
        my_team="Twin Adders",
        team_scores={"Maelstrom": 800, "Twin Adders": 1500, "Immortal Flames": 300},
    )
    return MatchAggregator().build_summary(ctx)


def test_summary_roundtrip_on_disk(tmp_path: Path):
    p = tmp_path / "store.json"
    store = MatchStore(str(p))
    match_id = store.add_match_summary(_summary())

    assert len(match_id) == 20
    raw = json.loads(p.read_text(encoding="utf-8"))
    doc = raw[SUMMARIES][match_id]
    assert doc["myTeam"] == "双蛇党"
    assert doc["points"]["TwinAdders"] == 1500
    assert doc["recordedBy"] == "42"
    assert "timestamp" in doc

    # a fresh instance reads what the first one wrote
    again = MatchStore(str(p))
    got = again.get_match(match_id)
    assert got["matchId"] == match_id
    assert got["field"] == doc["field"]
    assert again.get_match("nope") is None


def test_reload_after_external_write(tmp_path: Path):
    p = tmp_path / "store.json"
    store = MatchStore(str(p))
    store.add_result({"name": "Bob", "isStrategist": False})
    assert store.count(RESULTS) == 1

    data = json.loads(p.read_text(encoding="utf-8"))
    data[RESULTS]["manual"] = {"name": "Carol", "isStrategist": True}
    p.write_text(json.dumps(data), encoding="utf-8")
    # force a different mtime even on coarse filesystems
    store._cache_mtime = -3.0

    assert store.count(RESULTS) == 2
    assert store.strategist_names() == ["Carol"]


def test_in_memory_store_never_touches_disk(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.chdir(tmp_path)
    store = MatchStore(None)
    mid = store.add_match_summary(_summary())
    store.add_result({"matchId": mid, "name": "Bob"})

    assert store.count(SUMMARIES) == 1
    assert store.find_results(matchId=mid)[0]["name"] == "Bob"
    assert list(tmp_path.iterdir()) == []


def test_list_matches_newest_first_and_limit():
    store = MatchStore(None)
    ids = [store.add_match_summary(_summary()) for _ in range(3)]

    assert [m["matchId"] for m in store.list_matches()] == list(reversed(ids))
    assert [m["matchId"] for m in store.list_matches(newest_first=False, limit=2)] == ids[:2]
    assert store.list_matches(limit=0) == []


def test_links():
    store = MatchStore(None)
    assert store.get_linked_name("42") is None

    store.set_link("42", "Jane Doe", lodestone_id="1234567")
    assert store.get_linked_name("42") == "Jane Doe"
    assert store.get_linked_name(42) == "Jane Doe"

    # older documents used characterName
    store.load()[LINKS]["7"] = {"characterName": "Old Name"}
    assert store.get_linked_name("7") == "Old Name"


def test_strategist_query():
    store = MatchStore(None)
    store.add_result({"name": "Taro Yamada", "isStrategist": True, "rank": 1})
    store.add_result({"name": "Taro Yamada", "isStrategist": False, "rank": 2})
    store.add_result({"name": "Hanako Sato", "isStrategist": True, "rank": 3})
    store.add_result({"name": "Taro Yamada", "isStrategist": True, "rank": 2})

    found = store.find_strategist_records("Taro Yamada")
    assert sorted(d["rank"] for d in found) == [1, 2]
    assert store.strategist_names() == ["Taro Yamada", "Hanako Sato"]


def test_corrupt_file_starts_empty(tmp_path: Path):
    p = tmp_path / "store.json"
    p.write_text("{not json", encoding="utf-8")
    store = MatchStore(str(p))

    assert store.count(RESULTS) == 0
    store.add_result({"name": "Bob"})
    assert json.loads(p.read_text(encoding="utf-8"))[RESULTS]


def test_failed_save_drops_cache(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    p = tmp_path / "store.json"
    store = MatchStore(str(p))
    store.add_result({"name": "Bob"})

    def boom(*_a, **_kw):
        raise OSError("disk full")

    monkeypatch.setattr("flbot.match_store.os.replace", boom)
    with pytest.raises(OSError):
        store.add_result({"name": "Carol"})
    monkeypatch.undo()

    # the unsaved insert is gone once the file is re-read
    assert store.count(RESULTS) == 1
