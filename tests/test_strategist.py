import pytest

from flbot.strategist import UNKNOWN_JOB, summarize_strategist


def test_no_records_returns_none():
    assert summarize_strategist("Taro Yamada", []) is None


def test_counts_ranks_and_win_rate():
    docs = [
        {"rank": 1, "dps": 1000.0, "job": "SCH"},
        {"rank": "1", "dps": "2000", "job": "SCH"},
        {"rank": 2, "dps": 600, "job": "WHM"},
        {"rank": "None", "dps": "--", "job": "SCH"},
    ]
    stats = summarize_strategist("Taro Yamada", docs)

    assert stats.name == "Taro Yamada"
    assert stats.total_reports == 4
    assert stats.rank_counts == {1: 2, 2: 1, 3: 0}
    assert stats.wins == 2
    assert stats.win_rate == pytest.approx(50.0)
    # unparsable dps counts as zero but still divides
    assert stats.avg_dps == pytest.approx(900.0)
    assert (stats.most_used_job, stats.most_used_job_count) == ("SCH", 3)


def test_most_used_job_tie_keeps_first_seen():
    docs = [{"rank": 3, "job": "AST"}, {"rank": 3, "job": "SGE"}]
    stats = summarize_strategist("A B", docs)
    assert stats.most_used_job == "AST"
    assert stats.win_rate == 0.0


def test_missing_job_is_unknown():
    stats = summarize_strategist("A B", [{"rank": 1}])
    assert stats.most_used_job == UNKNOWN_JOB
    assert stats.avg_dps == 0.0
