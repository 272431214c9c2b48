import pytest

from flbot import act_parser
from flbot.act_parser import coerce_float, coerce_int, parse, parse_outcome

from helpers import HEADER, act_log, act_row


def test_parse_basic_typed_fields():
    log = act_log(act_row("Bob", ally="T", job="WHM", damage=2000, kills=3, dps="33.3", overheal="12.5%"))
    records = parse(log)

    assert list(records) == ["Bob"]
    bob = records["Bob"]
    assert bob.name == "Bob"
    assert bob.job == "WHM"
    assert bob.ally == "T"
    assert bob.encid == "abc123"
    assert bob.damage == 2000
    assert bob.kills == 3
    assert bob.dps == pytest.approx(33.3)
    assert bob.overhealpct == pytest.approx(12.5)
    assert bob.rank == "N/A"
    assert bob.team == "N/A"


def test_unknown_columns_are_kept_lowercased():
    log = act_log(act_row("Bob", extra="  Frontline  "))
    bob = parse(log)["Bob"]
    assert bob.extra == {"class": "Frontline"}
    doc = bob.to_document()
    assert doc["class"] == "Frontline"
    assert "Class" not in doc


def test_parse_is_idempotent():
    log = act_log(act_row("YOU", damage=4000), act_row("Alice", ally="F", job="BLM", damage=9000))
    assert parse(log) == parse(log)


def test_duplicate_name_last_row_wins():
    first = act_row("Bob", job="WHM", damage=100, kills=1)
    second = act_row("Bob", job="SCH", damage=900, kills=7, deaths=2)
    records = parse(act_log(first, second))

    assert len(records) == 1
    assert records["Bob"] == parse(act_log(second))["Bob"]


@pytest.mark.parametrize("missing", ["Name", "Job", "Damage"])
def test_missing_required_header_yields_empty(missing):
    header = ",".join(c for c in HEADER.split(",") if c != missing)
    cells = act_row("Bob").split(",")
    idx = HEADER.split(",").index(missing)
    row = ",".join(c for i, c in enumerate(cells) if i != idx)

    assert parse(act_log(row, header=header)) == {}
    outcome = parse_outcome(act_log(row, header=header))
    assert outcome.status == "failed"
    assert missing in (outcome.reason or "")


def test_placeholder_and_percent_coercion():
    log = act_log(act_row("Bob", kills="--", overheal="45%-"))
    bob = parse(log)["Bob"]
    assert bob.kills == 0
    assert isinstance(bob.overhealpct, float)
    assert bob.overhealpct == 45.0


def test_skips_limit_break_and_incomplete_rows():
    log = act_log(
        act_row("Limit Break", job="LB", damage=50000, duration=900),
        act_row("", job="WAR"),
        act_row("Ghost", job=""),
        act_row("Bob", job="WHM", duration=600),
    )
    outcome = parse_outcome(log)
    assert list(outcome.records) == ["Bob"]
    # skipped rows still count for the match duration
    assert max(outcome.durations) == 900


def test_placeholder_name_is_treated_as_missing():
    assert parse(act_log(act_row("--"))) == {}


def test_ragged_row_fails_closed():
    log = act_log(act_row("Bob"), "x,T,Carol,PLD,600")
    outcome = parse_outcome(log)
    assert outcome.status == "failed"
    assert outcome.records == {}
    assert parse(log) == {}


def test_unterminated_quote_fails():
    outcome = parse_outcome('Name,Job,Damage\n"Bob,WHM,100\n')
    assert outcome.status == "failed"


def test_empty_inputs():
    assert parse_outcome("").status == "empty"
    assert parse_outcome("   \n").status == "empty"
    assert parse_outcome(None).status == "empty"
    # header only
    assert parse_outcome(HEADER + "\n").status == "empty"


def test_bom_and_blank_lines_ignored():
    log = "\ufeff" + HEADER + "\n\n" + act_row("Bob") + "\n\n"
    assert list(parse(log)) == ["Bob"]


def test_minimal_header_defaults_numeric_fields():
    bob = parse("Name,Job,Damage\nBob,WHM,250\n")["Bob"]
    assert bob.damage == 250
    assert bob.kills == 0
    assert bob.dps == 0.0
    assert bob.ally == ""


def test_raw_durations_only_positive():
    log = act_log(act_row("A", duration=0), act_row("B", duration="--"), act_row("C", duration=432))
    assert act_parser.raw_durations(log) == [432]


@pytest.mark.parametrize(
    "raw, expected",
    [("12", 12), ("12.9", 12), (" 7 ", 7), ("1,234", 1), ("abc", 0), ("", 0), (None, 0), ("-3", -3)],
)
def test_coerce_int(raw, expected):
    assert coerce_int(raw) == expected


@pytest.mark.parametrize(
    "raw, expected",
    [("45%", 45.0), ("45%-", 45.0), ("-12.5", 12.5), ("0.75", 0.75), ("--", 0.0), ("n/a", 0.0), (None, 0.0)],
)
def test_coerce_float(raw, expected):
    assert coerce_float(raw) == expected


def test_name_cell_kept_as_written():
    log = "Name,Job,Damage\n Bob ,WHM,100\n  --  ,WAR,50\n Limit Break ,LB,900\n"
    records = parse(log)
    assert list(records) == [" Bob "]
    assert records[" Bob "].name == " Bob "
