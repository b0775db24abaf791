"""
Tests for CSV export.
"""
import csv
import io
import json
from datetime import date

from export import CSV_HEADER, export_csv, export_filename
from tests.fakes import make_session


def test_header_only_without_sessions():
    assert export_csv([]) == "ID,Date,Time,Tool,Duration (ms),Duration (formatted),Metadata"


def test_row_values_are_quoted():
    session = make_session("stopwatch", "2024-03-05T09:00:00Z", 5000, id="abc")

    lines = export_csv([session]).split("\n")

    assert lines[1] == '"abc","2024-03-05","09:00:00","stopwatch","5000","0:00:05","{}"'


def test_embedded_quotes_are_doubled():
    session = make_session("chess", "2024-03-05T09:00:00Z", 600_000,
                           {"result": 'He said "hi"'}, id='id "quoted"')

    row_line = export_csv([session]).split("\n")[1]

    assert row_line.startswith('"id ""quoted""",')
    assert row_line.endswith('"{""result"":""He said \\""hi\\""""}"')


def test_rows_parse_back():
    sessions = [
        make_session("countdown", "2024-03-05T10:00:00Z", 61_000,
                     {"completed": True, "pauses": 1, "target_duration": 60_000}, id="c1"),
        make_session("stopwatch", "2024-03-05T09:00:00Z", 5000, id="s1"),
    ]

    rows = list(csv.reader(io.StringIO(export_csv(sessions))))

    assert rows[0] == CSV_HEADER
    assert [r[0] for r in rows[1:]] == ["c1", "s1"]
    assert rows[1][5] == "0:01:01"
    assert json.loads(rows[1][6]) == {"completed": True, "pauses": 1, "target_duration": 60_000}


def test_filename():
    assert export_filename("timer_data", "laptimer", date(2024, 3, 5)) == "timer_data_laptimer_2024-03-05.csv"
