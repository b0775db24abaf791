"""CSV export of a filtered session list."""
import csv
import io
import json
from datetime import date
from typing import Sequence

from aggregator import format_duration, session_date, session_time
from models import TimerSession

CSV_HEADER = ["ID", "Date", "Time", "Tool", "Duration (ms)", "Duration (formatted)", "Metadata"]


def export_csv(sessions: Sequence[TimerSession]) -> str:
    """Header line plus one fully quoted row per session; quotes inside values are doubled."""
    out = io.StringIO()
    out.write(",".join(CSV_HEADER) + "\n")
    writer = csv.writer(out, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for s in sessions:
        writer.writerow([
            s.id,
            session_date(s).isoformat(),
            session_time(s),
            s.tool,
            s.duration,
            format_duration(s.duration),
            json.dumps(s.metadata.model_dump(), separators=(",", ":")),
        ])
    return out.getvalue().rstrip("\n")


def export_filename(prefix: str, tool: str, today: date) -> str:
    return f"{prefix}_{tool}_{today.isoformat()}.csv"
