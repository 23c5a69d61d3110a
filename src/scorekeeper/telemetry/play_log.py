from __future__ import annotations

import csv
import logging
import os
from pathlib import Path
from typing import Optional

from ..schemas import PlayRecord

_LOGGER = logging.getLogger(__name__)

FIELDS = [
    "ts",
    "match_id",
    "index",
    "inning",
    "half",
    "batter_id",
    "pitcher_id",
    "result",
    "summary",
    "pitches",
    "outs_before",
    "outs_after",
    "runs",
    "rbi",
]


def maybe_log_play(record: PlayRecord, path: Optional[str] = None) -> None:
    """Append one CSV line per committed play if enabled.

    Enable by setting env var PLAY_LOG_ENABLE=1. Optional PLAY_LOG_PATH overrides path.
    Default path: artifacts/play_log.csv (created if missing).
    """
    try:
        if os.environ.get("PLAY_LOG_ENABLE", "0") not in {"1", "true", "TRUE", "yes", "YES"}:
            return
        path = os.environ.get("PLAY_LOG_PATH") or path
        if not path:
            root = Path(__file__).resolve().parents[3]
            path = str(root / "artifacts" / "play_log.csv")
        p = Path(path)
        p.parent.mkdir(parents=True, exist_ok=True)
        row = {
            "ts": record.committed_at,
            "match_id": record.match_id,
            "index": record.index,
            "inning": record.inning,
            "half": record.half,
            "batter_id": record.batter_id,
            "pitcher_id": record.pitcher_id,
            "result": record.batting_result,
            "summary": record.summary,
            "pitches": len(record.pitches),
            "outs_before": record.outs_before,
            "outs_after": record.outs_after,
            "runs": len(record.scored_runner_ids),
            "rbi": record.rbi,
        }
        header_written = p.exists()
        with p.open("a", newline="", encoding="utf-8") as f:
            w = csv.DictWriter(f, fieldnames=FIELDS)
            if not header_written:
                w.writeheader()
            w.writerow(row)
    except Exception:
        # Telemetry is best-effort and never breaks a commit
        _LOGGER.debug("play log write failed", exc_info=True)
