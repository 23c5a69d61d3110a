from __future__ import annotations

import json
from fastapi.testclient import TestClient
import os, sys

# Ensure 'src' is importable regardless of CWD
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
SRC = os.path.join(ROOT, 'src')
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from scorekeeper.serve.api import app


def main() -> int:
    client = TestClient(app)

    r = client.get("/health")
    print("/health:", r.status_code, r.json())

    mid = "SMOKE-1"
    client.post("/v1/matches", json={"match_id": mid, "status": "PLAYING"})
    client.post(f"/v1/matches/{mid}/pa", json={"batter_id": "B1", "pitcher_id": "P1"})

    # Three-pitch strikeout
    for result in ("looking", "foul", "swing"):
        r = client.post(
            f"/v1/matches/{mid}/pa/pitch",
            json={"location": {"x": 130, "y": 160}, "pitch_type": "rise", "result": result},
        )
        print("/pa/pitch:", r.status_code, r.json()["kind"], r.json()["count"])

    r = client.post(f"/v1/matches/{mid}/pa/commit")
    print("/pa/commit:", r.status_code)
    print(json.dumps(r.json(), indent=2))

    r = client.get(f"/v1/matches/{mid}/state")
    print("/state:", r.status_code)
    print(json.dumps(r.json(), indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
