from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Dict, List


def make_client(http_base: str | None):
    if http_base:
        import httpx

        class HttpClient:
            def __init__(self, base: str):
                self.base = base.rstrip("/")
                self.sess = httpx.Client(timeout=30.0)

            def get(self, path: str):
                return self.sess.get(self.base + path)

            def post(self, path: str, json=None):
                return self.sess.post(self.base + path, json=json)

        return HttpClient(http_base)
    else:
        # In-process client
        ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
        SRC = os.path.join(ROOT, "src")
        if SRC not in sys.path:
            sys.path.insert(0, SRC)
        from fastapi.testclient import TestClient
        from scorekeeper.serve.api import app

        return TestClient(app)


def _check(r, what: str) -> Dict:
    body = r.json()
    if r.status_code >= 400:
        raise SystemExit(f"{what} failed ({r.status_code}): {body.get('rule', body)}")
    return body


def drive_one_pa(client, match_id: str, batter: str, pitcher: str, pitches: List[str], result: str | None,
                 answers: List[str], runners: List[str]) -> Dict:
    base = f"/v1/matches/{match_id}"
    _check(client.post(f"{base}/pa", json={"batter_id": batter, "pitcher_id": pitcher}), "open")
    for p in pitches:
        t = _check(client.post(f"{base}/pa/pitch", json={"location": {"x": 130, "y": 160}, "result": p}), "pitch")
        c = t["count"]
        print(f"  {p:<9} -> {c['balls']}-{c['strikes']} ({t['kind']})")
    if result:
        _check(client.post(f"{base}/pa/result", json={"result": result}), "result")
    for a in answers:
        step, _, value = a.partition("=")
        _check(client.post(f"{base}/pa/answer", json={"step": step, "value": value}), f"answer {step}")
    for move in runners:
        origin, _, target = move.partition(":")
        target, _, fielders = target.partition("@")
        body = {"from_base": origin, "target": target}
        if fielders:
            thrower, _, putout = fielders.rpartition("-")
            body["putting_out_position"] = putout
            if thrower:
                body["throwing_position"] = thrower
        _check(client.post(f"{base}/pa/runners", json=body), f"runner {origin}")
    return _check(client.post(f"{base}/pa/commit"), "commit")


def main() -> int:
    ap = argparse.ArgumentParser(description="Score one plate appearance against the scoring service")
    ap.add_argument("--http", default=None, help="Base URL of a running service (default: in-process)")
    ap.add_argument("--match", default="DRIVE-1")
    ap.add_argument("--batter", default="B1")
    ap.add_argument("--pitcher", default="P1")
    ap.add_argument("--pitches", default="ball,looking,inplay", help="Comma-separated pitch results")
    ap.add_argument("--result", default="groundout")
    ap.add_argument("--answer", action="append", default=[], help="step=value, repeatable (e.g. bat_type=ground)")
    ap.add_argument("--runner", action="append", default=[], help="origin:target[@thrower-putout], repeatable")
    args = ap.parse_args()

    client = make_client(args.http)
    r = client.post("/v1/matches", json={"match_id": args.match, "status": "PLAYING"})
    if r.status_code >= 400:
        print(f"match {args.match}: {r.json().get('rule')}")

    answers = args.answer or ["bat_type=ground", "fielding_position=6", "outs_after=1"]
    record = drive_one_pa(
        client,
        args.match,
        args.batter,
        args.pitcher,
        [p.strip() for p in args.pitches.split(",") if p.strip()],
        args.result,
        answers,
        args.runner,
    )
    print(json.dumps(record, indent=2))
    state = _check(client.get(f"/v1/matches/{args.match}/state"), "state")
    print(f"inning {state['inning']} {state['half']}, {state['outs']} out, score {state['score_total']}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
