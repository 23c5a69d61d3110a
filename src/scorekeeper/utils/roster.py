import csv
from pathlib import Path
from typing import Dict, List, Optional

from ..errors import CollaboratorError


class Roster:
    """player_id -> display name and team_id -> players, read-only."""

    def __init__(self, players: Optional[Dict[str, str]] = None, teams: Optional[Dict[str, List[str]]] = None):
        self.players: Dict[str, str] = players or {}
        self.teams: Dict[str, List[str]] = teams or {}

    def __len__(self) -> int:
        return len(self.players)

    def display_name(self, player_id: Optional[str]) -> str:
        if not player_id:
            return ""
        return self.players.get(player_id, player_id)

    def team_players(self, team_id: str) -> List[str]:
        return list(self.teams.get(team_id, []))


def _display(row: Dict[str, str]) -> str:
    name = (row.get("name") or "").strip()
    if name:
        return name
    first = (row.get("first_name") or "").strip()
    last = (row.get("last_name") or "").strip()
    return " ".join(p for p in (first, last) if p)


def load_roster_csv(path: str) -> Roster:
    """
    Load roster.csv (player_id, name or first_name/last_name, team_id).
    A missing file gives an empty roster; an unreadable one is a collaborator failure.
    """
    p = Path(path)
    if not p.exists():
        return Roster()

    players: Dict[str, str] = {}
    teams: Dict[str, List[str]] = {}
    try:
        with p.open(newline="", encoding="utf-8") as f:
            reader = csv.DictReader(f)
            for row in reader:
                pid = (row.get("player_id") or "").strip()
                if not pid:
                    continue
                players[pid] = _display(row) or pid
                team = (row.get("team_id") or "").strip()
                if team:
                    teams.setdefault(team, []).append(pid)
    except (OSError, csv.Error, UnicodeDecodeError) as e:
        raise CollaboratorError(f"roster unavailable: {e}") from e

    return Roster(players, teams)
