from typing import Literal, Optional

from pydantic import BaseModel
import yaml

class Settings(BaseModel):
    host: str
    port: int
    store_backend: Literal["memory", "json"]
    store_path: Optional[str]
    lineup_size: int
    innings: int
    roster_path: Optional[str]
    play_log_path: Optional[str]

def load_settings(path: str = "config/settings.example.yaml") -> Settings:
    with open(path, "r") as f:
        y = yaml.safe_load(f) or {}
    s = y.get("service", {})
    st = y.get("store", {})
    g = y.get("game", {})
    r = y.get("roster", {})
    t = y.get("telemetry", {})
    return Settings(
        host=s.get("host", "0.0.0.0"),
        port=s.get("port", 8000),
        store_backend=st.get("backend", "memory"),
        store_path=st.get("path"),
        lineup_size=g.get("lineup_size", 9),
        innings=g.get("innings", 7),
        roster_path=r.get("path"),
        play_log_path=t.get("play_log_path"),
    )
