from __future__ import annotations

import copy
import json
import logging
import os
from pathlib import Path
from threading import RLock
from typing import Any, Callable, Dict, List, Optional, Protocol

from ..errors import CollaboratorError, InputValidationError, InvariantViolation, UnknownMatch
from ..schemas import GameState, MatchDocument, MatchStatus, PlayRecord, RunnerEvent, utcnow

_LOGGER = logging.getLogger(__name__)

StateCallback = Callable[[GameState], None]


class DocumentStore(Protocol):
    """Last-write-wins key/value persistence, one JSON-safe document per match."""

    def get(self, key: str) -> Optional[Dict[str, Any]]: ...

    def put(self, key: str, doc: Dict[str, Any]) -> None: ...


class InMemoryDocumentStore:
    def __init__(self) -> None:
        self._docs: Dict[str, Dict[str, Any]] = {}
        self._lock = RLock()

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            doc = self._docs.get(key)
            return copy.deepcopy(doc) if doc is not None else None

    def put(self, key: str, doc: Dict[str, Any]) -> None:
        with self._lock:
            self._docs[key] = copy.deepcopy(doc)


class JsonFileDocumentStore:
    """One ``<match_id>.json`` per match; replaced atomically on every write."""

    def __init__(self, root: str) -> None:
        self.root = Path(root)
        self._lock = RLock()

    def _path(self, key: str) -> Path:
        return self.root / f"{key}.json"

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        p = self._path(key)
        with self._lock:
            if not p.exists():
                return None
            with p.open("r", encoding="utf-8") as fh:
                return json.load(fh)

    def put(self, key: str, doc: Dict[str, Any]) -> None:
        p = self._path(key)
        tmp = p.with_suffix(p.suffix + f".tmp.{os.getpid()}")
        with self._lock:
            p.parent.mkdir(parents=True, exist_ok=True)
            try:
                with tmp.open("w", encoding="utf-8") as fh:
                    json.dump(doc, fh, indent=2)
                    fh.flush()
                    os.fsync(fh.fileno())
                os.replace(tmp, p)
            finally:
                if tmp.exists():
                    tmp.unlink()


class GameStateStore:
    """Authoritative per-match state plus play history.

    Readers always get fresh copies. Subscribers are called after every
    successful write, outside the write path: a failing callback is logged and
    never undoes a commit.
    """

    def __init__(self, backend: Optional[DocumentStore] = None) -> None:
        self.backend: DocumentStore = backend if backend is not None else InMemoryDocumentStore()
        self._subscribers: List[StateCallback] = []
        self._lock = RLock()

    def register(self, match_id: str, status: MatchStatus = "SCHEDULED") -> GameState:
        if self._get(match_id) is not None:
            raise InputValidationError(f"match {match_id} is already registered")
        doc = MatchDocument(state=GameState(match_id=match_id, status=status))
        self.save(doc)
        _LOGGER.info("registered match %s (%s)", match_id, status)
        return doc.state.model_copy(deep=True)

    def _get(self, match_id: str) -> Optional[Dict[str, Any]]:
        try:
            return self.backend.get(match_id)
        except (OSError, ValueError) as e:
            raise CollaboratorError(f"match store unavailable: {e}") from e

    def load(self, match_id: str) -> MatchDocument:
        raw = self._get(match_id)
        if raw is None:
            raise UnknownMatch(f"unknown match: {match_id}")
        return MatchDocument.model_validate(raw)

    def save(self, doc: MatchDocument) -> None:
        """Write state and history together; nothing is applied on failure."""
        payload = doc.model_dump(mode="json", by_alias=True)
        try:
            self.backend.put(doc.state.match_id, payload)
        except OSError as e:
            raise CollaboratorError(f"match store unavailable: {e}") from e
        self._publish(doc.state)

    def snapshot(self, match_id: str) -> GameState:
        return self.load(match_id).state

    def history(self, match_id: str) -> List[PlayRecord]:
        return self.load(match_id).plays

    def runner_events(self, match_id: str) -> List[RunnerEvent]:
        return self.load(match_id).runner_events

    def get_status(self, match_id: str) -> MatchStatus:
        return self.load(match_id).state.status

    def set_status(self, match_id: str, status: MatchStatus) -> GameState:
        doc = self.load(match_id)
        if doc.state.status == "FINISHED" and status != "FINISHED":
            raise InvariantViolation(f"match {match_id} is FINISHED and can no longer change")
        state = doc.state.model_copy(update={"status": status, "last_updated": utcnow()})
        self.save(doc.model_copy(update={"state": state}))
        _LOGGER.info("match %s is now %s", match_id, status)
        return state

    def subscribe(self, callback: StateCallback) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(callback)

        def _unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return _unsubscribe

    def _publish(self, state: GameState) -> None:
        with self._lock:
            callbacks = list(self._subscribers)
        for callback in callbacks:
            try:
                callback(state.model_copy(deep=True))
            except Exception:
                _LOGGER.exception("state subscriber failed for match %s", state.match_id)


def build_store(backend: str = "memory", path: Optional[str] = None) -> GameStateStore:
    if backend == "json":
        return GameStateStore(JsonFileDocumentStore(path or "artifacts/matches"))
    return GameStateStore(InMemoryDocumentStore())
