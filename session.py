"""
Provenance session — registered actions, JSON-lines log and replay.

Every interaction (slider change, point added/moved/deleted, clear) is a
named action applied to a small state dict and appended to the log. Replaying
the log through the same reducers rebuilds the state, and because the
generator is a pure function of (seed, params), the same stimulus.
"""

from __future__ import annotations

import copy
import json
import time
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Callable, Optional

from config import settings

Reducer = Callable[[dict[str, Any], Any], dict[str, Any]]


def _slider_change(state: dict[str, Any], value: Any) -> dict[str, Any]:
    state["correlation_strength"] = float(value)
    return state


def _add_point(state: dict[str, Any], point: Any) -> dict[str, Any]:
    state["user_points"] = [*state.get("user_points", []), dict(point)]
    return state


def _delete_point(state: dict[str, Any], index: Any) -> dict[str, Any]:
    points = list(state.get("user_points", []))
    if 0 <= int(index) < len(points):
        del points[int(index)]
    state["user_points"] = points
    return state


def _move_point(state: dict[str, Any], payload: Any) -> dict[str, Any]:
    points = list(state.get("user_points", []))
    index = int(payload["index"])
    if 0 <= index < len(points):
        points[index] = {"x": payload["x"], "y": payload["y"]}
    state["user_points"] = points
    return state


def _undo_point(state: dict[str, Any], _: Any) -> dict[str, Any]:
    state["user_points"] = list(state.get("user_points", []))[:-1]
    return state


def _clear_points(state: dict[str, Any], _: Any) -> dict[str, Any]:
    state["user_points"] = []
    return state


ACTIONS: dict[str, Reducer] = {
    "slider_change": _slider_change,
    "add_point": _add_point,
    "delete_point": _delete_point,
    "move_point": _move_point,
    "undo_point": _undo_point,
    "clear_points": _clear_points,
}


def initial_state(correlation_strength: float = 0.8) -> dict[str, Any]:
    return {"correlation_strength": correlation_strength, "user_points": []}


@dataclass
class ActionRecord:
    """A single recorded interaction."""
    step_id: int
    timestamp: float
    label: str
    action: str
    payload: Any = None


@dataclass
class Session:
    """Provenance session with full action history."""
    session_id: str
    started_at: float = field(default_factory=time.time)
    initial: dict[str, Any] = field(default_factory=initial_state)
    steps: list[ActionRecord] = field(default_factory=list)
    state: dict[str, Any] = field(default=None)
    persist: bool = True

    def __post_init__(self):
        if self.state is None:
            self.state = copy.deepcopy(self.initial)

    @property
    def log_path(self) -> Path:
        return settings.SESSIONS_DIR / f"{self.session_id}.jsonl"

    @property
    def summary_path(self) -> Path:
        return settings.SESSIONS_DIR / f"{self.session_id}_summary.json"

    @property
    def provenance_state(self) -> dict[str, Any]:
        return copy.deepcopy(self.state)

    def apply(self, label: str, action: str, payload: Any = None) -> dict[str, Any]:
        """
        Apply a registered action, record it, and return the new state.

        Raises:
            KeyError: if the action is not registered.
        """
        reducer = ACTIONS[action]
        self.state = reducer(copy.deepcopy(self.state), payload)
        step = ActionRecord(
            step_id=self.next_step_id(),
            timestamp=time.time(),
            label=label,
            action=action,
            payload=payload,
        )
        self.steps.append(step)
        if self.persist:
            self._append_to_log(step)
        return self.provenance_state

    def _append_to_log(self, step: ActionRecord) -> None:
        """Append a single step to the JSONL log."""
        settings.SESSIONS_DIR.mkdir(parents=True, exist_ok=True)
        with open(self.log_path, "a", encoding="utf-8") as f:
            f.write(json.dumps(asdict(step), default=str) + "\n")

    def graph(self) -> dict[str, Any]:
        """Serializable action history handed to the study runner."""
        return {
            "session_id": self.session_id,
            "initial_state": self.initial,
            "actions": [asdict(s) for s in self.steps],
            "current_state": self.state,
        }

    def save_summary(self) -> None:
        """Save a full session summary as JSON."""
        summary = {
            "session_id": self.session_id,
            "started_at": self.started_at,
            "total_steps": len(self.steps),
            "final_state": self.state,
            "action_counts": self._count_actions(),
        }
        settings.SESSIONS_DIR.mkdir(parents=True, exist_ok=True)
        with open(self.summary_path, "w", encoding="utf-8") as f:
            json.dump(summary, f, indent=2, default=str)

    def _count_actions(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for step in self.steps:
            counts[step.action] = counts.get(step.action, 0) + 1
        return counts

    @classmethod
    def replay(
        cls,
        session_id: str,
        records: list[ActionRecord],
        initial: Optional[dict[str, Any]] = None,
    ) -> Session:
        """Rebuild a session by re-applying recorded actions in order."""
        session = cls(
            session_id=session_id,
            initial=copy.deepcopy(initial) if initial is not None else initial_state(),
            persist=False,
        )
        for record in records:
            session.state = ACTIONS[record.action](copy.deepcopy(session.state), record.payload)
            session.steps.append(record)
        session.persist = True
        return session

    @classmethod
    def load(cls, session_id: str, initial: Optional[dict[str, Any]] = None) -> Session:
        """Load a session from its JSONL log and replay it."""
        log_path = settings.SESSIONS_DIR / f"{session_id}.jsonl"
        records: list[ActionRecord] = []
        if log_path.exists():
            with open(log_path, "r", encoding="utf-8") as f:
                for line in f:
                    if line.strip():
                        records.append(ActionRecord(**json.loads(line)))
        return cls.replay(session_id, records, initial)

    def next_step_id(self) -> int:
        return len(self.steps) + 1


def build_answer(
    session: Session,
    taskid: str,
    answers: Optional[dict[str, Any]] = None,
) -> dict[str, Any]:
    """Answer blob for the host's set_answer sink."""
    return {
        "status": True,
        "provenanceGraph": session.graph(),
        "answers": {taskid: json.dumps(answers)} if answers else {},
    }
