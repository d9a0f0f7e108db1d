"""
Session Serialization

Plain-data (JSON-safe) representation of a draft session, used by the
storage adapters and for diagnostic dumps.

Teams are stored as a list of records and rebuilt into a mapping keyed by
captain id, so integer keys survive JSON and the round trip does not depend
on key order.
"""

from dataclasses import asdict
from datetime import datetime
from typing import Any, Dict, Optional

from ..domain.entities.draft_session import DraftSession, DraftSettings
from ..domain.entities.draft_status import DraftStatus
from ..domain.entities.log_entry import LogEntry, LogEntryType, SkipReason
from ..domain.entities.team import Pick, Team


def _dt(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_dt(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def pick_to_dict(pick: Pick) -> Dict[str, Any]:
    return {
        "player_id": pick.player_id,
        "amount": pick.amount,
        "round": pick.round,
        "pick_number": pick.pick_number,
        "timestamp": _dt(pick.timestamp),
    }


def team_to_dict(team: Team) -> Dict[str, Any]:
    return {
        "captain_id": team.captain_id,
        "budget_remaining": team.budget_remaining,
        "skips_used_for_round": team.skips_used_for_round,
        "players": [pick_to_dict(p) for p in team.players],
    }


def log_entry_to_dict(entry: LogEntry) -> Dict[str, Any]:
    return {
        "entry_type": entry.entry_type.value,
        "captain_id": entry.captain_id,
        "round": entry.round,
        "timestamp": _dt(entry.timestamp),
        "player_id": entry.player_id,
        "amount": entry.amount,
        "reason": entry.reason.value if entry.reason else None,
    }


def session_to_dict(session: DraftSession) -> Dict[str, Any]:
    """Serialize a session to JSON-safe data"""
    return {
        "session_id": session.session_id,
        "arena_id": session.arena_id,
        "manager_id": session.manager_id,
        "settings": asdict(session.settings),
        "status": session.status.value,
        "captains": list(session.captains),
        "teams": [team_to_dict(t) for t in session.teams.values()],
        "current_turn_index": session.current_turn_index,
        "round": session.round,
        "turn_open": session.turn_open,
        "pending_advance": session.pending_advance,
        "log": [log_entry_to_dict(e) for e in session.log],
        "created_at": _dt(session.created_at),
        "completed_at": _dt(session.completed_at),
        "cancel_reason": session.cancel_reason,
    }


def session_from_dict(data: Dict[str, Any]) -> DraftSession:
    """Rebuild a session from serialized data"""
    teams = {}
    for item in data.get("teams", []):
        team = Team(
            captain_id=int(item["captain_id"]),
            budget_remaining=int(item["budget_remaining"]),
            skips_used_for_round=int(item.get("skips_used_for_round", 0)),
        )
        team.players = [
            Pick(
                player_id=int(p["player_id"]),
                amount=int(p["amount"]),
                round=int(p["round"]),
                pick_number=int(p["pick_number"]),
                timestamp=_parse_dt(p["timestamp"]),
            )
            for p in item.get("players", [])
        ]
        teams[team.captain_id] = team

    log = [
        LogEntry(
            entry_type=LogEntryType(e["entry_type"]),
            captain_id=int(e["captain_id"]),
            round=int(e["round"]),
            timestamp=_parse_dt(e["timestamp"]),
            player_id=e.get("player_id"),
            amount=e.get("amount"),
            reason=SkipReason(e["reason"]) if e.get("reason") else None,
        )
        for e in data.get("log", [])
    ]

    return DraftSession(
        session_id=data["session_id"],
        arena_id=int(data["arena_id"]),
        manager_id=int(data["manager_id"]),
        settings=DraftSettings(**data["settings"]),
        status=DraftStatus(data["status"]),
        captains=[int(c) for c in data.get("captains", [])],
        teams=teams,
        current_turn_index=int(data.get("current_turn_index", 0)),
        round=int(data.get("round", 1)),
        turn_open=bool(data.get("turn_open", False)),
        pending_advance=bool(data.get("pending_advance", False)),
        log=log,
        created_at=_parse_dt(data["created_at"]),
        completed_at=_parse_dt(data.get("completed_at")),
        cancel_reason=data.get("cancel_reason"),
    )
