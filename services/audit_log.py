import json
import sqlite3
from typing import Any, Dict, List, Optional


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, ensure_ascii=True, sort_keys=True)
    return str(value)


def record_event(
    con: sqlite3.Connection,
    *,
    actor: str,
    action_type: str,
    entity_type: str,
    entity_id: str,
    old_value: Any,
    new_value: Any,
    note: Optional[str] = None,
) -> int:
    cur = con.execute(
        """
        INSERT INTO audit_events (
            actor,
            action_type,
            entity_type,
            entity_id,
            old_value,
            new_value,
            note
        ) VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        (
            str(actor or "").strip() or "unknown",
            str(action_type or "").strip(),
            str(entity_type or "").strip(),
            str(entity_id),
            _stringify(old_value),
            _stringify(new_value),
            str(note or "")[:1000],
        ),
    )
    con.commit()
    return int(cur.lastrowid)


def recent_events(con: sqlite3.Connection, entity_id: str, limit: int = 20) -> List[Dict[str, Any]]:
    rows = con.execute(
        "SELECT * FROM audit_events WHERE entity_id = ? ORDER BY id DESC LIMIT ?",
        (str(entity_id), int(limit)),
    ).fetchall()
    return [dict(r) for r in rows]
