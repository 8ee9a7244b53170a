from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Optional

from burbar_admin.config import get_db_path as _resolved_db_path


def get_db_path() -> Path:
    return _resolved_db_path()


def get_conn(path: Optional[Path] = None) -> sqlite3.Connection:
    """Open the process-wide store handle.

    The same connection serves the FastAPI worker threads and the MCP
    worker thread, so thread affinity checks are disabled.
    """
    db_path = Path(path) if path else get_db_path()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    con = sqlite3.connect(db_path, check_same_thread=False)
    con.row_factory = sqlite3.Row
    con.execute("PRAGMA journal_mode=WAL;")
    con.execute("PRAGMA foreign_keys=ON;")
    return con
