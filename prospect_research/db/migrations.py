"""Schema upgrades for the prospect store.

Scripts are named ``NNN_description.sql``; the number is the schema version
the script produces. The store's ``PRAGMA user_version`` records the last one
applied, so no bookkeeping table is needed.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from prospect_research.db.database import Database

logger = logging.getLogger(__name__)

SQL_DIR = Path(__file__).parent / "sql"

_SCRIPT_NAME = re.compile(r"^(\d+)_\w+\.sql$")


def pending_scripts(sql_dir: Path, current: int) -> list[tuple[int, Path]]:
    scripts = []
    for path in sql_dir.glob("*.sql"):
        m = _SCRIPT_NAME.match(path.name)
        if not m:
            logger.warning("Ignoring schema script with no version prefix: %s", path.name)
            continue
        version = int(m.group(1))
        if version > current:
            scripts.append((version, path))
    return sorted(scripts)


def run_migrations(db: Database, sql_dir: Path = SQL_DIR) -> list[str]:
    """Bring the store up to the newest script; returns the script names applied."""
    applied: list[str] = []
    for version, path in pending_scripts(sql_dir, db.schema_version()):
        logger.info("Upgrading prospect store to v%d (%s)", version, path.name)
        db.apply_script(path.read_text(encoding="utf-8"), version)
        applied.append(path.name)
    return applied
