from __future__ import annotations

import importlib
import sys
from pathlib import Path

from dotenv import load_dotenv

SRC_DIR = Path(__file__).resolve().parents[1] / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from smart_attendance.config import get_settings_module
from smart_attendance.container import MONGO, build_container
from smart_attendance.database.bootstrap import apply_schema, list_tables


def main() -> None:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    container = build_container(settings)

    if container.backend == MONGO:
        container.store.ensure_indexes()
        print(f"OK: indexes ready -> {settings.MONGO_DB}")
        return

    conn = container.store
    apply_schema(conn)
    tables = list_tables(conn)
    cfg = conn.config
    print(f"OK: applied schema.sql -> {cfg.user}@{cfg.host}:{cfg.port}/{cfg.database} (tables={len(tables)})")


if __name__ == "__main__":
    main()
