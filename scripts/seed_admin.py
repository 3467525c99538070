"""Create or reset the admin account and load faculty activation codes.

Usage: python scripts/seed_admin.py [CODE ...]
"""

from __future__ import annotations

import importlib
import sys
from pathlib import Path

from dotenv import load_dotenv

SRC_DIR = Path(__file__).resolve().parents[1] / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from smart_attendance.config import get_settings_module
from smart_attendance.container import build_container
from smart_attendance.database.bootstrap import ensure_admin, seed_activation_codes


def main(argv: list[str]) -> int:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    if not settings.ADMIN_PASSWORD:
        print("ADMIN_PASSWORD is not set", file=sys.stderr)
        return 1

    container = build_container(settings)
    user_id = ensure_admin(container.users_repo, email=settings.ADMIN_EMAIL, password=settings.ADMIN_PASSWORD)
    added = seed_activation_codes(container.codes_repo, argv)
    print(f"OK: admin {settings.ADMIN_EMAIL} (id={user_id}), activation codes added={added}")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
