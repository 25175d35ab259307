from __future__ import annotations

import importlib

from dotenv import load_dotenv

from attendance_tracker.common.datetime_utils import now_local
from attendance_tracker.config import get_settings_module
from attendance_tracker.container import build_container
from attendance_tracker.database.bootstrap import seed_demo_data


def main() -> None:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)

    container = build_container(db_config=db_config)
    seeded = seed_demo_data(container, today=now_local().date())

    target = f"{db_config.get('user')}@{db_config.get('host')}:{db_config.get('port', 3306)}/{db_config.get('database')}"
    if seeded:
        print(f"OK: Seeded database -> {target}")
    else:
        print(f"SKIP: {target} already has users")


if __name__ == "__main__":
    main()
