from __future__ import annotations

import importlib
import logging
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from .attendance.controller import register as register_attendance
from .common.datetime_utils import now_local
from .common.http import CONTAINER_KEY, register_error_handlers
from .config import get_settings_module
from .container import Container, build_container
from .database.bootstrap import apply_schema, run_startup_housekeeping, seed_demo_data
from .leaves.controller import register as register_leaves
from .users.controller import register as register_users

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str) -> None:
    logging.basicConfig(level=getattr(logging, str(level).upper(), logging.INFO), format=LOG_FORMAT)


def create_app(container: Optional[Container] = None, *, settings_module: Optional[str] = None) -> Flask:
    """Application factory.

    With an explicit ``container`` no database is touched at startup; tests
    pass one wired with in-memory repositories.
    """
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = settings_module or get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))
    app.config["DEFAULT_PAGE_SIZE"] = int(getattr(settings, "DEFAULT_PAGE_SIZE", 20))
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))

    if container is None:
        db_config = getattr(settings, "DB_CONFIG")
        logger.info(
            "settings=%s db=%s@%s:%s/%s",
            settings_module,
            db_config.get("user"),
            db_config.get("host"),
            db_config.get("port", 3306),
            db_config.get("database"),
        )
        if getattr(settings, "AUTO_INIT_DB", False):
            apply_schema(db_config)

        container = build_container(
            db_config=db_config,
            stamp_absent_check_in=bool(getattr(settings, "STAMP_ABSENT_CHECK_IN", False)),
        )
        run_startup_housekeeping(container)
        if getattr(settings, "AUTO_SEED_DB", False):
            seed_demo_data(container, today=now_local().date())

    app.extensions[CONTAINER_KEY] = container
    register_error_handlers(app)

    register_users(app, container)
    register_attendance(app, container)
    register_leaves(app, container)

    return app
