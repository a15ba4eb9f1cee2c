from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .analytics.controller import register as register_analytics
from .approvals.controller import register as register_approvals
from .attendance.controller import register as register_attendance
from .common.http import render_domain_error
from .container import Container, build_container
from .core.constants import DEFAULT_ANALYTICS_WORKERS, DEFAULT_LEGACY_TIMEZONE
from .core.exceptions import DomainError
from .database.bootstrap import apply_schema, list_tables
from .holidays.controller import register as register_holidays

logger = logging.getLogger(__name__)


def create_app(container: Optional[Container] = None) -> Flask:
    """Build the app; tests may pass a ready container to skip MySQL wiring."""

    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    logging.basicConfig(
        level=getattr(settings, "LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app.secret_key = getattr(settings, "SECRET_KEY")
    db_config = getattr(settings, "DB_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    logger.info(
        "settings=%s db=%s@%s:%s/%s",
        settings_module,
        db_config.get("user"),
        db_config.get("host"),
        db_config.get("port", 3306),
        db_config.get("database"),
    )

    if bool(getattr(settings, "AUTO_INIT_DB", False)):
        schema_path = Path(__file__).resolve().parents[3] / "database" / "schema.sql"
        apply_schema(db_config, schema_path=schema_path)
        logger.info("Schema ready (tables=%s)", len(list_tables(db_config)))

    if container is None:
        container = build_container(
            db_config=db_config,
            legacy_timezone=getattr(settings, "LEGACY_TIMEZONE", DEFAULT_LEGACY_TIMEZONE),
            analytics_max_workers=int(getattr(settings, "ANALYTICS_MAX_WORKERS", DEFAULT_ANALYTICS_WORKERS)),
            od_request_priority=getattr(settings, "OD_REQUEST_PRIORITY", "medium"),
        )
    app.extensions["class_attendance"] = container

    app.register_error_handler(DomainError, render_domain_error)

    register_attendance(app, container)
    register_holidays(app, container)
    register_approvals(app, container)
    register_analytics(app, container)

    return app
