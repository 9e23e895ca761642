from __future__ import annotations

import importlib
import logging
from typing import Optional
from zoneinfo import ZoneInfo

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .container import Container, build_container
from .timesheets.controller import register as register_timesheets

logger = logging.getLogger(__name__)


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    api_config = getattr(settings, "API_CONFIG")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    logging.basicConfig(
        level=getattr(settings, "LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logger.info("settings=%s api=%s client=%s", settings_module, api_config.get("base_url"), api_config.get("client"))

    if container is None:
        tz_name = getattr(settings, "TIMEZONE", "")
        container = build_container(
            api_config=api_config,
            default_period_days=int(getattr(settings, "DEFAULT_PERIOD_DAYS", 7)),
            preferred_languages=tuple(getattr(settings, "PREFERRED_LANGUAGES", ("en",))),
            tz=ZoneInfo(tz_name) if tz_name else None,
        )

    register_timesheets(app, container)

    return app
