"""Using the service layer directly, without Flask.

Opens a session on the timesheet covering today and prints its totals.
"""

import importlib
import sys
from datetime import date

from config import get_settings_module

from src.timesheet_engine.timesheet_engine.container import build_container


def main(employee_id: str):
    settings = importlib.import_module(get_settings_module())
    container = build_container(api_config=settings.API_CONFIG, default_period_days=settings.DEFAULT_PERIOD_DAYS)
    service = container.timesheet_service

    session_id = service.open_session(employee_id=employee_id, day=date.today())
    print(service.header_ui(session_id))
    print(service.aggregates_ui(session_id))
    print(service.pivot_ui(session_id)["rows"])


if __name__ == "__main__":
    main(sys.argv[1] if len(sys.argv) > 1 else "E1")
