from __future__ import annotations

from dataclasses import dataclass
from datetime import tzinfo
from typing import Optional, Sequence

from .api.client import ApiClient, ApiConfig
from .calendar.http_profile_repository import HttpEmployeeProfileRepository
from .core.constants import DEFAULT_PERIOD_DAYS, DEFAULT_PREFERRED_LANGUAGES
from .timesheets.http_timesheet_repository import HttpTimesheetRepository
from .timesheets.overtime.time_type_classifier import TimeTypeOvertimeClassifier
from .timesheets.service import TimesheetService


@dataclass(frozen=True)
class Container:
    client: ApiClient

    timesheets_repo: HttpTimesheetRepository
    profiles_repo: HttpEmployeeProfileRepository

    timesheet_service: TimesheetService


def build_container(
    *,
    api_config: dict,
    default_period_days: int = DEFAULT_PERIOD_DAYS,
    preferred_languages: Sequence[str] = DEFAULT_PREFERRED_LANGUAGES,
    tz: Optional[tzinfo] = None,
) -> Container:
    config = ApiConfig(
        base_url=str(api_config["base_url"]),
        client=str(api_config["client"]),
        user_id=str(api_config["user_id"]),
        language=str(api_config.get("language", "en")),
        timeout=float(api_config.get("timeout", 30)),
        test_mode=bool(api_config.get("test_mode", False)),
        headers=dict(api_config.get("headers") or {}),
    )
    client = ApiClient.get_instance(config)

    timesheets_repo = HttpTimesheetRepository(client, default_period_days=default_period_days)
    profiles_repo = HttpEmployeeProfileRepository(client)

    timesheet_service = TimesheetService(
        timesheets_repo,
        profiles_repo,
        language=config.language,
        preferred_languages=preferred_languages,
        default_period_days=default_period_days,
        tz=tz,
        classifier=TimeTypeOvertimeClassifier(),
    )

    return Container(
        client=client,
        timesheets_repo=timesheets_repo,
        profiles_repo=profiles_repo,
        timesheet_service=timesheet_service,
    )
