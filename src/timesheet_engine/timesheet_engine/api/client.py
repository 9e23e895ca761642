from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

import requests

from ..core.exceptions import ApiError

logger = logging.getLogger(__name__)

QUERY_PATH = "/api/queryfields"
UPDATE_FIELDS_PATH = "/api/updatefields"

# Backend int status values of records a query should return (active, draft, locked).
DEFAULT_INT_STATUS = (0, 1, 2)


@dataclass
class ApiConfig:
    base_url: str
    client: str
    user_id: str
    language: str = "en"
    timeout: float = 30
    test_mode: bool = False
    headers: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class QueryFilter:
    field_name: str
    operator: str
    value: Any

    def as_dict(self) -> dict:
        return {"fieldName": self.field_name, "operator": self.operator, "value": self.value}


class ApiClient:
    """Thin client for the business-object query/update endpoints.

    Note: One requests.Session per client; connections are pooled by requests.
    """

    _instance: Optional["ApiClient"] = None

    def __init__(self, config: ApiConfig, *, session: Optional[requests.Session] = None):
        self._config = config
        self._session = session or requests.Session()
        if config.headers:
            self._session.headers.update(config.headers)

    @classmethod
    def get_instance(cls, config: ApiConfig) -> "ApiClient":
        if cls._instance is None:
            cls._instance = ApiClient(config)
        return cls._instance

    @property
    def config(self) -> ApiConfig:
        return self._config

    def query(
        self,
        fields: Sequence[str],
        where: Sequence[QueryFilter] = (),
        *,
        int_status: Sequence[int] = DEFAULT_INT_STATUS,
        sort: Optional[Sequence[dict]] = None,
    ) -> list[dict]:
        """Rows of a field query; raises ApiError when the backend reports failure."""
        query: dict[str, Any] = {"fields": list(fields), "where": [w.as_dict() for w in where]}
        if sort:
            query["sort"] = list(sort)
        form = {
            "query": json.dumps(query),
            "testMode": json.dumps(self._config.test_mode),
            "client": self._config.client,
            "user": self._config.user_id,
            "userID": self._config.user_id,
            "language": self._config.language,
            "intStatus": json.dumps(list(int_status)),
        }
        body = self._post(QUERY_PATH, data=form)
        rows = body.get("data") or []
        if not isinstance(rows, list):
            raise ApiError(f"Unexpected query result: {type(rows).__name__}")
        logger.debug("Query %s returned %d row(s)", list(fields)[:1], len(rows))
        return rows

    def update_fields(self, payload: dict) -> tuple[bool, Optional[str]]:
        """Post a partial update; returns (success, first message text)."""
        body = self._post(
            UPDATE_FIELDS_PATH,
            json=payload,
            params={"client": self._config.client, "user": self._config.user_id},
            raise_on_failure=False,
        )
        return bool(body.get("success")), _message_text(body)

    def _post(self, path: str, *, raise_on_failure: bool = True, **kwargs) -> dict:
        url = self._config.base_url.rstrip("/") + path
        try:
            response = self._session.post(url, timeout=self._config.timeout, **kwargs)
            response.raise_for_status()
        except requests.exceptions.RequestException as exc:
            raise ApiError(f"Request to {path} failed: {exc}") from exc

        try:
            body = response.json() if response.content else {}
        except ValueError as exc:
            raise ApiError(f"Invalid JSON from {path}") from exc

        if raise_on_failure and body.get("success") is False:
            raise ApiError(_error_text(body))
        return body


def _message_text(body: dict) -> Optional[str]:
    try:
        return body["details"][0]["messages"][0]["message_text"]
    except (KeyError, IndexError, TypeError):
        return body.get("errorMessage")


def _error_text(body: dict) -> str:
    message = str(body.get("errorMessage") or "Request failed")
    if body.get("errorCode"):
        message += f" | Code: {body['errorCode']}"
    if body.get("errorDetail"):
        message += f" | Detail: {body['errorDetail']}"
    return message
