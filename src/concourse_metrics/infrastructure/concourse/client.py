"""
Concourse HTTP client.

Talks to the Concourse ATC REST API with a requests session: password-grant
login, pipeline/job/build listing, build plans and the server-sent build
event stream.
"""

import json
import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import requests
from requests import Response, Session

from concourse_metrics.domain.events import BuildEvent
from concourse_metrics.domain.exceptions import (
    ConcourseAPIError,
    EventPayloadError,
    PlanDecodeError,
)
from concourse_metrics.domain.interfaces import BuildSourceInterface
from concourse_metrics.domain.models import Build

logger = logging.getLogger("concourse_metrics.concourse")

# Public OAuth client the fly CLI registers with every Concourse installation
FLY_CLIENT_ID = "fly"
FLY_CLIENT_SECRET = "Zmx5"
FLY_SCOPES = "openid profile email federated:id groups"

END_OF_STREAM = "end"


@dataclass
class ConcourseClientConfig:
    """Configuration for ConcourseClient.

    This typed config ensures unknown fields are rejected at construction time.
    """

    url: str = "http://localhost:8080"
    team: str = "main"
    username: str = ""
    password: str = ""
    token_path: str = "/sky/issuer/token"
    timeout: float = 30.0
    builds_limit: int | None = None


class ConcourseClient(BuildSourceInterface):
    """Build source backed by the Concourse REST API."""

    config_class = ConcourseClientConfig

    def __init__(
        self,
        config: ConcourseClientConfig | None = None,
        session: Session | None = None,
        **kwargs: Any,
    ):
        """
        Args:
            config: Typed configuration object (preferred)
            session: Pre-configured requests session (tests, proxies)
            **kwargs: Config fields when no config object is given
        """
        if config is None:
            config = ConcourseClientConfig(**kwargs)
        if not config.url:
            raise ValueError("url is required")

        self._config = config
        self.base_url = config.url.rstrip("/")
        self._session: Session = session or requests.Session()

    @property
    def team(self) -> str:
        return self._config.team

    # Authentication ----------------------------------------------------------

    def authenticate(self) -> None:
        """
        Log in with the password grant and keep the bearer token on the session.

        Raises:
            ConcourseAPIError: If the token endpoint refuses the credentials
        """
        url = f"{self.base_url}{self._config.token_path}"
        response = self._request(
            "POST",
            url,
            data={
                "grant_type": "password",
                "username": self._config.username,
                "password": self._config.password,
                "scope": FLY_SCOPES,
            },
            auth=(FLY_CLIENT_ID, FLY_CLIENT_SECRET),
            timeout=self._config.timeout,
        )
        data = self._parse_json(response)
        token = data.get("access_token") if isinstance(data, Mapping) else None
        if not token:
            raise ConcourseAPIError(
                "Token response did not contain an access token",
                status_code=response.status_code,
                url=url,
            )
        self._session.headers["Authorization"] = f"Bearer {token}"
        logger.info("Authenticated to %s as %s", self.base_url, self._config.username)

    # BuildSourceInterface ----------------------------------------------------

    def list_pipelines(self) -> list[str]:
        data = self._get_json(f"/api/v1/teams/{quote(self.team)}/pipelines")
        return self._names(data, "pipeline")

    def list_jobs(self, pipeline_name: str) -> list[str]:
        data = self._get_json(
            f"/api/v1/teams/{quote(self.team)}/pipelines/{quote(pipeline_name)}/jobs"
        )
        return self._names(data, "job")

    def list_job_builds(self, pipeline_name: str, job_name: str) -> list[Build]:
        params = {}
        if self._config.builds_limit:
            params["limit"] = self._config.builds_limit
        data = self._get_json(
            f"/api/v1/teams/{quote(self.team)}/pipelines/{quote(pipeline_name)}"
            f"/jobs/{quote(job_name)}/builds",
            params=params,
        )
        return [self._build(b) for b in data or []]

    def get_build(self, build_id: int) -> Build:
        return self._build(self._get_json(f"/api/v1/builds/{build_id}"))

    def get_build_plan(self, build_id: int) -> dict[str, Any] | None:
        url = f"{self.base_url}/api/v1/builds/{build_id}/plan"
        response = self._request("GET", url, timeout=self._config.timeout)
        if response.status_code == 404:
            return None
        self._ensure_ok(response)
        try:
            data = response.json()
        except ValueError as exc:
            raise PlanDecodeError(f"Build {build_id} plan is not valid JSON") from exc
        if not isinstance(data, dict):
            raise PlanDecodeError(
                f"Build {build_id} plan is a {type(data).__name__}, not an object"
            )
        return data

    def get_build_events(self, build_id: int) -> Iterator[BuildEvent]:
        url = f"{self.base_url}/api/v1/builds/{build_id}/events"
        response = self._request(
            "GET",
            url,
            stream=True,
            timeout=self._config.timeout,
            headers={"Accept": "text/event-stream"},
        )
        self._ensure_ok(response)
        return self._iter_events(response)

    # Helpers -----------------------------------------------------------------

    def _request(self, method: str, url: str, **kwargs: Any) -> Response:
        try:
            return self._session.request(method, url, **kwargs)
        except requests.RequestException as e:
            raise ConcourseAPIError(
                f"Request to {url} failed: {e}", url=url
            ) from e

    @staticmethod
    def _names(data: Any, what: str) -> list[str]:
        try:
            return [str(item["name"]) for item in data or []]
        except (KeyError, TypeError) as e:
            raise ConcourseAPIError(f"Malformed {what} list: {e!r}") from e

    @staticmethod
    def _build(data: Any) -> Build:
        try:
            return Build.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            raise ConcourseAPIError(f"Malformed build record: {e!r}") from e

    def _get_json(self, path: str, params: Mapping[str, Any] | None = None) -> Any:
        response = self._request(
            "GET",
            f"{self.base_url}{path}",
            params=params,
            timeout=self._config.timeout,
        )
        return self._parse_json(response)

    def _parse_json(self, response: Response) -> Any:
        self._ensure_ok(response)
        try:
            return response.json()
        except ValueError as exc:
            raise ConcourseAPIError(
                f"Invalid JSON from {response.url}",
                status_code=response.status_code,
                url=str(response.url),
            ) from exc

    def _ensure_ok(self, response: Response) -> None:
        if 200 <= response.status_code < 300:
            return
        raise ConcourseAPIError(
            f"Concourse API error {response.status_code} for {response.url}: "
            f"{(response.text or '')[:200]}",
            status_code=response.status_code,
            url=str(response.url),
        )

    def _iter_events(self, response: Response) -> Iterator[BuildEvent]:
        """Decode the server-sent event stream until the 'end' event."""
        sse_event = ""
        try:
            for raw_line in response.iter_lines(decode_unicode=True):
                if raw_line is None:
                    continue
                line = raw_line.strip()
                if not line:
                    sse_event = ""
                    continue
                if line.startswith("event:"):
                    sse_event = line[len("event:") :].strip()
                    if sse_event == END_OF_STREAM:
                        return
                    continue
                if not line.startswith("data:"):
                    continue

                payload = line[len("data:") :].strip()
                if not payload:
                    continue
                try:
                    envelope = json.loads(payload)
                except json.JSONDecodeError as exc:
                    raise EventPayloadError(
                        f"Malformed event record: {payload[:200]}",
                        event_kind=sse_event,
                    ) from exc
                if not isinstance(envelope, Mapping):
                    raise EventPayloadError(
                        f"Event record is not an object: {payload[:200]}",
                        event_kind=sse_event,
                    )
                yield BuildEvent.from_dict(envelope)
        except requests.RequestException as e:
            raise ConcourseAPIError(
                f"Event stream from {response.url} broke off: {e}",
                url=str(response.url),
            ) from e
        finally:
            response.close()
