"""
Workgroup service client for chat settings.
"""

from typing import List, Optional
from urllib.parse import quote

import httpx
from pydantic import BaseModel, Field, ValidationError as PayloadValidationError

from shared.logging import get_logger
from shared.errors import WorkgroupServiceError
from shared.circuit_breaker import CircuitBreaker, CircuitBreakerOpenException
from shared.retry import retry_on_exception, RetryConfig, RetryError
from ..domain.models import SettingSlot, SettingsBundle, WorkgroupId


class ChatSettingPayload(BaseModel):
    """One setting as returned by the workgroup service."""
    key: str
    value: Optional[str] = None
    type: int = 0


class ChatSettingsPayload(BaseModel):
    """Chat settings response body."""
    workgroup: Optional[str] = None
    settings: List[ChatSettingPayload] = Field(default_factory=list)

    def to_bundle(self, workgroup_id: WorkgroupId) -> SettingsBundle:
        return SettingsBundle.from_slots(
            workgroup_id,
            (SettingSlot(key=s.key, value=s.value, type=s.type) for s in self.settings)
        )


class _RetryableStatus(httpx.HTTPError):
    """5xx answer from the workgroup service; worth another attempt."""

    def __init__(self, status_code: int):
        super().__init__(f"Workgroup service returned {status_code}")
        self.status_code = status_code


class WorkgroupSettingsClient:
    """Client fetching chat settings bundles from the workgroup service."""

    def __init__(self,
                 workgroup_service_url: str,
                 timeout: float = 10.0,
                 retry_config: Optional[RetryConfig] = None,
                 circuit_breaker: Optional[CircuitBreaker] = None):
        self.workgroup_service_url = workgroup_service_url.rstrip("/")
        self.timeout = timeout
        self.logger = get_logger("webchat.workgroup_client")
        self.circuit_breaker = circuit_breaker or CircuitBreaker(
            "workgroup_service",
            failure_threshold=5,
            recovery_timeout=30.0
        )
        self.retry_config = retry_config or RetryConfig(
            max_attempts=3,
            base_delay=0.5,
            max_delay=5.0,
            exponential_base=2.0,
            jitter=True
        )
        self._fetch_with_retry = retry_on_exception(
            (httpx.TransportError, _RetryableStatus),
            config=self.retry_config
        )(self._guarded_fetch)

    def settings_url(self, workgroup_id: WorkgroupId) -> str:
        return f"{self.workgroup_service_url}/workgroups/{quote(str(workgroup_id), safe='@')}/chat-settings"

    async def fetch(self, workgroup_id: WorkgroupId) -> SettingsBundle:
        """Fetch the chat settings bundle of a workgroup.

        Raises:
            WorkgroupServiceError: on transport failure, unexpected status,
                malformed body, exhausted retries or an open circuit.
        """
        try:
            return await self._fetch_with_retry(workgroup_id)

        except RetryError as e:
            self.logger.error(
                "Workgroup service unavailable",
                workgroup=str(workgroup_id),
                attempts=e.attempts,
                error=str(e.last_exception)
            )
            raise WorkgroupServiceError(
                "Workgroup service unavailable",
                details={"workgroup": str(workgroup_id), "error": str(e.last_exception)}
            ) from e
        except CircuitBreakerOpenException as e:
            self.logger.warning("Workgroup service circuit open", workgroup=str(workgroup_id))
            raise WorkgroupServiceError(
                "Workgroup service circuit open",
                details={"workgroup": str(workgroup_id)}
            ) from e
        except httpx.HTTPError as e:
            self.logger.error("Workgroup service HTTP error", workgroup=str(workgroup_id), error=str(e))
            raise WorkgroupServiceError(
                "Workgroup service HTTP error",
                details={"workgroup": str(workgroup_id), "http_error": str(e)}
            ) from e

    async def _guarded_fetch(self, workgroup_id: WorkgroupId) -> SettingsBundle:
        return await self.circuit_breaker.call(self._request_settings, workgroup_id)

    async def _request_settings(self, workgroup_id: WorkgroupId) -> SettingsBundle:
        url = self.settings_url(workgroup_id)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(url)

        if response.status_code >= 500:
            raise _RetryableStatus(response.status_code)
        if response.status_code != 200:
            raise WorkgroupServiceError(
                f"Unexpected status {response.status_code}",
                details={"workgroup": str(workgroup_id), "status_code": response.status_code}
            )

        try:
            payload = ChatSettingsPayload.model_validate(response.json())
        except (ValueError, PayloadValidationError) as e:
            raise WorkgroupServiceError(
                "Malformed chat settings payload",
                details={"workgroup": str(workgroup_id), "error": str(e)}
            ) from e

        bundle = payload.to_bundle(workgroup_id)
        self.logger.debug(
            "Fetched chat settings",
            workgroup=str(workgroup_id),
            settings=sorted(bundle.slots)
        )
        return bundle
