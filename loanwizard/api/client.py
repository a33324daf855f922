"""Async httpx client for the loan platform REST API.

Only the endpoints the application wizard consumes: category and loan
catalogs, administrator-defined form fields, and application submission.
"""

from __future__ import annotations

import logging
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from loanwizard.config import settings
from loanwizard.events import emit
from loanwizard.schemas.events import EventType, SystemEvent
from loanwizard.schemas.forms import Category, FieldDefinition, LoanProduct
from loanwizard.schemas.submission import ApplicationResponse, MultipartPayload

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Something went wrong. Please try again."


class ApiError(Exception):
    """Raised when an API call fails (transport error or non-2xx status)."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        server_message: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.server_message = server_message

    @property
    def user_message(self) -> str:
        return self.server_message or GENERIC_ERROR_MESSAGE


class LoanApi(Protocol):
    """Collaborator endpoints consumed by the wizard."""

    async def get_categories(self) -> list[Category]: ...

    async def get_loans(self) -> list[LoanProduct]: ...

    async def get_form_fields_by_category(self, category_id: str) -> list[FieldDefinition]: ...

    async def get_form_fields_by_loan(self, loan_id: str) -> list[FieldDefinition]: ...

    async def submit_application(self, payload: MultipartPayload) -> ApplicationResponse: ...


class LoanApiClient:
    """Thin async wrapper around the platform API.

    Responses use the envelope ``{"success": bool, "data": ..., "message": ...}``.
    Auth: ``Authorization: Bearer <token>`` when a token is configured.
    """

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = (base_url or settings.api.api_base_url).rstrip("/")
        self._token = settings.api.api_token if token is None else token
        headers = {"Accept": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers=headers,
            timeout=httpx.Timeout(settings.api.api_timeout, connect=settings.api.api_connect_timeout),
            transport=transport,
        )

    # ── Catalog ──────────────────────────────────────────────────────

    async def get_categories(self) -> list[Category]:
        items = await self._get_list("/categories", params={"withCounts": "1"})
        return _parse_items(Category, items, "category")

    async def get_loans(self) -> list[LoanProduct]:
        items = await self._get_list("/loans")
        return _parse_items(LoanProduct, items, "loan")

    # ── Form fields ──────────────────────────────────────────────────

    async def get_form_fields_by_category(self, category_id: str) -> list[FieldDefinition]:
        items = await self._get_list(f"/form-fields/category/{category_id}")
        return _parse_items(FieldDefinition, items, "form field")

    async def get_form_fields_by_loan(self, loan_id: str) -> list[FieldDefinition]:
        items = await self._get_list(f"/form-fields/loan/{loan_id}")
        return _parse_items(FieldDefinition, items, "form field")

    # ── Applications ─────────────────────────────────────────────────

    async def submit_application(self, payload: MultipartPayload) -> ApplicationResponse:
        """POST the multi-part application body.

        Raises:
            ApiError: On transport failure or a non-2xx response.
        """
        body = await self._request(
            "POST",
            "/applications",
            data=payload.data,
            files=payload.files,
        )
        return ApplicationResponse.model_validate(body if isinstance(body, dict) else {})

    async def close(self) -> None:
        await self._client.aclose()

    # ── Internals ────────────────────────────────────────────────────

    async def _get_list(self, path: str, params: dict[str, str] | None = None) -> list[Any]:
        body = await self._request("GET", path, params=params)
        data = body.get("data") if isinstance(body, dict) else body
        return data if isinstance(data, list) else []

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        await emit(SystemEvent(
            event_type=EventType.EXTERNAL_API_CALL,
            data={"method": method, "path": path},
            source_module="api.client",
        ))

        try:
            response = await self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            logger.warning("API timeout: %s %s", method, path)
            await self._emit_response(method, path, error="timeout")
            raise ApiError(f"Timeout calling {method} {path}") from exc
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            logger.warning("API HTTP error %s: %s %s", status, method, path)
            await self._emit_response(method, path, error=f"http_{status}")
            raise ApiError(
                f"{method} {path} returned {status}",
                status_code=status,
                server_message=_server_message(exc.response),
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("API transport error for %s %s: %s", method, path, exc)
            await self._emit_response(method, path, error="transport")
            raise ApiError(f"Transport error calling {method} {path}: {exc}") from exc

        await self._emit_response(method, path, status=response.status_code)

        try:
            return response.json()
        except ValueError as exc:
            raise ApiError(f"{method} {path} returned a non-JSON body", status_code=response.status_code) from exc

    async def _emit_response(self, method: str, path: str, **data: Any) -> None:
        await emit(SystemEvent(
            event_type=EventType.EXTERNAL_API_RESPONSE,
            data={"method": method, "path": path, **data},
            source_module="api.client",
        ))


def _server_message(response: httpx.Response) -> str | None:
    """Extract ``message`` from an error body, if it is JSON."""
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return None


def _parse_items(model: Any, items: list[Any], kind: str) -> list[Any]:
    """Validate each item, skipping malformed ones."""
    parsed = []
    for item in items:
        try:
            parsed.append(model.model_validate(item))
        except ValidationError as exc:
            logger.warning("Skipping malformed %s: %s", kind, exc.errors()[:1])
    return parsed
