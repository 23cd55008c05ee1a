# backend/app/services/connectors/clay.py

from __future__ import annotations

import logging
from typing import Any, Dict

import httpx
from tenacity import (
    retry,
    wait_exponential,
    stop_after_attempt,
    retry_if_exception_type,
)

from .base import BaseConnector, CompanyProfile, ConnectorResult, clean_fields, parse_int
from ...core.config import get_settings

logger = logging.getLogger(__name__)

# Clay table columns are user-defined; accept the common spellings.
CLAY_FIELD_ALIASES: Dict[str, tuple[str, ...]] = {
    "owner_name": ("owner_name", "owner", "full_name", "contact_name", "name_of_owner"),
    "owner_email": ("owner_email", "email", "work_email", "contact_email"),
    "owner_phone": ("owner_phone", "phone_number", "mobile_phone", "direct_phone", "contact_phone"),
    "employee_count": ("employee_count", "employees", "headcount", "number_of_employees"),
    "revenue": ("revenue", "annual_revenue", "estimated_revenue"),
}


def _normalise_key(key: str) -> str:
    return key.strip().lower().replace(" ", "_").replace("-", "_")


def parse_webhook_payload(payload: Dict[str, Any]) -> ConnectorResult:
    """
    Map a Clay callback body onto enrichment fields.

    ``company_id`` and any column we don't recognise are ignored here; the raw
    payload is kept separately by the caller.
    """
    flat = {_normalise_key(k): v for k, v in (payload or {}).items() if isinstance(k, str)}

    out: Dict[str, Any] = {}
    for field, aliases in CLAY_FIELD_ALIASES.items():
        for alias in aliases:
            value = flat.get(alias)
            if value not in (None, ""):
                out[field] = value
                break

    for numeric in ("employee_count", "revenue"):
        if numeric in out:
            out[numeric] = parse_int(out[numeric])

    return clean_fields(out)


class ClayConnector(BaseConnector):
    """
    Clay is asynchronous: we push the company into a Clay webhook table and
    Clay calls us back (POST /webhooks/clay) once its waterfall finishes.

    ``fetch`` therefore never returns fields; it returns a pending result so
    the aggregator can record that data is on its way.
    """

    name = "clay"

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        settings = get_settings()
        self.webhook_url = settings.CLAY_WEBHOOK_URL
        self.callback_url = settings.CLAY_CALLBACK_URL

    def is_configured(self) -> bool:
        return bool(self.webhook_url)

    @retry(
        wait=wait_exponential(multiplier=1, min=1, max=8),
        stop=stop_after_attempt(3),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _push(self, payload: Dict[str, Any]) -> httpx.Response:
        headers = {"Content-Type": "application/json"}
        if self.credential is not None and self.credential.api_key:
            headers["x-clay-webhook-auth"] = self.credential.api_key
        async with self._client() as client:
            return await client.post(self.webhook_url, json=payload, headers=headers)

    async def _fetch(self, company: CompanyProfile) -> ConnectorResult:
        payload = {
            "company_id": company.id,
            "name": company.name,
            "website": company.website,
            "phone": company.phone,
            "address": company.address,
        }
        if self.callback_url:
            payload["callback_url"] = self.callback_url

        resp = await self._push(payload)
        if resp.status_code >= 400:
            logger.warning(
                "Clay webhook rejected company %s with %s",
                company.id,
                resp.status_code,
                extra={"vendor": self.name, "company_id": company.id},
            )
            return ConnectorResult()

        logger.info(
            "Queued company for Clay enrichment",
            extra={"vendor": self.name, "company_id": company.id},
        )
        return ConnectorResult.pending_result()
