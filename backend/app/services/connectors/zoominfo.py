# backend/app/services/connectors/zoominfo.py

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx
from tenacity import (
    retry,
    wait_exponential,
    stop_after_attempt,
    retry_if_exception_type,
)

from .base import (
    BaseConnector,
    CompanyProfile,
    ConnectorResult,
    clean_fields,
    parse_int,
)
from ..caching import cached_get, vendor_cache_key

logger = logging.getLogger(__name__)


class ZoomInfoConnector(BaseConnector):
    """
    ZoomInfo connector (JWT auth).

    - Authenticates with the stored username + API key (used as password).
    - Company enrich  -> employee_count, revenue.
    - Contact search (C-level / owner) -> owner_name, owner_phone.

    ZoomInfo reports revenue in thousands of USD; it is converted to dollars.
    """

    name = "zoominfo"

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.base_url = "https://api.zoominfo.com"

    async def _authenticate(self, client: httpx.AsyncClient) -> Optional[str]:
        if not self.credential.username:
            logger.warning(
                "ZoomInfo credential has no username; skipping",
                extra={"vendor": self.name},
            )
            return None

        resp = await client.post(
            f"{self.base_url}/authenticate",
            json={
                "username": self.credential.username,
                "password": self.credential.api_key,
            },
        )
        if 400 <= resp.status_code < 500:
            logger.warning(
                "ZoomInfo authentication failed with %s",
                resp.status_code,
                extra={"vendor": self.name},
            )
            return None
        resp.raise_for_status()
        return (resp.json() or {}).get("jwt")

    @retry(
        wait=wait_exponential(multiplier=1, min=1, max=8),
        stop=stop_after_attempt(3),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _post(
        self,
        client: httpx.AsyncClient,
        token: str,
        path: str,
        payload: Dict[str, Any],
    ) -> Optional[Dict[str, Any]]:
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        url = f"{self.base_url}/{path}"
        resp = await client.post(url, headers=headers, json=payload)

        if resp.status_code == 429:
            retry_after = resp.headers.get("Retry-After")
            delay = int(retry_after) if retry_after and retry_after.isdigit() else 5
            await asyncio.sleep(delay)
            resp = await client.post(url, headers=headers, json=payload)

        if 400 <= resp.status_code < 500:
            logger.warning(
                "ZoomInfo %s returned %s: %s",
                path,
                resp.status_code,
                resp.text[:500],
                extra={"vendor": self.name},
            )
            return None

        resp.raise_for_status()
        return resp.json() or {}

    def _match_input(self, company: CompanyProfile) -> Dict[str, Any]:
        match: Dict[str, Any] = {"companyName": company.name}
        if company.domain:
            match["companyWebsite"] = company.domain
        return match

    async def _enrich_company(
        self, client: httpx.AsyncClient, token: str, company: CompanyProfile
    ) -> Dict[str, Any]:
        data = await self._post(
            client,
            token,
            "enrich/company",
            {
                "matchCompanyInput": [self._match_input(company)],
                "outputFields": ["id", "name", "employeeCount", "revenue"],
            },
        )
        results: List[Any] = ((data or {}).get("data") or {}).get("result") or []
        for r in results:
            matches = (r or {}).get("data") or []
            if matches:
                org = matches[0] or {}
                revenue_k = parse_int(org.get("revenue"))
                return {
                    "employee_count": parse_int(org.get("employeeCount")),
                    "revenue": revenue_k * 1000 if revenue_k else None,
                }
        return {}

    async def _search_owner(
        self, client: httpx.AsyncClient, token: str, company: CompanyProfile
    ) -> Dict[str, Any]:
        payload = dict(self._match_input(company))
        payload.update(
            {
                "managementLevel": "C Level Exec",
                "rpp": 5,
                "page": 1,
            }
        )
        data = await self._post(client, token, "search/contact", payload)
        contacts: List[Any] = (data or {}).get("data") or []
        for c in contacts:
            if not isinstance(c, dict):
                continue
            full_name = " ".join(x for x in [c.get("firstName"), c.get("lastName")] if x)
            if not full_name:
                continue
            return {
                "owner_name": full_name,
                "owner_phone": c.get("directPhone") or c.get("phone") or c.get("mobilePhone"),
            }
        return {}

    async def _fetch(self, company: CompanyProfile) -> ConnectorResult:
        cache_key = vendor_cache_key(self.name, company=company.domain or company.name)
        cached = await cached_get(cache_key)
        if cached is not None:
            return clean_fields(cached)

        async with self._client() as client:
            token = await self._authenticate(client)
            if not token:
                return ConnectorResult()

            firmographics = await self._enrich_company(client, token, company)
            owner = await self._search_owner(client, token, company)

        result_data = {**firmographics, **owner}
        await cached_get(cache_key, set_value=result_data)
        return clean_fields(result_data)
