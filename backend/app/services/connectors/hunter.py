# backend/app/services/connectors/hunter.py

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

from .base import BaseConnector, CompanyProfile, ConnectorResult, clean_fields
from ..caching import cached_get, vendor_cache_key

logger = logging.getLogger(__name__)

# Positions that most likely belong to the person who can sell the business.
OWNER_POSITION_KEYWORDS = (
    "owner",
    "founder",
    "co-founder",
    "ceo",
    "chief executive",
    "president",
    "principal",
    "managing director",
    "partner",
)


class HunterConnector(BaseConnector):
    """
    Hunter.io domain-search connector.

    - Requires a website: Hunter can only search by domain.
    - Picks the most owner-like email on the domain (position keywords first,
      then executive seniority, then the highest-confidence address).
    - Returns owner_email / owner_name and owner_phone when Hunter has one.
    """

    name = "hunter"

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.base_url = "https://api.hunter.io/v2"
        self.max_emails = 10

    def applies_to(self, company: CompanyProfile) -> bool:
        return bool(company.domain)

    @retry(
        wait=wait_exponential(multiplier=1, min=1, max=8),
        stop=stop_after_attempt(3),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _domain_search(self, domain: str) -> Optional[Dict[str, Any]]:
        params = {
            "domain": domain,
            "api_key": self.credential.api_key,
            "limit": self.max_emails,
        }
        async with self._client() as client:
            resp = await client.get(f"{self.base_url}/domain-search", params=params)

            # Rate limiting: single backoff + retry
            if resp.status_code == 429:
                retry_after = resp.headers.get("Retry-After")
                delay = int(retry_after) if retry_after and retry_after.isdigit() else 5
                await asyncio.sleep(delay)
                resp = await client.get(f"{self.base_url}/domain-search", params=params)

        # 4xx (bad key, unknown domain, plan limits) => None, never cached
        if 400 <= resp.status_code < 500:
            logger.warning(
                "Hunter domain-search returned %s: %s",
                resp.status_code,
                resp.text[:500],
                extra={"vendor": self.name},
            )
            return None

        resp.raise_for_status()
        return (resp.json() or {}).get("data") or {}

    def _pick_owner_email(self, emails: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        candidates = [e for e in emails if isinstance(e, dict) and e.get("value")]
        if not candidates:
            return None

        def score(e: Dict[str, Any]) -> tuple[int, int, int]:
            position = (e.get("position") or "").lower()
            by_position = int(any(k in position for k in OWNER_POSITION_KEYWORDS))
            by_seniority = int((e.get("seniority") or "").lower() == "executive")
            return (by_position, by_seniority, int(e.get("confidence") or 0))

        return max(candidates, key=score)

    async def _fetch(self, company: CompanyProfile) -> ConnectorResult:
        domain = company.domain

        cache_key = vendor_cache_key(self.name, domain=domain)
        data = await cached_get(cache_key)
        if data is None:
            data = await self._domain_search(domain)
            if data is None:
                return ConnectorResult()
            await cached_get(cache_key, set_value=data)

        email = self._pick_owner_email(data.get("emails") or [])
        if not email:
            return ConnectorResult()

        full_name = " ".join(
            x for x in [email.get("first_name"), email.get("last_name")] if x
        )
        return clean_fields(
            {
                "owner_email": email.get("value"),
                "owner_name": full_name or None,
                "owner_phone": email.get("phone_number"),
            }
        )
