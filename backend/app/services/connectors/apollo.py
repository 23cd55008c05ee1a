# backend/app/services/connectors/apollo.py

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

OWNER_TITLES = [
    "owner",
    "co-owner",
    "founder",
    "co-founder",
    "ceo",
    "chief executive officer",
    "president",
    "managing partner",
    "general manager",
]


class ApolloConnector(BaseConnector):
    """
    Apollo.io connector used for firmographics and owner discovery.

    Responsibilities:
    - Resolve the company's Apollo organization, by domain when the company has
      a website and by name otherwise, and extract headcount and revenue.
    - Use People API Search to find an owner / founder type person linked to
      the organization and return their name.
    - Return the normalised enrichment fields only:
        {
          "employee_count": 42,
          "revenue": 5000000,
          "owner_name": "Jane Doe"
        }
    - Missing data (no org / no people) is a legitimate outcome.
    """
    name = "apollo"

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.base_url = "https://api.apollo.io/api/v1"
        self.people_per_page = 5
        # Set when any call of the current lookup was refused with a 4xx.
        self._rejected = False

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _auth_headers(self) -> Dict[str, str]:
        return {
            "X-Api-Key": self.credential.api_key,
            "Content-Type": "application/json",
            "accept": "application/json",
        }

    @retry(
        wait=wait_exponential(multiplier=1, min=1, max=8),
        stop=stop_after_attempt(3),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _request(
        self,
        client: httpx.AsyncClient,
        method: str,
        path: str,
        **kwargs: Any,
    ) -> Optional[Dict[str, Any]]:
        """
        Issue one Apollo call. Returns the JSON body, or None for a 4xx (which
        also marks the lookup as not cacheable). 5xx raise.
        """
        url = f"{self.base_url}/{path}"
        resp = await client.request(method, url, headers=self._auth_headers(), **kwargs)

        # Rate limiting: single backoff + retry
        if resp.status_code == 429:
            retry_after = resp.headers.get("Retry-After")
            delay = int(retry_after) if retry_after and retry_after.isdigit() else 5
            await asyncio.sleep(delay)
            resp = await client.request(method, url, headers=self._auth_headers(), **kwargs)

        if 400 <= resp.status_code < 500:
            logger.warning(
                "Apollo %s returned %s: %s",
                path,
                resp.status_code,
                resp.text[:500],
                extra={"vendor": self.name},
            )
            self._rejected = True
            return None

        resp.raise_for_status()
        return resp.json() or {}

    def _normalise_org(self, org: Dict[str, Any]) -> Dict[str, Any]:
        # The exact key names can vary; be defensive.
        est_employees = (
            org.get("estimated_num_employees")
            or org.get("estimated_num_employees_range")
            or org.get("employee_count")
            or org.get("num_employees")
        )
        annual_revenue = (
            org.get("annual_revenue")
            or org.get("annual_revenue_range")
            or org.get("revenue")
        )
        return {
            "apollo_organization_id": org.get("id") or org.get("organization_id"),
            "employee_count": parse_int(est_employees),
            "revenue": parse_int(annual_revenue),
        }

    async def _search_organization(
        self,
        client: httpx.AsyncClient,
        domain: str,
    ) -> Optional[Dict[str, Any]]:
        data = await self._request(
            client, "GET", "organizations/enrich", params={"domain": domain}
        )
        org = (data or {}).get("organization")
        if not org:
            return None
        return self._normalise_org(org)

    async def _search_organization_by_name(
        self,
        client: httpx.AsyncClient,
        company_name: str,
    ) -> Optional[Dict[str, Any]]:
        """
        Fallback when we don't have a domain: use Organization Search
        to resolve the company by name.
        """
        name = (company_name or "").strip()
        if not name:
            return None

        data = await self._request(
            client,
            "POST",
            "mixed_companies/search",
            json={"page": 1, "per_page": 1, "q_organization_name": name},
        )
        orgs = (data or {}).get("organizations") or (data or {}).get("companies") or []
        if not orgs:
            return None
        return self._normalise_org(orgs[0])

    async def _search_owner_name(
        self,
        client: httpx.AsyncClient,
        domain: Optional[str],
        apollo_organization_id: Optional[str],
    ) -> Optional[str]:
        if not domain and not apollo_organization_id:
            return None

        payload: Dict[str, Any] = {
            "page": 1,
            "per_page": self.people_per_page,
            "person_titles": OWNER_TITLES,
            "person_seniorities": ["owner", "founder", "c_suite"],
        }
        if apollo_organization_id:
            payload["organization_ids"] = [apollo_organization_id]
        else:
            payload["q_organization_domains_list"] = [domain]

        data = await self._request(client, "POST", "mixed_people/api_search", json=payload)
        raw_people: List[Any] = (data or {}).get("people") or []

        for p in raw_people:
            if not isinstance(p, dict):
                continue
            full_name = p.get("name") or " ".join(
                x for x in [p.get("first_name"), p.get("last_name")] if x
            )
            if full_name:
                return full_name
        return None

    # ------------------------------------------------------------------
    # Adapter entrypoint
    # ------------------------------------------------------------------

    async def _fetch(self, company: CompanyProfile) -> ConnectorResult:
        domain = company.domain
        cache_key = (
            vendor_cache_key(self.name, domain=domain)
            if domain
            else vendor_cache_key(self.name, name=company.name)
        )
        cached = await cached_get(cache_key)
        if cached is not None:
            return clean_fields(cached)

        self._rejected = False
        async with self._client() as client:
            if domain:
                org = await self._search_organization(client, domain)
            else:
                org = await self._search_organization_by_name(client, company.name)

            owner_name = await self._search_owner_name(
                client,
                domain=domain,
                apollo_organization_id=(org or {}).get("apollo_organization_id"),
            )

        result_data = {
            "employee_count": (org or {}).get("employee_count"),
            "revenue": (org or {}).get("revenue"),
            "owner_name": owner_name,
        }
        # Firmographics are relatively stable; a refused call (bad key, plan
        # limits) must not hide the company once the key is fixed.
        if not self._rejected:
            await cached_get(cache_key, set_value=result_data)
        return clean_fields(result_data)
