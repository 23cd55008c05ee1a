from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import urlparse
import logging

import httpx

logger = logging.getLogger(__name__)

# Fields a vendor may contribute to a company's enrichment record.
ENRICHMENT_FIELDS = (
    "owner_name",
    "owner_email",
    "owner_phone",
    "employee_count",
    "revenue",
)


class ConnectorResult(dict):
    """
    Partial field map returned by a vendor.

    ``pending`` is set by asynchronous vendors that accepted a request and will
    deliver their data later through a callback.
    """

    pending: bool = False

    @classmethod
    def pending_result(cls) -> "ConnectorResult":
        res = cls()
        res.pending = True
        return res


@dataclass(frozen=True)
class VendorCredential:
    service: str
    api_key: str
    username: Optional[str] = None
    client_id: Optional[str] = None


@dataclass(frozen=True)
class CompanyProfile:
    """Detached view of a company handed to vendors."""

    id: str
    name: str
    website: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None

    @classmethod
    def from_model(cls, company: Any) -> "CompanyProfile":
        return cls(
            id=str(company.id),
            name=company.name,
            website=company.website,
            phone=company.phone,
            address=company.address,
        )

    @property
    def domain(self) -> Optional[str]:
        return normalise_domain(self.website)


def normalise_domain(raw: str | None) -> Optional[str]:
    if not raw:
        return None
    d = raw.strip().lower()
    if "://" not in d:
        d = "http://" + d
    host = urlparse(d).hostname or ""
    if host.startswith("www."):
        host = host[4:]
    return host or None


def clean_fields(raw: dict[str, Any]) -> ConnectorResult:
    """Drop unknown keys and empty values from a vendor payload."""
    out = ConnectorResult()
    for key in ENRICHMENT_FIELDS:
        value = raw.get(key)
        if value is None:
            continue
        if isinstance(value, str):
            value = value.strip()
            if not value:
                continue
        out[key] = value
    return out


def parse_int(value: Any) -> Optional[int]:
    """
    Vendors report headcount/revenue as ints, floats, "11-50" ranges or
    "$1,200,000" strings. Ranges resolve to their upper bound.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value) if value > 0 else None
    text = str(value).replace(",", "").replace("$", "").replace("+", "").strip()
    if not text:
        return None
    if "-" in text:
        text = text.rsplit("-", 1)[-1].strip()
    try:
        number = int(float(text))
    except ValueError:
        return None
    return number if number > 0 else None


class BaseConnector(ABC):
    """
    One enrichment vendor behind a uniform capability.

    Subclasses implement ``_fetch``; ``fetch`` is the adapter boundary and
    never raises: missing credentials, inapplicable companies and vendor
    errors all come back as an empty ConnectorResult.
    """

    name: str

    def __init__(
        self,
        credential: VendorCredential | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 30,
    ) -> None:
        self.credential = credential
        self.transport = transport
        self.timeout = timeout

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    def is_configured(self) -> bool:
        return self.credential is not None and bool(self.credential.api_key)

    def applies_to(self, company: CompanyProfile) -> bool:
        return True

    async def fetch(self, company: CompanyProfile) -> ConnectorResult:
        if not self.is_configured():
            logger.warning(
                "No credential configured for %s; skipping",
                self.name,
                extra={"vendor": self.name, "company_id": company.id},
            )
            return ConnectorResult()

        if not self.applies_to(company):
            logger.info(
                "%s not applicable to company %s",
                self.name,
                company.name,
                extra={"vendor": self.name, "company_id": company.id},
            )
            return ConnectorResult()

        try:
            return await self._fetch(company)
        except Exception as e:
            logger.exception(
                "%s enrichment failed: %s",
                self.name,
                e,
                extra={"vendor": self.name, "company_id": company.id},
            )
            return ConnectorResult()

    @abstractmethod
    async def _fetch(self, company: CompanyProfile) -> ConnectorResult:
        ...
