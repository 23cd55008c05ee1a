"""Encrypted vendor credential store (service name -> API key)."""
from __future__ import annotations

import base64
import hashlib
import logging
from datetime import datetime
from typing import Dict, Optional

from cryptography.fernet import Fernet, InvalidToken
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.config import get_settings
from ..models.api_credential import ApiCredential
from .connectors.base import VendorCredential

logger = logging.getLogger(__name__)


class CredentialStoreError(RuntimeError):
    pass


def _derive_key(master_key: str) -> bytes:
    digest = hashlib.sha256(master_key.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest)


def _get_fernet(master_key: str | None = None) -> Fernet:
    master_key = master_key or get_settings().CREDENTIALS_MASTER_KEY
    if not master_key:
        raise CredentialStoreError("CREDENTIALS_MASTER_KEY is not configured")
    return Fernet(_derive_key(master_key))


def encrypt_secret(plaintext: str, master_key: str | None = None) -> str:
    return _get_fernet(master_key).encrypt(plaintext.encode("utf-8")).decode("utf-8")


def decrypt_secret(token: str, master_key: str | None = None) -> str:
    try:
        return _get_fernet(master_key).decrypt(token.encode("utf-8")).decode("utf-8")
    except InvalidToken as e:
        raise CredentialStoreError("Stored credential could not be decrypted") from e


def mask_secret(plaintext: str) -> str:
    if len(plaintext) <= 8:
        return "*" * len(plaintext)
    return f"{plaintext[:4]}{'*' * (len(plaintext) - 8)}{plaintext[-4:]}"


def load_vendor_credentials(
    db: Session,
    master_key: str | None = None,
) -> Dict[str, VendorCredential]:
    """
    Decrypt every stored credential into a snapshot keyed by service.

    Rows that cannot be decrypted are skipped (logged) so the affected vendor
    behaves as "not configured" instead of failing enrichment.
    """
    try:
        rows = db.query(ApiCredential).all()
    except SQLAlchemyError:
        logger.exception("Failed to read api_credentials", extra={"step": "credentials"})
        return {}

    if rows and not (master_key or get_settings().CREDENTIALS_MASTER_KEY):
        logger.warning(
            "Credentials are stored but CREDENTIALS_MASTER_KEY is not set",
            extra={"step": "credentials"},
        )
        return {}

    creds: Dict[str, VendorCredential] = {}
    for row in rows:
        try:
            api_key = decrypt_secret(row.encrypted_key, master_key)
        except CredentialStoreError:
            logger.warning(
                "Skipping undecryptable credential for %s",
                row.service,
                extra={"vendor": row.service, "step": "credentials"},
            )
            continue
        creds[row.service] = VendorCredential(
            service=row.service,
            api_key=api_key,
            username=row.username,
            client_id=row.client_id,
        )
    return creds


def save_vendor_credential(
    db: Session,
    service: str,
    api_key: str,
    username: Optional[str] = None,
    client_id: Optional[str] = None,
) -> ApiCredential:
    """Upsert a vendor credential; rotates without a redeploy."""
    service = service.strip().lower()
    row = db.query(ApiCredential).filter(ApiCredential.service == service).first()
    if row is None:
        row = ApiCredential(service=service)
        db.add(row)

    row.encrypted_key = encrypt_secret(api_key)
    if username is not None:
        row.username = username
    if client_id is not None:
        row.client_id = client_id
    row.status = "Saved"
    row.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(row)
    return row
