"""
Tests for the encrypted vendor credential store.
"""
import pytest

from app.models.api_credential import ApiCredential
from app.services.credentials import (
    CredentialStoreError,
    decrypt_secret,
    encrypt_secret,
    load_vendor_credentials,
    mask_secret,
    save_vendor_credential,
)


class TestSecrets:
    def test_encrypt_round_trip(self):
        token = encrypt_secret("hk-live-123456")
        assert token != "hk-live-123456"
        assert decrypt_secret(token) == "hk-live-123456"

    def test_wrong_master_key_cannot_decrypt(self):
        token = encrypt_secret("hk-live-123456", master_key="one")
        with pytest.raises(CredentialStoreError):
            decrypt_secret(token, master_key="two")

    def test_mask_secret(self):
        assert mask_secret("abcd1234wxyz") == "abcd****wxyz"
        assert mask_secret("short") == "*****"


class TestCredentialStore:
    def test_save_and_load(self, db):
        save_vendor_credential(db, " Hunter ", "hk-live-123456")
        save_vendor_credential(db, "zoominfo", "zi-secret", username="ops@exit.school")

        creds = load_vendor_credentials(db)
        assert creds["hunter"].api_key == "hk-live-123456"
        assert creds["zoominfo"].username == "ops@exit.school"

        stored = db.query(ApiCredential).filter_by(service="hunter").one()
        assert "hk-live-123456" not in stored.encrypted_key

    def test_save_rotates_existing_key(self, db):
        save_vendor_credential(db, "apollo", "old-key-0000")
        save_vendor_credential(db, "apollo", "new-key-1111")
        assert db.query(ApiCredential).count() == 1
        assert load_vendor_credentials(db)["apollo"].api_key == "new-key-1111"

    def test_undecryptable_row_is_skipped(self, db):
        save_vendor_credential(db, "hunter", "hk-live-123456")
        db.add(ApiCredential(service="apollo", encrypted_key=encrypt_secret("x", master_key="other")))
        db.commit()

        creds = load_vendor_credentials(db)
        assert set(creds) == {"hunter"}
