"""
Tests for the Celery tasks (run eagerly by calling the task directly) and the
report-ready notification helpers.
"""
from unittest.mock import MagicMock

import httpx

from app.core.config import get_settings
from app.models.company import Company
from app.services import enrichment_tasks, notifications
from app.services.connectors import ConnectorRegistry
from tests.fixtures.enrichment_fixtures import FakeConnector


class TestEnrichPendingCompanies:
    def test_enriches_only_unenriched_companies(self, db, make_company, monkeypatch):
        fresh = make_company(name="Fresh Co")
        done = make_company(name="Done Co", is_enriched=True, enrichment_data={"confidence": 0.9})
        hunter = FakeConnector("hunter", {"owner_email": "owner@fresh.co"})
        monkeypatch.setattr(
            enrichment_tasks,
            "build_connector_registry",
            lambda creds: ConnectorRegistry({"hunter": hunter, "apollo": FakeConnector("apollo")}),
        )

        assert enrichment_tasks.enrich_pending_companies() == 1

        db.expire_all()
        assert db.get(Company, fresh.id).enrichment_data["owner_email"] == "owner@fresh.co"
        assert db.get(Company, done.id).enrichment_data == {"confidence": 0.9}
        assert [c.name for c in hunter.calls] == ["Fresh Co"]

    def test_respects_limit(self, make_company, monkeypatch):
        for i in range(3):
            make_company(name=f"Co {i}")
        monkeypatch.setattr(
            enrichment_tasks,
            "build_connector_registry",
            lambda creds: ConnectorRegistry({}),
        )
        assert enrichment_tasks.enrich_pending_companies(limit=2) == 2

    def test_nothing_pending(self):
        assert enrichment_tasks.enrich_pending_companies() == 0

    def test_one_failure_does_not_stop_batch(self, make_company, monkeypatch):
        make_company(name="A")
        make_company(name="B")
        seen = []

        def flaky(db, company_id, registry=None):
            seen.append(company_id)
            if len(seen) == 1:
                raise RuntimeError("db hiccup")

        monkeypatch.setattr(enrichment_tasks, "enrich_company", flaky)
        monkeypatch.setattr(enrichment_tasks, "build_connector_registry", lambda creds: ConnectorRegistry({}))
        assert enrichment_tasks.enrich_pending_companies() == 1
        assert len(seen) == 2


class TestSendReportReady:
    PAYLOAD = {"report_id": "r-1", "user_id": "u-1", "company_name": "Acme", "tier": "BI"}

    def test_skipped_without_dispatcher(self, monkeypatch):
        monkeypatch.setattr(get_settings(), "REPORT_READY_WEBHOOK_URL", None)
        post = MagicMock()
        monkeypatch.setattr(notifications.httpx, "post", post)
        assert notifications.send_report_ready(self.PAYLOAD) is False
        post.assert_not_called()

    def test_posts_payload_with_token(self, monkeypatch):
        settings = get_settings()
        monkeypatch.setattr(settings, "REPORT_READY_WEBHOOK_URL", "https://mail.test/report-ready")
        monkeypatch.setattr(settings, "REPORT_READY_WEBHOOK_TOKEN", "tok")
        post = MagicMock(return_value=httpx.Response(202))
        monkeypatch.setattr(notifications.httpx, "post", post)

        assert notifications.send_report_ready(self.PAYLOAD) is True
        args, kwargs = post.call_args
        assert args[0] == "https://mail.test/report-ready"
        assert kwargs["json"] == self.PAYLOAD
        assert kwargs["headers"]["Authorization"] == "Bearer tok"

    def test_dispatcher_error_is_reported(self, monkeypatch):
        monkeypatch.setattr(get_settings(), "REPORT_READY_WEBHOOK_URL", "https://mail.test/report-ready")
        monkeypatch.setattr(notifications.httpx, "post", MagicMock(return_value=httpx.Response(500)))
        assert notifications.send_report_ready(self.PAYLOAD) is False


class TestNotifyReportReady:
    def test_enqueues_task(self, monkeypatch):
        send_task = MagicMock()
        monkeypatch.setattr(notifications.celery_app, "send_task", send_task)
        notifications.notify_report_ready(report_id="r-1", user_id="u-1", company_name="Acme", tier="BI")
        send_task.assert_called_once_with(
            notifications.SEND_REPORT_READY_TASK,
            args=[{"report_id": "r-1", "user_id": "u-1", "company_name": "Acme", "tier": "BI"}],
        )

    def test_broker_outage_is_swallowed(self, monkeypatch):
        monkeypatch.setattr(
            notifications.celery_app,
            "send_task",
            MagicMock(side_effect=ConnectionError("broker down")),
        )
        notifications.notify_report_ready(report_id="r-1", user_id="u-1", company_name="Acme", tier="BI")
