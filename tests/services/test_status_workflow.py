"""
Tests for the service status workflow.

Table helpers are pure; ServiceWorkflow tests run against the SQLite test
database without going through HTTP.
"""
import re
from datetime import datetime
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError, OperationalError

from repairdesk.exceptions import (
    ConflictError,
    InvalidTransitionError,
    MissingFieldsError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from repairdesk.models.financial_record import FinancialRecord
from repairdesk.models.notification_log import NotificationType
from repairdesk.models.service import ServiceStatus
from repairdesk.services import status_workflow
from repairdesk.services.status_workflow import (
    TRANSITIONS,
    ServiceWorkflow,
    allowed_transitions,
    can_transition,
    generate_service_number,
    is_terminal,
    parse_status,
    to_money,
)


def intake(customer_id: str, **overrides) -> dict:
    data = {
        "customer_id": customer_id,
        "device_type": "PHONE",
        "brand": "Apple",
        "model": "iPhone 13",
        "problem_description": "Screen cracked",
        "estimated_fee": 1500,
    }
    data.update(overrides)
    return data


class TestTransitionTable:
    """Tests for the adjacency table helpers."""

    def test_every_status_has_an_entry(self):
        assert set(TRANSITIONS) == set(ServiceStatus)

    def test_terminal_statuses(self):
        assert [s.value for s in ServiceStatus if is_terminal(s)] == ["DELIVERED", "CANCELLED", "RETURNED"]

    def test_allowed_from_repairing(self):
        assert allowed_transitions("REPAIRING") == ["COMPLETED_READY_FOR_DELIVERY", "PARTS_PENDING", "CANCELLED"]

    def test_can_transition(self):
        assert can_transition("RECEIVED", "DIAGNOSIS_PENDING") is True
        assert can_transition("RECEIVED", "DELIVERED") is False
        assert can_transition("COMPLETED_READY_FOR_DELIVERY", "CANCELLED") is False

    def test_no_status_reaches_returned(self):
        assert all(ServiceStatus.RETURNED not in targets for targets in TRANSITIONS.values())

    def test_parse_status(self):
        assert parse_status("repairing") is ServiceStatus.REPAIRING
        with pytest.raises(MissingFieldsError):
            parse_status("")
        with pytest.raises(ValidationError):
            parse_status("BROKEN")


class TestHelpers:

    def test_service_number_format(self):
        number = generate_service_number(now_ms=1700000000000)
        assert re.fullmatch(r"SRV-1700000000000-\d{1,3}", number)

    def test_service_number_suffix_range(self):
        suffixes = {int(generate_service_number().rsplit("-", 1)[1]) for _ in range(200)}
        assert min(suffixes) >= 0
        assert max(suffixes) <= 999

    def test_to_money(self):
        assert to_money(19.999, "fee") == Decimal("20.00")
        assert to_money("1500", "fee") == Decimal("1500.00")
        assert to_money(None, "fee") is None

    def test_to_money_rejects_bad_values(self):
        with pytest.raises(ValidationError):
            to_money(-1, "fee")
        with pytest.raises(ValidationError):
            to_money("abc", "fee")


class TestServiceWorkflow:
    """Tests for ServiceWorkflow against the database."""

    @pytest.mark.asyncio
    async def test_create_service(self, test_db, customer):
        service = await ServiceWorkflow(test_db).create_service(intake(customer.id), actor="desk@example.com")

        assert service.status == "RECEIVED"
        assert service.estimated_fee == Decimal("1500.00")
        assert len(service.status_history) == 1
        assert service.status_history[0].changed_by == "desk@example.com"

    @pytest.mark.asyncio
    async def test_create_service_defaults_actor(self, test_db, customer):
        service = await ServiceWorkflow(test_db).create_service(intake(customer.id))

        assert service.status_history[0].changed_by == "system"

    @pytest.mark.asyncio
    async def test_create_reports_all_missing_fields(self, test_db):
        with pytest.raises(MissingFieldsError) as exc_info:
            await ServiceWorkflow(test_db).create_service({"brand": "Apple"})

        assert exc_info.value.fields == ["customerId", "deviceType", "model", "problemDescription"]

    @pytest.mark.asyncio
    async def test_create_unknown_technician(self, test_db, customer):
        with pytest.raises(NotFoundError):
            await ServiceWorkflow(test_db).create_service(intake(customer.id, technician_id="nobody"))

    @pytest.mark.asyncio
    async def test_service_number_exhaustion(self, test_db, customer, monkeypatch):
        workflow = ServiceWorkflow(test_db)
        first = await workflow.create_service(intake(customer.id))
        monkeypatch.setattr(status_workflow, "generate_service_number", lambda: first.service_number)

        with pytest.raises(ConflictError):
            await workflow.create_service(intake(customer.id))

    @pytest.mark.asyncio
    async def test_enforced_rejects_skip(self, test_db, customer):
        workflow = ServiceWorkflow(test_db, enforce=True)
        service = await workflow.create_service(intake(customer.id))

        with pytest.raises(InvalidTransitionError) as exc_info:
            await workflow.update_status(service.id, "DELIVERED", actor="a@example.com")

        assert exc_info.value.allowed == ["DIAGNOSIS_PENDING", "CANCELLED"]

    @pytest.mark.asyncio
    async def test_permissive_mode_allows_any_move(self, test_db, customer):
        workflow = ServiceWorkflow(test_db, enforce=False)
        service = await workflow.create_service(intake(customer.id))

        result = await workflow.update_status(service.id, "RETURNED", actor="a@example.com")

        assert result.service.status == "RETURNED"

    @pytest.mark.asyncio
    async def test_delivered_twice_keeps_one_income_record(self, test_db, customer):
        workflow = ServiceWorkflow(test_db, enforce=False)
        service = await workflow.create_service(intake(customer.id))

        first = await workflow.update_status(service.id, "DELIVERED", actor="a@example.com", actual_fee=1200)
        delivered_at = first.service.delivered_at
        second = await workflow.update_status(service.id, "DELIVERED", actor="a@example.com", actual_fee=1300)

        count = await test_db.scalar(
            select(func.count()).select_from(FinancialRecord).where(FinancialRecord.service_id == service.id)
        )
        assert count == 1
        assert second.service.financial_record.amount == Decimal("1300.00")
        assert second.service.delivered_at == delivered_at
        assert len(second.service.status_history) == 3

    @pytest.mark.asyncio
    async def test_redelivery_refreshes_income_date(self, test_db, customer):
        workflow = ServiceWorkflow(test_db, enforce=False)
        service = await workflow.create_service(intake(customer.id))
        first = await workflow.update_status(service.id, "DELIVERED", actor="a@example.com")
        first.service.financial_record.recorded_at = datetime(2020, 1, 1)
        await test_db.commit()

        second = await workflow.update_status(service.id, "DELIVERED", actor="a@example.com", actual_fee=1300)

        assert second.service.financial_record.recorded_at > datetime(2020, 1, 1)

    @pytest.mark.asyncio
    async def test_commit_failure_leaves_service_unchanged(self, test_db, customer, monkeypatch):
        workflow = ServiceWorkflow(test_db)
        service = await workflow.create_service(intake(customer.id))
        service_id = service.id
        monkeypatch.setattr(
            test_db,
            "commit",
            AsyncMock(side_effect=OperationalError("COMMIT", {}, Exception("database is locked"))),
        )

        with pytest.raises(PersistenceError) as exc_info:
            await workflow.update_status(service_id, "DIAGNOSIS_PENDING", actor="a@example.com")

        assert exc_info.value.status_code == 500
        reloaded = await workflow.get_service(service_id)
        assert reloaded.status == "RECEIVED"
        assert len(reloaded.status_history) == 1

    @pytest.mark.asyncio
    async def test_flush_failure_on_delivery_is_rolled_back(self, test_db, customer, monkeypatch):
        workflow = ServiceWorkflow(test_db, enforce=False)
        service = await workflow.create_service(intake(customer.id))
        service_id = service.id
        sync_session = test_db.sync_session
        real_flush = sync_session.flush

        def failing_flush(objects=None):
            if sync_session.new:
                raise IntegrityError("INSERT INTO service_status_history", {}, Exception("constraint failed"))
            return real_flush(objects)

        monkeypatch.setattr(sync_session, "flush", failing_flush)

        with pytest.raises(PersistenceError):
            await workflow.update_status(service_id, "DELIVERED", actor="a@example.com", actual_fee=1200)

        monkeypatch.undo()
        reloaded = await workflow.get_service(service_id)
        assert reloaded.status == "RECEIVED"
        assert reloaded.delivered_at is None
        assert reloaded.financial_record is None
        assert len(reloaded.status_history) == 1

    @pytest.mark.asyncio
    async def test_actual_fee_ignored_before_delivery(self, test_db, customer):
        workflow = ServiceWorkflow(test_db)
        service = await workflow.create_service(intake(customer.id))

        result = await workflow.update_status(service.id, "DIAGNOSIS_PENDING", actor="a@example.com", actual_fee=99)

        assert result.service.actual_fee is None

    @pytest.mark.asyncio
    async def test_notification_request_for_approval(self, test_db, customer):
        workflow = ServiceWorkflow(test_db)
        service = await workflow.create_service(intake(customer.id))
        await workflow.update_status(service.id, "DIAGNOSIS_PENDING", actor="a@example.com")

        result = await workflow.update_status(service.id, "CUSTOMER_APPROVAL_PENDING", actor="a@example.com")

        request = result.notification
        assert request.type == NotificationType.CUSTOMER_APPROVAL_PENDING
        assert request.customer_email == customer.email
        assert request.service_number == service.service_number
        assert request.estimated_fee == 1500

    @pytest.mark.asyncio
    async def test_no_notification_for_silent_status(self, test_db, customer):
        workflow = ServiceWorkflow(test_db)
        service = await workflow.create_service(intake(customer.id))

        result = await workflow.update_status(service.id, "DIAGNOSIS_PENDING", actor="a@example.com")

        assert result.notification is None

    @pytest.mark.asyncio
    async def test_update_clears_technician(self, test_db, customer, technician_user):
        workflow = ServiceWorkflow(test_db)
        service = await workflow.create_service(intake(customer.id, technician_id=technician_user.id))
        assert service.technician_id == technician_user.id

        result = await workflow.update_service(service.id, {"technician_id": None}, actor="a@example.com")

        assert result.service.technician_id is None
