"""Service status workflow.

Every status change of a Service goes through this module:

- the adjacency table decides which moves are legal,
- the change, its history row and (on delivery) the income record are
  written in one transaction,
- entering a customer-facing status yields a NotificationRequest that the
  caller dispatches after commit.

Both the dedicated status endpoint and the general service PUT use the same
transition chain so the side effects never diverge.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional
import logging
import random
import time
import uuid

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from repairdesk.config import settings
from repairdesk.exceptions import (
    ConflictError,
    InvalidTransitionError,
    MissingFieldsError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from repairdesk.models.customer import Customer
from repairdesk.models.financial_record import FinancialRecord, RecordType
from repairdesk.models.notification_log import NotificationType
from repairdesk.models.service import DeviceType, Service, ServiceStatus
from repairdesk.models.service_status_history import ServiceStatusHistory
from repairdesk.models.user import User
from repairdesk.timeutils import utcnow

logger = logging.getLogger(__name__)

S = ServiceStatus

TRANSITIONS: Dict[ServiceStatus, tuple] = {
    S.RECEIVED: (S.DIAGNOSIS_PENDING, S.CANCELLED),
    S.DIAGNOSIS_PENDING: (S.CUSTOMER_APPROVAL_PENDING, S.REPAIRING, S.CANCELLED),
    S.CUSTOMER_APPROVAL_PENDING: (S.REPAIRING, S.CANCELLED),
    S.PARTS_PENDING: (S.REPAIRING, S.CANCELLED),
    S.REPAIRING: (S.COMPLETED_READY_FOR_DELIVERY, S.PARTS_PENDING, S.CANCELLED),
    S.COMPLETED_READY_FOR_DELIVERY: (S.DELIVERED,),
    S.DELIVERED: (),
    S.CANCELLED: (),
    S.RETURNED: (),
}

# Entering one of these statuses emails the customer
NOTIFY_ON_ENTRY = {
    S.RECEIVED: NotificationType.SERVICE_RECEIVED,
    S.CUSTOMER_APPROVAL_PENDING: NotificationType.CUSTOMER_APPROVAL_PENDING,
    S.COMPLETED_READY_FOR_DELIVERY: NotificationType.SERVICE_COMPLETED,
}

REQUIRED_CREATE_FIELDS = (
    ("customer_id", "customerId"),
    ("device_type", "deviceType"),
    ("brand", "brand"),
    ("model", "model"),
    ("problem_description", "problemDescription"),
)

EDITABLE_FIELDS = (
    "device_type",
    "brand",
    "model",
    "serial_number",
    "imei",
    "problem_description",
    "accessories",
    "physical_condition",
    "estimated_fee",
    "actual_fee",
    "technician_id",
)

SERVICE_NUMBER_ATTEMPTS = 5


def parse_status(value: Any) -> ServiceStatus:
    """Coerce a wire value into a ServiceStatus or raise a 400."""
    if isinstance(value, ServiceStatus):
        return value
    if not value:
        raise MissingFieldsError(["status"])
    try:
        return ServiceStatus(str(value).upper())
    except ValueError:
        raise ValidationError(
            f"Invalid status '{value}'. Must be one of: {', '.join(s.value for s in ServiceStatus)}"
        )


def parse_device_type(value: Any) -> str:
    try:
        return DeviceType(str(value).upper()).value
    except ValueError:
        raise ValidationError(
            f"Invalid deviceType '{value}'. Must be one of: {', '.join(d.value for d in DeviceType)}"
        )


def allowed_transitions(status) -> List[str]:
    return [s.value for s in TRANSITIONS[parse_status(status)]]


def can_transition(from_status, to_status) -> bool:
    return parse_status(to_status) in TRANSITIONS[parse_status(from_status)]


def is_terminal(status) -> bool:
    return not TRANSITIONS[parse_status(status)]


def generate_service_number(now_ms: Optional[int] = None) -> str:
    """SRV-<unix millis>-<0..999>"""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"SRV-{now_ms}-{random.randint(0, 999)}"


def to_money(value: Any, field: str) -> Optional[Decimal]:
    """Convert a wire number into a two-place Decimal. Negative amounts are rejected."""
    if value is None:
        return None
    try:
        amount = Decimal(str(value)).quantize(Decimal("0.01"))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if amount < 0:
        raise ValidationError(f"{field} must not be negative")
    return amount


@dataclass
class NotificationRequest:
    """Customer email to send once the transition is committed."""

    type: NotificationType
    service_id: str
    customer_email: str
    service_number: str
    estimated_fee: Optional[float] = None


@dataclass
class TransitionResult:
    service: Service
    notification: Optional[NotificationRequest] = None


async def upsert_service_income(db: AsyncSession, service: Service, fee: Decimal) -> FinancialRecord:
    """
    Create or update the single INCOME record keyed on the service.

    Does not commit; runs inside the caller's transaction.
    """
    # Pending service/history rows are flushed by the caller's commit, inside its rollback handling
    with db.no_autoflush:
        result = await db.execute(
            select(FinancialRecord).where(FinancialRecord.service_id == service.id)
        )
    record = result.scalar_one_or_none()
    description = f"Service income - {service.service_number}"
    now = utcnow()

    if record is None:
        record = FinancialRecord(
            amount=fee,
            type=RecordType.INCOME.value,
            description=description,
            service_id=service.id,
            recorded_at=now,
        )
        db.add(record)
        logger.info(f"Income record created for {service.service_number}: {fee}")
    else:
        record.amount = fee
        record.type = RecordType.INCOME.value
        record.description = description
        record.recorded_at = now
        logger.info(f"Income record updated for {service.service_number}: {fee}")

    return record


class ServiceWorkflow:
    """Applies intake, edits and status transitions to services."""

    def __init__(self, db: AsyncSession, enforce: Optional[bool] = None):
        self.db = db
        self.enforce = settings.ENFORCE_STATUS_TRANSITIONS if enforce is None else enforce

    async def get_service(self, service_id: str) -> Service:
        """Load a service with everything the detail view renders."""
        result = await self.db.execute(
            select(Service)
            .where(Service.id == service_id)
            .options(
                selectinload(Service.customer),
                selectinload(Service.technician),
                selectinload(Service.status_history),
                selectinload(Service.financial_record),
            )
            .execution_options(populate_existing=True)
        )
        service = result.scalar_one_or_none()
        if not service:
            raise NotFoundError("Service", service_id)
        return service

    async def _require_user(self, user_id: str) -> User:
        user = await self.db.get(User, user_id)
        if not user:
            raise NotFoundError("Technician", user_id)
        return user

    async def _commit(self, action: str, service_ref: str) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"Failed to {action} for service {service_ref}: {e}")
            raise PersistenceError(f"Could not {action}")

    def _check_transition(self, current: ServiceStatus, target: ServiceStatus) -> None:
        if not self.enforce:
            return
        if target not in TRANSITIONS[current]:
            raise InvalidTransitionError(
                current.value,
                target.value,
                [s.value for s in TRANSITIONS[current]],
            )

    async def _apply_transition(
        self,
        service: Service,
        target: ServiceStatus,
        *,
        actor: str,
        notes: Optional[str],
        technician_id: Optional[str],
        actual_fee: Optional[Decimal],
    ) -> Optional[NotificationRequest]:
        now = utcnow()
        previous = service.status

        service.status = target.value
        service.updated_at = now

        if target == S.COMPLETED_READY_FOR_DELIVERY and service.completed_at is None:
            service.completed_at = now

        if target == S.DELIVERED:
            if service.delivered_at is None:
                service.delivered_at = now
            if service.completed_at is None:
                service.completed_at = now
            if actual_fee is not None:
                service.actual_fee = actual_fee

        if technician_id:
            service.technician_id = technician_id

        self.db.add(
            ServiceStatusHistory(
                service_id=service.id,
                status=target.value,
                notes=notes or "",
                changed_by=actor,
                changed_at=now,
            )
        )

        if target == S.DELIVERED:
            fee = service.actual_fee or service.estimated_fee
            if fee and fee > 0:
                await upsert_service_income(self.db, service, fee)
            else:
                logger.info(f"Service {service.service_number} delivered without a fee; no income recorded")

        logger.info(
            f"Service {service.service_number} status {previous} -> {target.value}",
            extra={"service_id": service.id, "actor": actor},
        )

        notification_type = NOTIFY_ON_ENTRY.get(target)
        customer = service.customer
        if notification_type and customer is not None and customer.email:
            return NotificationRequest(
                type=notification_type,
                service_id=service.id,
                customer_email=customer.email,
                service_number=service.service_number,
                estimated_fee=float(service.estimated_fee) if service.estimated_fee is not None else None,
            )
        return None

    async def create_service(self, data: Dict[str, Any], *, actor: str = "system") -> Service:
        """Intake a device. The service starts in RECEIVED with one history row."""
        missing = [wire for attr, wire in REQUIRED_CREATE_FIELDS if not data.get(attr)]
        if missing:
            raise MissingFieldsError(missing)

        device_type = parse_device_type(data["device_type"])
        estimated_fee = to_money(data.get("estimated_fee"), "estimatedFee")

        customer = await self.db.get(Customer, data["customer_id"])
        if not customer:
            raise NotFoundError("Customer", data["customer_id"])

        technician_id = data.get("technician_id") or None
        if technician_id:
            await self._require_user(technician_id)

        service_number = None
        for _ in range(SERVICE_NUMBER_ATTEMPTS):
            candidate = generate_service_number()
            exists = await self.db.execute(
                select(Service.id).where(Service.service_number == candidate)
            )
            if exists.scalar_one_or_none() is None:
                service_number = candidate
                break
        if service_number is None:
            raise ConflictError("Could not allocate a unique service number, please retry")

        now = utcnow()
        service = Service(
            id=str(uuid.uuid4()),
            service_number=service_number,
            customer_id=customer.id,
            technician_id=technician_id,
            device_type=device_type,
            brand=data["brand"],
            model=data["model"],
            serial_number=data.get("serial_number"),
            imei=data.get("imei"),
            problem_description=data["problem_description"],
            accessories=data.get("accessories"),
            physical_condition=data.get("physical_condition"),
            estimated_fee=estimated_fee,
            status=S.RECEIVED.value,
            created_at=now,
            updated_at=now,
        )
        self.db.add(service)
        self.db.add(
            ServiceStatusHistory(
                service_id=service.id,
                status=S.RECEIVED.value,
                notes="Service record created",
                changed_by=actor,
                changed_at=now,
            )
        )
        await self._commit("create service", service_number)

        logger.info(f"Service {service_number} created for customer {customer.id}", extra={"actor": actor})
        return await self.get_service(service.id)

    async def update_status(
        self,
        service_id: str,
        new_status,
        *,
        actor: str,
        notes: Optional[str] = None,
        technician_id: Optional[str] = None,
        actual_fee: Any = None,
    ) -> TransitionResult:
        """
        Move a service to `new_status`.

        Raises:
            NotFoundError: unknown service or technician
            ValidationError: missing/unknown status or a move outside the table
            PersistenceError: the transaction could not be committed
        """
        target = parse_status(new_status)
        fee = to_money(actual_fee, "actualFee")

        service = await self.get_service(service_id)
        self._check_transition(ServiceStatus(service.status), target)

        if technician_id:
            await self._require_user(technician_id)

        notification = await self._apply_transition(
            service,
            target,
            actor=actor,
            notes=notes,
            technician_id=technician_id,
            actual_fee=fee,
        )
        await self._commit("update status", service.service_number)

        return TransitionResult(await self.get_service(service_id), notification)

    async def update_service(self, service_id: str, data: Dict[str, Any], *, actor: str) -> TransitionResult:
        """
        Apply field edits. A `status` that differs from the current one runs
        the same transition chain as update_status.
        """
        service = await self.get_service(service_id)

        target = None
        if data.get("status") is not None:
            target = parse_status(data["status"])
            if target.value == service.status:
                target = None
            else:
                self._check_transition(ServiceStatus(service.status), target)

        changes = {k: v for k, v in data.items() if k in EDITABLE_FIELDS}

        for field in ("device_type", "brand", "model", "problem_description"):
            if field in changes and not changes[field]:
                raise ValidationError(f"{field} cannot be empty")
        if "device_type" in changes:
            changes["device_type"] = parse_device_type(changes["device_type"])
        for field, wire in (("estimated_fee", "estimatedFee"), ("actual_fee", "actualFee")):
            if field in changes:
                changes[field] = to_money(changes[field], wire)
        if changes.get("technician_id"):
            await self._require_user(changes["technician_id"])
        elif "technician_id" in changes:
            changes["technician_id"] = None

        for field, value in changes.items():
            setattr(service, field, value)
        service.updated_at = utcnow()

        notification = None
        if target is not None:
            notification = await self._apply_transition(
                service,
                target,
                actor=actor,
                notes=data.get("notes"),
                technician_id=None,
                actual_fee=None,
            )
        await self._commit("update service", service.service_number)

        return TransitionResult(await self.get_service(service_id), notification)
