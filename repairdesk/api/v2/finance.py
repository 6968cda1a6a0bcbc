from fastapi import APIRouter, Query, status
from sqlalchemy import select, func
from sqlalchemy.orm import selectinload
from datetime import timedelta
from decimal import Decimal
from typing import Literal
import logging
import math

from repairdesk.api.deps import DbSession, CurrentUser
from repairdesk.exceptions import ConflictError, MissingFieldsError, NotFoundError, ValidationError
from repairdesk.models.financial_record import FinancialRecord, RecordType
from repairdesk.models.service import Service
from repairdesk.schemas.base import Pagination
from repairdesk.schemas.finance import (
    FinancialRecordCreate,
    FinancialRecordUpdate,
    FinancialRecordResponse,
    FinancialRecordListResponse,
    FinanceSummary,
)
from repairdesk.services.status_workflow import to_money
from repairdesk.timeutils import start_of_day, utcnow

logger = logging.getLogger(__name__)

router = APIRouter()


def parse_record_type(value: str) -> str:
    try:
        return RecordType(value.upper()).value
    except ValueError:
        raise ValidationError(f"Invalid type '{value}'. Must be INCOME or EXPENSE")


def require_amount(value) -> Decimal:
    amount = to_money(value, "amount")
    if not amount:
        raise ValidationError("amount must be greater than zero")
    return amount


async def _load_record(db, record_id: str) -> FinancialRecord:
    result = await db.execute(
        select(FinancialRecord)
        .where(FinancialRecord.id == record_id)
        .options(selectinload(FinancialRecord.service))
        .execution_options(populate_existing=True)
    )
    record = result.scalar_one_or_none()
    if not record:
        raise NotFoundError("Financial record", record_id)
    return record


@router.get("", response_model=FinancialRecordListResponse)
async def list_records(
    db: DbSession,
    current_user: CurrentUser,
    record_type: str = Query("all", alias="type", description="income, expense or all (any case)"),
    period: Literal["daily", "weekly", "monthly", "all"] = "all",
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    """Ledger entries, newest first, with totals for the same filter."""
    filters = []
    if record_type.lower() != "all":
        filters.append(FinancialRecord.type == parse_record_type(record_type))

    if period != "all":
        now = utcnow()
        if period == "daily":
            start = start_of_day(now)
        elif period == "weekly":
            start = now - timedelta(days=7)
        else:
            start = now - timedelta(days=30)
        filters.append(FinancialRecord.recorded_at >= start)

    totals = await db.execute(
        select(FinancialRecord.type, func.sum(FinancialRecord.amount), func.count(FinancialRecord.id))
        .where(*filters)
        .group_by(FinancialRecord.type)
    )
    income = expense = 0.0
    total = 0
    for row_type, amount, count in totals.all():
        if row_type == RecordType.INCOME.value:
            income = float(amount or 0)
        elif row_type == RecordType.EXPENSE.value:
            expense = float(amount or 0)
        total += count

    result = await db.execute(
        select(FinancialRecord)
        .where(*filters)
        .options(selectinload(FinancialRecord.service))
        .order_by(FinancialRecord.recorded_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )

    return FinancialRecordListResponse(
        records=result.scalars().all(),
        pagination=Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit)),
        summary=FinanceSummary(income=income, expense=expense, net=income - expense, transaction_count=total),
    )


@router.post("", response_model=FinancialRecordResponse, status_code=status.HTTP_201_CREATED)
async def create_record(
    record_data: FinancialRecordCreate,
    db: DbSession,
    current_user: CurrentUser,
):
    """Record a manual income or expense entry."""
    missing = [field for field in ("amount", "type") if not getattr(record_data, field)]
    if missing:
        raise MissingFieldsError(missing)

    amount = require_amount(record_data.amount)
    record_type = parse_record_type(record_data.type)

    if record_data.service_id:
        if not await db.get(Service, record_data.service_id):
            raise NotFoundError("Service", record_data.service_id)
        existing = await db.scalar(
            select(FinancialRecord.id).where(FinancialRecord.service_id == record_data.service_id)
        )
        if existing:
            raise ConflictError("This service already has a financial record")

    record = FinancialRecord(
        amount=amount,
        type=record_type,
        description=record_data.description,
        service_id=record_data.service_id or None,
        recorded_at=utcnow(),
    )
    db.add(record)
    await db.commit()

    logger.info(f"{record_type} record {record.id} created", extra={"actor": current_user.email})
    return await _load_record(db, record.id)


@router.get("/{record_id}", response_model=FinancialRecordResponse)
async def get_record(
    record_id: str,
    db: DbSession,
    current_user: CurrentUser,
):
    return await _load_record(db, record_id)


@router.put("/{record_id}", response_model=FinancialRecordResponse)
async def update_record(
    record_id: str,
    record_data: FinancialRecordUpdate,
    db: DbSession,
    current_user: CurrentUser,
):
    """Edit amount, type or description."""
    record = await _load_record(db, record_id)
    update_data = record_data.model_dump(exclude_unset=True)

    if "amount" in update_data:
        record.amount = require_amount(update_data["amount"])
    if "type" in update_data:
        if not update_data["type"]:
            raise MissingFieldsError(["type"])
        record.type = parse_record_type(update_data["type"])
    if "description" in update_data:
        record.description = update_data["description"]

    await db.commit()
    return await _load_record(db, record_id)


@router.delete("/{record_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_record(
    record_id: str,
    db: DbSession,
    current_user: CurrentUser,
):
    record = await db.get(FinancialRecord, record_id)
    if not record:
        raise NotFoundError("Financial record", record_id)

    await db.delete(record)
    await db.commit()
    logger.info(f"Financial record {record_id} deleted", extra={"actor": current_user.email})
