from fastapi import APIRouter, Depends, status
from sqlalchemy import select, func, or_
from sqlalchemy.orm import selectinload
from typing import Optional
import logging

from repairdesk.api.deps import DbSession, CurrentUser
from repairdesk.exceptions import ConflictError, MissingFieldsError, NotFoundError, ValidationError
from repairdesk.models.customer import Customer
from repairdesk.models.service import Service
from repairdesk.schemas.customer import (
    CustomerCreate,
    CustomerUpdate,
    CustomerResponse,
    CustomerListItem,
    CustomerDetail,
)
from repairdesk.security.rbac import Permission, require_permission
from repairdesk.timeutils import utcnow

logger = logging.getLogger(__name__)

router = APIRouter()


async def _load_customer(db, customer_id: str, with_technicians: bool = False) -> Customer:
    services_option = selectinload(Customer.services)
    if with_technicians:
        services_option = services_option.selectinload(Service.technician)
    result = await db.execute(
        select(Customer)
        .where(Customer.id == customer_id)
        .options(services_option)
        .execution_options(populate_existing=True)
    )
    customer = result.scalar_one_or_none()
    if not customer:
        raise NotFoundError("Customer", customer_id)
    return customer


@router.get("", response_model=list[CustomerListItem])
async def list_customers(
    db: DbSession,
    current_user: CurrentUser,
    search: Optional[str] = None,
):
    """List customers, newest first, with their services."""
    query = select(Customer).options(selectinload(Customer.services))

    if search:
        pattern = f"%{search}%"
        query = query.where(
            or_(
                Customer.name.ilike(pattern),
                Customer.email.ilike(pattern),
                Customer.phone.ilike(pattern),
                Customer.address.ilike(pattern),
            )
        )

    result = await db.execute(query.order_by(Customer.created_at.desc()))
    return result.scalars().all()


@router.get("/{customer_id}", response_model=CustomerDetail)
async def get_customer(
    customer_id: str,
    db: DbSession,
    current_user: CurrentUser,
):
    """Get a single customer with their service history."""
    return await _load_customer(db, customer_id, with_technicians=True)


@router.post("", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
async def create_customer(
    customer_data: CustomerCreate,
    db: DbSession,
    current_user: CurrentUser,
):
    """Create a new customer. Name and phone are required."""
    missing = [field for field in ("name", "phone") if not getattr(customer_data, field)]
    if missing:
        raise MissingFieldsError(missing)

    customer = Customer(**customer_data.model_dump())
    db.add(customer)
    await db.commit()
    await db.refresh(customer)

    logger.info(f"Customer {customer.id} created", extra={"actor": current_user.email})
    return customer


@router.put("/{customer_id}", response_model=CustomerResponse)
async def update_customer(
    customer_id: str,
    customer_data: CustomerUpdate,
    db: DbSession,
    current_user: CurrentUser,
):
    """Update a customer."""
    customer = await db.get(Customer, customer_id)
    if not customer:
        raise NotFoundError("Customer", customer_id)

    update_data = customer_data.model_dump(exclude_unset=True)
    for field in ("name", "phone"):
        if field in update_data and not (update_data[field] or "").strip():
            raise ValidationError(f"{field} cannot be empty")

    for field, value in update_data.items():
        setattr(customer, field, value)
    customer.updated_at = utcnow()

    await db.commit()
    await db.refresh(customer)
    return customer


@router.delete(
    "/{customer_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_permission(Permission.DELETE_CUSTOMERS))],
)
async def delete_customer(
    customer_id: str,
    db: DbSession,
    current_user: CurrentUser,
):
    """Delete a customer that has no services (admin only)."""
    customer = await db.get(Customer, customer_id)
    if not customer:
        raise NotFoundError("Customer", customer_id)

    service_count = await db.scalar(
        select(func.count()).select_from(Service).where(Service.customer_id == customer_id)
    )
    if service_count:
        raise ConflictError(f"Customer has {service_count} service record(s) and cannot be deleted")

    await db.delete(customer)
    await db.commit()
    logger.info(f"Customer {customer_id} deleted", extra={"actor": current_user.email})
