"""Customer email bodies for service notifications.

Each builder returns (subject, html_body, text_body).
"""

from html import escape
from typing import Optional, Tuple

from repairdesk.config import settings
from repairdesk.models.notification_log import NotificationType
from repairdesk.models.service import Service
from repairdesk.timeutils import utcnow

EmailContent = Tuple[str, str, str]


class MissingTemplateDataError(ValueError):
    """The notification cannot be composed from the data on file."""


def _format_date(moment) -> str:
    return moment.strftime("%d.%m.%Y")


def _format_fee(fee: float) -> str:
    return f"{fee:,.2f}"


def _wrap_html(title: str, greeting_name: str, intro: str, rows: list, outro: str) -> str:
    table_rows = "".join(
        f'<tr><td style="padding: 8px 0;"><strong>{escape(label)}:</strong></td>'
        f'<td style="padding: 8px 0; text-align: right;">{escape(value)}</td></tr>'
        for label, value in rows
    )
    shop = escape(settings.SHOP_NAME)
    return f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
  <div style="background: #4f46e5; color: white; padding: 24px; border-radius: 10px; text-align: center;">
    <h1 style="margin: 0; font-size: 22px;">{shop}</h1>
  </div>
  <div style="padding: 24px;">
    <h2 style="color: #333; margin-top: 0;">{escape(title)}</h2>
    <p>Dear <strong>{escape(greeting_name)}</strong>,</p>
    <p>{escape(intro)}</p>
    <table style="width: 100%; border-collapse: collapse; background: #f8f9fa;">{table_rows}</table>
    <p>{escape(outro)}</p>
  </div>
  <div style="text-align: center; color: #666; font-size: 12px;">
    <p>{shop} &middot; {escape(settings.SHOP_PHONE)}</p>
  </div>
</div>
"""


def _wrap_text(title: str, greeting_name: str, intro: str, rows: list, outro: str) -> str:
    lines = "\n".join(f"- {label}: {value}" for label, value in rows)
    return f"""{title}

Dear {greeting_name},

{intro}

{lines}

{outro}

{settings.SHOP_NAME}
{settings.SHOP_PHONE}
"""


def _render(title: str, service: Service, intro: str, rows: list, outro: str) -> EmailContent:
    name = service.customer.name if service.customer else "Customer"
    return (
        title,
        _wrap_html(title, name, intro, rows, outro),
        _wrap_text(title, name, intro, rows, outro),
    )


def service_received(service: Service) -> EmailContent:
    return _render(
        "Your device has been received",
        service,
        "Your device has been checked in at our service desk.",
        [
            ("Service number", service.service_number),
            ("Device", f"{service.brand} {service.model}"),
            ("Received on", _format_date(service.created_at)),
        ],
        "We will email you as the repair progresses.",
    )


def approval_pending(service: Service, estimated_fee: Optional[float]) -> EmailContent:
    if not estimated_fee:
        raise MissingTemplateDataError("An estimated fee is required to request approval")
    return _render(
        "Your approval is needed",
        service,
        "Diagnosis is complete and the repair cost has been estimated.",
        [
            ("Service number", service.service_number),
            ("Device", f"{service.brand} {service.model}"),
            ("Estimated repair fee", _format_fee(estimated_fee)),
        ],
        f"Please call us at {settings.SHOP_PHONE} to approve or cancel the repair.",
    )


def service_completed(service: Service) -> EmailContent:
    completed = service.completed_at or utcnow()
    outro = "You can pick up your device during opening hours."
    if settings.SHOP_ADDRESS:
        outro = f"You can pick up your device at {settings.SHOP_ADDRESS} during opening hours."
    return _render(
        "Your device is ready for pickup",
        service,
        "The repair of your device has been completed.",
        [
            ("Service number", service.service_number),
            ("Device", f"{service.brand} {service.model}"),
            ("Completed on", _format_date(completed)),
        ],
        outro,
    )


def payment_reminder(service: Service) -> EmailContent:
    fee = service.actual_fee or service.estimated_fee
    if not fee:
        raise MissingTemplateDataError("No fee on file for a payment reminder")
    return _render(
        "Payment reminder",
        service,
        "This is a reminder that a payment is outstanding for your repair.",
        [
            ("Service number", service.service_number),
            ("Device", f"{service.brand} {service.model}"),
            ("Amount due", _format_fee(float(fee))),
        ],
        "Thank you for choosing us.",
    )


def build_email(notification_type: NotificationType, service: Service, estimated_fee: Optional[float]) -> EmailContent:
    if notification_type == NotificationType.SERVICE_RECEIVED:
        return service_received(service)
    if notification_type == NotificationType.CUSTOMER_APPROVAL_PENDING:
        return approval_pending(service, estimated_fee)
    if notification_type == NotificationType.SERVICE_COMPLETED:
        return service_completed(service)
    return payment_reminder(service)
