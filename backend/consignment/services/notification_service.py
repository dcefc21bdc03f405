# Overview: Service-layer operations for consignor notifications (in-app rows plus optional email).

"""
Consignor Notifications

Each notification is stored as an in-app Notification row and, when mail is
configured and the consignor has an email address, also sent as a plain-text
email through Flask-Mail.

These functions raise on failure. Callers that must not be affected by a
notification problem (payout marking, statement generation) wrap the call
with notify_safely().
"""

from __future__ import annotations

from flask import current_app
from flask_mail import Message

from ..extensions import db, mail
from ..models import Consignor, Notification, Payout, Statement
from ..models.notifications import NOTIFICATION_PAYOUT_PROCESSED, NOTIFICATION_STATEMENT_READY


def _mail_enabled() -> bool:
    cfg = current_app.config
    return bool(
        not cfg.get("MAIL_SUPPRESS_SEND", False)
        and cfg.get("MAIL_SERVER")
    )


def format_cents(cents: int) -> str:
    sign = "-" if cents < 0 else ""
    cents = abs(cents)
    return f"{sign}${cents // 100:,}.{cents % 100:02d}"


def create_notification(
    *,
    consignor: Consignor,
    type: str,
    title: str,
    message: str,
    related_entity_type: str | None = None,
    related_entity_id: int | None = None,
) -> Notification:
    notification = Notification(
        org_id=consignor.org_id,
        consignor_id=consignor.id,
        type=type,
        title=title,
        message=message,
        related_entity_type=related_entity_type,
        related_entity_id=related_entity_id,
    )
    db.session.add(notification)

    if consignor.email and _mail_enabled():
        mail.send(Message(subject=title, recipients=[consignor.email], body=message))
        notification.email_sent = True
    elif consignor.email:
        current_app.logger.info("[MAIL DISABLED] %s email skipped for consignor %s", type, consignor.id)

    db.session.commit()
    return notification


def notify_payout_processed(payout: Payout) -> Notification:
    consignor = payout.consignor
    message = (
        f"Hi {consignor.first_name},\n\n"
        f"A payout of {format_cents(payout.amount_cents)} covering "
        f"{payout.transaction_count} sale(s) was sent via {payout.payment_method}.\n"
        f"Payout number: {payout.payout_number}\n"
    )
    return create_notification(
        consignor=consignor,
        type=NOTIFICATION_PAYOUT_PROCESSED,
        title=f"Payout {payout.payout_number} processed",
        message=message,
        related_entity_type="Payout",
        related_entity_id=payout.id,
    )


def notify_statement_ready(statement: Statement) -> Notification:
    consignor = statement.consignor
    message = (
        f"Hi {consignor.first_name},\n\n"
        f"Your statement for {statement.period_label} is ready.\n"
        f"Earnings: {format_cents(statement.total_earnings_cents)}\n"
        f"Closing balance: {format_cents(statement.closing_balance_cents)}\n"
    )
    return create_notification(
        consignor=consignor,
        type=NOTIFICATION_STATEMENT_READY,
        title=f"Statement {statement.statement_number} ready",
        message=message,
        related_entity_type="Statement",
        related_entity_id=statement.id,
    )


def notify_safely(func, *args, **kwargs) -> Notification | None:
    """
    Run a notify_* function; log and swallow any failure.

    The business operation has already been committed when this runs, so a
    failed notification only rolls back the notification itself.
    """
    try:
        return func(*args, **kwargs)
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Notification %s failed", getattr(func, "__name__", func))
        return None


def list_notifications(consignor_id: int, unread_only: bool = False) -> list[Notification]:
    query = db.session.query(Notification).filter_by(consignor_id=consignor_id)
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).all()
