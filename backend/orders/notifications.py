"""
E-mail notifications for order workflow events.

Messages are queued with transaction.on_commit so nothing is sent for a
transition that is rolled back. Delivery failures are logged and never
propagate to the request.
"""
from django.conf import settings
from django.core.mail import send_mail
from django.db import transaction
import logging

from backend.core.models import User

logger = logging.getLogger(__name__)


def send_order_email(recipients, subject, body):
    """Send a plain-text email, returning True on success"""
    recipients = [email for email in recipients if email]
    if not recipients:
        logger.info(f"Skipping order email '{subject}': no recipients")
        return False
    try:
        send_mail(subject, body, settings.DEFAULT_FROM_EMAIL, recipients, fail_silently=False)
        logger.info(f"Sent order email '{subject}' to {len(recipients)} recipient(s)")
        return True
    except Exception as e:
        logger.error(f"Failed to send order email '{subject}': {str(e)}")
        return False


def _queue(recipients, subject, body):
    if not getattr(settings, 'ORDER_NOTIFICATIONS_ENABLED', True):
        return
    transaction.on_commit(lambda: send_order_email(recipients, subject, body))


def _manager_emails():
    return list(
        User.objects.filter(role=User.ROLE_MANAGER, is_active=True, deleted_at__isnull=True)
        .exclude(email='')
        .values_list('email', flat=True)
    )


def _salesperson_email(order):
    return [order.salesperson.email] if order.salesperson_id else []


def notify_order_submitted(order):
    subject = f"Order {order.order_number} submitted for approval"
    body = (
        f"{order.salesperson.display_name} submitted order {order.order_number} "
        f"for {order.customer_name}.\n\n"
        f"Order total: {order.get_total():.2f}\n"
    )
    _queue(_manager_emails(), subject, body)


def notify_order_approved(order):
    subject = f"Order {order.order_number} approved"
    body = f"Your order {order.order_number} for {order.customer_name} has been approved.\n"
    if order.notes:
        body += f"\nNotes: {order.notes}\n"
    _queue(_salesperson_email(order), subject, body)


def notify_order_rejected(order, notes=None):
    subject = f"Order {order.order_number} rejected"
    body = f"Your order {order.order_number} for {order.customer_name} has been rejected.\n"
    if notes:
        body += f"\nReason: {notes}\n"
    _queue(_salesperson_email(order), subject, body)


def notify_order_fulfilled(order, fully_fulfilled):
    state = 'fulfilled' if fully_fulfilled else 'partially fulfilled'
    subject = f"Order {order.order_number} {state}"
    body = f"Your order {order.order_number} for {order.customer_name} has been {state}.\n"
    _queue(_salesperson_email(order), subject, body)
