"""Utility functions for audit logging and soft-deleted lookups"""
import logging

from django.db import transaction

from .exceptions import ApiError
from .models import AuditLog

logger = logging.getLogger(__name__)


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def get_alive_or_404(queryset, pk, message):
    """Fetch a non-deleted row by pk or raise a 404 ApiError with message"""
    obj = queryset.filter(pk=pk, deleted_at__isnull=True).first()
    if obj is None:
        raise ApiError(404, message)
    return obj


def create_audit_log(request=None, action=None, model_name=None, object_id=None,
                     changes=None, user=None, object_name=None, object_reference=None):
    """
    Create an audit log entry

    Args:
        request: Django request object (for user and IP) - optional if user is provided
        action: Action type (create, update, delete, order_submit, etc.)
        model_name: Name of the model being acted upon
        object_id: ID of the object (as string)
        changes: Dictionary of changes made
        user: Optional user override (defaults to request.user if request provided)
        object_name: Human-readable name of the object (e.g., product name, order number)
        object_reference: Reference identifier (e.g., order number, product code)
    """
    audit_user = user
    if audit_user is None and request is not None:
        audit_user = getattr(request, 'user', None)

    if not action or not model_name or object_id in (None, ''):
        logger.warning(f"Audit log creation skipped: missing required fields (action={action}, model_name={model_name}, object_id={object_id})")
        return None

    try:
        # Savepoint so a failed insert does not poison the caller's transaction
        with transaction.atomic():
            return AuditLog.objects.create(
                user=audit_user if audit_user and audit_user.is_authenticated else None,
                action=action,
                model_name=model_name,
                object_id=str(object_id),
                object_name=object_name,
                object_reference=object_reference,
                changes=changes or {},
                ip_address=get_client_ip(request) if request else None,
            )
    except Exception as e:
        # Audit logging must not break the main operation
        logger.error(f"Failed to create audit log: {str(e)}")
        return None
