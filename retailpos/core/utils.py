"""Shared helpers: audit logging, pagination and query parameter parsing"""
import logging
from datetime import datetime, date, timedelta

from django.core.paginator import Paginator
from django.utils import timezone
from rest_framework.response import Response

from .models import AuditLog

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 15
MAX_PAGE_SIZE = 100


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


def create_audit_log(request=None, action=None, model_name=None, object_id=None,
                     changes=None, user=None, object_name=None, object_reference=None):
    """
    Create an audit log entry

    Args:
        request: Django request object (for user and IP) - optional if user is provided
        action: Action type (create, update, delete, stock_sale, etc.)
        model_name: Name of the model being acted upon
        object_id: ID of the object (as string)
        changes: Dictionary of changes made
        user: Optional user override (defaults to request.user if request provided)
        object_name: Human-readable name of the object (e.g., product name, invoice number)
        object_reference: Reference identifier (e.g., invoice number, purchase number)
    """
    try:
        audit_user = None
        if user:
            audit_user = user
        elif request and hasattr(request, 'user'):
            audit_user = request.user

        ip_address = get_client_ip(request) if request else None

        if not action or not model_name or not object_id:
            logger.warning(f"Audit log creation skipped: missing required fields (action={action}, model_name={model_name}, object_id={object_id})")
            return None

        return AuditLog.objects.create(
            user=audit_user if audit_user and audit_user.is_authenticated else None,
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            object_name=object_name,
            object_reference=object_reference,
            changes=changes or {},
            ip_address=ip_address
        )
    except Exception as e:
        # Don't fail the main operation if audit logging fails
        logger.error(f"Failed to create audit log: {str(e)}", exc_info=True)
        return None


def get_page_size(request, default=DEFAULT_PAGE_SIZE):
    """Read `limit` (or `per_page`) from the query string, clamped to MAX_PAGE_SIZE"""
    raw = request.query_params.get('limit') or request.query_params.get('per_page')
    try:
        size = int(raw) if raw else default
    except (TypeError, ValueError):
        size = default
    return max(1, min(size, MAX_PAGE_SIZE))


def paginated_response(request, queryset, serializer_class, extra=None, context=None):
    """Paginate a queryset and return the standard list payload"""
    try:
        page = int(request.query_params.get('page', 1))
    except (TypeError, ValueError):
        page = 1
    limit = get_page_size(request)

    paginator = Paginator(queryset, limit)
    page_obj = paginator.get_page(page)

    serializer_context = {'request': request}
    if context:
        serializer_context.update(context)
    serializer = serializer_class(page_obj.object_list, many=True, context=serializer_context)
    data = {
        'results': serializer.data,
        'count': paginator.count,
        'next': page_obj.next_page_number() if page_obj.has_next() else None,
        'previous': page_obj.previous_page_number() if page_obj.has_previous() else None,
        'page': page_obj.number,
        'page_size': limit,
        'total_pages': paginator.num_pages,
    }
    if extra:
        data.update(extra)
    return Response(data)


def parse_date(value, default=None):
    """Parse a YYYY-MM-DD query parameter; returns `default` when missing or malformed"""
    if not value:
        return default
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(value[:10], '%Y-%m-%d').date()
    except ValueError:
        return default


def parse_month(value, default=None):
    """Parse a YYYY-MM query parameter into the first day of that month"""
    if not value:
        return default
    try:
        return datetime.strptime(value[:7], '%Y-%m').date()
    except ValueError:
        return default


def month_bounds(day):
    """First and last day of the month containing `day`"""
    start = day.replace(day=1)
    if start.month == 12:
        next_month = start.replace(year=start.year + 1, month=1)
    else:
        next_month = start.replace(month=start.month + 1)
    return start, next_month - timedelta(days=1)


def previous_month(day):
    """First day of the month before the one containing `day`"""
    start = day.replace(day=1)
    if start.month == 1:
        return start.replace(year=start.year - 1, month=12)
    return start.replace(month=start.month - 1)


def report_period(request):
    """
    Date range for reports: `start_date`/`end_date` query parameters,
    defaulting to the current month.
    """
    today = timezone.localdate()
    month_start, month_end = month_bounds(today)
    start = parse_date(request.query_params.get('start_date'), month_start)
    end = parse_date(request.query_params.get('end_date'), month_end)
    return start, end


def percentage_change(current, previous, use_abs=False):
    """
    Percent change from `previous` to `current`, rounded to one decimal.
    Returns 0 when there is nothing to compare against.
    """
    current = float(current or 0)
    previous = float(previous or 0)
    if use_abs:
        if previous == 0:
            return 0
        return round((current - previous) / abs(previous) * 100, 1)
    if previous <= 0:
        return 0
    return round((current - previous) / previous * 100, 1)


def apply_ordering(queryset, request, allowed, default):
    """Order by `sort_by`/`sort_order` when `sort_by` is whitelisted"""
    sort_by = request.query_params.get('sort_by', default)
    sort_order = request.query_params.get('sort_order', 'asc' if not default.startswith('-') else 'desc')
    field = sort_by.lstrip('-')
    if field not in allowed:
        return queryset.order_by(default)
    prefix = '-' if sort_order.lower() == 'desc' else ''
    return queryset.order_by(f'{prefix}{field}', '-id')


def next_document_number(model, field, prefix, day=None):
    """
    Next sequential document number for the day, e.g. INV-20240501-0007.

    The sequence restarts every day and continues from the highest number
    already issued, so deleted documents do not cause duplicates.
    """
    day = day or timezone.localdate()
    stem = f"{prefix}-{day.strftime('%Y%m%d')}-"
    last = (
        model.objects.filter(**{f'{field}__startswith': stem})
        .order_by(f'-{field}')
        .values_list(field, flat=True)
        .first()
    )
    sequence = 1
    if last:
        try:
            sequence = int(last[len(stem):]) + 1
        except ValueError:
            sequence = model.objects.filter(**{f'{field}__startswith': stem}).count() + 1
    return f"{stem}{sequence:04d}"
