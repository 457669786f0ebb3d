"""
Shared helpers for the JSON API views: body parsing, auth guards, pagination
and translation of service errors into responses.
"""
import functools
import json
import logging
import math

from django.http import JsonResponse

from orders.exceptions import OrderError, OrderValidationError

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def parse_json_body(request):
    """Decode the request body as a JSON object. An empty body is an empty dict."""
    if not request.body:
        return {}
    data = json.loads(request.body)
    if not isinstance(data, dict):
        raise OrderValidationError("Request body must be a JSON object.")
    return data


def parse_quantity(value):
    """
    A positive whole quantity from a JSON value or digit string, or None.
    Floats and booleans are rejected rather than truncated.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, str) and value.strip().isdecimal():
        value = int(value.strip())
    if not isinstance(value, int) or value < 1:
        return None
    return value


def parse_pagination(request, default_limit=DEFAULT_PAGE_SIZE):
    try:
        page = int(request.GET.get('page', 1))
        limit = int(request.GET.get('limit', default_limit))
    except (TypeError, ValueError):
        raise OrderValidationError("page and limit must be integers.")
    if page < 1 or limit < 1:
        raise OrderValidationError("page and limit must be positive.")
    return page, min(limit, MAX_PAGE_SIZE)


def paginate(queryset, page, limit):
    total = queryset.count()
    offset = (page - 1) * limit
    items = list(queryset[offset:offset + limit])
    pagination = {
        'page': page,
        'limit': limit,
        'total': total,
        'pages': math.ceil(total / limit),
    }
    return items, pagination


def api_login_required(view):
    @functools.wraps(view)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return JsonResponse({'message': 'Authentication required'}, status=401)
        return view(request, *args, **kwargs)
    return wrapper


def api_staff_required(view):
    @functools.wraps(view)
    @api_login_required
    def wrapper(request, *args, **kwargs):
        if not request.user.is_staff:
            return JsonResponse({'message': 'Access denied. Admin privileges required.'}, status=403)
        return view(request, *args, **kwargs)
    return wrapper


def json_endpoint(failure_message):
    """
    Turn service errors raised by a view into JSON responses.

    OrderError subclasses map to their own status and payload, malformed or
    non-UTF-8 JSON to a 400, and anything unexpected is logged and answered with a 500
    carrying `failure_message`.
    """
    def decorator(view):
        @functools.wraps(view)
        def wrapper(request, *args, **kwargs):
            try:
                return view(request, *args, **kwargs)
            except OrderError as e:
                if e.status_code >= 500:
                    logger.error(f"{view.__name__} failed: {e.message}")
                else:
                    logger.warning(f"{view.__name__} rejected request: {e.message}")
                return JsonResponse(e.as_dict(), status=e.status_code)
            except (json.JSONDecodeError, UnicodeDecodeError):
                return JsonResponse({'message': 'Invalid JSON'}, status=400)
            except Exception as e:
                logger.exception(f"Unexpected error in {view.__name__}: {e}")
                return JsonResponse({'message': failure_message}, status=500)
        return wrapper
    return decorator
