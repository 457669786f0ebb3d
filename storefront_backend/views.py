import logging

from django.db import connection
from django.http import JsonResponse
from django.utils import timezone
from django.views.decorators.http import require_GET

logger = logging.getLogger(__name__)


@require_GET
def health_check(request):
    try:
        with connection.cursor() as cursor:
            cursor.execute('SELECT 1')
    except Exception as e:
        logger.error(f"Health check failed, database unreachable: {e}")
        return JsonResponse({
            'status': 'ERROR',
            'database': 'disconnected',
            'error': str(e),
            'timestamp': timezone.now(),
        }, status=500)

    return JsonResponse({
        'status': 'OK',
        'database': 'connected',
        'timestamp': timezone.now(),
    })
