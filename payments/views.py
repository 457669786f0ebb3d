from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from storefront_backend.http import api_login_required, json_endpoint, parse_json_body
from . import services


@csrf_exempt
@require_POST
@api_login_required
@json_endpoint("Error creating payment intent")
def create_payment_intent(request):
    data = parse_json_body(request)
    result = services.create_payment_intent(request.user, data.get('orderId'))
    return JsonResponse(result)


@csrf_exempt
@require_POST
@json_endpoint("Webhook handling error")
def stripe_webhook(request):
    """
    Listener for Stripe webhooks. The raw body is passed through untouched,
    since the signature is computed over the exact bytes Stripe sent.
    """
    result = services.handle_webhook(request.body, request.META.get('HTTP_STRIPE_SIGNATURE'))
    return JsonResponse(result)
