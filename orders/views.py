import logging

from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from payments.services import confirm_order_payment
from storefront_backend.http import (
    api_login_required,
    api_staff_required,
    json_endpoint,
    paginate,
    parse_json_body,
    parse_pagination,
)
from . import services
from .serializers import (
    serialize_checkout_order,
    serialize_order_detail,
    serialize_order_status,
    serialize_order_summary,
)

logger = logging.getLogger(__name__)

ADMIN_PAGE_SIZE = 20


@csrf_exempt
@require_http_methods(['GET', 'POST'])
@api_login_required
def orders_collection(request):
    if request.method == 'POST':
        return create_order_from_checkout(request)
    return list_orders(request)


@json_endpoint("Failed to fetch orders")
def list_orders(request):
    page, limit = parse_pagination(request)
    queryset = services.list_user_orders(request.user, status=request.GET.get('status'))
    orders, pagination = paginate(queryset, page, limit)
    return JsonResponse({
        'orders': [serialize_order_summary(order) for order in orders],
        'pagination': pagination,
    })


@json_endpoint("Failed to create order")
def create_order_from_checkout(request):
    """
    Direct checkout: the client sends its own line items, shipping cost and
    total. Prices and total are checked against the catalog before the order
    is committed.
    """
    data = parse_json_body(request)
    logger.info(f"Checkout order requested by user {request.user.pk} with {len(data.get('items') or [])} items.")

    order = services.create_order_from_checkout(
        request.user,
        items=data.get('items'),
        shipping_cost=data.get('shippingCost'),
        total_amount=data.get('totalAmount'),
    )
    return JsonResponse(serialize_checkout_order(order), status=201)


@csrf_exempt
@require_POST
@api_login_required
@json_endpoint("Failed to create order")
def create_order_from_cart(request):
    data = parse_json_body(request)
    order = services.create_order_from_cart(
        request.user,
        shipping_address_id=data.get('shippingAddressId'),
        payment_method=data.get('paymentMethod'),
        notes=data.get('notes'),
        promo_code=data.get('promoCode'),
    )
    return JsonResponse({
        'message': 'Order created successfully',
        'order': serialize_order_detail(order),
    }, status=201)


@require_GET
@api_login_required
@json_endpoint("Failed to fetch order")
def order_detail(request, order_id):
    order = services.get_user_order(request.user, order_id)
    return JsonResponse(serialize_order_detail(order))


@csrf_exempt
@require_http_methods(['PATCH'])
@api_login_required
@json_endpoint("Failed to cancel order")
def cancel_order(request, order_id):
    order = services.cancel_order(request.user, order_id)
    return JsonResponse({
        'message': 'Order cancelled successfully',
        'order': serialize_order_status(order),
    })


@csrf_exempt
@require_http_methods(['PATCH'])
@api_login_required
@json_endpoint("Failed to confirm order payment")
def confirm_payment(request, order_id):
    order, changed = confirm_order_payment(request.user, order_id)
    message = 'Payment confirmed successfully' if changed else 'Payment already confirmed'
    return JsonResponse({'message': message, 'order': serialize_order_detail(order)})


@require_GET
@api_staff_required
@json_endpoint("Failed to fetch orders")
def admin_list_orders(request):
    page, limit = parse_pagination(request, default_limit=ADMIN_PAGE_SIZE)
    queryset = services.list_all_orders(
        status=request.GET.get('status'),
        search=request.GET.get('search'),
    )
    orders, pagination = paginate(queryset, page, limit)
    return JsonResponse({
        'orders': [serialize_order_summary(order, include_user=True) for order in orders],
        'pagination': pagination,
    })


@csrf_exempt
@require_http_methods(['PATCH'])
@api_staff_required
@json_endpoint("Failed to update order status")
def admin_update_order_status(request, order_id):
    data = parse_json_body(request)
    order = services.update_order_status(
        order_id,
        status=data.get('status'),
        tracking_number=data.get('trackingNumber'),
        estimated_delivery=data.get('estimatedDelivery'),
    )
    return JsonResponse({
        'message': 'Order status updated successfully',
        'order': serialize_order_status(order),
    })
