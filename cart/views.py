import logging

from django.core.exceptions import ValidationError
from django.db import transaction
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods, require_POST

from products.models import Product
from storefront_backend.http import api_login_required, json_endpoint, parse_json_body, parse_quantity
from .models import Cart, CartItem

logger = logging.getLogger(__name__)


def serialize_cart(cart):
    items = list(cart.items.select_related('product')) if cart else []
    return {
        'items': [
            {
                'id': item.id,
                'productId': item.product_id,
                'name': item.product.name,
                'price': item.product.price,
                'imageUrl': item.product.image_url,
                'stock': item.product.stock,
                'quantity': item.quantity,
                'size': item.size,
                'color': item.color,
                'subtotal': item.subtotal,
            }
            for item in items
        ],
        'itemCount': sum(item.quantity for item in items),
        'total': sum((item.subtotal for item in items), 0),
    }


@csrf_exempt
@require_http_methods(['GET', 'DELETE'])
@api_login_required
@json_endpoint("Failed to process cart request")
def cart_view(request):
    if request.method == 'DELETE':
        deleted, _ = CartItem.objects.filter(cart__user=request.user).delete()
        logger.info(f"Cleared cart for user {request.user.pk} ({deleted} items).")
        return JsonResponse({'message': 'Cart cleared successfully'})

    cart = Cart.objects.filter(user=request.user).first()
    return JsonResponse(serialize_cart(cart))


@csrf_exempt
@require_POST
@api_login_required
@json_endpoint("Failed to add item to cart")
def add_to_cart(request):
    data = parse_json_body(request)
    quantity = parse_quantity(data.get('quantity', 1))
    if quantity is None:
        return JsonResponse({'message': 'Quantity must be at least 1'}, status=400)

    try:
        product = Product.objects.filter(pk=data.get('productId'), is_active=True).first()
    except (ValueError, ValidationError):
        product = None
    if product is None:
        return JsonResponse({'message': 'Product not found'}, status=404)

    size = data.get('size') or None
    color = data.get('color') or None

    with transaction.atomic():
        cart, _ = Cart.objects.get_or_create(user=request.user)
        existing_item = CartItem.objects.filter(cart=cart, product=product, size=size, color=color).first()
        new_quantity = quantity + (existing_item.quantity if existing_item else 0)

        if new_quantity > product.stock:
            logger.warning(
                f"Add to cart rejected for product {product.pk}. Requested: {new_quantity}, Available: {product.stock}"
            )
            return JsonResponse({'message': 'Insufficient stock'}, status=400)

        if existing_item:
            existing_item.quantity = new_quantity
            existing_item.save(update_fields=['quantity'])
        else:
            CartItem.objects.create(cart=cart, product=product, quantity=quantity, size=size, color=color)

    return JsonResponse({'message': 'Item added to cart successfully'})


@csrf_exempt
@require_http_methods(['PATCH', 'DELETE'])
@api_login_required
@json_endpoint("Failed to update cart item")
def cart_item_view(request, item_id):
    cart_item = (
        CartItem.objects
        .select_related('product')
        .filter(pk=item_id, cart__user=request.user)
        .first()
    )
    if cart_item is None:
        return JsonResponse({'message': 'Cart item not found'}, status=404)

    if request.method == 'DELETE':
        cart_item.delete()
        return JsonResponse({'message': 'Item removed from cart successfully'})

    data = parse_json_body(request)
    quantity = parse_quantity(data.get('quantity'))
    if quantity is None:
        return JsonResponse({'message': 'Quantity must be at least 1'}, status=400)
    if quantity > cart_item.product.stock:
        return JsonResponse({'message': 'Insufficient stock'}, status=400)

    cart_item.quantity = quantity
    cart_item.save(update_fields=['quantity'])
    return JsonResponse({'message': 'Cart item updated successfully'})
