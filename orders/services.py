import datetime
import logging
import random
import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import F, Q
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from cart.models import Cart, CartItem
from products.models import Product
from storefront_backend.http import parse_quantity
from .exceptions import (
    InsufficientStockError,
    InvalidOrderState,
    OrderCreationError,
    OrderNotFound,
    OrderValidationError,
    PriceMismatchError,
    ProductNotFound,
)
from .models import Address, Order, OrderItem
from .notifications import send_cancellation_notification
from .pricing import calculate_totals, to_money

logger = logging.getLogger(__name__)


@dataclass
class OrderLine:
    product: Product
    quantity: int
    price: Decimal
    size: Optional[str] = None
    color: Optional[str] = None


def generate_order_number():
    """
    Time-derived order number with a random suffix.

    Not unique by construction: a collision fails the unique constraint on
    Order.order_number and aborts the creating transaction.
    """
    timestamp = int(time.time() * 1000)
    suffix = f"{random.randint(0, 999):03d}"
    return f"ORD-{timestamp}-{suffix}"


def find_one(queryset, **filters):
    """First row matching `filters`, or None when nothing matches or an id is malformed."""
    try:
        return queryset.filter(**filters).first()
    except (ValueError, ValidationError):
        return None


def get_user_order(user, order_id):
    order = find_one(
        Order.objects.select_related('shipping_address').prefetch_related('items__product'),
        pk=order_id,
        user=user,
    )
    if order is None:
        raise OrderNotFound()
    return order


def _stock_issue(product, requested, available=None):
    return {
        'productId': str(product.pk),
        'productName': product.name,
        'requested': requested,
        'available': product.stock if available is None else available,
    }


def _requested_per_product(lines):
    """Total quantity asked for each product, across lines that differ only in size or color."""
    requested = {}
    for line in lines:
        product, quantity = requested.get(line.product.pk, (line.product, 0))
        requested[line.product.pk] = (product, quantity + line.quantity)
    return list(requested.values())


def _stock_issues(lines):
    return [
        _stock_issue(product, quantity)
        for product, quantity in _requested_per_product(lines)
        if product.stock < quantity
    ]


def reserve_stock(product, quantity):
    """Decrement stock only if enough is left; raises InsufficientStockError otherwise."""
    updated = (
        Product.objects
        .filter(pk=product.pk, stock__gte=quantity)
        .update(stock=F('stock') - quantity)
    )
    if updated != 1:
        available = Product.objects.filter(pk=product.pk).values_list('stock', flat=True).first() or 0
        logger.warning(f"Stock reservation FAILED for product {product.pk}. Requested: {quantity}, Available: {available}")
        raise InsufficientStockError([_stock_issue(product, quantity, available)])


def release_stock(product_id, quantity):
    Product.objects.filter(pk=product_id).update(stock=F('stock') + quantity)


def _commit_order(user, lines, totals, cart=None, **order_fields):
    """
    Persist the order, its items and the matching stock decrements in one
    transaction. Nothing is written if any step fails.
    """
    try:
        with transaction.atomic():
            order = Order.objects.create(
                order_number=generate_order_number(),
                user=user,
                status=Order.Status.PENDING,
                payment_status=Order.PaymentStatus.PENDING,
                subtotal=totals.subtotal,
                tax=totals.tax,
                shipping=totals.shipping,
                discount=totals.discount,
                total=totals.total,
                **order_fields
            )

            for line in lines:
                OrderItem.objects.create(
                    order=order,
                    product=line.product,
                    quantity=line.quantity,
                    price=line.price,
                    size=line.size,
                    color=line.color,
                )

            # One conditional decrement per product, so a shortfall reports
            # the stock actually on hand.
            for product, quantity in _requested_per_product(lines):
                reserve_stock(product, quantity)

            if cart is not None:
                CartItem.objects.filter(cart=cart).delete()
    except IntegrityError as e:
        logger.error(f"Order creation for user {user.pk} aborted by an integrity error: {e}")
        raise OrderCreationError() from e

    logger.info(f"Created order {order.order_number} for user {user.pk}. Total: {order.total}")
    return get_user_order(user, order.pk)


def create_order_from_cart(user, shipping_address_id, payment_method=None, notes=None, promo_code=None):
    """
    Turn the user's cart into an order priced at current catalog prices.

    Every line is stock-checked before anything is written, and all failing
    lines are reported together.
    """
    cart = Cart.objects.filter(user=user).first()
    cart_items = list(cart.items.select_related('product')) if cart else []
    if not cart_items:
        raise OrderValidationError("Cart is empty")

    shipping_address = find_one(Address.objects, pk=shipping_address_id, user=user)
    if shipping_address is None:
        raise OrderValidationError("Invalid shipping address")

    logger.info(f"Creating order from cart for user {user.pk} with {len(cart_items)} items.")

    lines = [
        OrderLine(
            product=item.product,
            quantity=item.quantity,
            price=item.product.price,
            size=item.size,
            color=item.color,
        )
        for item in cart_items
    ]

    stock_issues = _stock_issues(lines)
    if stock_issues:
        raise InsufficientStockError(stock_issues)

    totals = calculate_totals(((line.price, line.quantity) for line in lines), promo_code=promo_code)

    return _commit_order(
        user,
        lines,
        totals,
        cart=cart,
        payment_method=payment_method or '',
        shipping_address=shipping_address,
        notes=notes or None,
    )


def _parse_checkout_item(item):
    if not isinstance(item, dict):
        raise OrderValidationError("Invalid line item data. Each item must have productId, quantity, and price.")
    quantity = parse_quantity(item.get('quantity'))
    try:
        price = to_money(item.get('price'))
    except ValueError:
        raise OrderValidationError("Invalid line item data. Each item must have productId, quantity, and price.")
    if not item.get('productId') or quantity is None or price < 0:
        raise OrderValidationError("Invalid line item data. Each item must have productId, quantity, and price.")
    return item['productId'], quantity, price


def create_order_from_checkout(user, items, shipping_cost=None, total_amount=None):
    """
    Create an order from a client-priced checkout, bypassing the cart.

    Client prices are accepted only when they match the catalog within
    CHECKOUT_PRICE_TOLERANCE, and the client total must agree with the
    server-computed one; tax is always recomputed here.
    """
    if not items:
        raise OrderValidationError("Order must contain at least one item")

    try:
        total_amount = to_money(total_amount)
        shipping = to_money(shipping_cost or 0)
    except ValueError:
        raise OrderValidationError("Invalid total amount")
    if total_amount <= 0:
        raise OrderValidationError("Invalid total amount")
    if shipping < 0:
        raise OrderValidationError("Invalid shipping cost")

    tolerance = settings.CHECKOUT_PRICE_TOLERANCE
    lines = []
    price_issues = []

    for item in items:
        product_id, quantity, price = _parse_checkout_item(item)
        product = find_one(Product.objects, pk=product_id)
        if product is None:
            raise ProductNotFound(f"Product not found: {product_id}")

        if abs(price - product.price) > tolerance:
            logger.warning(f"Price check FAILED for product {product.pk}. Client: {price}, Catalog: {product.price}")
            price_issues.append({
                'productId': str(product.pk),
                'productName': product.name,
                'submitted': str(price),
                'current': str(product.price),
            })

        lines.append(OrderLine(
            product=product,
            quantity=quantity,
            price=price,
            size=item.get('size') or None,
            color=item.get('color') or None,
        ))

    stock_issues = _stock_issues(lines)
    if stock_issues:
        raise InsufficientStockError(stock_issues)
    if price_issues:
        raise PriceMismatchError(price_issues)

    totals = calculate_totals(((line.price, line.quantity) for line in lines), shipping=shipping)
    if abs(totals.total - total_amount) > tolerance:
        raise OrderValidationError(
            f"Total amount {total_amount} does not match the order total {totals.total}.",
            {'expectedTotal': str(totals.total)},
        )

    return _commit_order(user, lines, totals, payment_method='STRIPE')


def cancel_order(user, order_id):
    """
    Cancel a PENDING or CONFIRMED order and put its stock back.

    Stock is restored with increments, so the same quantities come back even
    if other orders changed the product's stock in the meantime.
    """
    with transaction.atomic():
        order = find_one(Order.objects.select_for_update(), pk=order_id, user=user)
        if order is None:
            raise OrderNotFound()
        if not order.is_cancellable:
            raise InvalidOrderState("Order cannot be cancelled at this stage")

        order.mark_cancelled()
        for item in order.items.all():
            release_stock(item.product_id, item.quantity)

    logger.info(f"Order {order.order_number} cancelled by user {user.pk}; stock restored.")

    if user.email:
        send_cancellation_notification(user.email, order.order_number, "Cancelled at your request.")
    return order


def list_user_orders(user, status=None):
    queryset = Order.objects.filter(user=user).prefetch_related('items__product')
    if status:
        queryset = queryset.filter(status=status.upper())
    return queryset


def list_all_orders(status=None, search=None):
    queryset = Order.objects.select_related('user').prefetch_related('items__product')
    if status:
        queryset = queryset.filter(status=status.upper())
    if search:
        queryset = queryset.filter(Q(order_number__icontains=search) | Q(user__email__icontains=search))
    return queryset


def _parse_estimated_delivery(value):
    parsed = None
    if isinstance(value, str):
        try:
            parsed = parse_datetime(value)
            if parsed is None:
                day = parse_date(value)
                if day is not None:
                    parsed = datetime.datetime.combine(day, datetime.time.min)
        except ValueError:
            parsed = None
    if parsed is None:
        raise OrderValidationError("Invalid estimated delivery date")
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed, datetime.timezone.utc)
    return parsed


def update_order_status(order_id, status, tracking_number=None, estimated_delivery=None):
    """Admin transition. Marking an order SHIPPED also forces its payment to PAID."""
    if status not in Order.Status.values:
        raise OrderValidationError("Invalid status")

    fields = ['status', 'updated_at']
    with transaction.atomic():
        order = find_one(Order.objects.select_for_update(), pk=order_id)
        if order is None:
            raise OrderNotFound()

        order.status = status
        if tracking_number:
            order.tracking_number = tracking_number
            fields.append('tracking_number')
        if estimated_delivery:
            order.estimated_delivery = _parse_estimated_delivery(estimated_delivery)
            fields.append('estimated_delivery')
        if status == Order.Status.SHIPPED:
            order.payment_status = Order.PaymentStatus.PAID
            fields.append('payment_status')
        order.save(update_fields=fields)

    logger.info(f"Admin updated order {order.order_number} to status {status}.")
    return order
