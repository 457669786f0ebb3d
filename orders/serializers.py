"""Plain-dict renderings of orders for the JSON API."""


def serialize_address(address):
    if address is None:
        return None
    return {
        'id': address.id,
        'fullName': address.full_name,
        'line1': address.line1,
        'line2': address.line2,
        'city': address.city,
        'state': address.state,
        'postalCode': address.postal_code,
        'country': address.country,
        'phone': address.phone,
    }


def serialize_order_item(item, detailed=False):
    data = {
        'id': item.id,
        'quantity': item.quantity,
        'price': item.price,
        'size': item.size,
        'color': item.color,
        'product': {
            'id': item.product_id,
            'name': item.product.name,
            'imageUrl': item.product.image_url,
        },
    }
    if detailed:
        data['product']['description'] = item.product.description
        data['subtotal'] = item.subtotal
    return data


def serialize_order_summary(order, include_user=False):
    items = list(order.items.all())
    data = {
        'id': order.id,
        'orderNumber': order.order_number,
        'status': order.status,
        'paymentStatus': order.payment_status,
        'total': order.total,
        'itemCount': len(items),
        'createdAt': order.created_at,
        'items': [serialize_order_item(item) for item in items],
    }
    if include_user:
        user = order.user
        data['user'] = {
            'id': user.pk,
            'email': user.email,
            'firstName': user.first_name,
            'lastName': user.last_name,
        }
    return data


def serialize_order_detail(order):
    return {
        'id': order.id,
        'orderNumber': order.order_number,
        'userId': order.user_id,
        'status': order.status,
        'paymentStatus': order.payment_status,
        'paymentMethod': order.payment_method,
        'paymentIntentId': order.payment_intent_id,
        'subtotal': order.subtotal,
        'tax': order.tax,
        'shipping': order.shipping,
        'discount': order.discount,
        'total': order.total,
        'trackingNumber': order.tracking_number,
        'estimatedDelivery': order.estimated_delivery,
        'notes': order.notes,
        'createdAt': order.created_at,
        'updatedAt': order.updated_at,
        'shippingAddress': serialize_address(order.shipping_address),
        'items': [serialize_order_item(item, detailed=True) for item in order.items.all()],
    }


def serialize_order_status(order):
    return {
        'id': order.id,
        'orderNumber': order.order_number,
        'status': order.status,
        'paymentStatus': order.payment_status,
        'trackingNumber': order.tracking_number,
        'estimatedDelivery': order.estimated_delivery,
    }


def serialize_checkout_order(order):
    # Direct checkout answers with the bare order rather than a message envelope.
    return {
        'id': order.id,
        'orderNumber': order.order_number,
        'total': order.total,
        'status': order.status,
        'userId': order.user_id,
        'items': [serialize_order_item(item) for item in order.items.all()],
    }
