import logging

from django.conf import settings
from django.core.mail import send_mail
from django.template.loader import render_to_string

logger = logging.getLogger(__name__)


def _order_context(order):
    user = order.user
    items = list(order.items.select_related('product'))
    return {
        'order': order,
        'items': items,
        'address': order.shipping_address,
        'customer_name': user.get_full_name() or user.get_username(),
        'customer_email': user.email,
        'order_url': f"{settings.FRONTEND_URL}/orders/{order.id}",
    }


def send_order_confirmation(order):
    """
    Emails the customer and the operations inbox about a paid order.

    Best effort: the payment has already been recorded when this runs, so
    every failure is logged and swallowed. Returns True when all messages
    went out.
    """
    try:
        context = _order_context(order)
    except Exception as e:
        logger.error(f"Failed to build confirmation context for order {order.order_number}: {e}")
        return False

    sent_all = True
    from_email = settings.DEFAULT_FROM_EMAIL

    customer_email = context['customer_email']
    if customer_email:
        try:
            message = render_to_string('orders/emails/order_confirmation.txt', context)
            send_mail(f"Order confirmation {order.order_number}", message, from_email, [customer_email])
            logger.info(f"Confirmation email sent to {customer_email} for order {order.order_number}")
        except Exception as e:
            sent_all = False
            logger.error(f"Failed to send confirmation email for order {order.order_number}: {e}")
    else:
        logger.warning(f"Order {order.order_number} has no customer email; skipping confirmation email.")

    ops_email = settings.ORDERS_NOTIFICATION_EMAIL
    if ops_email:
        try:
            message = render_to_string('orders/emails/order_notification_admin.txt', context)
            send_mail(f"New order {order.order_number}", message, from_email, [ops_email])
            logger.info(f"Operations notification sent for order {order.order_number}")
        except Exception as e:
            sent_all = False
            logger.error(f"Failed to send operations notification for order {order.order_number}: {e}")

    return sent_all


def send_cancellation_notification(customer_email, order_number, reason):
    """
    Sends a simple email notification to the customer about order cancellation.
    """
    subject = f"Update on your order {order_number}"
    message = (
        f"Dear customer,\n\n"
        f"Your order {order_number} has been cancelled.\n"
        f"Reason: {reason}\n\n"
        f"Any payment taken for this order will be refunded to the original payment method.\n"
        f"If you have any questions, please contact our support team.\n\n"
        f"Sincerely,\nThe Store Team"
    )
    from_email = settings.DEFAULT_FROM_EMAIL
    recipient_list = [customer_email]

    try:
        send_mail(subject, message, from_email, recipient_list)
        logger.info(f"Cancellation email sent to {customer_email} for order {order_number}")
        return True
    except Exception as e:
        logger.error(f"Failed to send cancellation email for order {order_number}: {e}")
        return False
