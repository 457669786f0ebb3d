"""
Errors raised by the order and payment services.

Each error carries the HTTP status the API layer answers with and an optional
payload merged into the JSON body, so callers get enough detail to correct
their request.
"""


class OrderError(Exception):
    status_code = 400
    default_message = "Order request could not be processed."

    def __init__(self, message=None, payload=None):
        self.message = message or self.default_message
        self.payload = payload or {}
        super().__init__(self.message)

    def as_dict(self):
        return {'message': self.message, **self.payload}


class OrderValidationError(OrderError):
    pass


class InsufficientStockError(OrderValidationError):
    """Raised with every cart or checkout line that exceeds available stock."""

    def __init__(self, stock_issues):
        self.stock_issues = list(stock_issues)
        details = '; '.join(
            f"{issue['productName']}: requested {issue['requested']}, only {issue['available']} available"
            for issue in self.stock_issues
        )
        super().__init__(f"Insufficient stock. {details}", {'stockIssues': self.stock_issues})


class PriceMismatchError(OrderValidationError):
    def __init__(self, price_issues):
        self.price_issues = list(price_issues)
        details = '; '.join(
            f"The price for '{issue['productName']}' has changed from ${issue['submitted']} to ${issue['current']}"
            for issue in self.price_issues
        )
        super().__init__(f"Price check failed. {details}", {'priceIssues': self.price_issues})


class OrderNotFound(OrderError):
    # Also used when the order belongs to someone else, so its existence is
    # never revealed.
    status_code = 404
    default_message = "Order not found"


class ProductNotFound(OrderError):
    status_code = 404
    default_message = "Product not found"


class InvalidOrderState(OrderError):
    default_message = "This order status cannot be updated."


class OrderCreationError(OrderError):
    status_code = 500
    default_message = "Failed to create order"


class PaymentGatewayError(OrderError):
    status_code = 502
    default_message = "Error creating payment intent"


class WebhookSignatureError(OrderError):
    default_message = "Webhook signature verification failed"


class WebhookOrderNotFound(OrderError):
    status_code = 500
    default_message = "Webhook references an unknown order"
