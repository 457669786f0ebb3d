import uuid
from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models


class Address(models.Model):
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='addresses')
    full_name = models.CharField(max_length=255)
    line1 = models.CharField(max_length=255)
    line2 = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=120)
    state = models.CharField(max_length=120, blank=True)
    postal_code = models.CharField(max_length=20)
    country = models.CharField(max_length=2, default='US')
    phone = models.CharField(max_length=40, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.full_name}, {self.line1}, {self.city}"

    class Meta:
        verbose_name = "Address"
        verbose_name_plural = "Addresses"


class Order(models.Model):
    class Status(models.TextChoices):
        PENDING = 'PENDING', 'Pending'
        CONFIRMED = 'CONFIRMED', 'Confirmed'
        PROCESSING = 'PROCESSING', 'Processing'
        SHIPPED = 'SHIPPED', 'Shipped'
        DELIVERED = 'DELIVERED', 'Delivered'
        CANCELLED = 'CANCELLED', 'Cancelled'
        REFUNDED = 'REFUNDED', 'Refunded'

    class PaymentStatus(models.TextChoices):
        PENDING = 'PENDING', 'Pending'
        PAID = 'PAID', 'Paid'
        FAILED = 'FAILED', 'Failed'
        REFUNDED = 'REFUNDED', 'Refunded'

    CANCELLABLE_STATUSES = (Status.PENDING, Status.CONFIRMED)
    TERMINAL_STATUSES = (Status.CANCELLED, Status.DELIVERED, Status.REFUNDED)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order_number = models.CharField(max_length=64, unique=True)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='orders')

    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING,
        db_index=True
    )
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
        db_index=True
    )
    payment_method = models.CharField(max_length=50, blank=True, default='')
    # Set once a payment intent is opened; never cleared afterwards.
    payment_intent_id = models.CharField(max_length=255, unique=True, null=True, blank=True)

    # Fixed at creation: total = subtotal + tax + shipping - discount.
    subtotal = models.DecimalField(max_digits=12, decimal_places=2)
    tax = models.DecimalField(max_digits=12, decimal_places=2)
    shipping = models.DecimalField(max_digits=12, decimal_places=2)
    discount = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    total = models.DecimalField(max_digits=12, decimal_places=2)

    shipping_address = models.ForeignKey(
        Address,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='orders'
    )
    tracking_number = models.CharField(max_length=255, null=True, blank=True)
    estimated_delivery = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"Order {self.order_number} for user {self.user_id} - {self.get_status_display()}"

    @property
    def is_cancellable(self):
        return self.status in self.CANCELLABLE_STATUSES

    @property
    def is_paid(self):
        return self.payment_status == self.PaymentStatus.PAID

    def mark_paid(self, payment_intent_id=None, payment_method=None):
        self.status = self.Status.CONFIRMED
        self.payment_status = self.PaymentStatus.PAID
        fields = ['status', 'payment_status', 'updated_at']
        if payment_method:
            self.payment_method = payment_method
            fields.append('payment_method')
        if payment_intent_id and not self.payment_intent_id:
            self.payment_intent_id = payment_intent_id
            fields.append('payment_intent_id')
        self.save(update_fields=fields)

    def mark_payment_failed(self):
        self.status = self.Status.PENDING
        self.payment_status = self.PaymentStatus.FAILED
        self.save(update_fields=['status', 'payment_status', 'updated_at'])

    def mark_cancelled(self):
        self.status = self.Status.CANCELLED
        self.payment_status = self.PaymentStatus.REFUNDED
        self.save(update_fields=['status', 'payment_status', 'updated_at'])

    class Meta:
        ordering = ['-created_at']
        verbose_name = "Order"
        verbose_name_plural = "Orders"


class OrderItem(models.Model):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey('products.Product', on_delete=models.PROTECT, related_name='order_items')
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    # Price charged at order time, independent of later catalog edits.
    price = models.DecimalField(max_digits=10, decimal_places=2)
    size = models.CharField(max_length=50, null=True, blank=True)
    color = models.CharField(max_length=50, null=True, blank=True)

    def __str__(self):
        return f"{self.quantity}x {self.product_id} in Order {self.order_id}"

    @property
    def subtotal(self):
        return self.price * self.quantity

    class Meta:
        ordering = ['id']
        verbose_name = "Order item"
        verbose_name_plural = "Order items"
