from django.db import models


class ProcessedWebhookEvent(models.Model):
    """A gateway event that has already been applied; redeliveries are skipped."""
    event_id = models.CharField(max_length=255, unique=True)
    event_type = models.CharField(max_length=100)
    order = models.ForeignKey(
        'orders.Order',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='webhook_events'
    )
    processed_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.event_type} {self.event_id}"

    class Meta:
        ordering = ['-processed_at']
