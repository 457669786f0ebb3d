from django.contrib import admin

from .models import ProcessedWebhookEvent


@admin.register(ProcessedWebhookEvent)
class ProcessedWebhookEventAdmin(admin.ModelAdmin):
    list_display = ('event_id', 'event_type', 'order', 'processed_at')
    search_fields = ('event_id', 'order__order_number')
