from django.urls import path
from . import views

urlpatterns = [
    path('', views.orders_collection, name='orders'),
    path('from-cart/', views.create_order_from_cart, name='create-order-from-cart'),
    path('admin/all/', views.admin_list_orders, name='admin-list-orders'),
    path('admin/<uuid:order_id>/status/', views.admin_update_order_status, name='admin-update-order-status'),
    path('<uuid:order_id>/', views.order_detail, name='order-detail'),
    path('<uuid:order_id>/cancel/', views.cancel_order, name='cancel-order'),
    path('<uuid:order_id>/confirm-payment/', views.confirm_payment, name='confirm-order-payment'),
]
