from django.urls import path
from . import views

urlpatterns = [
    path('', views.cart_view, name='cart'),
    path('items/', views.add_to_cart, name='cart-add-item'),
    path('items/<int:item_id>/', views.cart_item_view, name='cart-item'),
]
