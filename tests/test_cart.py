"""Tests for the cart endpoints."""
import pytest

from cart.models import CartItem

CART_URL = "/api/cart/"
ITEMS_URL = "/api/cart/items/"


def add_item(client, product, quantity=1, **extra):
    return client.post(
        ITEMS_URL,
        data={"productId": str(product.id), "quantity": quantity, **extra},
        content_type="application/json",
    )


@pytest.mark.django_db
class TestCart:

    def test_empty_cart(self, auth_client):
        response = auth_client.get(CART_URL)

        assert response.status_code == 200
        assert response.json() == {"items": [], "itemCount": 0, "total": 0}

    def test_add_and_view(self, auth_client, dress, scarf):
        add_item(auth_client, dress, 2, size="M")
        add_item(auth_client, scarf)

        body = auth_client.get(CART_URL).json()

        assert body["itemCount"] == 3
        assert body["total"] == "120.00"
        assert [(item["name"], item["quantity"], item["size"]) for item in body["items"]] == [
            ("Silk Dress", 2, "M"),
            ("Wool Scarf", 1, None),
        ]

    def test_identical_lines_are_merged(self, auth_client, user, dress):
        add_item(auth_client, dress, 2, size="M", color="red")
        add_item(auth_client, dress, 3, size="M", color="red")
        add_item(auth_client, dress, 1, size="L", color="red")

        quantities = sorted(CartItem.objects.filter(cart__user=user).values_list("quantity", flat=True))
        assert quantities == [1, 5]

    def test_merged_quantity_respects_stock(self, auth_client, user, scarf):
        add_item(auth_client, scarf, 2)

        response = add_item(auth_client, scarf, 1)

        assert response.status_code == 400
        assert response.json() == {"message": "Insufficient stock"}
        assert CartItem.objects.get(cart__user=user).quantity == 2

    @pytest.mark.parametrize("quantity", [0, -1, "many", 2.9, "2.5", True, None])
    def test_invalid_quantity(self, auth_client, dress, quantity):
        response = add_item(auth_client, dress, quantity)

        assert response.status_code == 400
        assert not CartItem.objects.exists()

    def test_fractional_update_is_rejected(self, auth_client, user, dress):
        add_item(auth_client, dress, 1)
        item = CartItem.objects.get(cart__user=user)

        response = auth_client.patch(
            f"{ITEMS_URL}{item.id}/", data={"quantity": 3.5}, content_type="application/json"
        )

        assert response.status_code == 400
        item.refresh_from_db()
        assert item.quantity == 1

    def test_unknown_product(self, auth_client, db):
        response = auth_client.post(ITEMS_URL, data={"productId": "nope"}, content_type="application/json")

        assert response.status_code == 404

    def test_update_quantity(self, auth_client, user, dress):
        add_item(auth_client, dress, 1)
        item = CartItem.objects.get(cart__user=user)

        response = auth_client.patch(
            f"{ITEMS_URL}{item.id}/", data={"quantity": 4}, content_type="application/json"
        )

        assert response.status_code == 200
        item.refresh_from_db()
        assert item.quantity == 4

    def test_update_beyond_stock(self, auth_client, user, scarf):
        add_item(auth_client, scarf, 1)
        item = CartItem.objects.get(cart__user=user)

        response = auth_client.patch(
            f"{ITEMS_URL}{item.id}/", data={"quantity": 3}, content_type="application/json"
        )

        assert response.status_code == 400
        item.refresh_from_db()
        assert item.quantity == 1

    def test_remove_item(self, auth_client, user, dress):
        add_item(auth_client, dress, 1)
        item = CartItem.objects.get(cart__user=user)

        response = auth_client.delete(f"{ITEMS_URL}{item.id}/")

        assert response.status_code == 200
        assert not CartItem.objects.exists()

    def test_cannot_touch_another_users_item(self, client, other_user, dress, add_to_cart):
        item = add_to_cart(dress, 1)
        client.force_login(other_user)

        response = client.delete(f"{ITEMS_URL}{item.id}/")

        assert response.status_code == 404
        assert CartItem.objects.filter(pk=item.pk).exists()

    def test_clear(self, auth_client, dress, scarf):
        add_item(auth_client, dress)
        add_item(auth_client, scarf)

        response = auth_client.delete(CART_URL)

        assert response.status_code == 200
        assert auth_client.get(CART_URL).json()["itemCount"] == 0
