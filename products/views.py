from django.http import JsonResponse
from django.views.decorators.http import require_GET

from storefront_backend.http import json_endpoint, paginate, parse_pagination
from .models import Product

PRODUCT_PAGE_SIZE = 20


def serialize_product(product):
    return {
        'id': product.id,
        'name': product.name,
        'slug': product.slug,
        'description': product.description,
        'price': product.price,
        'stock': product.stock,
        'imageUrl': product.image_url,
    }


@require_GET
@json_endpoint("Failed to fetch products")
def product_list(request):
    page, limit = parse_pagination(request, default_limit=PRODUCT_PAGE_SIZE)
    products, pagination = paginate(Product.objects.filter(is_active=True), page, limit)
    return JsonResponse({
        'products': [serialize_product(product) for product in products],
        'pagination': pagination,
    })


@require_GET
@json_endpoint("Failed to fetch product")
def product_detail(request, product_id):
    product = Product.objects.filter(pk=product_id, is_active=True).first()
    if product is None:
        return JsonResponse({'message': 'Product not found'}, status=404)
    return JsonResponse(serialize_product(product))
