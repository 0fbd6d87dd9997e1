"""Service and product catalog routes."""
from __future__ import annotations

from flask import Blueprint, jsonify

from .models import ROLE_ADMIN, ROLE_MANAGER
from .responses import json_payload, patch_response, query_bool, query_str
from .schemas import AddServiceProductUsageRequest, CreateProductRequest, CreateServiceRequest, parse_request
from .security import auth_required, current_user_id
from .services import CatalogService

bp = Blueprint("catalog", __name__)


@bp.post("/salons/<int:salon_id>/services")
@auth_required(ROLE_ADMIN, ROLE_MANAGER)
def create_service(salon_id: int) -> tuple[dict[str, object], int]:
    """Add a service to the salon's menu.
    ---
    tags:
      - Services
    security:
      - Bearer: []
    parameters:
      - name: salon_id
        in: path
        type: integer
        required: true
      - name: body
        in: body
        required: true
        schema:
          type: object
          properties:
            name:
              type: string
            code:
              type: string
            description:
              type: string
            price_cents:
              type: integer
            tax_rate:
              type: number
            duration_minutes:
              type: integer
            img_url:
              type: string
            is_active:
              type: boolean
    responses:
      201:
        description: Service created
      400:
        description: Validation failed
      409:
        description: Service code already in use
    """
    data = parse_request(CreateServiceRequest, json_payload())
    service = CatalogService().create_service(salon_id, current_user_id(), data)
    return jsonify({"service": service.to_dict()}), 201


@bp.get("/salons/<int:salon_id>/services")
@auth_required()
def list_services(salon_id: int) -> tuple[dict[str, object], int]:
    """List salon services filtered by ``code``, ``name`` and ``active``.
    ---
    tags:
      - Services
    responses:
      200:
        description: Matching services
      404:
        description: Salon not found
    """
    services = CatalogService().list_services(
        salon_id,
        code=query_str("code"),
        name=query_str("name"),
        is_active=query_bool("active"),
    )
    return jsonify({"services": [service.to_dict() for service in services]}), 200


@bp.get("/services/<int:service_id>")
@auth_required()
def get_service(service_id: int) -> tuple[dict[str, object], int]:
    service = CatalogService().get_service(service_id)
    return jsonify({"service": service.to_details_dict()}), 200


@bp.patch("/services/<int:service_id>")
@auth_required(ROLE_ADMIN, ROLE_MANAGER)
def update_service(service_id: int) -> tuple[dict[str, object], int]:
    result = CatalogService().update_service(service_id, current_user_id(), json_payload())
    return patch_response(result)


@bp.post("/services/<int:service_id>/product-usages")
@auth_required(ROLE_ADMIN, ROLE_MANAGER)
def add_product_usage(service_id: int) -> tuple[dict[str, object], int]:
    data = parse_request(AddServiceProductUsageRequest, json_payload())
    usage = CatalogService().add_product_usage(service_id, current_user_id(), data)
    return jsonify({"product_usage": usage.to_dict()}), 201


@bp.post("/salons/<int:salon_id>/products")
@auth_required(ROLE_ADMIN, ROLE_MANAGER)
def create_product(salon_id: int) -> tuple[dict[str, object], int]:
    """Add a product to the salon's inventory.
    ---
    tags:
      - Products
    security:
      - Bearer: []
    responses:
      201:
        description: Product created
      400:
        description: Validation failed
      409:
        description: Product code already in use
    """
    data = parse_request(CreateProductRequest, json_payload())
    product = CatalogService().create_product(salon_id, current_user_id(), data)
    return jsonify({"product": product.to_dict()}), 201


@bp.get("/salons/<int:salon_id>/products")
@auth_required()
def list_products(salon_id: int) -> tuple[dict[str, object], int]:
    products = CatalogService().list_products(
        salon_id,
        code=query_str("code"),
        name=query_str("name"),
        is_active=query_bool("active"),
        low_stock=bool(query_bool("low_stock")),
    )
    return jsonify({"products": [product.to_dict() for product in products]}), 200


@bp.get("/products/<int:product_id>")
@auth_required()
def get_product(product_id: int) -> tuple[dict[str, object], int]:
    product = CatalogService().get_product(product_id)
    return jsonify({"product": product.to_dict()}), 200


@bp.patch("/products/<int:product_id>")
@auth_required(ROLE_ADMIN, ROLE_MANAGER)
def update_product(product_id: int) -> tuple[dict[str, object], int]:
    """Patch a product; only ``replace`` operations are accepted.
    ---
    tags:
      - Products
    security:
      - Bearer: []
    responses:
      200:
        description: Product updated
      400:
        description: Invalid patch, validation failure or no changes
      404:
        description: Product not found
      409:
        description: Product code already in use
    """
    result = CatalogService().update_product(product_id, current_user_id(), json_payload())
    return patch_response(result)
