"""Salon services, retail products and the products a service consumes."""
from __future__ import annotations

from typing import Any

from flask import current_app

from ..exceptions import BadRequestError, ConflictError, DomainValidationError
from ..models import Product, Service, ServiceProductUsage
from ..patching import OperationResult, apply_patch_update
from ..repositories import ProductRepository, ServiceProductUsageRepository, ServiceRepository
from ..schemas import (
    AddServiceProductUsageRequest,
    CreateProductRequest,
    CreateServiceRequest,
    UpdateProductRequest,
    UpdateServiceRequest,
)
from ..specifications import ProductSpecification, ServiceSpecification
from .salon_service import SalonService

SERVICE_FIELDS = (
    "name",
    "code",
    "description",
    "price_cents",
    "tax_rate",
    "duration_minutes",
    "img_url",
    "is_active",
)
PRODUCT_FIELDS = (
    "name",
    "code",
    "description",
    "purchase_price_cents",
    "sale_price_cents",
    "purchase_tax_rate",
    "sale_tax_rate",
    "stock_quantity",
    "minimum_stock_level",
    "unit_of_measure",
    "is_active",
    "img_url",
)


def _fields(entity: object, names: tuple[str, ...]) -> dict[str, Any]:
    return {name: getattr(entity, name) for name in names}


class CatalogService:
    def __init__(
        self,
        services: ServiceRepository | None = None,
        products: ProductRepository | None = None,
        usages: ServiceProductUsageRepository | None = None,
        salon_service: SalonService | None = None,
    ) -> None:
        self.services = services or ServiceRepository()
        self.products = products or ProductRepository()
        self.usages = usages or ServiceProductUsageRepository()
        self.salon_service = salon_service or SalonService()
        self.service_specification = ServiceSpecification()
        self.product_specification = ProductSpecification()

    # --- Services ---

    def create_service(self, salon_id: int, user_id: int, request: CreateServiceRequest) -> Service:
        salon = self.salon_service.get_accessible_salon(salon_id, user_id)
        if self.services.is_code_taken(salon.salon_id, request.code):
            raise ConflictError(f"Service code '{request.code}' is already in use.")

        service = Service(salon_id=salon.salon_id, created_by_user_id=user_id, **request.model_dump())
        result = self.service_specification.is_satisfied_by(service)
        if not result.is_valid:
            raise DomainValidationError("Invalid service data.", result.errors)

        self.services.create(service)
        self.services.save_changes()
        current_app.logger.info("Created service %s in salon %s", service.service_id, salon.salon_id)
        return service

    def get_service(self, service_id: int) -> Service:
        return self.services.get_or_raise(service_id, "Service not found.")

    def list_services(
        self,
        salon_id: int,
        code: str | None = None,
        name: str | None = None,
        is_active: bool | None = None,
    ) -> list[Service]:
        self.salon_service.get_salon(salon_id)
        return self.services.get_services(salon_id, code, name, is_active)

    def update_service(self, service_id: int, user_id: int, document: Any) -> OperationResult:
        service = self.get_service(service_id)
        self.salon_service.get_accessible_salon(service.salon_id, user_id)

        def ensure_unique_code(request: UpdateServiceRequest, entity: Service) -> None:
            if self.services.is_code_taken(entity.salon_id, request.code, exclude_id=entity.service_id):
                raise ConflictError(f"Service code '{request.code}' is already in use.")

        return apply_patch_update(
            document,
            service,
            to_request=lambda entity: _fields(entity, SERVICE_FIELDS),
            request_model=UpdateServiceRequest,
            update=lambda request, entity: entity.update_service(user_id, **request.model_dump()),
            specification=self.service_specification,
            repository=self.services,
            entity_label="service",
            before_update=ensure_unique_code,
        )

    def add_product_usage(
        self, service_id: int, user_id: int, request: AddServiceProductUsageRequest
    ) -> ServiceProductUsage:
        service = self.get_service(service_id)
        self.salon_service.get_accessible_salon(service.salon_id, user_id)
        product = self.get_product(request.product_id)
        if product.salon_id != service.salon_id:
            raise BadRequestError("Product does not belong to the same salon as the service.")
        if self.usages.get_for_service_and_product(service.service_id, product.product_id) is not None:
            raise ConflictError("This product is already linked to the service.")

        usage = ServiceProductUsage(
            service_id=service.service_id,
            product_id=product.product_id,
            quantity_used=request.quantity_used,
        )
        self.usages.create(usage)
        self.usages.save_changes()
        return usage

    # --- Products ---

    def create_product(self, salon_id: int, user_id: int, request: CreateProductRequest) -> Product:
        salon = self.salon_service.get_accessible_salon(salon_id, user_id)
        if self.products.is_code_taken(salon.salon_id, request.code):
            raise ConflictError(f"Product code '{request.code}' is already in use.")

        product = Product(salon_id=salon.salon_id, created_by_user_id=user_id, **request.model_dump())
        result = self.product_specification.is_satisfied_by(product)
        if not result.is_valid:
            raise DomainValidationError("Invalid product data.", result.errors)

        self.products.create(product)
        self.products.save_changes()
        current_app.logger.info("Created product %s in salon %s", product.product_id, salon.salon_id)
        return product

    def get_product(self, product_id: int) -> Product:
        return self.products.get_or_raise(product_id, "Product not found.")

    def list_products(
        self,
        salon_id: int,
        code: str | None = None,
        name: str | None = None,
        is_active: bool | None = None,
        low_stock: bool = False,
    ) -> list[Product]:
        self.salon_service.get_salon(salon_id)
        return self.products.get_products(salon_id, code, name, is_active, low_stock)

    def update_product(self, product_id: int, user_id: int, document: Any) -> OperationResult:
        product = self.get_product(product_id)
        self.salon_service.get_accessible_salon(product.salon_id, user_id)

        def ensure_unique_code(request: UpdateProductRequest, entity: Product) -> None:
            if self.products.is_code_taken(entity.salon_id, request.code, exclude_id=entity.product_id):
                raise ConflictError(f"Product code '{request.code}' is already in use.")

        return apply_patch_update(
            document,
            product,
            to_request=lambda entity: _fields(entity, PRODUCT_FIELDS),
            request_model=UpdateProductRequest,
            update=lambda request, entity: entity.update_product(user_id, **request.model_dump()),
            specification=self.product_specification,
            repository=self.products,
            entity_label="product",
            before_update=ensure_unique_code,
        )
