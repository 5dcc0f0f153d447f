from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import ValidationError as SchemaError

from storefront.api.deps import get_admin_user, get_services
from storefront.core.errors import NotFound, ValidationError
from storefront.models.schemas import (
    Identity,
    Pagination,
    ProductFilter,
    ProductIn,
    ProductPage,
    ProductSort,
    ProductUpdate,
)
from storefront.services.registry import Services

router = APIRouter()


@router.get("", response_model=ProductPage)
def list_products(
    keyword: Optional[str] = None,
    category: Optional[str] = None,
    minPrice: Optional[float] = Query(None, ge=0),
    maxPrice: Optional[float] = Query(None, ge=0),
    sortBy: str = "createdAt",
    order: str = Query("desc", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(12, ge=1, le=100),
    services: Services = Depends(get_services),
):
    try:
        sort = ProductSort(field=sortBy, order=order)
    except SchemaError as e:
        raise ValidationError(e.errors()[0]["msg"])
    flt = ProductFilter(keyword=keyword or None, category=category or None, minPrice=minPrice, maxPrice=maxPrice)
    return services.catalog.search(flt, sort, Pagination(page=page, limit=limit))


@router.get("/featured")
def featured_products(services: Services = Depends(get_services)):
    return {"success": True, "products": services.catalog.list_featured()}


@router.get("/{product_id}")
def get_product(product_id: str, services: Services = Depends(get_services)):
    product = services.catalog.get_by_id(product_id)
    if product is None:
        raise NotFound("Product not found")
    return {"success": True, "product": product}


@router.post("", status_code=status.HTTP_201_CREATED)
def create_product(payload: ProductIn, admin: Identity = Depends(get_admin_user),
                   services: Services = Depends(get_services)):
    return {"success": True, "product": services.catalog.create(payload)}


@router.put("/{product_id}")
def update_product(product_id: str, payload: ProductUpdate, admin: Identity = Depends(get_admin_user),
                   services: Services = Depends(get_services)):
    return {"success": True, "product": services.catalog.update(product_id, payload)}


@router.delete("/{product_id}")
def delete_product(product_id: str, admin: Identity = Depends(get_admin_user),
                   services: Services = Depends(get_services)):
    services.catalog.delete(product_id)
    return {"success": True, "message": "Product removed"}
