"""Product API endpoints.

Thin HTTP layer over CatalogService. Handlers translate request data to
DTOs and filters; domain errors are rendered by the error handlers in
``storefront.api.middleware``.
"""

from dataclasses import asdict
from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, Header, Query, Request, UploadFile

from storefront.api.schemas import (
    DeleteResponse,
    ErrorResponse,
    PaginationSchema,
    ProductListResponse,
    StockUpdateRequest,
)
from storefront.catalog.filters import DEFAULT_LIMIT, DEFAULT_PAGE, ProductFilter
from storefront.catalog.schemas import (
    ImageUpload,
    ProductCreateDTO,
    ProductRead,
    ProductUpdateDTO,
)
from storefront.catalog.service import CatalogService
from storefront.domain.exceptions import AuthorizationError
from storefront.infrastructure.config import settings

router = APIRouter(tags=["Products"])

ERROR_RESPONSES = {
    403: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
    502: {"model": ErrorResponse},
}


# ============================================================================
# Dependencies
# ============================================================================


def get_service(request: Request) -> CatalogService:
    """Get the catalog service built at startup."""
    return request.app.state.catalog_service


def get_seller_id(
    seller_id: Annotated[int | None, Header(alias="X-Seller-ID")] = None,
) -> int:
    """Get the acting seller set by the upstream auth layer."""
    if seller_id is None:
        raise AuthorizationError("Missing X-Seller-ID header")
    return seller_id


def get_product_filter(
    category_id: int | None = None,
    shop_id: int | None = None,
    min_price: Annotated[Decimal | None, Query(alias="minPrice")] = None,
    max_price: Annotated[Decimal | None, Query(alias="maxPrice")] = None,
    min_rating: Annotated[float | None, Query(alias="minRating")] = None,
    search: str | None = None,
    in_stock: Annotated[bool | None, Query(alias="inStock")] = None,
    sort_by: Annotated[str | None, Query(alias="sortBy")] = None,
    sort_order: Annotated[str | None, Query(alias="sortOrder")] = None,
    page: int = DEFAULT_PAGE,
    limit: Annotated[int, Query(le=settings.max_page_size)] = DEFAULT_LIMIT,
) -> ProductFilter:
    """Build a listing filter from query parameters."""
    return ProductFilter(
        category_id=category_id,
        shop_id=shop_id,
        min_price=min_price,
        max_price=max_price,
        min_rating=min_rating,
        search_query=search,
        in_stock=in_stock,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )


async def read_uploads(files: list[UploadFile] | None) -> list[ImageUpload]:
    """Read multipart files into image uploads, skipping empty parts."""
    uploads = []
    for upload in files or []:
        data = await upload.read()
        if not data and not upload.filename:
            continue
        uploads.append(
            ImageUpload(
                filename=upload.filename or "image",
                content_type=upload.content_type or "application/octet-stream",
                data=data,
            )
        )
    return uploads


# ============================================================================
# Reads
# ============================================================================


@router.get("/products", response_model=ProductListResponse, responses=ERROR_RESPONSES)
async def list_products(
    filters: Annotated[ProductFilter, Depends(get_product_filter)],
    service: Annotated[CatalogService, Depends(get_service)],
) -> ProductListResponse:
    """List products with filtering, sorting and pagination."""
    result = await service.get_products(filters)
    return ProductListResponse(
        items=result.items,
        pagination=PaginationSchema(**asdict(result.metadata)),
    )


@router.get("/products/featured", response_model=list[ProductRead])
async def featured_products(
    service: Annotated[CatalogService, Depends(get_service)],
) -> list[ProductRead]:
    """Top-rated products that are in stock."""
    return await service.get_featured_products()


@router.get("/products/search", response_model=list[ProductRead], responses=ERROR_RESPONSES)
async def search_products(
    service: Annotated[CatalogService, Depends(get_service)],
    q: str = "",
) -> list[ProductRead]:
    """Search product names and descriptions."""
    return await service.search_products(q)


@router.get("/products/{product_id}", response_model=ProductRead, responses=ERROR_RESPONSES)
async def get_product(
    product_id: int,
    service: Annotated[CatalogService, Depends(get_service)],
) -> ProductRead:
    """Get one product with its recent reviews."""
    return await service.get_product(product_id)


@router.get("/categories/{category_id}/products", response_model=list[ProductRead])
async def category_products(
    category_id: int,
    service: Annotated[CatalogService, Depends(get_service)],
) -> list[ProductRead]:
    """Active products in a category and its direct children."""
    return await service.get_products_by_category(category_id)


@router.get("/shops/{shop_id}/products", response_model=list[ProductRead])
async def shop_products(
    shop_id: int,
    service: Annotated[CatalogService, Depends(get_service)],
) -> list[ProductRead]:
    """Active products in a shop."""
    return await service.get_products_by_shop(shop_id)


# ============================================================================
# Mutations
# ============================================================================


@router.post(
    "/products",
    response_model=ProductRead,
    status_code=201,
    responses=ERROR_RESPONSES,
)
async def create_product(
    service: Annotated[CatalogService, Depends(get_service)],
    seller_id: Annotated[int, Depends(get_seller_id)],
    name: Annotated[str, Form()],
    price: Annotated[Decimal, Form()],
    category_id: Annotated[int, Form()],
    shop_id: Annotated[int, Form()],
    stock: Annotated[int, Form()] = 0,
    description: Annotated[str | None, Form()] = None,
    discount: Annotated[int | None, Form()] = None,
    images: Annotated[list[UploadFile] | None, File()] = None,
) -> ProductRead:
    """Create a product listed by the acting seller."""
    dto = ProductCreateDTO(
        name=name,
        price=price,
        category_id=category_id,
        shop_id=shop_id,
        seller_id=seller_id,
        stock=stock,
        description=description,
        discount=discount,
        images=await read_uploads(images),
    )
    return await service.create_product(dto)


@router.patch("/products/{product_id}", response_model=ProductRead, responses=ERROR_RESPONSES)
async def update_product(
    product_id: int,
    service: Annotated[CatalogService, Depends(get_service)],
    seller_id: Annotated[int, Depends(get_seller_id)],
    name: Annotated[str | None, Form()] = None,
    description: Annotated[str | None, Form()] = None,
    price: Annotated[Decimal | None, Form()] = None,
    stock: Annotated[int | None, Form()] = None,
    discount: Annotated[int | None, Form()] = None,
    category_id: Annotated[int | None, Form()] = None,
    shop_id: Annotated[int | None, Form()] = None,
    images: Annotated[list[UploadFile] | None, File()] = None,
    images_to_delete: Annotated[list[str] | None, Form()] = None,
) -> ProductRead:
    """Partially update a product owned by the acting seller."""
    dto = ProductUpdateDTO(
        name=name,
        description=description,
        price=price,
        stock=stock,
        discount=discount,
        category_id=category_id,
        shop_id=shop_id,
        images=await read_uploads(images),
        images_to_delete=images_to_delete or [],
    )
    return await service.update_product(product_id, dto, requester_id=seller_id)


@router.patch(
    "/products/{product_id}/stock",
    response_model=ProductRead,
    responses=ERROR_RESPONSES,
)
async def update_stock(
    product_id: int,
    body: StockUpdateRequest,
    service: Annotated[CatalogService, Depends(get_service)],
    seller_id: Annotated[int, Depends(get_seller_id)],
) -> ProductRead:
    """Adjust stock by a signed quantity."""
    return await service.update_stock(product_id, body.quantity, requester_id=seller_id)


@router.delete("/products/{product_id}", response_model=DeleteResponse, responses=ERROR_RESPONSES)
async def delete_product(
    product_id: int,
    service: Annotated[CatalogService, Depends(get_service)],
    seller_id: Annotated[int, Depends(get_seller_id)],
) -> DeleteResponse:
    """Delete a product and its images."""
    deleted = await service.delete_product(product_id, requester_id=seller_id)
    return DeleteResponse(deleted=deleted)
