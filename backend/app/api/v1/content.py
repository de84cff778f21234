r"""backend\app\api\v1\content.py

AI-assisted catalogue content.  Generation failures surface as 502 through
the application's ``GenerationError`` handler."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from ...core.security import WRITE_ROLES
from ...models import schemas
from ...services.content_service import ContentGenerationService
from ..deps import get_content_service, require_roles

router = APIRouter(prefix="/ai", dependencies=[Depends(require_roles(*WRITE_ROLES))])


@router.post("/product-description", response_model=schemas.ProductDescriptionOutput)
async def product_description(
    body: schemas.ProductDescriptionInput,
    service: ContentGenerationService = Depends(get_content_service),
) -> schemas.ProductDescriptionOutput:
    return await service.generate_product_description(body)


@router.post("/product-category", response_model=schemas.ProductCategoryOutput)
async def product_category(
    body: schemas.ProductCategoryInput,
    service: ContentGenerationService = Depends(get_content_service),
) -> schemas.ProductCategoryOutput:
    return await service.generate_product_category(body)


@router.post("/product-name", response_model=schemas.ProductNameOutput)
async def product_name(
    body: schemas.ProductNameInput,
    service: ContentGenerationService = Depends(get_content_service),
) -> schemas.ProductNameOutput:
    return await service.suggest_product_name(body)


@router.post("/business-insights", response_model=schemas.BusinessInsightsOutput)
async def business_insights(
    service: ContentGenerationService = Depends(get_content_service),
) -> schemas.BusinessInsightsOutput:
    return await service.generate_business_insights()


@router.post("/product-image", response_model=schemas.ProductImageOutput)
async def product_image(
    body: schemas.ProductImageInput,
    service: ContentGenerationService = Depends(get_content_service),
) -> schemas.ProductImageOutput:
    return await service.generate_product_image(body)
