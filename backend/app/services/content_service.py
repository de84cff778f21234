r"""backend\app\services\content_service.py

AI-assisted catalogue content: product descriptions, categories, names,
product photos and business insights.  Text operations render a prompt and
delegate to the structured-generation client with the matching output model;
photos go to the image-generation client.
"""

from __future__ import annotations

import json
import logging
from typing import Optional

from ..core.errors import GenerationError, InvalidInputError
from ..models.schemas import (
    BusinessInsightsOutput,
    ProductCategoryInput,
    ProductCategoryOutput,
    ProductDescriptionInput,
    ProductDescriptionOutput,
    ProductImageInput,
    ProductImageOutput,
    ProductNameInput,
    ProductNameOutput,
)
from .inventory_service import InventoryStore
from .llm_service import ImageGenerationClient, StructuredGenerationClient, with_timeout

LOGGER = logging.getLogger(__name__)

DESCRIPTION_PROMPT = """You are a marketing expert. Write a compelling, concise and informative description for the following product.

Product Name: {product_name}
Category: {category}
{keywords_line}
Highlight the key features and benefits for the customer.
"""

CATEGORY_PROMPT = """You are an e-commerce expert. Suggest a suitable category and subcategory for the product below.

Product Name: {product_name}

For example, "Desi Ghee (Pure Cow)" fits category "Masala, Oil & More" and subcategory "Oils & Ghee"; "Classic T-Shirt" fits category "Apparel" and subcategory "Tops".
"""

NAME_PROMPT = """You are a branding expert. Suggest one creative and suitable product name for the category below.

Category: {category}
{description_line}
Return just the name, without extra text or quotation marks.
"""

IMAGE_PROMPT = (
    "Generate a high-quality, professional e-commerce product photo of a \"{product_name}\" "
    "in the category \"{category}\". The product should be on a clean, white background. "
    "The image should be well-lit and visually appealing for a retail website."
)

INSIGHTS_PROMPT = """You are a business intelligence analyst for an e-commerce company. Analyze the product and order data below.

Product Data:
{product_data}

Order Data:
{order_data}

Provide:
1. businessSummary: a brief overview of current performance, mentioning total revenue, number of orders and noticeable trends.
2. topPerformingProducts: the top 3-5 products, each with a short reason (for example highest revenue or most units sold).
3. recommendations: exactly three concise, actionable recommendations on inventory, marketing, pricing or bundling.
"""

_INSIGHT_PRODUCT_FIELDS = ("name", "category", "price", "stock")
_INSIGHT_ORDER_FIELDS = ("items", "total_amount", "order_date", "status")


def _required(value: Optional[str], label: str) -> str:
    text = (value or "").strip()
    if not text:
        raise InvalidInputError(f"{label} is required.")
    return text


class ContentGenerationService:
    """Prompt templates for catalogue content around an injected client."""

    def __init__(
        self,
        client: StructuredGenerationClient,
        store: InventoryStore,
        timeout: Optional[float] = None,
        image_client: Optional[ImageGenerationClient] = None,
    ) -> None:
        self._client = client
        self._store = store
        self._timeout = timeout
        self._image_client = image_client

    async def generate_product_description(
        self, request: ProductDescriptionInput
    ) -> ProductDescriptionOutput:
        keywords = (request.keywords or "").strip()
        prompt = DESCRIPTION_PROMPT.format(
            product_name=_required(request.product_name, "Product name"),
            category=_required(request.category, "Category"),
            keywords_line=f"Keywords to include: {keywords}\n" if keywords else "",
        )
        return await with_timeout(self._client.generate(prompt, ProductDescriptionOutput), self._timeout)

    async def generate_product_category(self, request: ProductCategoryInput) -> ProductCategoryOutput:
        prompt = CATEGORY_PROMPT.format(product_name=_required(request.product_name, "Product name"))
        return await with_timeout(self._client.generate(prompt, ProductCategoryOutput), self._timeout)

    async def suggest_product_name(self, request: ProductNameInput) -> ProductNameOutput:
        description = (request.description or "").strip()
        prompt = NAME_PROMPT.format(
            category=_required(request.category, "Category"),
            description_line=f"Description: {description}\n" if description else "",
        )
        result = await with_timeout(self._client.generate(prompt, ProductNameOutput), self._timeout)
        return ProductNameOutput(product_name=result.product_name.strip().strip('"'))

    async def generate_product_image(self, request: ProductImageInput) -> ProductImageOutput:
        prompt = IMAGE_PROMPT.format(
            product_name=_required(request.product_name, "Product name"),
            category=_required(request.category, "Category"),
        )
        if self._image_client is None:
            raise GenerationError("Image generation is not configured.")
        image_url = await with_timeout(self._image_client.generate_image(prompt), self._timeout)
        return ProductImageOutput(image_url=image_url)

    async def generate_business_insights(self) -> BusinessInsightsOutput:
        """Summarise the store's current products and orders."""

        products = self._store.list("products", fields=_INSIGHT_PRODUCT_FIELDS)
        orders = self._store.list("orders", fields=_INSIGHT_ORDER_FIELDS)
        LOGGER.info("Generating business insights from %d products and %d orders", len(products), len(orders))
        prompt = INSIGHTS_PROMPT.format(
            product_data=json.dumps(products, sort_keys=True),
            order_data=json.dumps(orders, sort_keys=True),
        )
        return await with_timeout(self._client.generate(prompt, BusinessInsightsOutput), self._timeout)
