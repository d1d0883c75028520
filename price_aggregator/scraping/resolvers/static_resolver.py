"""
Static table URL resolver with derived-URL fallback.
"""

from __future__ import annotations

import re
from collections.abc import Mapping

from price_aggregator.scraping.config.models import UrlTable
from price_aggregator.scraping.resolvers.base import UrlResolver

_SLUG_INVALID = re.compile(r"[^a-z0-9]+")


def slugify(value: str) -> str:
    return _SLUG_INVALID.sub("-", value.strip().lower()).strip("-")


class StaticUrlResolver(UrlResolver):
    """
    Looks products up in a fixed table; unknown products get URLs built
    from brand/model templates, or nothing when no templates are set.
    """

    def __init__(
        self,
        products: Mapping[str, Mapping[str, str]] | None = None,
        derived_templates: Mapping[str, str] | None = None,
    ) -> None:
        self._products = {key: dict(value) for key, value in (products or {}).items()}
        self._derived_templates = dict(derived_templates or {})

    @classmethod
    def from_table(cls, table: UrlTable) -> "StaticUrlResolver":
        return cls(products=table.products, derived_templates=table.derived_templates)

    def resolve(self, product_id: str, brand: str, model: str) -> dict[str, str]:
        known = self._products.get(product_id)
        if known is not None:
            return dict(known)
        return self.derive(brand=brand, model=model)

    def derive(self, *, brand: str, model: str) -> dict[str, str]:
        brand_slug = slugify(brand)
        model_slug = slugify(model)
        if not brand_slug and not model_slug:
            return {}
        return {
            competitor: template.format(
                brand=brand.strip(),
                model=model.strip(),
                brand_slug=brand_slug,
                model_slug=model_slug,
            )
            for competitor, template in self._derived_templates.items()
        }
