# services/pricing_service.py
import math
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError

from .. import db, logger
from ..models.catalog import Material
from ..models.settings import Settings
from .catalog_service import resolve_relation_id

MINOR_UNITS_PER_MAJOR = 100


def is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def normalize_quantity(value) -> int:
    """max(1, floor(value)); anything that is not a finite number counts as 1"""
    if not is_number(value):
        return 1
    return max(1, math.floor(value))


def to_minor_units(*factors) -> int:
    """
    Multiply major-unit factors and convert to integer minor units.

    The product is computed exactly in decimal and rounded once, half away
    from zero, so no intermediate factor is rounded.
    """
    product = Decimal(MINOR_UNITS_PER_MAJOR)
    for factor in factors:
        product *= Decimal(str(factor))
    return int(product.quantize(Decimal('1'), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class PricingSettings:
    """Defaults read once per pricing pass"""
    price_per_gram: float = 0
    currency: Optional[str] = None


def load_pricing_settings(default_currency: Optional[str] = None) -> PricingSettings:
    """
    Read the global settings for one pricing pass.

    A failed read is not fatal: pricing continues with no default price per
    gram and the configured default currency.
    """
    try:
        settings = Settings.get_solo()
    except SQLAlchemyError as e:
        logger.warning(f"Settings lookup failed, pricing without a default price per gram: {str(e)}")
        return PricingSettings(price_per_gram=0, currency=default_currency)

    if settings is None:
        return PricingSettings(price_per_gram=0, currency=default_currency)

    price_per_gram = settings.price_per_gram if is_number(settings.price_per_gram) else 0
    return PricingSettings(
        price_per_gram=price_per_gram,
        currency=settings.currency or default_currency
    )


class PricingEngine:
    """
    Computes line amounts for quote items.

    Priority:
    1. price_override (per unit, major units) * quantity
    2. grams * quantity * price per gram, where the material's own
       price_per_gram beats the settings default
    3. zero

    Material prices are cached per material id for the lifetime of the
    engine, which is a single pricing pass.
    """

    def __init__(self, settings: PricingSettings):
        self.settings = settings
        self._material_prices: Dict[str, Optional[float]] = {}

    def price_line(self, item: Mapping) -> int:
        quantity = normalize_quantity(item.get('quantity'))

        price_override = item.get('price_override')
        if is_number(price_override):
            return to_minor_units(max(0, price_override), quantity)

        grams = item.get('grams')
        if not is_number(grams) or grams <= 0:
            return 0

        price_per_gram = self.settings.price_per_gram
        material_price = self.material_price(item.get('material'))
        if material_price is not None:
            price_per_gram = material_price

        if price_per_gram > 0:
            return to_minor_units(price_per_gram, grams, quantity)
        return 0

    def material_price(self, material) -> Optional[float]:
        """The material's own price per gram, or None when it has none"""
        material_id = resolve_relation_id(material)
        if material_id is None:
            return None

        cache_key = str(material_id)
        if cache_key not in self._material_prices:
            if isinstance(material, Material):
                price = material.price_per_gram
            else:
                price = self._populated_price(material)
                if price is None:
                    price = self._fetch_material_price(material_id)
            self._material_prices[cache_key] = price if is_number(price) else None

        return self._material_prices[cache_key]

    @staticmethod
    def _populated_price(material) -> Optional[float]:
        if not isinstance(material, Mapping):
            return None
        for key in ('price_per_gram', 'pricePerGram'):
            if is_number(material.get(key)):
                return material[key]
        return None

    @staticmethod
    def _fetch_material_price(material_id) -> Optional[float]:
        try:
            material = db.session.get(Material, material_id)
        except SQLAlchemyError as e:
            logger.warning(f"Material {material_id} price lookup failed: {str(e)}")
            return None
        return material.price_per_gram if material is not None else None

    @staticmethod
    def total(line_amounts: Iterable[int]) -> int:
        return sum(line_amounts)
