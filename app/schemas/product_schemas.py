from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from app.schemas.placement_schemas import Placement, parse_placements
from app.utils.rounding import coerce_number


def _as_text(value: Any) -> str:
    return "" if value is None else str(value)


class ThumbnailRef(BaseModel):
    model_config = ConfigDict(extra="ignore")

    url: str = ""
    width: float = 0
    height: float = 0

    @field_validator("url", mode="before")
    @classmethod
    def url_as_text(cls, value: Any) -> str:
        return _as_text(value)

    @field_validator("width", "height", mode="before")
    @classmethod
    def dimension_or_zero(cls, value: Any) -> float:
        return coerce_number(value)


class ThumbnailMeta(BaseModel):
    model_config = ConfigDict(extra="ignore")

    width: float = 0
    height: float = 0
    thumbnail_color: str = ""

    @field_validator("width", "height", mode="before")
    @classmethod
    def dimension_or_zero(cls, value: Any) -> float:
        return coerce_number(value)

    @field_validator("thumbnail_color", mode="before")
    @classmethod
    def color_as_text(cls, value: Any) -> str:
        return _as_text(value)


class ColorVariant(BaseModel):
    """One color of a "Group" product, with its own photographed thumbnail"""
    model_config = ConfigDict(extra="ignore")

    title: str = ""
    color_hex_code: str = ""
    lightdark: str = ""
    thumbnail: Optional[ThumbnailRef] = None

    @field_validator("title", "color_hex_code", "lightdark", mode="before")
    @classmethod
    def text_fields(cls, value: Any) -> str:
        return _as_text(value)

    @field_validator("thumbnail", mode="before")
    @classmethod
    def thumbnail_or_none(cls, value: Any) -> Any:
        return value if isinstance(value, (dict, ThumbnailRef)) else None


class ProductAcf(BaseModel):
    model_config = ConfigDict(extra="ignore")

    group_type: str = ""
    color: List[ColorVariant] = []

    @field_validator("group_type", mode="before")
    @classmethod
    def group_type_as_text(cls, value: Any) -> str:
        return _as_text(value)

    @field_validator("color", mode="before")
    @classmethod
    def colors_or_empty(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return []
        return [c for c in value if isinstance(c, (dict, ColorVariant))]


class Product(BaseModel):
    """Product record as served by the CMS"""
    model_config = ConfigDict(extra="ignore")

    id: str = ""
    thumbnail: str = ""
    thumbnail_meta: ThumbnailMeta = ThumbnailMeta()
    acf: ProductAcf = ProductAcf()
    placement_coordinates: List[Placement] = []

    @field_validator("id", "thumbnail", mode="before")
    @classmethod
    def text_fields(cls, value: Any) -> str:
        return _as_text(value)

    @field_validator("thumbnail_meta", "acf", mode="before")
    @classmethod
    def section_or_default(cls, value: Any) -> Any:
        return value if isinstance(value, (dict, BaseModel)) else {}

    @field_validator("placement_coordinates", mode="before")
    @classmethod
    def lenient_placements(cls, value: Any) -> List[Placement]:
        return parse_placements(value)


class CartLineOptions(BaseModel):
    model_config = ConfigDict(extra="ignore")

    group_type: Optional[str] = None
    line_type: Optional[str] = None
    color: str = ""
    color_thumbnail_url: str = ""
    color_hex_code: str = ""
    color_lightdark: str = ""
    lightdark: str = ""

    @field_validator("group_type", "line_type", mode="before")
    @classmethod
    def optional_text(cls, value: Any) -> Optional[str]:
        return None if value is None else str(value)

    @field_validator("color", "color_thumbnail_url", "color_hex_code", "color_lightdark", "lightdark", mode="before")
    @classmethod
    def text_fields(cls, value: Any) -> str:
        return _as_text(value)


class CartLinePricing(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def optional_text(cls, value: Any) -> Optional[str]:
        return None if value is None else str(value)


class CartItem(BaseModel):
    """A cart line with the snapshot taken when it was added"""
    model_config = ConfigDict(extra="ignore")

    product_id: str = ""
    thumbnail: str = ""
    thumbnail_meta: ThumbnailMeta = ThumbnailMeta()
    options: CartLineOptions = CartLineOptions()
    pricing: CartLinePricing = CartLinePricing()
    product: Optional[Product] = None
    # None when the line carries no placement snapshot at all
    placement_coordinates: Optional[List[Placement]] = None

    @field_validator("product_id", "thumbnail", mode="before")
    @classmethod
    def text_fields(cls, value: Any) -> str:
        return _as_text(value)

    @field_validator("thumbnail_meta", "options", "pricing", mode="before")
    @classmethod
    def section_or_default(cls, value: Any) -> Any:
        return value if isinstance(value, (dict, BaseModel)) else {}

    @field_validator("product", mode="before")
    @classmethod
    def product_or_none(cls, value: Any) -> Any:
        return value if isinstance(value, (dict, BaseModel)) else None

    @field_validator("placement_coordinates", mode="before")
    @classmethod
    def lenient_placements(cls, value: Any) -> Optional[List[Placement]]:
        if not isinstance(value, (list, tuple)):
            return None
        return parse_placements(value)

    @property
    def resolved_product_id(self) -> str:
        if self.product_id:
            return self.product_id
        return self.product.id if self.product else ""
