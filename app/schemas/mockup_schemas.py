from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, Dict, List, Optional, Union

from app.schemas.placement_schemas import LogoSet, Placement, parse_placements
from app.schemas.product_schemas import CartItem, Product


class _PlacementOverrideOptions(BaseModel):
    model_config = ConfigDict(extra="ignore")

    override_scope: Optional[str] = Field(None, description="Editor session whose back/front toggles apply")
    page_placement_overrides: Dict[str, List[Placement]] = Field(
        default_factory=dict, description="Page-level placements keyed by product id"
    )
    custom_back_allowed_ids: List[str] = Field(
        default_factory=list, description="Products allowed to use the back logo when the gate is enabled"
    )

    @field_validator("page_placement_overrides", mode="before")
    @classmethod
    def lenient_page_map(cls, value: Any) -> Dict[str, List[Placement]]:
        if not isinstance(value, dict):
            return {}
        return {str(pid): parse_placements(items) for pid, items in value.items() if isinstance(items, list)}

    @field_validator("custom_back_allowed_ids", mode="before")
    @classmethod
    def ids_as_text(cls, value: Any) -> List[str]:
        if not isinstance(value, (list, tuple, set)):
            return []
        return [str(v) for v in value]


class ProductImageOptions(_PlacementOverrideOptions):
    """Options for the product image generator"""
    max_width: Optional[int] = Field(None, description="Target width; omitted uses absolute pixels when possible")
    color_index: int = Field(0, description="Color variant of a Group product")


class OverlayOptions(_PlacementOverrideOptions):
    """Options for the product image with placement overlay"""
    max_width: int = Field(1400, description="Target width of the preview")
    color_index: int = 0
    overlay_hex: str = Field("#000000", description="Tint of the placement boxes")
    overlay_opacity: int = Field(20, description="Box opacity 0-100")


class CartThumbOptions(_PlacementOverrideOptions):
    """Options for cart row thumbnails and hover previews"""
    max_width: Optional[int] = Field(None, description="Thumbnail width; defaults per call site")


class ProductMockupRequest(BaseModel):
    product: Optional[Product] = None
    logos: LogoSet = LogoSet()
    options: ProductImageOptions = ProductImageOptions()


class ProductOverlayRequest(BaseModel):
    product: Optional[Product] = None
    logos: LogoSet = LogoSet()
    options: OverlayOptions = OverlayOptions()


class CartThumbRequest(BaseModel):
    item: Optional[CartItem] = None
    logos: LogoSet = LogoSet()
    options: CartThumbOptions = CartThumbOptions()


class WarmUrlsRequest(BaseModel):
    products: List[Product] = []
    logos: LogoSet = LogoSet()
    colors_per_product: Optional[int] = None
    max_width: Optional[int] = None


class PlacementSignatureRequest(BaseModel):
    placements: List[Placement] = []

    @field_validator("placements", mode="before")
    @classmethod
    def lenient_placements(cls, value: Any) -> List[Placement]:
        return parse_placements(value)


class AssetParseRequest(BaseModel):
    url: str = Field(..., description="CDN delivery URL")


class OverrideUpdateRequest(BaseModel):
    mapping: Dict[str, Union[bool, str]] = Field(
        ..., description='Placement name to "Back", "Default" or a boolean'
    )


class MockupUrlResponse(BaseModel):
    """Response schema for a compiled mockup URL"""
    url: str = Field(..., description="Transform URL, or the base URL when nothing could be placed")


class WarmUrlsResponse(BaseModel):
    urls: List[str] = Field(..., description="Unique URLs a cache warmer should request")


class AssetIdentifierResponse(BaseModel):
    cloud: str
    overlay_id: str
    base_asset: str
    delivery: str


class PlacementSignatureResponse(BaseModel):
    signature: str
    key: str


class OverrideResponse(BaseModel):
    scope: str
    product_id: str
    overrides: Dict[str, bool] = Field(default_factory=dict)


class OverrideValueResponse(BaseModel):
    scope: str
    product_id: str
    name: str
    value: Optional[bool] = Field(None, description="None when the placement's own flag applies")


class ErrorResponse(BaseModel):
    """Error response schema"""
    detail: str = Field(..., description="Error details")
