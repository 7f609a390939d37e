from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from app.config import Settings
from app.interfaces.transform_builder import MockupBuildRequest, TransformBuilder
from app.implementations.cloudinary.asset_parser import is_cdn_image_url
from app.implementations.cloudinary.transform_builders import OverlayBuildRequest
from app.implementations.cloudinary.variant_selector import normalize_shade
from app.schemas.mockup_schemas import CartThumbOptions, OverlayOptions, ProductImageOptions
from app.schemas.placement_schemas import BaseImageDescriptor, LogoSet, Placement, ResolvedPlacement
from app.schemas.product_schemas import CartItem, ColorVariant, Product
from app.services.override_store import OverrideStore
from app.utils.logging_config import get_logger
from app.utils.debug_utils import debug_timing, debug_function_args

GROUP = "group"
QUANTITY = "quantity"
DEFAULT_BASE_HEX = "#ffffff"


def normalize_line_type(raw) -> str:
    """Collapse the spellings cart lines use ("Group", "grp", "Quanity", "qty", ...)"""
    value = str(raw or "").strip().lower()
    if not value:
        return ""
    if value == GROUP or value.startswith("grp"):
        return GROUP
    if value.startswith("quan") or value == "qty":
        return QUANTITY
    return value


@dataclass
class CartBase:
    """Base image resolved for a cart line"""
    descriptor: BaseImageDescriptor
    line_type: str


class MockupService:
    """Composes the compiler for the four mockup call sites.

    Each generator resolves the base image and the placement source for its
    call site, keeps the active placements, decides per placement whether the
    back logo is used, and hands the result to a transform builder.
    """

    def __init__(
        self,
        absolute_builder: TransformBuilder,
        relative_builder: TransformBuilder,
        overlay_builder: TransformBuilder,
        override_store: OverrideStore,
        config: Settings,
    ):
        self.absolute_builder = absolute_builder
        self.relative_builder = relative_builder
        self.overlay_builder = overlay_builder
        self.override_store = override_store
        self.config = config
        self.logger = get_logger(__name__)

    # ------------------------------------------------------------------ helpers

    def _is_cdn(self, url: str) -> bool:
        return is_cdn_image_url(url, self.config.CDN_HOST)

    @staticmethod
    def _pick_color(product: Product, color_index) -> Optional[ColorVariant]:
        colors = product.acf.color
        if not colors:
            return None
        try:
            index = int(color_index or 0)
        except (TypeError, ValueError):
            index = 0
        return colors[index] if 0 <= index < len(colors) else colors[0]

    def _resolve_product_base(self, product: Product, color_index) -> BaseImageDescriptor:
        meta = product.thumbnail_meta
        url = product.thumbnail
        width, height = meta.width, meta.height
        hex_color = meta.thumbnail_color or DEFAULT_BASE_HEX
        shade = None

        if product.acf.group_type == "Group":
            color = self._pick_color(product, color_index)
            if color is not None:
                if color.thumbnail and color.thumbnail.url:
                    url = color.thumbnail.url
                    width = color.thumbnail.width or width
                    height = color.thumbnail.height or height
                    hex_color = color.color_hex_code or hex_color
                shade = normalize_shade(color.lightdark)

        return BaseImageDescriptor(
            url=url, width=width, height=height, dominant_color_hex=hex_color, shade=shade
        )

    @staticmethod
    def _page_placements(product_id: str, page_overrides: Dict[str, List[Placement]]) -> Optional[List[Placement]]:
        if not product_id or not page_overrides:
            return None
        return page_overrides.get(product_id)

    def _back_allowed(self, product_id: str, allowed_ids: Iterable[str]) -> bool:
        if not self.config.ENABLE_ALLOW_BACK_GATE:
            return True
        return product_id in set(allowed_ids or ())

    def _resolve_use_back(self, product_id: str, placement: Placement, scope: Optional[str], back_allowed: bool) -> bool:
        forced = placement.force_back
        if forced is None and scope:
            forced = self.override_store.get_override_for(product_id, placement.name, scope=scope)
        if forced is not None:
            return forced
        return placement.back and back_allowed

    def _resolve_active(self, product_id: str, placements: List[Placement], options) -> List[ResolvedPlacement]:
        back_allowed = self._back_allowed(product_id, options.custom_back_allowed_ids)
        return [
            ResolvedPlacement(p, self._resolve_use_back(product_id, p, options.override_scope, back_allowed))
            for p in placements
            if p.active is True
        ]

    def _product_placements(self, product: Product, options) -> List[ResolvedPlacement]:
        raw = self._page_placements(product.id, options.page_placement_overrides)
        if not raw:
            raw = product.placement_coordinates
        return self._resolve_active(product.id, raw, options)

    # -------------------------------------------------------------- generators

    @debug_timing
    @debug_function_args
    def generate_product_image_url(
        self,
        product: Optional[Product],
        logos: Optional[LogoSet],
        options: Optional[ProductImageOptions] = None,
    ) -> str:
        """Mockup for product cards and quick view.

        Without ``max_width`` the logos are placed in absolute pixels of the
        base image; with it (or when the base size is unknown) the relative
        builder is used at that width.
        """
        if product is None:
            return ""
        options = options or ProductImageOptions()
        base = self._resolve_product_base(product, options.color_index)
        placements = self._product_placements(product, options)

        if not options.max_width:
            if not base.has_size:
                return self.relative_builder.build(MockupBuildRequest(
                    base=base, logos=logos, placements=placements,
                    max_width=self.config.DEFAULT_RELATIVE_MAX, product_id=product.id,
                ))
            return self.absolute_builder.build(MockupBuildRequest(
                base=base, logos=logos, placements=placements, product_id=product.id,
            ))

        return self.relative_builder.build(MockupBuildRequest(
            base=base, logos=logos, placements=placements,
            max_width=options.max_width, product_id=product.id,
        ))

    @debug_timing
    @debug_function_args
    def generate_product_image_url_with_overlay(
        self,
        product: Optional[Product],
        logos: Optional[LogoSet],
        options: Optional[OverlayOptions] = None,
    ) -> str:
        """Product image with a tinted box over every active placement, logos on top"""
        if product is None:
            return ""
        options = options or OverlayOptions(max_width=self.config.OVERLAY_MAX)
        base = self._resolve_product_base(product, options.color_index)
        placements = self._product_placements(product, options)

        return self.overlay_builder.build(OverlayBuildRequest(
            base=base, logos=logos, placements=placements,
            max_width=options.max_width or self.config.OVERLAY_MAX,
            product_id=product.id,
            overlay_hex=options.overlay_hex,
            overlay_opacity=options.overlay_opacity,
        ))

    def _resolve_cart_base(self, item: CartItem) -> CartBase:
        url = item.thumbnail
        hex_color = item.thumbnail_meta.thumbnail_color or DEFAULT_BASE_HEX
        width, height = item.thumbnail_meta.width, item.thumbnail_meta.height
        shade = None

        raw_type = next(
            (t for t in (item.options.group_type, item.options.line_type, item.pricing.type) if t is not None),
            item.product.acf.group_type if item.product else "",
        )
        line_type = normalize_line_type(raw_type)

        if line_type == GROUP:
            direct_url = item.options.color_thumbnail_url
            if direct_url:
                url = direct_url
                hex_color = item.options.color_hex_code or hex_color
                shade = normalize_shade(item.options.color_lightdark or item.options.lightdark)

            colors = item.product.acf.color if item.product else []
            match = None
            if direct_url:
                match = next((c for c in colors if c.thumbnail and c.thumbnail.url == direct_url), None)
            if match is None and item.options.color:
                title = item.options.color.lower()
                match = next((c for c in colors if c.title.lower() == title), None)
            if match is not None and match.thumbnail and match.thumbnail.url:
                url = match.thumbnail.url
                width = match.thumbnail.width or width
                height = match.thumbnail.height or height
                hex_color = match.color_hex_code or hex_color
                shade = normalize_shade(match.lightdark) or shade

        # Quantity lines and lines without a usable size use the product's own thumbnail meta
        if not width or not height or not self._is_cdn(url) or line_type == QUANTITY:
            if item.product is not None:
                if not url and item.product.thumbnail:
                    url = item.product.thumbnail
                width = item.product.thumbnail_meta.width or width
                height = item.product.thumbnail_meta.height or height

        return CartBase(
            descriptor=BaseImageDescriptor(
                url=url, width=width, height=height, dominant_color_hex=hex_color, shade=shade
            ),
            line_type=line_type,
        )

    def _cart_placements(self, item: CartItem, product_id: str, line_type: str, options) -> List[Placement]:
        page = self._page_placements(product_id, options.page_placement_overrides)
        product_placements = item.product.placement_coordinates if item.product else []

        if line_type == QUANTITY:
            # Same source as the product grid, the line snapshot is ignored
            return page or product_placements
        if page is not None:
            return page
        if item.placement_coordinates is not None:
            return item.placement_coordinates
        return product_placements

    @debug_timing
    @debug_function_args
    def generate_cart_thumb_url(
        self,
        item: Optional[CartItem],
        logos: Optional[LogoSet],
        options: Optional[CartThumbOptions] = None,
    ) -> str:
        """Small cart row thumbnail with relative overlays"""
        if item is None:
            return ""
        options = options or CartThumbOptions()
        max_width = options.max_width or self.config.CART_THUMB_MAX

        product_id = item.resolved_product_id
        cart_base = self._resolve_cart_base(item)
        base = cart_base.descriptor
        if not self._is_cdn(base.url):
            return base.url or item.thumbnail or ""

        raw = self._cart_placements(item, product_id, cart_base.line_type, options)
        placements = self._resolve_active(product_id, raw, options)
        if not placements:
            return base.url

        if base.has_size:
            return self.relative_builder.build(MockupBuildRequest(
                base=base, logos=logos, placements=placements,
                max_width=max_width, product_id=product_id,
            ))

        # Unknown base size: square canvas, plain aspect-fit
        self.logger.debug(f"[cart][{product_id}] Base size unknown, using square strict-fit thumbnail")
        return self.relative_builder.build(MockupBuildRequest(
            base=base, logos=logos, placements=placements,
            max_width=max_width, max_height=max_width, product_id=product_id, strict_fit=True,
        ))

    def generate_hover_thumb_url(
        self,
        item: Optional[CartItem],
        logos: Optional[LogoSet],
        options: Optional[CartThumbOptions] = None,
    ) -> str:
        """Larger cart hover preview, same rules as the row thumbnail"""
        options = options or CartThumbOptions()
        hover_options = options.model_copy(
            update={"max_width": options.max_width or self.config.HOVER_THUMB_MAX}
        )
        return self.generate_cart_thumb_url(item, logos, hover_options)

    @debug_timing
    def collect_warm_urls(
        self,
        products: Iterable[Product],
        logos: Optional[LogoSet],
        colors_per_product: Optional[int] = None,
        max_width: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> List[str]:
        """URLs a cache warmer should request: base, per-color and overlay variants.

        Nothing is fetched here. The list is de-duplicated in order and capped.
        """
        colors_per_product = self.config.WARM_COLORS_PER_PRODUCT if colors_per_product is None else colors_per_product
        max_width = max_width or self.config.OVERLAY_MAX
        limit = self.config.WARM_MAX_URLS if limit is None else limit

        urls = []
        for product in products or []:
            urls.append(self.generate_product_image_url(
                product, logos, ProductImageOptions(max_width=max_width)
            ))
            for index in range(min(len(product.acf.color), colors_per_product)):
                urls.append(self.generate_product_image_url(
                    product, logos, ProductImageOptions(max_width=max_width, color_index=index)
                ))
                urls.append(self.generate_product_image_url_with_overlay(
                    product, logos, OverlayOptions(max_width=max_width, color_index=index)
                ))
            urls.append(self.generate_product_image_url_with_overlay(
                product, logos, OverlayOptions(max_width=max_width)
            ))

        unique = list(dict.fromkeys(u for u in urls if u))
        self.logger.info(f"Collected {len(unique)} unique warm URLs from {len(urls)} candidates")
        return unique[:limit]
