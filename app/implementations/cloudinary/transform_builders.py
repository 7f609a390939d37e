from dataclasses import dataclass
from typing import List, Optional

from app.interfaces.transform_builder import MockupBuildRequest, TransformBuilder
from app.implementations.cloudinary.asset_parser import (
    DEFAULT_CDN_HOST,
    is_cdn_image_url,
    parse_asset_identifier,
)
from app.implementations.cloudinary.geometry_fitter import GeometryFitter
from app.implementations.cloudinary.rotation_positioner import RotationPositioner
from app.implementations.cloudinary.segments import (
    ColorizeSegment,
    LayerApplySegment,
    OverlayBoxSegment,
    OverlayPadSegment,
    ResizeSegment,
    render_url,
)
from app.implementations.cloudinary.variant_selector import is_dark_hex, is_valid_logo, pick_logo_variant
from app.schemas.placement_schemas import ResolvedPlacement
from app.utils.logging_config import get_logger
from app.utils.rounding import round_half_up

DEFAULT_PIXEL_ASSET = "one_pixel_s4c3vt"


@dataclass(frozen=True)
class Canvas:
    """Pixel size the placement fractions are mapped onto"""
    width: float
    height: float


@dataclass
class OverlayBuildRequest(MockupBuildRequest):
    overlay_hex: str = "#000000"
    overlay_opacity: int = 20


class CloudinaryTransformBuilder(TransformBuilder):
    """Shared placement walk for the absolute and relative builders"""

    relative = False
    label = "absolute"

    def __init__(
        self,
        fitter: Optional[GeometryFitter] = None,
        positioner: Optional[RotationPositioner] = None,
        host: str = DEFAULT_CDN_HOST,
        cloud_name: str = "",
    ):
        self.fitter = fitter or GeometryFitter()
        self.positioner = positioner or RotationPositioner()
        self.host = host
        self.cloud_name = cloud_name
        self.logger = get_logger(__name__)

    def build(self, request: MockupBuildRequest) -> str:
        base_url = request.base.url
        tag = f"[{self.label}]" + (f"[{request.product_id}]" if request.product_id else "")

        if not self._base_usable(request, tag):
            return base_url
        if not is_valid_logo(request.logos.logo_darker if request.logos else None, self.host):
            self.logger.debug(f"{tag} Skipping mockup: default logo is not usable")
            return base_url

        canvas = self._canvas(request)
        if canvas is None:
            self.logger.debug(f"{tag} Skipping mockup: canvas size unknown")
            return base_url

        identifier = parse_asset_identifier(base_url)
        cloud = self.cloud_name or identifier.cloud
        if not cloud or not identifier.usable:
            self.logger.debug(f"{tag} Skipping mockup: cannot address base asset in {base_url}")
            return base_url

        background_is_dark = is_dark_hex(request.base.dominant_color_hex)
        segments = self._leading_segments(request)
        emitted = 0
        for resolved in request.placements:
            pair = self._logo_segments(resolved, request, canvas, background_is_dark, tag)
            if pair:
                segments.extend(pair)
                emitted += 1

        if not emitted:
            return base_url

        url = render_url(self.host, cloud, segments, identifier.base_asset)
        self.logger.debug(f"{tag} Built mockup with {emitted}/{len(request.placements)} placements: {url}")
        return url

    def _base_usable(self, request: MockupBuildRequest, tag: str) -> bool:
        if not is_cdn_image_url(request.base.url, self.host):
            self.logger.debug(f"{tag} Skipping mockup: base is not a CDN image ({request.base.url!r})")
            return False
        if not request.placements:
            self.logger.debug(f"{tag} Skipping mockup: no placements")
            return False
        return True

    def _canvas(self, request: MockupBuildRequest) -> Optional[Canvas]:
        base = request.base
        if not base.has_size:
            return None
        return Canvas(base.width, base.height)

    def _leading_segments(self, request: MockupBuildRequest) -> List:
        return []

    def _logo_segments(
        self,
        resolved: ResolvedPlacement,
        request: MockupBuildRequest,
        canvas: Canvas,
        background_is_dark: bool,
        tag: str,
    ) -> List:
        placement = resolved.placement
        if not placement.has_box:
            self.logger.debug(f"{tag} Skipping placement {placement.name!r}: incomplete box")
            return []

        asset = pick_logo_variant(
            request.logos, resolved.use_back, background_is_dark, request.base.shade, host=self.host
        )
        if asset is None:
            self.logger.debug(f"{tag} Skipping placement {placement.name!r}: no usable logo variant")
            return []
        overlay_id = parse_asset_identifier(asset.url).overlay_id
        if not overlay_id:
            self.logger.debug(f"{tag} Skipping placement {placement.name!r}: cannot address {asset.url}")
            return []

        box_x = round_half_up(placement.x_percent * canvas.width)
        box_y = round_half_up(placement.y_percent * canvas.height)
        box_w = round_half_up(placement.w_percent * canvas.width)
        box_h = round_half_up(placement.h_percent * canvas.height)
        if box_w <= 0 or box_h <= 0:
            self.logger.debug(f"{tag} Skipping placement {placement.name!r}: box collapses at this size")
            return []

        fit = self.fitter.compute_fit(
            box_w, box_h, asset.width, asset.height,
            extent_allowed=placement.extent and not request.strict_fit,
        )
        position = self.positioner.position(
            box_x, box_y, box_w, box_h, fit.width, fit.height,
            canvas.width, canvas.height, placement.rotation,
        )

        if self.relative:
            return [
                OverlayPadSegment(
                    overlay_id, fit.width / canvas.width, fit.height / canvas.height,
                    angle=position.angle, relative=True,
                ),
                LayerApplySegment(
                    position.x / canvas.width, position.y / canvas.height,
                    gravity=position.gravity, relative=True,
                ),
            ]
        return [
            OverlayPadSegment(overlay_id, fit.width, fit.height, angle=position.angle),
            LayerApplySegment(position.x, position.y, gravity=position.gravity),
        ]


class AbsoluteTransformBuilder(CloudinaryTransformBuilder):
    """Places logos in pixels of the base image's natural size"""


class RelativeTransformBuilder(CloudinaryTransformBuilder):
    """Places logos in fractions of the base image after a fit-within resize.

    The CDN computes final pixels itself, so the same URL stays correct for
    any rendered size. Sizes are still derived on a pixel canvas of the
    target width so the fitting heuristics see the same numbers as the
    absolute builder.
    """

    relative = True
    label = "relative"

    def _resize_target(self, request: MockupBuildRequest):
        if request.max_width:
            return int(request.max_width), int(request.max_height) if request.max_height else None
        if request.base.has_size:
            return int(request.base.width), int(request.base.height)
        return None, None

    def _canvas(self, request: MockupBuildRequest) -> Optional[Canvas]:
        width, height = self._resize_target(request)
        if not width:
            return None
        base = request.base
        if base.has_size:
            return Canvas(width, width * base.height / base.width)
        return Canvas(width, height or width)

    def _leading_segments(self, request: MockupBuildRequest) -> List:
        width, height = self._resize_target(request)
        return [ResizeSegment(width, height)]


class OverlayPreviewBuilder(RelativeTransformBuilder):
    """Relative mockup with a tinted box drawn under every placement.

    Boxes show where logos can go, so they are emitted for every placement
    with a complete box even when the logo set has nothing usable.
    """

    label = "overlay"

    def __init__(self, *args, pixel_asset: str = DEFAULT_PIXEL_ASSET, **kwargs):
        super().__init__(*args, **kwargs)
        self.pixel_asset = pixel_asset

    def _resize_target(self, request: MockupBuildRequest):
        width, _ = super()._resize_target(request)
        return width, None

    def build(self, request: OverlayBuildRequest) -> str:
        base_url = request.base.url
        tag = f"[{self.label}]" + (f"[{request.product_id}]" if request.product_id else "")

        if not self._base_usable(request, tag):
            return base_url
        canvas = self._canvas(request)
        if canvas is None:
            self.logger.debug(f"{tag} Skipping overlay: canvas size unknown")
            return base_url

        identifier = parse_asset_identifier(base_url)
        cloud = self.cloud_name or identifier.cloud
        if not cloud or not identifier.usable:
            self.logger.debug(f"{tag} Skipping overlay: cannot address base asset in {base_url}")
            return base_url

        hex_color = (getattr(request, "overlay_hex", None) or "#000000").replace("#", "")
        opacity = max(0, min(int(getattr(request, "overlay_opacity", 20)), 100))

        segments = self._leading_segments(request)
        boxes = 0
        for resolved in request.placements:
            pair = self._box_segments(resolved, hex_color, opacity)
            if pair:
                segments.extend(pair)
                boxes += 1

        background_is_dark = is_dark_hex(request.base.dominant_color_hex)
        logos = 0
        for resolved in request.placements:
            pair = self._logo_segments(resolved, request, canvas, background_is_dark, tag)
            if pair:
                segments.extend(pair)
                logos += 1

        if not boxes and not logos:
            return base_url

        url = render_url(self.host, cloud, segments, identifier.base_asset)
        self.logger.debug(f"{tag} Built overlay preview with {boxes} boxes and {logos} logos: {url}")
        return url

    def _box_segments(self, resolved: ResolvedPlacement, hex_color: str, opacity: int) -> List:
        placement = resolved.placement
        if not placement.has_box:
            return []
        # Fraction space: the box fills itself, no snapping to pixels
        position = self.positioner.position(
            placement.x_percent, placement.y_percent, placement.w_percent, placement.h_percent,
            placement.w_percent, placement.h_percent, 1.0, 1.0, placement.rotation, snap=False,
        )
        return [
            OverlayBoxSegment(self.pixel_asset, placement.w_percent, placement.h_percent, angle=position.angle),
            ColorizeSegment(
                hex_color, opacity,
                LayerApplySegment(position.x, position.y, gravity=position.gravity, relative=True),
            ),
        ]
