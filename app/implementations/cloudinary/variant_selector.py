import re
from typing import Optional

from app.implementations.cloudinary.asset_parser import DEFAULT_CDN_HOST, is_cdn_image_url
from app.schemas.placement_schemas import LogoAsset, LogoSet
from app.utils.rounding import round_half_up

_HEX_COLOR = re.compile(r"^[0-9a-f]{6}$", re.IGNORECASE)

SHADES = ("lighter", "darker")


def normalize_shade(value) -> Optional[str]:
    """Map 'Lighter'/'darker' in any case to a shade, anything else to None"""
    shade = str(value or "").strip().lower()
    return shade if shade in SHADES else None


def brightness_from_hex(hex_color) -> int:
    """Perceived brightness 0-255 of a #rrggbb color (128 when unreadable)"""
    if not hex_color or not isinstance(hex_color, str):
        return 128
    h = hex_color.replace("#", "").strip()
    if not _HEX_COLOR.match(h):
        return 128
    r, g, b = (int(h[i:i + 2], 16) for i in (0, 2, 4))
    return round_half_up((r * 299 + g * 587 + b * 114) / 1000)


def is_dark_hex(hex_color) -> bool:
    return brightness_from_hex(hex_color) < 128


def is_valid_logo(asset: Optional[LogoAsset], host: str = DEFAULT_CDN_HOST) -> bool:
    return asset is not None and is_cdn_image_url(asset.url, host)


def _variant_key(use_back: bool, shade: str) -> str:
    side = "back" if use_back else "logo"
    return f"{side}_{shade}"


def pick_logo_variant(
    logos: Optional[LogoSet],
    use_back: bool,
    background_is_dark: bool,
    shade_override=None,
    host: str = DEFAULT_CDN_HOST,
) -> Optional[LogoAsset]:
    """Choose the logo art for one placement.

    With a shade override the requested shade on the requested side wins,
    then the other shade on that side, then the front logos. Without one the
    tone is picked for contrast (lighter art on a dark background), falling
    back to the front logo of the same tone and finally to ``logo_darker``.
    Returns None when nothing in the set is usable.
    """
    if logos is None:
        return None

    def valid(key: str) -> Optional[LogoAsset]:
        asset = logos.get(key)
        return asset if is_valid_logo(asset, host) else None

    shade = normalize_shade(shade_override)
    if shade:
        other = "darker" if shade == "lighter" else "lighter"
        for key in (_variant_key(use_back, shade), _variant_key(use_back, other), "logo_darker", "logo_lighter"):
            asset = valid(key)
            if asset is not None:
                return asset
        return None

    contrast = "lighter" if background_is_dark else "darker"
    for key in (_variant_key(use_back, contrast), _variant_key(False, contrast), "logo_darker"):
        asset = valid(key)
        if asset is not None:
            return asset
    return None
