import math
from dataclasses import dataclass
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from app.utils.logging_config import get_logger
from app.utils.rounding import coerce_number, round_half_up

logger = get_logger(__name__)

LOGO_KEYS = ("logo_darker", "logo_lighter", "back_darker", "back_lighter")


def _finite_number(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


class Placement(BaseModel):
    """One logo slot on the base image, in fractions of the image size.

    Defaults are applied once here: a missing ``extent`` means upscaling is
    allowed, a missing ``back`` means the front logo, and the rotation is
    normalized to whole degrees from whichever field the editor wrote.

    Flags are read strictly. Only ``active: true`` shows a placement and only
    ``extent: false`` forbids upscaling; loose values like ``1`` or ``"0"``
    do not count.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = ""
    x_percent: Optional[float] = Field(None, alias="xPercent")
    y_percent: Optional[float] = Field(None, alias="yPercent")
    w_percent: Optional[float] = Field(None, alias="wPercent")
    h_percent: Optional[float] = Field(None, alias="hPercent")
    rotation: int = 0
    active: bool = False
    back: bool = False
    extent: bool = True
    force_back: Optional[bool] = Field(None, alias="__forceBack")

    @model_validator(mode="before")
    @classmethod
    def normalize_legacy_fields(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)

        # Rotation: degrees, then legacy degrees key, then radians
        degrees = _finite_number(data.get("rotation"))
        if degrees is None:
            degrees = _finite_number(data.get("angle_deg"))
        if degrees is None:
            radians = _finite_number(data.get("angle"))
            degrees = radians * 180 / math.pi if radians is not None else 0
        data["rotation"] = round_half_up(degrees)

        # Older editors wrote "extend". Only a literal false turns extent off.
        extent = data.get("extent")
        if extent is None:
            extent = data.get("extend")
        data["extent"] = extent is not False

        if data.get("back") is None:
            data["back"] = False
        # Only a literal true makes a placement visible
        data["active"] = data.get("active") is True

        # Forced choices must be real booleans, anything else means no override
        for key in ("__forceBack", "force_back"):
            if key in data and not isinstance(data[key], bool):
                data[key] = None
        return data

    @field_validator("name", mode="before")
    @classmethod
    def name_as_string(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("x_percent", "y_percent", "w_percent", "h_percent", mode="before")
    @classmethod
    def percent_or_none(cls, value: Any) -> Optional[float]:
        return _finite_number(value)

    @property
    def has_box(self) -> bool:
        """All four box fields present with a positive size"""
        if None in (self.x_percent, self.y_percent, self.w_percent, self.h_percent):
            return False
        return self.w_percent > 0 and self.h_percent > 0


def parse_placements(raw: Any) -> List[Placement]:
    """Validate a list of raw placements, dropping the ones that cannot be read"""
    if not isinstance(raw, (list, tuple)):
        return []
    placements = []
    for index, item in enumerate(raw):
        if isinstance(item, Placement):
            placements.append(item)
            continue
        try:
            placements.append(Placement.model_validate(item))
        except ValidationError as e:
            logger.debug(f"Dropping unreadable placement at index {index}: {e.error_count()} error(s)")
    return placements


@dataclass(frozen=True)
class ResolvedPlacement:
    """A placement plus the runtime decision whether it uses the back logo"""
    placement: Placement
    use_back: bool = False


class LogoAsset(BaseModel):
    """A logo art file on the CDN with its natural pixel size"""
    model_config = ConfigDict(extra="ignore")

    url: str = ""
    width: float = 0
    height: float = 0

    @field_validator("url", mode="before")
    @classmethod
    def url_as_string(cls, value: Any) -> str:
        return value if isinstance(value, str) else ""

    @field_validator("width", "height", mode="before")
    @classmethod
    def dimension_or_zero(cls, value: Any) -> float:
        return coerce_number(value)


class LogoSet(BaseModel):
    """Up to four tone/side variants of a company logo"""
    model_config = ConfigDict(extra="ignore")

    logo_darker: Optional[LogoAsset] = None
    logo_lighter: Optional[LogoAsset] = None
    back_darker: Optional[LogoAsset] = None
    back_lighter: Optional[LogoAsset] = None

    @field_validator(*LOGO_KEYS, mode="before")
    @classmethod
    def asset_or_none(cls, value: Any) -> Any:
        return value if isinstance(value, (dict, LogoAsset)) else None

    def get(self, key: str) -> Optional[LogoAsset]:
        if key not in LOGO_KEYS:
            return None
        return getattr(self, key)


class BaseImageDescriptor(BaseModel):
    """The image logos are composed onto"""
    url: str = ""
    width: float = 0
    height: float = 0
    dominant_color_hex: str = "#ffffff"
    shade: Optional[str] = None

    @field_validator("width", "height", mode="before")
    @classmethod
    def dimension_or_zero(cls, value: Any) -> float:
        return coerce_number(value)

    @property
    def has_size(self) -> bool:
        return self.width > 0 and self.height > 0
