"""Typed transform segments rendered to the CDN's URL grammar.

Geometry code builds these objects; only ``render()`` produces strings.
Relative segments carry fractions of the base image (six decimals), absolute
segments carry whole pixels.
"""
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Optional, Sequence


class SegmentKind(str, Enum):
    RESIZE = "resize"
    OVERLAY_PAD = "overlay_pad"
    OVERLAY_BOX = "overlay_box"
    LAYER_APPLY = "layer_apply"
    COLORIZE = "colorize"


class Gravity(str, Enum):
    NORTH_WEST = "north_west"
    CENTER = "center"


RELATIVE_FLAG = "fl_relative"


def format_value(value: float, relative: bool) -> str:
    if relative:
        return f"{value:.6f}"
    return str(int(value))


@dataclass(frozen=True)
class ResizeSegment:
    """Fit the base image within a target width (and optional height)"""
    kind: ClassVar[SegmentKind] = SegmentKind.RESIZE

    width: int
    height: Optional[int] = None

    def render(self) -> str:
        parts = ["f_auto", "q_auto", "c_fit", f"w_{self.width}"]
        if self.height:
            parts.append(f"h_{self.height}")
        return ",".join(parts)


@dataclass(frozen=True)
class OverlayPadSegment:
    """A logo layer padded into its fitted size"""
    kind: ClassVar[SegmentKind] = SegmentKind.OVERLAY_PAD

    public_id: str
    width: float
    height: float
    angle: int = 0
    relative: bool = False

    def render(self) -> str:
        parts = [f"l_{self.public_id}", "c_pad"]
        if self.relative:
            parts.append(RELATIVE_FLAG)
        parts += [
            f"w_{format_value(self.width, self.relative)}",
            f"h_{format_value(self.height, self.relative)}",
            "g_center",
            "b_auto",
        ]
        if self.angle:
            parts.append(f"a_{self.angle}")
        return ",".join(parts)


@dataclass(frozen=True)
class OverlayBoxSegment:
    """A one-pixel asset stretched over a placement box"""
    kind: ClassVar[SegmentKind] = SegmentKind.OVERLAY_BOX

    public_id: str
    width: float
    height: float
    angle: int = 0

    def render(self) -> str:
        parts = [
            f"l_{self.public_id}",
            RELATIVE_FLAG,
            f"w_{format_value(self.width, True)}",
            f"h_{format_value(self.height, True)}",
        ]
        if self.angle:
            parts.append(f"a_{self.angle}")
        return ",".join(parts)


@dataclass(frozen=True)
class LayerApplySegment:
    """Closes the preceding layer and positions it"""
    kind: ClassVar[SegmentKind] = SegmentKind.LAYER_APPLY

    x: float
    y: float
    gravity: Gravity = Gravity.NORTH_WEST
    relative: bool = False

    def render(self) -> str:
        parts = ["fl_layer_apply"]
        if self.relative:
            parts.append(RELATIVE_FLAG)
        x = f"x_{format_value(self.x, self.relative)}"
        y = f"y_{format_value(self.y, self.relative)}"
        if self.gravity == Gravity.CENTER:
            parts += ["g_center", x, y]
        else:
            parts += [x, y, "g_north_west"]
        return ",".join(parts)


@dataclass(frozen=True)
class ColorizeSegment:
    """Tints the preceding layer, then applies it"""
    kind: ClassVar[SegmentKind] = SegmentKind.COLORIZE

    hex_color: str
    opacity: int
    apply: LayerApplySegment

    def render(self) -> str:
        return f"co_rgb:{self.hex_color},e_colorize:100,o_{self.opacity},{self.apply.render()}"


def render_url(host: str, cloud: str, segments: Sequence, base_asset: str) -> str:
    path = "/".join(segment.render() for segment in segments)
    return f"https://{host}/{cloud}/image/upload/{path}/{base_asset}"
