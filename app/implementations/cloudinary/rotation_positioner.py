from dataclasses import dataclass

from app.implementations.cloudinary.segments import Gravity
from app.utils.logging_config import get_logger
from app.utils.rounding import round_half_up


@dataclass(frozen=True)
class PositionSpec:
    """Where a fitted layer is anchored on the canvas"""
    x: float
    y: float
    gravity: Gravity
    angle: int = 0


class RotationPositioner:
    """Anchors a fitted logo so its visual center is the box center.

    Unrotated layers are placed by their top-left corner, centered in the
    box. Rotated layers are placed by their center as an offset from the
    canvas center: once rotated, the layer's bounding box no longer starts
    at the top-left of the placement box.
    """

    def __init__(self):
        self.logger = get_logger(__name__)

    def position(
        self,
        box_x: float,
        box_y: float,
        box_w: float,
        box_h: float,
        fit_w: float,
        fit_h: float,
        canvas_w: float,
        canvas_h: float,
        angle_deg: int = 0,
        snap: bool = True,
    ) -> PositionSpec:
        snap_value = round_half_up if snap else (lambda v: v)

        if not angle_deg:
            x = box_x + snap_value((box_w - fit_w) / 2)
            y = box_y + snap_value((box_h - fit_h) / 2)
            return PositionSpec(x=x, y=y, gravity=Gravity.NORTH_WEST)

        center_x = box_x + snap_value(box_w / 2)
        center_y = box_y + snap_value(box_h / 2)
        offset_x = center_x - snap_value(canvas_w / 2)
        offset_y = center_y - snap_value(canvas_h / 2)
        self.logger.debug(f"Rotated layer ({angle_deg} deg) anchored at center offset ({offset_x}, {offset_y})")
        return PositionSpec(x=offset_x, y=offset_y, gravity=Gravity.CENTER, angle=angle_deg)
