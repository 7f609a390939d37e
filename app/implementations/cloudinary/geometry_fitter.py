from dataclasses import dataclass

from app.utils.logging_config import get_logger
from app.utils.debug_utils import debug_exception
from app.utils.rounding import round_half_up

HORIZONTAL = "horizontal"
VERTICAL = "vertical"
SQUARE = "square"

# Cross-orientation bump
ASPECT_DIFF_THRESHOLD = 0.3
SCALE_UP_FACTOR = 1.3

# Step scaling: (fill ratio threshold, multiplier), applied in order
STEP_THRESHOLDS = ((0.8, 1.4), (0.6, 1.6), (0.4, 1.8))
ELONGATED_RATIO = 0.8
ELONGATED_REDUCE = 0.8


def get_orientation(width: float, height: float) -> str:
    aspect = width / height
    if aspect >= 1.2:
        return HORIZONTAL
    if aspect <= 0.8:
        return VERTICAL
    return SQUARE


def _short_to_long(long_side: float, short_side: float) -> float:
    if not long_side:
        return 1
    return min(1, abs(short_side) / abs(long_side))


@dataclass(frozen=True)
class FitResult:
    width: int
    height: int


class GeometryFitter:
    """Sizes a logo inside a placement box.

    The base fit is a plain aspect-fit. When the placement allows extent, two
    tuned heuristics enlarge it: a bump for logos whose orientation differs
    from the box, and a step scaling that grows logos filling too little of a
    horizontal or vertical box. Every intermediate size is rounded to whole
    pixels, the thresholds below were tuned against those rounded values.
    """

    def __init__(self, step_scaling: bool = True):
        self.step_scaling = step_scaling
        self.logger = get_logger(__name__)

    @staticmethod
    def aspect_fit(box_w: int, box_h: int, logo_w: float, logo_h: float) -> FitResult:
        """Largest logo size with the logo's aspect that fits in the box"""
        logo_aspect = logo_w / logo_h
        box_aspect = box_w / box_h
        if logo_aspect >= box_aspect:
            return FitResult(box_w, round_half_up(box_w / logo_aspect))
        return FitResult(round_half_up(box_h * logo_aspect), box_h)

    @debug_exception
    def compute_fit(
        self,
        box_w: int,
        box_h: int,
        logo_w: float,
        logo_h: float,
        extent_allowed: bool = True,
    ) -> FitResult:
        if box_w <= 0 or box_h <= 0:
            return FitResult(0, 0)
        if logo_w <= 0 or logo_h <= 0:
            # Unknown natural size, let the CDN pad the art into the box
            return FitResult(box_w, box_h)

        fit = self.aspect_fit(box_w, box_h, logo_w, logo_h)
        fit_w, fit_h = fit.width, fit.height

        if extent_allowed:
            fit_w, fit_h = self._cross_orientation_bump(fit_w, fit_h, box_w, box_h, logo_w, logo_h)
            if self.step_scaling:
                fit_w, fit_h = self._step_scale(fit_w, fit_h, box_w, box_h, logo_w, logo_h)
        else:
            fit_w = min(fit_w, box_w)
            fit_h = min(fit_h, box_h)

        self.logger.debug(
            f"Fit logo {logo_w:g}x{logo_h:g} into box {box_w}x{box_h}: "
            f"{fit_w}x{fit_h} (extent={'on' if extent_allowed else 'off'})"
        )
        return FitResult(fit_w, fit_h)

    def _cross_orientation_bump(self, fit_w, fit_h, box_w, box_h, logo_w, logo_h):
        logo_aspect = logo_w / logo_h
        box_aspect = box_w / box_h
        if get_orientation(logo_w, logo_h) == get_orientation(box_w, box_h):
            return fit_w, fit_h
        aspect_diff = abs(logo_aspect - box_aspect) / max(logo_aspect, box_aspect)
        if aspect_diff > ASPECT_DIFF_THRESHOLD:
            fit_w = round_half_up(fit_w * SCALE_UP_FACTOR)
            fit_h = round_half_up(fit_h * SCALE_UP_FACTOR)
        return fit_w, fit_h

    def _step_scale(self, fit_w, fit_h, box_w, box_h, logo_w, logo_h):
        box_orientation = get_orientation(box_w, box_h)
        if box_orientation == HORIZONTAL:
            reduce = 1.0
            if logo_w > logo_h and _short_to_long(logo_w, logo_h) <= ELONGATED_RATIO:
                reduce = ELONGATED_REDUCE
            return self._apply_steps(fit_w, fit_h, fit_w, box_w, reduce, along_width=True)
        if box_orientation == VERTICAL:
            reduce = 1.0
            if logo_h > logo_w and _short_to_long(logo_h, logo_w) <= ELONGATED_RATIO:
                reduce = ELONGATED_REDUCE
            return self._apply_steps(fit_w, fit_h, fit_h, box_h, reduce, along_width=False)
        return fit_w, fit_h

    @staticmethod
    def _apply_steps(fit_w, fit_h, fit_main, box_main, reduce, along_width):
        # The fill ratio is measured once; each later step undoes the
        # previous multiplier before applying its own, so steps never compound.
        ratio = fit_main / box_main
        previous = 1.0
        for threshold, multiplier in STEP_THRESHOLDS:
            current_main = fit_w if along_width else fit_h
            if not (current_main < box_main and ratio < threshold):
                continue
            fit_w = round_half_up(fit_w / previous * (multiplier * reduce))
            fit_h = round_half_up(fit_h / previous * (multiplier * reduce))
            previous = multiplier * reduce
        return fit_w, fit_h
