from functools import lru_cache

from fastapi import Depends

from app.config import settings
from app.implementations.cloudinary.geometry_fitter import GeometryFitter
from app.implementations.cloudinary.rotation_positioner import RotationPositioner
from app.implementations.cloudinary.transform_builders import (
    AbsoluteTransformBuilder,
    OverlayPreviewBuilder,
    RelativeTransformBuilder,
)
from app.services.mockup_service import MockupService
from app.services.override_store import OverrideStore

@lru_cache()
def get_override_store() -> OverrideStore:
    """Dependency for the process-wide override store (scoped per editor session)"""
    return OverrideStore()

def get_geometry_fitter() -> GeometryFitter:
    """Dependency for the logo fitter"""
    return GeometryFitter(step_scaling=settings.ENABLE_LOGO_STEP_SCALING)

def get_mockup_service(
    fitter: GeometryFitter = Depends(get_geometry_fitter),
    override_store: OverrideStore = Depends(get_override_store),
) -> MockupService:
    """Dependency for getting the mockup service"""
    positioner = RotationPositioner()
    builder_args = dict(
        fitter=fitter,
        positioner=positioner,
        host=settings.CDN_HOST,
        cloud_name=settings.CLOUD_NAME,
    )
    return MockupService(
        absolute_builder=AbsoluteTransformBuilder(**builder_args),
        relative_builder=RelativeTransformBuilder(**builder_args),
        overlay_builder=OverlayPreviewBuilder(pixel_asset=settings.OVERLAY_PIXEL_ASSET, **builder_args),
        override_store=override_store,
        config=settings,
    )
