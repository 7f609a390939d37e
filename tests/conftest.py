import pytest
import os
import sys

# Add the project root to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

# Keep test runs from writing log files or picking up a deployment's cloud
os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("CLOUD_NAME", "")

from app.config import Settings
from app.implementations.cloudinary.geometry_fitter import GeometryFitter
from app.implementations.cloudinary.rotation_positioner import RotationPositioner
from app.implementations.cloudinary.transform_builders import (
    AbsoluteTransformBuilder,
    OverlayPreviewBuilder,
    RelativeTransformBuilder,
)
from app.schemas.placement_schemas import LogoSet
from app.services.mockup_service import MockupService
from app.services.override_store import OverrideStore

CDN = "https://res.cloudinary.com/democloud/image/upload"


def cdn_url(path):
    return f"{CDN}/{path}"


@pytest.fixture(autouse=True)
def setup_test_environment():
    """Setup test environment variables and configurations"""
    os.environ["DEBUG"] = "True"
    os.environ["TESTING"] = "True"
    yield


@pytest.fixture
def logo_set():
    """A complete logo set in a customer folder"""
    return LogoSet.model_validate({
        "logo_darker": {"url": cdn_url("v1700000000/logos/acme/front_dark.png"), "width": 300, "height": 100},
        "logo_lighter": {"url": cdn_url("v1700000000/logos/acme/front_light.png"), "width": 300, "height": 100},
        "back_darker": {"url": cdn_url("v1700000000/logos/acme/back_dark.png"), "width": 100, "height": 100},
        "back_lighter": {"url": cdn_url("v1700000000/logos/acme/back_light.png"), "width": 100, "height": 100},
    })


@pytest.fixture
def dark_only_logo_set():
    return LogoSet.model_validate({
        "logo_darker": {"url": cdn_url("logos/acme/front_dark.png"), "width": 300, "height": 100},
    })


@pytest.fixture
def product_data():
    """A plain product with one active and one inactive placement"""
    return {
        "id": 42,
        "thumbnail": cdn_url("v1699999999/mug.jpg"),
        "thumbnail_meta": {"width": 800, "height": 800, "thumbnail_color": "#ffffff"},
        "acf": {"group_type": "Quantity", "color": []},
        "placement_coordinates": [
            {"name": "front", "xPercent": 0.1, "yPercent": 0.1, "wPercent": 0.2, "hPercent": 0.2,
             "active": True, "back": False},
            {"name": "side", "xPercent": 0.5, "yPercent": 0.5, "wPercent": 0.2, "hPercent": 0.2,
             "active": False, "back": True},
        ],
    }


@pytest.fixture
def group_product_data(product_data):
    """A Group product with two color variants"""
    data = dict(product_data)
    data["acf"] = {
        "group_type": "Group",
        "color": [
            {"title": "White", "color_hex_code": "#ffffff", "lightdark": "",
             "thumbnail": {"url": cdn_url("mug_white.jpg"), "width": 1000, "height": 500}},
            {"title": "Navy", "color_hex_code": "#101040", "lightdark": "Lighter",
             "thumbnail": {"url": cdn_url("mug_navy.jpg"), "width": 1000, "height": 500}},
        ],
    }
    return data


@pytest.fixture
def test_settings():
    return Settings(CLOUD_NAME="", LOG_TO_FILE=False, ENABLE_ALLOW_BACK_GATE=False)


@pytest.fixture
def override_store():
    return OverrideStore()


@pytest.fixture
def mockup_service(test_settings, override_store):
    """Mockup service wired the way the API wires it"""
    builder_args = dict(fitter=GeometryFitter(), positioner=RotationPositioner())
    return MockupService(
        absolute_builder=AbsoluteTransformBuilder(**builder_args),
        relative_builder=RelativeTransformBuilder(**builder_args),
        overlay_builder=OverlayPreviewBuilder(**builder_args),
        override_store=override_store,
        config=test_settings,
    )
