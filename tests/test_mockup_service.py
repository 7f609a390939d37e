import copy

import pytest

from app.config import Settings
from app.implementations.cloudinary.transform_builders import (
    AbsoluteTransformBuilder,
    OverlayPreviewBuilder,
    RelativeTransformBuilder,
)
from app.schemas.mockup_schemas import CartThumbOptions, OverlayOptions, ProductImageOptions
from app.schemas.product_schemas import CartItem, Product
from app.services.mockup_service import MockupService, normalize_line_type

from conftest import CDN, cdn_url

FRONT_DARK = "l_logos:acme:front_dark,"
FRONT_LIGHT = "l_logos:acme:front_light,"
BACK_DARK = "l_logos:acme:back_dark,"


@pytest.fixture
def product(product_data):
    return Product.model_validate(product_data)


@pytest.fixture
def group_product(group_product_data):
    return Product.model_validate(group_product_data)


@pytest.fixture
def back_product(product_data):
    """Product whose back placement is active"""
    data = copy.deepcopy(product_data)
    data["placement_coordinates"][0]["active"] = False
    data["placement_coordinates"][1]["active"] = True
    return Product.model_validate(data)


def _service(override_store, **settings):
    config = Settings(CLOUD_NAME="", LOG_TO_FILE=False, **settings)
    return MockupService(
        absolute_builder=AbsoluteTransformBuilder(),
        relative_builder=RelativeTransformBuilder(),
        overlay_builder=OverlayPreviewBuilder(),
        override_store=override_store,
        config=config,
    )


class TestProductImage:
    def test_absolute_when_size_known(self, mockup_service, product, logo_set):
        url = mockup_service.generate_product_image_url(product, logo_set)
        assert url == (
            f"{CDN}/{FRONT_DARK}c_pad,w_208,h_69,g_center,b_auto"
            "/fl_layer_apply,x_56,y_126,g_north_west/mug.jpg"
        )

    def test_relative_with_max_width(self, mockup_service, product, logo_set):
        url = mockup_service.generate_product_image_url(product, logo_set, ProductImageOptions(max_width=900))
        assert url == (
            f"{CDN}/f_auto,q_auto,c_fit,w_900"
            f"/{FRONT_DARK}c_pad,fl_relative,w_0.260000,h_0.086667,g_center,b_auto"
            "/fl_layer_apply,fl_relative,x_0.070000,y_0.156667,g_north_west/mug.jpg"
        )

    def test_unknown_size_falls_back_to_default_relative_width(self, mockup_service, product_data, logo_set):
        data = dict(product_data, thumbnail_meta={})
        url = mockup_service.generate_product_image_url(Product.model_validate(data), logo_set)
        assert url.startswith(f"{CDN}/f_auto,q_auto,c_fit,w_900/")

    def test_no_product(self, mockup_service, logo_set):
        assert mockup_service.generate_product_image_url(None, logo_set) == ""

    def test_no_active_placements_returns_base(self, mockup_service, product_data, logo_set):
        data = copy.deepcopy(product_data)
        data["placement_coordinates"][0]["active"] = False
        url = mockup_service.generate_product_image_url(Product.model_validate(data), logo_set)
        assert url == cdn_url("v1699999999/mug.jpg")

    @pytest.mark.parametrize("active", [1, "1", "true"])
    def test_loosely_active_placement_stays_hidden(self, mockup_service, product_data, logo_set, active):
        data = copy.deepcopy(product_data)
        data["placement_coordinates"][0]["active"] = active
        url = mockup_service.generate_product_image_url(Product.model_validate(data), logo_set)
        assert url == cdn_url("v1699999999/mug.jpg")

    def test_numeric_extent_keeps_upscaling(self, mockup_service, product_data, logo_set):
        data = copy.deepcopy(product_data)
        data["placement_coordinates"][0]["extent"] = 0
        url = mockup_service.generate_product_image_url(Product.model_validate(data), logo_set)
        assert "w_208,h_69" in url

    def test_group_color_variant(self, mockup_service, group_product, logo_set):
        url = mockup_service.generate_product_image_url(
            group_product, logo_set, ProductImageOptions(color_index=1)
        )
        assert FRONT_LIGHT in url
        assert url.endswith("/mug_navy.jpg")

    def test_group_color_index_out_of_range_uses_first_color(self, mockup_service, group_product, logo_set):
        url = mockup_service.generate_product_image_url(
            group_product, logo_set, ProductImageOptions(color_index=7)
        )
        assert FRONT_DARK in url
        assert url.endswith("/mug_white.jpg")

    def test_page_placements_replace_product_placements(self, mockup_service, product, logo_set):
        options = ProductImageOptions.model_validate({
            "page_placement_overrides": {"42": [
                {"name": "pocket", "xPercent": 0.5, "yPercent": 0.5, "wPercent": 0.2, "hPercent": 0.2, "active": True},
            ]},
        })
        url = mockup_service.generate_product_image_url(product, logo_set, options)
        assert "fl_layer_apply,x_376,y_446,g_north_west" in url

    def test_empty_page_placements_fall_back_to_product(self, mockup_service, product, logo_set):
        options = ProductImageOptions(page_placement_overrides={"42": []})
        url = mockup_service.generate_product_image_url(product, logo_set, options)
        assert "x_56,y_126" in url

    def test_back_placement_uses_back_logo(self, mockup_service, back_product, logo_set):
        assert BACK_DARK in mockup_service.generate_product_image_url(back_product, logo_set)


class TestBackResolution:
    def test_scoped_override_forces_back(self, mockup_service, override_store, product, logo_set):
        override_store.set_force_back_overrides("42", {"front": "Back"}, scope="editor-1")

        scoped = ProductImageOptions(override_scope="editor-1")
        assert BACK_DARK in mockup_service.generate_product_image_url(product, logo_set, scoped)

        other = ProductImageOptions(override_scope="editor-2")
        assert FRONT_DARK in mockup_service.generate_product_image_url(product, logo_set, other)
        # Without a scope the store is not consulted
        assert FRONT_DARK in mockup_service.generate_product_image_url(product, logo_set)

    def test_scoped_override_forces_front(self, mockup_service, override_store, back_product, logo_set):
        override_store.set_force_back_overrides("42", {"side": "Default"}, scope="s")
        url = mockup_service.generate_product_image_url(back_product, logo_set, ProductImageOptions(override_scope="s"))
        assert FRONT_DARK in url

    def test_inline_force_back_wins_over_store(self, mockup_service, override_store, product_data, logo_set):
        data = copy.deepcopy(product_data)
        data["placement_coordinates"][0]["__forceBack"] = False
        data["placement_coordinates"][0]["back"] = True
        override_store.set_force_back_overrides("42", {"front": "Back"}, scope="s")
        url = mockup_service.generate_product_image_url(
            Product.model_validate(data), logo_set, ProductImageOptions(override_scope="s")
        )
        assert FRONT_DARK in url

    def test_allow_gate_blocks_back_for_unlisted_products(self, override_store, back_product, logo_set):
        service = _service(override_store, ENABLE_ALLOW_BACK_GATE=True)
        assert FRONT_DARK in service.generate_product_image_url(back_product, logo_set)

        allowed = ProductImageOptions(custom_back_allowed_ids=[42])
        assert BACK_DARK in service.generate_product_image_url(back_product, logo_set, allowed)

    def test_forced_back_ignores_allow_gate(self, override_store, product, logo_set):
        service = _service(override_store, ENABLE_ALLOW_BACK_GATE=True)
        override_store.set_force_back_overrides("42", {"front": True}, scope="s")
        url = service.generate_product_image_url(product, logo_set, ProductImageOptions(override_scope="s"))
        assert BACK_DARK in url

    def test_step_scaling_switch(self, override_store, logo_set):
        product = Product.model_validate({
            "id": 1,
            "thumbnail": cdn_url("tee.jpg"),
            "thumbnail_meta": {"width": 1000, "height": 1000},
            "placement_coordinates": [
                {"name": "chest", "xPercent": 0.1, "yPercent": 0.1, "wPercent": 0.4, "hPercent": 0.2, "active": True},
            ],
        })
        logos = logo_set.model_copy(update={"logo_darker": logo_set.back_darker})
        assert "w_364,h_364" in _service(override_store).generate_product_image_url(product, logos)

        service = _service(override_store)
        service.absolute_builder.fitter.step_scaling = False
        assert "w_260,h_260" in service.generate_product_image_url(product, logos)


class TestOverlay:
    def test_overlay_defaults(self, mockup_service, product, logo_set):
        url = mockup_service.generate_product_image_url_with_overlay(product, logo_set)
        assert url.startswith(f"{CDN}/f_auto,q_auto,c_fit,w_1400/l_one_pixel_s4c3vt,fl_relative,")
        assert "co_rgb:000000,e_colorize:100,o_20," in url
        assert FRONT_DARK in url

    def test_overlay_options(self, mockup_service, group_product, logo_set):
        options = OverlayOptions(max_width=700, color_index=1, overlay_hex="#00ff00", overlay_opacity=35)
        url = mockup_service.generate_product_image_url_with_overlay(group_product, logo_set, options)
        assert url.startswith(f"{CDN}/f_auto,q_auto,c_fit,w_700/")
        assert "co_rgb:00ff00,e_colorize:100,o_35," in url
        assert url.endswith("/mug_navy.jpg")

    def test_no_product(self, mockup_service, logo_set):
        assert mockup_service.generate_product_image_url_with_overlay(None, logo_set) == ""


class TestCartThumbs:
    def _item(self, **overrides):
        data = {
            "product_id": "42",
            "thumbnail": cdn_url("v1699999999/mug.jpg"),
            "thumbnail_meta": {"width": 800, "height": 800},
        }
        data.update(overrides)
        return CartItem.model_validate(data)

    def test_quantity_line_ignores_snapshot(self, mockup_service, product_data, logo_set):
        snapshot = [{"name": "pocket", "xPercent": 0.5, "yPercent": 0.5, "wPercent": 0.1, "hPercent": 0.1, "active": True}]
        item = self._item(pricing={"type": "Quanity"}, product=product_data, placement_coordinates=snapshot)
        url = mockup_service.generate_cart_thumb_url(item, logo_set)
        assert url == (
            f"{CDN}/f_auto,q_auto,c_fit,w_200"
            f"/{FRONT_DARK}c_pad,fl_relative,w_0.260000,h_0.085000,g_center,b_auto"
            "/fl_layer_apply,fl_relative,x_0.070000,y_0.160000,g_north_west/mug.jpg"
        )

    def test_custom_line_uses_snapshot(self, mockup_service, product_data, logo_set):
        snapshot = [{"name": "pocket", "xPercent": 0.5, "yPercent": 0.5, "wPercent": 0.2, "hPercent": 0.2, "active": True}]
        item = self._item(options={"line_type": "custom"}, product=product_data, placement_coordinates=snapshot)
        url = mockup_service.generate_cart_thumb_url(item, logo_set)
        assert "x_0.470000,y_0.560000" in url

    def test_page_placements_win_over_snapshot(self, mockup_service, product_data, logo_set):
        snapshot = [{"name": "pocket", "xPercent": 0.5, "yPercent": 0.5, "wPercent": 0.2, "hPercent": 0.2, "active": True}]
        item = self._item(options={"line_type": "custom"}, product=product_data, placement_coordinates=snapshot)
        options = CartThumbOptions.model_validate({"page_placement_overrides": {"42": product_data["placement_coordinates"]}})
        url = mockup_service.generate_cart_thumb_url(item, logo_set, options)
        assert "x_0.070000,y_0.160000" in url

    def test_group_line_matches_color_by_title(self, mockup_service, group_product_data, logo_set):
        item = self._item(options={"group_type": "Group", "color": "navy"}, product=group_product_data)
        url = mockup_service.generate_cart_thumb_url(item, logo_set)
        assert FRONT_LIGHT in url
        assert url.endswith("/mug_navy.jpg")

    def test_group_line_matches_color_by_thumbnail(self, mockup_service, group_product_data, logo_set):
        item = self._item(
            options={"group_type": "grp", "color_thumbnail_url": cdn_url("mug_white.jpg")},
            product=group_product_data,
        )
        url = mockup_service.generate_cart_thumb_url(item, logo_set)
        assert FRONT_DARK in url
        assert url.endswith("/mug_white.jpg")

    def test_empty_snapshot_returns_base(self, mockup_service, product_data, logo_set):
        item = self._item(options={"line_type": "custom"}, product=product_data, placement_coordinates=[])
        assert mockup_service.generate_cart_thumb_url(item, logo_set) == cdn_url("v1699999999/mug.jpg")

    def test_unknown_size_uses_square_strict_thumb(self, mockup_service, logo_set):
        snapshot = [{"name": "front", "xPercent": 0.1, "yPercent": 0.1, "wPercent": 0.2, "hPercent": 0.2, "active": True}]
        item = self._item(thumbnail_meta={}, placement_coordinates=snapshot)
        url = mockup_service.generate_cart_thumb_url(item, logo_set)
        assert url == (
            f"{CDN}/f_auto,q_auto,c_fit,w_200,h_200"
            f"/{FRONT_DARK}c_pad,fl_relative,w_0.200000,h_0.065000,g_center,b_auto"
            "/fl_layer_apply,fl_relative,x_0.100000,y_0.170000,g_north_west/mug.jpg"
        )

    def test_non_cdn_base_returned_as_is(self, mockup_service, logo_set):
        item = self._item(thumbnail="https://cdn.example.com/mug.jpg")
        assert mockup_service.generate_cart_thumb_url(item, logo_set) == "https://cdn.example.com/mug.jpg"

    def test_no_item(self, mockup_service, logo_set):
        assert mockup_service.generate_cart_thumb_url(None, logo_set) == ""
        assert mockup_service.generate_hover_thumb_url(None, logo_set) == ""

    def test_hover_uses_larger_width(self, mockup_service, product_data, logo_set):
        item = self._item(pricing={"type": "qty"}, product=product_data)
        url = mockup_service.generate_hover_thumb_url(item, logo_set)
        assert url.startswith(f"{CDN}/f_auto,q_auto,c_fit,w_400/")
        assert "w_0.260000,h_0.087500" in url

        url = mockup_service.generate_hover_thumb_url(item, logo_set, CartThumbOptions(max_width=300))
        assert url.startswith(f"{CDN}/f_auto,q_auto,c_fit,w_300/")

    def test_hover_keeps_override_scope(self, mockup_service, override_store, product_data, logo_set):
        override_store.set_force_back_overrides("42", {"front": "Back"}, scope="s")
        item = self._item(pricing={"type": "Quantity"}, product=product_data)
        url = mockup_service.generate_hover_thumb_url(item, logo_set, CartThumbOptions(override_scope="s"))
        assert BACK_DARK in url


class TestWarmUrls:
    def test_unique_urls_in_order(self, mockup_service, group_product, logo_set):
        urls = mockup_service.collect_warm_urls([group_product], logo_set)

        def product_url(index):
            return mockup_service.generate_product_image_url(
                group_product, logo_set, ProductImageOptions(max_width=1400, color_index=index)
            )

        def overlay_url(index):
            return mockup_service.generate_product_image_url_with_overlay(
                group_product, logo_set, OverlayOptions(max_width=1400, color_index=index)
            )

        assert urls == [product_url(0), overlay_url(0), product_url(1), overlay_url(1)]

    def test_limit_and_colors_per_product(self, mockup_service, group_product, logo_set):
        assert len(mockup_service.collect_warm_urls([group_product], logo_set, limit=3)) == 3
        assert len(mockup_service.collect_warm_urls([group_product], logo_set, colors_per_product=1)) == 2

    def test_no_products(self, mockup_service, logo_set):
        assert mockup_service.collect_warm_urls([], logo_set) == []


@pytest.mark.parametrize("raw,expected", [
    ("Group", "group"),
    ("grp", "group"),
    ("Quantity", "quantity"),
    ("Quanity", "quantity"),
    ("qty", "quantity"),
    ("Custom", "custom"),
    (None, ""),
])
def test_normalize_line_type(raw, expected):
    assert normalize_line_type(raw) == expected
