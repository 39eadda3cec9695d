import pytest

from cropinfer.models.geometry import DisplayTransform, NormalizedRect, Point
from cropinfer.services import coordinate_mapper


def test_round_trip_identity_at_scale_one():
    t = DisplayTransform(1.0, 1.0)
    for x, y in [(0, 0), (10, 20), (999, 499), (3.5, 7.25)]:
        p = Point(x, y)
        assert coordinate_mapper.to_source(coordinate_mapper.to_display(p, t), t) == p


def test_independent_axis_scales():
    t = DisplayTransform(2.0, 4.0)
    assert coordinate_mapper.to_source(Point(10, 10), t) == Point(20, 40)
    assert coordinate_mapper.to_display(Point(20, 40), t) == Point(10, 10)


def test_rect_to_source_scales_origin_and_size():
    t = DisplayTransform(2.0, 2.0)
    rect = coordinate_mapper.rect_to_source(NormalizedRect(100, 50, 100, 50), t)
    assert rect == NormalizedRect(200, 100, 200, 100)


def test_transform_for_uses_source_over_display():
    t = coordinate_mapper.transform_for(1000, 500, 500, 250)
    assert t == DisplayTransform(2.0, 2.0)


def test_transform_for_rejects_zero_display():
    with pytest.raises(ValueError):
        coordinate_mapper.transform_for(1000, 500, 0, 250)


def test_fit_display_subtracts_padding_and_keeps_aspect():
    assert coordinate_mapper.fit_display(1000, 500, 540, max_width=1200, padding=40) == (500, 250)


def test_fit_display_caps_width():
    assert coordinate_mapper.fit_display(4000, 2000, 3000, max_width=1200, padding=40) == (1200, 600)


def test_fit_display_never_collapses():
    width, height = coordinate_mapper.fit_display(100, 1, 10, max_width=1200, padding=40)
    assert width >= 1 and height >= 1
