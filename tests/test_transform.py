import itertools

import pytest

from facecam.models import Box, FitMode
from facecam.transform import compute_transform

SIZES = [(800, 600), (600, 800), (320, 240), (1920, 1080), (333, 777), (100, 100)]


def test_contain_800x600_from_320x240():
    t = compute_transform(800, 600, 320, 240, FitMode.CONTAIN)
    assert t.scale == pytest.approx(2.5)
    assert t.offset_x == pytest.approx(0.0)
    assert t.offset_y == pytest.approx(0.0)


def test_mirrored_box_origin_is_reflected_before_scaling():
    t = compute_transform(800, 600, 320, 240, FitMode.CONTAIN, mirror=True)
    x, y, w, h = t.box_to_screen(Box(x=10, y=20, width=50, height=40))
    # 320 - 10 - 50 = 260 -> 260 * 2.5
    assert x == pytest.approx(650.0)
    assert y == pytest.approx(50.0)
    assert (w, h) == pytest.approx((125.0, 100.0))


def test_mirrored_point_is_reflected():
    t = compute_transform(800, 600, 320, 240, "contain", mirror=True)
    assert t.point_to_screen(10, 20) == pytest.approx((775.0, 50.0))
    plain = compute_transform(800, 600, 320, 240, "contain")
    assert plain.point_to_screen(10, 20) == pytest.approx((25.0, 50.0))


def test_cover_overflows_and_centers():
    t = compute_transform(800, 600, 320, 320, FitMode.COVER)
    assert t.scale == pytest.approx(2.5)
    assert t.offset_x == pytest.approx(0.0)
    assert t.offset_y == pytest.approx(-100.0)


@pytest.mark.parametrize("canvas,frame", list(itertools.product(SIZES, SIZES)))
def test_contain_fits_and_cover_covers(canvas, frame):
    cw, ch = canvas
    fw, fh = frame
    contain = compute_transform(cw, ch, fw, fh, FitMode.CONTAIN)
    cover = compute_transform(cw, ch, fw, fh, FitMode.COVER)

    assert contain.scale <= cover.scale + 1e-12
    sw, sh = contain.scaled_size()
    assert sw <= cw + 1e-9 and sh <= ch + 1e-9
    assert contain.offset_x >= -1e-9 and contain.offset_y >= -1e-9

    sw, sh = cover.scaled_size()
    assert sw >= cw - 1e-9 and sh >= ch - 1e-9
    assert cover.offset_x <= 1e-9 and cover.offset_y <= 1e-9


@pytest.mark.parametrize("mirror", [False, True])
def test_to_screen_is_affine(mirror):
    t = compute_transform(1280, 720, 320, 240, FitMode.COVER, mirror=mirror)
    p1, p2 = (30.0, 40.0), (200.0, 10.0)
    dx, dy = p1[0] - p2[0], p1[1] - p2[1]

    a, b = t.to_screen(*p1), t.to_screen(*p2)
    assert (a[0] - b[0], a[1] - b[1]) == pytest.approx((dx * t.scale, dy * t.scale))

    # reflection flips the x direction but keeps the scale factor
    a, b = t.point_to_screen(*p1), t.point_to_screen(*p2)
    sign = -1.0 if mirror else 1.0
    assert (a[0] - b[0], a[1] - b[1]) == pytest.approx((sign * dx * t.scale, dy * t.scale))



def test_non_positive_sizes_rejected():
    with pytest.raises(ValueError):
        compute_transform(800, 600, 0, 240)
    with pytest.raises(ValueError):
        compute_transform(0, 600, 320, 240)
