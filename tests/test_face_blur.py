import pytest
from PIL import Image, ImageChops, ImageDraw

import face_blur
from face_blur import blur_faces


def _checkerboard(size=(100, 100), cell: int = 2) -> Image.Image:
    img = Image.new("RGBA", size, (0, 0, 0, 255))
    draw = ImageDraw.Draw(img)
    for y in range(0, size[1], cell):
        for x in range((y // cell) % 2 * cell, size[0], cell * 2):
            draw.rectangle((x, y, x + cell - 1, y + cell - 1), fill=(255, 255, 255, 255))
    return img


def _changed(a: Image.Image, b: Image.Image) -> bool:
    return ImageChops.difference(a.convert("RGB"), b.convert("RGB")).getbbox() is not None


@pytest.fixture()
def faces(monkeypatch: pytest.MonkeyPatch):
    """Pin the detector to fixed boxes: one inside, one hanging off the bottom-right edge."""

    boxes = [(30, 30, 20, 20), (85, 85, 30, 30)]
    monkeypatch.setattr(face_blur, "detect_faces", lambda image: boxes)
    return boxes


def test_detected_regions_are_blurred_and_rest_untouched(faces) -> None:
    src = _checkerboard()

    out = blur_faces(src)

    assert out.size == src.size
    # padded boxes: 15% of the larger side, clamped to the image
    inner, edge = (27, 27, 53, 53), (81, 81, 100, 100)
    assert _changed(out.crop(inner), src.crop(inner))
    assert _changed(out.crop(edge), src.crop(edge))
    for untouched in [(0, 0, 27, 100), (0, 0, 100, 27), (53, 0, 100, 81), (0, 53, 81, 100)]:
        assert not _changed(out.crop(untouched), src.crop(untouched))


def test_source_image_is_not_modified(faces) -> None:
    src = _checkerboard()
    before = src.copy()

    blur_faces(src)

    assert not _changed(src, before)


def test_no_faces_returns_input(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(face_blur, "detect_faces", lambda image: [])
    src = _checkerboard()

    assert blur_faces(src) is src
