import base64

import pytest

from decoder import decode_image, decode_images, sniff_mime_type, strip_data_uri
from errors import DecodeError


def test_decode_plain_png_reports_size_and_mime(make_image) -> None:
    decoded = decode_image(make_image((40, 60)))

    assert decoded.size == (40, 60)
    assert decoded.image.mode == "RGBA"
    assert decoded.mime_type == "image/png"


def test_data_uri_prefix_round_trip_keeps_raster(make_image) -> None:
    payload = make_image((12, 8))
    prefixed = f"data:image/png;base64,{payload}"

    stripped, declared = strip_data_uri(prefixed)
    assert stripped == payload
    assert declared == "image/png"
    assert decode_image(prefixed).image.tobytes() == decode_image(payload).image.tobytes()
    assert decode_image(f"data:image/png;base64,{stripped}").image.tobytes() == decode_image(payload).image.tobytes()


def test_strip_data_uri_leaves_plain_payload_alone() -> None:
    assert strip_data_uri("abcd") == ("abcd", None)


def test_jpeg_is_sniffed(make_image) -> None:
    payload = make_image((16, 16), fmt="JPEG")

    assert decode_image(payload).mime_type == "image/jpeg"
    assert sniff_mime_type(base64.b64decode(payload)) == "image/jpeg"


def test_sniff_falls_back_to_declared_then_jpeg() -> None:
    assert sniff_mime_type(b"????", "image/webp") == "image/webp"
    assert sniff_mime_type(b"????") == "image/jpeg"


def test_whitespace_inside_base64_is_ignored(make_image) -> None:
    payload = make_image((10, 10))
    wrapped = "\n".join(payload[i:i + 20] for i in range(0, len(payload), 20))

    assert decode_image(wrapped).size == (10, 10)


@pytest.mark.parametrize(
    "payload",
    [
        "",
        "data:image/png;base64,",
        "not base64 at all!!",
        base64.b64encode(b"definitely not an image").decode("ascii"),
    ],
)
def test_bad_payloads_raise_decode_error(payload: str) -> None:
    with pytest.raises(DecodeError):
        decode_image(payload)


def test_non_string_payload_raises_decode_error() -> None:
    with pytest.raises(DecodeError):
        decode_image(1234)  # type: ignore[arg-type]


def test_decode_images_drops_failures_and_keeps_order(make_image) -> None:
    batch = [make_image((10, 20)), "garbage", make_image((30, 40))]

    decoded = decode_images(batch)

    assert [d.size for d in decoded] == [(10, 20), (30, 40)]


def test_decode_images_caps_at_four(make_image) -> None:
    batch = [make_image((i + 1, i + 1)) for i in range(6)]

    decoded = decode_images(batch)

    assert [d.width for d in decoded] == [1, 2, 3, 4]


def test_decode_images_with_nothing_valid_returns_empty() -> None:
    assert decode_images(["", "###"]) == []
