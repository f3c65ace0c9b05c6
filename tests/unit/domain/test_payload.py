"""
Unit tests for data URI decoding.
"""

import pytest

from calorie_snap.domain.analysis.models import MAX_DECODED_IMAGE_BYTES, ErrorCode
from calorie_snap.domain.analysis.payload import decode_image_payload, estimate_decoded_size
from calorie_snap.domain.shared.errors import (
    ImageTooLargeError,
    InvalidImageError,
    InvalidImageFormatError,
)


class TestDecodeImagePayload:
    """decode_image_payload()"""

    @pytest.mark.parametrize("subtype", ["jpeg", "png", "webp", "gif", "heic"])
    def test_mime_type_follows_declared_subtype(self, subtype: str) -> None:
        payload = decode_image_payload(f"data:image/{subtype};base64,AAAA")

        assert payload.mime_type == f"image/{subtype}"
        assert payload.data == "AAAA"

    def test_real_jpeg(self, jpeg_data_uri: str) -> None:
        payload = decode_image_payload(jpeg_data_uri)

        assert payload.mime_type == "image/jpeg"
        assert payload.data_url == jpeg_data_uri

    @pytest.mark.parametrize(
        "image",
        [
            "data:image/;base64,AAAA",
            "data:image/png;base64,",
            "data:image/png,AAAA",
            "data:image/svg+xml;base64,AAAA",
            "data:image/png;base64,AA AA",
            "data:image/png;base64,AAAA\n",
            "data:image/png;base64,not*base64",
            "xdata:image/png;base64,AAAA",
        ],
    )
    def test_malformed_uri_is_invalid_format(self, image: str) -> None:
        with pytest.raises(InvalidImageFormatError) as exc_info:
            decode_image_payload(image)

        assert exc_info.value.code == ErrorCode.INVALID_IMAGE
        assert exc_info.value.message == "Invalid base64 image format"

    def test_invalid_format_is_an_invalid_image(self) -> None:
        with pytest.raises(InvalidImageError):
            decode_image_payload("data:image/png;base64,%%%")

    def test_padding_is_accepted(self) -> None:
        assert decode_image_payload("data:image/png;base64,AAA=").data == "AAA="
        assert decode_image_payload("data:image/png;base64,AA==").data == "AA=="

    def test_over_four_mib_is_too_large(self) -> None:
        # 5.6M base64 chars decode to about 4.2 MB
        data = "A" * 5_600_000
        assert estimate_decoded_size(data) > MAX_DECODED_IMAGE_BYTES

        with pytest.raises(ImageTooLargeError) as exc_info:
            decode_image_payload(f"data:image/jpeg;base64,{data}")

        assert exc_info.value.code == ErrorCode.IMAGE_TOO_LARGE
        assert exc_info.value.retryable is False

    def test_size_boundary(self) -> None:
        at_limit = "A" * (MAX_DECODED_IMAGE_BYTES * 4 // 3)
        assert estimate_decoded_size(at_limit) == MAX_DECODED_IMAGE_BYTES
        assert decode_image_payload(f"data:image/png;base64,{at_limit}").data == at_limit

        with pytest.raises(ImageTooLargeError):
            decode_image_payload(f"data:image/png;base64,{at_limit}AAAA")


class TestEstimateDecodedSize:
    @pytest.mark.parametrize(
        ("length", "expected"),
        [(0, 0), (1, 1), (4, 3), (5, 4), (8, 6)],
    )
    def test_ceil_of_three_quarters(self, length: int, expected: int) -> None:
        assert estimate_decoded_size("A" * length) == expected
