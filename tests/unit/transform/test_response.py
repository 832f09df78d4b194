"""Tests for transform response parsing and output shaping."""

from __future__ import annotations

import json

import pytest

from scaler.errors import ScalerUploadError
from scaler.models import InputSource, OutputImage, OutputSpec, TransformRequest
from scaler.transform import parse_transform_response, shape_output

FIT = {"width": 10, "height": 10}


def make_body(n: int = 1, **overrides) -> dict:
    body = {
        "inputImage": {"pixelSize": {"width": 40, "height": 30}, "byteSize": 1234},
        "outputImages": [
            {
                "fit": FIT,
                "pixelSize": {"width": 10, "height": 8},
                "downloadUrl": f"https://dl/u{i + 1}",
                "fileId": f"f{i + 1}",
            }
            for i in range(n)
        ],
        "deleteUrl": "https://del",
        "timeStats": {"transformMs": 40, "uploadImagesMs": 12},
    }
    body.update(overrides)
    return body


class TestParseTransformResponse:
    def test_happy_path(self):
        remote = parse_transform_response(make_body(2), 2)
        assert remote.input_image["byteSize"] == 1234
        assert [o.download_url for o in remote.output_images] == ["https://dl/u1", "https://dl/u2"]
        assert remote.file_ids == ["f1", "f2"]
        assert remote.delete_url == "https://del"
        assert remote.time_stats.transform_ms == 40.0
        assert remote.time_stats.upload_images_ms == 12.0

    def test_uploaded_output_has_no_download_url(self):
        body = make_body(outputImages=[{"fit": FIT, "pixelSize": FIT}])
        remote = parse_transform_response(body, 1)
        assert remote.output_images[0].download_url is None
        assert remote.file_ids == []

    def test_upload_images_ms_optional(self):
        remote = parse_transform_response(make_body(timeStats={"transformMs": 5}), 1)
        assert remote.time_stats.upload_images_ms is None

    def test_missing_input_image_becomes_empty(self):
        body = make_body()
        del body["inputImage"]
        assert parse_transform_response(body, 1).input_image == {}

    @pytest.mark.parametrize(
        ("overrides", "reason"),
        [
            ({"outputImages": None}, "outputImages"),
            ({"outputImages": [42]}, "objects"),
            ({"deleteUrl": None}, "deleteUrl"),
            ({"deleteUrl": ""}, "deleteUrl"),
            ({"timeStats": {}}, "transformMs"),
            ({"timeStats": {"transformMs": "40"}}, "transformMs"),
            ({"timeStats": {"transformMs": True}}, "transformMs"),
            ({"timeStats": {"transformMs": 1, "uploadImagesMs": "x"}}, "uploadImagesMs"),
        ],
    )
    def test_malformed(self, overrides, reason):
        with pytest.raises(ScalerUploadError, match=reason) as exc_info:
            parse_transform_response(make_body(**overrides), 1)
        err = exc_info.value
        assert err.status_code == 200
        assert json.loads(err.body)["deleteUrl"] == make_body(**overrides)["deleteUrl"]

    def test_non_string_download_url(self):
        body = make_body(outputImages=[{"fit": FIT, "pixelSize": FIT, "downloadUrl": 7}])
        with pytest.raises(ScalerUploadError, match="downloadUrl"):
            parse_transform_response(body, 1)

    def test_count_mismatch(self):
        with pytest.raises(ScalerUploadError, match="expected 3 output images, got 2"):
            parse_transform_response(make_body(2), 3)


class TestShapeOutput:
    IMAGES = [OutputImage(FIT, FIT, b"a"), OutputImage(FIT, FIT, b"b")]

    def test_single_returns_element(self):
        req = TransformRequest(InputSource(buffer=b"x"), OutputSpec("jpeg", FIT))
        assert shape_output(req, self.IMAGES[:1]) is self.IMAGES[0]

    def test_batch_returns_list(self):
        req = TransformRequest(InputSource(buffer=b"x"), [OutputSpec("jpeg", FIT)] * 2)
        assert shape_output(req, self.IMAGES) == self.IMAGES

    def test_batch_of_one_stays_list(self):
        req = TransformRequest(InputSource(buffer=b"x"), [OutputSpec("jpeg", FIT)])
        assert shape_output(req, self.IMAGES[:1]) == self.IMAGES[:1]
