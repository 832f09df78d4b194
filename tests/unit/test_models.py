"""Tests for request and result models."""

from __future__ import annotations

import pytest

from scaler.errors import ScalerValidationError
from scaler.models import (
    UPLOADED,
    DeliveryMode,
    DownloadOutcome,
    ImageDelivery,
    InputKind,
    InputSource,
    OutputImage,
    OutputSpec,
    RemoteOutputImage,
    RemoteTimeStats,
    RemoteTransformResponse,
    TimeStats,
    TransformRequest,
    TransformResult,
)

FIT = {"width": 100, "height": 100}


class TestInputSource:
    @pytest.mark.parametrize(
        ("kwargs", "kind"),
        [
            ({"remote_url": "https://x/a.jpg"}, InputKind.REMOTE_URL),
            ({"local_path": "a.jpg"}, InputKind.LOCAL_PATH),
            ({"buffer": b"\x00\x01"}, InputKind.BUFFER),
        ],
    )
    def test_kind(self, kwargs, kind):
        assert InputSource(**kwargs).kind is kind

    def test_none_given(self):
        with pytest.raises(ScalerValidationError, match="exactly one"):
            InputSource()

    def test_two_given(self):
        with pytest.raises(ScalerValidationError, match="got 2"):
            InputSource(remote_url="https://x/a.jpg", local_path="a.jpg")

    def test_bytearray_coerced(self):
        src = InputSource(buffer=bytearray(b"abc"))
        assert src.buffer == b"abc"
        assert type(src.buffer) is bytes

    def test_non_bytes_buffer_rejected(self):
        with pytest.raises(ScalerValidationError, match="bytes"):
            InputSource(buffer="not bytes")  # type: ignore[arg-type]

    def test_from_dict_camel_case(self):
        src = InputSource.from_dict({"remoteUrl": "https://x/a.jpg"})
        assert src.remote_url == "https://x/a.jpg"

    def test_from_dict_snake_case(self):
        src = InputSource.from_dict({"local_path": "a.jpg"})
        assert src.local_path == "a.jpg"


class TestOutputSpec:
    def test_to_api_field_order_and_nulls(self):
        spec = OutputSpec(type="jpeg", fit=FIT)
        assert spec.to_api() == {
            "fit": FIT,
            "type": "jpeg",
            "quality": None,
            "upload": None,
            "crop": None,
        }

    def test_upload_forwarded(self):
        target = {"url": "https://bucket/x", "method": "PUT"}
        spec = OutputSpec(type="png", fit="cover", image_delivery=ImageDelivery(upload=target))
        assert spec.to_api()["upload"] == target
        assert spec.save_to_local_path is None

    def test_missing_type(self):
        with pytest.raises(ScalerValidationError, match="type"):
            OutputSpec(type="", fit=FIT)

    def test_missing_fit(self):
        with pytest.raises(ScalerValidationError, match="fit"):
            OutputSpec(type="jpeg", fit="")

    def test_from_dict(self):
        spec = OutputSpec.from_dict({
            "type": "webp",
            "fit": FIT,
            "quality": 0.8,
            "imageDelivery": {"saveToLocalPath": "/tmp/out.webp"},
        })
        assert spec.quality == 0.8
        assert spec.save_to_local_path == "/tmp/out.webp"


class TestTransformRequest:
    def test_single_is_not_batch(self):
        req = TransformRequest(input=InputSource(buffer=b"x"), output=OutputSpec("jpeg", FIT))
        assert req.is_batch is False

    def test_list_is_batch(self):
        req = TransformRequest(input=InputSource(buffer=b"x"), output=[OutputSpec("jpeg", FIT)])
        assert req.is_batch is True

    def test_from_dict_single(self):
        req = TransformRequest.from_dict({
            "input": {"remoteUrl": "https://x/a.jpg"},
            "output": {"type": "jpeg", "fit": FIT},
        })
        assert isinstance(req.output, OutputSpec)

    def test_from_dict_list(self):
        req = TransformRequest.from_dict({
            "input": {"remoteUrl": "https://x/a.jpg"},
            "output": [{"type": "jpeg", "fit": FIT}, {"type": "png", "fit": FIT}],
        })
        assert [o.type for o in req.output] == ["jpeg", "png"]

    def test_from_dict_without_output(self):
        req = TransformRequest.from_dict({"input": {"buffer": b"x"}})
        assert req.output is None

    def test_from_dict_without_input(self):
        with pytest.raises(ScalerValidationError, match="No input"):
            TransformRequest.from_dict({"output": {"type": "jpeg", "fit": FIT}})

    def test_from_dict_bad_output_type(self):
        with pytest.raises(ScalerValidationError, match="output"):
            TransformRequest.from_dict({"input": {"buffer": b"x"}, "output": "jpeg"})


class TestResults:
    def _stats(self) -> TimeStats:
        return TimeStats(1.0, 2.0, 3.0, 4.0, 10.0)

    def test_time_stats_to_dict(self):
        assert self._stats().to_dict() == {
            "signMs": 1.0,
            "sendImageMs": 2.0,
            "transformMs": 3.0,
            "getImagesMs": 4.0,
            "totalMs": 10.0,
        }

    def test_single_result_to_dict(self):
        img = OutputImage(fit=FIT, pixel_size=FIT, image=UPLOADED, delivery=DeliveryMode.UPLOADED)
        result = TransformResult({"pixelSize": FIT}, img, self._stats())
        data = result.to_dict()
        assert data["outputImage"] == {"fit": FIT, "pixelSize": FIT, "image": "uploaded"}
        assert result.output_images == [img]

    def test_batch_result_to_dict(self):
        imgs = [OutputImage(FIT, FIT, b"a"), OutputImage(FIT, FIT, b"b")]
        result = TransformResult({}, imgs, self._stats())
        assert [o["image"] for o in result.to_dict()["outputImage"]] == [b"a", b"b"]
        assert result.output_images is imgs

    def test_remote_file_ids_skip_missing(self):
        remote = RemoteTransformResponse(
            input_image={},
            output_images=[
                RemoteOutputImage(FIT, FIT, "https://dl/1", "f1"),
                RemoteOutputImage(FIT, FIT),
                RemoteOutputImage(FIT, FIT, "https://dl/3", "f3"),
            ],
            delete_url="https://del",
            time_stats=RemoteTimeStats(transform_ms=5.0),
        )
        assert remote.file_ids == ["f1", "f3"]

    def test_download_outcome_ok(self):
        assert DownloadOutcome(index=0, image=OutputImage(FIT, FIT, b"x")).ok
        assert not DownloadOutcome(index=0, error=RuntimeError("x")).ok
