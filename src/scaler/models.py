"""Public data models for the scaler SDK.

This module contains the request types, result types, enums, and the
parsed form of the remote transform response.  All types are plain
dataclasses; request types validate themselves on construction and raise
:class:`~scaler.errors.ScalerValidationError` when malformed.

Requests can be built directly::

    TransformRequest(
        input=InputSource(local_path="photo.heic"),
        output=OutputSpec(type="jpeg", fit={"width": 1024, "height": 1024}),
    )

or from the camelCase options mapping accepted by the HTTP API::

    TransformRequest.from_dict({
        "input": {"localPath": "photo.heic"},
        "output": {"type": "jpeg", "fit": {"width": 1024, "height": 1024}},
    })
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from scaler.errors import ScalerValidationError

UPLOADED = "uploaded"
"""Marker stored as :attr:`OutputImage.image` when the remote service
delivered the image itself and nothing was downloaded."""

BODY_INPUT = "body"
"""Sign-payload ``input`` value meaning the image bytes follow in the
upload request body."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class InputKind(str, Enum):
    """Where the input image comes from."""

    REMOTE_URL = "remote_url"
    """The remote service fetches the image itself."""

    LOCAL_PATH = "local_path"
    """The image is read from the local filesystem and sent as the body."""

    BUFFER = "buffer"
    """The image is held in memory and sent as the body."""


class DeliveryMode(str, Enum):
    """How an output image reached the caller."""

    BUFFER = "buffer"
    """Raw bytes returned in :attr:`OutputImage.image`."""

    LOCAL_PATH = "local_path"
    """Bytes written to disk; :attr:`OutputImage.image` is the path."""

    UPLOADED = "uploaded"
    """Delivered by the remote service (e.g. to a pre-signed bucket URL)."""


def _get(data: Mapping[str, Any], camel: str, snake: str) -> Any:
    if camel in data:
        return data[camel]
    return data.get(snake)


# ---------------------------------------------------------------------------
# Request types
# ---------------------------------------------------------------------------

@dataclass
class InputSource:
    """The image to transform.  Exactly one field must be set.

    Attributes
    ----------
    remote_url:
        URL the remote service downloads the image from.
    local_path:
        Path of a local file to stream as the request body.
    buffer:
        In-memory image bytes to send as the request body.
    """

    remote_url: str | None = None
    local_path: str | None = None
    buffer: bytes | None = None

    def __post_init__(self) -> None:
        given = [
            name
            for name in ("remote_url", "local_path", "buffer")
            if getattr(self, name) is not None
        ]
        if len(given) != 1:
            raise ScalerValidationError(
                message=(
                    "input must specify exactly one of remote_url, local_path, "
                    f"buffer (got {len(given)})"
                ),
                context={"field": "input", "value": given},
            )
        if self.buffer is not None:
            if not isinstance(self.buffer, (bytes, bytearray, memoryview)):
                raise ScalerValidationError(
                    message=f"input buffer must be bytes, got {type(self.buffer).__name__}",
                    context={"field": "input.buffer", "value": type(self.buffer).__name__},
                )
            self.buffer = bytes(self.buffer)

    @property
    def kind(self) -> InputKind:
        if self.remote_url is not None:
            return InputKind.REMOTE_URL
        if self.local_path is not None:
            return InputKind.LOCAL_PATH
        return InputKind.BUFFER

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> InputSource:
        return cls(
            remote_url=_get(data, "remoteUrl", "remote_url"),
            local_path=_get(data, "localPath", "local_path"),
            buffer=data.get("buffer"),
        )


@dataclass
class ImageDelivery:
    """Where a single output image should end up.

    Attributes
    ----------
    save_to_local_path:
        If set and the service returns a download URL, the image is written
        to this path instead of being returned as bytes.
    upload:
        Opaque upload target forwarded to the sign endpoint; the remote
        service uploads the output there and no download happens.
    """

    save_to_local_path: str | None = None
    upload: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ImageDelivery:
        return cls(
            save_to_local_path=_get(data, "saveToLocalPath", "save_to_local_path"),
            upload=data.get("upload"),
        )


@dataclass
class OutputSpec:
    """One requested output image.

    Attributes
    ----------
    type:
        Target format, e.g. ``"jpeg"``, ``"png"``, ``"webp"``.
    fit:
        Resize strategy: a named mode string or a mapping with explicit
        ``width`` / ``height``.
    quality:
        Optional encoder quality, ``0.0`` to ``1.0``.
    crop:
        Optional crop region forwarded verbatim.
    image_delivery:
        Optional delivery instructions.  ``None`` returns bytes.
    """

    type: str
    fit: str | dict[str, Any]
    quality: float | None = None
    crop: dict[str, Any] | None = None
    image_delivery: ImageDelivery | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.type, str) or not self.type:
            raise ScalerValidationError(
                message="output type must be a non-empty string",
                context={"field": "output.type", "value": self.type},
            )
        if not self.fit or not isinstance(self.fit, (str, dict)):
            raise ScalerValidationError(
                message="output fit must be a mode name or a width/height mapping",
                context={"field": "output.fit", "value": self.fit},
            )

    @property
    def save_to_local_path(self) -> str | None:
        if self.image_delivery is None:
            return None
        return self.image_delivery.save_to_local_path

    @property
    def upload(self) -> dict[str, Any] | None:
        if self.image_delivery is None:
            return None
        return self.image_delivery.upload

    def to_api(self) -> dict[str, Any]:
        """Return the sign-payload form of this output."""
        return {
            "fit": self.fit,
            "type": self.type,
            "quality": self.quality,
            "upload": self.upload,
            "crop": self.crop,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> OutputSpec:
        delivery = _get(data, "imageDelivery", "image_delivery")
        return cls(
            type=data.get("type", ""),
            fit=data.get("fit", ""),
            quality=data.get("quality"),
            crop=data.get("crop"),
            image_delivery=ImageDelivery.from_dict(delivery) if delivery else None,
        )


@dataclass
class TransformRequest:
    """A single transform job: one input, one or many outputs.

    Passing a single :class:`OutputSpec` yields a single
    :class:`OutputImage` in the result; passing a list yields a list in the
    same order.
    """

    input: InputSource
    output: OutputSpec | list[OutputSpec] | None = None

    @property
    def is_batch(self) -> bool:
        return isinstance(self.output, list)

    @classmethod
    def from_dict(cls, options: Mapping[str, Any]) -> TransformRequest:
        """Build a request from the camelCase options mapping.

        ``output`` may be a mapping (single output) or a list of mappings.
        """
        raw_input = options.get("input")
        if not isinstance(raw_input, Mapping):
            raise ScalerValidationError(
                message="No input provided",
                context={"field": "input", "value": raw_input},
            )
        raw_output = options.get("output")
        output: OutputSpec | list[OutputSpec] | None
        if raw_output is None:
            output = None
        elif isinstance(raw_output, Mapping):
            output = OutputSpec.from_dict(raw_output)
        elif isinstance(raw_output, list):
            output = [OutputSpec.from_dict(o) for o in raw_output]
        else:
            raise ScalerValidationError(
                message="output must be a mapping or a list of mappings",
                context={"field": "output", "value": type(raw_output).__name__},
            )
        return cls(input=InputSource.from_dict(raw_input), output=output)


# ---------------------------------------------------------------------------
# Remote transform response (parsed)
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class RemoteOutputImage:
    """One entry of ``outputImages`` in the transform response."""

    fit: Any
    pixel_size: Any
    download_url: str | None = None
    file_id: str | None = None


@dataclass(frozen=True)
class RemoteTimeStats:
    """Server-side timings reported in the transform response."""

    transform_ms: float
    upload_images_ms: float | None = None


@dataclass
class RemoteTransformResponse:
    """Parsed body of a successful upload/transform call."""

    input_image: dict[str, Any]
    output_images: list[RemoteOutputImage]
    delete_url: str
    time_stats: RemoteTimeStats

    @property
    def file_ids(self) -> list[str]:
        """IDs of temporary remote files, in response order."""
        return [o.file_id for o in self.output_images if o.file_id is not None]


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class OutputImage:
    """A resolved output image.

    Attributes
    ----------
    fit:
        The fit echoed by the service.
    pixel_size:
        Final pixel dimensions as reported by the service.
    image:
        ``bytes`` for in-memory delivery, the local path for saved images,
        :data:`UPLOADED` when the service delivered it, or ``None`` when
        a concurrent download failed.
    delivery:
        How the image was delivered, ``None`` when the download failed.
    """

    fit: Any
    pixel_size: Any
    image: bytes | str | None
    delivery: DeliveryMode | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"fit": self.fit, "pixelSize": self.pixel_size, "image": self.image}


@dataclass
class TimeStats:
    """Timing breakdown of one transform, in milliseconds."""

    sign_ms: float
    send_image_ms: float
    transform_ms: float
    get_images_ms: float
    total_ms: float

    def to_dict(self) -> dict[str, float]:
        return {
            "signMs": self.sign_ms,
            "sendImageMs": self.send_image_ms,
            "transformMs": self.transform_ms,
            "getImagesMs": self.get_images_ms,
            "totalMs": self.total_ms,
        }


@dataclass
class TransformResult:
    """Result of :meth:`ScalerClient.transform`.

    Attributes
    ----------
    input_image:
        Input image metadata echoed by the service.
    output_image:
        A single :class:`OutputImage` or a list, matching the request shape.
    time_stats:
        Timing breakdown.
    """

    input_image: dict[str, Any]
    output_image: OutputImage | list[OutputImage]
    time_stats: TimeStats

    @property
    def output_images(self) -> list[OutputImage]:
        """Output images as a list regardless of the request shape."""
        if isinstance(self.output_image, list):
            return self.output_image
        return [self.output_image]

    def to_dict(self) -> dict[str, Any]:
        if isinstance(self.output_image, list):
            output: Any = [o.to_dict() for o in self.output_image]
        else:
            output = self.output_image.to_dict()
        return {
            "inputImage": self.input_image,
            "outputImage": output,
            "timeStats": self.time_stats.to_dict(),
        }


@dataclass
class DownloadOutcome:
    """Settled result of one output-resolution task.

    Exactly one of :attr:`image` and :attr:`error` is set.
    """

    index: int
    image: OutputImage | None = None
    error: Exception | None = field(default=None, repr=False)

    @property
    def ok(self) -> bool:
        return self.error is None
