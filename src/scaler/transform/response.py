"""Parsing the transform response and assembling the final result."""

from __future__ import annotations

import json
from typing import Any

from scaler.errors import ScalerUploadError
from scaler.models import (
    OutputImage,
    RemoteOutputImage,
    RemoteTimeStats,
    RemoteTransformResponse,
    TransformRequest,
)


def _malformed(reason: str, data: Any) -> ScalerUploadError:
    return ScalerUploadError(
        message=f"Malformed transform response: {reason}",
        context={"status_code": 200, "body": json.dumps(data, default=str)},
    )


def _optional_str(entry: dict[str, Any], key: str, data: Any) -> str | None:
    value = entry.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise _malformed(f"{key} must be a string", data)
    return value


def _number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def parse_transform_response(
    data: dict[str, Any],
    expected_outputs: int,
) -> RemoteTransformResponse:
    """Validate and parse the body returned by the transform URL.

    Parameters
    ----------
    data:
        Decoded JSON body.
    expected_outputs:
        Number of outputs in the request; the service answers with one
        output image per requested output, in the same order.

    Raises
    ------
    ScalerUploadError
        If a required field is missing or has the wrong type.
    """
    raw_outputs = data.get("outputImages")
    if not isinstance(raw_outputs, list):
        raise _malformed("outputImages must be a list", data)
    if len(raw_outputs) != expected_outputs:
        raise _malformed(
            f"expected {expected_outputs} output images, got {len(raw_outputs)}",
            data,
        )

    output_images: list[RemoteOutputImage] = []
    for entry in raw_outputs:
        if not isinstance(entry, dict):
            raise _malformed("outputImages entries must be objects", data)
        output_images.append(
            RemoteOutputImage(
                fit=entry.get("fit"),
                pixel_size=entry.get("pixelSize"),
                download_url=_optional_str(entry, "downloadUrl", data),
                file_id=_optional_str(entry, "fileId", data),
            )
        )

    delete_url = data.get("deleteUrl")
    if not isinstance(delete_url, str) or not delete_url:
        raise _malformed("deleteUrl must be a non-empty string", data)

    stats = data.get("timeStats")
    if not isinstance(stats, dict) or not _number(stats.get("transformMs")):
        raise _malformed("timeStats.transformMs must be a number", data)
    upload_images_ms = stats.get("uploadImagesMs")
    if upload_images_ms is not None and not _number(upload_images_ms):
        raise _malformed("timeStats.uploadImagesMs must be a number", data)

    input_image = data.get("inputImage")
    return RemoteTransformResponse(
        input_image=input_image if isinstance(input_image, dict) else {},
        output_images=output_images,
        delete_url=delete_url,
        time_stats=RemoteTimeStats(
            transform_ms=float(stats["transformMs"]),
            upload_images_ms=(
                float(upload_images_ms) if upload_images_ms is not None else None
            ),
        ),
    )


def shape_output(
    request: TransformRequest,
    images: list[OutputImage],
) -> OutputImage | list[OutputImage]:
    """Return *images* in the shape the request used for ``output``."""
    if request.is_batch:
        return list(images)
    return images[0]
