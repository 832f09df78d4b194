"""Timing breakdown of a transform.

``send_image_ms`` subtracts server-reported durations from a locally
measured wall time.  The two clocks are independent, so the raw difference
can come out negative; it is clamped at zero.  For the same reason
``total_ms`` is raised to the largest component when a server-reported
duration exceeds the local wall time.
"""

from __future__ import annotations

import time

from scaler.models import RemoteTimeStats, TimeStats


def elapsed_ms(start: float) -> float:
    """Milliseconds since *start*, a :func:`time.monotonic` reading."""
    return (time.monotonic() - start) * 1000


def compute_time_stats(
    *,
    sign_ms: float,
    upload_ms: float,
    remote: RemoteTimeStats,
    measured_get_images_ms: float,
    total_ms: float,
) -> TimeStats:
    """Combine local measurements with the server-reported timings.

    Parameters
    ----------
    sign_ms:
        Round trip of the sign call.
    upload_ms:
        Wall time of the upload/transform call.
    remote:
        ``timeStats`` from the transform response.
    measured_get_images_ms:
        Wall time spent resolving output images locally.
    total_ms:
        Wall time of the whole transform.
    """
    remote_upload_ms = remote.upload_images_ms or 0.0
    send_image_ms = max(0.0, upload_ms - remote.transform_ms - remote_upload_ms)
    get_images_ms = (
        remote.upload_images_ms
        if remote.upload_images_ms is not None
        else measured_get_images_ms
    )
    return TimeStats(
        sign_ms=sign_ms,
        send_image_ms=send_image_ms,
        transform_ms=remote.transform_ms,
        get_images_ms=get_images_ms,
        total_ms=max(total_ms, sign_ms, send_image_ms, remote.transform_ms, get_images_ms),
    )
