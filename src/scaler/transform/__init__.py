"""Transform pipeline stages shared by the sync and async clients.

Exports
-------
normalize_outputs / check_input / build_sign_payload
    Validate a request and build the sign payload.
parse_transform_response / shape_output
    Parse the service answer and restore the caller's output shape.
resolve_outputs / async_resolve_outputs
    Turn output entries into images (sequential / concurrent all-settled).
cleanup / async_cleanup
    Delete temporary remote files.
compute_time_stats / elapsed_ms
    Build the timing breakdown.
"""

from .delivery import (
    async_cleanup,
    async_resolve_output,
    async_resolve_outputs,
    cleanup,
    resolve_output,
    resolve_outputs,
)
from .request import build_sign_payload, check_input, normalize_outputs
from .response import parse_transform_response, shape_output
from .timing import compute_time_stats, elapsed_ms

__all__ = [
    "async_cleanup",
    "async_resolve_output",
    "async_resolve_outputs",
    "build_sign_payload",
    "check_input",
    "cleanup",
    "compute_time_stats",
    "elapsed_ms",
    "normalize_outputs",
    "parse_transform_response",
    "resolve_output",
    "resolve_outputs",
    "shape_output",
]
