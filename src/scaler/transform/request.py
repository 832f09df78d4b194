"""Request normalisation and sign-payload construction.

Both clients run these steps before any network call, so a malformed
request never consumes a signed URL.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from scaler.errors import ScalerValidationError
from scaler.models import BODY_INPUT, InputKind, OutputSpec, TransformRequest


def normalize_outputs(request: TransformRequest) -> list[OutputSpec]:
    """Return the requested outputs as a list, in request order.

    The caller keeps :attr:`TransformRequest.is_batch` to restore the
    original shape in the result.

    Raises
    ------
    ScalerValidationError
        If no output is given, the list is empty, or an entry is not an
        :class:`OutputSpec`.
    """
    output = request.output
    if output is None or output == []:
        raise ScalerValidationError(
            message="No output provided",
            context={"field": "output", "value": output},
        )
    outputs = output if isinstance(output, list) else [output]
    for i, spec in enumerate(outputs):
        if not isinstance(spec, OutputSpec):
            raise ScalerValidationError(
                message=f"output[{i}] must be an OutputSpec, got {type(spec).__name__}",
                context={"field": f"output[{i}]", "value": type(spec).__name__},
            )
    return outputs


def check_input(request: TransformRequest) -> None:
    """Fail early when a local input file does not exist."""
    source = request.input
    if source.kind is InputKind.LOCAL_PATH and not Path(source.local_path).is_file():  # type: ignore[arg-type]
        raise ScalerValidationError(
            message=f"Input file not found: {source.local_path}",
            context={"field": "input.local_path", "value": source.local_path},
        )


def build_sign_payload(
    request: TransformRequest,
    outputs: list[OutputSpec],
) -> dict[str, Any]:
    """Build the JSON body for the sign endpoint.

    ``input`` is the remote URL when the service should fetch the image,
    otherwise :data:`~scaler.models.BODY_INPUT`.
    """
    source = request.input
    return {
        "input": source.remote_url if source.kind is InputKind.REMOTE_URL else BODY_INPUT,
        "output": [spec.to_api() for spec in outputs],
    }
