"""Turn accumulated model text into a result value."""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, TypeVar

from pick_harness.types import Err, FailureKind, Ok, Result

from .request import JsonMode

_logger = logging.getLogger(__name__)

T = TypeVar("T")

Transform = Callable[[Any], Result[T]]


def extract(
    text: str,
    json_mode: JsonMode = False,
    transform: Transform | None = None,
) -> Result[Any]:
    """Parse *text* (as JSON when *json_mode* is set) and apply *transform*.

    A JSON parse failure short-circuits before the transform runs.  Both
    parse and transform failures are retryable; the ``Err.error`` text is
    meant to be shown to the model.
    """
    _logger.debug("parsing response")

    candidate: Any = text
    if json_mode:
        try:
            candidate = json.loads(text)
        except json.JSONDecodeError as e:
            return Err(error=str(e), kind=FailureKind.PARSE)

    if transform is None:
        return Ok(candidate)

    result = transform(candidate)
    if isinstance(result, Err) and result.kind is not FailureKind.VALIDATION:
        return Err(error=result.error, kind=FailureKind.VALIDATION)
    return result
