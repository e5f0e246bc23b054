"""JSON request/response exchange over the standard streams."""
import json
import logging
from typing import Any, Callable, IO, Optional, TypeVar

from .errors import RequestError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _decode(raw: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        raise RequestError(f"invalid JSON request: {exc}") from exc


def read_request(stream: IO[str], parser: Callable[[Any], T]) -> T:
    """
    Read exactly one JSON document from the stream and parse it.

    Args:
        stream: Input stream (stdin)
        parser: Model factory, e.g. ``OutRequest.from_dict``

    Returns:
        Parsed request model

    Raises:
        RequestError: empty input, malformed JSON or invalid shape
    """
    raw = stream.read()
    if not raw.strip():
        raise RequestError("invalid JSON request: no input on stdin")
    return parser(_decode(raw))


def read_optional_request(stream: Optional[IO[str]], parser: Callable[[Any], T]) -> Optional[T]:
    """Like read_request, but empty or interactive input yields None."""
    if stream is None:
        return None
    isatty = getattr(stream, "isatty", None)
    if callable(isatty) and isatty():
        return None
    raw = stream.read()
    if not raw.strip():
        return None
    return parser(_decode(raw))


def write_response(stream: IO[str], payload: Any) -> None:
    """Encode one JSON document, newline terminated."""
    stream.write(json.dumps(payload, separators=(",", ":")))
    stream.write("\n")
    stream.flush()
