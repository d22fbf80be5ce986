from contextlib import contextmanager
from typing import Any, Iterator, Type

import httpx

from ..core.exceptions import UpstreamError, UpstreamTimeout


@contextmanager
def upstream_call(operation: str, error_cls: Type[UpstreamError] = UpstreamError) -> Iterator[None]:
    """
    Surfaces an SDK timeout as UpstreamTimeout and any other transport
    failure as `error_cls`; everything else propagates.
    """
    try:
        yield
    except httpx.TimeoutException as e:
        raise UpstreamTimeout(f"Upstream timeout during {operation}", detail=str(e), cause=e) from e
    except httpx.HTTPError as e:
        message = str(e) or type(e).__name__
        raise error_cls(message, detail=f"{operation}: {message}", cause=e) from e


def pick(obj: Any, name: str) -> Any:
    """Attribute-or-key access, for SDK results that are models in one release and dicts in another."""
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def to_plain(obj: Any) -> Any:
    """pydantic model -> JSON-ready dict; dicts and None pass through."""
    if obj is None or isinstance(obj, (dict, list, str, int, float, bool)):
        return obj
    dump = getattr(obj, "model_dump", None)
    if callable(dump):
        return dump(mode="json")
    return dict(obj)
