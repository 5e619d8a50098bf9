from collections.abc import Mapping
from decimal import Decimal
from os import PathLike
from typing import Any

import orjson
from pydantic import BaseModel

__all__ = ["dumps", "json_default"]


def json_default(obj: Any) -> Any:
    """Convert the values orjson cannot serialize natively.

    Handlers commonly return pydantic models, request data such as headers
    or query params, sets and paths.

    Raises:
        TypeError: If the value cannot be converted.
    """
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    if isinstance(obj, Mapping):
        return dict(obj)
    if isinstance(obj, set | frozenset):
        return list(obj)
    if isinstance(obj, PathLike | Decimal):
        return str(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")  # noqa: TRY003


def dumps(data: Any) -> bytes:
    """Serialize a value to JSON with orjson, non-str dict keys are allowed."""
    return orjson.dumps(data, option=orjson.OPT_NON_STR_KEYS, default=json_default)
