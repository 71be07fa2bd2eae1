"""Value coercion from path strings to unit input types.

The single-value ``GET <prefix>/<name>/{input}`` route receives its input
as a URL segment.  :class:`ValueCoercer` converts that string to the unit's
input element type with pydantic: strings are validated in string mode
(``"42"`` → ``42``, ``"true"`` → ``True``, ISO dates, UUIDs, enums), and
structured types fall back to parsing the segment as JSON.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from pydantic import PydanticSchemaGenerationError, TypeAdapter, ValidationError

from funcweb.core.errors import CoercionError

_PASSTHROUGH = (str, object)


@lru_cache(maxsize=256)
def type_adapter(target: Any) -> TypeAdapter[Any]:
    """Cached pydantic adapter for ``target``."""
    return TypeAdapter(target)


class ValueCoercer:
    """Converts strings to target types; the host's conversion service."""

    def convert(self, value: str, target: Any) -> Any:
        """Convert ``value`` to ``target``.

        Raises:
            CoercionError: ``value`` is not a valid ``target``.
        """
        if target in _PASSTHROUGH or target is None:
            return value
        try:
            adapter = type_adapter(target)
        except PydanticSchemaGenerationError:
            return self._construct(value, target)
        try:
            return adapter.validate_strings(value)
        except ValidationError as first:
            try:
                return adapter.validate_json(value)
            except ValidationError:
                raise CoercionError(value, target, cause=first) from first

    def _construct(self, value: str, target: type) -> Any:
        """Fallback for classes pydantic has no schema for: call the constructor."""
        try:
            return target(value)
        except (TypeError, ValueError) as e:
            raise CoercionError(value, target, cause=e) from e


__all__ = ["ValueCoercer", "type_adapter"]
