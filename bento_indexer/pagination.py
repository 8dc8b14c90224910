"""Pagination parameters taken from query strings."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass

DEFAULT_OFFSET = 0
DEFAULT_LIMIT = 10
MAX_LIMIT = 100

_I64_MIN = -(2**63)
_I64_MAX = 2**63 - 1
_NUMBER = re.compile(r"[+-]?[0-9]+")


def parse_number(text: str) -> int:
    """Parse a 64-bit signed integer from a query value; an empty string means 0."""
    if not isinstance(text, str):
        raise ValueError(f"invalid type: expected a string, got {type(text).__name__}")
    if text == "":
        return 0
    if not _NUMBER.fullmatch(text):
        raise ValueError(f"invalid digit found in string: {text!r}")
    value = int(text)
    if not _I64_MIN <= value <= _I64_MAX:
        raise ValueError(f"number too large to fit in target type: {text!r}")
    return value


@dataclass
class Pagination:
    offset: int = DEFAULT_OFFSET
    limit: int = 0

    @classmethod
    def from_query(cls, params: Mapping[str, str]) -> Pagination:
        """Build pagination from query parameters; ``limit`` is required."""
        if "limit" not in params:
            raise ValueError("missing field `limit`")
        offset = parse_number(params["offset"]) if "offset" in params else DEFAULT_OFFSET
        return cls(offset=offset, limit=parse_number(params["limit"]))

    def effective_offset(self) -> int:
        """The offset to query with; negative offsets become 0."""
        return max(self.offset, 0)

    def effective_limit(self) -> int:
        """The limit to query with; values outside 1..100 fall back to the default."""
        if self.limit <= 0 or self.limit > MAX_LIMIT:
            return DEFAULT_LIMIT
        return self.limit