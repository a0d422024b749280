import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

POINTS_MIN = -(2**31)
POINTS_MAX = 2**31 - 1

_INTEGER_PATTERN = re.compile(r"^[+-]?\d+$")


class UserListQuery(BaseModel):
    """Query-string parameters of the admin user listing.

    Malformed input never fails: ``page`` falls back to 1 and ``q`` to an
    empty search term.
    """

    page: int = Field(default=1)
    q: str = Field(default="")

    model_config = ConfigDict(extra="ignore")

    @field_validator("page", mode="before")
    @classmethod
    def normalize_page(cls, value: Any) -> int:
        if isinstance(value, bool):
            return 1
        if isinstance(value, int):
            return value if value >= 1 else 1
        candidate = str(value or "").strip()
        if not _INTEGER_PATTERN.match(candidate):
            return 1
        page = int(candidate)
        return page if page >= 1 else 1

    @field_validator("q", mode="before")
    @classmethod
    def normalize_query(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip()


class PointsUpdatePayload(BaseModel):
    points: int

    model_config = ConfigDict(extra="forbid")

    @field_validator("points", mode="before")
    @classmethod
    def parse_points(cls, value: Any) -> int:
        if isinstance(value, bool) or value is None:
            raise ValueError("points must be an integer")
        if isinstance(value, int):
            parsed = value
        elif isinstance(value, str) and _INTEGER_PATTERN.match(value.strip()):
            parsed = int(value.strip())
        else:
            raise ValueError("points must be an integer")
        if parsed < POINTS_MIN or parsed > POINTS_MAX:
            raise ValueError(
                f"points must be between {POINTS_MIN} and {POINTS_MAX}"
            )
        return parsed
