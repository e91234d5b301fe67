from datetime import datetime, timezone
from decimal import Decimal
from typing import Annotated, Any

from bson import Decimal128, ObjectId
from pydantic import AfterValidator, BeforeValidator, PlainSerializer


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _stringify_object_id(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    return value


# Documents come back from Mongo with ObjectId keys; the API speaks hex strings.
ObjectIdStr = Annotated[str, BeforeValidator(_stringify_object_id)]


def to_decimal(value: Any) -> Any:
    """
    Coerce stored or submitted amounts to Decimal.

    Floats go through their shortest repr so 0.1 stays 0.1 and not
    0.1000000000000000055511151231257827.
    """
    if isinstance(value, Decimal128):
        return value.to_decimal()
    if isinstance(value, float):
        return Decimal(repr(value))
    if isinstance(value, (int, str)) and not isinstance(value, bool):
        return Decimal(value)
    return value


def to_decimal128(value: Any) -> Decimal128:
    return Decimal128(to_decimal(value))


# Money is exact in memory and in Mongo (Decimal128); JSON carries a number.
Money = Annotated[
    Decimal,
    BeforeValidator(to_decimal),
    PlainSerializer(float, return_type=float, when_used="json"),
]


def _assume_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# Naive datetimes from older rows or non tz-aware clients are UTC.
UtcDatetime = Annotated[datetime, AfterValidator(_assume_utc)]


def parse_object_id(value: str) -> ObjectId:
    """Convert a hex string to ObjectId, raising ValueError when malformed."""
    if not ObjectId.is_valid(value):
        raise ValueError(f"Invalid ObjectId: {value!r}")
    return ObjectId(value)
