"""Shared schema helpers: response envelopes, time/date validators, ORM base"""
import re
from datetime import date, datetime
from typing import Any, Iterable, Optional, Type

from pydantic import BaseModel, ConfigDict

TIME_RE = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


class ORMModel(BaseModel):
    """Response model read straight from ORM rows"""
    model_config = ConfigDict(from_attributes=True)


def check_time(value: Optional[str]) -> Optional[str]:
    """HH:MM, 24-hour"""
    if value is None:
        return value
    value = value.strip()
    if not TIME_RE.match(value):
        raise ValueError("Time must be in HH:MM format (24-hour)")
    return value


def to_minutes(value: str) -> int:
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def check_time_range(start: Optional[str], end: Optional[str]) -> None:
    if start and end and to_minutes(end) <= to_minutes(start):
        raise ValueError("End time must be after start time")


def to_day(value: Any) -> Any:
    """Accept a datetime or ISO datetime string for a date field (keeps the calendar day)"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and "T" in value:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    return value


def dump(schema: Type[BaseModel], obj: Any) -> dict:
    """ORM row -> JSON-ready dict through a response schema"""
    return schema.model_validate(obj).model_dump(mode="json")


def dump_all(schema: Type[BaseModel], objs: Iterable[Any]) -> list:
    return [dump(schema, obj) for obj in objs]


def ok(data: Any = None, message: Optional[str] = None, count: Optional[int] = None, **extra) -> dict:
    """Success envelope: {success, data?, count?, message?}"""
    body: dict = {"success": True}
    if count is not None:
        body["count"] = count
    if data is not None:
        body["data"] = data
    if message is not None:
        body["message"] = message
    body.update(extra)
    return body


def today() -> date:
    return date.today()
