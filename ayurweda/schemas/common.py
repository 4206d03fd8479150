from datetime import time
from typing import Annotated
import re

from pydantic import BaseModel, BeforeValidator, PlainSerializer

TIME_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):[0-5][0-9]$")

def parse_clock_time(value):
    """Accept HH:MM (or H:MM) strings and time objects."""
    if isinstance(value, time):
        return value
    if isinstance(value, str):
        # Tolerate HH:MM:SS as stored by some databases
        if len(value) == 8 and value.count(":") == 2:
            value = value[:5]
        if TIME_PATTERN.match(value):
            hours, minutes = value.split(":")
            return time(int(hours), int(minutes))
    raise ValueError("Invalid time format. Use HH:MM")

ClockTime = Annotated[
    time,
    BeforeValidator(parse_clock_time),
    PlainSerializer(lambda t: t.strftime("%H:%M"), return_type=str),
]

class MessageResponse(BaseModel):
    message: str

class PageMeta(BaseModel):
    page: int
    limit: int
    total: int
    pages: int

def page_meta(page: int, limit: int, total: int) -> PageMeta:
    return PageMeta(page=page, limit=limit, total=total, pages=(total + limit - 1) // limit)
