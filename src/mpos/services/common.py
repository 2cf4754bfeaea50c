from __future__ import annotations

import uuid
from datetime import datetime
from typing import Callable

Clock = Callable[[], datetime]
IdFactory = Callable[[], str]


def local_now() -> datetime:
    return datetime.now()


def new_id() -> str:
    return uuid.uuid4().hex


def iso(dt: datetime) -> str:
    return dt.isoformat(timespec="milliseconds")


def epoch_ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)
