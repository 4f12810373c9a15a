"""Date and host helpers."""

from __future__ import annotations

import socket
from datetime import datetime


def get_date() -> datetime:
    """Current local time, used to stamp benchmark start / finish."""
    return datetime.now()


def format_date(date: datetime) -> str:
    return date.strftime("%Y-%m-%d %H:%M:%S.%f")


def get_hostname() -> str:
    return socket.gethostname()

