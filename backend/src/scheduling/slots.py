"""Slot generation: cut recruiter-supplied time ranges into fixed-length slots."""

from datetime import datetime, timedelta
from typing import NamedTuple


class TimeRange(NamedTuple):
    start: datetime
    end: datetime


class SlotWindow(NamedTuple):
    start: datetime
    end: datetime


def generate_slots(ranges: list[TimeRange], duration_minutes: int) -> list[SlotWindow]:
    """Split each range into back-to-back slots of ``duration_minutes``.

    Ranges are processed in the given order and their slots concatenated; no
    sorting or de-duplication happens here, so overlapping ranges produce
    overlapping (or identical) slots. A trailing interval shorter than the
    duration is dropped, and a range whose end is not after its start yields
    nothing.
    """
    if duration_minutes <= 0:
        raise ValueError(f"duration_minutes must be positive, got {duration_minutes}")

    step = timedelta(minutes=duration_minutes)
    slots: list[SlotWindow] = []
    for start, end in ranges:
        cursor = start
        while cursor + step <= end:
            slots.append(SlotWindow(cursor, cursor + step))
            cursor += step
    return slots
