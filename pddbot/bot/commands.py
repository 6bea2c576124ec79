from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from zoneinfo import ZoneInfo

from pddbot.bot import text
from pddbot.core.errors import EmptyPayload, InvalidDateTime, NotANumber
from pddbot.core.numparse import parse_decimal
from pddbot.core.state import GlucoseTag
from pddbot.core.timeparse import parse_flexible_datetime


GLUCOSE_COMMANDS = (
    ("/addgb", GlucoseTag.BEFORE_MEAL),
    ("/add_glucose_before", GlucoseTag.BEFORE_MEAL),
    ("/addga", GlucoseTag.AFTER_MEAL),
    ("/add_glucose_after", GlucoseTag.AFTER_MEAL),
)
ADDMED_COMMANDS = ("/addmed", "/add_medication")


@dataclass(frozen=True)
class GlucosePayload:
    value: float
    timestamp: datetime | None
    note: str | None


def _strip_command(message: str, command: str) -> str | None:
    # "/cmd" alone or "/cmd <rest>"; "/cmdx" is a different command.
    if message == command:
        return ""
    if message.startswith(command + " "):
        return message[len(command) + 1 :].strip()
    return None


def parse_glucose_add_command(message: str) -> tuple[GlucoseTag, str] | None:
    for command, tag in GLUCOSE_COMMANDS:
        rest = _strip_command(message, command)
        if rest is not None:
            return tag, rest
    return None


def parse_addmed_command(message: str) -> str | None:
    for command in ADDMED_COMMANDS:
        rest = _strip_command(message, command)
        if rest is not None:
            return rest
    return None


def split_note(payload: str) -> tuple[str, str | None]:
    """
    Split `<head> @<note>` at the first `@`.

    At most one space after `@` is dropped; the rest of the note is kept as typed.
    A bare `@` means no note.
    """
    head, sep, note = payload.partition("@")
    if not sep:
        return payload.strip(), None
    if note.startswith(" "):
        note = note[1:]
    return head.strip(), (note or None)


def parse_glucose_payload(payload: str, *, tz: ZoneInfo, now: datetime | None = None) -> GlucosePayload:
    """
    Parse `<value> [date time] [@note]`.

    Raises EmptyPayload / NotANumber / InvalidDateTime with a message meant for the user.
    """
    head, note = split_note(payload)
    tokens = head.split()
    if not tokens:
        raise EmptyPayload(text.MISSING_GLUCOSE_VALUE)
    value = parse_decimal(tokens[0])
    if value is None:
        raise NotANumber(text.BAD_GLUCOSE_VALUE)

    rest = " ".join(tokens[1:])
    if not rest:
        return GlucosePayload(value=value, timestamp=None, note=note)
    timestamp = parse_flexible_datetime(rest, tz=tz, now=now)
    if timestamp is None:
        raise InvalidDateTime(text.BAD_DATETIME)
    return GlucosePayload(value=value, timestamp=timestamp, note=note)
