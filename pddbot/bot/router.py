from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from pddbot.bot import text
from pddbot.bot.commands import (
    parse_addmed_command,
    parse_glucose_add_command,
    parse_glucose_payload,
)
from pddbot.bot.keyboards import (
    BTN_GLUCOSE_AFTER_MEAL,
    BTN_GLUCOSE_BEFORE_MEAL,
    BTN_SHOW_MENU,
    BTN_WEIGHT,
    menu_rows,
    parse_medication_button,
)
from pddbot.core.config import Settings
from pddbot.core.errors import EmptyPayload, EntryError, NotANumber, StorageFailure, UnknownMedication
from pddbot.core.numparse import parse_decimal
from pddbot.core.state import ChatLocks, GlucoseTag, Pending, PendingStore, WeightEntry
from pddbot.core.timeparse import now_utc
from pddbot.services.medications import MedicationRegistry, normalize_medication_name
from pddbot.services.records import GlucoseRecord, MedicationLogRecord, RecordStore, WeightRecord


logger = logging.getLogger(__name__)

MENU_COMMANDS = ("/start", "/menu", BTN_SHOW_MENU)

BUTTON_PROMPTS: dict[str, tuple[Pending, str]] = {
    BTN_GLUCOSE_BEFORE_MEAL: (GlucoseTag.BEFORE_MEAL, text.PROMPT_GLUCOSE_BEFORE),
    BTN_GLUCOSE_AFTER_MEAL: (GlucoseTag.AFTER_MEAL, text.PROMPT_GLUCOSE_AFTER),
    BTN_WEIGHT: (WeightEntry.WEIGHT, text.PROMPT_WEIGHT),
}


@dataclass(frozen=True)
class Reply:
    text: str
    keyboard: list[list[str]]


class CommandRouter:
    """
    Turns one incoming chat text into at most one reply.

    Order of checks: allow-list, direct commands and menu buttons, medication
    buttons, pending free-text continuation, fallback. A direct command never
    touches the pending slot; only a successful continuation clears it.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        store: RecordStore | None = None,
        pending: PendingStore | None = None,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        self.settings = settings
        self.store = store or RecordStore(settings.data_dir)
        self.medications = MedicationRegistry(self.store)
        self.pending = pending or PendingStore()
        self._locks = ChatLocks()
        self._clock = clock

    async def handle(self, chat_id: int, message: str) -> Reply | None:
        if chat_id not in self.settings.allowed_chat_ids:
            logger.debug("Dropping message from chat %s (not allowed)", chat_id)
            return None
        async with self._locks.hold(chat_id):
            reply_text = self._dispatch(chat_id, (message or "").strip())
            return Reply(text=reply_text, keyboard=self.keyboard(chat_id))

    def keyboard(self, chat_id: int) -> list[list[str]]:
        try:
            medications = self.medications.names(chat_id)
        except StorageFailure:
            logger.warning("Could not read medication list for chat %s", chat_id, exc_info=True)
            medications = []
        return menu_rows(medications)

    def _dispatch(self, chat_id: int, message: str) -> str:
        if message == "/help":
            return text.HELP_TEXT

        glucose_cmd = parse_glucose_add_command(message)
        if glucose_cmd is not None:
            tag, payload = glucose_cmd
            try:
                self._save_glucose(chat_id, tag, payload)
            except EntryError as e:
                return str(e)
            return text.GLUCOSE_SAVED

        med_name = parse_addmed_command(message)
        if med_name is not None:
            return self._add_medication(chat_id, med_name)

        if message in MENU_COMMANDS:
            return text.MENU_TEXT

        if message in BUTTON_PROMPTS:
            kind, prompt = BUTTON_PROMPTS[message]
            self.pending.set(chat_id, kind)
            return prompt

        button_name = parse_medication_button(message)
        if button_name is not None:
            try:
                return self._log_medication(chat_id, button_name)
            except UnknownMedication as e:
                return str(e)

        pending = self.pending.get(chat_id)
        if pending is not None:
            try:
                self._continue_pending(chat_id, pending, message)
            except EntryError as e:
                return str(e)
            self.pending.clear(chat_id)
            return text.SAVED

        return text.FALLBACK_TEXT

    def _save_glucose(self, chat_id: int, tag: GlucoseTag, payload: str) -> None:
        if not payload:
            raise EmptyPayload(text.GLUCOSE_USAGE)
        parsed = parse_glucose_payload(payload, tz=self.settings.tz, now=self._clock())
        record = GlucoseRecord(
            timestamp=parsed.timestamp or self._clock(),
            chat_id=chat_id,
            tag=tag,
            value=parsed.value,
            note=parsed.note,
        )
        self.store.append(record)
        logger.info("Saved glucose (%s) for chat %s", tag.value, chat_id)

    def _save_weight(self, chat_id: int, message: str) -> None:
        value = parse_decimal(message)
        if value is None:
            raise NotANumber(text.BAD_WEIGHT)
        self.store.append(WeightRecord(timestamp=self._clock(), chat_id=chat_id, value_kg=value))
        logger.info("Saved weight for chat %s", chat_id)

    def _continue_pending(self, chat_id: int, pending: Pending, message: str) -> None:
        if isinstance(pending, GlucoseTag):
            self._save_glucose(chat_id, pending, message)
        else:
            self._save_weight(chat_id, message)

    def _add_medication(self, chat_id: int, name: str) -> str:
        if not name:
            return text.ADDMED_USAGE
        if self.medications.add(chat_id, name):
            logger.info("Added medication for chat %s", chat_id)
            return text.MEDICATION_ADDED.format(name=normalize_medication_name(name))
        return text.MEDICATION_EXISTS.format(name=name)

    def _log_medication(self, chat_id: int, name: str) -> str:
        registered = self.medications.lookup(chat_id, name)
        if registered is None:
            raise UnknownMedication(text.UNKNOWN_MEDICATION)
        self.store.append(MedicationLogRecord(timestamp=self._clock(), chat_id=chat_id, medication=registered))
        logger.info("Saved medication usage for chat %s", chat_id)
        return text.MEDICATION_LOGGED.format(name=registered)
