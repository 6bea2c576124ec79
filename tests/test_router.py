from __future__ import annotations

import asyncio
from dataclasses import replace
from pathlib import Path

import pytest

from conftest import ALLOWED_CHAT, OTHER_CHAT, read_lines
from pddbot.bot import text
from pddbot.bot.keyboards import (
    BTN_GLUCOSE_AFTER_MEAL,
    BTN_GLUCOSE_BEFORE_MEAL,
    BTN_SHOW_MENU,
    BTN_WEIGHT,
)
from pddbot.bot.router import CommandRouter
from pddbot.core.config import Settings
from pddbot.core.errors import StorageFailure
from pddbot.core.state import GlucoseTag, WeightEntry


def _chat_file(settings: Settings, name: str, chat_id: int = ALLOWED_CHAT) -> Path:
    return settings.data_dir / str(chat_id) / name


@pytest.mark.asyncio
async def test_not_allowed_chat_is_dropped(router: CommandRouter, settings: Settings) -> None:
    assert await router.handle(999, "/menu") is None
    assert await router.handle(999, BTN_WEIGHT) is None
    assert router.pending.get(999) is None
    assert not settings.data_dir.exists()


@pytest.mark.asyncio
async def test_menu_and_help(router: CommandRouter) -> None:
    for message in ("/start", "/menu", BTN_SHOW_MENU):
        reply = await router.handle(ALLOWED_CHAT, message)
        assert reply is not None
        assert reply.text == text.MENU_TEXT
    reply = await router.handle(ALLOWED_CHAT, "/help")
    assert reply is not None
    assert reply.text == text.HELP_TEXT


@pytest.mark.asyncio
async def test_keyboard_lists_medications_two_per_row(router: CommandRouter) -> None:
    for name in ("Aspirin", "Metformin", "Insulin"):
        await router.handle(ALLOWED_CHAT, f"/addmed {name}")
    reply = await router.handle(ALLOWED_CHAT, "/menu")
    assert reply is not None
    assert reply.keyboard == [
        [BTN_GLUCOSE_BEFORE_MEAL, BTN_GLUCOSE_AFTER_MEAL],
        [BTN_WEIGHT, BTN_SHOW_MENU],
        ["💊 Aspirin", "💊 Metformin"],
        ["💊 Insulin"],
    ]


@pytest.mark.asyncio
async def test_direct_glucose_command(router: CommandRouter, settings: Settings) -> None:
    reply = await router.handle(ALLOWED_CHAT, "/addgb 5,8 2024/2/1 9:05 @before breakfast")
    assert reply is not None
    assert reply.text == text.GLUCOSE_SAVED
    assert read_lines(_chat_file(settings, "glucose.csv")) == [
        "timestamp,chat_id,tag,value_mmol_l,note",
        f'2024-02-01T09:05:00+01:00,{ALLOWED_CHAT},before_meal,5.8,"before breakfast"',
    ]


@pytest.mark.asyncio
async def test_direct_glucose_without_datetime_uses_clock(router: CommandRouter, settings: Settings) -> None:
    await router.handle(ALLOWED_CHAT, "/add_glucose_after 7.2")
    lines = read_lines(_chat_file(settings, "glucose.csv"))
    assert lines[1] == f'2024-03-05T12:00:00+00:00,{ALLOWED_CHAT},after_meal,7.2,""'


@pytest.mark.asyncio
async def test_direct_glucose_errors_write_nothing(router: CommandRouter, settings: Settings) -> None:
    reply = await router.handle(ALLOWED_CHAT, "/addgb")
    assert reply is not None and reply.text == text.GLUCOSE_USAGE
    reply = await router.handle(ALLOWED_CHAT, "/addgb abc")
    assert reply is not None and reply.text == text.BAD_GLUCOSE_VALUE
    reply = await router.handle(ALLOWED_CHAT, "/addga 5.8 2/30 9:05")
    assert reply is not None and reply.text == text.BAD_DATETIME
    assert not _chat_file(settings, "glucose.csv").exists()


@pytest.mark.asyncio
async def test_weight_retry_then_save(router: CommandRouter, settings: Settings) -> None:
    reply = await router.handle(ALLOWED_CHAT, BTN_WEIGHT)
    assert reply is not None and reply.text == text.PROMPT_WEIGHT
    assert router.pending.get(ALLOWED_CHAT) is WeightEntry.WEIGHT

    reply = await router.handle(ALLOWED_CHAT, "abc")
    assert reply is not None and reply.text == text.BAD_WEIGHT
    assert router.pending.get(ALLOWED_CHAT) is WeightEntry.WEIGHT

    reply = await router.handle(ALLOWED_CHAT, "78.4")
    assert reply is not None and reply.text == text.SAVED
    assert router.pending.get(ALLOWED_CHAT) is None
    assert read_lines(_chat_file(settings, "weight.csv")) == [
        "timestamp,chat_id,value_kg",
        f"2024-03-05T12:00:00+00:00,{ALLOWED_CHAT},78.4",
    ]

    reply = await router.handle(ALLOWED_CHAT, "79")
    assert reply is not None and reply.text == text.FALLBACK_TEXT


@pytest.mark.asyncio
async def test_glucose_continuation(router: CommandRouter, settings: Settings) -> None:
    await router.handle(ALLOWED_CHAT, BTN_GLUCOSE_AFTER_MEAL)
    assert router.pending.get(ALLOWED_CHAT) is GlucoseTag.AFTER_MEAL

    reply = await router.handle(ALLOWED_CHAT, "7.2 2/31 11:00")
    assert reply is not None and reply.text == text.BAD_DATETIME
    assert router.pending.get(ALLOWED_CHAT) is GlucoseTag.AFTER_MEAL

    reply = await router.handle(ALLOWED_CHAT, "7,2 2/1 11:00 @after lunch")
    assert reply is not None and reply.text == text.SAVED
    assert router.pending.get(ALLOWED_CHAT) is None
    assert read_lines(_chat_file(settings, "glucose.csv"))[1] == (
        f'2024-02-01T11:00:00+01:00,{ALLOWED_CHAT},after_meal,7.2,"after lunch"'
    )


@pytest.mark.asyncio
async def test_direct_command_leaves_pending_alone(router: CommandRouter, settings: Settings) -> None:
    await router.handle(ALLOWED_CHAT, BTN_WEIGHT)
    reply = await router.handle(ALLOWED_CHAT, "/addgb 6.0")
    assert reply is not None and reply.text == text.GLUCOSE_SAVED
    assert router.pending.get(ALLOWED_CHAT) is WeightEntry.WEIGHT
    assert not _chat_file(settings, "weight.csv").exists()


@pytest.mark.asyncio
async def test_new_button_replaces_pending(router: CommandRouter) -> None:
    await router.handle(ALLOWED_CHAT, BTN_WEIGHT)
    await router.handle(ALLOWED_CHAT, BTN_GLUCOSE_BEFORE_MEAL)
    assert router.pending.get(ALLOWED_CHAT) is GlucoseTag.BEFORE_MEAL


@pytest.mark.asyncio
async def test_pending_is_per_chat(router: CommandRouter) -> None:
    await router.handle(ALLOWED_CHAT, BTN_WEIGHT)
    reply = await router.handle(OTHER_CHAT, "78.4")
    assert reply is not None and reply.text == text.FALLBACK_TEXT
    assert router.pending.get(ALLOWED_CHAT) is WeightEntry.WEIGHT


@pytest.mark.asyncio
async def test_addmed_flow(router: CommandRouter) -> None:
    reply = await router.handle(ALLOWED_CHAT, "/addmed")
    assert reply is not None and reply.text == text.ADDMED_USAGE

    reply = await router.handle(ALLOWED_CHAT, "/addmed  Vitamin   D ")
    assert reply is not None and reply.text == "Medication added: Vitamin D"

    reply = await router.handle(ALLOWED_CHAT, "/add_medication vitamin d")
    assert reply is not None and reply.text == "Medication already exists: vitamin d"
    assert router.medications.names(ALLOWED_CHAT) == ["Vitamin D"]


@pytest.mark.asyncio
async def test_medication_button_logs_usage(router: CommandRouter, settings: Settings) -> None:
    await router.handle(ALLOWED_CHAT, '/addmed Vit "D"')
    reply = await router.handle(ALLOWED_CHAT, '💊 vit "d"')
    assert reply is not None
    assert reply.text == 'Medication usage saved ✅ (Vit "D")'
    assert read_lines(_chat_file(settings, "medication_log.csv")) == [
        "timestamp,chat_id,medication",
        f'2024-03-05T12:00:00+00:00,{ALLOWED_CHAT},"Vit ""D"""',
    ]


@pytest.mark.asyncio
async def test_unknown_medication_button_is_not_registered(router: CommandRouter, settings: Settings) -> None:
    reply = await router.handle(ALLOWED_CHAT, "💊 Ibuprofen")
    assert reply is not None and reply.text == text.UNKNOWN_MEDICATION
    assert router.medications.names(ALLOWED_CHAT) == []
    assert not _chat_file(settings, "medication_log.csv").exists()


@pytest.mark.asyncio
async def test_medication_button_wins_over_pending(router: CommandRouter) -> None:
    await router.handle(ALLOWED_CHAT, "/addmed Aspirin")
    await router.handle(ALLOWED_CHAT, BTN_WEIGHT)
    reply = await router.handle(ALLOWED_CHAT, "💊 Aspirin")
    assert reply is not None and reply.text.startswith("Medication usage saved")
    assert router.pending.get(ALLOWED_CHAT) is WeightEntry.WEIGHT


@pytest.mark.asyncio
async def test_fallback(router: CommandRouter) -> None:
    reply = await router.handle(ALLOWED_CHAT, "hello")
    assert reply is not None
    assert reply.text == text.FALLBACK_TEXT
    assert reply.keyboard[0] == [BTN_GLUCOSE_BEFORE_MEAL, BTN_GLUCOSE_AFTER_MEAL]


@pytest.mark.asyncio
async def test_storage_failure_propagates_and_keeps_pending(router: CommandRouter, monkeypatch: pytest.MonkeyPatch) -> None:
    def broken_append(record: object) -> None:
        raise StorageFailure("disk full")

    await router.handle(ALLOWED_CHAT, BTN_WEIGHT)
    monkeypatch.setattr(router.store, "append", broken_append)
    with pytest.raises(StorageFailure):
        await router.handle(ALLOWED_CHAT, "78.4")
    assert router.pending.get(ALLOWED_CHAT) is WeightEntry.WEIGHT

    # The chat is not stuck after the failure.
    monkeypatch.undo()
    reply = await router.handle(ALLOWED_CHAT, "78.4")
    assert reply is not None and reply.text == text.SAVED


@pytest.mark.asyncio
async def test_concurrent_messages_from_one_chat_save_once(router: CommandRouter, settings: Settings) -> None:
    await router.handle(ALLOWED_CHAT, BTN_WEIGHT)
    replies = await asyncio.gather(
        router.handle(ALLOWED_CHAT, "78.4"),
        router.handle(ALLOWED_CHAT, "78.5"),
    )
    assert [r.text for r in replies if r is not None] == [text.SAVED, text.FALLBACK_TEXT]
    assert len(read_lines(_chat_file(settings, "weight.csv"))) == 2


@pytest.mark.asyncio
async def test_datetime_out_of_range_is_reported(settings: Settings) -> None:
    router = CommandRouter(replace(settings, default_timezone="America/New_York"))
    reply = await router.handle(ALLOWED_CHAT, "/addgb 5.8 9999/12/31 23:30")
    assert reply is not None and reply.text == text.BAD_DATETIME
    assert not _chat_file(settings, "glucose.csv").exists()
