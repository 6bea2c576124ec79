from __future__ import annotations

from telegram import ReplyKeyboardMarkup


BTN_GLUCOSE_BEFORE_MEAL = "🩸 Glucose: Before meal"
BTN_GLUCOSE_AFTER_MEAL = "🩸 Glucose: After meal"
BTN_WEIGHT = "⚖️ Weight"
BTN_SHOW_MENU = "📋 Show menu"
MED_BUTTON_PREFIX = "💊 "


def medication_button(name: str) -> str:
    return f"{MED_BUTTON_PREFIX}{name}"


def parse_medication_button(text: str) -> str | None:
    if not text.startswith(MED_BUTTON_PREFIX):
        return None
    return text[len(MED_BUTTON_PREFIX):].strip()


def menu_rows(medications: list[str]) -> list[list[str]]:
    rows = [
        [BTN_GLUCOSE_BEFORE_MEAL, BTN_GLUCOSE_AFTER_MEAL],
        [BTN_WEIGHT, BTN_SHOW_MENU],
    ]
    for i in range(0, len(medications), 2):
        rows.append([medication_button(name) for name in medications[i : i + 2]])
    return rows


def menu_keyboard(rows: list[list[str]]) -> ReplyKeyboardMarkup:
    return ReplyKeyboardMarkup(rows, resize_keyboard=True, is_persistent=True)
