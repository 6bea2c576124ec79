HELP_TEXT = (
    "Commands:\n"
    "/menu - show menu buttons\n"
    "/help - show this help\n"
    "/addmed <name> - add medication button\n"
    "/addgb <value> [date time] [@note] - add glucose before meal\n"
    "/addga <value> [date time] [@note] - add glucose after meal\n\n"
    "Date/time examples:\n"
    "- 2/1 9:05\n"
    "- 02/01 09:05\n"
    "- 24/2/1 9:05\n"
    "- 2024/2/1 9:05\n"
    "If year is omitted, current year is used.\n"
    "Note example: @before breakfast\n\n"
    "Warning: data is stored as plain text CSV/TXT and is not encrypted by this bot."
)

MENU_TEXT = (
    "Diabetes diary menu:\n"
    "- Glucose before meal\n"
    "- Glucose after meal\n"
    "- Weight\n"
    "- Medications\n"
    "Use /addmed <name> to add medication button.\n"
    "Use /addgb or /addga for direct glucose entry with optional date/time."
)

FALLBACK_TEXT = "Choose an action from menu. Type /menu to show buttons or /addmed <name>."

GLUCOSE_USAGE = "Usage:\n/addgb <value> [MM/DD hh:mm] [@note]\n/addga <value> [MM/DD hh:mm] [@note]"
ADDMED_USAGE = "Usage: /addmed <medication name>"

PROMPT_GLUCOSE_BEFORE = "Enter glucose: <value> [date time] [@note], e.g. 5.8 2/1 9:05 @before breakfast"
PROMPT_GLUCOSE_AFTER = "Enter glucose: <value> [date time] [@note], e.g. 7.2 2/1 11:00 @after lunch"
PROMPT_WEIGHT = "Enter weight value (kg), for example: 78.4"

GLUCOSE_SAVED = "Glucose entry saved ✅"
SAVED = "Saved ✅"
MEDICATION_ADDED = "Medication added: {name}"
MEDICATION_EXISTS = "Medication already exists: {name}"
MEDICATION_LOGGED = "Medication usage saved ✅ ({name})"
UNKNOWN_MEDICATION = "Unknown medication. Use /addmed <name> first."

MISSING_GLUCOSE_VALUE = "Missing glucose value"
BAD_GLUCOSE_VALUE = "Invalid glucose value. Example: 5.8"
BAD_DATETIME = "Invalid date/time. Examples: 2/1 9:05, 02/01 09:05, 24/2/1 9:05, 2024/2/1 9:05"
BAD_WEIGHT = "Could not parse number. Use format like 78.4 (dot or comma)."
