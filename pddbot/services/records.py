from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path

from pddbot.core.errors import StorageFailure
from pddbot.core.state import GlucoseTag


logger = logging.getLogger(__name__)

MEDICATIONS_FILE = "medications.txt"


class RecordKind(Enum):
    GLUCOSE = ("glucose.csv", "timestamp,chat_id,tag,value_mmol_l,note")
    WEIGHT = ("weight.csv", "timestamp,chat_id,value_kg")
    MEDICATION_LOG = ("medication_log.csv", "timestamp,chat_id,medication")

    def __init__(self, filename: str, header: str) -> None:
        self.filename = filename
        self.header = header


def quote_field(value: str) -> str:
    return '"' + value.replace('"', '""') + '"'


def format_number(value: float) -> str:
    # 78.0 -> "78", 5.8 -> "5.8"
    text = repr(float(value))
    if text.endswith(".0"):
        return text[:-2]
    return text


@dataclass(frozen=True)
class GlucoseRecord:
    timestamp: datetime
    chat_id: int
    tag: GlucoseTag
    value: float
    note: str | None = None

    kind = RecordKind.GLUCOSE

    def to_line(self) -> str:
        return ",".join(
            [
                self.timestamp.isoformat(),
                str(self.chat_id),
                self.tag.value,
                format_number(self.value),
                quote_field(self.note or ""),
            ]
        )


@dataclass(frozen=True)
class WeightRecord:
    timestamp: datetime
    chat_id: int
    value_kg: float

    kind = RecordKind.WEIGHT

    def to_line(self) -> str:
        return f"{self.timestamp.isoformat()},{self.chat_id},{format_number(self.value_kg)}"


@dataclass(frozen=True)
class MedicationLogRecord:
    timestamp: datetime
    chat_id: int
    medication: str

    kind = RecordKind.MEDICATION_LOG

    def to_line(self) -> str:
        return f"{self.timestamp.isoformat()},{self.chat_id},{quote_field(self.medication)}"


Record = GlucoseRecord | WeightRecord | MedicationLogRecord


class RecordStore:
    """
    Append-only per-chat files under `data_dir/<chat_id>/`.

    - Each record kind has its own CSV with a header written before the first row.
    - Lines are only ever appended; nothing is rewritten or removed.
    - Appends to the same chat+file are serialized; different chats don't share a lock.
    """

    def __init__(self, data_dir: Path | str) -> None:
        self.data_dir = Path(data_dir)
        self._locks: dict[tuple[int, str], threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def chat_dir(self, chat_id: int) -> Path:
        return self.data_dir / str(chat_id)

    def path_for(self, chat_id: int, filename: str) -> Path:
        return self.chat_dir(chat_id) / filename

    def _lock_for(self, chat_id: int, filename: str) -> threading.Lock:
        key = (chat_id, filename)
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    def _append_line(self, chat_id: int, filename: str, line: str, *, header: str | None = None) -> None:
        path = self.path_for(chat_id, filename)
        with self._lock_for(chat_id, filename):
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                is_new = not path.exists() or path.stat().st_size == 0
                with path.open("a", encoding="utf-8", newline="\n") as f:
                    if is_new and header is not None:
                        f.write(header + "\n")
                    f.write(line + "\n")
            except OSError as e:
                raise StorageFailure(f"failed to append to {path}: {e}") from e

    def append(self, record: Record) -> None:
        kind = record.kind
        self._append_line(record.chat_id, kind.filename, record.to_line(), header=kind.header)
        logger.debug("Appended %s row for chat %s", kind.name.lower(), record.chat_id)

    def read_medication_lines(self, chat_id: int) -> list[str]:
        path = self.path_for(chat_id, MEDICATIONS_FILE)
        if not path.exists():
            return []
        try:
            return path.read_text(encoding="utf-8").splitlines()
        except OSError as e:
            raise StorageFailure(f"failed to read {path}: {e}") from e

    def append_medication_name(self, chat_id: int, name: str) -> None:
        self._append_line(chat_id, MEDICATIONS_FILE, name)
