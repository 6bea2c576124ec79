from __future__ import annotations


class EntryError(ValueError):
    """
    A user input problem the router reports back to the chat.

    `str(err)` is the text shown to the user.
    """


class NotANumber(EntryError):
    pass


class InvalidDateTime(EntryError):
    pass


class EmptyPayload(EntryError):
    pass


class UnknownMedication(EntryError):
    pass


class StorageFailure(RuntimeError):
    """Reading or appending a per-chat file failed."""
