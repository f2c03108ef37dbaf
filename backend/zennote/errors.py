"""Errors raised by the note store."""


class StoreError(Exception):
    """Base class for store failures."""


class ReferenceNotFound(StoreError):
    """An operation named a folder or note id that does not exist."""

    def __init__(self, kind: str, entity_id: str | None) -> None:
        super().__init__(f"{kind.capitalize()} not found: {entity_id}")
        self.kind = kind
        self.entity_id = entity_id


class InvalidIdentifier(StoreError):
    """A transferable identifier is not shaped like a note id."""

    def __init__(self, value: object) -> None:
        super().__init__(f"Not a note identifier: {value!r}")
        self.value = value


class InvalidMove(StoreError):
    """A folder cannot be moved under itself or one of its subfolders."""


class PersistenceError(StoreError):
    """The persistence gateway failed; in-memory state was left unchanged."""
