class PennywiseError(Exception):
    """Base class for errors surfaced to the user."""


class ImportStructureError(PennywiseError):
    """The CSV layout could not be recognised; nothing was imported."""


class EmptyImportError(PennywiseError):
    """The CSV was readable but produced no transactions."""


class PersistenceError(PennywiseError):
    """The store rejected a write. Local state has already been rolled back."""


class PartialBatchError(PersistenceError):
    """A batched insert landed only some rows; the whole batch is treated as failed."""

    def __init__(self, message: str, *, sent: int, stored: int) -> None:
        super().__init__(message)
        self.sent = sent
        self.stored = stored


class ProtectedCategoryError(PennywiseError):
    """The sentinel category cannot be deleted or edited."""


class NotFoundError(PennywiseError):
    """No record with the requested id or pattern exists."""


class DuplicateCategoryError(PennywiseError):
    """A category with the same id already exists."""
