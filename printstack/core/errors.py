from typing import Dict, List, Optional


class PrintStackError(Exception):
    """Base class for errors raised by the inventory services."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_detail(self):
        return self.message


class NotFoundError(PrintStackError):
    status_code = 404


class FieldValidationError(PrintStackError):
    """One or more field values failed their rule."""

    status_code = 422

    def __init__(self, errors: Dict[str, str], message: Optional[str] = None):
        self.errors = dict(errors)
        super().__init__(
            message
            or "Validation failed: " + ", ".join(self.errors.values())
        )

    def to_detail(self):
        return {"message": self.message, "errors": self.errors}


class ReferentialIntegrityError(PrintStackError):
    """A filament delete was blocked by models or print records using it."""

    status_code = 409

    def __init__(self, message: str, references=None):
        super().__init__(message)
        self.references = references

    def to_detail(self):
        detail = {"message": self.message}
        if self.references is not None:
            detail["references"] = self.references.summary()
        return detail


class PersistenceError(PrintStackError):
    status_code = 507


class ImportFormatError(PrintStackError):
    status_code = 400


class InsufficientInventoryWarning(PrintStackError):
    """Recording a print would drive remaining filament weight below zero.

    Not fatal: callers may retry with an explicit override.
    """

    status_code = 409

    def __init__(self, message: str, shortages: List[dict]):
        super().__init__(message)
        self.shortages = shortages

    def to_detail(self):
        return {
            "message": self.message,
            "shortages": self.shortages,
            "overridable": True,
        }
