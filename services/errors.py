class LedgerError(Exception):
    """Base class for errors raised by ledger operations."""

    title: str = "Ledger Error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidInputError(LedgerError):
    """A field is missing or outside its allowed domain. Raised before anything is written."""

    title = "Invalid Input"


class NotFoundError(LedgerError):
    """A referenced player, run, drop or sale does not exist."""

    title = "Not Found"

    def __init__(self, kind: str, identifier: str) -> None:
        super().__init__(f"{kind} `{identifier}` was not found")
        self.kind = kind
        self.identifier = identifier
