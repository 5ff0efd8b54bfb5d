"""Typed exception hierarchy for ledger errors.

Lets the API layer map failures to status codes (missing record vs bad
input vs ledger state that cannot support the request) without parsing
messages. None of these are retried.
"""


class LedgerError(Exception):
    """Base exception for all ledger, lot and performance errors."""

    pass


class NotFoundError(LedgerError):
    """A transaction, lot, sale, split, account or ticker does not exist."""

    def __init__(self, message: str, entity: str = "", entity_id: str = ""):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(message)


class InvalidArgumentError(LedgerError):
    """A caller-supplied value is out of range (zero split factor, bad method)."""

    pass


class InvalidInputError(InvalidArgumentError):
    """An editor action string was not recognised."""

    pass


class InconsistentStateError(LedgerError):
    """Stored ledger data cannot support the requested operation."""

    pass


class NoValidPeriodsError(InconsistentStateError):
    """Every sub-period of a return calculation had a zero starting base."""

    pass


class UpstreamUnavailableError(LedgerError):
    """The quote provider returned no usable price."""

    def __init__(self, message: str, ticker: str = ""):
        self.ticker = ticker
        super().__init__(message)
