"""Exceptions raised by the data-access layer."""


class DataAccessError(RuntimeError):
    """The backing store is unreachable or delivered malformed rows.

    This is the only failure that aborts an analytics run. Arithmetic edge
    cases (empty groups, zero denominators) are resolved to sentinel values
    instead of raising.
    """
