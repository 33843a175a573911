from __future__ import annotations


class StoreUnavailableError(RuntimeError):
    """A read from the backing store failed; the caller may retry."""


class UnknownModuleError(LookupError):
    pass


class UnknownUserError(LookupError):
    pass
