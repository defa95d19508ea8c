# # Exception types shared across adapters, engine and store.

from __future__ import annotations


class UnwrappedError(Exception):
    pass


class MalformedEventError(UnwrappedError):
    # # One history record could not be turned into a WatchEvent.
    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class HistorySourceError(UnwrappedError):
    def __init__(self, message: str, transient: bool = True):
        super().__init__(message)
        self.transient = transient


class DuplicateStatsError(UnwrappedError):
    def __init__(self, user_id: str, year: int):
        super().__init__(f"Stats already stored for user {user_id} / {year}")
        self.user_id = user_id
        self.year = year


class TokenError(UnwrappedError):
    pass
