from __future__ import annotations


class SyncError(Exception):
    """Fatal condition detected before any file is processed."""


class InvalidSource(SyncError):
    pass


class DestinationUncreatable(SyncError):
    pass


class InvalidMapping(SyncError):
    pass
