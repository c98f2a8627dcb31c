# src/airdrop_ledger/core/errors.py

"""
Ledger error taxonomy.

Every failure a caller can observe is a LedgerError subclass with a stable
`kind`. Validation errors are raised inside the invocation's transaction, so
raising one rolls back every write made so far.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorKind(StrEnum):
    DUPLICATE_TOKEN = "DuplicateToken"
    METADATA_FETCH_FAILED = "MetadataFetchFailed"
    UNREGISTERED_TOKEN = "UnregisteredToken"
    OVERFLOW = "Overflow"
    INVALID_AMOUNT = "InvalidAmount"
    INSUFFICIENT_DEPOSIT = "InsufficientDeposit"
    INSUFFICIENT_FUNDS = "InsufficientFunds"
    UNKNOWN_TASK = "UnknownTask"
    TASK_NOT_ACTIVE = "TaskNotActive"
    ALREADY_CLAIMED = "AlreadyClaimed"
    TASK_EXHAUSTED = "TaskExhausted"
    TRANSFER_FAILED = "TransferFailed"
    TRANSFER_IN_FLIGHT = "TransferInFlight"
    MALFORMED_MESSAGE = "MalformedMessage"
    FEATURE_DISABLED = "FeatureDisabled"


class LedgerError(Exception):
    kind: ErrorKind

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.kind.value)
        self.message = message or self.kind.value

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


class DuplicateToken(LedgerError):
    kind = ErrorKind.DUPLICATE_TOKEN


class MetadataFetchFailed(LedgerError):
    kind = ErrorKind.METADATA_FETCH_FAILED


class UnregisteredToken(LedgerError):
    kind = ErrorKind.UNREGISTERED_TOKEN


class Overflow(LedgerError):
    kind = ErrorKind.OVERFLOW


class InvalidAmount(LedgerError):
    kind = ErrorKind.INVALID_AMOUNT


class InsufficientDeposit(LedgerError):
    kind = ErrorKind.INSUFFICIENT_DEPOSIT


class InsufficientFunds(LedgerError):
    kind = ErrorKind.INSUFFICIENT_FUNDS


class UnknownTask(LedgerError):
    kind = ErrorKind.UNKNOWN_TASK


class TaskNotActive(LedgerError):
    kind = ErrorKind.TASK_NOT_ACTIVE


class AlreadyClaimed(LedgerError):
    kind = ErrorKind.ALREADY_CLAIMED


class TaskExhausted(LedgerError):
    kind = ErrorKind.TASK_EXHAUSTED


class TransferFailed(LedgerError):
    """Raised by a token host when the remote contract rejects a transfer."""

    kind = ErrorKind.TRANSFER_FAILED


class TransferInFlight(LedgerError):
    kind = ErrorKind.TRANSFER_IN_FLIGHT


class MalformedMessage(LedgerError):
    kind = ErrorKind.MALFORMED_MESSAGE


class FeatureDisabled(LedgerError):
    kind = ErrorKind.FEATURE_DISABLED
