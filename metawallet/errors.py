"""
metawallet.errors — typed exceptions for the chain engine and the vault ledgers.

Every failure is reported synchronously as the immediate outcome of the call
that triggered it; a chain run that sees any of these aborts as a whole and its
journal checkpoint is reverted. Nothing is retried internally.

Hierarchy
---------
MetaWalletError (base)
 ├─ ConfigurationError : registry / chain-shape problems
 │    DuplicateExtension, ExtensionNotFound, NullReference, EmptyChain, ChainTooLong
 ├─ Unauthorized       : capability and allow-list failures
 │    MissingCapability, OperationDenied, TargetNotAllowed, NotOwner
 ├─ StateError         : the ledger or run is in the wrong state for the request
 │    Paused, AlreadyInitialized, NotInitialized, LengthMismatch, DeltaExceeded,
 │    InvalidBps, ContextActive, InsufficientLiquidity
 ├─ DataError          : malformed or unusable inputs, failing external calls
 │    InvalidStepData, MissingPreviousExtension, ZeroAmount, InvalidAmount,
 │    UnknownTarget, UnknownSelector, InsufficientBalance, InsufficientAllowance,
 │    MalformedPayload, CommitmentMismatch, ExternalCallFailed
 └─ ThresholdError     : realized output below the caller's minimum
      OutputBelowMinimum

These classes import nothing from the rest of the package so they can be used
from the journal, the ABI layer and the simulated protocols without cycles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class MetaWalletError(Exception):
    """
    Base error.

    Attributes:
        message: Human-readable explanation.
        code:    Stable machine code string (e.g., 'DELTA_EXCEEDED').
        data:    Optional structured details (kept JSON-serializable).
    """
    message: str = "metawallet error"
    code: str = "METAWALLET_ERROR"
    data: Optional[Dict[str, Any]] = field(default=None)

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.data:
            return f"{self.code}: {self.message} ({self.data})"
        return f"{self.code}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-safe dict for logs and results."""
        out: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            out["data"] = self.data
        return out


def _details(data: Optional[Dict[str, Any]], **fields: Any) -> Optional[Dict[str, Any]]:
    d: Dict[str, Any] = {}
    if data:
        d.update(data)
    for k, v in fields.items():
        if v is not None:
            d.setdefault(k, v)
    return d or None


# -------- families ------------------------------------------------------------


class ConfigurationError(MetaWalletError):
    def __init__(self, message: str = "configuration error", *, code: str = "CONFIGURATION",
                 data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code=code, data=data)


class Unauthorized(MetaWalletError):
    def __init__(self, message: str = "unauthorized", *, code: str = "UNAUTHORIZED",
                 data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code=code, data=data)


class StateError(MetaWalletError):
    def __init__(self, message: str = "invalid state", *, code: str = "STATE",
                 data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code=code, data=data)


class DataError(MetaWalletError):
    def __init__(self, message: str = "invalid data", *, code: str = "DATA",
                 data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code=code, data=data)


class ThresholdError(MetaWalletError):
    def __init__(self, message: str = "threshold not met", *, code: str = "THRESHOLD",
                 data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code=code, data=data)


# -------- configuration -------------------------------------------------------


class DuplicateExtension(ConfigurationError):
    def __init__(self, extension_id: str):
        super().__init__("extension id already installed", code="DUPLICATE_EXTENSION",
                         data={"extension_id": extension_id})


class ExtensionNotFound(ConfigurationError):
    def __init__(self, extension_id: str, *, step: Optional[int] = None):
        super().__init__("extension id not installed", code="EXTENSION_NOT_FOUND",
                         data=_details(None, extension_id=extension_id, step=step))


class NullReference(ConfigurationError):
    def __init__(self, what: str = "reference"):
        super().__init__(f"{what} must not be null", code="NULL_REFERENCE", data={"what": what})


class EmptyChain(ConfigurationError):
    def __init__(self) -> None:
        super().__init__("chain has no steps", code="EMPTY_CHAIN")


class ChainTooLong(ConfigurationError):
    def __init__(self, *, kind: str, size: int, limit: int):
        super().__init__(f"chain exceeds {kind} limit", code="CHAIN_TOO_LONG",
                         data={"kind": kind, "size": size, "limit": limit})


# -------- authorization -------------------------------------------------------


class MissingCapability(Unauthorized):
    def __init__(self, caller: str, capability: str):
        super().__init__("caller lacks capability", code="MISSING_CAPABILITY",
                         data={"caller": caller, "capability": capability})


class OperationDenied(Unauthorized):
    def __init__(self, *, target: str, selector: bytes, index: Optional[int] = None):
        super().__init__("operation denied by authorization oracle", code="OPERATION_DENIED",
                         data=_details(None, target=target, selector=selector.hex(), index=index))


class TargetNotAllowed(Unauthorized):
    def __init__(self, target: str):
        super().__init__("target is not allow-listed", code="TARGET_NOT_ALLOWED",
                         data={"target": target})


class NotOwner(Unauthorized):
    def __init__(self, caller: str):
        super().__init__("caller is not the owner", code="NOT_OWNER", data={"caller": caller})


# -------- state -----------------------------------------------------------------


class Paused(StateError):
    def __init__(self, op: str):
        super().__init__("vault is paused", code="PAUSED", data={"op": op})


class AlreadyInitialized(StateError):
    def __init__(self, what: str = "vault"):
        super().__init__(f"{what} already initialized", code="ALREADY_INITIALIZED")


class NotInitialized(StateError):
    def __init__(self, what: str = "vault"):
        super().__init__(f"{what} not initialized", code="NOT_INITIALIZED")


class LengthMismatch(StateError):
    def __init__(self, left: int, right: int):
        super().__init__("parallel arrays differ in length", code="LENGTH_MISMATCH",
                         data={"left": left, "right": right})


class DeltaExceeded(StateError):
    def __init__(self, *, current: int, proposed: int, delta_bps: Optional[int], max_bps: int):
        super().__init__("settlement delta exceeds limit", code="DELTA_EXCEEDED",
                         data=_details(None, current=current, proposed=proposed,
                                       delta_bps=delta_bps, max_bps=max_bps))


class InvalidBps(StateError):
    def __init__(self, bps: int):
        super().__init__("basis points out of range", code="INVALID_BPS", data={"bps": bps})


class ContextActive(StateError):
    def __init__(self, extension_id: str, *, active: bool):
        msg = "extension context already active" if active else "extension context not active"
        super().__init__(msg, code="CONTEXT_ACTIVE" if active else "CONTEXT_INACTIVE",
                         data={"extension_id": extension_id})


class InsufficientLiquidity(StateError):
    def __init__(self, *, requested: int, available: int):
        super().__init__("not enough idle assets", code="INSUFFICIENT_LIQUIDITY",
                         data={"requested": requested, "available": available})


# -------- data ------------------------------------------------------------------


class InvalidStepData(DataError):
    def __init__(self, reason: str, *, extension_id: Optional[str] = None):
        super().__init__("malformed step data", code="INVALID_STEP_DATA",
                         data=_details(None, reason=reason, extension_id=extension_id))


class MissingPreviousExtension(DataError):
    def __init__(self, extension_id: str):
        super().__init__("dynamic amount requires a previous step", code="MISSING_PREVIOUS",
                         data={"extension_id": extension_id})


class ZeroAmount(DataError):
    def __init__(self, what: str = "amount"):
        super().__init__(f"{what} must be non-zero", code="ZERO_AMOUNT", data={"what": what})


class InvalidAmount(DataError):
    def __init__(self, what: str, value: object):
        super().__init__(f"{what} must be an unsigned 256-bit integer", code="INVALID_AMOUNT",
                         data={"what": what, "value": repr(value)})


class UnknownTarget(DataError):
    def __init__(self, target: str):
        super().__init__("no contract at target", code="UNKNOWN_TARGET", data={"target": target})


class UnknownSelector(DataError):
    def __init__(self, *, target: str, selector: bytes):
        super().__init__("target has no entry point for selector", code="UNKNOWN_SELECTOR",
                         data={"target": target, "selector": selector.hex()})


class InsufficientBalance(DataError):
    def __init__(self, *, account: str, have: int, need: int):
        super().__init__("insufficient balance", code="INSUFFICIENT_BALANCE",
                         data={"account": account, "have": have, "need": need})


class InsufficientAllowance(DataError):
    def __init__(self, *, owner: str, spender: str, have: int, need: int):
        super().__init__("insufficient allowance", code="INSUFFICIENT_ALLOWANCE",
                         data={"owner": owner, "spender": spender, "have": have, "need": need})


class MalformedPayload(DataError):
    def __init__(self, reason: str):
        super().__init__("malformed call payload", code="MALFORMED_PAYLOAD",
                         data={"reason": reason})


class CommitmentMismatch(DataError):
    def __init__(self, reason: str):
        super().__init__("strategy breakdown does not match the commitment",
                         code="COMMITMENT_MISMATCH", data={"reason": reason})


class ExternalCallFailed(DataError):
    def __init__(self, *, target: str, selector: bytes, reason: str):
        super().__init__("external call failed", code="EXTERNAL_CALL_FAILED",
                         data={"target": target, "selector": selector.hex(), "reason": reason})


# -------- threshold -------------------------------------------------------------


class OutputBelowMinimum(ThresholdError):
    def __init__(self, *, realized: int, minimum: int):
        super().__init__("realized output below minimum", code="OUTPUT_BELOW_MINIMUM",
                         data={"realized": realized, "minimum": minimum})


# -------- helper utilities ------------------------------------------------------


def error_to_result_fields(err: MetaWalletError) -> Dict[str, Any]:
    """
    Map an error to canonical result-like fields:

        {"status": "CONFIGURATION" | "UNAUTHORIZED" | "STATE" | "DATA" | "THRESHOLD" | "ERROR",
         "error":  {code, message, data?}}
    """
    for family, status in (
        (ConfigurationError, "CONFIGURATION"),
        (Unauthorized, "UNAUTHORIZED"),
        (StateError, "STATE"),
        (DataError, "DATA"),
        (ThresholdError, "THRESHOLD"),
    ):
        if isinstance(err, family):
            return {"status": status, "error": err.to_dict()}
    return {"status": "ERROR", "error": err.to_dict()}


__all__ = [
    "MetaWalletError",
    "ConfigurationError",
    "Unauthorized",
    "StateError",
    "DataError",
    "ThresholdError",
    "DuplicateExtension",
    "ExtensionNotFound",
    "NullReference",
    "EmptyChain",
    "ChainTooLong",
    "MissingCapability",
    "OperationDenied",
    "TargetNotAllowed",
    "NotOwner",
    "Paused",
    "AlreadyInitialized",
    "NotInitialized",
    "LengthMismatch",
    "DeltaExceeded",
    "InvalidBps",
    "ContextActive",
    "InsufficientLiquidity",
    "InvalidStepData",
    "MissingPreviousExtension",
    "ZeroAmount",
    "InvalidAmount",
    "UnknownTarget",
    "UnknownSelector",
    "InsufficientBalance",
    "InsufficientAllowance",
    "MalformedPayload",
    "CommitmentMismatch",
    "ExternalCallFailed",
    "OutputBelowMinimum",
    "error_to_result_fields",
]
