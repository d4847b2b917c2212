"""
metawallet.state.world — a deterministic in-process host for contracts.

The `World` owns the journal, the address book of deployed contracts and the
native value balances carried by `Operation.value`. Contracts are plain Python
objects subclassing `Contract`; their entry points are methods decorated with
`metawallet.abi.external` and are reached through `World.call`, which decodes
the payload, checks the selector, moves attached value and runs the method in
a checkpoint. Return values travel back as canonical CBOR.

Exceptions
----------
- `MetaWalletError` raised by a callee propagates unchanged.
- Any other exception is wrapped in `ExternalCallFailed` (chained with
  `from`) so a misbehaving target surfaces as a data-class failure.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional, Protocol, Tuple

from metawallet import abi
from metawallet.errors import (ExternalCallFailed, InsufficientBalance,
                               MetaWalletError, UnknownSelector, UnknownTarget,
                               ZeroAmount)
from metawallet.utils.hash import sha3_256

from .journal import Journal

_NATIVE_BALANCE = b"native:balance"


class Dispatcher(Protocol):
    """The run-scoped dispatch a `CallContext` forwards through (see runtime.executor)."""

    caller: str
    state: Any

    def dispatch(self, target: str, payload: bytes, *, value: int = 0) -> bytes: ...


@dataclass(frozen=True)
class CallContext:
    """
    Per-call environment handed to every entry point.

    Attributes:
        world:   the host.
        caller:  address that issued this call.
        address: the account this context acts for (the callee, or the
                 caller itself for host-held contexts).
        run:     the chain run this call belongs to; only set for extensions
                 whose execution context is open in that run.
        value:   native value attached to the call.
    """

    world: "World"
    caller: str
    address: str
    run: Optional[Dispatcher] = None
    value: int = 0

    def call(self, target: str, payload: bytes, *, value: int = 0) -> bytes:
        """
        Issue `payload` as this context's account. Inside a chain run an
        extension goes through the run's authorized dispatch instead, so its
        forwarded calls are vetted exactly like top-level operations.
        """
        if self.run is not None:
            return self.run.dispatch(target, payload, value=value)
        return self.world.call(self.address, target, payload, value=value)


class Contract:
    """
    Base class for everything deployed in a `World`.

    Storage helpers `_get` / `_put` read and write this contract's slots in the
    world journal; `_invoke` performs a nested call with this contract as the
    caller (outside of any chain run's authorization).
    """

    def __init__(self, world: "World", *, label: Optional[str] = None) -> None:
        self.world = world
        self.address = world.register(self, label or type(self).__name__)

    # -- storage --------------------------------------------------------------

    def _get(self, key: bytes, default: Any = None) -> Any:
        return self.world.journal.get(self.address, key, default)

    def _put(self, key: bytes, value: Any) -> None:
        self.world.journal.set(self.address, key, value)

    # -- nested calls ---------------------------------------------------------

    def _invoke(self, target: str, name: str, *args: Any) -> Any:
        raw = self.world.call(self.address, target, abi.encode_call(name, *args))
        return abi.decode_result(raw)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.address})"


def slot(*parts: Any) -> bytes:
    """Build a storage key from text/int/bytes parts joined by `|`."""
    out = []
    for p in parts:
        if isinstance(p, bytes):
            out.append(p)
        else:
            out.append(str(p).encode("utf-8"))
    return b"|".join(out)


class World:
    """Address book + journal + native balances."""

    def __init__(self, journal: Optional[Journal] = None) -> None:
        self.journal = journal if journal is not None else Journal()
        self._contracts: Dict[str, Contract] = {}
        self._tables: Dict[type, Dict[bytes, Tuple[str, Any]]] = {}
        self._nonce = 0

    # -- addresses ------------------------------------------------------------

    def new_address(self, label: str) -> str:
        self._nonce += 1
        digest = sha3_256(b"metawallet:addr|" + label.encode("utf-8") + b"|" + str(self._nonce).encode())
        return "0x" + digest[:20].hex()

    def register(self, contract: Contract, label: str) -> str:
        address = self.new_address(label)
        self._contracts[address] = contract
        return address

    def resolve(self, address: str) -> Optional[Contract]:
        return self._contracts.get(address)

    def __contains__(self, address: object) -> bool:
        return address in self._contracts

    def ctx(self, caller: str, run: Optional[Dispatcher] = None, *, value: int = 0) -> CallContext:
        return CallContext(world=self, caller=caller, address=caller, run=run, value=value)

    # -- native value ---------------------------------------------------------

    def native_balance(self, address: str) -> int:
        return int(self.journal.get(address, _NATIVE_BALANCE, 0))

    def credit_native(self, address: str, amount: int) -> None:
        if amount <= 0:
            raise ZeroAmount("native amount")
        self.journal.set(address, _NATIVE_BALANCE, self.native_balance(address) + amount)

    def _move_native(self, src: str, dst: str, amount: int) -> None:
        have = self.native_balance(src)
        if have < amount:
            raise InsufficientBalance(account=src, have=have, need=amount)
        self.journal.set(src, _NATIVE_BALANCE, have - amount)
        self.journal.set(dst, _NATIVE_BALANCE, self.native_balance(dst) + amount)

    # -- checkpoints ----------------------------------------------------------

    @contextmanager
    def atomic(self) -> Iterator[int]:
        """Run the body in a journal checkpoint; revert on any exception."""
        marker = self.journal.checkpoint()
        try:
            yield marker
        except BaseException:
            self.journal.revert_to(marker)
            raise
        self.journal.commit_to(marker)

    # -- dispatch -------------------------------------------------------------

    def _entry(self, contract: Contract, sel: bytes) -> Optional[Tuple[str, Any]]:
        cls = type(contract)
        table = self._tables.get(cls)
        if table is None:
            table = abi.entry_points(cls)
            self._tables[cls] = table
        return table.get(sel)

    def call(
        self,
        caller: str,
        target: str,
        payload: bytes,
        *,
        value: int = 0,
        run: Optional[Dispatcher] = None,
    ) -> bytes:
        """Dispatch `payload` to `target` as `caller`; returns the CBOR-encoded result."""
        contract = self._contracts.get(target)
        if contract is None:
            raise UnknownTarget(target)
        sel, args = abi.decode_call(payload)
        entry = self._entry(contract, sel)
        if entry is None:
            raise UnknownSelector(target=target, selector=sel)
        _, fn = entry

        ctx = CallContext(world=self, caller=caller, address=target, run=run, value=value)
        with self.atomic():
            if value:
                self._move_native(caller, target, value)
            try:
                out = fn(contract, ctx, *args)
            except MetaWalletError:
                raise
            except Exception as e:
                raise ExternalCallFailed(
                    target=target, selector=sel, reason=f"{type(e).__name__}: {e}"
                ) from e
        return abi.encode_result(out)


__all__ = ["CallContext", "Contract", "Dispatcher", "World", "slot"]
