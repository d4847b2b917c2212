"""Capability gate and per-operation authorization oracles."""

from .capabilities import (Capability, CapabilityChecker, RoleTable,
                           require_capability)
from .oracle import AllowAllOracle, AllowListOracle, AuthorizationOracle

__all__ = [
    "Capability",
    "CapabilityChecker",
    "RoleTable",
    "require_capability",
    "AuthorizationOracle",
    "AllowAllOracle",
    "AllowListOracle",
]
