"""
metawallet.protocols — simulated external protocols the extensions talk to.

- `Token`: fungible token with allowances and minter-gated supply.
- `ExternalVault`: single-asset tokenized yield vault.
- `SwapRouter`: aggregator with configured per-pair rates.
"""

from .external_vault import ExternalVault
from .swap_router import SwapRouter
from .token import Token

__all__ = ["Token", "ExternalVault", "SwapRouter"]
