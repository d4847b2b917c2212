"""
metawallet.extensions — chainable units, one per external-protocol interaction.

- `VaultDepositExtension`:   deposit assets into an external vault
- `VaultRedeemExtension`:    redeem shares from an external vault
- `AggregatorSwapExtension`: swap through an allow-listed router
"""

from .aggregator_swap import AggregatorSwapExtension
from .base import Extension
from .vault_deposit import VaultDepositExtension
from .vault_redeem import VaultRedeemExtension

__all__ = ["Extension", "VaultDepositExtension", "VaultRedeemExtension", "AggregatorSwapExtension"]
