"""
metawallet.vault — accounting for the assets the wallet custodies.

- `math`:       virtual-offset share conversions and the bps delta
- `commitment`: Merkle commitment over a (strategy id, value) breakdown
- `ledger`:     VaultLedger (virtual total assets, settlement guard, pause)
- `requests`:   RequestLedger (per-controller deposit/redeem requests)
"""

from .commitment import compute_commitment, strategy_id, verify_breakdown
from .ledger import VaultLedger
from .requests import RequestLedger

__all__ = ["VaultLedger", "RequestLedger", "compute_commitment", "verify_breakdown", "strategy_id"]
