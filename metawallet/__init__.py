"""
MetaWallet — atomic extension-chain execution engine and vault accounting.

The package exposes only lightweight metadata at import time. Import the
subpackages explicitly:

    from metawallet.wallet import MetaWallet
    from metawallet.runtime.types import ChainStep, USE_PREVIOUS_OUTPUT
    from metawallet.extensions import VaultDepositExtension
"""

from .version import __version__, build_info

__all__ = ["__version__", "build_info"]
