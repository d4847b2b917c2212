"""MetaWallet tests package.

Houses unit/integration tests for:
- the journal, ABI codec and world host
- the extension registry, chain builder and three-phase executor
- the deposit / redeem / swap extensions
- the vault ledger (settlement guard, commitment, pause) and request books

This file ensures pytest package discovery is consistent.
"""
