"""
Ledger module for reading balances and transactions from Stellar Horizon.
"""

from src.ledger.client import HorizonClient, horizon_client
from src.ledger.schemas import AssetBalance, LedgerTransaction
