import asyncio
import logging
from decimal import Decimal
from typing import Any, Optional

import aiohttp

from src.config import Settings, settings
from src.exceptions import AccountNotFoundError, LedgerError
from src.ledger.schemas import AssetBalance, LedgerTransaction


logger = logging.getLogger(__name__)


class HorizonClient:
    """Client for reading accounts and transactions from Stellar Horizon."""

    def __init__(
        self,
        config: Settings = settings,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        """Initialize client."""
        self.base_url = config.STELLAR_HORIZON_URL.rstrip("/")
        self.token_code = config.STAKING_TOKEN_CODE
        self.token_issuer = config.STAKING_TOKEN_ISSUER
        self.timeout = aiohttp.ClientTimeout(total=config.LEDGER_TIMEOUT)
        self._session = session

    async def _get(self, path: str) -> Optional[dict[str, Any]]:
        """
        GET a Horizon resource.

        Returns:
            Decoded JSON body, or None when Horizon answers 404
        """
        url = f"{self.base_url}{path}"
        session = self._session or aiohttp.ClientSession()

        try:
            async with session.get(
                url,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            ) as response:
                if response.status == 404:
                    return None

                if response.status != 200:
                    text = await response.text()
                    raise LedgerError(
                        f"Horizon request failed: {response.status} - {text}"
                    )

                return await response.json()

        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error("Horizon API error for %s: %s", url, e)
            raise LedgerError(f"Horizon API error: {e}") from e

        finally:
            if self._session is None:
                await session.close()

    async def load_balances(self, address: str) -> list[AssetBalance]:
        """
        Load all balances held by a Stellar account.

        Args:
            address: Stellar public key (G...)

        Returns:
            List[AssetBalance]: Balances reported by Horizon
        """
        data = await self._get(f"/accounts/{address}")
        if data is None:
            raise AccountNotFoundError(address)

        return [
            AssetBalance.model_validate(balance)
            for balance in data.get("balances", [])
        ]

    async def get_token_balance(self, address: str) -> Decimal:
        """
        Get the staking token balance of an account.

        Accounts without a trustline to the token report zero.

        Args:
            address: Stellar public key (G...)

        Returns:
            Decimal: Token balance
        """
        balances = await self.load_balances(address)

        for balance in balances:
            if balance.matches(self.token_code, self.token_issuer):
                return balance.balance

        return Decimal("0")

    async def get_asset_balance(
        self, address: str, asset_code: str
    ) -> Decimal:
        """
        Get the largest balance an account holds in an asset code.

        Any issuer of the code counts. "XLM" selects the native balance.

        Args:
            address: Stellar public key (G...)
            asset_code: Asset code, e.g. "KALE" or "XLM"

        Returns:
            Decimal: Balance, zero when the account holds none
        """
        balances = await self.load_balances(address)
        return max(
            (
                balance.balance
                for balance in balances
                if balance.has_code(asset_code)
            ),
            default=Decimal("0"),
        )

    async def get_transaction(
        self, tx_hash: str
    ) -> Optional[LedgerTransaction]:
        """
        Fetch a transaction by hash.

        Args:
            tx_hash: Transaction hash

        Returns:
            LedgerTransaction or None if Horizon does not know it
        """
        data = await self._get(f"/transactions/{tx_hash}")
        if data is None:
            return None

        return LedgerTransaction.model_validate(data)


horizon_client = HorizonClient()
