"""
Adapter: in-memory wallet session.

Implements WalletSessionPort. Holds a connected flag and address that
the host (or a test) toggles; balances are illustrative.
"""

import logging
from typing import Optional

from intentflow.domain.command.entities import WalletSnapshot
from intentflow.domain.command.ports import WalletSessionPort

logger = logging.getLogger(__name__)


class InMemoryWalletSession(WalletSessionPort):
    """Wallet session kept in process memory.

    Args:
        connected: Whether the wallet starts connected.
        address: Address reported while connected.
        network: Network name reported in snapshots.
        balance: Display balance of the trading token.
        gas_balance: Display balance of the gas token.
    """

    def __init__(
        self,
        connected: bool = True,
        address: Optional[str] = "0x742d35Cc6634C0532925a3b844Bc454e4438f44e",
        network: str = "Ethereum",
        balance: str = "1,250.00 USDC",
        gas_balance: str = "0.5 ETH",
    ) -> None:
        self._connected = connected and address is not None
        self._address = address
        self._network = network
        self._balance = balance
        self._gas_balance = gas_balance

    def connect(self, address: str, network: Optional[str] = None) -> None:
        self._address = address
        if network:
            self._network = network
        self._connected = True
        logger.info("Wallet connected on %s", self._network)

    def disconnect(self) -> None:
        self._connected = False
        logger.info("Wallet disconnected")

    def is_connected(self) -> bool:
        return self._connected

    def address(self) -> Optional[str]:
        return self._address if self._connected else None

    def snapshot(self) -> WalletSnapshot:
        if not self._connected:
            return WalletSnapshot(
                connected=False,
                address=None,
                network=self._network,
                balance="0",
                gas_balance="0",
            )
        return WalletSnapshot(
            connected=True,
            address=self._address,
            network=self._network,
            balance=self._balance,
            gas_balance=self._gas_balance,
        )
