"""Wallet provider seam: the browser wallet extension in the web client, a fixed address elsewhere."""
from typing import Optional, Protocol, runtime_checkable


class WalletUnavailable(Exception):
    """No wallet provider installed or the user rejected the connection."""


@runtime_checkable
class WalletProvider(Protocol):
    async def connect(self) -> str:
        """Ask the wallet to connect; returns the public address."""
        ...

    def is_connected(self) -> bool:
        """True when a cached wallet session exists (no prompt)."""
        ...

    def address(self) -> Optional[str]:
        ...


class StaticWallet:
    """Wallet with a fixed address (terminal client, tests)."""

    def __init__(self, address: Optional[str], *, connected: bool = False) -> None:
        self._address = address
        self._connected = connected and bool(address)

    async def connect(self) -> str:
        if not self._address:
            raise WalletUnavailable("No wallet address configured.")
        self._connected = True
        return self._address

    def is_connected(self) -> bool:
        return self._connected

    def address(self) -> Optional[str]:
        return self._address if self._connected else None
