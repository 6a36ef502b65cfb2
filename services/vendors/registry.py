"""Registry of configured vendor clients."""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.logging import get_logger
from core.result import Failure, Success

if TYPE_CHECKING:
    from core.result import Result
    from services.vendors.base import VendorClient

logger = get_logger(__name__)


class VendorNotFoundError(Exception):
    """Raised when no client is registered for a vendor code."""

    def __init__(self, vendor_code: str) -> None:
        """Initialize with the vendor code."""
        self.vendor_code = vendor_code
        super().__init__(f"No client registered for vendor: {vendor_code}")


class VendorRegistry:
    """
    Ordered registry of vendor clients.

    Registration order is dispatch order, which in turn decides the
    order of equally priced listings in a merged result.

    Example:
        >>> registry = VendorRegistry()
        >>> registry.register(HtmlVendorClient(FLIPKART))
        >>> registry.codes
        ['flipkart']
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._clients: dict[str, VendorClient] = {}

    def register(self, client: VendorClient) -> None:
        """
        Register a client under its vendor code.

        Args:
            client: The client to register.

        Raises:
            ValueError: If the vendor code is empty or already registered.
        """
        code = client.vendor_code
        if not code:
            msg = "vendor_code cannot be empty"
            raise ValueError(msg)
        if code in self._clients:
            msg = f"vendor already registered: {code}"
            raise ValueError(msg)
        self._clients[code] = client

    def get(self, vendor_code: str) -> Result[VendorClient, VendorNotFoundError]:
        """
        Look up a client by vendor code.

        Returns:
            Result containing the client or VendorNotFoundError.
        """
        client = self._clients.get(vendor_code)
        if client is None:
            return Failure(VendorNotFoundError(vendor_code))
        return Success(client)

    def clients(self) -> list[VendorClient]:
        """Return all registered clients in registration order."""
        return list(self._clients.values())

    @property
    def codes(self) -> list[str]:
        """Return registered vendor codes in registration order."""
        return list(self._clients)

    def __len__(self) -> int:
        """Return the number of registered clients."""
        return len(self._clients)

    def __contains__(self, vendor_code: object) -> bool:
        """Check if a vendor code is registered."""
        return vendor_code in self._clients

    async def close(self) -> None:
        """Close every registered client."""
        for code, client in self._clients.items():
            try:
                await client.close()
            except Exception as e:
                logger.error("Error closing vendor client", vendor=code, error=str(e))
