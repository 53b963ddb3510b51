"""Domain errors raised by services and repositories.

Routes translate these into ``HTTPException`` responses; nothing below the
route layer imports FastAPI.
"""


class CartDeskError(Exception):
    pass


class ShopifyConfigError(CartDeskError):
    """Shop domain or Admin API token is missing."""


class ShopifyAPIError(CartDeskError):
    """Non-2xx answer from the Shopify Admin API. Carries the upstream status and body."""

    def __init__(self, status_code: int, body: str):
        super().__init__(f"Shopify API error [{status_code}]: {body}")
        self.status_code = status_code
        self.body = body


class NotFoundError(CartDeskError):
    pass


class ValidationError(CartDeskError):
    pass
