"""Exceptions raised by RewardShop domain services."""


class RewardShopError(RuntimeError):
    """Base class for domain exceptions."""


class NotFound(RewardShopError):
    """Raised when a product, NPC store or user cannot be resolved."""


class NoTarget(NotFound):
    """Raised when a transfer recipient cannot be resolved."""


class InsufficientFunds(RewardShopError):
    """Raised when a balance cannot satisfy a debit."""

    def __init__(self, required: int, available: int) -> None:
        super().__init__(f"Insufficient funds: have {available}, need {required}")
        self.required = required
        self.available = available


class OnCooldown(RewardShopError):
    """Raised when a product was bought too recently."""

    def __init__(self, seconds_remaining: int) -> None:
        super().__init__(f"Cooldown active for {seconds_remaining} seconds")
        self.seconds_remaining = seconds_remaining


class NotSellable(RewardShopError):
    """Raised when an item has no sell price or is broken."""


class ZeroOrInvalidAmount(RewardShopError):
    """Raised for zero, negative or unparsable amounts."""


class FulfillmentFailed(RewardShopError):
    """Raised when a product could not be delivered."""


class ExternalProviderUnavailable(RewardShopError):
    """Raised when an optional external capability is not installed."""


class ExternalProviderRejected(RewardShopError):
    """Raised when an external capability refuses an operation."""


class PermissionDenied(RewardShopError):
    """Raised when a user lacks the capability for an action."""


class InvalidField(RewardShopError):
    """Raised when a draft field cannot be set to the given value."""

    def __init__(self, field: str, value: object, reason: str = "") -> None:
        message = f"Invalid value {value!r} for field '{field}'"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.field = field
        self.value = value
