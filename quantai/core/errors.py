from __future__ import annotations


class TradingError(Exception):
    """Base class for local validation failures raised by the accounting core."""

    title = "Trade Rejected"


class InvalidQuantity(TradingError):
    title = "Invalid Quantity"


class InvalidPrice(TradingError):
    title = "Invalid Price"


class InvalidAmount(TradingError):
    title = "Invalid Amount"


class InsufficientFunds(TradingError):
    title = "Insufficient Funds"

    def __init__(self, required: float, available: float) -> None:
        self.required = float(required)
        self.available = float(available)
        super().__init__(f"You need ${self.required:,.2f} but only have ${self.available:,.2f}.")


class InsufficientHoldings(TradingError):
    title = "Insufficient Holdings"

    def __init__(self, symbol: str, requested: float, held: float) -> None:
        self.symbol = symbol
        self.requested = float(requested)
        self.held = float(held)
        super().__init__(f"You only have {self.held:g} shares of {symbol} (requested {self.requested:g}).")


class NoPosition(InsufficientHoldings):
    title = "No Position"

    def __init__(self, symbol: str, requested: float = 0.0) -> None:
        super().__init__(symbol, requested, 0.0)


class SettingsError(Exception):
    pass


class AuthError(Exception):
    pass
