from decimal import ROUND_HALF_UP, Decimal

CURRENCY_SYMBOLS = {"GHS": "GH₵", "USD": "$"}


def round_money(amount) -> float:
    """Округление до копеек (песев) половина вверх"""
    return float(Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def format_money(amount, currency: str = "GHS") -> str:
    symbol = CURRENCY_SYMBOLS.get(currency, "$")
    return f"{symbol}{round_money(amount):,.2f}"


def format_cedi(amount) -> str:
    return format_money(amount, "GHS")
