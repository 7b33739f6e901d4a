"""EtherFund — Amount Unit Conversion.

On-chain amounts are integer wei. Conversion to and from ether goes through
Decimal so base units are never rounded; floats are for display ratios only.
"""

from decimal import Decimal, InvalidOperation, localcontext
from typing import Union

from web3 import Web3

from etherfund.core.errors import ValidationError

WEI_PER_ETHER = 10**18


def wei_to_ether(amount_wei: int) -> Decimal:
    """Exact wei → ether conversion."""
    return Decimal(Web3.from_wei(int(amount_wei), "ether"))


def ether_to_wei(amount: Union[str, Decimal, int]) -> int:
    """Exact ether → wei conversion.

    Accepts a decimal string as typed into a form. More than 18 fractional
    digits cannot be represented in wei and are rejected instead of rounded.
    """
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation as e:
        raise ValidationError(f"Not a decimal amount: {amount!r}") from e
    if not value.is_finite():
        raise ValidationError(f"Not a decimal amount: {amount!r}")
    if value < 0:
        raise ValidationError(f"Amount must not be negative: {amount!r}")
    with localcontext() as ctx:
        ctx.prec = 999
        scaled = value * WEI_PER_ETHER
    if scaled != scaled.to_integral_value():
        raise ValidationError(f"Amount has more than 18 decimal places: {amount!r}")
    return int(Web3.to_wei(value, "ether"))


def format_ether(amount: Decimal) -> str:
    """Plain decimal string without exponent or trailing zeros."""
    text = format(amount, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"
