# merci/utils/money.py

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation

Money = Decimal

def D(x) -> Money:
    if isinstance(x, Decimal):
        return x
    if isinstance(x, bool):
        raise ValueError(f"invalid amount: {x!r}")
    try:
        d = Decimal(str(x if x not in (None, "") else "0"))
    except InvalidOperation:
        raise ValueError(f"invalid amount: {x!r}")
    if not d.is_finite():
        raise ValueError(f"invalid amount: {x!r}")
    return d

def quantum(places: int = 2) -> Decimal:
    return Decimal(1).scaleb(-places)

def round_money(x, places: int = 2) -> Money:
    # half-up, same rule the checkout preview uses
    return D(x).quantize(quantum(places), rounding=ROUND_HALF_UP)
