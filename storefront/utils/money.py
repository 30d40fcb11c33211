from decimal import Decimal, ROUND_HALF_UP

Money = Decimal

_CENT = Decimal("0.01")


def D(x) -> Money:
    if isinstance(x, Decimal):
        return x
    if x is None or x == "":
        return Decimal("0")
    return Decimal(str(x))


def round2(x) -> Money:
    return D(x).quantize(_CENT, rounding=ROUND_HALF_UP)


def to_number(x) -> float | None:
    """JSON-friendly money: 2-decimal float, None stays None."""
    if x is None:
        return None
    return float(round2(x))


def money_str(x) -> str:
    return f"{round2(x):.2f}"
