# merci/services/discount_engine.py
"""
Coupon decision engine.

Given a campaign's rules, a cart snapshot and today's date, decide whether a
code applies and how much it takes off. Everything here is pure: storage is
reached only through the ``CampaignRepository`` passed to ``apply_code`` and
usage caps are left to a ``UsageLedger`` owned by the caller.

Order of checks in ``is_applicable``:
  1) Expired        (today > valid_until)
  2) NotYetStarted  (today < valid_from)
  3) Inactive       (status != active)
  4) CartTooSmall   (subtotal < min_cart_amount)
  5) ScopeMismatch  (no line qualifies under apply_scope)
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal, ROUND_DOWN
from enum import Enum
from typing import Iterable, Optional, Protocol

from ..utils.money import D, Money, quantum, round_money
from ..utils.convert import to_bool

DISCOUNT_TYPES = ("percent", "absolute")
APPLY_SCOPES = ("all", "categories", "products")
STATUSES = ("active", "paused")

ZERO = Decimal("0")
HUNDRED = Decimal("100")


class ErrorKind(str, Enum):
    CODE_NOT_FOUND = "CodeNotFound"
    INACTIVE = "Inactive"
    EXPIRED = "Expired"
    NOT_YET_STARTED = "NotYetStarted"
    CART_TOO_SMALL = "CartTooSmall"
    SCOPE_MISMATCH = "ScopeMismatch"
    CAP_REACHED = "CapReached"
    INTERNAL_ERROR = "InternalError"


REASON_MESSAGES = {
    ErrorKind.CODE_NOT_FOUND: "This code does not exist.",
    ErrorKind.INACTIVE: "This code is paused.",
    ErrorKind.EXPIRED: "This code has expired.",
    ErrorKind.NOT_YET_STARTED: "This code is not valid yet.",
    ErrorKind.CART_TOO_SMALL: "Your cart does not reach the minimum amount for this code.",
    ErrorKind.SCOPE_MISMATCH: "None of the products in your cart qualify for this code.",
    ErrorKind.CAP_REACHED: "You have reached the usage limit for this code.",
    ErrorKind.INTERNAL_ERROR: "Something went wrong. Please try again.",
}


def _id_set(values) -> frozenset:
    if not values:
        return frozenset()
    return frozenset(int(v) for v in values)


def _opt_money(x) -> Optional[Money]:
    return None if x is None else D(x)


# ---- campaign rules ----------------------------------------------------------

@dataclass(frozen=True)
class CampaignRules:
    """Read-only view of a campaign, as the engine sees it."""
    code: str
    name: str
    discount_type: str
    discount_value: Money
    id: Optional[str] = None
    store_id: Optional[str] = None
    valid_from: Optional[date] = None
    valid_until: Optional[date] = None
    apply_scope: str = "all"
    include_category_ids: frozenset = frozenset()
    exclude_category_ids: frozenset = frozenset()
    include_product_ids: frozenset = frozenset()
    exclude_product_ids: frozenset = frozenset()
    max_discount_amount: Optional[Money] = None
    min_cart_amount: Optional[Money] = None
    status: str = "active"
    exclude_sale_items: bool = False
    monthly_cap_amount: Optional[Money] = None

    def __post_init__(self):
        def set_(k, v):
            object.__setattr__(self, k, v)

        set_("discount_value", D(self.discount_value))
        set_("max_discount_amount", _opt_money(self.max_discount_amount))
        set_("min_cart_amount", _opt_money(self.min_cart_amount))
        set_("monthly_cap_amount", _opt_money(self.monthly_cap_amount))
        for k in ("include_category_ids", "exclude_category_ids",
                  "include_product_ids", "exclude_product_ids"):
            set_(k, _id_set(getattr(self, k)))

        if self.discount_type not in DISCOUNT_TYPES:
            raise ValueError(f"discount_type must be one of {DISCOUNT_TYPES}")
        if self.apply_scope not in APPLY_SCOPES:
            raise ValueError(f"apply_scope must be one of {APPLY_SCOPES}")
        if self.status not in STATUSES:
            raise ValueError(f"status must be one of {STATUSES}")
        if self.discount_value <= 0:
            raise ValueError("discount_value must be > 0")
        if self.discount_type == "percent" and self.discount_value > HUNDRED:
            raise ValueError("percent discount_value must be <= 100")
        if self.max_discount_amount is not None and self.max_discount_amount < 0:
            raise ValueError("max_discount_amount must be >= 0")

    @property
    def label(self) -> str:
        return f"{self.name} ({self.code})"

    def is_expired(self, today: date) -> bool:
        return self.valid_until is not None and today > self.valid_until


# ---- cart snapshot -----------------------------------------------------------

def _as_int(value, field_name: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be an integer")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"{field_name} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{field_name} must be an integer")


@dataclass(frozen=True)
class CartLine:
    name: str
    quantity: int
    unit_price: Money
    product_id: Optional[int] = None
    category_ids: frozenset = frozenset()
    on_sale: bool = False

    def __post_init__(self):
        object.__setattr__(self, "unit_price", D(self.unit_price))
        object.__setattr__(self, "category_ids", _id_set(self.category_ids))
        if self.quantity < 1:
            raise ValueError("quantity must be >= 1")
        if self.unit_price < 0:
            raise ValueError("unit_price must be >= 0")

    @property
    def line_total(self) -> Money:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class CartSnapshot:
    """Cart as submitted at checkout. The subtotal is always recomputed."""
    items: tuple = ()
    places: int = 2

    def __post_init__(self):
        object.__setattr__(self, "items", tuple(
            replace(it, unit_price=round_money(it.unit_price, self.places))
            for it in self.items
        ))

    @property
    def subtotal(self) -> Money:
        return sum((it.line_total for it in self.items), ZERO)

    @classmethod
    def from_payload(cls, items, places: int = 2) -> "CartSnapshot":
        """
        Build a snapshot from widget JSON. Accepts ``quantity``/``qty`` and
        ``unit_price``/``unitPrice``/``price``. Any client subtotal is ignored.
        """
        if items is None:
            items = []
        if not isinstance(items, list):
            raise ValueError("cart items must be a list")
        lines = []
        for idx, raw in enumerate(items):
            if not isinstance(raw, dict):
                raise ValueError(f"cart item {idx} must be an object")
            qty = raw.get("quantity", raw.get("qty", 1))
            price = raw.get("unit_price", raw.get("unitPrice", raw.get("price")))
            if price is None:
                raise ValueError(f"cart item {idx} has no price")
            cats = raw.get("category_ids")
            if cats is None and raw.get("category_id") is not None:
                cats = [raw["category_id"]]
            pid = raw.get("product_id")
            try:
                lines.append(CartLine(
                    name=str(raw.get("name") or "Item"),
                    quantity=_as_int(qty, "quantity"),
                    unit_price=D(price),
                    product_id=None if pid is None else _as_int(pid, "product_id"),
                    category_ids=[_as_int(c, "category_ids") for c in (cats or [])],
                    on_sale=to_bool(raw.get("on_sale", False)),
                ))
            except ValueError as e:
                raise ValueError(f"cart item {idx}: {e}")
        return cls(items=tuple(lines), places=places)


# ---- validity + scope --------------------------------------------------------

@dataclass(frozen=True)
class Applicability:
    applicable: bool
    reason: Optional[ErrorKind] = None


def _line_matches(rules: CampaignRules, line: CartLine) -> bool:
    if rules.exclude_sale_items and line.on_sale:
        return False
    scope = rules.apply_scope
    if scope == "all":
        return True
    if scope == "categories":
        # exclusion wins over inclusion
        if line.category_ids & rules.exclude_category_ids:
            return False
        if not rules.include_category_ids:
            return True
        return bool(line.category_ids & rules.include_category_ids)
    if scope == "products":
        if line.product_id in rules.exclude_product_ids:
            return False
        if not rules.include_product_ids:
            return True
        return line.product_id in rules.include_product_ids
    raise ValueError(f"unknown apply_scope {scope!r}")


def matching_items(rules: CampaignRules, items: Iterable[CartLine]) -> list:
    return [it for it in items if _line_matches(rules, it)]


def discount_base(rules: CampaignRules, items: Iterable[CartLine]) -> Money:
    return sum((it.line_total for it in matching_items(rules, items)), ZERO)


def is_applicable(rules: CampaignRules, cart: CartSnapshot, today: date) -> Applicability:
    if rules.valid_until is not None and today > rules.valid_until:
        return Applicability(False, ErrorKind.EXPIRED)
    if rules.valid_from is not None and today < rules.valid_from:
        return Applicability(False, ErrorKind.NOT_YET_STARTED)
    if rules.status != "active":
        return Applicability(False, ErrorKind.INACTIVE)
    if rules.min_cart_amount is not None and cart.subtotal < rules.min_cart_amount:
        return Applicability(False, ErrorKind.CART_TOO_SMALL)
    if not matching_items(rules, cart.items):
        # an empty cart under scope=all is not a mismatch, just worth nothing
        if cart.items or rules.apply_scope != "all":
            return Applicability(False, ErrorKind.SCOPE_MISMATCH)
    return Applicability(True)


# ---- amount ------------------------------------------------------------------

def compute_discount(rules: CampaignRules, base, places: int = 2) -> Money:
    """
    Discount magnitude for ``base`` (never negative, never above the base
    nor above max_discount_amount). Rounded half-up to ``places`` digits.
    """
    q = quantum(places)
    base = D(base)
    if base <= 0:
        return ZERO.quantize(q)

    if rules.discount_type == "percent":
        amount = base * rules.discount_value / HUNDRED
    else:
        amount = min(rules.discount_value, base)

    ceiling = base
    if rules.max_discount_amount is not None:
        ceiling = min(ceiling, rules.max_discount_amount)
    amount = min(amount, ceiling)

    amount = round_money(amount, places)
    # rounding must not lift the amount over a ceiling finer than the minor unit
    ceiling = ceiling.quantize(q, rounding=ROUND_DOWN)
    return min(amount, ceiling)


# ---- top-level decision ------------------------------------------------------

@dataclass(frozen=True)
class Decision:
    ok: bool
    code: Optional[str] = None
    amount: Money = ZERO
    label: Optional[str] = None
    error: Optional[ErrorKind] = None
    campaign_id: Optional[str] = None

    @classmethod
    def failure(cls, error: ErrorKind, code: str | None = None, campaign_id=None) -> "Decision":
        return cls(ok=False, code=code, error=error, campaign_id=campaign_id)

    @property
    def message(self) -> Optional[str]:
        return REASON_MESSAGES.get(self.error) if self.error else None

    def as_dict(self, signed: bool = True) -> dict:
        """Widget contract. ``signed`` reports the amount as a debit (negative)."""
        if not self.ok:
            return {"ok": False, "error": self.error.value, "message": self.message}
        amount = -self.amount if (signed and self.amount) else self.amount
        return {"ok": True, "code": self.code, "amount": float(amount), "label": self.label}


class CampaignRepository(Protocol):
    def find_by_code(self, store_id: str, code: str) -> Optional[CampaignRules]:
        """Case-insensitive lookup of a store's campaign, whatever its status."""


class UsageLedger(Protocol):
    """Check-then-increment hook for usage caps, owned by the caller."""

    def reserve(self, store_id: str, client_id: str, rules: CampaignRules,
                amount: Money, checkout_id: str | None = None) -> Optional[str]:
        """Return a reservation id, or None when the cap would be exceeded."""

    def commit(self, reservation_id: str) -> None: ...

    def release(self, reservation_id: str) -> None: ...


def apply_code(repository: CampaignRepository, store_id: str, code: str,
               cart: CartSnapshot, today: date, places: int = 2) -> Decision:
    code = (code or "").strip()
    if not code:
        return Decision.failure(ErrorKind.CODE_NOT_FOUND)

    rules = repository.find_by_code(store_id, code)
    if rules is None:
        return Decision.failure(ErrorKind.CODE_NOT_FOUND, code=code.upper())

    check = is_applicable(rules, cart, today)
    if not check.applicable:
        return Decision.failure(check.reason, code=rules.code, campaign_id=rules.id)

    amount = compute_discount(rules, discount_base(rules, cart.items), places)
    return Decision(
        ok=True,
        code=rules.code,
        amount=amount,
        label=rules.label,
        campaign_id=rules.id,
    )
