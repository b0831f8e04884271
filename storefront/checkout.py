from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from functools import reduce
from typing import Dict, Iterable, Optional, Sequence, Tuple

from .config import parse_product_id
from .currency import format_cedi, round_money
from .domain import (
    CASH,
    MOBILE_MONEY,
    PAID,
    PARTIAL,
    UNPAID,
    CartItem,
    CustomerInfo,
    OrderLine,
    PaymentAllocation,
    PaymentMeta,
    StoreConfig,
    StoreOrderGroup,
)
from .errors import AssignmentError
from .ftypes import Either, Maybe

ASSIGNMENT_FAILED_MESSAGE = "Could not assign items to a store. Please try again."


# ============ Формы оформления ============


@dataclass(frozen=True)
class CheckoutForm:
    full_name: str
    address: str
    city: str
    country: str
    phone: str = ""


@dataclass(frozen=True)
class PaymentForm:
    method: str = MOBILE_MONEY
    reference: str = ""
    sender_name: str = ""
    amount_sent: str = ""
    confirm_partial: bool = False


@dataclass(frozen=True)
class MobileMoneyCheck:
    amount_sent: float
    is_partial: bool
    balance: float
    message: str


# ============ Разбиение корзины по магазинам ============


def resolve_store(
    product_id: str, store_configs: Sequence[StoreConfig]
) -> Maybe[Tuple[StoreConfig, str]]:
    """Магазин и id документа позиции; голый id → первый магазин из конфигурации"""
    parsed = parse_product_id(product_id)
    if parsed.is_some():
        owner_id, store_id, doc_id = parsed.value
        if owner_id and store_id:
            return Maybe.some((StoreConfig(owner_id, store_id), doc_id))
        return Maybe.nothing()
    if store_configs:
        return Maybe.some((store_configs[0], product_id))
    return Maybe.nothing()


def to_order_line(item: CartItem, doc_id: str) -> OrderLine:
    return OrderLine(
        id=doc_id,
        name=item.name,
        price=item.price,
        quantity=item.quantity,
        image_url=item.image_url,
    )


def split(
    cart_items: Iterable[CartItem], store_configs: Sequence[StoreConfig]
) -> Tuple[StoreOrderGroup, ...]:
    """
    Одна группа на магазин, в порядке первого появления в корзине.
    Позиции без магазина пропускаются; если групп нет: AssignmentError.
    """

    def accumulate(acc: Dict[StoreConfig, StoreOrderGroup], item: CartItem):
        resolved = resolve_store(item.product_id, store_configs)
        if resolved.is_none():
            return acc
        config, doc_id = resolved.value
        line = to_order_line(item, doc_id)
        group = acc.get(config) or StoreOrderGroup(config.owner_id, config.store_id, (), 0)
        updated = StoreOrderGroup(
            owner_id=group.owner_id,
            store_id=group.store_id,
            items=group.items + (line,),
            total=group.total + item.price * item.quantity,
        )
        return {**acc, config: updated}

    groups = tuple(reduce(accumulate, cart_items, {}).values())
    if not groups:
        raise AssignmentError(ASSIGNMENT_FAILED_MESSAGE)
    return groups


# ============ Распределение оплаты ============


def payment_status(paid_amount: float, total: float) -> str:
    return PAID if round_money(paid_amount) >= round_money(total) else PARTIAL


def allocate_payment(
    groups: Sequence[StoreOrderGroup], payment: PaymentMeta
) -> Tuple[PaymentAllocation, ...]:
    """
    Делит сумму оплаты между заказами пропорционально их доле в корзине.
    Один заказ получает всю сумму без округления; наличные: всегда unpaid/0.
    """
    if payment.method == CASH:
        return tuple(PaymentAllocation(0.0, UNPAID) for _ in groups)

    if len(groups) == 1:
        paid = payment.amount_sent
        return (PaymentAllocation(paid, payment_status(paid, groups[0].total)),)

    cart_total = sum(g.total for g in groups)

    def allocate(group: StoreOrderGroup) -> PaymentAllocation:
        ratio = round_money(group.total) / cart_total if cart_total else 0
        paid = round_money(payment.amount_sent * ratio)
        return PaymentAllocation(paid, payment_status(paid, group.total))

    return tuple(map(allocate, groups))


# ============ Проверки формы ============


def parse_amount(raw: str) -> Maybe[float]:
    """Положительная сумма; запятые-разделители разрядов допускаются"""
    cleaned = (raw or "").strip().replace(",", "")
    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return Maybe.nothing()
    if not amount.is_finite() or amount <= 0:
        return Maybe.nothing()
    return Maybe.some(round_money(amount))


def check_mobile_money(
    reference: str, sender_name: str, amount_sent: str, subtotal: float
) -> Either[str, MobileMoneyCheck]:
    """Обязательные поля Mobile Money и классификация полной/частичной оплаты"""
    if not (reference or "").strip():
        return Either.left("Payment reference is required.")
    if not (sender_name or "").strip():
        return Either.left("Sender name is required.")
    amount = parse_amount(amount_sent)
    if amount.is_none():
        return Either.left("Please enter a valid amount sent.")

    sent = amount.value
    due = round_money(subtotal)
    if sent >= due:
        return Either.right(
            MobileMoneyCheck(
                amount_sent=sent,
                is_partial=False,
                balance=0.0,
                message="Full amount entered. Order will be confirmed once payment is verified.",
            )
        )
    balance = round_money(due - sent)
    return Either.right(
        MobileMoneyCheck(
            amount_sent=sent,
            is_partial=True,
            balance=balance,
            message=(
                f"You have sent a partial amount ({format_cedi(sent)}). "
                f"Please pay the balance of {format_cedi(balance)} at the shop "
                "or send the full amount before your order can be delivered."
            ),
        )
    )


def require_acknowledgement(
    check: MobileMoneyCheck, confirmed: bool
) -> Either[str, MobileMoneyCheck]:
    if check.is_partial and not confirmed:
        return Either.left(
            check.message + " Please tick the agreement box below to place order."
        )
    return Either.right(check)


def check_payment(form: PaymentForm, subtotal: float) -> Either[str, PaymentMeta]:
    """Форма оплаты → PaymentMeta; наличные проверок не требуют"""
    if form.method == CASH:
        return Either.right(PaymentMeta(method=CASH))
    if form.method != MOBILE_MONEY:
        return Either.left(f"Unsupported payment method: {form.method}")

    return (
        check_mobile_money(form.reference, form.sender_name, form.amount_sent, subtotal)
        .bind(lambda check: require_acknowledgement(check, form.confirm_partial))
        .map(
            lambda check: PaymentMeta(
                method=MOBILE_MONEY,
                amount_sent=check.amount_sent,
                reference=form.reference.strip(),
                sender_name=form.sender_name.strip(),
            )
        )
    )


def check_customer_form(
    form: CheckoutForm, email: Optional[str] = None
) -> Either[str, CustomerInfo]:
    """Имя, адрес, город и страна обязательны; телефон: нет"""
    required = (
        ("Full name", form.full_name),
        ("Address", form.address),
        ("City", form.city),
        ("Country", form.country),
    )
    missing = next((label for label, value in required if not (value or "").strip()), None)
    if missing:
        return Either.left(f"{missing} is required.")

    parts = (form.address.strip(), form.city.strip(), form.country.strip())
    return Either.right(
        CustomerInfo(
            name=form.full_name.strip(),
            phone=(form.phone or "").strip() or None,
            email=email or None,
            address=", ".join(p for p in parts if p) or None,
        )
    )
