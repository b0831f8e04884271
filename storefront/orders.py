import logging
import time
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence, Tuple

from .currency import round_money
from .domain import (
    MOBILE_MONEY,
    CustomerInfo,
    Order,
    OrderLine,
    OrderRef,
    PaymentAllocation,
    PaymentMeta,
    StoreOrderGroup,
    WriteAttempt,
)
from .errors import WriteError
from .store import DocumentStore, order_refs_path, orders_path

logger = logging.getLogger(__name__)

ORDER_PREFIX = "#WW-"
WRITE_FAILED_MESSAGE = "Order failed. Please try again."


def base_order_number(clock: Callable[[], float] = time.time) -> str:
    """Общий номер оформления из метки времени в миллисекундах"""
    return f"{ORDER_PREFIX}{int(clock() * 1000)}"


def order_number_for(base: str, index: int, group_count: int) -> str:
    """Суффикс -1, -2, ... только если корзина разбита на несколько магазинов"""
    return f"{base}-{index + 1}" if group_count > 1 else base


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def build_order(
    group: StoreOrderGroup,
    allocation: PaymentAllocation,
    order_number: str,
    customer_id: str,
    customer_info: CustomerInfo,
    payment: PaymentMeta,
    currency: str,
    created_at: str,
) -> Order:
    mobile = payment.method == MOBILE_MONEY
    return Order(
        order_number=order_number,
        items=group.items,
        total=round_money(group.total),
        currency=currency,
        status="pending",
        payment_method=payment.method,
        payment_status=allocation.payment_status,
        paid_amount=allocation.paid_amount,
        customer_info=customer_info,
        created_at=created_at,
        customer_id=customer_id,
        payment_reference=payment.reference if mobile else None,
        payment_sender_name=payment.sender_name if mobile else None,
    )


# ============ Документы БД ============


def line_to_document(line: OrderLine) -> dict:
    doc = {"id": line.id, "name": line.name, "price": line.price, "quantity": line.quantity}
    if line.image_url:
        doc["imageUrl"] = line.image_url
    return doc


def customer_info_to_document(info: CustomerInfo) -> dict:
    doc = {"name": info.name}
    for key in ("phone", "email", "address"):
        value = getattr(info, key)
        if value:
            doc[key] = value
    return doc


def order_to_document(order: Order) -> dict:
    doc = {
        "status": order.status,
        "items": [line_to_document(line) for line in order.items],
        "total": order.total,
        "currency": order.currency,
        "customerInfo": customer_info_to_document(order.customer_info),
        "orderNumber": order.order_number,
        "createdAt": order.created_at,
        "customerId": order.customer_id,
        "paymentMethod": order.payment_method,
        "paymentStatus": order.payment_status,
        "paidAmount": order.paid_amount,
    }
    if order.customer_info.email:
        doc["customerEmail"] = order.customer_info.email
    if order.payment_reference is not None:
        doc["paymentReference"] = order.payment_reference
    if order.payment_sender_name is not None:
        doc["paymentSenderName"] = order.payment_sender_name
    return doc


def ref_to_document(ref: OrderRef) -> dict:
    return {
        "ownerId": ref.owner_id,
        "storeId": ref.store_id,
        "orderId": ref.order_id,
        "orderNumber": ref.order_number,
        "createdAt": ref.created_at,
    }


# ============ Запись заказов ============


async def commit(
    groups: Sequence[StoreOrderGroup],
    allocations: Sequence[PaymentAllocation],
    customer_id: str,
    customer_info: CustomerInfo,
    payment: PaymentMeta,
    store: DocumentStore,
    currency: str = "GHS",
    clock: Callable[[], float] = time.time,
) -> Tuple[OrderRef, ...]:
    """
    Пишет заказы магазинов строго по очереди: заказ, затем ссылку покупателя.
    Транзакции нет: при ошибке уже записанные заказы остаются, а WriteError
    содержит попытки до сбоя включительно. Заказ без ссылки не виден
    в «Мои заказы».
    """
    base = base_order_number(clock)
    attempts: List[WriteAttempt] = []

    for index, (group, allocation) in enumerate(zip(groups, allocations)):
        number = order_number_for(base, index, len(groups))
        created_at = utc_now()
        order = build_order(
            group, allocation, number, customer_id, customer_info, payment, currency, created_at
        )
        attempt = await write_order(store, group, order, customer_id, created_at)
        attempts.append(attempt)
        if not attempt.succeeded:
            raise WriteError(WRITE_FAILED_MESSAGE, tuple(attempts))

    return tuple(a.ref for a in attempts)


async def write_order(
    store: DocumentStore,
    group: StoreOrderGroup,
    order: Order,
    customer_id: str,
    created_at: str,
) -> WriteAttempt:
    """Одна попытка: результат фиксируется, исключение WriteError не пробрасывается"""
    attempt = WriteAttempt(group.owner_id, group.store_id, order.order_number)
    try:
        order_id = await store.add_document(
            orders_path(group.owner_id, group.store_id), order_to_document(order)
        )
    except WriteError as exc:
        logger.error(f"Order {order.order_number} for {group.owner_id}:{group.store_id} failed: {exc}")
        return replace(attempt, error=str(exc))

    attempt = replace(attempt, order_id=order_id)
    ref = OrderRef(group.owner_id, group.store_id, order_id, order.order_number, created_at)
    try:
        ref_id = await store.add_document(order_refs_path(customer_id), ref_to_document(ref))
    except WriteError as exc:
        logger.error(f"Order {order.order_number} written as {order_id} but its ref failed: {exc}")
        return replace(attempt, error=str(exc))

    logger.info(f"Order {order.order_number} created in store {group.owner_id}:{group.store_id}")
    return replace(attempt, ref=replace(ref, id=ref_id))


# ============ Чтение заказов ============


def order_from_document(order_id: str, data: dict, fallback_number: Optional[str] = None) -> Order:
    info = data.get("customerInfo") or {}
    return Order(
        id=order_id,
        order_number=fallback_number or str(data.get("orderNumber") or ""),
        items=tuple(
            OrderLine(
                id=str(i.get("id", "")),
                name=str(i.get("name", "")),
                price=float(i.get("price") or 0),
                quantity=int(i.get("quantity") or 0),
                image_url=i.get("imageUrl"),
            )
            for i in data.get("items") or []
        ),
        total=float(data.get("total") or 0),
        currency=str(data.get("currency") or ""),
        status=str(data.get("status") or "pending"),
        payment_method=str(data.get("paymentMethod") or ""),
        payment_status=str(data.get("paymentStatus") or ""),
        paid_amount=float(data.get("paidAmount") or 0),
        customer_info=CustomerInfo(
            name=str(info.get("name", "")),
            phone=info.get("phone"),
            email=info.get("email"),
            address=info.get("address"),
        ),
        created_at=str(data.get("createdAt") or ""),
        customer_id=str(data.get("customerId") or ""),
        payment_reference=data.get("paymentReference"),
        payment_sender_name=data.get("paymentSenderName"),
    )


def ref_from_document(ref_id: str, data: dict) -> OrderRef:
    return OrderRef(
        owner_id=str(data.get("ownerId", "")),
        store_id=str(data.get("storeId", "")),
        order_id=str(data.get("orderId", "")),
        order_number=str(data.get("orderNumber", "")),
        created_at=str(data.get("createdAt", "")),
        id=ref_id,
    )
