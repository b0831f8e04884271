import asyncio
from dataclasses import replace
from functools import reduce
from typing import Optional, Tuple

from storefront.currency import format_money, round_money
from storefront.domain import Order, OrderRef
from storefront.errors import NotFoundError
from storefront.orders import order_from_document, ref_from_document
from storefront.store import DocumentStore, order_refs_path, orders_path


# ============ «Мои заказы» ============


async def load_order_refs(store: DocumentStore, customer_id: str) -> Tuple[OrderRef, ...]:
    """Ссылки покупателя, новые сверху"""
    docs = await store.get_documents(order_refs_path(customer_id))
    refs = (ref_from_document(ref_id, data) for ref_id, data in docs)
    return tuple(sorted(refs, key=lambda r: r.created_at, reverse=True))


async def resolve_order(store: DocumentStore, ref: OrderRef) -> Optional[Order]:
    """Заказ магазина по ссылке; None, если заказ удалён"""
    data = await store.get_document(orders_path(ref.owner_id, ref.store_id), ref.order_id)
    if data is None:
        return None
    order = order_from_document(ref.order_id, data, fallback_number=ref.order_number)
    if not order.created_at:
        return replace(order, created_at=ref.created_at)
    return order


async def list_customer_orders(
    store: DocumentStore, customer_id: str
) -> Tuple[Tuple[OrderRef, Order], ...]:
    """
    Заказы покупателя без знания топологии магазинов: через его ссылки.
    Заказы всех магазинов читаются параллельно; ссылки на удалённые заказы пропускаются.
    """
    refs = await load_order_refs(store, customer_id)
    orders = await asyncio.gather(*(resolve_order(store, r) for r in refs))
    return tuple((ref, order) for ref, order in zip(refs, orders) if order is not None)


async def view_order(store: DocumentStore, customer_id: str, ref_id: str) -> Tuple[OrderRef, Order]:
    data = await store.get_document(order_refs_path(customer_id), ref_id)
    if data is None:
        raise NotFoundError("Order not found.")
    ref = ref_from_document(ref_id, data)
    order = await resolve_order(store, ref)
    if order is None:
        raise NotFoundError("Order not found.")
    return ref, order


# ============ Отчёты по заказам покупателя ============


def order_balance(order: Order) -> float:
    """Остаток к оплате (не меньше нуля)"""
    return max(round_money(order.total - order.paid_amount), 0.0)


def has_pending_orders(orders: Tuple[Order, ...]) -> bool:
    return any(o.status.lower() == "pending" for o in orders)


def format_order_total(order: Order) -> str:
    return format_money(order.total, order.currency)


def orders_summary(orders: Tuple[Order, ...]) -> dict:
    """Сводка: количество по статусу оплаты, сумма заказов, оплачено, остаток"""

    def count_status(acc: dict, order: Order) -> dict:
        return {**acc, order.payment_status: acc.get(order.payment_status, 0) + 1}

    total = reduce(lambda acc, o: acc + o.total, orders, 0)
    paid = reduce(lambda acc, o: acc + o.paid_amount, orders, 0)
    return {
        "order_count": len(orders),
        "by_payment_status": reduce(count_status, orders, {}),
        "total": round_money(total),
        "paid": round_money(paid),
        "balance": round_money(sum(order_balance(o) for o in orders)),
        "has_pending": has_pending_orders(orders),
    }
