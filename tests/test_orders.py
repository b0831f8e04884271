import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
import pytest
from storefront.cart import CartStore, MemoryCartStorage
from storefront.checkout import CheckoutForm, PaymentForm, allocate_payment, split
from storefront.config import StorefrontSettings
from storefront.domain import (
    CASH,
    MOBILE_MONEY,
    PARTIAL,
    UNPAID,
    CartItem,
    CustomerInfo,
    PaymentMeta,
    StoreConfig,
)
from storefront.errors import AssignmentError, ValidationError, WriteError
from storefront.orders import base_order_number, commit, order_number_for
from storefront.service import Customer, StorefrontService
from storefront.store import InMemoryDocumentStore, inventory_path, order_refs_path, orders_path

STORE_A = StoreConfig("ownerA", "s1")
STORE_B = StoreConfig("ownerB", "s2")
CUSTOMER = CustomerInfo(name="Ama", email="ama@example.com", address="Accra")
FORM = CheckoutForm("Ama", "12 Ring Rd", "Accra", "Ghana", phone="0240000000")


def fixed_clock():
    return 1_700_000_000.5


class FailingWritesStore(InMemoryDocumentStore):
    """Падает на записи в выбранную коллекцию"""

    def __init__(self, failing_path):
        super().__init__()
        self.failing_path = failing_path

    async def add_document(self, path, data):
        if tuple(path) == self.failing_path:
            raise WriteError("quota exceeded")
        return await super().add_document(path, data)


def two_store_groups():
    items = (
        CartItem("ownerA|s1|a1", "iPhone 13", 4500.0, max_stock=3),
        CartItem("ownerB|s2|b1", "MacBook Air", 5500.0, max_stock=1),
    )
    return split(items, (STORE_A, STORE_B))


def test_order_numbers():
    base = base_order_number(fixed_clock)
    assert base == "#WW-1700000000500"
    assert order_number_for(base, 0, 1) == base
    assert [order_number_for(base, i, 3) for i in range(3)] == [f"{base}-1", f"{base}-2", f"{base}-3"]


@pytest.mark.asyncio
async def test_commit_writes_order_and_ref_per_store():
    store = InMemoryDocumentStore()
    groups = two_store_groups()
    payment = PaymentMeta(MOBILE_MONEY, 6000.0, "TX1", "Ama")
    allocations = allocate_payment(groups, payment)

    refs = await commit(groups, allocations, "cust1", CUSTOMER, payment, store, clock=fixed_clock)

    assert [r.order_number for r in refs] == ["#WW-1700000000500-1", "#WW-1700000000500-2"]
    assert [(r.owner_id, r.store_id) for r in refs] == [("ownerA", "s1"), ("ownerB", "s2")]

    order_doc = store.collections[orders_path("ownerA", "s1")][refs[0].order_id]
    assert order_doc["status"] == "pending"
    assert order_doc["total"] == 4500.0
    assert order_doc["paidAmount"] == 2700.0
    assert order_doc["paymentStatus"] == PARTIAL
    assert order_doc["paymentReference"] == "TX1"
    assert order_doc["customerEmail"] == "ama@example.com"
    assert order_doc["items"] == [{"id": "a1", "name": "iPhone 13", "price": 4500.0, "quantity": 1}]

    ref_docs = store.collections[order_refs_path("cust1")]
    assert len(ref_docs) == 2
    assert ref_docs[refs[1].id]["orderId"] == refs[1].order_id


@pytest.mark.asyncio
async def test_failed_store_write_keeps_completed_prefix():
    store = FailingWritesStore(orders_path("ownerB", "s2"))
    groups = two_store_groups()
    payment = PaymentMeta(CASH)

    with pytest.raises(WriteError) as exc_info:
        await commit(groups, allocate_payment(groups, payment), "cust1", CUSTOMER, payment, store)

    attempts = exc_info.value.attempts
    assert [a.succeeded for a in attempts] == [True, False]
    assert attempts[1].error == "quota exceeded"
    assert len(exc_info.value.completed) == 1
    assert exc_info.value.written == exc_info.value.completed
    # первый заказ не откатывается
    assert len(store.collections[orders_path("ownerA", "s1")]) == 1
    assert len(store.collections[order_refs_path("cust1")]) == 1


@pytest.mark.asyncio
async def test_failed_ref_write_leaves_order_without_ref():
    store = FailingWritesStore(order_refs_path("cust1"))
    groups = two_store_groups()[:1]
    payment = PaymentMeta(CASH)

    with pytest.raises(WriteError) as exc_info:
        await commit(groups, allocate_payment(groups, payment), "cust1", CUSTOMER, payment, store)

    (attempt,) = exc_info.value.attempts
    assert attempt.order_id is not None
    assert attempt.ref is None
    assert exc_info.value.completed == ()
    assert [a.order_number for a in exc_info.value.written] == [attempt.order_number]
    assert len(store.collections[orders_path("ownerA", "s1")]) == 1
    assert order_refs_path("cust1") not in store.collections


# ============ Оформление через фасад ============


@pytest.fixture
def single_store_service():
    store = InMemoryDocumentStore()
    store.put(inventory_path(STORE_A), "doc1", {"name": "iPhone 13", "price": 4500, "stock": 3})
    settings = StorefrontSettings(stores=(STORE_A,))
    return StorefrontService(store, settings, CartStore(MemoryCartStorage()))


@pytest.mark.asyncio
async def test_single_store_cash_checkout(single_store_service):
    """iPhone 13 × 2 за наличные: один заказ unpaid и одна ссылка"""
    service = single_store_service
    catalog = await service.load_catalog()
    service.add_to_cart(catalog.find("doc1"), 2)
    assert service.cart.subtotal == 9000

    result = await service.checkout(Customer("cust1", "ama@example.com"), FORM, PaymentForm(CASH))

    (ref,) = result.refs
    order = service.store.collections[orders_path("ownerA", "s1")][ref.order_id]
    assert order["paymentStatus"] == UNPAID
    assert order["paidAmount"] == 0
    assert order["total"] == 9000.0
    assert "-" not in ref.order_number[len("#WW-"):]
    assert order["customerInfo"]["address"] == "12 Ring Rd, Accra, Ghana"
    assert len(service.store.collections[order_refs_path("cust1")]) == 1
    assert service.cart.items == ()


@pytest.mark.asyncio
async def test_checkout_validation_keeps_cart(single_store_service):
    service = single_store_service
    catalog = await service.load_catalog()
    service.add_to_cart(catalog.find("doc1"), 2)

    with pytest.raises(ValidationError, match="tick the agreement box"):
        await service.checkout(
            Customer("cust1"), FORM, PaymentForm(MOBILE_MONEY, "TX1", "Ama", "5000")
        )
    with pytest.raises(ValidationError, match="Full name is required."):
        await service.checkout(
            Customer("cust1"), CheckoutForm("", "a", "b", "c"), PaymentForm(CASH)
        )
    assert service.cart.total_items == 2


@pytest.mark.asyncio
async def test_checkout_empty_cart_is_assignment_error(single_store_service):
    with pytest.raises(AssignmentError):
        await single_store_service.checkout(Customer("cust1"), FORM, PaymentForm(CASH))


@pytest.mark.asyncio
async def test_write_failure_keeps_cart():
    store = FailingWritesStore(orders_path("ownerA", "s1"))
    store.put(inventory_path(STORE_A), "doc1", {"name": "iPhone 13", "price": 4500, "stock": 3})
    service = StorefrontService(store, StorefrontSettings(stores=(STORE_A,)), CartStore(MemoryCartStorage()))
    catalog = await service.load_catalog()
    service.add_to_cart(catalog.find("doc1"))

    with pytest.raises(WriteError):
        await service.checkout(Customer("cust1"), FORM, PaymentForm(CASH))
    assert service.cart.total_items == 1
