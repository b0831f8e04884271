from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from .cart import CartStore, cart_item_from_product
from .catalog import CatalogService, aggregate, load_product_detail
from .checkout import (
    CheckoutForm,
    PaymentForm,
    allocate_payment,
    check_customer_form,
    check_payment,
    split,
)
from .config import StorefrontSettings
from .domain import (
    OrderRef,
    PaymentAllocation,
    Product,
    ProductDetail,
    StoreConfig,
    StoreOrderGroup,
)
from .errors import ValidationError
from .orders import commit
from .store import DocumentStore


@dataclass(frozen=True)
class Customer:
    """Покупатель от сервиса авторизации: непрозрачный id и, возможно, email"""

    id: str
    email: Optional[str] = None


@dataclass(frozen=True)
class CheckoutResult:
    refs: Tuple[OrderRef, ...]
    groups: Tuple[StoreOrderGroup, ...]
    allocations: Tuple[PaymentAllocation, ...]


class StorefrontService:
    """Фасад витрины: каталог, корзина и оформление заказа"""

    def __init__(self, store: DocumentStore, settings: StorefrontSettings, cart: CartStore):
        self.store = store
        self.settings = settings
        self.cart = cart

    async def load_catalog(self) -> CatalogService:
        products = await aggregate(
            self.settings.stores, self.store, self.settings.in_stock_at_source
        )
        return CatalogService(products)

    async def product_detail(
        self, product_id: str, store_locations: Optional[Sequence[StoreConfig]] = None
    ) -> ProductDetail:
        return await load_product_detail(
            self.store, self.settings.stores, product_id, store_locations
        )

    def add_to_cart(self, product: Product, quantity: int = 1):
        return self.cart.add(cart_item_from_product(product), quantity)

    async def checkout(
        self, customer: Customer, form: CheckoutForm, payment_form: PaymentForm
    ) -> CheckoutResult:
        """
        Проверка формы → проверка оплаты → разбиение по магазинам →
        распределение оплаты → запись заказов → очистка корзины.
        Корзина очищается только если записаны все заказы.
        """
        customer_info = check_customer_form(form, customer.email).get_or_raise(
            ValidationError
        )
        payment = check_payment(payment_form, self.cart.subtotal).get_or_raise(
            ValidationError
        )

        groups = split(self.cart.items, self.settings.stores)
        allocations = allocate_payment(groups, payment)
        refs = await commit(
            groups,
            allocations,
            customer.id,
            customer_info,
            payment,
            self.store,
            currency=self.settings.currency,
        )
        self.cart.clear()
        return CheckoutResult(refs=refs, groups=groups, allocations=allocations)
