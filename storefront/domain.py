from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple


# ============ Категории ============

DEVICES = "devices"
ACCESSORIES = "accessories"
SCREENS = "screens"
CUSTOM = "custom"
ALL = "all"  # только для фильтра в UI, товару никогда не присваивается

CATEGORIES = (DEVICES, ACCESSORIES, SCREENS, CUSTOM)


# ============ Оплата ============

MOBILE_MONEY = "Mobile Money"
CASH = "Cash"

PAID = "paid"
PARTIAL = "partial"
UNPAID = "unpaid"


@dataclass(frozen=True)
class StoreConfig:
    owner_id: str
    store_id: str


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    description: str
    price: float
    stock: int
    category: str
    is_accessory: bool
    is_custom_item: bool
    color: Optional[str] = None
    storage: Optional[str] = None
    image_urls: Tuple[str, ...] = ()
    store_locations: Tuple[StoreConfig, ...] = ()
    created_at: Any = None

    @property
    def image_url(self) -> Optional[str]:
        return self.image_urls[0] if self.image_urls else None


@dataclass(frozen=True)
class CartItem:
    product_id: str
    name: str
    price: float  # снимок цены на момент добавления
    max_stock: int
    quantity: int = 1
    image_url: Optional[str] = None


@dataclass(frozen=True)
class OrderLine:
    id: str  # id документа в инвентаре магазина
    name: str
    price: float
    quantity: int
    image_url: Optional[str] = None


@dataclass(frozen=True)
class StoreOrderGroup:
    owner_id: str
    store_id: str
    items: Tuple[OrderLine, ...]
    total: float


@dataclass(frozen=True)
class PaymentAllocation:
    paid_amount: float
    payment_status: str  # "paid" | "partial" | "unpaid"


@dataclass(frozen=True)
class CustomerInfo:
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None


@dataclass(frozen=True)
class PaymentMeta:
    method: str
    amount_sent: float = 0.0
    reference: Optional[str] = None
    sender_name: Optional[str] = None


@dataclass(frozen=True)
class Order:
    order_number: str
    items: Tuple[OrderLine, ...]
    total: float
    currency: str
    status: str
    payment_method: str
    payment_status: str
    paid_amount: float
    customer_info: CustomerInfo
    created_at: str
    customer_id: str
    payment_reference: Optional[str] = None
    payment_sender_name: Optional[str] = None
    id: Optional[str] = None


@dataclass(frozen=True)
class OrderRef:
    owner_id: str
    store_id: str
    order_id: str
    order_number: str
    created_at: str
    id: Optional[str] = None  # id документа ссылки у покупателя


@dataclass(frozen=True)
class WriteAttempt:
    """Результат записи одного заказа магазина (заказ + ссылка покупателя)"""

    owner_id: str
    store_id: str
    order_number: str
    order_id: Optional[str] = None
    ref: Optional[OrderRef] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.ref is not None


@dataclass(frozen=True)
class ProductDetail:
    product: Product
    store_names: Tuple[str, ...] = field(default_factory=tuple)
