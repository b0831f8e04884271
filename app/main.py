import sys
import os
import asyncio
import logging
from dataclasses import replace

import streamlit as st
from pymongo import MongoClient

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from storefront.cart import CartStore, JsonCartStorage
from storefront.catalog import CatalogService
from storefront.checkout import CheckoutForm, PaymentForm, check_mobile_money
from storefront.config import cart_file, load_settings
from storefront.currency import format_cedi
from storefront.domain import ALL, ACCESSORIES, CASH, CUSTOM, DEVICES, MOBILE_MONEY, SCREENS
from storefront.errors import StorefrontError, WriteError
from storefront.mongo_store import MongoDocumentStore
from storefront.service import Customer, StorefrontService
from storefront.store import load_seed
from Order_Service.history import (
    format_order_total,
    has_pending_orders,
    list_customer_orders,
    order_balance,
)

logging.basicConfig(level=logging.INFO)

SEED_PATH = os.path.join(os.path.dirname(__file__), "..", "data", "seed.json")

CATEGORY_TABS = (
    (ALL, "All"),
    (DEVICES, "Devices"),
    (ACCESSORIES, "Accessories"),
    (SCREENS, "Screens"),
    (CUSTOM, "Others"),
)


# ============ Кэширование ресурсов ============
@st.cache_resource
def get_backend():
    """MongoDB, если задан DATABASE_URL, иначе демо-данные из seed.json"""
    settings = load_settings()
    if settings.database_url:
        client = MongoClient(settings.database_url)
        db = client[settings.database_name or "storefront"]
        return MongoDocumentStore(db), settings

    store, seed_stores = load_seed(SEED_PATH)
    if not settings.stores:
        settings = replace(settings, stores=seed_stores)
    return store, settings


def get_service(owner_key: str) -> StorefrontService:
    """Корзина своя у каждого покупателя; смена покупателя перечитывает его файл"""
    store, settings = get_backend()
    if st.session_state.get("cart_owner") != owner_key:
        path = cart_file(settings.cart_dir, owner_key)
        st.session_state.cart = CartStore(JsonCartStorage(path))
        st.session_state.cart_owner = owner_key
    return StorefrontService(store, settings, st.session_state.cart)


def load_catalog(service: StorefrontService) -> CatalogService:
    # Снимок каталога на сессию
    if "catalog" not in st.session_state:
        st.session_state.catalog = asyncio.run(service.load_catalog())
    return st.session_state.catalog


# ============ Инициализация ============
st.set_page_config(page_title="POS Storefront", page_icon="🛍️", layout="wide")

with st.sidebar:
    st.header("🛍️ Storefront")
    page = st.radio(
        "Section",
        ["🏪 Catalog", "🛒 Cart", "✅ Checkout", "📦 My orders"],
        label_visibility="collapsed",
    )
    st.divider()
    customer_id = st.text_input("Customer ID", value="demo-customer")
    customer_email = st.text_input("Email", value="")

customer = Customer(id=customer_id.strip(), email=customer_email.strip() or None)
service = get_service(customer.id)
cart = service.cart
st.sidebar.metric("Items in cart", cart.total_items)


# ============ PAGE: КАТАЛОГ ============
if page == "🏪 Catalog":
    st.header("🏪 Catalog")
    try:
        catalog = load_catalog(service)
    except StorefrontError as exc:
        st.error(str(exc))
        st.stop()

    col1, col2 = st.columns([2, 3])
    with col1:
        labels = dict(CATEGORY_TABS)
        tab = st.selectbox("Category", [t for t, _ in CATEGORY_TABS], format_func=labels.get)
    with col2:
        query = st.text_input("Search", value="")

    products = catalog.browse(tab=tab, query=query)
    st.info(f"🔍 {len(products)} item(s)")

    for p in products:
        with st.container():
            cols = st.columns([1, 4, 2, 2, 2])
            with cols[0]:
                if p.image_url:
                    st.image(p.image_url, width=80)
            with cols[1]:
                st.markdown(f"**{p.name}**")
                details = " · ".join(x for x in (p.color, p.storage) if x)
                st.caption(f"{details} · {p.stock} in stock, {len(p.store_locations)} store(s)")
            with cols[2]:
                st.write(format_cedi(p.price))
            with cols[3]:
                qty = st.number_input(
                    "Qty",
                    min_value=1,
                    max_value=max(p.stock, 1),
                    value=1,
                    key=f"qty_{p.id}",
                    label_visibility="collapsed",
                )
            with cols[4]:
                if st.button("➕ Add", key=f"add_{p.id}"):
                    service.add_to_cart(p, int(qty))
                    st.success(f"{p.name} × {qty}")
            with st.expander("Details"):
                if st.button("Load details", key=f"detail_{p.id}"):
                    try:
                        detail = asyncio.run(service.product_detail(p.id, p.store_locations))
                    except StorefrontError as exc:
                        st.error(str(exc))
                    else:
                        st.write(detail.product.description or "No description.")
                        if detail.store_names:
                            st.caption("Available at: " + ", ".join(detail.store_names))
            st.divider()


# ============ PAGE: КОРЗИНА ============
elif page == "🛒 Cart":
    st.header("🛒 Cart")

    if not cart.items:
        st.info("Your cart is empty.")
    else:
        for item in cart.items:
            cols = st.columns([5, 2, 2, 1])
            with cols[0]:
                st.write(f"**{item.name}**")
            with cols[1]:
                qty = st.number_input(
                    "Qty",
                    min_value=0,
                    max_value=item.max_stock,
                    value=item.quantity,
                    key=f"cart_qty_{item.product_id}",
                    label_visibility="collapsed",
                )
                if qty != item.quantity:
                    cart.set_quantity(item.product_id, int(qty))
                    st.rerun()
            with cols[2]:
                st.write(format_cedi(item.price * item.quantity))
            with cols[3]:
                if st.button("🗑️", key=f"remove_{item.product_id}"):
                    cart.remove(item.product_id)
                    st.rerun()

        st.divider()
        st.markdown(f"### Subtotal: **{format_cedi(cart.subtotal)}**")


# ============ PAGE: ОФОРМЛЕНИЕ ============
elif page == "✅ Checkout":
    st.header("✅ Checkout")

    if not cart.items:
        st.info("Your cart is empty.")
        st.stop()

    st.markdown(f"Subtotal: **{format_cedi(cart.subtotal)}**")

    with st.form("checkout"):
        st.subheader("Contact & delivery")
        full_name = st.text_input("Full name")
        phone = st.text_input("Phone", placeholder="Optional")
        address = st.text_input("Address")
        city = st.text_input("City")
        country = st.text_input("Country")

        st.subheader("Payment")
        method = st.radio("Payment method", [MOBILE_MONEY, CASH])
        reference = st.text_input("Payment reference", placeholder="e.g. transaction ID")
        sender_name = st.text_input("Sender name")
        amount_sent = st.text_input("Amount sent (cedis)", placeholder="0.00")

        if method == MOBILE_MONEY and amount_sent:
            check = check_mobile_money(reference, sender_name, amount_sent, cart.subtotal)
            if check.is_right:
                st.caption(check.value.message)

        confirm_partial = st.checkbox(
            "I agree to pay the balance at the shop or send the full amount before delivery"
        )
        submitted = st.form_submit_button("Place order", type="primary")

    if submitted:
        form = CheckoutForm(full_name, address, city, country, phone)
        payment = PaymentForm(method, reference, sender_name, amount_sent, confirm_partial)
        try:
            result = asyncio.run(service.checkout(customer, form, payment))
        except WriteError as exc:
            st.error(str(exc))
            done = ", ".join(a.order_number for a in exc.written)
            if done:
                st.warning(f"These orders were placed before the failure: {done}")
        except StorefrontError as exc:
            st.error(str(exc))
        else:
            numbers = ", ".join(r.order_number for r in result.refs)
            st.success(f"🎉 Order placed: {numbers}")
            st.balloons()


# ============ PAGE: МОИ ЗАКАЗЫ ============
elif page == "📦 My orders":
    st.header("📦 My orders")

    store, _ = get_backend()
    try:
        entries = asyncio.run(list_customer_orders(store, customer.id))
    except StorefrontError as exc:
        st.error(str(exc))
        st.stop()

    if not entries:
        st.info("You have no orders yet.")
    else:
        orders = tuple(order for _, order in entries)
        if has_pending_orders(orders):
            st.warning("Some orders are pending. Contact the shop to arrange delivery.")
        for ref, order in entries:
            with st.expander(f"{order.order_number} · {format_order_total(order)} · {order.status}"):
                st.caption(f"{order.created_at} · {order.payment_method} · {order.payment_status}")
                for line in order.items:
                    st.write(f"{line.name} × {line.quantity} · {format_cedi(line.price * line.quantity)}")
                balance = order_balance(order)
                if balance:
                    st.write(f"Balance due: {format_cedi(balance)}")
