"""Utility functions for ecofinds."""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from . import config
from .models import CartItem, Order, Product

CURRENCY_SYMBOLS = {"INR": "₹", "USD": "$", "EUR": "€"}


def parse_price(value: Any) -> Decimal | None:
    """
    Parse a price typed into a form.

    Returns None for empty or non-numeric input. Non-finite values are
    treated as non-numeric.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        price = value
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            price = Decimal(text)
        except InvalidOperation:
            return None
    if not price.is_finite():
        return None
    return price


def parse_tags(raw: str | None) -> list[str]:
    """Split a comma-separated tag string, trimming and dropping blanks."""
    if not raw:
        return []
    return [tag.strip() for tag in raw.split(",") if tag.strip()]


def format_price(amount: Decimal | int | float, currency: str | None = None) -> str:
    """Format an amount like "₹1,234.50"."""
    currency = currency or config.CURRENCY
    symbol = CURRENCY_SYMBOLS.get(currency, f"{currency} ")
    value = Decimal(str(amount)).quantize(Decimal("0.01"))
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,.2f}"


def format_date(value: str, with_time: bool = False) -> str:
    """Format an ISO 8601 timestamp like "Jan 5, 2025". Unparseable input is returned as-is."""
    if not value:
        return ""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return value
    text = f"{parsed.strftime('%b')} {parsed.day}, {parsed.year}"
    if with_time:
        text += parsed.strftime(" %H:%M")
    return text


def format_product(product: Product, verbose: bool = False) -> str:
    """Format a product for display."""
    status = "" if product.is_available else " [SOLD]"
    line = (
        f"{product.id[:8]}  {product.title}  {format_price(product.price)}"
        f"  ({product.category}, {product.condition.value}){status}"
    )
    if not verbose:
        return line

    lines = [line]
    if product.seller is not None and product.seller.username:
        lines.append(f"  Seller: {product.seller.username}")
    if product.created_at:
        lines.append(f"  Listed: {format_date(product.created_at)}")
    lines.append(f"  Views: {product.views}")
    if product.tags:
        lines.append(f"  Tags: {', '.join(product.tags)}")
    lines.append(f"  {product.description}")
    for url in product.images:
        lines.append(f"  Image: {url}")
    return "\n".join(lines)


def format_cart_item(item: CartItem) -> str:
    return (
        f"{item.product_id[:8]}  {item.product.title}  "
        f"{item.quantity} x {format_price(item.product.price)} = {format_price(item.subtotal)}"
    )


def format_order(order: Order) -> str:
    """Format an order with its items."""
    lines = [
        f"Order {order.id[:8]}  {order.status.value.upper()}  "
        f"{format_price(order.total_amount)}  {format_date(order.created_at, with_time=True)}"
    ]
    for item in order.items:
        lines.append(f"  {item.quantity} x {item.title}  {format_price(item.price)}")
    if order.shipping_address is not None:
        addr = order.shipping_address
        lines.append(
            f"  Ship to: {addr.street}, {addr.city}, {addr.state} {addr.zip_code}, {addr.country}"
        )
    return "\n".join(lines)
