"""Command-line interface for ecofinds."""

import argparse
import asyncio
import json
import logging
import sys

from . import __version__, config
from .cart import CartStore
from .catalog import ALL_CATEGORIES, ProductDetail, QueryComposer
from .errors import EcofindsError
from .gateway import CatalogGateway
from .listings import ListingManager
from .models import Condition, ListingDraft, Outcome, PaymentMethod, Session, ShippingAddress
from .orders import CheckoutFlow, OrderHistory
from .session_store import SessionStore
from .utils import format_cart_item, format_order, format_price, format_product


def make_gateway(session: Session) -> CatalogGateway:
    """Create the gateway for a session."""
    return CatalogGateway(session)


def load_gateway() -> CatalogGateway:
    """Create a gateway from the saved session."""
    return make_gateway(SessionStore().load())


def _confirm(prompt: str) -> bool:
    try:
        answer = input(f"{prompt} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


def _fail(message: str | None, default: str) -> int:
    print(f"Error: {message or default}", file=sys.stderr)
    return 1


def _run(coro) -> int:
    """Run a command coroutine, reporting ecofinds errors on stderr."""
    try:
        return asyncio.run(coro)
    except EcofindsError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def _print_cart(store: CartStore) -> None:
    cart = store.cart
    if cart.is_empty:
        print("Your cart is empty")
        return
    print(f"Cart items ({cart.item_count}):")
    for item in cart.items:
        print(f"  {format_cart_item(item)}")
    print(f"Total: {format_price(store.total())}")


# --- Session ---


def cmd_login(args: argparse.Namespace) -> int:
    """Save credentials for later commands."""
    try:
        session = Session(
            api_url=args.api_url or config.API_URL,
            token=args.token,
            user_id=args.user_id,
            username=args.username,
        )
        SessionStore().save(session)
    except EcofindsError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    who = f" as {args.username}" if args.username else ""
    print(f"Logged in{who} ({session.api_url})")
    return 0


def cmd_logout(args: argparse.Namespace) -> int:
    """Forget saved credentials."""
    if SessionStore().clear():
        print("Logged out")
    else:
        print("Not logged in")
    return 0


# --- Catalog ---


async def _search(args: argparse.Namespace) -> int:
    async with load_gateway() as gateway:
        composer = QueryComposer(gateway)
        if args.term:
            composer.set_search(args.term)
        # A category change sends the composed query at once
        composer.set_category(args.category or ALL_CATEGORIES)
        await composer.wait_idle()

        state = composer.state
        if state.error:
            return _fail(state.error, "Failed to load products")
        if args.json:
            print(json.dumps([p.to_dict() for p in state.products], indent=2))
            return 0
        if not state.products:
            print("No products found")
            return 0
        for product in state.products:
            print(format_product(product))
        print(state.summary())
    return 0


def cmd_search(args: argparse.Namespace) -> int:
    """Search the catalog."""
    return _run(_search(args))


async def _categories(args: argparse.Namespace) -> int:
    async with load_gateway() as gateway:
        composer = QueryComposer(gateway)
        if await composer.load_categories() is Outcome.FAILED:
            return _fail(None, "Failed to load categories")
        for category in composer.state.categories:
            print(category)
    return 0


def cmd_categories(args: argparse.Namespace) -> int:
    """List product categories."""
    return _run(_categories(args))


async def _show(args: argparse.Namespace) -> int:
    async with load_gateway() as gateway:
        detail = ProductDetail(gateway, user_id=gateway.session.user_id)
        if await detail.load(args.product_id) is Outcome.FAILED:
            return _fail(detail.error, "Failed to load product details")
        print(format_product(detail.product, verbose=True))
        if detail.is_own_product():
            print("  (your listing)")
    return 0


def cmd_show(args: argparse.Namespace) -> int:
    """Show one product."""
    return _run(_show(args))


# --- Cart ---


async def _cart(args: argparse.Namespace) -> int:
    async with load_gateway() as gateway:
        store = CartStore(gateway)
        if await store.load() is Outcome.FAILED:
            return _fail(store.error, "Failed to load cart")
        _print_cart(store)
    return 0


def cmd_cart(args: argparse.Namespace) -> int:
    """Show the cart."""
    return _run(_cart(args))


async def _cart_add(args: argparse.Namespace) -> int:
    async with load_gateway() as gateway:
        store = CartStore(gateway)
        detail = ProductDetail(gateway, user_id=gateway.session.user_id)
        if await detail.load(args.product_id) is Outcome.FAILED:
            return _fail(detail.error, "Failed to load product details")
        outcome = await detail.add_to_cart(store, args.quantity)
        if outcome is not Outcome.APPLIED:
            return _fail(detail.message, "Failed to add to cart")
        print(detail.message)
        _print_cart(store)
    return 0


def cmd_cart_add(args: argparse.Namespace) -> int:
    """Add a product to the cart."""
    return _run(_cart_add(args))


async def _cart_set(args: argparse.Namespace) -> int:
    async with load_gateway() as gateway:
        store = CartStore(gateway)
        outcome = await store.set_quantity(args.product_id, args.quantity)
        if outcome is Outcome.NOOP:
            return _fail(None, "Quantity must be at least 1 (use cart-remove to remove)")
        if outcome is Outcome.FAILED:
            return _fail(store.error, "Failed to update item quantity")
        _print_cart(store)
    return 0


def cmd_cart_set(args: argparse.Namespace) -> int:
    """Set the quantity of a cart item."""
    return _run(_cart_set(args))


async def _cart_remove(args: argparse.Namespace) -> int:
    async with load_gateway() as gateway:
        store = CartStore(gateway)
        if await store.remove_item(args.product_id) is Outcome.FAILED:
            return _fail(store.error, "Failed to remove item")
        _print_cart(store)
    return 0


def cmd_cart_remove(args: argparse.Namespace) -> int:
    """Remove an item from the cart."""
    return _run(_cart_remove(args))


async def _cart_clear(args: argparse.Namespace) -> int:
    async with load_gateway() as gateway:
        store = CartStore(gateway)
        if await store.clear_cart() is Outcome.FAILED:
            return _fail(store.error, "Failed to clear cart")
        _print_cart(store)
    return 0


def cmd_cart_clear(args: argparse.Namespace) -> int:
    """Empty the cart after confirmation."""
    if not args.yes and not _confirm("Are you sure you want to clear your cart?"):
        print("Cancelled")
        return 0
    return _run(_cart_clear(args))


# --- Orders ---


async def _checkout(args: argparse.Namespace) -> int:
    async with load_gateway() as gateway:
        store = CartStore(gateway)
        if await store.load() is Outcome.FAILED:
            return _fail(store.error, "Failed to load cart")
        if store.cart.is_empty:
            return _fail(None, "Your cart is empty")

        total = store.total()
        flow = CheckoutFlow(gateway, store)
        address = ShippingAddress(
            street=args.street,
            city=args.city,
            state=args.state,
            zip_code=args.zip,
            country=args.country,
        )
        outcome = await flow.submit(address, PaymentMethod(args.payment))
        if outcome is not Outcome.APPLIED:
            return _fail(flow.error, "Failed to create order")

        print("Order placed successfully!")
        if flow.order is not None:
            print(f"  Order: {flow.order.id}")
        print(f"  Total: {format_price(total)}")
    return 0


def cmd_checkout(args: argparse.Namespace) -> int:
    """Place an order for the cart contents."""
    return _run(_checkout(args))


async def _orders(args: argparse.Namespace) -> int:
    async with load_gateway() as gateway:
        history = OrderHistory(gateway)
        if await history.load() is Outcome.FAILED:
            return _fail(history.error, "Failed to load order history")
        if not history.orders:
            print("No orders yet")
            return 0
        for order in history.orders:
            print(format_order(order))
    return 0


def cmd_orders(args: argparse.Namespace) -> int:
    """Show order history."""
    return _run(_orders(args))


# --- Listings ---


async def _listings(args: argparse.Namespace) -> int:
    async with load_gateway() as gateway:
        manager = ListingManager(gateway)
        if await manager.load() is Outcome.FAILED:
            return _fail(manager.error, "Failed to load your products")
        if not manager.products:
            print("You have no listings")
            return 0
        for product in manager.products:
            print(format_product(product))
        print(f"{manager.available_count()} available, {manager.sold_count()} sold")
    return 0


def cmd_listings(args: argparse.Namespace) -> int:
    """Show the current user's listings."""
    return _run(_listings(args))


async def _sell(args: argparse.Namespace) -> int:
    draft = ListingDraft(
        title=args.title,
        description=args.description,
        price=args.price,
        category=args.category,
        condition=Condition(args.condition),
        images=args.image or [],
        tags=args.tags or "",
    )
    async with load_gateway() as gateway:
        manager = ListingManager(gateway)
        outcome = await manager.create_listing(draft)
        if outcome is not Outcome.APPLIED:
            return _fail(manager.error, "Failed to create product")
        print(manager.success)
        print(f"You now have {len(manager.products)} listing(s)")
    return 0


def cmd_sell(args: argparse.Namespace) -> int:
    """Create a listing."""
    return _run(_sell(args))


async def _unlist(args: argparse.Namespace) -> int:
    async with load_gateway() as gateway:
        manager = ListingManager(gateway)
        if await manager.delete_listing(args.product_id) is Outcome.FAILED:
            return _fail(manager.error, "Failed to delete product")
        print(f"Deleted listing {args.product_id}")
    return 0


def cmd_unlist(args: argparse.Namespace) -> int:
    """Delete a listing after confirmation."""
    if not args.yes and not _confirm("Are you sure you want to delete this product?"):
        print("Cancelled")
        return 0
    return _run(_unlist(args))


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="ecofinds",
        description="Browse, buy and sell secondhand goods on EcoFinds.",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--verbose", "-v", action="count", default=0,
        help="Show log output (-v for info, -vv for debug)"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # login
    login_parser = subparsers.add_parser("login", help="Save API credentials")
    login_parser.add_argument("--token", "-t", required=True, help="Bearer token")
    login_parser.add_argument("--user-id", help="Your user ID")
    login_parser.add_argument("--username", "-u", help="Your username")
    login_parser.add_argument(
        "--api-url", help=f"API base URL (default: {config.API_URL})"
    )

    # logout
    subparsers.add_parser("logout", help="Forget saved credentials")

    # search
    search_parser = subparsers.add_parser("search", help="Search the catalog")
    search_parser.add_argument("term", nargs="?", default="", help="Search text")
    search_parser.add_argument("--category", "-c", help="Filter by category")
    search_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # categories
    subparsers.add_parser("categories", help="List product categories")

    # show
    show_parser = subparsers.add_parser("show", help="Show product details")
    show_parser.add_argument("product_id", help="Product ID")

    # cart
    subparsers.add_parser("cart", help="Show the cart")

    cart_add_parser = subparsers.add_parser("cart-add", help="Add a product to the cart")
    cart_add_parser.add_argument("product_id", help="Product ID")
    cart_add_parser.add_argument(
        "--quantity", "-q", type=int, default=1, help="Quantity (default: 1)"
    )

    cart_set_parser = subparsers.add_parser("cart-set", help="Set an item quantity")
    cart_set_parser.add_argument("product_id", help="Product ID")
    cart_set_parser.add_argument("quantity", type=int, help="New quantity (>= 1)")

    cart_remove_parser = subparsers.add_parser("cart-remove", help="Remove an item")
    cart_remove_parser.add_argument("product_id", help="Product ID")

    cart_clear_parser = subparsers.add_parser("cart-clear", help="Empty the cart")
    cart_clear_parser.add_argument(
        "--yes", "-y", action="store_true", help="Don't ask for confirmation"
    )

    # checkout
    checkout_parser = subparsers.add_parser("checkout", help="Place an order")
    checkout_parser.add_argument("--street", required=True)
    checkout_parser.add_argument("--city", required=True)
    checkout_parser.add_argument("--state", required=True)
    checkout_parser.add_argument("--zip", required=True, help="Postal code")
    checkout_parser.add_argument("--country", required=True)
    checkout_parser.add_argument(
        "--payment",
        choices=[m.value for m in PaymentMethod],
        default=PaymentMethod.CASH_ON_DELIVERY.value,
        help="Payment method (default: cash_on_delivery)",
    )

    # orders
    subparsers.add_parser("orders", help="Show order history")

    # listings
    subparsers.add_parser("listings", help="Show your listings")

    sell_parser = subparsers.add_parser("sell", help="Create a listing")
    sell_parser.add_argument("--title", required=True)
    sell_parser.add_argument("--description", "-d", required=True)
    sell_parser.add_argument("--price", "-p", required=True)
    sell_parser.add_argument("--category", "-c", required=True)
    sell_parser.add_argument(
        "--condition",
        choices=[c.value for c in Condition],
        default=Condition.GOOD.value,
        help="Item condition (default: Good)",
    )
    sell_parser.add_argument(
        "--image", "-i", action="append", help="Image URL (repeatable)"
    )
    sell_parser.add_argument("--tags", help="Comma-separated tags")

    unlist_parser = subparsers.add_parser("unlist", help="Delete one of your listings")
    unlist_parser.add_argument("product_id", help="Product ID")
    unlist_parser.add_argument(
        "--yes", "-y", action="store_true", help="Don't ask for confirmation"
    )

    return parser


def configure_logging(verbosity: int) -> None:
    level = {0: logging.ERROR, 1: logging.INFO}.get(verbosity, logging.DEBUG)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(name)s [%(levelname)s] %(message)s",
        stream=sys.stderr,
    )


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    configure_logging(args.verbose)

    commands = {
        "login": cmd_login,
        "logout": cmd_logout,
        "search": cmd_search,
        "categories": cmd_categories,
        "show": cmd_show,
        "cart": cmd_cart,
        "cart-add": cmd_cart_add,
        "cart-set": cmd_cart_set,
        "cart-remove": cmd_cart_remove,
        "cart-clear": cmd_cart_clear,
        "checkout": cmd_checkout,
        "orders": cmd_orders,
        "listings": cmd_listings,
        "sell": cmd_sell,
        "unlist": cmd_unlist,
    }

    cmd_func = commands.get(args.command)
    if cmd_func:
        return cmd_func(args)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
