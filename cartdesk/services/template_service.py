import re
from urllib.parse import quote

from cartdesk.services.cart_view import Cart

WHATSAPP_BASE_URL = "https://wa.me"


def fill_template(text: str, cart: Cart) -> str:
    """Substitute {name} with the customer name and {product} with the cart's item names."""
    products = ", ".join(item.name for item in cart.items)
    return text.replace("{name}", cart.customer.name).replace("{product}", products)


def whatsapp_link(phone: str, name: str, text: str | None = None) -> str | None:
    """wa.me deep link with a pre-filled message; None when the phone has no digits."""
    digits = re.sub(r"[^\d]", "", phone or "")
    if not digits:
        return None
    message = text or f"Hi {name}, regarding your abandoned cart..."
    return f"{WHATSAPP_BASE_URL}/{digits}?text={quote(message)}"
