"""Display helpers shared by the order templates."""

from decimal import ROUND_HALF_UP, Decimal
from html import escape

PAYMENT_METHOD_LABELS = {
    "cash": "Cash on Delivery",
    "credit-card": "Credit Card",
    "paypal": "PayPal",
}


def money(value) -> str:
    """``49.2`` -> ``$49.20``."""
    amount = Decimal(str(value or 0)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"${amount}"


def discount(value) -> str:
    """Discounts read as a deduction: ``-$6.00``, or ``$0.00`` when there is none."""
    amount = Decimal(str(value or 0)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    if amount <= 0:
        return "$0.00"
    return f"-${amount}"


def payment_method_text(payment_method: str | None) -> str:
    if not payment_method:
        return "Payment method not specified"
    return PAYMENT_METHOD_LABELS.get(payment_method, payment_method)


def item_details(item: dict) -> str:
    details = []
    if item.get("selected_color"):
        details.append(f"Color: {item['selected_color']}")
    if item.get("selected_size"):
        details.append(f"Size: {item['selected_size']}")
    return ", ".join(details)


def items_text(items: list[dict]) -> str:
    lines = []
    for item in items:
        line = f"- {item['quantity']} x {item['product_name']} @ {money(item['unit_price'])}"
        details = item_details(item)
        if details:
            line += f" ({details})"
        lines.append(line)
    return "\n".join(lines)


def items_table(items: list[dict]) -> str:
    rows = []
    for item in items:
        details = item_details(item)
        name = escape(item["product_name"])
        if details:
            name += f"<br><small>{escape(details)}</small>"
        rows.append(
            "<tr>"
            f"<td>{name}</td>"
            f"<td style=\"text-align:center\">{item['quantity']}</td>"
            f"<td style=\"text-align:right\">{money(item['unit_price'])}</td>"
            "</tr>"
        )
    return (
        "<table><thead><tr><th>Item</th><th>Qty</th><th>Price</th></tr></thead>"
        f"<tbody>{''.join(rows)}</tbody></table>"
    )
