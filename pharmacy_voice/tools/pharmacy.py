"""LangChain tools the voice agent calls mid-conversation.

Each tool returns a short, speakable string.  The Retell agent reads the
result back to the caller verbatim, so replies avoid markdown, lists and
symbols that do not survive text-to-speech.

Tools are built per :class:`~pharmacy_voice.state.PharmacyState` by
:func:`build_pharmacy_tools` so they write into the state they were given
instead of module globals.
"""

from __future__ import annotations

import logging
from typing import Annotated

from langchain_core.tools import BaseTool, InjectedToolArg, tool

from pharmacy_voice.services.catalog import (
    format_pesos,
    format_product_details_for_voice,
)
from pharmacy_voice.state import PharmacyState

logger = logging.getLogger(__name__)

MAX_LISTED_PRODUCTS = 5


def build_pharmacy_tools(state: PharmacyState) -> list[BaseTool]:
    """Create the four pharmacy tools bound to *state*."""

    # ── Tool 1: Product lookup ───────────────────────────────────────

    @tool
    def lookup_product(query: str) -> str:
        """Look up a medicine or product in the pharmacy catalog.

        Args:
            query: Product name, generic name, category or condition
                   (e.g. "paracetamol", "allergy", "vitamin c").
        """
        matches = state.catalog.search(query)

        if not matches:
            return (
                f'I\'m sorry, I couldn\'t find any product matching "{query}". '
                "Could you try another name or the generic name? "
                "I can also connect you with our pharmacist if you'd like."
            )

        if len(matches) == 1:
            return format_product_details_for_voice(matches[0])

        shown = matches[:MAX_LISTED_PRODUCTS]
        items = "; ".join(
            f"{p.product_name}, {p.size_variant}, at {format_pesos(p.regular_price)} pesos"
            for p in shown
        )
        intro = f'I found {len(matches)} products matching "{query}".'
        if len(matches) > MAX_LISTED_PRODUCTS:
            intro += f" Here are the first {MAX_LISTED_PRODUCTS}."
        return f"{intro} {items}. Which one would you like to know more about?"

    # ── Tool 2: Create an order ──────────────────────────────────────

    @tool
    def create_order(
        product_name: str,
        quantity: int | None = 1,
        customer_name: str | None = None,
        customer_phone: str | None = None,
        delivery_address: str | None = None,
        is_pwd_senior: bool | None = False,
    ) -> str:
        """Place an order for a product on behalf of the caller.

        Args:
            product_name: The product to order, as named in the catalog.
            quantity: Number of units (defaults to 1).
            customer_name: The caller's full name.
            customer_phone: A phone number we can reach the caller on.
            delivery_address: Where to deliver, if not picking up.
            is_pwd_senior: True if the caller has a PWD or Senior Citizen ID.
        """
        if not product_name.strip():
            return (
                "I didn't catch which product you'd like to order. "
                "Could you please confirm the product name for me?"
            )

        matches = state.catalog.search(product_name)
        if not matches:
            return (
                f'I couldn\'t find "{product_name}" in our catalog. '
                "Could you please confirm the product name for me?"
            )

        product = matches[0]
        qty = quantity or 1
        discounted = bool(is_pwd_senior)
        unit_price = product.pwd_senior_price if discounted else product.regular_price

        order = state.ledger.create_order(
            product_name=product.product_name,
            size_variant=product.size_variant,
            quantity=qty,
            customer_name=customer_name,
            customer_phone=customer_phone,
            delivery_address=delivery_address,
            is_pwd_senior=discounted,
            unit_price=unit_price,
            total_price=unit_price * qty,
        )

        discount_note = " with your PWD or Senior Citizen discount" if discounted else ""
        follow_up = (
            f"We'll call you at {customer_phone} to confirm the details."
            if customer_phone
            else "Our team will contact you to confirm the details."
        )
        return (
            f"Your order has been placed. Your order number is {order.order_id}. "
            f"That's {qty} of {product.product_name}, {product.size_variant}"
            f"{discount_note}, for a total of {format_pesos(order.total_price)} pesos. "
            f"{follow_up}"
        )

    # ── Tool 3: Log a complaint ──────────────────────────────────────

    @tool
    def log_complaint(
        description: str | None = None,
        complaint_type: str | None = None,
        customer_name: str | None = None,
        customer_phone: str | None = None,
    ) -> str:
        """Record a customer complaint for follow-up by customer care.

        Args:
            description: What went wrong, in the caller's words.
            complaint_type: e.g. "product_quality", "delivery", "service", "billing".
            customer_name: The caller's name, if given.
            customer_phone: A callback number, if given.
        """
        complaint = state.ledger.log_complaint(
            customer_name=customer_name,
            customer_phone=customer_phone,
            complaint_type=complaint_type or "general",
            description=description or "",
        )
        return (
            "I'm sorry to hear about that. I've logged your complaint and your "
            f"reference number is {complaint.complaint_id}. Our customer care team "
            "will get back to you within 24 to 48 hours."
        )

    # ── Tool 4: Hand off to a human ──────────────────────────────────

    @tool
    def transfer_to_human(
        reason: str | None = None,
        department: str | None = None,
        call_id: Annotated[str, InjectedToolArg] = "unknown",
    ) -> str:
        """Transfer the caller to a human pharmacist or staff member.

        Args:
            reason: Why the caller needs a human.
            department: e.g. "pharmacist", "customer service", "billing".
        """
        state.call_log.append(
            "transfer_requested",
            call_id,
            {"reason": reason, "department": department},
        )
        logger.info("Transfer requested on call %s (department=%s)", call_id, department)

        if department:
            return f"Of course. Let me transfer you to our {department} team now. Please hold."
        return "Of course. Let me transfer you to one of our team members now. Please hold."

    return [lookup_product, create_order, log_complaint, transfer_to_human]
