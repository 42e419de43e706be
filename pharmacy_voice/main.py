"""CLI console for trying the pharmacy tools without a phone call.

Each line is a tool name followed by optional JSON arguments, dispatched
exactly the way the Retell tool endpoint would dispatch it.

Usage:
    uv run python -m pharmacy_voice.main
    uv run python -m pharmacy_voice.main --catalog data/products.csv --debug

Example session:
    > lookup_product {"query": "paracetamol"}
    > create_order {"product_name": "Biogesic", "quantity": 2, "is_pwd_senior": true}
"""

from __future__ import annotations

import argparse
import json
import logging
import uuid
from pathlib import Path

from dotenv import load_dotenv

from pharmacy_voice.services.catalog import ProductCatalog
from pharmacy_voice.state import PharmacyState
from pharmacy_voice.tools.dispatcher import ToolDispatcher, ToolInvocation

logger = logging.getLogger(__name__)


def _configure_logging(debug: bool = False) -> None:
    """Set up logging: WARNING by default, DEBUG when --debug is passed."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    )
    logging.getLogger("pharmacy_voice").setLevel(logging.DEBUG if debug else logging.INFO)


def parse_command(line: str) -> tuple[str, dict]:
    """Split ``tool_name {json}`` into a name and an argument dict."""
    name, _, rest = line.strip().partition(" ")
    rest = rest.strip()
    args = json.loads(rest) if rest else {}
    if not isinstance(args, dict):
        raise ValueError("Arguments must be a JSON object")
    return name, args


def main():
    """Run the interactive tool console."""
    parser = argparse.ArgumentParser(description="Pharmacy voice agent tool console")
    parser.add_argument("--catalog", type=Path, help="Path to a products CSV file")
    parser.add_argument(
        "--debug", action="store_true",
        help="Show all log messages",
    )
    args = parser.parse_args()

    load_dotenv()
    _configure_logging(debug=args.debug)

    catalog = ProductCatalog([args.catalog]) if args.catalog else ProductCatalog()
    dispatcher = ToolDispatcher(PharmacyState(catalog=catalog))
    call_id = f"cli-{uuid.uuid4().hex[:8]}"

    print("\n" + "=" * 60)
    print("  Pharmacy Voice Agent - Tool Console")
    print("=" * 60)
    print(f"  {len(catalog.products)} products loaded. Call id: {call_id}")
    print("  Enter: <tool_name> {json args}")
    print("  Commands: 'tools' to list tools, 'quit' to exit.")
    print("=" * 60 + "\n")

    while True:
        try:
            line = input("> ").strip()
        except (KeyboardInterrupt, EOFError):
            print("\n\nGoodbye!")
            break

        if not line:
            continue
        if line.lower() in ("exit", "quit", "q"):
            break
        if line.lower() == "tools":
            print("  " + ", ".join(dispatcher.tool_names) + "\n")
            continue

        try:
            name, tool_args = parse_command(line)
        except ValueError as e:
            # json.JSONDecodeError is a ValueError
            print(f"  Could not parse arguments: {e}\n")
            continue

        result = dispatcher.dispatch(ToolInvocation(name=name, args=tool_args, call_id=call_id))
        print(f"\nAgent: {result}\n")

    ledger = dispatcher.state.ledger
    print(f"Session recorded {len(ledger.orders)} order(s) and {len(ledger.complaints)} complaint(s).")


if __name__ == "__main__":
    main()
