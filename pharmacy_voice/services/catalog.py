"""Product catalog backed by a CSV file.

The catalog is read once, on first access, from the first path that exists
among the candidates (see :func:`default_catalog_paths`).  It is never
reloaded: the product list is static for the lifetime of the process, so
reads after the first load need no locking.

Column order is positional (15 fields)::

    product_name, generic_name, drug_class, size_variant, regular_price,
    pwd_senior_price, category, description, mechanism_of_action,
    indications, dosage_info, active_ingredients, important_info,
    contraindications, warnings
"""

from __future__ import annotations

import csv
import logging
import math
import threading
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from pharmacy_voice.config import CATALOG_PATH

logger = logging.getLogger(__name__)

_REPO_ROOT = Path(__file__).resolve().parent.parent.parent

_TEXT_COLUMNS = (
    "product_name",
    "generic_name",
    "drug_class",
    "size_variant",
)
_PRICE_COLUMNS = ("regular_price", "pwd_senior_price")
_DETAIL_COLUMNS = (
    "category",
    "description",
    "mechanism_of_action",
    "indications",
    "dosage_info",
    "active_ingredients",
    "important_info",
    "contraindications",
    "warnings",
)


class Product(BaseModel):
    """One immutable catalog row."""

    model_config = ConfigDict(frozen=True)

    product_name: str
    generic_name: str = ""
    drug_class: str = ""
    size_variant: str = ""
    regular_price: float = 0
    pwd_senior_price: float = 0
    category: str = ""
    description: str = ""
    mechanism_of_action: str = ""
    indications: str = ""
    dosage_info: str = ""
    active_ingredients: str = ""
    important_info: str = ""
    contraindications: str = ""
    warnings: str = ""

    @property
    def searchable_text(self) -> str:
        return " ".join(
            [
                self.product_name,
                self.generic_name,
                self.drug_class,
                self.category,
                self.description,
                self.indications,
            ]
        ).lower()


def default_catalog_paths() -> list[Path]:
    """Candidate CSV locations, in priority order."""
    paths = []
    if CATALOG_PATH:
        paths.append(Path(CATALOG_PATH))
    cwd = Path.cwd()
    paths.extend(
        [
            cwd / "data" / "products.csv",
            cwd / "apps" / "api" / "data" / "products.csv",
            _REPO_ROOT / "data" / "products.csv",
        ]
    )
    return paths


def _parse_price(raw: str) -> float:
    try:
        value = float(raw)
    except ValueError:
        return 0
    return value if math.isfinite(value) else 0


def _row_to_product(row: list[str]) -> Product:
    values = [cell.strip() for cell in row]
    # Short rows are padded so missing trailing columns become ""
    values += [""] * (15 - len(values))

    fields: dict[str, str | float] = dict(zip(_TEXT_COLUMNS, values[0:4]))
    fields.update(
        {name: _parse_price(raw) for name, raw in zip(_PRICE_COLUMNS, values[4:6])}
    )
    fields.update(dict(zip(_DETAIL_COLUMNS, values[6:15])))
    return Product(**fields)


def parse_catalog(text: str) -> list[Product]:
    """Parse CSV *text* (header row first) into products.

    Quoted fields may contain commas.  Blank lines are skipped.
    """
    lines = [line for line in text.splitlines() if line.strip()]
    if not lines:
        return []
    reader = csv.reader(lines[1:])
    return [_row_to_product(row) for row in reader if row]


class ProductCatalog:
    """Lazily loaded, read-only product catalog."""

    def __init__(self, paths: list[Path] | None = None) -> None:
        self._paths = paths if paths is not None else default_catalog_paths()
        self._products: list[Product] | None = None
        self._lock = threading.Lock()

    # ── Loading ──────────────────────────────────────────────────────

    def _load(self) -> list[Product]:
        for path in self._paths:
            if not path.is_file():
                continue
            try:
                products = parse_catalog(path.read_text(encoding="utf-8"))
            except (OSError, UnicodeDecodeError, csv.Error):
                logger.exception("Error loading products from %s", path)
                return []
            logger.info("Loaded %d products from %s", len(products), path)
            return products

        logger.warning("Products CSV not found, using empty catalog")
        return []

    @property
    def products(self) -> list[Product]:
        """All products, loading the CSV on first access."""
        if self._products is None:
            with self._lock:
                if self._products is None:
                    self._products = self._load()
        return self._products

    # ── Queries ──────────────────────────────────────────────────────

    def search(self, query: str) -> list[Product]:
        """Return products whose searchable text contains every query token."""
        terms = query.lower().split()
        return [
            product
            for product in self.products
            if all(term in product.searchable_text for term in terms)
        ]

    def get_by_name(self, name: str) -> Product | None:
        wanted = name.lower()
        for product in self.products:
            if product.product_name.lower() == wanted:
                return product
        return None

    def get_by_category(self, category: str) -> list[Product]:
        wanted = category.lower()
        return [p for p in self.products if p.category.lower() == wanted]

    def list_categories(self) -> list[str]:
        """Distinct categories in first-seen order."""
        return list(dict.fromkeys(p.category for p in self.products))


# ── Voice formatting ────────────────────────────────────────────────


def format_pesos(amount: float) -> str:
    """Render a price the way it should be spoken: ``24`` not ``24.0``."""
    if float(amount).is_integer():
        return str(int(amount))
    return f"{amount:.2f}"


def format_product_for_voice(product: Product) -> str:
    """Short spoken summary of a product."""
    return (
        f"{product.product_name} ({product.generic_name}), {product.size_variant}. "
        f"Regular price: {format_pesos(product.regular_price)} pesos. "
        f"PWD/Senior price: {format_pesos(product.pwd_senior_price)} pesos. "
        f"{product.indications}"
    ).strip()


def format_product_details_for_voice(product: Product) -> str:
    """Longer spoken description, used when a lookup finds exactly one product."""
    response = f"{product.product_name} is {product.generic_name}, a {product.drug_class}. "
    response += (
        f"It is available in {product.size_variant} at "
        f"{format_pesos(product.regular_price)} pesos regular price, "
    )
    response += (
        f"or {format_pesos(product.pwd_senior_price)} pesos with PWD or "
        "Senior Citizen discount. "
    )
    if product.description:
        response += f"{product.description} "
    if product.dosage_info:
        response += f"Dosage: {product.dosage_info} "
    if product.important_info:
        response += f"Important: {product.important_info}"
    return response.strip()
