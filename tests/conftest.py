"""Shared test fixtures for the pharmacy voice test suite."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

CATALOG_HEADER = (
    "Product Name,Generic Name,Drug Class,Size/Variant,Regular Price,PWD/Senior Price,"
    "Category,Description,Mechanism of Action,Indications,Dosage Info,Active Ingredients,"
    "Important Info,Contraindications,Warnings"
)

CATALOG_ROWS = [
    'Paracetamol 500mg,Paracetamol,Analgesic,500mg tablet,10,8,Pain Relief,'
    '"For fever, headache and body aches.",Blocks prostaglandins,"Fever, headache",'
    "1 tablet every 4 hours,Paracetamol 500mg,Do not exceed 8 tablets a day.,Liver disease,",
    "Ibuprofen 200mg,Ibuprofen,NSAID,200mg softgel,8.50,6.80,Pain Relief,"
    "Anti-inflammatory pain relief.,COX inhibitor,Toothache,1 softgel as needed,Ibuprofen,"
    "Take with food.,Ulcers,",
    "Loratadine 10mg,Loratadine,Antihistamine,10mg tablet,18,14.40,Allergy,"
    "Non-drowsy allergy relief.,H1 blocker,Allergic rhinitis,1 tablet daily,Loratadine,,,",
    "Vitamin C 500mg,Ascorbic Acid,Vitamin,500mg tablet,6,4.80,Vitamins,"
    "Immune support.,,Vitamin C deficiency,1 tablet daily,Ascorbic Acid,,,",
]


def pytest_configure(config):
    """Set test environment variables BEFORE collection starts."""
    os.environ.setdefault("RETELL_API_KEY", "test-retell-key-123")
    os.environ.setdefault("METRICS_ENABLED", "false")


def write_catalog(path: Path, rows: list[str]) -> Path:
    path.write_text("\n".join([CATALOG_HEADER, *rows]) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def catalog_path(tmp_path):
    return write_catalog(tmp_path / "products.csv", CATALOG_ROWS)


@pytest.fixture
def catalog(catalog_path):
    from pharmacy_voice.services.catalog import ProductCatalog

    return ProductCatalog([catalog_path])


@pytest.fixture
def state(catalog):
    from pharmacy_voice.services.rate_limiter import RateLimiter
    from pharmacy_voice.state import PharmacyState

    return PharmacyState(catalog=catalog, rate_limiter=RateLimiter(3, 5))


@pytest.fixture
def dispatcher(state):
    from pharmacy_voice.tools.dispatcher import ToolDispatcher

    return ToolDispatcher(state)
