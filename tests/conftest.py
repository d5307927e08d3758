"""Shared test fixtures for the invoicing fiscal-core test suite."""

import asyncio
import random
from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from faturacao.domain.models.documents import (
    Document,
    DocumentSeries,
    DocumentKind,
    DocumentStatus,
    LineItem,
    LineKind,
    RetentionMode,
)
from faturacao.domain.services.document_totals import apply_totals
from faturacao.domain.services.fiscal_config_defaults import default_fiscal_config, set_fiscal_config
from faturacao.domain.services.sequence_allocator import InMemoryCounterStore, SequenceAllocator


@pytest.fixture(scope="session")
def event_loop():
    """Use a single event loop for the entire test session."""
    loop = asyncio.new_event_loop()
    yield loop
    loop.close()


@pytest.fixture(autouse=True)
def fiscal_config():
    """Pin the built-in fiscal defaults so env overrides never leak into tests."""
    config = default_fiscal_config()
    set_fiscal_config(config)
    yield config
    set_fiscal_config(None)


@pytest.fixture
def sample_items() -> tuple:
    """Item A: 10 × 1000 at 14 %; item B: 1 × 5000, 10 % off, exempt."""
    return (
        LineItem(quantity=10, unit_price=1000, discount_percent=0, tax_rate_percent=14, description="A"),
        LineItem(quantity=1, unit_price=5000, discount_percent=10, tax_rate_percent=0, description="B"),
    )


@pytest.fixture
def sample_invoice(sample_items) -> Document:
    return Document(
        type="FT",
        date=date(2024, 3, 15),
        items=sample_items,
        global_discount_percent=Decimal("5"),
        counterparty_name="Sonangol Distribuidora",
        counterparty_nif="5410000001",
    )


@pytest.fixture
def service_line():
    def _make(amount, rate=14) -> LineItem:
        return LineItem(quantity=1, unit_price=amount, tax_rate_percent=rate, kind=LineKind.SERVICE)
    return _make


@pytest.fixture
def series() -> DocumentSeries:
    return DocumentSeries(code="A", year=2024, name="Série A")


@pytest.fixture
def allocator() -> SequenceAllocator:
    return SequenceAllocator(InMemoryCounterStore())


@pytest.fixture
def certified_sale():
    """Factory for certified sales documents with totals already applied."""
    def _make(items, type="FT", day=date(2024, 3, 10), status=DocumentStatus.PENDING, **kwargs) -> Document:
        doc = Document(
            type=type, date=day, items=tuple(items), status=status, is_certified=True,
            counterparty_name=kwargs.pop("counterparty_name", "Cliente"), **kwargs,
        )
        return replace(doc, **apply_totals(doc))
    return _make


def _money(rng: random.Random, low: int, high: int) -> Decimal:
    return Decimal(rng.randint(low * 100, high * 100)) / 100


@pytest.fixture
def random_document():
    """Factory for seeded random documents: mixed rates, kinds, currencies,
    discounts and retention modes, with totals applied."""
    def _make(rng: random.Random, kind=None, **overrides) -> Document:
        kind = kind or rng.choice(list(DocumentKind))
        items = tuple(
            LineItem(
                quantity=rng.randint(1, 50),
                unit_price=_money(rng, 0, 30000),
                discount_percent=rng.choice([0, 0, 5, 12.5, 50, 100]),
                tax_rate_percent=rng.choice([0, 5, 7, 14]),
                kind=rng.choice(list(LineKind)),
            )
            for _ in range(rng.randint(1, 6))
        )
        currency = rng.choice(["AOA", "AOA", "USD", "EUR", "BRL"])
        fields = dict(
            kind=kind,
            type="FT",
            date=date(2024, 3, rng.randint(1, 28)),
            items=items,
            currency=currency,
            exchange_rate=Decimal("1") if currency == "AOA" else _money(rng, 100, 1200),
            global_discount_percent=rng.choice([0, 0, 2.5, 5, 10]),
            retention_mode=rng.choice(list(RetentionMode)),
        )
        if kind == DocumentKind.PURCHASE:
            fields["status"] = rng.choice([DocumentStatus.PENDING, DocumentStatus.PAID])
            if rng.random() < 0.5:
                fields["declared_tax_amount"] = _money(rng, 0, 50000)
        fields.update(overrides)
        doc = Document(**fields)
        return replace(doc, **apply_totals(doc))
    return _make
