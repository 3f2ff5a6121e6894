"""Pytest configuration and fixtures."""

from __future__ import annotations

import itertools

import pytest

from json_normify.config import Config


@pytest.fixture
def cfg() -> Config:
    """Configuration independent of the caller's environment."""
    return Config(root_table_name="root", table_suffix="_table", max_depth=256)


@pytest.fixture
def seq_ids():
    """Deterministic id source: ``id-1``, ``id-2``, ..."""
    counter = itertools.count(1)
    return lambda: f"id-{next(counter)}"


@pytest.fixture
def nested_document() -> dict:
    """An API-style payload with objects, arrays of objects and scalar lists."""
    return {
        "order": "A-100",
        "total": 42.5,
        "paid": True,
        "customer": {
            "name": "Ann",
            "address": {"city": "Oslo", "zip": "0150"},
        },
        "items": [
            {"sku": "X1", "qty": 2, "tags": ["new", "sale"]},
            {"sku": "Y2", "qty": 1, "tags": []},
        ],
        "notes": None,
    }
