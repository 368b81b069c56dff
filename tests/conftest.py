"""Shared pytest configuration and fixtures for the test suite."""

import datetime as dt
import json
from pathlib import Path
from typing import Any, Callable
from unittest.mock import Mock

import pytest
import yaml

from providers.base import ProductSource, RateDocument

PRODUCT_IDS = ["livret_a", "ldds", "lep", "cel", "pel_new"]


def make_page(body: str) -> str:
    """Wrap prose in a Service-Public-like page with noise around it."""
    return (
        "<html><head><title>Fiche pratique</title>"
        "<style>.rate { content: '99 %'; }</style>"
        "<script>var promo = '12 %';</script></head>"
        "<body><nav><a href='/'>Accueil</a></nav>"
        f"<main><p>{body}</p></main>"
        "<footer>Taux de satisfaction : 87 %</footer></body></html>"
    )


@pytest.fixture
def page() -> Callable[[str], str]:
    return make_page


@pytest.fixture
def livret_a_source() -> ProductSource:
    return ProductSource(id="livret_a", url="https://example.test/livret_a")


@pytest.fixture
def seed_document() -> dict[str, Any]:
    """Raw rate document with every product stable since 2025-02-01."""
    products = {
        pid: {
            "current_rate": 0.024,
            "current_since": "2025-02-01",
            "history": [{"date": "2025-02-01", "rate": 0.024}],
        }
        for pid in PRODUCT_IDS
    }
    products["livret_a"] = {
        "label": "Livret A",
        "current_rate": 0.03,
        "current_since": "2024-02-01",
        "history": [{"date": "2024-02-01", "rate": 0.03}],
    }
    return {"updated_at": "2025-07-15", "products": products}


@pytest.fixture
def document(seed_document: dict[str, Any]) -> RateDocument:
    return RateDocument.model_validate(seed_document)


@pytest.fixture
def rates_file(tmp_path: Path, seed_document: dict[str, Any]) -> Path:
    path = tmp_path / "rates.json"
    path.write_text(json.dumps(seed_document, indent=2) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def sources_file(tmp_path: Path) -> Path:
    path = tmp_path / "sources.yaml"
    cfg = {
        "timeout": 5,
        "sources": [
            {"id": pid, "url": f"https://example.test/{pid}"} for pid in PRODUCT_IDS
        ],
    }
    path.write_text(yaml.safe_dump(cfg), encoding="utf-8")
    return path


@pytest.fixture
def effective_date() -> dt.date:
    return dt.date(2025, 8, 1)


@pytest.fixture
def mock_response() -> Callable[..., Mock]:
    """Factory for fake requests responses."""

    def _make(text: str = "", status_code: int = 200) -> Mock:
        response = Mock()
        response.status_code = status_code
        response.text = text
        return response

    return _make
