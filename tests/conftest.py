"""Shared fixtures for festmap tests."""

from datetime import datetime
import json
from pathlib import Path

import pytest

from festmap.loader import parse_dataset
from festmap.models import Merchant

# 2025-06-02 is a Monday.
MONDAY = datetime(2025, 6, 2)

SPLIT_SHIFT_HOURS = {
    "monday": "09:00-13:00,17:00-20:00",
    "tuesday": "09:00-13:00,17:00-20:00",
    "sunday": "closed",
}


def at_monday(hour: int, minute: int = 0) -> datetime:
    return MONDAY.replace(hour=hour, minute=minute)


def make_merchant(merchant_id: int = 1, visits: int = 0, hours=None, **kwargs) -> Merchant:
    return Merchant(
        id=merchant_id,
        name=kwargs.pop("name", f"Merchant {merchant_id}"),
        hours=dict(SPLIT_SHIFT_HOURS if hours is None else hours),
        visits=visits,
        **kwargs,
    )


def sample_payload() -> dict[str, object]:
    return {
        "meta": {"total_visits_today": 1284},
        "events": [
            {
                "id": "ruta-tapa",
                "name": "Ruta de la Tapa",
                "color": "#E4572E",
                "icon": "T",
                "merchants": [
                    {
                        "id": 1,
                        "name": "Bar La Plaça",
                        "address": "Plaça de l'Ajuntament 3",
                        "coordinates": {"lat": 41.3601, "lng": 2.1002},
                        "hours": dict(SPLIT_SHIFT_HOURS),
                        "stats": {"visits": 52},
                        "dish": {"name": "Patates braves", "price": "3,50 €", "description": "Salsa brava."},
                        "tags": ["vegetariana", "per-emportar"],
                    },
                    {
                        "id": 2,
                        "name": "Fleca Can Pons",
                        "address": "Carrer Major 18",
                        "coordinates": {"lat": 41.3588, "lng": 2.1031},
                        "hours": {"monday": "07:30-14:00", "sunday": "08:00-14:00"},
                        "stats": {"visits": 27},
                        "dish": {"name": "Coca de recapte", "price": None, "description": ""},
                        "tags": [],
                    },
                ],
            },
            {
                "id": "setmana-cultura",
                "name": "Setmana de la Cultura",
                "color": "#3B8EA5",
                "icon": "C",
                "merchants": [
                    {
                        "id": 3,
                        "name": "Llibreria El Full",
                        "address": "Rambla Just Oliveras 41",
                        "coordinates": {"lat": 41.3572, "lng": 2.1064},
                        "hours": {"monday": "17:00-20:00"},
                        "stats": {"visits": 8},
                        "dish": {"name": "Lectura de contes"},
                        "tags": ["sense-gluten"],
                    },
                    {
                        "id": 4,
                        "name": "Parada sense ubicació",
                        "coordinates": {"lat": 0, "lng": 0},
                        "hours": {"monday": "25:00-26:00"},
                        "stats": {"visits": 0},
                    },
                ],
            },
        ],
    }


def write_payload(path: Path, payload: dict[str, object] | None = None) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload or sample_payload(), ensure_ascii=False), encoding="utf-8")
    return path


@pytest.fixture
def dataset():
    return parse_dataset(sample_payload())


@pytest.fixture
def data_file(tmp_path: Path) -> Path:
    return write_payload(tmp_path / "data" / "merchants.json")
