from types import SimpleNamespace
from unittest import mock

import pytest
from google.api_core import exceptions as gcp_exceptions
from google.cloud import firestore

from solar_quote_engine.catalog_matcher import CatalogMatcher
from solar_quote_engine.errors import TransactionConflictError
from solar_quote_engine.firestore_quote_store import FirestoreQuoteStore, product_from_firestore_dict
from solar_quote_engine.models.catalog import ProductCategory
from solar_quote_engine.models.quote import CategoryToggles
from solar_quote_engine.models.sizing import RoofType, SizingResult


def mock_client(commit_error=None) -> mock.MagicMock:
    client = mock.MagicMock()
    client._firestore_api.begin_transaction.return_value = SimpleNamespace(transaction=b"txn-1")
    if commit_error is not None:
        client._firestore_api.commit.side_effect = commit_error
    client.transaction.side_effect = lambda **kwargs: firestore.Transaction(client, **kwargs)
    return client


def test_inverter_document_maps_camel_case_fields():
    item = product_from_firestore_dict(
        "inv-1",
        {
            "name": "Huawei SUN2000 6KTL",
            "category": "inverter",
            "unitPrice": 1100,
            "taxRate": 23,
            "isActive": True,
            "specs": {"powerRating": 6, "mpptChannels": 2, "phases": 1, "type": "hybrid"},
        },
    )

    assert item.id == "inv-1"
    assert item.category == ProductCategory.inverter
    assert item.unit_price == 1100
    assert item.specs.power_rating_kw == 6
    assert item.specs.inverter_type == "hybrid"


def test_accessory_specs_are_kept_as_attributes():
    item = product_from_firestore_dict(
        "cable-1",
        {"name": "Solar cable 4mm²", "category": "accessory", "unitPrice": 1.2, "unit": "m", "specs": {"color": "red"}},
    )

    assert item.specs.kind == "accessory"
    assert item.specs.attributes == {"color": "red"}
    assert item.unit == "m"


def test_imported_products_with_empty_specs_are_still_matched():
    products = [
        product_from_firestore_dict("p", {"name": "Panel", "category": "solar_panel", "unitPrice": 100, "specs": {}}),
        product_from_firestore_dict("i", {"name": "Inverter", "category": "inverter", "unitPrice": 900, "specs": {}}),
        product_from_firestore_dict("m", {"name": "Rail kit", "category": "mounting", "unitPrice": 40}),
    ]
    assert products[0].specs.wattage is None
    assert products[2].specs.roof_type is None

    sizing = SizingResult(
        recommended_kwp=4.95, max_inverter_kw=6.21, panel_count=9, panel_wattage=550,
        cable_size_dc_mm2=4, cable_size_ac_mm2=6, cable_length_dc_m=33, cable_length_ac_m=17,
        battery_kwh=None, estimated_annual_production_kwh=6311,
    )
    toggles = CategoryToggles(battery=False, dc_cable=False, ac_cable=False, labor=False)

    result = CatalogMatcher().select(sizing, products, RoofType.tile, toggles)

    assert [selection.product.id for selection in result.selections] == ["p", "i", "m"]
    assert result.warnings == []


def test_exhausted_commit_retries_raise_conflict():
    client = mock_client(commit_error=gcp_exceptions.Aborted("contention"))
    store = FirestoreQuoteStore(client=client, max_attempts=3)
    attempts = []

    with pytest.raises(TransactionConflictError):
        store.run_transaction(attempts.append)

    assert len(attempts) == 3
    assert client._firestore_api.commit.call_count == 3
    client._firestore_api.rollback.assert_called_once()


def test_other_value_errors_are_not_treated_as_conflicts():
    store = FirestoreQuoteStore(client=mock_client(), max_attempts=3)

    def invalid(transaction):
        raise ValueError("bad quote payload")

    with pytest.raises(ValueError, match="bad quote payload"):
        store.run_transaction(invalid)
