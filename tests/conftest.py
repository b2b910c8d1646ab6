from typing import Any

import pytest

from product_migrator.processor.mapping import ColumnMapping


@pytest.fixture()
def column_mapping() -> ColumnMapping:
    """Mapping for the column headers used in the spreadsheet fixtures."""
    return ColumnMapping(
        predecessor_id="CD_PRODUTO",
        species_code="ESPECIE",
        class_code="CLASSE",
        subclass_code="SUBCLASSE",
    )


@pytest.fixture()
def sheet_rows() -> list[dict[str, Any]]:
    """Three parsed spreadsheet rows with valid codes."""
    return [
        {"CD_PRODUTO": 100, "ESPECIE": 1, "CLASSE": 2, "SUBCLASSE": 3},
        {"CD_PRODUTO": "200", "ESPECIE": "1", "CLASSE": "2", "SUBCLASSE": "4"},
        {"CD_PRODUTO": 300.0, "ESPECIE": 1, "CLASSE": 2, "SUBCLASSE": 3},
    ]
