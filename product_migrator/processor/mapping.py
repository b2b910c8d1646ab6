from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any

from product_migrator.cloning.models import Classification
from product_migrator.processor.exceptions import MappingError, RowValueError

REQUIRED_FIELDS = ("predecessor_id", "species_code", "class_code", "subclass_code")

# Ranges of the ledger columns: BIGINT for product ids, INTEGER for classification codes.
PRODUCT_CODE_MAX = 2**63 - 1
CLASSIFICATION_CODE_MAX = 2**31 - 1


def to_code(value: Any, max_value: int = PRODUCT_CODE_MAX) -> int | None:
    """Coerce a spreadsheet cell to an integral code, or None if it is not one.

    Codes outside ``-max_value..max_value`` are rejected as well.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if abs(value) <= max_value else None
    text = str(value).strip()
    if not text:
        return None
    try:
        number = Decimal(text)
    except InvalidOperation:
        return None
    if not number.is_finite():
        return None
    # Checked before to_integral_value and int, which expand the exponent.
    if number.adjusted() >= len(str(max_value)):
        return None
    if number != number.to_integral_value():
        return None
    code = int(number)
    return code if abs(code) <= max_value else None


@dataclass(frozen=True)
class RowValues:
    """Coerced values of one input row. Codes are None when not integral."""

    predecessor_id: int | None
    species_code: int | None
    class_code: int | None
    subclass_code: int | None
    raw_predecessor: Any = None

    @property
    def classification(self) -> Classification:
        """The target triple.

        Raises:
            RowValueError: if any part of the triple is missing.
        """
        if self.species_code is None or self.class_code is None or self.subclass_code is None:
            raise RowValueError(
                "Classification requires integral species, class and subclass codes"
            )
        return Classification(self.species_code, self.class_code, self.subclass_code)

    def validate(self) -> None:
        """Raises RowValueError if the row cannot be submitted for cloning."""
        if self.predecessor_id is None:
            raise RowValueError(
                f"Invalid predecessor product code: {self.raw_predecessor!r}"
            )
        if None in (self.species_code, self.class_code, self.subclass_code):
            raise RowValueError(
                "Classification requires integral species, class and subclass codes"
            )


@dataclass(frozen=True)
class ColumnMapping:
    """Spreadsheet column names for each field a migration row needs."""

    predecessor_id: str
    species_code: str
    class_code: str
    subclass_code: str

    @classmethod
    def from_dict(cls, mapping: Mapping[str, str | None]) -> "ColumnMapping":
        """Build from a field->column mapping, or its column->field inverse.

        Raises:
            MappingError: if any required field has no column.
        """
        if all(field in mapping for field in REQUIRED_FIELDS):
            by_field = dict(mapping)
        else:
            by_field = {field: column for column, field in mapping.items() if field}

        missing = [field for field in REQUIRED_FIELDS if not by_field.get(field)]
        if missing:
            raise MappingError(
                f"Incomplete column mapping. Required fields: {', '.join(missing)}"
            )
        return cls(**{field: str(by_field[field]) for field in REQUIRED_FIELDS})

    def extract(self, row: Mapping[str, Any]) -> RowValues:
        raw_predecessor = row.get(self.predecessor_id)
        return RowValues(
            predecessor_id=to_code(raw_predecessor),
            species_code=to_code(row.get(self.species_code), CLASSIFICATION_CODE_MAX),
            class_code=to_code(row.get(self.class_code), CLASSIFICATION_CODE_MAX),
            subclass_code=to_code(row.get(self.subclass_code), CLASSIFICATION_CODE_MAX),
            raw_predecessor=raw_predecessor,
        )
