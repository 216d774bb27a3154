"""Output serializers for transaction listings."""

import json
from abc import ABC, abstractmethod
from collections.abc import Sequence

import polars as pl

from ..models import TransactionRecord

CSV_COLUMNS = ["Date", "Amount", "Description"]


class TransactionSerializer(ABC):
    """Render a list of transactions as text."""

    @abstractmethod
    def serialize(self, transactions: Sequence[TransactionRecord]) -> str: ...


class JSONSerializer(TransactionSerializer):
    def serialize(self, transactions: Sequence[TransactionRecord]) -> str:
        rows = [
            tx.model_dump(mode="json", exclude={"record_id"}) for tx in transactions
        ]
        return json.dumps(rows, indent=2)


class CSVSerializer(TransactionSerializer):
    """Three-column CSV for spreadsheet import; commas are stripped from names."""

    def serialize(self, transactions: Sequence[TransactionRecord]) -> str:
        df = pl.DataFrame(
            {
                "Date": [tx.date for tx in transactions],
                "Amount": [f"{tx.amount:f}" for tx in transactions],
                "Description": [tx.name.replace(",", "") for tx in transactions],
            },
            schema={column: pl.String for column in CSV_COLUMNS},
        )
        return df.write_csv()


def get_serializer(output_format: str) -> TransactionSerializer:
    """Look up a serializer by format name.

    Raises:
        ValueError: If the format is not ``json`` or ``csv``
    """
    if output_format == "csv":
        return CSVSerializer()
    if output_format == "json":
        return JSONSerializer()
    raise ValueError(f"Invalid output format: {output_format}")
