"""
Tests for chunked CSV export.

Covers:
- Header construction from fixed fields and feature columns
- Numeric coercion and NULL defaults
- Chunking into <address>_<n>.csv files
- Failure reporting
"""

import asyncio
import shutil
import tempfile
from pathlib import Path
from unittest.mock import patch

import pandas as pd
import pytest

from ethgasstats.extraction.export import (
    FIXED_FIELDS,
    NULL,
    _transaction_to_csv_row,
    build_fields,
    export_to_csv,
)

ADDRESS = "0x1111111111111111111111111111111111111111"


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test outputs."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path)


def prepared_tx(index: int, **extra) -> dict:
    """Build a prepared transaction record."""
    tx = {
        "hash": f"0x{index:064x}",
        "from": "0x742d35cc6634c0532925a3b844bc9e7595f0beb1",
        "to": ADDRESS,
        "contractAddress": ADDRESS,
        "blockNumber": str(14000000 + index),
        "gas": "90000",
        "gasPrice": "50000000000",
        "gasUsed": "51234",
        "timeStamp": str(1643000000 + index),
        "input": {"method": "transfer", "types": [], "inputs": [], "names": []},
        "method": "transfer",
        "types": ["uint256"],
        "inputs": [index],
        "names": ["amount"],
        "properties": {"arg_amount": index},
        "features": ["arg_amount"],
        "arg_amount": index,
    }
    tx.update(extra)
    return tx


class TestBuildFields:
    """Test CSV header construction."""

    def test_fixed_fields_come_first(self):
        fields = build_fields([prepared_tx(0)])

        assert fields[: len(FIXED_FIELDS)] == FIXED_FIELDS
        assert fields[len(FIXED_FIELDS) :] == ["arg_amount"]

    def test_feature_union_in_order_of_first_appearance(self):
        txs = [
            prepared_tx(0, features=["arg_b", "arg_a"]),
            prepared_tx(1, features=[]),
            prepared_tx(2, features=["arg_a", "arg_c"]),
        ]

        assert build_fields(txs)[len(FIXED_FIELDS) :] == ["arg_b", "arg_a", "arg_c"]


class TestCsvRows:
    """Test conversion of prepared records to CSV rows."""

    def test_address_column_comes_from_destination(self):
        tx = prepared_tx(0, to="0xbeef", contractAddress="0xdead")

        row = _transaction_to_csv_row(tx, build_fields([tx]))

        assert row["address"] == "0xbeef"

    def test_numeric_fields_are_coerced(self):
        tx = prepared_tx(0, gasUsed="0x10", gasPrice=None, gas="")
        tx.pop("timeStamp")

        row = _transaction_to_csv_row(tx, build_fields([tx]))

        assert row["blockNumber"] == 14000000
        assert row["gasUsed"] == 16
        assert row["gasPrice"] == NULL
        assert row["gas"] == NULL
        assert row["timeStamp"] == NULL

    def test_structured_values_are_json(self):
        tx = prepared_tx(3)

        row = _transaction_to_csv_row(tx, build_fields([tx]))

        assert row["inputs"] == "[3]"
        assert row["properties"] == '{"arg_amount":3}'

    def test_missing_feature_is_empty(self):
        txs = [prepared_tx(0, features=["arg_extra"], arg_extra=5), prepared_tx(1)]

        row = _transaction_to_csv_row(txs[1], build_fields(txs))

        assert row["arg_extra"] == ""


class TestExportToCsv:
    """Test export_to_csv."""

    def test_empty_input_raises_before_writing(self, temp_dir):
        output_dir = temp_dir / "out"

        with pytest.raises(ValueError, match="There is no transactions to process"):
            asyncio.run(export_to_csv([], ADDRESS, output_dir))

        assert not output_dir.exists()

    def test_transactions_are_split_into_chunks(self, temp_dir):
        txs = [prepared_tx(i) for i in range(1500)]

        paths = asyncio.run(export_to_csv(txs, ADDRESS, temp_dir / "out"))

        assert [p.name for p in paths] == [f"{ADDRESS}_0.csv", f"{ADDRESS}_1.csv"]
        first = pd.read_csv(paths[0], dtype=str, keep_default_na=False)
        second = pd.read_csv(paths[1], dtype=str, keep_default_na=False)
        assert len(first) == 1000
        assert len(second) == 500
        assert second["hash"].iloc[0] == f"0x{1000:064x}"

    def test_csv_contents(self, temp_dir):
        txs = [prepared_tx(0), prepared_tx(1, gasPrice=None, features=[])]

        paths = asyncio.run(export_to_csv(txs, ADDRESS, temp_dir))

        df = pd.read_csv(paths[0], dtype=str, keep_default_na=False)
        assert list(df.columns) == FIXED_FIELDS + ["arg_amount"]
        assert df["address"].tolist() == [ADDRESS, ADDRESS]
        assert df["gasPrice"].tolist() == ["50000000000", NULL]
        assert df["method"].tolist() == ["transfer", "transfer"]
        assert df["arg_amount"].tolist() == ["0", "1"]

    def test_custom_chunk_size(self, temp_dir):
        txs = [prepared_tx(i) for i in range(5)]

        paths = asyncio.run(export_to_csv(txs, ADDRESS, temp_dir, chunk_size=2))

        assert len(paths) == 3

    def test_non_positive_chunk_size_rejected(self, temp_dir):
        with pytest.raises(ValueError, match="chunk_size must be positive"):
            asyncio.run(export_to_csv([prepared_tx(0)], ADDRESS, temp_dir, chunk_size=0))

    def test_write_failure_names_file(self, temp_dir):
        txs = [prepared_tx(i) for i in range(3)]

        with patch(
            "ethgasstats.extraction.export._write_chunk",
            side_effect=[None, OSError("disk full")],
        ):
            with pytest.raises(OSError, match=rf"disk full; file: .*{ADDRESS}_1\.csv"):
                asyncio.run(export_to_csv(txs, ADDRESS, temp_dir, chunk_size=2))
