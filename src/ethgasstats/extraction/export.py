"""
Export prepared transactions to chunked CSV files.

The CSV schema is a fixed prefix of transaction fields followed by every
feature column contributed by any transaction, in order of first appearance.
Rows are split into chunks of 1000; chunk ``i`` is written to
``<address>_<i>.csv``.

Usage:
    from ethgasstats.extraction.export import export_to_csv

    paths = await export_to_csv(prepared_txs, address, output_dir="data/out")
"""

import asyncio
import logging
from pathlib import Path
from typing import Any

import pandas as pd

from .core.normalization import to_json

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 1000
NULL = "NULL"

NUMERIC_FIELDS = frozenset({"blockNumber", "gasUsed", "gasPrice", "gas", "timeStamp"})

FIXED_FIELDS = [
    "address",
    "blockNumber",
    "gasUsed",
    "gasPrice",
    "gas",
    "from",
    "input",
    "method",
    "types",
    "inputs",
    "names",
    "hash",
    "timeStamp",
    "properties",
]


def build_fields(txs: list[dict[str, Any]]) -> list[str]:
    """
    Build the CSV header: fixed fields, then the union of feature columns.

    Args:
        txs: Prepared transactions

    Returns:
        Column names, de-duplicated, in order of first appearance
    """
    columns = list(FIXED_FIELDS)
    for tx in txs:
        columns.extend(tx.get("features") or [])

    return list(dict.fromkeys(columns))


def _to_number(value: Any) -> int | float | str:
    """Coerce a numeric field; missing or unparseable values become NULL."""
    if value is None or value == "":
        return NULL

    if isinstance(value, bool):
        return int(value)

    if isinstance(value, (int, float)):
        return value

    text = str(value).strip()
    try:
        return int(text, 16) if text.lower().startswith("0x") else int(text)
    except ValueError:
        pass

    try:
        return float(text)
    except ValueError:
        return NULL


def _to_cell(value: Any) -> Any:
    if value is None:
        return ""

    if isinstance(value, (dict, list, tuple, bool)):
        return to_json(value)

    return value


def _transaction_to_csv_row(tx: dict[str, Any], fields: list[str]) -> dict[str, Any]:
    """
    Convert a prepared transaction to a CSV row dictionary.

    ``address`` is taken from the transaction's ``to`` field. Numeric fields
    are coerced to numbers; structured values are written as JSON.
    """
    row = {}
    for name in fields:
        if name == "address":
            row[name] = _to_cell(tx.get("to"))
        elif name in NUMERIC_FIELDS:
            row[name] = _to_number(tx.get(name))
        else:
            row[name] = _to_cell(tx.get(name))

    return row


def _write_chunk(txs: list[dict[str, Any]], fields: list[str], path: Path) -> None:
    rows = [_transaction_to_csv_row(tx, fields) for tx in txs]

    # object dtype keeps integers intact in sparsely populated feature columns
    df = pd.DataFrame(rows, columns=fields, dtype=object)
    df.to_csv(path, index=False, encoding="utf-8")


async def export_to_csv(
    txs: list[dict[str, Any]],
    address: str,
    output_dir: str | Path | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> list[Path]:
    """
    Export prepared transactions to one CSV file per chunk.

    Each chunk write is awaited before the next chunk is serialized, so at
    most one output file is open at a time. Files already written are kept
    when a later chunk fails.

    Args:
        txs: Prepared transactions
        address: Queried address, used as file name prefix
        output_dir: Output directory (created if missing). Defaults to the
            current working directory.
        chunk_size: Maximum number of rows per file

    Returns:
        Paths of the written files, in chunk order

    Raises:
        ValueError: If txs is empty or chunk_size is not positive
        OSError: If a chunk cannot be serialized or written; the message
            names the failing file
    """
    if not txs:
        raise ValueError("There is no transactions to process")

    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")

    output_dir = Path(output_dir) if output_dir else Path.cwd()
    output_dir.mkdir(parents=True, exist_ok=True)

    fields = build_fields(txs)
    paths = []

    for index, start in enumerate(range(0, len(txs), chunk_size)):
        chunk = txs[start : start + chunk_size]
        path = output_dir / f"{address}_{index}.csv"

        try:
            await asyncio.to_thread(_write_chunk, chunk, fields, path)
        except (OSError, ValueError, TypeError) as e:
            raise OSError(
                f"An error occurred on txs data processing to csv: {e}; file: {path}"
            ) from e

        logger.debug(f"Wrote {len(chunk)} rows to {path}")
        paths.append(path)

    logger.info(
        f"Exported {len(txs)} transactions to {len(paths)} files in {output_dir} "
        f"({len(fields)} columns)"
    )
    return paths
