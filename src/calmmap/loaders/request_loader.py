"""
Ranked request TSV reader.

Expected columns, in order after a header row:
Rank, Street Name, Limit From, Limit To, District.
"""

import csv
import logging
from pathlib import Path
from typing import IO, List, Union

import pandas as pd

from calmmap.errors import DataInconsistencyError
from calmmap.models import Request

logger = logging.getLogger(__name__)

COLUMNS = ["rank", "street_name", "from_street", "to_street", "district"]

# Placeholders meaning "no limit"
WHOLE_STREET = "all"
TO_END = "end"


def normalize_limit(value: str, placeholder: str) -> str:
    value = (value or "").strip()
    if value.lower() == placeholder:
        return ""
    return value


def load_requests_tsv(source: Union[str, Path, IO]) -> List[Request]:
    """Load requests from a tab-separated file.

    Args:
        source: Path or open file

    Returns:
        Requests in file order

    Raises:
        DataInconsistencyError: If a row is short or its rank is not an integer
    """
    df = pd.read_csv(
        source,
        sep="\t",
        dtype=str,
        keep_default_na=False,
        header=0,
        quoting=csv.QUOTE_NONE,
    )
    if len(df.columns) < len(COLUMNS):
        raise DataInconsistencyError(
            f"request file has {len(df.columns)} columns, expected {len(COLUMNS)}"
        )
    df = df.iloc[:, :len(COLUMNS)].fillna("")
    df.columns = COLUMNS

    requests = []
    for row in df.itertuples(index=False):
        try:
            rank = int(row.rank)
        except ValueError:
            raise DataInconsistencyError(f"invalid request rank {row.rank!r}") from None

        requests.append(Request(
            rank=rank,
            street_name=row.street_name.strip(),
            from_street=normalize_limit(row.from_street, WHOLE_STREET),
            to_street=normalize_limit(row.to_street, TO_END),
            district=row.district.strip(),
        ))

    logger.info(f"Loaded {len(requests)} requests")
    return requests
