"""
Local file connectors for contact events: CSV, JSON and Parquet.

All connectors follow the same contract:
  - ``load(source, **kw) -> pd.DataFrame``
  - ``save(df, dest, **kw) -> Path``

``auto_connect(path)`` picks the right connector based on file extension.
``load_contact_events(path)`` goes all the way from a file to validated
``ContactEvent`` contracts grouped by contact.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import pandas as pd
from loguru import logger
from pandera.errors import SchemaErrors

from contact_timing.core.contracts import ContactEvent
from contact_timing.core.events import is_success_type
from contact_timing.core.exceptions import ConnectorError
from contact_timing.schemas.events import REQUIRED_EVENT_COLUMNS, validate_events


# ---------------------------------------------------------------------------
# Abstract base
# ---------------------------------------------------------------------------

class BaseConnector(ABC):
    """Interface that every local connector implements."""

    @abstractmethod
    def load(self, source: str | Path, **kwargs: Any) -> pd.DataFrame:
        """Read data from *source* into a DataFrame."""
        ...

    @abstractmethod
    def save(self, df: pd.DataFrame, dest: str | Path, **kwargs: Any) -> Path:
        """Write *df* to *dest* and return the resolved path."""
        ...

    @staticmethod
    def _ensure_path(source: str | Path) -> Path:
        p = Path(source)
        if not p.exists():
            raise ConnectorError(f"Source not found: {source}", source=str(source))
        return p

    @staticmethod
    def _ensure_parent(dest: str | Path) -> Path:
        p = Path(dest)
        p.parent.mkdir(parents=True, exist_ok=True)
        return p


# ---------------------------------------------------------------------------
# Concrete connectors
# ---------------------------------------------------------------------------

class CSVConnector(BaseConnector):
    """Read / write CSV files."""

    def __init__(self, delimiter: str = ",", encoding: str = "utf-8"):
        self.delimiter = delimiter
        self.encoding = encoding

    def load(self, source: str | Path, **kwargs: Any) -> pd.DataFrame:
        path = self._ensure_path(source)
        logger.info(f"Loading CSV from {path}")
        return pd.read_csv(path, delimiter=self.delimiter, encoding=self.encoding, **kwargs)

    def save(self, df: pd.DataFrame, dest: str | Path, **kwargs: Any) -> Path:
        path = self._ensure_parent(dest)
        df.to_csv(path, index=False, sep=self.delimiter, **kwargs)
        logger.info(f"Saved {len(df)} rows to {path}")
        return path


class JSONConnector(BaseConnector):
    """Read / write JSON arrays of records."""

    def load(self, source: str | Path, **kwargs: Any) -> pd.DataFrame:
        path = self._ensure_path(source)
        logger.info(f"Loading JSON from {path}")
        return pd.read_json(path, orient="records", convert_dates=False, **kwargs)

    def save(self, df: pd.DataFrame, dest: str | Path, **kwargs: Any) -> Path:
        path = self._ensure_parent(dest)
        df.to_json(path, orient="records", date_format="iso", indent=2, **kwargs)
        logger.info(f"Saved {len(df)} rows to {path}")
        return path


class ParquetConnector(BaseConnector):
    """Read / write Parquet files."""

    def load(self, source: str | Path, **kwargs: Any) -> pd.DataFrame:
        path = self._ensure_path(source)
        logger.info(f"Loading Parquet from {path}")
        return pd.read_parquet(path, **kwargs)

    def save(self, df: pd.DataFrame, dest: str | Path, **kwargs: Any) -> Path:
        path = self._ensure_parent(dest)
        df.to_parquet(path, index=False, **kwargs)
        logger.info(f"Saved {len(df)} rows to {path}")
        return path


# ---------------------------------------------------------------------------
# Auto-detection helpers
# ---------------------------------------------------------------------------

_EXTENSION_MAP: dict[str, type[BaseConnector]] = {
    ".csv": CSVConnector,
    ".tsv": CSVConnector,
    ".json": JSONConnector,
    ".parquet": ParquetConnector,
    ".pq": ParquetConnector,
}


def auto_connect(source: str | Path) -> BaseConnector:
    """Return the correct connector based on file extension."""
    path = Path(source)
    ext = path.suffix.lower()
    cls = _EXTENSION_MAP.get(ext)
    if cls is None:
        raise ConnectorError(f"Unsupported file extension: {ext}", source=str(path))

    if cls is CSVConnector and ext == ".tsv":
        return CSVConnector(delimiter="\t")

    return cls()


def load_file(source: str | Path, **kwargs: Any) -> pd.DataFrame:
    """One-liner: auto-detect format and return a DataFrame."""
    connector = auto_connect(source)
    return connector.load(source, **kwargs)


def save_file(df: pd.DataFrame, dest: str | Path, **kwargs: Any) -> Path:
    """One-liner: auto-detect format from *dest* and write *df*."""
    connector = auto_connect(dest)
    return connector.save(df, dest, **kwargs)


# ---------------------------------------------------------------------------
# DataFrame <-> ContactEvent
# ---------------------------------------------------------------------------

def prepare_events_frame(df: pd.DataFrame) -> pd.DataFrame:
    """
    Normalise a raw events frame and validate it against the schema.

    Timestamps are parsed to UTC, a missing ``is_success`` column is
    derived from the event type and a missing ``success_weight`` is 0
    (the estimator then applies the configured weight for the type).

    Raises:
        ConnectorError: Required columns are missing or validation fails.
    """
    missing = [c for c in REQUIRED_EVENT_COLUMNS if c not in df.columns]
    if missing:
        raise ConnectorError(f"Events data missing required columns: {missing}")

    df = df.copy()
    try:
        df["event_timestamp"] = pd.to_datetime(df["event_timestamp"], utc=True, format="mixed")
        if "response_timestamp" in df.columns:
            df["response_timestamp"] = pd.to_datetime(
                df["response_timestamp"], utc=True, format="mixed",
            )
    except (ValueError, TypeError) as e:
        raise ConnectorError(f"Unparseable timestamp in events data: {e}") from e

    if "is_success" not in df.columns:
        df["is_success"] = df["event_type"].map(is_success_type)
    if "success_weight" not in df.columns:
        df["success_weight"] = 0.0
    df["success_weight"] = df["success_weight"].fillna(0.0)

    try:
        return validate_events(df)
    except SchemaErrors as e:
        n_failures = len(e.failure_cases)
        raise ConnectorError(f"Events data failed schema validation ({n_failures} failures)") from e


def frame_to_events(df: pd.DataFrame) -> dict[str, list[ContactEvent]]:
    """Group a prepared events frame into ContactEvents per contact_id."""
    has_response = "response_timestamp" in df.columns
    events: dict[str, list[ContactEvent]] = {}

    for row in df.sort_values("event_timestamp").itertuples(index=False):
        response = getattr(row, "response_timestamp") if has_response else None
        events.setdefault(str(row.contact_id), []).append(ContactEvent(
            event_type=row.event_type,
            event_timestamp=row.event_timestamp.to_pydatetime(),
            response_timestamp=None if pd.isna(response) else response.to_pydatetime(),
            is_outbound=bool(row.is_outbound),
            is_success=bool(row.is_success),
            success_weight=float(row.success_weight),
        ))

    return events


def events_to_frame(events_by_contact: Mapping[str, Sequence[ContactEvent]]) -> pd.DataFrame:
    """Flatten ContactEvents per contact back into a tabular frame."""
    records = []
    for contact_id, events in events_by_contact.items():
        for e in events:
            records.append({
                "contact_id": contact_id,
                "event_type": e.event_type,
                "event_timestamp": e.event_timestamp,
                "response_timestamp": e.response_timestamp,
                "is_outbound": e.is_outbound,
                "is_success": e.is_success,
                "success_weight": e.success_weight,
            })
    df = pd.DataFrame(records, columns=[
        "contact_id", "event_type", "event_timestamp", "response_timestamp",
        "is_outbound", "is_success", "success_weight",
    ])
    df["event_timestamp"] = pd.to_datetime(df["event_timestamp"], utc=True)
    df["response_timestamp"] = pd.to_datetime(df["response_timestamp"], utc=True)
    return df


def load_contact_events(source: str | Path) -> dict[str, list[ContactEvent]]:
    """
    Load a CSV / JSON / Parquet events file into ContactEvents per contact.

    Raises:
        ConnectorError: The file is missing, unsupported or invalid.
    """
    df = prepare_events_frame(load_file(source))
    events = frame_to_events(df)
    logger.info(f"Loaded {len(df)} events for {len(events)} contacts from {source}")
    return events
