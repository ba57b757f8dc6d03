"""
Data connectors for Contact-Timing.

Local files (CSV, JSON, Parquet) and a synthetic generator for demos.
"""

from contact_timing.connectors.local import (
    BaseConnector,
    CSVConnector,
    JSONConnector,
    ParquetConnector,
    auto_connect,
    events_to_frame,
    frame_to_events,
    load_contact_events,
    load_file,
    prepare_events_frame,
    save_file,
)
from contact_timing.connectors.synthetic import (
    SyntheticContact,
    contact_profile,
    generate_contact_events,
    generate_demo_dataset,
)

__all__ = [
    "BaseConnector",
    "CSVConnector",
    "JSONConnector",
    "ParquetConnector",
    "auto_connect",
    "events_to_frame",
    "frame_to_events",
    "load_contact_events",
    "load_file",
    "prepare_events_frame",
    "save_file",
    "SyntheticContact",
    "contact_profile",
    "generate_contact_events",
    "generate_demo_dataset",
]
