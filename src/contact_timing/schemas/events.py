"""
Pandera schema for tabular contact-event data.

One row per interaction.  Timestamps are parsed to UTC by the loader
before validation, so the schema only checks presence and nullability
for them.

Example:
    contact_id | event_type     | event_timestamp      | is_outbound | is_success
    c-001      | message_sent   | 2025-11-10T15:02:00Z | True        | False
    c-001      | message_replied| 2025-11-10T16:40:00Z | False       | True
"""

import pandas as pd
from pandera import Check, Column, DataFrameSchema

REQUIRED_EVENT_COLUMNS = ["contact_id", "event_type", "event_timestamp", "is_outbound"]


EventSchema = DataFrameSchema(
    {
        "contact_id": Column(
            str,
            Check.str_length(min_value=1),
            coerce=True,
            description="Identifier of the contact the event belongs to",
        ),
        "event_type": Column(
            str,
            Check.str_length(min_value=1),
            coerce=True,
            description="Interaction type (message_sent, message_replied, ...)",
        ),
        "event_timestamp": Column(
            None,
            nullable=False,
            description="When the event happened (UTC)",
        ),
        "response_timestamp": Column(
            None,
            nullable=True,
            required=False,
            description="When the contact responded, if they did",
        ),
        "is_outbound": Column(bool, coerce=True),
        "is_success": Column(bool, coerce=True, required=False),
        "success_weight": Column(
            float,
            Check.in_range(0.0, 1.0),
            nullable=True,
            coerce=True,
            required=False,
        ),
    },
    strict=False,  # Allow additional columns
    name="contact_events",
)


def validate_events(df: pd.DataFrame) -> pd.DataFrame:
    """
    Validate an events DataFrame, collecting every failure.

    Raises:
        pandera.errors.SchemaErrors: One or more checks failed.
    """
    return EventSchema.validate(df, lazy=True)
