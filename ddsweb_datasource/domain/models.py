"""Canonical data model shared by the provisioner, decoder and host surface.

These Pydantic models describe what a query asks the gateway for
(``QueryTarget`` from the host, ``QueryDescriptor`` once defaults are
applied), the fixed entity identity an adapter provisions under, and the
columnar frame returned to the visualization host.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from ..config.models import (
    DEFAULT_APPLICATION_NAME,
    DEFAULT_PARTICIPANT_NAME,
    DEFAULT_SUBSCRIBER_NAME,
)

TIME_COLUMN = "Time"


class EntityIdentity(BaseModel):
    """Names of the shared DDS entities owned by one adapter instance.

    Every query issued against a gateway reuses the same application,
    participant and subscriber; only topics and readers vary per query.
    """

    model_config = ConfigDict(frozen=True)

    application_name: str = DEFAULT_APPLICATION_NAME
    participant_name: str = DEFAULT_PARTICIPANT_NAME
    subscriber_name: str = DEFAULT_SUBSCRIBER_NAME
    domain_id: int = Field(0, ge=0)


class QueryDescriptor(BaseModel):
    """Everything needed to provision and read one query's data reader.

    Attributes
    ----------
    reader_name: str
        Data reader name; built from the query ref id and the topic so that
        a ref id reused for another topic never lands on an existing reader.
    topic_name: str
        DDS topic to subscribe to.
    type_name: str
        Registered type name the topic is bound to, and the element name of
        each sample's payload.
    type_representation: Optional[str]
        Optional XML type definition registered before the topic is created.
    history_depth: int
        KeepLast history depth requested for the reader.
    minimum_time_separation: float
        Seconds between accepted samples, forwarded as the reader's
        time-based filter when greater than zero.
    """

    model_config = ConfigDict(frozen=True)

    reader_name: str = Field(..., min_length=1)
    topic_name: str = Field(..., min_length=1)
    type_name: str = Field(..., min_length=1)
    type_representation: Optional[str] = None
    history_depth: int = Field(1000, ge=1)
    minimum_time_separation: float = Field(0.0, ge=0.0)

    def minimum_separation_parts(self) -> Tuple[int, int]:
        """Split ``minimum_time_separation`` into (sec, nanosec)."""
        sec = int(self.minimum_time_separation)
        nanosec = int(round((self.minimum_time_separation - sec) * 1_000_000_000))
        if nanosec >= 1_000_000_000:
            sec, nanosec = sec + 1, 0
        return sec, nanosec


def reader_name_for(ref_id: str, topic_name: str) -> str:
    """Reader name owned by one (ref id, topic) pair."""
    return f"{ref_id}_{topic_name}"


class QueryTarget(BaseModel):
    """One query as submitted by the visualization host."""

    model_config = ConfigDict(populate_by_name=True)

    ref_id: str = Field(..., alias="refId", min_length=1)
    topic_name: str = ""
    type_name: str = ""
    type_representation: Optional[str] = None
    number_samples: int = Field(0, ge=0)
    minimum_time_separation: float = Field(0.0, ge=0.0)
    hide: bool = False

    def to_descriptor(self, default_history_depth: int) -> QueryDescriptor:
        """Build the immutable descriptor, applying gateway defaults.

        Raises
        ------
        pydantic.ValidationError
            If the topic or type name is missing.
        """
        depth = self.number_samples if self.number_samples > 0 else default_history_depth
        return QueryDescriptor(
            reader_name=reader_name_for(self.ref_id, self.topic_name),
            topic_name=self.topic_name,
            type_name=self.type_name,
            type_representation=self.type_representation or None,
            history_depth=depth,
            minimum_time_separation=self.minimum_time_separation,
        )


class FieldType(str, Enum):
    """Column type tags understood by the host."""

    TIME = "time"
    NUMBER = "number"
    STRING = "string"


class SampleRecord(BaseModel):
    """One decoded sample: source timestamp plus ordered field values."""

    sec: int
    nanosec: int
    fields: Dict[str, Any] = Field(default_factory=dict)

    @property
    def time_ms(self) -> int:
        """Milliseconds since epoch; sub-millisecond remainder truncated."""
        return self.sec * 1000 + self.nanosec // 1_000_000


class Column(BaseModel):
    """A named, typed column of values."""

    name: str
    type: FieldType
    values: List[Any] = Field(default_factory=list)


class OutputFrame(BaseModel):
    """Columnar result for one query target.

    ``Time`` is always the first column when the frame has any rows; an empty
    sample set produces a frame with no columns at all.
    """

    ref_id: str = ""
    fields: List[Column] = Field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.fields[0].values) if self.fields else 0

    def column(self, name: str) -> Column:
        """Return the column called ``name``.

        Raises
        ------
        KeyError
            If the frame has no such column.
        """
        for col in self.fields:
            if col.name == name:
                return col
        raise KeyError(name)
