"""Decode DDS-Web sample sequences into columnar frames.

The gateway answers a reader GET with a document of the form::

    <read_sample_seq>
      <sample>
        <read_sample_info>
          <source_timestamp><sec>..</sec><nanosec>..</nanosec></source_timestamp>
        </read_sample_info>
        <data><ShapeType><color>RED</color><x>44</x>...</ShapeType></data>
      </sample>
      ...
    </read_sample_seq>

The field set of ``<ShapeType>`` is not known up front. Columns are
registered the first time a field name is seen and typed once from that
first value: numeric if it parses as a float, text otherwise.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple, Union

from ..errors import DecodeError
from .models import TIME_COLUMN, Column, FieldType, OutputFrame, SampleRecord

logger = logging.getLogger(__name__)

Tree = Union[str, Dict[str, Any], List[Any]]


def xml_to_tree(element: ET.Element) -> Tree:
    """Convert an element into nested dicts, lists and text.

    Children become dict entries in document order; a tag repeated among
    siblings becomes a list. A leaf becomes its character data as-is.
    """
    children = list(element)
    if not children:
        return element.text or ""
    tree: Dict[str, Any] = {}
    for child in children:
        value = xml_to_tree(child)
        if child.tag not in tree:
            tree[child.tag] = value
        elif isinstance(tree[child.tag], list):
            tree[child.tag].append(value)
        else:
            tree[child.tag] = [tree[child.tag], value]
    return tree


def _as_list(node: Any) -> List[Any]:
    if node is None or (isinstance(node, str) and not node.strip()):
        return []
    if isinstance(node, list):
        return list(node)
    return [node]


def _join(parent: str, key: str) -> str:
    return f"{parent}.{key}" if parent else key


@dataclass
class _Shapes:
    """Member paths seen as sequences or structures across one document."""

    sequences: Set[str] = field(default_factory=set)
    structs: Set[str] = field(default_factory=set)


def _collect_shapes(path: str, value: Any, shapes: _Shapes) -> None:
    """Record member paths holding a repeated element or nested members."""
    if isinstance(value, list):
        shapes.sequences.add(path)
        for item in value:
            _collect_shapes(path, item, shapes)
    elif isinstance(value, dict):
        shapes.structs.add(path)
        for key, item in value.items():
            _collect_shapes(_join(path, key), item, shapes)


def _flatten(prefix: str, path: str, value: Any, shapes: _Shapes, out: Dict[str, str]) -> None:
    # A sequence with a single element is indexed like a longer one
    if isinstance(value, list) or path in shapes.sequences:
        items = value if isinstance(value, list) else [value]
        for index, item in enumerate(items):
            _flatten_member(f"{prefix}[{index}]", path, item, shapes, out)
    else:
        _flatten_member(prefix, path, value, shapes, out)


def _flatten_member(
    prefix: str, path: str, value: Any, shapes: _Shapes, out: Dict[str, str]
) -> None:
    if isinstance(value, dict):
        for key, item in value.items():
            _flatten(_join(prefix, key), _join(path, key), item, shapes, out)
    elif path not in shapes.structs:
        # Empty structures and sequences have no leaf to emit
        out[prefix] = value


def _parse_number(text: str) -> Optional[float]:
    try:
        return float(text.strip())
    except ValueError:
        return None


def _timestamp_part(timestamp: Any, key: str) -> int:
    if not isinstance(timestamp, dict) or key not in timestamp:
        raise DecodeError(f"sample is missing source_timestamp.{key}")
    try:
        return int(str(timestamp[key]).strip())
    except ValueError as exc:
        raise DecodeError(f"invalid source_timestamp.{key}: {timestamp[key]!r}") from exc


def parse_samples(raw_payload: Union[bytes, str], type_name: str) -> List[SampleRecord]:
    """Parse a read_sample_seq document into sample records.

    Samples are returned in document order. A sample carrying no payload for
    ``type_name`` (e.g. an instance state change without valid data) is
    skipped. A member seen repeated in any sample of the document is indexed
    (``name[0]``) in every sample, so sequences of varying length share
    columns.

    Raises
    ------
    DecodeError
        On malformed XML or a sample without a usable source timestamp.
    """
    try:
        root = ET.fromstring(raw_payload)
    except ET.ParseError as exc:
        raise DecodeError(f"malformed sample payload: {exc}") from exc

    if root.tag != "read_sample_seq":
        raise DecodeError(f"unexpected root element <{root.tag}>")
    seq = xml_to_tree(root)
    if not isinstance(seq, dict):
        return []

    payloads: List[Tuple[int, int, Any]] = []
    for sample in _as_list(seq.get("sample")):
        if not isinstance(sample, dict):
            raise DecodeError("sample element has no content")
        info = sample.get("read_sample_info")
        timestamp = info.get("source_timestamp") if isinstance(info, dict) else None
        sec = _timestamp_part(timestamp, "sec")
        nanosec = _timestamp_part(timestamp, "nanosec")

        data = sample.get("data")
        if not isinstance(data, dict) or type_name not in data:
            logger.debug("decode.sample.no_data", extra={"type_name": type_name})
            continue
        payloads.append((sec, nanosec, data[type_name]))

    shapes = _Shapes()
    for _, _, payload in payloads:
        _collect_shapes("", payload, shapes)

    records: List[SampleRecord] = []
    for sec, nanosec, payload in payloads:
        fields: Dict[str, str] = {}
        if isinstance(payload, dict):
            _flatten_member("", "", payload, shapes, fields)
        records.append(SampleRecord(sec=sec, nanosec=nanosec, fields=fields))
    return records


class _ColumnBuilder:
    """Append-only column whose type is fixed by its first value."""

    def __init__(self, name: str, first_value: str, backfill: int) -> None:
        self.name = name
        self.type = (
            FieldType.NUMBER if _parse_number(first_value) is not None else FieldType.STRING
        )
        self.values: List[Any] = [self.zero] * backfill

    @property
    def zero(self) -> Any:
        return 0.0 if self.type is FieldType.NUMBER else ""

    def append(self, value: str) -> None:
        if self.type is FieldType.STRING:
            self.values.append(value)
            return
        number = _parse_number(value)
        if number is None:
            raise DecodeError(
                f"field '{self.name}' was numeric but received {value!r}"
            )
        self.values.append(number)

    def pad_to(self, length: int) -> None:
        while len(self.values) < length:
            self.values.append(self.zero)


def build_frame(samples: List[SampleRecord], ref_id: str = "") -> OutputFrame:
    """Assemble records into a frame: ``Time`` then fields in first-seen order.

    Raises
    ------
    DecodeError
        If a numeric column receives a non-numeric value.
    """
    if not samples:
        return OutputFrame(ref_id=ref_id)

    times: List[int] = []
    columns: Dict[str, _ColumnBuilder] = {}
    for row, sample in enumerate(samples):
        times.append(sample.time_ms)
        for name, value in sample.fields.items():
            builder = columns.get(name)
            if builder is None:
                builder = columns[name] = _ColumnBuilder(name, value, backfill=row)
            builder.append(value)
        for builder in columns.values():
            builder.pad_to(row + 1)

    fields = [Column(name=TIME_COLUMN, type=FieldType.TIME, values=times)]
    fields.extend(
        Column(name=b.name, type=b.type, values=b.values) for b in columns.values()
    )
    return OutputFrame(ref_id=ref_id, fields=fields)


def decode(raw_payload: Union[bytes, str], type_name: str, ref_id: str = "") -> OutputFrame:
    """Decode a gateway payload; malformed input yields an empty frame."""
    try:
        return build_frame(parse_samples(raw_payload, type_name), ref_id)
    except DecodeError as exc:
        logger.warning(
            "decode.failed",
            extra={"ref_id": ref_id, "type_name": type_name, "error": str(exc)},
        )
        return OutputFrame(ref_id=ref_id)
