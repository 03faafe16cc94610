"""Tests for decoding DDS-Web sample sequences into frames."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET

import pytest

from ddsweb_datasource.domain.decoder import (
    build_frame,
    decode,
    parse_samples,
    xml_to_tree,
)
from ddsweb_datasource.domain.models import FieldType, SampleRecord
from ddsweb_datasource.errors import DecodeError

SHAPES = """<?xml version="1.0" encoding="utf-8"?>
<read_sample_seq>
    <sample>
        <read_sample_info>
            <source_timestamp>
                <sec>1710019503</sec>
                <nanosec>559174900</nanosec>
            </source_timestamp>
        </read_sample_info>
        <data>
            <ShapeType>
                <color>RED</color>
                <x>44</x>
                <y>183</y>
                <shapesize>30</shapesize>
            </ShapeType>
        </data>
    </sample>
    <sample>
        <read_sample_info>
            <source_timestamp>
                <sec>1710019504</sec>
                <nanosec>559174900</nanosec>
            </source_timestamp>
        </read_sample_info>
        <data>
            <ShapeType>
                <color>RED</color>
                <x>55</x>
                <y>230</y>
                <shapesize>20</shapesize>
            </ShapeType>
        </data>
    </sample>
</read_sample_seq>"""


def test_decode_multiple_samples():
    frame = decode(SHAPES.encode("utf-8"), "ShapeType", ref_id="A")

    assert frame.ref_id == "A"
    assert [c.name for c in frame.fields] == ["Time", "color", "x", "y", "shapesize"]
    assert [c.type for c in frame.fields] == [
        FieldType.TIME,
        FieldType.STRING,
        FieldType.NUMBER,
        FieldType.NUMBER,
        FieldType.NUMBER,
    ]
    assert frame.column("Time").values == [1710019503559, 1710019504559]
    assert frame.column("color").values == ["RED", "RED"]
    assert frame.column("x").values == [44.0, 55.0]
    assert frame.column("y").values == [183.0, 230.0]
    assert frame.column("shapesize").values == [30.0, 20.0]
    assert frame.row_count == 2


def test_empty_sequence_yields_frame_without_columns():
    frame = decode(b"<read_sample_seq/>", "ShapeType")
    assert frame.fields == []
    assert frame.row_count == 0

    frame = decode(b"<read_sample_seq>\n</read_sample_seq>", "ShapeType")
    assert frame.fields == []


def test_time_is_milliseconds_with_truncation(sample_seq):
    payload = sample_seq([(10, 500_000_000, "<x>1</x>"), (10, 1_999_999, "<x>2</x>")])
    frame = decode(payload, "ShapeType")
    assert frame.column("Time").values == [10500, 10001]


def test_xy_columns_follow_input_order(sample_seq):
    samples = [(30, 0, "<x>3</x><y>6</y>"), (20, 0, "<x>2</x><y>4</y>"), (10, 0, "<x>1</x><y>2</y>")]
    frame = decode(sample_seq(samples), "ShapeType")

    assert [c.name for c in frame.fields] == ["Time", "x", "y"]
    assert all(len(c.values) == 3 for c in frame.fields)
    # Gateway order is kept, even when it is newest first
    assert frame.column("Time").values == [30000, 20000, 10000]
    assert frame.column("x").values == [3.0, 2.0, 1.0]


def test_non_numeric_value_makes_text_column(sample_seq):
    frame = decode(sample_seq([(1, 0, "<color>red</color>"), (2, 0, "<color>12</color>")]), "ShapeType")
    color = frame.column("color")
    assert color.type is FieldType.STRING
    assert color.values == ["red", "12"]


def test_missing_fields_are_zero_filled(sample_seq):
    samples = [
        (1, 0, "<x>1</x><y>1</y>"),
        (2, 0, "<x>2</x><label>b</label>"),
        (3, 0, "<x>3</x><y>3</y><z>5</z>"),
    ]
    frame = decode(sample_seq(samples), "ShapeType")

    assert [c.name for c in frame.fields] == ["Time", "x", "y", "label", "z"]
    assert frame.column("y").values == [1.0, 0.0, 3.0]
    assert frame.column("label").values == ["", "b", ""]
    assert frame.column("z").values == [0.0, 0.0, 5.0]
    assert {len(c.values) for c in frame.fields} == {3}


def test_nested_members_are_flattened(sample_seq):
    members = (
        "<position><x>1</x><y>2</y></position>"
        "<readings><item>0.5</item><item>0.75</item></readings>"
        "<name>sensor</name>"
    )
    frame = decode(sample_seq([(1, 0, members)], type_name="Sensor"), "Sensor")
    assert [c.name for c in frame.fields] == [
        "Time",
        "position.x",
        "position.y",
        "readings.item[0]",
        "readings.item[1]",
        "name",
    ]
    assert frame.column("readings.item[1]").values == [0.75]


def test_inconsistent_numeric_column_is_a_decode_error(sample_seq):
    payload = sample_seq([(1, 0, "<x>1</x>"), (2, 0, "<x>oops</x>")])
    with pytest.raises(DecodeError, match="'x'"):
        build_frame(parse_samples(payload, "ShapeType"))


def test_malformed_payload_degrades_to_empty_frame(caplog):
    with caplog.at_level(logging.WARNING):
        frame = decode(b"<read_sample_seq><sample>", "ShapeType", ref_id="B")
    assert frame.ref_id == "B"
    assert frame.fields == []
    assert any(r.getMessage() == "decode.failed" for r in caplog.records)


def test_unexpected_root_degrades_to_empty_frame():
    assert decode(b"<error>no such reader</error>", "ShapeType").fields == []


def test_sample_without_timestamp_degrades_to_empty_frame():
    payload = (
        "<read_sample_seq><sample><read_sample_info/>"
        "<data><ShapeType><x>1</x></ShapeType></data></sample></read_sample_seq>"
    )
    assert decode(payload, "ShapeType").fields == []


def test_samples_without_payload_for_type_are_skipped(sample_seq):
    payload = sample_seq([(1, 0, "<x>1</x>")]).replace(
        "</read_sample_seq>",
        "<sample><read_sample_info><source_timestamp><sec>2</sec>"
        "<nanosec>0</nanosec></source_timestamp></read_sample_info>"
        "<data/></sample></read_sample_seq>",
    )
    records = parse_samples(payload, "ShapeType")
    assert len(records) == 1
    assert records[0].fields == {"x": "1"}


def test_xml_to_tree_groups_repeated_siblings():
    tree = xml_to_tree(ET.fromstring("<a><b>1</b><c>x</c><b>2</b><b>3</b></a>"))
    assert tree == {"b": ["1", "2", "3"], "c": "x"}


def test_build_frame_from_records():
    records = [
        SampleRecord(sec=1, nanosec=0, fields={"speed": "1.5"}),
        SampleRecord(sec=2, nanosec=0, fields={"speed": "nan"}),
    ]
    frame = build_frame(records, ref_id="C")
    assert frame.column("speed").type is FieldType.NUMBER
    assert frame.column("Time").values == [1000, 2000]


def test_sequences_of_varying_length_share_columns(sample_seq):
    samples = [
        (1, 0, "<readings><item>0.5</item><item>0.7</item></readings>"),
        (2, 0, "<readings><item>0.9</item></readings>"),
        (3, 0, "<readings/>"),
    ]
    frame = decode(sample_seq(samples), "ShapeType")

    assert [c.name for c in frame.fields] == ["Time", "readings.item[0]", "readings.item[1]"]
    assert frame.column("readings.item[0]").values == [0.5, 0.9, 0.0]
    assert frame.column("readings.item[1]").values == [0.7, 0.0, 0.0]


def test_single_element_sequence_of_structs_is_indexed(sample_seq):
    samples = [
        (1, 0, "<pts><p><x>1</x></p></pts>"),
        (2, 0, "<pts><p><x>2</x></p><p><x>3</x></p></pts>"),
    ]
    frame = decode(sample_seq(samples), "ShapeType")

    assert [c.name for c in frame.fields] == ["Time", "pts.p[0].x", "pts.p[1].x"]
    assert frame.column("pts.p[0].x").values == [1.0, 2.0]


def test_text_values_keep_surrounding_whitespace(sample_seq):
    samples = [(1, 0, "<label> hello </label><x> 42 </x>"), (2, 0, "<label>b</label><x>7</x>")]
    frame = decode(sample_seq(samples), "ShapeType")

    assert frame.column("label").type is FieldType.STRING
    assert frame.column("label").values == [" hello ", "b"]
    assert frame.column("x").type is FieldType.NUMBER
    assert frame.column("x").values == [42.0, 7.0]
