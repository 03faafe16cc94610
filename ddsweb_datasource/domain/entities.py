"""XML request bodies and resource paths for DDS-Web entities.

DDS-Web describes entities with XML fragments modelled on the DDS XML
application format. Only the attributes and QoS this datasource needs are
emitted.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET
from urllib.parse import quote

from .models import EntityIdentity, QueryDescriptor

REST_ROOT = "/dds/rest1"
KEEP_LAST_HISTORY_QOS = "KEEP_LAST_HISTORY_QOS"


def _seg(name: str) -> str:
    return quote(name, safe="")


def _to_xml(element: ET.Element) -> str:
    return ET.tostring(element, encoding="unicode")


# ---------------- Paths ----------------


def applications_path() -> str:
    return f"{REST_ROOT}/applications"


def types_path() -> str:
    return f"{REST_ROOT}/types"


def participants_path(identity: EntityIdentity) -> str:
    return f"{applications_path()}/{_seg(identity.application_name)}/domain_participants"


def participant_path(identity: EntityIdentity) -> str:
    return f"{participants_path(identity)}/{_seg(identity.participant_name)}"


def topics_path(identity: EntityIdentity) -> str:
    return f"{participant_path(identity)}/topics"


def topic_path(identity: EntityIdentity, topic_name: str) -> str:
    return f"{topics_path(identity)}/{_seg(topic_name)}"


def subscribers_path(identity: EntityIdentity) -> str:
    return f"{participant_path(identity)}/subscribers"


def data_readers_path(identity: EntityIdentity) -> str:
    return f"{subscribers_path(identity)}/{_seg(identity.subscriber_name)}/data_readers"


def data_reader_path(identity: EntityIdentity, reader_name: str) -> str:
    return f"{data_readers_path(identity)}/{_seg(reader_name)}"


# ---------------- Bodies ----------------


def application_xml(identity: EntityIdentity) -> str:
    return _to_xml(ET.Element("application", name=identity.application_name))


def participant_xml(identity: EntityIdentity) -> str:
    return _to_xml(
        ET.Element(
            "domain_participant",
            name=identity.participant_name,
            domain_id=str(identity.domain_id),
        )
    )


def topic_xml(query: QueryDescriptor) -> str:
    return _to_xml(
        ET.Element("topic", name=query.topic_name, register_type_ref=query.type_name)
    )


def subscriber_xml(identity: EntityIdentity) -> str:
    return _to_xml(ET.Element("subscriber", name=identity.subscriber_name))


def data_reader_xml(query: QueryDescriptor) -> str:
    """Reader bound to the query topic with KeepLast history.

    A ``time_based_filter`` is only added when a minimum separation was
    requested, so the gateway default applies otherwise.
    """
    reader = ET.Element("data_reader", name=query.reader_name, topic_ref=query.topic_name)
    qos = ET.SubElement(reader, "datareader_qos")
    history = ET.SubElement(qos, "history")
    ET.SubElement(history, "kind").text = KEEP_LAST_HISTORY_QOS
    ET.SubElement(history, "depth").text = str(query.history_depth)
    if query.minimum_time_separation > 0:
        sec, nanosec = query.minimum_separation_parts()
        separation = ET.SubElement(
            ET.SubElement(qos, "time_based_filter"), "minimum_separation"
        )
        ET.SubElement(separation, "sec").text = str(sec)
        ET.SubElement(separation, "nanosec").text = str(nanosec)
    return _to_xml(reader)
