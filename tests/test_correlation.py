"""Tests for correlation ids attached to log records."""

from __future__ import annotations

import asyncio

import pytest

from ddsweb_datasource.utils.correlation import log_context, set_ref_id, set_request_id


def test_request_id_is_generated_and_exposed_in_log_context():
    generated = set_request_id()
    assert generated
    assert log_context()["req_id"] == generated

    assert set_request_id("abc") == "abc"
    assert log_context()["req_id"] == "abc"


@pytest.mark.asyncio
async def test_ref_id_does_not_leak_between_tasks():
    async def target(ref_id: str) -> str:
        set_ref_id(ref_id)
        await asyncio.sleep(0)
        return log_context()["ref_id"]

    assert await asyncio.gather(target("A"), target("B")) == ["A", "B"]
