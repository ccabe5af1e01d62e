"""
Expert In The City Backend — Middleware Tests
==============================================

What:  Request-id propagation into logs and the access-log line.

What we test:
    ✅ Malformed client request ids are replaced, well-formed ones kept
    ✅ The log filter stamps the current request id (or "-") on records
    ✅ Reputation logs emitted during a request carry the request id
    ✅ Access log uses the route template and the caller's user id
"""

import io
import logging

import pytest

from expertcity.main import build_log_handler
from expertcity.middleware.logging import caller_label
from expertcity.middleware.request_id import (
    RequestIDLogFilter,
    request_id_var,
    resolve_request_id,
)


def _record(msg="hello"):
    return logging.LogRecord("expertcity.test", logging.INFO, __file__, 1, msg, None, None)


class TestRequestIdResolution:

    def test_well_formed_id_is_kept(self):
        assert resolve_request_id("req_42-abc") == "req_42-abc"

    @pytest.mark.parametrize("incoming", [None, "", "has space", "x" * 65, "semi;colon"])
    def test_malformed_id_is_replaced(self, incoming):
        rid = resolve_request_id(incoming)
        assert rid != incoming
        assert len(rid) == 8

    @pytest.mark.asyncio
    async def test_malformed_header_not_echoed(self, test_client):
        response = await test_client.get("/api/reviews/user", headers={"X-Request-ID": "a b c"})

        assert response.headers["X-Request-ID"] != "a b c"
        assert response.json()["request_id"] == response.headers["X-Request-ID"]


class TestRequestIdLogFilter:

    def test_stamps_current_request_id(self):
        token = request_id_var.set("abc123")
        try:
            record = _record()
            assert RequestIDLogFilter().filter(record) is True
        finally:
            request_id_var.reset(token)

        assert record.request_id == "abc123"

    def test_outside_a_request_uses_dash(self):
        record = _record()
        RequestIDLogFilter().filter(record)
        assert record.request_id == "-"

    def test_handler_formats_request_id(self):
        stream = io.StringIO()
        handler = build_log_handler(stream)
        token = request_id_var.set("feedbeef")
        try:
            handler.handle(_record("recomputed"))
        finally:
            request_id_var.reset(token)

        assert "[feedbeef] expertcity.test: recomputed" in stream.getvalue()

    @pytest.mark.asyncio
    async def test_recompute_log_carries_request_id(self, test_client, make_user, make_expert):
        reviewer = await make_user()
        expert = await make_expert()
        stream = io.StringIO()
        handler = build_log_handler(stream)
        service_logger = logging.getLogger("expertcity.services")
        previous_level = service_logger.level
        service_logger.addHandler(handler)
        service_logger.setLevel(logging.INFO)
        try:
            await test_client.post(
                f"/api/reviews/expert/{expert.user_id}",
                json={"rating": 4, "satisfaction": "SATISFIED"},
                headers={"X-User-ID": str(reviewer.id), "X-Request-ID": "trace-77"},
            )
        finally:
            service_logger.removeHandler(handler)
            service_logger.setLevel(previous_level)

        lines = [line for line in stream.getvalue().splitlines() if "Recomputed reputation" in line]
        assert lines
        assert all("[trace-77]" in line for line in lines)


class TestAccessLog:

    def test_caller_label(self):
        assert caller_label(None) == "anonymous"
        assert caller_label("not-a-uuid") == "invalid"
        assert caller_label("6f1c1a4e-0000-4000-8000-000000000001") == (
            "6f1c1a4e-0000-4000-8000-000000000001"
        )

    @pytest.mark.asyncio
    async def test_logs_route_template_and_caller(
        self, test_client, make_user, make_expert, caplog
    ):
        user = await make_user()
        expert = await make_expert()
        caplog.set_level(logging.INFO, logger="expertcity.access")

        await test_client.get(
            f"/api/reviews/expert/{expert.id}", headers={"X-User-ID": str(user.id)}
        )

        records = [r for r in caplog.records if r.name == "expertcity.access"]
        assert len(records) == 1
        assert records[0].route == "/api/reviews/expert/{expert_id}"
        assert records[0].caller == str(user.id)
        assert records[0].status == 200
        assert str(expert.id) not in records[0].getMessage()

    @pytest.mark.asyncio
    async def test_health_is_not_logged(self, test_client, caplog):
        caplog.set_level(logging.INFO, logger="expertcity.access")

        await test_client.get("/health")

        assert not [r for r in caplog.records if r.name == "expertcity.access"]
