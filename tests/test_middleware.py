"""
ProjectHub
Tests — logging formatters and request timing headers.
"""

import json
import logging

from projecthub.middleware.logging_config import JSONFormatter, ReadableFormatter


def _record(**extra):
    record = logging.makeLogRecord({
        "name": "projecthub.services.risk_service",
        "levelname": "INFO",
        "levelno": logging.INFO,
        "msg": "Risk %s resolved",
        "args": (12,),
    })
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    def test_emits_audit_fields(self):
        line = JSONFormatter().format(_record(user_id=3, entity_type="risk", entity_id=12, transition="resolve"))
        entry = json.loads(line)
        assert entry["message"] == "Risk 12 resolved"
        assert entry["user_id"] == 3
        assert entry["entity_type"] == "risk"
        assert entry["transition"] == "resolve"

    def test_omits_absent_fields(self):
        entry = json.loads(JSONFormatter().format(_record()))
        assert "user_id" not in entry
        assert "wbs_num" not in entry


class TestReadableFormatter:
    def test_wbs_number_preferred_over_id(self):
        line = ReadableFormatter().format(_record(user_id=3, entity_type="project", entity_id=7, wbs_num="1.2.0"))
        assert line.endswith("[project 1.2.0] (user 3)")

    def test_plain_message(self):
        assert ReadableFormatter().format(_record()).endswith("Risk 12 resolved")


class TestRequestTiming:
    def test_request_id_is_echoed(self, client):
        res = client.get("/api/v1/health", headers={"X-Request-ID": "abc123"})
        assert res.headers["X-Request-ID"] == "abc123"
        assert float(res.headers["X-Request-Duration-Ms"]) >= 0

    def test_request_id_generated(self, client, member, as_user):
        res = client.get("/api/v1/users/me", headers=as_user(member))
        assert res.status_code == 200
        assert len(res.headers["X-Request-ID"]) == 12

    def test_slow_requests_warn(self, app, client, member, as_user, caplog):
        saved = app.config["SLOW_REQUEST_MS"]
        app.config["SLOW_REQUEST_MS"] = -1
        try:
            with caplog.at_level(logging.WARNING, logger="projecthub.middleware.timing"):
                client.get("/api/v1/users/me", headers=as_user(member))
        finally:
            app.config["SLOW_REQUEST_MS"] = saved
        assert any("/api/v1/users/me" in r.getMessage() for r in caplog.records)
