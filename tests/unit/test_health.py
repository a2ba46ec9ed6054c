"""
Unit tests for the health resources.
"""

import json

from sloth.config import APIConfig
from sloth.dispatcher import Dispatcher
from sloth.resources import HealthResource, HealthStatus, LivenessResource

from conftest import make_request, serve


def dispatch(resource, method="GET"):
    handler = Dispatcher(APIConfig()).handler_for(resource)
    return serve(handler, make_request(method, "/health"))


class TestHealthResource:
    def test_healthy_without_checks(self):
        writer = dispatch(HealthResource())
        document = json.loads(writer.body)

        assert writer.status == 200
        assert document["status"] == "healthy"
        assert "checks" not in document
        assert writer.sent_headers.get("Cache-Control") == "no-store"
        assert writer.sent_headers.get("Content-Type") == "application/json"

    def test_checks_reported(self):
        health = HealthResource().add_check("db", lambda: HealthStatus(True))
        document = json.loads(dispatch(health).body)

        assert document["checks"] == {"db": {"status": "healthy", "message": "OK"}}

    def test_failing_check(self):
        health = (
            HealthResource()
            .add_check("db", lambda: HealthStatus(True))
            .add_check("cache", lambda: HealthStatus(False, "down", {"retries": 3}))
        )
        writer = dispatch(health)
        document = json.loads(writer.body)

        assert writer.status == 503
        assert document["status"] == "unhealthy"
        assert document["checks"]["cache"] == {"status": "unhealthy", "message": "down", "retries": 3}

    def test_raising_check(self):
        def explode():
            raise ConnectionError("refused")

        writer = dispatch(HealthResource().add_check("db", explode))

        assert writer.status == 503
        assert json.loads(writer.body)["checks"]["db"] == {"status": "unhealthy", "error": "refused"}

    def test_details_hidden(self):
        health = HealthResource(include_details=False).add_check("db", lambda: HealthStatus(False))
        writer = dispatch(health)

        assert writer.status == 503
        assert "checks" not in json.loads(writer.body)

    def test_system_info(self):
        document = json.loads(dispatch(HealthResource(include_system_info=True)).body)
        assert set(document["system"]) == {"hostname", "platform", "python_version"}

    def test_head_matches_get(self):
        writer = dispatch(HealthResource(), "HEAD")
        assert writer.status == 200

    def test_other_methods_not_allowed(self):
        writer = dispatch(HealthResource(), "POST")

        assert writer.status == 405
        assert writer.sent_headers.get("Allow") == "GET, HEAD"


class TestLivenessResource:
    def test_alive(self):
        writer = dispatch(LivenessResource())

        assert writer.status == 200
        assert json.loads(writer.body) == {"status": "alive"}

    def test_get_only(self):
        assert dispatch(LivenessResource(), "HEAD").status == 405
