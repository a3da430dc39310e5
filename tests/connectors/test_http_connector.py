"""Tests for the HTTP request connector."""

import pytest
from fastapi.testclient import TestClient

from event_bus_server.connectors import CustomEventConnector, HttpConnector, HttpRouteOptions
from event_bus_server.event_bus import EventBus


@pytest.fixture
def bus():
    return EventBus()


class TestHttpRouteOptions:
    """Method matching."""

    def test_method_upper_cased(self):
        assert HttpRouteOptions(method="post", path="/x").method == "POST"

    def test_default_method_accepts_everything(self):
        options = HttpRouteOptions(path="/x")

        assert options.method == "ALL"
        assert options.accepts("DELETE")

    def test_get_accepts_head(self):
        options = HttpRouteOptions(method="GET", path="/x")

        assert options.accepts("head")
        assert not options.accepts("POST")


class TestOn:
    """Binding routes."""

    def test_default_event_id_and_delegate_registration(self, bus):
        http = HttpConnector(bus, "http")

        configuration = http.on({"method": "get", "path": "/events/webhooks/test"}, lambda event: None)
        http.on({"method": "post", "path": "/events/webhooks/test"}, lambda event: None)

        assert configuration.id == "HTTP/GET//events/webhooks/test/http"
        assert bus.http_delegates["/events/webhooks/test"].delegates == [http]


class TestRequests:
    """Requests routed through the bus."""

    def test_handler_writes_response(self, bus):
        http = HttpConnector(bus, "http")

        def hello(event):
            event.payload.send("Hello World!")

        http.on({"method": "GET", "path": "/test"}, hello)
        bus.start()

        response = TestClient(bus.get_web_server()).get("/test")

        assert response.status_code == 200
        assert response.text == "Hello World!"

    def test_handler_fans_out_to_custom_event(self, bus):
        emitter = CustomEventConnector(bus, "emitter")
        http = HttpConnector(bus, "http")
        canceled = []

        emitter.on({"event": "ORDER_CANCELED"}, lambda event: canceled.append(event.payload))

        async def cancel(event):
            body = await event.payload.body()
            await emitter.dispatch("ORDER_CANCELED", body)
            event.payload.send_json({"canceled": body["orderNumber"]})

        http.on({"method": "POST", "path": "/events/webhooks/orders/:id/cancel"}, cancel)
        bus.start()

        response = TestClient(bus.get_web_server()).post("/events/webhooks/orders/7/cancel", json={"orderNumber": "234"})

        assert response.json() == {"canceled": "234"}
        assert canceled == [{"orderNumber": "234"}]

    def test_path_params_available_to_handler(self, bus):
        http = HttpConnector(bus, "http")

        def echo(event):
            event.payload.send_json({"pattern": event.payload.original_path, "params": event.payload.path_params})

        http.on({"path": "/events/webhooks/:source"}, echo)
        bus.start()

        response = TestClient(bus.get_web_server()).put("/events/webhooks/github")

        assert response.json() == {"pattern": "/events/webhooks/:source", "params": {"source": "github"}}

    def test_method_mismatch_defers_to_next_delegate(self, bus):
        first = HttpConnector(bus, "first")
        second = HttpConnector(bus, "second")
        first.on({"method": "GET", "path": "/events/webhooks/shared"}, lambda event: event.payload.send("first"))
        second.on({"method": "POST", "path": "/events/webhooks/shared"}, lambda event: event.payload.send("second"))
        bus.start()

        client = TestClient(bus.get_web_server())

        assert client.get("/events/webhooks/shared").text == "first"
        assert client.post("/events/webhooks/shared").text == "second"
        assert client.delete("/events/webhooks/shared").status_code == 501

    def test_first_claiming_delegate_wins(self, bus):
        first = HttpConnector(bus, "first")
        second = HttpConnector(bus, "second")
        calls = []

        def claim(name):
            def handler(event):
                calls.append(name)
                event.payload.send(name)

            return handler

        first.on({"path": "/events/webhooks/shared"}, claim("first"))
        second.on({"path": "/events/webhooks/shared"}, claim("second"))
        bus.start()

        response = TestClient(bus.get_web_server()).get("/events/webhooks/shared")

        assert response.text == "first"
        assert calls == ["first"]

    def test_handler_without_response_gets_empty_200(self, bus):
        http = HttpConnector(bus, "http")
        http.on({"path": "/events/webhooks/silent"}, lambda event: None)
        bus.start()

        response = TestClient(bus.get_web_server()).post("/events/webhooks/silent")

        assert response.status_code == 200
        assert response.text == ""

    def test_failing_handler_returns_500(self, bus):
        http = HttpConnector(bus, "http")

        def broken(event):
            raise RuntimeError("boom")

        http.on({"path": "/events/webhooks/broken"}, broken)
        bus.start()

        response = TestClient(bus.get_web_server()).post("/events/webhooks/broken")

        assert response.status_code == 500

    def test_failing_handler_keeps_written_response(self, bus):
        http = HttpConnector(bus, "http")

        def half_done(event):
            event.payload.send("accepted", status_code=202)
            raise RuntimeError("late failure")

        http.on({"path": "/events/webhooks/half"}, half_done)
        bus.start()

        response = TestClient(bus.get_web_server()).post("/events/webhooks/half")

        assert response.status_code == 202


class TestStop:
    """Unregistering the connector."""

    @pytest.mark.asyncio
    async def test_unregister_clears_paths(self, bus):
        http = HttpConnector(bus, "http")
        http.on({"path": "/events/webhooks/a"}, lambda event: None)
        http.on({"path": "/events/webhooks/b"}, lambda event: None)

        await bus.unregister(http)

        assert bus.http_delegates["/events/webhooks/a"].delegates == []
        assert bus.http_delegates["/events/webhooks/b"].delegates == []
        assert "http" not in bus.connectors

    def test_unregister_keeps_other_connectors_on_shared_path(self, bus):
        poster = HttpConnector(bus, "poster")
        getter = HttpConnector(bus, "getter")
        poster.on({"method": "POST", "path": "/events/webhooks/shared"}, lambda event: event.payload.send("posted"))
        getter.on({"method": "GET", "path": "/events/webhooks/shared"}, lambda event: event.payload.send("got"))
        bus.start()

        bus.run_sync(bus.unregister(poster))
        client = TestClient(bus.get_web_server())

        assert bus.http_delegates["/events/webhooks/shared"].delegates == [getter]
        assert client.get("/events/webhooks/shared").text == "got"
        assert client.post("/events/webhooks/shared").status_code == 501
