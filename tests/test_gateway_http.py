"""Tests for the HTTP transport, with aiohttp mocked by aioresponses."""

import asyncio
import json
import re

import pytest
from aioresponses import aioresponses

from customops.config import GatewaySettings
from customops.exceptions import ConfigurationError, GatewayError
from customops.flows import ClientOnboardingWizard, OnboardingWizardStep
from customops.gateway import Gateway, HTTPTransport

BASE = "https://platform.example.com/api"
APP = f"{BASE}/apps/app-1"


def make_gateway(**kwargs):
    return Gateway(HTTPTransport(base_url=BASE + "/", app_id="app-1", auth_token="secret", **kwargs))


def sent_requests(mocked):
    return [call for calls in mocked.requests.values() for call in calls]


class TestHTTPTransportConfiguration:
    """Tests for transport construction."""

    def test_from_settings(self):
        transport = HTTPTransport.from_settings(
            GatewaySettings(
                transport="http", base_url=BASE, app_id="app-1", auth_token="t", timeout=5
            )
        )
        assert transport.app_url == APP
        assert transport._timeout == 5

    def test_from_settings_requires_token(self):
        with pytest.raises(ConfigurationError):
            HTTPTransport.from_settings(GatewaySettings(transport="http", app_id="app-1"))

    def test_token_optional_when_auth_not_required(self):
        transport = HTTPTransport.from_settings(
            GatewaySettings(transport="http", app_id="app-1", requires_auth=False)
        )
        assert transport._auth_token is None

    @pytest.mark.asyncio
    async def test_requests_fail_before_initialize(self):
        transport = HTTPTransport(base_url=BASE, app_id="app-1")
        with pytest.raises(GatewayError) as excinfo:
            await transport.list_entities("Client")
        assert "not initialized" in str(excinfo.value)


class TestHTTPEntities:
    """Tests for the entity endpoints."""

    @pytest.mark.asyncio
    async def test_list_with_sort_and_limit(self):
        with aioresponses() as mocked:
            mocked.get(
                f"{APP}/entities/Client?sort=-created_date&limit=5",
                payload=[{"id": "c1"}, {"id": "c2"}],
            )
            async with make_gateway() as gateway:
                clients = await gateway.entities.Client.list("-created_date", limit=5)

        assert [c["id"] for c in clients] == ["c1", "c2"]

    @pytest.mark.asyncio
    async def test_list_accepts_items_wrapper(self):
        with aioresponses() as mocked:
            mocked.get(f"{APP}/entities/Carrier", payload={"items": [{"id": "k1"}], "total": 1})
            async with make_gateway() as gateway:
                carriers = await gateway.entities.Carrier.list()

        assert carriers == [{"id": "k1"}]

    @pytest.mark.asyncio
    async def test_filter_sends_json_query(self):
        query = {"agent_id": "g1", "status": "active"}
        with aioresponses() as mocked:
            mocked.get(
                re.compile(rf"^{re.escape(APP)}/entities/Client\?.*$"),
                payload=[{"id": "c3"}],
            )
            async with make_gateway() as gateway:
                clients = await gateway.entities.Client.filter(query, "-premium")

            [call] = sent_requests(mocked)

        assert clients == [{"id": "c3"}]
        assert json.loads(call.kwargs["params"]["q"]) == query
        assert call.kwargs["params"]["sort"] == "-premium"

    @pytest.mark.asyncio
    async def test_create_update_delete(self):
        with aioresponses() as mocked:
            mocked.post(
                f"{APP}/entities/Carrier", payload={"id": "k9", "name": "Acme"}
            )
            mocked.put(
                f"{APP}/entities/Carrier/k9", payload={"id": "k9", "name": "Acme", "status": "active"}
            )
            mocked.delete(f"{APP}/entities/Carrier/k9", status=204)
            async with make_gateway() as gateway:
                created = await gateway.entities.Carrier.create({"name": "Acme"})
                updated = await gateway.entities.Carrier.update("k9", {"status": "active"})
                deleted = await gateway.entities.Carrier.delete("k9")

            calls = sent_requests(mocked)

        assert created["id"] == "k9"
        assert updated["status"] == "active"
        assert deleted is None
        assert calls[0].kwargs["json"] == {"name": "Acme"}
        assert calls[1].kwargs["json"] == {"status": "active"}

    @pytest.mark.asyncio
    async def test_error_status_raises_gateway_error(self):
        with aioresponses() as mocked:
            mocked.get(
                f"{APP}/entities/Client/missing",
                status=404,
                payload={"message": "Client not found"},
            )
            async with make_gateway() as gateway:
                with pytest.raises(GatewayError) as excinfo:
                    await gateway.entities.Client.get("missing")

        assert excinfo.value.status == 404
        assert str(excinfo.value) == "Client not found"
        assert excinfo.value.operation == "entities.Client.get"

    @pytest.mark.asyncio
    async def test_plain_text_error_body(self):
        with aioresponses() as mocked:
            mocked.get(f"{APP}/entities/Client", status=502, body="Bad Gateway")
            async with make_gateway() as gateway:
                with pytest.raises(GatewayError) as excinfo:
                    await gateway.entities.Client.list()

        assert excinfo.value.status == 502
        assert "Bad Gateway" in str(excinfo.value)


class TestHTTPFunctionsAndIntegrations:
    """Tests for functions, integrations and auth endpoints."""

    @pytest.mark.asyncio
    async def test_invoke_function(self):
        with aioresponses() as mocked:
            mocked.post(f"{APP}/functions/aiClientSegmentation", payload={"segment_size": 12})
            async with make_gateway() as gateway:
                response = await gateway.functions.invoke(
                    "aiClientSegmentation", {"segmentCriteria": {}, "agentId": "g1"}
                )

            [call] = sent_requests(mocked)

        assert response.data == {"segment_size": 12}
        assert call.kwargs["json"] == {"segmentCriteria": {}, "agentId": "g1"}

    @pytest.mark.asyncio
    async def test_function_rejection(self):
        with aioresponses() as mocked:
            mocked.post(
                f"{APP}/functions/deactivateSystemAccess",
                status=500,
                payload={"detail": "Directory unavailable"},
            )
            async with make_gateway() as gateway:
                with pytest.raises(GatewayError) as excinfo:
                    await gateway.functions.invoke("deactivateSystemAccess", {})

        assert excinfo.value.status == 500
        assert str(excinfo.value) == "Directory unavailable"

    @pytest.mark.asyncio
    async def test_send_email_endpoint(self):
        with aioresponses() as mocked:
            mocked.post(f"{APP}/integration-endpoints/Core/SendEmail", payload={"status": "sent"})
            async with make_gateway() as gateway:
                result = await gateway.integrations.core.send_email(
                    to="ada@example.com", subject="Hi", body="Welcome"
                )

            [call] = sent_requests(mocked)

        assert result == {"status": "sent"}
        assert call.kwargs["json"] == {"to": "ada@example.com", "subject": "Hi", "body": "Welcome"}

    @pytest.mark.asyncio
    async def test_current_user(self):
        with aioresponses() as mocked:
            mocked.get(f"{APP}/entities/User/me", payload={"id": "u1", "email": "me@agency.test"})
            async with make_gateway() as gateway:
                user = await gateway.auth.me()

        assert user["email"] == "me@agency.test"

    @pytest.mark.asyncio
    async def test_session_headers(self):
        transport = HTTPTransport(base_url=BASE, app_id="app-1", auth_token="secret")
        await transport.initialize()
        try:
            headers = transport._session.headers
            assert headers["Authorization"] == "Bearer secret"
            assert headers["X-App-Id"] == "app-1"
        finally:
            await transport.close()
        assert transport._session is None


class TestHTTPFailures:
    """Transport failures surface as GatewayError."""

    @pytest.mark.asyncio
    async def test_timeout(self):
        with aioresponses() as mocked:
            mocked.post(f"{APP}/functions/aiOnboardingWizard", exception=asyncio.TimeoutError())
            async with make_gateway(timeout=5) as gateway:
                with pytest.raises(GatewayError) as excinfo:
                    await gateway.functions.invoke("aiOnboardingWizard", {})

        assert str(excinfo.value) == "Request timed out after 5s"
        assert excinfo.value.operation == "functions.invoke:aiOnboardingWizard"

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        with aioresponses() as mocked:
            mocked.post(f"{APP}/functions/aiOnboardingWizard", status=200, body="<html>gateway</html>")
            async with make_gateway() as gateway:
                with pytest.raises(GatewayError) as excinfo:
                    await gateway.functions.invoke("aiOnboardingWizard", {})

        assert str(excinfo.value) == "Response is not valid JSON"
        assert excinfo.value.status == 200

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [{"exception": asyncio.TimeoutError()}, {"status": 200, "body": "<html>gateway</html>"}],
    )
    async def test_wizard_reports_failure(self, response, notifier):
        with aioresponses() as mocked:
            mocked.post(f"{APP}/functions/aiOnboardingWizard", **response)
            async with make_gateway() as gateway:
                wizard = ClientOnboardingWizard(gateway, agent_id="agent-1", notifier=notifier)
                wizard.update(first_name="Grace", last_name="Hopper", email="grace@example.com")
                assert await wizard.advance() is True
                assert await wizard.advance() is False

        assert wizard.step == OnboardingWizardStep.HEALTH_PROFILE
        assert len(notifier.errors) == 1
