"""Tests for the gateway over the in-memory transport."""

import pytest

from customops.exceptions import GatewayError, SchemaValidationError
from customops.gateway import Gateway, InMemoryTransport, parse_sort


class TestParseSort:

    def test_sort_specs(self):
        assert parse_sort("-created_date") == ("created_date", True)
        assert parse_sort("name") == ("name", False)
        assert parse_sort("+name") == ("name", False)
        assert parse_sort(None) is None
        assert parse_sort("") is None


class TestEntities:
    """Tests for entity CRUD."""

    @pytest.mark.asyncio
    async def test_create_assigns_id_and_date(self, gateway):
        record = await gateway.entities.Client.create({"first_name": "Ada", "last_name": "Lovelace"})
        assert record["id"]
        assert record["created_date"]
        assert await gateway.entities.Client.get(record["id"]) == record

    @pytest.mark.asyncio
    async def test_list_sort_and_limit(self):
        transport = InMemoryTransport(
            records={
                "Carrier": [
                    {"id": "1", "name": "B", "rank": 2},
                    {"id": "2", "name": "A", "rank": None},
                    {"id": "3", "name": "C", "rank": 1},
                ]
            }
        )
        gateway = Gateway(transport)
        names = [c["name"] for c in await gateway.entities.Carrier.list("rank")]
        assert names == ["A", "C", "B"]
        names = [c["name"] for c in await gateway.entities.Carrier.list("-rank", limit=2)]
        assert names == ["B", "C"]

    @pytest.mark.asyncio
    async def test_filter_equality(self):
        gateway = Gateway(
            InMemoryTransport(
                records={
                    "Client": [
                        {"id": "1", "first_name": "A", "last_name": "X", "agent_id": "g1"},
                        {"id": "2", "first_name": "B", "last_name": "Y", "agent_id": "g2"},
                        {"id": "3", "first_name": "C", "last_name": "Z", "agent_id": "g1"},
                    ]
                }
            )
        )
        matched = await gateway.entities.Client.filter({"agent_id": "g1"})
        assert [c["id"] for c in matched] == ["1", "3"]

    @pytest.mark.asyncio
    async def test_update_merges(self, gateway):
        record = await gateway.entities.Client.create({"first_name": "Ada", "last_name": "Lovelace"})
        updated = await gateway.entities.Client.update(record["id"], {"status": "active"})
        assert updated["status"] == "active"
        assert updated["first_name"] == "Ada"
        assert "updated_date" in updated

    @pytest.mark.asyncio
    async def test_returned_records_are_copies(self, gateway):
        record = await gateway.entities.Client.create({"first_name": "Ada", "last_name": "Lovelace"})
        record["first_name"] = "Changed"
        assert (await gateway.entities.Client.get(record["id"]))["first_name"] == "Ada"

    @pytest.mark.asyncio
    async def test_delete_and_missing(self, gateway):
        record = await gateway.entities.Carrier.create({"name": "Acme"})
        await gateway.entities.Carrier.delete(record["id"])
        with pytest.raises(GatewayError) as excinfo:
            await gateway.entities.Carrier.get(record["id"])
        assert excinfo.value.status == 404

    @pytest.mark.asyncio
    async def test_schema_validated_before_dispatch(self, gateway, transport):
        with pytest.raises(SchemaValidationError):
            await gateway.entities.Client.create({"first_name": "Ada"})
        with pytest.raises(SchemaValidationError):
            await gateway.entities.Client.update("any", {"sentiment_trend": "sideways"})
        assert transport.calls == []

    @pytest.mark.asyncio
    async def test_validation_can_be_disabled(self, transport):
        gateway = Gateway(transport, validate=False)
        record = await gateway.entities.Client.create({"first_name": "Ada"})
        assert record["first_name"] == "Ada"

    def test_collections_cached(self, gateway):
        assert gateway.entities.Client is gateway.entities["Client"]
        assert gateway.entities.Client.name == "Client"


class TestFunctionsAndIntegrations:
    """Tests for remote functions, integrations and auth."""

    @pytest.mark.asyncio
    async def test_sync_and_async_handlers(self, gateway, transport):
        async def evaluate(payload):
            return {"score": len(payload["answers"])}

        transport.register_function("double", lambda payload: {"value": payload["n"] * 2})
        transport.register_function("evaluate", evaluate)

        assert (await gateway.functions.invoke("double", {"n": 4})).data == {"value": 8}
        response = await gateway.functions.invoke("evaluate", {"answers": [1, 2, 3]})
        assert response.data == {"score": 3}
        assert response.status == 200
        assert transport.function_calls("double") == [{"n": 4}]

    @pytest.mark.asyncio
    async def test_undeployed_function(self, gateway):
        with pytest.raises(GatewayError) as excinfo:
            await gateway.functions.invoke("missing", {})
        assert excinfo.value.status == 404
        assert "not deployed" in str(excinfo.value)

    @pytest.mark.asyncio
    async def test_handler_failure_becomes_gateway_error(self, gateway, transport):
        def broken(payload):
            raise KeyError("clientData")

        transport.register_function("broken", broken)
        with pytest.raises(GatewayError) as excinfo:
            await gateway.functions.invoke("broken", {})
        assert excinfo.value.status == 500

    @pytest.mark.asyncio
    async def test_send_email(self, gateway, transport):
        result = await gateway.integrations.core.send_email(
            to="ada@example.com", subject="Welcome", body="Hello"
        )
        assert result == {"status": "sent"}
        assert transport.outbox == [{"to": "ada@example.com", "subject": "Welcome", "body": "Hello"}]

        with pytest.raises(GatewayError) as excinfo:
            await gateway.integrations.core.send_email(to="", subject="x", body="y")
        assert excinfo.value.status == 400

    @pytest.mark.asyncio
    async def test_upload_and_llm(self, gateway, transport):
        uploaded = await gateway.integrations.core.upload_file(b"pdf-bytes")
        assert uploaded == {"file_url": "memory://uploads/1"}

        with pytest.raises(GatewayError) as excinfo:
            await gateway.integrations.core.invoke_llm("Summarize")
        assert excinfo.value.status == 503

        transport.set_llm_handler(lambda payload: {"echo": payload["prompt"], **payload})
        result = await gateway.integrations.core.invoke_llm(
            "Summarize", response_json_schema={"type": "object"}, add_context_from_internet=True
        )
        assert result["echo"] == "Summarize"
        assert result["response_json_schema"] == {"type": "object"}
        assert result["add_context_from_internet"] is True

    @pytest.mark.asyncio
    async def test_auth_me(self):
        gateway = Gateway(InMemoryTransport(user={"id": "u9", "email": "admin@agency.test"}))
        async with gateway:
            assert (await gateway.auth.me())["email"] == "admin@agency.test"
