"""
Tests for the customers API endpoints (/api/v2/customers).
"""
import pytest
from httpx import AsyncClient

from tests.factories import CustomerFactory, ServiceFactory

CUSTOMERS_PREFIX = "/api/v2/customers"


class TestCreateCustomer:
    """Tests for POST /customers."""

    @pytest.mark.asyncio
    async def test_create_customer(self, authenticated_client: AsyncClient):
        payload = CustomerFactory()

        response = await authenticated_client.post(CUSTOMERS_PREFIX, json=payload)

        assert response.status_code == 201
        data = response.json()
        assert data["name"] == payload["name"]
        assert data["phone"] == payload["phone"]
        assert data["id"]

    @pytest.mark.asyncio
    async def test_create_customer_missing_fields(self, authenticated_client: AsyncClient):
        response = await authenticated_client.post(CUSTOMERS_PREFIX, json={"email": "a@example.com"})

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "VAL_003"
        assert body["detail"] == "Missing required fields: name, phone"

    @pytest.mark.asyncio
    async def test_blank_name_is_missing(self, authenticated_client: AsyncClient):
        response = await authenticated_client.post(CUSTOMERS_PREFIX, json=CustomerFactory(name="   "))

        assert response.status_code == 400


class TestReadCustomers:
    """Tests for GET /customers and GET /customers/{id}."""

    @pytest.mark.asyncio
    async def test_list_and_search(self, authenticated_client: AsyncClient):
        await authenticated_client.post(CUSTOMERS_PREFIX, json=CustomerFactory(name="Ada Lovelace"))
        await authenticated_client.post(CUSTOMERS_PREFIX, json=CustomerFactory(name="Alan Turing"))

        everyone = await authenticated_client.get(CUSTOMERS_PREFIX)
        assert len(everyone.json()) == 2

        response = await authenticated_client.get(CUSTOMERS_PREFIX, params={"search": "lovelace"})
        assert [c["name"] for c in response.json()] == ["Ada Lovelace"]

    @pytest.mark.asyncio
    async def test_detail_includes_services(self, authenticated_client: AsyncClient, customer):
        service = await authenticated_client.post(
            "/api/v2/services", json=ServiceFactory(customerId=customer.id)
        )

        response = await authenticated_client.get(f"{CUSTOMERS_PREFIX}/{customer.id}")

        assert response.status_code == 200
        services = response.json()["services"]
        assert [s["id"] for s in services] == [service.json()["id"]]

    @pytest.mark.asyncio
    async def test_unknown_customer(self, authenticated_client: AsyncClient):
        response = await authenticated_client.get(f"{CUSTOMERS_PREFIX}/missing-id")

        assert response.status_code == 404
        assert response.json()["code"] == "RES_001"


class TestUpdateAndDelete:
    """Tests for PUT and DELETE /customers/{id}."""

    @pytest.mark.asyncio
    async def test_update_customer(self, authenticated_client: AsyncClient, customer):
        response = await authenticated_client.put(
            f"{CUSTOMERS_PREFIX}/{customer.id}", json={"address": "1 New Road"}
        )

        assert response.status_code == 200
        assert response.json()["address"] == "1 New Road"
        assert response.json()["name"] == customer.name

    @pytest.mark.asyncio
    async def test_update_rejects_blank_phone(self, authenticated_client: AsyncClient, customer):
        response = await authenticated_client.put(f"{CUSTOMERS_PREFIX}/{customer.id}", json={"phone": ""})

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_delete_customer(self, authenticated_client: AsyncClient, customer):
        response = await authenticated_client.delete(f"{CUSTOMERS_PREFIX}/{customer.id}")

        assert response.status_code == 204
        assert (await authenticated_client.get(f"{CUSTOMERS_PREFIX}/{customer.id}")).status_code == 404

    @pytest.mark.asyncio
    async def test_delete_customer_with_services(self, authenticated_client: AsyncClient, customer):
        await authenticated_client.post("/api/v2/services", json=ServiceFactory(customerId=customer.id))

        response = await authenticated_client.delete(f"{CUSTOMERS_PREFIX}/{customer.id}")

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_technician_cannot_delete(self, technician_client: AsyncClient, customer):
        response = await technician_client.delete(f"{CUSTOMERS_PREFIX}/{customer.id}")

        assert response.status_code == 403
