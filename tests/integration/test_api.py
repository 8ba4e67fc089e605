"""Integration tests for FastAPI endpoints."""
from uuid import uuid4

import httpx
import pytest
from fastapi.testclient import TestClient
from structlog.testing import capture_logs

from bill_ingestion import pipeline as pipeline_module
from bill_ingestion.api.app import create_app
from bill_ingestion.api.dependencies import get_registry_client
from bill_ingestion.config import Settings
from bill_ingestion.registry.client import RegistryClient
from bill_ingestion.storage.database import AsyncSessionLocal
from bill_ingestion.storage.repositories import BuildingRepo
from tests.factories import KGS_TEXT, fragments_for, make_building, make_doc


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        create_schema=True,
        registry_base_url="https://registry.test/ws",
        registry_username="tester",
        registry_password="secret",
        registry_min_interval=0.0,
        registry_max_attempts=1,
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app, raise_server_exceptions=False) as client:
        yield client


def seed_building(client, org_id):
    async def _seed():
        async with AsyncSessionLocal() as session:
            building = await BuildingRepo(session).create(make_building(org_id))
            await session.commit()
            return building.id

    return client.portal.call(_seed)


def use_registry(app, settings, handler):
    async def _client():
        async with RegistryClient(settings, transport=httpx.MockTransport(handler)) as registry:
            yield registry

    app.dependency_overrides[get_registry_client] = _client


@pytest.fixture
def kgs_pdf(monkeypatch):
    """Make any PDF bytes read as the sample gas bill."""
    monkeypatch.setattr(pipeline_module, "get_page_count", lambda data: make_doc(KGS_TEXT).page_count)
    monkeypatch.setattr(pipeline_module, "extract_page_fragments", lambda data: fragments_for(KGS_TEXT))
    return b"%PDF-1.7 gas bill"


@pytest.mark.integration
class TestHealthEndpoint:
    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["database"] == "ok"
        assert response.headers["X-Request-ID"]

    def test_request_id_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"


@pytest.mark.integration
class TestExtractionEndpoints:
    def test_rejects_non_pdf_name(self, client):
        response = client.post("/extractions", files={"file": ("bill.txt", b"hello", "text/plain")})
        assert response.status_code == 400

    def test_rejects_empty_file(self, client):
        response = client.post("/extractions", files={"file": ("bill.pdf", b"", "application/pdf")})
        assert response.status_code == 400
        assert response.json()["detail"] == "Empty file"

    def test_rejects_non_pdf_content(self, client):
        response = client.post("/extractions", files={"file": ("bill.pdf", b"\x89PNG\r\n\x1a\n", "application/pdf")})
        assert response.status_code == 400
        assert "only PDF bills" in response.json()["detail"]

    def test_upload_list_and_get(self, client, kgs_pdf):
        org_id = uuid4()
        response = client.post(
            "/extractions",
            params={"org_id": str(org_id)},
            files={"file": ("kgs.pdf", kgs_pdf, "application/pdf")},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["vendor"] == "kgs"
        assert body["item_count"] == 1
        assert body["result"]["items"][0]["meter_no"] == "ABC1234567"
        [request] = body["ingest_requests"]
        assert request["utility"] == "gas"
        assert request["bill_upload_id"] == body["id"]

        listed = client.get("/extractions").json()
        assert [u["id"] for u in listed["items"]] == [body["id"]]
        assert client.get(f"/extractions/{body['id']}").json()["filename"] == "kgs.pdf"

    def test_manual_approval_indexes(self, client, kgs_pdf):
        response = client.post(
            "/extractions",
            params={"org_id": str(uuid4()), "approved": [5]},
            files={"file": ("kgs.pdf", kgs_pdf, "application/pdf")},
        )
        assert response.status_code == 200
        assert response.json()["ingest_requests"] == []

    def test_unknown_upload(self, client):
        assert client.get(f"/extractions/{uuid4()}").status_code == 404


@pytest.mark.integration
class TestIngestEndpoint:
    def test_empty_batch(self, client):
        with capture_logs() as logs:
            response = client.post("/ingest-bills", json={"org_id": str(uuid4()), "utility": "gas", "items": []})
        assert response.status_code == 400
        assert any(e["event"] == "ingest_request_empty" for e in logs)

    def test_unknown_utility(self, client):
        response = client.post("/ingest-bills", json={"org_id": str(uuid4()), "utility": "water", "items": [{}]})
        assert response.status_code == 422

    def test_extract_then_ingest(self, client, kgs_pdf):
        org_id = uuid4()
        building_id = seed_building(client, org_id)
        upload = client.post(
            "/extractions",
            params={"org_id": str(org_id)},
            files={"file": ("kgs.pdf", kgs_pdf, "application/pdf")},
        ).json()
        [request] = upload["ingest_requests"]

        with capture_logs() as logs:
            first = client.post("/ingest-bills", json=request).json()
        assert any(e["event"] == "ingest_committed" and e["failed"] == 0 for e in logs)
        again = client.post("/ingest-bills", json=request).json()

        assert first["ok"]
        assert first["summary"]["bills_created"] == 1
        assert first["results"][0]["building_id"] == str(building_id)
        assert again["summary"]["bills_updated"] == 1
        assert again["results"][0]["bill_id"] == first["results"][0]["bill_id"]

    def test_item_failure_reported(self, client):
        org_id = uuid4()
        seed_building(client, org_id)
        response = client.post("/ingest-bills", json={
            "orgId": str(org_id),
            "utility": "gas",
            "items": [{"address": "77 Unknown Ave", "start": "01-05-25", "end": "02-04-25", "mcf": 4}],
        })
        assert response.status_code == 200
        data = response.json()
        assert data["ok"] is False
        assert data["summary"]["failed"] == 1
        assert data["results"][0]["candidates"] == ["1200 W Main St"]


@pytest.mark.integration
class TestRegistryEndpoints:
    def test_link_buildings_dry_run(self, app, client, settings):
        org_id = uuid4()
        seed_building(client, org_id)

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/account"):
                return httpx.Response(200, text="<account><id>9</id></account>")
            return httpx.Response(200, text=(
                "<response><property><id>P1</id><name>Central Office</name>"
                "<address1>1200 W Main St</address1><city>Wichita</city><state>KS</state>"
                "<postalCode>67203</postalCode></property></response>"
            ))

        use_registry(app, settings, handler)
        response = client.post("/registry/link-buildings", json={"orgId": str(org_id), "dry": True})

        assert response.status_code == 200
        data = response.json()
        assert data["mode"] == "dry-run"
        assert data["committed"] == 0
        assert [link["property_id"] for link in data["auto_commit"]] == ["P1"]

    def test_link_buildings_registry_down(self, app, client, settings):
        use_registry(app, settings, lambda request: httpx.Response(401))
        response = client.post("/registry/link-buildings", json={"org_id": str(uuid4())})
        assert response.status_code == 502

    def test_sync_meters_nothing_to_do(self, app, client, settings):
        use_registry(app, settings, lambda request: httpx.Response(500))
        response = client.post("/registry/sync-meters", json={"org_id": str(uuid4())})
        assert response.status_code == 200
        assert response.json()["count"] == 0
