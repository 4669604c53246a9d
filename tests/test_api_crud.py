import unittest
import uuid
from unittest.mock import patch

from fastapi.testclient import TestClient

from shiftiq import main
from shiftiq.deps import get_ingestor, get_settings, get_store
from shiftiq.main import app
from shiftiq.services.ingest import DocumentIngestor

from fakes import FakeEmbedder, make_settings, make_sql_store

HANDBOOK = "Greet every table within two minutes and offer water first. " * 40


class SqlApiTestCase(unittest.TestCase):
    """Runs the app against an in-memory SQLite store living on the client's event loop."""

    def setUp(self):
        no_tables = patch.object(main.settings, "DB_CREATE_ALL", False)
        no_tables.start()
        self.addCleanup(no_tables.stop)

        self.settings = make_settings()
        self.client = TestClient(app)
        self.client.__enter__()
        self.addCleanup(self.client.__exit__, None, None, None)

        self.engine, self.store = self.client.portal.call(make_sql_store)
        self.addCleanup(self.client.portal.call, self.engine.dispose)

        self.embedder = FakeEmbedder()
        ingestor = DocumentIngestor(self.store, self.embedder, self.settings)
        app.dependency_overrides[get_settings] = lambda: self.settings
        app.dependency_overrides[get_store] = lambda: self.store
        app.dependency_overrides[get_ingestor] = lambda: ingestor
        self.addCleanup(app.dependency_overrides.clear)


class TestDocumentRoutes(SqlApiTestCase):
    def _create(self, **overrides):
        body = {"title": "Server handbook", "content": HANDBOOK, "category": "hospitality", "tags": ["foh"]}
        body.update(overrides)
        return self.client.post("/documents", json=body)

    def test_create_list_get_search(self):
        resp = self._create()
        self.assertEqual(resp.status_code, 201)
        created = resp.json()
        self.assertIsNone(created["chunksProcessed"])
        doc = created["document"]
        self.assertEqual((doc["title"], doc["category"], doc["tags"], doc["fileType"]),
                         ("Server handbook", "hospitality", ["foh"], "text"))
        self._create(title="Bar opening", content="Cut limes. " * 10, category="cocktails")

        titles = [d["title"] for d in self.client.get("/documents").json()]
        self.assertEqual(sorted(titles), ["Bar opening", "Server handbook"])
        self.assertEqual([d["title"] for d in self.client.get("/documents", params={"category": "cocktails"}).json()],
                         ["Bar opening"])
        self.assertEqual([d["title"] for d in self.client.get("/documents/search", params={"q": "greet"}).json()],
                         ["Server handbook"])
        self.assertEqual(self.client.get(f"/documents/{doc['id']}").json()["id"], doc["id"])
        self.assertEqual(self.client.get(f"/documents/{uuid.uuid4()}").status_code, 404)

    def test_create_with_processing(self):
        resp = self.client.post("/documents", params={"process": "true"},
                                json={"title": "Server handbook", "content": HANDBOOK, "category": "hospitality"})
        self.assertEqual(resp.status_code, 201)
        body = resp.json()
        self.assertEqual(body["chunksProcessed"], 3)
        self.assertIsNone(body["error"])
        self.assertEqual(self.client.portal.call(self.store.count_chunks, body["document"]["id"]), 3)

    def test_processing_failure_keeps_document_addressable(self):
        self.embedder.fail_when = lambda text: True
        resp = self.client.post("/documents", params={"process": "true"},
                                json={"title": "Server handbook", "content": HANDBOOK})
        self.assertEqual(resp.status_code, 201)
        body = resp.json()
        self.assertIsNone(body["chunksProcessed"])
        self.assertEqual(body["error"], "Failed to generate any embeddings")

        doc_id = body["document"]["id"]
        self.embedder.fail_when = lambda text: False
        retry = self.client.post("/process-document", json={"documentId": doc_id})
        self.assertEqual(retry.json()["chunksProcessed"], 3)

    def test_delete_removes_document_and_chunks(self):
        doc_id = self.client.post("/documents", params={"process": "true"},
                                  json={"title": "Server handbook", "content": HANDBOOK}).json()["document"]["id"]
        self.assertEqual(self.client.delete(f"/documents/{doc_id}").status_code, 204)
        self.assertEqual(self.client.portal.call(self.store.count_chunks, doc_id), 0)
        self.assertEqual(self.client.get(f"/documents/{doc_id}").status_code, 404)
        self.assertEqual(self.client.delete(f"/documents/{doc_id}").status_code, 404)


class TestUploadRoute(SqlApiTestCase):
    def test_upload_text_file_is_stored_and_ingested(self):
        resp = self.client.post(
            "/documents/upload",
            files={"file": ("handbook.txt", HANDBOOK.encode("utf-8"), "text/plain")},
            data={"category": "hospitality", "tags": "foh, training"},
        )
        self.assertEqual(resp.status_code, 201)
        body = resp.json()
        self.assertEqual(body["chunksProcessed"], 3)
        doc = body["document"]
        self.assertEqual((doc["title"], doc["fileType"], doc["tags"]), ("handbook.txt", "text", ["foh", "training"]))

    def test_upload_too_short_to_chunk_reports_error_with_document(self):
        resp = self.client.post(
            "/documents/upload",
            files={"file": ("note.txt", b"Call Sam.", "text/plain")},
            data={"title": "Sticky note"},
        )
        self.assertEqual(resp.status_code, 201)
        body = resp.json()
        self.assertIsNone(body["chunksProcessed"])
        self.assertEqual(body["error"], "No valid chunks created from document")
        self.assertEqual(self.client.get(f"/documents/{body['document']['id']}").json()["title"], "Sticky note")

    def test_upload_without_text_is_rejected(self):
        resp = self.client.post("/documents/upload", files={"file": ("blank.txt", b"   ", "text/plain")})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(self.client.get("/documents").json(), [])


class TestSessionRoutes(SqlApiTestCase):
    def test_create_list_and_read_messages(self):
        created = self.client.post("/sessions", json={"userId": "u-1", "title": "Friday close"})
        self.assertEqual(created.status_code, 201)
        session_id = created.json()["id"]
        self.client.post("/sessions", json={"userId": "u-2"})

        listed = self.client.get("/sessions", params={"user_id": "u-1"}).json()
        self.assertEqual([s["title"] for s in listed], ["Friday close"])

        self.client.portal.call(self.store.append_exchange, session_id, "Who closes?", "The closing lead.")
        messages = self.client.get(f"/sessions/{session_id}/messages").json()
        self.assertEqual([(m["content"], m["isUser"]) for m in messages],
                         [("Who closes?", True), ("The closing lead.", False)])

    def test_messages_for_unknown_session(self):
        resp = self.client.get(f"/sessions/{uuid.uuid4()}/messages")
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json(), {"error": "Chat session not found"})


class TestBeerAndSettingRoutes(SqlApiTestCase):
    def test_beer_list_crud(self):
        resp = self.client.post("/beers", json={"name": "Hazy Daze", "brewery": "Local Co", "style": "IPA",
                                                "abv": 6.5, "ibu": 45, "similarTo": ["Juice Bomb"]})
        self.assertEqual(resp.status_code, 201)
        beer = resp.json()
        self.assertEqual(beer["similarTo"], ["Juice Bomb"])
        self.client.post("/beers", json={"name": "Dry Irish", "style": "Stout"})

        self.assertEqual([b["name"] for b in self.client.get("/beers").json()], ["Dry Irish", "Hazy Daze"])
        self.assertEqual([b["name"] for b in self.client.get("/beers", params={"style": "Stout"}).json()], ["Dry Irish"])
        self.assertEqual([b["name"] for b in self.client.get("/beers/search", params={"q": "local"}).json()],
                         ["Hazy Daze"])

        self.assertEqual(self.client.delete(f"/beers/{beer['id']}").status_code, 204)
        self.assertEqual(self.client.delete(f"/beers/{beer['id']}").status_code, 404)

    def test_invalid_beer_is_400(self):
        self.assertEqual(self.client.post("/beers", json={"name": ""}).status_code, 400)

    def test_settings_roundtrip(self):
        self.assertEqual(self.client.get("/settings/banner").status_code, 404)
        put = self.client.put("/settings/banner", json={"value": "86 the salmon", "description": "shift note"})
        self.assertEqual(put.status_code, 200)
        self.assertEqual(self.client.get("/settings/banner").json(),
                         {"key": "banner", "value": "86 the salmon", "description": "shift note"})
