import json
import os
import tempfile
import unittest
from unittest import mock

from starlette.testclient import TestClient

from rest_api_builder.config import BuilderConfig
from rest_api_builder.http_server import create_app
from rest_api_builder.server import build_app


class FakeTester:

    def __init__(self):
        self.calls = []

    async def send(self, url, method, headers=None, body=None):
        self.calls.append((url, method, headers, body))
        return {"success": True, "data": {"status": 200, "statusText": "OK", "headers": {}, "body": {}, "responseTimeMs": 1}}


class _AppTestCase(unittest.TestCase):

    allow_external_edit = False

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.config = BuilderConfig(data_dir=self._tmp.name, allow_external_edit=self.allow_external_edit)
        self.app = create_app(self.config)
        self.local = TestClient(self.app, base_url="http://localhost")
        self.remote = TestClient(self.app, base_url="http://docs.example.com")

    def tearDown(self):
        self._tmp.cleanup()

    @property
    def endpoints_dir(self):
        return os.path.join(self._tmp.name, "endpoints")


class TestProjectInitialization(_AppTestCase):

    def test_layout_and_sample_created(self):
        self.assertTrue(os.path.isdir(self.endpoints_dir))
        self.assertTrue(os.path.isdir(os.path.join(self._tmp.name, "sockets")))
        response = self.local.get("/api/endpoints")
        self.assertEqual(response.status_code, 200)
        names = [d["name"] for d in response.json()["data"]]
        self.assertEqual(names, ["Get Users"])

    def test_sample_not_recreated_when_other_documents_exist(self):
        sample = self.local.get("/api/endpoints").json()["data"][0]
        self.local.post("/api/endpoints", json={"filename": "other"})
        self.local.delete(f"/api/endpoints/{sample['id']}")

        create_app(self.config)
        self.assertFalse(os.path.exists(os.path.join(self.endpoints_dir, "get-users.json")))


class TestEndpointRoutes(_AppTestCase):

    def test_crud_cycle(self):
        response = self.local.post("/api/endpoints", json={
            "folder": "users",
            "filename": "create-user",
            "name": "Create User",
            "method": "POST",
            "path": "/users",
        })
        self.assertEqual(response.status_code, 201)
        created = response.json()["data"]
        self.assertEqual(created["method"], "POST")
        self.assertEqual(created["folder"], "users")

        response = self.local.get(f"/api/endpoints/{created['id']}")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"], created)

        response = self.local.put(f"/api/endpoints/{created['id']}", json={"description": "Adds a user"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["description"], "Adds a user")

        response = self.local.delete(f"/api/endpoints/{created['id']}")
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["success"])

        response = self.local.get(f"/api/endpoints/{created['id']}")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json(), {"success": False, "message": "Endpoint not found"})

    def test_create_validation(self):
        response = self.local.post("/api/endpoints", json={"name": "No file"})
        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()["success"])

        self.local.post("/api/endpoints", json={"filename": "dup"})
        response = self.local.post("/api/endpoints", json={"filename": "dup"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Endpoint file already exists")

        response = self.local.post("/api/endpoints", content=b"{broken", headers={"Content-Type": "application/json"})
        self.assertEqual(response.status_code, 400)

    def test_unknown_ids(self):
        self.assertEqual(self.local.put("/api/endpoints/nope", json={"name": "x"}).status_code, 404)
        self.assertEqual(self.local.delete("/api/endpoints/nope").status_code, 404)

    def test_sequential_puts_keep_last_write(self):
        created = self.local.post("/api/endpoints", json={"filename": "doc"}).json()["data"]
        self.local.put(f"/api/endpoints/{created['id']}", json={"description": "one"})
        last = self.local.put(f"/api/endpoints/{created['id']}", json={"description": "two"}).json()["data"]

        found = self.local.get(f"/api/endpoints/{created['id']}").json()["data"]
        self.assertEqual(found["description"], "two")
        self.assertEqual(found["updatedAt"], last["updatedAt"])

    def test_partial_response_example_update(self):
        created = self.local.post("/api/endpoints", json={"filename": "doc"}).json()["data"]
        response = self.local.put(f"/api/endpoints/{created['id']}", json={
            "responses": {"200": {"example": '{"ok": true}'}},
        })
        updated = response.json()["data"]
        self.assertEqual(updated["responses"]["200"]["example"], {"ok": True})
        self.assertEqual(updated["responses"]["200"]["description"], "Success response")


class TestStorageFailures(_AppTestCase):

    def _leftovers(self):
        return [name for name in os.listdir(self.endpoints_dir) if name.endswith(".tmp")]

    def _assert_server_error(self, response):
        self.assertEqual(response.status_code, 500)
        body = response.json()
        self.assertFalse(body["success"])
        self.assertTrue(body["message"])

    def test_create_write_failure(self):
        with mock.patch("rest_api_builder.store.document_store.os.replace", side_effect=OSError("disk full")):
            response = self.local.post("/api/endpoints", json={"filename": "doc"})
        self._assert_server_error(response)
        self.assertEqual(self._leftovers(), [])
        self.assertFalse(os.path.exists(os.path.join(self.endpoints_dir, "doc.json")))

    def test_update_write_failure(self):
        created = self.local.post("/api/endpoints", json={"filename": "doc", "description": "before"}).json()["data"]
        with mock.patch("rest_api_builder.store.document_store.os.replace", side_effect=OSError("disk full")):
            response = self.local.put(f"/api/endpoints/{created['id']}", json={"description": "after"})
        self._assert_server_error(response)
        self.assertEqual(self._leftovers(), [])
        found = self.local.get(f"/api/endpoints/{created['id']}").json()["data"]
        self.assertEqual(found["description"], "before")

    def test_delete_failure(self):
        created = self.local.post("/api/endpoints", json={"filename": "doc"}).json()["data"]
        with mock.patch("rest_api_builder.store.document_store.os.remove", side_effect=OSError("busy")):
            response = self.local.delete(f"/api/endpoints/{created['id']}")
        self._assert_server_error(response)
        self.assertEqual(self.local.get(f"/api/endpoints/{created['id']}").status_code, 200)

    def test_config_save_failure(self):
        with mock.patch("rest_api_builder.store.document_store.os.replace", side_effect=OSError("disk full")):
            response = self.local.put("/api/config", json={"name": "Renamed"})
        self._assert_server_error(response)
        self.assertEqual(self.local.get("/api/config").json()["data"]["name"], "API Documentation")
        self.assertFalse(os.path.exists(os.path.join(self._tmp.name, "config.json")))
        self.assertEqual([n for n in os.listdir(self._tmp.name) if n.endswith(".tmp")], [])


class TestFolderAndStructureRoutes(_AppTestCase):

    def test_users_folder_scenario(self):
        response = self.local.post("/api/folders", json={"name": "users"})
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["data"], {"name": "users", "parent": "", "path": "users"})

        self.local.post("/api/endpoints", json={
            "name": "Get Users",
            "method": "GET",
            "path": "/users",
            "folder": "users",
            "filename": "get-users",
        })

        tree = self.local.get("/api/structure").json()["data"]
        self.assertEqual(tree[0]["type"], "folder")
        self.assertEqual(tree[0]["name"], "users")
        children = tree[0]["children"]
        self.assertEqual(len(children), 1)
        self.assertEqual(children[0]["type"], "endpoint")
        self.assertEqual(children[0]["name"], "get-users")
        self.assertEqual(children[0]["data"]["method"], "GET")

    def test_folder_validation(self):
        self.assertEqual(self.local.post("/api/folders", json={}).status_code, 400)
        self.local.post("/api/folders", json={"name": "users"})
        response = self.local.post("/api/folders", json={"name": "users"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["message"], "Folder already exists")

    def test_nested_folder(self):
        response = self.local.post("/api/folders", json={"name": "orders", "parent": "v1"})
        self.assertEqual(response.json()["data"]["path"], "v1/orders")


class TestEditGate(_AppTestCase):

    def test_remote_mutations_forbidden_without_side_effects(self):
        sample = self.local.get("/api/endpoints").json()["data"][0]
        before = sorted(os.listdir(self.endpoints_dir))

        responses = [
            self.remote.post("/api/endpoints", json={"filename": "x"}),
            self.remote.put(f"/api/endpoints/{sample['id']}", json={"name": "hacked"}),
            self.remote.delete(f"/api/endpoints/{sample['id']}"),
            self.remote.post("/api/folders", json={"name": "x"}),
            self.remote.put("/api/config", json={"name": "hacked"}),
        ]
        for response in responses:
            self.assertEqual(response.status_code, 403)
            self.assertEqual(response.json(), {"success": False, "message": "Edit access denied"})

        self.assertEqual(sorted(os.listdir(self.endpoints_dir)), before)
        self.assertEqual(self.local.get(f"/api/endpoints/{sample['id']}").json()["data"]["name"], "Get Users")
        self.assertFalse(os.path.exists(os.path.join(self._tmp.name, "config.json")))

    def test_remote_reads_allowed(self):
        self.assertEqual(self.remote.get("/api/endpoints").status_code, 200)
        self.assertEqual(self.remote.get("/api/structure").status_code, 200)
        self.assertFalse(self.remote.get("/api/config").json()["data"]["canEdit"])
        self.assertTrue(self.local.get("/api/config").json()["data"]["canEdit"])


class TestExternalEditAllowed(_AppTestCase):

    allow_external_edit = True

    def test_remote_can_edit(self):
        response = self.remote.post("/api/endpoints", json={"filename": "remote"})
        self.assertEqual(response.status_code, 201)
        self.assertTrue(self.remote.get("/health").json()["data"]["canEdit"])


class TestConfigRoutes(_AppTestCase):

    def test_get_config(self):
        data = self.local.get("/api/config").json()["data"]
        self.assertEqual(data["name"], "API Documentation")
        self.assertEqual(data["mountPath"], "/api-docs")
        self.assertTrue(data["canEdit"])

    def test_update_config_persists(self):
        response = self.local.put("/api/config", json={"name": "Renamed", "theme": "light"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"]["name"], "Renamed")
        self.assertEqual(self.local.get("/api/config").json()["data"]["theme"], "light")

        with open(os.path.join(self._tmp.name, "config.json")) as f:
            self.assertEqual(json.load(f)["name"], "Renamed")

        restarted = TestClient(create_app(BuilderConfig(data_dir=self._tmp.name)), base_url="http://localhost")
        self.assertEqual(restarted.get("/api/config").json()["data"]["name"], "Renamed")


class TestTestEndpointRoute(_AppTestCase):

    def test_unreachable_target_reports_failure(self):
        response = self.local.post("/api/test-endpoint", json={"url": "http://127.0.0.1:1/none", "method": "GET"})
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()["success"])

    def test_forwards_to_tester(self):
        tester = FakeTester()
        client = TestClient(create_app(self.config, tester=tester))
        response = client.post("/api/test-endpoint", json={
            "url": "https://api.example.com/users",
            "method": "POST",
            "headers": {"X-Token": "t"},
            "body": {"name": "John"},
        })
        self.assertTrue(response.json()["success"])
        self.assertEqual(tester.calls, [("https://api.example.com/users", "POST", {"X-Token": "t"}, {"name": "John"})])

    def test_invalid_body(self):
        response = self.local.post("/api/test-endpoint", content=b"nope", headers={"Content-Type": "application/json"})
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()["success"])


class TestHealthAndUi(_AppTestCase):

    def test_health(self):
        body = self.local.get("/health").json()
        self.assertTrue(body["success"])
        self.assertGreaterEqual(body["data"]["uptime"], 0)
        self.assertEqual(body["data"]["config"]["path"], "/api-docs")
        self.assertTrue(body["data"]["canEdit"])

    def test_spa_fallback(self):
        for path in ("/", "/endpoints/abc"):
            response = self.local.get(path)
            self.assertEqual(response.status_code, 200)
            self.assertIn("REST API Builder", response.text)

    def test_missing_asset_is_404(self):
        self.assertEqual(self.local.get("/assets/missing.js").status_code, 404)

    def test_static_dir_cannot_be_escaped(self):
        response = self.local.get("/..%2F..%2Fconfig.py")
        self.assertNotIn("BuilderConfig", response.text)


class TestMountedServer(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()

    def tearDown(self):
        self._tmp.cleanup()

    def test_docs_mounted_next_to_demo_api(self):
        app = build_app(BuilderConfig(data_dir=self._tmp.name, path="/docs/"))
        client = TestClient(app, base_url="http://localhost")

        self.assertEqual(client.get("/api/demo").json()["message"], "Hello from demo API!")
        self.assertEqual(client.get("/api/users/1").json()["name"], "John Doe")
        self.assertEqual(client.get("/api/users/9").status_code, 404)
        self.assertEqual(client.post("/api/users", json={"name": "Ann"}).status_code, 201)

        config = client.get("/docs/api/config").json()["data"]
        self.assertEqual(config["mountPath"], "/docs")
        self.assertEqual(len(client.get("/docs/api/endpoints").json()["data"]), 1)


if __name__ == '__main__':
    unittest.main()
