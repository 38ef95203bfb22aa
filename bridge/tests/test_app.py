import unittest
from unittest.mock import patch

from fastapi.testclient import TestClient

from bridge.app import create_app
from bridge.errors import DatabaseUnavailableError
from bridge.history import InMemoryHistoryReader


class FailingReader:
    def fetch(self, path):
        raise RuntimeError("Permission denied")


class BridgeApiTests(unittest.TestCase):
    def setUp(self):
        self.client = TestClient(create_app())
        self.reader = InMemoryHistoryReader(
            {
                "History": {
                    "Id123": {
                        "9": {"Title": "Cafe", "monto": "-3.5", "note": "<b>x</b>"},
                        "10": {"title": "Sueldo", "monto": 1200},
                        "100": {"flag": True},
                    },
                    "Empty": {},
                }
            }
        )
        patcher = patch("bridge.routes.get_history_reader", return_value=self.reader)
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_root_and_health(self):
        response = self.client.get("/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.text, "Bridge base OK")

        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok"})

    def test_history_lists_items_by_descending_string_key(self):
        response = self.client.get("/history", params={"path": "History/Id123"})
        self.assertEqual(response.status_code, 200)
        payload = response.json()
        self.assertTrue(payload["ok"])
        self.assertEqual(payload["path"], "History/Id123")
        self.assertEqual(payload["count"], 3)
        self.assertEqual([item["key"] for item in payload["items"]], ["9", "100", "10"])
        self.assertEqual(
            payload["items"][1]["children"], [{"key": "flag", "data": True}]
        )

    def test_history_empty_subtree(self):
        for path in ("History/Empty", "History/Missing"):
            response = self.client.get("/history", params={"path": path})
            self.assertEqual(response.status_code, 200)
            payload = response.json()
            self.assertEqual(payload["count"], 0)
            self.assertEqual(payload["items"], [])

    def test_history_strips_surrounding_slashes(self):
        response = self.client.get("/history", params={"path": "/History/Id123/"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["path"], "History/Id123")

    def test_view_accepts_empty_query_values(self):
        response = self.client.get(
            "/view?path=History/Id123&title=&sub=&unit=&amountKey=&compact="
        )
        self.assertEqual(response.status_code, 200)
        self.assertIn("text/html", response.headers["content-type"])
        self.assertEqual(response.text.count('<article class="card'), 3)
        self.assertIn("<dl", response.text)

    def test_view_compact_flag_values(self):
        for value, compact in (("TRUE", True), ("on", True), ("x", False), ("0", False)):
            response = self.client.get(
                "/view", params={"path": "History/Id123", "compact": value}
            )
            self.assertEqual(response.status_code, 200)
            self.assertEqual("<dl" not in response.text, compact, msg=value)

    def test_history_accepts_non_ascii_keys(self):
        self.reader.load({"Historial": {"Año": {"2024": {"monto": 5}}}})
        response = self.client.get("/history", params={"path": "Historial/Año"})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["count"], 1)

    def test_missing_path_is_rejected(self):
        response = self.client.get("/history")
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["ok"], False)

        response = self.client.get("/view")
        self.assertEqual(response.status_code, 400)
        self.assertIn("text/html", response.headers["content-type"])

        response = self.client.get("/view", params={"compact": "x"})
        self.assertEqual(response.status_code, 400)
        self.assertIn("text/html", response.headers["content-type"])

    def test_invalid_path_is_rejected(self):
        response = self.client.get("/history", params={"path": "History/a.b"})
        self.assertEqual(response.status_code, 400)
        self.assertIn("Invalid path", response.json()["error"])

    def test_unconfigured_database_returns_500(self):
        with patch(
            "bridge.routes.get_history_reader",
            side_effect=DatabaseUnavailableError("FIREBASE_DB_URL is not set"),
        ):
            response = self.client.get("/history", params={"path": "History"})
            self.assertEqual(response.status_code, 500)
            self.assertEqual(
                response.json(), {"ok": False, "error": "FIREBASE_DB_URL is not set"}
            )

            response = self.client.get("/view", params={"path": "History"})
            self.assertEqual(response.status_code, 500)
            self.assertIn("FIREBASE_DB_URL is not set", response.text)

    def test_fetch_failure_returns_stringified_error(self):
        with patch("bridge.routes.get_history_reader", return_value=FailingReader()):
            response = self.client.get("/history", params={"path": "History"})
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["error"], "Permission denied")

    def test_view_renders_cards(self):
        response = self.client.get(
            "/view",
            params={
                "path": "History/Id123",
                "title": "Movimientos",
                "unit": "USD",
                "amountKey": "MONTO",
            },
        )
        self.assertEqual(response.status_code, 200)
        self.assertIn("text/html", response.headers["content-type"])
        body = response.text
        self.assertEqual(body.count('<article class="card'), 3)
        self.assertIn("-3.5 USD", body)
        self.assertIn("1200 USD", body)
        self.assertIn("&lt;b&gt;x&lt;/b&gt;", body)
        self.assertNotIn("<b>x</b>", body)
        self.assertLess(body.index("Cafe"), body.index("Sueldo"))

    def test_view_compact_hides_fields(self):
        response = self.client.get(
            "/view", params={"path": "History/Id123", "compact": "1"}
        )
        self.assertEqual(response.status_code, 200)
        self.assertNotIn("<dl", response.text)
        self.assertIn('class="compact"', response.text)

    def test_view_empty_subtree(self):
        response = self.client.get("/view", params={"path": "History/Empty"})
        self.assertEqual(response.status_code, 200)
        self.assertIn("Sin registros", response.text)


if __name__ == "__main__":
    unittest.main()
