import json
import os
import tempfile
import unittest
from unittest.mock import patch

import app as app_module


class TestYardApi(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.config_path = os.path.join(self.tmp.name, "yard_config.json")
        patcher = patch.object(app_module, "CONFIG_FILE", self.config_path)
        patcher.start()
        self.addCleanup(patcher.stop)
        self.addCleanup(self.tmp.cleanup)

        app_module.planner = app_module.build_planner(app_module.get_default_config())
        self.client = app_module.app.test_client()

    def create(self, **overrides):
        body = {"vessel": "Maersk Seoul", "destination_port": "Singapore", "size": "20", "weight": 10}
        body.update(overrides)
        return self.client.post("/api/requests", json=body)

    def test_create_request_validates_input(self):
        response = self.create(vessel="", weight="heavy")
        self.assertEqual(response.status_code, 400)
        payload = response.get_json()
        self.assertFalse(payload["ok"])
        self.assertIn("vessel", payload["errors"])
        self.assertIn("weight", payload["errors"])

    def test_suggest_assign_flow(self):
        response = self.create()
        self.assertEqual(response.status_code, 201)
        req = response.get_json()
        self.assertEqual(req["state"], "PENDING")
        self.assertEqual(req["vessel"], "MAERSK SEOUL")

        suggestion = self.client.post(f"/api/requests/{req['id']}/suggest").get_json()
        self.assertFalse(suggestion["not_found"])
        self.assertEqual(suggestion["priority"], "BERTH")
        self.assertEqual(suggestion["location"], "D1-01-06-1")
        self.assertEqual(suggestion["bay"], "01")
        self.assertEqual(suggestion["tier"], "1")

        reservations = self.client.get("/api/reservations").get_json()
        self.assertEqual(len(reservations), 1)
        self.assertEqual(reservations[0]["location"], "D1-01-06-1")
        self.assertEqual(reservations[0]["request_id"], req["id"])
        self.assertLessEqual(reservations[0]["remaining_seconds"], 180)

        assigned = self.client.post(f"/api/requests/{req['id']}/assign").get_json()
        self.assertEqual(assigned["state"], "ASSIGNED")
        self.assertEqual(assigned["assigned_location"], "D1-01-06-1")
        self.assertEqual(self.client.get("/api/reservations").get_json(), [])

        again = self.client.post(f"/api/requests/{req['id']}/assign")
        self.assertEqual(again.status_code, 409)

    def test_create_request_rejects_non_finite_weight(self):
        for weight in ("nan", "inf", "-inf"):
            response = self.create(weight=weight)
            self.assertEqual(response.status_code, 400)
            self.assertIn("weight", response.get_json()["errors"])
        self.assertEqual(self.client.get("/api/requests").get_json(), [])

    def test_non_object_bodies_are_rejected(self):
        response = self.client.post("/api/requests", json=["Maersk Seoul", "Singapore"])
        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.get_json()["ok"])

        req = self.create().get_json()
        response = self.client.post(f"/api/requests/{req['id']}/assign", json=["A1-01-06-1"])
        self.assertEqual(response.status_code, 400)

    def test_unknown_request_is_404(self):
        response = self.client.post("/api/requests/REQ-NOPE/suggest")
        self.assertEqual(response.status_code, 404)

    def test_release(self):
        req = self.create().get_json()
        self.client.post(f"/api/requests/{req['id']}/suggest")
        response = self.client.post(f"/api/requests/{req['id']}/release")
        self.assertTrue(response.get_json()["released"].startswith("RES-S4-"))
        self.assertEqual(self.client.get("/api/reservations").get_json(), [])

    def test_inventory_upload_drives_clustering(self):
        inventory = [{
            "id": "MSKU1234567", "block": "A1", "bay": 1, "row": 6, "tier": 1,
            "size": 20, "weight": 10, "vessel": "MAERSK SEOUL", "destination_port": "SINGAPORE",
        }]
        response = self.client.post("/api/inventory", json=inventory)
        self.assertEqual(response.get_json(), {"ok": True, "count": 1})

        req = self.create().get_json()
        suggestion = self.client.post(f"/api/requests/{req['id']}/suggest").get_json()
        self.assertEqual(suggestion["priority"], "CLUSTER")
        self.assertEqual(suggestion["location"], "A1-01-06-2")

    def test_inventory_rejects_bad_records(self):
        response = self.client.post("/api/inventory", json=[{"id": "X"}])
        self.assertEqual(response.status_code, 400)
        response = self.client.post("/api/inventory", json={"id": "X"})
        self.assertEqual(response.status_code, 400)

    def test_config_round_trip(self):
        config = app_module.get_default_config()
        config["schedule"] = [{"vessel_name": "MAERSK SEOUL", "berth": "2"}]
        response = self.client.post("/api/config", json=config)
        self.assertEqual(response.get_json(), {"ok": True})

        with open(self.config_path) as f:
            self.assertEqual(json.load(f)["schedule"][0]["berth"], "2")
        self.assertEqual(self.client.get("/api/config").get_json()["schedule"][0]["vessel_name"],
                         "MAERSK SEOUL")

        # Berth 2 serves A2, B2, C2.
        req = self.create().get_json()
        suggestion = self.client.post(f"/api/requests/{req['id']}/suggest").get_json()
        self.assertEqual(suggestion["location"], "A2-01-06-1")

    def test_config_rejects_bad_payload(self):
        response = self.client.post("/api/config", json={"blocks": [{"name": "A1", "block_type": "CIRCLE"}]})
        self.assertEqual(response.status_code, 400)
        self.assertFalse(os.path.exists(self.config_path))

    def test_status_and_filter(self):
        a = self.create().get_json()
        self.create(vessel="EVER GIVEN")
        self.client.post(f"/api/requests/{a['id']}/suggest")

        status = self.client.get("/api/status").get_json()
        self.assertEqual(status["requests"], {"SUGGESTED": 1, "PENDING": 1})
        self.assertEqual(status["reservations"], 1)

        pending = self.client.get("/api/requests?status=pending").get_json()
        self.assertEqual(len(pending), 2)
        self.assertEqual(self.client.get("/api/requests?status=bogus").status_code, 400)


if __name__ == '__main__':
    unittest.main()
