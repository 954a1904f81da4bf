import logging
import unittest
from decimal import Decimal
from pathlib import Path
from unittest import mock

from support import build_test_sessionmaker

from fastapi.testclient import TestClient

import MedRent as app_module
from models.rental_models import AuditLog, Rental
from services.rental_errors import PersistenceError


class ApiTestCase(unittest.TestCase):
    def setUp(self):
        self.engine, self.Session = build_test_sessionmaker()

        def override_db():
            db = self.Session()
            try:
                yield db
            finally:
                db.close()

        app_module.app.dependency_overrides[app_module.get_db] = override_db
        self.client = TestClient(app_module.app)
        self.events = []
        self._listener = lambda topic, payload: self.events.append((topic, payload))
        app_module.VIEW_REFRESH.subscribe(self._listener)

    def tearDown(self):
        app_module.VIEW_REFRESH.unsubscribe(self._listener)
        app_module.app.dependency_overrides.clear()
        self.engine.dispose()

    def signup(self, email, hospital=None):
        response = self.client.post(
            "/api/auth/signup",
            json={"email": email, "password": "correct-horse", "hospitalName": hospital},
        )
        self.assertEqual(response.status_code, 200, response.text)
        body = response.json()
        return {"X-Session-Token": body["sessionToken"]}, body["user"]["accountID"]

    def create_listing(self, headers, **overrides):
        payload = {
            "name": "Portable Ultrasound",
            "condition": "excellent",
            "dailyRate": 100,
            "weeklyRate": 600,
            "latitude": 52.09,
            "longitude": 5.12,
            "city": "Utrecht",
        }
        payload.update(overrides)
        response = self.client.post("/api/equipment", json=payload, headers=headers)
        self.assertEqual(response.status_code, 200, response.text)
        return response.json()

    def request_rental(self, headers, equipment_id, **overrides):
        payload = {
            "equipmentID": equipment_id,
            "startDate": "2025-01-01",
            "endDate": "2025-01-11",
            "deliveryLatitude": 52.37,
            "deliveryLongitude": 4.89,
            "deliveryAddress": "Building B, ICU",
        }
        payload.update(overrides)
        return self.client.post("/api/rentals", json=payload, headers=headers)


class AuthFlowTests(ApiTestCase):
    def test_signup_creates_profile_and_session(self):
        headers, account_id = self.signup("Lab@StMary.org", hospital="St Mary")
        me = self.client.get("/api/auth/me", headers=headers)
        self.assertEqual(me.status_code, 200)
        body = me.json()
        self.assertEqual(body["user"]["email"], "lab@stmary.org")
        self.assertEqual(body["profile"]["profileID"], account_id)
        self.assertEqual(body["profile"]["role"], "both")
        self.assertEqual(body["profile"]["fullName"], "lab")
        self.assertEqual(body["profile"]["hospitalName"], "St Mary")

    def test_duplicate_signup_conflicts(self):
        self.signup("dup@clinic.org")
        response = self.client.post("/api/auth/signup", json={"email": "dup@clinic.org", "password": "another-pass"})
        self.assertEqual(response.status_code, 409)

    def test_login_and_logout_revokes_token(self):
        self.signup("login@clinic.org")
        wrong = self.client.post("/api/auth/login", json={"email": "login@clinic.org", "password": "nope-nope"})
        self.assertEqual(wrong.status_code, 401)

        login = self.client.post("/api/auth/login", json={"email": "LOGIN@clinic.org", "password": "correct-horse"})
        self.assertEqual(login.status_code, 200)
        headers = {"X-Session-Token": login.json()["sessionToken"]}
        self.assertEqual(self.client.get("/api/auth/me", headers=headers).status_code, 200)

        self.assertEqual(self.client.post("/api/auth/logout", headers=headers).status_code, 200)
        self.assertEqual(self.client.get("/api/auth/me", headers=headers).status_code, 401)

    def test_protected_routes_require_session(self):
        fresh = TestClient(app_module.app)
        self.assertEqual(fresh.get("/api/rentals/mine").status_code, 401)
        self.assertEqual(fresh.post("/api/rentals/1/approve").status_code, 401)
        self.assertEqual(fresh.get("/api/auth/me", headers={"X-Session-Token": "forged.token"}).status_code, 401)


class RentalFlowTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.seller, self.seller_id = self.signup("supply@general.org", hospital="General Hospital")
        self.buyer, self.buyer_id = self.signup("icu@stmary.org", hospital="St Mary")
        self.listing = self.create_listing(self.seller)

    def test_request_is_created_pending_with_tiered_total(self):
        response = self.request_rental(self.buyer, self.listing["equipmentID"])
        self.assertEqual(response.status_code, 200, response.text)
        rental = response.json()
        self.assertEqual(rental["status"], "pending")
        self.assertEqual(rental["days"], 10)
        self.assertEqual(rental["totalAmount"], 900.0)
        self.assertEqual(rental["sellerID"], self.seller_id)
        self.assertEqual(rental["buyerID"], self.buyer_id)
        self.assertEqual(rental["viewerRole"], "buyer")
        self.assertEqual(rental["availableActions"], ["cancel"])
        self.assertIn(("rental.created", {"rentalID": rental["rentalID"], "sellerID": self.seller_id, "buyerID": self.buyer_id}), self.events)

        incoming = self.client.get("/api/rentals/requests", headers=self.seller).json()
        self.assertEqual([item["rentalID"] for item in incoming], [rental["rentalID"]])

    def test_self_rental_rejected_without_record(self):
        response = self.request_rental(self.seller, self.listing["equipmentID"])
        self.assertEqual(response.status_code, 400)
        self.assertIn("own equipment", response.json()["detail"])
        with self.Session() as db:
            self.assertEqual(db.query(Rental).count(), 0)

    def test_invalid_requests_rejected(self):
        same_day = self.request_rental(self.buyer, self.listing["equipmentID"], endDate="2025-01-01")
        reversed_range = self.request_rental(self.buyer, self.listing["equipmentID"], startDate="2025-01-05", endDate="2025-01-01")
        no_pin = self.request_rental(self.buyer, self.listing["equipmentID"], deliveryLatitude=None)
        missing = self.request_rental(self.buyer, 9999)
        self.assertEqual(same_day.status_code, 400)
        self.assertEqual(reversed_range.status_code, 400)
        self.assertEqual(no_pin.status_code, 400)
        self.assertIn("delivery location", no_pin.json()["detail"])
        self.assertEqual(missing.status_code, 404)
        with self.Session() as db:
            self.assertEqual(db.query(Rental).count(), 0)

    def test_full_lifecycle_flips_listing_availability(self):
        rental_id = self.request_rental(self.buyer, self.listing["equipmentID"]).json()["rentalID"]
        equipment_url = f"/api/equipment/{self.listing['equipmentID']}"

        denied = self.client.post(f"/api/rentals/{rental_id}/approve", headers=self.buyer)
        self.assertEqual(denied.status_code, 400)
        self.assertEqual(self.client.get(f"/api/rentals/{rental_id}", headers=self.buyer).json()["status"], "pending")

        approved = self.client.post(f"/api/rentals/{rental_id}/approve", headers=self.seller)
        self.assertEqual(approved.status_code, 200)
        self.assertEqual(approved.json()["status"], "approved")
        self.assertFalse(self.client.get(equipment_url).json()["available"])

        self.assertEqual(self.client.post(f"/api/rentals/{rental_id}/deliver", headers=self.seller).json()["status"], "active")
        completed = self.client.post(f"/api/rentals/{rental_id}/complete", headers=self.buyer)
        self.assertEqual(completed.json()["status"], "completed")
        self.assertEqual(completed.json()["totalAmount"], 900.0)
        self.assertTrue(self.client.get(equipment_url).json()["available"])

        after_terminal = self.client.post(f"/api/rentals/{rental_id}/cancel", headers=self.buyer)
        self.assertEqual(after_terminal.status_code, 400)

        with self.Session() as db:
            actions = [row.Action for row in db.query(AuditLog).filter(AuditLog.EntityType == "Rental").order_by(AuditLog.AuditID)]
        self.assertEqual(actions, ["CreateRental", "Approve", "Deliver", "Complete"])
        transitions = [(payload["from"], payload["to"]) for topic, payload in self.events if topic == "rental.status"]
        self.assertEqual(transitions, [("pending", "approved"), ("approved", "active"), ("active", "completed")])

    def test_buyer_cancels_and_seller_rejects(self):
        first = self.request_rental(self.buyer, self.listing["equipmentID"]).json()["rentalID"]
        second = self.request_rental(self.buyer, self.listing["equipmentID"], endDate="2025-01-03").json()["rentalID"]
        self.assertEqual(self.client.post(f"/api/rentals/{first}/cancel", headers=self.buyer).json()["status"], "cancelled")
        self.assertEqual(self.client.post(f"/api/rentals/{second}/reject", headers=self.seller).json()["status"], "rejected")
        self.assertEqual(self.client.post(f"/api/rentals/{second}/approve", headers=self.seller).status_code, 400)
        self.assertTrue(self.client.get(f"/api/equipment/{self.listing['equipmentID']}").json()["available"])

    def test_second_request_cannot_be_approved_while_listing_is_out(self):
        first = self.request_rental(self.buyer, self.listing["equipmentID"]).json()["rentalID"]
        second = self.request_rental(self.buyer, self.listing["equipmentID"], startDate="2025-01-05").json()["rentalID"]
        equipment_url = f"/api/equipment/{self.listing['equipmentID']}"

        self.assertEqual(self.client.post(f"/api/rentals/{first}/approve", headers=self.seller).status_code, 200)
        blocked = self.client.post(f"/api/rentals/{second}/approve", headers=self.seller)
        self.assertEqual(blocked.status_code, 400)
        self.assertIn("already committed", blocked.json()["detail"])
        self.assertEqual(self.client.get(f"/api/rentals/{second}", headers=self.buyer).json()["status"], "pending")

        self.client.post(f"/api/rentals/{first}/deliver", headers=self.seller)
        self.assertEqual(self.client.post(f"/api/rentals/{second}/approve", headers=self.seller).status_code, 400)
        self.assertFalse(self.client.get(equipment_url).json()["available"])
        self.assertEqual([item["name"] for item in self.client.get("/api/equipment", headers=self.buyer).json()], [])

        self.client.post(f"/api/rentals/{first}/complete", headers=self.seller)
        self.assertTrue(self.client.get(equipment_url).json()["available"])
        self.assertEqual(self.client.post(f"/api/rentals/{second}/approve", headers=self.seller).status_code, 200)
        self.assertFalse(self.client.get(equipment_url).json()["available"])

    def test_outsider_cannot_see_or_change_rental(self):
        rental_id = self.request_rental(self.buyer, self.listing["equipmentID"]).json()["rentalID"]
        outsider, _ = self.signup("other@clinic.org")
        self.assertEqual(self.client.get(f"/api/rentals/{rental_id}", headers=outsider).status_code, 403)
        self.assertEqual(self.client.post(f"/api/rentals/{rental_id}/approve", headers=outsider).status_code, 403)

    def test_store_failure_during_transition_keeps_prior_status(self):
        rental_id = self.request_rental(self.buyer, self.listing["equipmentID"]).json()["rentalID"]
        with mock.patch.object(app_module.RecordStore, "update", side_effect=PersistenceError("connection reset")):
            response = self.client.post(f"/api/rentals/{rental_id}/approve", headers=self.seller)
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["detail"], app_module.TRANSITION_FAILED_MESSAGE)
        self.assertEqual(self.client.get(f"/api/rentals/{rental_id}", headers=self.seller).json()["status"], "pending")
        self.assertFalse([topic for topic, _ in self.events if topic == "rental.status"])

    def test_quote_matches_request_total(self):
        listing = self.create_listing(self.seller, name="Ventilator", monthlyRate=2000)
        quote = self.client.get(
            f"/api/equipment/{listing['equipmentID']}/quote",
            params={"startDate": "2025-01-01", "endDate": "2025-02-05"},
        )
        self.assertEqual(quote.status_code, 200)
        self.assertEqual(quote.json()["days"], 35)
        self.assertEqual(Decimal(str(quote.json()["totalAmount"])), Decimal("2500"))

        same_day = self.client.get(
            f"/api/equipment/{listing['equipmentID']}/quote",
            params={"startDate": "2025-01-01", "endDate": "2025-01-01"},
        )
        self.assertEqual(same_day.json()["days"], 0)
        self.assertIsNone(same_day.json()["totalAmount"])


class ListingAndDashboardTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.seller, self.seller_id = self.signup("supply@general.org")
        self.buyer, _ = self.signup("icu@stmary.org")

    def test_browse_hides_own_and_unavailable_listings(self):
        visible = self.create_listing(self.seller, name="ECG Monitor")
        hidden = self.create_listing(self.seller, name="Old Monitor")
        self.client.post(f"/api/equipment/{hidden['equipmentID']}/availability", json={"available": False}, headers=self.seller)

        as_buyer = self.client.get("/api/equipment", headers=self.buyer).json()
        self.assertEqual([item["name"] for item in as_buyer], ["ECG Monitor"])
        self.assertEqual(self.client.get("/api/equipment", headers=self.seller).json(), [])
        search = self.client.get("/api/equipment", params={"q": "ecg"}, headers=self.buyer).json()
        self.assertEqual([item["equipmentID"] for item in search], [visible["equipmentID"]])

    def test_only_owner_edits_listing(self):
        listing = self.create_listing(self.seller)
        denied = self.client.put(f"/api/equipment/{listing['equipmentID']}", json={"dailyRate": 1}, headers=self.buyer)
        self.assertEqual(denied.status_code, 403)
        updated = self.client.put(f"/api/equipment/{listing['equipmentID']}", json={"dailyRate": 120, "city": "Zwolle"}, headers=self.seller)
        self.assertEqual(updated.status_code, 200)
        self.assertEqual(updated.json()["dailyRate"], 120.0)
        self.assertEqual(updated.json()["city"], "Zwolle")

    def test_required_listing_fields_cannot_be_nulled(self):
        listing = self.create_listing(self.seller)
        url = f"/api/equipment/{listing['equipmentID']}"
        for field in ("name", "condition", "dailyRate"):
            response = self.client.put(url, json={field: None}, headers=self.seller)
            self.assertEqual(response.status_code, 422, field)
            self.assertIn("cannot be cleared", response.text)
        unchanged = self.client.get(url).json()
        self.assertEqual(unchanged["name"], "Portable Ultrasound")
        self.assertEqual(unchanged["condition"], "excellent")

        cleared_city = self.client.put(url, json={"city": None}, headers=self.seller)
        self.assertEqual(cleared_city.status_code, 200)
        self.assertIsNone(cleared_city.json()["city"])

    def test_required_profile_fields_cannot_be_nulled(self):
        for field in ("fullName", "role"):
            response = self.client.put("/api/profile", json={field: None}, headers=self.seller)
            self.assertEqual(response.status_code, 422, field)
        profile = self.client.get("/api/profile", headers=self.seller).json()
        self.assertEqual(profile["fullName"], "supply")
        self.assertEqual(profile["role"], "both")

    def test_listing_requires_positive_daily_rate(self):
        response = self.client.post("/api/equipment", json={"name": "Bed", "dailyRate": 0}, headers=self.seller)
        self.assertEqual(response.status_code, 422)

    def test_image_upload_and_delete(self):
        listing = self.create_listing(self.seller)
        url = f"/api/equipment/{listing['equipmentID']}/images"
        rejected = self.client.post(url, files={"file": ("notes.txt", b"hello", "text/plain")}, headers=self.seller)
        self.assertEqual(rejected.status_code, 400)

        uploaded = self.client.post(url, files={"file": ("front.png", b"\x89PNG fake", "image/png")}, headers=self.seller)
        self.assertEqual(uploaded.status_code, 200, uploaded.text)
        path = uploaded.json()["path"]
        self.assertTrue(path.startswith(f"/uploads/equipment/{listing['equipmentID']}/"))
        stored = Path(app_module.UPLOADS_DIR) / path[len("/uploads/"):]
        self.assertTrue(stored.is_file())
        self.assertEqual(self.client.get(path).content, b"\x89PNG fake")

        removed = self.client.delete(url, params={"path": path}, headers=self.seller)
        self.assertEqual(removed.json(), {"images": [], "blobRemoved": True})
        self.assertFalse(stored.exists())

    def test_dashboard_and_map(self):
        listing = self.create_listing(self.seller)
        self.create_listing(self.seller, name="No GPS", latitude=None, longitude=None)
        rental_id = self.request_rental(self.buyer, listing["equipmentID"]).json()["rentalID"]

        stats = self.client.get("/api/dashboard", headers=self.seller).json()
        self.assertEqual(stats["totalEquipment"], 2)
        self.assertEqual(stats["pendingRequests"], 1)

        markers = self.client.get("/api/map/markers", headers=self.buyer).json()
        self.assertEqual([m["type"] for m in markers["markers"]], ["equipment"])
        self.assertEqual({entry["key"] for entry in markers["legend"]}, {"equipment", "rental-active", "rental-approved"})

        self.client.post(f"/api/rentals/{rental_id}/approve", headers=self.seller)
        markers = self.client.get("/api/map/markers", headers=self.buyer).json()["markers"]
        rental_markers = [m for m in markers if m["type"] == "rental"]
        self.assertEqual(len(rental_markers), 1)
        self.assertEqual(rental_markers[0]["legendKey"], "rental-approved")

    def test_profile_update(self):
        response = self.client.put(
            "/api/profile",
            json={"hospitalName": "General Hospital", "city": "Utrecht", "role": "seller"},
            headers=self.seller,
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["role"], "seller")
        self.assertEqual(self.client.get("/api/profile", headers=self.seller).json()["city"], "Utrecht")


class LogLevelTests(unittest.TestCase):
    def test_unknown_level_name_falls_back_to_info(self):
        self.assertEqual(app_module._log_level("verbose"), logging.INFO)
        self.assertEqual(app_module._log_level(None), logging.INFO)
        self.assertEqual(app_module._log_level(" debug "), logging.DEBUG)


if __name__ == "__main__":
    unittest.main()
