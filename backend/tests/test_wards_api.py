import pytest


class TestWardAccess:
    def test_create_requires_token(self, client, ward_payload):
        response = client.post("/api/wards", json=ward_payload())
        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "Access denied. No token provided."}

    def test_create_requires_admin(self, client, ward_payload, user_headers):
        response = client.post("/api/wards", json=ward_payload(), headers=user_headers)
        assert response.status_code == 403
        assert response.json()["error"] == "Role 'user' is not authorized to access this resource"

    def test_bad_token(self, client, ward_payload):
        response = client.post("/api/wards", json=ward_payload(), headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401
        assert response.json()["error"] == "Token is not valid."


class TestWardCreate:
    def test_scores_computed_on_create(self, make_ward):
        ward = make_ward()

        assert ward["exposure"] == pytest.approx(7.5)
        assert ward["susceptibility"] == pytest.approx(8)
        assert ward["resilience"] == pytest.approx(0)
        assert ward["flood_risk"] == pytest.approx(6.2)
        assert ward["risk_level"] == "High"
        assert ward["risk_level_formatted"] == "Cao"
        assert ward["risk_stale"] is False
        assert ward["area_km2"] == pytest.approx(4.6, rel=0.05)

    def test_missing_inputs_leave_default_scores(self, make_ward):
        ward = make_ward(rainfall=None, drainage_capacity=None)

        assert ward["flood_risk"] == 0
        assert ward["risk_level"] == "Very Low"

    def test_client_cannot_set_derived_fields(self, make_ward):
        ward = make_ward(flood_risk=9.9, risk_level="Very High")
        assert ward["flood_risk"] == pytest.approx(6.2)
        assert ward["risk_level"] == "High"

    def test_duplicate_name(self, client, make_ward, ward_payload, admin_headers):
        make_ward()
        response = client.post("/api/wards", json=ward_payload(), headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "Ward with this name already exists"

    def test_validation_envelope(self, client, ward_payload, admin_headers):
        response = client.post("/api/wards", json=ward_payload(urban_land=150), headers=admin_headers)

        body = response.json()
        assert response.status_code == 400
        assert body["success"] is False
        assert body["error"] == "Validation failed"
        assert any("urban_land" in d for d in body["details"])

    def test_invalid_geometry(self, client, ward_payload, admin_headers):
        geometry = {"type": "Polygon", "coordinates": [[[0, 0], [1, 1], [1, 0], [0, 1], [0, 0]]]}
        response = client.post("/api/wards", json=ward_payload(geometry=geometry), headers=admin_headers)
        assert response.status_code == 400


class TestWardRead:
    def test_list_and_filter(self, client, make_ward):
        make_ward()
        make_ward(ward_name="Truc Bach", rainfall=0, population_density=100, urban_land=10,
                  drainage_capacity=10, low_elevation=1)

        body = client.get("/api/wards").json()
        assert body["pagination"] == {"page": 1, "limit": 10, "total": 2, "pages": 1}
        assert [w["ward_name"] for w in body["wards"]] == ["Phuc Xa", "Truc Bach"]

        body = client.get("/api/wards", params={"risk_level": "High"}).json()
        assert [w["ward_name"] for w in body["wards"]] == ["Phuc Xa"]

        body = client.get("/api/wards", params={"sort": "ward_name", "order": "desc"}).json()
        assert body["wards"][0]["ward_name"] == "Truc Bach"

    def test_list_rejects_unknown_risk_level(self, client):
        assert client.get("/api/wards", params={"risk_level": "Extreme"}).status_code == 400

    def test_get_by_id_and_name(self, client, make_ward):
        ward = make_ward()

        assert client.get(f"/api/wards/{ward['id']}").json()["ward"]["ward_name"] == "Phuc Xa"
        assert client.get("/api/wards/name/Phuc Xa").json()["ward"]["id"] == ward["id"]

        response = client.get("/api/wards/999")
        assert response.status_code == 404
        assert response.json() == {"success": False, "error": "Ward not found"}

    def test_by_risk_level(self, client, make_ward):
        make_ward()
        body = client.get("/api/wards/risk/High").json()
        assert body["count"] == 1

        response = client.get("/api/wards/risk/Extreme")
        assert response.status_code == 400
        assert response.json()["error"].startswith("Invalid risk level")

    def test_stats(self, client, make_ward):
        make_ward()
        make_ward(ward_name="Truc Bach", rainfall=None)

        body = client.get("/api/wards/stats").json()
        assert body["statistics"]["total_wards"] == 2
        assert body["statistics"]["max_risk"] == pytest.approx(6.2)
        assert body["statistics"]["total_population"] == 42000
        assert {d["label"]: d["count"] for d in body["riskDistribution"]} == {"High": 1, "Very Low": 1}
        assert all(d["percentage"] == 50.0 for d in body["riskDistribution"])

    def test_stats_empty(self, client):
        body = client.get("/api/wards/stats").json()
        assert body["statistics"]["total_wards"] == 0
        assert body["riskDistribution"] == []

    def test_nearby(self, client, make_ward):
        make_ward()

        body = client.get("/api/wards/nearby", params={"lat": 21.01, "lng": 105.81, "radius_km": 1}).json()
        assert body["count"] == 1
        assert body["wards"][0]["distance_km"] == pytest.approx(0, abs=0.01)

        body = client.get("/api/wards/nearby", params={"lat": 10.8, "lng": 106.7}).json()
        assert body["count"] == 0


class TestWardUpdate:
    def test_update_inputs_recalculates(self, client, make_ward, admin_headers):
        ward = make_ward()
        response = client.put(f"/api/wards/{ward['id']}", json={"drainage_capacity": 10}, headers=admin_headers)

        body = response.json()
        assert response.status_code == 200
        assert body["message"] == "Ward updated successfully with risk recalculation"
        # exposure 7.5, susceptibility 3, resilience 3
        assert body["ward"]["flood_risk"] == pytest.approx(3.6)
        assert body["ward"]["risk_level"] == "Low"

    def test_update_metadata_keeps_scores(self, client, make_ward, admin_headers):
        ward = make_ward()
        body = client.put(f"/api/wards/{ward['id']}", json={"district": "Tay Ho"}, headers=admin_headers).json()

        assert body["message"] == "Ward updated successfully"
        assert body["ward"]["district"] == "Tay Ho"
        assert body["ward"]["flood_risk"] == pytest.approx(6.2)

    def test_clearing_an_input_resets_scores(self, client, make_ward, admin_headers):
        ward = make_ward()
        body = client.put(f"/api/wards/{ward['id']}", json={"rainfall": None}, headers=admin_headers).json()

        assert body["message"] == "Ward updated successfully"
        assert body["ward"]["rainfall"] is None
        assert body["ward"]["flood_risk"] == 0
        assert body["ward"]["risk_level"] == "Very Low"
        assert body["ward"]["exposure"] == 0

        listed = client.get("/api/wards", params={"risk_level": "High"}).json()
        assert listed["pagination"]["total"] == 0

    def test_rename_to_existing_name(self, client, make_ward, admin_headers):
        make_ward()
        other = make_ward(ward_name="Truc Bach")
        response = client.put(f"/api/wards/{other['id']}", json={"ward_name": "Phuc Xa"}, headers=admin_headers)
        assert response.status_code == 400

    def test_calculate_risk_requires_all_inputs(self, client, make_ward, admin_headers):
        ward = make_ward(rainfall=None)
        response = client.post(f"/api/wards/{ward['id']}/calculate-risk", headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "Ward must have all risk parameters to calculate flood risk"

    def test_calculate_risk(self, client, make_ward, admin_headers):
        ward = make_ward()
        body = client.post(f"/api/wards/{ward['id']}/calculate-risk", headers=admin_headers).json()

        assert body["message"] == "Flood risk calculated successfully"
        assert body["ward"]["flood_risk"] == pytest.approx(6.2)

    def test_soft_delete(self, client, make_ward, admin_headers):
        ward = make_ward()
        response = client.delete(f"/api/wards/{ward['id']}", headers=admin_headers)

        assert response.json() == {"success": True, "message": "Ward deleted successfully"}
        assert client.get("/api/wards").json()["pagination"]["total"] == 0
        assert client.get(f"/api/wards/{ward['id']}").json()["ward"]["is_active"] is False


class TestWardBulkImport:
    def test_bulk_import(self, client, make_ward, ward_payload, admin_headers):
        make_ward()
        wards = [
            ward_payload(ward_name="Truc Bach"),
            ward_payload(),
            {"ward_name": "No Geometry"},
        ]
        body = client.post("/api/wards/bulk-import", json={"wards": wards}, headers=admin_headers).json()

        assert body["message"] == "Bulk import completed. 1 successful, 1 failed, 1 duplicates"
        assert body["results"]["successful"][0]["ward_name"] == "Truc Bach"
        assert body["results"]["duplicates"][0]["ward_name"] == "Phuc Xa"
        assert body["results"]["failed"][0]["ward_name"] == "No Geometry"

    def test_bulk_import_requires_items(self, client, admin_headers):
        response = client.post("/api/wards/bulk-import", json={"wards": []}, headers=admin_headers)
        assert response.status_code == 400
