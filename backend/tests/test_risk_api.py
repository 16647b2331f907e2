from datetime import datetime, timedelta, timezone

import pytest


def _iso_days_ago(days):
    return (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()


@pytest.fixture
def ward(make_ward):
    return make_ward()


@pytest.fixture
def post_risk(client, admin_headers, ward):
    def _post_risk(**body):
        body.setdefault("ward_id", ward["id"])
        response = client.post("/api/risk", json=body, headers=admin_headers)
        assert response.status_code == 201, response.text
        return response.json()["riskIndex"]
    return _post_risk


COMPONENTS = {
    "exposure_components": {"population_density": {"contribution": 10, "value": 12000, "unit": "people/km2"}},
    "susceptibility_components": {"rainfall_intensity": {"contribution": 10}},
    "resilience_components": {"drainage_systems": {"contribution": 10}},
}


class TestRiskCreate:
    def test_pillars_scored_from_components(self, post_risk):
        record = post_risk(date="2026-01-01T00:00:00Z", **COMPONENTS)

        # default weights 0.3 / 0.4 / 0.3
        assert record["exposure"] == pytest.approx(3.0)
        assert record["susceptibility"] == pytest.approx(4.0)
        assert record["resilience"] == pytest.approx(3.0)
        assert record["risk_index"] == pytest.approx(2.2)
        assert record["risk_category"] == "Low"
        assert record["risk_color"] == "#90EE90"
        assert record["exposure_components"]["population_density"] == {
            "weight": 0.3, "contribution": 10.0, "value": 12000, "unit": "people/km2",
        }
        assert record["date"] == "2026-01-01T00:00:00"

    def test_explicit_pillars(self, post_risk):
        record = post_risk(date="2026-01-01", exposure=9, susceptibility=9, resilience=1)
        assert record["risk_index"] == pytest.approx(7.0)
        assert record["risk_category"] == "High"

    def test_category_is_never_taken_from_body(self, post_risk):
        record = post_risk(date="2026-01-01", exposure=9, susceptibility=9, resilience=1,
                           risk_index=1, risk_category="Very Low")
        assert record["risk_category"] == "High"

    def test_duplicate_ward_and_date(self, client, admin_headers, post_risk, ward):
        post_risk(date="2026-01-01")
        response = client.post("/api/risk", json={"ward_id": ward["id"], "date": "2026-01-01"},
                               headers=admin_headers)
        assert response.status_code == 400

    def test_invalid_ward(self, client, admin_headers):
        response = client.post("/api/risk", json={"ward_id": 42, "date": "2026-01-01"}, headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid ward ID"

    def test_contribution_out_of_range(self, client, admin_headers, ward):
        body = {"ward_id": ward["id"], "date": "2026-01-01",
                "exposure_components": {"elevation": {"contribution": 11}}}
        assert client.post("/api/risk", json=body, headers=admin_headers).status_code == 400


class TestRiskUpdate:
    def test_update_pillar_rederives_composite(self, client, admin_headers, post_risk):
        record = post_risk(date="2026-01-01", exposure=9, susceptibility=9, resilience=1)
        body = client.put(f"/api/risk/{record['id']}", json={"resilience": 10}, headers=admin_headers).json()

        assert body["message"] == "Risk index data updated successfully"
        assert body["riskIndex"]["risk_index"] == pytest.approx(5.2)
        assert body["riskIndex"]["risk_category"] == "Medium"

    def test_recalculate_from_components(self, client, admin_headers, post_risk):
        record = post_risk(date="2026-01-01", exposure=9, susceptibility=9, resilience=1, **COMPONENTS)
        assert record["risk_category"] == "High"

        body = client.post(f"/api/risk/{record['id']}/recalculate", headers=admin_headers).json()
        assert body["message"] == "Risk index recalculated successfully"
        assert body["riskData"]["risk_index"] == pytest.approx(2.2)
        assert body["riskData"]["risk_category"] == "Low"

    def test_delete(self, client, admin_headers, post_risk):
        record = post_risk(date="2026-01-01")
        assert client.delete(f"/api/risk/{record['id']}", headers=admin_headers).status_code == 200

        response = client.get(f"/api/risk/{record['id']}")
        assert response.status_code == 404
        assert response.json()["error"] == "Risk index data not found"


class TestRiskQueries:
    def test_list_filters(self, client, post_risk):
        post_risk(date="2026-01-01", exposure=9, susceptibility=9, resilience=1)
        post_risk(date="2026-01-02")

        body = client.get("/api/risk").json()
        assert [r["date"] for r in body["riskData"]] == ["2026-01-02T00:00:00", "2026-01-01T00:00:00"]
        assert body["pagination"]["limit"] == 20

        body = client.get("/api/risk", params={"risk_category": "High"}).json()
        assert len(body["riskData"]) == 1

        body = client.get("/api/risk", params={"date_from": "2026-01-02T00:00:00"}).json()
        assert len(body["riskData"]) == 1

    def test_list_limit_is_capped(self, client):
        assert client.get("/api/risk", params={"limit": 101}).status_code == 400

    def test_history_returns_latest_ascending(self, client, post_risk, ward):
        for day in (1, 2, 3):
            post_risk(date=f"2026-01-0{day}")

        body = client.get(f"/api/risk/ward/{ward['id']}", params={"limit": 2}).json()
        assert body["ward"]["ward_name"] == "Phuc Xa"
        assert [r["date"] for r in body["riskHistory"]] == ["2026-01-02T00:00:00", "2026-01-03T00:00:00"]
        assert body["count"] == 2

    def test_history_unknown_ward(self, client):
        assert client.get("/api/risk/ward/999").status_code == 404

    def test_trend(self, client, post_risk, ward):
        post_risk(date=_iso_days_ago(1), exposure=9, susceptibility=9, resilience=1)
        post_risk(date=_iso_days_ago(2), exposure=5, susceptibility=5, resilience=0)
        post_risk(date=_iso_days_ago(60), exposure=10, susceptibility=10, resilience=0)

        body = client.get(f"/api/risk/trend/{ward['id']}", params={"days": 30}).json()
        trend = body["trendAnalysis"]
        assert trend["count"] == 2
        assert trend["avg_risk"] == pytest.approx(5.5)
        assert trend["max_risk"] == pytest.approx(7.0)
        assert trend["min_risk"] == pytest.approx(4.0)
        assert trend["data"][0]["risk_index"] == pytest.approx(4.0)
        assert trend["data"][1]["exposure"] == 9
        assert trend["data"][1]["susceptibility"] == 9
        assert trend["data"][1]["resilience"] == 1
        assert body["period"] == {"days": 30}

    def test_trend_empty_window(self, client, ward):
        trend = client.get(f"/api/risk/trend/{ward['id']}").json()["trendAnalysis"]
        assert trend == {"avg_risk": 0, "max_risk": 0, "min_risk": 0, "count": 0, "data": []}

    def test_current_levels(self, client, make_ward, post_risk):
        other = make_ward(ward_name="Truc Bach")
        post_risk(date="2026-01-01", exposure=9, susceptibility=9, resilience=1)
        post_risk(date="2026-01-02", exposure=5, susceptibility=5, resilience=0)
        post_risk(ward_id=other["id"], date="2026-01-01", exposure=10, susceptibility=10, resilience=0)

        body = client.get("/api/risk/current").json()
        assert body["count"] == 2
        assert [(r["ward_name"], r["date"]) for r in body["currentRiskLevels"]] == [
            ("Truc Bach", "2026-01-01T00:00:00"),
            ("Phuc Xa", "2026-01-02T00:00:00"),
        ]


class TestRiskBulkImport:
    def test_bulk_import(self, client, admin_headers, ward):
        items = [
            {"ward_name": "Phuc Xa", "date": "2026-02-01", "exposure": 9, "susceptibility": 9, "resilience": 1},
            {"ward_id": ward["id"], "date": "2026-02-01"},
            {"ward_name": "Nowhere", "date": "2026-02-01"},
            {"ward_id": ward["id"], "date": "not a date"},
        ]
        body = client.post("/api/risk/bulk-import", json={"riskData": items}, headers=admin_headers).json()

        assert body["message"] == "Bulk import completed. 1 successful, 2 failed, 1 duplicates"
        assert body["results"]["successful"][0]["risk_index"] == pytest.approx(7.0)
        assert body["results"]["failed"][0] == {"ward": "Nowhere", "error": "Ward not found"}
