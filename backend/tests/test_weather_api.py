from datetime import datetime, timedelta, timezone

import pytest


def _day(days_ago):
    return (datetime.now(timezone.utc) - timedelta(days=days_ago)).replace(microsecond=0).isoformat()


@pytest.fixture
def ward(make_ward):
    return make_ward()


@pytest.fixture
def post_weather(client, admin_headers, ward):
    def _post_weather(**body):
        body.setdefault("ward_id", ward["id"])
        body.setdefault("humidity", 80)
        response = client.post("/api/weather", json=body, headers=admin_headers)
        assert response.status_code == 201, response.text
        return response.json()["weather"]
    return _post_weather


class TestWeatherCrud:
    def test_create_nests_temperature_and_condition(self, post_weather):
        weather = post_weather(date="2026-07-01T00:00:00", rainfall=45.5, wind_direction=200,
                               temperature={"current": 31, "min": 26, "max": 34},
                               weather_condition={"main": "Rain", "description": "heavy rain"})

        assert weather["temperature"] == {"current": 31, "min": 26, "max": 34, "feels_like": None}
        assert weather["weather_condition"]["main"] == "Rain"
        assert weather["wind_direction_cardinal"] == "SSW"
        assert weather["ward"]["ward_name"] == "Phuc Xa"

    def test_humidity_required(self, client, admin_headers, ward):
        response = client.post("/api/weather", json={"ward_id": ward["id"], "date": "2026-07-01"},
                               headers=admin_headers)
        assert response.status_code == 400
        assert any(d.startswith("humidity") for d in response.json()["details"])

    def test_duplicate_date(self, client, admin_headers, post_weather, ward):
        post_weather(date="2026-07-01")
        response = client.post("/api/weather", json={"ward_id": ward["id"], "date": "2026-07-01", "humidity": 70},
                               headers=admin_headers)
        assert response.status_code == 400
        assert response.json()["error"] == "Weather data for this ward and date already exists"

    def test_update_keeps_other_temperature_values(self, client, admin_headers, post_weather):
        weather = post_weather(date="2026-07-01", temperature={"current": 31, "min": 26})
        body = client.put(f"/api/weather/{weather['id']}", json={"temperature": {"max": 35}},
                          headers=admin_headers).json()

        assert body["weather"]["temperature"]["max"] == 35
        assert body["weather"]["temperature"]["current"] == 31

    def test_delete(self, client, admin_headers, post_weather):
        weather = post_weather(date="2026-07-01")
        assert client.delete(f"/api/weather/{weather['id']}", headers=admin_headers).status_code == 200
        assert client.get(f"/api/weather/{weather['id']}").status_code == 404


class TestWardStaleness:
    def _ward(self, client, ward_id):
        return client.get(f"/api/wards/{ward_id}").json()["ward"]

    def test_new_weather_marks_ward_stale(self, client, post_weather, ward):
        assert self._ward(client, ward["id"])["risk_stale"] is False
        post_weather(date="2026-07-01")
        assert self._ward(client, ward["id"])["risk_stale"] is True

        stale = client.get("/api/wards", params={"risk_stale": True}).json()["wards"]
        assert [w["id"] for w in stale] == [ward["id"]]

    def test_recalculation_clears_flag(self, client, admin_headers, post_weather, ward):
        post_weather(date="2026-07-01")
        client.post(f"/api/wards/{ward['id']}/calculate-risk", headers=admin_headers)
        assert self._ward(client, ward["id"])["risk_stale"] is False

    def test_moving_record_marks_both_wards(self, client, admin_headers, make_ward, post_weather, ward):
        other = make_ward(ward_name="Truc Bach")
        weather = post_weather(date="2026-07-01")
        client.post(f"/api/wards/{ward['id']}/calculate-risk", headers=admin_headers)

        client.put(f"/api/weather/{weather['id']}", json={"ward_id": other["id"]}, headers=admin_headers)
        assert self._ward(client, ward["id"])["risk_stale"] is True
        assert self._ward(client, other["id"])["risk_stale"] is True


class TestWeatherQueries:
    def test_stats(self, client, post_weather, ward):
        post_weather(date=_day(1), rainfall=20, humidity=90, temperature={"current": 30, "min": 25, "max": 33})
        post_weather(date=_day(2), rainfall=0, humidity=70, temperature={"current": 32, "min": 27, "max": 36})
        post_weather(date=_day(3), rainfall=40, humidity=80)
        post_weather(date=_day(90), rainfall=500)

        body = client.get(f"/api/weather/stats/{ward['id']}", params={"days": 30}).json()
        stats = body["statistics"]
        assert stats["count"] == 3
        assert stats["total_rainfall"] == pytest.approx(60)
        assert stats["avg_rainfall"] == pytest.approx(20)
        assert stats["max_rainfall"] == pytest.approx(40)
        assert stats["rainy_days"] == 2
        assert stats["avg_humidity"] == pytest.approx(80)
        assert stats["avg_temperature"] == pytest.approx(31)
        assert stats["max_temperature"] == pytest.approx(36)
        assert stats["min_temperature"] == pytest.approx(25)

    def test_stats_empty(self, client, ward):
        stats = client.get(f"/api/weather/stats/{ward['id']}").json()["statistics"]
        assert stats["count"] == 0
        assert stats["total_rainfall"] == 0

    def test_latest_per_ward(self, client, make_ward, post_weather):
        other = make_ward(ward_name="Truc Bach")
        post_weather(date="2026-07-01", rainfall=1)
        post_weather(date="2026-07-02", rainfall=2)
        post_weather(ward_id=other["id"], date="2026-06-30", rainfall=3)

        body = client.get("/api/weather/latest").json()
        assert body["count"] == 2
        assert sorted(w["rainfall"] for w in body["latestWeather"]) == [2, 3]

    def test_by_ward_and_list_filters(self, client, post_weather, ward):
        post_weather(date="2026-07-01")
        post_weather(date="2026-07-02", is_forecast=True)

        body = client.get(f"/api/weather/ward/{ward['id']}").json()
        assert body["pagination"]["total"] == 2
        assert body["weatherData"][0]["date"] == "2026-07-02T00:00:00"

        body = client.get("/api/weather", params={"is_forecast": False}).json()
        assert len(body["weatherData"]) == 1

        assert client.get("/api/weather/ward/999").status_code == 404

    def test_bulk_import(self, client, admin_headers, ward):
        items = [
            {"ward_id": ward["id"], "date": "2026-07-01", "humidity": 80, "rainfall": 10},
            {"ward_id": ward["id"], "date": "2026-07-01", "humidity": 82},
            {"ward_id": 999, "date": "2026-07-01", "humidity": 82},
            {"ward_id": ward["id"], "date": "2026-07-02"},
        ]
        body = client.post("/api/weather/bulk-import", json={"weatherData": items}, headers=admin_headers).json()

        assert body["message"] == "Bulk import completed. 1 successful, 2 failed, 1 duplicates"
        assert client.get(f"/api/wards/{ward['id']}").json()["ward"]["risk_stale"] is True
