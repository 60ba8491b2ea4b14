"""
Start list API tests (generation, publishing and editing over HTTP).
"""

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from startlist.models.club import Club
from startlist.models.member import Member
from startlist.models.result_entry import ResultEntry


@pytest.fixture
def competition_setup(client: TestClient):
    """A competition with 7 registrations: 2 in A, 3 in B, 2 in C"""
    resp = client.post("/api/competitions", json={"name": "Spring Precision", "location": "Skogens skjutbana"})
    assert resp.status_code == 201
    competition_id = resp.json()["id"]

    registrations = [
        (1, "A", "Anna Berg"),
        (2, "A", "Bo Ek"),
        (3, "B", "Cia Lund"),
        (4, "B", "David Holm"),
        (5, "B", "Eva Ström"),
        (6, "C", "Filip Nord"),
        (7, "C", "Greta Sand"),
    ]
    for member_id, weapon_class, name in registrations:
        resp = client.post(
            f"/api/competitions/{competition_id}/registrations",
            json={"member_id": member_id, "weapon_class": weapon_class, "member_name": name, "club_name": "Skogens SKF"},
        )
        assert resp.status_code == 201

    return {"competition_id": competition_id}


def _generate(client: TestClient, competition_id: int, **overrides) -> dict:
    body = {"team_format": "Mixed", "max_shooters_per_team": 3, "start_interval": 60, "first_start_time": "09:00"}
    body.update(overrides)
    resp = client.post(f"/api/competitions/{competition_id}/start-lists", json=body)
    assert resp.status_code == 201, resp.text
    return resp.json()


def _configuration(client: TestClient, start_list_id: int) -> dict:
    resp = client.get(f"/api/start-lists/{start_list_id}")
    assert resp.status_code == 200
    return resp.json()["configuration"]


# ============================================================================
# Competitions / registrations
# ============================================================================


def test_duplicate_registration_is_conflict(client: TestClient, competition_setup):
    competition_id = competition_setup["competition_id"]

    resp = client.post(
        f"/api/competitions/{competition_id}/registrations",
        json={"member_id": 1, "weapon_class": "a"},
    )

    assert resp.status_code == 409


def test_list_registrations(client: TestClient, competition_setup):
    resp = client.get(f"/api/competitions/{competition_setup['competition_id']}/registrations")

    assert resp.status_code == 200
    assert len(resp.json()) == 7


def test_health(client: TestClient):
    resp = client.get("/api/health")

    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


# ============================================================================
# Generation / listing / publishing
# ============================================================================


def test_generate_mixed(client: TestClient, competition_setup):
    body = _generate(client, competition_setup["competition_id"])

    assert body["success"] is True
    summary = body["summary"]
    assert summary["team_count"] == 3
    assert summary["total_shooters"] == 7
    assert [t["shooter_count"] for t in summary["teams"]] == [3, 3, 1]
    assert [t["start_time"] for t in summary["teams"]] == ["09:00", "10:00", "11:00"]
    assert summary["last_end_time"] == "12:00"


def test_generate_separated_by_class(client: TestClient, competition_setup):
    body = _generate(
        client,
        competition_setup["competition_id"],
        team_format="SeparatedByClass",
        max_shooters_per_team=2,
        class_start_order="A,B",
    )

    classes = [t["weapon_classes"] for t in body["summary"]["teams"]]
    assert classes == [["A"], ["B"], ["B"], ["C"]]


def test_generate_without_registrations(client: TestClient):
    competition_id = client.post("/api/competitions", json={"name": "Empty"}).json()["id"]

    resp = client.post(f"/api/competitions/{competition_id}/start-lists", json={})

    assert resp.status_code == 400
    assert "No registrations" in resp.json()["detail"]


def test_generate_missing_competition(client: TestClient):
    resp = client.post("/api/competitions/999/start-lists", json={})

    assert resp.status_code == 404


def test_generate_invalid_settings(client: TestClient, competition_setup):
    resp = client.post(
        f"/api/competitions/{competition_setup['competition_id']}/start-lists",
        json={"max_shooters_per_team": 0},
    )

    assert resp.status_code == 400


def test_list_and_current_start_lists(client: TestClient, competition_setup):
    competition_id = competition_setup["competition_id"]
    first = _generate(client, competition_id)["start_list_id"]
    second = _generate(client, competition_id, max_shooters_per_team=10)["start_list_id"]

    listing = client.get(f"/api/competitions/{competition_id}/start-lists").json()
    assert [item["id"] for item in listing] == [second, first]
    assert all(item["status"] == "draft" for item in listing)
    assert listing[0]["team_count"] == 1

    current = client.get(f"/api/competitions/{competition_id}/start-lists/current").json()
    assert current["start_list_id"] == second
    assert current["is_official"] is False


def test_current_without_start_lists(client: TestClient, competition_setup):
    resp = client.get(f"/api/competitions/{competition_setup['competition_id']}/start-lists/current")

    assert resp.status_code == 404


def test_publish_switches_official_list(client: TestClient, competition_setup):
    competition_id = competition_setup["competition_id"]
    first = _generate(client, competition_id)["start_list_id"]
    second = _generate(client, competition_id)["start_list_id"]

    resp = client.patch(f"/api/competitions/{competition_id}/start-lists/{first}/official", json={"is_official": True})
    assert resp.status_code == 200
    assert resp.json()["is_official"] is True

    client.patch(f"/api/competitions/{competition_id}/start-lists/{second}/official", json={"is_official": True})

    listing = client.get(f"/api/competitions/{competition_id}/start-lists").json()
    official = [item["id"] for item in listing if item["is_official"]]
    assert official == [second]

    current = client.get(f"/api/competitions/{competition_id}/start-lists/current").json()
    assert current["start_list_id"] == second

    resp = client.patch(f"/api/competitions/{competition_id}/start-lists/{second}/official", json={"is_official": False})
    assert resp.json()["is_official"] is False


def test_publish_list_of_other_competition(client: TestClient, competition_setup):
    start_list_id = _generate(client, competition_setup["competition_id"])["start_list_id"]
    other_id = client.post("/api/competitions", json={"name": "Other"}).json()["id"]

    resp = client.patch(f"/api/competitions/{other_id}/start-lists/{start_list_id}/official", json={"is_official": True})

    assert resp.status_code == 404


def test_delete_start_list(client: TestClient, competition_setup):
    start_list_id = _generate(client, competition_setup["competition_id"])["start_list_id"]

    resp = client.delete(f"/api/start-lists/{start_list_id}")
    assert resp.status_code == 204

    assert client.get(f"/api/start-lists/{start_list_id}").status_code == 404


def test_invalid_start_list_id(client: TestClient):
    assert client.get("/api/start-lists/0").status_code == 400
    assert client.get("/api/start-lists/42").status_code == 404


# ============================================================================
# Shooter edits
# ============================================================================


def test_add_shooter_resolves_registration_identity(client: TestClient, competition_setup):
    competition_id = competition_setup["competition_id"]
    start_list_id = _generate(client, competition_id)["start_list_id"]
    client.post(
        f"/api/competitions/{competition_id}/registrations",
        json={"member_id": 50, "weapon_class": "R", "member_name": "Nils Late", "club_name": "Norra PK"},
    )

    available = client.get(f"/api/start-lists/{start_list_id}/available-shooters", params={"query": "nil"}).json()
    assert [s["member_id"] for s in available] == [50]

    resp = client.post(
        f"/api/start-lists/{start_list_id}/shooters",
        json={"team_number": 3, "member_id": 50, "weapon_class": "R"},
    )
    assert resp.status_code == 201
    body = resp.json()
    assert body["shooter"]["name"] == "Nils Late"
    assert body["shooter"]["club"] == "Norra PK"
    assert body["shooter"]["position"] == 2

    team = _configuration(client, start_list_id)["teams"][2]
    assert team["shooter_count"] == 2
    assert "R" in team["weapon_classes"]

    available = client.get(f"/api/start-lists/{start_list_id}/available-shooters", params={"query": "nil"}).json()
    assert available == []


def test_add_unregistered_shooter_uses_member_directory(client: TestClient, session: Session, competition_setup):
    start_list_id = _generate(client, competition_setup["competition_id"])["start_list_id"]
    club = Club(name="Västra SKF")
    session.add(club)
    session.commit()
    session.add(Member(id=60, first_name="Olle", last_name="Vik", primary_club_id=club.id))
    session.commit()

    body = client.post(
        f"/api/start-lists/{start_list_id}/shooters",
        json={"team_number": 1, "member_id": 60, "weapon_class": "C"},
    ).json()

    assert body["shooter"]["name"] == "Olle Vik"
    assert body["shooter"]["club"] == "Västra SKF"


def test_add_duplicate_shooter_is_conflict(client: TestClient, competition_setup):
    start_list_id = _generate(client, competition_setup["competition_id"])["start_list_id"]
    before = _configuration(client, start_list_id)

    resp = client.post(
        f"/api/start-lists/{start_list_id}/shooters",
        json={"team_number": 1, "member_id": 7, "weapon_class": "C"},
    )

    assert resp.status_code == 409
    assert _configuration(client, start_list_id) == before


def test_available_shooters_requires_two_characters(client: TestClient, competition_setup):
    start_list_id = _generate(client, competition_setup["competition_id"])["start_list_id"]

    resp = client.get(f"/api/start-lists/{start_list_id}/available-shooters", params={"query": "a"})

    assert resp.status_code == 200
    assert resp.json() == []


def test_remove_shooter(client: TestClient, competition_setup):
    start_list_id = _generate(client, competition_setup["competition_id"])["start_list_id"]
    team = _configuration(client, start_list_id)["teams"][0]
    middle = team["shooters"][1]["member_id"]

    resp = client.delete(f"/api/start-lists/{start_list_id}/shooters/{middle}")

    assert resp.status_code == 200
    team = resp.json()["configuration"]["teams"][0]
    assert [s["position"] for s in team["shooters"]] == [1, 2]
    assert team["shooter_count"] == 2


def test_remove_shooter_with_results(client: TestClient, session: Session, competition_setup):
    competition_id = competition_setup["competition_id"]
    start_list_id = _generate(client, competition_id)["start_list_id"]
    session.add(ResultEntry(competition_id=competition_id, member_id=1, series_number=1, total=48))
    session.commit()

    resp = client.delete(f"/api/start-lists/{start_list_id}/shooters/1")

    assert resp.status_code == 409
    assert "results" in resp.json()["detail"]


def test_move_and_bulk_move(client: TestClient, competition_setup):
    start_list_id = _generate(client, competition_setup["competition_id"])["start_list_id"]

    resp = client.post(f"/api/start-lists/{start_list_id}/shooters/1/move", json={"target_team_number": 3})
    assert resp.status_code == 200
    assert resp.json()["shooter"]["position"] == 2

    resp = client.post(f"/api/start-lists/{start_list_id}/shooters/1/move", json={"target_team_number": 3})
    assert resp.status_code == 409

    resp = client.post(
        f"/api/start-lists/{start_list_id}/shooters/bulk-move",
        json={"member_ids": [2, 3, 999], "target_team_number": 3},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["moved_count"] == 2
    assert body["configuration"]["teams"][2]["shooter_count"] == 4

    resp = client.post(
        f"/api/start-lists/{start_list_id}/shooters/bulk-move",
        json={"member_ids": [], "target_team_number": 3},
    )
    assert resp.status_code == 400


def test_update_weapon_class(client: TestClient, competition_setup):
    start_list_id = _generate(client, competition_setup["competition_id"])["start_list_id"]

    resp = client.patch(f"/api/start-lists/{start_list_id}/shooters/1", json={"weapon_class": "M"})

    assert resp.status_code == 200
    assert resp.json()["shooter"]["weapon_class"] == "M"
    team = resp.json()["configuration"]["teams"][0]
    assert "M" in team["weapon_classes"]


# ============================================================================
# Team edits / whole configuration
# ============================================================================


def test_team_lifecycle(client: TestClient, competition_setup):
    start_list_id = _generate(client, competition_setup["competition_id"])["start_list_id"]

    resp = client.delete(f"/api/start-lists/{start_list_id}/teams/1")
    assert resp.status_code == 409

    resp = client.post(f"/api/start-lists/{start_list_id}/teams", json={"start_time": "12:00", "end_time": "13:00"})
    assert resp.status_code == 201
    assert resp.json()["team"]["team_number"] == 4

    resp = client.patch(
        f"/api/start-lists/{start_list_id}/teams/4", json={"start_time": "12:30", "end_time": "13:30"}
    )
    assert resp.status_code == 200
    assert resp.json()["team"]["start_time"] == "12:30"

    resp = client.patch(f"/api/start-lists/{start_list_id}/teams/4", json={"start_time": "noon", "end_time": "13:30"})
    assert resp.status_code == 400

    resp = client.delete(f"/api/start-lists/{start_list_id}/teams/4")
    assert resp.status_code == 200
    assert len(resp.json()["configuration"]["teams"]) == 3


def test_replace_configuration(client: TestClient, competition_setup):
    start_list_id = _generate(client, competition_setup["competition_id"])["start_list_id"]
    configuration = _configuration(client, start_list_id)

    configuration["teams"][0]["shooters"].reverse()
    for position, shooter in enumerate(configuration["teams"][0]["shooters"], start=1):
        shooter["position"] = position
    resp = client.put(f"/api/start-lists/{start_list_id}/configuration", json=configuration)
    assert resp.status_code == 200
    assert resp.json()["configuration"]["teams"][0]["shooters"][0]["member_id"] == configuration["teams"][0]["shooters"][0]["member_id"]

    configuration["teams"][1]["shooters"][0]["member_id"] = configuration["teams"][0]["shooters"][0]["member_id"]
    resp = client.put(f"/api/start-lists/{start_list_id}/configuration", json=configuration)
    assert resp.status_code == 400
    detail = resp.json()["detail"]
    assert detail["message"] == "Start list configuration is invalid"
    assert len(detail["errors"]) == 1


def test_validation_endpoint(client: TestClient, competition_setup):
    start_list_id = _generate(client, competition_setup["competition_id"])["start_list_id"]

    body = client.get(f"/api/start-lists/{start_list_id}/validation").json()

    assert body == {"is_valid": True, "errors": [], "warnings": []}


def test_repair_clubs(client: TestClient, session: Session):
    competition_id = client.post("/api/competitions", json={"name": "Club repair"}).json()["id"]
    client.post(
        f"/api/competitions/{competition_id}/registrations",
        json={"member_id": 7, "weapon_class": "A", "member_name": "Greta Sand"},
    )
    start_list_id = _generate(client, competition_id)["start_list_id"]
    assert _configuration(client, start_list_id)["teams"][0]["shooters"][0]["club"] == ""

    resp = client.post(f"/api/start-lists/{start_list_id}/repair-clubs")
    assert resp.json()["updated_count"] == 0

    club = Club(name="Skogens SKF")
    session.add(club)
    session.commit()
    session.add(Member(id=7, first_name="Greta", last_name="Sand", primary_club_id=club.id))
    session.commit()

    resp = client.post(f"/api/start-lists/{start_list_id}/repair-clubs")
    assert resp.status_code == 200
    assert resp.json()["updated_count"] == 1
    assert _configuration(client, start_list_id)["teams"][0]["shooters"][0]["club"] == "Skogens SKF"
