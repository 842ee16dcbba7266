from datetime import date

import pytest

from conteo.models.catalog import Member, Usher
from conteo.schemas.attendance_record import HistoricalRecordInput
from conteo.services.archive import SqlArchive
from conteo.services.tally.errors import RecordNotFoundError


def _seed(session_factory):
    archive = SqlArchive(session_factory)
    ids = [
        archive.create_record(
            HistoricalRecordInput(
                date=date(2025, 1, 5),
                service_label="Dominical",
                ushers=["Carlos"],
                totals={"brothers": 6, "sympathizers": 1},
                rosters={"sympathizers": [{"id": "s1", "name": "Ana"}]},
            )
        ),
        archive.create_record(
            HistoricalRecordInput(
                date=date(2025, 1, 12),
                service_label="Evangelismo",
                ushers=["Luis", "Ana"],
                totals={"brothers": 2, "teens": 3},
            )
        ),
    ]
    return archive, ids


def test_list_and_filter(client, session_factory):
    _seed(session_factory)
    records = client.get("/historial").json()
    assert [r["service_label"] for r in records] == ["Evangelismo", "Dominical"]

    only_first = client.get("/historial", params={"to": "2025-01-06"}).json()
    assert len(only_first) == 1
    assert only_first[0]["total"] == 7


def test_get_one_and_flat_shape(client, session_factory):
    _, (first, _second) = _seed(session_factory)
    rec = client.get(f"/historial/{first}").json()
    assert rec["totals"]["brothers"] == 6
    assert rec["rosters"]["sympathizers"][0]["name"] == "Ana"

    flat = client.get(f"/historial/{first}/flat").json()
    assert flat["id"] == first
    assert flat["serviceLabel"] == "Dominical"
    assert flat["sympathizersAsistieron"][0]["id"] == "s1"

    assert client.get("/historial/nope").status_code == 404
    assert client.get("/historial/nope/flat").status_code == 404


def test_category_stats(client, session_factory):
    _seed(session_factory)
    stats = client.get("/historial/stats").json()
    assert stats["records"] == 2
    assert stats["totals"]["brothers"] == 8
    assert stats["totals"]["teens"] == 3
    assert stats["grand_total"] == 12

    r = client.get("/historial/stats", params={"from": "2025-02-01", "to": "2025-01-01"})
    assert r.status_code == 400


def test_archive_update_recomputes_total(session_factory):
    archive, (first, _) = _seed(session_factory)
    archive.update_record(first, {"totals": {"brothers": 1}})
    rec = archive.get_record_by_id(first)
    assert rec.total == 1
    assert rec.service_label == "Dominical"

    with pytest.raises(RecordNotFoundError):
        archive.update_record("missing", {"total": 3})
    with pytest.raises(RecordNotFoundError):
        archive.get_record_by_id("missing")


def test_catalog_endpoints(client, session_factory):
    with session_factory() as db:
        db.add_all(
            [
                Member(name="Juan", category="hermano"),
                Member(name="María", category="hermana"),
                Usher(name="Pedro", active=True),
                Usher(name="Andrés", active=True),
                Usher(name="Retirado", active=False),
            ]
        )
        db.commit()

    assert client.get("/catalog/ushers").json() == ["Andrés", "Pedro"]

    brothers = client.get("/catalog/members", params={"category": "brothers"}).json()
    assert [m["name"] for m in brothers] == ["Juan"]
    everyone = client.get("/catalog/members", params={"category": "setApartBrothers"}).json()
    assert len(everyone) == 2

    r = client.post("/catalog/sympathizers", json={"name": "Luisa"})
    assert r.status_code == 201, r.text
    assert r.json()["registered_on"] is not None
    assert client.post("/catalog/sympathizers", json={"name": ""}).status_code == 422
    assert [s["name"] for s in client.get("/catalog/sympathizers").json()] == ["Luisa"]


def test_health_and_version(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["db"]["status"] == "ok"
    assert client.get("/version").json()["app"] == "Conteo Backend"


def test_service_and_category_lookups(client):
    services = client.get("/catalog/services").json()
    by_value = {s["value"]: s for s in services}
    assert by_value["oracion"]["label"] == "Oración y Enseñanza"
    assert by_value["evangelismo"]["base"] is True
    assert by_value["dominical"]["base"] is False
    assert services[-1]["value"] == "otro"

    categories = client.get("/catalog/categories").json()
    assert [c["value"] for c in categories][:2] == ["brothers", "sisters"]
    assert categories[-1] == {
        "value": "visitingBrothers",
        "label": "Hermanos Visitas",
        "roster_kind": "visitor",
        "member_category": None,
    }
