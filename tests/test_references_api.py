"""References API: CRUD, partial updates, and edit conflicts."""

import pytest
import pytest_asyncio

PASSPORT = {"name": "Passport", "storage-location": "Top drawer"}


@pytest_asyncio.fixture()
async def writer(auth_headers):
    return await auth_headers("reference:write")


async def create(client, headers, payload=PASSPORT):
    r = await client.post("/v1/references", json=payload, headers=headers)
    assert r.status_code == 201, r.text
    return r


# ═══════════════════════════════════════════════════════════
# Create
# ═══════════════════════════════════════════════════════════


async def test_create_reference(client, writer):
    r = await create(client, writer)
    ref = r.json()["reference"]
    assert ref["name"] == "Passport"
    assert ref["storage-location"] == "Top drawer"
    assert ref["version"] == 1
    assert "location" not in ref
    assert r.headers["Location"] == f"/v1/references/{ref['id']}"


async def test_create_validation(client, writer):
    r = await client.post(
        "/v1/references",
        json={"name": "x" * 201, "storage-location": ""},
        headers=writer,
    )
    assert r.status_code == 422
    assert r.json()["errors"] == {
        "name": "must not be more than 200 bytes long",
        "storage-location": "must be provided",
    }


async def test_create_counts_bytes_not_characters(client, writer):
    # 100 characters, 200 bytes: at the limit.
    r = await client.post(
        "/v1/references",
        json={"name": "é" * 100, "storage-location": "Box"},
        headers=writer,
    )
    assert r.status_code == 201

    r = await client.post(
        "/v1/references",
        json={"name": "é" * 101, "storage-location": "Box"},
        headers=writer,
    )
    assert r.status_code == 422


# ═══════════════════════════════════════════════════════════
# Read
# ═══════════════════════════════════════════════════════════


async def test_show_reference_with_read_permission(client, writer, auth_headers):
    ref_id = (await create(client, writer)).json()["reference"]["id"]
    reader = await auth_headers()

    r = await client.get(f"/v1/references/{ref_id}", headers=reader)
    assert r.status_code == 200
    assert r.json()["reference"] == {
        "id": ref_id,
        "name": "Passport",
        "storage-location": "Top drawer",
        "version": 1,
    }


@pytest.mark.parametrize(
    "bad_id", ["0", "-3", "abc", "1.5", "999999", "99999999999999999999", "9" * 5000]
)
async def test_show_bad_or_missing_id(client, writer, bad_id):
    r = await client.get(f"/v1/references/{bad_id}", headers=writer)
    assert r.status_code == 404
    assert r.json() == {"error": "the requested resource could not be found"}


@pytest.mark.parametrize("spelling", ["+{}", " {}", "{}_0", "0x{}", "\u0661{}"])
async def test_show_rejects_loose_integer_spellings(client, writer, spelling):
    ref_id = (await create(client, writer)).json()["reference"]["id"]
    assert (await client.get(f"/v1/references/{ref_id}", headers=writer)).status_code == 200

    r = await client.get("/v1/references/" + spelling.format(ref_id), headers=writer)
    assert r.status_code == 404


# ═══════════════════════════════════════════════════════════
# Update
# ═══════════════════════════════════════════════════════════


async def test_partial_update_keeps_other_fields(client, writer):
    ref_id = (await create(client, writer)).json()["reference"]["id"]

    r = await client.patch(
        f"/v1/references/{ref_id}",
        json={"storage-location": "Safe"},
        headers=writer,
    )
    assert r.status_code == 200
    ref = r.json()["reference"]
    assert ref["name"] == "Passport"
    assert ref["storage-location"] == "Safe"
    assert ref["version"] == 2


async def test_update_with_stale_version_conflicts(client, writer):
    ref_id = (await create(client, writer)).json()["reference"]["id"]
    await client.patch(f"/v1/references/{ref_id}", json={"name": "Visa"}, headers=writer)

    r = await client.patch(
        f"/v1/references/{ref_id}",
        json={"name": "Old passport", "version": 1},
        headers=writer,
    )
    assert r.status_code == 409
    assert r.json() == {
        "error": "unable to update the record due to an edit conflict, please try again"
    }

    r = await client.get(f"/v1/references/{ref_id}", headers=writer)
    assert r.json()["reference"]["name"] == "Visa"


async def test_update_with_current_version(client, writer):
    ref_id = (await create(client, writer)).json()["reference"]["id"]
    r = await client.patch(
        f"/v1/references/{ref_id}",
        json={"name": "Visa", "version": 1},
        headers=writer,
    )
    assert r.status_code == 200
    assert r.json()["reference"]["version"] == 2


async def test_update_validation(client, writer):
    ref_id = (await create(client, writer)).json()["reference"]["id"]
    r = await client.patch(
        f"/v1/references/{ref_id}", json={"name": ""}, headers=writer
    )
    assert r.status_code == 422
    assert r.json()["errors"] == {"name": "must be provided"}


async def test_update_needs_write_permission(client, writer, auth_headers):
    ref_id = (await create(client, writer)).json()["reference"]["id"]
    reader = await auth_headers()
    r = await client.patch(
        f"/v1/references/{ref_id}", json={"name": "Visa"}, headers=reader
    )
    assert r.status_code == 403


async def test_update_missing_reference(client, writer):
    r = await client.patch("/v1/references/4242", json={"name": "Visa"}, headers=writer)
    assert r.status_code == 404


# ═══════════════════════════════════════════════════════════
# Delete
# ═══════════════════════════════════════════════════════════


async def test_delete_reference(client, writer):
    ref_id = (await create(client, writer)).json()["reference"]["id"]

    r = await client.delete(f"/v1/references/{ref_id}", headers=writer)
    assert r.status_code == 200
    assert r.json() == {"message": "reference successfully deleted"}

    r = await client.get(f"/v1/references/{ref_id}", headers=writer)
    assert r.status_code == 404

    r = await client.delete(f"/v1/references/{ref_id}", headers=writer)
    assert r.status_code == 404


async def test_delete_bad_id(client, writer):
    r = await client.delete("/v1/references/zero", headers=writer)
    assert r.status_code == 404


async def test_delete_id_beyond_column_range(client, writer):
    r = await client.delete("/v1/references/99999999999999999999", headers=writer)
    assert r.status_code == 404
    assert r.json() == {"error": "the requested resource could not be found"}
