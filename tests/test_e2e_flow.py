"""End-to-end: a new user goes from registration to editing references.

Everything goes through HTTP except the permission grant, which is an
operator action (the `myreference grant` command) and is done here
directly against the store.
"""

from myreference.background import background_tasks
from myreference.services.permission_service import PermissionService


async def test_register_to_edit_flow(client, outbox, session_factory):
    # 1. Register
    r = await client.post(
        "/v1/users",
        json={"name": "Grace", "email": "grace@example.com", "password": "hopper1906"},
    )
    assert r.status_code == 201
    user_id = r.json()["user"]["id"]

    # 2. Activate with the mailed token
    await background_tasks.wait(timeout=5)
    r = await client.put(
        "/v1/users/activated", json={"token": outbox.token_for("grace@example.com")}
    )
    assert r.status_code == 200
    assert r.json()["user"]["activated"] is True

    # 3. Log in
    r = await client.post(
        "/v1/tokens/authentication",
        json={"email": "grace@example.com", "password": "hopper1906"},
    )
    assert r.status_code == 200
    headers = {"Authorization": f"Bearer {r.json()['authentication_token']['token']}"}

    # 4. Registration only grants read access
    payload = {"name": "Birth certificate", "storage-location": "Filing cabinet"}
    r = await client.post("/v1/references", json=payload, headers=headers)
    assert r.status_code == 403

    # 5. Operator grants write; the next request sees it
    async with session_factory() as session:
        await PermissionService(session).add_for_user(user_id, "reference:write")

    r = await client.post("/v1/references", json=payload, headers=headers)
    assert r.status_code == 201
    location = r.headers["Location"]
    ref = r.json()["reference"]
    assert location == f"/v1/references/{ref['id']}"

    # 6. Someone else edits it first
    r = await client.patch(location, json={"storage-location": "Safe"}, headers=headers)
    assert r.status_code == 200
    assert r.json()["reference"]["version"] == 2

    # 7. An edit based on the version we created fails...
    r = await client.patch(
        location, json={"name": "Birth cert", "version": ref["version"]}, headers=headers
    )
    assert r.status_code == 409

    # 8. ...and succeeds after re-reading
    current = (await client.get(location, headers=headers)).json()["reference"]
    r = await client.patch(
        location, json={"name": "Birth cert", "version": current["version"]}, headers=headers
    )
    assert r.status_code == 200
    assert r.json()["reference"] == {
        "id": ref["id"],
        "name": "Birth cert",
        "storage-location": "Safe",
        "version": 3,
    }

    # 9. Delete
    r = await client.delete(location, headers=headers)
    assert r.status_code == 200
    assert (await client.get(location, headers=headers)).status_code == 404
