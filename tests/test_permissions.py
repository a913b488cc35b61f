"""Permission store tests."""

from myreference.services.permission_service import PermissionService, Permissions


async def test_no_grants_is_empty_not_error(db_session, make_user):
    user = await make_user()
    perms = await PermissionService(db_session).get_all_for_user(user.id)
    assert perms == Permissions()
    assert not perms.include("reference:read")


async def test_add_and_read_back(db_session, make_user):
    user = await make_user()
    store = PermissionService(db_session)

    await store.add_for_user(user.id, "reference:read", "reference:write")

    perms = await store.get_all_for_user(user.id)
    assert perms == {"reference:read", "reference:write"}
    assert perms.include("reference:write")


async def test_unknown_codes_are_skipped(db_session, make_user):
    user = await make_user()
    store = PermissionService(db_session)

    await store.add_for_user(user.id, "reference:read", "reference:admin")

    assert await store.get_all_for_user(user.id) == {"reference:read"}


async def test_grants_are_idempotent(db_session, make_user):
    user = await make_user()
    store = PermissionService(db_session)

    await store.add_for_user(user.id, "reference:read")
    await store.add_for_user(user.id, "reference:read", "reference:write")

    assert await store.get_all_for_user(user.id) == {"reference:read", "reference:write"}


async def test_grants_are_per_user(db_session, make_user):
    alice = await make_user(email="alice@example.com")
    bob = await make_user(email="bob@example.com")
    store = PermissionService(db_session)

    await store.add_for_user(alice.id, "reference:write")

    assert await store.get_all_for_user(bob.id) == set()
