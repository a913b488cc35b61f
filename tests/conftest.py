"""Test fixtures: a throwaway SQLite database per test.

1. Each test gets a fresh database file under tmp_path, created straight
   from the models and seeded with the permission codes.
2. `db_session` is a session on that database for store-level tests.
3. `client` drives the real app over httpx's ASGITransport, with get_db
   pointed at the test database (a new session per request, as in
   production) and get_mailer replaced by an in-memory outbox.

Auth is not mocked: tests register, activate and log in through the API
(see the `auth_headers` factory).
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from myreference.auth.password import PasswordHash
from myreference.background import background_tasks
from myreference.db.engine import get_db
from myreference.db.models import PERMISSION_CODES, Base
from myreference.mailer import get_mailer
from myreference.main import app
from myreference.services.permission_service import PermissionService
from myreference.services.user_service import NewUser, UserService

# Low bcrypt cost keeps the suite fast; the algorithm is the same.
TEST_BCRYPT_ROUNDS = 4


class Outbox:
    """Mailer that keeps activation mails in memory."""

    def __init__(self):
        self.sent: list[dict] = []

    async def send_activation(self, recipient, name, user_id, token):
        self.sent.append(
            {"recipient": recipient, "name": name, "user_id": user_id, "token": token}
        )

    def token_for(self, email: str) -> str:
        for mail in reversed(self.sent):
            if mail["recipient"] == email:
                return mail["token"]
        raise AssertionError(f"no activation mail sent to {email}")


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch):
    from myreference.config import settings

    monkeypatch.setattr(settings, "bcrypt_rounds", TEST_BCRYPT_ROUNDS)


@pytest_asyncio.fixture()
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture()
async def session_factory(engine):
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        await PermissionService(session).seed(PERMISSION_CODES)
    return factory


@pytest_asyncio.fixture()
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture()
def outbox():
    return Outbox()


@pytest_asyncio.fixture()
async def client(session_factory, outbox):
    """HTTP client against the app, with DB and mailer overridden."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: outbox

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    await background_tasks.wait(timeout=5)
    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def make_user(db_session):
    """Insert a user directly (skipping the API), optionally activated."""

    async def _make(email="ada@example.com", password="pa55word!", activated=True, name="Ada"):
        return await UserService(db_session).insert(
            NewUser(
                name=name,
                email=email,
                password=PasswordHash.from_plaintext(password),
                activated=activated,
            )
        )

    return _make


@pytest_asyncio.fixture()
async def auth_headers(client, outbox, session_factory):
    """Register + activate + log in through the API; grant extra codes.

    Returns {"Authorization": "Bearer <token>"} for the new user.
    """
    counter = {"n": 0}

    async def _login(*codes: str, activate: bool = True) -> dict[str, str]:
        counter["n"] += 1
        email = f"user{counter['n']}@example.com"
        password = "pa55word!"

        r = await client.post(
            "/v1/users",
            json={"name": f"User {counter['n']}", "email": email, "password": password},
        )
        assert r.status_code == 201, r.text
        user_id = r.json()["user"]["id"]

        if activate:
            await background_tasks.wait(timeout=5)
            r = await client.put(
                "/v1/users/activated", json={"token": outbox.token_for(email)}
            )
            assert r.status_code == 200, r.text

        if codes:
            async with session_factory() as session:
                await PermissionService(session).add_for_user(user_id, *codes)

        r = await client.post(
            "/v1/tokens/authentication", json={"email": email, "password": password}
        )
        assert r.status_code == 200, r.text
        return {"Authorization": f"Bearer {r.json()['authentication_token']['token']}"}

    return _login
