import itertools
import os

import pytest

from core.app_factory import create_app
from models import AccountRole

TEST_SECRET = "test-secret-key-with-enough-length-for-hs256"


_db_seq = itertools.count()


def make_test_app(db_dir, **overrides):
    # DB im tmp_path von pytest, wird beim Teardown gelöscht
    path = os.path.join(str(db_dir), f"test-{next(_db_seq)}.db")
    cfg = {
        "DATABASE_URL": f"sqlite:///{path}",
        "SECRET_KEY": TEST_SECRET,
        "BASE_URL": "http://testserver",
        "IS_PRODUCTION": False,
        "MAIL_PROVIDER": "memory",
        "EMAILS_ENABLED": True,
        "REVEAL_UNKNOWN_EMAIL": False,
        "ADMIN_EMAIL": None,
        "ADMIN_PASSWORD": None,
        # billige argon2-Parameter für schnelle Tests
        "ARGON2_TIME_COST": 1,
        "ARGON2_MEMORY_COST": 8,
        "ARGON2_PARALLELISM": 1,
    }
    cfg.update(overrides)
    app = create_app(cfg)
    app.config["TESTING"] = True
    return app


def dispose_test_app(app):
    engine = app.extensions["messageboard"].engine
    path = engine.url.database
    engine.dispose()
    if path and os.path.exists(path):
        os.remove(path)


@pytest.fixture(scope="function")
def app(tmp_path):
    app = make_test_app(tmp_path)
    yield app
    dispose_test_app(app)


@pytest.fixture(scope="function")
def test_client(app):
    return app.test_client()


@pytest.fixture(scope="function")
def services(app):
    return app.extensions["messageboard"]


@pytest.fixture(scope="function")
def outbox(services):
    return services.notifier.outbox


@pytest.fixture(scope="function")
def create_account(services):
    def _create(
        email: str,
        password: str,
        *,
        confirmed: bool = True,
        role: AccountRole = AccountRole.normal,
        name: str = "Test",
    ):
        return services.accounts.insert(
            name=name,
            email=email,
            password_hash=services.hasher.hash(password),
            role=role,
            email_confirmed=confirmed,
        )

    return _create


@pytest.fixture(scope="function")
def app_factory(tmp_path):
    apps = []

    def _make(**overrides):
        app = make_test_app(tmp_path, **overrides)
        apps.append(app)
        return app

    yield _make
    for app in apps:
        dispose_test_app(app)
