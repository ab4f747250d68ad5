"""Pytest configuration and shared fixtures."""

import sys
import asyncio
import inspect
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Ensure src directory is in Python path for all tests
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from olive_lifecycle.config import Config, ConfigModel  # noqa: E402
from olive_lifecycle.field import Field, LifecycleYear  # noqa: E402
from olive_lifecycle.lifecycle import Lifecycle  # noqa: E402
from olive_lifecycle.services.auth import AuthService  # noqa: E402
from olive_lifecycle.services.store import InMemoryRecordStore  # noqa: E402
from olive_lifecycle.task import Task, TaskStatus  # noqa: E402
from olive_lifecycle.user import User, UserRole  # noqa: E402


TEST_SECRET = "test-secret-key-for-olive-lifecycle-suite"
TEST_PASSWORD = "password123"


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem):
    """Execute async tests without external plugins."""
    testfunction = pyfuncitem.obj
    if inspect.iscoroutinefunction(testfunction):
        loop = asyncio.new_event_loop()
        try:
            asyncio.set_event_loop(loop)
            sig = inspect.signature(testfunction)
            call_kwargs = {name: pyfuncitem.funcargs[name] for name in sig.parameters}
            loop.run_until_complete(testfunction(**call_kwargs))
        finally:
            asyncio.set_event_loop(None)
            loop.close()
        return True
    return None


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def make_task():
    """Factory for tasks with sensible defaults."""
    counter = {"n": 0}

    def _make(**overrides) -> Task:
        counter["n"] += 1
        values = {
            "id": f"t{counter['n']}",
            "field_id": "f1",
            "type": "Pruning",
            "title": f"Task {counter['n']}",
            "lifecycle_year": "low",
            "created_at": utc(2024, 6, 10, 9),
            "updated_at": utc(2024, 6, 10, 9),
        }
        values.update(overrides)
        return Task(**values)

    return _make


@pytest.fixture
def users():
    return {
        "owner": User(id="u-owner", email="owner@olivefarm.com", first_name="Olga",
                      last_name="Owner", role=UserRole.FIELD_OWNER),
        "producer": User(id="u-prod", email="producer@olivefarm.com", first_name="Pablo",
                         role=UserRole.PRODUCER),
        "other_producer": User(id="u-prod2", email="producer2@olivefarm.com",
                               role=UserRole.PRODUCER),
        "agronomist": User(id="u-agro", email="agronomist@olivefarm.com", role=UserRole.AGRONOMIST),
        "admin": User(id="u-admin", email="admin@olivefarm.com", role=UserRole.ADMINISTRATOR),
        "provider": User(id="u-svc", email="services@olivefarm.com", role=UserRole.SERVICE_PROVIDER),
    }


@pytest.fixture
def small_store(users):
    """Two owned fields, one task assigned to the producer on the first."""
    fields = [
        Field(id="f1", owner_id="u-owner", name="North Grove", area=12.5, variety="Kalamata",
              current_lifecycle_year=LifecycleYear.LOW),
        Field(id="f2", owner_id="u-owner", name="South Grove", area=8.0,
              current_lifecycle_year=LifecycleYear.HIGH),
    ]
    tasks = [
        Task(id="t1", field_id="f1", type="Pruning", title="Prune north rows", lifecycle_year="low",
             assigned_to="u-prod", scheduled_start=utc(2024, 6, 10), scheduled_end=utc(2024, 6, 12),
             created_at=utc(2024, 6, 1)),
        Task(id="t2", field_id="f2", type="Harvesting", title="Harvest south", lifecycle_year="high",
             status=TaskStatus.COMPLETED, actual_start=utc(2024, 6, 2), actual_end=utc(2024, 6, 4),
             cost=250.0, created_at=utc(2024, 6, 1)),
    ]
    lifecycles = [
        Lifecycle(id="l1", field_id="f1", current_year=LifecycleYear.LOW),
        Lifecycle(id="l2", field_id="f2", current_year=LifecycleYear.HIGH),
    ]
    return InMemoryRecordStore(tasks=tasks, fields=fields, users=list(users.values()),
                               lifecycles=lifecycles)


@pytest.fixture
def fixture_store():
    return InMemoryRecordStore.with_fixtures(seed=42)


@pytest.fixture
def auth_service(small_store):
    """Auth service over the small store with every user on the test password."""
    service = AuthService(small_store, secret_key=TEST_SECRET, rounds=4)
    asyncio.run(service.seed_dev_passwords(TEST_PASSWORD))
    return service


@pytest.fixture
def test_config(tmp_path):
    """Isolated configuration installed as the process-wide instance."""
    config = ConfigModel(
        data_dir=str(tmp_path / "data"),
        export_dir=str(tmp_path / "exports"),
        secret_key=TEST_SECRET,
    )
    Config.set(config)
    yield config
    Config._instance = None
