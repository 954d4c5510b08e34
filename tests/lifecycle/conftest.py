from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from fieldjobs.events.publisher import MemoryPublisher
from fieldjobs.ledger.memory_store import MemoryJobsStore
from fieldjobs.ledger.models import ToolCategory, ToolSpec
from fieldjobs.lifecycle.service import JobLifecycle


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: float) -> None:
        self.now = self.now + timedelta(minutes=minutes)


class StubCatalog:
    """Same three tools for every category: two required, one optional."""

    tools = (
        ToolSpec("A", "Tool A", ToolCategory.BASIC, True),
        ToolSpec("B", "Tool B", ToolCategory.SAFETY, True),
        ToolSpec("C", "Tool C", ToolCategory.SPECIALIZED, False),
    )

    def tools_for(self, category):
        return self.tools


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def publisher():
    return MemoryPublisher()


@pytest.fixture()
def store():
    return MemoryJobsStore()


@pytest.fixture()
def make_lifecycle(store, publisher, clock):
    def factory(**options):
        options.setdefault("publisher", publisher)
        return JobLifecycle(store, catalog=StubCatalog(), clock=clock, **options)

    return factory


@pytest.fixture()
def lifecycle(make_lifecycle):
    return make_lifecycle()


@pytest.fixture()
def claimed_job(lifecycle):
    job = lifecycle.create_job("oil_change")
    return lifecycle.claim_job(job.job_id, "tech-1")
