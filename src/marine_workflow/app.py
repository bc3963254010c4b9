"""Application context assembly."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from marine_workflow.config import Settings, load_settings
from marine_workflow.domain.families import FAMILIES
from marine_workflow.policy.engine import PolicyEngine
from marine_workflow.policy.loader import load_policy
from marine_workflow.storage.base import Directory, RecordStore
from marine_workflow.storage.memory import InMemoryDirectory, InMemoryRecordStore
from marine_workflow.storage.sqlite import SqliteStore
from marine_workflow.workflow.engine import WorkflowEngine


@dataclass
class AppContext:
    """Application-wide dependency container.

    Holds the settings, the policy engine, the storage collaborators and one
    workflow engine per family. Initialized once at startup and cached for the
    lifetime of the process.
    """

    settings: Settings
    policy_engine: PolicyEngine
    directory: Directory
    store: RecordStore
    engines: dict[str, WorkflowEngine]

    def engine_for(self, family_key: str) -> WorkflowEngine:
        try:
            return self.engines[family_key]
        except KeyError:
            raise ValueError(f"No engine configured for family {family_key!r}") from None


def build_app_context(
    settings: Settings,
    *,
    directory: Directory | None = None,
    store: RecordStore | None = None,
) -> AppContext:
    policy_engine = PolicyEngine(load_policy(settings.policy.path))

    if directory is None or store is None:
        if settings.storage.backend == "sqlite":
            sqlite_store = SqliteStore(
                settings.storage.sqlite_path, wal=settings.storage.sqlite_wal
            )
            directory = directory or sqlite_store
            store = store or sqlite_store
        else:
            directory = directory or InMemoryDirectory()
            store = store or InMemoryRecordStore()

    engines = {
        key: WorkflowEngine(family, policy=policy_engine, directory=directory, store=store)
        for key, family in FAMILIES.items()
    }
    return AppContext(
        settings=settings,
        policy_engine=policy_engine,
        directory=directory,
        store=store,
        engines=engines,
    )


@lru_cache(maxsize=1)
def get_app_context() -> AppContext:
    """Get or create the application context.

    Returns a cached singleton instance of AppContext with all
    dependencies initialized.
    """
    return build_app_context(load_settings())
