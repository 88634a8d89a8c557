"""Shared fixtures: an in-memory provider and small resource sets."""

import threading
import time
import pytest
from stackplan.ingest.document_loader import load_definitions
from stackplan.provider.base import Provider
from stackplan.utils.errors import ProvisioningError


class FakeProvider(Provider):
    """In-memory provider recording every call."""

    def __init__(self, fail_types=(), fail_ids=(), delays=None):
        self.fail_types = set(fail_types)
        self.fail_ids = set(fail_ids)
        self.delays = delays or {}
        self.calls = []
        self.resources = {}
        self.cancelled = False
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()
        self._counter = 0

    def _enter(self, action, key):
        with self._lock:
            self.calls.append((action, key))
            self.active += 1
            self.max_active = max(self.max_active, self.active)

    def _leave(self):
        with self._lock:
            self.active -= 1

    def create(self, resource_type, attributes):
        self._enter("create", resource_type)
        try:
            time.sleep(self.delays.get(resource_type, 0))
            if resource_type in self.fail_types:
                raise ProvisioningError(f"quota exceeded for {resource_type}")
            with self._lock:
                self._counter += 1
                resource_id = f"/fake/{resource_type}/{self._counter}"
                self.resources[resource_id] = dict(attributes)
            return resource_id, dict(attributes)
        finally:
            self._leave()

    def update(self, resource_id, attributes):
        self._enter("update", resource_id)
        try:
            if resource_id in self.fail_ids:
                raise ProvisioningError(f"update rejected for {resource_id}")
            with self._lock:
                self.resources[resource_id] = dict(attributes)
            return dict(attributes)
        finally:
            self._leave()

    def delete(self, resource_id):
        self._enter("delete", resource_id)
        try:
            if resource_id in self.fail_ids:
                raise ProvisioningError(f"delete rejected for {resource_id}")
            with self._lock:
                self.resources.pop(resource_id, None)
        finally:
            self._leave()

    def cancel(self):
        self.cancelled = True


@pytest.fixture
def fake_provider():
    """Factory for fake providers."""
    return FakeProvider


@pytest.fixture
def network_resources():
    """Resource group and a virtual network referencing it."""
    return load_definitions([
        ("azurerm_resource_group", "rg", {"name": "demo-rg", "location": "westeurope"}, []),
        ("azurerm_virtual_network", "vn", {
            "name": "demo-vnet",
            "location": "${azurerm_resource_group.rg.location}",
            "resource_group_name": "${azurerm_resource_group.rg.name}",
            "address_space": ["10.0.0.0/16"],
        }, []),
    ])


@pytest.fixture
def isolated_home(tmp_path, monkeypatch):
    """Run in an empty working directory with an empty home directory."""
    home = tmp_path / "home"
    work = tmp_path / "work"
    home.mkdir()
    work.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("STACKPLAN_ENV", raising=False)
    monkeypatch.delenv("STACKPLAN_HOME", raising=False)
    monkeypatch.chdir(work)
    return work
