"""Tests for the apply and state commands."""

import json
import pytest
from click.testing import CliRunner
from stackplan.cli.main import cli
from stackplan.state.store import StateStore

DOCUMENT = """
resources:
  - type: azurerm_resource_group
    name: rg
    attributes:
      name: demo-rg
      location: westeurope
  - type: azurerm_virtual_network
    name: vn
    attributes:
      name: demo-vnet
      location: westeurope
      resource_group_name: "${azurerm_resource_group.rg.name}"
      address_space: ["10.0.0.0/16"]
"""

GROUPS = """
resources:
  - type: azurerm_resource_group
    name: a
    attributes: {name: a, location: westeurope}
  - type: azurerm_resource_group
    name: b
    attributes: {name: b, location: westeurope}
"""


@pytest.fixture
def document(isolated_home):
    path = isolated_home / "main.yaml"
    path.write_text(DOCUMENT)
    return str(path)


@pytest.fixture
def state_store(isolated_home):
    return StateStore(isolated_home / ".stackplan" / "state" / "default.json")


@pytest.fixture
def use_provider(monkeypatch):
    """Route create_provider in the apply pipeline to the given provider."""
    def install(provider):
        monkeypatch.setattr("stackplan.create_provider", lambda settings: provider)
        return provider
    return install


class TestApplyCommand:
    """Test apply CLI command."""

    def test_apply_auto_approve(self, document, state_store, fake_provider, use_provider):
        """Everything is created and recorded."""
        provider = use_provider(fake_provider())

        runner = CliRunner()
        result = runner.invoke(cli, ['apply', document, '--auto-approve'])

        assert result.exit_code == 0
        assert "Status: COMPLETE" in result.output
        assert set(state_store.load().resources) == {"azurerm_resource_group.rg", "azurerm_virtual_network.vn"}
        assert len(provider.calls) == 2
        assert not state_store.is_locked()

    def test_apply_twice_is_a_no_op(self, document, fake_provider, use_provider):
        """The second apply has nothing to do."""
        use_provider(fake_provider())
        runner = CliRunner()
        runner.invoke(cli, ['apply', document, '--auto-approve'])

        provider = use_provider(fake_provider())
        result = runner.invoke(cli, ['apply', document, '--auto-approve'])

        assert result.exit_code == 0
        assert "Nothing to apply." in result.output
        assert provider.calls == []

        plan_result = runner.invoke(cli, ['plan', document])
        assert "No changes." in plan_result.output

    def test_added_depends_on_is_recorded(self, isolated_home, state_store, fake_provider, use_provider):
        """A depends_on-only change reaches state and orders a later destroy."""
        path = isolated_home / "groups.yaml"
        path.write_text(GROUPS)
        use_provider(fake_provider())
        runner = CliRunner()
        runner.invoke(cli, ['apply', str(path), '--auto-approve'])

        path.write_text(GROUPS + "    depends_on: [azurerm_resource_group.a]\n")
        provider = use_provider(fake_provider())
        result = runner.invoke(cli, ['apply', str(path), '--auto-approve'])

        assert result.exit_code == 0
        assert "Recording updated dependencies." in result.output
        assert provider.calls == []
        snapshot = state_store.load()
        assert snapshot.resources["azurerm_resource_group.b"].dependencies == ["azurerm_resource_group.a"]

        provider = use_provider(fake_provider())
        result = runner.invoke(cli, ['apply', str(path), '--auto-approve', '--destroy'])

        assert result.exit_code == 0
        assert provider.calls == [
            ("delete", snapshot.resources["azurerm_resource_group.b"].id),
            ("delete", snapshot.resources["azurerm_resource_group.a"].id),
        ]

    def test_apply_partial_failure(self, document, state_store, fake_provider, use_provider):
        """A failed resource exits 1 and keeps what succeeded."""
        use_provider(fake_provider(fail_types={"azurerm_virtual_network"}))

        runner = CliRunner()
        result = runner.invoke(cli, ['apply', document, '--auto-approve'])

        assert result.exit_code == 1
        assert "Status: INCOMPLETE" in result.output
        assert "azurerm_virtual_network.vn: quota exceeded" in result.output
        assert "Apply incomplete: 1 succeeded, 1 failed, 0 skipped" in result.output
        assert set(state_store.load().resources) == {"azurerm_resource_group.rg"}

    def test_apply_json(self, document, fake_provider, use_provider):
        """--json prints only the result on stdout."""
        use_provider(fake_provider())

        runner = CliRunner()
        result = runner.invoke(cli, ['apply', document, '--auto-approve', '--json'])

        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["succeeded"] == ["azurerm_resource_group.rg", "azurerm_virtual_network.vn"]
        assert data["failed"] == []

    def test_apply_declined(self, document, state_store, fake_provider, use_provider):
        """Answering no applies nothing."""
        provider = use_provider(fake_provider())

        runner = CliRunner()
        result = runner.invoke(cli, ['apply', document], input="n\n")

        assert result.exit_code == 1
        assert "Apply cancelled." in result.output
        assert provider.calls == []
        assert not state_store.path.exists()

    def test_apply_confirmed(self, document, fake_provider, use_provider):
        """Answering yes applies the plan."""
        provider = use_provider(fake_provider())

        runner = CliRunner()
        result = runner.invoke(cli, ['apply', document], input="y\n")

        assert result.exit_code == 0
        assert len(provider.calls) == 2

    def test_apply_parallelism_flag(self, document, fake_provider, use_provider):
        """--parallelism must be positive."""
        use_provider(fake_provider())

        runner = CliRunner()
        result = runner.invoke(cli, ['apply', document, '--auto-approve', '--parallelism', '0'])

        assert result.exit_code == 2

    def test_apply_locked_state(self, document, state_store, fake_provider, use_provider):
        """A held lock stops the run before any provider call."""
        provider = use_provider(fake_provider())
        state_store.lock_path.parent.mkdir(parents=True)
        state_store.lock_path.write_text(json.dumps({"pid": 1, "host": "ci", "created_at": "then"}))

        runner = CliRunner()
        result = runner.invoke(cli, ['apply', document, '--auto-approve'])

        assert result.exit_code == 1
        assert "locked" in result.output
        assert provider.calls == []

    def test_destroy(self, document, state_store, fake_provider, use_provider):
        """--destroy removes everything, dependents first."""
        use_provider(fake_provider())
        runner = CliRunner()
        runner.invoke(cli, ['apply', document, '--auto-approve'])
        snapshot = state_store.load()

        provider = use_provider(fake_provider())
        result = runner.invoke(cli, ['apply', document, '--auto-approve', '--destroy'])

        assert result.exit_code == 0
        assert provider.calls == [
            ("delete", snapshot.resources["azurerm_virtual_network.vn"].id),
            ("delete", snapshot.resources["azurerm_resource_group.rg"].id),
        ]
        assert state_store.load().resources == {}


class TestStateCommands:
    """Test state inspection commands."""

    def test_list_and_show(self, document, fake_provider, use_provider):
        use_provider(fake_provider())
        runner = CliRunner()
        runner.invoke(cli, ['apply', document, '--auto-approve'])

        listed = runner.invoke(cli, ['state', 'list'])
        shown = runner.invoke(cli, ['state', 'show', 'azurerm_resource_group.rg'])

        assert listed.exit_code == 0
        assert listed.output.splitlines() == ["azurerm_resource_group.rg", "azurerm_virtual_network.vn"]
        assert shown.exit_code == 0
        assert json.loads(shown.stdout)["attributes"] == {"name": "demo-rg", "location": "westeurope"}

    def test_show_missing(self, isolated_home):
        runner = CliRunner()
        result = runner.invoke(cli, ['state', 'show', 'azurerm_resource_group.nope'])

        assert result.exit_code == 1
        assert "not in state" in result.output

    def test_unlock(self, state_store):
        """unlock removes a stale lock file."""
        state_store.lock_path.parent.mkdir(parents=True)
        state_store.lock_path.write_text("{}")

        runner = CliRunner()
        first = runner.invoke(cli, ['state', 'unlock'])
        second = runner.invoke(cli, ['state', 'unlock'])

        assert "Removed lock" in first.output
        assert "State is not locked." in second.output
        assert not state_store.is_locked()
