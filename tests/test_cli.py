"""Integration tests for CLI commands.

Commands run against a LocalGateway and a SessionStore in tmp_path.
"""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from tokenbook.cli import cli
from tokenbook.core.gateway import LocalGateway
from tokenbook.core.gateway import factory
from tokenbook.core.session import SessionStore
from tokenbook.core.token import Tag, TokenDraft


@pytest.fixture
def workspace(tmp_path):
    """Point session, gateway and config at tmp_path."""
    store = SessionStore(tmp_path)
    with (
        patch("tokenbook.cli.SessionStore", return_value=store),
        patch(
            "tokenbook.cli.get_gateway",
            side_effect=lambda session: LocalGateway(session, tmp_path),
        ),
        patch.object(factory, "CONFIG_DIR", tmp_path),
        patch.object(factory, "CONFIG_FILE", tmp_path / "config.toml"),
    ):
        yield tmp_path


@pytest.fixture
def runner():
    return CliRunner()


def sign_in(runner, role="super_admin"):
    result = runner.invoke(
        cli, ["login", "--name", "Root", "--role", role, "--credential", "secret"]
    )
    assert result.exit_code == 0


def seed(workspace, role_session, *drafts):
    gateway = LocalGateway(role_session, workspace)
    return [gateway.create_token(draft) for draft in drafts]


def current_session(workspace):
    return SessionStore(workspace).load()


class TestSessionCommands:
    def test_login_and_whoami(self, runner, workspace):
        """Test login stores the session and whoami reads it back."""
        sign_in(runner)
        result = runner.invoke(cli, ["whoami"])

        assert result.exit_code == 0
        assert "Root" in result.output
        assert "Super Admin" in result.output
        assert (workspace / "session.json").stat().st_mode & 0o777 == 0o600

    def test_whoami_signed_out(self, runner, workspace):
        result = runner.invoke(cli, ["whoami"])
        assert result.exit_code == 1
        assert "Not signed in" in result.output

    def test_logout(self, runner, workspace):
        """Test logout clears the stored session."""
        sign_in(runner)
        result = runner.invoke(cli, ["logout"])

        assert result.exit_code == 0
        assert "Signed out" in result.output
        assert current_session(workspace) is None

    def test_commands_need_session(self, runner, workspace):
        result = runner.invoke(cli, ["list"])
        assert result.exit_code == 1
        assert "Not signed in" in result.output


class TestListCommand:
    def test_empty(self, runner, workspace):
        sign_in(runner)
        result = runner.invoke(cli, ["list"])
        assert result.exit_code == 0
        assert "No tokens yet" in result.output

    def test_plain_output_is_masked(self, runner, workspace):
        """Test plain listing masks token values."""
        sign_in(runner)
        seed(
            workspace,
            current_session(workspace),
            TokenDraft(name="Alice", value="abcd1234wxyz", tag=Tag.TESTING),
        )

        result = runner.invoke(cli, ["list", "--format", "plain"])

        assert result.exit_code == 0
        assert "Alice" in result.output
        assert "abcd••••••••wxyz" in result.output
        assert "abcd1234wxyz" not in result.output
        assert "1 tokens" in result.output

    def test_reveal(self, runner, workspace):
        sign_in(runner)
        [token] = seed(
            workspace,
            current_session(workspace),
            TokenDraft(name="Alice", value="abcd1234wxyz"),
        )

        result = runner.invoke(
            cli, ["list", "--format", "plain", "--reveal", token.id]
        )
        assert "abcd1234wxyz" in result.output

    def test_filters(self, runner, workspace):
        sign_in(runner)
        seed(
            workspace,
            current_session(workspace),
            TokenDraft(name="Alice", value="aaaa1111aaaa"),
            TokenDraft(name="Bob", value="bbbb2222bbbb"),
        )

        result = runner.invoke(cli, ["list", "--format", "plain", "--search", "bob"])

        assert "Bob" in result.output
        assert "Alice" not in result.output
        assert "Showing 1 of 2 tokens" in result.output

    def test_no_results(self, runner, workspace):
        sign_in(runner)
        seed(workspace, current_session(workspace), TokenDraft(name="A", value="v"))
        result = runner.invoke(cli, ["list", "--search", "zzz"])
        assert "No tokens found matching your filters" in result.output


class TestTokenCommands:
    def test_add(self, runner, workspace):
        sign_in(runner)
        result = runner.invoke(
            cli, ["add", "Alice", "--value", "abc123", "--tag", "testing"]
        )

        assert result.exit_code == 0
        assert "Token added successfully" in result.output
        [token] = LocalGateway(current_session(workspace), workspace).list_tokens()
        assert token.tag == Tag.TESTING

    def test_admin_add_gets_forced_tag(self, runner, workspace):
        """Test admins get the forced tag and a notice."""
        sign_in(runner, role="admin")
        result = runner.invoke(
            cli, ["add", "Alice", "--value", "abc123", "--tag", "personal"]
        )

        assert result.exit_code == 0
        assert "auto-assigned" in result.output
        [token] = LocalGateway(current_session(workspace), workspace).list_tokens()
        assert token.tag == Tag.BANTI

    def test_add_duplicate_fails(self, runner, workspace):
        sign_in(runner)
        seed(workspace, current_session(workspace), TokenDraft(name="A", value="abc"))
        result = runner.invoke(cli, ["add", "Alice", "--value", "abc"])

        assert result.exit_code == 1
        assert "Token already exists" in result.output

    def test_edit(self, runner, workspace):
        """Test edit keeps fields that were not given."""
        sign_in(runner)
        [token] = seed(
            workspace, current_session(workspace), TokenDraft(name="A", value="abc")
        )
        result = runner.invoke(cli, ["edit", token.id, "--name", "Renamed"])

        assert result.exit_code == 0
        assert "Token updated successfully" in result.output
        [updated] = LocalGateway(current_session(workspace), workspace).list_tokens()
        assert updated.name == "Renamed"
        assert updated.created_at == token.created_at

    def test_edit_unknown(self, runner, workspace):
        sign_in(runner)
        result = runner.invoke(cli, ["edit", "missing", "--name", "x"])
        assert result.exit_code == 1
        assert "Token not found" in result.output

    def test_delete(self, runner, workspace):
        sign_in(runner)
        [token] = seed(
            workspace, current_session(workspace), TokenDraft(name="A", value="abc")
        )
        result = runner.invoke(cli, ["delete", token.id, "--yes"])

        assert result.exit_code == 0
        assert "Token deleted successfully" in result.output

    def test_admin_delete_denied(self, runner, workspace):
        """Test admin delete is refused before any gateway call."""
        sign_in(runner, role="admin")
        [token] = seed(
            workspace, current_session(workspace), TokenDraft(name="A", value="abc")
        )
        result = runner.invoke(cli, ["delete", token.id])

        assert result.exit_code == 1
        assert "Only Super Admin can delete tokens" in result.output
        gateway = LocalGateway(current_session(workspace), workspace)
        assert len(gateway.list_tokens()) == 1


class TestBulkCommands:
    def test_bulk_tag_all_visible(self, runner, workspace):
        """Test bulk tag over the whole filtered view."""
        sign_in(runner)
        seed(
            workspace,
            current_session(workspace),
            TokenDraft(name="A", value="aaa"),
            TokenDraft(name="B", value="bbb"),
        )

        result = runner.invoke(cli, ["bulk", "tag", "staging", "--all-visible"])

        assert result.exit_code == 0
        assert "Bulk tag update complete!" in result.output
        tokens = LocalGateway(current_session(workspace), workspace).list_tokens()
        assert {t.tag for t in tokens} == {Tag.STAGING}

    def test_bulk_delete_by_id(self, runner, workspace):
        sign_in(runner)
        first, second = seed(
            workspace,
            current_session(workspace),
            TokenDraft(name="A", value="aaa"),
            TokenDraft(name="B", value="bbb"),
        )

        result = runner.invoke(cli, ["bulk", "delete", "--id", first.id, "--yes"])

        assert result.exit_code == 0
        remaining = LocalGateway(current_session(workspace), workspace).list_tokens()
        assert [t.id for t in remaining] == [second.id]

    def test_bulk_without_targets(self, runner, workspace):
        sign_in(runner)
        result = runner.invoke(cli, ["bulk", "date", "2025-01-01"])
        assert result.exit_code == 1
        assert "No tokens selected" in result.output

    def test_delete_matching(self, runner, workspace):
        """Test repeated pasted values delete the token once."""
        sign_in(runner)
        seed(
            workspace,
            current_session(workspace),
            TokenDraft(name="A", value="XYZ999"),
            TokenDraft(name="B", value="keep-me"),
        )
        source = workspace / "paste.txt"
        source.write_text("xyz999\nxyz999\n")

        result = runner.invoke(cli, ["delete-matching", str(source), "--yes"])

        assert result.exit_code == 0
        assert "Found 1 matching tokens" in result.output
        remaining = LocalGateway(current_session(workspace), workspace).list_tokens()
        assert [t.value for t in remaining] == ["keep-me"]


class TestTransferCommands:
    def test_import_messages_dry_run(self, runner, workspace):
        """Test dry run previews without creating tokens."""
        sign_in(runner)
        source = workspace / "chat.txt"
        source.write_text(
            "[11/21/2025 10:04 AM] Alice: abcdef123456\n"
            "Messages are end-to-end encrypted\n"
            "[11/21/2025 10:05 AM] Bob: ghijkl789012\n"
        )

        result = runner.invoke(cli, ["import-messages", str(source), "--dry-run"])

        assert result.exit_code == 0
        assert "Found 2 tokens" in result.output
        assert "Alice" in result.output
        assert LocalGateway(current_session(workspace), workspace).list_tokens() == []

    def test_import_messages(self, runner, workspace):
        sign_in(runner)
        source = workspace / "chat.txt"
        source.write_text("[11/21/2025 10:04 AM] Alice: abcdef123456\n")

        result = runner.invoke(
            cli, ["import-messages", str(source), "--tag", "testing"]
        )

        assert result.exit_code == 0
        assert "Import complete!" in result.output
        [token] = LocalGateway(current_session(workspace), workspace).list_tokens()
        assert token.name == "Alice"
        assert token.tag == Tag.TESTING

    def test_export_json_to_stdout(self, runner, workspace):
        sign_in(runner)
        seed(workspace, current_session(workspace), TokenDraft(name="A", value="abc"))

        result = runner.invoke(cli, ["export", "--format", "json", "-o", "-"])

        assert result.exit_code == 0
        assert '"value": "abc"' in result.output

    def test_export_csv_file(self, runner, workspace):
        """Test CSV export is written with BOM and CRLF intact."""
        sign_in(runner)
        seed(workspace, current_session(workspace), TokenDraft(name="A", value="abc"))
        target = workspace / "out.csv"

        result = runner.invoke(cli, ["export", "-o", str(target)])

        assert result.exit_code == 0
        assert "Exported 1 tokens to CSV" in result.output
        with open(target, encoding="utf-8", newline="") as f:
            data = f.read()
        assert data.startswith("\ufeffName,Token,Tag,Added On\r\n")

    def test_import_json(self, runner, workspace):
        sign_in(runner)
        source = workspace / "backup.json"
        source.write_text(
            json.dumps([{"name": "A", "value": "aaa"}, {"name": "B", "token": "bbb"}])
        )

        result = runner.invoke(cli, ["import", str(source), "--yes"])

        assert result.exit_code == 0
        tokens = LocalGateway(current_session(workspace), workspace).list_tokens()
        assert sorted(t.value for t in tokens) == ["aaa", "bbb"]

    def test_import_invalid_file(self, runner, workspace):
        sign_in(runner)
        source = workspace / "backup.json"
        source.write_text('{"tokens": []}')

        result = runner.invoke(cli, ["import", str(source), "--yes"])

        assert result.exit_code == 1
        assert "Failed to import tokens" in result.output


class TestConfigCommands:
    def test_show_defaults(self, runner, workspace):
        result = runner.invoke(cli, ["config", "show"])
        assert result.exit_code == 0
        assert "http://localhost:3000" in result.output

    def test_set_value(self, runner, workspace):
        result = runner.invoke(cli, ["config", "set", "http.timeout", "5"])

        assert result.exit_code == 0
        assert factory.get_config()["http"]["timeout"] == 5.0

    def test_set_unknown_gateway(self, runner, workspace):
        result = runner.invoke(cli, ["config", "set", "gateway", "ftp"])
        assert result.exit_code == 1
        assert "Unknown gateway" in result.output
