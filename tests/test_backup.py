# ABOUTME: Tests for backup utilities.
# ABOUTME: Covers create_backup labels and cleanup_old_backups retention.
import re

import pytest

from agentctl.utils.backup import DEFAULT_MAX_BACKUPS, cleanup_old_backups, create_backup, list_backups


class TestCreateBackup:
    """Tests for create_backup function."""

    def test_backup_preserves_content(self, tmp_path):
        """Test that backup preserves file content."""
        source = tmp_path / "config.json"
        original_content = '{"mcpServers": {"fs": {"command": "npx"}}}'
        source.write_text(original_content)

        backup_path = create_backup(source, tmp_path / "backups")

        assert backup_path.read_text() == original_content

    def test_label_prefix(self, tmp_path):
        """Test that an explicit label names the backup."""
        source = tmp_path / "settings.json"
        source.write_text("{}")

        backup_path = create_backup(source, tmp_path / "backups", label="gemini-workspace")

        assert re.match(r"^gemini-workspace_\d{8}_\d{6}_\d{6}\.json$", backup_path.name)

    def test_label_from_dotfile(self, tmp_path):
        """Test that ~/.claude.json backs up as claude_*."""
        source = tmp_path / ".claude.json"
        source.write_text("{}")

        backup_path = create_backup(source, tmp_path / "backups")

        assert backup_path.name.startswith("claude_")

    def test_toml_extension(self, tmp_path):
        source = tmp_path / "config.toml"
        source.write_text("[mcp_servers]")

        backup_path = create_backup(source, tmp_path / "backups", label="codex")

        assert backup_path.suffix == ".toml"

    def test_creates_backup_dir_if_missing(self, tmp_path):
        source = tmp_path / "test.json"
        source.write_text("{}")
        backup_dir = tmp_path / "new_backups" / "nested"

        create_backup(source, backup_dir)

        assert backup_dir.is_dir()

    def test_source_file_not_found(self, tmp_path):
        """Test that FileNotFoundError is raised for missing source."""
        with pytest.raises(FileNotFoundError):
            create_backup(tmp_path / "nonexistent.json", tmp_path / "backups")

    def test_repeated_backups_are_pruned(self, tmp_path):
        """Test repeated backups of one label never exceed the retention limit."""
        source = tmp_path / "mcp.json"
        source.write_text("{}")
        backup_dir = tmp_path / "backups"

        for _ in range(DEFAULT_MAX_BACKUPS + 3):
            create_backup(source, backup_dir, label="cursor")

        assert len(list(backup_dir.glob("cursor_*.json"))) <= DEFAULT_MAX_BACKUPS


class TestCleanupOldBackups:
    """Tests for cleanup_old_backups function."""

    def test_returns_empty_list_for_nonexistent_dir(self, tmp_path):
        assert cleanup_old_backups(tmp_path / "nonexistent") == []

    def test_keeps_newest_backups(self, tmp_path):
        """Test that the newest backups are kept, oldest deleted."""
        backup_dir = tmp_path / "backups"
        backup_dir.mkdir()
        for hour in range(10, 17):
            (backup_dir / f"claude_20260101_{hour}0000_000000.json").write_text("{}")

        deleted = cleanup_old_backups(backup_dir)

        assert sorted(p.name for p in deleted) == [
            "claude_20260101_100000_000000.json",
            "claude_20260101_110000_000000.json",
        ]
        assert len(list(backup_dir.iterdir())) == 5

    def test_labels_counted_separately(self, tmp_path):
        """Test that retention applies per label."""
        backup_dir = tmp_path / "backups"
        backup_dir.mkdir()
        for i in range(6):
            (backup_dir / f"claude_20260101_00000{i}_000000.json").write_text("{}")
            (backup_dir / f"cursor_20260101_00000{i}_000000.json").write_text("{}")

        deleted = cleanup_old_backups(backup_dir)

        assert len(deleted) == 2
        assert len(list(backup_dir.glob("claude_*"))) == 5
        assert len(list(backup_dir.glob("cursor_*"))) == 5

    def test_ignores_unrelated_files(self, tmp_path):
        backup_dir = tmp_path / "backups"
        backup_dir.mkdir()
        (backup_dir / "notes.txt").write_text("keep me")

        assert cleanup_old_backups(backup_dir, max_backups_per_label=0) == []
        assert (backup_dir / "notes.txt").exists()


def test_list_backups_groups_newest_first(tmp_path):
    backup_dir = tmp_path / "backups"
    backup_dir.mkdir()
    for stamp in ("20260101_090000_000000", "20260102_090000_000000"):
        (backup_dir / f"zed_{stamp}.json").write_text("{}")
    (backup_dir / "mcp_settings_20260101_090000_000000.json").write_text("{}")

    grouped = list_backups(backup_dir)

    assert [p.name for p in grouped["zed"]] == [
        "zed_20260102_090000_000000.json",
        "zed_20260101_090000_000000.json",
    ]
    assert len(grouped["mcp_settings"]) == 1
