"""
CLI interface tests for flake-locker.
Tests the command-line interface and exit codes.
"""

import json

from click.testing import CliRunner

from flake_locker.cli_config import get_config
from flake_locker.main import EXIT_DUPLICATES, EXIT_ERROR, EXIT_OK, check, cli


class TestCLIBasics:
    """Test basic CLI functionality."""

    def test_cli_help(self):
        """Test CLI help message."""
        runner = CliRunner()
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        assert "flake-locker" in result.output.lower()

    def test_cli_version(self):
        """Test CLI version display."""
        runner = CliRunner()
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_check_version(self):
        """Test the standalone command's version flag."""
        runner = CliRunner()
        result = runner.invoke(check, ["--version"])

        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_info_command(self):
        """Test the info command."""
        runner = CliRunner()
        result = runner.invoke(cli, ["info"])

        assert result.exit_code == 0
        assert "flake-locker" in result.output.lower()
        assert "Exit Codes" in result.output


class TestCheckCommand:
    """Test the check command."""

    def test_duplicates_found(self, sample_flake_lock):
        """Duplicates are listed one group per line and exit 1."""
        runner = CliRunner()
        result = runner.invoke(cli, ["check", str(sample_flake_lock)])

        assert result.exit_code == EXIT_DUPLICATES
        assert "The following flake uris contained duplicate entries" in result.output
        assert "'github:user1/repo1': input1, input3" in result.output
        assert "'git:https://example.com/repo.git': input4, input5" in result.output
        assert "Duplicate Inputs" in result.output

    def test_no_duplicates(self, clean_flake_lock):
        """Test a clean lock file exits 0."""
        runner = CliRunner()
        result = runner.invoke(cli, ["check", str(clean_flake_lock)])

        assert result.exit_code == EXIT_OK
        assert "No duplicate inputs found." in result.output

    def test_standalone_command(self, sample_flake_lock):
        """The locker entry point takes the path as its only argument."""
        runner = CliRunner()
        result = runner.invoke(check, [str(sample_flake_lock)])

        assert result.exit_code == EXIT_DUPLICATES
        assert "'github:user1/repo1': input1, input3" in result.output

    def test_default_path(self, sample_flake_lock, monkeypatch):
        """Without an argument ./flake.lock is linted."""
        monkeypatch.chdir(sample_flake_lock.parent)

        runner = CliRunner()
        result = runner.invoke(check, [])

        assert result.exit_code == EXIT_DUPLICATES
        assert "input1, input3" in result.output

    def test_nonexistent_file(self, temp_dir):
        """Test linting a non-existent file."""
        runner = CliRunner()
        result = runner.invoke(cli, ["check", str(temp_dir / "missing.lock")])

        assert result.exit_code == EXIT_ERROR
        assert "does not exist" in result.output.lower()
        assert "missing.lock" in result.output

    def test_malformed_file(self, temp_dir):
        """Malformed content exits 2 without any group listing."""
        path = temp_dir / "flake.lock"
        path.write_text('{"nodes": {"a": {"locked": ')

        runner = CliRunner()
        result = runner.invoke(cli, ["check", str(path)])

        assert result.exit_code == EXIT_ERROR
        assert "Invalid JSON" in result.output
        assert "The following flake uris" not in result.output
        assert "No duplicate inputs" not in result.output

    def test_unsupported_version(self, write_lock):
        """Test a lock file with an unsupported version."""
        path = write_lock({"a": {}}, version=6)

        runner = CliRunner()
        result = runner.invoke(cli, ["check", str(path)])

        assert result.exit_code == EXIT_ERROR
        assert "Unsupported flake.lock version: 6" in result.output

    def test_empty_sources_group(self, write_lock):
        """Unlocked nodes group together unless --ignore-unlocked is given."""
        path = write_lock({"root": {}, "orphan": {}})

        runner = CliRunner()
        result = runner.invoke(cli, ["check", str(path)])
        assert result.exit_code == EXIT_DUPLICATES
        assert "'<no locked source>': root, orphan" in result.output

        result = runner.invoke(cli, ["check", str(path), "--ignore-unlocked"])
        assert result.exit_code == EXIT_OK

    def test_include_revision(self, real_world_flake_lock):
        """Test --include-revision keeps only same-revision groups."""
        runner = CliRunner()
        result = runner.invoke(
            cli, ["check", str(real_world_flake_lock), "--include-revision"]
        )

        assert result.exit_code == EXIT_DUPLICATES
        assert "github:numtide/flake-utils" not in result.output
        assert (
            "'github:nixos/nixpkgs@4aa36568d413aca0ea84a1684d2d46f55dbabad7': "
            "nixpkgs, nixpkgs_3"
        ) in result.output

    def test_quiet(self, sample_flake_lock):
        """Quiet mode keeps the group lines and drops the summary."""
        runner = CliRunner()
        result = runner.invoke(cli, ["check", str(sample_flake_lock), "--quiet"])

        assert result.exit_code == EXIT_DUPLICATES
        assert "input1, input3" in result.output
        assert "Duplicate Inputs" not in result.output

    def test_json_output(self, sample_flake_lock):
        """Test JSON output on stdout."""
        runner = CliRunner()
        result = runner.invoke(
            cli, ["check", str(sample_flake_lock), "--output-format", "json"]
        )

        assert result.exit_code == EXIT_DUPLICATES
        data = json.loads(result.stdout)
        assert data["has_duplicates"] is True
        assert data["total_nodes"] == 5
        assert [d["uri"] for d in data["duplicates"]] == [
            "github:user1/repo1",
            "git:https://example.com/repo.git",
        ]
        assert data["duplicates"][0]["nodes"] == ["input1", "input3"]
        assert data["duplicates"][0]["source"]["owner"] == "user1"

    def test_json_output_file(self, clean_flake_lock, temp_dir):
        """Test JSON results written to a file."""
        output_file = temp_dir / "results.json"

        runner = CliRunner()
        result = runner.invoke(
            cli,
            [
                "check",
                str(clean_flake_lock),
                "--output-format",
                "json",
                "--output-file",
                str(output_file),
            ],
        )

        assert result.exit_code == EXIT_OK
        data = json.loads(output_file.read_text())
        assert data["duplicates"] == []
        assert data["has_duplicates"] is False

    def test_output_file_requires_json(self, sample_flake_lock, temp_dir):
        """Test --output-file without JSON format is a usage error."""
        runner = CliRunner()
        result = runner.invoke(
            cli,
            ["check", str(sample_flake_lock), "-o", str(temp_dir / "out.json")],
        )

        assert result.exit_code == 2
        assert "JSON format" in result.output

    def test_output_file_unwritable(self, sample_flake_lock, temp_dir):
        """An output file that cannot be written is an error, not a traceback."""
        runner = CliRunner()
        result = runner.invoke(
            cli,
            [
                "check",
                str(sample_flake_lock),
                "--output-format",
                "json",
                "-o",
                str(temp_dir / "nodir" / "out.json"),
            ],
        )

        assert result.exit_code == EXIT_ERROR
        assert isinstance(result.exception, SystemExit)
        assert "failed to write results" in result.output

    def test_bracketed_names(self, write_lock):
        """Square brackets in paths and node names do not break the report."""
        source = {"locked": {"type": "path", "path": "/srv/[/x]"}}
        path = write_lock({"[bold]x": source, "b": source})

        runner = CliRunner()
        result = runner.invoke(cli, ["check", str(path)])

        assert result.exit_code == EXIT_DUPLICATES
        assert isinstance(result.exception, SystemExit)
        assert "'path:/srv/[/x]': [bold]x, b" in result.output
        assert "Duplicate Inputs" in result.output

    def test_environment_override(self, real_world_flake_lock, monkeypatch):
        """Test configuration through environment variables."""
        monkeypatch.setenv("FLAKE_LOCKER_INCLUDE_REVISION", "true")

        runner = CliRunner()
        result = runner.invoke(cli, ["check", str(real_world_flake_lock)])

        assert result.exit_code == EXIT_DUPLICATES
        assert "github:numtide/flake-utils" not in result.output

    def test_config_file(self, write_lock, tmp_path):
        """Test configuration through a project config file."""
        (tmp_path / ".flake-locker.json").write_text(
            json.dumps({"lint": {"ignore_unlocked": True}})
        )
        path = write_lock({"root": {}, "orphan": {}})

        runner = CliRunner()
        result = runner.invoke(cli, ["check", str(path)])

        assert result.exit_code == EXIT_OK

    def test_yaml_config_file(self, sample_flake_lock, tmp_path):
        """Test a YAML config file selecting JSON output."""
        (tmp_path / ".flake-locker.yaml").write_text("lint:\n  output_format: json\n")

        runner = CliRunner()
        result = runner.invoke(cli, ["check", str(sample_flake_lock)])

        assert result.exit_code == EXIT_DUPLICATES
        assert json.loads(result.stdout)["total_nodes"] == 5

    def test_supported_versions_config(self, write_lock, tmp_path):
        """Supported versions from the config file reach the parser."""
        (tmp_path / ".flake-locker.json").write_text(
            json.dumps({"lock": {"supported_versions": [6, 7]}})
        )
        path = write_lock({"a": {"locked": {"type": "path", "path": "/a"}}}, version=6)

        runner = CliRunner()
        result = runner.invoke(cli, ["check", str(path)])

        assert result.exit_code == EXIT_OK

    def test_invalid_config_types(self, sample_flake_lock, tmp_path):
        """Badly typed config values fall back to defaults with a warning."""
        (tmp_path / ".flake-locker.json").write_text(
            json.dumps(
                {
                    "lint": {"include_revision": "yes"},
                    "lock": {"max_file_size_mb": "10", "supported_versions": "7"},
                    "logging": {"log_level": 10},
                }
            )
        )

        runner = CliRunner()
        result = runner.invoke(cli, ["check", str(sample_flake_lock)])

        assert result.exit_code == EXIT_DUPLICATES
        assert isinstance(result.exception, SystemExit)
        assert "Configuration validation errors" in result.output
        assert "lint.include_revision must be true or false" in result.output
        assert "lock.max_file_size_mb must be a positive integer" in result.output
        assert "logging.log_level must be one of" in result.output

        config = get_config()
        assert config.lint.include_revision is False
        assert config.lock.max_file_size_mb == 10
        assert config.lock.supported_versions == [7]
        assert config.logging.log_level == "WARNING"

    def test_log_format_config(self, write_lock, tmp_path):
        """The configured log format applies to warnings on stderr."""
        (tmp_path / ".flake-locker.json").write_text(
            json.dumps({"logging": {"log_format": "LOCKER %(levelname)s %(message)s"}})
        )
        source = {"locked": {"type": "fossil", "url": "https://f"}}
        path = write_lock({"a": source})

        runner = CliRunner()
        result = runner.invoke(cli, ["check", str(path)])

        assert result.exit_code == EXIT_OK
        assert "LOCKER WARNING Unknown source type 'fossil'" in result.output


class TestBatchCommand:
    """Test the batch command."""

    def test_batch_mixed_results(self, sample_flake_lock, clean_flake_lock):
        """One file with duplicates makes the batch exit 1."""
        runner = CliRunner()
        result = runner.invoke(
            cli, ["batch", str(sample_flake_lock), str(clean_flake_lock)]
        )

        assert result.exit_code == EXIT_DUPLICATES
        assert "Files checked: 2" in result.output
        assert "Files with duplicates: 1" in result.output
        assert "Failed files: 0" in result.output

    def test_batch_with_failure(self, sample_flake_lock, temp_dir):
        """A file that cannot be read makes the batch exit 2."""
        runner = CliRunner()
        result = runner.invoke(
            cli, ["batch", str(sample_flake_lock), str(temp_dir / "missing.lock")]
        )

        assert result.exit_code == EXIT_ERROR
        assert "Failed files: 1" in result.output

    def test_batch_json(self, sample_flake_lock, clean_flake_lock):
        """JSON batch output is a single document covering every file."""
        runner = CliRunner()
        result = runner.invoke(
            cli,
            [
                "batch",
                str(sample_flake_lock),
                str(clean_flake_lock),
                "--output-format",
                "json",
            ],
        )

        assert result.exit_code == EXIT_DUPLICATES
        data = json.loads(result.output)
        assert data["files_checked"] == 2
        assert data["files_with_duplicates"] == 1
        assert data["failed_files"] == 0
        assert [entry["file_path"] for entry in data["results"]] == [
            str(sample_flake_lock),
            str(clean_flake_lock),
        ]
        assert data["results"][0]["duplicates"][0]["nodes"] == ["input1", "input3"]

    def test_batch_json_with_failure(self, sample_flake_lock, temp_dir):
        """Failed files appear in the JSON document as error entries."""
        missing = temp_dir / "missing.lock"

        runner = CliRunner()
        result = runner.invoke(
            cli,
            ["batch", str(missing), str(sample_flake_lock), "--output-format", "json"],
        )

        assert result.exit_code == EXIT_ERROR
        data = json.loads(result.output)
        assert data["failed_files"] == 1
        assert data["results"][0]["error_type"] == "IoError"
        assert "File does not exist" in data["results"][0]["error"]
        assert data["results"][1]["has_duplicates"] is True

    def test_batch_requires_files(self):
        """Test batch without any file."""
        runner = CliRunner()
        result = runner.invoke(cli, ["batch"])

        assert result.exit_code != 0


class TestConfigCommands:
    """Test configuration management commands."""

    def test_config_init(self, temp_dir):
        """Test creating a sample config file."""
        path = temp_dir / "config.json"

        runner = CliRunner()
        result = runner.invoke(cli, ["config", "init", "--path", str(path)])

        assert result.exit_code == 0
        data = json.loads(path.read_text())
        assert data["lint"]["include_revision"] is False
        assert data["lock"]["supported_versions"] == [7]

    def test_config_init_existing(self, temp_dir):
        """Existing files are kept unless --force is given."""
        path = temp_dir / "config.json"
        path.write_text("{}")

        runner = CliRunner()
        result = runner.invoke(cli, ["config", "init", "--path", str(path)])
        assert "already exists" in result.output
        assert path.read_text() == "{}"

        result = runner.invoke(cli, ["config", "init", "--path", str(path), "--force"])
        assert result.exit_code == 0
        assert "lint" in json.loads(path.read_text())

    def test_config_show(self):
        """Test showing the current configuration."""
        runner = CliRunner()
        result = runner.invoke(cli, ["config", "show"])

        assert result.exit_code == 0
        assert "Include Revision: False" in result.output
        assert "Supported Versions: 7" in result.output
