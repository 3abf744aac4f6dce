"""
Shared fixtures for flake-locker tests.
"""

import json
import os
from pathlib import Path

import pytest

from flake_locker.cli_config import reset_config

FIXTURES_DIR = Path(__file__).parent / "fixtures"

# Five inputs, two duplicated URIs.
SAMPLE_FLAKE_LOCK = {
    "nodes": {
        "input1": {
            "locked": {"type": "github", "owner": "user1", "repo": "repo1"}
        },
        "input2": {
            "locked": {"type": "github", "owner": "user2", "repo": "repo2"}
        },
        "input3": {
            "locked": {"type": "github", "owner": "user1", "repo": "repo1"}
        },
        "input4": {
            "locked": {"type": "git", "url": "https://example.com/repo.git"}
        },
        "input5": {
            "locked": {"type": "git", "url": "https://example.com/repo.git"}
        },
    },
    "version": 7,
    "root": ".",
}


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep user config files and FLAKE_LOCKER_* variables out of tests."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)
    for key in list(os.environ):
        if key.startswith("FLAKE_LOCKER_"):
            monkeypatch.delenv(key)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def temp_dir(tmp_path):
    """Working directory for files created by a test."""
    work = tmp_path / "work"
    work.mkdir()
    return work


@pytest.fixture
def write_lock(temp_dir):
    """Write a flake.lock from node data and return its path."""

    def _write(nodes, version=7, root="root", name="flake.lock"):
        path = temp_dir / name
        path.write_text(
            json.dumps({"nodes": nodes, "root": root, "version": version}, indent=2)
        )
        return path

    return _write


@pytest.fixture
def sample_flake_lock(temp_dir):
    """Lock file with two duplicated URIs."""
    path = temp_dir / "flake.lock"
    path.write_text(json.dumps(SAMPLE_FLAKE_LOCK, indent=2))
    return path


@pytest.fixture
def clean_flake_lock(write_lock):
    """Lock file without duplicates."""
    return write_lock(
        {
            "nixpkgs": {
                "locked": {
                    "type": "github",
                    "owner": "NixOS",
                    "repo": "nixpkgs",
                    "rev": "4aa36568d413aca0ea84a1684d2d46f55dbabad7",
                }
            },
            "flake-utils": {
                "locked": {
                    "type": "github",
                    "owner": "numtide",
                    "repo": "flake-utils",
                }
            },
            "root": {
                "inputs": {"nixpkgs": "nixpkgs", "flake-utils": "flake-utils"}
            },
        },
        name="clean.lock",
    )


@pytest.fixture
def real_world_flake_lock():
    """A realistic lock file with four duplicated URIs."""
    return FIXTURES_DIR / "flake-lock.json"
