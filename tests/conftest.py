"""Shared test fixtures and configuration."""

import subprocess
import tempfile
from pathlib import Path

import pytest
import structlog

from gitpanel.git import open_repository

APP_LINES = [f"line {n}" for n in range(1, 31)]


def run(repo: Path, *args: str) -> str:
    """Run a git command in repo and return stdout."""
    result = subprocess.run(
        ["git", *args], cwd=repo, capture_output=True, text=True, check=True
    )
    return result.stdout


def write_lines(path: Path, lines: list[str]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(lines) + "\n")


@pytest.fixture(autouse=True)
def isolated_home(monkeypatch, tmp_path):
    """Keep user-level config out of the tests."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GITPANEL_HOME", str(home / ".gitpanel"))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    for name in ("GITPANEL_STATUS_TTL_MS", "GITPANEL_WATCH_ENABLED", "GITPANEL_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    return home


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo configure_logging() calls made by CLI tests."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def git():
    """Helper running git commands: git(repo, "status")."""
    return run


@pytest.fixture
def temp_repo(temp_dir):
    """Create a temporary git repository with one commit on 'main'.

    Contains README.md and src/app.py (30 numbered lines).
    """
    repo_dir = temp_dir / "test_repo"
    repo_dir.mkdir()

    run(repo_dir, "init", "-q")
    run(repo_dir, "symbolic-ref", "HEAD", "refs/heads/main")
    run(repo_dir, "config", "user.email", "test@example.com")
    run(repo_dir, "config", "user.name", "Test User")
    run(repo_dir, "config", "commit.gpgsign", "false")
    run(repo_dir, "config", "core.autocrlf", "false")

    (repo_dir / "README.md").write_text("# Test Repo\n")
    write_lines(repo_dir / "src" / "app.py", APP_LINES)
    run(repo_dir, "add", "README.md", "src/app.py")
    run(repo_dir, "commit", "-q", "-m", "Initial commit")

    return repo_dir.resolve()


@pytest.fixture
def empty_repo(temp_dir):
    """Create a git repository without any commit."""
    repo_dir = temp_dir / "empty_repo"
    repo_dir.mkdir()
    run(repo_dir, "init", "-q")
    run(repo_dir, "symbolic-ref", "HEAD", "refs/heads/main")
    run(repo_dir, "config", "user.email", "test@example.com")
    run(repo_dir, "config", "user.name", "Test User")
    return repo_dir.resolve()


@pytest.fixture
def handle(temp_repo):
    """RepositoryHandle of temp_repo."""
    return open_repository(temp_repo)


@pytest.fixture
def two_hunk_change(temp_repo):
    """Modify src/app.py in two places far enough apart to form two hunks."""
    lines = list(APP_LINES)
    lines[1] = "line 2 changed"
    lines[27] = "line 28 changed"
    write_lines(temp_repo / "src" / "app.py", lines)
    return temp_repo


@pytest.fixture
def sample_diff():
    """Sample unified diff output with two files."""
    return """diff --git a/src/main.py b/src/main.py
index 1234567..abcdefg 100644
--- a/src/main.py
+++ b/src/main.py
@@ -10,6 +10,8 @@ def main():
     print("Hello")
+    print("World")
+    print("!")
     return 0
@@ -20,3 +22,5 @@ def helper():
     pass
+    # New comment
+    return True
diff --git a/tests/test_main.py b/tests/test_main.py
new file mode 100644
index 0000000..1234567
--- /dev/null
+++ b/tests/test_main.py
@@ -0,0 +1,3 @@
+import pytest
+
+def test_main():
"""
