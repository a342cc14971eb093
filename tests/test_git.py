"""Tests for gitpanel.git module."""

import shutil

import pytest

from gitpanel.exceptions import DirtyWorkingTreeError, GitError
from gitpanel.git import (
    add_worktree,
    checkout_branch,
    create_branch,
    delete_untracked_path,
    diff_cache_key,
    fetch,
    get_diff,
    get_head,
    get_status,
    is_untracked,
    list_branches,
    list_worktrees,
    open_repository,
    parse_porcelain_v2,
    parse_worktree_list,
    prune_worktrees,
    pull,
    push,
    remove_worktree,
    run_git,
    stage_path,
    track_path,
    unstage_path,
)
from gitpanel.hunks import parse_diff_hunks
from gitpanel.models import CheckoutTarget, CheckoutTargetKind, DiffKind, StatusKind


def _kinds(status):
    return {entry.path: entry.status for entry in status.files}


# ============================================================================
# Runner Tests
# ============================================================================


class TestRunGit:
    """Tests for run_git and open_repository."""

    def test_returns_stripped_stdout(self, temp_repo):
        """Test normal output handling."""
        assert run_git(["rev-parse", "--abbrev-ref", "HEAD"], temp_repo) == "main"

    def test_failure_raises_git_error(self, temp_repo):
        """Test that a non-zero exit becomes GitError with stderr."""
        with pytest.raises(GitError, match="Git command failed"):
            run_git(["rev-parse", "--verify", "no-such-ref"], temp_repo)

    def test_ok_codes(self, temp_repo):
        """Test accepting additional exit codes."""
        output = run_git(
            ["rev-parse", "-q", "--verify", "no-such-ref"], temp_repo, ok_codes=(0, 1)
        )
        assert output == ""

    def test_open_repository_from_subdirectory(self, temp_repo):
        """Test that any path inside the tree resolves to the root."""
        handle = open_repository(temp_repo / "src")

        assert handle.worktree_path == temp_repo
        assert handle.git_dir == temp_repo / ".git"
        assert handle.name == temp_repo.name
        assert len(handle.repo_id) == 16

    def test_repo_id_is_stable(self, temp_repo):
        """Test that reopening gives the same id."""
        assert open_repository(temp_repo).repo_id == open_repository(temp_repo / "src").repo_id

    def test_open_non_repository_raises(self, temp_dir):
        """Test that plain directories are rejected."""
        plain = temp_dir / "plain"
        plain.mkdir()

        with pytest.raises(GitError, match="Not a git working tree"):
            open_repository(plain)

    def test_open_missing_path_raises(self, temp_dir):
        """Test that missing paths are rejected."""
        with pytest.raises(GitError, match="Not a directory"):
            open_repository(temp_dir / "missing")


# ============================================================================
# Status Tests
# ============================================================================


class TestParsePorcelainV2:
    """Tests for parse_porcelain_v2 function."""

    def test_parses_all_record_kinds(self):
        """Test ordinary, renamed, unmerged and untracked records."""
        output = "\0".join(
            [
                "# branch.oid 1234567890abcdef1234567890abcdef12345678",
                "# branch.head main",
                "# branch.upstream origin/main",
                "1 .M N... 100644 100644 100644 aaa aaa src/app.py",
                "1 M. N... 100644 100644 100644 aaa bbb staged.py",
                "1 MM N... 100644 100644 100644 aaa bbb both.py",
                "2 R. N... 100644 100644 100644 aaa aaa R100 new name.py",
                "old name.py",
                "u UU N... 100644 100644 100644 100644 a b c conflict.py",
                "? notes/todo.txt",
                "",
            ]
        )

        head, entries = parse_porcelain_v2(output)

        assert head.branch_name == "main"
        assert head.oid_short == "1234567"
        assert [(e.path, e.status) for e in entries] == [
            ("src/app.py", StatusKind.UNSTAGED),
            ("staged.py", StatusKind.STAGED),
            ("both.py", StatusKind.BOTH),
            ("new name.py", StatusKind.STAGED),
            ("conflict.py", StatusKind.CONFLICTED),
            ("notes/todo.txt", StatusKind.UNTRACKED),
        ]
        assert entries[3].old_path == "old name.py"

    def test_detached_and_initial(self):
        """Test the special branch header values."""
        head, entries = parse_porcelain_v2("# branch.oid (initial)\0# branch.head (detached)\0")

        assert head.branch_name == "HEAD (detached)"
        assert head.oid_short == ""
        assert entries == []


class TestGetStatus:
    """Tests for get_status against a real repository."""

    def test_clean_repository(self, handle):
        """Test a repository without changes."""
        status = get_status(handle)

        assert status.is_clean()
        assert status.head.branch_name == "main"
        assert len(status.head.oid_short) == 7
        assert status.repo_id == handle.repo_id

    def test_status_kinds(self, handle, git):
        """Test that each kind of change is classified."""
        root = handle.worktree_path
        (root / "README.md").write_text("# Changed\n")
        (root / "staged.txt").write_text("staged\n")
        git(root, "add", "staged.txt")
        (root / "src" / "app.py").write_text("edited\n")
        git(root, "add", "src/app.py")
        (root / "src" / "app.py").write_text("edited twice\n")
        (root / "docs").mkdir()
        (root / "docs" / "new.md").write_text("new\n")

        status = get_status(handle)

        assert _kinds(status) == {
            "README.md": StatusKind.UNSTAGED,
            "staged.txt": StatusKind.STAGED,
            "src/app.py": StatusKind.BOTH,
            "docs/new.md": StatusKind.UNTRACKED,
        }
        assert status.counts.staged == 2
        assert status.counts.unstaged == 2
        assert status.counts.untracked == 1

    def test_rename_reports_old_path(self, handle, git):
        """Test that staged renames carry their source path."""
        git(handle.worktree_path, "mv", "README.md", "GUIDE.md")

        entry = get_status(handle).files[0]

        assert entry.path == "GUIDE.md"
        assert entry.old_path == "README.md"
        assert entry.status == StatusKind.STAGED

    def test_unborn_branch(self, empty_repo):
        """Test status and head before the first commit."""
        handle = open_repository(empty_repo)
        (empty_repo / "a.txt").write_text("a\n")

        status = get_status(handle)

        assert status.head.branch_name == "main"
        assert status.head.oid_short == ""
        assert _kinds(status) == {"a.txt": StatusKind.UNTRACKED}
        assert get_head(handle).oid_short == ""


# ============================================================================
# Diff Tests
# ============================================================================


class TestGetDiff:
    """Tests for get_diff and diff_cache_key."""

    def test_unstaged_diff(self, handle, two_hunk_change):
        """Test diffing the working tree against the index."""
        diff = get_diff(handle, "src/app.py", DiffKind.UNSTAGED)

        assert diff.startswith("diff --git a/src/app.py b/src/app.py\n")
        assert diff.endswith("\n")
        assert len(parse_diff_hunks(diff, "src/app.py", DiffKind.UNSTAGED)) == 2

    def test_staged_diff(self, handle, two_hunk_change, git):
        """Test diffing the index against HEAD."""
        git(handle.worktree_path, "add", "src/app.py")

        assert get_diff(handle, "src/app.py", DiffKind.UNSTAGED) == ""
        assert "+line 2 changed" in get_diff(handle, "src/app.py", DiffKind.STAGED)

    def test_untracked_file_diffs_against_dev_null(self, handle):
        """Test that untracked content can be split into hunks."""
        (handle.worktree_path / "new.txt").write_text("a\nb\n")

        assert is_untracked(handle, "new.txt")
        diff = get_diff(handle, "new.txt", DiffKind.UNSTAGED)
        hunks = parse_diff_hunks(diff, "new.txt", DiffKind.UNSTAGED)

        assert len(hunks) == 1
        assert hunks[0].path == "new.txt"
        assert hunks[0].lines == ["+a", "+b"]

    def test_tracked_file_is_not_untracked(self, handle):
        """Test is_untracked for indexed and missing paths."""
        assert not is_untracked(handle, "README.md")
        assert not is_untracked(handle, "missing.txt")

    def test_cache_key_changes_with_content(self, handle):
        """Test that the key follows working tree content."""
        before = diff_cache_key(handle, "README.md", DiffKind.UNSTAGED)
        (handle.worktree_path / "README.md").write_text("# Edited\n")
        after = diff_cache_key(handle, "README.md", DiffKind.UNSTAGED)

        assert before != after
        assert after.startswith(f"{handle.repo_id}:unstaged:README.md:")

    def test_cache_key_differs_by_kind(self, handle):
        """Test that staged and unstaged keys never collide."""
        assert diff_cache_key(handle, "README.md", DiffKind.STAGED) != diff_cache_key(
            handle, "README.md", DiffKind.UNSTAGED
        )

    def test_cache_key_changes_with_mode(self, handle):
        """Test that a chmod alone gives a new key."""
        readme = handle.worktree_path / "README.md"
        before = diff_cache_key(handle, "README.md", DiffKind.UNSTAGED)
        readme.chmod(0o755)
        after = diff_cache_key(handle, "README.md", DiffKind.UNSTAGED)

        assert before != after
        assert ":100644:" in before
        assert ":100755:" in after

    def test_staged_cache_key_changes_with_mode(self, handle, git):
        """Test that a staged mode change gives a new key."""
        before = diff_cache_key(handle, "README.md", DiffKind.STAGED)
        git(handle.worktree_path, "update-index", "--chmod=+x", "README.md")
        after = diff_cache_key(handle, "README.md", DiffKind.STAGED)

        assert before != after
        assert after.split(":")[-4] == "100644"
        assert after.split(":")[-2] == "100755"

    def test_cache_key_without_head(self, empty_repo):
        """Test that an unborn branch yields a missing HEAD side."""
        handle = open_repository(empty_repo)
        (empty_repo / "new.txt").write_text("new\n")

        key = diff_cache_key(handle, "new.txt", DiffKind.STAGED)

        assert key == f"{handle.repo_id}:staged:new.txt:-:-"


# ============================================================================
# Index Operation Tests
# ============================================================================


class TestIndexOperations:
    """Tests for stage, unstage, track and delete."""

    def test_stage_and_unstage(self, handle):
        """Test moving a change in and out of the index."""
        (handle.worktree_path / "README.md").write_text("# Edited\n")

        stage_path(handle, "README.md")
        assert _kinds(get_status(handle)) == {"README.md": StatusKind.STAGED}

        unstage_path(handle, "README.md")
        assert _kinds(get_status(handle)) == {"README.md": StatusKind.UNSTAGED}

    def test_stage_deletion(self, handle):
        """Test that staging a removed file stages the deletion."""
        (handle.worktree_path / "README.md").unlink()

        stage_path(handle, "README.md")

        assert _kinds(get_status(handle)) == {"README.md": StatusKind.STAGED}

    def test_unstage_on_unborn_branch(self, empty_repo, git):
        """Test unstaging before the first commit."""
        handle = open_repository(empty_repo)
        (empty_repo / "a.txt").write_text("a\n")
        git(empty_repo, "add", "a.txt")

        unstage_path(handle, "a.txt")

        assert _kinds(get_status(handle)) == {"a.txt": StatusKind.UNTRACKED}

    def test_track_marks_intent_to_add(self, handle):
        """Test that tracked files leave the untracked bucket."""
        (handle.worktree_path / "new.txt").write_text("new\n")

        track_path(handle, "new.txt")

        assert _kinds(get_status(handle)) == {"new.txt": StatusKind.UNSTAGED}
        assert not is_untracked(handle, "new.txt")

    def test_delete_untracked_file_and_directory(self, handle):
        """Test removing untracked content."""
        root = handle.worktree_path
        (root / "scratch.txt").write_text("x\n")
        (root / "build" / "out").mkdir(parents=True)
        (root / "build" / "out" / "a.o").write_text("o\n")

        delete_untracked_path(handle, "scratch.txt")
        delete_untracked_path(handle, "build")

        assert not (root / "scratch.txt").exists()
        assert not (root / "build").exists()

    def test_delete_outside_worktree_raises(self, handle):
        """Test that paths escaping the tree are refused."""
        outside = handle.worktree_path.parent / "outside.txt"
        outside.write_text("keep\n")

        with pytest.raises(GitError):
            delete_untracked_path(handle, "../outside.txt")
        with pytest.raises(GitError):
            delete_untracked_path(handle, "src/../..")

        assert outside.exists()

    def test_delete_git_dir_raises(self, handle):
        """Test that repository metadata is never deleted."""
        with pytest.raises(GitError, match="Refusing"):
            delete_untracked_path(handle, ".git")
        assert handle.git_dir.exists()


# ============================================================================
# Branch Tests
# ============================================================================


class TestBranches:
    """Tests for branch and remote helpers."""

    def test_list_and_create_branch(self, handle):
        """Test creating a branch without switching to it."""
        assert create_branch(handle, " feature/x ") == "feature/x"

        branches = list_branches(handle)

        assert branches.current == "main"
        assert branches.locals == ["feature/x", "main"]
        assert branches.remotes == []

    def test_create_invalid_branch_raises(self, handle):
        """Test that git's ref name rules apply."""
        with pytest.raises(GitError):
            create_branch(handle, "bad..name")

    def test_checkout_local_branch(self, handle):
        """Test switching to another local branch."""
        create_branch(handle, "feature")

        head = checkout_branch(handle, CheckoutTarget(name="feature"))

        assert head.branch_name == "feature"
        assert list_branches(handle).current == "feature"

    def test_checkout_refuses_dirty_tree(self, handle):
        """Test that tracked modifications block checkout."""
        create_branch(handle, "feature")
        (handle.worktree_path / "README.md").write_text("# Dirty\n")

        with pytest.raises(DirtyWorkingTreeError):
            checkout_branch(handle, CheckoutTarget(name="feature"))

    def test_checkout_ignores_untracked_files(self, handle):
        """Test that untracked files do not block checkout."""
        create_branch(handle, "feature")
        (handle.worktree_path / "scratch.txt").write_text("x\n")

        head = checkout_branch(handle, CheckoutTarget(name="feature"))

        assert head.branch_name == "feature"

    def test_fetch_and_remote_checkout(self, handle, git, temp_dir):
        """Test fetching from a local remote and tracking one of its branches."""
        remote = temp_dir / "remote.git"
        git(temp_dir, "clone", "-q", "--bare", str(handle.worktree_path), str(remote))
        git(remote, "branch", "release")
        git(handle.worktree_path, "remote", "add", "origin", str(remote))

        assert fetch(handle) is True
        assert fetch(handle) is False
        assert "origin/release" in list_branches(handle).remotes

        head = checkout_branch(
            handle, CheckoutTarget(kind=CheckoutTargetKind.REMOTE, name="origin/release")
        )
        assert head.branch_name == "release"

    def test_pull_fast_forwards(self, handle, git, temp_dir):
        """Test pulling a commit pushed from another clone."""
        remote = temp_dir / "remote.git"
        other = temp_dir / "other"
        git(temp_dir, "clone", "-q", "--bare", str(handle.worktree_path), str(remote))
        git(temp_dir, "clone", "-q", str(remote), str(other))
        (other / "NEW.md").write_text("new\n")
        git(other, "add", "NEW.md")
        git(other, "config", "user.name", "Other")
        git(other, "config", "user.email", "other@example.com")
        git(other, "commit", "-q", "-m", "Remote change")
        git(other, "push", "-q", "origin", "main")
        git(handle.worktree_path, "remote", "add", "origin", str(remote))
        git(handle.worktree_path, "fetch", "-q", "origin")
        git(handle.worktree_path, "branch", "-q", "--set-upstream-to=origin/main", "main")

        assert pull(handle) is True
        assert (handle.worktree_path / "NEW.md").exists()
        assert pull(handle) is False

    def test_push_reports_updates(self, handle, git, temp_dir):
        """Test that a push updating the remote returns True once."""
        remote = temp_dir / "remote.git"
        git(temp_dir, "clone", "-q", "--bare", str(handle.worktree_path), str(remote))
        git(handle.worktree_path, "remote", "add", "origin", str(remote))
        git(handle.worktree_path, "fetch", "-q", "origin")
        git(handle.worktree_path, "branch", "-q", "--set-upstream-to=origin/main", "main")
        (handle.worktree_path / "README.md").write_text("# Pushed\n")
        git(handle.worktree_path, "commit", "-q", "-am", "Local change")

        assert push(handle) is True
        assert git(remote, "log", "-1", "--format=%s", "main") == "Local change\n"
        assert push(handle) is False


# ============================================================================
# Worktree Tests
# ============================================================================


class TestWorktrees:
    """Tests for worktree helpers."""

    def test_parse_worktree_list(self):
        """Test porcelain parsing of main, linked and detached worktrees."""
        output = (
            "worktree /repo\nHEAD abc\nbranch refs/heads/main\n\n"
            "worktree /repo-wt\nHEAD def\ndetached\n\n"
            "worktree /bare\nbare\n"
        )

        worktrees = parse_worktree_list(output)

        assert [w.path for w in worktrees] == ["/repo", "/repo-wt", "/bare"]
        assert worktrees[0].branch == "main"
        assert worktrees[1].is_detached
        assert worktrees[2].is_bare

    def test_list_worktrees(self, handle):
        """Test the main worktree is listed."""
        worktrees = list_worktrees(handle)

        assert len(worktrees) == 1
        assert worktrees[0].branch == "main"

    def test_add_and_remove_worktree(self, handle, temp_dir):
        """Test creating a linked worktree on a new branch and removing it."""
        path = add_worktree(handle, temp_dir / "wt", "feature", new_branch=True)

        assert path == (temp_dir / "wt").resolve()
        assert (path / "README.md").exists()
        worktrees = list_worktrees(handle)
        assert [w.branch for w in worktrees] == ["main", "feature"]

        remove_worktree(handle, path)

        assert not path.exists()
        assert len(list_worktrees(handle)) == 1

    def test_prune_missing_worktree(self, handle, temp_dir):
        """Test that a deleted worktree directory is pruned."""
        path = add_worktree(handle, temp_dir / "wt", "feature", new_branch=True)
        shutil.rmtree(path)

        prune_worktrees(handle)

        assert len(list_worktrees(handle)) == 1
