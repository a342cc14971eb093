"""Tests for gitpanel.watcher module."""

import threading

from watchfiles import Change

from gitpanel.watcher import RepoWatcher, make_repo_filter


class TestMakeRepoFilter:
    """Tests for make_repo_filter function."""

    def setup_method(self):
        self.root = "/work/repo"
        self.should_watch = make_repo_filter(self.root, f"{self.root}/.git")

    def _watched(self, rel):
        return self.should_watch(Change.modified, f"{self.root}/{rel}")

    def test_worktree_files_pass(self):
        """Test that ordinary source changes are reported."""
        assert self._watched("src/app.py")
        assert self._watched("README.md")

    def test_status_relevant_git_files_pass(self):
        """Test that index, HEAD and ref updates are reported."""
        assert self._watched(".git/index")
        assert self._watched(".git/HEAD")
        assert self._watched(".git/refs/heads/main")
        assert self._watched(".git/packed-refs")

    def test_git_noise_dropped(self):
        """Test that objects, logs and lock files are ignored."""
        assert not self._watched(".git/objects/ab/cdef")
        assert not self._watched(".git/logs/HEAD")
        assert not self._watched(".git/index.lock")
        assert not self._watched(".git/config")
        assert not self._watched("src/app.py.lock")

    def test_own_state_dropped(self):
        """Test that changelist writes do not trigger refreshes."""
        assert not self._watched(".git/gitpanel/changelists.json")
        assert not self._watched(".git/gitpanel/commit-x/index")

    def test_nested_git_dirs_dropped(self):
        """Test that submodule metadata is ignored."""
        assert not self._watched("vendor/lib/.git/index")

    def test_outside_paths_dropped(self):
        """Test that unrelated paths are ignored."""
        assert not self.should_watch(Change.added, "/elsewhere/file.txt")


class TestRepoWatcher:
    """Tests for RepoWatcher class."""

    def test_each_batch_notifies_once(self, tmp_path):
        """Test that one callback fires per change batch."""
        seen = []
        done = threading.Event()

        def fake_watch(*paths, stop_event, **kwargs):
            yield {(Change.modified, str(tmp_path / "a")), (Change.added, str(tmp_path / "b"))}
            yield set()
            yield {(Change.deleted, str(tmp_path / "c"))}
            done.set()

        watcher = RepoWatcher("r1", tmp_path, tmp_path / ".git", seen.append, watch_fn=fake_watch)
        watcher.start()
        assert done.wait(5)
        watcher.join(5)

        assert seen == ["r1", "r1"]
        assert not watcher.is_alive()

    def test_passes_debounce_and_stop_event(self, tmp_path):
        """Test the arguments handed to the watch function."""
        captured = {}

        def fake_watch(*paths, **kwargs):
            captured["paths"] = paths
            captured.update(kwargs)
            return iter(())

        watcher = RepoWatcher(
            "r1",
            tmp_path,
            tmp_path / ".git",
            lambda repo_id: None,
            debounce_ms=123,
            poll_ms=45,
            watch_fn=fake_watch,
        )
        watcher.start().join(5)

        assert captured["paths"] == (tmp_path,)
        assert captured["debounce"] == 123
        assert captured["rust_timeout"] == 45
        assert captured["raise_interrupt"] is False
        assert captured["stop_event"] is watcher._stop_event

    def test_external_git_dir_is_watched(self, tmp_path):
        """Test that a linked worktree also watches its git dir."""
        git_dir = tmp_path / "main" / ".git" / "worktrees" / "wt"
        git_dir.mkdir(parents=True)
        worktree = tmp_path / "wt"
        worktree.mkdir()

        watcher = RepoWatcher("r1", worktree, git_dir, lambda repo_id: None)

        assert watcher.watch_paths() == [worktree, git_dir]

    def test_callback_errors_do_not_stop_watching(self, tmp_path):
        """Test that a failing callback is logged and watching continues."""
        calls = []
        done = threading.Event()

        def on_change(repo_id):
            calls.append(repo_id)
            raise RuntimeError("boom")

        def fake_watch(*paths, stop_event, **kwargs):
            yield {(Change.modified, "x")}
            yield {(Change.modified, "y")}
            done.set()

        watcher = RepoWatcher("r1", tmp_path, tmp_path / ".git", on_change, watch_fn=fake_watch)
        watcher.start()
        assert done.wait(5)
        watcher.join(5)

        assert calls == ["r1", "r1"]

    def test_watch_failure_ends_thread(self, tmp_path):
        """Test that an exception from the watch function is contained."""

        def fake_watch(*paths, **kwargs):
            raise OSError("inotify limit reached")

        watcher = RepoWatcher(
            "r1", tmp_path, tmp_path / ".git", lambda r: None, watch_fn=fake_watch
        )
        watcher.start().join(5)

        assert not watcher.is_alive()

    def test_stop_ends_blocking_watch(self, tmp_path):
        """Test that stop releases a watch waiting for changes."""
        started = threading.Event()

        def fake_watch(*paths, stop_event, **kwargs):
            started.set()
            stop_event.wait(10)
            return
            yield

        watcher = RepoWatcher(
            "r1", tmp_path, tmp_path / ".git", lambda r: None, watch_fn=fake_watch
        )
        watcher.start()
        assert started.wait(5)

        watcher.stop()
        watcher.join(5)

        assert not watcher.is_alive()
