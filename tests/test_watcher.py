"""Tests for autosync.watchdog.watcher."""

import logging

import pytest

from autosync.utils.logger import get_logger
from autosync.watchdog.watcher import RecursiveWatcher


@pytest.fixture
def tree(data_dir):
    (data_dir / "a" / "b").mkdir(parents=True)
    (data_dir / "c").mkdir()
    (data_dir / "file.txt").write_text("x")
    (data_dir / "a" / "inner.txt").write_text("y")
    return data_dir


def make_watcher(root, observer, **kwargs):
    return RecursiveWatcher(root, handler=object(), observer_factory=lambda: observer, **kwargs)


class TestRegisterTree:
    """Tests for the initial walk."""

    def test_registers_every_directory_and_no_files(self, tree, fake_observer):
        watcher = make_watcher(tree, fake_observer)
        added = watcher.register_tree()

        expected = {tree, tree / "a", tree / "a" / "b", tree / "c"}
        assert added == 4
        assert watcher.directories == expected
        assert len(watcher) == 4

    def test_missing_root_is_fatal(self, tmp_path, fake_observer):
        watcher = make_watcher(tmp_path / "missing", fake_observer)
        with pytest.raises(OSError):
            watcher.register_tree()

    def test_walk_failure_is_logged_in_lenient_mode(self, tmp_path, fake_observer, caplog):
        log = get_logger("autosync.test", {'dir': str(tmp_path)})
        watcher = make_watcher(tmp_path, fake_observer, log=log)

        with caplog.at_level(logging.ERROR):
            assert watcher.register_tree(tmp_path / "vanished", strict=False) == 0

        record = caplog.records[-1]
        assert record.getMessage() == "failed to watch dir"
        assert record.dir == str(tmp_path)
        assert "vanished" in record.path

    def test_register_is_idempotent(self, tree, fake_observer):
        watcher = make_watcher(tree, fake_observer)
        watcher.register_tree()
        assert watcher.register_tree() == 0

    def test_directories_outside_root_are_not_registered(self, tree, tmp_path, fake_observer):
        watcher = make_watcher(tree, fake_observer)
        assert not watcher.register(tmp_path)
        assert tmp_path not in watcher


class TestRegisterNewTree:
    """Tests for directories appearing after start."""

    def test_returns_existing_contents(self, tree, fake_observer):
        watcher = make_watcher(tree, fake_observer)
        watcher.register(tree)

        found = watcher.register_new_tree(tree / "a")

        assert set(found) == {tree / "a" / "b", tree / "a" / "inner.txt"}
        assert tree / "a" / "b" in watcher

    def test_vanished_directory_returns_nothing(self, tree, fake_observer):
        watcher = make_watcher(tree, fake_observer)
        assert watcher.register_new_tree(tree / "gone") == []


class TestUnregister:
    """Tests for pruning the watch set."""

    def test_unregister_removes_descendants(self, tree, fake_observer):
        watcher = make_watcher(tree, fake_observer)
        watcher.register_tree()

        removed = watcher.unregister(tree / "a")

        assert removed == 2
        assert watcher.directories == {tree, tree / "c"}

    def test_unregister_unknown_path(self, tree, fake_observer):
        watcher = make_watcher(tree, fake_observer)
        watcher.register_tree()
        assert watcher.unregister(tree / "file.txt") == 0

    def test_unregister_does_not_match_prefix_siblings(self, tree, fake_observer):
        (tree / "ab").mkdir()
        watcher = make_watcher(tree, fake_observer)
        watcher.register_tree()

        watcher.unregister(tree / "a")
        assert tree / "ab" in watcher


class TestMove:
    """Tests for following renamed directories."""

    def test_move_inside_root(self, tree, fake_observer):
        watcher = make_watcher(tree, fake_observer)
        watcher.register_tree()

        (tree / "a").rename(tree / "renamed")
        found = watcher.move(tree / "a", tree / "renamed")

        assert set(found) == {tree / "renamed" / "b", tree / "renamed" / "inner.txt"}
        assert tree / "a" not in watcher
        assert tree / "renamed" / "b" in watcher

    def test_move_out_of_root(self, tree, tmp_path, fake_observer):
        watcher = make_watcher(tree, fake_observer)
        watcher.register_tree()

        (tree / "a").rename(tmp_path / "outside")
        found = watcher.move(tree / "a", tmp_path / "outside")

        assert found == []
        assert watcher.directories == {tree, tree / "c"}


class TestLifecycle:
    """Tests for start/stop."""

    def test_single_recursive_watch_on_root(self, tree, fake_observer):
        watcher = make_watcher(tree, fake_observer)
        watcher.register_tree()
        watcher.start()

        assert list(fake_observer.watches) == [str(tree)]
        assert fake_observer.watches[str(tree)].is_recursive
        assert fake_observer.started
        assert watcher.is_watching

    def test_watch_failure_is_raised_by_start(self, tree, fake_observer):
        fake_observer.fail_on.add(str(tree))
        watcher = make_watcher(tree, fake_observer)
        watcher.register_tree()
        with pytest.raises(PermissionError):
            watcher.start()
        assert not watcher.is_watching

    def test_stop_drops_registrations(self, tree, fake_observer):
        watcher = make_watcher(tree, fake_observer)
        watcher.register_tree()
        watcher.start()

        watcher.stop()
        assert fake_observer.stopped
        assert watcher.directories == set()
        assert watcher.root_watch is None

    def test_contains_path(self, tree, tmp_path, fake_observer):
        watcher = make_watcher(tree, fake_observer)
        assert watcher.contains_path(tree)
        assert watcher.contains_path(tree / "new" / "deep")
        assert not watcher.contains_path(tmp_path / "elsewhere")
