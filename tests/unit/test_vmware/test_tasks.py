# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tests for the live task stream."""
from __future__ import annotations

import io
import json
from types import SimpleNamespace
from unittest.mock import Mock

import pytest
from rich.console import Console

from fakes import fake_vim
from fakes.fake_console import FakeConsole
from vimsh.core.exceptions import VMwareError
from vimsh.vmware.vsphere import tasks as tasks_mod
from vimsh.vmware.vsphere.tasks import TaskEvent, TaskWatcher

NOW = "2026-10-19 12:00:00+00:00"


@pytest.fixture
def pyvmomi(monkeypatch):
    monkeypatch.setattr(tasks_mod, "vim", fake_vim.vim)
    monkeypatch.setattr(tasks_mod, "vmodl", fake_vim.vmodl)


def _session(results=(), pages=()):
    collector = fake_vim.TaskHistoryCollector(pages=pages)
    content = fake_vim.content(
        property_collector=fake_vim.PropertyCollector(results),
        task_manager=fake_vim.TaskManager(collector),
    )
    si = fake_vim.ServiceInstance(content)
    return SimpleNamespace(
        host="vc01",
        content=content,
        property_collector=content.propertyCollector,
        current_time=si.CurrentTime,
    )


def _watcher(session, **kw):
    console = FakeConsole()
    w = TaskWatcher(session, logger=Mock(), console=console, clock=lambda: NOW, **kw)
    return w, console


@pytest.mark.unit
class TestTaskEvent:
    def test_line_format(self):
        ev = TaskEvent(time=NOW, task="task-1", name="PowerOnVM_Task", entity="web01", state="running")
        assert ev.line() == f"{NOW} PowerOnVM_Task web01 running"


@pytest.mark.unit
class TestWatch:
    def test_full_lifecycle(self, pyvmomi):
        task = fake_vim.Task("task-7", name="CreateSnapshot_Task", entity="db01")
        session = _session(pages=[[task]])
        collector = session.content.taskManager.collector
        session.content.propertyCollector.results = [
            fake_vim.update_set(fake_vim.object_update(collector, latestPage=[]), version="1"),
            fake_vim.update_set(fake_vim.object_update(task, info__state="running"), version="2"),
            None,
            fake_vim.update_set(fake_vim.object_update(task, info__state="success"), version="3"),
        ]

        w, console = _watcher(session)
        emitted = w.watch()

        assert emitted == 2
        assert console.lines == [
            f"{NOW} CreateSnapshot_Task db01 running",
            f"{NOW} CreateSnapshot_Task db01 success",
        ]

        view = session.content.viewManager.views[0]
        assert view.added == [task]
        assert view.removed == [task]
        assert view.members == []

        pc = session.content.propertyCollector
        versions = [v for v, _opts in pc.wait_calls]
        assert versions[:4] == ["", "1", "2", "2"]

    def test_collector_is_filtered_by_queue_time(self, pyvmomi):
        session = _session()
        w, _console = _watcher(session)
        w.watch()

        collector = session.content.taskManager.collector
        assert collector.page_size == 1
        spec = session.content.taskManager.filters[0]
        assert spec.time.timeType == "queuedTime"
        assert spec.time.beginTime == "2026-10-19T12:00:00Z"

    def test_filter_spec_watches_view_and_collector(self, pyvmomi):
        session = _session()
        w, _console = _watcher(session)
        w.watch()

        pf = session.content.propertyCollector.filters[0]
        assert pf.partial is False
        view_spec, collector_spec = pf.spec.objectSet
        assert view_spec.skip is True
        assert view_spec.selectSet[0].path == "view"
        assert collector_spec.obj is session.content.taskManager.collector
        paths = {p.type: p.pathSet for p in pf.spec.propSet}
        assert paths[fake_vim.Task] == ["info.state"]
        assert paths[fake_vim.TaskHistoryCollector] == ["latestPage"]

    def test_server_objects_destroyed_on_interrupt(self, pyvmomi):
        session = _session()
        w, _console = _watcher(session)
        w.watch()

        assert session.content.propertyCollector.filters[0].destroyed
        assert session.content.taskManager.collector.destroyed
        assert session.content.viewManager.views[0].destroyed
        assert w.view is None and w.collector is None and w.filter is None

    def test_server_objects_destroyed_on_error(self, pyvmomi):
        session = _session(results=[RuntimeError("session expired")])
        w, _console = _watcher(session)

        with pytest.raises(RuntimeError):
            w.watch()
        assert session.content.taskManager.collector.destroyed
        assert session.content.viewManager.views[0].destroyed

    def test_cleanup_failure_is_logged(self, pyvmomi):
        session = _session()
        w, _console = _watcher(session)
        session.content.taskManager.collector.DestroyCollector = Mock(side_effect=RuntimeError("gone"))

        w.watch()

        assert w.logger.warning.called
        assert session.content.viewManager.views[0].destroyed

    def test_max_wait_passed_to_server(self, pyvmomi):
        session = _session()
        w, _console = _watcher(session, max_wait=5)
        w.watch()
        _version, options = session.content.propertyCollector.wait_calls[0]
        assert options.maxWaitSeconds == 5

    def test_stop_ends_watch(self, pyvmomi):
        session = _session()
        w, _console = _watcher(session)
        w.stop()
        assert w.watch() == 0
        assert session.content.propertyCollector.wait_calls == []

    def test_pyvmomi_missing(self, monkeypatch):
        monkeypatch.setattr(tasks_mod, "vim", None)
        w, _console = _watcher(_session())
        with pytest.raises(VMwareError) as ei:
            w.watch()
        assert ei.value.code == 13


@pytest.mark.unit
class TestHandleUpdateSet:
    def _ready(self, **kw):
        session = _session()
        w, console = _watcher(session, **kw)
        w.view = fake_vim.ListView()
        w.collector = session.content.taskManager.collector
        return w, console

    def test_update_without_state_emits_nothing(self, pyvmomi):
        w, console = self._ready()
        task = fake_vim.Task("task-1")
        assert w.handle_update_set(fake_vim.update_set(fake_vim.object_update(task))) == 0
        assert console.lines == []

    def test_error_state_removes_task(self, pyvmomi):
        w, console = self._ready()
        task = fake_vim.Task("task-2", name="Destroy_Task", entity="old-vm")
        w.view.ModifyListView(add=[task])

        assert w.handle_update_set(fake_vim.update_set(fake_vim.object_update(task, info__state="error"))) == 1
        assert w.view.removed == [task]
        assert console.lines == [f"{NOW} Destroy_Task old-vm error"]

    def test_queued_task_stays_in_view(self, pyvmomi):
        w, _console = self._ready()
        task = fake_vim.Task("task-3")
        w.handle_update_set(fake_vim.update_set(fake_vim.object_update(task, info__state="queued")))
        assert w.view.removed == []

    def test_json_output(self, pyvmomi):
        w, console = self._ready(json_output=True)
        task = fake_vim.Task("task-4", name="PowerOffVM_Task", entity="web02")

        w.handle_update_set(fake_vim.update_set(fake_vim.object_update(task, info__state="running")))

        assert json.loads(console.lines[0]) == {
            "entity": "web02",
            "name": "PowerOffVM_Task",
            "state": "running",
            "task": "task-4",
            "time": NOW,
        }

    def test_collector_batch_added_to_view(self, pyvmomi):
        w, _console = self._ready()
        t1, t2 = fake_vim.Task("task-5"), fake_vim.Task("task-6")
        w.collector.pages = [[t1, t2]]

        w.handle_update_set(fake_vim.update_set(fake_vim.object_update(w.collector, latestPage=[])))

        assert w.view.added == [t1, t2]

    def test_empty_update_set(self, pyvmomi):
        w, _console = self._ready()
        assert w.handle_update_set(SimpleNamespace(version="9", filterSet=None)) == 0


def _rich_console():
    buf = io.StringIO()
    return Console(file=buf, width=200, color_system=None, force_terminal=False), buf


@pytest.mark.unit
class TestRichOutput:
    """Task and entity names are server data and must print verbatim."""

    def _watch_one(self, task, state="running", **kw):
        session = _session(pages=[[task]])
        collector = session.content.taskManager.collector
        session.content.propertyCollector.results = [
            fake_vim.update_set(fake_vim.object_update(collector, latestPage=[]), version="1"),
            fake_vim.update_set(fake_vim.object_update(task, info__state=state), version="2"),
        ]
        console, buf = _rich_console()
        w = TaskWatcher(session, logger=Mock(), console=console, clock=lambda: "T", **kw)
        emitted = w.watch()
        return emitted, buf.getvalue()

    def test_brackets_in_entity_name(self, pyvmomi):
        emitted, out = self._watch_one(fake_vim.Task("task-1", name="PowerOnVM_Task", entity="web [prod]"))
        assert emitted == 1
        assert out == "T PowerOnVM_Task web [prod] running\n"

    def test_closing_tag_lookalike_does_not_abort_watch(self, pyvmomi):
        emitted, out = self._watch_one(fake_vim.Task("task-2", name="Clone_Task", entity="[/tmp]"), state="success")
        assert emitted == 1
        assert out == "T Clone_Task [/tmp] success\n"

    def test_emoji_codes_left_alone(self, pyvmomi):
        _emitted, out = self._watch_one(fake_vim.Task("task-3", name="Rename_Task", entity=":smile:"))
        assert out == "T Rename_Task :smile: running\n"

    def test_json_line_with_brackets(self, pyvmomi):
        _emitted, out = self._watch_one(fake_vim.Task("task-4", name="[b]x[/b]", entity="vm"), json_output=True)
        assert json.loads(out)["name"] == "[b]x[/b]"
