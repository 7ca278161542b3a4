# SPDX-License-Identifier: LGPL-3.0-or-later
# vimsh/vmware/vsphere/tasks.py
# -*- coding: utf-8 -*-
"""
Live task stream built on the PropertyCollector long-poll.

A TaskHistoryCollector (page size 1) reports that new tasks were queued; the
new tasks are put into a ListView so that the same property filter also
reports their info.state changes. Finished tasks leave the view again.
"""
from __future__ import annotations

import json
import logging
import threading
from dataclasses import asdict, dataclass
from typing import Any, Callable, List, Optional

try:
    from pyVmomi import vim, vmodl  # type: ignore
except Exception:  # pragma: no cover
    vim = None  # type: ignore
    vmodl = None  # type: ignore

from ...core.exceptions import VMwareError
from ...core.logger import Log
from ...core.utils import U, create_console

READ_BATCH = 100
FINISHED_STATES = ("error", "success")


@dataclass
class TaskEvent:
    time: str
    task: str
    name: Optional[str]
    entity: Optional[str]
    state: str

    def line(self) -> str:
        return f"{self.time} {self.name} {self.entity} {self.state}"


def _changed_value(update: Any, path: str) -> Any:
    for change in getattr(update, "changeSet", None) or []:
        if getattr(change, "name", None) == path:
            return getattr(change, "val", None)
    return None


def _moid(obj: Any) -> str:
    return str(getattr(obj, "_moId", None) or obj)


class TaskWatcher:
    """
    watch() blocks until interrupted (Ctrl+C or stop()), printing one line
    per task state change. Every server-side object created for the watch
    is destroyed on the way out.
    """

    def __init__(
        self,
        session: Any,
        *,
        logger: Optional[logging.Logger] = None,
        json_output: bool = False,
        max_wait: Optional[int] = 30,
        console: Any = None,
        clock: Callable[[], Any] = U.now_local,
    ) -> None:
        self.session = session
        self.logger = logger or logging.getLogger("vimsh")
        self.json_output = bool(json_output)
        self.max_wait = max_wait
        self.console = console if console is not None else create_console()
        self.clock = clock
        self._stop = threading.Event()

        self.view: Any = None
        self.collector: Any = None
        self.filter: Any = None

    def stop(self) -> None:
        self._stop.set()

    # ---- server-side objects ----

    def _create_view(self) -> Any:
        return self.session.content.viewManager.CreateListView(obj=[])

    def _create_collector(self) -> Any:
        time_filter = vim.TaskFilterSpec.ByTime(
            beginTime=self.session.current_time(),
            timeType=vim.TaskFilterSpec.TimeOption.queuedTime,
        )
        collector = self.session.content.taskManager.CreateCollectorForTasks(
            filter=vim.TaskFilterSpec(time=time_filter)
        )
        collector.SetCollectorPageSize(maxCount=1)
        return collector

    def _filter_spec(self) -> Any:
        pc = vmodl.query.PropertyCollector
        return pc.FilterSpec(
            objectSet=[
                pc.ObjectSpec(
                    obj=self.view,
                    skip=True,
                    selectSet=[pc.TraversalSpec(path="view", type=vim.view.ListView)],
                ),
                pc.ObjectSpec(obj=self.collector),
            ],
            propSet=[
                pc.PropertySpec(type=vim.Task, pathSet=["info.state"]),
                pc.PropertySpec(type=vim.TaskHistoryCollector, pathSet=["latestPage"]),
            ],
        )

    def _wait_options(self) -> Any:
        if self.max_wait is None:
            return None
        return vmodl.query.PropertyCollector.WaitOptions(maxWaitSeconds=int(self.max_wait))

    # ---- update handling ----

    def _emit(self, event: TaskEvent) -> None:
        if self.json_output:
            self.console.print(U.json_dump(asdict(event), indent=None), soft_wrap=True, markup=False, emoji=False)
        else:
            self.console.print(event.line(), soft_wrap=True, markup=False, emoji=False)

    def _on_collector_update(self) -> None:
        infos = self.collector.ReadNextTasks(maxCount=READ_BATCH) or []
        tasks = [i.task for i in infos if getattr(i, "task", None) is not None]
        if tasks:
            self.logger.debug("Watching %d new task(s)", len(tasks))
            self.view.ModifyListView(add=tasks)

    def _on_task_update(self, update: Any, remove: List[Any]) -> Optional[TaskEvent]:
        task = update.obj
        state = _changed_value(update, "info.state")
        event = None
        if state is not None:
            info = task.info
            event = TaskEvent(
                time=str(self.clock()),
                task=_moid(task),
                name=getattr(info, "name", None),
                entity=getattr(info, "entityName", None),
                state=str(state),
            )
            self._emit(event)
        if str(state) in FINISHED_STATES:
            remove.append(task)
        return event

    def handle_update_set(self, update_set: Any) -> int:
        """
        Process one WaitForUpdatesEx result. Returns the number of task
        events emitted.
        """
        emitted = 0
        for filter_update in getattr(update_set, "filterSet", None) or []:
            for update in getattr(filter_update, "objectSet", None) or []:
                remove: List[Any] = []
                if isinstance(update.obj, vim.TaskHistoryCollector):
                    self._on_collector_update()
                elif isinstance(update.obj, vim.Task):
                    if self._on_task_update(update, remove) is not None:
                        emitted += 1
                if remove:
                    self.view.ModifyListView(remove=remove)
        return emitted

    # ---- main loop ----

    def watch(self) -> int:
        if vim is None or vmodl is None:
            raise VMwareError(code=13, msg="pyvmomi not installed. Install: pip install pyvmomi")

        pc = self.session.property_collector
        Log.step(self.logger, f"Watching tasks on {getattr(self.session, 'host', '?')} (Ctrl+C to stop)")
        emitted = 0
        try:
            self.view = self._create_view()
            self.collector = self._create_collector()
            self.filter = pc.CreateFilter(self._filter_spec(), partialUpdates=False)

            version = ""
            options = self._wait_options()
            while not self._stop.is_set():
                result = pc.WaitForUpdatesEx(version=version, options=options)
                if result is None:
                    continue
                version = result.version
                emitted += self.handle_update_set(result)
        except KeyboardInterrupt:
            self.logger.debug("Task watch interrupted")
        finally:
            self._cleanup()
        return emitted

    def _cleanup(self) -> None:
        for attr, method in (("filter", "Destroy"), ("collector", "DestroyCollector"), ("view", "DestroyView")):
            obj = getattr(self, attr)
            if obj is None:
                continue
            try:
                getattr(obj, method)()
            except Exception as e:
                self.logger.warning("Could not destroy task watch %s: %s", attr, e)
            finally:
                setattr(self, attr, None)
