# Licensed to the Apache Software Foundation (ASF) under one or more
# contributor license agreements.  See the NOTICE file distributed with
# this work for additional information regarding copyright ownership.
# The ASF licenses this file to You under the Apache License, Version 2.0
# (the "License"); you may not use this file except in compliance with
# the License.  You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Asynchronous task monitoring.

Mutating operations such as deploy, undeploy, reconfigure or a state change
are answered with an accepted request (HTTP 202) whose ``status`` link points
to a task. :class:`AsyncTaskMonitor` polls that task until it reaches a
terminal state::

    handle = monitor.track(accepted_request)
    result = monitor.await_completion(handle, poll_interval=2, max_wait=600)

    if result.outcome == TaskOutcome.SUCCEEDED:
        ...

A handle starts in the local ``SUBMITTED`` state. Once a terminal state has
been observed the handle keeps the result and is never polled again.
"""

import time
import logging
import threading

from typing import Callable, List, Optional

from abiquo.common.types import Type
from abiquo.common.types import NotFoundError
from abiquo.common.types import TaskVanishedError
from abiquo.common.types import UnsupportedOperationError
from abiquo.dto import AcceptedRequestDto, BaseDto, DtoCollection, Field
from abiquo.dto import media_type
from abiquo.links import Link, find_link

__all__ = [
    'TaskState',
    'TaskOutcome',
    'JobDto',
    'JobsDto',
    'TaskDto',
    'TasksDto',
    'Job',
    'TaskSnapshot',
    'TaskResult',
    'TaskHandle',
    'AsyncTaskMonitor'
]

_logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 5


class TaskState(Type):
    """
    Lifecycle of a task and of its jobs. ``SUBMITTED`` only exists locally,
    between the accepted request and the first poll.
    """
    SUBMITTED = 'SUBMITTED'
    PENDING = 'PENDING'
    QUEUEING = 'QUEUEING'
    STARTED = 'STARTED'
    RUNNING = 'RUNNING'
    PAUSED = 'PAUSED'
    ACK = 'ACK'
    FINISHED_SUCCESSFULLY = 'FINISHED_SUCCESSFULLY'
    FINISHED_UNSUCCESSFULLY = 'FINISHED_UNSUCCESSFULLY'
    FAILED = 'FAILED'
    ABORTED = 'ABORTED'
    CANCELLED = 'CANCELLED'
    UNKNOWN = 'UNKNOWN'

    @property
    def is_terminal(self):
        return self in TERMINAL_STATES


TERMINAL_STATES = frozenset([
    TaskState.FINISHED_SUCCESSFULLY,
    TaskState.FINISHED_UNSUCCESSFULLY,
    TaskState.FAILED,
    TaskState.ABORTED,
    TaskState.CANCELLED,
])


class TaskOutcome(Type):
    SUCCEEDED = 'SUCCEEDED'
    FAILED = 'FAILED'
    ABORTED = 'ABORTED'
    CANCELLED = 'CANCELLED'
    TIMED_OUT = 'TIMED_OUT'
    INTERRUPTED = 'INTERRUPTED'


OUTCOME_BY_STATE = {
    TaskState.FINISHED_SUCCESSFULLY: TaskOutcome.SUCCEEDED,
    TaskState.FINISHED_UNSUCCESSFULLY: TaskOutcome.FAILED,
    TaskState.FAILED: TaskOutcome.FAILED,
    TaskState.ABORTED: TaskOutcome.ABORTED,
    TaskState.CANCELLED: TaskOutcome.CANCELLED,
}


class JobDto(BaseDto):
    ROOT = 'job'
    FIELDS = (
        Field('id'),
        Field('parentTaskId'),
        Field('type'),
        Field('description'),
        Field('state', TaskState),
        Field('rollbackState'),
        Field('creationTimestamp', int),
        Field('timestamp', int),
    )


class JobsDto(DtoCollection):
    ROOT = 'jobs'
    ITEM = JobDto


class TaskDto(BaseDto):
    ROOT = 'task'
    MEDIA_TYPE = media_type('task')
    FIELDS = (
        Field('taskId', attr='id'),
        Field('userId'),
        Field('ownerId'),
        Field('type'),
        Field('state', TaskState),
        Field('timestamp', int),
        Field('jobs', JobsDto),
    )


class TasksDto(DtoCollection):
    ROOT = 'tasks'
    MEDIA_TYPE = media_type('tasks')
    ITEM = TaskDto


def _to_state(value):
    if isinstance(value, TaskState):
        return value
    state = TaskState.fromstring(value, default=TaskState.UNKNOWN)
    if state == TaskState.UNKNOWN and value is not None:
        _logger.warning('Unknown task state %r, treating it as running',
                        value)
    return state


class Job(object):
    """
    One step of a task. Jobs keep the order the API returned them in.
    """

    __slots__ = ('id', 'type', 'description', 'state', 'timestamp')

    def __init__(self, id, type=None, description=None, state=None,
                 timestamp=None):
        self.id = id
        self.type = type
        self.description = description
        self.state = _to_state(state)
        self.timestamp = timestamp

    @classmethod
    def from_dto(cls, dto):
        return cls(id=dto.id, type=dto.type, description=dto.description,
                   state=dto.state, timestamp=dto.timestamp)

    def __repr__(self):
        return '<Job: id=%s, type=%s, state=%s>' % (self.id, self.type,
                                                   self.state)


class TaskSnapshot(object):
    """
    Read-only view of a task as returned by one poll.
    """

    def __init__(self, task_href, id=None, owner_id=None, type=None,
                 state=TaskState.SUBMITTED, timestamp=None, jobs=None,
                 dto=None):
        self.task_href = task_href
        self.id = id
        self.owner_id = owner_id
        self.type = type
        self.state = _to_state(state)
        self.timestamp = timestamp
        self.jobs = tuple(jobs or ())
        self.dto = dto

    @classmethod
    def from_dto(cls, task_href, dto):
        jobs = [Job.from_dto(job) for job in (dto.jobs or [])]
        return cls(task_href=task_href, id=dto.id, owner_id=dto.owner_id,
                   type=dto.type, state=dto.state, timestamp=dto.timestamp,
                   jobs=jobs, dto=dto)

    @property
    def is_terminal(self):
        return self.state in TERMINAL_STATES

    @property
    def progress(self):
        """
        ``(finished jobs, total jobs)``, e.g. ``(3, 5)``.
        """
        finished = len([job for job in self.jobs
                        if job.state in TERMINAL_STATES])
        return finished, len(self.jobs)

    def __repr__(self):
        return ('<TaskSnapshot: id=%s, type=%s, state=%s, jobs=%d/%d>' %
                ((self.id, self.type, self.state) + self.progress))


class TaskResult(object):
    """
    How waiting for a task ended.

    ``TIMED_OUT`` and ``INTERRUPTED`` are local decisions: the task may still
    be running on the server.
    """

    def __init__(self, outcome, snapshot=None, reason=None, error=None):
        self.outcome = outcome
        self.snapshot = snapshot
        self.reason = reason
        self.error = error

    @property
    def succeeded(self):
        return self.outcome == TaskOutcome.SUCCEEDED

    @property
    def is_final(self):
        """
        ``True`` when the outcome reflects a terminal task state.
        """
        return self.outcome not in (TaskOutcome.TIMED_OUT,
                                    TaskOutcome.INTERRUPTED)

    def __repr__(self):
        return '<TaskResult: outcome=%s, reason=%s>' % (self.outcome,
                                                       self.reason)


class TaskHandle(object):
    """
    Client side reference to a task, created by
    :meth:`AsyncTaskMonitor.track`.
    """

    def __init__(self, task_href, accepted_request=None):
        self.task_href = task_href
        self.accepted_request = accepted_request
        self.snapshot = None  # type: Optional[TaskSnapshot]
        self.result = None  # type: Optional[TaskResult]
        self.polls = 0
        self._lock = threading.Lock()
        self._interrupted = threading.Event()

    @property
    def state(self):
        if self.snapshot is None:
            return TaskState.SUBMITTED
        return self.snapshot.state

    @property
    def is_terminal(self):
        return self.result is not None

    @property
    def interrupted(self):
        return self._interrupted.is_set()

    def interrupt(self):
        """
        Ask every thread waiting on this handle to stop. The task itself is
        left alone.
        """
        self._interrupted.set()

    def clear_interrupt(self):
        self._interrupted.clear()

    def _wait(self, seconds):
        self._interrupted.wait(seconds)

    def __repr__(self):
        return '<TaskHandle: href=%s, state=%s>' % (self.task_href,
                                                   self.state)


class AsyncTaskMonitor(object):
    """
    Poll tasks until they end.

    :param resolver: Used to fetch the task resources.
    :type resolver: :class:`abiquo.links.LinkResolver`

    :param poll_interval: Default seconds between two polls.
    :param max_wait: Default local deadline in seconds, ``None`` waits for
                     ever.
    :param backoff: Multiplier applied to the interval after every poll.
    :param max_poll_interval: Upper bound of the interval when backing off.
    :param clock: Monotonic clock, ``time.monotonic`` by default.
    :param sleep: ``sleep(seconds)`` used between polls. By default the
                  monitor waits on the handle so :meth:`TaskHandle.interrupt`
                  wakes it up immediately.
    """

    def __init__(self, resolver, poll_interval=DEFAULT_POLL_INTERVAL,
                 max_wait=None, backoff=1, max_poll_interval=None,
                 clock=time.monotonic, sleep=None):
        # type: (object, float, Optional[float], float, Optional[float], Callable, Optional[Callable]) -> None  # NOQA
        if poll_interval <= 0:
            raise ValueError('poll_interval must be positive')
        if backoff < 1:
            raise ValueError('backoff must be greater or equal than 1')

        self.resolver = resolver
        self.poll_interval = poll_interval
        self.max_wait = max_wait
        self.backoff = backoff
        self.max_poll_interval = max_poll_interval
        self.clock = clock
        self.sleep = sleep

    def track(self, accepted_request):
        """
        Wrap an accepted request into a handle. No request is sent.

        :param accepted_request: The accepted request, the status
                                 :class:`Link` or the task href.
        :rtype: :class:`TaskHandle`
        """
        if isinstance(accepted_request, AcceptedRequestDto):
            return TaskHandle(accepted_request.task_href,
                              accepted_request=accepted_request)

        if isinstance(accepted_request, Link):
            return TaskHandle(accepted_request.href)

        return TaskHandle(accepted_request)

    def poll_once(self, handle):
        """
        Fetch the task once and return what it looks like now.

        A handle that already reached a terminal state is answered from its
        cached snapshot.

        :raises TaskVanishedError: The task href answered 404.
        :rtype: :class:`TaskSnapshot`
        """
        if handle.result is not None:
            if handle.result.error is not None:
                raise handle.result.error
            return handle.snapshot

        link = Link(AcceptedRequestDto.STATUS_REL, handle.task_href,
                    type=TaskDto.MEDIA_TYPE)

        try:
            dto = self.resolver.resolve(link, TaskDto)
        except NotFoundError:
            error = TaskVanishedError(handle.task_href)
            _logger.warning('Task %s vanished while in state %s',
                            handle.task_href, handle.state)
            with handle._lock:
                handle.polls += 1
                handle.result = TaskResult(TaskOutcome.FAILED,
                                           snapshot=handle.snapshot,
                                           reason=error.value, error=error)
            raise error

        snapshot = TaskSnapshot.from_dto(handle.task_href, dto)
        self._record(handle, snapshot)
        return snapshot

    def await_completion(self, handle, poll_interval=None, max_wait=None,
                         callback=None):
        """
        Block until the task ends, ``max_wait`` seconds elapse or the handle
        is interrupted.

        Transport errors raised while polling are not swallowed.

        :param callback: Called with the new :class:`TaskSnapshot` every
                         time the observed state changes.

        :rtype: :class:`TaskResult`
        """
        if handle.result is not None:
            return handle.result

        interval = poll_interval or self.poll_interval
        if max_wait is None:
            max_wait = self.max_wait

        deadline = None
        if max_wait is not None:
            deadline = self.clock() + max_wait

        last_state = handle.state

        while True:
            if handle.interrupted:
                return self._interrupted(handle)

            try:
                snapshot = self.poll_once(handle)
            except TaskVanishedError:
                return handle.result

            if snapshot.state != last_state:
                last_state = snapshot.state
                if callback is not None:
                    callback(snapshot)

            if handle.result is not None:
                return handle.result

            now = self.clock()
            if deadline is not None and now >= deadline:
                return self._timed_out(handle, max_wait)

            delay = interval
            if deadline is not None:
                delay = min(delay, deadline - now)

            self._sleep(handle, delay)

            if handle.interrupted:
                return self._interrupted(handle)

            if deadline is not None and self.clock() >= deadline:
                return self._timed_out(handle, max_wait)

            interval = self._next_interval(interval)

    def await_all(self, handles, poll_interval=None, max_wait=None):
        # type: (List[TaskHandle], Optional[float], Optional[float]) -> List[TaskResult]  # NOQA
        """
        Wait for several tasks sharing a single deadline. Results are
        returned in the order of ``handles``.
        """
        if max_wait is None:
            max_wait = self.max_wait

        deadline = None
        if max_wait is not None:
            deadline = self.clock() + max_wait

        results = []
        for handle in handles:
            remaining = None
            if deadline is not None:
                remaining = max(deadline - self.clock(), 0)

            if remaining == 0 and handle.result is None:
                results.append(self._timed_out(handle, max_wait))
                continue

            results.append(self.await_completion(handle,
                                                 poll_interval=poll_interval,
                                                 max_wait=remaining))
        return results

    def cancel(self, handle):
        """
        Ask the API to cancel the task, when the task offers a ``cancel``
        link. The local view only changes on the next poll.

        :raises UnsupportedOperationError: The task can not be cancelled.
        :return: ``False`` if the task had already ended.
        :rtype: ``bool``
        """
        if handle.result is not None:
            return False

        snapshot = handle.snapshot
        if snapshot is None:
            snapshot = self.poll_once(handle)
            if handle.result is not None:
                return False

        link = find_link(snapshot.dto, 'cancel') or \
            find_link(snapshot.dto, 'action', title='cancel')

        if link is None:
            raise UnsupportedOperationError(
                'Tasks of type %s can not be cancelled' % (snapshot.type))

        _logger.debug('Cancelling task %s', handle.task_href)
        self.resolver.connection.request(link.href, method='POST')
        return True

    def _record(self, handle, snapshot):
        with handle._lock:
            previous = handle.state
            handle.polls += 1
            handle.snapshot = snapshot

            if snapshot.state != previous:
                _logger.debug('Task %s: %s -> %s (%d/%d jobs)',
                              handle.task_href, previous, snapshot.state,
                              *snapshot.progress)

            if snapshot.is_terminal:
                handle.result = TaskResult(OUTCOME_BY_STATE[snapshot.state],
                                           snapshot=snapshot,
                                           reason=str(snapshot.state))

    def _timed_out(self, handle, max_wait):
        _logger.warning('Gave up waiting for task %s after %s seconds, last '
                        'state was %s', handle.task_href, max_wait,
                        handle.state)
        return TaskResult(TaskOutcome.TIMED_OUT, snapshot=handle.snapshot,
                          reason='Task did not complete in %s seconds' %
                          (max_wait))

    def _interrupted(self, handle):
        _logger.debug('Stopped waiting for task %s', handle.task_href)
        return TaskResult(TaskOutcome.INTERRUPTED, snapshot=handle.snapshot,
                          reason='Interrupted by the caller')

    def _sleep(self, handle, seconds):
        if seconds <= 0:
            return

        if self.sleep is not None:
            self.sleep(seconds)
        else:
            handle._wait(seconds)

    def _next_interval(self, interval):
        interval = interval * self.backoff
        if self.max_poll_interval is not None:
            interval = min(interval, self.max_poll_interval)
        return interval
