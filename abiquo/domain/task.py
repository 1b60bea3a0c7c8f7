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

from abiquo.domain.base import DomainWrapper
from abiquo.task import TaskDto, TaskSnapshot

__all__ = [
    'AsyncTask'
]


class AsyncTask(DomainWrapper):
    """
    A task listed from a resource, e.g. by
    :meth:`abiquo.domain.cloud.VirtualMachine.list_tasks`.
    """

    DTO_CLASS = TaskDto
    EDIT_REL = 'self'

    @property
    def id(self):
        return self.unwrap().id

    @property
    def type(self):
        return self.unwrap().type

    @property
    def state(self):
        return self.to_snapshot().state

    @property
    def timestamp(self):
        return self.unwrap().timestamp

    @property
    def jobs(self):
        return self.to_snapshot().jobs

    @property
    def href(self):
        link = self.unwrap().search_link(self.EDIT_REL)
        return link.href if link is not None else None

    def to_snapshot(self):
        return TaskSnapshot.from_dto(self.href, self.unwrap())

    def to_handle(self):
        """
        Return a handle to wait for this task with the context monitor.
        """
        link = self.unwrap().require_link(self.EDIT_REL)
        return self.context.monitor.track(link)

    def __repr__(self):
        if self.is_deleted:
            return '<AsyncTask: deleted>'
        return '<AsyncTask: id=%s, type=%s, state=%s>' % (
            self.id, self.type, self.unwrap().state)
