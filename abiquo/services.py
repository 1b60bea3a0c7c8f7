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
Entry points of an :class:`abiquo.context.AbiquoContext`.

The services return domain objects for the resources that have a fixed URL
(datacenters, enterprises, virtual datacenters...). Everything else is
reached from those objects by following links.
"""

from abiquo.domain.cloud import VirtualDatacenter, VirtualDatacentersDto
from abiquo.domain.cloud import VirtualMachine, VirtualMachinesDto
from abiquo.domain.enterprise import Enterprise, EnterprisesDto
from abiquo.domain.enterprise import User, UserDto
from abiquo.domain.infrastructure import Datacenter, DatacentersDto
from abiquo.domain.options import QueryOptions
from abiquo.links import Link
from abiquo.utils.misc import find, first

__all__ = [
    'AdministrationService',
    'CloudService',
    'MonitoringService'
]


class BaseService(object):
    def __init__(self, context):
        self.context = context

    def _get(self, path, dto_class, params=None):
        return self.context.resolver.resolve(Link('self', path), dto_class,
                                             params=params)

    def _get_optional(self, path, dto_class):
        return self.context.resolver.resolve_optional(Link('self', path),
                                                      dto_class)

    def _list(self, path, collection_cls, wrapper_cls, predicate=None,
              options=None):
        params = None
        if isinstance(options, QueryOptions):
            params = options.to_params()
        elif options is not None:
            params = dict(options)

        collection = self._get(path, collection_cls, params=params)
        return find(wrapper_cls.wrap_all(self.context, collection), predicate)


class AdministrationService(BaseService):
    """
    Infrastructure and enterprises. Most operations need an administrator.
    """

    def list_datacenters(self, predicate=None):
        return self._list('/admin/datacenters', DatacentersDto, Datacenter,
                          predicate=predicate)

    def find_datacenter(self, predicate=None):
        return first(self.list_datacenters(predicate=predicate))

    def get_datacenter(self, datacenter_id):
        """
        :return: The datacenter or ``None`` if it does not exist.
        """
        dto = self._get_optional('/admin/datacenters/%s' % (datacenter_id),
                                 Datacenter.DTO_CLASS)
        return Datacenter.wrap(self.context, dto)

    def list_enterprises(self, predicate=None, options=None):
        """
        :type options: :class:`abiquo.domain.options.EnterpriseOptions`
        """
        return self._list('/admin/enterprises', EnterprisesDto, Enterprise,
                          predicate=predicate, options=options)

    def find_enterprise(self, predicate=None, options=None):
        return first(self.list_enterprises(predicate=predicate,
                                           options=options))

    def get_enterprise(self, enterprise_id):
        dto = self._get_optional('/admin/enterprises/%s' % (enterprise_id),
                                 Enterprise.DTO_CLASS)
        return Enterprise.wrap(self.context, dto)

    def get_current_user(self):
        """
        The user the context is authenticated as.
        """
        return User.wrap(self.context, self._get('/login', UserDto))

    def get_current_enterprise(self):
        return self.get_current_user().get_enterprise()


class CloudService(BaseService):
    """
    Virtual resources of the enterprise of the current user.
    """

    def list_virtual_datacenters(self, predicate=None, options=None):
        """
        :type options: :class:`abiquo.domain.options.VirtualDatacenterOptions`
        """
        return self._list('/cloud/virtualdatacenters', VirtualDatacentersDto,
                          VirtualDatacenter, predicate=predicate,
                          options=options)

    def find_virtual_datacenter(self, predicate=None, options=None):
        return first(self.list_virtual_datacenters(predicate=predicate,
                                                   options=options))

    def get_virtual_datacenter(self, virtual_datacenter_id):
        dto = self._get_optional('/cloud/virtualdatacenters/%s' %
                                 (virtual_datacenter_id),
                                 VirtualDatacenter.DTO_CLASS)
        return VirtualDatacenter.wrap(self.context, dto)

    def list_virtual_appliances(self, predicate=None):
        appliances = []
        for vdc in self.list_virtual_datacenters():
            appliances.extend(vdc.list_virtual_appliances(
                predicate=predicate))
        return appliances

    def find_virtual_appliance(self, predicate=None):
        return first(self.list_virtual_appliances(predicate=predicate))

    def list_virtual_machines(self, predicate=None):
        return self._list('/cloud/virtualmachines', VirtualMachinesDto,
                          VirtualMachine, predicate=predicate)

    def find_virtual_machine(self, predicate=None):
        return first(self.list_virtual_machines(predicate=predicate))

    def list_templates(self, predicate=None):
        """
        Templates available in any of the virtual datacenters.
        """
        templates = []
        seen = set()
        for vdc in self.list_virtual_datacenters():
            for template in vdc.list_templates(predicate=predicate):
                if template.id in seen:
                    continue
                seen.add(template.id)
                templates.append(template)
        return templates


class MonitoringService(BaseService):
    """
    Wait for the tasks returned by asynchronous operations.
    """

    @property
    def monitor(self):
        return self.context.monitor

    def track(self, accepted_request):
        return self.monitor.track(accepted_request)

    def poll_once(self, handle):
        return self.monitor.poll_once(handle)

    def await_completion(self, handle, poll_interval=None, max_wait=None,
                         callback=None):
        return self.monitor.await_completion(handle,
                                             poll_interval=poll_interval,
                                             max_wait=max_wait,
                                             callback=callback)

    def await_all(self, handles, poll_interval=None, max_wait=None):
        return self.monitor.await_all(handles, poll_interval=poll_interval,
                                      max_wait=max_wait)

    def cancel(self, handle):
        return self.monitor.cancel(handle)
