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
Physical infrastructure: datacenters, racks, machines and the remote
services that manage them.
"""

from abiquo.common.types import NotFoundError, ProviderError, Type
from abiquo.domain.base import DomainWrapper
from abiquo.dto import BaseDto, DtoCollection, Field, media_type

__all__ = [
    'MachineState',
    'RemoteServiceType',
    'DatacenterDto',
    'DatacentersDto',
    'RackDto',
    'RacksDto',
    'MachineDto',
    'MachinesDto',
    'MachineStateDto',
    'RemoteServiceDto',
    'RemoteServicesDto',
    'Datacenter',
    'Rack',
    'Machine',
    'RemoteService'
]

DATACENTERS_PATH = '/admin/datacenters'


class MachineState(Type):
    STOPPED = 'STOPPED'
    PROVISIONED = 'PROVISIONED'
    NOT_MANAGED = 'NOT_MANAGED'
    MANAGED = 'MANAGED'
    HALTED = 'HALTED'
    UNLICENSED = 'UNLICENSED'
    HA_IN_PROGRESS = 'HA_IN_PROGRESS'
    DISABLED_FOR_HA = 'DISABLED_FOR_HA'
    HALTED_FOR_SAVE = 'HALTED_FOR_SAVE'


class RemoteServiceType(Type):
    NODE_COLLECTOR = 'NODE_COLLECTOR'
    VIRTUAL_SYSTEM_MONITOR = 'VIRTUAL_SYSTEM_MONITOR'
    VIRTUAL_FACTORY = 'VIRTUAL_FACTORY'
    STORAGE_SYSTEM_MONITOR = 'STORAGE_SYSTEM_MONITOR'
    APPLIANCE_MANAGER = 'APPLIANCE_MANAGER'
    DHCP_SERVICE = 'DHCP_SERVICE'
    BPM_SERVICE = 'BPM_SERVICE'
    CLOUD_PROVIDER_PROXY = 'CLOUD_PROVIDER_PROXY'


# type -> (protocol, default port, service mapping)
REMOTE_SERVICE_DEFAULTS = {
    RemoteServiceType.NODE_COLLECTOR: ('http://', 80, 'nodecollector'),
    RemoteServiceType.VIRTUAL_SYSTEM_MONITOR: ('http://', 80, 'vsm'),
    RemoteServiceType.VIRTUAL_FACTORY: ('http://', 80, 'virtualfactory'),
    RemoteServiceType.STORAGE_SYSTEM_MONITOR: ('http://', 80, 'ssm'),
    RemoteServiceType.APPLIANCE_MANAGER: ('http://', 80, 'am'),
    RemoteServiceType.DHCP_SERVICE: ('omapi://', 7911, ''),
    RemoteServiceType.BPM_SERVICE: ('tcp://', 61616, ''),
    RemoteServiceType.CLOUD_PROVIDER_PROXY: ('http://', 80, 'cpp'),
}


class DatacenterDto(BaseDto):
    ROOT = 'datacenter'
    MEDIA_TYPE = media_type('datacenter')
    FIELDS = (
        Field('id', int),
        Field('name'),
        Field('location'),
        Field('uuid'),
    )


class DatacentersDto(DtoCollection):
    ROOT = 'datacenters'
    MEDIA_TYPE = media_type('datacenters')
    ITEM = DatacenterDto


class RackDto(BaseDto):
    ROOT = 'rack'
    MEDIA_TYPE = media_type('rack')
    FIELDS = (
        Field('id', int),
        Field('name'),
        Field('shortDescription'),
        Field('longDescription'),
        Field('vlanIdMin', int),
        Field('vlanIdMax', int),
        Field('vlanPerVdcReserved', int),
        Field('nrsq', int),
        Field('haEnabled', bool),
    )


class RacksDto(DtoCollection):
    ROOT = 'racks'
    MEDIA_TYPE = media_type('racks')
    ITEM = RackDto


class MachineDto(BaseDto):
    ROOT = 'machine'
    MEDIA_TYPE = media_type('machine')
    FIELDS = (
        Field('id', int),
        Field('name'),
        Field('description'),
        Field('ip'),
        Field('ipService'),
        Field('port', int),
        Field('user'),
        Field('password'),
        Field('type'),
        Field('state', MachineState),
        Field('cpu', int),
        Field('cpuUsed', int),
        Field('ram', int),
        Field('ramUsed', int),
    )


class MachinesDto(DtoCollection):
    ROOT = 'machines'
    MEDIA_TYPE = media_type('machines')
    ITEM = MachineDto


class MachineStateDto(BaseDto):
    ROOT = 'machinestate'
    MEDIA_TYPE = media_type('machinestate')
    FIELDS = (
        Field('state', MachineState),
    )


class RemoteServiceDto(BaseDto):
    ROOT = 'remoteService'
    MEDIA_TYPE = media_type('remoteservice')
    FIELDS = (
        Field('id', int),
        Field('uri'),
        Field('type', RemoteServiceType),
        Field('status', int),
    )


class RemoteServicesDto(DtoCollection):
    ROOT = 'remoteServices'
    MEDIA_TYPE = media_type('remoteservices')
    ITEM = RemoteServiceDto


def _require_parent(name, parent):
    if parent is None:
        raise ValueError('%s is required' % (name))
    return parent.unwrap()


class Datacenter(DomainWrapper):
    DTO_CLASS = DatacenterDto

    @classmethod
    def build(cls, context, name, location):
        if not name or not location:
            raise ValueError('name and location are required')
        return cls(context, DatacenterDto(name=name, location=location))

    @property
    def name(self):
        return self.unwrap().name

    @property
    def location(self):
        return self.unwrap().location

    def save(self):
        return self._create_at(DATACENTERS_PATH)

    def update(self):
        return self._update()

    def delete(self):
        return self._delete()

    def list_racks(self, predicate=None):
        return self._list('racks', RacksDto, Rack, predicate=predicate)

    def find_rack(self, predicate=None):
        return self._find('racks', RacksDto, Rack, predicate=predicate)

    def list_remote_services(self, predicate=None):
        return self._list('remoteservices', RemoteServicesDto,
                          RemoteService, predicate=predicate)

    def find_remote_service(self, predicate=None):
        return self._find('remoteservices', RemoteServicesDto,
                          RemoteService, predicate=predicate)

    def list_machines(self, predicate=None):
        """
        Machines of every rack of the datacenter.
        """
        machines = []
        for rack in self.list_racks():
            machines.extend(rack.list_machines(predicate=predicate))
        return machines


class Rack(DomainWrapper):
    DTO_CLASS = RackDto

    _datacenter = None

    @classmethod
    def build(cls, context, datacenter, name, vlan_id_min=2,
              vlan_id_max=4094, vlan_per_vdc_reserved=1, nrsq=10,
              short_description=None, long_description=None,
              ha_enabled=False):
        _require_parent('datacenter', datacenter).require_link('racks')
        if not name:
            raise ValueError('name is required')

        dto = RackDto(name=name, vlan_id_min=vlan_id_min,
                      vlan_id_max=vlan_id_max,
                      vlan_per_vdc_reserved=vlan_per_vdc_reserved,
                      nrsq=nrsq, short_description=short_description,
                      long_description=long_description,
                      ha_enabled=ha_enabled)
        rack = cls(context, dto)
        rack._datacenter = datacenter
        return rack

    @property
    def name(self):
        return self.unwrap().name

    def save(self):
        return self._create(_require_parent('datacenter', self._datacenter),
                            'racks')

    def update(self):
        return self._update()

    def delete(self):
        return self._delete()

    def get_datacenter(self):
        return self._follow('datacenter', Datacenter)

    def list_machines(self, predicate=None):
        return self._list('machines', MachinesDto, Machine,
                          predicate=predicate)

    def find_machine(self, predicate=None):
        return self._find('machines', MachinesDto, Machine,
                          predicate=predicate)


class Machine(DomainWrapper):
    DTO_CLASS = MachineDto

    _rack = None

    @classmethod
    def build(cls, context, rack, name, ip, hypervisor_type, user=None,
              password=None, port=None, ip_service=None, description=None,
              cpu=None, ram=None):
        _require_parent('rack', rack).require_link('machines')
        if not name or not ip or not hypervisor_type:
            raise ValueError('name, ip and hypervisor_type are required')

        dto = MachineDto(name=name, ip=ip, ip_service=ip_service or ip,
                         type=hypervisor_type, user=user, password=password,
                         port=port, description=description, cpu=cpu,
                         ram=ram)
        machine = cls(context, dto)
        machine._rack = rack
        return machine

    @property
    def name(self):
        return self.unwrap().name

    @property
    def ip(self):
        return self.unwrap().ip

    @property
    def state(self):
        return self.unwrap().state

    def save(self):
        return self._create(_require_parent('rack', self._rack), 'machines')

    def update(self):
        return self._update()

    def delete(self):
        return self._delete()

    def get_rack(self):
        return self._follow('rack', Rack)

    def check_state(self):
        """
        Ask the API to check the hypervisor and return its current state.

        :rtype: :class:`MachineState`
        """
        dto = self.resolver.follow(self.unwrap(), 'checkstate',
                                   MachineStateDto)
        self.unwrap().state = dto.state
        return dto.state


class RemoteService(DomainWrapper):
    DTO_CLASS = RemoteServiceDto

    _datacenter = None

    @classmethod
    def build(cls, context, datacenter, type, ip=None, port=None, uri=None):
        """
        Build a remote service of the given type.

        When ``uri`` is not given it is generated from the ``ip``, the
        ``port`` (or the default port of the type) and the service mapping.
        """
        _require_parent('datacenter', datacenter).require_link(
            'remoteservices')

        if uri is None:
            if not ip:
                raise ValueError('ip is required when no uri is given')
            uri = cls.generate_uri(type, ip, port)

        service = cls(context, RemoteServiceDto(type=type, uri=uri))
        service._datacenter = datacenter
        return service

    @staticmethod
    def generate_uri(type, ip, port=None):
        protocol, default_port, mapping = REMOTE_SERVICE_DEFAULTS[type]
        return '%s%s:%s/%s' % (protocol, ip, port or default_port, mapping)

    @property
    def type(self):
        return self.unwrap().type

    @property
    def uri(self):
        return self.unwrap().uri

    def save(self):
        return self._create(_require_parent('datacenter', self._datacenter),
                            'remoteservices')

    def update(self):
        return self._update()

    def delete(self):
        return self._delete()

    def get_datacenter(self):
        return self._follow('datacenter', Datacenter)

    def is_available(self):
        """
        Return ``True`` if the API can reach the remote service.
        """
        link = self.unwrap().search_link('check')
        if link is None:
            return False

        try:
            self.connection.request(link.href)
        except (NotFoundError, ProviderError):
            return False
        return True
