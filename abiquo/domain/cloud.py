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
Cloud resources: virtual datacenters, virtual appliances, virtual machines,
templates and storage.

Every operation the API runs asynchronously (deploy, undeploy, reboot, state
changes and reconfiguration of deployed machines) returns a
:class:`abiquo.task.TaskHandle`. Use the monitor of the context to wait for
it::

    handle = vm.deploy()
    result = context.monitor.await_completion(handle)
"""

from abiquo.common.types import Type
from abiquo.domain.base import DomainWrapper
from abiquo.domain.enterprise import Enterprise
from abiquo.domain.infrastructure import Datacenter
from abiquo.domain.network import NicsDto, Nic, PrivateNetwork
from abiquo.domain.network import VLANNetworkDto, VLANNetworksDto
from abiquo.domain.options import VirtualDatacenterOptions
from abiquo.domain.options import VirtualMachineOptions
from abiquo.domain.task import AsyncTask
from abiquo.dto import BaseDto, DtoCollection, Field, media_type
from abiquo.task import TasksDto
from abiquo.utils.misc import find, first

__all__ = [
    'VirtualMachineState',
    'VirtualDatacenterDto',
    'VirtualDatacentersDto',
    'VirtualApplianceDto',
    'VirtualAppliancesDto',
    'VirtualMachineDto',
    'VirtualMachinesDto',
    'VirtualMachineStateDto',
    'VirtualMachineTaskDto',
    'VirtualMachineTemplateDto',
    'VirtualMachineTemplatesDto',
    'HardDiskDto',
    'HardDisksDto',
    'VolumeDto',
    'VolumesDto',
    'VirtualDatacenter',
    'VirtualAppliance',
    'VirtualMachine',
    'VirtualMachineTemplate',
    'HardDisk',
    'Volume'
]

VIRTUAL_DATACENTERS_PATH = '/cloud/virtualdatacenters'


class VirtualMachineState(Type):
    NOT_ALLOCATED = 'NOT_ALLOCATED'
    ALLOCATED = 'ALLOCATED'
    CONFIGURED = 'CONFIGURED'
    ON = 'ON'
    OFF = 'OFF'
    PAUSED = 'PAUSED'
    LOCKED = 'LOCKED'
    UNKNOWN = 'UNKNOWN'

    @property
    def is_deployed(self):
        return self in (VirtualMachineState.ON, VirtualMachineState.OFF,
                        VirtualMachineState.PAUSED)


class VirtualDatacenterDto(BaseDto):
    ROOT = 'virtualDatacenter'
    MEDIA_TYPE = media_type('virtualdatacenter')
    FIELDS = (
        Field('id', int),
        Field('name'),
        Field('hypervisorType'),
        Field('cpuCountSoftLimit', int),
        Field('cpuCountHardLimit', int),
        Field('ramSoftLimitInMb', int, attr='ram_soft_limit_in_mb'),
        Field('ramHardLimitInMb', int, attr='ram_hard_limit_in_mb'),
        Field('vlan', VLANNetworkDto),
    )


class VirtualDatacentersDto(DtoCollection):
    ROOT = 'virtualDatacenters'
    MEDIA_TYPE = media_type('virtualdatacenters')
    ITEM = VirtualDatacenterDto


class VirtualApplianceDto(BaseDto):
    ROOT = 'virtualAppliance'
    MEDIA_TYPE = media_type('virtualappliance')
    FIELDS = (
        Field('id', int),
        Field('name'),
        Field('state'),
        Field('error', int),
        Field('highDisponibility', int),
        Field('publicApp', int),
    )


class VirtualAppliancesDto(DtoCollection):
    ROOT = 'virtualAppliances'
    MEDIA_TYPE = media_type('virtualappliances')
    ITEM = VirtualApplianceDto


class VirtualMachineDto(BaseDto):
    ROOT = 'virtualMachine'
    MEDIA_TYPE = media_type('virtualmachine')
    FIELDS = (
        Field('id', int),
        Field('uuid'),
        Field('name'),
        Field('label'),
        Field('description'),
        Field('cpu', int),
        Field('ram', int),
        Field('hdInBytes', int),
        Field('vdrpEnabled', bool),
        Field('vdrpPort', int),
        Field('vdrpIP', attr='vdrp_ip'),
        Field('highDisponibility', int),
        Field('password'),
        Field('keymap'),
        Field('state', VirtualMachineState),
    )


class VirtualMachinesDto(DtoCollection):
    ROOT = 'virtualMachines'
    MEDIA_TYPE = media_type('virtualmachines')
    ITEM = VirtualMachineDto


class VirtualMachineStateDto(BaseDto):
    ROOT = 'virtualmachinestate'
    MEDIA_TYPE = media_type('virtualmachinestate')
    FIELDS = (
        Field('state', VirtualMachineState),
    )


class VirtualMachineTaskDto(BaseDto):
    """
    Options of the deploy and undeploy actions.
    """
    ROOT = 'virtualmachinetask'
    MEDIA_TYPE = media_type('virtualmachinetask')
    FIELDS = (
        Field('forceEnterpriseSoftLimits', bool),
        Field('forceUndeploy', bool),
    )


class VirtualMachineTemplateDto(BaseDto):
    ROOT = 'virtualMachineTemplate'
    MEDIA_TYPE = media_type('virtualmachinetemplate')
    FIELDS = (
        Field('id', int),
        Field('name'),
        Field('description'),
        Field('path'),
        Field('diskFormatType'),
        Field('diskFileSize', int),
        Field('cpuRequired', int),
        Field('ramRequired', int),
        Field('hdRequired', int),
        Field('iconUrl'),
        Field('shared', bool),
        Field('costCode', int),
    )


class VirtualMachineTemplatesDto(DtoCollection):
    ROOT = 'virtualMachineTemplates'
    MEDIA_TYPE = media_type('virtualmachinetemplates')
    ITEM = VirtualMachineTemplateDto


class HardDiskDto(BaseDto):
    ROOT = 'disk'
    MEDIA_TYPE = media_type('harddisk')
    FIELDS = (
        Field('id', int),
        Field('sizeInMb', int),
        Field('sequence', int),
    )


class HardDisksDto(DtoCollection):
    ROOT = 'disks'
    MEDIA_TYPE = media_type('harddisks')
    ITEM = HardDiskDto


class VolumeDto(BaseDto):
    ROOT = 'volume'
    MEDIA_TYPE = media_type('volume')
    FIELDS = (
        Field('id', int),
        Field('uuid'),
        Field('name'),
        Field('sizeInMB', int, attr='size_in_mb'),
        Field('state'),
        Field('description'),
    )


class VolumesDto(DtoCollection):
    ROOT = 'volumes'
    MEDIA_TYPE = media_type('volumes')
    ITEM = VolumeDto


class VirtualDatacenter(DomainWrapper):
    DTO_CLASS = VirtualDatacenterDto

    _datacenter = None
    _enterprise = None

    @classmethod
    def build(cls, context, datacenter, enterprise, network, name,
              hypervisor_type, cpu_count_soft_limit=0,
              cpu_count_hard_limit=0, ram_soft_limit_in_mb=0,
              ram_hard_limit_in_mb=0):
        """
        :param network: Default private network of the virtual datacenter.
        :type network: :class:`abiquo.domain.network.PrivateNetwork`
        """
        if datacenter is None or enterprise is None or network is None:
            raise ValueError('datacenter, enterprise and network are '
                             'required')
        if not name or not hypervisor_type:
            raise ValueError('name and hypervisor_type are required')

        dto = VirtualDatacenterDto(
            name=name, hypervisor_type=hypervisor_type,
            cpu_count_soft_limit=cpu_count_soft_limit,
            cpu_count_hard_limit=cpu_count_hard_limit,
            ram_soft_limit_in_mb=ram_soft_limit_in_mb,
            ram_hard_limit_in_mb=ram_hard_limit_in_mb,
            vlan=network.unwrap())

        vdc = cls(context, dto)
        vdc._datacenter = datacenter
        vdc._enterprise = enterprise
        return vdc

    @property
    def name(self):
        return self.unwrap().name

    @property
    def hypervisor_type(self):
        return self.unwrap().hypervisor_type

    def save(self):
        if self._datacenter is None or self._enterprise is None:
            raise ValueError('datacenter and enterprise are required')

        options = VirtualDatacenterOptions(datacenter=self._datacenter.id,
                                           enterprise=self._enterprise.id)
        return self._create_at(VIRTUAL_DATACENTERS_PATH,
                               params=options.to_params())

    def update(self):
        return self._update()

    def delete(self):
        return self._delete()

    def get_datacenter(self):
        return self._follow('datacenter', Datacenter)

    def get_enterprise(self):
        return self._follow('enterprise', Enterprise)

    def get_default_network(self):
        return self._follow('defaultnetwork', PrivateNetwork, required=False)

    def list_virtual_appliances(self, predicate=None):
        return self._list('virtualappliances', VirtualAppliancesDto,
                          VirtualAppliance, predicate=predicate)

    def find_virtual_appliance(self, predicate=None):
        return self._find('virtualappliances', VirtualAppliancesDto,
                          VirtualAppliance, predicate=predicate)

    def list_private_networks(self, predicate=None):
        return self._list('privatenetworks', VLANNetworksDto,
                          PrivateNetwork, predicate=predicate)

    def find_private_network(self, predicate=None):
        return self._find('privatenetworks', VLANNetworksDto,
                          PrivateNetwork, predicate=predicate)

    def list_templates(self, predicate=None):
        return self._list('templates', VirtualMachineTemplatesDto,
                          VirtualMachineTemplate, predicate=predicate)

    def find_template(self, predicate=None):
        return self._find('templates', VirtualMachineTemplatesDto,
                          VirtualMachineTemplate, predicate=predicate)

    def list_hard_disks(self, predicate=None):
        return self._list('disks', HardDisksDto, HardDisk,
                          predicate=predicate)

    def list_volumes(self, predicate=None):
        return self._list('volumes', VolumesDto, Volume, predicate=predicate)

    def find_volume(self, predicate=None):
        return self._find('volumes', VolumesDto, Volume, predicate=predicate)


class VirtualAppliance(DomainWrapper):
    DTO_CLASS = VirtualApplianceDto

    _virtual_datacenter = None

    @classmethod
    def build(cls, context, virtual_datacenter, name):
        if virtual_datacenter is None:
            raise ValueError('virtual_datacenter is required')
        virtual_datacenter.unwrap().require_link('virtualappliances')
        if not name:
            raise ValueError('name is required')

        vapp = cls(context, VirtualApplianceDto(name=name))
        vapp._virtual_datacenter = virtual_datacenter
        return vapp

    @property
    def name(self):
        return self.unwrap().name

    @property
    def state(self):
        return self.unwrap().state

    def save(self):
        if self._virtual_datacenter is None:
            raise ValueError('virtual_datacenter is required')
        return self._create(self._virtual_datacenter.unwrap(),
                            'virtualappliances')

    def update(self):
        return self._update()

    def delete(self, force=False):
        """
        :param force: Delete the appliance even if it has deployed virtual
                      machines.
        """
        params = None
        if force:
            params = VirtualMachineOptions(force=True).to_params()
        return self._delete(params=params)

    def deploy(self, force_soft_limits=False):
        task = VirtualMachineTaskDto(
            force_enterprise_soft_limits=force_soft_limits)
        return self._action('deploy', body=task)

    def undeploy(self, force=False):
        return self._action('undeploy',
                            body=VirtualMachineTaskDto(force_undeploy=force))

    def get_virtual_datacenter(self):
        return self._follow('virtualdatacenter', VirtualDatacenter)

    def get_enterprise(self):
        return self._follow('enterprise', Enterprise)

    def list_virtual_machines(self, predicate=None):
        return self._list('virtualmachines', VirtualMachinesDto,
                          VirtualMachine, predicate=predicate)

    def find_virtual_machine(self, predicate=None):
        return self._find('virtualmachines', VirtualMachinesDto,
                          VirtualMachine, predicate=predicate)


class VirtualMachine(DomainWrapper):
    DTO_CLASS = VirtualMachineDto

    _virtual_appliance = None
    _template = None

    @classmethod
    def build(cls, context, virtual_appliance, template, name=None,
              label=None, description=None, cpu=None, ram=None,
              password=None, keymap=None):
        """
        Build a virtual machine of ``template`` inside
        ``virtual_appliance``. Hardware defaults to what the template
        requires.
        """
        if virtual_appliance is None or template is None:
            raise ValueError('virtual_appliance and template are required')

        virtual_appliance.unwrap().require_link('virtualmachines')
        template_dto = template.unwrap()
        template_dto.require_link('edit')

        dto = VirtualMachineDto(
            name=name, label=label or name, description=description,
            cpu=cpu if cpu is not None else template_dto.cpu_required,
            ram=ram if ram is not None else template_dto.ram_required,
            password=password, keymap=keymap)

        vm = cls(context, dto)
        vm._virtual_appliance = virtual_appliance
        vm._template = template
        return vm

    @property
    def name(self):
        return self.unwrap().name

    @property
    def label(self):
        return self.unwrap().label

    @property
    def cpu(self):
        return self.unwrap().cpu

    @property
    def ram(self):
        return self.unwrap().ram

    @property
    def uuid(self):
        return self.unwrap().uuid

    @property
    def state(self):
        """
        State as of the last time the virtual machine was fetched.
        """
        return self.unwrap().state

    def save(self):
        """
        Create the virtual machine in its virtual appliance. It is not
        deployed.
        """
        if self._virtual_appliance is None or self._template is None:
            raise ValueError('virtual_appliance and template are required')

        template_link = self._template.unwrap().require_link('edit')
        self.unwrap().update_link('virtualmachinetemplate',
                                  template_link.href,
                                  type=VirtualMachineTemplateDto.MEDIA_TYPE)
        return self._create(self._virtual_appliance.unwrap(),
                            'virtualmachines')

    def update(self, force=False):
        """
        Save the changes. Reconfiguring a deployed machine is asynchronous.

        :param force: Apply the changes even if the enterprise soft limits
                      are exceeded.
        :return: A task handle or ``None`` if the change was applied right
                 away.
        """
        params = None
        if force:
            params = VirtualMachineOptions(force=True).to_params()
        return self._update(params=params)

    def delete(self):
        return self._delete()

    def get_state(self):
        """
        Fetch the current state from the API.

        :rtype: :class:`VirtualMachineState`
        """
        dto = self.resolver.follow(self.unwrap(), 'state',
                                   VirtualMachineStateDto)
        self.unwrap().state = dto.state
        return dto.state

    def change_state(self, state):
        """
        Power on, power off or pause a deployed virtual machine.

        :type state: :class:`VirtualMachineState`
        :rtype: :class:`abiquo.task.TaskHandle`
        """
        body = VirtualMachineStateDto(state=state)
        return self._action('state', body=body, method='PUT')

    def deploy(self, force_soft_limits=False):
        task = VirtualMachineTaskDto(
            force_enterprise_soft_limits=force_soft_limits)
        return self._action('deploy', body=task)

    def undeploy(self, force=False):
        """
        :param force: Also undeploy machines that were imported into the
                      platform instead of created by it.
        """
        return self._action('undeploy',
                            body=VirtualMachineTaskDto(force_undeploy=force))

    def reboot(self):
        return self._action('reset')

    def get_virtual_appliance(self):
        return self._follow('virtualappliance', VirtualAppliance)

    def get_virtual_datacenter(self):
        return self._follow('virtualdatacenter', VirtualDatacenter)

    def get_enterprise(self):
        return self._follow('enterprise', Enterprise)

    def get_template(self):
        """
        Return the template of the machine, or ``None`` if it was deleted.
        """
        return self._follow('virtualmachinetemplate', VirtualMachineTemplate,
                            required=False)

    def list_tasks(self, predicate=None):
        """
        Tasks run on this virtual machine, newest first.
        """
        tasks = self._list('tasks', TasksDto, AsyncTask, predicate=predicate)
        return sorted(tasks, key=lambda task: task.timestamp or 0,
                      reverse=True)

    def list_attached_nics(self, predicate=None):
        return self._list('nics', NicsDto, Nic, predicate=predicate)

    # Storage

    def list_hard_disks(self, predicate=None):
        return self._list('harddisks', HardDisksDto, HardDisk,
                          predicate=predicate)

    def find_hard_disk(self, predicate=None):
        return first(self.list_hard_disks(), predicate)

    def attach_hard_disks(self, *hard_disks):
        return self._action('harddisks',
                            body=self._links_to('disk', hard_disks))

    def detach_all_hard_disks(self):
        return self._action('harddisks', method='DELETE')

    def detach_hard_disks(self, *hard_disks):
        ids = set(disk.id for disk in hard_disks)
        remaining = find(self.list_hard_disks(), lambda d: d.id not in ids)
        return self.replace_hard_disks(*remaining)

    def replace_hard_disks(self, *hard_disks):
        return self._action('harddisks',
                            body=self._links_to('disk', hard_disks),
                            method='PUT')

    def list_volumes(self, predicate=None):
        return self._list('volumes', VolumesDto, Volume, predicate=predicate)

    def find_volume(self, predicate=None):
        return first(self.list_volumes(), predicate)

    def attach_volumes(self, *volumes):
        return self._action('volumes', body=self._links_to('volume', volumes))

    def detach_all_volumes(self):
        return self._action('volumes', method='DELETE')

    def detach_volumes(self, *volumes):
        ids = set(volume.id for volume in volumes)
        remaining = find(self.list_volumes(), lambda v: v.id not in ids)
        return self.replace_volumes(*remaining)

    def replace_volumes(self, *volumes):
        return self._action('volumes', body=self._links_to('volume', volumes),
                            method='PUT')


class VirtualMachineTemplate(DomainWrapper):
    """
    Read only view of a template of the appliance library.
    """

    DTO_CLASS = VirtualMachineTemplateDto

    @property
    def name(self):
        return self.unwrap().name

    @property
    def cpu_required(self):
        return self.unwrap().cpu_required

    @property
    def ram_required(self):
        return self.unwrap().ram_required

    @property
    def hd_required(self):
        return self.unwrap().hd_required


class HardDisk(DomainWrapper):
    DTO_CLASS = HardDiskDto

    _virtual_datacenter = None

    @classmethod
    def build(cls, context, virtual_datacenter, size_in_mb):
        if virtual_datacenter is None:
            raise ValueError('virtual_datacenter is required')
        virtual_datacenter.unwrap().require_link('disks')
        if size_in_mb is None or size_in_mb <= 0:
            raise ValueError('size_in_mb must be positive')

        disk = cls(context, HardDiskDto(size_in_mb=size_in_mb))
        disk._virtual_datacenter = virtual_datacenter
        return disk

    @property
    def size_in_mb(self):
        return self.unwrap().size_in_mb

    @property
    def sequence(self):
        return self.unwrap().sequence

    def save(self):
        if self._virtual_datacenter is None:
            raise ValueError('virtual_datacenter is required')
        return self._create(self._virtual_datacenter.unwrap(), 'disks')

    def delete(self):
        return self._delete()

    def get_virtual_datacenter(self):
        return self._follow('virtualdatacenter', VirtualDatacenter)

    def get_virtual_machine(self):
        """
        The machine the disk is attached to, ``None`` if detached.
        """
        return self._follow('virtualmachine', VirtualMachine, required=False)


class Volume(DomainWrapper):
    DTO_CLASS = VolumeDto

    _virtual_datacenter = None

    @classmethod
    def build(cls, context, virtual_datacenter, name, size_in_mb,
              tier=None, description=None):
        """
        :param tier: href of the storage tier the volume is created in.
        """
        if virtual_datacenter is None:
            raise ValueError('virtual_datacenter is required')
        virtual_datacenter.unwrap().require_link('volumes')
        if not name or size_in_mb is None or size_in_mb <= 0:
            raise ValueError('name and a positive size_in_mb are required')

        dto = VolumeDto(name=name, size_in_mb=size_in_mb,
                        description=description)
        if tier is not None:
            dto.update_link('tier', tier)

        volume = cls(context, dto)
        volume._virtual_datacenter = virtual_datacenter
        return volume

    @property
    def name(self):
        return self.unwrap().name

    @property
    def size_in_mb(self):
        return self.unwrap().size_in_mb

    @property
    def state(self):
        return self.unwrap().state

    def save(self):
        if self._virtual_datacenter is None:
            raise ValueError('virtual_datacenter is required')
        return self._create(self._virtual_datacenter.unwrap(), 'volumes')

    def update(self):
        return self._update()

    def delete(self):
        return self._delete()

    def get_virtual_datacenter(self):
        return self._follow('virtualdatacenter', VirtualDatacenter)

    def get_virtual_machine(self):
        """
        The machine the volume is attached to, ``None`` if detached.
        """
        return self._follow('virtualmachine', VirtualMachine, required=False)
