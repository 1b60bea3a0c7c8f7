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
Abiquo Compute Driver

Exposes an Abiquo cloud with the usual multi-cloud vocabulary: virtual
datacenters are locations, templates are images, virtual appliances are node
groups and virtual machines are nodes.
"""

import hashlib

from abiquo.common.types import AbiquoError, InvalidStateError, Type
from abiquo.config import AbiquoConfig
from abiquo.context import AbiquoContext
from abiquo.domain.cloud import VirtualAppliance, VirtualMachine
from abiquo.domain.cloud import VirtualMachineState
from abiquo.domain.cloud import VirtualMachineTemplate
from abiquo.links import Link, find_link

__all__ = [
    'NodeState',
    'Node',
    'NodeSize',
    'NodeImage',
    'NodeLocation',
    'NodeGroup',
    'AbiquoNodeDriver'
]


class NodeState(Type):
    """
    Standard states for a node
    """
    RUNNING = 'running'
    PENDING = 'pending'
    SUSPENDED = 'suspended'
    TERMINATED = 'terminated'
    UNKNOWN = 'unknown'


NODE_STATE_MAP = {
    VirtualMachineState.ALLOCATED: NodeState.PENDING,
    VirtualMachineState.LOCKED: NodeState.PENDING,
    VirtualMachineState.CONFIGURED: NodeState.PENDING,
    VirtualMachineState.ON: NodeState.RUNNING,
    VirtualMachineState.OFF: NodeState.SUSPENDED,
    VirtualMachineState.PAUSED: NodeState.SUSPENDED,
    VirtualMachineState.NOT_ALLOCATED: NodeState.TERMINATED,
    VirtualMachineState.UNKNOWN: NodeState.UNKNOWN,
}

PUBLIC_NETWORK_RELS = ['publicnetwork', 'externalnetwork',
                       'unmanagednetwork']


class UuidMixin(object):
    """
    Mixin class for get_uuid function.
    """

    def __init__(self):
        self._uuid = None

    def get_uuid(self):
        """
        Unique hash for a node, node image, or node size

        The hash is a function of an SHA1 hash of the node, node image,
        or node size's ID and its driver which means that it should be
        unique between all objects of its type.
        """
        if not self._uuid:
            value = '%s:%s' % (self.id, self.driver.name)
            self._uuid = hashlib.sha1(value.encode('utf-8')).hexdigest()

        return self._uuid

    @property
    def uuid(self):
        return self.get_uuid()


class Node(UuidMixin):
    """
    A virtual machine seen as a node. Provider specific data is kept in
    ``extra``; ``extra['uri_id']`` is the href of the virtual machine.
    """

    def __init__(self, id, name, state, public_ips, private_ips, driver,
                 size=None, image=None, extra=None):
        self.id = str(id) if id else None
        self.name = name
        self.state = state
        self.public_ips = public_ips if public_ips else []
        self.private_ips = private_ips if private_ips else []
        self.driver = driver
        self.size = size
        self.image = image
        self.extra = extra or {}
        UuidMixin.__init__(self)

    def reboot(self):
        return self.driver.reboot_node(self)

    def destroy(self):
        return self.driver.destroy_node(self)

    def __repr__(self):
        return (('<Node: uuid=%s, name=%s, state=%s, public_ips=%s, '
                 'private_ips=%s, provider=%s ...>')
                % (self.uuid, self.name, self.state, self.public_ips,
                   self.private_ips, self.driver.name))


class NodeSize(UuidMixin):
    """
    Amount of resources of a node. ``ram`` is in MB and ``disk`` in GB.
    """

    def __init__(self, id, name, ram, disk, bandwidth, price, driver,
                 extra=None):
        self.id = str(id)
        self.name = name
        self.ram = ram
        self.disk = disk
        self.bandwidth = bandwidth
        self.price = price
        self.driver = driver
        self.extra = extra or {}
        UuidMixin.__init__(self)

    def __repr__(self):
        return (('<NodeSize: id=%s, name=%s, ram=%s disk=%s driver=%s ...>')
                % (self.id, self.name, self.ram, self.disk,
                   self.driver.name))


class NodeImage(UuidMixin):
    def __init__(self, id, name, driver, extra=None):
        self.id = str(id)
        self.name = name
        self.driver = driver
        self.extra = extra or {}
        UuidMixin.__init__(self)

    def __repr__(self):
        return (('<NodeImage: id=%s, name=%s, driver=%s  ...>')
                % (self.id, self.name, self.driver.name))


class NodeLocation(object):
    """
    A virtual datacenter the user has access to.
    """

    def __init__(self, id, name, country, driver, extra=None):
        self.id = str(id)
        self.name = name
        self.country = country
        self.driver = driver
        self.extra = extra or {}

    def __eq__(self, other):
        if not isinstance(other, NodeLocation):
            return NotImplemented
        return self.id == other.id

    def __ne__(self, other):
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    def __hash__(self):
        return hash(self.id)

    def __repr__(self):
        return (('<NodeLocation: id=%s, name=%s, country=%s, driver=%s>')
                % (self.id, self.name, self.country, self.driver.name))


class NodeGroup(object):
    """
    Group of virtual machines that can be managed together

    All nodes in Abiquo must be defined inside a virtual appliance, which is
    called a node group here. Nodes created without a group name end up in
    a group named 'abiquo'.
    """
    DEFAULT_GROUP_NAME = 'abiquo'

    def __init__(self, driver, name=DEFAULT_GROUP_NAME, nodes=None, uri=''):
        self.driver = driver
        self.name = name
        self.nodes = nodes if nodes is not None else []
        self.uri = uri

    def __repr__(self):
        return (('<NodeGroup: name=%s, nodes=[%s] >')
                % (self.name, ",".join(map(str, self.nodes))))

    def destroy(self):
        """
        Destroys the group delegating the execution to
        :class:`AbiquoNodeDriver`.
        """
        return self.driver.ex_destroy_group(self)


class AbiquoNodeDriver(object):
    """
    Compute driver on top of an :class:`abiquo.context.AbiquoContext`.
    """

    name = 'Abiquo'
    website = 'http://www.abiquo.com/'
    contextCls = AbiquoContext

    # some images take a lot of time to deploy
    timeout = 2000

    def __init__(self, user_id, secret, endpoint, context=None, **kwargs):
        """
        :param user_id: identifier of Abiquo user (required)
        :type user_id: ``str``

        :param secret: password of the Abiquo user (required)
        :type secret: ``str``

        :param endpoint: Abiquo API endpoint (required)
        :type endpoint: ``str`` that can be parsed as URL

        :param context: An existing context to reuse. ``kwargs`` are passed
                        to :class:`abiquo.config.AbiquoConfig` otherwise.
        :type context: :class:`abiquo.context.AbiquoContext`
        """
        if context is None:
            config = AbiquoConfig(endpoint, user_id, secret, **kwargs)
            context = self.contextCls(config)

        self.context = context
        if context.config.task_timeout is not None:
            self.timeout = context.config.task_timeout

        self.cache = {}
        self.ex_populate_cache()

    def ex_populate_cache(self):
        """
        Load the current user, its enterprise and the virtual datacenters
        it can use. The virtual datacenters are the locations of the driver.

        The list of locations does not change during the life of a driver,
        call this method again to refresh it.
        """
        user = self.context.administration.get_current_user()
        self.cache['user'] = user
        self.cache['enterprise'] = user.get_enterprise()

        self.cache['locations'] = {}
        for vdc in self.context.cloud.list_virtual_datacenters():
            location_link = vdc.search_link('location')
            country = location_link.title if location_link else None
            location = NodeLocation(vdc.id, vdc.name, country, self,
                                    extra={'hypervisor': vdc.hypervisor_type})
            self.cache['locations'][location] = vdc

    def list_locations(self):
        return list(self.cache['locations'].keys())

    def list_sizes(self, location=None):
        """
        Abiquo does not work with sizes. These predefined ones only override
        the RAM of the template when given to :meth:`create_node`.
        """
        return [
            NodeSize(id=1, name='Small', ram=128, disk=4, bandwidth=None,
                     price=None, driver=self),
            NodeSize(id=2, name='Medium', ram=512, disk=16, bandwidth=None,
                     price=None, driver=self),
            NodeSize(id=3, name='Big', ram=4096, disk=32, bandwidth=None,
                     price=None, driver=self),
            NodeSize(id=4, name='XXL Big', ram=4096 * 2, disk=32 * 4,
                     bandwidth=None, price=None, driver=self),
        ]

    def list_images(self, location=None):
        """
        Templates compatible with the given location, or with any of them.
        """
        images = []
        ids = set()
        for loc in self._get_locations(location):
            vdc = self.cache['locations'][loc]
            for template in vdc.list_templates():
                if template.id in ids:
                    continue
                ids.add(template.id)
                images.append(self._to_nodeimage(template))
        return images

    def ex_list_groups(self, location=None):
        groups = []
        for loc in self._get_locations(location):
            vdc = self.cache['locations'][loc]
            for vapp in vdc.list_virtual_appliances():
                nodes = [self._to_node(vm)
                         for vm in vapp.list_virtual_machines()]
                groups.append(NodeGroup(self, vapp.name, nodes,
                                        uri=vapp.search_link('edit').href))
        return groups

    def list_nodes(self, location=None):
        nodes = []
        for group in self.ex_list_groups(location):
            nodes.extend(group.nodes)
        return nodes

    def create_node(self, image, name=None, size=None, location=None,
                    group_name=None):
        """
        Create a new node.

        This method wraps these Abiquo actions:

            1. Create a group if it does not exist.
            2. Register a new node in the group.
            3. Deploy the node and wait for the deploy task.
            4. Retrieve it again to get the values set at deploy time (such
               as ips and remote access ports).

        :param image: Template of the node (required)
        :type image: :class:`NodeImage`

        :param size: Overrides the RAM of the template.
        :type size: :class:`NodeSize`

        :param group_name: Group of the node, created in the location when
                           it does not exist.
        :type group_name: ``str``

        :rtype: :class:`Node`
        """
        location = self._define_create_node_location(image, location)
        group = self._define_create_node_group(location, group_name)

        template = self._get_template(image)
        ram = size.ram if size is not None else None
        vm = VirtualMachine.build(self.context, group, template, label=name,
                                  ram=ram)
        vm.save()

        self._deploy_remote(vm)
        return self._to_node(vm.refresh())

    def destroy_node(self, node):
        """
        Undeploy the node if needed and delete it.

        :return: ``True`` if the node was deleted, ``False`` if the undeploy
                 task did not succeed.
        :rtype: ``bool``
        """
        vm = self._get_virtual_machine(node)
        state = vm.state

        if state in (VirtualMachineState.ALLOCATED,
                     VirtualMachineState.CONFIGURED,
                     VirtualMachineState.LOCKED,
                     VirtualMachineState.UNKNOWN):
            raise InvalidStateError('Invalid Node state %s' % (state),
                                    driver=self)

        if state != VirtualMachineState.NOT_ALLOCATED:
            if not self._await(vm.undeploy(force=True)):
                return False

        vm.delete()
        return True

    def reboot_node(self, node):
        vm = self._get_virtual_machine(node)
        return self._await(vm.reboot())

    def ex_run_node(self, node):
        """
        Deploy a node that is defined but not deployed.

        :rtype: :class:`Node`
        """
        vm = self._get_virtual_machine(node)

        if vm.state != VirtualMachineState.NOT_ALLOCATED:
            raise InvalidStateError('Invalid Node state %s' % (vm.state),
                                    driver=self)

        self._deploy_remote(vm)
        return self._to_node(vm.refresh())

    def ex_create_group(self, name, location=None):
        """
        Create an empty group in ``location`` (the first location by
        default).

        :rtype: :class:`NodeGroup`
        """
        if location is None:
            location = self.list_locations()[0]
        elif location not in self.cache['locations']:
            raise AbiquoError('Location does not exist', driver=self)

        vdc = self.cache['locations'][location]
        vapp = VirtualAppliance.build(self.context, vdc, name).save()
        return NodeGroup(self, vapp.name, uri=vapp.search_link('edit').href)

    def ex_destroy_group(self, group):
        """
        Destroy a group and every node in it.

        :return: ``True`` if the group was deleted
        :rtype: ``bool``
        """
        vapp = self._resolve(group.uri, VirtualAppliance)

        if vapp.state not in ('NOT_DEPLOYED', 'DEPLOYED'):
            raise InvalidStateError('Can not destroy group because of '
                                    'current state %s' % (vapp.state),
                                    driver=self)

        if vapp.state == 'DEPLOYED':
            if not self._await(vapp.undeploy(force=True)):
                return False

        vapp.delete()
        return True

    def _await(self, handle):
        if handle is None:
            return True

        result = self.context.monitor.await_completion(handle,
                                                       max_wait=self.timeout)
        return result.succeeded

    def _deploy_remote(self, vm):
        if not self._await(vm.deploy(force_soft_limits=True)):
            raise AbiquoError('Could not run the node', driver=self)

    def _resolve(self, href, wrapper_cls):
        dto = self.context.resolver.resolve(Link('edit', href),
                                            wrapper_cls.DTO_CLASS)
        return wrapper_cls(self.context, dto)

    def _get_virtual_machine(self, node):
        return self._resolve(node.extra['uri_id'], VirtualMachine)

    def _get_template(self, image):
        template = image.extra.get('template')
        if template is None:
            template = self._resolve(image.extra['url'],
                                     VirtualMachineTemplate)
        return template

    def _get_locations(self, location=None):
        if location is not None:
            return [location]
        return self.list_locations()

    def _define_create_node_location(self, image, location=None):
        """
        Find a location where ``image`` can be used.
        """
        if location is not None and location not in self.cache['locations']:
            raise AbiquoError('Location does not exist', driver=self)

        for candidate in self._get_locations(location):
            if image.id in [img.id for img in self.list_images(candidate)]:
                return candidate

        raise AbiquoError('The image can not be used in any location',
                          driver=self)

    def _define_create_node_group(self, location, group_name=None):
        group_name = group_name or NodeGroup.DEFAULT_GROUP_NAME
        vdc = self.cache['locations'][location]

        vapp = vdc.find_virtual_appliance(lambda v: v.name == group_name)
        if vapp is not None:
            return vapp

        vapp = VirtualAppliance.build(self.context, vdc, group_name)
        return vapp.save()

    def _to_node(self, vm):
        state = NODE_STATE_MAP.get(vm.state, NodeState.UNKNOWN)

        template = vm.get_template()
        image = self._to_nodeimage(template) if template is not None \
            else None

        private_ips = []
        public_ips = []
        for nic in vm.list_attached_nics():
            if find_link(nic.links, 'privatenetwork') is not None:
                private_ips.append(nic.ip)
            elif any(find_link(nic.links, rel) is not None
                     for rel in PUBLIC_NETWORK_RELS):
                public_ips.append(nic.ip)

        extra = {'uri_id': vm.search_link('edit').href}
        dto = vm.unwrap()
        if dto.vdrp_ip is not None:
            extra['vdrp_ip'] = dto.vdrp_ip
            extra['vdrp_port'] = dto.vdrp_port

        return Node(vm.id, vm.label, state, public_ips, private_ips, self,
                    image=image, extra=extra)

    def _to_nodeimage(self, template):
        extra = {
            'url': template.search_link('edit').href,
            'hdrequired': template.hd_required,
            'template': template,
        }
        return NodeImage(template.id, template.name, self, extra)
