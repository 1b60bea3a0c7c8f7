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

import sys
import unittest

from abiquo.common.types import DeletedResourceError
from abiquo.common.types import RequiredLinkMissingError
from abiquo.domain.infrastructure import Datacenter, DatacenterDto
from abiquo.domain.infrastructure import Machine, MachineState
from abiquo.domain.infrastructure import Rack, RemoteService
from abiquo.domain.infrastructure import RemoteServiceType
from abiquo.test import AbiquoContextTestCase


class InfrastructureTestCase(AbiquoContextTestCase):
    def setUp(self):
        super(InfrastructureTestCase, self).setUp()
        self.administration = self.context.administration

    def _datacenter(self):
        return self.administration.get_datacenter(1)

    def test_list_datacenters(self):
        datacenters = self.administration.list_datacenters()

        self.assertEqual([dc.name for dc in datacenters],
                         ['barcelona', 'madrid'])
        self.assertEqual(datacenters[1].id, 2)
        self.assertEqual(datacenters[1].location, 'Madrid')
        self.assertExecutedMethodCount(1)

    def test_find_datacenter(self):
        datacenter = self.administration.find_datacenter(
            lambda dc: dc.location == 'Madrid')
        self.assertEqual(datacenter.id, 2)

        self.assertIsNone(self.administration.find_datacenter(
            lambda dc: dc.name == 'paris'))

    def test_get_datacenter(self):
        self.assertEqual(self._datacenter().name, 'barcelona')
        self.assertIsNone(self.administration.get_datacenter(3))

    def test_create_datacenter(self):
        datacenter = Datacenter.build(self.context, 'barcelona', 'Barcelona')
        self.assertIsNone(datacenter.id)

        self.assertIs(datacenter.save(), datacenter)
        self.assertEqual(datacenter.id, 1)
        self.assertIsNotNone(datacenter.search_link('racks'))
        self.assertEqual(self._executed_mock_methods,
                         ['_api_admin_datacenters'])

    def test_build_datacenter_validates(self):
        self.assertRaises(ValueError, Datacenter.build, self.context, '',
                          'Barcelona')

    def test_delete_datacenter(self):
        datacenter = self._datacenter()

        self.assertIsNone(datacenter.delete())
        self.assertTrue(datacenter.is_deleted)
        self.assertEqual(repr(datacenter), '<Datacenter: deleted>')
        self.assertRaises(DeletedResourceError, getattr, datacenter, 'name')
        self.assertRaises(DeletedResourceError, datacenter.list_racks)
        self.assertExecutedMethodCount(2)

    def test_list_racks(self):
        racks = self._datacenter().list_racks()

        self.assertEqual(len(racks), 1)
        self.assertEqual(racks[0].name, 'rack 1')
        self.assertEqual(racks[0].dto.vlan_id_max, 4094)
        self.assertFalse(racks[0].dto.ha_enabled)
        self.assertEqual(racks[0].get_datacenter(), self._datacenter())

    def test_create_rack(self):
        rack = Rack.build(self.context, self._datacenter(), 'rack 1')
        rack.save()
        self.assertEqual(rack.id, 1)

    def test_build_rack_without_parent(self):
        self.assertRaises(ValueError, Rack.build, self.context, None, 'rack')

        datacenter = Datacenter(self.context, DatacenterDto(name='new'))
        self.assertRaises(RequiredLinkMissingError, Rack.build, self.context,
                          datacenter, 'rack')

    def test_save_fetched_rack_needs_parent(self):
        rack = self._datacenter().find_rack()
        self.assertRaises(ValueError, rack.save)

    def test_list_machines(self):
        machines = self._datacenter().list_machines()

        self.assertEqual([m.name for m in machines], ['kvm-1', 'kvm-2'])
        self.assertEqual(machines[0].state, MachineState.MANAGED)
        self.assertEqual(machines[0].dto.cpu_used, 2)
        self.assertEqual(machines[0].get_rack().id, 1)

    def test_machine_check_state(self):
        machine = self._datacenter().find_rack().find_machine(
            lambda m: m.ip == '10.60.1.120')

        self.assertEqual(machine.check_state(), MachineState.PROVISIONED)
        self.assertEqual(machine.state, MachineState.PROVISIONED)

    def test_machine_check_state_without_link(self):
        machine = self._datacenter().find_rack().find_machine(
            lambda m: m.name == 'kvm-2')
        executed = len(self._executed_mock_methods)

        self.assertRaises(RequiredLinkMissingError, machine.check_state)
        self.assertExecutedMethodCount(executed)

    def test_build_machine(self):
        rack = self._datacenter().find_rack()
        machine = Machine.build(self.context, rack, 'kvm-3', '10.60.1.122',
                                'KVM')

        self.assertEqual(machine.dto.ip_service, '10.60.1.122')
        self.assertEqual(machine.dto.type, 'KVM')
        self.assertRaises(ValueError, Machine.build, self.context, rack,
                          'kvm-3', None, 'KVM')

    def test_remote_services(self):
        services = self._datacenter().list_remote_services()

        self.assertEqual([s.type for s in services],
                         [RemoteServiceType.NODE_COLLECTOR,
                          RemoteServiceType.VIRTUAL_FACTORY])
        self.assertEqual(services[0].uri, 'http://10.60.1.4:80/nodecollector')
        self.assertEqual(services[0].get_datacenter().id, 1)

    def test_remote_service_availability(self):
        datacenter = self._datacenter()
        node_collector = datacenter.find_remote_service(
            lambda s: s.type == RemoteServiceType.NODE_COLLECTOR)
        virtual_factory = datacenter.find_remote_service(
            lambda s: s.type == RemoteServiceType.VIRTUAL_FACTORY)

        self.assertTrue(node_collector.is_available())
        self.assertFalse(virtual_factory.is_available())

    def test_build_remote_service(self):
        service = RemoteService.build(self.context, self._datacenter(),
                                      RemoteServiceType.APPLIANCE_MANAGER,
                                      ip='10.60.1.4', port=8009)
        self.assertEqual(service.uri, 'http://10.60.1.4:8009/am')

        self.assertRaises(ValueError, RemoteService.build, self.context,
                          self._datacenter(),
                          RemoteServiceType.APPLIANCE_MANAGER)

    def test_generate_uri(self):
        self.assertEqual(RemoteService.generate_uri(
            RemoteServiceType.NODE_COLLECTOR, '10.60.1.4'),
            'http://10.60.1.4:80/nodecollector')
        self.assertEqual(RemoteService.generate_uri(
            RemoteServiceType.DHCP_SERVICE, '10.60.1.4'),
            'omapi://10.60.1.4:7911/')

    def test_refresh(self):
        datacenter = self._datacenter()
        self.assertIs(datacenter.refresh(), datacenter)
        self.assertEqual(datacenter.name, 'barcelona')
        self.assertExecutedMethodCount(2)


if __name__ == '__main__':
    sys.exit(unittest.main())
