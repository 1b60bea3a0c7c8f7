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
from xml.etree import ElementTree as ET

from abiquo.common.types import MalformedResponseError
from abiquo.common.types import RequiredLinkMissingError
from abiquo.domain.cloud import VirtualDatacenterDto
from abiquo.domain.cloud import VirtualMachineDto, VirtualMachineState
from abiquo.domain.cloud import VirtualMachineTemplatesDto
from abiquo.domain.network import VLANNetworkDto
from abiquo.dto import AcceptedRequestDto, media_type, to_snake_case
from abiquo.links import Link
from abiquo.task import TaskDto, TaskState
from abiquo.test.file_fixtures import AbiquoFileFixtures


class DtoTestCase(unittest.TestCase):
    fixtures = AbiquoFileFixtures()

    def test_media_type(self):
        self.assertEqual(media_type('virtualmachine'),
                         'application/vnd.abiquo.virtualmachine+xml')
        self.assertEqual(VirtualMachineDto.MEDIA_TYPE,
                         'application/vnd.abiquo.virtualmachine+xml')

    def test_to_snake_case(self):
        self.assertEqual(to_snake_case('ramSoftLimitInMb'),
                         'ram_soft_limit_in_mb')
        self.assertEqual(to_snake_case('hdInBytes'), 'hd_in_bytes')
        self.assertEqual(to_snake_case('name'), 'name')

    def test_parse_virtual_machine(self):
        dto = VirtualMachineDto.from_xml(self.fixtures.load('vm_1_on.xml'))

        self.assertEqual(dto.id, 1)
        self.assertEqual(dto.label, 'node1')
        self.assertEqual(dto.cpu, 1)
        self.assertEqual(dto.ram, 512)
        self.assertEqual(dto.hd_in_bytes, 1073741824)
        self.assertTrue(dto.vdrp_enabled)
        self.assertEqual(dto.vdrp_ip, '10.60.1.120')
        self.assertEqual(dto.vdrp_port, 5902)
        self.assertEqual(dto.state, VirtualMachineState.ON)
        self.assertIsNone(dto.password)

        self.assertEqual(dto.links[0].rel, 'edit')
        self.assertEqual(dto.get_id_from_link('virtualappliance'), 1)

    def test_unknown_enumeration_value_is_kept(self):
        xml = '<virtualMachine><state>HIBERNATED</state></virtualMachine>'
        dto = VirtualMachineDto.from_xml(xml)
        self.assertEqual(dto.state, 'HIBERNATED')

    def test_parse_wrong_root(self):
        self.assertRaises(MalformedResponseError,
                          VirtualMachineDto.from_xml,
                          self.fixtures.load('dc_1.xml'))

    def test_parse_empty_element(self):
        self.assertRaises(MalformedResponseError,
                          VirtualMachineDto.from_element, None)

    def test_parse_invalid_xml(self):
        self.assertRaises(MalformedResponseError,
                          VirtualMachineDto.from_xml, '<virtualMachine>')

    def test_serialize_links_before_fields(self):
        dto = VirtualMachineDto(name='vm', cpu=2, vdrp_enabled=False,
                                links=[Link('edit', 'http://h/api/vm/1')])
        element = ET.XML(dto.to_xml())

        self.assertEqual(element.tag, 'virtualMachine')
        self.assertEqual([child.tag for child in element],
                         ['link', 'name', 'cpu', 'vdrpEnabled'])
        self.assertEqual(element.findtext('vdrpEnabled'), 'false')
        self.assertEqual(element.find('link').get('href'),
                         'http://h/api/vm/1')

    def test_serialize_enumeration(self):
        dto = VirtualMachineDto(state=VirtualMachineState.OFF)
        self.assertEqual(ET.XML(dto.to_xml()).findtext('state'), 'OFF')

    def test_parse_then_serialize_keeps_document(self):
        original = VirtualMachineDto.from_xml(
            self.fixtures.load('vm_1_on.xml'))
        parsed = VirtualMachineDto.from_xml(original.to_xml())
        self.assertEqual(original, parsed)
        self.assertEqual(parsed.links, original.links)

    def test_nested_dto(self):
        network = VLANNetworkDto(name='default', address='192.168.0.0',
                                 mask=24, gateway='192.168.0.1')
        dto = VirtualDatacenterDto(name='vdc', hypervisor_type='KVM',
                                   vlan=network)

        element = ET.XML(dto.to_xml())
        self.assertEqual(element.find('vlan/address').text, '192.168.0.0')

        parsed = VirtualDatacenterDto.from_element(element)
        self.assertEqual(parsed.vlan.mask, 24)
        self.assertEqual(parsed.vlan.gateway, '192.168.0.1')

    def test_unexpected_field(self):
        self.assertRaises(TypeError, VirtualMachineDto, colour='blue')

    def test_update_link(self):
        dto = VirtualMachineDto(links=[Link('edit', '/vm/1'),
                                       Link('template', '/t/1')])
        dto.update_link('template', '/t/2')
        dto.update_link('virtualappliance', '/va/1')

        self.assertEqual([(l.rel, l.href) for l in dto.links],
                         [('edit', '/vm/1'), ('template', '/t/2'),
                          ('virtualappliance', '/va/1')])

    def test_require_link(self):
        dto = VirtualMachineDto()
        self.assertIsNone(dto.search_link('edit'))
        self.assertRaises(RequiredLinkMissingError, dto.require_link, 'edit')

    def test_collection(self):
        templates = VirtualMachineTemplatesDto.from_xml(
            self.fixtures.load('vdc_1_templates.xml'))

        self.assertEqual(templates.total_size, 2)
        self.assertEqual(len(templates), 2)
        self.assertEqual([t.name for t in templates],
                         ['m0n0wall', 'debian'])
        self.assertEqual(templates[1].ram_required, 1024)
        self.assertEqual(templates[1].hd_required, 2147483648)

    def test_task(self):
        task = TaskDto.from_xml(self.fixtures.load('task_running.xml'))

        self.assertEqual(task.id, '42')
        self.assertEqual(task.owner_id, '1')
        self.assertEqual(task.state, TaskState.RUNNING)
        self.assertEqual([job.id for job in task.jobs], ['42.1', '42.2'])
        self.assertEqual(task.jobs[0].state, TaskState.FINISHED_SUCCESSFULLY)
        self.assertEqual(task.jobs[1].timestamp, 1400000002)

    def test_accepted_request(self):
        accepted = AcceptedRequestDto.from_xml(
            self.fixtures.load('acceptedrequest.xml'))
        self.assertTrue(accepted.task_href.endswith('/tasks/42'))
        self.assertEqual(accepted.message,
                         'You can keep track of the progress in the link')

    def test_accepted_request_without_status(self):
        accepted = AcceptedRequestDto.from_xml(
            '<acceptedrequest><message>m</message></acceptedrequest>')
        try:
            accepted.task_href
        except RequiredLinkMissingError as e:
            self.assertEqual(e.rel, 'status')
        else:
            self.fail('Exception was not thrown')


if __name__ == '__main__':
    sys.exit(unittest.main())
