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
from urllib.parse import parse_qsl, urlparse

from abiquo.domain.enterprise import Enterprise, User
from abiquo.domain.options import EnterpriseOptions
from abiquo.test import AbiquoContextTestCase


class EnterpriseTestCase(AbiquoContextTestCase):
    def setUp(self):
        super(EnterpriseTestCase, self).setUp()
        self.administration = self.context.administration

    def test_get_current_user(self):
        user = self.administration.get_current_user()

        self.assertEqual(user.id, 1)
        self.assertEqual(user.nick, 'admin')
        self.assertTrue(user.dto.active)
        self.assertEqual(user.dto.auth_type, 'ABIQUO')
        self.assertEqual(self._executed_mock_methods, ['_api_login'])

    def test_get_current_enterprise(self):
        enterprise = self.administration.get_current_enterprise()

        self.assertEqual(enterprise.name, 'Abiquo')
        self.assertFalse(enterprise.dto.reservation_restricted)
        self.assertEqual(self._executed_mock_methods,
                         ['_api_login', '_api_admin_enterprises_1'])

    def test_list_enterprises(self):
        enterprises = self.administration.list_enterprises()

        self.assertEqual([e.name for e in enterprises], ['Abiquo', 'Acme'])
        self.assertEqual(enterprises[1].dto.cpu_count_hard_limit, 20)
        self.assertTrue(enterprises[1].dto.reservation_restricted)

    def test_list_enterprises_with_options(self):
        options = EnterpriseOptions(filter='Ac', page=2, results=25)
        self.administration.list_enterprises(options=options)

        query = urlparse(self._visited_urls[0]).query
        self.assertEqual(dict(parse_qsl(query)),
                         {'filter': 'Ac', 'page': '2', 'numResults': '25'})

    def test_list_enterprises_with_dict_options(self):
        self.administration.list_enterprises(options={'network': 'true'})
        self.assertTrue(self._visited_urls[0].endswith('?network=true'))

    def test_find_enterprise(self):
        enterprise = self.administration.find_enterprise(
            lambda e: e.name == 'Acme')
        self.assertEqual(enterprise.id, 2)

    def test_get_enterprise(self):
        enterprise = self.administration.get_enterprise(1)
        self.assertEqual(enterprise.id, 1)
        self.assertEqual(self._visited_urls,
                         ['http://localhost/api/admin/enterprises/1'])

    def test_list_users(self):
        enterprise = self.administration.get_enterprise(1)
        users = enterprise.list_users()

        self.assertEqual([u.nick for u in users], ['admin', 'user'])
        self.assertEqual(users[0].get_enterprise(), enterprise)

    def test_find_user(self):
        enterprise = self.administration.get_enterprise(1)

        user = enterprise.find_user(lambda u: not u.dto.active)
        self.assertEqual(user.nick, 'user')
        self.assertIsNone(enterprise.find_user(lambda u: u.nick == 'root'))

    def test_list_virtual_datacenters(self):
        enterprise = self.administration.get_enterprise(1)
        vdcs = enterprise.list_virtual_datacenters()

        self.assertEqual([vdc.name for vdc in vdcs], ['vdc_kvm'])
        self.assertEqual(
            self._executed_mock_methods[-1],
            '_api_admin_enterprises_1_action_virtualdatacenters')

    def test_create_enterprise(self):
        enterprise = Enterprise.build(self.context, 'Abiquo')
        self.assertIsNone(enterprise.id)

        enterprise.save()
        self.assertEqual(enterprise.id, 1)
        self.assertIsNotNone(enterprise.search_link('users'))

    def test_build_enterprise_validates(self):
        self.assertRaises(ValueError, Enterprise.build, self.context, None)

    def test_build_user(self):
        enterprise = self.administration.get_enterprise(1)
        user = User.build(self.context, enterprise, 'Standard', 'user',
                          role='http://localhost/api/admin/roles/2')

        self.assertIsNone(user.id)
        self.assertTrue(user.dto.active)
        self.assertEqual(user.search_link('role').href,
                         'http://localhost/api/admin/roles/2')
        self.assertRaises(ValueError, User.build, self.context, enterprise,
                          'Standard', '')

    def test_save_fetched_user_needs_enterprise(self):
        user = self.administration.get_current_user()
        self.assertRaises(ValueError, user.save)


if __name__ == '__main__':
    sys.exit(unittest.main())
