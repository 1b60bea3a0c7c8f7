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

import unittest
from http import client as httplib
from urllib.parse import parse_qs, parse_qsl, quote, urljoin, urlparse

import requests
import requests_mock

from abiquo.common.base import Response
from abiquo.http import AbiquoHttpConnection
from abiquo.test.file_fixtures import AbiquoFileFixtures


XML_HEADERS = {'content-type': 'application/xml'}


class AbiquoTestCase(unittest.TestCase):
    def __init__(self, *args, **kwargs):
        self._visited_urls = []
        self._executed_mock_methods = []
        super(AbiquoTestCase, self).__init__(*args, **kwargs)

    def setUp(self):
        self._visited_urls = []
        self._executed_mock_methods = []

    def _add_visited_url(self, url):
        self._visited_urls.append(url)

    def _add_executed_mock_method(self, method_name):
        self._executed_mock_methods.append(method_name)

    def assertExecutedMethodCount(self, expected):
        actual = len(self._executed_mock_methods)
        self.assertEqual(actual, expected,
                         'expected %d, but %d mock methods were executed'
                         % (expected, actual))


class MockHttp(AbiquoHttpConnection):
    """
    A mock HTTP client/server suitable for testing purposes. This replaces
    the transport by returning a mock response.

    Define methods by request path, replacing slashes (/) with underscores (_).
    Each of these mock methods should return a tuple of:

        (int status, str body, dict headers, str reason)
    """
    type = None
    use_param = None  # will use this param to namespace the request function
    test = None  # TestCase instance which is using this mock
    proxy_url = None

    def _get_request(self, method, url, body=None, headers=None):
        # Find a method we can use for this request
        parsed = urlparse(url)
        qs = parse_qs(parsed.query)
        path = parsed.path
        if path.endswith('/'):
            path = path[:-1]
        meth_name = self._get_method_name(type=self.type,
                                          use_param=self.use_param,
                                          qs=qs, path=path)
        meth = getattr(self, meth_name)

        if self.test and isinstance(self.test, AbiquoTestCase):
            self.test._add_visited_url(url=url)
            self.test._add_executed_mock_method(method_name=meth_name)
        return meth(method, url, body, headers)

    def request(self, method, url, body=None, headers=None, stream=False):
        headers = self._normalize_headers(headers=headers)
        url = urljoin(self.host, url)
        r_status, r_body, r_headers, r_reason = self._get_request(
            method, url, body, headers)
        if r_body is None:
            r_body = ''
        # this is to catch any special chars e.g. ~ in the request. URL
        url = quote(url, safe=':/?&=')

        with requests_mock.mock() as m:
            m.register_uri(method, url, text=r_body, reason=r_reason,
                           headers=r_headers, status_code=r_status)
            try:
                return super(MockHttp, self).request(
                    method=method, url=url, body=body, headers=headers,
                    stream=stream)
            except requests_mock.exceptions.NoMockAddress as nma:
                raise AttributeError("Failed to mock out URL {0} - {1}".format(
                    url, nma.request.url
                ))

    # Mock request/response example
    def _example(self, method, url, body, headers):
        """
        Return a simple message and header, regardless of input.
        """
        return (httplib.OK, 'Hello World!', {'X-Foo': 'abiquo'},
                httplib.responses[httplib.OK])

    def _get_method_name(self, type, use_param, qs, path):
        meth_name = (
            path
            .replace('/', '_')
            .replace('.', '_')
            .replace('-', '_'))

        if type:
            meth_name = '%s_%s' % (meth_name, self.type)

        if use_param and use_param in qs:
            param = qs[use_param][0].replace('.', '_').replace('-', '_')
            meth_name = '%s_%s' % (meth_name, param)

        if meth_name == '':
            meth_name = 'root'

        return meth_name

    def assertUrlContainsQueryParams(self, url, expected_params, strict=False):
        """
        Assert that provided url contains provided query parameters.

        :param url: URL to assert.
        :type url: ``str``

        :param expected_params: Dictionary of expected query parameters.
        :type expected_params: ``dict``

        :param strict: Assert that provided url contains only expected_params.
                       (defaults to ``False``)
        :type strict: ``bool``
        """
        question_mark_index = url.find('?')

        if question_mark_index != -1:
            url = url[question_mark_index + 1:]

        params = dict(parse_qsl(url))

        if strict:
            assert params == expected_params
        else:
            for key, value in expected_params.items():
                assert key in params
                assert params[key] == value


def make_response(status=200, headers=None, body='', connection=None):
    response = requests.Response()
    response.status_code = status
    response.headers = headers or {}
    response._content = body.encode('utf-8')
    response.encoding = 'utf-8'
    return Response(response, connection)


class AbiquoMockHttp(MockHttp):
    """
    Canned answers of an Abiquo API living at ``http://localhost/api``.

    Tests tweak the class attributes to change what some resources look
    like:

    * ``vm_fixture`` and ``vapp_fixture``: representation of virtual machine
      1 and virtual appliance 1.
    * ``task_fixtures``: successive representations of task 42. The last one
      is repeated once the others have been served. ``None`` answers 404.
    """

    fixtures = AbiquoFileFixtures()

    vm_fixture = 'vm_1_on.xml'
    vapp_fixture = 'vdc_1_vapp_1.xml'
    task_fixtures = ['task_finished.xml']

    @classmethod
    def reset(cls):
        cls.type = None
        cls.test = None
        cls.vm_fixture = 'vm_1_on.xml'
        cls.vapp_fixture = 'vdc_1_vapp_1.xml'
        cls.task_fixtures = ['task_finished.xml']

    def _response(self, status, fixture=None):
        body = self.fixtures.load(fixture) if fixture else ''
        return (status, body, XML_HEADERS, httplib.responses[status])

    def _accepted(self):
        return self._response(httplib.ACCEPTED, 'acceptedrequest.xml')

    def _not_found(self):
        return self._response(httplib.NOT_FOUND, 'errors_vm_not_found.xml')

    # Administration

    def _api_login(self, method, url, body, headers):
        return self._response(httplib.OK, 'login.xml')

    def _api_admin_enterprises(self, method, url, body, headers):
        if method == 'POST':
            return self._response(httplib.CREATED, 'ent_1.xml')
        return self._response(httplib.OK, 'ents.xml')

    def _api_admin_enterprises_1(self, method, url, body, headers):
        return self._response(httplib.OK, 'ent_1.xml')

    def _api_admin_enterprises_1_users(self, method, url, body, headers):
        return self._response(httplib.OK, 'ent_1_users.xml')

    def _api_admin_enterprises_1_action_virtualdatacenters(self, method, url,
                                                          body, headers):
        return self._response(httplib.OK, 'vdcs.xml')

    def _api_admin_datacenters(self, method, url, body, headers):
        if method == 'POST':
            return self._response(httplib.CREATED, 'dc_1.xml')
        return self._response(httplib.OK, 'dcs.xml')

    def _api_admin_datacenters_1(self, method, url, body, headers):
        if method == 'DELETE':
            return self._response(httplib.NO_CONTENT)
        return self._response(httplib.OK, 'dc_1.xml')

    def _api_admin_datacenters_3(self, method, url, body, headers):
        return self._response(httplib.NOT_FOUND)

    def _api_admin_datacenters_1_racks(self, method, url, body, headers):
        if method == 'POST':
            return self._response(httplib.CREATED, 'dc_1_rack_1.xml')
        return self._response(httplib.OK, 'dc_1_racks.xml')

    def _api_admin_datacenters_1_racks_1(self, method, url, body, headers):
        return self._response(httplib.OK, 'dc_1_rack_1.xml')

    def _api_admin_datacenters_1_racks_1_machines(self, method, url, body,
                                                  headers):
        return self._response(httplib.OK, 'dc_1_rack_1_machines.xml')

    def _api_admin_datacenters_1_racks_1_machines_1_action_checkstate(
            self, method, url, body, headers):
        return self._response(httplib.OK, 'machine_checkstate.xml')

    def _api_admin_datacenters_1_remoteservices(self, method, url, body,
                                                headers):
        return self._response(httplib.OK, 'dc_1_remoteservices.xml')

    def _api_admin_datacenters_1_remoteservices_nodecollector_action_check(
            self, method, url, body, headers):
        return self._response(httplib.NO_CONTENT)

    def _api_admin_datacenters_1_remoteservices_virtualfactory_action_check(
            self, method, url, body, headers):
        return self._response(httplib.SERVICE_UNAVAILABLE)

    def _api_admin_enterprises_1_datacenterrepositories_1_virtualmachinetemplates_1(  # NOQA
            self, method, url, body, headers):
        return self._response(httplib.OK, 'template_1.xml')

    # Cloud

    def _api_cloud_virtualdatacenters(self, method, url, body, headers):
        if method == 'POST':
            return self._response(httplib.CREATED, 'vdc_1.xml')
        return self._response(httplib.OK, 'vdcs.xml')

    def _api_cloud_virtualdatacenters_1(self, method, url, body, headers):
        return self._response(httplib.OK, 'vdc_1.xml')

    def _api_cloud_virtualdatacenters_2(self, method, url, body, headers):
        return self._not_found()

    def _api_cloud_virtualdatacenters_1_action_templates(self, method, url,
                                                         body, headers):
        return self._response(httplib.OK, 'vdc_1_templates.xml')

    def _api_cloud_virtualdatacenters_1_privatenetworks(self, method, url,
                                                        body, headers):
        return self._response(httplib.OK, 'vdc_1_privatenetworks.xml')

    def _api_cloud_virtualdatacenters_1_privatenetworks_1(self, method, url,
                                                          body, headers):
        return self._response(httplib.OK, 'vdc_1_privatenetwork_1.xml')

    def _api_cloud_virtualdatacenters_1_privatenetworks_1_ips(self, method,
                                                              url, body,
                                                              headers):
        return self._response(httplib.OK, 'vdc_1_privatenetwork_1_ips.xml')

    def _api_cloud_virtualmachines(self, method, url, body, headers):
        return self._response(httplib.OK, 'vdc_1_vapp_1_vms.xml')

    def _api_cloud_virtualdatacenters_1_virtualappliances(self, method, url,
                                                          body, headers):
        if method == 'POST':
            return self._response(httplib.CREATED,
                                  'vdc_1_vapp_1_not_deployed.xml')
        return self._response(httplib.OK, 'vdc_1_vapps.xml')

    def _api_cloud_virtualdatacenters_1_virtualappliances_1(self, method, url,
                                                            body, headers):
        if method == 'DELETE':
            return self._response(httplib.NO_CONTENT)
        return self._response(httplib.OK, self.vapp_fixture)

    def _api_cloud_virtualdatacenters_1_virtualappliances_1_action_deploy(
            self, method, url, body, headers):
        return self._accepted()

    def _api_cloud_virtualdatacenters_1_virtualappliances_1_action_undeploy(
            self, method, url, body, headers):
        return self._accepted()

    def _api_cloud_virtualdatacenters_1_virtualappliances_1_virtualmachines(
            self, method, url, body, headers):
        if method == 'POST':
            # the template is given as a link of the new machine
            if b'rel="virtualmachinetemplate"' not in body:
                return self._response(httplib.BAD_REQUEST)
            return self._response(httplib.CREATED, 'vm_1_not_allocated.xml')
        return self._response(httplib.OK, 'vdc_1_vapp_1_vms.xml')

    def _api_cloud_virtualdatacenters_1_virtualappliances_1_virtualmachines_1(
            self, method, url, body, headers):
        if method == 'DELETE':
            return self._response(httplib.NO_CONTENT)
        if method == 'PUT':
            return self._accepted()
        return self._response(httplib.OK, self.vm_fixture)

    def _api_cloud_virtualdatacenters_1_virtualappliances_1_virtualmachines_1_state(  # NOQA
            self, method, url, body, headers):
        if method == 'PUT':
            return self._accepted()
        return self._response(httplib.OK, 'vm_1_state.xml')

    def _api_cloud_virtualdatacenters_1_virtualappliances_1_virtualmachines_1_action_deploy(  # NOQA
            self, method, url, body, headers):
        return self._accepted()

    def _api_cloud_virtualdatacenters_1_virtualappliances_1_virtualmachines_1_action_undeploy(  # NOQA
            self, method, url, body, headers):
        return self._accepted()

    def _api_cloud_virtualdatacenters_1_virtualappliances_1_virtualmachines_1_action_reset(  # NOQA
            self, method, url, body, headers):
        return self._accepted()

    def _api_cloud_virtualdatacenters_1_virtualappliances_1_virtualmachines_1_tasks(  # NOQA
            self, method, url, body, headers):
        return self._response(httplib.OK, 'vm_1_tasks.xml')

    def _api_cloud_virtualdatacenters_1_virtualappliances_1_virtualmachines_1_tasks_42(  # NOQA
            self, method, url, body, headers):
        fixtures = AbiquoMockHttp.task_fixtures
        if len(fixtures) > 1:
            fixture = fixtures.pop(0)
        else:
            fixture = fixtures[0]

        if fixture is None:
            return self._response(httplib.NOT_FOUND)
        return self._response(httplib.OK, fixture)

    def _api_cloud_virtualdatacenters_1_virtualappliances_1_virtualmachines_1_tasks_42_action_cancel(  # NOQA
            self, method, url, body, headers):
        return self._response(httplib.NO_CONTENT)

    def _api_cloud_virtualdatacenters_1_virtualappliances_1_virtualmachines_1_network_nics(  # NOQA
            self, method, url, body, headers):
        return self._response(httplib.OK, 'vm_1_nics.xml')

    def _api_cloud_virtualdatacenters_1_virtualappliances_1_virtualmachines_1_storage_disks(  # NOQA
            self, method, url, body, headers):
        if method == 'GET':
            return self._response(httplib.OK, 'vm_1_harddisks.xml')
        return self._accepted()


class VirtualClock(object):
    """
    Clock and sleep function for the task monitor that never block.
    """

    def __init__(self, now=0.0):
        self.now = now
        self.sleeps = []

    def time(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


class AbiquoContextTestCase(AbiquoTestCase):
    """
    Test case with an :class:`abiquo.context.AbiquoContext` talking to
    :class:`AbiquoMockHttp` and a virtual clock.
    """

    mock_cls = AbiquoMockHttp

    def setUp(self):
        super(AbiquoContextTestCase, self).setUp()
        from abiquo.config import AbiquoConfig
        from abiquo.context import AbiquoContext
        from abiquo.test.secrets import ABIQUO_PARAMS

        self.mock_cls.reset()
        self.mock_cls.test = self

        self.clock = VirtualClock()
        self.context = AbiquoContext(AbiquoConfig(*ABIQUO_PARAMS),
                                     clock=self.clock.time,
                                     sleep=self.clock.sleep)
        self.context.connection.conn_class = self.mock_cls

    def tearDown(self):
        self.context.close()
        self.mock_cls.reset()
        super(AbiquoContextTestCase, self).tearDown()
