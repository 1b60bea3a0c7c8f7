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

import os
import sys
import unittest

from abiquo.config import AbiquoConfig
from abiquo.config import DEFAULT_POLL_INTERVAL_MS
from abiquo.config import DEFAULT_REQUEST_TIMEOUT_MS
from abiquo.test.secrets import ABIQUO_PARAMS

ENDPOINT = 'http://localhost/api'


class AbiquoConfigTestCase(unittest.TestCase):
    def test_defaults(self):
        config = AbiquoConfig(ENDPOINT + '/', 'son', 'goku')

        self.assertEqual(config.endpoint, ENDPOINT)
        self.assertEqual(config.poll_interval_ms, DEFAULT_POLL_INTERVAL_MS)
        self.assertEqual(config.request_timeout_ms,
                         DEFAULT_REQUEST_TIMEOUT_MS)
        self.assertEqual(config.poll_interval, 5.0)
        self.assertEqual(config.request_timeout, 60.0)
        self.assertIsNone(config.task_timeout)
        self.assertIsNone(config.retry_failed_requests)

    def test_task_timeout(self):
        config = AbiquoConfig(ENDPOINT, 'son', 'goku', task_timeout_ms=1500)
        self.assertEqual(config.task_timeout, 1.5)

    def test_invalid_endpoint(self):
        for endpoint in (None, '', 'localhost/api', 'ftp://localhost/api'):
            self.assertRaises(ValueError, AbiquoConfig, endpoint, 'son',
                              'goku')

    def test_missing_credentials(self):
        self.assertRaises(ValueError, AbiquoConfig, ENDPOINT, '', 'goku')
        self.assertRaises(ValueError, AbiquoConfig, ENDPOINT, 'son', None)

    def test_invalid_intervals(self):
        for value in (0, -1, 'soon'):
            self.assertRaises(ValueError, AbiquoConfig, ENDPOINT, 'son',
                              'goku', poll_interval_ms=value)

        self.assertRaises(ValueError, AbiquoConfig, ENDPOINT, 'son', 'goku',
                          request_timeout_ms=0)
        self.assertRaises(ValueError, AbiquoConfig, ENDPOINT, 'son', 'goku',
                          backoff=0.5)

    def test_immutable(self):
        config = AbiquoConfig(*ABIQUO_PARAMS)
        try:
            config.poll_interval_ms = 10
        except AttributeError:
            pass
        else:
            self.fail('Exception was not thrown')

        self.assertEqual(config.poll_interval_ms, DEFAULT_POLL_INTERVAL_MS)

    def test_replace(self):
        config = AbiquoConfig(*ABIQUO_PARAMS)
        other = config.replace(poll_interval_ms=250)

        self.assertEqual(other.poll_interval_ms, 250)
        self.assertEqual(other.identity, 'son')
        self.assertEqual(config.poll_interval_ms, DEFAULT_POLL_INTERVAL_MS)

    def test_from_env(self):
        environ = {
            'ABIQUO_ENDPOINT': ENDPOINT,
            'ABIQUO_IDENTITY': 'son',
            'ABIQUO_CREDENTIAL': 'goku',
            'ABIQUO_POLL_INTERVAL_MS': '1000',
            'ABIQUO_TASK_TIMEOUT_MS': '60000',
            'ABIQUO_RETRY_FAILED_HTTP_REQUESTS': 'true',
        }
        config = AbiquoConfig.from_env(environ, identity='admin')

        self.assertEqual(config.identity, 'admin')
        self.assertEqual(config.credential, 'goku')
        self.assertEqual(config.poll_interval_ms, 1000)
        self.assertEqual(config.task_timeout, 60.0)
        self.assertTrue(config.retry_failed_requests)

    def test_from_env_without_retry_switch(self):
        config = AbiquoConfig.from_env({'ABIQUO_ENDPOINT': ENDPOINT,
                                        'ABIQUO_IDENTITY': 'son',
                                        'ABIQUO_CREDENTIAL': 'goku'})
        self.assertIsNone(config.retry_failed_requests)

    def test_retry_flag_survives_replace(self):
        config = AbiquoConfig(*ABIQUO_PARAMS)
        self.assertIsNone(config.replace(poll_interval_ms=250)
                          .retry_failed_requests)
        config = AbiquoConfig(ENDPOINT, 'son', 'goku', retry_failed_requests=0)
        self.assertIs(config.retry_failed_requests, False)

    def test_ssl_settings(self):
        config = AbiquoConfig(*ABIQUO_PARAMS)
        self.assertTrue(config.verify_ssl_cert)
        self.assertIsNone(config.ca_cert)

        config = AbiquoConfig(ENDPOINT, 'son', 'goku', ca_cert=__file__)
        self.assertEqual(config.ca_cert, __file__)

        self.assertRaises(ValueError, AbiquoConfig, ENDPOINT, 'son', 'goku',
                          ca_cert='/nonexistent/ca.pem')
        self.assertRaises(ValueError, AbiquoConfig, ENDPOINT, 'son', 'goku',
                          ca_cert=os.path.dirname(__file__))

    def test_from_env_ssl_settings(self):
        environ = {
            'ABIQUO_ENDPOINT': ENDPOINT,
            'ABIQUO_IDENTITY': 'son',
            'ABIQUO_CREDENTIAL': 'goku',
            'ABIQUO_VERIFY_SSL_CERT': 'false',
            'SSL_CERT_FILE': __file__,
        }
        config = AbiquoConfig.from_env(environ)
        self.assertFalse(config.verify_ssl_cert)
        self.assertEqual(config.ca_cert, __file__)

    def test_from_env_missing_endpoint(self):
        self.assertRaises(ValueError, AbiquoConfig.from_env, {})


if __name__ == '__main__':
    sys.exit(unittest.main())
