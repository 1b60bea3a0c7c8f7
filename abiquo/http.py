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
HTTP transport backed by a :class:`requests.Session`.

One session is created per connection object and is reused for every request
issued through it, so it doubles as the connection pool of an Abiquo context.
"""

import os
import warnings
from urllib.parse import urljoin, urlparse

import requests


__all__ = [
    'AbiquoBaseConnection',
    'AbiquoHttpConnection'
]

ALLOW_REDIRECTS = 1

HTTP_PROXY_ENV_VARIABLE_NAME = 'http_proxy'
HTTPS_PROXY_ENV_VARIABLE_NAME = 'https_proxy'

VERIFY_SSL_DISABLED_MSG = (
    'SSL certificate verification is disabled for %s, this can pose a '
    'security risk. Build the context with verify_ssl_cert=True to enable it '
    'again.'
)


class AbiquoBaseConnection(object):
    """
    Base connection class to inherit from.

    Note: This class should not be instantiated directly.
    """

    session = None

    proxy_scheme = None
    proxy_host = None
    proxy_port = None

    proxy_username = None
    proxy_password = None

    http_proxy_used = False

    verify = True
    ca_cert = None

    def __init__(self):
        self.session = requests.Session()

    def set_http_proxy(self, proxy_url):
        """
        Set a HTTP proxy which will be used with this connection.

        :param proxy_url: Proxy URL (e.g. http://<hostname>:<port> without
                          authentication and
                          http://<username>:<password>@<hostname>:<port> for
                          basic auth authentication information.
        :type proxy_url: ``str``
        """
        (scheme, host, port, username,
         password) = self._parse_proxy_url(proxy_url=proxy_url)

        self.proxy_scheme = scheme
        self.proxy_host = host
        self.proxy_port = port
        self.proxy_username = username
        self.proxy_password = password
        self.http_proxy_used = True

        self.session.proxies = {
            'http': proxy_url,
            'https': proxy_url,
        }

    def _parse_proxy_url(self, proxy_url):
        """
        Parse and validate a proxy URL.

        :param proxy_url: Proxy URL (e.g. http://hostname:3128)
        :type proxy_url: ``str``

        :rtype: ``tuple`` (``scheme``, ``hostname``, ``port``, ``username``,
                ``password``)
        """
        parsed = urlparse(proxy_url)

        if parsed.scheme not in ('http', 'https'):
            raise ValueError('Only http and https proxies are supported')

        if not parsed.hostname or not parsed.port:
            raise ValueError('proxy_url must be in the following format: '
                             '<scheme>://<proxy host>:<proxy port>')

        netloc = parsed.netloc

        if '@' in netloc:
            username_password = netloc.split('@', 1)[0]
            split = username_password.split(':', 1)

            if len(split) < 2:
                raise ValueError('URL is in an invalid format')

            proxy_username, proxy_password = split[0], split[1]
        else:
            proxy_username = None
            proxy_password = None

        return (parsed.scheme, parsed.hostname, parsed.port, proxy_username,
                proxy_password)

    def _setup_verify(self, verify=True):
        self.verify = bool(verify)

        if not self.verify:
            warnings.warn(VERIFY_SSL_DISABLED_MSG % (self.host))

    def _setup_ca_cert(self, ca_cert=None):
        # Without a bundle of its own requests falls back to certifi
        if self.verify is False:
            return

        self.ca_cert = ca_cert


class AbiquoHttpConnection(AbiquoBaseConnection):
    """
    Transport used by :class:`abiquo.common.base.Connection`.

    ``request`` returns the :class:`requests.Response` as it comes from the
    session.
    """
    timeout = None
    host = None

    def __init__(self, host, port, secure=None, **kwargs):
        scheme = 'https' if secure else 'http'
        self.host = '{0}://{1}{2}'.format(
            scheme,
            host,
            ":{0}".format(port) if port not in (80, 443) else ""
        )

        # NOTE: We always only use a single proxy (either HTTP or HTTPS)
        https_proxy_url_env = os.environ.get(HTTPS_PROXY_ENV_VARIABLE_NAME,
                                             None)
        http_proxy_url_env = os.environ.get(HTTP_PROXY_ENV_VARIABLE_NAME,
                                            https_proxy_url_env)

        # Connection argument has precedence over environment variables
        proxy_url = kwargs.pop('proxy_url', None) or http_proxy_url_env

        self._setup_verify(verify=kwargs.pop('verify', True))
        self._setup_ca_cert(ca_cert=kwargs.pop('ca_cert', None))

        AbiquoBaseConnection.__init__(self)

        self.timeout = kwargs.pop('timeout', 60)

        if proxy_url:
            self.set_http_proxy(proxy_url=proxy_url)

    @property
    def verification(self):
        """
        The option for SSL verification given to underlying requests
        """
        return self.ca_cert if self.ca_cert is not None else self.verify

    def request(self, method, url, body=None, headers=None, stream=False):
        url = urljoin(self.host, url)
        headers = self._normalize_headers(headers=headers)

        return self.session.request(
            method=method.lower(),
            url=url,
            data=body,
            headers=headers,
            allow_redirects=ALLOW_REDIRECTS,
            stream=stream,
            timeout=self.timeout,
            verify=self.verification
        )

    def close(self):
        self.session.close()

    def _normalize_headers(self, headers):
        headers = headers or {}

        # all headers should be strings
        for key, value in headers.items():
            if isinstance(value, (int, float)):
                headers[key] = str(value)

        return headers
