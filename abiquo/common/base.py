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
import base64
from urllib.parse import urlencode, urlparse
from xml.etree import ElementTree as ET

import requests

import abiquo
from abiquo.http import AbiquoHttpConnection
from abiquo.common.types import MalformedResponseError, TransportError
from abiquo.common.exceptions import exception_from_message
from abiquo.utils.misc import lowercase_keys, str2bool
from abiquo.utils.retry import Retry, DEFAULT_DELAY, DEFAULT_BACKOFF
from abiquo.utils.xml import findall, findtext

__all__ = [
    'RETRY_FAILED_HTTP_REQUESTS',

    'Response',
    'XmlResponse',

    'Connection',
    'ConnectionUserAndKey',
    'AbiquoConnection'
]

# Module level variable indicates if the failed HTTP requests should be
# retried
RETRY_FAILED_HTTP_REQUESTS = False

ACCEPTED = 202


class Response(object):
    """
    A base Response class to derive from.

    A non successful status code is turned into the matching exception
    from :mod:`abiquo.common.exceptions` right away.
    """

    object = None
    body = None
    status = 200
    headers = {}
    error = None
    connection = None

    def __init__(self, response, connection):
        """
        :param response: HTTP response object. (optional)
        :type response: :class:`requests.Response`

        :param connection: Parent connection object.
        :type connection: :class:`.Connection`
        """
        self.connection = connection

        self.headers = lowercase_keys(dict(response.headers))
        self.error = response.reason
        self.status = response.status_code
        self.request = response.request
        self.url = response.url

        self.body = response.text.strip() \
            if response.text is not None else ''

        if not self.success():
            messages = self.parse_error()
            raise exception_from_message(code=self.status,
                                         message='; '.join(messages) or
                                         self.error or
                                         'HTTP %s' % (self.status),
                                         headers=self.headers,
                                         url=self.url,
                                         errors=messages,
                                         driver=self._driver())

        self.object = self.parse_body()

    def parse_body(self):
        """
        Parse response body.

        Override in a provider's subclass.

        :return: Parsed body.
        :rtype: ``str``
        """
        return self.body if self.body else None

    def parse_error(self):
        """
        Parse the error messages.

        Override in a provider's subclass.

        :return: Parsed error messages.
        :rtype: ``list`` of ``str``
        """
        return [self.body] if self.body else []

    def success(self):
        """
        Determine if our request was successful.

        Every 2xx status is a success; 202 means the API accepted the request
        and will complete it asynchronously.

        :rtype: ``bool``
        :return: ``True`` or ``False``
        """
        return 200 <= self.status < 300

    def is_accepted(self):
        return self.status == ACCEPTED

    def _driver(self):
        return getattr(self.connection, 'driver', None)


class XmlResponse(Response):
    """
    Response whose body is an XML document.

    ``object`` is the root :class:`xml.etree.ElementTree.Element` or ``None``
    for empty bodies (HTTP 204 and friends).
    """

    def parse_body(self):
        if len(self.body) == 0:
            return None

        try:
            body = ET.XML(self.body)
        except ET.ParseError:
            raise MalformedResponseError('Failed to parse XML',
                                         body=self.body,
                                         driver=self._driver())
        return body

    def parse_error(self):
        """
        Extract the messages of an Abiquo error document::

            <errors>
                <error><code>VM-1</code><message>...</message></error>
            </errors>
        """
        if len(self.body) == 0:
            return []

        try:
            body = ET.XML(self.body)
        except ET.ParseError:
            return [self.body]

        messages = []
        for error in findall(body, 'error'):
            code = findtext(error, 'code')
            message = findtext(error, 'message', '')
            messages.append('%s: %s' % (code, message) if code else message)

        return messages or [self.body]


class Connection(object):
    """
    A base Connection class to derive from.

    The transport (``conn_class``) is created on first use and reused by
    every request, so all the objects sharing a connection also share its
    HTTP connection pool.
    """
    conn_class = AbiquoHttpConnection

    responseCls = XmlResponse
    connection = None
    host = '127.0.0.1'
    port = 443
    timeout = None
    secure = 1
    driver = None
    action = None
    retry_delay = None
    backoff = None
    verify_ssl_cert = True
    ca_cert = None

    def __init__(self, secure=True, host=None, port=None, url=None,
                 timeout=None, proxy_url=None, retry_delay=None,
                 backoff=None, retry_failed_requests=None,
                 verify_ssl_cert=True, ca_cert=None):
        self.secure = secure and 1 or 0
        self.ua = []

        self.request_path = ''

        if host:
            self.host = host

        if port is not None:
            self.port = port
        else:
            if self.secure == 1:
                self.port = 443
            else:
                self.port = 80

        if url:
            (self.host, self.port, self.secure,
             self.request_path) = self._tuple_from_url(url)

        self.timeout = timeout or self.timeout
        self.retry_delay = retry_delay
        self.backoff = backoff
        self.retry_failed_requests = retry_failed_requests
        self.proxy_url = proxy_url
        self.verify_ssl_cert = verify_ssl_cert
        self.ca_cert = ca_cert

    def _tuple_from_url(self, url):
        secure = 1
        port = None
        parsed = urlparse(url)

        if parsed.scheme not in ['http', 'https']:
            raise ValueError('Invalid scheme: %s in url %s' % (parsed.scheme,
                                                              url))

        if parsed.scheme == "http":
            secure = 0

        host = parsed.hostname
        port = parsed.port

        if not port:
            if parsed.scheme == "http":
                port = 80
            else:
                port = 443

        request_path = parsed.path.rstrip('/')

        return (host, port, secure, request_path)

    def connect(self):
        """
        Establish a connection with the API server.

        :returns: The transport object
        """
        if self.connection is not None:
            return self.connection

        kwargs = {'host': self.host, 'port': int(self.port),
                  'secure': self.secure, 'verify': self.verify_ssl_cert}

        if self.ca_cert:
            kwargs.update({'ca_cert': self.ca_cert})

        if self.timeout:
            kwargs.update({'timeout': self.timeout})

        if self.proxy_url:
            kwargs.update({'proxy_url': self.proxy_url})

        self.connection = self.conn_class(**kwargs)
        return self.connection

    def close(self):
        if self.connection is not None:
            self.connection.close()
            self.connection = None

    def _user_agent(self):
        driver_name = getattr(self.driver, 'name', 'Abiquo')
        return 'abiquo/%s (%s)%s' % (
            abiquo.__version__,
            driver_name,
            "".join([" (%s)" % x for x in self.ua]))

    def user_agent_append(self, token):
        """
        Append a token to a user agent string.

        Users of the library should call this to uniquely identify their
        requests to a provider.

        :type token: ``str``
        :param token: Token to add to the user agent.
        """
        self.ua.append(token)

    def request(self, action, params=None, data=None, headers=None,
                method='GET'):
        """
        Request a given `action`.

        Basically a wrapper around the connection object's `request` that
        does some helpful pre-processing.

        :type action: ``str``
        :param action: A path relative to the endpoint or an absolute URL
                       taken from a link.

        :type params: ``dict``
        :param params: Optional mapping of query parameters.

        :type data: ``str``
        :param data: A body of data to send with the request.

        :type headers: ``dict``
        :param headers: Extra headers to add to the request

        :type method: ``str``
        :param method: An HTTP method such as "GET" or "POST".

        :return: An instance of type I{responseCls}
        """
        if params is None:
            params = {}
        else:
            params = dict(params)
        if headers is None:
            headers = {}
        else:
            headers = dict(headers)

        action = self.morph_action_hook(action)
        self.action = action
        self.method = method

        # Extend default parameters
        params = self.add_default_params(params)
        # Extend default headers
        headers = self.add_default_headers(headers)
        # We always send a user-agent header
        headers.update({'User-Agent': self._user_agent()})

        # Encode data if necessary
        if data is not None and data != '':
            data = self.encode_data(data)

        params, headers = self.pre_connect_hook(params, headers)

        if params:
            separator = '&' if '?' in action else '?'
            url = separator.join((action, urlencode(params)))
        else:
            url = action

        retry_enabled = self.retry_failed_requests
        if retry_enabled is None:
            retry_enabled = RETRY_FAILED_HTTP_REQUESTS or str2bool(
                os.environ.get('ABIQUO_RETRY_FAILED_HTTP_REQUESTS', False))

        try:
            if retry_enabled:
                retry_request = Retry(retry_delay=self.retry_delay or
                                      DEFAULT_DELAY,
                                      timeout=self.timeout,
                                      backoff=self.backoff or
                                      DEFAULT_BACKOFF)
                return retry_request(self._send)(method=method, url=url,
                                                 data=data, headers=headers)

            return self._send(method=method, url=url, data=data,
                              headers=headers)
        except requests.exceptions.RequestException as e:
            raise TransportError('%s %s failed: %s' % (method, url, e),
                                 driver=self.driver)

    def _send(self, method, url, data, headers):
        connection = self.connect()
        response = connection.request(method=method, url=url, body=data,
                                      headers=headers)
        return self.responseCls(response=response, connection=self)

    def morph_action_hook(self, action):
        """
        Absolute URLs (link hrefs) are used as they are, everything else is
        relative to the endpoint path.
        """
        if action.startswith('http://') or action.startswith('https://'):
            return action

        if not action.startswith('/'):
            action = '/' + action

        return self.request_path + action

    def add_default_params(self, params):
        """
        Adds default parameters to the passed `params`

        Should return a dictionary.
        """
        return params

    def add_default_headers(self, headers):
        """
        Adds default headers (such as Authorization) to the passed `headers`

        Should return a dictionary.
        """
        return headers

    def pre_connect_hook(self, params, headers):
        """
        A hook which is called before connecting to the remote server.
        This hook can perform a final manipulation on the params and headers.
        """
        return params, headers

    def encode_data(self, data):
        """
        Encode body data.

        Override in a provider's subclass.
        """
        return data


class ConnectionUserAndKey(Connection):
    """
    Base connection which accepts a user_id and key.
    """

    user_id = None

    def __init__(self, user_id, key, secure=True, host=None, port=None,
                 url=None, **kwargs):
        super(ConnectionUserAndKey, self).__init__(secure=secure, host=host,
                                                   port=port, url=url,
                                                   **kwargs)
        self.user_id = user_id
        self.key = key


class AbiquoConnection(ConnectionUserAndKey):
    """
    Connection to the Abiquo API using HTTP Basic authentication.
    """

    def add_default_headers(self, headers):
        credentials = '%s:%s' % (self.user_id, self.key)
        token = base64.b64encode(credentials.encode('utf-8'))
        headers['Authorization'] = 'Basic %s' % (token.decode('utf-8'))
        return headers

    def encode_data(self, data):
        if isinstance(data, str):
            return data.encode('utf-8')
        return data
