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
Connection settings for an Abiquo context.
"""

import os
from urllib.parse import urlparse

from abiquo.utils.misc import str2bool

__all__ = [
    'DEFAULT_POLL_INTERVAL_MS',
    'DEFAULT_REQUEST_TIMEOUT_MS',
    'AbiquoConfig'
]

DEFAULT_POLL_INTERVAL_MS = 5000
DEFAULT_REQUEST_TIMEOUT_MS = 60000

ENV_PREFIX = 'ABIQUO_'


def _positive_int(name, value, optional=False):
    if value is None and optional:
        return None

    if isinstance(value, bool) or not isinstance(value, int):
        try:
            value = int(value)
        except (TypeError, ValueError):
            raise ValueError('%s must be an integer, got %r' % (name, value))

    if value <= 0:
        raise ValueError('%s must be a positive integer, got %r' %
                         (name, value))

    return value


class AbiquoConfig(object):
    """
    Immutable set of options used to build an
    :class:`abiquo.context.AbiquoContext`.

    Everything is validated in the constructor; a config object that exists
    is a valid one.
    """

    __slots__ = ('endpoint', 'identity', 'credential', 'poll_interval_ms',
                 'request_timeout_ms', 'task_timeout_ms', 'proxy_url',
                 'retry_failed_requests', 'retry_delay', 'backoff',
                 'verify_ssl_cert', 'ca_cert')

    def __init__(self, endpoint, identity, credential,
                 poll_interval_ms=DEFAULT_POLL_INTERVAL_MS,
                 request_timeout_ms=DEFAULT_REQUEST_TIMEOUT_MS,
                 task_timeout_ms=None, proxy_url=None,
                 retry_failed_requests=None, retry_delay=1, backoff=1,
                 verify_ssl_cert=True, ca_cert=None):
        """
        :param endpoint: URL of the API, e.g. ``http://10.60.1.4/api``
        :type endpoint: ``str``

        :param identity: User login.
        :type identity: ``str``

        :param credential: User password.
        :type credential: ``str``

        :param poll_interval_ms: Delay between two polls of a task.
        :type poll_interval_ms: ``int``

        :param request_timeout_ms: Timeout of a single HTTP request.
        :type request_timeout_ms: ``int``

        :param task_timeout_ms: Default local deadline when waiting for a
                                task. ``None`` waits until the task ends.
        :type task_timeout_ms: ``int``

        :param retry_failed_requests: Retry requests that fail at the
                                      transport level. ``None`` defers to
                                      ``ABIQUO_RETRY_FAILED_HTTP_REQUESTS``.
        :type retry_failed_requests: ``bool``

        :param verify_ssl_cert: Verify the certificate of an https endpoint.
        :type verify_ssl_cert: ``bool``

        :param ca_cert: PEM file with the CA certificates to trust instead
                        of the bundle shipped with requests.
        :type ca_cert: ``str``
        """
        parsed = urlparse(endpoint or '')
        if parsed.scheme not in ('http', 'https') or not parsed.hostname:
            raise ValueError('endpoint must be an absolute http or https '
                             'URL, got %r' % (endpoint))

        if not identity:
            raise ValueError('identity is required')

        if not credential:
            raise ValueError('credential is required')

        if retry_delay is None or retry_delay < 0:
            raise ValueError('retry_delay must be a non negative number')

        if backoff is None or backoff < 1:
            raise ValueError('backoff must be greater or equal than 1')

        if ca_cert is not None and not os.path.isfile(ca_cert):
            raise ValueError('ca_cert must be an existing file, got %r' %
                             (ca_cert))

        values = {
            'endpoint': endpoint.rstrip('/'),
            'identity': identity,
            'credential': credential,
            'poll_interval_ms': _positive_int('poll_interval_ms',
                                              poll_interval_ms),
            'request_timeout_ms': _positive_int('request_timeout_ms',
                                                request_timeout_ms),
            'task_timeout_ms': _positive_int('task_timeout_ms',
                                             task_timeout_ms, optional=True),
            'proxy_url': proxy_url,
            'retry_failed_requests': (None if retry_failed_requests is None
                                      else bool(retry_failed_requests)),
            'retry_delay': retry_delay,
            'backoff': backoff,
            'verify_ssl_cert': bool(verify_ssl_cert),
            'ca_cert': ca_cert,
        }

        for name, value in values.items():
            object.__setattr__(self, name, value)

    @classmethod
    def from_env(cls, environ=None, **overrides):
        """
        Build a config from ``ABIQUO_*`` environment variables. Keyword
        arguments take precedence over the environment.

        ``SSL_CERT_FILE`` is used as the CA bundle when ``ABIQUO_CA_CERT``
        is not set.
        """
        environ = os.environ if environ is None else environ

        def env(name, default=None):
            return environ.get(ENV_PREFIX + name, default)

        kwargs = {
            'endpoint': env('ENDPOINT'),
            'identity': env('IDENTITY'),
            'credential': env('CREDENTIAL'),
            'poll_interval_ms': env('POLL_INTERVAL_MS',
                                    DEFAULT_POLL_INTERVAL_MS),
            'request_timeout_ms': env('REQUEST_TIMEOUT_MS',
                                      DEFAULT_REQUEST_TIMEOUT_MS),
            'task_timeout_ms': env('TASK_TIMEOUT_MS'),
            'ca_cert': env('CA_CERT', environ.get('SSL_CERT_FILE')),
        }
        retry = env('RETRY_FAILED_HTTP_REQUESTS')
        if retry is not None:
            kwargs['retry_failed_requests'] = str2bool(retry)

        verify = env('VERIFY_SSL_CERT')
        if verify is not None:
            kwargs['verify_ssl_cert'] = str2bool(verify)

        kwargs.update(overrides)
        return cls(**kwargs)

    @property
    def poll_interval(self):
        """Poll interval in seconds."""
        return self.poll_interval_ms / 1000.0

    @property
    def request_timeout(self):
        """Request timeout in seconds."""
        return self.request_timeout_ms / 1000.0

    @property
    def task_timeout(self):
        """Default task deadline in seconds, or ``None``."""
        if self.task_timeout_ms is None:
            return None
        return self.task_timeout_ms / 1000.0

    def replace(self, **changes):
        """
        Return a copy of this config with some options changed.
        """
        kwargs = dict((name, getattr(self, name)) for name in self.__slots__)
        kwargs.update(changes)
        return self.__class__(**kwargs)

    def __setattr__(self, name, value):
        raise AttributeError('AbiquoConfig is immutable')

    def __delattr__(self, name):
        raise AttributeError('AbiquoConfig is immutable')

    def __repr__(self):
        return ('<AbiquoConfig: endpoint=%s, identity=%s, '
                'poll_interval_ms=%s, request_timeout_ms=%s>' %
                (self.endpoint, self.identity, self.poll_interval_ms,
                 self.request_timeout_ms))
