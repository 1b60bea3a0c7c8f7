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
The context ties together the connection to one Abiquo endpoint and the
objects built on top of it::

    with AbiquoContext(AbiquoConfig.from_env()) as context:
        for vdc in context.cloud.list_virtual_datacenters():
            print(vdc.name)
"""

from abiquo.common.base import AbiquoConnection
from abiquo.links import LinkResolver
from abiquo.services import AdministrationService
from abiquo.services import CloudService
from abiquo.services import MonitoringService
from abiquo.task import AsyncTaskMonitor

__all__ = [
    'AbiquoContext'
]


class AbiquoContext(object):
    """
    Owns the HTTP connection (and its connection pool), the link resolver,
    the task monitor and the services of one endpoint.

    Domain objects keep a reference to the context they come from, so they
    share its connection. The connection is safe to use from several
    threads.
    """

    connectionCls = AbiquoConnection

    def __init__(self, config, clock=None, sleep=None):
        """
        :param config: Connection settings.
        :type config: :class:`abiquo.config.AbiquoConfig`

        :param clock: Clock of the task monitor (tests).
        :param sleep: Sleep function of the task monitor (tests).
        """
        self.config = config
        self.connection = self.connectionCls(
            config.identity, config.credential, url=config.endpoint,
            timeout=config.request_timeout, proxy_url=config.proxy_url,
            retry_delay=config.retry_delay, backoff=config.backoff,
            retry_failed_requests=config.retry_failed_requests,
            verify_ssl_cert=config.verify_ssl_cert, ca_cert=config.ca_cert)
        self.connection.driver = self

        self.resolver = LinkResolver(self.connection)

        monitor_kwargs = {}
        if clock is not None:
            monitor_kwargs['clock'] = clock
        if sleep is not None:
            monitor_kwargs['sleep'] = sleep

        self.monitor = AsyncTaskMonitor(self.resolver,
                                        poll_interval=config.poll_interval,
                                        max_wait=config.task_timeout,
                                        **monitor_kwargs)

        self.administration = AdministrationService(self)
        self.cloud = CloudService(self)
        self.monitoring = MonitoringService(self)

    @property
    def name(self):
        return 'Abiquo'

    def close(self):
        self.connection.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()

    def __repr__(self):
        return '<AbiquoContext: endpoint=%s, identity=%s>' % (
            self.config.endpoint, self.config.identity)
