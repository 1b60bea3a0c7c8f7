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
from shlex import quote as pquote
from xml.dom.minidom import parseString
from xml.parsers.expat import ExpatError

from abiquo.http import AbiquoHttpConnection

MASKED_HEADERS = ['authorization']


class LoggingConnection(AbiquoHttpConnection):
    """
    Debug class to log all HTTP(s) requests as they could be made
    with the curl command.

    :cvar log: file-like object that logs entries are written to.
    """

    log = None

    def _log_response(self, r):
        rv = "# -------- begin %d:%d response ----------\n" % (id(self), id(r))
        ht = "HTTP/1.1 %s %s\r\n" % (r.status_code, r.reason)
        for name, value in r.headers.items():
            ht += "%s: %s\r\n" % (name.title(), value)
        ht += "\r\n"

        body = r.text
        content_type = r.headers.get('content-type', '') or ''

        pretty_print = os.environ.get('ABIQUO_DEBUG_PRETTY_PRINT_RESPONSE',
                                      False)

        if pretty_print and content_type.split(';')[0].endswith('xml') \
                and body:
            try:
                body = parseString(body).toprettyxml()
            except ExpatError:
                # Invalid XML, log it as it came
                pass

        ht += body

        rv += ht
        rv += ("\n# -------- end %d:%d response ----------\n"
               % (id(self), id(r)))

        return rv

    def _log_curl(self, method, url, body, headers):
        cmd = ["curl"]

        if self.http_proxy_used:
            if self.proxy_username and self.proxy_password:
                proxy_url = '%s://%s:%s@%s:%s' % (self.proxy_scheme,
                                                  self.proxy_username,
                                                  self.proxy_password,
                                                  self.proxy_host,
                                                  self.proxy_port)
            else:
                proxy_url = '%s://%s:%s' % (self.proxy_scheme,
                                            self.proxy_host,
                                            self.proxy_port)
            cmd.extend(['--proxy', pquote(proxy_url)])

        cmd.extend(['-i'])

        if method.lower() == 'head':
            cmd.extend(["--head"])
        else:
            cmd.extend(["-X", pquote(method)])

        for h in headers:
            value = headers[h]
            if h.lower() in MASKED_HEADERS:
                value = '***'
            cmd.extend(["-H", pquote("%s: %s" % (h, value))])

        if body is not None and len(body) > 0:
            if isinstance(body, (bytearray, bytes)):
                body = body.decode('utf-8')

            cmd.extend(["--data-binary", pquote(body)])

        if url.startswith('http://') or url.startswith('https://'):
            cmd.extend([pquote(url)])
        else:
            cmd.extend([pquote("%s%s" % (self.host, url))])
        return " ".join(cmd)

    def request(self, method, url, body=None, headers=None, **kwargs):
        headers = self._normalize_headers(headers=headers)
        headers.update({'X-Abiquo-Request-ID': str(id(self))})
        if self.log is not None:
            pre = "# -------- begin %d request ----------\n" % id(self)
            self.log.write(pre +
                           self._log_curl(method, url, body, headers) +
                           "\n")
            self.log.flush()

        response = AbiquoHttpConnection.request(self, method, url, body,
                                                headers, **kwargs)

        if self.log is not None:
            self.log.write(self._log_response(response) + "\n")
            self.log.flush()

        return response
