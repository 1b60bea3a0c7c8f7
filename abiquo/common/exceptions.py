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

import time

from email.utils import parsedate_tz, mktime_tz

from abiquo.common.types import InvalidCredsError
from abiquo.common.types import NotFoundError
from abiquo.common.types import ProviderError
from abiquo.common.types import ServiceUnavailableError

__all__ = [
    'RateLimitReachedError',

    'exception_from_message'
]


class RateLimitReachedError(ProviderError):
    """
    HTTP 429 - Rate limit: you've sent too many requests for this time period.
    """
    code = 429
    message = '%s Rate limit exceeded' % (code)

    def __init__(self, value=None, headers=None, driver=None):
        super(RateLimitReachedError, self).__init__(value or self.message,
                                                    http_code=self.code,
                                                    driver=driver)
        self.headers = headers

        if self.headers is not None:
            self.retry_after = int(self.headers.get('retry-after', 0))
        else:
            self.retry_after = 0


def _parse_retry_after(headers):
    """
    If Retry-After comes in HTTP-date, translate it to a positive
    delta-seconds value.
    """
    if headers and 'retry-after' in headers:
        http_date = parsedate_tz(headers['retry-after'])
        if http_date is not None:
            delay = max(0, int(mktime_tz(http_date) - time.time()))
            headers['retry-after'] = str(delay)
    return headers


def exception_from_message(code, message, headers=None, url=None,
                           errors=None, driver=None):
    """
    Return the exception that matches the given HTTP status code.

    RFC 2616 says the Retry-After header may be one of two formats: HTTP-date
    or delta-seconds, for example:

    Retry-After: Fri, 31 Dec 1999 23:59:59 GMT
    Retry-After: 120

    Usage::
        raise exception_from_message(code=self.status,
                                     message=self.parse_error(),
                                     headers=self.headers)
    """
    if code == NotFoundError.http_code:
        return NotFoundError(message, url=url, driver=driver)

    if code in (401, 403):
        return InvalidCredsError(message, driver=driver, http_code=code)

    if code == RateLimitReachedError.code:
        return RateLimitReachedError(message,
                                     headers=_parse_retry_after(headers),
                                     driver=driver)

    if code == 503:
        return ServiceUnavailableError(message, driver=driver)

    return ProviderError(message, http_code=code, driver=driver,
                         errors=errors)
