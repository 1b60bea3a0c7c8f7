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
from datetime import datetime, timedelta
from functools import wraps
import logging

import requests

from abiquo.common.exceptions import RateLimitReachedError

__all__ = [
    "Retry",
]

_logger = logging.getLogger(__name__)

# Constants used by the ``Retry`` class
# All the time values (timeout, delay, backoff) are in seconds
DEFAULT_TIMEOUT = 30  # default retry timeout
DEFAULT_DELAY = 1  # default sleep delay used in each iterator
DEFAULT_BACKOFF = 1  # retry backup multiplier
RETRY_EXCEPTIONS = (
    RateLimitReachedError,
    requests.exceptions.ConnectionError,
    requests.exceptions.Timeout,
)


class Retry(object):
    def __init__(
        self,
        retry_exceptions=RETRY_EXCEPTIONS,
        retry_delay=DEFAULT_DELAY,
        timeout=DEFAULT_TIMEOUT,
        backoff=DEFAULT_BACKOFF,
        sleep=time.sleep,
    ):
        """
        Wrapper around one-shot transport calls that retries transient
        failures.

        Rate limiting is always retried after the delay the API asked for;
        the other exception types given are retried with an exponential
        backoff until ``timeout`` is reached.

        :param retry_exceptions: types of exceptions to retry on.
        :param retry_delay: retry delay between the attempts.
        :param timeout: maximum time to wait.
        :param backoff: multiplier added to delay between attempts.

        :Example:

        retry_request = Retry(timeout=1, retry_delay=1, backoff=1)
        retry_request(self.connection.request)()
        """
        if retry_exceptions is None:
            retry_exceptions = RETRY_EXCEPTIONS
        if retry_delay is None:
            retry_delay = DEFAULT_DELAY
        if timeout is None:
            timeout = DEFAULT_TIMEOUT
        if backoff is None:
            backoff = DEFAULT_BACKOFF

        self.retry_exceptions = retry_exceptions
        self.retry_delay = retry_delay
        self.timeout = max(timeout, 0)
        self.backoff = backoff
        self.sleep = sleep

    def __call__(self, func):
        @wraps(func)
        def retry_loop(*args, **kwargs):
            current_delay = self.retry_delay
            end = datetime.now() + timedelta(seconds=self.timeout)
            last_exc = None

            while True:
                try:
                    return func(*args, **kwargs)
                except Exception as exc:
                    last_exc = exc

                    if not self.should_retry(exc):
                        raise

                    if datetime.now() >= end:
                        raise

                    if isinstance(exc, RateLimitReachedError):
                        _logger.debug("You are being rate limited, backing "
                                      "off...")

                        # NOTE: Retry after defaults to 0 in the
                        # RateLimitReachedError class so we use a more
                        # reasonable default in case that attribute is not
                        # present. This way we prevent busy waiting.
                        self.sleep(exc.retry_after or 2)

                        # Reset delay if we're told to wait due to rate
                        # limiting
                        current_delay = self.retry_delay
                    else:
                        _logger.debug("Retrying after %s: %s",
                                      exc.__class__.__name__, last_exc)
                        self.sleep(current_delay)
                        current_delay *= self.backoff

        return retry_loop

    def should_retry(self, exception):
        return isinstance(exception, tuple(self.retry_exceptions))
