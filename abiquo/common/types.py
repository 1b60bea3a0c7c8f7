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

from typing import Optional
from typing import Union
from typing import cast

from enum import Enum

__all__ = [
    "Type",
    "AbiquoError",
    "MalformedResponseError",
    "MalformedLinkError",
    "RequiredLinkMissingError",
    "NotFoundError",
    "TransportError",
    "ProviderError",
    "InvalidCredsError",
    "ServiceUnavailableError",
    "TaskVanishedError",
    "UnsupportedOperationError",
    "DeletedResourceError",
    "InvalidStateError"
]


class Type(str, Enum):
    """
    Base class for the vendor enumerations that travel as plain strings on
    the wire (task states, virtual machine states, hypervisor types...).
    """

    @classmethod
    def tostring(cls, value):
        # type: (Union[Enum, str]) -> str
        """Return the wire representation of the given member."""
        value = cast(Enum, value)
        return str(value._value_).upper()

    @classmethod
    def fromstring(cls, value, default=None):
        # type: (Optional[str], Optional[Enum]) -> Optional[Enum]
        """Return the member that matches the string, or ``default``."""
        if value is None:
            return default
        return cls.__members__.get(value.strip().upper(), default)

    def __eq__(self, other):
        if isinstance(other, Type):
            return other.value == self.value
        elif isinstance(other, str):
            return self.value == other

        return super(Type, self).__eq__(other)

    def __ne__(self, other):
        return not self.__eq__(other)

    def __str__(self):
        return str(self.value)

    def __repr__(self):
        return self.value

    def __hash__(self):
        return hash(self.value)


class AbiquoError(Exception):
    """The base class for other abiquo exceptions"""

    def __init__(self, value, driver=None):
        super(AbiquoError, self).__init__(value)
        self.value = value
        self.driver = driver

    def __str__(self):
        return self.__repr__()

    def __repr__(self):
        return ("<%s in " % (self.__class__.__name__) +
                repr(self.driver) +
                " " +
                repr(self.value) + ">")


class MalformedResponseError(AbiquoError):
    """Exception for the cases when the API returns a body that can not be
    parsed as the expected XML document."""

    def __init__(self, value, body=None, driver=None):
        # type: (str, Optional[str], object) -> None
        super(MalformedResponseError, self).__init__(value, driver=driver)
        self.body = body

    def __repr__(self):
        return ("<MalformedResponseError in " +
                repr(self.driver) +
                " " +
                repr(self.value) +
                ">: " +
                repr(self.body))


class MalformedLinkError(AbiquoError):
    """
    A link href can not be turned into a resource identifier, e.g. its last
    path segment is not numeric.
    """

    def __init__(self, href, driver=None):
        # type: (str, object) -> None
        super(MalformedLinkError, self).__init__(
            'Link href does not end with a numeric identifier: %s' % (href),
            driver=driver)
        self.href = href


class RequiredLinkMissingError(AbiquoError):
    """
    A resource lacks a link the operation needs. Either the API changed or
    the resource has not been saved yet.
    """

    def __init__(self, rel, title=None, driver=None):
        # type: (str, Optional[str], object) -> None
        msg = 'Missing required link: %s' % (rel)
        if title is not None:
            msg += ' (title: %s)' % (title)
        super(RequiredLinkMissingError, self).__init__(msg, driver=driver)
        self.rel = rel
        self.title = title


class NotFoundError(AbiquoError):
    """
    The API answered HTTP 404. Kept apart from :class:`TransportError` so
    optional lookups can turn it into ``None``.
    """
    http_code = 404

    def __init__(self, value='Resource not found', url=None, driver=None):
        # type: (str, Optional[str], object) -> None
        super(NotFoundError, self).__init__(value, driver=driver)
        self.url = url


class TransportError(AbiquoError):
    """
    Network or HTTP failure other than 404.
    """


class ProviderError(TransportError):
    """
    Exception used when the API gives back an error response (HTTP 4xx, 5xx)
    for a request.

    Specific sub types are derived for errors like
    HTTP 401 : InvalidCredsError
    HTTP 429 : RateLimitReachedError
    HTTP 503 : ServiceUnavailableError
    """

    def __init__(self, value, http_code, driver=None, errors=None):
        # type: (str, int, object, Optional[list]) -> None
        super(ProviderError, self).__init__(value=value, driver=driver)
        self.http_code = http_code
        self.errors = errors or []

    def __repr__(self):
        return repr(self.value)


class InvalidCredsError(ProviderError):
    """Exception used when invalid credentials are used."""

    def __init__(self, value='Invalid credentials with the provider',
                 driver=None, http_code=401):
        super(InvalidCredsError, self).__init__(value,
                                                http_code=http_code,
                                                driver=driver)


class ServiceUnavailableError(ProviderError):
    """Exception used when the API returns 503 Service Unavailable."""

    def __init__(self, value='Service unavailable at provider', driver=None):
        super(ServiceUnavailableError, self).__init__(
            value,
            http_code=503,
            driver=driver
        )


class TaskVanishedError(AbiquoError):
    """
    A submitted task became unreachable (HTTP 404) before it reached a
    terminal state.
    """

    def __init__(self, task_href, driver=None):
        # type: (str, object) -> None
        super(TaskVanishedError, self).__init__(
            'Task disappeared before completion: %s' % (task_href),
            driver=driver)
        self.task_href = task_href


class UnsupportedOperationError(AbiquoError):
    """The API offers no way to perform the requested operation."""


class DeletedResourceError(AbiquoError):
    """A domain object was used after it had been deleted."""


class InvalidStateError(AbiquoError):
    """The resource is not in a state that allows the requested operation."""
