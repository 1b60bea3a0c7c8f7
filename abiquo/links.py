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
Hypermedia links and their resolution.

Every Abiquo resource carries an ordered list of ``<link>`` elements::

    <virtualMachine>
        <link rel="edit" href="http://host/api/cloud/.../virtualmachines/1"/>
        <link rel="virtualappliance" href="http://host/api/cloud/..."/>
        ...
    </virtualMachine>

Relations are not unique inside a resource (there may be several ``action``
links told apart by their ``title``), so lookups always return the first
match in wire order.
"""

from typing import List, Optional
from urllib.parse import urlparse
from xml.etree import ElementTree as ET

from abiquo.common.types import MalformedLinkError
from abiquo.common.types import NotFoundError
from abiquo.common.types import RequiredLinkMissingError

__all__ = [
    'Link',
    'parse_links',
    'find_link',
    'require_link',
    'get_href',
    'id_from_link',
    'LinkResolver'
]

LINK_TAG = 'link'


class Link(object):
    """
    A named hyperlink of a resource.
    """

    __slots__ = ('rel', 'href', 'type', 'title')

    def __init__(self, rel, href, type=None, title=None):
        # type: (str, str, Optional[str], Optional[str]) -> None
        self.rel = rel
        self.href = href
        self.type = type
        self.title = title

    @classmethod
    def from_element(cls, element):
        return cls(rel=element.get('rel'), href=element.get('href'),
                   type=element.get('type'), title=element.get('title'))

    def to_element(self, parent=None):
        attrib = {'rel': self.rel, 'href': self.href}
        if self.type is not None:
            attrib['type'] = self.type
        if self.title is not None:
            attrib['title'] = self.title

        if parent is not None:
            return ET.SubElement(parent, LINK_TAG, attrib=attrib)
        return ET.Element(LINK_TAG, attrib=attrib)

    def __eq__(self, other):
        if not isinstance(other, Link):
            return NotImplemented
        return (self.rel, self.href, self.type, self.title) == \
            (other.rel, other.href, other.type, other.title)

    def __ne__(self, other):
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    def __hash__(self):
        return hash((self.rel, self.href, self.type, self.title))

    def __repr__(self):
        return ('<Link: rel=%s, href=%s, title=%s>' %
                (self.rel, self.href, self.title))


def parse_links(element):
    # type: (ET.Element) -> List[Link]
    """
    Return the direct ``<link>`` children of ``element`` in document order.
    """
    return [Link.from_element(child) for child in element
            if child.tag == LINK_TAG]


def _links_of(owner):
    if owner is None:
        return []
    return getattr(owner, 'links', owner)


def find_link(owner, rel, title=None):
    """
    Return the first link of ``owner`` with the given relation (and title,
    when one is given).

    :param owner: A DTO or a list of :class:`Link`.

    :rtype: :class:`Link` or ``None``
    """
    for link in _links_of(owner):
        if link.rel != rel:
            continue
        if title is not None and link.title != title:
            continue
        return link

    return None


def require_link(owner, rel, title=None):
    """
    Like :func:`find_link` but raise :class:`RequiredLinkMissingError` when
    the relation is absent.
    """
    link = find_link(owner, rel, title=title)

    if link is None:
        raise RequiredLinkMissingError(rel, title=title)

    return link


def get_href(owner, rel, title=None):
    """
    Return the href of the first matching link or ``None``.
    """
    link = find_link(owner, rel, title=title)
    return link.href if link is not None else None


def id_from_link(link):
    # type: (Link) -> int
    """
    Parse the last path segment of the link href as an integer.
    """
    href = link.href if isinstance(link, Link) else link
    path = urlparse(href or '').path.rstrip('/')
    segment = path.rsplit('/', 1)[-1]

    if not segment.isdecimal():
        raise MalformedLinkError(href)

    try:
        return int(segment)
    except ValueError:
        raise MalformedLinkError(href)


class LinkResolver(object):
    """
    Fetch the resource a link points to.

    The resolver performs exactly one GET per call and never retries; 404 is
    reported as :class:`NotFoundError` and every other failure is left to
    propagate.
    """

    def __init__(self, connection):
        self.connection = connection

    def resolve(self, link, dto_class, params=None):
        """
        GET ``link.href`` asking for the media type of ``dto_class`` and
        parse the answer into an instance of it.

        :param link: The link to follow.
        :type link: :class:`Link`

        :param dto_class: The expected resource type.
        :type dto_class: subclass of :class:`abiquo.dto.BaseDto`

        :rtype: instance of ``dto_class``
        """
        headers = {'Accept': dto_class.MEDIA_TYPE}
        try:
            response = self.connection.request(link.href, params=params,
                                               headers=headers)
        except NotFoundError as e:
            e.url = e.url or link.href
            raise

        return dto_class.from_element(response.object)

    def resolve_optional(self, link, dto_class, params=None):
        """
        Same as :meth:`resolve` but return ``None`` when the target does not
        exist (or when there is no link at all).
        """
        if link is None:
            return None

        try:
            return self.resolve(link, dto_class, params=params)
        except NotFoundError:
            return None

    def follow(self, owner, rel, dto_class, title=None, required=True,
               params=None):
        """
        Resolve a relation of ``owner``.

        A required relation missing from ``owner`` raises
        :class:`RequiredLinkMissingError` before any request is sent, and a
        404 on the target raises :class:`NotFoundError`. Optional relations
        return ``None`` in both cases.
        """
        if required:
            link = require_link(owner, rel, title=title)
            return self.resolve(link, dto_class, params=params)

        link = find_link(owner, rel, title=title)
        return self.resolve_optional(link, dto_class, params=params)
