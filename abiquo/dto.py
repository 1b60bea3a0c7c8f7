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
Wire format objects.

A DTO class declares the root tag and media type of one Abiquo resource plus
its fields, in the order the API writes them::

    class RackDto(BaseDto):
        ROOT = 'rack'
        MEDIA_TYPE = media_type('rack')
        FIELDS = (
            Field('id', int),
            Field('name'),
            Field('haEnabled', bool),
        )

Parsing and serialization keep the ``<link>`` elements in wire order and
write them before the fields.
"""

import re
from xml.etree import ElementTree as ET

from abiquo.common.types import MalformedResponseError, Type
from abiquo.links import find_link, id_from_link, parse_links
from abiquo.links import require_link, Link
from abiquo.utils.xml import bool_to_text, tostring

__all__ = [
    'media_type',
    'Field',
    'BaseDto',
    'DtoCollection',
    'AcceptedRequestDto'
]

MEDIA_TYPE_TEMPLATE = 'application/vnd.abiquo.%s+xml'

_FIRST_CAP_RE = re.compile(r'(.)([A-Z][a-z]+)')
_ALL_CAP_RE = re.compile(r'([a-z0-9])([A-Z])')


def media_type(name):
    return MEDIA_TYPE_TEMPLATE % (name)


def to_snake_case(name):
    name = _FIRST_CAP_RE.sub(r'\1_\2', name)
    return _ALL_CAP_RE.sub(r'\1_\2', name).lower()


class Field(object):
    """
    One child element of a DTO.

    ``kind`` is ``str``, ``int``, ``float``, ``bool``, a :class:`Type`
    enumeration or another DTO class (nested element).
    """

    def __init__(self, tag, kind=str, attr=None):
        self.tag = tag
        self.kind = kind
        self.attr = attr or to_snake_case(tag)

    def is_nested(self):
        return isinstance(self.kind, type) and issubclass(self.kind, BaseDto)

    def parse(self, element):
        child = element.find(self.tag)
        if child is None:
            return None

        if self.is_nested():
            return self.kind.from_element(child, tag=self.tag)

        text = child.text
        if text is None or text.strip() == '':
            return None
        text = text.strip()

        if self.kind is bool:
            return text.lower() == 'true'
        if isinstance(self.kind, type) and issubclass(self.kind, Type):
            return self.kind.fromstring(text, default=text)
        return self.kind(text)

    def serialize(self, parent, value):
        if value is None:
            return

        if self.is_nested():
            value.to_element(parent=parent, tag=self.tag)
            return

        child = ET.SubElement(parent, self.tag)
        if isinstance(value, bool):
            child.text = bool_to_text(value)
        else:
            child.text = str(value)

    def __repr__(self):
        return '<Field: %s>' % (self.tag)


class BaseDto(object):
    """
    Base class of every resource DTO.
    """

    ROOT = None
    MEDIA_TYPE = None
    FIELDS = ()

    def __init__(self, links=None, **kwargs):
        for field in self.FIELDS:
            setattr(self, field.attr, kwargs.pop(field.attr, None))

        if kwargs:
            raise TypeError('%s got unexpected fields: %s' %
                            (self.__class__.__name__,
                             ', '.join(sorted(kwargs))))

        self.links = list(links or [])

    @classmethod
    def from_element(cls, element, tag=None):
        """
        Build a DTO from its XML element.

        :param tag: Expected tag when the element is nested under a name
                    other than ``ROOT``.
        """
        expected = tag or cls.ROOT

        if element is None:
            raise MalformedResponseError('Expected <%s> but the response '
                                         'was empty' % (expected))

        if expected is not None and element.tag != expected:
            raise MalformedResponseError('Expected <%s> but got <%s>' %
                                         (expected, element.tag),
                                         body=tostring(element))

        dto = cls(links=parse_links(element))
        for field in cls.FIELDS:
            setattr(dto, field.attr, field.parse(element))
        return dto

    @classmethod
    def from_xml(cls, text):
        try:
            element = ET.XML(text)
        except ET.ParseError:
            raise MalformedResponseError('Failed to parse XML', body=text)
        return cls.from_element(element)

    def to_element(self, parent=None, tag=None):
        tag = tag or self.ROOT

        if parent is not None:
            element = ET.SubElement(parent, tag)
        else:
            element = ET.Element(tag)

        for link in self.links:
            link.to_element(parent=element)

        for field in self.FIELDS:
            field.serialize(element, getattr(self, field.attr))

        self._serialize_children(element)

        return element

    def _serialize_children(self, element):
        pass

    def to_xml(self):
        return tostring(self.to_element())

    # Link helpers

    def search_link(self, rel, title=None):
        return find_link(self, rel, title=title)

    def require_link(self, rel, title=None):
        return require_link(self, rel, title=title)

    def get_id_from_link(self, rel):
        """
        Identifier of the resource a required relation points to.
        """
        return id_from_link(self.require_link(rel))

    def add_link(self, link):
        self.links.append(link)

    def update_link(self, rel, href, type=None, title=None):
        """
        Point ``rel`` to ``href``, replacing the first link with that
        relation or appending a new one.
        """
        new_link = Link(rel, href, type=type, title=title)

        for index, link in enumerate(self.links):
            if link.rel == rel and (title is None or link.title == title):
                self.links[index] = new_link
                return new_link

        self.links.append(new_link)
        return new_link

    def __eq__(self, other):
        if not isinstance(other, self.__class__):
            return NotImplemented
        return self.to_xml() == other.to_xml()

    def __ne__(self, other):
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    __hash__ = None

    def __repr__(self):
        values = ', '.join('%s=%r' % (field.attr, getattr(self, field.attr))
                           for field in self.FIELDS
                           if not field.is_nested() and
                           getattr(self, field.attr) is not None)
        return '<%s: %s>' % (self.__class__.__name__, values)


class DtoCollection(BaseDto):
    """
    A list of DTOs wrapped in a root element, e.g.
    ``<virtualMachines><virtualMachine/>...</virtualMachines>``.
    """

    ITEM = None
    FIELDS = (
        Field('totalSize', int),
    )

    def __init__(self, items=None, **kwargs):
        super(DtoCollection, self).__init__(**kwargs)
        self.items = list(items or [])

    @classmethod
    def from_element(cls, element, tag=None):
        dto = super(DtoCollection, cls).from_element(element, tag=tag)
        dto.items = [cls.ITEM.from_element(child) for child in element
                     if child.tag == cls.ITEM.ROOT]
        return dto

    def _serialize_children(self, element):
        for item in self.items:
            item.to_element(parent=element)

    def __iter__(self):
        return iter(self.items)

    def __len__(self):
        return len(self.items)

    def __getitem__(self, index):
        return self.items[index]

    def __repr__(self):
        return '<%s: %d items>' % (self.__class__.__name__, len(self.items))


class AcceptedRequestDto(BaseDto):
    """
    Answer of an operation the API completes asynchronously (HTTP 202).

    The ``status`` link points to the task that tracks the operation.
    """

    ROOT = 'acceptedrequest'
    MEDIA_TYPE = media_type('acceptedrequest')
    FIELDS = (
        Field('message'),
    )

    STATUS_REL = 'status'

    @property
    def status_link(self):
        return self.require_link(self.STATUS_REL)

    @property
    def task_href(self):
        return self.status_link.href
