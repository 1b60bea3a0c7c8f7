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
Base class of the domain objects.

A domain object owns exactly one DTO and the context it was obtained from.
Operations translate into one HTTP call each; operations the API completes
asynchronously return a :class:`abiquo.task.TaskHandle` instead of blocking.
"""

from abiquo.common.types import DeletedResourceError
from abiquo.dto import AcceptedRequestDto, BaseDto
from abiquo.links import Link, require_link
from abiquo.utils.misc import find, first

__all__ = [
    'LinksDto',
    'DomainWrapper'
]


class LinksDto(BaseDto):
    """
    Bare list of links, used to attach resources to each other.
    """
    ROOT = 'links'
    MEDIA_TYPE = 'application/vnd.abiquo.links+xml'


class DomainWrapper(object):
    """
    Pair a DTO with the context used to talk to the API.

    After :meth:`delete` the DTO is dropped and every further use of the
    wrapper raises :class:`DeletedResourceError`.
    """

    DTO_CLASS = None
    EDIT_REL = 'edit'

    def __init__(self, context, dto):
        self.context = context
        self._dto = dto

    @classmethod
    def wrap(cls, context, dto):
        if dto is None:
            return None
        return cls(context, dto)

    @classmethod
    def wrap_all(cls, context, dtos):
        return [cls(context, dto) for dto in (dtos or [])]

    def unwrap(self):
        """
        Return the wrapped DTO.

        :raises DeletedResourceError: The resource has been deleted.
        """
        if self._dto is None:
            raise DeletedResourceError('%s has been deleted' %
                                       (self.__class__.__name__))
        return self._dto

    @property
    def dto(self):
        return self.unwrap()

    @property
    def is_deleted(self):
        return self._dto is None

    @property
    def id(self):
        return getattr(self.unwrap(), 'id', None)

    @property
    def links(self):
        return self.unwrap().links

    @property
    def connection(self):
        return self.context.connection

    @property
    def resolver(self):
        return self.context.resolver

    def search_link(self, rel, title=None):
        return self.unwrap().search_link(rel, title=title)

    def refresh(self):
        """
        Fetch the resource again and replace the wrapped DTO.
        """
        link = self.unwrap().require_link(self.EDIT_REL)
        self._dto = self.resolver.resolve(link, self.DTO_CLASS)
        return self

    # Helpers used by the concrete wrappers

    def _follow(self, rel, wrapper_cls, title=None, required=True,
                params=None):
        dto = self.resolver.follow(self.unwrap(), rel, wrapper_cls.DTO_CLASS,
                                   title=title, required=required,
                                   params=params)
        return wrapper_cls.wrap(self.context, dto)

    def _list(self, rel, collection_cls, wrapper_cls, predicate=None,
              params=None):
        collection = self.resolver.follow(self.unwrap(), rel, collection_cls,
                                          params=params)
        items = wrapper_cls.wrap_all(self.context, collection)
        return find(items, predicate)

    def _find(self, rel, collection_cls, wrapper_cls, predicate=None,
              params=None):
        return first(self._list(rel, collection_cls, wrapper_cls,
                                predicate=predicate, params=params))

    def _create(self, parent, rel, params=None):
        """
        POST the DTO to the ``rel`` link of ``parent`` and keep the stored
        representation returned by the API.
        """
        link = require_link(parent, rel)
        self._dto = self._send(link.href, 'POST', self.unwrap(),
                               response_cls=self.DTO_CLASS, params=params)
        return self

    def _create_at(self, path, params=None):
        self._dto = self._send(path, 'POST', self.unwrap(),
                               response_cls=self.DTO_CLASS, params=params)
        return self

    def _update(self, params=None, accept=None):
        """
        PUT the DTO to its edit link.

        :return: A task handle when the API accepted the change for
                 asynchronous processing, ``None`` otherwise.
        """
        dto = self.unwrap()
        link = dto.require_link(self.EDIT_REL)
        headers = {
            'Content-Type': self.DTO_CLASS.MEDIA_TYPE,
            'Accept': accept or self.DTO_CLASS.MEDIA_TYPE
        }
        response = self.connection.request(link.href, params=params,
                                           data=dto.to_xml(),
                                           headers=headers, method='PUT')

        if response.is_accepted():
            return self._track(response)

        if response.object is not None and \
                response.object.tag == self.DTO_CLASS.ROOT:
            self._dto = self.DTO_CLASS.from_element(response.object)
        return None

    def _delete(self, params=None):
        link = self.unwrap().require_link(self.EDIT_REL)
        response = self.connection.request(link.href, params=params,
                                           method='DELETE')
        self._dto = None

        if response.is_accepted():
            return self._track(response)
        return None

    def _action(self, rel, body=None, title=None, params=None,
                method='POST'):
        """
        Invoke an action link of the resource.

        :return: A task handle, or ``None`` if the action completed
                 synchronously.
        """
        link = self.unwrap().require_link(rel, title=title)
        return self._send_action(link.href, body=body, params=params,
                                 method=method)

    def _send_action(self, href, body=None, params=None, method='POST'):
        headers = {'Accept': AcceptedRequestDto.MEDIA_TYPE}
        data = None
        if body is not None:
            headers['Content-Type'] = body.MEDIA_TYPE
            data = body.to_xml()

        response = self.connection.request(href, params=params, data=data,
                                           headers=headers, method=method)
        if response.is_accepted():
            return self._track(response)
        return None

    def _send(self, href, method, body, response_cls, params=None):
        headers = {
            'Content-Type': body.MEDIA_TYPE,
            'Accept': response_cls.MEDIA_TYPE
        }
        response = self.connection.request(href, params=params,
                                           data=body.to_xml(),
                                           headers=headers, method=method)
        return response_cls.from_element(response.object)

    def _track(self, response):
        accepted = AcceptedRequestDto.from_element(response.object)
        return self.context.monitor.track(accepted)

    @staticmethod
    def _links_to(rel, resources):
        """
        Build the ``<links>`` document that points to ``resources``.
        """
        links = [Link(rel, resource.unwrap().require_link('edit').href)
                 for resource in resources]
        return LinksDto(links=links)

    def __eq__(self, other):
        if not isinstance(other, self.__class__):
            return NotImplemented
        return self._dto == other._dto

    def __ne__(self, other):
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    __hash__ = None

    def __repr__(self):
        if self._dto is None:
            return '<%s: deleted>' % (self.__class__.__name__)
        return '<%s: id=%s, name=%s>' % (self.__class__.__name__, self.id,
                                         getattr(self._dto, 'name', None))
