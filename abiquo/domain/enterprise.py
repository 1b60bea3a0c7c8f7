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

from abiquo.domain.base import DomainWrapper
from abiquo.dto import BaseDto, DtoCollection, Field, media_type

__all__ = [
    'EnterpriseDto',
    'EnterprisesDto',
    'UserDto',
    'UsersDto',
    'Enterprise',
    'User'
]

ENTERPRISES_PATH = '/admin/enterprises'


class EnterpriseDto(BaseDto):
    ROOT = 'enterprise'
    MEDIA_TYPE = media_type('enterprise')
    FIELDS = (
        Field('id', int),
        Field('name'),
        Field('cpuCountSoftLimit', int),
        Field('cpuCountHardLimit', int),
        Field('ramSoftLimitInMb', int, attr='ram_soft_limit_in_mb'),
        Field('ramHardLimitInMb', int, attr='ram_hard_limit_in_mb'),
        Field('isReservationRestricted', bool,
              attr='reservation_restricted'),
    )


class EnterprisesDto(DtoCollection):
    ROOT = 'enterprises'
    MEDIA_TYPE = media_type('enterprises')
    ITEM = EnterpriseDto


class UserDto(BaseDto):
    ROOT = 'user'
    MEDIA_TYPE = media_type('user')
    FIELDS = (
        Field('id', int),
        Field('name'),
        Field('surname'),
        Field('nick'),
        Field('email'),
        Field('description'),
        Field('password'),
        Field('locale'),
        Field('active', bool),
        Field('authType'),
    )


class UsersDto(DtoCollection):
    ROOT = 'users'
    MEDIA_TYPE = media_type('users')
    ITEM = UserDto


class Enterprise(DomainWrapper):
    DTO_CLASS = EnterpriseDto

    @classmethod
    def build(cls, context, name, cpu_count_soft_limit=0,
              cpu_count_hard_limit=0, ram_soft_limit_in_mb=0,
              ram_hard_limit_in_mb=0, reservation_restricted=False):
        if not name:
            raise ValueError('name is required')

        dto = EnterpriseDto(name=name,
                            cpu_count_soft_limit=cpu_count_soft_limit,
                            cpu_count_hard_limit=cpu_count_hard_limit,
                            ram_soft_limit_in_mb=ram_soft_limit_in_mb,
                            ram_hard_limit_in_mb=ram_hard_limit_in_mb,
                            reservation_restricted=reservation_restricted)
        return cls(context, dto)

    @property
    def name(self):
        return self.unwrap().name

    def save(self):
        return self._create_at(ENTERPRISES_PATH)

    def update(self):
        return self._update()

    def delete(self):
        return self._delete()

    def list_users(self, predicate=None):
        return self._list('users', UsersDto, User, predicate=predicate)

    def find_user(self, predicate=None):
        return self._find('users', UsersDto, User, predicate=predicate)

    def list_virtual_datacenters(self, predicate=None):
        from abiquo.domain.cloud import VirtualDatacenter
        from abiquo.domain.cloud import VirtualDatacentersDto

        return self._list('cloud/virtualdatacenters', VirtualDatacentersDto,
                          VirtualDatacenter, predicate=predicate)


class User(DomainWrapper):
    DTO_CLASS = UserDto

    _enterprise = None

    @classmethod
    def build(cls, context, enterprise, name, nick, email=None,
              surname=None, password=None, description=None, active=True,
              locale='en_US', role=None):
        """
        :param role: href of the role of the new user.
        """
        enterprise.unwrap().require_link('users')
        if not name or not nick:
            raise ValueError('name and nick are required')

        dto = UserDto(name=name, nick=nick, email=email, surname=surname,
                      password=password, description=description,
                      active=active, locale=locale)
        if role is not None:
            dto.update_link('role', role)

        user = cls(context, dto)
        user._enterprise = enterprise
        return user

    @property
    def name(self):
        return self.unwrap().name

    @property
    def nick(self):
        return self.unwrap().nick

    def save(self):
        if self._enterprise is None:
            raise ValueError('enterprise is required')
        return self._create(self._enterprise.unwrap(), 'users')

    def update(self):
        return self._update()

    def delete(self):
        return self._delete()

    def get_enterprise(self):
        return self._follow('enterprise', Enterprise)
