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
    'VLANNetworkDto',
    'VLANNetworksDto',
    'IpDto',
    'IpsDto',
    'NicDto',
    'NicsDto',
    'PrivateNetwork',
    'Ip',
    'Nic'
]


class VLANNetworkDto(BaseDto):
    ROOT = 'network'
    MEDIA_TYPE = media_type('vlan')
    FIELDS = (
        Field('id', int),
        Field('name'),
        Field('address'),
        Field('mask', int),
        Field('gateway'),
        Field('tag', int),
        Field('defaultNetwork', bool),
        Field('primaryDNS', attr='primary_dns'),
        Field('secondaryDNS', attr='secondary_dns'),
        Field('sufixDNS', attr='sufix_dns'),
        Field('type'),
    )


class VLANNetworksDto(DtoCollection):
    ROOT = 'networks'
    MEDIA_TYPE = media_type('vlans')
    ITEM = VLANNetworkDto


class IpDto(BaseDto):
    ROOT = 'ipPoolManagement'
    MEDIA_TYPE = media_type('privateip')
    FIELDS = (
        Field('id', int),
        Field('ip'),
        Field('mac'),
        Field('name'),
        Field('networkName'),
        Field('quarantine', bool),
        Field('available', bool),
    )


class IpsDto(DtoCollection):
    ROOT = 'ipsPoolManagement'
    MEDIA_TYPE = media_type('privateips')
    ITEM = IpDto


class NicDto(BaseDto):
    ROOT = 'nic'
    MEDIA_TYPE = media_type('nic')
    FIELDS = (
        Field('id', int),
        Field('ip'),
        Field('mac'),
        Field('sequence', int),
    )


class NicsDto(DtoCollection):
    ROOT = 'nics'
    MEDIA_TYPE = media_type('nics')
    ITEM = NicDto


class PrivateNetwork(DomainWrapper):
    """
    Private VLAN of a virtual datacenter.
    """

    DTO_CLASS = VLANNetworkDto

    _virtual_datacenter = None

    @classmethod
    def build(cls, context, name, address, mask, gateway,
              virtual_datacenter=None, default_network=False,
              primary_dns=None, secondary_dns=None, sufix_dns=None):
        """
        ``virtual_datacenter`` may be omitted when the network is only used
        as the default network of a new virtual datacenter.
        """
        if not name or not address or mask is None or not gateway:
            raise ValueError('name, address, mask and gateway are required')

        if virtual_datacenter is not None:
            virtual_datacenter.unwrap().require_link('privatenetworks')

        dto = VLANNetworkDto(name=name, address=address, mask=mask,
                             gateway=gateway,
                             default_network=default_network,
                             primary_dns=primary_dns,
                             secondary_dns=secondary_dns,
                             sufix_dns=sufix_dns, type='INTERNAL')
        network = cls(context, dto)
        network._virtual_datacenter = virtual_datacenter
        return network

    @property
    def name(self):
        return self.unwrap().name

    @property
    def address(self):
        return self.unwrap().address

    def save(self):
        if self._virtual_datacenter is None:
            raise ValueError('virtual_datacenter is required')
        return self._create(self._virtual_datacenter.unwrap(),
                            'privatenetworks')

    def update(self):
        return self._update()

    def delete(self):
        return self._delete()

    def list_ips(self, predicate=None):
        return self._list('ips', IpsDto, Ip, predicate=predicate)

    def list_available_ips(self, predicate=None):
        """
        IPs of the network that are not used by any virtual machine.
        """
        return self._list('ips', IpsDto, Ip, predicate=predicate,
                          params={'free': 'true'})

    def find_ip(self, predicate=None):
        return self._find('ips', IpsDto, Ip, predicate=predicate)


class Ip(DomainWrapper):
    DTO_CLASS = IpDto

    @property
    def ip(self):
        return self.unwrap().ip

    @property
    def mac(self):
        return self.unwrap().mac

    @property
    def available(self):
        return bool(self.unwrap().available)

    def get_network(self):
        return self._follow('privatenetwork', PrivateNetwork)


class Nic(DomainWrapper):
    DTO_CLASS = NicDto

    @property
    def ip(self):
        return self.unwrap().ip

    @property
    def mac(self):
        return self.unwrap().mac

    @property
    def sequence(self):
        return self.unwrap().sequence
