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
Query parameters accepted by some Abiquo endpoints.
"""

from abiquo.utils.xml import bool_to_text

__all__ = [
    'QueryOptions',
    'VirtualMachineOptions',
    'VirtualDatacenterOptions',
    'EnterpriseOptions'
]


class QueryOptions(object):
    """
    Base class of the option sets. Unset options are not sent.
    """

    # attribute name -> query parameter name
    PARAMS = {}

    def __init__(self, **kwargs):
        for name in self.PARAMS:
            setattr(self, name, kwargs.pop(name, None))

        if kwargs:
            raise TypeError('%s got unexpected options: %s' %
                            (self.__class__.__name__,
                             ', '.join(sorted(kwargs))))

    def to_params(self):
        params = {}
        for name, param in sorted(self.PARAMS.items()):
            value = getattr(self, name)
            if value is None:
                continue
            if isinstance(value, bool):
                value = bool_to_text(value)
            params[param] = str(value)
        return params

    def __repr__(self):
        return '<%s: %s>' % (self.__class__.__name__, self.to_params())


class VirtualMachineOptions(QueryOptions):
    PARAMS = {
        'force': 'force',
    }


class VirtualDatacenterOptions(QueryOptions):
    """
    ``datacenter`` and ``enterprise`` are identifiers.
    """
    PARAMS = {
        'datacenter': 'datacenter',
        'enterprise': 'enterprise',
    }


class EnterpriseOptions(QueryOptions):
    PARAMS = {
        'pricing_template': 'idPricingTemplate',
        'included': 'included',
        'filter': 'filter',
        'page': 'page',
        'results': 'numResults',
        'network': 'network',
    }
