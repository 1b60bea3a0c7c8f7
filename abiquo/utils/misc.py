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

__all__ = [
    'find',
    'first',
    'lowercase_keys',
    'str2bool',
]


def find(value, predicate):
    """
    Return every item of ``value`` for which ``predicate`` is true. A
    ``None`` predicate keeps everything.
    """
    if predicate is None:
        return list(value)
    return [item for item in value if predicate(item)]


def first(value, predicate=None, default=None):
    """
    Return the first item of ``value`` matching ``predicate`` or ``default``.
    """
    for item in value:
        if predicate is None or predicate(item):
            return item
    return default


def lowercase_keys(dictionary):
    return dict(((k.lower(), v) for k, v in dictionary.items()))


def str2bool(value):
    return str(value).strip().lower() in ['1', 'true', 'yes', 'on']
