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

from xml.etree import ElementTree as ET

__all__ = [
    "findtext",
    "findint",
    "findbool",
    "findall",
    "bool_to_text",
    "tostring",
]


def findtext(element, xpath, no_text_value=None):
    """
    :param no_text_value: Value to return if the element is missing or has
                          no text value.
    :type no_text_value: ``object``
    """
    value = element.findtext(xpath)

    if value is None or value == "":
        return no_text_value
    return value


def findint(element, xpath, default=None):
    value = findtext(element, xpath)

    if value is None:
        return default
    return int(value)


def findbool(element, xpath, default=None):
    value = findtext(element, xpath)

    if value is None:
        return default
    return value.strip().lower() == "true"


def findall(element, xpath):
    return element.findall(xpath)


def bool_to_text(value):
    return "true" if value else "false"


def tostring(element):
    """
    Serialize an element without the XML declaration, as the API expects.

    :rtype: ``str``
    """
    return ET.tostring(element, encoding="unicode")
