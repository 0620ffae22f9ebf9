#
# Copyright 2024 xcfbuild Project Authors. All rights reserved.
# Use of this source code is governed by a MIT-style
# license that can be found at
#
# https://opensource.org/license/MIT
#
# The above copyright notice and this permission
# notice shall be included in all copies or
# substantial portions of the Software.

"""Helpers for writing entries of an Xcode project.pbxproj file."""

import hashlib
import os

# lastKnownFileType by file extension
FILE_TYPES = {
    ".mm": "sourcecode.cpp.objcpp",
    ".m": "sourcecode.c.objc",
    ".cc": "sourcecode.cpp.cpp",
    ".cpp": "sourcecode.cpp.cpp",
    ".c": "sourcecode.c.c",
    ".h": "sourcecode.c.h",
    ".plist": "text.plist.xml",
    ".framework": "wrapper.framework",
}

DEFAULT_FILE_TYPE = "text"


def pbx_id(value, kind="ref"):
    """
    Object identifier for a project entry.

    Xcode identifiers are 24 hex digits. They are derived from the entry kind
    and the file path so regenerating a project yields the same identifiers.
    """
    digest = hashlib.md5(f"{kind}:{value}".encode("utf-8")).hexdigest()
    return digest[:24].upper()


def pbx_file_type(path):
    _, ext = os.path.splitext(path)
    return FILE_TYPES.get(ext.lower(), DEFAULT_FILE_TYPE)


def pbx_quote(value):
    escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def pbx_basename(path):
    return os.path.basename(path)


def pbx_lines(value):
    """Split a newline separated template value into its non-empty lines."""
    if not value:
        return []
    return [line.strip() for line in str(value).splitlines() if line.strip()]


FILTERS = {
    "pbx_id": pbx_id,
    "pbx_file_type": pbx_file_type,
    "pbx_quote": pbx_quote,
    "pbx_basename": pbx_basename,
    "pbx_lines": pbx_lines,
}
