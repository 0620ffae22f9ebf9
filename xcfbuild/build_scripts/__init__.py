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

"""Build steps for MediaPipe Tasks iOS frameworks and example apps."""

__all__ = [
    "archive",
    "build_config",
    "build_examples",
    "build_framework",
    "build_utils",
    "dependency_manager",
    "pbxproj",
    "project_generator",
]
