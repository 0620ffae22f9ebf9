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

import os

from xcfbuild.utils.cmd.cmd_util import exec_command


# This context data class to save the context of the command
class CliContext:
    def __init__(self, runner=None, session=None, environ=None):
        # callable(args, cwd=None) -> (code, output), used for every external tool
        self.runner = runner or exec_command
        # requests.Session-like object for dependency downloads, created lazily
        self.session = session
        # environment mapping read by BuildConfig.from_env
        self.environ = os.environ if environ is None else environ
