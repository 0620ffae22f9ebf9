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

import sys
import argparse

from xcfbuild.utils.context.context import CliContext
from xcfbuild.utils.context.namespace import CliNameSpace


# Base class of every subcommand, subclasses live in xcfbuild/commands/<name>.py
# and are named <Name> so the root command can load them by module name
class CliCommand:
    def description(self) -> str:
        raise NotImplementedError

    def add_arguments(self, parser: argparse.ArgumentParser):
        pass

    def cli(self, argv=None) -> CliNameSpace:
        module_name = self.__class__.__module__.rsplit(".", 1)[-1]
        parser = argparse.ArgumentParser(
            prog=f"xcfbuild {module_name}",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            description=self.description(),
        )
        self.add_arguments(parser)
        if argv is None:
            argv = sys.argv[1:]
        input_argv = [x for x in argv if x != module_name]
        args, unknown = parser.parse_known_args(input_argv, namespace=CliNameSpace())
        if unknown:
            print(f"   ⚠️  Warning: ignoring unknown arguments: {' '.join(unknown)}")
        return args

    def exec(self, context: CliContext, args: CliNameSpace):
        raise NotImplementedError
