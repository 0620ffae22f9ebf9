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
import sys
import importlib
import argparse

from xcfbuild.utils.context.namespace import CliNameSpace
from xcfbuild.utils.context.context import CliContext
from xcfbuild.utils.context.command import CliCommand

SCRIPT_PATH = os.path.split(os.path.realpath(__file__))[0]
PACKAGE_NAME = os.path.basename(SCRIPT_PATH)


# Root Class for Command Line Interface
class Cli(CliCommand):
    def description(self) -> str:
        return """xcfbuild - MediaPipe Tasks iOS XCFramework builder

Drives xcodebuild to build MediaPipe Tasks iOS frameworks and example apps.

USAGE:
    xcfbuild <command> [options]

COMMANDS:
    framework   Build one framework and publish its package
    all         Build every framework of the driver list
    examples    Build the iOS example apps into IPAs
    check       Check the build environment

EXAMPLES:
    xcfbuild framework MediaPipeTasksText
    DEST_DIR=/tmp/frameworks xcfbuild all
    xcfbuild examples -d out --nostrip
    xcfbuild check

For more information on a specific command:
    xcfbuild <command> --help
        """

    def get_command_list(self) -> list:
        arr = []
        for command in os.listdir(os.path.join(SCRIPT_PATH, "commands")):
            if not command.startswith("_") and command.endswith(".py"):
                arr.append(os.path.splitext(os.path.basename(command))[0])
        return sorted(arr)

    def _parser(self, add_help=True) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="xcfbuild",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            description=self.description(),
            add_help=add_help,
        )
        parser.add_argument(
            "subcommand",
            metavar=f"{self.get_command_list()}",
            type=str,
            nargs="?",
            choices=self.get_command_list(),
        )
        return parser

    def cli(self, argv=None) -> CliNameSpace:
        if argv is None:
            argv = sys.argv[1:]
        # xcfbuild --help, but not xcfbuild framework --help
        if len(argv) == 1 and argv[0] in ["--help", "-h"]:
            self._parser().print_help()
            sys.exit(0)
        # parse only known args so the subcommand keeps its own --help
        args, _ = self._parser(add_help=False).parse_known_args(argv, namespace=CliNameSpace())
        return args

    def load_command(self, name) -> CliCommand:
        module = importlib.import_module(f"{PACKAGE_NAME}.commands.{name}")
        klass = getattr(module, name.capitalize())
        return klass()

    def exec(self, context: CliContext, args: CliNameSpace, argv=None):
        if not args.get("subcommand"):
            print("ERROR: No command specified\n")
            self._parser().print_help()
            sys.exit(1)

        sub_cmd = self.load_command(args.subcommand)
        sub_cmd.exec(context, sub_cmd.cli(argv))


def main():
    cmd = Cli()
    cmd.exec(CliContext(), cmd.cli())


if __name__ == "__main__":
    main()
