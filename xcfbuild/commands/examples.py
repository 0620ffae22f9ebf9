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
import argparse

from xcfbuild.build_scripts.build_config import load_target_registry
from xcfbuild.build_scripts.build_examples import build_examples
from xcfbuild.build_scripts.build_utils import (
    PreconditionError,
    check_build_environment,
    get_repo_root,
)
from xcfbuild.build_scripts.dependency_manager import DependencyError
from xcfbuild.utils.context.command import CliCommand
from xcfbuild.utils.context.context import CliContext
from xcfbuild.utils.context.namespace import CliNameSpace


class Examples(CliCommand):
    def description(self) -> str:
        return """
        Build the iOS example apps under mediapipe/examples/ios into IPAs.

        Examples:
            xcfbuild examples                  # IPAs in the current directory
            xcfbuild examples -d out --nostrip
        """

    def add_arguments(self, parser: argparse.ArgumentParser):
        parser.add_argument(
            "-d",
            dest="out_dir",
            default=".",
            help="Directory receiving the IPAs (default: current directory)",
        )
        parser.add_argument(
            "--nostrip",
            action="store_true",
            help="Keep debug symbols in the app binaries",
        )

    def exec(self, context: CliContext, args: CliNameSpace):
        environ = context.environ
        try:
            root_dir = os.path.realpath(environ.get("MPP_ROOT_DIR") or get_repo_root())
            registry = load_target_registry(environ.get("XCFBUILD_TARGETS_FILE"))
            check_build_environment()
            build_examples(
                root_dir,
                args.get("out_dir", "."),
                registry,
                strip=not args.get("nostrip"),
                runner=context.runner,
                session=context.session,
            )
        except (PreconditionError, DependencyError) as e:
            print(f"ERROR: {e}")
            sys.exit(1)
