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

from xcfbuild.build_scripts.build_config import BuildConfig, load_target_registry
from xcfbuild.build_scripts.build_framework import build_framework
from xcfbuild.build_scripts.build_utils import PreconditionError, check_build_environment
from xcfbuild.build_scripts.dependency_manager import DependencyError
from xcfbuild.utils.context.command import CliCommand
from xcfbuild.utils.context.context import CliContext
from xcfbuild.utils.context.namespace import CliNameSpace


class Framework(CliCommand):
    def description(self) -> str:
        return """
        Build one MediaPipe Tasks iOS XCFramework and publish it as a package.

        The framework name is taken from the NAME argument or FRAMEWORK_NAME.

        Environment:
            DEST_DIR            Destination (default: <root>/xcode_build)
            MPP_BUILD_VERSION   Package version (default: 0.0.1-dev)
            ARCHIVE_FRAMEWORK   Publish a tar.gz package (default: true)
            IS_RELEASE_BUILD    Add a content-hash path segment (default: false)

        Examples:
            xcfbuild framework MediaPipeTasksText
            FRAMEWORK_NAME=MediaPipeTasksVision xcfbuild framework --dest /tmp/out
        """

    def add_arguments(self, parser: argparse.ArgumentParser):
        parser.add_argument(
            "name",
            nargs="?",
            default=None,
            help="Framework to build (default: $FRAMEWORK_NAME)",
        )
        parser.add_argument(
            "--dest",
            default=None,
            help="Destination directory, overrides DEST_DIR",
        )
        parser.add_argument(
            "--strict",
            action="store_true",
            help="Fail instead of substituting placeholder artifacts",
        )
        parser.add_argument(
            "--targets-file",
            default=None,
            help="Target registry to use instead of the bundled targets.toml",
        )

    def exec(self, context: CliContext, args: CliNameSpace):
        environ = context.environ
        name = args.get("name") or environ.get("FRAMEWORK_NAME")
        if not name:
            print("ERROR: Name of the iOS framework, which is to be built, must be set.")
            sys.exit(1)

        try:
            registry = load_target_registry(
                args.get("targets_file") or environ.get("XCFBUILD_TARGETS_FILE")
            )
            registry.get(name)
            config = BuildConfig.from_env(
                environ=environ,
                dest_dir=args.get("dest"),
                strict=True if args.get("strict") else None,
            )
            check_build_environment()
            build = build_framework(
                name, config, registry, runner=context.runner, session=context.session
            )
        except (PreconditionError, DependencyError) as e:
            print(f"ERROR: {e}")
            sys.exit(1)

        if build.failed:
            print(f"❌ {name} failed")
            sys.exit(1)
        if build.degraded:
            print(f"⚠️  {name} was published with placeholder artifacts")
        print(f"✅ {name}: {build.package_path}")
