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
import time
import argparse

from xcfbuild.build_scripts.build_config import BuildConfig, load_target_registry
from xcfbuild.build_scripts.build_framework import build_framework
from xcfbuild.build_scripts.build_utils import (
    PreconditionError,
    check_build_environment,
    print_banner,
    print_elapsed,
    validate_destination,
)
from xcfbuild.build_scripts.dependency_manager import DependencyError
from xcfbuild.utils.context.command import CliCommand
from xcfbuild.utils.context.context import CliContext
from xcfbuild.utils.context.namespace import CliNameSpace

# DEST_DIR default of the driver, relative to <root>/xcode_build
DRIVER_DEST_DIR_NAME = "frameworks"


class All(CliCommand):
    def description(self) -> str:
        return """
        Build every framework listed in [driver] targets of the target registry.

        A target whose native build fails is still published with placeholder
        artifacts and the driver moves on to the next target.

        Environment:
            DEST_DIR    Destination (default: <root>/xcode_build/frameworks)

        Examples:
            xcfbuild all
            DEST_DIR=/tmp/frameworks xcfbuild all --strict
        """

    def add_arguments(self, parser: argparse.ArgumentParser):
        parser.add_argument(
            "--strict",
            action="store_true",
            help="Treat placeholder artifacts as failures",
        )
        parser.add_argument(
            "--targets-file",
            default=None,
            help="Target registry to use instead of the bundled targets.toml",
        )

    def exec(self, context: CliContext, args: CliNameSpace):
        environ = context.environ
        before_time = time.time()
        try:
            registry = load_target_registry(
                args.get("targets_file") or environ.get("XCFBUILD_TARGETS_FILE")
            )
            config = BuildConfig.from_env(
                environ=environ,
                default_dest=DRIVER_DEST_DIR_NAME,
                strict=True if args.get("strict") else None,
            )
            config = config.with_overrides(
                dest_dir=validate_destination(config.dest_dir, config.root_dir)
            )
            check_build_environment()
        except PreconditionError as e:
            print(f"ERROR: {e}")
            sys.exit(1)

        print_banner("Building all MediaPipe Tasks iOS frameworks")
        print(f"Targets: {', '.join(registry.driver_targets)}")
        print(f"Destination: {config.dest_dir}")

        failed = []
        degraded = []
        for name in registry.driver_targets:
            try:
                build = build_framework(
                    name, config, registry, runner=context.runner, session=context.session
                )
            except (PreconditionError, DependencyError) as e:
                print(f"❌ {name} failed: {e}")
                failed.append(name)
                continue
            if build.failed:
                print(f"❌ {name} failed")
                failed.append(name)
            elif build.degraded:
                print(f"⚠️  {name} built with placeholder artifacts")
                degraded.append(name)
            else:
                print(f"✅ {name} built successfully")

        print_banner("iOS frameworks build completed")
        print(f"Targets attempted: {len(registry.driver_targets)}")
        print(f"Succeeded: {len(registry.driver_targets) - len(failed) - len(degraded)}")
        if degraded:
            print(f"Placeholders: {', '.join(degraded)}")
        if failed:
            print(f"Failed: {', '.join(failed)}")
        print(f"Frameworks are available in: {config.dest_dir}")
        print_elapsed(before_time)

        if failed:
            sys.exit(1)
