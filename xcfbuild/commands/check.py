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
import shutil
import platform
import argparse

from xcfbuild.build_scripts.build_config import load_target_registry
from xcfbuild.build_scripts.build_utils import (
    XCODE_BUILD_DIR_NAME,
    PreconditionError,
    get_repo_root,
)
from xcfbuild.utils.cmd.cmd_util import exec_command
from xcfbuild.utils.context.command import CliCommand
from xcfbuild.utils.context.context import CliContext
from xcfbuild.utils.context.namespace import CliNameSpace


class Check(CliCommand):
    def description(self) -> str:
        return """
        Check that this host can build MediaPipe Tasks iOS frameworks.

        Nothing is built or downloaded.

        Examples:
            xcfbuild check
            xcfbuild check --verbose
        """

    def add_arguments(self, parser: argparse.ArgumentParser):
        parser.add_argument(
            "--verbose",
            action="store_true",
            help="Show detailed information",
        )

    def exec(self, context: CliContext, args: CliNameSpace):
        print("🔍 Checking iOS build environment...\n")
        checker = EnvironmentChecker(
            runner=context.runner, environ=context.environ, verbose=args.get("verbose", False)
        )
        checker.check_all()
        checker.print_summary()
        if checker.errors:
            sys.exit(1)


class EnvironmentChecker:
    def __init__(self, runner=exec_command, environ=None, verbose=False):
        self.runner = runner
        self.environ = os.environ if environ is None else environ
        self.verbose = verbose
        self.warnings = []
        self.errors = []
        self.current_os = platform.system()

    def print_ok(self, msg):
        print(f"  ✅ {msg}")

    def print_error(self, msg):
        print(f"  ❌ {msg}")
        self.errors.append(msg)

    def print_warning(self, msg):
        print(f"  ⚠️  {msg}")
        self.warnings.append(msg)

    def print_info(self, msg):
        print(f"  ℹ️  {msg}")

    def print_section(self, title):
        print(f"\n{'='*60}")
        print(f"  {title}")
        print(f"{'='*60}")

    def tool_version(self, command):
        """First output line of `command`, or an empty string when it fails."""
        err_code, output = self.runner(command)
        if err_code != 0 or not output:
            return ""
        return output.strip().split("\n")[0]

    def check_host(self):
        self.print_section("Host")
        if self.current_os == "Darwin":
            self.print_ok(f"macOS {platform.mac_ver()[0]}")
        else:
            self.print_error(f"{self.current_os}: builds only work on macOS")

    def check_tool(self, name, version_args, required=True):
        if shutil.which(name) is None:
            if required:
                self.print_error(f"{name}: Not found")
            else:
                self.print_warning(f"{name}: Not found")
            return False
        version = self.tool_version([name] + version_args)
        self.print_ok(f"{name}: Found {version}".rstrip())
        return True

    def check_tools(self):
        self.print_section("Tools")
        self.check_tool("xcodebuild", ["-version"])
        self.check_tool("git", ["--version"])
        if not self.check_tool("pod", ["--version"], required=False):
            self.print_info("TensorFlow Lite will use placeholder headers without CocoaPods")

    def check_repository(self):
        self.print_section("Repository")
        try:
            root_dir = self.environ.get("MPP_ROOT_DIR") or get_repo_root()
        except PreconditionError as e:
            self.print_error(str(e))
            return
        self.print_ok(f"Root: {root_dir}")
        script_dir = os.path.join(root_dir, XCODE_BUILD_DIR_NAME)
        if os.path.isfile(os.path.join(script_dir, "Podfile")):
            self.print_ok(f"Podfile: {os.path.join(script_dir, 'Podfile')}")
        elif self.verbose:
            self.print_info(f"No Podfile in {script_dir}")
        if not os.path.isfile(os.path.join(root_dir, "LICENSE")):
            self.print_warning("LICENSE not found, packages will not include it")

        try:
            registry = load_target_registry(self.environ.get("XCFBUILD_TARGETS_FILE"))
        except PreconditionError as e:
            self.print_error(str(e))
            return
        for name in registry.names:
            target = registry.get(name)
            missing = [
                r.root for r in target.sources + target.headers
                if not os.path.isdir(os.path.join(root_dir, r.root))
            ]
            if missing:
                self.print_warning(f"{name}: missing {', '.join(missing)}")
            elif self.verbose:
                self.print_ok(f"{name}: all source roots present")

    def check_all(self):
        self.check_host()
        self.check_tools()
        self.check_repository()

    def print_summary(self):
        self.print_section("Summary")
        if self.errors:
            status = "❌ NOT READY"
        elif self.warnings:
            status = "⚠️  PARTIAL"
        else:
            status = "✅ READY"
        print(f"  iOS: {status}")
        print(f"  Errors: {len(self.errors)}, Warnings: {len(self.warnings)}")
