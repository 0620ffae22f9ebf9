#!/usr/bin/env python3
# -- coding: utf-8 --
#
# build_utils.py
# xcfbuild
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

"""
Build utility functions shared by the framework and example build scripts.

This module provides:
- Precondition checks (host platform, Xcode, repository root)
- Destination directory policy
- File operations (copy, merge copy, stub bundles)
- Console banners used by every build step
"""

import os
import platform
import plistlib
import shutil
import subprocess
import time
from pathlib import Path

# Directory under the repository root that owns the build scripts and is the
# only place under the root where outputs may be written
XCODE_BUILD_DIR_NAME = "xcode_build"

BUNDLE_ID_PREFIX = "com.google.mediapipe"


class PreconditionError(Exception):
    """Raised when the environment cannot run a build at all"""
    pass


class ConfigError(PreconditionError):
    """Raised for unset or invalid configuration values"""
    pass


def system_is_macos():
    """Check if the current host is macOS."""
    return platform.system() == "Darwin"


def check_build_environment(require_pod=False):
    """
    Verify the host can run xcodebuild.

    Args:
        require_pod: Also require the CocoaPods `pod` executable

    Raises:
        PreconditionError: When not on macOS or a required tool is missing
    """
    if not system_is_macos():
        raise PreconditionError("This build script only works on macOS.")
    if shutil.which("xcodebuild") is None:
        raise PreconditionError(
            "xcodebuild is required but not installed. Please install Xcode."
        )
    if require_pod and shutil.which("pod") is None:
        raise PreconditionError("CocoaPods is required but not installed.")


def get_repo_root(cwd=None):
    """
    Locate the repository root with `git rev-parse --show-toplevel`.

    Args:
        cwd: Directory to start from (default: current working directory)

    Returns:
        str: Absolute repository root path

    Raises:
        PreconditionError: When git is missing or cwd is not inside a repository
    """
    try:
        result = subprocess.run(
            ["git", "rev-parse", "--show-toplevel"],
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=30,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        raise PreconditionError(f"Failed to run git: {e}")
    if result.returncode != 0:
        raise PreconditionError(
            "Not inside a git repository, set MPP_ROOT_DIR to the repository root."
        )
    return result.stdout.strip()


def is_relative_to(path, parent):
    try:
        Path(path).relative_to(parent)
        return True
    except ValueError:
        return False


def validate_destination(dest_dir, root_dir, allowed_subdir=XCODE_BUILD_DIR_NAME):
    """
    Enforce where packages may be published.

    A destination outside the repository root is accepted, as is one inside
    `<root>/<allowed_subdir>`. Anything else under the root is rejected so a
    build never scatters archives through the source tree.

    Args:
        dest_dir: Requested destination directory
        root_dir: Repository root
        allowed_subdir: Subdirectory of the root that may hold outputs

    Returns:
        str: The resolved destination path

    Raises:
        PreconditionError: When the destination is not allowed
    """
    if not dest_dir:
        raise ConfigError("DEST_DIR variable must be set.")
    dest = Path(dest_dir).expanduser().resolve()
    root = Path(root_dir).resolve()
    if is_relative_to(dest, root) and not is_relative_to(dest, root / allowed_subdir):
        raise PreconditionError(
            f"DEST_DIR variable must not be under the repository root "
            f"(except {allowed_subdir}): {dest}"
        )
    return str(dest)


def copy_tree_merge(src, dst):
    """
    Copy a directory tree into dst, merging with whatever is already there.

    Args:
        src: Source directory
        dst: Destination directory (created when missing)
    """
    os.makedirs(dst, exist_ok=True)
    shutil.copytree(src, dst, symlinks=True, dirs_exist_ok=True)


def replace_tree(src, dst):
    """Copy src to dst, removing any previous dst first."""
    if os.path.islink(dst) or os.path.isfile(dst):
        os.remove(dst)
    elif os.path.isdir(dst):
        shutil.rmtree(dst)
    os.makedirs(os.path.dirname(dst) or ".", exist_ok=True)
    shutil.copytree(src, dst, symlinks=True)


def bundle_identifier(name):
    return f"{BUNDLE_ID_PREFIX}.{name}"


def make_stub_framework(framework_dir, name, version="1.0"):
    """
    Create a structurally valid, functionally empty .framework bundle.

    The bundle contains an empty binary named after the framework and an
    Info.plist so Xcode and packaging steps accept it.

    Args:
        framework_dir: Path of the `<name>.framework` directory to create
        name: Framework (and binary) name
        version: CFBundleShortVersionString value

    Returns:
        str: framework_dir
    """
    os.makedirs(framework_dir, exist_ok=True)
    Path(framework_dir, name).touch()
    info = {
        "CFBundleExecutable": name,
        "CFBundleIdentifier": bundle_identifier(name),
        "CFBundleInfoDictionaryVersion": "6.0",
        "CFBundleName": name,
        "CFBundlePackageType": "FMWK",
        "CFBundleShortVersionString": version,
        "CFBundleVersion": "1",
    }
    with open(os.path.join(framework_dir, "Info.plist"), "wb") as f:
        plistlib.dump(info, f)
    return framework_dir


def print_banner(title):
    print("")
    print("=========================================")
    print(title)
    print("=========================================")


def print_elapsed(before_time):
    print(time.strftime("%Y-%m-%d %H:%M:%S", time.localtime()))
    print(f"use time: {int(time.time() - before_time)} s")
