#!/usr/bin/env python3
# -- coding: utf-8 --
#
# archive.py
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
Package and publish a built XCFramework.

Package layout:
    <dest>/<name>/<version>/<name>-<version>.tar.gz
    <dest>/<name>/<version>/<hash>/<name>-<version>.tar.gz   (release builds)

The tarball holds `LICENSE` and `frameworks/<name>.xcframework`.
"""

import hashlib
import os
import shutil
import tarfile
import tempfile
from typing import Optional

from xcfbuild.build_scripts.build_config import BuildConfig
from xcfbuild.build_scripts.build_utils import copy_tree_merge, replace_tree

HASH_LENGTH = 16

HASH_CHUNK_SIZE = 64 * 1024


def stage_package(xcframework: str, license_file: str, staging_dir: str) -> str:
    """
    Copy the license and the bundle into staging_dir.

    Returns:
        str: staging_dir
    """
    if os.path.isfile(license_file):
        shutil.copy2(license_file, os.path.join(staging_dir, "LICENSE"))
    else:
        print(f"   ⚠️  Warning: {license_file} not found, packaging without LICENSE")
    frameworks_dir = os.path.join(staging_dir, "frameworks")
    os.makedirs(frameworks_dir, exist_ok=True)
    replace_tree(xcframework, os.path.join(frameworks_dir, os.path.basename(xcframework)))
    return staging_dir


def _file_digest(path: str) -> str:
    sha = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(HASH_CHUNK_SIZE), b""):
            sha.update(chunk)
    return sha.hexdigest()


def compute_content_hash(staging_dir: str) -> str:
    """
    Identity of a staged tree.

    Every file is hashed, the `<digest>  <relative path>` lines are sorted and
    hashed again. The result does not depend on walk order or on where the
    staging tree lives.

    Returns:
        str: First 16 hex digits of the final sha256
    """
    lines = []
    for dirpath, _, filenames in os.walk(staging_dir):
        for filename in filenames:
            path = os.path.join(dirpath, filename)
            rel_path = os.path.relpath(path, staging_dir).replace(os.sep, "/")
            lines.append(f"{_file_digest(path)}  {rel_path}")
    lines.sort()
    digest = hashlib.sha256("\n".join(lines).encode("utf-8")).hexdigest()
    return digest[:HASH_LENGTH]


def package_dir(dest_dir: str, name: str, version: str, content_hash: Optional[str] = None) -> str:
    path = os.path.join(dest_dir, name, version)
    if content_hash:
        path = os.path.join(path, content_hash)
    return path


def make_tarball(staging_dir: str, tar_path: str) -> str:
    """Compress staging_dir into tar_path with entries relative to staging_dir."""
    with tarfile.open(tar_path, "w:gz") as tar:
        for entry in sorted(os.listdir(staging_dir)):
            tar.add(os.path.join(staging_dir, entry), arcname=entry)
    return tar_path


def create_framework_archive(name: str, xcframework: str, config: BuildConfig) -> str:
    """
    Stage, optionally hash and compress, then publish a framework.

    The staging directory is removed on every exit path.

    Args:
        name: Framework name
        xcframework: Path of the `.xcframework` bundle
        config: Run configuration (dest_dir, version, archive, release)

    Returns:
        str: Path of the published tarball, or of the destination directory
        when archive mode is off
    """
    print(f"   Packaging {name} {config.version}...")
    with tempfile.TemporaryDirectory(prefix=f"{name}-") as temp_dir:
        staging_dir = os.path.join(temp_dir, "staging")
        os.makedirs(staging_dir)
        stage_package(xcframework, config.license_file, staging_dir)

        if not config.archive:
            copy_tree_merge(staging_dir, config.dest_dir)
            print(f"   ✅ Copied {name} to {config.dest_dir}")
            return config.dest_dir

        content_hash = compute_content_hash(staging_dir) if config.release else None
        target_dir = package_dir(config.dest_dir, name, config.version, content_hash)
        tar_name = f"{name}-{config.version}.tar.gz"
        tar_path = make_tarball(staging_dir, os.path.join(temp_dir, tar_name))

        os.makedirs(target_dir, exist_ok=True)
        published = os.path.join(target_dir, tar_name)
        if os.path.exists(published):
            os.remove(published)
        shutil.move(tar_path, published)
        license_copy = os.path.join(staging_dir, "LICENSE")
        if os.path.isfile(license_copy):
            shutil.copy2(license_copy, os.path.join(target_dir, "LICENSE"))
    print(f"   ✅ Package created: {published}")
    return published
