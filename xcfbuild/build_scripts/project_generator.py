#!/usr/bin/env python3
# -- coding: utf-8 --
#
# project_generator.py
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
Xcode project generation for framework and example app targets.

Source discovery writes listing files into the build directory, the listings
are read back to decide which files get registered, and the bundled copier
templates render `<Target>.xcodeproj` from that data.
"""

import os
import shutil
from typing import List, Optional

from copier import run_copy

from xcfbuild.build_scripts.build_config import (
    BuildConfig,
    BuildTarget,
    HEADER_EXTENSIONS,
    SOURCE_EXTENSIONS,
)
from xcfbuild.build_scripts.build_utils import bundle_identifier

TEMPLATES_DIR = os.path.join(
    os.path.dirname(os.path.dirname(os.path.realpath(__file__))), "templates"
)
FRAMEWORK_TEMPLATE = os.path.join(TEMPLATES_DIR, "framework")
APP_TEMPLATE = os.path.join(TEMPLATES_DIR, "app")


def collect_files(target: BuildTarget, root_dir: str, kind: str) -> List[str]:
    """
    Find the source or header files of a target.

    Each configured root is walked recursively, its matches are sorted and
    capped at the root's limit. A file reachable from two roots is listed once.

    Args:
        target: Target whose roots are scanned
        root_dir: Repository root the roots are relative to
        kind: "sources" or "headers"

    Returns:
        list: Absolute file paths in discovery order
    """
    if kind == "sources":
        roots, extensions = target.sources, SOURCE_EXTENSIONS
    elif kind == "headers":
        roots, extensions = target.headers, HEADER_EXTENSIONS
    else:
        raise ValueError(f"kind must be 'sources' or 'headers', got {kind!r}")

    collected = []
    seen = set()
    for source_root in roots:
        scan_dir = os.path.join(root_dir, source_root.root)
        if not os.path.isdir(scan_dir):
            print(f"   ⚠️  Warning: {source_root.root} not found, skipping")
            continue
        matches = []
        for dirpath, dirnames, filenames in os.walk(scan_dir):
            dirnames.sort()
            for filename in filenames:
                if filename.endswith(extensions):
                    matches.append(os.path.join(dirpath, filename))
        matches.sort()
        if source_root.limit is not None:
            matches = matches[:source_root.limit]
        for path in matches:
            if path not in seen:
                seen.add(path)
                collected.append(path)
    return collected


def listing_path(build_dir: str, target_name: str, kind: str) -> str:
    return os.path.join(build_dir, f"{target_name}_{kind}.txt")


def write_listing(paths: List[str], listing_file: str):
    os.makedirs(os.path.dirname(listing_file), exist_ok=True)
    with open(listing_file, "w", encoding="utf-8") as f:
        for path in paths:
            f.write(path + "\n")


def read_listing(listing_file: str) -> Optional[List[str]]:
    """Read a listing file, None when it does not exist."""
    if not os.path.isfile(listing_file):
        print(f"   ⚠️  Warning: {listing_file} not found, skipping registration")
        return None
    with open(listing_file, "r", encoding="utf-8") as f:
        return [line.strip() for line in f if line.strip()]


def select_registered(paths: List[str], limit: Optional[int]) -> List[str]:
    """
    Choose which discovered files are registered in the project.

    Args:
        paths: Discovered files
        limit: None registers everything, otherwise only the first `limit`
    """
    if limit is None or len(paths) <= limit:
        return list(paths)
    print(
        f"   ⚠️  Warning: registering {limit} of {len(paths)} files, "
        f"the generated project is partial"
    )
    return list(paths[:limit])


def render_project(template_dir: str, project_dir: str, data: dict) -> str:
    """Render a copier template into project_dir, replacing any previous project."""
    if os.path.isdir(project_dir):
        shutil.rmtree(project_dir)
    os.makedirs(project_dir, exist_ok=True)
    run_copy(
        template_dir,
        project_dir,
        data=data,
        unsafe=True,
        defaults=True,
        overwrite=True,
        quiet=True,
    )
    return project_dir


def generate_project(target: BuildTarget, config: BuildConfig) -> str:
    """
    Generate `<build_dir>/<Target>.xcodeproj` for a framework target.

    Args:
        target: Target to generate
        config: Run configuration

    Returns:
        str: Path of the generated .xcodeproj directory
    """
    print(f"   Generating Xcode project for {target.name}...")
    build_dir = config.build_dir
    registered = {}
    for kind in ("sources", "headers"):
        listing_file = listing_path(build_dir, target.name, kind)
        write_listing(collect_files(target, config.root_dir, kind), listing_file)
        paths = read_listing(listing_file)
        registered[kind] = select_registered(paths or [], config.register_limit)

    print(
        f"   Found {len(registered['sources'])} source files "
        f"and {len(registered['headers'])} header files"
    )

    project_dir = os.path.join(build_dir, f"{target.name}.xcodeproj")
    render_project(
        FRAMEWORK_TEMPLATE,
        project_dir,
        {
            "target_name": target.name,
            "bundle_identifier": bundle_identifier(target.name),
            "deployment_target": config.deployment_target,
            "root_dir": config.root_dir,
            "build_dir": build_dir,
            "sources": "\n".join(registered["sources"]),
            "headers": "\n".join(registered["headers"]),
        },
    )
    print(f"   ✅ Generated {project_dir}")
    return project_dir


def generate_app_project(app_name: str, root_dir: str, build_dir: str,
                         deployment_target: str = "12.0") -> str:
    """Generate `<build_dir>/<App>.xcodeproj` for an example application."""
    project_dir = os.path.join(build_dir, f"{app_name}.xcodeproj")
    render_project(
        APP_TEMPLATE,
        project_dir,
        {
            "target_name": app_name,
            "bundle_identifier": bundle_identifier(f"examples.{app_name}"),
            "deployment_target": deployment_target,
            "root_dir": root_dir,
            "build_dir": build_dir,
        },
    )
    return project_dir
