#!/usr/bin/env python3
# -- coding: utf-8 --
#
# build_config.py
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
Build configuration for xcfbuild.

Two sources of configuration are handled here:
- The target registry (targets.toml): which frameworks exist, where their
  sources live and which third-party dependencies they need
- The per-run BuildConfig: destination, version and mode flags, read once from
  environment variables and then passed explicitly to every build step
"""

import os
import sys
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Any

if sys.version_info >= (3, 11, 0, "alpha", 7):
    import tomllib
else:
    import tomli as tomllib

from xcfbuild.build_scripts.build_utils import (
    XCODE_BUILD_DIR_NAME,
    ConfigError,
    get_repo_root,
)

DEFAULT_TARGETS_FILE = os.path.join(
    os.path.dirname(os.path.dirname(os.path.realpath(__file__))), "targets.toml"
)

DEFAULT_BUILD_VERSION = "0.0.1-dev"

SOURCE_EXTENSIONS = (".mm", ".m", ".cc")
HEADER_EXTENSIONS = (".h",)

TRUE_VALUES = ("true", "1", "yes", "on")
FALSE_VALUES = ("false", "0", "no", "off", "")


@dataclass
class SourceRoot:
    """A directory scanned for files, relative to the repository root."""
    root: str
    limit: Optional[int] = None  # Maximum number of files taken from this root


@dataclass
class BuildTarget:
    """A framework that can be built."""
    name: str
    sources: List[SourceRoot] = field(default_factory=list)
    headers: List[SourceRoot] = field(default_factory=list)
    dependencies: List[str] = field(default_factory=list)


@dataclass
class DependencySpec:
    """A third-party binary dependency fetched into the build directory."""
    name: str
    kind: str  # "archive" or "cocoapods"
    dir: str
    marker: str = ""
    version: str = ""
    url: str = ""

    def resolved_url(self) -> str:
        return self.url.format(version=self.version)


class TargetRegistry:
    """Maps target names to their build description."""

    def __init__(self, targets: Dict[str, BuildTarget], driver_targets: List[str],
                 dependencies: Dict[str, DependencySpec]):
        self.targets = targets
        self.driver_targets = driver_targets
        self.dependencies = dependencies

    @property
    def names(self) -> List[str]:
        return list(self.targets.keys())

    def __contains__(self, name):
        return name in self.targets

    def get(self, name: str) -> BuildTarget:
        if name not in self.targets:
            raise ConfigError(
                "Wrong framework name. The following framework names are allowed: "
                + ", ".join(self.names)
            )
        return self.targets[name]

    def get_dependency(self, name: str) -> DependencySpec:
        if name not in self.dependencies:
            raise ConfigError(f"Unknown dependency '{name}' in target registry")
        return self.dependencies[name]


def _parse_roots(target_name: str, key: str, values: Any) -> List[SourceRoot]:
    if not isinstance(values, list):
        raise ConfigError(f"targets.{target_name}.{key} must be an array")
    roots = []
    for item in values:
        if isinstance(item, str):
            roots.append(SourceRoot(root=item))
        elif isinstance(item, dict) and "root" in item:
            limit = item.get("limit")
            if limit is not None and (not isinstance(limit, int) or limit < 0):
                raise ConfigError(
                    f"targets.{target_name}.{key}: limit must be a non-negative integer"
                )
            roots.append(SourceRoot(root=item["root"], limit=limit))
        else:
            raise ConfigError(f"targets.{target_name}.{key}: invalid entry {item!r}")
    return roots


def parse_target_registry(toml_data: Dict[str, Any]) -> TargetRegistry:
    """
    Build a TargetRegistry from parsed TOML data.

    Args:
        toml_data: Parsed contents of a targets.toml file

    Returns:
        TargetRegistry

    Raises:
        ConfigError: When tables are missing or malformed
    """
    dependencies = {}
    for name, spec in toml_data.get("dependencies", {}).items():
        kind = spec.get("kind")
        if kind not in ("archive", "cocoapods"):
            raise ConfigError(f"dependencies.{name}: unsupported kind {kind!r}")
        if kind == "archive" and not spec.get("url"):
            raise ConfigError(f"dependencies.{name}: archive dependencies need a url")
        dependencies[name] = DependencySpec(
            name=name,
            kind=kind,
            dir=spec.get("dir", name),
            marker=spec.get("marker", ""),
            version=str(spec.get("version", "")),
            url=spec.get("url", ""),
        )

    targets_data = toml_data.get("targets")
    if not targets_data:
        raise ConfigError("Target registry has no [targets] tables")

    targets = {}
    for name, spec in targets_data.items():
        deps = spec.get("dependencies", [])
        for dep in deps:
            if dep not in dependencies:
                raise ConfigError(f"targets.{name}: unknown dependency '{dep}'")
        targets[name] = BuildTarget(
            name=name,
            sources=_parse_roots(name, "sources", spec.get("sources", [])),
            headers=_parse_roots(name, "headers", spec.get("headers", [])),
            dependencies=list(deps),
        )

    driver_targets = toml_data.get("driver", {}).get("targets", list(targets.keys()))
    for name in driver_targets:
        if name not in targets:
            raise ConfigError(f"driver.targets: '{name}' has no [targets.{name}] table")

    return TargetRegistry(targets, list(driver_targets), dependencies)


def load_target_registry(path: Optional[str] = None) -> TargetRegistry:
    """
    Load the target registry from a TOML file.

    Args:
        path: File to read (default: the targets.toml bundled with xcfbuild)

    Returns:
        TargetRegistry

    Raises:
        ConfigError: When the file is missing or cannot be parsed
    """
    path = path or DEFAULT_TARGETS_FILE
    if not os.path.isfile(path):
        raise ConfigError(f"Target registry not found: {path}")
    try:
        with open(path, "rb") as f:
            toml_data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Error reading {path}: {e}")
    return parse_target_registry(toml_data)


def parse_bool(name: str, value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    lowered = value.strip().lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be true or false, got '{value}'")


def parse_limit(name: str, value: Optional[str]) -> Optional[int]:
    if value is None or value.strip() == "":
        return None
    try:
        limit = int(value)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got '{value}'")
    if limit < 0:
        raise ConfigError(f"{name} must not be negative, got '{value}'")
    return limit


@dataclass
class BuildConfig:
    """
    Settings for one xcfbuild run.

    Environment variables:
        MPP_ROOT_DIR             Repository root (default: git rev-parse --show-toplevel)
        DEST_DIR                 Where packages are published
        MPP_BUILD_VERSION        Package version (default: 0.0.1-dev)
        ARCHIVE_FRAMEWORK        Publish a tar.gz package instead of a plain tree (default: true)
        IS_RELEASE_BUILD         Add a content-hash path segment to packages (default: false)
        XCFBUILD_STRICT          Fail instead of substituting placeholders (default: false)
        XCFBUILD_REGISTER_LIMIT  Register only this many discovered sources (default: all)
    """
    root_dir: str
    dest_dir: str
    version: str = DEFAULT_BUILD_VERSION
    archive: bool = True
    release: bool = False
    strict: bool = False
    register_limit: Optional[int] = None
    deployment_target: str = "12.0"

    @property
    def script_dir(self) -> str:
        return os.path.join(self.root_dir, XCODE_BUILD_DIR_NAME)

    @property
    def build_dir(self) -> str:
        return os.path.join(self.script_dir, "build_output")

    @property
    def license_file(self) -> str:
        return os.path.join(self.root_dir, "LICENSE")

    def with_overrides(self, **overrides) -> "BuildConfig":
        overrides = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **overrides)

    @classmethod
    def from_env(cls, environ=None, root_dir=None, default_dest=None, **overrides) -> "BuildConfig":
        """
        Read the run configuration from environment variables.

        Args:
            environ: Mapping to read (default: os.environ)
            root_dir: Repository root, skips MPP_ROOT_DIR and git lookup
            default_dest: DEST_DIR default relative to the root's xcode_build dir
            overrides: Explicit values (e.g. from command line flags) that win
                over the environment; None values are ignored

        Raises:
            ConfigError: For invalid values
            PreconditionError: When the repository root cannot be found
        """
        if environ is None:
            environ = os.environ
        root_dir = root_dir or environ.get("MPP_ROOT_DIR") or get_repo_root()
        root_dir = os.path.realpath(root_dir)
        script_dir = os.path.join(root_dir, XCODE_BUILD_DIR_NAME)
        if default_dest:
            dest_default = os.path.join(script_dir, default_dest)
        else:
            dest_default = script_dir
        config = cls(
            root_dir=root_dir,
            dest_dir=environ.get("DEST_DIR") or dest_default,
            version=environ.get("MPP_BUILD_VERSION") or DEFAULT_BUILD_VERSION,
            archive=parse_bool("ARCHIVE_FRAMEWORK", environ.get("ARCHIVE_FRAMEWORK"), True),
            release=parse_bool("IS_RELEASE_BUILD", environ.get("IS_RELEASE_BUILD"), False),
            strict=parse_bool("XCFBUILD_STRICT", environ.get("XCFBUILD_STRICT"), False),
            register_limit=parse_limit(
                "XCFBUILD_REGISTER_LIMIT", environ.get("XCFBUILD_REGISTER_LIMIT")
            ),
        )
        return config.with_overrides(**overrides)
