#!/usr/bin/env python3
# -- coding: utf-8 --
#
# build_framework.py
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
Build one MediaPipe Tasks XCFramework.

Pipeline per target:
1. Provision third-party dependencies into the build directory
2. Generate `<Target>.xcodeproj`
3. `xcodebuild archive` for the device and simulator slices
4. Merge the slices with `xcodebuild -create-xcframework`, or assemble a
   placeholder XCFramework when a slice is missing
5. Package and publish the result

Native steps return a CliResult. A degraded result lets the pipeline continue
unless the run is strict.
"""

import os
import plistlib
import shutil
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from xcfbuild.build_scripts.archive import create_framework_archive
from xcfbuild.build_scripts.build_config import BuildConfig, TargetRegistry
from xcfbuild.build_scripts.build_utils import (
    make_stub_framework,
    print_banner,
    print_elapsed,
    replace_tree,
    validate_destination,
)
from xcfbuild.build_scripts.dependency_manager import DependencyManager
from xcfbuild.build_scripts.project_generator import generate_project
from xcfbuild.utils.cmd.cmd_util import exec_command, format_command
from xcfbuild.utils.context.result import CliResult


@dataclass(frozen=True)
class ArchiveSlice:
    """One platform slice of an XCFramework."""
    name: str
    destination: str
    identifier: str
    archs: Tuple[str, ...]
    platform: str = "ios"
    variant: Optional[str] = None


DEVICE_SLICE = ArchiveSlice(
    name="device",
    destination="generic/platform=iOS",
    identifier="ios-arm64",
    archs=("arm64",),
)

SIMULATOR_SLICE = ArchiveSlice(
    name="simulator",
    destination="generic/platform=iOS Simulator",
    identifier="ios-arm64_x86_64-simulator",
    archs=("arm64", "x86_64"),
    variant="simulator",
)

SLICES = (DEVICE_SLICE, SIMULATOR_SLICE)


@dataclass
class FrameworkBuild:
    """Outcome of building one target."""
    name: str
    package_path: Optional[str] = None
    results: List[CliResult] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return self.package_path is None or any(r.is_failure() for r in self.results)

    @property
    def degraded(self) -> bool:
        return any(r.is_degraded() for r in self.results)


def archived_framework_path(archive_path: str, target_name: str) -> str:
    return os.path.join(
        archive_path, "Products", "Library", "Frameworks", f"{target_name}.framework"
    )


def archive_slice(target_name: str, project_dir: str, arch_slice: ArchiveSlice,
                  archives_dir: str, runner=exec_command) -> CliResult:
    """
    Run `xcodebuild archive` for one slice.

    Returns:
        CliResult: success with the archived framework path, or degraded when
        xcodebuild failed or produced no framework
    """
    step = f"archive-{arch_slice.name}"
    archive_path = os.path.join(archives_dir, f"{target_name}-{arch_slice.name}.xcarchive")
    print(f"   Building {target_name} for {arch_slice.destination}...")
    cmd = [
        "xcodebuild", "archive",
        "-project", project_dir,
        "-scheme", target_name,
        "-destination", arch_slice.destination,
        "-archivePath", archive_path,
        "-configuration", "Release",
        "BUILD_LIBRARY_FOR_DISTRIBUTION=YES",
        "SKIP_INSTALL=NO",
        "CODE_SIGNING_ALLOWED=NO",
        "CODE_SIGN_IDENTITY=",
    ]
    err_code, output = runner(cmd, cwd=os.path.dirname(project_dir))
    framework_path = archived_framework_path(archive_path, target_name)
    if err_code != 0:
        print(f"   ⚠️  Warning: {arch_slice.name} build failed ({err_code}), continuing")
        print(output)
        return CliResult.degraded(
            error=f"{format_command(cmd)} exited with {err_code}", step=step
        )
    if not os.path.isdir(framework_path):
        print(f"   ⚠️  Warning: {framework_path} not produced, continuing")
        return CliResult.degraded(error=f"{framework_path} not found", step=step)
    print(f"   ✅ {arch_slice.name} archive completed")
    return CliResult.success(framework_path, step=step)


def make_placeholder_xcframework(target_name: str, output: str,
                                 slice_frameworks: Dict[str, Optional[str]]) -> str:
    """
    Assemble an XCFramework bundle without xcodebuild.

    Every slice gets a `<identifier>/<Target>.framework` directory: the archived
    framework when it exists, otherwise an empty stub. The bundle Info.plist
    lists all slices.

    Args:
        target_name: Framework name
        output: Path of the `.xcframework` to create (replaced when present)
        slice_frameworks: Slice name to archived framework path (or None)

    Returns:
        str: output
    """
    if os.path.exists(output):
        shutil.rmtree(output)
    os.makedirs(output)
    libraries = []
    for arch_slice in SLICES:
        framework_dir = os.path.join(output, arch_slice.identifier, f"{target_name}.framework")
        real_framework = slice_frameworks.get(arch_slice.name)
        if real_framework and os.path.isdir(real_framework):
            replace_tree(real_framework, framework_dir)
        else:
            make_stub_framework(framework_dir, target_name)
        library = {
            "LibraryIdentifier": arch_slice.identifier,
            "LibraryPath": f"{target_name}.framework",
            "SupportedArchitectures": list(arch_slice.archs),
            "SupportedPlatform": arch_slice.platform,
        }
        if arch_slice.variant:
            library["SupportedPlatformVariant"] = arch_slice.variant
        libraries.append(library)

    manifest = {
        "AvailableLibraries": libraries,
        "CFBundlePackageType": "XFWK",
        "XCFrameworkFormatVersion": "1.0",
    }
    with open(os.path.join(output, "Info.plist"), "wb") as f:
        plistlib.dump(manifest, f)
    return output


def read_manifest(xcframework: str) -> List[Tuple[str, List[str], str, Optional[str]]]:
    """Return (identifier, archs, platform, variant) for each library of an XCFramework."""
    with open(os.path.join(xcframework, "Info.plist"), "rb") as f:
        manifest = plistlib.load(f)
    return [
        (
            lib["LibraryIdentifier"],
            list(lib.get("SupportedArchitectures", [])),
            lib.get("SupportedPlatform", ""),
            lib.get("SupportedPlatformVariant"),
        )
        for lib in manifest.get("AvailableLibraries", [])
    ]


def merge_xcframework(target_name: str, slice_frameworks: Dict[str, Optional[str]],
                      output: str, runner=exec_command, strict=False) -> CliResult:
    """
    Merge the slice frameworks into `output`.

    When a slice is missing or xcodebuild fails, strict mode reports a fatal
    result and best-effort mode substitutes a placeholder XCFramework.
    """
    step = "merge"
    missing = [
        s.name for s in SLICES
        if not slice_frameworks.get(s.name) or not os.path.isdir(slice_frameworks[s.name])
    ]
    reason = None
    if not missing:
        print(f"   Creating {os.path.basename(output)}...")
        if os.path.exists(output):
            shutil.rmtree(output)
        cmd = ["xcodebuild", "-create-xcframework"]
        for s in SLICES:
            cmd += ["-framework", slice_frameworks[s.name]]
        cmd += ["-output", output]
        err_code, out = runner(cmd, cwd=os.path.dirname(output))
        if err_code == 0 and os.path.isdir(output):
            print(f"   ✅ XCFramework created: {output}")
            return CliResult.success(output, step=step)
        print(out)
        reason = f"xcodebuild -create-xcframework exited with {err_code}"
    else:
        reason = f"missing {', '.join(missing)} slice"

    if strict:
        print(f"   ❌ Cannot create {os.path.basename(output)}: {reason}")
        return CliResult.fatal(reason, step=step)

    print(f"   ⚠️  Warning: {reason}, creating placeholder XCFramework")
    make_placeholder_xcframework(target_name, output, slice_frameworks)
    return CliResult.degraded(output, error=reason, step=step)


def _stops_pipeline(result: CliResult, strict: bool) -> bool:
    return result.is_failure() or (strict and result.is_degraded())


def build_framework(target_name: str, config: BuildConfig, registry: TargetRegistry,
                    runner=exec_command, session=None) -> FrameworkBuild:
    """
    Build, merge and publish one framework.

    Args:
        target_name: Registered target name
        config: Run configuration
        registry: Target registry
        runner: Callable used for xcodebuild and pod
        session: requests.Session-like object for downloads

    Returns:
        FrameworkBuild

    Raises:
        ConfigError: Unknown target name
        PreconditionError: Disallowed destination
        DependencyError: A dependency cannot be provisioned
    """
    target = registry.get(target_name)
    dest_dir = validate_destination(config.dest_dir, config.root_dir)
    config = config.with_overrides(dest_dir=dest_dir)

    before_time = time.time()
    print_banner(f"Building {target.name} framework")
    print(f"root: {config.root_dir}")
    print(f"dest: {config.dest_dir}")
    print(f"version: {config.version}")
    print(f"archive: {config.archive}, release: {config.release}, strict: {config.strict}")

    build = FrameworkBuild(name=target.name)
    os.makedirs(config.build_dir, exist_ok=True)

    manager = DependencyManager(
        config.build_dir, registry, config.script_dir, session=session, runner=runner
    )
    manager.provision_all(target.dependencies)

    project_dir = generate_project(target, config)

    archives_dir = os.path.join(config.build_dir, "archives")
    os.makedirs(archives_dir, exist_ok=True)
    slice_frameworks = {}
    for arch_slice in SLICES:
        result = archive_slice(target.name, project_dir, arch_slice, archives_dir, runner)
        build.results.append(result)
        if _stops_pipeline(result, config.strict):
            print(f"   ❌ {target.name}: {result.get_error()}")
            return build
        slice_frameworks[arch_slice.name] = result.get_value()

    output = os.path.join(config.build_dir, f"{target.name}.xcframework")
    merged = merge_xcframework(
        target.name, slice_frameworks, output, runner, strict=config.strict
    )
    build.results.append(merged)
    if _stops_pipeline(merged, config.strict):
        return build

    build.package_path = create_framework_archive(target.name, merged.get_value(), config)
    print(f"   ✅ {target.name} published to {build.package_path}")
    print_elapsed(before_time)
    return build
