#!/usr/bin/env python3
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
Dependency Manager for xcfbuild

Makes sure the third-party binaries every framework links against exist in the
build directory before a project is generated:
- Archive dependencies (OpenCV) are downloaded once and reused afterwards
- CocoaPods dependencies (TensorFlow Lite) are installed from the Podfile next
  to the build scripts, or replaced by minimal headers when CocoaPods is absent
"""

import shutil
import zipfile
from pathlib import Path
from typing import Dict, List, Optional

import requests

from xcfbuild.build_scripts.build_config import DependencySpec, TargetRegistry
from xcfbuild.build_scripts.build_utils import make_stub_framework
from xcfbuild.utils.cmd.cmd_util import exec_command

DOWNLOAD_CHUNK_SIZE = 1024 * 1024

DOWNLOAD_TIMEOUT_SECOND = 300

TFLITE_FALLBACK_HEADER = """// Placeholder TensorFlow Lite C API header
#ifndef TENSORFLOW_LITE_C_C_API_H_
#define TENSORFLOW_LITE_C_C_API_H_

#ifdef __cplusplus
extern "C" {
#endif

// Basic TensorFlow Lite types and functions
typedef struct TfLiteInterpreter TfLiteInterpreter;
typedef struct TfLiteTensor TfLiteTensor;

#ifdef __cplusplus
}
#endif

#endif  // TENSORFLOW_LITE_C_C_API_H_
"""


class DependencyError(Exception):
    """Exception raised for dependency-related errors"""
    pass


class DependencyManager:
    """Provisions third-party dependencies into the build directory"""

    def __init__(self, build_dir: str, registry: TargetRegistry, script_dir: str,
                 session=None, runner=exec_command):
        """
        Initialize the dependency manager.

        Args:
            build_dir: Build output directory, dependencies live in subdirectories of it
            registry: Target registry holding the dependency specifications
            script_dir: Directory that may contain a Podfile
            session: requests.Session-like object used for downloads
            runner: Callable used to run external tools
        """
        self.build_dir = Path(build_dir)
        self.registry = registry
        self.script_dir = Path(script_dir)
        self._session = session
        self.runner = runner

    @property
    def session(self):
        if self._session is None:
            self._session = requests.Session()
        return self._session

    def dependency_dir(self, dep: DependencySpec) -> Path:
        return self.build_dir / dep.dir

    def is_provisioned(self, dep: DependencySpec) -> bool:
        target = self.dependency_dir(dep)
        if dep.marker:
            target = target / dep.marker
        return target.exists()

    def download_file(self, url: str, dest_path: Path):
        """
        Download url to dest_path.

        Raises:
            DependencyError: On any network or HTTP failure; a partial file is removed
        """
        print(f"   📦 Downloading from {url}...")
        try:
            with self.session.get(url, stream=True, allow_redirects=True,
                                  timeout=DOWNLOAD_TIMEOUT_SECOND) as response:
                response.raise_for_status()
                with open(dest_path, "wb") as f:
                    for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
        except (requests.RequestException, OSError) as e:
            if dest_path.exists():
                dest_path.unlink()
            raise DependencyError(f"Failed to download {url}: {e}")
        print(f"   ✅ Downloaded to {dest_path}")

    def extract_archive(self, archive_path: Path, dest_dir: Path):
        """Extract a zip archive in place and delete it afterwards"""
        print(f"   📦 Extracting {archive_path.name}...")
        try:
            with zipfile.ZipFile(archive_path, "r") as zip_ref:
                zip_ref.extractall(dest_dir)
        except (zipfile.BadZipFile, OSError) as e:
            raise DependencyError(f"Failed to extract {archive_path}: {e}")
        finally:
            if archive_path.exists():
                archive_path.unlink()

    def provision_archive(self, dep: DependencySpec) -> str:
        """
        Download and extract an archive dependency unless it is already present.

        Args:
            dep: Dependency of kind "archive"

        Returns:
            Path of the dependency directory
        """
        dep_dir = self.dependency_dir(dep)
        dep_dir.mkdir(parents=True, exist_ok=True)
        if self.is_provisioned(dep):
            print(f"   {dep.dir} already exists, skipping download")
            return str(dep_dir)

        print(f"   Setting up {dep.dir} {dep.version} dependency...")
        archive_path = dep_dir / f"{dep.name}.zip"
        self.download_file(dep.resolved_url(), archive_path)
        try:
            self.extract_archive(archive_path, dep_dir)
            if not self.is_provisioned(dep):
                raise DependencyError(
                    f"{dep.marker} not found in {dep_dir} after extracting {dep.resolved_url()}"
                )
        except DependencyError:
            # a partly extracted tree would pass the marker check on the next run
            shutil.rmtree(dep_dir, ignore_errors=True)
            raise
        print(f"   ✅ {dep.dir} setup completed")
        return str(dep_dir)

    def write_fallback_headers(self, dep: DependencySpec) -> str:
        dep_dir = self.dependency_dir(dep)
        headers_dir = dep_dir / "Headers"
        if headers_dir.exists():
            print(f"   {dep.dir} already exists, skipping setup")
            return str(dep_dir)
        print(f"   Setting up {dep.dir} fallback headers...")
        headers_dir.mkdir(parents=True, exist_ok=True)
        (headers_dir / "c_api.h").write_text(TFLITE_FALLBACK_HEADER)
        print(f"   ✅ {dep.dir} fallback headers setup completed")
        return str(dep_dir)

    def provision_cocoapods(self, dep: DependencySpec) -> str:
        """
        Install a dependency through CocoaPods, falling back to placeholder headers.

        `pod install` failures are reported but do not stop the build.
        """
        self.dependency_dir(dep).mkdir(parents=True, exist_ok=True)
        podfile = self.script_dir / "Podfile"
        if not podfile.is_file():
            print("   No Podfile found, using fallback headers setup")
            return self.write_fallback_headers(dep)
        if shutil.which("pod") is None:
            print("   CocoaPods not found, using fallback headers setup")
            return self.write_fallback_headers(dep)

        print(f"   Running pod install for {dep.dir} dependencies...")
        err_code, output = self.runner(["pod", "install", "--silent"], cwd=str(self.script_dir))
        if err_code != 0:
            print(f"   ⚠️  Warning: pod install completed with errors ({err_code})")
            print(output)
        else:
            print(f"   ✅ {dep.dir} CocoaPods setup completed")
        return str(self.dependency_dir(dep))

    def provision(self, name: str) -> str:
        """
        Provision one dependency by name.

        Returns:
            Local path of the dependency

        Raises:
            DependencyError: When the dependency cannot be provisioned
        """
        dep = self.registry.get_dependency(name)
        print(f"   🔍 Resolving dependency: {name} ({dep.kind})")
        if dep.kind == "archive":
            return self.provision_archive(dep)
        elif dep.kind == "cocoapods":
            return self.provision_cocoapods(dep)
        raise DependencyError(f"Unknown dependency kind: {dep.kind}")

    def provision_all(self, names: List[str]) -> Dict[str, str]:
        """
        Provision all dependencies of a target, in order.

        Returns:
            Dictionary mapping dependency name to local path
        """
        resolved = {}
        for name in names:
            resolved[name] = self.provision(name)
        return resolved

    def provision_framework_placeholders(self, names: List[str], dest_dir: Optional[str] = None) -> str:
        """
        Create empty MediaPipe frameworks for example apps to link against.

        Args:
            names: Framework names
            dest_dir: Directory that receives `<name>.framework` bundles
                (default: <build_dir>/MediaPipeFrameworks)
        """
        dest_dir = Path(dest_dir) if dest_dir else self.build_dir / "MediaPipeFrameworks"
        dest_dir.mkdir(parents=True, exist_ok=True)
        for name in names:
            make_stub_framework(str(dest_dir / f"{name}.framework"), name)
        return str(dest_dir)
