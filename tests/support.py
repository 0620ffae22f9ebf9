"""
Fakes shared by the xcfbuild tests.

FakeXcodebuild stands in for the `runner` seam, FakeSession for the requests
session used by the dependency manager.
"""

import io
import os
import zipfile

from xcfbuild.build_scripts.build_framework import (
    archived_framework_path,
    make_placeholder_xcframework,
)
from xcfbuild.build_scripts.build_utils import make_stub_framework


def _arg_after(args, flag):
    return args[args.index(flag) + 1]


class FakeXcodebuild:
    """Records commands and fakes the files xcodebuild would produce."""

    def __init__(self, fail_destinations=(), merge_code=0, app_builds=True, strip_code=0):
        self.fail_destinations = set(fail_destinations)
        self.merge_code = merge_code
        self.app_builds = app_builds
        self.strip_code = strip_code
        self.calls = []

    def __call__(self, args, cwd=None):
        args = list(args)
        self.calls.append(args)
        if args[0] == "strip":
            return self.strip_code, "" if self.strip_code == 0 else "strip: error"
        if args[0] != "xcodebuild":
            return 0, ""
        if "archive" in args:
            if _arg_after(args, "-destination") in self.fail_destinations:
                return 65, "** ARCHIVE FAILED **"
            scheme = _arg_after(args, "-scheme")
            make_stub_framework(
                archived_framework_path(_arg_after(args, "-archivePath"), scheme), scheme
            )
            return 0, "** ARCHIVE SUCCEEDED **"
        if "-create-xcframework" in args:
            if self.merge_code != 0:
                return self.merge_code, "error: unable to create xcframework"
            output = _arg_after(args, "-output")
            frameworks = [args[i + 1] for i, a in enumerate(args) if a == "-framework"]
            name = os.path.basename(output)[:-len(".xcframework")]
            make_placeholder_xcframework(
                name, output, {"device": frameworks[0], "simulator": frameworks[1]}
            )
            return 0, ""
        if "-target" in args:
            if not self.app_builds:
                return 65, "** BUILD FAILED **"
            app_name = _arg_after(args, "-target")
            build_dir = [a for a in args if a.startswith("CONFIGURATION_BUILD_DIR=")][0]
            app_dir = os.path.join(build_dir.split("=", 1)[1], f"{app_name}.app")
            os.makedirs(app_dir, exist_ok=True)
            with open(os.path.join(app_dir, app_name), "wb") as f:
                f.write(b"\xcf\xfa\xed\xfe")
            return 0, "** BUILD SUCCEEDED **"
        return 0, ""

    def commands(self, keyword):
        return [c for c in self.calls if keyword in c]


def opencv_zip_bytes():
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        zf.writestr("opencv2.framework/opencv2", b"binary")
        zf.writestr("opencv2.framework/Headers/opencv.hpp", b"// header")
    return buffer.getvalue()


class FakeResponse:
    def __init__(self, payload=b"", status_error=None, chunk_error=None):
        self.payload = payload
        self.status_error = status_error
        self.chunk_error = chunk_error

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def raise_for_status(self):
        if self.status_error is not None:
            raise self.status_error

    def iter_content(self, chunk_size=1):
        for i in range(0, len(self.payload), chunk_size):
            yield self.payload[i:i + chunk_size]
        if self.chunk_error is not None:
            raise self.chunk_error


class FakeSession:
    def __init__(self, response=None):
        self.response = response or FakeResponse(opencv_zip_bytes())
        self.urls = []

    def get(self, url, **kwargs):
        self.urls.append(url)
        return self.response


def write_file(path, content=""):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w") as f:
        f.write(content)
    return path


def make_repo(root_dir):
    """Lay out a small MediaPipe-like checkout under root_dir."""
    write_file(os.path.join(root_dir, "LICENSE"), "Apache License 2.0\n")
    text_dir = os.path.join(root_dir, "mediapipe", "tasks", "ios", "text")
    write_file(os.path.join(text_dir, "core", "MPPTextClassifier.mm"), "// source\n")
    write_file(os.path.join(text_dir, "core", "MPPTextClassifier.h"), "// header\n")
    write_file(os.path.join(text_dir, "utils", "MPPTextUtils.m"), "// source\n")
    write_file(os.path.join(text_dir, "utils", "MPPTextUtils.h"), "// header\n")
    write_file(os.path.join(text_dir, "BUILD"), "")
    return root_dir


def provision_opencv(build_dir):
    """Pretend OpenCV was downloaded earlier so no network request is made."""
    os.makedirs(os.path.join(build_dir, "OpenCV", "opencv2.framework"), exist_ok=True)
