#!/usr/bin/env python3
"""
Tests for the native build invoker, the artifact merger and the per-target
pipeline.

Run with: python3 -m pytest tests/test_build_framework.py
"""

import os
import tarfile
import tempfile
import unittest
from unittest.mock import Mock

from xcfbuild.build_scripts.build_config import BuildConfig, load_target_registry
from xcfbuild.build_scripts.build_framework import (
    DEVICE_SLICE,
    SIMULATOR_SLICE,
    archive_slice,
    archived_framework_path,
    build_framework,
    make_placeholder_xcframework,
    merge_xcframework,
    read_manifest,
)
from xcfbuild.build_scripts.build_utils import ConfigError, PreconditionError, make_stub_framework

from tests.support import FakeXcodebuild, make_repo, provision_opencv

EXPECTED_MANIFEST = [
    ("ios-arm64", ["arm64"], "ios", None),
    ("ios-arm64_x86_64-simulator", ["arm64", "x86_64"], "ios", "simulator"),
]


class TestArchiveSlice(unittest.TestCase):
    """Test `xcodebuild archive` invocations."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.project_dir = os.path.join(self.tmpdir.name, "MediaPipeTasksText.xcodeproj")
        self.archives_dir = os.path.join(self.tmpdir.name, "archives")

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_command_line(self):
        runner = FakeXcodebuild()
        result = archive_slice(
            "MediaPipeTasksText", self.project_dir, SIMULATOR_SLICE, self.archives_dir, runner
        )
        self.assertTrue(result.is_success())
        cmd = runner.calls[0]
        self.assertEqual(cmd[:2], ["xcodebuild", "archive"])
        self.assertIn("generic/platform=iOS Simulator", cmd)
        self.assertIn("BUILD_LIBRARY_FOR_DISTRIBUTION=YES", cmd)
        self.assertIn("SKIP_INSTALL=NO", cmd)
        self.assertIn("CODE_SIGNING_ALLOWED=NO", cmd)
        self.assertIn("CODE_SIGN_IDENTITY=", cmd)
        self.assertEqual(cmd[cmd.index("-configuration") + 1], "Release")
        self.assertEqual(
            result.get_value(),
            archived_framework_path(
                os.path.join(self.archives_dir, "MediaPipeTasksText-simulator.xcarchive"),
                "MediaPipeTasksText",
            ),
        )

    def test_failure_is_degraded(self):
        runner = FakeXcodebuild(fail_destinations=["generic/platform=iOS"])
        result = archive_slice(
            "MediaPipeTasksText", self.project_dir, DEVICE_SLICE, self.archives_dir, runner
        )
        self.assertTrue(result.is_degraded())
        self.assertIsNone(result.get_value())
        self.assertIn("exited with 65", result.get_error())

    def test_missing_product_is_degraded(self):
        runner = Mock(return_value=(0, ""))
        result = archive_slice(
            "MediaPipeTasksText", self.project_dir, DEVICE_SLICE, self.archives_dir, runner
        )
        self.assertTrue(result.is_degraded())

    def test_archived_framework_path(self):
        self.assertEqual(
            archived_framework_path("/a/T-device.xcarchive", "T"),
            "/a/T-device.xcarchive/Products/Library/Frameworks/T.framework",
        )


class TestMergeXcframework(unittest.TestCase):
    """Test slice merging and the placeholder fallback."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.output = os.path.join(self.tmpdir.name, "MediaPipeTasksText.xcframework")
        self.device = make_stub_framework(
            os.path.join(self.tmpdir.name, "device", "MediaPipeTasksText.framework"),
            "MediaPipeTasksText",
        )
        self.simulator = make_stub_framework(
            os.path.join(self.tmpdir.name, "simulator", "MediaPipeTasksText.framework"),
            "MediaPipeTasksText",
        )

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_both_slices_are_merged(self):
        runner = FakeXcodebuild()
        result = merge_xcframework(
            "MediaPipeTasksText",
            {"device": self.device, "simulator": self.simulator},
            self.output,
            runner,
        )
        self.assertTrue(result.is_success())
        cmd = runner.commands("-create-xcframework")[0]
        self.assertEqual(
            cmd[1:],
            ["-create-xcframework", "-framework", self.device, "-framework", self.simulator,
             "-output", self.output],
        )
        self.assertEqual(read_manifest(self.output), EXPECTED_MANIFEST)

    def test_missing_slice_gives_placeholder(self):
        runner = FakeXcodebuild()
        result = merge_xcframework(
            "MediaPipeTasksText", {"device": self.device, "simulator": None},
            self.output, runner,
        )
        self.assertTrue(result.is_degraded())
        self.assertEqual(result.get_value(), self.output)
        self.assertEqual(runner.calls, [])
        self.assertEqual(read_manifest(self.output), EXPECTED_MANIFEST)
        for identifier in ("ios-arm64", "ios-arm64_x86_64-simulator"):
            self.assertTrue(os.path.isdir(
                os.path.join(self.output, identifier, "MediaPipeTasksText.framework")
            ))

    def test_tool_failure_gives_placeholder(self):
        result = merge_xcframework(
            "MediaPipeTasksText",
            {"device": self.device, "simulator": self.simulator},
            self.output,
            FakeXcodebuild(merge_code=70),
        )
        self.assertTrue(result.is_degraded())
        self.assertIn("exited with 70", result.get_error())
        self.assertEqual(read_manifest(self.output), EXPECTED_MANIFEST)

    def test_strict_missing_slice_is_fatal(self):
        result = merge_xcframework(
            "MediaPipeTasksText", {"device": None, "simulator": None},
            self.output, FakeXcodebuild(), strict=True,
        )
        self.assertTrue(result.is_failure())
        self.assertFalse(os.path.exists(self.output))

    def test_placeholder_keeps_built_slice(self):
        with open(os.path.join(self.device, "MediaPipeTasksText"), "wb") as f:
            f.write(b"real binary")
        make_placeholder_xcframework(
            "MediaPipeTasksText", self.output, {"device": self.device}
        )
        with open(os.path.join(
            self.output, "ios-arm64", "MediaPipeTasksText.framework", "MediaPipeTasksText"
        ), "rb") as f:
            self.assertEqual(f.read(), b"real binary")
        simulator_binary = os.path.join(
            self.output, "ios-arm64_x86_64-simulator", "MediaPipeTasksText.framework",
            "MediaPipeTasksText",
        )
        self.assertEqual(os.path.getsize(simulator_binary), 0)


class TestBuildFramework(unittest.TestCase):
    """Test the per-target pipeline with a fake xcodebuild."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.root = make_repo(os.path.realpath(self.tmpdir.name))
        self.config = BuildConfig.from_env(environ={"MPP_ROOT_DIR": self.root})
        self.registry = load_target_registry()
        provision_opencv(self.config.build_dir)
        self.session = Mock()

    def tearDown(self):
        self.tmpdir.cleanup()

    def package_path(self, *segments):
        return os.path.join(
            self.config.dest_dir, "MediaPipeTasksText", "0.0.1-dev", *segments,
            "MediaPipeTasksText-0.0.1-dev.tar.gz",
        )

    def test_successful_build(self):
        runner = FakeXcodebuild()
        build = build_framework(
            "MediaPipeTasksText", self.config, self.registry, runner=runner, session=self.session
        )
        self.assertFalse(build.failed)
        self.assertFalse(build.degraded)
        self.assertEqual(build.package_path, self.package_path())
        self.assertEqual(len(runner.commands("archive")), 2)
        self.assertEqual(len(runner.commands("-create-xcframework")), 1)
        self.session.get.assert_not_called()

    def test_failed_slices_still_publish(self):
        runner = FakeXcodebuild(
            fail_destinations=["generic/platform=iOS", "generic/platform=iOS Simulator"]
        )
        build = build_framework(
            "MediaPipeTasksText", self.config, self.registry, runner=runner, session=self.session
        )
        self.assertFalse(build.failed)
        self.assertTrue(build.degraded)
        with tarfile.open(build.package_path, "r:gz") as tar:
            names = tar.getnames()
        self.assertIn("LICENSE", names)
        self.assertIn("frameworks/MediaPipeTasksText.xcframework/Info.plist", names)
        self.assertIn("frameworks/MediaPipeTasksText.xcframework/ios-arm64", names)
        self.assertIn(
            "frameworks/MediaPipeTasksText.xcframework/ios-arm64_x86_64-simulator", names
        )
        self.assertTrue(os.path.isfile(
            os.path.join(os.path.dirname(build.package_path), "LICENSE")
        ))
        self.assertEqual(
            read_manifest(os.path.join(self.config.build_dir, "MediaPipeTasksText.xcframework")),
            EXPECTED_MANIFEST,
        )

    def test_strict_stops_at_first_degraded_step(self):
        runner = FakeXcodebuild(fail_destinations=["generic/platform=iOS"])
        config = self.config.with_overrides(strict=True)
        build = build_framework(
            "MediaPipeTasksText", config, self.registry, runner=runner, session=self.session
        )
        self.assertTrue(build.failed)
        self.assertIsNone(build.package_path)
        self.assertEqual(len(runner.commands("archive")), 1)
        self.assertFalse(os.path.exists(self.package_path()))

    def test_release_build_adds_hash_segment(self):
        config = self.config.with_overrides(release=True)
        build = build_framework(
            "MediaPipeTasksText", config, self.registry, runner=FakeXcodebuild(),
            session=self.session,
        )
        hash_dir = os.path.basename(os.path.dirname(build.package_path))
        self.assertRegex(hash_dir, r"^[0-9a-f]{16}$")
        self.assertEqual(build.package_path, self.package_path(hash_dir))

    def test_unknown_target(self):
        runner = FakeXcodebuild()
        with self.assertRaises(ConfigError):
            build_framework("Nope", self.config, self.registry, runner=runner, session=self.session)
        self.assertEqual(runner.calls, [])

    def test_disallowed_destination(self):
        config = self.config.with_overrides(dest_dir=os.path.join(self.root, "mediapipe"))
        runner = FakeXcodebuild()
        with self.assertRaises(PreconditionError):
            build_framework(
                "MediaPipeTasksText", config, self.registry, runner=runner, session=self.session
            )
        self.assertEqual(runner.calls, [])


if __name__ == "__main__":
    unittest.main()
