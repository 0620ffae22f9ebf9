#!/usr/bin/env python3
"""
Tests for packaging and publishing.

Run with: python3 -m pytest tests/test_archive.py
"""

import os
import shutil
import tarfile
import tempfile
import unittest
from unittest.mock import patch

from xcfbuild.build_scripts import archive
from xcfbuild.build_scripts.archive import (
    compute_content_hash,
    create_framework_archive,
    package_dir,
    stage_package,
)
from xcfbuild.build_scripts.build_config import BuildConfig
from xcfbuild.build_scripts.build_framework import make_placeholder_xcframework

from tests.support import write_file


class TestContentHash(unittest.TestCase):
    """Test the content-addressed package identity."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.staging = os.path.join(self.tmpdir.name, "staging")
        write_file(os.path.join(self.staging, "LICENSE"), "license\n")
        write_file(os.path.join(self.staging, "frameworks", "T.xcframework", "Info.plist"), "plist")
        write_file(os.path.join(self.staging, "frameworks", "T.xcframework", "ios-arm64", "T"), "")

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_hash_shape(self):
        self.assertRegex(compute_content_hash(self.staging), r"^[0-9a-f]{16}$")

    def test_same_tree_same_hash(self):
        copy = os.path.join(self.tmpdir.name, "elsewhere", "staging")
        shutil.copytree(self.staging, copy)
        self.assertEqual(compute_content_hash(self.staging), compute_content_hash(copy))

    def test_file_change_changes_hash(self):
        before = compute_content_hash(self.staging)
        write_file(os.path.join(self.staging, "frameworks", "T.xcframework", "ios-arm64", "T"), "x")
        self.assertNotEqual(before, compute_content_hash(self.staging))

    def test_license_change_changes_hash(self):
        before = compute_content_hash(self.staging)
        write_file(os.path.join(self.staging, "LICENSE"), "other license\n")
        self.assertNotEqual(before, compute_content_hash(self.staging))

    def test_rename_changes_hash(self):
        before = compute_content_hash(self.staging)
        os.rename(
            os.path.join(self.staging, "LICENSE"), os.path.join(self.staging, "LICENSE.txt")
        )
        self.assertNotEqual(before, compute_content_hash(self.staging))

    def test_package_dir(self):
        self.assertEqual(package_dir("/d", "T", "1.0"), os.path.join("/d", "T", "1.0"))
        self.assertEqual(
            package_dir("/d", "T", "1.0", "abc"), os.path.join("/d", "T", "1.0", "abc")
        )


class TestCreateFrameworkArchive(unittest.TestCase):
    """Test staging, compression and publishing."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.root = os.path.realpath(self.tmpdir.name)
        write_file(os.path.join(self.root, "LICENSE"), "Apache License 2.0\n")
        self.xcframework = make_placeholder_xcframework(
            "MediaPipeTasksText",
            os.path.join(self.root, "xcode_build", "build_output", "MediaPipeTasksText.xcframework"),
            {},
        )
        self.config = BuildConfig(
            root_dir=self.root, dest_dir=os.path.join(self.root, "xcode_build")
        )

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_default_package(self):
        published = create_framework_archive("MediaPipeTasksText", self.xcframework, self.config)
        self.assertEqual(
            published,
            os.path.join(
                self.root, "xcode_build", "MediaPipeTasksText", "0.0.1-dev",
                "MediaPipeTasksText-0.0.1-dev.tar.gz",
            ),
        )
        with tarfile.open(published, "r:gz") as tar:
            names = tar.getnames()
        self.assertIn("LICENSE", names)
        self.assertIn("frameworks/MediaPipeTasksText.xcframework/Info.plist", names)
        self.assertTrue(all(not n.startswith("/") and ".." not in n for n in names))
        self.assertTrue(os.path.isfile(os.path.join(os.path.dirname(published), "LICENSE")))

    def test_release_package_is_deterministic(self):
        config = self.config.with_overrides(release=True)
        first = create_framework_archive("MediaPipeTasksText", self.xcframework, config)
        second = create_framework_archive("MediaPipeTasksText", self.xcframework, config)
        self.assertEqual(first, second)

        write_file(os.path.join(self.root, "LICENSE"), "MIT\n")
        third = create_framework_archive("MediaPipeTasksText", self.xcframework, config)
        self.assertNotEqual(os.path.dirname(first), os.path.dirname(third))

    def test_plain_copy_without_archive(self):
        config = self.config.with_overrides(archive=False)
        published = create_framework_archive("MediaPipeTasksText", self.xcframework, config)
        self.assertEqual(published, config.dest_dir)
        self.assertTrue(os.path.isfile(os.path.join(config.dest_dir, "LICENSE")))
        self.assertTrue(os.path.isfile(os.path.join(
            config.dest_dir, "frameworks", "MediaPipeTasksText.xcframework", "Info.plist"
        )))

    def test_missing_license_is_a_warning(self):
        os.remove(os.path.join(self.root, "LICENSE"))
        published = create_framework_archive("MediaPipeTasksText", self.xcframework, self.config)
        with tarfile.open(published, "r:gz") as tar:
            self.assertNotIn("LICENSE", tar.getnames())

    def test_staging_removed_on_interrupt(self):
        staged = []
        real_stage = archive.stage_package

        def recording_stage(xcframework, license_file, staging_dir):
            staged.append(staging_dir)
            return real_stage(xcframework, license_file, staging_dir)

        with patch.object(archive, "stage_package", side_effect=recording_stage), \
                patch.object(archive, "make_tarball", side_effect=KeyboardInterrupt):
            with self.assertRaises(KeyboardInterrupt):
                create_framework_archive("MediaPipeTasksText", self.xcframework, self.config)
        self.assertEqual(len(staged), 1)
        self.assertFalse(os.path.exists(staged[0]))
        self.assertFalse(os.path.exists(os.path.dirname(staged[0])))

    def test_stage_package_layout(self):
        with tempfile.TemporaryDirectory() as staging:
            stage_package(self.xcframework, self.config.license_file, staging)
            self.assertEqual(sorted(os.listdir(staging)), ["LICENSE", "frameworks"])
            self.assertEqual(
                os.listdir(os.path.join(staging, "frameworks")),
                ["MediaPipeTasksText.xcframework"],
            )


if __name__ == "__main__":
    unittest.main()
