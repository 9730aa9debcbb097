# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is dual-licensed under either the MIT license found in the
# LICENSE-MIT file in the root directory of this source tree or the Apache
# License, Version 2.0 found in the LICENSE-APACHE file in the root directory
# of this source tree. You may select, at your option, one of the
# above-listed licenses.

import tempfile
import unittest
from pathlib import Path
from typing import Iterable, Optional

from .build_context import BuildAction, BuildContext, BundlePair
from .embed import embed_frameworks
from .embed_errors import EmbedError, EmbedErrorKind, StripError
from .testing_utils import FakeArchitectureTool, make_fake_framework, read_fake_binary

ARM64_UUID = "11111111-1111-1111-1111-111111111111"
X86_64_UUID = "22222222-2222-2222-2222-222222222222"
SIM_UUID = "33333333-3333-3333-3333-333333333333"

ALL_SLICES = {"arm64": ARM64_UUID, "x86_64": X86_64_UUID, "arm64-sim": SIM_UUID}


class TestEmbedFrameworks(unittest.TestCase):
    maxDiff = None

    def setUp(self) -> None:
        self._tmp_dir = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp_dir.name)
        self.source_dir = self.root / "Carthage" / "Build" / "iOS"
        self.built_dir = self.root / "Built"
        self.tool = FakeArchitectureTool()

    def tearDown(self) -> None:
        self._tmp_dir.cleanup()

    def _context(
        self,
        pairs: Iterable[BundlePair],
        action: BuildAction = BuildAction.build,
        valid_architectures: Iterable[str] = ("arm64",),
        configuration: str = "Debug",
        configurations_to_embed: Optional[Iterable[str]] = None,
    ) -> BuildContext:
        return BuildContext(
            configuration=configuration,
            configurations_to_embed=frozenset(
                configurations_to_embed
                if configurations_to_embed is not None
                else ["Debug"]
            ),
            embed_all_configurations=False,
            valid_architectures=frozenset(valid_architectures),
            action=action,
            built_products_dir=self.built_dir,
            bundle_pairs=tuple(pairs),
        )

    def _pair(self, name: str = "Foo") -> BundlePair:
        return BundlePair(
            str(self.source_dir / f"{name}.framework"),
            str(self.built_dir / "Frameworks" / f"{name}.framework"),
        )

    def test_strips_framework_and_dsym_to_valid_architectures(self):
        make_fake_framework(self.source_dir, "Foo", ALL_SLICES)
        pair = self._pair()

        results = embed_frameworks(self._context([pair]), self.tool)

        output = Path(pair.output_path)
        self.assertEqual(read_fake_binary(output / "Foo"), {"arm64": ARM64_UUID})
        self.assertTrue((output / "Headers" / "Foo.h").is_file())
        dsym = self.built_dir / "Frameworks" / "Foo.framework.dSYM"
        self.assertEqual(
            read_fake_binary(dsym / "Contents/Resources/DWARF/Foo"),
            {"arm64": ARM64_UUID},
        )
        self.assertEqual(len(results), 1)
        self.assertEqual(results[0].framework, output)
        self.assertEqual(results[0].dsym, dsym)
        self.assertEqual(results[0].bcsymbolmaps, [])

    def test_input_is_left_untouched(self):
        make_fake_framework(self.source_dir, "Foo", ALL_SLICES)
        pair = self._pair()

        embed_frameworks(self._context([pair]), self.tool)

        self.assertEqual(
            read_fake_binary(Path(pair.input_path) / "Foo"),
            ALL_SLICES,
        )

    def test_keeps_intersection_of_architectures(self):
        make_fake_framework(self.source_dir, "Foo", ALL_SLICES)
        pair = self._pair()

        embed_frameworks(
            self._context([pair], valid_architectures=["arm64", "x86_64", "armv7"]),
            self.tool,
        )

        self.assertEqual(
            set(read_fake_binary(Path(pair.output_path) / "Foo").keys()),
            {"arm64", "x86_64"},
        )

    def test_embedding_again_produces_the_same_result(self):
        make_fake_framework(self.source_dir, "Foo", ALL_SLICES)
        pair = self._pair()
        context = self._context([pair])

        embed_frameworks(context, self.tool)
        embed_frameworks(context, self.tool)

        self.assertEqual(
            read_fake_binary(Path(pair.output_path) / "Foo"), {"arm64": ARM64_UUID}
        )

    def test_existing_output_is_replaced(self):
        make_fake_framework(self.source_dir, "Foo", ALL_SLICES)
        pair = self._pair()
        stale_output = Path(pair.output_path)
        stale_output.mkdir(parents=True)
        (stale_output / "Stale.txt").write_text("stale")
        stale_dsym = stale_output.parent / "Foo.framework.dSYM"
        stale_dsym.mkdir()
        (stale_dsym / "Stale.txt").write_text("stale")

        embed_frameworks(self._context([pair]), self.tool)

        self.assertFalse((stale_output / "Stale.txt").exists())
        self.assertFalse((stale_dsym / "Stale.txt").exists())
        self.assertEqual(
            read_fake_binary(stale_output / "Foo"), {"arm64": ARM64_UUID}
        )

    def test_read_only_input_is_embedded(self):
        framework = make_fake_framework(self.source_dir, "Foo", ALL_SLICES)
        (framework / "Foo").chmod(0o444)
        pair = self._pair()

        embed_frameworks(self._context([pair]), self.tool)
        # Read-only copies must still be replaceable on the next build.
        embed_frameworks(self._context([pair]), self.tool)

        self.assertEqual(
            read_fake_binary(Path(pair.output_path) / "Foo"), {"arm64": ARM64_UUID}
        )

    def test_invalid_input_extension(self):
        pair = BundlePair("Foo.txt", str(self.built_dir / "Foo.framework"))

        with self.assertRaises(EmbedError) as context:
            embed_frameworks(self._context([pair]), self.tool)

        self.assertEqual(context.exception.kind, EmbedErrorKind.invalidExtension)
        self.assertEqual(context.exception.path, "Foo.txt")
        self.assertEqual(
            str(context.exception), "File doesn't have a .framework extension: Foo.txt"
        )
        self.assertFalse(self.built_dir.exists())

    def test_invalid_output_extension(self):
        make_fake_framework(self.source_dir, "Foo", ALL_SLICES)
        output = str(self.built_dir / "Foo.bundle")
        pair = BundlePair(str(self.source_dir / "Foo.framework"), output)

        with self.assertRaises(EmbedError) as context:
            embed_frameworks(self._context([pair]), self.tool)

        self.assertEqual(context.exception, EmbedError.invalid_extension(output))
        self.assertFalse(self.built_dir.exists())

    def test_missing_input(self):
        pair = self._pair()

        with self.assertRaises(EmbedError) as context:
            embed_frameworks(self._context([pair]), self.tool)

        self.assertEqual(context.exception.kind, EmbedErrorKind.notFound)
        self.assertEqual(context.exception.path, pair.input_path)
        self.assertFalse(self.built_dir.exists())

    def test_missing_dsym_aborts(self):
        make_fake_framework(self.source_dir, "Foo", ALL_SLICES, with_dsym=False)

        with self.assertRaises(FileNotFoundError):
            embed_frameworks(self._context([self._pair()]), self.tool)

    def test_failure_stops_remaining_pairs(self):
        make_fake_framework(self.source_dir, "Bar", ALL_SLICES)
        pairs = [
            BundlePair("Foo.txt", str(self.built_dir / "Foo.framework")),
            self._pair("Bar"),
        ]

        with self.assertRaises(EmbedError):
            embed_frameworks(self._context(pairs), self.tool)

        self.assertFalse(Path(pairs[1].output_path).exists())

    def test_pairs_are_embedded_in_order(self):
        make_fake_framework(self.source_dir, "Foo", ALL_SLICES)
        make_fake_framework(self.source_dir, "Bar", {"x86_64": X86_64_UUID})
        pairs = [self._pair("Foo"), self._pair("Bar")]

        results = embed_frameworks(
            self._context(pairs, valid_architectures=["arm64", "x86_64"]), self.tool
        )

        self.assertEqual(
            [r.framework for r in results], [Path(p.output_path) for p in pairs]
        )
        self.assertEqual(
            read_fake_binary(Path(pairs[1].output_path) / "Bar"),
            {"x86_64": X86_64_UUID},
        )

    def test_unsupported_architecture_warns_then_fails_to_strip(self):
        make_fake_framework(self.source_dir, "Foo", {"x86_64": X86_64_UUID})

        with self.assertLogs("embed_frameworks.embed", level="WARNING") as logs:
            with self.assertRaises(StripError) as context:
                embed_frameworks(self._context([self._pair()]), self.tool)

        self.assertEqual(
            logs.output,
            [
                "WARNING:embed_frameworks.embed:Foo.framework does not support the current architectures: arm64"
            ],
        )
        self.assertEqual(context.exception.kind, EmbedErrorKind.strip)

    def test_other_configuration_warns_and_still_embeds(self):
        make_fake_framework(self.source_dir, "Foo", ALL_SLICES)
        pair = self._pair()

        with self.assertLogs("embed_frameworks.embed", level="WARNING") as logs:
            embed_frameworks(
                self._context([pair], configuration="Release"), self.tool
            )

        self.assertEqual(
            logs.output,
            [
                "WARNING:embed_frameworks.embed:Not embedding frameworks because the following configuration is being built: Release"
            ],
        )
        self.assertTrue((Path(pair.output_path) / "Foo").is_file())

    def test_bcsymbolmaps_are_not_copied_when_not_installing(self):
        make_fake_framework(self.source_dir, "Foo", ALL_SLICES)
        (self.source_dir / f"{ARM64_UUID}.bcsymbolmap").write_text("map")

        results = embed_frameworks(
            self._context([self._pair()], action=BuildAction.build), self.tool
        )

        self.assertEqual(results[0].bcsymbolmaps, [])
        self.assertEqual(list(self.built_dir.glob("*.bcsymbolmap")), [])

    def test_bcsymbolmaps_are_copied_flat_when_installing(self):
        make_fake_framework(self.source_dir, "Foo", ALL_SLICES)
        for uuid in [ARM64_UUID, SIM_UUID]:
            (self.source_dir / f"{uuid}.bcsymbolmap").write_text(f"map {uuid}")
        self.built_dir = self.root / "Install" / "Products"
        pair = BundlePair(
            str(self.source_dir / "Foo.framework"),
            str(self.root / "App.app" / "Frameworks" / "Foo.framework"),
        )

        results = embed_frameworks(
            self._context([pair], action=BuildAction.install), self.tool
        )

        expected = [
            self.built_dir / f"{ARM64_UUID}.bcsymbolmap",
            self.built_dir / f"{SIM_UUID}.bcsymbolmap",
        ]
        self.assertEqual(sorted(results[0].bcsymbolmaps), sorted(expected))
        for path in expected:
            self.assertTrue(path.is_file())
        self.assertEqual(
            expected[1].read_text(), f"map {SIM_UUID}"
        )


class TestEmbedError(unittest.TestCase):
    def test_descriptions(self):
        self.assertEqual(
            str(EmbedError.not_found("Foo.framework")),
            "File not found at path: Foo.framework",
        )
        self.assertEqual(
            str(StripError("Foo.framework", "lipo failed")),
            "Unable to strip architectures of binary at path: Foo.framework\nlipo failed",
        )

    def test_errors_can_be_matched_by_kind(self):
        error = StripError(Path("Foo.framework"))
        self.assertIsInstance(error, EmbedError)
        self.assertEqual(error, EmbedError(EmbedErrorKind.strip, "Foo.framework"))
        self.assertNotEqual(error, EmbedError.not_found("Foo.framework"))
