"""Tests for fragment reassembly."""

import os
import shutil
import tempfile
import unittest
from unittest import mock

from TexStitch.config import StitchConfig
from TexStitch.core import (
    LayoutOverrunError,
    LocalFileSystem,
    MissingMipFragmentError,
    UnsupportedFormatError,
)
from TexStitch.dds import (
    END_MARKER,
    DDSCombiner,
    FragmentSet,
    combine_fragments,
    decode_header,
    resolve_fragments,
)

from _fragments import build_split_texture, level_bytes


def _read(path):
    with open(path, "rb") as f:
        return f.read()


class TestCombineMainChain(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def _combine(self, base="tex", config=None):
        fs = resolve_fragments(self.tmpdir, base, config)
        return DDSCombiner(config).combine(fs)

    def test_512_dxt1_worked_example(self):
        data = build_split_texture(self.tmpdir, "defaultnouvs", 512, 512, 8, separate=5)
        sizes = [os.path.getsize(data["header_path"])] + [
            os.path.getsize(data["fragments"][n]) for n in sorted(data["fragments"])
        ]
        self.assertEqual(sizes, [296, 512, 2048, 8192, 32768, 131072])

        result = self._combine("defaultnouvs")
        output = _read(result.output_path)
        self.assertEqual(len(output), sum(sizes) + 8)
        self.assertEqual(len(output), 174896)
        self.assertEqual(output, data["expected"])
        self.assertEqual(result.bytes_written, len(output))

    def test_output_layout(self):
        data = build_split_texture(self.tmpdir, "tex", 64, 32, 5, separate=2)
        result = self._combine()
        output = _read(result.output_path)
        self.assertEqual(output[:4], b"DDS ")
        self.assertTrue(output.endswith(END_MARKER))
        info = decode_header(output)
        self.assertEqual(info.header, data["header"])
        # Level 0 comes from the highest-numbered fragment.
        level0 = data["plan"][0].byte_size
        self.assertEqual(output[128:128 + level0], level_bytes(0, 0, level0))

    def test_bare_header_is_backed_up_before_overwrite(self):
        data = build_split_texture(self.tmpdir, "tex", 64, 64, 4, separate=2)
        original = _read(data["header_path"])
        result = self._combine()
        backup = os.path.join(self.tmpdir, "tex.dds.0")
        self.assertEqual(result.output_path, data["header_path"])
        self.assertTrue(os.path.exists(backup))
        self.assertEqual(_read(backup), original)
        self.assertEqual(_read(result.output_path), data["expected"])

    def test_header_backup_cannot_be_disabled_from_config(self):
        data = build_split_texture(self.tmpdir, "tex", 64, 64, 4, separate=2)
        original = _read(data["header_path"])
        cfg_path = os.path.join(self.tmpdir, "texstitch.yaml")
        with open(cfg_path, "w", encoding="utf-8") as f:
            f.write("backup_header_fragment: false\n")
        config = StitchConfig.from_yaml(cfg_path)
        self.assertFalse(hasattr(config, "backup_header_fragment"))

        result = self._combine(config=config)
        self.assertEqual(result.output_path, data["header_path"])
        self.assertEqual(_read(os.path.join(self.tmpdir, "tex.dds.0")), original)

    def test_second_run_is_a_no_op(self):
        build_split_texture(self.tmpdir, "tex", 64, 64, 4, separate=2)
        first = self._combine()
        combined = _read(first.output_path)
        second = self._combine()
        self.assertTrue(second.already_combined)
        self.assertEqual(second.bytes_written, 0)
        self.assertEqual(_read(first.output_path), combined)

    def test_existing_header0_is_authoritative(self):
        data = build_split_texture(self.tmpdir, "tex", 64, 64, 4, separate=2,
                                   header_name="tex.dds.0")
        header0 = _read(data["header_path"])
        result = self._combine()
        self.assertEqual(result.output_path, os.path.join(self.tmpdir, "tex.dds"))
        self.assertEqual(_read(data["header_path"]), header0)
        self.assertEqual(_read(result.output_path), data["expected"])

    def test_safe_name_keeps_header_fragment(self):
        data = build_split_texture(self.tmpdir, "tex", 64, 64, 4, separate=2)
        original = _read(data["header_path"])
        config = StitchConfig(use_safe_name=True)
        result = self._combine(config=config)
        self.assertEqual(result.output_path, os.path.join(self.tmpdir, "tex.combined.dds"))
        self.assertEqual(_read(data["header_path"]), original)
        self.assertEqual(_read(result.output_path), data["expected"])

    def test_dx10_texture(self):
        data = build_split_texture(self.tmpdir, "tex", 128, 128, 8, separate=3,
                                   dx10_format=98)
        output = _read(self._combine().output_path)
        self.assertEqual(output, data["expected"])
        self.assertEqual(output[84:88], b"DX10")
        self.assertEqual(len(output), 148 + sum(m.byte_size for m in data["plan"]) + 8)

    def test_no_separate_fragments(self):
        data = build_split_texture(self.tmpdir, "tex", 64, 64, 4, separate=0,
                                   header_name="tex.dds.0")
        output = _read(self._combine().output_path)
        self.assertEqual(output, data["expected"])

    def test_uncompressed_payload_is_aligned_before_marker(self):
        data = build_split_texture(self.tmpdir, "tex", 3, 3, 2, separate=1,
                                   four_cc=None, rgb_bit_count=8)
        output = _read(self._combine().output_path)
        # 128 header + 9 + 1 payload bytes, 2 bytes padding, marker.
        self.assertEqual(len(output), 128 + 10 + 2 + 8)
        self.assertEqual(output, data["expected"])
        self.assertEqual(output[-10:-8], b"\x00\x00")

    def test_alignment_can_be_disabled(self):
        build_split_texture(self.tmpdir, "tex", 3, 3, 2, separate=1,
                            four_cc=None, rgb_bit_count=8)
        output = _read(self._combine(config=StitchConfig(align_payload=False)).output_path)
        self.assertEqual(len(output), 128 + 10 + 8)


class TestCubemap(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def test_faces_are_interleaved_face_major(self):
        data = build_split_texture(self.tmpdir, "sky", 16, 16, 3, separate=1,
                                   cubemap=True)
        plan = data["plan"]
        self.assertEqual(os.path.getsize(data["fragments"][1]), 6 * plan[0].byte_size)

        result = combine_fragments(resolve_fragments(self.tmpdir, "sky"))
        output = _read(result.output_path)
        per_face = sum(m.byte_size for m in plan)
        self.assertEqual(len(output), 128 + 6 * per_face + 8)
        self.assertEqual(output, data["expected"])

        # Face 1 starts right after every level of face 0.
        face1 = output[128 + per_face:128 + per_face + plan[0].byte_size]
        self.assertEqual(face1, level_bytes(0, 1, plan[0].byte_size))

    def test_short_cubemap_fragment_reports_face(self):
        data = build_split_texture(self.tmpdir, "sky", 16, 16, 3, separate=1,
                                   cubemap=True)
        path = data["fragments"][1]
        with open(path, "r+b") as f:
            f.truncate(5 * data["plan"][0].byte_size)
        with self.assertRaises(LayoutOverrunError) as ctx:
            combine_fragments(resolve_fragments(self.tmpdir, "sky"))
        exc = ctx.exception
        self.assertEqual(exc.face, 5)
        self.assertEqual(exc.level, 0)
        self.assertEqual(exc.path, path)
        self.assertEqual(exc.available, 5 * data["plan"][0].byte_size)


class TestCombineErrors(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def test_short_header_payload_raises_overrun(self):
        data = build_split_texture(self.tmpdir, "tex", 64, 64, 4, separate=1,
                                   header_name="tex.dds.0")
        with open(data["header_path"], "r+b") as f:
            f.truncate(os.path.getsize(data["header_path"]) - 4)
        with self.assertRaises(LayoutOverrunError) as ctx:
            combine_fragments(resolve_fragments(self.tmpdir, "tex"))
        self.assertEqual(ctx.exception.level, 3)
        self.assertEqual(ctx.exception.path, data["header_path"])
        self.assertFalse(os.path.exists(os.path.join(self.tmpdir, "tex.dds")))

    def test_failed_combine_leaves_existing_output_untouched(self):
        data = build_split_texture(self.tmpdir, "tex", 64, 64, 4, separate=2)
        os.remove(data["fragments"][2])
        with open(data["fragments"][1], "r+b") as f:
            f.truncate(1)
        original = _read(data["header_path"])
        with self.assertRaises(LayoutOverrunError):
            combine_fragments(resolve_fragments(self.tmpdir, "tex"))
        self.assertEqual(_read(data["header_path"]), original)
        leftovers = [n for n in os.listdir(self.tmpdir) if ".tmp." in n]
        self.assertEqual(leftovers, [])

    def test_gap_in_fragment_numbers_raises_missing(self):
        data = build_split_texture(self.tmpdir, "tex", 64, 64, 4, separate=3,
                                   header_name="tex.dds.0")
        os.remove(data["fragments"][2])
        with self.assertRaises(MissingMipFragmentError) as ctx:
            combine_fragments(resolve_fragments(self.tmpdir, "tex"))
        self.assertTrue(ctx.exception.path.endswith("tex.dds.2"))
        self.assertEqual(ctx.exception.level, 1)

    def test_vanished_fragment_raises_missing(self):
        data = build_split_texture(self.tmpdir, "tex", 64, 64, 4, separate=2,
                                   header_name="tex.dds.0")
        fragment_set = resolve_fragments(self.tmpdir, "tex")
        os.remove(data["fragments"][1])
        with self.assertRaises(MissingMipFragmentError) as ctx:
            combine_fragments(fragment_set)
        self.assertEqual(ctx.exception.path, data["fragments"][1])

    def test_more_fragments_than_levels_raises_overrun(self):
        build_split_texture(self.tmpdir, "tex", 64, 64, 2, separate=2,
                            header_name="tex.dds.0")
        with open(os.path.join(self.tmpdir, "tex.dds.3"), "wb") as f:
            f.write(b"\x00" * 4096)
        with self.assertRaises(LayoutOverrunError):
            combine_fragments(resolve_fragments(self.tmpdir, "tex"))

    def test_unsupported_format_raises(self):
        build_split_texture(self.tmpdir, "tex", 64, 64, 2, separate=0,
                            header_name="tex.dds.0")
        path = os.path.join(self.tmpdir, "tex.dds.0")
        with open(path, "r+b") as f:
            f.seek(84)
            f.write(b"ZZZZ")
        with self.assertRaises(UnsupportedFormatError):
            combine_fragments(resolve_fragments(self.tmpdir, "tex"))

    def test_already_combined_set_writes_nothing(self):
        fs_mock = mock.Mock(spec=LocalFileSystem)
        fragment_set = FragmentSet(directory=self.tmpdir, base_name="tex",
                                   header_file="tex.dds", already_combined=True)
        result = DDSCombiner(fs=fs_mock).combine(fragment_set)
        self.assertTrue(result.already_combined)
        self.assertEqual(result.output_path, "tex.dds")
        fs_mock.atomic_writer.assert_not_called()
        fs_mock.copy_file.assert_not_called()


class TestAlternateChain(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def test_alternate_chain_written_to_suffixed_path(self):
        main = build_split_texture(self.tmpdir, "rock", 64, 64, 6, separate=3)
        alt = build_split_texture(self.tmpdir, "rock", 32, 32, 5, separate=3,
                                  four_cc=b"ATI2", tag="a")
        result = combine_fragments(resolve_fragments(self.tmpdir, "rock"))
        self.assertEqual(result.alternate_output_path,
                         os.path.join(self.tmpdir, "rock_gloss.dds"))
        self.assertEqual(_read(result.output_path), main["expected"])
        self.assertEqual(_read(result.alternate_output_path), alt["expected"])
        self.assertIsNone(result.alternate_error)
        # The alternate header is not the bare file, so it is never backed up.
        self.assertFalse(os.path.exists(os.path.join(self.tmpdir, "rock.dds.a.0")))

    def test_alternate_failure_is_recorded(self):
        build_split_texture(self.tmpdir, "rock", 64, 64, 6, separate=3)
        alt = build_split_texture(self.tmpdir, "rock", 32, 32, 5, separate=3, tag="a")
        os.remove(alt["fragments"][2])
        result = combine_fragments(resolve_fragments(self.tmpdir, "rock"))
        self.assertTrue(os.path.exists(result.output_path))
        self.assertIsNone(result.alternate_output_path)
        self.assertIn("rock.dds.2a", result.alternate_error)

    def test_strict_alternate_propagates(self):
        build_split_texture(self.tmpdir, "rock", 64, 64, 6, separate=3)
        alt = build_split_texture(self.tmpdir, "rock", 32, 32, 5, separate=3, tag="a")
        os.remove(alt["fragments"][2])
        config = StitchConfig(strict_alternate=True)
        with self.assertRaises(MissingMipFragmentError):
            combine_fragments(resolve_fragments(self.tmpdir, "rock", config), config)


if __name__ == "__main__":
    unittest.main(verbosity=2)
