import unittest
import tempfile
import io
import os
import sys
import random
from contextlib import redirect_stdout, redirect_stderr

from bitio import BitInputStream, BitOutputStream, END_OF_INPUT
from format import (
    HUFF_TREE, PSEUDO_EOF, BadMagicError, HuffException, MalformedBodyError,
    MalformedHeaderError, TruncatedHeaderError,
)
from huffman import (
    HuffProcessor, count_frequencies, make_tree, make_codings,
    write_tree_header, read_tree_header, compress_with_huffman, decompress_with_huffman,
)
from compressor import FileCompressor, default_compressed_path, default_decompressed_path
import main


# Ожидаемые байты для b"AAAB": A -> 1, B -> 00, EOF -> 01
AAAB_COMPRESSED = bytes.fromhex("face8201242c0241e2")
EMPTY_COMPRESSED = bytes.fromhex("face8201c000")


def input_stream(data: bytes) -> BitInputStream:
    return BitInputStream(io.BytesIO(data))


def counts_for(data: bytes):
    return count_frequencies(input_stream(data))


def tree_shape(node):
    if node.is_leaf:
        return node.symbol
    return (tree_shape(node.left), tree_shape(node.right))


def header_bytes(*fields) -> bytes:
    output = io.BytesIO()
    stream = BitOutputStream(output)
    stream.write_bits(32, HUFF_TREE)
    for count, value in fields:
        stream.write_bits(count, value)
    stream.flush()
    return output.getvalue()


class TestBitStreams(unittest.TestCase):
    def test_write_msb_first_with_padding(self):
        output = io.BytesIO()
        stream = BitOutputStream(output)
        stream.write_bits(3, 0b101)
        stream.write_bits(8, 0xFF)
        stream.flush()
        self.assertEqual(output.getvalue(), b'\xbf\xe0')
        self.assertEqual(stream.bits_written, 11)

    def test_write_keeps_low_bits_only(self):
        output = io.BytesIO()
        stream = BitOutputStream(output)
        stream.write_bits(4, 0x1F3)
        stream.write_bits(4, 0x0A)
        stream.flush()
        self.assertEqual(output.getvalue(), b'\x3a')

    def test_write_zero_bits(self):
        output = io.BytesIO()
        stream = BitOutputStream(output)
        stream.write_bits(0, 123)
        stream.flush()
        self.assertEqual(output.getvalue(), b'')

    def test_write_negative_count(self):
        with self.assertRaises(ValueError):
            BitOutputStream(io.BytesIO()).write_bits(-1, 0)

    def test_read_until_end(self):
        stream = input_stream(b'\xbf\xe0')
        self.assertEqual(stream.read_bits(3), 5)
        self.assertEqual(stream.read_bits(8), 255)
        self.assertEqual(stream.read_bits(5), 0)
        self.assertEqual(stream.bits_read, 16)
        self.assertEqual(stream.read_bits(1), END_OF_INPUT)

    def test_short_read_is_end_of_input(self):
        stream = input_stream(b'\x01\x02')
        self.assertEqual(stream.read_bits(32), END_OF_INPUT)

    def test_reset_returns_to_start_position(self):
        source = io.BytesIO(b'xyz')
        source.read(1)
        stream = BitInputStream(source)
        self.assertEqual(stream.read_bits(8), ord('y'))
        self.assertEqual(stream.read_bits(8), ord('z'))
        stream.reset()
        self.assertEqual(stream.bits_read, 0)
        self.assertEqual(stream.read_bits(8), ord('y'))

    def test_large_input_crosses_buffer(self):
        data = bytes(range(256)) * 40
        stream = input_stream(data)
        values = []
        while True:
            value = stream.read_bits(8)
            if value == END_OF_INPUT:
                break
            values.append(value)
        self.assertEqual(bytes(values), data)


class TestFrequencyCounter(unittest.TestCase):
    def test_counts(self):
        counts = counts_for(b"AAAB")
        self.assertEqual(counts[ord('A')], 3)
        self.assertEqual(counts[ord('B')], 1)
        self.assertEqual(counts[PSEUDO_EOF], 1)
        self.assertEqual(sum(counts), 5)

    def test_empty_input_has_only_sentinel(self):
        counts = counts_for(b"")
        self.assertEqual(len(counts), PSEUDO_EOF + 1)
        self.assertEqual(counts[PSEUDO_EOF], 1)
        self.assertEqual(sum(counts), 1)

    def test_all_byte_values(self):
        counts = counts_for(bytes(range(256)) * 3)
        self.assertEqual(counts[:PSEUDO_EOF], [3] * 256)
        self.assertEqual(counts[PSEUDO_EOF], 1)


class TestTreeBuilder(unittest.TestCase):
    def test_aaab_tree(self):
        root = make_tree(counts_for(b"AAAB"))
        self.assertEqual(tree_shape(root), ((ord('B'), PSEUDO_EOF), ord('A')))
        self.assertEqual(root.weight, 5)

        codings = make_codings(root)
        self.assertEqual(codings[ord('A')], '1')
        self.assertEqual(codings[ord('B')], '00')
        self.assertEqual(codings[PSEUDO_EOF], '01')

    def test_leaf_per_present_symbol(self):
        data = b"Lorem ipsum dolor sit amet"
        counts = counts_for(data)
        codings = make_codings(make_tree(counts))
        present = [symbol for symbol, count in enumerate(counts) if count > 0]
        coded = [symbol for symbol, code in enumerate(codings) if code is not None]
        self.assertEqual(present, coded)

    def test_only_sentinel_gives_leaf_root(self):
        root = make_tree(counts_for(b""))
        self.assertTrue(root.is_leaf)
        self.assertEqual(root.symbol, PSEUDO_EOF)
        self.assertEqual(make_codings(root)[PSEUDO_EOF], '')

    def test_deterministic(self):
        data = bytes(range(256)) * 2 + b"tie tie tie"
        first = make_codings(make_tree(counts_for(data)))
        second = make_codings(make_tree(counts_for(data)))
        self.assertEqual(first, second)
        self.assertEqual(compress_with_huffman(data), compress_with_huffman(data))


class TestCodeTable(unittest.TestCase):
    def assertPrefixFree(self, codings):
        codes = [code for code in codings if code is not None]
        for i, first in enumerate(codes):
            for j, second in enumerate(codes):
                if i != j:
                    self.assertFalse(second.startswith(first),
                                     f"{first} is a prefix of {second}")

    def test_prefix_free_text(self):
        self.assertPrefixFree(make_codings(make_tree(
            counts_for(b"The quick brown fox jumps over the lazy dog"))))

    def test_prefix_free_skewed(self):
        random.seed(7)
        data = bytes(random.choice(b"aaaaaaaabbbbccd") for _ in range(2000))
        self.assertPrefixFree(make_codings(make_tree(counts_for(data))))

    def test_prefix_free_all_bytes(self):
        self.assertPrefixFree(make_codings(make_tree(counts_for(bytes(range(256))))))

    def test_frequent_symbols_get_shorter_codes(self):
        codings = make_codings(make_tree(counts_for(b"a" * 100 + b"b" * 10 + b"c")))
        self.assertLess(len(codings[ord('a')]), len(codings[ord('c')]))


class TestHeaderCodec(unittest.TestCase):
    def roundtrip(self, data: bytes):
        root = make_tree(counts_for(data))
        output = io.BytesIO()
        stream = BitOutputStream(output)
        write_tree_header(root, stream)
        stream.flush()

        rebuilt = read_tree_header(input_stream(output.getvalue()))
        self.assertEqual(tree_shape(rebuilt), tree_shape(root))

    def test_roundtrip_text(self):
        self.roundtrip(b"Hello, world! Hello, Huffman!")

    def test_roundtrip_single_leaf(self):
        self.roundtrip(b"")

    def test_roundtrip_all_bytes(self):
        self.roundtrip(bytes(range(256)) * 2 + b"\x00" * 50)

    def test_header_size(self):
        root = make_tree(counts_for(bytes(range(256))))
        output = io.BytesIO()
        stream = BitOutputStream(output)
        write_tree_header(root, stream)
        # 257 листьев по 10 бит и 256 внутренних узлов по 1 биту
        self.assertEqual(stream.bits_written, 257 * 10 + 256)

    def test_magic(self):
        compressed = compress_with_huffman(b"abc")
        self.assertEqual(compressed[:4], b'\xfa\xce\x82\x01')


class TestHuffmanEncoding(unittest.TestCase):
    def test_aaab_bytes(self):
        self.assertEqual(compress_with_huffman(b"AAAB"), AAAB_COMPRESSED)
        self.assertEqual(decompress_with_huffman(AAAB_COMPRESSED), b"AAAB")

    def test_empty(self):
        self.assertEqual(compress_with_huffman(b""), EMPTY_COMPRESSED)
        self.assertEqual(decompress_with_huffman(EMPTY_COMPRESSED), b"")

    def test_single_byte(self):
        data = b"A"
        self.assertEqual(decompress_with_huffman(compress_with_huffman(data)), data)

    def test_single_repeated_byte(self):
        for count in (1, 2, 7, 8, 1000):
            data = b"\x00" * count
            self.assertEqual(decompress_with_huffman(compress_with_huffman(data)), data)

    def test_all_byte_values(self):
        data = bytes(range(256)) * 10
        self.assertEqual(decompress_with_huffman(compress_with_huffman(data)), data)

    def test_random_data(self):
        random.seed(42)
        data = bytes(random.randint(0, 255) for _ in range(10 * 1024))
        self.assertEqual(decompress_with_huffman(compress_with_huffman(data)), data)

    def test_text_compresses(self):
        data = b"Lorem ipsum dolor sit amet " * 200
        compressed = compress_with_huffman(data)
        self.assertLess(len(compressed), len(data))
        self.assertEqual(decompress_with_huffman(compressed), data)

    def test_stats(self):
        output = io.BytesIO()
        stats = HuffProcessor().compress(input_stream(b"AAAB"), BitOutputStream(output))
        self.assertEqual(stats.original_bits, 32)
        self.assertEqual(stats.header_bits, 64)
        self.assertEqual(stats.body_bits, 7)

        restored = io.BytesIO()
        stats = HuffProcessor().decompress(input_stream(output.getvalue()),
                                           BitOutputStream(restored))
        self.assertEqual(restored.getvalue(), b"AAAB")
        self.assertEqual(stats.original_bits, 32)
        self.assertEqual(stats.header_bits, 64)
        self.assertEqual(stats.body_bits, 7)

    def test_debug_output(self):
        buffer = io.StringIO()
        with redirect_stdout(buffer):
            HuffProcessor(debug=4).compress(input_stream(b"AAAB"),
                                            BitOutputStream(io.BytesIO()))
        text = buffer.getvalue()
        self.assertIn("65: 1", text)
        self.assertIn("256: 01", text)
        self.assertIn("Symbols: 3", text)


class TestDecodeErrors(unittest.TestCase):
    def test_bad_magic(self):
        with self.assertRaises(BadMagicError) as cm:
            decompress_with_huffman(b'\x00\x00\x00\x00\xff')
        self.assertEqual(cm.exception.value, 0)

    def test_empty_input(self):
        with self.assertRaises(BadMagicError) as cm:
            decompress_with_huffman(b'')
        self.assertEqual(cm.exception.value, END_OF_INPUT)

    def test_errors_are_value_errors(self):
        with self.assertRaises(ValueError):
            decompress_with_huffman(b'garbage')

    def test_truncated_header(self):
        with self.assertRaises(TruncatedHeaderError) as cm:
            decompress_with_huffman(AAAB_COMPRESSED[:4])
        self.assertEqual(cm.exception.position, 32)

        with self.assertRaises(TruncatedHeaderError):
            decompress_with_huffman(AAAB_COMPRESSED[:6])

    def test_every_truncation_detected(self):
        data = b"The quick brown fox jumps over the lazy dog"
        compressed = compress_with_huffman(data)
        for cut in range(len(compressed)):
            with self.assertRaises(HuffException):
                decompress_with_huffman(compressed[:cut])

    def test_malformed_body_keeps_partial_output(self):
        # После заголовка только единицы: восемь символов A без EOF
        data = AAAB_COMPRESSED[:8] + b'\xff'
        output = io.BytesIO()
        with self.assertRaises(MalformedBodyError) as cm:
            HuffProcessor().decompress(input_stream(data), BitOutputStream(output))
        self.assertEqual(cm.exception.position, 72)
        self.assertEqual(output.getvalue(), b"A" * 8)

    def test_leaf_value_out_of_range(self):
        with self.assertRaises(MalformedHeaderError):
            decompress_with_huffman(header_bytes((1, 1), (9, 300)))

    def test_single_leaf_without_sentinel(self):
        with self.assertRaises(MalformedHeaderError):
            decompress_with_huffman(header_bytes((1, 1), (9, ord('A'))))

    def test_header_nested_too_deeply(self):
        with self.assertRaises(MalformedHeaderError):
            decompress_with_huffman(header_bytes((8, 0)) + b'\x00' * 40)


class TestFileCompressor(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()
        self.compressor = FileCompressor()

    def tearDown(self):
        import shutil
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def write_file(self, name: str, data: bytes) -> str:
        path = os.path.join(self.temp_dir, name)
        with open(path, 'wb') as f:
            f.write(data)
        return path

    def test_default_paths(self):
        self.assertEqual(default_compressed_path("a.txt"), "a.txt.hf")
        self.assertEqual(default_decompressed_path("a.txt.hf"), "a.txt")
        self.assertEqual(default_decompressed_path("a.bin"), "a.bin.unhf")

    def test_compress_decompress_file(self):
        data = b"Hello World! " * 100
        path = self.write_file("test.txt", data)
        restored = os.path.join(self.temp_dir, "restored.txt")

        with redirect_stdout(io.StringIO()):
            stats = self.compressor.compress_file(path)
            self.compressor.decompress_file(path + ".hf", restored)

        self.assertLess(stats.compression_ratio, 100)
        with open(restored, 'rb') as f:
            self.assertEqual(f.read(), data)

    def test_empty_file(self):
        path = self.write_file("empty.bin", b"")
        restored = os.path.join(self.temp_dir, "empty.out")

        with redirect_stdout(io.StringIO()):
            self.compressor.compress_file(path)
            self.compressor.decompress_file(path + ".hf", restored)

        with open(path + ".hf", 'rb') as f:
            self.assertEqual(f.read(), EMPTY_COMPRESSED)
        with open(restored, 'rb') as f:
            self.assertEqual(f.read(), b"")

    def test_refuses_to_overwrite(self):
        path = self.write_file("test.txt", b"data")
        self.write_file("test.txt.hf", b"existing")

        with self.assertRaises(FileExistsError):
            self.compressor.compress_file(path)

        with redirect_stdout(io.StringIO()):
            FileCompressor(force=True).compress_file(path)
        with open(path + ".hf", 'rb') as f:
            self.assertTrue(f.read().startswith(b'\xfa\xce\x82\x01'))

    def test_bad_header_creates_no_output(self):
        path = self.write_file("cut.txt.hf", AAAB_COMPRESSED[:6])
        restored = os.path.join(self.temp_dir, "cut.txt")

        with redirect_stdout(io.StringIO()):
            with self.assertRaises(TruncatedHeaderError):
                self.compressor.decompress_file(path)

        self.assertFalse(os.path.exists(restored))

    def test_bad_body_keeps_partial_output(self):
        path = self.write_file("body.txt.hf", AAAB_COMPRESSED[:8] + b'\xff')
        restored = os.path.join(self.temp_dir, "body.txt")

        with redirect_stdout(io.StringIO()):
            with self.assertRaises(MalformedBodyError):
                self.compressor.decompress_file(path)

        with open(restored, 'rb') as f:
            self.assertEqual(f.read(), b"A" * 8)

    def test_output_same_as_input(self):
        data = b"hello world" * 10
        path = self.write_file("same.txt", data)
        compressor = FileCompressor(force=True)

        with self.assertRaises(ValueError):
            compressor.compress_file(path, path)
        with self.assertRaises(ValueError):
            compressor.decompress_file(path, path)

        with open(path, 'rb') as f:
            self.assertEqual(f.read(), data)

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            self.compressor.compress_file(os.path.join(self.temp_dir, "missing"))

    def test_show_codes(self):
        path = self.write_file("test.txt", b"AAAB")
        buffer = io.StringIO()
        with redirect_stdout(buffer):
            self.compressor.show_codes(path)
        lines = buffer.getvalue().splitlines()
        self.assertTrue(any(line.startswith("'A'") and line.endswith("1") for line in lines))
        self.assertTrue(any(line.startswith("EOF") and line.endswith("01") for line in lines))


class TestCommandLine(unittest.TestCase):
    def setUp(self):
        self.temp_dir = tempfile.mkdtemp()

    def tearDown(self):
        import shutil
        if os.path.exists(self.temp_dir):
            shutil.rmtree(self.temp_dir)

    def test_compress_and_decompress(self):
        path = os.path.join(self.temp_dir, "file.txt")
        restored = os.path.join(self.temp_dir, "file.out")
        with open(path, 'wb') as f:
            f.write(b"Content of file\n" * 50)

        with redirect_stdout(io.StringIO()):
            main.main(['compress', path])
            main.main(['decompress', path + '.hf', '-o', restored])

        with open(restored, 'rb') as f:
            self.assertEqual(f.read(), b"Content of file\n" * 50)

    def test_bad_input_exits_with_error(self):
        path = os.path.join(self.temp_dir, "bad.hf")
        with open(path, 'wb') as f:
            f.write(b"not compressed")

        errors = io.StringIO()
        with redirect_stdout(io.StringIO()), redirect_stderr(errors):
            with self.assertRaises(SystemExit) as cm:
                main.main(['decompress', path])
        self.assertEqual(cm.exception.code, 1)
        self.assertIn("Error:", errors.getvalue())
        self.assertFalse(os.path.exists(os.path.join(self.temp_dir, "bad")))


def run_tests():
    loader = unittest.TestLoader()
    suite = unittest.TestSuite()

    suite.addTests(loader.loadTestsFromTestCase(TestBitStreams))
    suite.addTests(loader.loadTestsFromTestCase(TestFrequencyCounter))
    suite.addTests(loader.loadTestsFromTestCase(TestTreeBuilder))
    suite.addTests(loader.loadTestsFromTestCase(TestCodeTable))
    suite.addTests(loader.loadTestsFromTestCase(TestHeaderCodec))
    suite.addTests(loader.loadTestsFromTestCase(TestHuffmanEncoding))
    suite.addTests(loader.loadTestsFromTestCase(TestDecodeErrors))
    suite.addTests(loader.loadTestsFromTestCase(TestFileCompressor))
    suite.addTests(loader.loadTestsFromTestCase(TestCommandLine))

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    return 0 if result.wasSuccessful() else 1


if __name__ == '__main__':
    sys.exit(run_tests())
