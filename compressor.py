"""
Главный класс для сжатия и разжатия файлов.
"""

import os
from pathlib import Path
from typing import Optional

from bitio import BitInputStream, BitOutputStream
from format import PSEUDO_EOF
from huffman import (
    CompressionStats, HuffProcessor, count_frequencies, make_codings, make_tree,
)


COMPRESSED_SUFFIX = '.hf'
DECOMPRESSED_SUFFIX = '.unhf'


def default_compressed_path(file_path: str) -> str:
    return file_path + COMPRESSED_SUFFIX


def default_decompressed_path(file_path: str) -> str:
    if file_path.endswith(COMPRESSED_SUFFIX) and len(file_path) > len(COMPRESSED_SUFFIX):
        return file_path[:-len(COMPRESSED_SUFFIX)]
    return file_path + DECOMPRESSED_SUFFIX


def symbol_label(symbol: int) -> str:
    if symbol == PSEUDO_EOF:
        return 'EOF'
    if 0x21 <= symbol < 0x7f:
        return f"'{chr(symbol)}'"
    return f"0x{symbol:02x}"


class FileCompressor:
    def __init__(self, debug: int = 0, force: bool = False):
        self.debug = debug
        self.force = force
        self.processor = HuffProcessor(debug=debug)

    def _check_paths(self, file_path: str, output_path: str):
        if not os.path.isfile(file_path):
            raise FileNotFoundError(f"{file_path} not found")
        if os.path.exists(output_path) and os.path.samefile(file_path, output_path):
            raise ValueError(f"{output_path} is the input file")
        if os.path.exists(output_path) and not self.force:
            raise FileExistsError(f"{output_path} already exists, use --force to overwrite")

    def compress_file(self, file_path: str, output_path: Optional[str] = None) -> CompressionStats:
        output_path = output_path or default_compressed_path(file_path)
        self._check_paths(file_path, output_path)

        print(f"Compressing {Path(file_path).name}...", end=" ")

        with open(file_path, 'rb') as source, open(output_path, 'wb') as sink:
            stats = self.processor.compress(BitInputStream(source), BitOutputStream(sink))

        print(f"OK ({stats.compression_ratio:.1f}%)")
        if self.debug:
            stats.print_stats()

        return stats

    def decompress_file(self, file_path: str, output_path: Optional[str] = None) -> CompressionStats:
        """Разжимает файл.

        Выходной файл создаётся только после проверки заголовка; при ошибке
        в теле уже записанные байты остаются в нём.
        """
        output_path = output_path or default_decompressed_path(file_path)
        self._check_paths(file_path, output_path)

        print(f"Decompressing {Path(file_path).name}...", end=" ")

        with open(file_path, 'rb') as source:
            bits_in = BitInputStream(source)
            root, header_bits = self.processor.read_header(bits_in)

            with open(output_path, 'wb') as sink:
                stats = self.processor.decode_body(root, header_bits, bits_in,
                                                   BitOutputStream(sink))

        print(f"OK -> {output_path}")
        if self.debug:
            stats.print_stats()

        return stats

    def show_codes(self, file_path: str):
        if not os.path.isfile(file_path):
            raise FileNotFoundError(f"{file_path} not found")

        with open(file_path, 'rb') as source:
            counts = count_frequencies(BitInputStream(source))

        codings = make_codings(make_tree(counts))

        print(f"{'Symbol':<10} {'Count':>12} {'Bits':>6}  Code")
        print("-" * 60)

        total_bits = 0
        for symbol, code in enumerate(codings):
            if code is None:
                continue
            print(f"{symbol_label(symbol):<10} {counts[symbol]:>12} {len(code):>6}  {code}")
            total_bits += counts[symbol] * len(code)

        print("-" * 60)
        total_bytes = sum(counts[:PSEUDO_EOF])
        print(f"{'TOTAL':<10} {total_bytes:>12} {total_bits:>6}")
