"""
Реализует кодирование Хаффмана для сжатия потока байтов.

Сжатие делает два прохода по входу: подсчёт частот, затем (после reset)
запись кодов. Дерево хранится в заголовке, поэтому при распаковке
частоты не нужны.
"""

import heapq
import io
from typing import List, Optional, Tuple

from bitio import BitInputStream, BitOutputStream, END_OF_INPUT
from format import (
    ALPH_SIZE, BITS_PER_WORD, LEAF_VALUE_BITS, PSEUDO_EOF,
    MalformedBodyError, MalformedHeaderError, TruncatedHeaderError,
    read_magic, write_magic,
)


DEBUG_LOW = 1
DEBUG_HIGH = 4


class HuffmanNode:
    def __init__(self, symbol: int = 0, weight: int = 0,
                 left: Optional['HuffmanNode'] = None,
                 right: Optional['HuffmanNode'] = None,
                 order: int = 0):
        self.symbol = symbol
        self.weight = weight
        self.left = left
        self.right = right
        self.order = order

    @property
    def is_leaf(self) -> bool:
        return self.left is None and self.right is None

    def __lt__(self, other):
        return (self.weight, self.order) < (other.weight, other.order)

    def __repr__(self):
        if self.is_leaf:
            return f"Leaf({self.symbol}, {self.weight})"
        return f"Internal({self.weight}, {self.left!r}, {self.right!r})"


class CompressionStats:
    def __init__(self, original_bits: int, compressed_bits: int, header_bits: int):
        self.original_bits = original_bits
        self.compressed_bits = compressed_bits
        self.header_bits = header_bits
        self.body_bits = compressed_bits - header_bits

        self.compression_ratio = (
            compressed_bits / original_bits * 100
            if original_bits > 0 else 0
        )

    def print_stats(self):
        print("Huffman Compression Statistics:")
        print(f"  Original size:       {self.original_bits // 8} bytes")
        print(f"  Header:              {self.header_bits} bits")
        print(f"  Body:                {self.body_bits} bits")
        print(f"  Compressed size:     {(self.compressed_bits + 7) // 8} bytes")
        print(f"  Compression ratio:   {self.compression_ratio:.1f}%")


def count_frequencies(bits_in: BitInputStream) -> List[int]:
    counts = [0] * (ALPH_SIZE + 1)
    counts[PSEUDO_EOF] = 1

    while True:
        value = bits_in.read_bits(BITS_PER_WORD)
        if value == END_OF_INPUT:
            break
        counts[value] += 1

    return counts


def make_tree(counts: List[int]) -> HuffmanNode:
    """Строит дерево Хаффмана жадным слиянием двух самых лёгких узлов.

    При равных весах раньше извлекается узел с меньшим order: листья
    упорядочены по значению символа, внутренние узлы идут после всех
    листьев в порядке создания. Первый извлечённый узел становится
    левым потомком.
    """
    heap = [HuffmanNode(symbol=symbol, weight=count, order=symbol)
            for symbol, count in enumerate(counts) if count > 0]
    heapq.heapify(heap)

    order = PSEUDO_EOF
    while len(heap) > 1:
        left = heapq.heappop(heap)
        right = heapq.heappop(heap)
        order += 1
        heapq.heappush(heap, HuffmanNode(weight=left.weight + right.weight,
                                         left=left, right=right, order=order))

    return heap[0]


def make_codings(root: HuffmanNode) -> List[Optional[str]]:
    codings: List[Optional[str]] = [None] * (ALPH_SIZE + 1)

    def traverse(node: HuffmanNode, path: str):
        if node.is_leaf:
            # Корень-лист получает пустой код
            codings[node.symbol] = path
            return

        traverse(node.left, path + '0')
        traverse(node.right, path + '1')

    traverse(root, '')
    return codings


def write_tree_header(root: HuffmanNode, out: BitOutputStream):
    if root.is_leaf:
        out.write_bits(1, 1)
        out.write_bits(LEAF_VALUE_BITS, root.symbol)
        return

    out.write_bits(1, 0)
    write_tree_header(root.left, out)
    write_tree_header(root.right, out)


def read_tree_header(bits_in: BitInputStream, depth: int = 0) -> HuffmanNode:
    bit = bits_in.read_bits(1)
    if bit == END_OF_INPUT:
        raise TruncatedHeaderError(bits_in.bits_read)

    if bit == 0:
        if depth >= ALPH_SIZE:
            raise MalformedHeaderError("Tree header nested too deeply",
                                       bits_in.bits_read)
        left = read_tree_header(bits_in, depth + 1)
        right = read_tree_header(bits_in, depth + 1)
        return HuffmanNode(left=left, right=right)

    value = bits_in.read_bits(LEAF_VALUE_BITS)
    if value == END_OF_INPUT:
        raise TruncatedHeaderError(bits_in.bits_read)
    if value > PSEUDO_EOF:
        raise MalformedHeaderError(f"Invalid leaf value {value}",
                                   bits_in.bits_read)
    return HuffmanNode(symbol=value)


def _write_code(code: str, out: BitOutputStream):
    if code:
        out.write_bits(len(code), int(code, 2))


def write_compressed_bits(codings: List[Optional[str]], bits_in: BitInputStream,
                          out: BitOutputStream):
    while True:
        value = bits_in.read_bits(BITS_PER_WORD)
        if value == END_OF_INPUT:
            break
        _write_code(codings[value], out)

    _write_code(codings[PSEUDO_EOF], out)


def read_compressed_bits(root: HuffmanNode, bits_in: BitInputStream,
                         out: BitOutputStream) -> int:
    """Декодирует тело, возвращает число записанных байтов.

    Байты, записанные до ошибки, остаются в out.
    """
    if root.is_leaf:
        if root.symbol == PSEUDO_EOF:
            return 0
        raise MalformedHeaderError(f"Tree is a single leaf {root.symbol} "
                                   f"without end of stream", bits_in.bits_read)

    written = 0
    current = root
    while True:
        bit = bits_in.read_bits(1)
        if bit == END_OF_INPUT:
            raise MalformedBodyError(bits_in.bits_read)

        current = current.right if bit else current.left
        if current.is_leaf:
            if current.symbol == PSEUDO_EOF:
                return written
            out.write_bits(BITS_PER_WORD, current.symbol)
            written += 1
            current = root


def _leaf_symbols(node: HuffmanNode) -> List[int]:
    if node.is_leaf:
        return [node.symbol]
    return _leaf_symbols(node.left) + _leaf_symbols(node.right)


class HuffProcessor:
    def __init__(self, debug: int = 0):
        self.debug = debug

    def compress(self, bits_in: BitInputStream, out: BitOutputStream) -> CompressionStats:
        """Сжимает bits_in в out. Вход должен поддерживать reset()."""
        counts = count_frequencies(bits_in)
        original_bits = bits_in.bits_read
        root = make_tree(counts)
        codings = make_codings(root)

        start = out.bits_written
        write_magic(out)
        write_tree_header(root, out)
        header_bits = out.bits_written - start

        bits_in.reset()
        write_compressed_bits(codings, bits_in, out)
        out.flush()

        stats = CompressionStats(original_bits, out.bits_written - start, header_bits)

        if self.debug >= DEBUG_HIGH:
            for symbol, code in enumerate(codings):
                if code is not None:
                    print(f"{symbol}: {code}")
        if self.debug >= DEBUG_LOW:
            distinct = sum(1 for count in counts if count > 0)
            print(f"Symbols: {distinct}, header: {header_bits} bits, "
                  f"body: {stats.body_bits} bits")

        return stats

    def read_header(self, bits_in: BitInputStream) -> Tuple[HuffmanNode, int]:
        """Читает магическое число и дерево, возвращает корень и размер заголовка в битах."""
        start = bits_in.bits_read
        read_magic(bits_in)
        root = read_tree_header(bits_in)
        if root.is_leaf and root.symbol != PSEUDO_EOF:
            raise MalformedHeaderError(f"Tree is a single leaf {root.symbol} "
                                       f"without end of stream", bits_in.bits_read)
        header_bits = bits_in.bits_read - start

        if self.debug >= DEBUG_HIGH:
            print(f"Tree leaves: {_leaf_symbols(root)}")

        return root, header_bits

    def decode_body(self, root: HuffmanNode, header_bits: int,
                    bits_in: BitInputStream, out: BitOutputStream) -> CompressionStats:
        start = bits_in.bits_read
        try:
            written = read_compressed_bits(root, bits_in, out)
        finally:
            out.flush()

        stats = CompressionStats(written * BITS_PER_WORD,
                                 header_bits + bits_in.bits_read - start, header_bits)

        if self.debug >= DEBUG_LOW:
            print(f"Header: {header_bits} bits, body: {stats.body_bits} bits, "
                  f"wrote {written} bytes")

        return stats

    def decompress(self, bits_in: BitInputStream, out: BitOutputStream) -> CompressionStats:
        root, header_bits = self.read_header(bits_in)
        return self.decode_body(root, header_bits, bits_in, out)


def compress_with_huffman(data: bytes) -> bytes:
    output = io.BytesIO()
    HuffProcessor().compress(BitInputStream(io.BytesIO(data)), BitOutputStream(output))
    return output.getvalue()


def decompress_with_huffman(data: bytes) -> bytes:
    output = io.BytesIO()
    HuffProcessor().decompress(BitInputStream(io.BytesIO(data)), BitOutputStream(output))
    return output.getvalue()
