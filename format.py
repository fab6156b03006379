"""
Определяет константы формата сжатого файла, ошибки разбора
и чтение/запись магического числа.

Сжатый файл: 32-битное магическое число, дерево в прямом обходе,
затем коды символов, завершённые кодом PSEUDO_EOF.
"""

from bitio import BitInputStream, BitOutputStream, END_OF_INPUT


BITS_PER_WORD = 8
BITS_PER_INT = 32
ALPH_SIZE = 1 << BITS_PER_WORD
PSEUDO_EOF = ALPH_SIZE
LEAF_VALUE_BITS = BITS_PER_WORD + 1

HUFF_NUMBER = 0xFACE8200
HUFF_TREE = HUFF_NUMBER | 1


class HuffException(ValueError):
    pass


class BadMagicError(HuffException):
    def __init__(self, value: int):
        self.value = value
        if value == END_OF_INPUT:
            message = "Input too short to hold a header"
        else:
            message = f"Illegal header starts with 0x{value:08x}"
        super().__init__(message)


class TruncatedHeaderError(HuffException):
    def __init__(self, position: int):
        self.position = position
        super().__init__(f"Tree header truncated at bit {position}")


class MalformedHeaderError(HuffException):
    def __init__(self, message: str, position: int):
        self.position = position
        super().__init__(f"{message} (bit {position})")


class MalformedBodyError(HuffException):
    def __init__(self, position: int):
        self.position = position
        super().__init__(f"Compressed data ended at bit {position} before end of stream")


def write_magic(out: BitOutputStream):
    out.write_bits(BITS_PER_INT, HUFF_TREE)


def read_magic(bits_in: BitInputStream) -> int:
    value = bits_in.read_bits(BITS_PER_INT)
    if value != HUFF_TREE:
        raise BadMagicError(value)
    return value
