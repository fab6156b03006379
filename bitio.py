"""
Побитовый ввод/вывод поверх двоичных файловых объектов.

Биты пишутся и читаются начиная со старшего бита каждого байта.
"""

from typing import BinaryIO

END_OF_INPUT = -1

BUFFER_SIZE = 4096


class BitInputStream:
    def __init__(self, source: BinaryIO):
        self.source = source
        self._start = source.tell() if source.seekable() else 0
        self._chunk = b''
        self._chunk_pos = 0
        self._buffer = 0
        self._bit_count = 0
        self.bits_read = 0

    def _next_byte(self) -> int:
        if self._chunk_pos >= len(self._chunk):
            self._chunk = self.source.read(BUFFER_SIZE)
            self._chunk_pos = 0
            if not self._chunk:
                return END_OF_INPUT

        byte = self._chunk[self._chunk_pos]
        self._chunk_pos += 1
        return byte

    def read_bits(self, count: int) -> int:
        """Возвращает следующие count бит или END_OF_INPUT, если их не хватает."""
        while self._bit_count < count:
            byte = self._next_byte()
            if byte == END_OF_INPUT:
                return END_OF_INPUT
            self._buffer = (self._buffer << 8) | byte
            self._bit_count += 8

        self._bit_count -= count
        value = (self._buffer >> self._bit_count) & ((1 << count) - 1)
        self._buffer &= (1 << self._bit_count) - 1
        self.bits_read += count
        return value

    def reset(self):
        self.source.seek(self._start)
        self._chunk = b''
        self._chunk_pos = 0
        self._buffer = 0
        self._bit_count = 0
        self.bits_read = 0

    def close(self):
        self.source.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class BitOutputStream:
    def __init__(self, sink: BinaryIO):
        self.sink = sink
        self._pending = bytearray()
        self._buffer = 0
        self._bit_count = 0
        self.bits_written = 0

    def write_bits(self, count: int, value: int):
        if count < 0:
            raise ValueError(f"Cannot write a negative number of bits: {count}")
        if count == 0:
            return

        self._buffer = (self._buffer << count) | (value & ((1 << count) - 1))
        self._bit_count += count
        self.bits_written += count

        while self._bit_count >= 8:
            self._bit_count -= 8
            self._pending.append((self._buffer >> self._bit_count) & 0xFF)
        self._buffer &= (1 << self._bit_count) - 1

        if len(self._pending) >= BUFFER_SIZE:
            self.sink.write(self._pending)
            self._pending.clear()

    def flush(self):
        # Неполный последний байт дополняется нулями
        if self._bit_count > 0:
            self._pending.append((self._buffer << (8 - self._bit_count)) & 0xFF)
            self._buffer = 0
            self._bit_count = 0

        if self._pending:
            self.sink.write(self._pending)
            self._pending.clear()
        self.sink.flush()

    def close(self):
        self.flush()
        self.sink.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
