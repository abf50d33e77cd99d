"""
I/Oレジスタ領域 (0xFF00-0xFF7F) のデバイス。

レジスタごとに所有コンポーネントの読み書き関数を登録し、
登録のないアドレスのうちサウンドレジスタ領域は単純な記憶領域として振る舞い、
それ以外の未使用アドレスはオープンバス値を返し、書き込みを無視します。
"""
from typing import Callable, Dict, Optional

from dmg_core_tracer.transport.bus import Device, OPEN_BUS
from dmg_core_tracer.hardware.registers import IO_START, IO_END, SOUND_START, SOUND_END

Reader = Callable[[], int]
Writer = Callable[[int], None]


# @intent:responsibility 書き込みを受け付けないレジスタ（LYなど）に使う書き込み関数です。
def ignore_write(value: int) -> None:
    # Intentional: read-only register.
    pass


class IoRegisters(Device):
    """
    I/Oレジスタ領域をディスパッチするデバイス。
    """
    SIZE = IO_END - IO_START + 1

    def __init__(self):
        self._storage = bytearray([0xFF]) * self.SIZE
        self._readers: Dict[int, Reader] = {}
        self._writers: Dict[int, Writer] = {}

    # @intent:responsibility 絶対アドレスで指定したレジスタに読み書き関数を割り当てます。
    # @intent:pre-condition addressはI/O領域内である必要があります。
    def map_register(self, address: int, reader: Optional[Reader] = None, writer: Optional[Writer] = None) -> None:
        if not IO_START <= address <= IO_END:
            raise ValueError(f"Address {address:#06x} is not an I/O register.")
        offset = address - IO_START
        if reader is not None:
            self._readers[offset] = reader
        if writer is not None:
            self._writers[offset] = writer

    def get_size(self) -> int:
        return self.SIZE

    @staticmethod
    def _is_storage(address: int) -> bool:
        return SOUND_START - IO_START <= address <= SOUND_END - IO_START

    def read(self, address: int) -> int:
        reader = self._readers.get(address)
        if reader is not None:
            return reader()
        if self._is_storage(address):
            return self._storage[address]
        return OPEN_BUS

    def write(self, address: int, data: int) -> None:
        writer = self._writers.get(address)
        if writer is not None:
            writer(data)
        elif self._is_storage(address):
            self._storage[address] = data

    def reset(self) -> None:
        for i in range(self.SIZE):
            self._storage[i] = 0xFF
