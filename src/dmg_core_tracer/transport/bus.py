# dmg_core_tracer/transport/bus.py
"""
Transport Layer (共通バス)

このモジュールは、16bitアドレス空間を抽象化し、
読み書きアクセスを適切なデバイスに委譲する責務を負います。
どのデバイスにも属さないアドレスはエラーではなく、オープンバス値を返します。
"""
from abc import ABC, abstractmethod
from bisect import bisect_right
from typing import Callable, List, Optional, Tuple
from dataclasses import dataclass
from enum import Enum

# @intent:constant どのデバイスも応答しないアドレスを読んだときに返る固定値。
OPEN_BUS = 0xFF

ADDRESS_MASK = 0xFFFF

# @intent:responsibility バスアクセスを記録するためのタイプを定義します。
class BusAccessType(Enum):
    READ = "READ"
    WRITE = "WRITE"

# @intent:responsibility 個々のバスアクセス操作を記録します。
@dataclass(frozen=True) # 不変データ構造
class BusAccess:
    """
    バス上で行われた単一のアクセス（読み込みまたは書き込み）を記録するデータクラス。
    """
    address: int
    data: int # 8bit value
    access_type: BusAccessType

# @intent:responsibility バスの抽象デバイスインターフェースを定義します。
class Device(ABC):
    """
    バスに接続されるデバイスの抽象基底クラス。
    全てのデバイスはreadとwriteのインターフェースを実装する必要があります。
    アドレスはデバイス内でのオフセットとして渡されます。
    """
    @abstractmethod
    def read(self, address: int) -> int:
        """指定されたオフセットから8bitのデータを読み出します。"""
        pass

    @abstractmethod
    def write(self, address: int, data: int) -> None:
        """指定されたオフセットに8bitのデータを書き込みます。"""
        pass

    # @intent:responsibility アクセス制限や副作用を無視して内容を覗き見ます。
    # @intent:rationale デバッガはCPUから見えない期間（PPU描画中のVRAMなど）でも内容を表示したいため、
    #                  readとは別の入口を用意します。既定ではreadと同じです。
    def peek(self, address: int) -> int:
        return self.read(address)

# @intent:responsibility 基本的なRAMデバイスの機能を提供します。
class RAM(Device):
    """
    汎用のRAMデバイス。WRAM、HRAM、外部RAMなどに使用されます。
    """
    # @intent:pre-condition sizeは正の整数である必要があります。
    def __init__(self, size: int, fill: int = 0x00):
        if not isinstance(size, int) or size <= 0:
            raise ValueError("RAM size must be a positive integer.")
        self._memory = bytearray([fill]) * size
        self._size = size

    def read(self, address: int) -> int:
        if not 0 <= address < self._size:
            raise IndexError(f"Address {address} out of bounds for RAM of size {self._size}.")
        return self._memory[address]

    def write(self, address: int, data: int) -> None:
        if not 0 <= address < self._size:
            raise IndexError(f"Address {address} out of bounds for RAM of size {self._size}.")
        if not 0 <= data <= 0xFF:
            raise ValueError(f"Data {data} is not an 8-bit value.")
        self._memory[address] = data

    def get_size(self) -> int:
        return self._size

    # @intent:responsibility 内容全体を初期化します。リセット時に使用します。
    def clear(self, fill: int = 0x00) -> None:
        for i in range(self._size):
            self._memory[i] = fill

# @intent:responsibility 読み込み専用メモリ(ROM)の機能を提供します。
class ROM(RAM):
    """
    読み込み専用メモリデバイス。
    バス経由の書き込みは無視されます。初期化には load_data を使用します。
    """
    def write(self, address: int, data: int) -> None:
        if not 0 <= address < self._size:
            raise IndexError(f"Address {address} out of bounds for ROM of size {self._size}.")
        # Intentional: ROM writes are ignored as per hardware behavior.
        pass

    # @intent:responsibility ROMの内容を初期化するためのバックドアメソッドです。
    def load_data(self, address: int, data: int) -> None:
        super().write(address, data)

# @intent:responsibility 別のデバイスの内容を固定オフセットで映し出すミラー領域を提供します。
class MirrorDevice(Device):
    """
    エコーRAMのように、対象デバイスの先頭から同じ内容を見せるデバイス。
    """
    def __init__(self, target: Device, size: int):
        self._target = target
        self._size = size

    def read(self, address: int) -> int:
        return self._target.read(address)

    def write(self, address: int, data: int) -> None:
        self._target.write(address, data)

    def peek(self, address: int) -> int:
        return self._target.peek(address)

    def get_size(self) -> int:
        return self._size

# @intent:responsibility 単一アドレスのレジスタを読み書き関数で表すデバイスです（IEレジスタなど）。
class RegisterDevice(Device):
    def __init__(self, reader: Callable[[], int], writer: Callable[[int], None]):
        self._reader = reader
        self._writer = writer

    def read(self, address: int) -> int:
        return self._reader()

    def write(self, address: int, data: int) -> None:
        self._writer(data)

# @intent:responsibility メモリアドレス空間を管理し、デバイスへのアクセスをディスパッチする共通バス。
# @intent:rationale トレースが有効な間は全てのアクセスを記録し、Snapshotに含めることでシステムの観測可能性を高めます。
class Bus:
    """
    16bitアドレス空間を管理し、デバイスへのアクセスをディスパッチする共通バス。
    全てのアドレスは高々1つのデバイスに属し、どれにも属さないアドレスは
    読み込みでOPEN_BUSを返し、書き込みは無視されます。
    """
    def __init__(self):
        # (start_address, end_address, device) のタプルリスト。開始アドレス順に保持する。
        self._memory_map: List[Tuple[int, int, Device]] = []
        self._starts: List[int] = []
        self._bus_activity_log: List[BusAccess] = []
        self._tracing: bool = False

    # @intent:responsibility アクセス記録の有効/無効を切り替えます。
    # @intent:rationale 通常実行中にログが肥大化しないよう、デバッガがトレースする間だけ記録します。
    def set_tracing(self, enabled: bool) -> None:
        self._tracing = enabled
        if not enabled:
            self._bus_activity_log = []

    @property
    def tracing(self) -> bool:
        return self._tracing

    def _log_access(self, address: int, data: int, access_type: BusAccessType) -> None:
        self._bus_activity_log.append(BusAccess(address=address, data=data, access_type=access_type))

    # @intent:responsibility 記録されたバスアクティビティログを取得し、クリアします。
    def get_and_clear_activity_log(self) -> List[BusAccess]:
        log = self._bus_activity_log
        self._bus_activity_log = []
        return log

    # @intent:responsibility 指定されたアドレス範囲にデバイスを登録します。
    # @intent:pre-condition 範囲は0x0000-0xFFFF内で、既存の範囲と重複してはいけません。
    def register_device(self, start_address: int, end_address: int, device: Device) -> None:
        """
        指定されたアドレス範囲にデバイスを登録します。
        1つのアドレスが複数のデバイスに属することは許されません。
        """
        if not (0 <= start_address <= end_address <= ADDRESS_MASK):
            raise ValueError("Invalid address range: start_address must be <= end_address within 0x0000-0xFFFF.")
        if not isinstance(device, Device):
            raise TypeError("Device must be an instance of a class derived from Device.")

        if isinstance(device, (RAM, MirrorDevice)):
            expected_size = end_address - start_address + 1
            if device.get_size() != expected_size:
                raise ValueError(
                    f"Registered {type(device).__name__} device size ({device.get_size()} bytes) does not match "
                    f"the specified address range size ({expected_size} bytes)."
                )

        for start, end, _ in self._memory_map:
            if start_address <= end and start <= end_address:
                raise ValueError(
                    f"Address range {start_address:#06x}-{end_address:#06x} overlaps {start:#06x}-{end:#06x}."
                )

        index = bisect_right(self._starts, start_address)
        self._starts.insert(index, start_address)
        self._memory_map.insert(index, (start_address, end_address, device))

    # @intent:responsibility 指定されたアドレスに対応するデバイスとオフセットを検索します。
    # @intent:post-condition デバイスが見つからなかった場合はNoneを返します。
    def _find_device(self, address: int) -> Optional[Tuple[Device, int]]:
        index = bisect_right(self._starts, address) - 1
        if index < 0:
            return None
        start, end, device = self._memory_map[index]
        if address > end:
            return None
        return device, address - start

    def read(self, address: int) -> int:
        """
        指定されたアドレスから8bitのデータを読み出します。
        """
        address &= ADDRESS_MASK
        found = self._find_device(address)
        data = OPEN_BUS if found is None else found[0].read(found[1])
        if self._tracing:
            self._log_access(address, data, BusAccessType.READ)
        return data

    # @intent:responsibility ログ記録やアクセス制限なしに指定されたアドレスの内容を読み出します。
    def peek(self, address: int) -> int:
        """
        デバッガなどのインスペクタ用。副作用を持ちません。
        """
        address &= ADDRESS_MASK
        found = self._find_device(address)
        if found is None:
            return OPEN_BUS
        return found[0].peek(found[1])

    def write(self, address: int, data: int) -> None:
        """
        指定されたアドレスに8bitのデータを書き込みます。
        """
        address &= ADDRESS_MASK
        data &= 0xFF
        found = self._find_device(address)
        if found is not None:
            found[0].write(found[1], data)
        if self._tracing:
            self._log_access(address, data, BusAccessType.WRITE)

    # @intent:responsibility 2バイトのリトルエンディアン値を読み出します。
    def read_word(self, address: int) -> int:
        low = self.read(address)
        high = self.read(address + 1)
        return (high << 8) | low

    def write_word(self, address: int, value: int) -> None:
        self.write(address, value & 0xFF)
        self.write(address + 1, (value >> 8) & 0xFF)
