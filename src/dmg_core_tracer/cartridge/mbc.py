"""
カートリッジのバンクコントローラ。

ロード時に種別ごとの実装を1つ選び、以後は変更しません。
各実装は read_rom / write_control / read_ram / write_ram の4操作を提供します。
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from dmg_core_tracer.transport.bus import OPEN_BUS
from dmg_core_tracer.cartridge.header import CartridgeHeader, ControllerKind

logger = logging.getLogger(__name__)

ROM_BANK_SIZE = 0x4000
RAM_BANK_SIZE = 0x2000


# @intent:responsibility バンク切り替え式カートリッジの可変状態を保持します。
@dataclass
class CartridgeState:
    rom_bank_low: int = 1   # 5bitレジスタ (0x2000-0x3FFF)
    rom_bank_high: int = 0  # 2bitレジスタ (0x4000-0x5FFF)
    ram_enabled: bool = False
    banking_mode: int = 0   # 0: ROMバンキング, 1: RAMバンキング


class BankController(ABC):
    """
    バンクコントローラの抽象基底クラス。
    ROMアドレスは0x0000-0x7FFF、RAMアドレスは外部RAM領域内のオフセット(0x0000-0x1FFF)です。
    """
    def __init__(self, rom: bytes, ram_size: int):
        self._rom = bytes(rom)
        self.ram = bytearray([0xFF]) * ram_size

    @property
    def rom_bank_count(self) -> int:
        return max(1, len(self._rom) // ROM_BANK_SIZE)

    @property
    def ram_bank_count(self) -> int:
        return len(self.ram) // RAM_BANK_SIZE

    # @intent:responsibility 固定マッピングの実装では状態を持たないためNoneを返します。
    @property
    def state(self) -> Optional[CartridgeState]:
        return None

    @abstractmethod
    def read_rom(self, address: int) -> int:
        pass

    @abstractmethod
    def write_control(self, address: int, value: int) -> None:
        pass

    @abstractmethod
    def read_ram(self, offset: int) -> int:
        pass

    @abstractmethod
    def write_ram(self, offset: int, value: int) -> None:
        pass

    def reset(self) -> None:
        pass


# @intent:responsibility 固定マッピングの32KiB ROM（任意で8KiBまでのRAM）を提供します。
class NoMbc(BankController):
    def read_rom(self, address: int) -> int:
        if address < len(self._rom):
            return self._rom[address]
        return OPEN_BUS

    def write_control(self, address: int, value: int) -> None:
        # Intentional: no banking hardware, control writes are ignored.
        pass

    def read_ram(self, offset: int) -> int:
        if offset < len(self.ram):
            return self.ram[offset]
        return OPEN_BUS

    def write_ram(self, offset: int, value: int) -> None:
        if offset < len(self.ram):
            self.ram[offset] = value


class Mbc1(BankController):
    """
    MBC1。最大2MiBのROMと32KiBのRAMを扱います。

    0x0000-0x1FFF: RAM許可 (下位4bitが0xAで有効)
    0x2000-0x3FFF: ROMバンク番号の下位5bit (0は1として扱う)
    0x4000-0x5FFF: RAMバンク番号、またはROMバンク番号の上位2bit
    0x6000-0x7FFF: バンキングモード選択
    """
    def __init__(self, rom: bytes, ram_size: int):
        super().__init__(rom, ram_size)
        self._state = CartridgeState()

    @property
    def state(self) -> CartridgeState:
        return self._state

    def reset(self) -> None:
        self._state = CartridgeState()

    # @intent:rationale バンク数は2のべき乗なので、存在しないバンク番号は上位ビットを落として折り返します。
    def _mask_rom_bank(self, bank: int) -> int:
        return bank & (self.rom_bank_count - 1)

    @property
    def current_rom_bank(self) -> int:
        s = self._state
        return self._mask_rom_bank((s.rom_bank_high << 5) | s.rom_bank_low)

    @property
    def current_ram_bank(self) -> int:
        if self.ram_bank_count == 0:
            return 0
        bank = self._state.rom_bank_high if self._state.banking_mode else 0
        return bank & (self.ram_bank_count - 1)

    def read_rom(self, address: int) -> int:
        if address < ROM_BANK_SIZE:
            bank = self._mask_rom_bank(self._state.rom_bank_high << 5) if self._state.banking_mode else 0
        else:
            bank = self.current_rom_bank
        return self._rom[bank * ROM_BANK_SIZE + (address & (ROM_BANK_SIZE - 1))]

    def write_control(self, address: int, value: int) -> None:
        s = self._state
        if address < 0x2000:
            s.ram_enabled = (value & 0x0F) == 0x0A
        elif address < 0x4000:
            bank = value & 0b0001_1111
            # バンク0の選択はバンク1として扱われる（実機の仕様）
            s.rom_bank_low = bank if bank else 1
            logger.debug("MBC1 ROM bank -> %d", self.current_rom_bank)
        elif address < 0x6000:
            s.rom_bank_high = value & 0b11
        else:
            s.banking_mode = value & 1

    def read_ram(self, offset: int) -> int:
        if not self._state.ram_enabled or not self.ram:
            return OPEN_BUS
        return self.ram[(self.current_ram_bank * RAM_BANK_SIZE + offset) % len(self.ram)]

    def write_ram(self, offset: int, value: int) -> None:
        if not self._state.ram_enabled or not self.ram:
            return
        self.ram[(self.current_ram_bank * RAM_BANK_SIZE + offset) % len(self.ram)] = value


# @intent:responsibility ヘッダに記載された種別に応じてバンクコントローラを生成します。
def create_controller(header: CartridgeHeader, rom: bytes) -> BankController:
    if header.controller == ControllerKind.MBC1:
        return Mbc1(rom, header.ram_size)
    return NoMbc(rom, header.ram_size)
