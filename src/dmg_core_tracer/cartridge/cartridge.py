"""
カートリッジとバス上のデバイス。

ROM領域(0x0000-0x7FFF)への書き込みはバンクコントローラの制御レジスタとして扱い、
外部RAM領域(0xA000-0xBFFF)はバンクコントローラが選んだRAMバンクへ委譲します。
"""
import logging
from typing import Optional

from dmg_core_tracer.transport.bus import Device
from dmg_core_tracer.cartridge.header import CartridgeHeader, parse_header
from dmg_core_tracer.cartridge.mbc import BankController, create_controller

logger = logging.getLogger(__name__)

BOOT_ROM_SIZE = 0x100


# @intent:responsibility ヘッダとバンクコントローラの組を保持します。
class Cartridge:
    def __init__(self, header: CartridgeHeader, controller: BankController):
        self.header = header
        self.controller = controller

    # @intent:responsibility ROMイメージからヘッダを解析し、対応するバンクコントローラを選択します。
    @classmethod
    def from_bytes(cls, rom: bytes) -> "Cartridge":
        header = parse_header(rom)
        return cls(header, create_controller(header, rom))

    @property
    def title(self) -> str:
        return self.header.title

    def reset(self) -> None:
        self.controller.reset()


# @intent:responsibility 0x0000-0x7FFFのROM窓。起動ROMが与えられた場合は0x0000-0x00FFに重ねて見せます。
class CartridgeRomDevice(Device):
    def __init__(self, cartridge: Cartridge, boot_rom: Optional[bytes] = None):
        if boot_rom is not None and len(boot_rom) != BOOT_ROM_SIZE:
            raise ValueError(f"Boot ROM must be exactly {BOOT_ROM_SIZE} bytes, got {len(boot_rom)}.")
        self._cartridge = cartridge
        self._boot_rom = bytes(boot_rom) if boot_rom is not None else None
        self.boot_enabled = self._boot_rom is not None

    def read(self, address: int) -> int:
        if self.boot_enabled and address < BOOT_ROM_SIZE:
            return self._boot_rom[address]
        return self._cartridge.controller.read_rom(address)

    def write(self, address: int, data: int) -> None:
        self._cartridge.controller.write_control(address, data)

    # @intent:responsibility 0xFF50への書き込みで起動ROMの重ね合わせを解除します。値は問いません。
    def disable_boot_overlay(self, value: int) -> None:
        if self.boot_enabled:
            logger.info("Boot ROM overlay disabled.")
        self.boot_enabled = False

    # @intent:responsibility リセット時、起動ROMがあれば再び重ね合わせを有効にします。
    def reset(self) -> None:
        self.boot_enabled = self._boot_rom is not None


class ExternalRamDevice(Device):
    def __init__(self, cartridge: Cartridge):
        self._cartridge = cartridge

    def read(self, address: int) -> int:
        return self._cartridge.controller.read_ram(address)

    def write(self, address: int, data: int) -> None:
        self._cartridge.controller.write_ram(address, data)
