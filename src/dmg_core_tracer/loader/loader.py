# dmg_core_tracer/loader/loader.py
"""
ローダーモジュール。
カートリッジイメージ、起動ROM、およびRGBDS形式のシンボルファイルの読み込みをサポートします。
ファイル入出力の失敗はこの層の責務であり、コアには渡しません。
"""
import logging
import re
from typing import Optional

from dmg_core_tracer.common.errors import InvalidCartridge
from dmg_core_tracer.common.types import SymbolMap
from dmg_core_tracer.cartridge.cartridge import Cartridge, BOOT_ROM_SIZE

logger = logging.getLogger(__name__)


class CartridgeLoader:
    """
    ROMイメージを検証し、Cartridgeを生成するローダー。
    """
    # @intent:responsibility バイト列からCartridgeを生成します。
    # @intent:post-condition イメージ長がヘッダのROMサイズと一致しない場合はInvalidCartridgeを送出します。
    def load_from_bytes(self, rom: bytes) -> Cartridge:
        cartridge = Cartridge.from_bytes(rom)
        header = cartridge.header
        if len(rom) != header.rom_size:
            raise InvalidCartridge(
                f"ROM image size ({len(rom)} bytes) does not match header ({header.rom_size} bytes)."
            )
        if not header.checksum_valid:
            logger.warning("Header checksum mismatch for '%s'.", header.title)
        logger.info(
            "Loaded cartridge '%s' (%s, ROM %d KiB, RAM %d KiB)",
            header.title, header.controller.value, header.rom_size // 1024, header.ram_size // 1024,
        )
        return cartridge

    def load_from_file(self, file_path: str) -> Cartridge:
        with open(file_path, "rb") as f:
            rom = f.read()
        return self.load_from_bytes(rom)


# @intent:responsibility 256バイトの起動ROMを読み込みます。
def load_boot_rom(file_path: Optional[str]) -> Optional[bytes]:
    if not file_path:
        return None
    with open(file_path, "rb") as f:
        data = f.read()
    if len(data) != BOOT_ROM_SIZE:
        raise ValueError(f"Boot ROM '{file_path}' must be {BOOT_ROM_SIZE} bytes, got {len(data)}.")
    return data


_SYM_LINE = re.compile(r"^([0-9A-Fa-f]{2}):([0-9A-Fa-f]{4})\s+(\S+)")


class SymbolFileLoader:
    """
    RGBDS形式のシンボルファイル (.sym) を解析し、SymbolMapを返すローダー。
    各行は "BB:AAAA label" の形式です。バンク番号は無視します。
    """
    def parse(self, text: str) -> SymbolMap:
        symbol_map: SymbolMap = {}
        for line in text.splitlines():
            line = line.split(";", 1)[0].strip()
            if not line:
                continue
            match = _SYM_LINE.match(line)
            if not match:
                raise ValueError(f"Invalid symbol line: {line}")
            symbol_map[match.group(3)] = int(match.group(2), 16)
        return symbol_map

    def load(self, file_path: str) -> SymbolMap:
        with open(file_path, "r", encoding="utf-8") as f:
            return self.parse(f.read())
