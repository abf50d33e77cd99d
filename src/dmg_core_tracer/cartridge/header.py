"""
カートリッジヘッダ (0x0134-0x014F) の解析。

コアが必要とするのはバンクコントローラの種別とROM/RAMサイズだけですが、
デバッガ表示用にタイトルとチェックサムも保持します。
"""
from dataclasses import dataclass
from enum import Enum

from dmg_core_tracer.common.errors import InvalidCartridge

HEADER_END = 0x0150
TITLE_START = 0x0134
TITLE_END = 0x0144
CARTRIDGE_TYPE = 0x0147
ROM_SIZE = 0x0148
RAM_SIZE = 0x0149
HEADER_CHECKSUM = 0x014D

KIB = 1024


# @intent:responsibility コアが対応するバンクコントローラの種別です。
class ControllerKind(Enum):
    NONE = "NONE"
    MBC1 = "MBC1"


# @intent:constant カートリッジタイプバイトと (コントローラ種別, 外部RAMの有無, バッテリの有無) の対応。
CARTRIDGE_TYPES = {
    0x00: (ControllerKind.NONE, False, False),
    0x01: (ControllerKind.MBC1, False, False),
    0x02: (ControllerKind.MBC1, True, False),
    0x03: (ControllerKind.MBC1, True, True),
    0x08: (ControllerKind.NONE, True, False),
    0x09: (ControllerKind.NONE, True, True),
}

RAM_SIZES = {
    0x00: 0,
    0x01: 2 * KIB,
    0x02: 8 * KIB,
    0x03: 32 * KIB,
    0x04: 128 * KIB,
    0x05: 64 * KIB,
}


@dataclass(frozen=True)
class CartridgeHeader:
    title: str
    cartridge_type: int
    controller: ControllerKind
    has_ram: bool
    has_battery: bool
    rom_size: int
    ram_size: int
    header_checksum: int
    checksum_valid: bool


def _parse_title(rom: bytes) -> str:
    chars = []
    for value in rom[TITLE_START:TITLE_END]:
        if value < 0x20 or value >= 0x7F:
            break
        chars.append(chr(value))
    return "".join(chars)


def compute_header_checksum(rom: bytes) -> int:
    checksum = 0
    for value in rom[TITLE_START:HEADER_CHECKSUM]:
        checksum = (checksum - value - 1) & 0xFF
    return checksum


# @intent:responsibility ROMイメージの先頭からヘッダを解析します。
# @intent:post-condition 未対応のカートリッジタイプやサイズコードの場合はInvalidCartridgeを送出します。
def parse_header(rom: bytes) -> CartridgeHeader:
    """
    ROMイメージのヘッダを解析し、CartridgeHeaderを返します。
    """
    if len(rom) < HEADER_END:
        raise InvalidCartridge(f"ROM image too small to contain a header ({len(rom)} bytes).")

    cartridge_type = rom[CARTRIDGE_TYPE]
    if cartridge_type not in CARTRIDGE_TYPES:
        raise InvalidCartridge(f"Unsupported cartridge type ${cartridge_type:02X}.")
    controller, has_ram, has_battery = CARTRIDGE_TYPES[cartridge_type]

    rom_code = rom[ROM_SIZE]
    if rom_code > 0x08:
        raise InvalidCartridge(f"Unsupported ROM size code ${rom_code:02X}.")

    ram_code = rom[RAM_SIZE]
    if ram_code not in RAM_SIZES:
        raise InvalidCartridge(f"Unsupported RAM size code ${ram_code:02X}.")

    return CartridgeHeader(
        title=_parse_title(rom),
        cartridge_type=cartridge_type,
        controller=controller,
        has_ram=has_ram,
        has_battery=has_battery,
        rom_size=32 * KIB << rom_code,
        ram_size=RAM_SIZES[ram_code] if has_ram else 0,
        header_checksum=rom[HEADER_CHECKSUM],
        checksum_valid=compute_header_checksum(rom) == rom[HEADER_CHECKSUM],
    )
