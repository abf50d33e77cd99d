# tests/conftest.py
"""
テスト全体で共有するフィクスチャ。
"""
import pytest

# @intent:test_helper 有効なヘッダを持つROMイメージを組み立てるファクトリを提供します。
@pytest.fixture
def make_rom():
    def _make_rom(program: bytes = b"", origin: int = 0x0100, cartridge_type: int = 0x00,
                  rom_code: int = 0x00, ram_code: int = 0x00, title: bytes = b"TEST",
                  patches: dict = None) -> bytes:
        rom = bytearray(0x8000 << rom_code)
        rom[0x0134:0x0134 + len(title)] = title
        rom[0x0147] = cartridge_type
        rom[0x0148] = rom_code
        rom[0x0149] = ram_code
        rom[origin:origin + len(program)] = program
        for address, value in (patches or {}).items():
            rom[address] = value
        checksum = 0
        for value in rom[0x0134:0x014D]:
            checksum = (checksum - value - 1) & 0xFF
        rom[0x014D] = checksum
        return bytes(rom)
    return _make_rom
