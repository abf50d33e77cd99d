# tests/config/test_config.py
"""
dmg_core_tracer.configパッケージの単体テスト。
YAML構成の解析と、構成からのシステム組み立てを検証します。
"""
import pytest

from dmg_core_tracer.config.loader import ConfigLoader
from dmg_core_tracer.config.builder import SystemBuilder
from dmg_core_tracer.config.models import SystemConfig, CpuInitialState
from dmg_core_tracer.common.errors import InvalidCartridge

# @intent:test_suite 構成ファイルの読み込みと検証、GameBoyの生成を検証します。

class TestConfigLoader:
    # @intent:test_case_defaults 空の構成は既定値になることを検証します。
    def test_empty_config_uses_defaults(self):
        config = ConfigLoader().load_from_string("")
        assert config == SystemConfig()

    def test_full_config(self):
        text = """
        model: dmg
        boot_rom: roms/dmg_boot.bin
        strict_vram_access: false
        halt_bug: false
        initial_state:
          pc: "$0150"
          sp: 0xDFFF
          registers:
            A: 0x11
            HL: "$C000"
        """
        config = ConfigLoader().load_from_string(text)
        assert config.model == "DMG"
        assert config.boot_rom == "roms/dmg_boot.bin"
        assert config.strict_vram_access is False
        assert config.halt_bug is False
        assert config.initial_state.pc == 0x0150
        assert config.initial_state.sp == 0xDFFF
        assert config.initial_state.registers == {"a": 0x11, "hl": 0xC000}

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "system.yaml"
        path.write_text("halt_bug: false\n")
        assert ConfigLoader().load_from_file(str(path)).halt_bug is False

    @pytest.mark.parametrize("text, message", [
        ("- a\n- b\n", "mapping"),
        ("model: CGB\n", "Unsupported model"),
        ("boot_rom: 12\n", "boot_rom"),
        ("halt_bug: yes please\n", "halt_bug"),
        ("initial_state:\n  registers:\n    IX: 1\n", "Unknown register"),
        ("initial_state:\n  registers:\n    A: 0x100\n", "out of range"),
        ("initial_state:\n  registers:\n    F: 0x0F\n", "out of range"),
        ("initial_state:\n  pc: 0x10000\n", "out of range"),
    ])
    def test_invalid_config(self, text, message):
        with pytest.raises(ValueError, match=message):
            ConfigLoader().load_from_string(text)

    def test_as_overrides(self):
        state = CpuInitialState(pc=0x0150, registers={"a": 0x22})
        assert state.as_overrides() == {"a": 0x22, "pc": 0x0150}


class TestSystemBuilder:
    def test_build(self, make_rom):
        config = SystemConfig(
            strict_vram_access=False,
            halt_bug=False,
            initial_state=CpuInitialState(pc=0x0150, registers={"a": 0x42}),
        )
        gameboy = SystemBuilder().build(config, make_rom(title=b"BUILT"))
        assert gameboy.cartridge.title == "BUILT"
        assert gameboy.ppu.strict_access is False
        assert gameboy.cpu.halt_bug_enabled is False
        assert gameboy.cpu.get_state().pc == 0x0150
        assert gameboy.cpu.get_state().a == 0x42

    def test_build_with_boot_rom_file(self, make_rom, tmp_path):
        boot = tmp_path / "boot.bin"
        boot.write_bytes(bytes([0x31]) + bytes(255))
        config = SystemConfig(boot_rom=str(boot))
        gameboy = SystemBuilder().build(config, make_rom())
        assert gameboy.boot_rom_active
        assert gameboy.bus.read(0x0000) == 0x31

    def test_build_from_file(self, make_rom, tmp_path):
        rom = tmp_path / "game.gb"
        rom.write_bytes(make_rom(title=b"DISK"))
        gameboy = SystemBuilder().build_from_file(SystemConfig(), str(rom))
        assert gameboy.cartridge.title == "DISK"

    def test_invalid_rom_propagates(self, make_rom):
        with pytest.raises(InvalidCartridge):
            SystemBuilder().build(SystemConfig(), make_rom(cartridge_type=0x05))
