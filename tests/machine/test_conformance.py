# tests/machine/test_conformance.py
"""
dmg_core_tracer.machine.conformanceモジュールの単体テスト。
シリアルへ結果を出力する小さなプログラムを組み立てて実行します。
"""
import logging

import pytest

from dmg_core_tracer.cartridge.cartridge import Cartridge
from dmg_core_tracer.machine.gameboy import GameBoy
from dmg_core_tracer.machine.conformance import run_until_serial

# @intent:test_suite シリアル出力の監視による合否判定と打ち切りを検証します。

# 0x0150: HLの指す0終端文字列をシリアルへ1文字ずつ送り、終端で停止する
PRINT_STRING = bytes([
    0x21, 0x60, 0x01,  # LD HL,$0160
    0x2A,              # loop: LD A,(HL+)
    0xB7,              # OR A
    0x28, 0xFE,        # JR Z,@ (停止)
    0xE0, 0x01,        # LDH ($FF01),A
    0x3E, 0x81,        # LD A,$81
    0xE0, 0x02,        # LDH ($FF02),A
    0x18, 0xF4,        # JR loop
    0x00,
])
JUMP_TO_MAIN = {0x0100: 0xC3, 0x0101: 0x50, 0x0102: 0x01}


@pytest.fixture
def printing_gameboy(make_rom):
    def _make(text: bytes) -> GameBoy:
        rom = make_rom(PRINT_STRING + text + b"\x00", origin=0x0150, patches=JUMP_TO_MAIN)
        return GameBoy(Cartridge.from_bytes(rom))
    return _make


class TestRunUntilSerial:
    # @intent:test_case_pass 出力に成功の印が現れたら合格として終了することを検証します。
    def test_passed(self, printing_gameboy):
        result = run_until_serial(printing_gameboy(b"cpu_instrs\n\nPassed\n"))
        assert result.passed
        assert not result.timed_out
        assert result.output == "cpu_instrs\n\nPassed"
        assert result.cycles > 0

    def test_failed(self, printing_gameboy):
        result = run_until_serial(printing_gameboy(b"01:ok 02:Failed #3\n"))
        assert not result.passed
        assert not result.timed_out
        assert result.output.endswith("Failed")

    def test_custom_markers(self, printing_gameboy):
        result = run_until_serial(printing_gameboy(b"OK\n"), pass_markers=("OK",))
        assert result.passed

    # @intent:test_case_timeout 印が現れないまま上限に達した場合は打ち切られることを検証します。
    def test_timeout(self, printing_gameboy, caplog):
        with caplog.at_level(logging.WARNING, logger="dmg_core_tracer.machine.conformance"):
            result = run_until_serial(printing_gameboy(b"still running"), max_cycles=20000)
        assert result.timed_out
        assert not result.passed
        assert result.output == "still running"
        assert result.cycles >= 20000
        assert "timed out" in caplog.text
