# tests/arch/sm83/test_disassembler.py
"""
dmg_core_tracer.arch.sm83.disassemblerモジュールの単体テスト。
"""

# @intent:test_suite メモリ内容からニーモニック表示への変換を検証します。

class TestDisassembler:
    # @intent:test_case_basic 命令長に従って複数の命令を順に逆アセンブルすることを検証します。
    def test_disassemble_sequence(self, env):
        env.load(bytes([0x00, 0x3E, 0x12, 0xC3, 0x50, 0x01, 0xCB, 0x7C, 0x20, 0xFE]))
        lines = env.cpu.disassemble(0x0100, 10)
        assert lines == [
            (0x0100, "00", "NOP"),
            (0x0101, "3E 12", "LD A,$12"),
            (0x0103, "C3 50 01", "JP $0150"),
            (0x0106, "CB 7C", "BIT 7,H"),
            (0x0108, "20 FE", "JR NZ,$0108"),
        ]

    def test_illegal_opcode_shown_as_data(self, env):
        env.load(bytes([0xD3, 0x00]))
        lines = env.cpu.disassemble(0x0100, 2)
        assert lines == [(0x0100, "D3", "DB $D3"), (0x0101, "00", "NOP")]

    def test_indirect_operands(self, env):
        env.load(bytes([0x2A, 0xE0, 0x40, 0xF8, 0xFE]))
        lines = env.cpu.disassemble(0x0100, 5)
        assert [text for _, _, text in lines] == ["LD A,(HL+)", "LDH ($FF40),A", "LD HL,SP-2"]

    # @intent:test_case_no_trace 逆アセンブルはバスのトレースログに記録されないことを検証します。
    def test_does_not_trace(self, env):
        env.load(bytes([0x00]))
        env.bus.set_tracing(True)
        env.cpu.disassemble(0x0100, 4)
        assert env.bus.get_and_clear_activity_log() == []
