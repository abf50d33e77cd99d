# tests/arch/sm83/test_instructions.py
"""
SM83命令セットの単体テスト。
各命令の効果、命令長、消費サイクル数を検証します。
"""
import pytest

from dmg_core_tracer.common.errors import UnsupportedOpcode
from dmg_core_tracer.arch.sm83.instructions import DECODE_MAP, ILLEGAL_OPCODES, decode_opcode


# 命令長（バイト）。0は未定義オペコード。
INSTRUCTION_LENGTHS = [
    1, 3, 1, 1, 1, 1, 2, 1, 3, 1, 1, 1, 1, 1, 2, 1,  # 0x
    2, 3, 1, 1, 1, 1, 2, 1, 2, 1, 1, 1, 1, 1, 2, 1,  # 1x
    2, 3, 1, 1, 1, 1, 2, 1, 2, 1, 1, 1, 1, 1, 2, 1,  # 2x
    2, 3, 1, 1, 1, 1, 2, 1, 2, 1, 1, 1, 1, 1, 2, 1,  # 3x
    *[1] * 0x80,                                      # 4x-Bx
    1, 1, 3, 3, 3, 1, 2, 1, 1, 1, 3, 2, 3, 3, 2, 1,  # Cx
    1, 1, 3, 0, 3, 1, 2, 1, 1, 1, 3, 0, 3, 0, 2, 1,  # Dx
    2, 1, 1, 0, 0, 1, 2, 1, 2, 1, 3, 0, 0, 0, 2, 1,  # Ex
    2, 1, 1, 1, 0, 1, 2, 1, 2, 1, 3, 1, 0, 0, 2, 1,  # Fx
]

# 消費マシンサイクル（条件分岐は不成立時）。
_REG_ROW = [1, 1, 1, 1, 1, 1, 2, 1] * 2
MACHINE_CYCLES = [
    1, 3, 2, 2, 1, 1, 2, 1, 5, 2, 2, 2, 1, 1, 2, 1,  # 0x
    1, 3, 2, 2, 1, 1, 2, 1, 3, 2, 2, 2, 1, 1, 2, 1,  # 1x
    2, 3, 2, 2, 1, 1, 2, 1, 2, 2, 2, 2, 1, 1, 2, 1,  # 2x
    2, 3, 2, 2, 3, 3, 3, 1, 2, 2, 2, 2, 1, 1, 2, 1,  # 3x
    *_REG_ROW * 3,                                    # 4x-6x
    2, 2, 2, 2, 2, 2, 1, 2, 1, 1, 1, 1, 1, 1, 2, 1,  # 7x
    *_REG_ROW * 4,                                    # 8x-Bx
    2, 3, 3, 4, 3, 4, 2, 4, 2, 4, 3, 2, 3, 6, 2, 4,  # Cx
    2, 3, 3, 0, 3, 4, 2, 4, 2, 4, 3, 0, 3, 0, 2, 4,  # Dx
    3, 3, 2, 0, 0, 4, 2, 4, 4, 1, 4, 0, 0, 0, 2, 4,  # Ex
    3, 3, 2, 1, 0, 4, 2, 4, 3, 2, 4, 1, 0, 0, 2, 4,  # Fx
]

# 条件成立時のマシンサイクル。
TAKEN_MACHINE_CYCLES = {
    0x20: 3, 0x28: 3, 0x30: 3, 0x38: 3,
    0xC0: 5, 0xC8: 5, 0xD0: 5, 0xD8: 5,
    0xC2: 4, 0xCA: 4, 0xD2: 4, 0xDA: 4,
    0xC4: 6, 0xCC: 6, 0xD4: 6, 0xDC: 6,
}

# @intent:test_suite ロード、演算、分岐、CBプレフィックス命令の実行結果を検証します。

class TestOpcodeTable:
    # @intent:test_case_coverage 未定義の11個を除く全オペコードがデコード可能であることを検証します。
    def test_all_defined_opcodes_present(self):
        assert set(DECODE_MAP) | ILLEGAL_OPCODES == set(range(0x100))
        assert not set(DECODE_MAP) & ILLEGAL_OPCODES

    def test_reference_table_marks_illegal_opcodes(self):
        assert {op for op in range(0x100) if INSTRUCTION_LENGTHS[op] == 0} == ILLEGAL_OPCODES

    # @intent:test_case_timing 全オペコードの命令長と消費サイクル（条件成立時を含む）が規定値どおりであることを検証します。
    @pytest.mark.parametrize("opcode", sorted(set(DECODE_MAP) - {0xCB}))
    def test_length_and_cycles(self, env, opcode):
        env.bus.write(0xC000, opcode)
        operation = decode_opcode(opcode, env.bus, 0xC000)
        assert operation.length == INSTRUCTION_LENGTHS[opcode]
        assert operation.cycle_count == MACHINE_CYCLES[opcode] * 4
        taken = TAKEN_MACHINE_CYCLES.get(opcode)
        assert operation.taken_cycle_count == (taken * 4 if taken else None)

    @pytest.mark.parametrize("sub", range(0x100))
    def test_cb_length_and_cycles(self, env, sub):
        env.bus.write(0xC000, 0xCB)
        env.bus.write(0xC001, sub)
        operation = decode_opcode(0xCB, env.bus, 0xC000)
        if sub & 0b111 != 6:
            expected = 2
        elif sub >> 6 == 1:
            expected = 3
        else:
            expected = 4
        assert operation.length == 2
        assert operation.cycle_count == expected * 4
        assert operation.taken_cycle_count is None

    @pytest.mark.parametrize("opcode", sorted(ILLEGAL_OPCODES))
    def test_illegal_opcode_raises(self, env, opcode):
        env.load(bytes([opcode]), address=0x0200)
        with pytest.raises(UnsupportedOpcode) as excinfo:
            env.cpu.step()
        assert excinfo.value.pc == 0x0200
        assert excinfo.value.opcode == opcode


class TestLoadInstructions:
    def test_ld_r_n(self, env):
        env.load(bytes([0x06, 0x42]))
        assert env.cpu.step() == 8
        assert env.state.b == 0x42
        assert env.state.pc == 0x0102

    def test_ld_r_r(self, env):
        env.state.e = 0x99
        env.load(bytes([0x7B]))  # LD A,E
        assert env.cpu.step() == 4
        assert env.state.a == 0x99

    def test_ld_hl_indirect(self, env):
        env.state.hl = 0xC000
        env.load(bytes([0x36, 0x5A, 0x46]))  # LD (HL),$5A ; LD B,(HL)
        assert env.cpu.step() == 12
        assert env.cpu.step() == 8
        assert env.state.b == 0x5A

    def test_ld_rr_nn(self, env):
        env.load(bytes([0x21, 0x34, 0x12, 0x31, 0x00, 0xD0]))
        assert env.cpu.step() == 12
        env.cpu.step()
        assert env.state.hl == 0x1234
        assert env.state.sp == 0xD000

    # @intent:test_case_hl_inc LD (HL+),A / LD A,(HL-) がアクセス後にHLを増減することを検証します。
    def test_hl_increment_decrement(self, env):
        env.state.hl = 0xC000
        env.state.a = 0x11
        env.load(bytes([0x22, 0x3A]))
        env.cpu.step()
        assert env.bus.read(0xC000) == 0x11
        assert env.state.hl == 0xC001
        env.bus.write(0xC001, 0x77)
        env.cpu.step()
        assert env.state.a == 0x77
        assert env.state.hl == 0xC000

    def test_ld_indirect_bc_de(self, env):
        env.state.bc = 0xC100
        env.state.de = 0xC200
        env.state.a = 0x3C
        env.load(bytes([0x02, 0x1A]))  # LD (BC),A ; LD A,(DE)
        env.bus.write(0xC200, 0x4D)
        env.cpu.step()
        env.cpu.step()
        assert env.bus.read(0xC100) == 0x3C
        assert env.state.a == 0x4D

    def test_ld_nn_sp(self, env):
        env.state.sp = 0xBEEF
        env.load(bytes([0x08, 0x00, 0xC0]))
        assert env.cpu.step() == 20
        assert env.bus.read(0xC000) == 0xEF
        assert env.bus.read(0xC001) == 0xBE

    def test_ldh(self, env):
        env.state.a = 0x42
        env.load(bytes([0xE0, 0x80, 0xAF, 0xF0, 0x80]))  # LDH ($FF80),A ; XOR A ; LDH A,($FF80)
        assert env.cpu.step() == 12
        env.cpu.step()
        assert env.state.a == 0
        env.cpu.step()
        assert env.state.a == 0x42

    def test_ld_c_indirect(self, env):
        env.state.a = 0x24
        env.state.c = 0x81
        env.load(bytes([0xE2, 0xF2]))
        assert env.cpu.step() == 8
        assert env.bus.read(0xFF81) == 0x24
        env.state.a = 0
        env.cpu.step()
        assert env.state.a == 0x24

    def test_ld_nn_a(self, env):
        env.state.a = 0x66
        env.load(bytes([0xEA, 0x10, 0xC0, 0xFA, 0x11, 0xC0]))
        env.bus.write(0xC011, 0x77)
        assert env.cpu.step() == 16
        assert env.bus.read(0xC010) == 0x66
        env.cpu.step()
        assert env.state.a == 0x77

    def test_ld_hl_sp_offset(self, env):
        env.state.sp = 0xFFF8
        env.load(bytes([0xF8, 0x02, 0xF9]))
        assert env.cpu.step() == 12
        assert env.state.hl == 0xFFFA
        assert not env.state.flag_z
        env.state.hl = 0xD000
        assert env.cpu.step() == 8
        assert env.state.sp == 0xD000

    def test_push_pop(self, env):
        env.state.bc = 0x1234
        env.load(bytes([0xC5, 0xD1]))  # PUSH BC ; POP DE
        assert env.cpu.step() == 16
        assert env.state.sp == 0xFFFC
        assert env.cpu.step() == 12
        assert env.state.de == 0x1234
        assert env.state.sp == 0xFFFE

    # @intent:test_case_pop_af POP AFでFの下位4bitが0になることを検証します。
    def test_pop_af_masks_flags(self, env):
        env.state.sp = 0xD000
        env.bus.write(0xD000, 0xFF)
        env.bus.write(0xD001, 0x12)
        env.load(bytes([0xF1]))
        env.cpu.step()
        assert env.state.a == 0x12
        assert env.state.f == 0xF0


class TestArithmeticInstructions:
    def test_add_a_r(self, env):
        env.state.a = 0x0F
        env.state.b = 0x01
        env.load(bytes([0x80]))
        assert env.cpu.step() == 4
        assert env.state.a == 0x10
        assert env.state.flag_h

    def test_adc_with_carry(self, env):
        env.state.a = 0xFF
        env.state.flag_c = True
        env.load(bytes([0xCE, 0x00]))  # ADC A,$00
        assert env.cpu.step() == 8
        assert env.state.a == 0x00
        assert env.state.flag_z and env.state.flag_c

    def test_cp_hl(self, env):
        env.state.a = 0x10
        env.state.hl = 0xC000
        env.bus.write(0xC000, 0x20)
        env.load(bytes([0xBE]))
        assert env.cpu.step() == 8
        assert env.state.a == 0x10
        assert env.state.flag_c and env.state.flag_n

    def test_and_xor_or_immediate(self, env):
        env.state.a = 0xF0
        env.load(bytes([0xE6, 0x3C, 0xEE, 0xFF, 0xF6, 0x01]))
        env.cpu.step()
        assert env.state.a == 0x30
        env.cpu.step()
        assert env.state.a == 0xCF
        env.cpu.step()
        assert env.state.a == 0xCF

    def test_inc_dec_hl_memory(self, env):
        env.state.hl = 0xC000
        env.state.flag_c = True
        env.bus.write(0xC000, 0x0F)
        env.load(bytes([0x34, 0x35, 0x35]))
        assert env.cpu.step() == 12
        assert env.bus.read(0xC000) == 0x10
        assert env.state.flag_h and env.state.flag_c
        env.cpu.step()
        env.cpu.step()
        assert env.bus.read(0xC000) == 0x0E
        assert env.state.flag_n

    def test_inc_dec_16_keeps_flags(self, env):
        env.state.f = 0xF0
        env.state.de = 0xFFFF
        env.load(bytes([0x13, 0x0B]))  # INC DE ; DEC BC
        assert env.cpu.step() == 8
        env.cpu.step()
        assert env.state.de == 0x0000
        assert env.state.bc == 0xFFFF
        assert env.state.f == 0xF0

    def test_add_hl_rr(self, env):
        env.state.hl = 0x0FFF
        env.state.bc = 0x0001
        env.load(bytes([0x09, 0x29]))  # ADD HL,BC ; ADD HL,HL
        assert env.cpu.step() == 8
        assert env.state.hl == 0x1000
        assert env.state.flag_h
        env.cpu.step()
        assert env.state.hl == 0x2000

    def test_add_sp_e(self, env):
        env.state.sp = 0xFFFE
        env.load(bytes([0xE8, 0xFF]))
        assert env.cpu.step() == 16
        assert env.state.sp == 0xFFFD
        assert env.state.flag_h and env.state.flag_c

    def test_daa_instruction(self, env):
        env.state.a = 0x45
        env.load(bytes([0xC6, 0x38, 0x27]))  # ADD A,$38 ; DAA
        env.cpu.step()
        env.cpu.step()
        assert env.state.a == 0x83

    # @intent:test_case_rlca アキュムレータ版のローテートはZフラグを常にクリアすることを検証します。
    def test_rlca_clears_zero(self, env):
        env.state.a = 0x00
        env.state.flag_z = True
        env.load(bytes([0x07, 0x17]))
        env.cpu.step()
        assert env.state.a == 0
        assert not env.state.flag_z
        env.state.a = 0x80
        env.cpu.step()
        assert env.state.a == 0x00
        assert env.state.flag_c
        assert not env.state.flag_z

    def test_cpl_scf_ccf(self, env):
        env.state.a = 0x35
        env.load(bytes([0x2F, 0x37, 0x3F]))
        env.cpu.step()
        assert env.state.a == 0xCA
        assert env.state.flag_n and env.state.flag_h
        env.cpu.step()
        assert env.state.flag_c
        assert not env.state.flag_n and not env.state.flag_h
        env.cpu.step()
        assert not env.state.flag_c


class TestControlInstructions:
    def test_nop_and_stop(self, env):
        env.load(bytes([0x00, 0x10, 0x00]))
        assert env.cpu.step() == 4
        assert env.cpu.step() == 4
        assert env.state.pc == 0x0103

    # @intent:test_case_jr 条件付き相対ジャンプの分岐時/非分岐時のサイクル数を検証します。
    def test_jr_conditional(self, env):
        env.load(bytes([0x20, 0x05]))  # JR NZ,+5
        env.state.flag_z = True
        assert env.cpu.step() == 8
        assert env.state.pc == 0x0102

        env.state.pc = 0x0100
        env.state.flag_z = False
        assert env.cpu.step() == 12
        assert env.state.pc == 0x0107

    def test_jr_backwards(self, env):
        env.load(bytes([0x18, 0xFE]))
        assert env.cpu.step() == 12
        assert env.state.pc == 0x0100

    def test_jp(self, env):
        env.load(bytes([0xC3, 0x00, 0x20]))
        assert env.cpu.step() == 16
        assert env.state.pc == 0x2000

    def test_jp_conditional(self, env):
        env.load(bytes([0xDA, 0x00, 0x20]))  # JP C,$2000
        assert env.cpu.step() == 12
        assert env.state.pc == 0x0103
        env.state.pc = 0x0100
        env.state.flag_c = True
        assert env.cpu.step() == 16
        assert env.state.pc == 0x2000

    def test_jp_hl(self, env):
        env.state.hl = 0x4321
        env.load(bytes([0xE9]))
        assert env.cpu.step() == 4
        assert env.state.pc == 0x4321

    def test_call_and_ret(self, env):
        env.load(bytes([0xCD, 0x00, 0x20]))
        env.bus.write(0x2000, 0xC9)
        assert env.cpu.step() == 24
        assert env.state.pc == 0x2000
        assert env.state.sp == 0xFFFC
        assert env.bus.read_word(0xFFFC) == 0x0103
        assert env.cpu.step() == 16
        assert env.state.pc == 0x0103
        assert env.state.sp == 0xFFFE

    def test_call_conditional_not_taken(self, env):
        env.state.flag_z = True
        env.load(bytes([0xC4, 0x00, 0x20]))  # CALL NZ,$2000
        assert env.cpu.step() == 12
        assert env.state.pc == 0x0103
        assert env.state.sp == 0xFFFE

    def test_ret_conditional(self, env):
        env.state.sp = 0xD000
        env.bus.write_word(0xD000, 0x1234)
        env.load(bytes([0xC8]))  # RET Z
        assert env.cpu.step() == 8
        env.state.pc = 0x0100
        env.state.flag_z = True
        assert env.cpu.step() == 20
        assert env.state.pc == 0x1234

    def test_rst(self, env):
        env.load(bytes([0xFF]))
        assert env.cpu.step() == 16
        assert env.state.pc == 0x0038
        assert env.bus.read_word(env.state.sp) == 0x0101


class TestCbInstructions:
    def test_bit(self, env):
        env.state.h = 0x7F
        env.state.flag_c = True
        env.load(bytes([0xCB, 0x7C]))  # BIT 7,H
        assert env.cpu.step() == 8
        assert env.state.flag_z and env.state.flag_h
        assert env.state.flag_c

    # @intent:test_case_cb_hl (HL)を対象とするCB命令のサイクル数を検証します。
    def test_hl_operand_cycles(self, env):
        env.state.hl = 0xC000
        env.load(bytes([0xCB, 0x46, 0xCB, 0xC6, 0xCB, 0x86, 0xCB, 0x36]))
        assert env.cpu.step() == 12  # BIT 0,(HL)
        assert env.cpu.step() == 16  # SET 0,(HL)
        assert env.bus.read(0xC000) == 0x01
        assert env.cpu.step() == 16  # RES 0,(HL)
        assert env.bus.read(0xC000) == 0x00
        assert env.cpu.step() == 16  # SWAP (HL)

    def test_rotate_shift_registers(self, env):
        env.state.b = 0x81
        env.state.a = 0xF1
        env.load(bytes([0xCB, 0x00, 0xCB, 0x37, 0xCB, 0x38]))  # RLC B ; SWAP A ; SRL B
        env.cpu.step()
        assert env.state.b == 0x03
        assert env.state.flag_c
        env.cpu.step()
        assert env.state.a == 0x1F
        env.cpu.step()
        assert env.state.b == 0x01
        assert env.state.flag_c
