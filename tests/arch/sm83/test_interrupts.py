# tests/arch/sm83/test_interrupts.py
"""
SM83の割り込み受付、EI/DI/RETI、HALTの単体テスト。
"""
from dmg_core_tracer.hardware.interrupts import Interrupt
from dmg_core_tracer.arch.sm83.cpu import INTERRUPT_DISPATCH_CYCLES, HALT_CYCLES

# @intent:test_suite 命令境界での割り込みディスパッチとIMEの遅延反映、HALTの振る舞いを検証します。

class TestInterruptDispatch:
    # @intent:test_case_dispatch 命令完了後にPCを積んでベクタへ飛び、20サイクル加算されることを検証します。
    def test_dispatch_after_instruction(self, env):
        env.state.ime = True
        env.interrupts.write_enable(0x01)
        env.interrupts.request(Interrupt.VBLANK)
        env.load(bytes([0x00]))
        assert env.cpu.step() == 4 + INTERRUPT_DISPATCH_CYCLES
        assert env.state.pc == 0x0040
        assert env.state.sp == 0xFFFC
        assert env.bus.read_word(0xFFFC) == 0x0101
        assert env.state.ime is False
        assert env.interrupts.flags == 0

    def test_priority_order(self, env):
        env.state.ime = True
        env.interrupts.write_enable(0x1F)
        env.interrupts.request(Interrupt.TIMER)
        env.interrupts.request(Interrupt.JOYPAD)
        env.load(bytes([0x00]))
        env.cpu.step()
        assert env.state.pc == 0x0050
        assert env.interrupts.flags == Interrupt.JOYPAD

    def test_disabled_interrupt_is_ignored(self, env):
        env.state.ime = True
        env.interrupts.write_enable(0x01)
        env.interrupts.request(Interrupt.SERIAL)
        env.load(bytes([0x00]))
        assert env.cpu.step() == 4
        assert env.state.pc == 0x0101

    def test_ime_off_blocks_dispatch(self, env):
        env.interrupts.write_enable(0x01)
        env.interrupts.request(Interrupt.VBLANK)
        env.load(bytes([0x00]))
        assert env.cpu.step() == 4
        assert env.state.pc == 0x0101
        assert env.interrupts.flags == Interrupt.VBLANK


class TestImeControl:
    # @intent:test_case_ei_delay EIの効果は次の命令の完了後に現れることを検証します。
    def test_ei_takes_effect_after_next_instruction(self, env):
        env.interrupts.write_enable(0x01)
        env.interrupts.request(Interrupt.VBLANK)
        env.load(bytes([0xFB, 0x00, 0x00]))
        assert env.cpu.step() == 4
        assert env.state.pc == 0x0101
        assert env.state.ime is False
        assert env.cpu.step() == 4 + INTERRUPT_DISPATCH_CYCLES
        assert env.state.pc == 0x0040
        assert env.bus.read_word(env.state.sp) == 0x0102

    def test_ei_followed_by_di(self, env):
        env.interrupts.write_enable(0x01)
        env.interrupts.request(Interrupt.VBLANK)
        env.load(bytes([0xFB, 0xF3, 0x00]))
        env.cpu.step()
        env.cpu.step()
        env.cpu.step()
        assert env.state.ime is False
        assert env.state.pc == 0x0103

    # @intent:test_case_reti RETIはIMEを即座に有効にすることを検証します。
    def test_reti_enables_immediately(self, env):
        env.state.sp = 0xD000
        env.bus.write_word(0xD000, 0x1234)
        env.load(bytes([0xD9]))
        assert env.cpu.step() == 16
        assert env.state.ime is True
        assert env.state.pc == 0x1234

    def test_reti_dispatches_pending_interrupt(self, env):
        env.state.sp = 0xD000
        env.bus.write_word(0xD000, 0x1234)
        env.interrupts.write_enable(0x04)
        env.interrupts.request(Interrupt.TIMER)
        env.load(bytes([0xD9]))
        assert env.cpu.step() == 16 + INTERRUPT_DISPATCH_CYCLES
        assert env.state.pc == 0x0050
        assert env.bus.read_word(env.state.sp) == 0x1234


class TestHalt:
    # @intent:test_case_halt_wake HALT中は4サイクルずつ待機し、割り込み要求で復帰・ディスパッチされることを検証します。
    def test_halt_wakes_and_dispatches(self, env):
        env.state.ime = True
        env.interrupts.write_enable(0x04)
        env.load(bytes([0x76, 0x00]))
        assert env.cpu.step() == 4
        assert env.state.halted
        assert env.cpu.step() == HALT_CYCLES
        assert env.state.pc == 0x0101

        env.interrupts.request(Interrupt.TIMER)
        assert env.cpu.step() == HALT_CYCLES + INTERRUPT_DISPATCH_CYCLES
        assert not env.state.halted
        assert env.state.pc == 0x0050
        assert env.bus.read_word(env.state.sp) == 0x0101

    def test_halt_wakes_without_ime(self, env):
        env.interrupts.write_enable(0x04)
        env.load(bytes([0x76, 0x3C]))  # HALT ; INC A
        env.cpu.step()
        env.cpu.step()
        assert env.state.halted

        env.interrupts.request(Interrupt.TIMER)
        assert env.cpu.step() == HALT_CYCLES
        assert not env.state.halted
        assert env.state.pc == 0x0101
        env.cpu.step()
        assert env.state.a == 1
        assert env.interrupts.flags == Interrupt.TIMER

    def test_halt_snapshot_reports_suspension(self, env):
        env.state.ime = True
        env.interrupts.write_enable(0x01)
        env.load(bytes([0x76]))
        env.cpu.step()
        snapshot = env.cpu.step_with_snapshot()
        assert snapshot.operation.mnemonic == "HALT (suspended)"
        assert snapshot.metadata.instruction_cycles == HALT_CYCLES

    # @intent:test_case_halt_bug IME無効かつ要求中の割り込みがある状態のHALTで、次のバイトが2回実行されることを検証します。
    def test_halt_bug_repeats_next_byte(self, env):
        env.interrupts.write_enable(0x01)
        env.interrupts.request(Interrupt.VBLANK)
        env.load(bytes([0x76, 0x3C, 0x00]))
        env.cpu.step()
        assert not env.state.halted
        assert env.state.pc == 0x0101
        env.cpu.step()
        assert env.state.a == 1
        assert env.state.pc == 0x0101
        env.cpu.step()
        assert env.state.a == 2
        assert env.state.pc == 0x0102

    def test_halt_bug_operand_reads_opcode(self, env):
        env.interrupts.write_enable(0x01)
        env.interrupts.request(Interrupt.VBLANK)
        env.load(bytes([0x76, 0x3E, 0x00]))  # HALT ; LD A,$00
        env.cpu.step()
        env.cpu.step()
        assert env.state.a == 0x3E
        assert env.state.pc == 0x0102

    # @intent:test_case_ei_halt EI直後のHALTではハンドラが正しく実行され、戻り先がHALTを指すことを検証します。
    def test_ei_then_halt_runs_handler_intact(self, env):
        env.interrupts.write_enable(0x01)
        env.interrupts.request(Interrupt.VBLANK)
        env.bus.write(0x0040, 0x3E)  # LD A,$42
        env.bus.write(0x0041, 0x42)
        env.load(bytes([0xFB, 0x76, 0x00]), address=0x0200)
        env.cpu.step()
        assert env.cpu.step() == 4 + INTERRUPT_DISPATCH_CYCLES
        assert env.state.pc == 0x0040
        assert env.state.halt_bug is False
        assert env.bus.read_word(env.state.sp) == 0x0201
        env.cpu.step()
        assert env.state.a == 0x42
        assert env.state.pc == 0x0042

    def test_ei_then_halt_without_halt_bug(self, env_without_halt_bug):
        env = env_without_halt_bug
        env.interrupts.write_enable(0x01)
        env.interrupts.request(Interrupt.VBLANK)
        env.load(bytes([0xFB, 0x76, 0x00]), address=0x0200)
        env.cpu.step()
        env.cpu.step()
        assert env.state.pc == 0x0040
        assert env.bus.read_word(env.state.sp) == 0x0202

    def test_halt_bug_can_be_disabled(self, env_without_halt_bug):
        env = env_without_halt_bug
        env.interrupts.write_enable(0x01)
        env.interrupts.request(Interrupt.VBLANK)
        env.load(bytes([0x76, 0x3C, 0x00]))
        env.cpu.step()
        env.cpu.step()
        assert env.state.a == 1
        assert env.state.pc == 0x0102
        assert env.state.halt_bug is False
