# dmg_core_tracer/arch/sm83/cpu.py
"""
SM83 CPUエミュレーションの中心モジュール。

このモジュールはDMGのCPU (SM83) の具体的な実装を提供し、
AbstractCpuインターフェースを実装します。
割り込みの受付は命令完了後の後処理として step() の中で行います。
"""
import logging
from typing import Dict, List, Optional, Tuple

from dmg_core_tracer.core.cpu import AbstractCpu
from dmg_core_tracer.core.snapshot import Operation
from dmg_core_tracer.transport.bus import Bus
from dmg_core_tracer.hardware.interrupts import InterruptController, INTERRUPT_VECTORS
from dmg_core_tracer.arch.sm83.state import Sm83CpuState
from dmg_core_tracer.arch.sm83.instructions import decode_opcode, execute_instruction
from dmg_core_tracer.arch.sm83.instructions.base import push_word
from dmg_core_tracer.arch.sm83 import disassembler
from dmg_core_tracer.common.types import RegisterLayoutInfo, RegisterInfo

logger = logging.getLogger(__name__)

# @intent:constant 割り込みディスパッチ（PCのプッシュとベクタへのジャンプ）に掛かるサイクル数。
INTERRUPT_DISPATCH_CYCLES = 20
# @intent:constant HALT中の1ステップ、およびHALTからの復帰に掛かるサイクル数。
HALT_CYCLES = 4


# @intent:responsibility SM83 CPUの具体的なエミュレーションロジックを提供します。
class Sm83Cpu(AbstractCpu):
    """
    SM83 CPUをエミュレートするクラス。
    halt_bug が有効な場合、IME無効かつ割り込み要求中のHALTで、次の命令の先頭バイトを2回読みます。
    """
    def __init__(self, bus: Bus, interrupts: InterruptController, halt_bug: bool = True):
        super().__init__(bus)
        self._interrupts = interrupts
        self.halt_bug_enabled = halt_bug
        self._enable_ime_after = False
        self._decode_base = 0

    def _create_initial_state(self) -> Sm83CpuState:
        return Sm83CpuState()

    # @intent:responsibility EI直後の命令かどうかを、命令の実行前に記録します。
    def _before_instruction(self) -> None:
        self._enable_ime_after = self._state.ime_pending

    # @intent:responsibility HALT中は許可済み割り込みの要求があるまで命令を実行しません。
    # @intent:rationale 復帰はIMEに関係なく行われ、IMEが有効なら続く後処理で割り込みが受け付けられます。
    def _handle_halt(self) -> Optional[Operation]:
        if not self._state.halted:
            return None
        if self._interrupts.pending():
            self._state.halted = False
            return Operation(opcode_hex="76", mnemonic="HALT (wake)", cycle_count=HALT_CYCLES, length=0)
        return Operation(opcode_hex="76", mnemonic="HALT (suspended)", cycle_count=HALT_CYCLES, length=0)

    def _fetch(self) -> int:
        return self._bus.read(self._state.pc)

    # @intent:rationale HALTバグ発生時はデコード基点を1つ手前にずらし、オペコードのバイトを
    #                  オペランドとしてもう一度読ませます。
    def _decode(self, opcode: int) -> Operation:
        s = self._state
        self._decode_base = s.pc
        if s.halt_bug:
            s.halt_bug = False
            if self.halt_bug_enabled:
                self._decode_base = (s.pc - 1) & 0xFFFF
                return decode_opcode(opcode, self._bus, self._decode_base)
        return decode_opcode(opcode, self._bus, s.pc)

    def _update_pc(self, operation: Operation) -> None:
        self._state.pc = (self._decode_base + operation.length) & 0xFFFF

    def _execute(self, operation: Operation) -> Optional[bool]:
        return execute_instruction(operation, self._state, self._bus)

    # @intent:responsibility EIの遅延反映と、保留中の割り込みのディスパッチを行います。
    def _after_instruction(self) -> int:
        s = self._state
        if self._enable_ime_after and s.ime_pending:
            s.ime = True
            s.ime_pending = False

        if not s.ime:
            return 0
        interrupt = self._interrupts.highest_priority()
        if interrupt is None:
            return 0

        s.ime = False
        s.halted = False
        self._interrupts.acknowledge(interrupt)
        return_address = s.pc
        if s.halt_bug:
            # EI直後のHALT: ハンドラは通常どおり実行され、戻り先がHALT自身になります。
            s.halt_bug = False
            if self.halt_bug_enabled:
                return_address = (s.pc - 1) & 0xFFFF
        push_word(s, self._bus, return_address)
        s.pc = INTERRUPT_VECTORS[interrupt]
        logger.debug("Dispatching %s interrupt to %#06x", interrupt.name, s.pc)
        return INTERRUPT_DISPATCH_CYCLES

    def get_register_map(self) -> Dict[str, int]:
        s = self._state
        return {
            "A": s.a, "F": s.f, "B": s.b, "C": s.c, "D": s.d, "E": s.e, "H": s.h, "L": s.l,
            "AF": s.af, "BC": s.bc, "DE": s.de, "HL": s.hl,
            "SP": s.sp, "PC": s.pc,
            "IME": int(s.ime),
        }

    def get_register_layout(self) -> List[RegisterLayoutInfo]:
        return [
            RegisterLayoutInfo("Main Registers", [
                RegisterInfo("AF", 16), RegisterInfo("BC", 16), RegisterInfo("DE", 16), RegisterInfo("HL", 16)
            ]),
            RegisterLayoutInfo("Control", [
                RegisterInfo("SP", 16), RegisterInfo("PC", 16), RegisterInfo("IME", 1)
            ]),
        ]

    def get_flag_state(self) -> Dict[str, bool]:
        s = self._state
        return {
            "Z": s.flag_z,
            "N": s.flag_n,
            "H": s.flag_h,
            "C": s.flag_c,
        }

    def disassemble(self, start_addr: int, length: int) -> List[Tuple[int, str, str]]:
        return disassembler.disassemble(self._bus, start_addr, length)
