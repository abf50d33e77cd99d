"""
SM83命令セット実装パッケージ。
"""
from typing import Optional

from dmg_core_tracer.transport.bus import Bus
from dmg_core_tracer.core.snapshot import Operation
from dmg_core_tracer.common.errors import UnsupportedOpcode
from dmg_core_tracer.arch.sm83.state import Sm83CpuState
from .maps import DECODE_MAP, EXECUTE_MAP, ILLEGAL_OPCODES

# @intent:responsibility 与えられたオペコードをSM83の命令としてデコードします。
# @intent:pre-condition `pc`はデコードするオペコードの先頭アドレスを指している必要があります。
def decode_opcode(opcode: int, bus: Bus, pc: int) -> Operation:
    """
    SM83のオペコードをデコードし、Operationオブジェクトを返します。
    未定義のオペコードの場合はUnsupportedOpcodeを送出します。
    """
    decoder = DECODE_MAP.get(opcode)
    if decoder is None:
        raise UnsupportedOpcode(pc, opcode)
    return decoder(opcode, bus, pc)

# @intent:responsibility デコードされたSM83命令を実行し、CPUの状態を変更します。
# @intent:post-condition 条件分岐命令は条件の成立可否を返します。
def execute_instruction(operation: Operation, state: Sm83CpuState, bus: Bus) -> Optional[bool]:
    executor = EXECUTE_MAP.get(int(operation.opcode_hex, 16))
    if executor is None:
        raise UnsupportedOpcode(state.pc, int(operation.opcode_hex, 16))
    return executor(state, bus, operation)

__all__ = ["decode_opcode", "execute_instruction", "DECODE_MAP", "EXECUTE_MAP", "ILLEGAL_OPCODES"]
