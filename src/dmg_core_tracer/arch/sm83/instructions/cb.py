"""
SM83 CBプレフィックス命令（ローテート/シフト、ビット操作）の実装。

CB命令は2バイト目で操作が決まるため、Operationのopcode_hexは"CB"、
2バイト目はoperand_bytes[0]に格納します。
"""
from dmg_core_tracer.arch.sm83.state import Sm83CpuState
from dmg_core_tracer.arch.sm83.alu import ROTATE_SHIFT_OPS
from dmg_core_tracer.transport.bus import Bus
from dmg_core_tracer.core.snapshot import Operation
from .base import get_register_name, get_register_value, set_register_value


# @intent:responsibility CBプレフィックス命令をデコードします。
def decode_cb(opcode: int, bus: Bus, pc: int) -> Operation:
    sub = bus.read(pc + 1)
    group = sub >> 6
    bit = (sub >> 3) & 0b111
    reg_name = get_register_name(sub & 0b111)

    if group == 0:
        mnemonic = ROTATE_SHIFT_OPS[bit][0]
        operands = [reg_name]
    else:
        mnemonic = ("BIT", "RES", "SET")[group - 1]
        operands = [str(bit), reg_name]

    if reg_name != "(HL)":
        cycles = 8
    elif group == 1:
        # BIT b,(HL) は読み込みのみなので書き戻しの分だけ短い
        cycles = 12
    else:
        cycles = 16

    return Operation(
        opcode_hex="CB",
        mnemonic=mnemonic,
        operands=operands,
        operand_bytes=[sub],
        cycle_count=cycles,
        length=2
    )


def execute_cb(state: Sm83CpuState, bus: Bus, operation: Operation) -> None:
    sub = operation.operand_bytes[0]
    group = sub >> 6
    bit = (sub >> 3) & 0b111
    reg_name = get_register_name(sub & 0b111)
    value = get_register_value(state, bus, reg_name)

    if group == 0:
        _, op = ROTATE_SHIFT_OPS[bit]
        set_register_value(state, bus, reg_name, op(state, value))
    elif group == 1:
        # BITはCフラグを変更しない
        state.flag_z = not (value >> bit) & 1
        state.flag_n = False
        state.flag_h = True
    elif group == 2:
        set_register_value(state, bus, reg_name, value & ~(1 << bit))
    else:
        set_register_value(state, bus, reg_name, value | (1 << bit))
