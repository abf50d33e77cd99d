"""
SM83 制御命令（分岐、呼び出し、割り込み制御、システム制御）の実装。

条件分岐の実行関数は条件が成立したかどうかを返し、CPUはそれに応じて
cycle_count または taken_cycle_count を消費サイクルとします。
"""
from dmg_core_tracer.arch.sm83.state import Sm83CpuState
from dmg_core_tracer.hardware.interrupts import INTERRUPT_MASK
from dmg_core_tracer.hardware.registers import IF, IE
from dmg_core_tracer.transport.bus import Bus
from dmg_core_tracer.core.snapshot import Operation
from .base import (
    get_condition_name, check_condition, opcode_of, operand_word,
    push_word, pop_word, to_signed
)

# --- Decoding Functions ---

def decode_00(opcode: int, bus: Bus, pc: int) -> Operation:
    """NOP命令をデコードします。"""
    return Operation(opcode_hex="00", mnemonic="NOP", cycle_count=4, length=1)

# @intent:responsibility STOP命令をデコードします。2バイト命令として扱います。
def decode_10(opcode: int, bus: Bus, pc: int) -> Operation:
    return Operation(opcode_hex="10", mnemonic="STOP", operand_bytes=[bus.read(pc + 1)], cycle_count=4, length=2)

def decode_76(opcode: int, bus: Bus, pc: int) -> Operation:
    """HALT命令をデコードします。"""
    return Operation(opcode_hex="76", mnemonic="HALT", cycle_count=4, length=1)

def decode_f3(opcode: int, bus: Bus, pc: int) -> Operation:
    return Operation(opcode_hex="F3", mnemonic="DI", cycle_count=4, length=1)

def decode_fb(opcode: int, bus: Bus, pc: int) -> Operation:
    return Operation(opcode_hex="FB", mnemonic="EI", cycle_count=4, length=1)

# @intent:responsibility JR e / JR cc,e をデコードします。オペランドは分岐先アドレスで表示します。
def decode_jr(opcode: int, bus: Bus, pc: int) -> Operation:
    offset = bus.read(pc + 1)
    target = (pc + 2 + to_signed(offset)) & 0xFFFF
    if opcode == 0x18:
        return Operation(
            opcode_hex="18", mnemonic="JR", operands=[f"${target:04X}"],
            operand_bytes=[offset], cycle_count=12, length=2
        )
    return Operation(
        opcode_hex=f"{opcode:02X}",
        mnemonic="JR",
        operands=[get_condition_name((opcode >> 3) & 0b11), f"${target:04X}"],
        operand_bytes=[offset],
        cycle_count=8,
        taken_cycle_count=12,
        length=2
    )

def decode_jp(opcode: int, bus: Bus, pc: int) -> Operation:
    """JP nn / JP cc,nn 命令をデコードします。"""
    low = bus.read(pc + 1)
    high = bus.read(pc + 2)
    target = f"${(high << 8) | low:04X}"
    if opcode == 0xC3:
        return Operation(
            opcode_hex="C3", mnemonic="JP", operands=[target],
            operand_bytes=[low, high], cycle_count=16, length=3
        )
    return Operation(
        opcode_hex=f"{opcode:02X}",
        mnemonic="JP",
        operands=[get_condition_name((opcode >> 3) & 0b11), target],
        operand_bytes=[low, high],
        cycle_count=12,
        taken_cycle_count=16,
        length=3
    )

def decode_e9(opcode: int, bus: Bus, pc: int) -> Operation:
    return Operation(opcode_hex="E9", mnemonic="JP", operands=["HL"], cycle_count=4, length=1)

def decode_call(opcode: int, bus: Bus, pc: int) -> Operation:
    """CALL nn / CALL cc,nn 命令をデコードします。"""
    low = bus.read(pc + 1)
    high = bus.read(pc + 2)
    target = f"${(high << 8) | low:04X}"
    if opcode == 0xCD:
        return Operation(
            opcode_hex="CD", mnemonic="CALL", operands=[target],
            operand_bytes=[low, high], cycle_count=24, length=3
        )
    return Operation(
        opcode_hex=f"{opcode:02X}",
        mnemonic="CALL",
        operands=[get_condition_name((opcode >> 3) & 0b11), target],
        operand_bytes=[low, high],
        cycle_count=12,
        taken_cycle_count=24,
        length=3
    )

def decode_ret(opcode: int, bus: Bus, pc: int) -> Operation:
    """RET / RETI / RET cc 命令をデコードします。"""
    if opcode == 0xC9:
        return Operation(opcode_hex="C9", mnemonic="RET", cycle_count=16, length=1)
    if opcode == 0xD9:
        return Operation(opcode_hex="D9", mnemonic="RETI", cycle_count=16, length=1)
    return Operation(
        opcode_hex=f"{opcode:02X}",
        mnemonic="RET",
        operands=[get_condition_name((opcode >> 3) & 0b11)],
        cycle_count=8,
        taken_cycle_count=20,
        length=1
    )

def decode_rst(opcode: int, bus: Bus, pc: int) -> Operation:
    return Operation(
        opcode_hex=f"{opcode:02X}", mnemonic="RST", operands=[f"${opcode & 0x38:02X}"],
        cycle_count=16, length=1
    )

# --- Execution Functions ---

def execute_00(state: Sm83CpuState, bus: Bus, operation: Operation) -> None:
    pass

def execute_10(state: Sm83CpuState, bus: Bus, operation: Operation) -> None:
    # Intentional: STOP is treated as a two-byte NOP (no low-power mode is modelled).
    pass

# @intent:responsibility HALT命令を実行します。
# @intent:rationale IMEが無効で、かつ許可済み割り込みが既に要求中の場合はHALT状態に入らず、
#                  HALTバグ（次の命令の先頭バイトが2回読まれる）のフラグを立てます。
def execute_76(state: Sm83CpuState, bus: Bus, operation: Operation) -> None:
    pending = bus.peek(IF) & bus.peek(IE) & INTERRUPT_MASK
    if state.ime or not pending:
        state.halted = True
    else:
        state.halt_bug = True

def execute_f3(state: Sm83CpuState, bus: Bus, operation: Operation) -> None:
    state.ime = False
    state.ime_pending = False

# @intent:responsibility EIの効果は次の命令の完了後に現れます（CPUが ime_pending を見て反映します）。
def execute_fb(state: Sm83CpuState, bus: Bus, operation: Operation) -> None:
    state.ime_pending = True

def execute_jr(state: Sm83CpuState, bus: Bus, operation: Operation) -> bool:
    opcode = opcode_of(operation)
    if opcode != 0x18 and not check_condition(state, (opcode >> 3) & 0b11):
        return False
    state.pc = (state.pc + to_signed(operation.operand_bytes[0])) & 0xFFFF
    return True

def execute_jp(state: Sm83CpuState, bus: Bus, operation: Operation) -> bool:
    opcode = opcode_of(operation)
    if opcode != 0xC3 and not check_condition(state, (opcode >> 3) & 0b11):
        return False
    state.pc = operand_word(operation)
    return True

def execute_e9(state: Sm83CpuState, bus: Bus, operation: Operation) -> None:
    state.pc = state.hl

def execute_call(state: Sm83CpuState, bus: Bus, operation: Operation) -> bool:
    opcode = opcode_of(operation)
    if opcode != 0xCD and not check_condition(state, (opcode >> 3) & 0b11):
        return False
    # PCは既に次の命令を指している
    push_word(state, bus, state.pc)
    state.pc = operand_word(operation)
    return True

def execute_ret(state: Sm83CpuState, bus: Bus, operation: Operation) -> bool:
    opcode = opcode_of(operation)
    if opcode not in (0xC9, 0xD9) and not check_condition(state, (opcode >> 3) & 0b11):
        return False
    state.pc = pop_word(state, bus)
    if opcode == 0xD9:
        # RETIはEIと異なり即座にIMEを有効にする
        state.ime = True
        state.ime_pending = False
    return True

def execute_rst(state: Sm83CpuState, bus: Bus, operation: Operation) -> None:
    push_word(state, bus, state.pc)
    state.pc = opcode_of(operation) & 0x38
