"""
SM83 データ転送命令の実装。
"""
from dmg_core_tracer.arch.sm83.state import Sm83CpuState
from dmg_core_tracer.arch.sm83.alu import add_sp_offset
from dmg_core_tracer.transport.bus import Bus
from dmg_core_tracer.core.snapshot import Operation
from .base import (
    get_register_name, get_register_value, set_register_value,
    get_push_pop_reg_name, get_rr_reg_name, opcode_of, operand_word,
    push_word, pop_word, to_signed
)

# @intent:constant LD (rr),A / LD A,(rr) 系の間接アドレス指定。
INDIRECT_NAMES = {0b00: "(BC)", 0b01: "(DE)", 0b10: "(HL+)", 0b11: "(HL-)"}

# --- Decoding Functions ---

# @intent:responsibility LD r,r'形式の命令をデコードします。
def decode_ld_r_r(opcode: int, bus: Bus, pc: int) -> Operation:
    """汎用的なLD r,r'命令をデコードします。"""
    dest = get_register_name((opcode >> 3) & 0b111)
    src = get_register_name(opcode & 0b111)
    return Operation(
        opcode_hex=f"{opcode:02X}",
        mnemonic="LD",
        operands=[dest, src],
        cycle_count=8 if "(HL)" in (dest, src) else 4,
        length=1
    )

# @intent:responsibility LD r,n 形式の命令をデコードします。
def decode_ld_r_n(opcode: int, bus: Bus, pc: int) -> Operation:
    """LD r,n命令をデコードします。"""
    reg_name = get_register_name((opcode >> 3) & 0b111)
    n = bus.read(pc + 1)
    return Operation(
        opcode_hex=f"{opcode:02X}",
        mnemonic="LD",
        operands=[reg_name, f"${n:02X}"],
        operand_bytes=[n],
        cycle_count=12 if reg_name == "(HL)" else 8,
        length=2
    )

# @intent:responsibility LD rr,nn 形式の命令をデコードします。
def decode_ld_rr_nn(opcode: int, bus: Bus, pc: int) -> Operation:
    """LD rr,nn命令をデコードします。"""
    rr_name = get_rr_reg_name((opcode >> 4) & 0b11)
    low = bus.read(pc + 1)
    high = bus.read(pc + 2)
    return Operation(
        opcode_hex=f"{opcode:02X}",
        mnemonic="LD",
        operands=[rr_name, f"${(high << 8) | low:04X}"],
        operand_bytes=[low, high],
        cycle_count=12,
        length=3
    )

# @intent:responsibility LD (rr),A と LD A,(rr) をデコードします。bit3が1なら読み込みです。
def decode_ld_indirect(opcode: int, bus: Bus, pc: int) -> Operation:
    target = INDIRECT_NAMES[(opcode >> 4) & 0b11]
    operands = ["A", target] if opcode & 0x08 else [target, "A"]
    return Operation(opcode_hex=f"{opcode:02X}", mnemonic="LD", operands=operands, cycle_count=8, length=1)

def decode_ld_nn_sp(opcode: int, bus: Bus, pc: int) -> Operation:
    """LD (nn),SP 命令をデコードします。"""
    low = bus.read(pc + 1)
    high = bus.read(pc + 2)
    return Operation(
        opcode_hex="08",
        mnemonic="LD",
        operands=[f"(${(high << 8) | low:04X})", "SP"],
        operand_bytes=[low, high],
        cycle_count=20,
        length=3
    )

# @intent:responsibility LDH (n),A / LDH A,(n) をデコードします。アドレスは0xFF00+nです。
def decode_ldh_n(opcode: int, bus: Bus, pc: int) -> Operation:
    n = bus.read(pc + 1)
    target = f"($FF{n:02X})"
    return Operation(
        opcode_hex=f"{opcode:02X}",
        mnemonic="LDH",
        operands=["A", target] if opcode == 0xF0 else [target, "A"],
        operand_bytes=[n],
        cycle_count=12,
        length=2
    )

# @intent:responsibility LD ($FF00+C),A / LD A,($FF00+C) をデコードします。
def decode_ldh_c(opcode: int, bus: Bus, pc: int) -> Operation:
    return Operation(
        opcode_hex=f"{opcode:02X}",
        mnemonic="LD",
        operands=["A", "(C)"] if opcode == 0xF2 else ["(C)", "A"],
        cycle_count=8,
        length=1
    )

def decode_ld_nn_a(opcode: int, bus: Bus, pc: int) -> Operation:
    """LD (nn),A / LD A,(nn) 命令をデコードします。"""
    low = bus.read(pc + 1)
    high = bus.read(pc + 2)
    target = f"(${(high << 8) | low:04X})"
    return Operation(
        opcode_hex=f"{opcode:02X}",
        mnemonic="LD",
        operands=["A", target] if opcode == 0xFA else [target, "A"],
        operand_bytes=[low, high],
        cycle_count=16,
        length=3
    )

def decode_ld_sp_hl(opcode: int, bus: Bus, pc: int) -> Operation:
    return Operation(opcode_hex="F9", mnemonic="LD", operands=["SP", "HL"], cycle_count=8, length=1)

def decode_ld_hl_sp_e(opcode: int, bus: Bus, pc: int) -> Operation:
    """LD HL,SP+e 命令をデコードします。"""
    e = bus.read(pc + 1)
    return Operation(
        opcode_hex="F8",
        mnemonic="LD",
        operands=["HL", f"SP{to_signed(e):+d}"],
        operand_bytes=[e],
        cycle_count=12,
        length=2
    )

def decode_push_pop(opcode: int, bus: Bus, pc: int) -> Operation:
    """PUSH/POP命令をデコードします。"""
    reg_name = get_push_pop_reg_name((opcode >> 4) & 0b11)
    is_push = (opcode & 0x0F) == 0x05
    return Operation(
        opcode_hex=f"{opcode:02X}",
        mnemonic="PUSH" if is_push else "POP",
        operands=[reg_name],
        cycle_count=16 if is_push else 12,
        length=1
    )

# --- Execution Functions ---

def execute_ld_r_r(state: Sm83CpuState, bus: Bus, operation: Operation) -> None:
    dest, src = operation.operands
    set_register_value(state, bus, dest, get_register_value(state, bus, src))

def execute_ld_r_n(state: Sm83CpuState, bus: Bus, operation: Operation) -> None:
    set_register_value(state, bus, operation.operands[0], operation.operand_bytes[0])

def execute_ld_rr_nn(state: Sm83CpuState, bus: Bus, operation: Operation) -> None:
    setattr(state, operation.operands[0].lower(), operand_word(operation))

# @intent:responsibility (HL+)/(HL-) の場合はアクセス後にHLを増減します。
def execute_ld_indirect(state: Sm83CpuState, bus: Bus, operation: Operation) -> None:
    opcode = opcode_of(operation)
    code = (opcode >> 4) & 0b11
    if code == 0b00:
        address = state.bc
    elif code == 0b01:
        address = state.de
    else:
        address = state.hl
        state.hl = (address + (1 if code == 0b10 else -1)) & 0xFFFF

    if opcode & 0x08:
        state.a = bus.read(address)
    else:
        bus.write(address, state.a)

def execute_ld_nn_sp(state: Sm83CpuState, bus: Bus, operation: Operation) -> None:
    bus.write_word(operand_word(operation), state.sp)

def execute_ldh_n(state: Sm83CpuState, bus: Bus, operation: Operation) -> None:
    address = 0xFF00 | operation.operand_bytes[0]
    if opcode_of(operation) == 0xF0:
        state.a = bus.read(address)
    else:
        bus.write(address, state.a)

def execute_ldh_c(state: Sm83CpuState, bus: Bus, operation: Operation) -> None:
    address = 0xFF00 | state.c
    if opcode_of(operation) == 0xF2:
        state.a = bus.read(address)
    else:
        bus.write(address, state.a)

def execute_ld_nn_a(state: Sm83CpuState, bus: Bus, operation: Operation) -> None:
    address = operand_word(operation)
    if opcode_of(operation) == 0xFA:
        state.a = bus.read(address)
    else:
        bus.write(address, state.a)

def execute_ld_sp_hl(state: Sm83CpuState, bus: Bus, operation: Operation) -> None:
    state.sp = state.hl

def execute_ld_hl_sp_e(state: Sm83CpuState, bus: Bus, operation: Operation) -> None:
    state.hl = add_sp_offset(state, operation.operand_bytes[0])

def execute_push_pop(state: Sm83CpuState, bus: Bus, operation: Operation) -> None:
    reg_name = operation.operands[0].lower()
    if operation.mnemonic == "PUSH":
        push_word(state, bus, getattr(state, reg_name))
    else:
        # AFへの書き込みはプロパティがFの下位4bitを落とす
        setattr(state, reg_name, pop_word(state, bus))
