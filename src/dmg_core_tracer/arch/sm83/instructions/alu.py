"""
SM83 算術論理演算命令の実装。
"""
from dmg_core_tracer.arch.sm83.state import Sm83CpuState
from dmg_core_tracer.arch.sm83 import alu
from dmg_core_tracer.transport.bus import Bus
from dmg_core_tracer.core.snapshot import Operation
from .base import (
    get_register_name, get_register_value, set_register_value,
    get_rr_reg_name, opcode_of, to_signed
)

# @intent:constant 8bit演算の種類（opcodeのbit3-5）。
ALU_MNEMONICS = ("ADD", "ADC", "SUB", "SBC", "AND", "XOR", "OR", "CP")

# @intent:constant アキュムレータとフラグに作用する1バイト命令 (00xxx111)。
ACCUMULATOR_MNEMONICS = {
    0x07: "RLCA", 0x0F: "RRCA", 0x17: "RLA", 0x1F: "RRA",
    0x27: "DAA", 0x2F: "CPL", 0x37: "SCF", 0x3F: "CCF",
}


def _alu_operands(kind: int, source: str) -> list:
    # ADD/ADC/SBCはA,xの形で表記する慣習に従う
    if kind in (0, 1, 3):
        return ["A", source]
    return [source]


def _apply_alu(state: Sm83CpuState, kind: int, value: int) -> None:
    if kind == 0:
        alu.add8(state, value)
    elif kind == 1:
        alu.add8(state, value, int(state.flag_c))
    elif kind == 2:
        alu.sub8(state, value)
    elif kind == 3:
        alu.sub8(state, value, int(state.flag_c))
    elif kind == 4:
        alu.and8(state, value)
    elif kind == 5:
        alu.xor8(state, value)
    elif kind == 6:
        alu.or8(state, value)
    else:
        alu.sub8(state, value, store=False)

# --- Decoding Functions ---

# @intent:responsibility 0x80-0xBF の8bit演算 (A op r) をデコードします。
def decode_alu_r(opcode: int, bus: Bus, pc: int) -> Operation:
    kind = (opcode >> 3) & 0b111
    src = get_register_name(opcode & 0b111)
    return Operation(
        opcode_hex=f"{opcode:02X}",
        mnemonic=ALU_MNEMONICS[kind],
        operands=_alu_operands(kind, src),
        cycle_count=8 if src == "(HL)" else 4,
        length=1
    )

# @intent:responsibility 即値との8bit演算 (ADD A,n など) をデコードします。
def decode_alu_n(opcode: int, bus: Bus, pc: int) -> Operation:
    kind = (opcode >> 3) & 0b111
    n = bus.read(pc + 1)
    return Operation(
        opcode_hex=f"{opcode:02X}",
        mnemonic=ALU_MNEMONICS[kind],
        operands=_alu_operands(kind, f"${n:02X}"),
        operand_bytes=[n],
        cycle_count=8,
        length=2
    )

def decode_inc_dec8(opcode: int, bus: Bus, pc: int) -> Operation:
    """INC r / DEC r 命令をデコードします。"""
    reg_name = get_register_name((opcode >> 3) & 0b111)
    return Operation(
        opcode_hex=f"{opcode:02X}",
        mnemonic="INC" if (opcode & 0b111) == 0b100 else "DEC",
        operands=[reg_name],
        cycle_count=12 if reg_name == "(HL)" else 4,
        length=1
    )

def decode_inc_dec16(opcode: int, bus: Bus, pc: int) -> Operation:
    """INC rr / DEC rr 命令をデコードします。フラグは変化しません。"""
    return Operation(
        opcode_hex=f"{opcode:02X}",
        mnemonic="DEC" if opcode & 0x08 else "INC",
        operands=[get_rr_reg_name((opcode >> 4) & 0b11)],
        cycle_count=8,
        length=1
    )

def decode_add_hl_rr(opcode: int, bus: Bus, pc: int) -> Operation:
    return Operation(
        opcode_hex=f"{opcode:02X}",
        mnemonic="ADD",
        operands=["HL", get_rr_reg_name((opcode >> 4) & 0b11)],
        cycle_count=8,
        length=1
    )

def decode_add_sp_e(opcode: int, bus: Bus, pc: int) -> Operation:
    e = bus.read(pc + 1)
    return Operation(
        opcode_hex="E8",
        mnemonic="ADD",
        operands=["SP", f"{to_signed(e):+d}"],
        operand_bytes=[e],
        cycle_count=16,
        length=2
    )

def decode_accumulator(opcode: int, bus: Bus, pc: int) -> Operation:
    return Operation(opcode_hex=f"{opcode:02X}", mnemonic=ACCUMULATOR_MNEMONICS[opcode], cycle_count=4, length=1)

# --- Execution Functions ---

def execute_alu_r(state: Sm83CpuState, bus: Bus, operation: Operation) -> None:
    opcode = opcode_of(operation)
    value = get_register_value(state, bus, get_register_name(opcode & 0b111))
    _apply_alu(state, (opcode >> 3) & 0b111, value)

def execute_alu_n(state: Sm83CpuState, bus: Bus, operation: Operation) -> None:
    _apply_alu(state, (opcode_of(operation) >> 3) & 0b111, operation.operand_bytes[0])

def execute_inc_dec8(state: Sm83CpuState, bus: Bus, operation: Operation) -> None:
    reg_name = operation.operands[0]
    value = get_register_value(state, bus, reg_name)
    if operation.mnemonic == "INC":
        result = alu.inc8(state, value)
    else:
        result = alu.dec8(state, value)
    set_register_value(state, bus, reg_name, result)

def execute_inc_dec16(state: Sm83CpuState, bus: Bus, operation: Operation) -> None:
    reg_name = operation.operands[0].lower()
    delta = -1 if operation.mnemonic == "DEC" else 1
    setattr(state, reg_name, (getattr(state, reg_name) + delta) & 0xFFFF)

def execute_add_hl_rr(state: Sm83CpuState, bus: Bus, operation: Operation) -> None:
    alu.add16_hl(state, getattr(state, operation.operands[1].lower()))

def execute_add_sp_e(state: Sm83CpuState, bus: Bus, operation: Operation) -> None:
    state.sp = alu.add_sp_offset(state, operation.operand_bytes[0])

# @intent:responsibility アキュムレータ版のローテートはZフラグを常に0にします。
def execute_accumulator(state: Sm83CpuState, bus: Bus, operation: Operation) -> None:
    opcode = opcode_of(operation)
    if opcode in (0x07, 0x0F, 0x17, 0x1F):
        rotate = {0x07: alu.rlc, 0x0F: alu.rrc, 0x17: alu.rl, 0x1F: alu.rr}[opcode]
        state.a = rotate(state, state.a)
        state.flag_z = False
    elif opcode == 0x27:
        alu.daa(state)
    elif opcode == 0x2F:
        state.a = ~state.a & 0xFF
        state.flag_n = True
        state.flag_h = True
    elif opcode == 0x37:
        state.flag_n = False
        state.flag_h = False
        state.flag_c = True
    else:
        state.flag_n = False
        state.flag_h = False
        state.flag_c = not state.flag_c
