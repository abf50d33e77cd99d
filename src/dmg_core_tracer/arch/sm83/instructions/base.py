"""
SM83命令セット実装のための共通ヘルパー関数と定数。
"""
from dmg_core_tracer.arch.sm83.state import Sm83CpuState
from dmg_core_tracer.transport.bus import Bus
from dmg_core_tracer.core.snapshot import Operation

# Helper functions for register mapping
REGISTER_CODES = {
    0b000: "B", 0b001: "C", 0b010: "D", 0b011: "E",
    0b100: "H", 0b101: "L", 0b110: "(HL)", 0b111: "A"
}

# @intent:utility_function 指定されたコードに対応するレジスタ名を返します。
def get_register_name(code: int) -> str:
    return REGISTER_CODES.get(code, "UNKNOWN_REG")

# @intent:utility_function レジスタ名（または(HL)）に基づいて現在の値を取得します。
def get_register_value(state: Sm83CpuState, bus: Bus, reg_name: str) -> int:
    if reg_name == "(HL)":
        return bus.read(state.hl)
    return getattr(state, reg_name.lower())

# @intent:utility_function レジスタ名（または(HL)）に値を設定します。
def set_register_value(state: Sm83CpuState, bus: Bus, reg_name: str, value: int) -> None:
    if reg_name == "(HL)":
        bus.write(state.hl, value & 0xFF)
    else:
        setattr(state, reg_name.lower(), value & 0xFF)

# @intent:utility_function PUSH/POP命令で使用されるレジスタペア名を返します。
def get_push_pop_reg_name(code: int) -> str:
    return {0b00: "BC", 0b01: "DE", 0b10: "HL", 0b11: "AF"}.get(code, "UNKNOWN")

# @intent:utility_function 16ビット演算で使用されるレジスタペア名(rr)を返します。
def get_rr_reg_name(code: int) -> str:
    return {0b00: "BC", 0b01: "DE", 0b10: "HL", 0b11: "SP"}.get(code, "UNKNOWN")

# @intent:utility_function 条件分岐の条件名を返します。
def get_condition_name(code: int) -> str:
    return {0b00: "NZ", 0b01: "Z", 0b10: "NC", 0b11: "C"}.get(code, "UNKNOWN")

# @intent:utility_function 条件コードを現在のフラグで評価します。
def check_condition(state: Sm83CpuState, code: int) -> bool:
    if code == 0b00:
        return not state.flag_z
    if code == 0b01:
        return state.flag_z
    if code == 0b10:
        return not state.flag_c
    return state.flag_c

# @intent:utility_function 操作対象のオペコードを整数で返します。
def opcode_of(operation: Operation) -> int:
    return int(operation.opcode_hex, 16)

# @intent:utility_function オペランドバイトを16bit値（リトルエンディアン）として返します。
def operand_word(operation: Operation) -> int:
    return (operation.operand_bytes[1] << 8) | operation.operand_bytes[0]

# @intent:utility_function 8bit値を符号付きとして解釈します。
def to_signed(value: int) -> int:
    return value - 0x100 if value & 0x80 else value

# @intent:utility_function スタックへ16bit値を積みます（上位バイトが先）。
def push_word(state: Sm83CpuState, bus: Bus, value: int) -> None:
    state.sp = (state.sp - 1) & 0xFFFF
    bus.write(state.sp, (value >> 8) & 0xFF)
    state.sp = (state.sp - 1) & 0xFFFF
    bus.write(state.sp, value & 0xFF)

# @intent:utility_function スタックから16bit値を取り出します。
def pop_word(state: Sm83CpuState, bus: Bus) -> int:
    low = bus.read(state.sp)
    state.sp = (state.sp + 1) & 0xFFFF
    high = bus.read(state.sp)
    state.sp = (state.sp + 1) & 0xFFFF
    return (high << 8) | low
