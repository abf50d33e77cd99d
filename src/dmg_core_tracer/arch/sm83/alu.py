"""
SM83 ALU (算術論理演算ユニット) およびフラグ操作ユーティリティ。

演算結果に基づいたフラグ（Z, N, H, C）の計算と更新を担当します。
"""
from dmg_core_tracer.arch.sm83.state import Sm83CpuState


def _set_flags(state: Sm83CpuState, z: bool, n: bool, h: bool, c: bool) -> None:
    state.flag_z = z
    state.flag_n = n
    state.flag_h = h
    state.flag_c = c


# @intent:responsibility ADD/ADC: Aに値（とキャリー）を加算します。
def add8(state: Sm83CpuState, value: int, carry: int = 0) -> None:
    a = state.a
    result = a + value + carry
    _set_flags(
        state,
        z=(result & 0xFF) == 0,
        n=False,
        h=((a & 0x0F) + (value & 0x0F) + carry) > 0x0F,
        c=result > 0xFF,
    )
    state.a = result & 0xFF


# @intent:responsibility SUB/SBC/CP: Aから値（とボロー）を減算します。CPは結果を格納しません。
def sub8(state: Sm83CpuState, value: int, carry: int = 0, store: bool = True) -> None:
    a = state.a
    result = a - value - carry
    _set_flags(
        state,
        z=(result & 0xFF) == 0,
        n=True,
        h=((a & 0x0F) - (value & 0x0F) - carry) < 0,
        c=result < 0,
    )
    if store:
        state.a = result & 0xFF


def and8(state: Sm83CpuState, value: int) -> None:
    state.a &= value
    _set_flags(state, z=state.a == 0, n=False, h=True, c=False)


def xor8(state: Sm83CpuState, value: int) -> None:
    state.a = (state.a ^ value) & 0xFF
    _set_flags(state, z=state.a == 0, n=False, h=False, c=False)


def or8(state: Sm83CpuState, value: int) -> None:
    state.a = (state.a | value) & 0xFF
    _set_flags(state, z=state.a == 0, n=False, h=False, c=False)


# @intent:responsibility INC r: Cフラグは変化しません。
def inc8(state: Sm83CpuState, value: int) -> int:
    result = (value + 1) & 0xFF
    state.flag_z = result == 0
    state.flag_n = False
    state.flag_h = (value & 0x0F) == 0x0F
    return result


# @intent:responsibility DEC r: Cフラグは変化しません。
def dec8(state: Sm83CpuState, value: int) -> int:
    result = (value - 1) & 0xFF
    state.flag_z = result == 0
    state.flag_n = True
    state.flag_h = (value & 0x0F) == 0x00
    return result


# @intent:responsibility ADD HL,rr: Zフラグは変化せず、Hはbit11からのキャリーです。
def add16_hl(state: Sm83CpuState, value: int) -> None:
    hl = state.hl
    result = hl + value
    state.flag_n = False
    state.flag_h = ((hl & 0x0FFF) + (value & 0x0FFF)) > 0x0FFF
    state.flag_c = result > 0xFFFF
    state.hl = result & 0xFFFF


# @intent:responsibility ADD SP,e / LD HL,SP+e の共通計算。フラグは下位バイトの符号なし加算から求めます。
def add_sp_offset(state: Sm83CpuState, offset: int) -> int:
    sp = state.sp
    _set_flags(
        state,
        z=False,
        n=False,
        h=((sp & 0x0F) + (offset & 0x0F)) > 0x0F,
        c=((sp & 0xFF) + (offset & 0xFF)) > 0xFF,
    )
    signed = offset - 0x100 if offset & 0x80 else offset
    return (sp + signed) & 0xFFFF


# @intent:responsibility 直前の加減算の結果をBCDに補正します。
def daa(state: Sm83CpuState) -> None:
    a = state.a
    carry = state.flag_c
    if not state.flag_n:
        if carry or a > 0x99:
            a += 0x60
            carry = True
        if state.flag_h or (a & 0x0F) > 0x09:
            a += 0x06
    else:
        if carry:
            a -= 0x60
        if state.flag_h:
            a -= 0x06
    a &= 0xFF
    state.a = a
    state.flag_z = a == 0
    state.flag_h = False
    state.flag_c = carry


# --- ローテート/シフト (CBプレフィックス命令とアキュムレータ版で共有) ---

def rlc(state: Sm83CpuState, value: int) -> int:
    carry = value >> 7
    result = ((value << 1) | carry) & 0xFF
    _set_flags(state, z=result == 0, n=False, h=False, c=bool(carry))
    return result


def rrc(state: Sm83CpuState, value: int) -> int:
    carry = value & 1
    result = (value >> 1) | (carry << 7)
    _set_flags(state, z=result == 0, n=False, h=False, c=bool(carry))
    return result


def rl(state: Sm83CpuState, value: int) -> int:
    result = ((value << 1) | int(state.flag_c)) & 0xFF
    _set_flags(state, z=result == 0, n=False, h=False, c=bool(value & 0x80))
    return result


def rr(state: Sm83CpuState, value: int) -> int:
    result = (value >> 1) | (int(state.flag_c) << 7)
    _set_flags(state, z=result == 0, n=False, h=False, c=bool(value & 1))
    return result


def sla(state: Sm83CpuState, value: int) -> int:
    result = (value << 1) & 0xFF
    _set_flags(state, z=result == 0, n=False, h=False, c=bool(value & 0x80))
    return result


def sra(state: Sm83CpuState, value: int) -> int:
    result = (value >> 1) | (value & 0x80)
    _set_flags(state, z=result == 0, n=False, h=False, c=bool(value & 1))
    return result


def swap(state: Sm83CpuState, value: int) -> int:
    result = ((value << 4) | (value >> 4)) & 0xFF
    _set_flags(state, z=result == 0, n=False, h=False, c=False)
    return result


def srl(state: Sm83CpuState, value: int) -> int:
    result = value >> 1
    _set_flags(state, z=result == 0, n=False, h=False, c=bool(value & 1))
    return result


# @intent:constant CB 00-3F のローテート/シフト命令を (opcode >> 3) で引く表。
ROTATE_SHIFT_OPS = (
    ("RLC", rlc),
    ("RRC", rrc),
    ("RL", rl),
    ("RR", rr),
    ("SLA", sla),
    ("SRA", sra),
    ("SWAP", swap),
    ("SRL", srl),
)
