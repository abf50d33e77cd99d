"""
SM83 命令マッピング定義。
各命令モジュールから関数をインポートし、オペコードと関数の対応表を構築します。
表に存在しないオペコードは、SM83で未定義の11個 (D3 DB DD E3 E4 EB EC ED F4 FC FD) だけです。
"""
from .alu import (
    decode_alu_r, decode_alu_n, decode_inc_dec8, decode_inc_dec16, decode_add_hl_rr,
    decode_add_sp_e, decode_accumulator,
    execute_alu_r, execute_alu_n, execute_inc_dec8, execute_inc_dec16, execute_add_hl_rr,
    execute_add_sp_e, execute_accumulator
)
from .load import (
    decode_ld_r_r, decode_ld_r_n, decode_ld_rr_nn, decode_ld_indirect, decode_ld_nn_sp,
    decode_ldh_n, decode_ldh_c, decode_ld_nn_a, decode_ld_sp_hl, decode_ld_hl_sp_e, decode_push_pop,
    execute_ld_r_r, execute_ld_r_n, execute_ld_rr_nn, execute_ld_indirect, execute_ld_nn_sp,
    execute_ldh_n, execute_ldh_c, execute_ld_nn_a, execute_ld_sp_hl, execute_ld_hl_sp_e, execute_push_pop
)
from .control import (
    decode_00, decode_10, decode_76, decode_f3, decode_fb, decode_jr, decode_jp, decode_e9,
    decode_call, decode_ret, decode_rst,
    execute_00, execute_10, execute_76, execute_f3, execute_fb, execute_jr, execute_jp, execute_e9,
    execute_call, execute_ret, execute_rst
)
from .cb import decode_cb, execute_cb

ILLEGAL_OPCODES = frozenset({0xD3, 0xDB, 0xDD, 0xE3, 0xE4, 0xEB, 0xEC, 0xED, 0xF4, 0xFC, 0xFD})

DECODE_MAP = {
    0x00: decode_00,
    0x08: decode_ld_nn_sp,
    0x10: decode_10,
    0x76: decode_76,
    0xCB: decode_cb,
    0xE0: decode_ldh_n,
    0xF0: decode_ldh_n,
    0xE2: decode_ldh_c,
    0xF2: decode_ldh_c,
    0xE8: decode_add_sp_e,
    0xE9: decode_e9,
    0xEA: decode_ld_nn_a,
    0xFA: decode_ld_nn_a,
    0xF3: decode_f3,
    0xFB: decode_fb,
    0xF8: decode_ld_hl_sp_e,
    0xF9: decode_ld_sp_hl,
    0x18: decode_jr,
    0xC3: decode_jp,
    0xCD: decode_call,
    0xC9: decode_ret,
    0xD9: decode_ret,
    **{op: decode_ld_rr_nn for op in range(0x01, 0x40, 0x10)}, # LD BC/DE/HL/SP,nn
    **{op: decode_ld_indirect for op in range(0x02, 0x40, 0x10)}, # LD (rr),A
    **{op: decode_ld_indirect for op in range(0x0A, 0x40, 0x10)}, # LD A,(rr)
    **{op: decode_inc_dec16 for op in range(0x03, 0x40, 0x10)}, # INC rr
    **{op: decode_inc_dec16 for op in range(0x0B, 0x40, 0x10)}, # DEC rr
    **{op: decode_add_hl_rr for op in range(0x09, 0x40, 0x10)}, # ADD HL,rr
    **{op: decode_inc_dec8 for op in range(0x04, 0x40, 0x08)}, # INC r
    **{op: decode_inc_dec8 for op in range(0x05, 0x40, 0x08)}, # DEC r
    **{op: decode_ld_r_n for op in range(0x06, 0x40, 0x08)}, # LD r,n
    **{op: decode_accumulator for op in range(0x07, 0x40, 0x08)}, # RLCA ... CCF
    **{op: decode_jr for op in range(0x20, 0x40, 0x08)}, # JR cc,e
    **{op: decode_ld_r_r for op in range(0x40, 0x80) if op != 0x76},
    **{op: decode_alu_r for op in range(0x80, 0xC0)},
    **{op: decode_ret for op in range(0xC0, 0xE0, 0x08)}, # RET cc
    **{op: decode_push_pop for op in range(0xC1, 0x100, 0x10)}, # POP qq
    **{op: decode_push_pop for op in range(0xC5, 0x100, 0x10)}, # PUSH qq
    **{op: decode_jp for op in range(0xC2, 0xE0, 0x08)}, # JP cc,nn
    **{op: decode_call for op in range(0xC4, 0xE0, 0x08)}, # CALL cc,nn
    **{op: decode_alu_n for op in range(0xC6, 0x100, 0x08)},
    **{op: decode_rst for op in range(0xC7, 0x100, 0x08)},
}

EXECUTE_MAP = {
    0x00: execute_00,
    0x08: execute_ld_nn_sp,
    0x10: execute_10,
    0x76: execute_76,
    0xCB: execute_cb,
    0xE0: execute_ldh_n,
    0xF0: execute_ldh_n,
    0xE2: execute_ldh_c,
    0xF2: execute_ldh_c,
    0xE8: execute_add_sp_e,
    0xE9: execute_e9,
    0xEA: execute_ld_nn_a,
    0xFA: execute_ld_nn_a,
    0xF3: execute_f3,
    0xFB: execute_fb,
    0xF8: execute_ld_hl_sp_e,
    0xF9: execute_ld_sp_hl,
    0x18: execute_jr,
    0xC3: execute_jp,
    0xCD: execute_call,
    0xC9: execute_ret,
    0xD9: execute_ret,
    **{op: execute_ld_rr_nn for op in range(0x01, 0x40, 0x10)},
    **{op: execute_ld_indirect for op in range(0x02, 0x40, 0x10)},
    **{op: execute_ld_indirect for op in range(0x0A, 0x40, 0x10)},
    **{op: execute_inc_dec16 for op in range(0x03, 0x40, 0x10)},
    **{op: execute_inc_dec16 for op in range(0x0B, 0x40, 0x10)},
    **{op: execute_add_hl_rr for op in range(0x09, 0x40, 0x10)},
    **{op: execute_inc_dec8 for op in range(0x04, 0x40, 0x08)},
    **{op: execute_inc_dec8 for op in range(0x05, 0x40, 0x08)},
    **{op: execute_ld_r_n for op in range(0x06, 0x40, 0x08)},
    **{op: execute_accumulator for op in range(0x07, 0x40, 0x08)},
    **{op: execute_jr for op in range(0x20, 0x40, 0x08)},
    **{op: execute_ld_r_r for op in range(0x40, 0x80) if op != 0x76},
    **{op: execute_alu_r for op in range(0x80, 0xC0)},
    **{op: execute_ret for op in range(0xC0, 0xE0, 0x08)},
    **{op: execute_push_pop for op in range(0xC1, 0x100, 0x10)},
    **{op: execute_push_pop for op in range(0xC5, 0x100, 0x10)},
    **{op: execute_jp for op in range(0xC2, 0xE0, 0x08)},
    **{op: execute_call for op in range(0xC4, 0xE0, 0x08)},
    **{op: execute_alu_n for op in range(0xC6, 0x100, 0x08)},
    **{op: execute_rst for op in range(0xC7, 0x100, 0x08)},
}
