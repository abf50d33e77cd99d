# dmg_core_tracer/arch/sm83/state.py
"""
SM83 CPU固有の状態定義。

このモジュールは、SM83 (DMG CPU) のレジスタ、フラグ、割り込み許可状態を保持するデータ構造を定義します。
"""
from dataclasses import dataclass

from dmg_core_tracer.core.state import CpuState

# @intent:constant Fレジスタ内の各フラグビットの位置。下位4bitは常に0です。
Z_FLAG = 0b1000_0000  # Zero
N_FLAG = 0b0100_0000  # Subtract
H_FLAG = 0b0010_0000  # Half Carry
C_FLAG = 0b0001_0000  # Carry
F_MASK = 0b1111_0000


# @intent:responsibility SM83 CPUの全てのレジスタとフラグ、割り込み関連の状態を保持します。
@dataclass
class Sm83CpuState(CpuState):
    """
    SM83 CPUのレジスタ状態を保持するデータクラス。
    ime_pending はEI命令の効果が次の命令の完了後に現れることを表します。
    halt_bug はHALTバグにより次のフェッチでPCが進まないことを表します。
    """
    a: int = 0x00
    f: int = 0x00
    b: int = 0x00
    c: int = 0x00
    d: int = 0x00
    e: int = 0x00
    h: int = 0x00
    l: int = 0x00

    ime: bool = False
    ime_pending: bool = False
    halted: bool = False
    halt_bug: bool = False

    # @intent:accessor Fレジスタの各フラグビットにアクセスするためのプロパティを提供します。

    @property
    def flag_z(self) -> bool:
        return (self.f & Z_FLAG) != 0

    @flag_z.setter
    def flag_z(self, value: bool) -> None:
        if value:
            self.f |= Z_FLAG
        else:
            self.f &= ~Z_FLAG & 0xFF

    @property
    def flag_n(self) -> bool:
        return (self.f & N_FLAG) != 0

    @flag_n.setter
    def flag_n(self, value: bool) -> None:
        if value:
            self.f |= N_FLAG
        else:
            self.f &= ~N_FLAG & 0xFF

    @property
    def flag_h(self) -> bool:
        return (self.f & H_FLAG) != 0

    @flag_h.setter
    def flag_h(self, value: bool) -> None:
        if value:
            self.f |= H_FLAG
        else:
            self.f &= ~H_FLAG & 0xFF

    @property
    def flag_c(self) -> bool:
        return (self.f & C_FLAG) != 0

    @flag_c.setter
    def flag_c(self, value: bool) -> None:
        if value:
            self.f |= C_FLAG
        else:
            self.f &= ~C_FLAG & 0xFF

    # @intent:accessor 16bitレジスタペアのプロパティ。AFへの書き込みではFの下位4bitを落とします。

    @property
    def af(self) -> int:
        return (self.a << 8) | self.f

    @af.setter
    def af(self, value: int) -> None:
        self.a = (value >> 8) & 0xFF
        self.f = value & F_MASK

    @property
    def bc(self) -> int:
        return (self.b << 8) | self.c

    @bc.setter
    def bc(self, value: int) -> None:
        self.b = (value >> 8) & 0xFF
        self.c = value & 0xFF

    @property
    def de(self) -> int:
        return (self.d << 8) | self.e

    @de.setter
    def de(self, value: int) -> None:
        self.d = (value >> 8) & 0xFF
        self.e = value & 0xFF

    @property
    def hl(self) -> int:
        return (self.h << 8) | self.l

    @hl.setter
    def hl(self, value: int) -> None:
        self.h = (value >> 8) & 0xFF
        self.l = value & 0xFF
