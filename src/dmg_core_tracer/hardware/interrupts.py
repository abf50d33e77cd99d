"""
割り込みコントローラ。

IF（要求フラグ, 0xFF0F）とIE（許可マスク, 0xFFFF）を保持し、
各コンポーネントからの割り込み要求をCPUへ橋渡しします。
マスター許可フラグ(IME)はCPU状態が所有します。
"""
from enum import IntFlag
from typing import Optional

# @intent:responsibility 5種類の割り込み要因とIF/IEレジスタ内のビット位置を定義します。
class Interrupt(IntFlag):
    VBLANK = 0b0000_0001
    LCD_STAT = 0b0000_0010
    TIMER = 0b0000_0100
    SERIAL = 0b0000_1000
    JOYPAD = 0b0001_0000

# @intent:constant サービス順序（先頭ほど優先度が高い）。
INTERRUPT_PRIORITY = (
    Interrupt.VBLANK,
    Interrupt.LCD_STAT,
    Interrupt.TIMER,
    Interrupt.SERIAL,
    Interrupt.JOYPAD,
)

# @intent:constant 各割り込みのジャンプ先ベクタ。
INTERRUPT_VECTORS = {
    Interrupt.VBLANK: 0x0040,
    Interrupt.LCD_STAT: 0x0048,
    Interrupt.TIMER: 0x0050,
    Interrupt.SERIAL: 0x0058,
    Interrupt.JOYPAD: 0x0060,
}

INTERRUPT_MASK = 0b0001_1111


class InterruptController:
    """
    要求フラグと許可マスクを保持するコントローラ。
    どのコンポーネントも request() で要求ビットを立てることができます。
    """
    def __init__(self):
        self.flags: int = 0x00
        self.enable: int = 0x00

    def reset(self) -> None:
        self.flags = 0x00
        self.enable = 0x00

    def request(self, interrupt: Interrupt) -> None:
        self.flags |= int(interrupt)

    def acknowledge(self, interrupt: Interrupt) -> None:
        self.flags &= ~int(interrupt) & INTERRUPT_MASK

    # @intent:responsibility 許可済みかつ要求中の割り込みビットを返します。IMEは考慮しません。
    def pending(self) -> int:
        return self.flags & self.enable & INTERRUPT_MASK

    # @intent:responsibility 要求中の割り込みのうち最も優先度の高いものを返します。
    def highest_priority(self) -> Optional[Interrupt]:
        pending = self.pending()
        if not pending:
            return None
        for interrupt in INTERRUPT_PRIORITY:
            if pending & interrupt:
                return interrupt
        return None

    # --- I/Oレジスタとしての見え方 ---

    # @intent:rationale IFの上位3bitは実機では常に1として読まれます。
    def read_flags(self) -> int:
        return 0xE0 | (self.flags & INTERRUPT_MASK)

    def write_flags(self, value: int) -> None:
        self.flags = value & INTERRUPT_MASK

    def read_enable(self) -> int:
        return self.enable

    def write_enable(self, value: int) -> None:
        self.enable = value & 0xFF
