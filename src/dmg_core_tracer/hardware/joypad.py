"""
ジョイパッド (JOYP)。

ボタンは方向キー群とアクションボタン群に分かれ、JOYPのbit4/bit5で選択された群だけが
下位4bitに現れます（押下中のボタンは0）。
"""
from enum import IntFlag

from dmg_core_tracer.hardware.interrupts import InterruptController, Interrupt

SELECT_DIRECTIONS = 0b0001_0000
SELECT_ACTIONS = 0b0010_0000


class JoypadButton(IntFlag):
    RIGHT = 0b0000_0001
    LEFT = 0b0000_0010
    UP = 0b0000_0100
    DOWN = 0b0000_1000
    A = 0b0001_0000
    B = 0b0010_0000
    SELECT = 0b0100_0000
    START = 0b1000_0000


class Joypad:
    def __init__(self, interrupts: InterruptController):
        self._interrupts = interrupts
        self._pressed: int = 0x00
        self._select: int = SELECT_DIRECTIONS | SELECT_ACTIONS

    def reset(self) -> None:
        self._pressed = 0x00
        self._select = SELECT_DIRECTIONS | SELECT_ACTIONS

    # @intent:responsibility 現在選択されている群のうち押下中のボタンを下位4bitで返します（1=押下）。
    def _visible_lines(self) -> int:
        lines = 0
        if not self._select & SELECT_DIRECTIONS:
            lines |= self._pressed & 0x0F
        if not self._select & SELECT_ACTIONS:
            lines |= (self._pressed >> 4) & 0x0F
        return lines

    def read(self) -> int:
        return 0xC0 | self._select | (~self._visible_lines() & 0x0F)

    def write(self, value: int) -> None:
        self._select = value & (SELECT_DIRECTIONS | SELECT_ACTIONS)

    # @intent:responsibility ボタンを押下状態にし、選択中の群で新たに押下が見えたらジョイパッド割り込みを要求します。
    def press(self, button: JoypadButton) -> None:
        before = self._visible_lines()
        self._pressed |= int(button)
        if self._visible_lines() & ~before:
            self._interrupts.request(Interrupt.JOYPAD)

    def release(self, button: JoypadButton) -> None:
        self._pressed &= ~int(button) & 0xFF

    def is_pressed(self, button: JoypadButton) -> bool:
        return (self._pressed & int(button)) != 0
