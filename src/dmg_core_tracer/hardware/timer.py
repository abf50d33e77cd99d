"""
ディバイダ/タイマ。

16bitのフリーランカウンタを持ち、その上位バイトをDIVレジスタとして公開します。
TIMAはTACで選択されたカウンタのビットの立ち下がりで進み、
オーバーフロー時にTMAから再ロードされタイマ割り込みを要求します。
"""
from dmg_core_tracer.hardware.interrupts import InterruptController, Interrupt

# @intent:constant TACの下位2bitで選ばれるカウンタのビット。周期はそれぞれ1024, 16, 64, 256サイクル。
TAC_INPUT_MASKS = (1 << 9, 1 << 3, 1 << 5, 1 << 7)
TAC_ENABLE = 0b0000_0100

# @intent:constant カウンタの進み幅。全命令のサイクル数は4の倍数なので、4サイクル単位で立ち下がりを検出できます。
TICK_GRANULARITY = 4


class Timer:
    """
    DIV/TIMA/TMA/TACの4レジスタを所有するタイマ。
    tick(cycles) で直前のCPU命令が消費したサイクル数だけ進めます。
    """
    def __init__(self, interrupts: InterruptController):
        self._interrupts = interrupts
        self.counter: int = 0x0000
        self.tima: int = 0x00
        self.tma: int = 0x00
        self.tac: int = 0x00

    def reset(self) -> None:
        self.counter = 0x0000
        self.tima = 0x00
        self.tma = 0x00
        self.tac = 0x00

    # @intent:responsibility タイマ回路への入力信号（許可ビットと選択ビットの論理積）を返します。
    def _timer_input(self) -> bool:
        if not self.tac & TAC_ENABLE:
            return False
        return (self.counter & TAC_INPUT_MASKS[self.tac & 0b11]) != 0

    def _increment_tima(self) -> None:
        if self.tima == 0xFF:
            self.tima = self.tma
            self._interrupts.request(Interrupt.TIMER)
        else:
            self.tima += 1

    def tick(self, cycles: int) -> None:
        """
        指定されたサイクル数だけカウンタを進めます。
        """
        if not self.tac & TAC_ENABLE:
            self.counter = (self.counter + cycles) & 0xFFFF
            return

        remaining = cycles
        while remaining > 0:
            step = TICK_GRANULARITY if remaining >= TICK_GRANULARITY else remaining
            before = self._timer_input()
            self.counter = (self.counter + step) & 0xFFFF
            if before and not self._timer_input():
                self._increment_tima()
            remaining -= step

    # --- I/Oレジスタとしての見え方 ---

    @property
    def div(self) -> int:
        return (self.counter >> 8) & 0xFF

    # @intent:responsibility DIVへの書き込みは値に関係なく内部カウンタ全体を0にします。
    # @intent:rationale 選択ビットが1の状態でリセットすると立ち下がりが発生し、TIMAが1つ進みます（実機と同じ）。
    def write_div(self, value: int) -> None:
        before = self._timer_input()
        self.counter = 0
        if before:
            self._increment_tima()

    def read_tima(self) -> int:
        return self.tima

    def write_tima(self, value: int) -> None:
        self.tima = value & 0xFF

    def read_tma(self) -> int:
        return self.tma

    def write_tma(self, value: int) -> None:
        self.tma = value & 0xFF

    def read_tac(self) -> int:
        return 0xF8 | self.tac

    def write_tac(self, value: int) -> None:
        before = self._timer_input()
        self.tac = value & 0b111
        if before and not self._timer_input():
            self._increment_tima()
