"""
シリアルポート (SB/SC)。

接続相手を持たないため、内部クロック転送は書き込みと同時に完了します。
送出されたバイトは output に蓄積され、適合性テストプログラムの結果確認に使われます。
"""
import logging

from dmg_core_tracer.hardware.interrupts import InterruptController, Interrupt

logger = logging.getLogger(__name__)

SC_TRANSFER_START = 0b1000_0000
SC_INTERNAL_CLOCK = 0b0000_0001


class SerialPort:
    def __init__(self, interrupts: InterruptController):
        self._interrupts = interrupts
        self.sb: int = 0x00
        self.sc: int = 0x00
        self.output = bytearray()

    def reset(self) -> None:
        self.sb = 0x00
        self.sc = 0x00
        self.output = bytearray()

    def read_sb(self) -> int:
        return self.sb

    def write_sb(self, value: int) -> None:
        self.sb = value & 0xFF

    def read_sc(self) -> int:
        return 0x7E | self.sc

    # @intent:responsibility 内部クロックで転送が開始されたら、即座に1バイトを送出して完了させます。
    def write_sc(self, value: int) -> None:
        self.sc = value & (SC_TRANSFER_START | SC_INTERNAL_CLOCK)
        if self.sc == SC_TRANSFER_START | SC_INTERNAL_CLOCK:
            self.output.append(self.sb)
            logger.debug("Serial out: %#04x", self.sb)
            # 相手がいないので受信値は全ビット1
            self.sb = 0xFF
            self.sc &= ~SC_TRANSFER_START
            self._interrupts.request(Interrupt.SERIAL)

    # @intent:responsibility 送出済みのバイト列をテキストとして返します。
    def output_text(self) -> str:
        return self.output.decode("latin-1")
