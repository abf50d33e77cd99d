"""
SM83逆アセンブラモジュール。

メモリ上のバイナリデータを解析し、SM83アセンブリ言語のニーモニック形式に変換します。
"""
from typing import List, Tuple

from dmg_core_tracer.transport.bus import Bus
from dmg_core_tracer.common.errors import UnsupportedOpcode
from dmg_core_tracer.arch.sm83.instructions import decode_opcode


# @intent:responsibility デコーダに副作用のない読み出し口を渡すための薄いラッパーです。
# @intent:rationale デコーダはオペランドをbus.readで読むため、そのままではトレースログや
#                  VRAMのアクセス制限の影響を受けます。逆アセンブルはpeekで行います。
class _PeekView:
    def __init__(self, bus: Bus):
        self._bus = bus

    def read(self, address: int) -> int:
        return self._bus.peek(address)

    def peek(self, address: int) -> int:
        return self._bus.peek(address)


# @intent:responsibility 指定されたメモリ範囲のバイナリデータを解析し、アドレスとニーモニックのリストを返します。
def disassemble(bus: Bus, start_addr: int, length: int) -> List[Tuple[int, str, str]]:
    """
    メモリ上のデータを読み取り、(アドレス, 16進ダンプ, ニーモニック) のタプルのリストを返します。
    未定義オペコードは "DB $XX" として1バイトずつ表示します。
    """
    view = _PeekView(bus)
    result = []
    current_addr = start_addr
    end_addr = start_addr + length

    while current_addr < end_addr and current_addr <= 0xFFFF:
        opcode = view.read(current_addr)
        try:
            operation = decode_opcode(opcode, view, current_addr)
        except UnsupportedOpcode:
            result.append((current_addr, f"{opcode:02X}", f"DB ${opcode:02X}"))
            current_addr += 1
            continue

        hex_bytes = [f"{opcode:02X}"] + [f"{b:02X}" for b in operation.operand_bytes]
        result.append((current_addr, " ".join(hex_bytes), operation.text))
        current_addr += operation.length

    return result
