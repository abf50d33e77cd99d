# dmg_core_tracer/core/snapshot.py
"""
実行状態の不変スナップショット

このモジュールは、1命令実行後のCPUとバスの状態を記録した不変のデータ構造を定義します。
デバッガへの情報提供と、トレース記録に用いる責務を負います。
"""
from dataclasses import dataclass, field
from typing import List, Optional

from dmg_core_tracer.core.state import CpuState
from dmg_core_tracer.transport.bus import BusAccess


# @intent:responsibility デコードされた命令の詳細を記録します。
@dataclass(frozen=True) # 不変データ構造
class Operation:
    """
    命令の詳細（HEX、ニーモニック、オペランド、サイクル数）を記録するデータクラス。
    条件分岐命令は、分岐した場合のサイクル数を taken_cycle_count に持ちます。
    """
    opcode_hex: str # 例: "C3"
    mnemonic: str # 例: "JP"
    operands: List[str] = field(default_factory=list) # 例: ["$1234"]
    operand_bytes: List[int] = field(default_factory=list) # 生のオペランドバイト
    cycle_count: int = 0 # 命令実行に必要なクロックサイクル数（条件不成立時）
    length: int = 1 # 命令のバイト長
    taken_cycle_count: Optional[int] = None # 条件成立時のサイクル数

    # @intent:responsibility ニーモニックとオペランドを結合した表示用文字列を返します。
    @property
    def text(self) -> str:
        if self.operands:
            return f"{self.mnemonic} {','.join(self.operands)}"
        return self.mnemonic


# @intent:responsibility 実行に関するメタデータを記録します。
@dataclass(frozen=True) # 不変データ構造
class Metadata:
    """
    実行に関するメタデータ（累計サイクル数、この命令のサイクル数、シンボル情報）。
    """
    cycle_count: int
    instruction_cycles: int = 0
    symbol_info: Optional[str] = None # 例: "main_loop: JP $1234"


# @intent:responsibility ある一時点におけるCPUとバスの状態を不変に記録します。
@dataclass(frozen=True) # 不変データ構造
class Snapshot:
    """
    1命令実行後のCPU状態のコピー、実行した命令、メタデータ、およびその命令中のバスアクセス。
    """
    state: CpuState
    operation: Operation
    metadata: Metadata
    bus_activity: List[BusAccess] = field(default_factory=list)
