# dmg_core_tracer/core/cpu.py
"""
Core Layer (抽象CPU)

このモジュールは、CPUの基本的な状態管理と命令サイクルの駆動に関する抽象化を提供します。
具体的な命令の振る舞いはInstruction Layerに移譲されます。
"""
import copy
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

from dmg_core_tracer.transport.bus import Bus
from dmg_core_tracer.core.snapshot import Snapshot, Operation, Metadata
from dmg_core_tracer.core.state import CpuState
from dmg_core_tracer.common.types import SymbolMap, RegisterLayoutInfo

# @intent:responsibility 抽象CPUの基本機能とインターフェースを定義します。
class AbstractCpu(ABC):
    """
    全てのCPUエミュレーションの基底となる抽象クラス。
    Busとのインターフェース、基本的な状態管理、命令サイクルの抽象化を提供します。
    """
    # @intent:pre-condition `bus`は有効なBusオブジェクトである必要があります。
    def __init__(self, bus: Bus):
        self._bus = bus
        self._state: CpuState = self._create_initial_state()
        self._cycle_count: int = 0
        self._symbol_map: SymbolMap = {}
        self._reverse_symbol_map: Dict[int, str] = {}

    # @intent:responsibility シンボルマップを設定します。
    def set_symbol_map(self, symbol_map: SymbolMap) -> None:
        self._symbol_map = symbol_map
        # 逆引きマップを作成して、アドレスからラベルを素早く引けるようにする
        self._reverse_symbol_map = {addr: name for name, addr in symbol_map.items()}

    def get_symbol_map(self) -> SymbolMap:
        return self._symbol_map

    # @intent:responsibility 初期状態のCpuStateオブジェクトを生成します。
    @abstractmethod
    def _create_initial_state(self) -> CpuState:
        pass

    # @intent:responsibility CPUをリセットし、初期状態に戻します。
    def reset(self) -> None:
        self._state = self._create_initial_state()
        self._cycle_count = 0

    def get_state(self) -> CpuState:
        return self._state

    # @intent:responsibility 起動時からの累計サイクル数を返します。
    @property
    def cycle_count(self) -> int:
        return self._cycle_count

    @abstractmethod
    def _fetch(self) -> int:
        """
        現在のPCから命令（オペコード）をフェッチします。PCの更新は_update_pcで行います。
        """
        pass

    @abstractmethod
    def _decode(self, opcode: int) -> Operation:
        pass

    # @intent:responsibility デコードされた命令を実行します。
    # @intent:post-condition 条件分岐命令は条件が成立したかどうかを返します。それ以外はNoneを返します。
    @abstractmethod
    def _execute(self, operation: Operation) -> Optional[bool]:
        pass

    # @intent:responsibility CPUを1命令進め、消費したサイクル数を返します。
    # @intent:rationale Template Methodパターンを採用し、共通の実行フロー（HALT判定→フェッチ→デコード→PC更新→実行→命令後処理）を定義します。
    #                  アーキテクチャ固有の振る舞い（HALT処理、割り込み受付など）はフックメソッドで対応します。
    def step(self) -> int:
        """
        CPUを1命令進め、その命令（および命令後に受け付けた割り込み）が消費したサイクル数を返します。
        """
        _, cycles = self._run_instruction()
        return cycles

    # @intent:responsibility stepと同じ処理を行い、その結果をSnapshotとして返します。デバッガが使用します。
    def step_with_snapshot(self) -> Snapshot:
        # 前サイクルまでの残存ログを破棄
        self._bus.get_and_clear_activity_log()
        initial_pc = self._state.pc
        operation, cycles = self._run_instruction()
        return self._create_snapshot(initial_pc, operation, cycles)

    def _run_instruction(self) -> Tuple[Operation, int]:
        self._before_instruction()
        # 1. HALT判定 (Hook)
        operation = self._handle_halt()
        if operation is not None:
            cycles = operation.cycle_count
        else:
            # 2. フェッチ
            opcode = self._fetch()
            # 3. デコード
            operation = self._decode(opcode)
            # 4. PC更新 (Hook)
            self._update_pc(operation)
            # 5. 実行
            taken = self._execute(operation)
            if taken and operation.taken_cycle_count is not None:
                cycles = operation.taken_cycle_count
            else:
                cycles = operation.cycle_count

        # 6. 命令後処理 (Hook): 割り込み受付など
        cycles += self._after_instruction()
        self._cycle_count += cycles
        return operation, cycles

    # @intent:responsibility 命令の実行前に必要な記録を行います。デフォルトは何もしません。
    def _before_instruction(self) -> None:
        pass

    # @intent:responsibility HALT状態の場合の処理を行います。
    # @intent:return HALT中であればその間の疑似命令、そうでなければNone。
    def _handle_halt(self) -> Optional[Operation]:
        return None

    # @intent:responsibility 命令実行前にPCを更新します。デフォルトは命令長分進めます。
    def _update_pc(self, operation: Operation) -> None:
        self._state.pc = (self._state.pc + operation.length) & 0xFFFF

    # @intent:responsibility 命令完了後の処理を行い、追加で消費したサイクル数を返します。
    def _after_instruction(self) -> int:
        return 0

    def _create_snapshot(self, initial_pc: int, operation: Operation, cycles: int) -> Snapshot:
        # このサイクルで発生したバスアクティビティを取得
        bus_activity = self._bus.get_and_clear_activity_log()

        symbol_label = self._reverse_symbol_map.get(initial_pc, "")
        symbol_info = f"{symbol_label}: " if symbol_label else ""
        symbol_info += operation.text

        # Stateは可変なので、スナップショットには実行直後のコピーを格納する
        return Snapshot(
            state=copy.copy(self._state),
            operation=operation,
            metadata=Metadata(cycle_count=self._cycle_count, instruction_cycles=cycles, symbol_info=symbol_info),
            bus_activity=bus_activity,
        )

    @abstractmethod
    def get_register_map(self) -> Dict[str, int]:
        """
        現在のレジスタ値を辞書形式で返す。
        デバッガがCPUの内部構造を知らなくても値を表示できるようにするために使用される。
        """
        pass

    @abstractmethod
    def get_register_layout(self) -> List[RegisterLayoutInfo]:
        pass

    @abstractmethod
    def get_flag_state(self) -> Dict[str, bool]:
        pass

    @abstractmethod
    def disassemble(self, start_addr: int, length: int) -> List[Tuple[int, str, str]]:
        pass
