# dmg_core_tracer/debugger/debugger.py
"""
デバッガモジュール。

エミュレータの実行を制御し、ユーザーが指定した条件（ブレークポイント）で
実行を中断させる責務を負います。
デバッガがコアの状態を変えるのは、1命令実行と連続実行の明示的な操作だけです。
"""
import copy
import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Deque, Dict, List, Optional, Tuple

from dmg_core_tracer.core.snapshot import Snapshot
from dmg_core_tracer.core.state import CpuState
from dmg_core_tracer.transport.bus import BusAccessType
from dmg_core_tracer.machine.gameboy import GameBoy

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_SIZE = 1024


# @intent:responsibility ブレークポイントの条件タイプを定義します。
class BreakpointConditionType(Enum):
    PC_MATCH = "PC_MATCH"               # プログラムカウンタが特定のアドレスに一致
    MEMORY_READ = "MEMORY_READ"         # 特定のアドレスが読み込まれた
    MEMORY_WRITE = "MEMORY_WRITE"       # 特定のアドレスに書き込まれた
    REGISTER_VALUE = "REGISTER_VALUE"   # 特定のレジスタが特定の値になった
    REGISTER_CHANGE = "REGISTER_CHANGE" # 特定のレジスタの値が変化した


# @intent:responsibility ブレークポイントをトリガーする条件を定義します。
@dataclass(frozen=True)
class BreakpointCondition:
    """
    ブレークポイントがヒットするための条件を定義するデータクラス。
    register_name は "A" や "HL" のようなレジスタ名です（大文字小文字は問いません）。
    """
    condition_type: BreakpointConditionType
    value: Optional[int] = None           # PC_MATCH, REGISTER_VALUEで使用
    address: Optional[int] = None         # MEMORY_READ, MEMORY_WRITEで使用
    register_name: Optional[str] = None   # REGISTER_VALUE, REGISTER_CHANGEで使用
    enabled: bool = True


def _register_value(state: CpuState, name: str) -> Optional[int]:
    attr = name.lower()
    if not hasattr(state, attr):
        return None
    return int(getattr(state, attr))


# @intent:responsibility 実行制御とブレークポイント管理を行います。
class Debugger:
    """
    GameBoyの実行を1命令単位で制御し、ブレークポイントの管理を行うクラス。
    実行中のみバスのアクセス記録を有効にします。
    """
    def __init__(self, gameboy: GameBoy, history_size: int = DEFAULT_HISTORY_SIZE):
        self._gameboy = gameboy
        self._cpu = gameboy.cpu
        self._breakpoints: List[BreakpointCondition] = []
        self._running: bool = False
        self._previous_state: CpuState = copy.copy(self._cpu.get_state())
        self._last_snapshot: Optional[Snapshot] = None
        # @intent:responsibility 直近の実行履歴を保持します。古いものから捨てます。
        self._history: Deque[Snapshot] = deque(maxlen=history_size)

    def add_breakpoint(self, condition: BreakpointCondition) -> None:
        if condition not in self._breakpoints:
            self._breakpoints.append(condition)

    def update_breakpoint(self, old_condition: BreakpointCondition, new_condition: BreakpointCondition) -> None:
        if old_condition in self._breakpoints:
            idx = self._breakpoints.index(old_condition)
            self._breakpoints[idx] = new_condition

    def remove_breakpoint(self, condition: BreakpointCondition) -> None:
        if condition in self._breakpoints:
            self._breakpoints.remove(condition)

    def get_breakpoints(self) -> List[BreakpointCondition]:
        return list(self._breakpoints)

    def get_history(self) -> List[Snapshot]:
        return list(self._history)

    def get_last_snapshot(self) -> Optional[Snapshot]:
        return self._last_snapshot

    # @intent:responsibility PC_MATCH以外のブレークポイントをSnapshotに対して評価し、ヒットした条件を返します。
    def _check_other_breakpoints(self, snapshot: Snapshot) -> Optional[BreakpointCondition]:
        current_state = snapshot.state

        for bp in self._breakpoints:
            if not bp.enabled:
                continue

            if bp.condition_type == BreakpointConditionType.MEMORY_READ:
                for access in snapshot.bus_activity:
                    if access.access_type == BusAccessType.READ and access.address == bp.address:
                        return bp
            elif bp.condition_type == BreakpointConditionType.MEMORY_WRITE:
                for access in snapshot.bus_activity:
                    if access.access_type == BusAccessType.WRITE and access.address == bp.address:
                        return bp
            elif bp.condition_type == BreakpointConditionType.REGISTER_VALUE:
                if bp.register_name and _register_value(current_state, bp.register_name) == bp.value:
                    return bp
            elif bp.condition_type == BreakpointConditionType.REGISTER_CHANGE:
                if bp.register_name:
                    now = _register_value(current_state, bp.register_name)
                    before = _register_value(self._previous_state, bp.register_name)
                    if now is not None and now != before:
                        return bp
        return None

    def _pc_breakpoint(self, pc: int) -> Optional[BreakpointCondition]:
        for bp in self._breakpoints:
            if bp.enabled and bp.condition_type == BreakpointConditionType.PC_MATCH and bp.value == pc:
                return bp
        return None

    def step_instruction(self) -> Snapshot:
        """
        1命令分実行し（タイマとPPUも同じサイクル数だけ進みます）、その結果のSnapshotを返します。
        """
        bus = self._gameboy.bus
        self._previous_state = copy.copy(self._cpu.get_state())
        bus.set_tracing(True)
        try:
            snapshot = self._gameboy.trace_step()
        finally:
            bus.set_tracing(False)
        self._last_snapshot = snapshot
        self._history.append(snapshot)
        return snapshot

    # @intent:responsibility ブレークポイントにヒットするか、max_instructions命令を実行するまで連続実行します。
    # @intent:post-condition ヒットしたブレークポイントを返します。ヒットせずに終わった場合はNoneです。
    def run(self, max_instructions: int) -> Optional[BreakpointCondition]:
        """
        現在のPCにあるブレークポイントでは止まらず、少なくとも1命令は実行します。
        """
        self._running = True
        executed = 0
        while self._running and executed < max_instructions:
            if executed > 0:
                hit = self._pc_breakpoint(self._cpu.get_state().pc)
                if hit is not None:
                    self._running = False
                    logger.info("Breakpoint hit at PC: %#06x", hit.value)
                    return hit

            snapshot = self.step_instruction()
            executed += 1

            hit = self._check_other_breakpoints(snapshot)
            if hit is not None:
                self._running = False
                logger.info("Breakpoint %s hit at PC: %#06x", hit.condition_type.value, snapshot.state.pc)
                return hit

        self._running = False
        return None

    def stop(self) -> None:
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    # --- 参照専用の問い合わせ ---

    def get_register_map(self) -> Dict[str, int]:
        return self._cpu.get_register_map()

    def get_flag_state(self) -> Dict[str, bool]:
        return self._cpu.get_flag_state()

    def peek(self, address: int) -> int:
        return self._gameboy.bus.peek(address)

    def peek_range(self, start: int, length: int) -> bytes:
        return bytes(self._gameboy.bus.peek(start + i) for i in range(length))

    def disassemble(self, start_addr: int, length: int) -> List[Tuple[int, str, str]]:
        return self._cpu.disassemble(start_addr, length)
