"""
適合性テストプログラムの実行ハーネス。

命令適合性テストプログラムは結果をシリアルポートへテキストで出力するため、
出力に終端文字列が現れるまで実行し、合否を判定します。
"""
import logging
from dataclasses import dataclass
from typing import Sequence

from dmg_core_tracer.machine.gameboy import GameBoy
from dmg_core_tracer.ppu.ppu import FRAME_CYCLES

logger = logging.getLogger(__name__)

PASS_MARKER = "Passed"
FAIL_MARKER = "Failed"

# @intent:constant 既定の打ち切りサイクル数（約60秒分のフレーム）。
DEFAULT_MAX_CYCLES = FRAME_CYCLES * 60 * 60


@dataclass(frozen=True)
class ConformanceResult:
    output: str
    passed: bool
    cycles: int
    timed_out: bool


# @intent:responsibility シリアル出力に成功または失敗の印が現れるか、上限サイクルに達するまで実行します。
def run_until_serial(
    gameboy: GameBoy,
    pass_markers: Sequence[str] = (PASS_MARKER,),
    fail_markers: Sequence[str] = (FAIL_MARKER,),
    max_cycles: int = DEFAULT_MAX_CYCLES,
) -> ConformanceResult:
    """
    max_cycles に達した場合は timed_out=True の不合格として返します。
    """
    cycles = 0
    seen = 0
    while cycles < max_cycles:
        cycles += gameboy.step()
        # 新しいバイトが届いたときだけ文字列を組み立て直す
        if len(gameboy.serial.output) == seen:
            continue
        seen = len(gameboy.serial.output)
        output = gameboy.serial_output
        if any(marker in output for marker in fail_markers):
            logger.info("Conformance program failed after %d cycles.", cycles)
            return ConformanceResult(output, False, cycles, False)
        if any(marker in output for marker in pass_markers):
            logger.info("Conformance program passed after %d cycles.", cycles)
            return ConformanceResult(output, True, cycles, False)

    logger.warning("Conformance program timed out after %d cycles.", cycles)
    return ConformanceResult(gameboy.serial_output, False, cycles, True)
