from dataclasses import dataclass, field
from typing import Dict, Optional

SUPPORTED_MODELS = ("DMG",)

@dataclass
class CpuInitialState:
    pc: Optional[int] = None
    sp: Optional[int] = None
    registers: Dict[str, int] = field(default_factory=dict)

    # @intent:responsibility PC/SPを含む全ての上書き値をレジスタ名→値の辞書として返します。
    def as_overrides(self) -> Dict[str, int]:
        overrides = dict(self.registers)
        if self.pc is not None:
            overrides["pc"] = self.pc
        if self.sp is not None:
            overrides["sp"] = self.sp
        return overrides

@dataclass
class SystemConfig:
    model: str = "DMG"
    boot_rom: Optional[str] = None
    strict_vram_access: bool = True  # 描画中のVRAM/OAMアクセスを拒否する
    halt_bug: bool = True            # HALTバグを再現する
    initial_state: CpuInitialState = field(default_factory=CpuInitialState)
