import logging
from typing import Optional

from dmg_core_tracer.loader.loader import CartridgeLoader, load_boot_rom
from dmg_core_tracer.machine.gameboy import GameBoy
from .models import SystemConfig

logger = logging.getLogger(__name__)

# @intent:responsibility システム構成（Config）とROMイメージから、全コンポーネントを接続したGameBoyを生成します。
class SystemBuilder:
    def __init__(self, cartridge_loader: Optional[CartridgeLoader] = None):
        self._cartridge_loader = cartridge_loader or CartridgeLoader()

    def build(self, config: SystemConfig, rom_bytes: bytes, boot_bytes: Optional[bytes] = None) -> GameBoy:
        """
        boot_bytes が省略され、構成に boot_rom のパスがあればそこから起動ROMを読み込みます。
        """
        cartridge = self._cartridge_loader.load_from_bytes(rom_bytes)
        if boot_bytes is None:
            boot_bytes = load_boot_rom(config.boot_rom)

        gameboy = GameBoy(
            cartridge,
            boot_rom=boot_bytes,
            strict_vram_access=config.strict_vram_access,
            halt_bug=config.halt_bug,
            initial_registers=config.initial_state.as_overrides(),
        )
        logger.info(
            "Built %s system for '%s' (strict_vram_access=%s, halt_bug=%s)",
            config.model, cartridge.title, config.strict_vram_access, config.halt_bug,
        )
        return gameboy

    def build_from_file(self, config: SystemConfig, rom_path: str) -> GameBoy:
        with open(rom_path, "rb") as f:
            rom_bytes = f.read()
        return self.build(config, rom_bytes)
