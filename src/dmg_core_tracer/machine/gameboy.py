# dmg_core_tracer/machine/gameboy.py
"""
DMG本体の集約。

CPU、バス、割り込みコントローラ、タイマ、シリアル、ジョイパッド、PPUの状態をすべて所有し、
step() を唯一の同期点として進めます。タイマとPPUは、直前のCPU命令が消費した
サイクル数だけ、次の命令の実行前に必ず進められます。
"""
import logging
from typing import Dict, Optional

from dmg_core_tracer.transport.bus import Bus, RAM, MirrorDevice, RegisterDevice
from dmg_core_tracer.core.snapshot import Snapshot
from dmg_core_tracer.common.types import FrameListener
from dmg_core_tracer.cartridge.cartridge import Cartridge, CartridgeRomDevice, ExternalRamDevice
from dmg_core_tracer.hardware import registers
from dmg_core_tracer.hardware.interrupts import InterruptController
from dmg_core_tracer.hardware.timer import Timer
from dmg_core_tracer.hardware.serial import SerialPort
from dmg_core_tracer.hardware.joypad import Joypad, JoypadButton
from dmg_core_tracer.hardware.io import IoRegisters
from dmg_core_tracer.ppu.ppu import Ppu, VideoRamDevice, OamDevice, FRAME_CYCLES
from dmg_core_tracer.arch.sm83.cpu import Sm83Cpu

logger = logging.getLogger(__name__)

WRAM_SIZE = 0x2000
HRAM_SIZE = 0x7F

# @intent:constant 起動ROMを使わない場合の、起動ROM終了直後のCPUレジスタ値。
POST_BOOT_REGISTERS = {
    "af": 0x01B0,
    "bc": 0x0013,
    "de": 0x00D8,
    "hl": 0x014D,
    "sp": 0xFFFE,
    "pc": 0x0100,
}
POST_BOOT_DIV_COUNTER = 0xABCC
POST_BOOT_IF = 0xE1
POST_BOOT_LCDC = 0x91
POST_BOOT_BGP = 0xFC


class GameBoy:
    """
    全コンポーネントの状態を1つにまとめた集約。
    マルチスレッド環境に組み込む場合も、このオブジェクト全体を1単位として受け渡します。
    """
    def __init__(
        self,
        cartridge: Cartridge,
        boot_rom: Optional[bytes] = None,
        strict_vram_access: bool = True,
        halt_bug: bool = True,
        initial_registers: Optional[Dict[str, int]] = None,
    ):
        self.cartridge = cartridge
        self.initial_registers: Dict[str, int] = dict(initial_registers or {})

        self.bus = Bus()
        self.interrupts = InterruptController()
        self.timer = Timer(self.interrupts)
        self.serial = SerialPort(self.interrupts)
        self.joypad = Joypad(self.interrupts)
        self.ppu = Ppu(self.interrupts, strict_access=strict_vram_access)
        self.io = IoRegisters()
        self.wram = RAM(WRAM_SIZE)
        self.hram = RAM(HRAM_SIZE)
        self.rom_device = CartridgeRomDevice(cartridge, boot_rom)

        self._map_memory()
        self._map_io_registers()
        self.ppu.set_dma_source(self.bus.peek)

        self.cpu = Sm83Cpu(self.bus, self.interrupts, halt_bug=halt_bug)
        self.reset()

    # @intent:responsibility 16bitアドレス空間の各領域に所有デバイスを割り当てます。
    # @intent:rationale 0xFEA0-0xFEFF は意図的に未割り当てとし、オープンバス値を返させます。
    def _map_memory(self) -> None:
        bus = self.bus
        bus.register_device(0x0000, 0x7FFF, self.rom_device)
        bus.register_device(0x8000, 0x9FFF, VideoRamDevice(self.ppu))
        bus.register_device(0xA000, 0xBFFF, ExternalRamDevice(self.cartridge))
        bus.register_device(0xC000, 0xDFFF, self.wram)
        bus.register_device(0xE000, 0xFDFF, MirrorDevice(self.wram, 0x1E00))
        bus.register_device(0xFE00, 0xFE9F, OamDevice(self.ppu))
        bus.register_device(registers.IO_START, registers.IO_END, self.io)
        bus.register_device(0xFF80, 0xFFFE, self.hram)
        bus.register_device(
            registers.IE, registers.IE,
            RegisterDevice(self.interrupts.read_enable, self.interrupts.write_enable),
        )

    def _map_io_registers(self) -> None:
        io = self.io
        io.map_register(registers.JOYP, self.joypad.read, self.joypad.write)
        io.map_register(registers.SB, self.serial.read_sb, self.serial.write_sb)
        io.map_register(registers.SC, self.serial.read_sc, self.serial.write_sc)
        io.map_register(registers.DIV, lambda: self.timer.div, self.timer.write_div)
        io.map_register(registers.TIMA, self.timer.read_tima, self.timer.write_tima)
        io.map_register(registers.TMA, self.timer.read_tma, self.timer.write_tma)
        io.map_register(registers.TAC, self.timer.read_tac, self.timer.write_tac)
        io.map_register(registers.IF, self.interrupts.read_flags, self.interrupts.write_flags)
        io.map_register(registers.BOOT_OFF, lambda: 0xFF, self.rom_device.disable_boot_overlay)
        self.ppu.map_registers(io)

    @property
    def boot_rom_active(self) -> bool:
        return self.rom_device.boot_enabled

    # @intent:responsibility 全コンポーネントを初期状態に戻します。途中状態は残りません。
    def reset(self) -> None:
        """
        起動ROMがあればPC=0x0000から起動ROMを実行する状態に、
        なければ起動ROM終了直後の状態に初期化します。
        """
        self.interrupts.reset()
        self.timer.reset()
        self.serial.reset()
        self.joypad.reset()
        self.ppu.reset()
        self.io.reset()
        self.wram.clear()
        self.hram.clear()
        self.cartridge.reset()
        self.rom_device.reset()
        self.cpu.reset()

        if not self.rom_device.boot_enabled:
            self._apply_post_boot_state()
        state = self.cpu.get_state()
        for name, value in self.initial_registers.items():
            setattr(state, name, value)
        logger.debug("Machine reset (boot ROM %s).", "active" if self.boot_rom_active else "skipped")

    def _apply_post_boot_state(self) -> None:
        state = self.cpu.get_state()
        for name, value in POST_BOOT_REGISTERS.items():
            setattr(state, name, value)
        self.timer.counter = POST_BOOT_DIV_COUNTER
        self.interrupts.write_flags(POST_BOOT_IF)
        self.ppu.write_lcdc(POST_BOOT_LCDC)
        self.ppu.state.bgp = POST_BOOT_BGP

    # --- 実行 ---

    def step(self) -> int:
        """
        CPUを1命令進め、同じサイクル数だけタイマとPPUを進めます。消費サイクル数を返します。
        """
        cycles = self.cpu.step()
        self.timer.tick(cycles)
        self.ppu.tick(cycles)
        return cycles

    # @intent:responsibility step()と同じ進め方で1命令実行し、そのSnapshotを返します。デバッガ用です。
    def trace_step(self) -> Snapshot:
        snapshot = self.cpu.step_with_snapshot()
        cycles = snapshot.metadata.instruction_cycles
        self.timer.tick(cycles)
        self.ppu.tick(cycles)
        return snapshot

    # @intent:responsibility 命令境界を保ったまま、少なくともcyclesサイクル分実行します。
    # @intent:post-condition 実際に消費したサイクル数を返します（最後の命令の分だけ超過し得ます）。
    def run_cycles(self, cycles: int) -> int:
        total = 0
        while total < cycles:
            total += self.step()
        return total

    # @intent:responsibility 次のフレームが完成するまで実行します。LCDが無効の場合は1フレーム期間分実行します。
    def run_frame(self) -> int:
        start = self.ppu.frame_count
        total = 0
        while self.ppu.frame_count == start:
            if not self.ppu.lcd_enabled and total >= FRAME_CYCLES:
                break
            total += self.step()
        return total

    # --- 入出力 ---

    def press(self, button: JoypadButton) -> None:
        self.joypad.press(button)

    def release(self, button: JoypadButton) -> None:
        self.joypad.release(button)

    @property
    def framebuffer(self) -> bytes:
        """直近に完成したフレーム（160x144、各バイトは0-3のシェード番号）。"""
        return self.ppu.framebuffer

    def add_frame_listener(self, listener: FrameListener) -> None:
        self.ppu.add_frame_listener(listener)

    def remove_frame_listener(self, listener: FrameListener) -> None:
        self.ppu.remove_frame_listener(listener)

    @property
    def serial_output(self) -> str:
        return self.serial.output_text()
