# dmg_core_tracer/ppu/ppu.py
"""
PPU (スキャンラインエンジン)

ライン単位のタイミング状態機械を、直前のCPU命令が消費したサイクル数だけ進めます。
OAMサーチ(80) → 描画(172) → HBlank(204) を可視144ライン繰り返した後、
10ライン分のVBlankに入り、ライン0へ戻ります。

描画はOAMサーチから描画モードに入る時点でライン単位に行い、
VBlankの先頭ラインに入った時点で完成したフレームを外部へ渡します。
"""
import logging
from dataclasses import dataclass
from enum import IntEnum
from functools import partial
from typing import Callable, List, Optional

from dmg_core_tracer.transport.bus import Device, OPEN_BUS
from dmg_core_tracer.common.types import FrameListener
from dmg_core_tracer.hardware import registers
from dmg_core_tracer.hardware.interrupts import InterruptController, Interrupt
from dmg_core_tracer.hardware.io import IoRegisters, ignore_write
from dmg_core_tracer.ppu.sprites import OAM_SIZE, select_sprites

logger = logging.getLogger(__name__)

SCREEN_WIDTH = 160
SCREEN_HEIGHT = 144
VRAM_SIZE = 0x2000

SCANLINE_CYCLES = 456
VISIBLE_LINES = 144
TOTAL_LINES = 154
FRAME_CYCLES = SCANLINE_CYCLES * TOTAL_LINES

# @intent:constant LCDCのビット。
LCDC_BG_ENABLE = 0x01
LCDC_OBJ_ENABLE = 0x02
LCDC_OBJ_SIZE = 0x04
LCDC_BG_MAP = 0x08
LCDC_TILE_DATA = 0x10
LCDC_WINDOW_ENABLE = 0x20
LCDC_WINDOW_MAP = 0x40
LCDC_LCD_ENABLE = 0x80

# @intent:constant STATのビット。割り込み許可はbit3-6のみ書き込み可能です。
STAT_LYC_EQUAL = 0x04
STAT_HBLANK_INT = 0x08
STAT_VBLANK_INT = 0x10
STAT_OAM_INT = 0x20
STAT_LYC_INT = 0x40
STAT_WRITABLE = 0x78

TILE_MAP_0 = 0x1800
TILE_MAP_1 = 0x1C00

# @intent:constant 副作用のない単純なLCDレジスタとPpuStateのフィールド名の対応。
_PLAIN_REGISTERS = {
    registers.SCY: "scy",
    registers.SCX: "scx",
    registers.BGP: "bgp",
    registers.OBP0: "obp0",
    registers.OBP1: "obp1",
    registers.WY: "wy",
    registers.WX: "wx",
}


class PpuMode(IntEnum):
    HBLANK = 0
    VBLANK = 1
    OAM_SEARCH = 2
    PIXEL_TRANSFER = 3


# @intent:constant VBlank以外の各モードの長さ。VBlankは1ラインあたりSCANLINE_CYCLES。
MODE_CYCLES = {
    PpuMode.OAM_SEARCH: 80,
    PpuMode.PIXEL_TRANSFER: 172,
    PpuMode.HBLANK: 204,
    PpuMode.VBLANK: SCANLINE_CYCLES,
}


# @intent:responsibility PPUのモード、ライン、モード内サイクルと、CPUから見えるLCDレジスタを保持します。
@dataclass
class PpuState:
    mode: PpuMode = PpuMode.HBLANK
    ly: int = 0
    mode_clock: int = 0
    window_line: int = 0
    stat_line: bool = False
    lcdc: int = 0x00
    stat: int = 0x00  # 割り込み許可ビットのみ保持する
    scy: int = 0x00
    scx: int = 0x00
    lyc: int = 0x00
    bgp: int = 0x00
    obp0: int = 0x00
    obp1: int = 0x00
    wy: int = 0x00
    wx: int = 0x00
    dma: int = 0x00


def _apply_palette(palette: int, color: int) -> int:
    return (palette >> (color * 2)) & 0b11


def _pixel_color(low: int, high: int, bit: int) -> int:
    return (((high >> bit) & 1) << 1) | ((low >> bit) & 1)


class Ppu:
    """
    VRAMとOAMを所有し、フレームバッファを生成するPPU。
    strict_access が有効な場合、描画中のモードではCPUからのVRAM/OAMアクセスを拒否します。
    """
    def __init__(self, interrupts: InterruptController, strict_access: bool = True):
        self._interrupts = interrupts
        self.strict_access = strict_access
        self.vram = bytearray(VRAM_SIZE)
        self.oam = bytearray(OAM_SIZE)
        self.state = PpuState()
        self._back = bytearray(SCREEN_WIDTH * SCREEN_HEIGHT)
        self.framebuffer: bytes = bytes(SCREEN_WIDTH * SCREEN_HEIGHT)
        self.frame_count: int = 0
        self._listeners: List[FrameListener] = []
        self._dma_source: Optional[Callable[[int], int]] = None

    def reset(self) -> None:
        for i in range(VRAM_SIZE):
            self.vram[i] = 0
        for i in range(OAM_SIZE):
            self.oam[i] = 0
        self.state = PpuState()
        self._back = bytearray(SCREEN_WIDTH * SCREEN_HEIGHT)
        self.framebuffer = bytes(SCREEN_WIDTH * SCREEN_HEIGHT)
        self.frame_count = 0

    # @intent:responsibility フレーム完成時に呼ばれるリスナーを登録します。
    def add_frame_listener(self, listener: FrameListener) -> None:
        self._listeners.append(listener)

    def remove_frame_listener(self, listener: FrameListener) -> None:
        self._listeners.remove(listener)

    # @intent:responsibility OAM DMAの転送元を読むための関数を設定します（通常はBus.peek）。
    def set_dma_source(self, reader: Callable[[int], int]) -> None:
        self._dma_source = reader

    @property
    def lcd_enabled(self) -> bool:
        return bool(self.state.lcdc & LCDC_LCD_ENABLE)

    # --- アクセス制御 ---

    def vram_accessible(self) -> bool:
        if not self.strict_access or not self.lcd_enabled:
            return True
        return self.state.mode != PpuMode.PIXEL_TRANSFER

    def oam_accessible(self) -> bool:
        if not self.strict_access or not self.lcd_enabled:
            return True
        return self.state.mode not in (PpuMode.OAM_SEARCH, PpuMode.PIXEL_TRANSFER)

    # --- タイミング ---

    def tick(self, cycles: int) -> None:
        """
        指定されたサイクル数だけ状態機械を進めます。LCDが無効な間は何もしません。
        """
        if not self.lcd_enabled:
            return
        s = self.state
        s.mode_clock += cycles
        while s.mode_clock >= MODE_CYCLES[s.mode]:
            s.mode_clock -= MODE_CYCLES[s.mode]
            self._advance_mode()

    def _advance_mode(self) -> None:
        s = self.state
        if s.mode == PpuMode.OAM_SEARCH:
            self._set_mode(PpuMode.PIXEL_TRANSFER)
            self._render_scanline()
        elif s.mode == PpuMode.PIXEL_TRANSFER:
            self._set_mode(PpuMode.HBLANK)
        elif s.mode == PpuMode.HBLANK:
            self._set_ly(s.ly + 1)
            if s.ly == VISIBLE_LINES:
                self._set_mode(PpuMode.VBLANK)
                self._interrupts.request(Interrupt.VBLANK)
                self._publish_frame()
            else:
                self._set_mode(PpuMode.OAM_SEARCH)
        else:
            if s.ly + 1 == TOTAL_LINES:
                s.window_line = 0
                self._set_ly(0)
                self._set_mode(PpuMode.OAM_SEARCH)
            else:
                self._set_ly(s.ly + 1)

    def _set_mode(self, mode: PpuMode) -> None:
        self.state.mode = mode
        self._update_stat_line()

    def _set_ly(self, ly: int) -> None:
        self.state.ly = ly
        self._update_stat_line()

    # @intent:responsibility STAT割り込み要因の論理和を求め、立ち上がりでのみLCD_STAT割り込みを要求します。
    # @intent:rationale DMGのSTATには描画モード(mode 3)用の許可ビットが存在しないため、描画モードへの遷移では要求しません。
    #                  OAM要因はLY=144でVBlankへ入る際にも立ちます。
    def _update_stat_line(self) -> None:
        s = self.state
        line = False
        if self.lcd_enabled:
            line = (
                (bool(s.stat & STAT_HBLANK_INT) and s.mode == PpuMode.HBLANK)
                or (bool(s.stat & STAT_VBLANK_INT) and s.mode == PpuMode.VBLANK)
                or (bool(s.stat & STAT_OAM_INT) and (
                    s.mode == PpuMode.OAM_SEARCH
                    or (s.mode == PpuMode.VBLANK and s.ly == VISIBLE_LINES)
                ))
                or (bool(s.stat & STAT_LYC_INT) and s.ly == s.lyc)
            )
        if line and not s.stat_line:
            self._interrupts.request(Interrupt.LCD_STAT)
        s.stat_line = line

    def _publish_frame(self) -> None:
        self.framebuffer = bytes(self._back)
        self.frame_count += 1
        for listener in self._listeners:
            listener(self.framebuffer)

    # --- 描画 ---

    def _tile_row(self, tile_index: int, row: int, unsigned_addressing: bool):
        if unsigned_addressing:
            base = tile_index * 16
        else:
            signed = tile_index - 256 if tile_index >= 128 else tile_index
            base = 0x1000 + signed * 16
        address = base + row * 2
        return self.vram[address], self.vram[address + 1]

    def _map_color(self, map_base: int, x: int, y: int) -> int:
        tile_index = self.vram[map_base + (y // 8) * 32 + (x // 8)]
        low, high = self._tile_row(tile_index, y % 8, bool(self.state.lcdc & LCDC_TILE_DATA))
        return _pixel_color(low, high, 7 - (x % 8))

    def _render_scanline(self) -> None:
        s = self.state
        ly = s.ly
        lcdc = s.lcdc
        bg_colors = [0] * SCREEN_WIDTH

        if lcdc & LCDC_BG_ENABLE:
            bg_map = TILE_MAP_1 if lcdc & LCDC_BG_MAP else TILE_MAP_0
            y = (ly + s.scy) & 0xFF
            for x in range(SCREEN_WIDTH):
                bg_colors[x] = self._map_color(bg_map, (x + s.scx) & 0xFF, y)

            if lcdc & LCDC_WINDOW_ENABLE and ly >= s.wy:
                window_map = TILE_MAP_1 if lcdc & LCDC_WINDOW_MAP else TILE_MAP_0
                origin = s.wx - 7
                start = max(origin, 0)
                if start < SCREEN_WIDTH:
                    for x in range(start, SCREEN_WIDTH):
                        bg_colors[x] = self._map_color(window_map, x - origin, s.window_line)
                    # ウィンドウは実際に描かれたラインだけ内部カウンタを進める
                    s.window_line += 1

        row = ly * SCREEN_WIDTH
        if lcdc & LCDC_BG_ENABLE:
            for x in range(SCREEN_WIDTH):
                self._back[row + x] = _apply_palette(s.bgp, bg_colors[x])
        else:
            for x in range(SCREEN_WIDTH):
                self._back[row + x] = 0

        if lcdc & LCDC_OBJ_ENABLE:
            self._render_sprites(ly, bg_colors, row)

    def _render_sprites(self, ly: int, bg_colors: List[int], row: int) -> None:
        s = self.state
        height = 16 if s.lcdc & LCDC_OBJ_SIZE else 8
        sprites = select_sprites(self.oam, ly, height)
        if not sprites:
            return

        # 各ピクセルについて、優先順で最初の不透明なスプライトが採用される
        claimed = [False] * SCREEN_WIDTH
        for sprite in sprites:
            line = ly - sprite.top
            if sprite.flip_y:
                line = height - 1 - line
            tile = sprite.tile & 0xFE if height == 16 else sprite.tile
            low, high = self._tile_row(tile, line, True)
            palette = s.obp1 if sprite.uses_obp1 else s.obp0
            for column in range(8):
                x = sprite.left + column
                if x < 0 or x >= SCREEN_WIDTH or claimed[x]:
                    continue
                color = _pixel_color(low, high, column if sprite.flip_x else 7 - column)
                if color == 0:
                    continue
                claimed[x] = True
                if sprite.behind_bg and bg_colors[x] != 0:
                    continue
                self._back[row + x] = _apply_palette(palette, color)

    # --- I/Oレジスタとしての見え方 ---

    def read_lcdc(self) -> int:
        return self.state.lcdc

    # @intent:responsibility LCDの無効化でLY=0・HBlankに戻し、有効化でライン0のOAMサーチから再開します。
    def write_lcdc(self, value: int) -> None:
        s = self.state
        was_enabled = self.lcd_enabled
        s.lcdc = value & 0xFF
        if was_enabled and not self.lcd_enabled:
            s.ly = 0
            s.mode = PpuMode.HBLANK
            s.mode_clock = 0
            s.window_line = 0
            s.stat_line = False
            logger.debug("LCD disabled.")
        elif not was_enabled and self.lcd_enabled:
            s.ly = 0
            s.mode_clock = 0
            s.window_line = 0
            self._set_mode(PpuMode.OAM_SEARCH)
            logger.debug("LCD enabled.")

    def read_stat(self) -> int:
        s = self.state
        coincidence = STAT_LYC_EQUAL if s.ly == s.lyc else 0
        mode = int(s.mode) if self.lcd_enabled else 0
        return 0x80 | (s.stat & STAT_WRITABLE) | coincidence | mode

    def write_stat(self, value: int) -> None:
        self.state.stat = value & STAT_WRITABLE
        self._update_stat_line()

    def read_ly(self) -> int:
        return self.state.ly

    def read_lyc(self) -> int:
        return self.state.lyc

    def write_lyc(self, value: int) -> None:
        self.state.lyc = value & 0xFF
        self._update_stat_line()

    # @intent:responsibility 0xFF46への書き込みで value<<8 から160バイトをOAMへ即時転送します。
    # @intent:rationale 転送はアクセス制限を経由しないため、OAMへ直接書き込みます。
    def write_dma(self, value: int) -> None:
        self.state.dma = value & 0xFF
        if self._dma_source is None:
            return
        source = self.state.dma << 8
        for i in range(OAM_SIZE):
            self.oam[i] = self._dma_source(source + i)

    def read_dma(self) -> int:
        return self.state.dma

    # @intent:responsibility LCD関連レジスタの読み書き関数をI/Oレジスタ領域に割り当てます。
    def map_registers(self, io: IoRegisters) -> None:
        io.map_register(registers.LCDC, self.read_lcdc, self.write_lcdc)
        io.map_register(registers.STAT, self.read_stat, self.write_stat)
        io.map_register(registers.LY, self.read_ly, ignore_write)
        io.map_register(registers.LYC, self.read_lyc, self.write_lyc)
        io.map_register(registers.DMA, self.read_dma, self.write_dma)
        for address, name in _PLAIN_REGISTERS.items():
            io.map_register(address, partial(getattr, self.state, name), partial(self._write_plain, name))

    def _write_plain(self, name: str, value: int) -> None:
        setattr(self.state, name, value & 0xFF)


# @intent:responsibility 0x8000-0x9FFFのVRAM。PPUのモードに応じてCPUアクセスを拒否します。
class VideoRamDevice(Device):
    def __init__(self, ppu: Ppu):
        self._ppu = ppu

    def read(self, address: int) -> int:
        if not self._ppu.vram_accessible():
            return OPEN_BUS
        return self._ppu.vram[address]

    def write(self, address: int, data: int) -> None:
        if self._ppu.vram_accessible():
            self._ppu.vram[address] = data

    def peek(self, address: int) -> int:
        return self._ppu.vram[address]

    def get_size(self) -> int:
        return VRAM_SIZE


# @intent:responsibility 0xFE00-0xFE9FのOAM。OAMサーチ中と描画中はCPUアクセスを拒否します。
class OamDevice(Device):
    def __init__(self, ppu: Ppu):
        self._ppu = ppu

    def read(self, address: int) -> int:
        if not self._ppu.oam_accessible():
            return OPEN_BUS
        return self._ppu.oam[address]

    def write(self, address: int, data: int) -> None:
        if self._ppu.oam_accessible():
            self._ppu.oam[address] = data

    def peek(self, address: int) -> int:
        return self._ppu.oam[address]

    def get_size(self) -> int:
        return OAM_SIZE
