"""
メモリマップドI/Oレジスタのアドレス定義。
"""

JOYP = 0xFF00
SB = 0xFF01
SC = 0xFF02
DIV = 0xFF04
TIMA = 0xFF05
TMA = 0xFF06
TAC = 0xFF07
IF = 0xFF0F
LCDC = 0xFF40
STAT = 0xFF41
SCY = 0xFF42
SCX = 0xFF43
LY = 0xFF44
LYC = 0xFF45
DMA = 0xFF46
BGP = 0xFF47
OBP0 = 0xFF48
OBP1 = 0xFF49
WY = 0xFF4A
WX = 0xFF4B
BOOT_OFF = 0xFF50
IE = 0xFFFF

IO_START = 0xFF00
IO_END = 0xFF7F

# サウンドレジスタと波形RAM。音声は生成しないが値は保持する。
SOUND_START = 0xFF10
SOUND_END = 0xFF3F
