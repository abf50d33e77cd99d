"""
スプライト属性テーブル (OAM) の解析。
"""
from typing import List, NamedTuple

OAM_SIZE = 0xA0
SPRITE_COUNT = 40
MAX_SPRITES_PER_LINE = 10

# @intent:constant 属性バイトのフラグ。
ATTR_BEHIND_BG = 0x80
ATTR_FLIP_Y = 0x40
ATTR_FLIP_X = 0x20
ATTR_PALETTE = 0x10


# @intent:data_structure OAM上の1エントリ。座標はOAMに格納された生の値（Y+16, X+8）です。
class Sprite(NamedTuple):
    index: int
    y: int
    x: int
    tile: int
    attributes: int

    @property
    def top(self) -> int:
        return self.y - 16

    @property
    def left(self) -> int:
        return self.x - 8

    @property
    def behind_bg(self) -> bool:
        return bool(self.attributes & ATTR_BEHIND_BG)

    @property
    def flip_x(self) -> bool:
        return bool(self.attributes & ATTR_FLIP_X)

    @property
    def flip_y(self) -> bool:
        return bool(self.attributes & ATTR_FLIP_Y)

    @property
    def uses_obp1(self) -> bool:
        return bool(self.attributes & ATTR_PALETTE)


# @intent:responsibility 指定ラインに掛かるスプライトをOAM順に最大10個選び、描画優先順に並べて返します。
# @intent:rationale 実機はX座標が画面外のスプライトもライン上の10個に数えます。
#                  優先順はX座標の昇順、同じXならOAMインデックスの昇順です。
def select_sprites(oam: bytes, ly: int, height: int) -> List[Sprite]:
    selected: List[Sprite] = []
    for index in range(SPRITE_COUNT):
        base = index * 4
        sprite = Sprite(index, oam[base], oam[base + 1], oam[base + 2], oam[base + 3])
        if sprite.top <= ly < sprite.top + height:
            selected.append(sprite)
            if len(selected) == MAX_SPRITES_PER_LINE:
                break
    selected.sort(key=lambda s: (s.x, s.index))
    return selected
