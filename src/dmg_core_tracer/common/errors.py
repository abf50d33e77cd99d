"""
エミュレータコアの例外定義。

コアが送出する例外はすべて DmgCoreError を基底とします。
未マップのメモリアクセスはエラーではなく、オープンバス値として扱われるため、
ここには含まれません。
"""


class DmgCoreError(Exception):
    """エミュレータコアが送出する例外の基底クラス。"""


# @intent:responsibility デコードテーブルに存在しないオペコードを実行しようとしたことを通知します。
# @intent:rationale 実機ではCPUがロックするオペコードであり、回復不能な不具合として扱います。
class UnsupportedOpcode(DmgCoreError):
    """
    未定義オペコードの実行。診断のため、命令の先頭PCとオペコードを保持します。
    """
    def __init__(self, pc: int, opcode: int):
        self.pc = pc
        self.opcode = opcode
        super().__init__(f"Unsupported opcode ${opcode:02X} at PC {pc:#06x}")


# @intent:responsibility カートリッジイメージがコアで扱えない形式であることを通知します。
class InvalidCartridge(DmgCoreError):
    """ヘッダが未対応のバンクコントローラを宣言している、またはイメージが壊れている。"""
