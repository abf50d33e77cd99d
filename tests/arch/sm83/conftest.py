# tests/arch/sm83/conftest.py
"""
SM83のテストで共有するフィクスチャ。
IF/IEを割り込みコントローラに接続した最小構成のバスを用意します。
"""
from typing import NamedTuple

import pytest

from dmg_core_tracer.transport.bus import Bus, RAM, RegisterDevice
from dmg_core_tracer.hardware.interrupts import InterruptController
from dmg_core_tracer.arch.sm83.cpu import Sm83Cpu


class CpuEnv(NamedTuple):
    cpu: Sm83Cpu
    bus: Bus
    interrupts: InterruptController

    @property
    def state(self):
        return self.cpu.get_state()

    # @intent:test_helper プログラムを書き込み、PCをその先頭に合わせます。
    def load(self, program: bytes, address: int = 0x0100) -> None:
        for offset, value in enumerate(program):
            self.bus.write(address + offset, value)
        self.state.pc = address


def build_env(halt_bug: bool = True) -> CpuEnv:
    bus = Bus()
    interrupts = InterruptController()
    bus.register_device(0x0000, 0xFF0E, RAM(0xFF0F))
    bus.register_device(0xFF0F, 0xFF0F, RegisterDevice(interrupts.read_flags, interrupts.write_flags))
    bus.register_device(0xFF10, 0xFFFE, RAM(0xEF))
    bus.register_device(0xFFFF, 0xFFFF, RegisterDevice(interrupts.read_enable, interrupts.write_enable))
    cpu = Sm83Cpu(bus, interrupts, halt_bug=halt_bug)
    cpu.get_state().sp = 0xFFFE
    return CpuEnv(cpu, bus, interrupts)


@pytest.fixture
def env():
    return build_env()


@pytest.fixture
def env_without_halt_bug():
    return build_env(halt_bug=False)
