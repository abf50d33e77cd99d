import yaml
from typing import Dict, Any, Optional
from .models import SystemConfig, CpuInitialState, SUPPORTED_MODELS

# @intent:constant 初期状態で上書きできるレジスタ名（8bit/16bit）と最大値。
REGISTER_LIMITS = {
    "a": 0xFF, "f": 0xF0, "b": 0xFF, "c": 0xFF, "d": 0xFF, "e": 0xFF, "h": 0xFF, "l": 0xFF,
    "af": 0xFFF0, "bc": 0xFFFF, "de": 0xFFFF, "hl": 0xFFFF, "sp": 0xFFFF, "pc": 0xFFFF,
}

class ConfigLoader:
    def load_from_file(self, path: str) -> SystemConfig:
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
        return self._parse_config(data or {})

    def load_from_string(self, text: str) -> SystemConfig:
        return self._parse_config(yaml.safe_load(text) or {})

    def _parse_config(self, data: Dict[str, Any]) -> SystemConfig:
        if not isinstance(data, dict):
            raise ValueError("Configuration root must be a mapping.")

        model = str(data.get("model", "DMG")).upper()
        if model not in SUPPORTED_MODELS:
            raise ValueError(f"Unsupported model: {model}")

        boot_rom = data.get("boot_rom")
        if boot_rom is not None and not isinstance(boot_rom, str):
            raise ValueError(f"boot_rom must be a path string: {boot_rom!r}")

        # Parse Initial State
        initial_state_data = data.get("initial_state") or {}
        registers = {}
        for name, value in (initial_state_data.get("registers") or {}).items():
            registers[self._parse_register_name(name)] = self._parse_register_value(name, value)

        initial_state = CpuInitialState(
            pc=self._parse_optional_int(initial_state_data.get("pc")),
            sp=self._parse_optional_int(initial_state_data.get("sp")),
            registers=registers,
        )

        return SystemConfig(
            model=model,
            boot_rom=boot_rom,
            strict_vram_access=self._parse_bool("strict_vram_access", data.get("strict_vram_access", True)),
            halt_bug=self._parse_bool("halt_bug", data.get("halt_bug", True)),
            initial_state=initial_state,
        )

    def _parse_register_name(self, name: Any) -> str:
        key = str(name).lower()
        if key not in REGISTER_LIMITS:
            raise ValueError(f"Unknown register in initial_state: {name}")
        return key

    def _parse_register_value(self, name: Any, value: Any) -> int:
        parsed = self._parse_int(value)
        limit = REGISTER_LIMITS[str(name).lower()]
        if not 0 <= parsed <= 0xFFFF or parsed & ~limit:
            raise ValueError(f"Value {value} out of range for register {name}")
        return parsed

    def _parse_bool(self, key: str, value: Any) -> bool:
        if isinstance(value, bool):
            return value
        raise ValueError(f"{key} must be true or false: {value!r}")

    def _parse_optional_int(self, value: Any) -> Optional[int]:
        if value is None:
            return None
        parsed = self._parse_int(value)
        if not 0 <= parsed <= 0xFFFF:
            raise ValueError(f"Address out of range: {value}")
        return parsed

    def _parse_int(self, value: Any) -> int:
        if isinstance(value, bool):
            raise ValueError(f"Invalid integer format: {value}")
        if isinstance(value, int):
            return value
        if isinstance(value, str):
            text = value.strip()
            if text.startswith("$"):
                return int(text[1:], 16)
            if text.lower().startswith("0x"):
                return int(text, 16)
            return int(text)
        raise ValueError(f"Invalid integer format: {value}")
