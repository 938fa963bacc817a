import json
import sys
from typing import Optional


def _optional_float(value) -> Optional[float]:
    return None if value is None else float(value)


class TerminalConfig:
    """A simple class to load and manage payment terminal settings from a JSON file."""
    def __init__(self, config_path='config.json'):
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                config_data = json.load(f)
        except (FileNotFoundError, json.JSONDecodeError) as e:
            print(f"Error: Could not load or parse {config_path}. {e}")
            print("Please ensure 'config.json' exists and is correctly formatted.")
            sys.exit(1)

        terminal = config_data.get("terminal", {})
        if not isinstance(terminal, dict):
            print(f"Error: 'terminal' in {config_path} must be an object.")
            sys.exit(1)

        # keep names close to JSON keys for clarity
        self.port_name: Optional[str] = terminal.get("port_name")
        self.device_pattern: str = terminal.get("device_pattern", "tty.usbmodem")
        self.register_id: str = str(terminal.get("register_id", "01"))
        self.currency: str = str(terminal.get("currency", "978"))
        self.wait_for_ack: bool = bool(terminal.get("wait_for_ack", False))

        try:
            # None means block until the terminal answers
            self.read_timeout: Optional[float] = _optional_float(terminal.get("read_timeout"))
            self.write_timeout: Optional[float] = _optional_float(terminal.get("write_timeout"))
        except (TypeError, ValueError) as e:
            print(f"Error: timeouts in {config_path} must be numbers or null. {e}")
            sys.exit(1)

        self.log_level: str = config_data.get("log_level", "INFO")

    def to_dict(self) -> dict:
        return {
            "terminal": {
                "port_name": self.port_name,
                "device_pattern": self.device_pattern,
                "register_id": self.register_id,
                "currency": self.currency,
                "read_timeout": self.read_timeout,
                "write_timeout": self.write_timeout,
                "wait_for_ack": self.wait_for_ack,
            },
            "log_level": self.log_level,
        }
