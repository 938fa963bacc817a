# concert/cli.py
import argparse
import sys
from typing import List, Optional

from logger import set_log_level
from terminal_config import TerminalConfig
from concert.concert_core import ConcertTerminal
from concert.concert_errors import ConcertError
from concert.concert_serial import list_serial_devices

MAX_DEVICES = 10


def _make_terminal(cfg: TerminalConfig, device: str) -> ConcertTerminal:
    terminal = ConcertTerminal.from_config(cfg, port=device)
    terminal.on_status = lambda s: print("[STATUS]", s)
    terminal.on_error = lambda e: print("[ERROR]", e)
    return terminal


def _auto_select(cfg: TerminalConfig, devices: List[str]) -> Optional[str]:
    """First device whose terminal answers ENQ with ACK."""
    for device in devices:
        print(f"Probing {device}...")
        if _make_terminal(cfg, device).is_available():
            return device
    return None


def _choose_device(cfg: TerminalConfig, auto: bool) -> Optional[str]:
    devices = list_serial_devices(cfg.device_pattern, max_devices=MAX_DEVICES)
    if not devices:
        print("No serial devices available.")
        return None

    print("Available serial devices:")
    for i, device in enumerate(devices, start=1):
        print(f"{i}. {device}")

    if auto:
        choice = "A"
    else:
        choice = input(f"\nEnter 'A' for auto mode or select a device (1-{len(devices)}): ").strip()

    if choice.upper() == "A":
        device = _auto_select(cfg, devices)
        if device is None:
            print("No terminal answered.")
        return device

    try:
        index = int(choice) - 1
    except ValueError:
        index = -1
    if not 0 <= index < len(devices):
        print("Invalid selection.")
        return None
    return devices[index]


def _read_amount(given: Optional[int]) -> Optional[int]:
    if given is None:
        raw = input("Enter amount in whole currency units: ").strip()
        try:
            given = int(raw)
        except ValueError:
            print("Invalid amount.")
            return None
    if given < 0:
        print("Invalid amount.")
        return None
    return given


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Send a payment request to a Concert terminal")
    parser.add_argument("--config", default="config.json", help="Path to the JSON config")
    parser.add_argument("--device", help="Serial device path; skips device selection")
    parser.add_argument("--amount", type=int, help="Amount in whole currency units")
    parser.add_argument("--auto", action="store_true",
                        help="Use the first device whose terminal answers the handshake")
    args = parser.parse_args(argv)

    cfg = TerminalConfig(args.config)
    set_log_level(cfg.log_level)

    device = args.device
    if device is None and not args.auto:
        device = cfg.port_name
    if device is None:
        device = _choose_device(cfg, args.auto)
        if device is None:
            return 1

    amount = _read_amount(args.amount)
    if amount is None:
        return 1

    terminal = _make_terminal(cfg, device)
    try:
        terminal.simple_request(amount * 100, cfg.currency)
    except ConcertError:
        print("Error sending payment request.")
        return 1

    print("Payment request sent successfully.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
