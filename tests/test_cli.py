import json

import pytest

from concert import cli


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"terminal": {"port_name": None, "currency": "978"}}), encoding="utf-8")
    return str(path)


@pytest.fixture
def devices(monkeypatch):
    found = ["/dev/tty.usbmodem1", "/dev/tty.usbmodem2"]
    monkeypatch.setattr(cli, "list_serial_devices", lambda pattern, max_devices=None: list(found))
    return found


def _answers(monkeypatch, *answers):
    replies = iter(answers)
    monkeypatch.setattr("builtins.input", lambda prompt="": next(replies))


def test_device_and_amount_from_arguments(config_path, serial_script, capsys):
    rc = cli.main(["--config", config_path, "--device", "/dev/tty.usbmodem1", "--amount", "12"])

    assert rc == 0
    assert serial_script.open_args[0] == "/dev/tty.usbmodem1"
    assert bytes(serial_script.written)[3:11] == b"00001200"
    assert "sent successfully" in capsys.readouterr().out


def test_interactive_selection(config_path, devices, serial_script, monkeypatch):
    _answers(monkeypatch, "2", "5")

    assert cli.main(["--config", config_path]) == 0
    assert serial_script.open_args[0] == "/dev/tty.usbmodem2"
    assert bytes(serial_script.written)[3:11] == b"00000500"


def test_invalid_selection(config_path, devices, serial_script, monkeypatch, capsys):
    _answers(monkeypatch, "9")

    assert cli.main(["--config", config_path]) == 1
    assert "Invalid selection" in capsys.readouterr().out
    assert serial_script.events == []


def test_no_devices(config_path, monkeypatch, capsys):
    monkeypatch.setattr(cli, "list_serial_devices", lambda pattern, max_devices=None: [])

    assert cli.main(["--config", config_path]) == 1
    assert "No serial devices" in capsys.readouterr().out


def test_auto_mode_picks_first_answering_terminal(config_path, devices, serial_script):
    # first probe: ENQ -> ACK; then the payment request on the same device
    serial_script.replies += b"\x06"

    assert cli.main(["--config", config_path, "--auto", "--amount", "3"]) == 0
    assert serial_script.open_args[0] == "/dev/tty.usbmodem1"
    assert serial_script.events == ["open", "write", "read", "close", "open", "write", "close"]


def test_auto_mode_without_answer(config_path, devices, serial_script, capsys):
    serial_script.fail_on.add("read")

    assert cli.main(["--config", config_path, "--auto", "--amount", "3"]) == 1
    assert "No terminal answered" in capsys.readouterr().out


def test_invalid_amount(config_path, serial_script, monkeypatch, capsys):
    _answers(monkeypatch, "ten")

    assert cli.main(["--config", config_path, "--device", "/dev/tty.usbmodem1"]) == 1
    assert "Invalid amount" in capsys.readouterr().out


def test_transport_failure_is_reported(config_path, serial_script, capsys):
    serial_script.fail_on.add("open")

    assert cli.main(["--config", config_path, "--device", "/dev/tty.usbmodem1", "--amount", "1"]) == 1
    out = capsys.readouterr().out
    assert "[ERROR]" in out
    assert "Error sending payment request" in out
