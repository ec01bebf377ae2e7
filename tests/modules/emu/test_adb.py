from types import SimpleNamespace

import pytest

from agent_server.modules.emu.adb import Adb, AdbError, escape_input_text


def _completed(stdout=b"", returncode=0, stderr=b""):
    return SimpleNamespace(stdout=stdout, stderr=stderr, returncode=returncode)


def test_escape_input_text():
    assert escape_input_text("hello world") == "hello%sworld"
    assert escape_input_text("a&b") == "a\\&b"
    assert escape_input_text("it's") == "it\\'s"


def test_devices_parses_listing(monkeypatch):
    adb = Adb()
    out = b"List of devices attached\nemulator-5554\tdevice\n127.0.0.1:16384\toffline\n\n"
    monkeypatch.setattr(adb, "_run", lambda args, timeout=None: _completed(out))

    assert adb.devices() == ["emulator-5554"]


def test_shell_targets_device(monkeypatch):
    adb = Adb()
    seen = []

    def fake_run(args, timeout=None):
        seen.append(args)
        return _completed()

    monkeypatch.setattr(adb, "_run", fake_run)
    adb.tap("emulator-5554", 5, 6)
    adb.keyevent(None, 66)

    assert seen == [
        ["-s", "emulator-5554", "shell", "input", "tap", "5", "6"],
        ["shell", "input", "keyevent", "66"],
    ]


def test_shell_failure_raises(monkeypatch):
    adb = Adb()
    monkeypatch.setattr(adb, "_run", lambda args, timeout=None: _completed(returncode=1, stderr=b"device offline"))

    with pytest.raises(AdbError, match="device offline"):
        adb.keyevent(None, 4)


def test_screen_size_prefers_override(monkeypatch):
    adb = Adb()
    out = b"Physical size: 1080x2400\nOverride size: 720x1600\n"
    monkeypatch.setattr(adb, "_run", lambda args, timeout=None: _completed(out))

    assert adb.screen_size(None) == (720, 1600)


def test_dump_strips_preamble(monkeypatch):
    adb = Adb()
    responses = iter(
        [
            _completed(b"UI hierchary dumped to: /sdcard/window_dump.xml\n"),
            _completed(b"junk<?xml version='1.0'?><hierarchy/>"),
        ]
    )
    monkeypatch.setattr(adb, "_run", lambda args, timeout=None: next(responses))

    assert adb.dump_ui_xml(None) == "<?xml version='1.0'?><hierarchy/>"


def test_missing_binary(monkeypatch):
    adb = Adb(adb_path="/nonexistent/adb-binary")

    with pytest.raises(AdbError):
        adb.devices()
