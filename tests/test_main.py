import pytest

from agent_server import main as main_module


def test_parse_serve_args():
    args = main_module.parse_args(["serve", "--port", "9000", "--pkg", "com.example.app"])

    assert args.command == "serve"
    assert args.port == 9000
    assert args.pkg == "com.example.app"
    assert args.host is None


def test_parse_send_args():
    args = main_module.parse_args(["send", "tapElement", "--params", '{"label":"OK"}', "--observe"])

    assert (args.command, args.action, args.observe) == ("send", "tapElement", True)


def test_command_required():
    with pytest.raises(SystemExit):
        main_module.parse_args([])


def test_send_exit_code(monkeypatch, capsys):
    class _Client:
        def __init__(self, base_url):
            self.base_url = base_url

        async def action(self, action, params, observe):
            return {"success": False, "error": "Element not found within 5.0s", "durationMs": 5012}

    monkeypatch.setattr(main_module, "AgentClient", _Client)

    with pytest.raises(SystemExit) as info:
        main_module.main(["send", "tapElement", "--params", '{"label":"Nope"}'])

    assert info.value.code == 1
    assert "[FAILED] Element not found within 5.0s (5012ms)" in capsys.readouterr().out


@pytest.mark.parametrize("raw,expected", [("{label:OK}", "不是合法 JSON"), ("[1, 2]", "必须是 JSON 对象")])
def test_send_rejects_bad_params(monkeypatch, capsys, raw, expected):
    called = []
    monkeypatch.setattr(main_module, "AgentClient", lambda base_url: called.append(base_url))

    with pytest.raises(SystemExit) as info:
        main_module.main(["send", "tapElement", "--params", raw])

    assert info.value.code == 2
    assert expected in capsys.readouterr().err
    assert called == []
