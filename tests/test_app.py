# =============================================================================
# Command Line Tests
# =============================================================================

import pytest
from keyring.errors import NoKeyringError

from tagmailer import __version__
from tagmailer.app import main, parse_args
from tagmailer.smtp import MailDispatcher


@pytest.fixture
def cli(monkeypatch, temp_dir, recording_transport, sink):
    """Run main() against an empty config and a recording transport."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(temp_dir / "xdg"))
    monkeypatch.chdir(temp_dir)
    monkeypatch.setattr(
        "tagmailer.app.MailDispatcher",
        lambda: MailDispatcher(transport=recording_transport, log_sink=sink),
    )

    def run(*argv):
        return main(["--config", str(temp_dir / "config.toml"), *argv])

    return run


def test_version(capsys):
    with pytest.raises(SystemExit) as info:
        parse_args(["--version"])
    assert info.value.code == 0
    assert __version__ in capsys.readouterr().out


def test_paths(cli, capsys, temp_dir):
    assert cli("--paths") == 0
    assert str(temp_dir / "xdg" / "tagmailer") in capsys.readouterr().out


def test_send(cli, capsys, recording_transport, sample_attachment):
    code = cli(
        "--to", "a@example.com",
        "--to", "b@example.com",
        "--from", "me@example.com",
        "--subject", "Report",
        "--body", "<p>Attached</p>",
        "--html",
        "--header", "X-Campaign: fall",
        "--attach", "reports/q3.pdf",
    )

    assert code == 0
    assert "Message accepted for delivery" in capsys.readouterr().out
    message = recording_transport.sent[0]
    assert [a.addr_spec for a in message.recipients["to"]] == ["a@example.com", "b@example.com"]
    assert message.content_type == "text/html"
    assert message.headers == [("X-Campaign", "fall")]
    assert [p.filename for p in message.attachment_parts] == ["q3.pdf"]
    assert (message.session.host, message.session.port) == ("localhost", 25)


def test_body_file_and_server(cli, temp_dir, recording_transport):
    (temp_dir / "body.txt").write_text("From a file")
    code = cli(
        "--to", "a@example.com",
        "--from", "me@example.com",
        "--body-file", str(temp_dir / "body.txt"),
        "--server", "smtp.example.com",
        "--port", "2525",
    )

    assert code == 0
    message = recording_transport.sent[0]
    assert message.to_mime().get_payload(decode=True) == b"From a file"
    assert message.session.destination == "smtp.example.com:2525"


def test_validation_errors(cli, capsys, recording_transport):
    code = cli("--to", "a@b.com,bad", "--from", "me@example.com", "--body", "Hi")
    assert code == 1
    assert "The to address bad is not in the proper format." in capsys.readouterr().err
    assert recording_transport.sent == []


def test_missing_attachment(cli, capsys):
    code = cli("--to", "a@example.com", "--body", "Hi", "--attach", "missing.pdf")
    assert code == 1
    assert "does not exist" in capsys.readouterr().err


def test_bad_header_option(cli, capsys):
    code = cli("--to", "a@example.com", "--body", "Hi", "--header", "NoColon")
    assert code == 1
    assert "NAME:VALUE" in capsys.readouterr().err


def test_config_error(cli, capsys, temp_dir):
    (temp_dir / "config.toml").write_text("[defaults]\nauthenticate = true\n")
    assert cli("--to", "a@example.com") == 1
    assert "Configuration error" in capsys.readouterr().err


def test_keyring_unavailable(cli, capsys, monkeypatch):
    def get_password(service, user):
        raise NoKeyringError("No recommended backend was available")

    monkeypatch.setattr("tagmailer.message.builder.keyring.get_password", get_password)
    code = cli("--to", "a@example.com", "--body", "Hi", "--authenticate", "--user", "mailer")
    assert code == 1
    assert "keyring set tagmailer:localhost mailer" in capsys.readouterr().err
