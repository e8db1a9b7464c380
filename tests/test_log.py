import json

import structlog
from structlog.testing import capture_logs

from sigid import SignedIdentity
from sigid.log import configure_logging, get_logger


def test_configure_logging_renders_json(capsys):
    configure_logging("INFO", json_output=True)
    try:
        log = get_logger("sigid.test")
        log.debug("hidden")
        log.info("issued", identity="AAAAAAEAAQAB")
    finally:
        structlog.reset_defaults()
    lines = [line for line in capsys.readouterr().out.splitlines() if line]
    assert len(lines) == 1
    entry = json.loads(lines[0])
    assert entry["event"] == "issued"
    assert entry["level"] == "info"
    assert entry["identity"] == "AAAAAAEAAQAB"
    assert "timestamp" in entry


def test_lifeline_creation_emits_debug_event():
    signed = SignedIdentity.create("hello", timestamp=100, counter=7, noise=9, issued_at=100, expires_at=200)
    with capture_logs() as logs:
        signed.lifeline(300)
    events = [entry for entry in logs if entry["event"] == "lifeline.created"]
    assert events == [
        {"event": "lifeline.created", "log_level": "debug", "identity": signed.identity.to_base64(), "expires_at": 300}
    ]
