import json
from types import SimpleNamespace

import pytest

from tests.conftest import RECIPIENT, build_network, config_data
from tests.fakes import addr
from vaultbridge.cli import main as cli
from vaultbridge.core.codec import HopInstruction, encode_compose

PRIVATE_KEY = "0x" + "11" * 32


def _connect_to(web3):
    async def fake_connect(location, web3_factory=None):
        return web3

    return fake_connect


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(config_data()), encoding="utf-8")
    return path


def test_decode_compose_command(capsys) -> None:
    hop = HopInstruction.to_address(dst_eid=30110, recipient=addr(0xBE), amount=10, min_amount=9)
    cli.main(["decode-compose", "0x" + encode_compose(hop, 77).hex()])
    out = capsys.readouterr().out
    assert "dstEid: 30110" in out
    assert f"to: {addr(0xBE)}" in out
    assert "msgValue: 77" in out


def test_decode_compose_rejects_garbage(capsys) -> None:
    with pytest.raises(SystemExit) as info:
        cli.main(["decode-compose", "0x010203"])
    assert info.value.code == 1
    assert "❌ Error" in capsys.readouterr().out


def test_missing_private_key(monkeypatch, capsys) -> None:
    monkeypatch.delenv("PRIVATE_KEY", raising=False)
    with pytest.raises(SystemExit):
        cli.main(["--src", "base", "--dst", "arb", "--amount", "1", "--dry-run"])
    assert "PRIVATE_KEY" in capsys.readouterr().out


def test_dry_run_and_send_are_exclusive() -> None:
    with pytest.raises(SystemExit):
        cli._parse_args(["--src", "a", "--dst", "b", "--amount", "1", "--dry-run", "--send"])


def test_build_request_defaults_recipient_to_signer() -> None:
    args = cli._parse_args(["--src", "base", "--dst", "arb", "--amount", "1.5", "--conversion", "deposit", "--send"])
    request = cli.build_request(args, RECIPIENT)
    assert request.recipient == RECIPIENT
    assert request.conversion.value == "deposit"
    assert request.moved == "asset"
    assert request.compose_value is None


def test_dry_run_invokes_settlement(monkeypatch, capsys, config_path) -> None:
    monkeypatch.setenv("PRIVATE_KEY", PRIVATE_KEY)
    seen = {}

    async def fake_run(ctx, account, *, dry_run):
        seen["ctx"] = ctx
        seen["dry_run"] = dry_run
        return SimpleNamespace(submission=None)

    monkeypatch.setattr(cli, "run_settlement", fake_run)
    cli.main(
        [
            "--src", "base", "--dst", "arb", "--amount", "1", "--conversion", "redeem",
            "--slippage-bps", "30", "--config", str(config_path), "--dry-run",
        ]
    )
    assert seen["dry_run"] is True
    assert seen["ctx"].slippage_bps == 30
    assert seen["ctx"].request.recipient == seen["ctx"].sender
    assert "Dry run complete" in capsys.readouterr().out


def test_send_reports_scan_link(monkeypatch, capsys, config_path) -> None:
    monkeypatch.setenv("PRIVATE_KEY", PRIVATE_KEY)
    tx_hash = "0x" + "ab" * 32

    async def fake_run(ctx, account, *, dry_run):
        return SimpleNamespace(submission=SimpleNamespace(tx_hash=tx_hash))

    monkeypatch.setattr(cli, "run_settlement", fake_run)
    cli.main(["--src", "base", "--dst", "arb", "--amount", "1", "--config", str(config_path), "--send"])
    assert f"https://layerzeroscan.com/tx/{tx_hash}" in capsys.readouterr().out


def test_settlement_error_exits_with_stage(monkeypatch, capsys, config_path) -> None:
    monkeypatch.setenv("PRIVATE_KEY", PRIVATE_KEY)
    with pytest.raises(SystemExit) as info:
        cli.main(["--src", "polygon", "--dst", "arb", "--amount", "1", "--config", str(config_path), "--send"])
    assert info.value.code == 1
    assert "❌ Error [configuration]: Unknown location 'polygon'" in capsys.readouterr().out


def test_track_failure_after_confirmation_still_succeeds(monkeypatch, capsys, config_path) -> None:
    monkeypatch.setenv("PRIVATE_KEY", PRIVATE_KEY)
    tx_hash = "0x" + "cd" * 32

    async def fake_run(ctx, account, *, dry_run):
        return SimpleNamespace(submission=SimpleNamespace(tx_hash=tx_hash))

    def scan_down(tx_hash, config):
        raise ConnectionError("LayerZero Scan unreachable")

    monkeypatch.setattr(cli, "run_settlement", fake_run)
    monkeypatch.setattr(cli, "fetch_message_status", scan_down)
    cli.main(["--src", "base", "--dst", "arb", "--amount", "1", "--config", str(config_path), "--send", "--track"])
    out = capsys.readouterr().out
    assert "Settlement confirmed" in out
    assert "❌" not in out


def test_hub_to_hub_conversion_runs_direct_vault_path(monkeypatch, capsys, config_path) -> None:
    monkeypatch.setenv("PRIVATE_KEY", PRIVATE_KEY)
    network = build_network()
    monkeypatch.setattr(cli, "connect", _connect_to(network.hub))
    monkeypatch.setattr(cli, "Account", SimpleNamespace(from_key=lambda key: network.account))

    cli.main(
        [
            "--src", "hub", "--dst", "hub", "--amount", "1", "--conversion", "deposit",
            "--config", str(config_path), "--send",
        ]
    )
    assert network.hub.eth.sent_calls() == ["approve", "deposit"]
    assert "Vault conversion confirmed" in capsys.readouterr().out
