"""Tests for the typer CLI (offline commands only)."""

import pytest
from rich.console import Console
from typer.testing import CliRunner

from agent_cosmos_ai.cli import app as cli_app

runner = CliRunner()


@pytest.fixture(autouse=True)
def wide_console(monkeypatch):
    monkeypatch.setattr(cli_app, "console", Console(width=200))


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_chains():
    result = runner.invoke(cli_app.app, ["chains"])
    assert result.exit_code == 0
    assert "osmosis-1" in result.output
    assert "cosmoshub-4" in result.output


def test_tools():
    result = runner.invoke(cli_app.app, ["tools"])
    assert result.exit_code == 0
    assert "SEND_TOKEN" in result.output
    assert "TRANSFER_TOKEN" in result.output


def test_init(workdir):
    result = runner.invoke(cli_app.app, ["init", "--name", "Ossie", "--chain", "cosmoshub"])
    assert result.exit_code == 0, result.output
    assert "initialized" in result.output

    config = (workdir / ".agent-cosmos-ai" / "default" / "config.yaml").read_text()
    assert "cosmoshub" in config
    assert "Ossie" in config

    again = runner.invoke(cli_app.app, ["init"])
    assert again.exit_code == 1
    assert "already initialized" in again.output


def test_init_unknown_chain(workdir):
    result = runner.invoke(cli_app.app, ["init", "--chain", "ethereum"])
    assert result.exit_code == 1
    assert not (workdir / ".agent-cosmos-ai" / "default" / "config.yaml").exists()


def test_profile_option(workdir):
    result = runner.invoke(cli_app.app, ["--profile", "Bot Two", "init"])
    assert result.exit_code == 0, result.output
    assert (workdir / ".agent-cosmos-ai" / "bot-two" / "config.yaml").exists()


def test_command_without_profile(workdir):
    result = runner.invoke(cli_app.app, ["wallet", "address"])
    assert result.exit_code == 1
    assert "No profile found" in result.output


def test_address_without_wallet(workdir):
    runner.invoke(cli_app.app, ["init"])
    result = runner.invoke(cli_app.app, ["wallet", "address"])
    assert result.exit_code == 1
    assert "No wallet found" in result.output


def test_address_from_mnemonic(workdir, monkeypatch, mnemonic):
    runner.invoke(cli_app.app, ["init"])
    monkeypatch.setenv("COSMOS_MNEMONIC", mnemonic)
    result = runner.invoke(cli_app.app, ["wallet", "address"])
    assert result.exit_code == 0, result.output
    assert "osmo1" in result.output
    assert "osmosis-1" in result.output


def test_invalid_mnemonic_is_reported(workdir, monkeypatch):
    runner.invoke(cli_app.app, ["init"])
    monkeypatch.setenv("COSMOS_MNEMONIC", "only three words")
    result = runner.invoke(cli_app.app, ["wallet", "address"])
    assert result.exit_code == 1
    assert "COSMOS_MNEMONIC" in result.output


def test_transfers_empty(workdir):
    runner.invoke(cli_app.app, ["init"])
    result = runner.invoke(cli_app.app, ["wallet", "transfers"])
    assert result.exit_code == 0
    assert "No transfers found" in result.output


def test_reject_unknown_transfer(workdir):
    runner.invoke(cli_app.app, ["init"])
    result = runner.invoke(cli_app.app, ["wallet", "reject", "nope"])
    assert result.exit_code == 1
    assert "not found" in result.output
