"""Tests for daemon orchestration."""

import asyncio
import socket

import aiohttp
import pytest

from pairline.config import Config
from pairline.context import AppContext
from pairline.daemon import PairingDaemon, StartupError
from pairline.link.protocols import OpenEvent, QrEvent


class ScriptedClient:
    """Link client that shows a QR and then comes online."""

    def __init__(self):
        self.closed = False

    async def start(self, credentials, emit):
        await emit(QrEvent(payload="2@payload"))
        await emit(OpenEvent(account_id="acct"))

    async def close(self):
        self.closed = True


def free_port() -> int:
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest.fixture
def config(tmp_path):
    config = Config()
    config.bind_address = "127.0.0.1"
    config.port = free_port()
    config.link.auth_dir = str(tmp_path / "auth")
    config.link.print_qr_in_terminal = False
    return config


class TestPairingDaemon:
    """Tests for PairingDaemon."""

    @pytest.mark.asyncio
    async def test_start_serves_http(self, config):
        daemon = PairingDaemon(config)
        await daemon.start()
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(
                    f"http://127.0.0.1:{config.port}/health"
                ) as resp:
                    assert resp.status == 200
                    data = await resp.json()
            assert data["status"] == "running"
            assert daemon.context.expiry_worker.running
        finally:
            await daemon._shutdown()

        assert not daemon.context.expiry_worker.running

    @pytest.mark.asyncio
    async def test_start_connects_link_client(self, config):
        client = ScriptedClient()
        context = AppContext.from_config(config, link_factory=lambda: client)
        daemon = PairingDaemon(config, context=context)

        await daemon.start()
        try:
            assert context.tracker.account_id == "acct"
            assert context.supervisor.client is client
        finally:
            await daemon._shutdown()

        assert client.closed

    @pytest.mark.asyncio
    async def test_unwritable_auth_dir_does_not_abort_start(self, config, tmp_path):
        """A credential reset that fails leaves the service running."""
        auth_path = tmp_path / "auth-file"
        auth_path.write_text("not a directory")
        config.link.auth_dir = str(auth_path)
        config.link.reset_credentials_on_start = True
        client = ScriptedClient()
        context = AppContext.from_config(config, link_factory=lambda: client)
        daemon = PairingDaemon(config, context=context)

        await daemon.start()
        try:
            assert context.tracker.account_id == "acct"
            assert context.expiry_worker.running
        finally:
            await daemon._shutdown()

    @pytest.mark.asyncio
    async def test_invalid_config_is_startup_error(self, config):
        config.pairing.retention = "forever"
        with pytest.raises(StartupError):
            await PairingDaemon(config).start()

    @pytest.mark.asyncio
    async def test_port_in_use_is_startup_error(self, config):
        first = PairingDaemon(config)
        await first.start()
        try:
            with pytest.raises(StartupError):
                await PairingDaemon(config).start()
        finally:
            await first._shutdown()

    @pytest.mark.asyncio
    async def test_run_forever_stops_on_stop(self, config):
        daemon = PairingDaemon(config)
        await daemon.start()

        task = asyncio.create_task(daemon.run_forever())
        await asyncio.sleep(0)
        await daemon.stop()
        await asyncio.wait_for(task, timeout=5)

        assert daemon.server is not None
        assert not daemon.context.expiry_worker.running
