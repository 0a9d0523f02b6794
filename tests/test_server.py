import logging
import os
import signal
import threading

import pytest

from cocos.server import (
    AgentConfig,
    BaseConfig,
    Server,
    ServerConfig,
    ServerStopError,
    stop_all_servers,
    stop_handler,
)


class _GoodServer(Server):
    def __init__(self):
        self.stopped = 0

    def start(self):
        pass

    def stop(self):
        self.stopped += 1


class _BadServer(Server):
    def start(self):
        pass

    def stop(self):
        raise RuntimeError("failed to stop")


def test_base_config_defaults():
    config = BaseConfig()
    assert (config.host, config.port) == ("localhost", "7001")
    assert config.cert_file == "" and config.key_file == ""


def test_server_config_get_base_config():
    config = ServerConfig(host="example.com", port="9000")
    base = config.get_base_config()
    assert base == config
    assert base is not config


def test_agent_config_get_base_config():
    config = AgentConfig(host="example.com", port="50051", cert_file="cert.pem", attested_tls=True)
    assert config.get_base_config() == ServerConfig(host="example.com", port="50051", cert_file="cert.pem")


def test_stop_all_servers_success():
    server = _GoodServer()
    assert stop_all_servers([server, server]) is None
    assert server.stopped == 2
    assert stop_all_servers([]) is None


def test_stop_all_servers_failure():
    good = _GoodServer()
    with pytest.raises(ServerStopError) as info:
        stop_all_servers([good, _BadServer()])
    assert good.stopped == 1
    assert len(info.value.errors) == 1
    assert str(info.value) == "encountered errors while stopping servers: [failed to stop]"


def _send_sigint_later():
    timer = threading.Timer(0.1, os.kill, args=(os.getpid(), signal.SIGINT))
    timer.start()
    return timer


def _safety_timer(event):
    timer = threading.Timer(2.0, event.set)
    timer.start()
    return timer


def test_stop_handler_on_signal(caplog):
    cancel = threading.Event()
    server = _GoodServer()
    sender = _send_sigint_later()
    safety = _safety_timer(cancel)
    try:
        with caplog.at_level(logging.INFO):
            result = stop_handler(cancel, logging.getLogger("cocos.test.server"), "test", server)
    finally:
        sender.cancel()
        safety.cancel()
    assert result is None
    assert server.stopped == 1
    assert cancel.is_set()
    assert "test service shutdown by signal: SIGINT" in caplog.text


def test_stop_handler_signal_with_failing_server(caplog):
    cancel = threading.Event()
    sender = _send_sigint_later()
    safety = _safety_timer(cancel)
    try:
        with caplog.at_level(logging.INFO):
            with pytest.raises(ServerStopError):
                stop_handler(cancel, logging.getLogger("cocos.test.server"), "test", _BadServer())
    finally:
        sender.cancel()
        safety.cancel()
    assert cancel.is_set()
    assert "test service error during shutdown" in caplog.text


def test_stop_handler_context_canceled():
    cancel = threading.Event()
    server = _GoodServer()
    timer = threading.Timer(0.1, cancel.set)
    timer.start()
    try:
        result = stop_handler(cancel, logging.getLogger("cocos.test.server"), "test", server)
    finally:
        timer.cancel()
    assert result is None
    assert cancel.is_set()
    assert server.stopped == 0


def test_stop_handler_restores_signal_handlers():
    before = signal.getsignal(signal.SIGINT)
    cancel = threading.Event()
    cancel.set()
    server = _GoodServer()
    result = stop_handler(cancel, logging.getLogger("cocos.test.server"), "test", server)
    assert result is None
    assert server.stopped == 0
    assert signal.getsignal(signal.SIGINT) == before