import pytest

from ticket_queue.config import QueueConfig


def test_from_env_defaults():
    cfg = QueueConfig.from_env({})
    assert cfg == QueueConfig()
    assert cfg.namespace == "ticket-queue/v1"


def test_from_env_overrides():
    cfg = QueueConfig.from_env(
        {
            "TICKET_QUEUE_MQTT_HOST": "broker",
            "TICKET_QUEUE_MQTT_PORT": "8883",
            "TICKET_QUEUE_DB": "/tmp/q.db",
            "TICKET_QUEUE_LOG_LEVEL": "debug",
        }
    )
    assert cfg.mqtt_host == "broker"
    assert cfg.mqtt_port == 8883
    assert cfg.db_path == "/tmp/q.db"
    assert cfg.log_level == "DEBUG"


def test_from_env_rejects_bad_port():
    with pytest.raises(ValueError):
        QueueConfig.from_env({"TICKET_QUEUE_MQTT_PORT": "abc"})


def test_configure_logging_installs_rich_handler():
    import logging

    from rich.logging import RichHandler

    from ticket_queue.config import configure_logging

    configure_logging("debug")
    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert any(isinstance(h, RichHandler) for h in root.handlers)
    configure_logging("WARNING")
