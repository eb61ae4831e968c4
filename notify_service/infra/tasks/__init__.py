"""Background task infrastructure (Taskiq over RabbitMQ)."""

from .broker import broker, start_taskiq, stop_taskiq

__all__ = ["broker", "start_taskiq", "stop_taskiq"]
