from .remote_worker_client import RemoteWorkerClient

__all__ = ["RemoteWorkerClient"]
